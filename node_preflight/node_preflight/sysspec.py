"""System specification consumed by every check.

A :class:`SysSpec` describes what a host must look like to join the
cluster.  Instances are frozen: checks read them, nothing writes them.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class KernelConfig(BaseModel):
    """A single kernel build option, e.g. ``NAMESPACES``."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Option name without the CONFIG_ prefix.")
    aliases: tuple[str, ...] = Field(default=(), description="Alternative names of the same option.")
    description: str = Field(default="", description="Shown when an optional option is missing.")


class KernelSpec(BaseModel):
    """Expected kernel release and build configuration."""

    model_config = ConfigDict(frozen=True)

    versions: tuple[str, ...] = Field(default=(), description="Regexes matched against the kernel release.")
    required: tuple[KernelConfig, ...] = Field(default=())
    optional: tuple[KernelConfig, ...] = Field(default=())
    forbidden: tuple[KernelConfig, ...] = Field(default=())


class DockerSpec(BaseModel):
    """Expected Docker engine version and storage driver."""

    model_config = ConfigDict(frozen=True)

    version: tuple[str, ...] = Field(default=(), description="Regexes matched against the server version.")
    graph_driver: tuple[str, ...] = Field(default=(), description="Accepted storage drivers.")


class RuntimeSpec(BaseModel):
    """Container runtime requirements."""

    model_config = ConfigDict(frozen=True)

    docker_spec: DockerSpec | None = None


class SysSpec(BaseModel):
    """Expected properties of a node."""

    model_config = ConfigDict(frozen=True)

    os: str = Field(default="Linux", description="Operating system name as reported by uname -s.")
    kernel_spec: KernelSpec = Field(default_factory=KernelSpec)
    cgroups: tuple[str, ...] = Field(default=(), description="Required cgroup v1 subsystems.")
    cgroups_optional: tuple[str, ...] = Field(default=(), description="Cgroup v1 subsystems warned about when missing.")
    cgroups_v2: tuple[str, ...] = Field(default=(), description="Required cgroup v2 controllers.")
    cgroups_v2_optional: tuple[str, ...] = Field(
        default=(),
        description="Cgroup v2 controllers warned about when missing.",
    )
    runtime_spec: RuntimeSpec = Field(default_factory=RuntimeSpec)


DEFAULT_SYS_SPEC = SysSpec(
    os="Linux",
    kernel_spec=KernelSpec(
        # 3.10+, 4.x and anything newer.
        versions=(r"3\.[1-9][0-9].*", r"[4-9]\..*", r"[1-9][0-9]+\..*"),
        required=(
            KernelConfig(name="NAMESPACES"),
            KernelConfig(name="NET_NS"),
            KernelConfig(name="PID_NS"),
            KernelConfig(name="IPC_NS"),
            KernelConfig(name="UTS_NS"),
            KernelConfig(name="CGROUPS"),
            KernelConfig(name="CGROUP_CPUACCT"),
            KernelConfig(name="CGROUP_DEVICE"),
            KernelConfig(name="CGROUP_FREEZER"),
            KernelConfig(name="CGROUP_SCHED"),
            KernelConfig(name="CPUSETS"),
            KernelConfig(name="MEMCG"),
            KernelConfig(name="INET"),
            KernelConfig(name="EXT4_FS"),
            KernelConfig(name="PROC_FS"),
            KernelConfig(name="NETFILTER_XT_TARGET_REDIRECT", aliases=("IP_NF_TARGET_REDIRECT",)),
            KernelConfig(name="NETFILTER_XT_MATCH_COMMENT"),
        ),
        optional=(
            KernelConfig(name="OVERLAY_FS", aliases=("OVERLAYFS_FS",), description="Required for overlayfs."),
            KernelConfig(name="AUFS_FS", description="Required for aufs."),
            KernelConfig(name="BLK_DEV_DM", description="Required for devicemapper."),
        ),
    ),
    cgroups=("cpu", "cpuacct", "cpuset", "devices", "freezer", "memory"),
    cgroups_optional=("pids", "hugetlb"),
    cgroups_v2=("cpu", "cpuset", "devices", "freezer", "memory", "pids"),
    cgroups_v2_optional=("hugetlb",),
    runtime_spec=RuntimeSpec(
        docker_spec=DockerSpec(
            # 1.9+ and the calendar-versioned releases.
            version=(r"1\.(9|\d{2,})\..*", r"[1-9]\d+\..*"),
            graph_driver=("aufs", "btrfs", "overlay", "overlay2", "devicemapper", "zfs"),
        ),
    ),
)
