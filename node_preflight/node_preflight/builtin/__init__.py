"""Built-in host checks: operating system, kernel, cgroups and Docker."""

from node_preflight.builtin.cgroups import CgroupsCheck
from node_preflight.builtin.docker import DockerCheck, DockerClient, DockerInfo
from node_preflight.builtin.kernel import KernelCheck
from node_preflight.builtin.os_check import OSCheck

__all__ = [
    "CgroupsCheck",
    "DockerCheck",
    "DockerClient",
    "DockerInfo",
    "KernelCheck",
    "OSCheck",
]
