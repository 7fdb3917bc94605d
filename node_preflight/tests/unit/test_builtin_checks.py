"""Unit tests for the OS, kernel and cgroups built-in checks.

Host state is faked through constructor parameters: callables for
``uname`` values and files under ``tmp_path`` for /proc and /boot.
"""

from __future__ import annotations

import gzip
from pathlib import Path

import pytest

from node_preflight.builtin.cgroups import CgroupsCheck, parse_proc_cgroups
from node_preflight.builtin.kernel import KernelCheck, kernel_config_paths, parse_kernel_config
from node_preflight.builtin.os_check import OSCheck
from node_preflight.errors import CheckFailure
from node_preflight.models import ResultCategory
from node_preflight.reporters import RecordingReporter
from node_preflight.sysspec import DEFAULT_SYS_SPEC, KernelConfig, KernelSpec, SysSpec

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

KERNEL_SPEC = KernelSpec(
    versions=(r"5\..*", r"6\..*"),
    required=(
        KernelConfig(name="NAMESPACES"),
        KernelConfig(name="NETFILTER_XT_TARGET_REDIRECT", aliases=("IP_NF_TARGET_REDIRECT",)),
    ),
    optional=(KernelConfig(name="AUFS_FS", description="Required for aufs."),),
    forbidden=(KernelConfig(name="DEBUG_RODATA_TEST"),),
)

GOOD_CONFIG = """\
#
# Automatically generated file; DO NOT EDIT.
#
CONFIG_NAMESPACES=y
CONFIG_IP_NF_TARGET_REDIRECT=m
CONFIG_AUFS_FS=y
# CONFIG_DEBUG_RODATA_TEST is not set
"""

PROC_CGROUPS_TEXT = """\
#subsys_name\thierarchy\tnum_cgroups\tenabled
cpuset\t2\t4\t1
cpu\t3\t64\t1
cpuacct\t3\t64\t1
memory\t4\t98\t1
devices\t5\t60\t1
freezer\t6\t4\t1
pids\t7\t64\t0
"""


def _write_config(tmp_path: Path, text: str, name: str = "config-5.15.0") -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def _kernel_check(reporter: RecordingReporter, config: Path, release: str = "5.15.0") -> KernelCheck:
    return KernelCheck(reporter, release=lambda: release, config_paths=[config])


# ---------------------------------------------------------------------------
# OSCheck
# ---------------------------------------------------------------------------


class TestOSCheck:
    def test_matching_os_passes(self):
        reporter = RecordingReporter()
        OSCheck(reporter, system=lambda: "Linux").validate(SysSpec(os="Linux"))
        assert reporter.entries[0].item == "OS"
        assert reporter.entries[0].detail == "Linux"
        assert reporter.entries[0].category == ResultCategory.GOOD

    def test_other_os_fails(self):
        reporter = RecordingReporter()
        with pytest.raises(CheckFailure, match="unsupported operating system: Darwin") as excinfo:
            OSCheck(reporter, system=lambda: "Darwin").validate(SysSpec(os="Linux"))
        assert excinfo.value.check_name == "os"
        assert reporter.entries[0].category == ResultCategory.BAD

    def test_name(self):
        assert OSCheck(RecordingReporter()).name == "os"


# ---------------------------------------------------------------------------
# KernelCheck
# ---------------------------------------------------------------------------


class TestParseKernelConfig:
    def test_values_and_not_set(self):
        config = parse_kernel_config(GOOD_CONFIG.splitlines())
        assert config == {
            "CONFIG_NAMESPACES": "y",
            "CONFIG_IP_NF_TARGET_REDIRECT": "m",
            "CONFIG_AUFS_FS": "y",
            "CONFIG_DEBUG_RODATA_TEST": "n",
        }

    def test_ignores_malformed_lines(self):
        config = parse_kernel_config(["CONFIG_BROKEN", "random text", "CONFIG_HZ=250"])
        assert config == {"CONFIG_HZ": "250"}

    def test_search_paths_include_release(self):
        paths = [str(p) for p in kernel_config_paths("6.1.0-13-amd64")]
        assert paths[0] == "/proc/config.gz"
        assert "/boot/config-6.1.0-13-amd64" in paths
        assert "/lib/modules/6.1.0-13-amd64/build/.config" in paths


class TestKernelCheck:
    def test_all_good(self, tmp_path: Path):
        reporter = RecordingReporter()
        _kernel_check(reporter, _write_config(tmp_path, GOOD_CONFIG)).validate(SysSpec(kernel_spec=KERNEL_SPEC))
        details = {e.item: (e.detail, e.category) for e in reporter.entries}
        assert details["KERNEL_VERSION"] == ("5.15.0", ResultCategory.GOOD)
        assert details["CONFIG_NAMESPACES"] == ("enabled", ResultCategory.GOOD)
        assert details["CONFIG_IP_NF_TARGET_REDIRECT"] == ("enabled (as module)", ResultCategory.GOOD)
        assert details["CONFIG_AUFS_FS"] == ("enabled", ResultCategory.GOOD)
        assert details["CONFIG_DEBUG_RODATA_TEST"] == ("disabled", ResultCategory.GOOD)

    def test_unsupported_release(self, tmp_path: Path):
        reporter = RecordingReporter()
        check = _kernel_check(reporter, _write_config(tmp_path, GOOD_CONFIG), release="2.6.32")
        with pytest.raises(CheckFailure) as excinfo:
            check.validate(SysSpec(kernel_spec=KERNEL_SPEC))
        assert str(excinfo.value) == "unsupported kernel release: 2.6.32"
        assert excinfo.value.check_name == "kernel"

    def test_missing_required_config(self, tmp_path: Path):
        reporter = RecordingReporter()
        config = _write_config(tmp_path, "CONFIG_NAMESPACES=n\n")
        with pytest.raises(CheckFailure) as excinfo:
            _kernel_check(reporter, config).validate(SysSpec(kernel_spec=KERNEL_SPEC))
        assert str(excinfo.value) == "unexpected kernel config: CONFIG_NAMESPACES CONFIG_NETFILTER_XT_TARGET_REDIRECT"
        details = {e.item: (e.detail, e.category) for e in reporter.entries}
        assert details["CONFIG_NAMESPACES"] == ("disabled", ResultCategory.BAD)
        assert details["CONFIG_NETFILTER_XT_TARGET_REDIRECT"] == ("not set", ResultCategory.BAD)

    def test_missing_optional_config_warns_with_description(self, tmp_path: Path):
        reporter = RecordingReporter()
        config = _write_config(tmp_path, "CONFIG_NAMESPACES=y\nCONFIG_NETFILTER_XT_TARGET_REDIRECT=y\n")
        _kernel_check(reporter, config).validate(SysSpec(kernel_spec=KERNEL_SPEC))
        warned = reporter.by_category(ResultCategory.WARN)
        assert [(e.item, e.detail) for e in warned] == [("CONFIG_AUFS_FS", "not set - Required for aufs.")]

    def test_forbidden_config_enabled(self, tmp_path: Path):
        reporter = RecordingReporter()
        config = _write_config(tmp_path, GOOD_CONFIG.replace("# CONFIG_DEBUG_RODATA_TEST is not set", "CONFIG_DEBUG_RODATA_TEST=y"))
        with pytest.raises(CheckFailure, match="unexpected kernel config: CONFIG_DEBUG_RODATA_TEST"):
            _kernel_check(reporter, config).validate(SysSpec(kernel_spec=KERNEL_SPEC))

    def test_unknown_value_is_bad(self, tmp_path: Path):
        reporter = RecordingReporter()
        config = _write_config(tmp_path, GOOD_CONFIG.replace("CONFIG_NAMESPACES=y", 'CONFIG_NAMESPACES="yes"'))
        with pytest.raises(CheckFailure, match="CONFIG_NAMESPACES"):
            _kernel_check(reporter, config).validate(SysSpec(kernel_spec=KERNEL_SPEC))
        bad = reporter.by_category(ResultCategory.BAD)
        assert bad[0].detail == 'unknown option value: "yes"'

    def test_version_and_config_failures_merged(self, tmp_path: Path):
        reporter = RecordingReporter()
        config = _write_config(tmp_path, "")
        with pytest.raises(CheckFailure) as excinfo:
            _kernel_check(reporter, config, release="3.2.0").validate(SysSpec(kernel_spec=KERNEL_SPEC))
        failure = excinfo.value
        assert len(failure.causes) == 2
        assert failure.causes[0].message == "unsupported kernel release: 3.2.0"
        assert failure.causes[1].message.startswith("unexpected kernel config:")

    def test_no_config_available(self, tmp_path: Path):
        reporter = RecordingReporter()
        check = KernelCheck(reporter, release=lambda: "5.15.0", config_paths=[tmp_path / "missing"])
        with pytest.raises(CheckFailure, match="failed to load kernel config: no config path"):
            check.validate(SysSpec(kernel_spec=KERNEL_SPEC))

    def test_first_available_path_wins(self, tmp_path: Path):
        reporter = RecordingReporter()
        first = _write_config(tmp_path, GOOD_CONFIG, name="first")
        second = _write_config(tmp_path, "CONFIG_NAMESPACES=n\n", name="second")
        check = KernelCheck(reporter, release=lambda: "5.15.0", config_paths=[tmp_path / "absent", first, second])
        check.validate(SysSpec(kernel_spec=KERNEL_SPEC))

    def test_reads_gzip_config(self, tmp_path: Path):
        path = tmp_path / "config.gz"
        with gzip.open(path, "wt", encoding="utf-8") as fh:
            fh.write(GOOD_CONFIG)
        reporter = RecordingReporter()
        _kernel_check(reporter, path).validate(SysSpec(kernel_spec=KERNEL_SPEC))
        assert not reporter.by_category(ResultCategory.BAD)

    def test_non_utf8_string_value_tolerated(self, tmp_path: Path):
        path = tmp_path / "config-5.15.0"
        path.write_bytes(GOOD_CONFIG.encode() + b'CONFIG_CC_VERSION_TEXT="gcc (D\xe9bian 12.2.0)"\n')
        reporter = RecordingReporter()
        _kernel_check(reporter, path).validate(SysSpec(kernel_spec=KERNEL_SPEC))
        assert not reporter.by_category(ResultCategory.BAD)

    def test_non_utf8_gzip_config_tolerated(self, tmp_path: Path):
        path = tmp_path / "config.gz"
        with gzip.open(path, "wb") as fh:
            fh.write(b'CONFIG_CC_VERSION_TEXT="\xe9"\n' + GOOD_CONFIG.encode())
        reporter = RecordingReporter()
        _kernel_check(reporter, path).validate(SysSpec(kernel_spec=KERNEL_SPEC))
        assert not reporter.by_category(ResultCategory.BAD)

    @pytest.mark.parametrize("release", ["3.10.0-1160.el7.x86_64", "4.19.0", "5.15.0-91-generic", "6.8.0", "10.1.0"])
    def test_default_spec_accepts_supported_releases(self, tmp_path: Path, release: str):
        reporter = RecordingReporter()
        check = KernelCheck(reporter, release=lambda: release, config_paths=[tmp_path / "missing"])
        with pytest.raises(CheckFailure) as excinfo:
            check.validate(DEFAULT_SYS_SPEC)
        assert "unsupported kernel release" not in str(excinfo.value)

    @pytest.mark.parametrize("release", ["2.6.32", "3.2.0"])
    def test_default_spec_rejects_old_releases(self, tmp_path: Path, release: str):
        reporter = RecordingReporter()
        check = KernelCheck(reporter, release=lambda: release, config_paths=[tmp_path / "missing"])
        with pytest.raises(CheckFailure, match=f"unsupported kernel release: {release}"):
            check.validate(DEFAULT_SYS_SPEC)


# ---------------------------------------------------------------------------
# CgroupsCheck
# ---------------------------------------------------------------------------


class TestParseProcCgroups:
    def test_only_enabled_subsystems(self):
        assert parse_proc_cgroups(PROC_CGROUPS_TEXT) == ["cpuset", "cpu", "cpuacct", "memory", "devices", "freezer"]

    def test_skips_malformed(self):
        assert parse_proc_cgroups("cpu 1 1\nmemory 1 1 1\n") == ["memory"]


class TestCgroupsCheck:
    def _v1_check(self, tmp_path: Path, reporter: RecordingReporter, text: str = PROC_CGROUPS_TEXT) -> CgroupsCheck:
        proc = tmp_path / "cgroups"
        proc.write_text(text, encoding="utf-8")
        return CgroupsCheck(reporter, proc_cgroups=proc, controllers=tmp_path / "no-controllers")

    def test_v1_all_required_present(self, tmp_path: Path):
        reporter = RecordingReporter()
        self._v1_check(tmp_path, reporter).validate(DEFAULT_SYS_SPEC)
        good = [e.item for e in reporter.by_category(ResultCategory.GOOD)]
        assert good == [
            "CGROUPS_CPU",
            "CGROUPS_CPUACCT",
            "CGROUPS_CPUSET",
            "CGROUPS_DEVICES",
            "CGROUPS_FREEZER",
            "CGROUPS_MEMORY",
        ]
        warned = [e.item for e in reporter.by_category(ResultCategory.WARN)]
        assert warned == ["CGROUPS_PIDS", "CGROUPS_HUGETLB"]

    def test_v1_missing_required(self, tmp_path: Path):
        reporter = RecordingReporter()
        text = PROC_CGROUPS_TEXT.replace("memory\t4\t98\t1", "memory\t4\t98\t0")
        with pytest.raises(CheckFailure, match="missing required cgroups: memory") as excinfo:
            self._v1_check(tmp_path, reporter, text).validate(DEFAULT_SYS_SPEC)
        assert excinfo.value.check_name == "cgroups"
        bad = reporter.by_category(ResultCategory.BAD)
        assert [(e.item, e.detail) for e in bad] == [("CGROUPS_MEMORY", "missing")]

    def test_v2_uses_controllers(self, tmp_path: Path):
        controllers = tmp_path / "cgroup.controllers"
        controllers.write_text("cpuset cpu io memory hugetlb pids rdma misc\n", encoding="utf-8")
        reporter = RecordingReporter()
        check = CgroupsCheck(reporter, proc_cgroups=tmp_path / "absent", controllers=controllers)
        check.validate(DEFAULT_SYS_SPEC)
        assert not reporter.by_category(ResultCategory.BAD)
        assert "CGROUPS_DEVICES" in reporter.items()
        assert "CGROUPS_FREEZER" in reporter.items()

    def test_v2_missing_controller(self, tmp_path: Path):
        controllers = tmp_path / "cgroup.controllers"
        controllers.write_text("cpuset cpu io\n", encoding="utf-8")
        check = CgroupsCheck(RecordingReporter(), proc_cgroups=tmp_path / "absent", controllers=controllers)
        with pytest.raises(CheckFailure, match="missing required cgroups: memory pids"):
            check.validate(DEFAULT_SYS_SPEC)

    def test_v1_non_utf8_line_tolerated(self, tmp_path: Path):
        proc = tmp_path / "cgroups"
        proc.write_bytes(PROC_CGROUPS_TEXT.encode() + b"r\xe9dma\t8\t1\t1\n")
        reporter = RecordingReporter()
        CgroupsCheck(reporter, proc_cgroups=proc, controllers=tmp_path / "absent").validate(DEFAULT_SYS_SPEC)
        assert not reporter.by_category(ResultCategory.BAD)

    def test_unreadable_source_fails(self, tmp_path: Path):
        check = CgroupsCheck(RecordingReporter(), proc_cgroups=tmp_path / "absent", controllers=tmp_path / "absent2")
        with pytest.raises(CheckFailure, match="failed to get cgroup subsystems"):
            check.validate(DEFAULT_SYS_SPEC)
