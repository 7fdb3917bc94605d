"""Built-in check that validates control-group support.

Hosts on the unified hierarchy (cgroup v2) are checked against
``spec.cgroups_v2``; legacy hosts against ``spec.cgroups`` using the
enabled column of ``/proc/cgroups``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from node_preflight.base import BaseCheck
from node_preflight.errors import CheckFailure
from node_preflight.models import ResultCategory
from node_preflight.reporters import BaseReporter
from node_preflight.sysspec import SysSpec

logger = logging.getLogger(__name__)

PROC_CGROUPS = Path("/proc/cgroups")
CGROUP_V2_CONTROLLERS = Path("/sys/fs/cgroup/cgroup.controllers")

# Enabled by the kernel on the unified hierarchy without being listed
# in cgroup.controllers.
_IMPLICIT_V2_CONTROLLERS = ("devices", "freezer")


def parse_proc_cgroups(text: str) -> list[str]:
    """Return the enabled subsystems listed in ``/proc/cgroups``.

    Columns are ``subsys_name hierarchy num_cgroups enabled``.
    """
    subsystems: list[str] = []
    for line in text.splitlines():
        if not line.strip() or line.startswith("#"):
            continue
        fields = line.split()
        if len(fields) != 4:
            logger.debug("Ignoring malformed /proc/cgroups line: %s", line)
            continue
        if fields[3] == "1":
            subsystems.append(fields[0])
    return subsystems


class CgroupsCheck(BaseCheck):
    """Validate that every required cgroup subsystem is available.

    Parameters
    ----------
    reporter:
        Sink for ``CGROUPS_*`` observations.
    proc_cgroups:
        Path of the v1 subsystem table.
    controllers:
        Path of the v2 root ``cgroup.controllers`` file.  Its presence
        selects the v2 code path.
    """

    def __init__(
        self,
        reporter: BaseReporter,
        *,
        proc_cgroups: Path = PROC_CGROUPS,
        controllers: Path = CGROUP_V2_CONTROLLERS,
    ) -> None:
        super().__init__(reporter)
        self._proc_cgroups = proc_cgroups
        self._controllers = controllers

    @property
    def name(self) -> str:
        return "cgroups"

    def validate(self, spec: SysSpec) -> None:
        unified = self._controllers.exists()
        try:
            if unified:
                subsystems = self._controllers.read_text(encoding="utf-8", errors="replace").split()
                subsystems.extend(_IMPLICIT_V2_CONTROLLERS)
            else:
                text = self._proc_cgroups.read_text(encoding="utf-8", errors="replace")
                subsystems = parse_proc_cgroups(text)
        except OSError as exc:
            raise CheckFailure(f"failed to get cgroup subsystems: {exc}", check_name=self.name) from exc

        required = spec.cgroups_v2 if unified else spec.cgroups
        optional = spec.cgroups_v2_optional if unified else spec.cgroups_optional
        logger.debug("Detected cgroup %s subsystems: %s", "v2" if unified else "v1", subsystems)

        available = set(subsystems)
        self._report_subsystems(optional, available, ResultCategory.WARN)
        missing = self._report_subsystems(required, available, ResultCategory.BAD)
        if missing:
            raise CheckFailure(f"missing required cgroups: {' '.join(missing)}", check_name=self.name)

    def _report_subsystems(
        self,
        expected: Sequence[str],
        available: set[str],
        missing_category: ResultCategory,
    ) -> list[str]:
        missing: list[str] = []
        for subsystem in expected:
            item = "CGROUPS_" + subsystem.upper()
            if subsystem in available:
                self.report(item, "enabled", ResultCategory.GOOD)
            else:
                self.report(item, "missing", missing_category)
                missing.append(subsystem)
        return missing
