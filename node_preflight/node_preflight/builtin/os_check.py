"""Built-in check that validates the host operating system."""

from __future__ import annotations

import platform
from collections.abc import Callable

from node_preflight.base import BaseCheck
from node_preflight.errors import CheckFailure
from node_preflight.models import ResultCategory
from node_preflight.reporters import BaseReporter
from node_preflight.sysspec import SysSpec


class OSCheck(BaseCheck):
    """Compare the running operating system with ``spec.os``."""

    def __init__(self, reporter: BaseReporter, *, system: Callable[[], str] = platform.system) -> None:
        super().__init__(reporter)
        self._system = system

    @property
    def name(self) -> str:
        return "os"

    def validate(self, spec: SysSpec) -> None:
        os_name = self._system()
        if os_name != spec.os:
            self.report("OS", os_name, ResultCategory.BAD)
            raise CheckFailure(f"unsupported operating system: {os_name}", check_name=self.name)
        self.report("OS", os_name, ResultCategory.GOOD)
