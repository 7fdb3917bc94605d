"""Built-in check that validates the kernel release and build options.

The kernel configuration is read from the first available source in
:func:`kernel_config_paths`, then every required, optional and
forbidden option in the spec is reported as ``CONFIG_<NAME>``.
"""

from __future__ import annotations

import gzip
import logging
import platform
import re
from collections.abc import Callable, Iterable, Sequence
from enum import Enum
from pathlib import Path

from node_preflight.base import BaseCheck
from node_preflight.errors import CheckFailure
from node_preflight.models import ResultCategory
from node_preflight.reporters import BaseReporter
from node_preflight.sysspec import KernelConfig, KernelSpec, SysSpec

logger = logging.getLogger(__name__)

_CONFIG_PREFIX = "CONFIG_"
_NOT_SET_RE = re.compile(r"^#\s*(CONFIG_\w+) is not set$")


class ConfigOption(str, Enum):
    """Value of a kernel build option."""

    BUILT_IN = "y"
    AS_MODULE = "m"
    LEFT_OUT = "n"


class _Expectation(Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"
    FORBIDDEN = "forbidden"


# (category when enabled, category when disabled or missing)
_EXPECTATION_CATEGORIES: dict[_Expectation, tuple[ResultCategory, ResultCategory]] = {
    _Expectation.REQUIRED: (ResultCategory.GOOD, ResultCategory.BAD),
    _Expectation.OPTIONAL: (ResultCategory.GOOD, ResultCategory.WARN),
    _Expectation.FORBIDDEN: (ResultCategory.BAD, ResultCategory.GOOD),
}


def kernel_config_paths(release: str) -> list[Path]:
    """Return the locations searched for the kernel build configuration."""
    return [
        Path("/proc/config.gz"),
        Path(f"/boot/config-{release}"),
        Path(f"/usr/src/linux-{release}/.config"),
        Path("/usr/src/linux/.config"),
        Path(f"/usr/lib/modules/{release}/config"),
        Path(f"/usr/lib/ostree-boot/config-{release}"),
        Path(f"/usr/lib/kernel/config-{release}"),
        Path(f"/usr/src/linux-headers-{release}/.config"),
        Path(f"/lib/modules/{release}/build/.config"),
    ]


def parse_kernel_config(lines: Iterable[str]) -> dict[str, str]:
    """Parse ``CONFIG_X=value`` lines into a mapping.

    ``# CONFIG_X is not set`` is recorded as ``n``; any other line is
    ignored.
    """
    config: dict[str, str] = {}
    for raw in lines:
        line = raw.strip()
        match = _NOT_SET_RE.match(line)
        if match:
            config[match.group(1)] = ConfigOption.LEFT_OUT.value
            continue
        if not line.startswith(_CONFIG_PREFIX):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            logger.debug("Ignoring malformed kernel config line: %s", line)
            continue
        config[key] = value
    return config


def _read_config_file(path: Path) -> list[str]:
    # Keys and tristate values are ASCII; free-text values such as
    # CONFIG_CC_VERSION_TEXT may carry any bytes.
    if path.suffix == ".gz":
        with gzip.open(path, "rt", encoding="utf-8", errors="replace") as fh:
            return fh.readlines()
    return path.read_text(encoding="utf-8", errors="replace").splitlines()


class KernelCheck(BaseCheck):
    """Validate the kernel release and kernel build configuration.

    Parameters
    ----------
    reporter:
        Sink for ``KERNEL_VERSION`` and ``CONFIG_*`` observations.
    release:
        Callable returning the kernel release string.
    config_paths:
        Override for the configuration search path.  Defaults to
        :func:`kernel_config_paths` for the current release.
    """

    def __init__(
        self,
        reporter: BaseReporter,
        *,
        release: Callable[[], str] = platform.release,
        config_paths: Sequence[Path] | None = None,
    ) -> None:
        super().__init__(reporter)
        self._release = release
        self._config_paths = list(config_paths) if config_paths is not None else None

    @property
    def name(self) -> str:
        return "kernel"

    def validate(self, spec: SysSpec) -> None:
        release = self._release()
        failures = [
            f
            for f in (
                self._validate_version(release, spec.kernel_spec.versions),
                self._validate_config(release, spec.kernel_spec),
            )
            if f is not None
        ]
        if failures:
            raise CheckFailure.merge(failures, check_name=self.name)

    def _validate_version(self, release: str, versions: Sequence[str]) -> CheckFailure | None:
        for pattern in versions:
            if re.fullmatch(pattern, release):
                self.report("KERNEL_VERSION", release, ResultCategory.GOOD)
                return None
        self.report("KERNEL_VERSION", release, ResultCategory.BAD)
        return CheckFailure(f"unsupported kernel release: {release}", check_name=self.name)

    def _validate_config(self, release: str, kernel_spec: KernelSpec) -> CheckFailure | None:
        try:
            config = self._load_config(release)
        except OSError as exc:
            return CheckFailure(f"failed to load kernel config: {exc}", check_name=self.name)

        bad: list[str] = []
        for expectation, options in (
            (_Expectation.REQUIRED, kernel_spec.required),
            (_Expectation.OPTIONAL, kernel_spec.optional),
            (_Expectation.FORBIDDEN, kernel_spec.forbidden),
        ):
            for option in options:
                item, category = self._validate_option(config, option, expectation)
                if category == ResultCategory.BAD:
                    bad.append(item)

        if bad:
            return CheckFailure(f"unexpected kernel config: {' '.join(bad)}", check_name=self.name)
        return None

    def _validate_option(
        self,
        config: dict[str, str],
        option: KernelConfig,
        expectation: _Expectation,
    ) -> tuple[str, ResultCategory]:
        found, missing = _EXPECTATION_CATEGORIES[expectation]
        item = _CONFIG_PREFIX + option.name
        value: str | None = None
        for candidate in (option.name, *option.aliases):
            key = _CONFIG_PREFIX + candidate
            if key in config:
                item, value = key, config[key]
                break

        if value is None:
            detail, category = "not set", missing
        elif value == ConfigOption.BUILT_IN.value:
            detail, category = "enabled", found
        elif value == ConfigOption.AS_MODULE.value:
            detail, category = "enabled (as module)", found
        elif value == ConfigOption.LEFT_OUT.value:
            detail, category = "disabled", missing
        else:
            detail, category = f"unknown option value: {value}", ResultCategory.BAD

        if category != ResultCategory.GOOD and option.description:
            detail = f"{detail} - {option.description}"
        self.report(item, detail, category)
        return item, category

    def _load_config(self, release: str) -> dict[str, str]:
        paths = self._config_paths if self._config_paths is not None else kernel_config_paths(release)
        for path in paths:
            try:
                lines = _read_config_file(path)
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.debug("Could not read kernel config %s: %s", path, exc)
                continue
            logger.debug("Loaded kernel config from %s", path)
            return parse_kernel_config(lines)
        raise FileNotFoundError(f"no config path in {[str(p) for p in paths]} is available")
