"""Check Engine -- orchestrator for host preflight checks.

The :class:`CheckEngine` runs every registered check, in registration
order, against one :class:`SysSpec` and merges the failures into a
single :class:`AggregateError`.  A failing check never stops the checks
after it from running and reporting.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from node_preflight.base import BaseCheck
from node_preflight.errors import AggregateError, CheckFailure, ReportingError, aggregate_errors
from node_preflight.models import CheckOutcome, ResultCategory, Timer, ValidationSummary
from node_preflight.registry import CheckRegistry
from node_preflight.reporters import BaseReporter, ConsoleReporter, FilteringReporter
from node_preflight.sysspec import DEFAULT_SYS_SPEC, SysSpec

if TYPE_CHECKING:
    from node_preflight.builtin.docker import DockerClient
    from node_preflight.config import Settings

logger = logging.getLogger(__name__)

CheckStartHook = Callable[[BaseCheck], None]

DOCKER_RUNTIME = "docker"


def log_check_start(check: BaseCheck) -> None:
    """Default observability hook: log the check about to run."""
    logger.info("Validating %s...", check.name, extra={"check": check.name})


class CheckEngine:
    """Sequential orchestrator for preflight checks.

    Parameters
    ----------
    checks:
        Checks to register, in run order.
    registry:
        Optional pre-configured registry.  When ``None``, a new empty
        registry is created.
    on_check_start:
        Called with each check right before it runs.  Defaults to
        :func:`log_check_start`.
    """

    def __init__(
        self,
        checks: Iterable[BaseCheck] | None = None,
        *,
        registry: CheckRegistry | None = None,
        on_check_start: CheckStartHook | None = None,
    ) -> None:
        self._registry = registry if registry is not None else CheckRegistry()
        self._on_check_start = on_check_start or log_check_start
        for check in checks or ():
            self._registry.register(check)

    @property
    def registry(self) -> CheckRegistry:
        """The check registry backing this engine."""
        return self._registry

    def register(self, check: BaseCheck) -> None:
        """Append a check to the run order."""
        self._registry.register(check)

    def run(self, spec: SysSpec) -> ValidationSummary:
        """Run every check once against *spec* and summarise the outcome.

        Parameters
        ----------
        spec:
            The system specification shared by all checks.

        Returns
        -------
        ValidationSummary
            Per-check outcomes in run order plus the aggregate error,
            which is ``None`` when every check passed.
        """
        timer = Timer()
        timer.start()

        slots: list[CheckFailure | None] = []
        outcomes: list[CheckOutcome] = []
        reporting_errors: list[ReportingError] = []

        checks = self._registry.get_all()
        if not checks:
            logger.info("No checks to run.")

        for check in checks:
            self._notify_start(check)
            check_timer = Timer()
            check_timer.start()
            failure, escaped = self._run_check(check, spec)
            slots.append(failure)
            outcomes.append(
                CheckOutcome(
                    name=check.name,
                    passed=failure is None,
                    message="" if failure is None else failure.message,
                    duration_ms=check_timer.elapsed_ms(),
                )
            )
            reporting_errors.extend(check.drain_reporting_errors())
            if escaped is not None:
                reporting_errors.append(escaped)

        error = aggregate_errors(slots)
        if error is not None:
            logger.info("%d of %d checks failed: %s", len(error), len(checks), error)

        return ValidationSummary(
            outcomes=tuple(outcomes),
            error=error,
            reporting_errors=tuple(reporting_errors),
            duration_ms=timer.elapsed_ms(),
        )

    def _notify_start(self, check: BaseCheck) -> None:
        try:
            self._on_check_start(check)
        except Exception:
            logger.exception("Check start hook failed for %s", check.name, extra={"check": check.name})

    @staticmethod
    def _run_check(check: BaseCheck, spec: SysSpec) -> tuple[CheckFailure | None, ReportingError | None]:
        """Run one check and return its slot plus any sink error it let escape."""
        try:
            check.validate(spec)
        except CheckFailure as failure:
            if not failure.check_name:
                failure.check_name = check.name
            return failure, None
        except ReportingError as exc:
            # The check wrote to its sink directly.
            logger.warning(
                "Reporting failed during check %s: %s",
                check.name,
                exc,
                extra={"check": check.name},
            )
            return None, exc
        except Exception as exc:
            logger.exception("Check %s raised an unhandled exception", check.name, extra={"check": check.name})
            return (
                CheckFailure(
                    f"unhandled error in {check.name}: {exc}",
                    check_name=check.name,
                    cause=exc,
                ),
                None,
            )
        return None, None


def validate(
    spec: SysSpec,
    checks: Iterable[BaseCheck],
    *,
    on_check_start: CheckStartHook | None = None,
) -> AggregateError | None:
    """Run *checks* against *spec* and return the aggregate failure, if any."""
    return CheckEngine(checks, on_check_start=on_check_start).run(spec).error


def default_checks(
    runtime: str,
    reporter: BaseReporter,
    *,
    docker_client: DockerClient | None = None,
    docker_socket: str | None = None,
    docker_timeout: float | None = None,
) -> list[BaseCheck]:
    """Build the standard check sequence for a container runtime.

    The OS, kernel and cgroups checks always run.  The Docker check is
    appended only when *runtime* is ``"docker"``; any other value,
    including an empty string, selects the base sequence.
    """
    from node_preflight.builtin.cgroups import CgroupsCheck
    from node_preflight.builtin.docker import DockerCheck
    from node_preflight.builtin.kernel import KernelCheck
    from node_preflight.builtin.os_check import OSCheck

    checks: list[BaseCheck] = [
        OSCheck(reporter),
        KernelCheck(reporter),
        CgroupsCheck(reporter),
    ]

    if runtime == DOCKER_RUNTIME:
        docker_kwargs: dict[str, object] = {}
        if docker_socket is not None:
            docker_kwargs["socket_path"] = docker_socket
        if docker_timeout is not None:
            docker_kwargs["timeout"] = docker_timeout
        checks.append(DockerCheck(reporter, client=docker_client, **docker_kwargs))  # type: ignore[arg-type]
    else:
        logger.debug("No runtime-specific checks for runtime %r", runtime)

    return checks


def validate_default_summary(
    runtime: str,
    *,
    spec: SysSpec | None = None,
    reporter: BaseReporter | None = None,
    docker_client: DockerClient | None = None,
    docker_socket: str | None = None,
    docker_timeout: float | None = None,
    on_check_start: CheckStartHook | None = None,
) -> ValidationSummary:
    """Run the default check sequence and return the full summary.

    *spec* and *reporter* are meant to be built once by the caller at
    process start; when omitted, :data:`DEFAULT_SYS_SPEC` and a stdout
    :class:`ConsoleReporter` are used for this call.
    """
    checks = default_checks(
        runtime,
        reporter if reporter is not None else ConsoleReporter(),
        docker_client=docker_client,
        docker_socket=docker_socket,
        docker_timeout=docker_timeout,
    )
    engine = CheckEngine(checks, on_check_start=on_check_start)
    return engine.run(spec if spec is not None else DEFAULT_SYS_SPEC)


def validate_default(
    runtime: str,
    *,
    spec: SysSpec | None = None,
    reporter: BaseReporter | None = None,
    docker_client: DockerClient | None = None,
    on_check_start: CheckStartHook | None = None,
) -> AggregateError | None:
    """Run the default check sequence for *runtime* and return the verdict."""
    return validate_default_summary(
        runtime,
        spec=spec,
        reporter=reporter,
        docker_client=docker_client,
        on_check_start=on_check_start,
    ).error


def validate_default_from_settings(
    settings: Settings,
    *,
    spec: SysSpec | None = None,
    reporter: BaseReporter | None = None,
) -> ValidationSummary:
    """Run the default check sequence as configured by *settings*."""
    sink = reporter if reporter is not None else ConsoleReporter()
    if settings.report_level > ResultCategory.GOOD:
        sink = FilteringReporter(sink, settings.report_level)
    return validate_default_summary(
        settings.runtime,
        spec=spec,
        reporter=sink,
        docker_socket=settings.docker_socket,
        docker_timeout=settings.docker_timeout,
    )
