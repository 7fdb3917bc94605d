"""Node preflight -- host validation before a node joins a cluster.

Runs a sequence of independent checks (operating system, kernel,
cgroups, container runtime) and merges their failures into one verdict.

Quick start::

    from node_preflight import RecordingReporter, validate_default

    reporter = RecordingReporter()
    error = validate_default("docker", reporter=reporter)
    if error is not None:
        for failure in error:
            print(failure.check_name, failure)
"""

from node_preflight.base import BaseCheck
from node_preflight.engine import (
    CheckEngine,
    default_checks,
    validate,
    validate_default,
    validate_default_from_settings,
    validate_default_summary,
)
from node_preflight.errors import (
    AggregateError,
    CheckFailure,
    PreflightError,
    ReportingError,
    aggregate_errors,
)
from node_preflight.models import CheckOutcome, ReportEntry, ResultCategory, ValidationSummary
from node_preflight.registry import CheckRegistry
from node_preflight.reporters import (
    BaseReporter,
    ConsoleReporter,
    FilteringReporter,
    LoggingReporter,
    RecordingReporter,
)
from node_preflight.sysspec import (
    DEFAULT_SYS_SPEC,
    DockerSpec,
    KernelConfig,
    KernelSpec,
    RuntimeSpec,
    SysSpec,
)

__all__ = [
    "DEFAULT_SYS_SPEC",
    "AggregateError",
    "BaseCheck",
    "BaseReporter",
    "CheckEngine",
    "CheckFailure",
    "CheckOutcome",
    "CheckRegistry",
    "ConsoleReporter",
    "DockerSpec",
    "FilteringReporter",
    "KernelConfig",
    "KernelSpec",
    "LoggingReporter",
    "PreflightError",
    "RecordingReporter",
    "ReportEntry",
    "ReportingError",
    "ResultCategory",
    "RuntimeSpec",
    "SysSpec",
    "ValidationSummary",
    "aggregate_errors",
    "default_checks",
    "validate",
    "validate_default",
    "validate_default_from_settings",
    "validate_default_summary",
]
