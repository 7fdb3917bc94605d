"""Abstract base class for check implementations.

All checks run by the engine must subclass :class:`BaseCheck` and
implement :attr:`name` and :meth:`validate`.
"""

from __future__ import annotations

import abc
import logging

from node_preflight.errors import ReportingError
from node_preflight.models import ResultCategory
from node_preflight.reporters import BaseReporter
from node_preflight.sysspec import SysSpec

logger = logging.getLogger(__name__)


class BaseCheck(abc.ABC):
    """Abstract base for all check implementations.

    A check evaluates one concern against a :class:`SysSpec`, records
    human-readable detail through its reporter, and raises
    :class:`~node_preflight.errors.CheckFailure` when the host does not
    meet the expectation.  Checks must not mutate the spec and must not
    share mutable state with other checks.

    Parameters
    ----------
    reporter:
        Sink that receives this check's observations.
    """

    def __init__(self, reporter: BaseReporter) -> None:
        self._reporter = reporter
        self._reporting_errors: list[ReportingError] = []

    @property
    def reporter(self) -> BaseReporter:
        return self._reporter

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Stable, unique identifier of this check."""

    @abc.abstractmethod
    def validate(self, spec: SysSpec) -> None:
        """Evaluate the check against *spec*.

        Returns ``None`` on success.

        Raises
        ------
        CheckFailure
            If the host does not meet the expectation.
        """

    def report(self, item: str, detail: str, category: ResultCategory) -> None:
        """Record an observation, keeping sink failures out of the verdict."""
        try:
            self._reporter.report(item, detail, category)
        except ReportingError as exc:
            logger.warning("Check %s could not report %s: %s", self.name, item, exc)
            self._reporting_errors.append(exc)

    def drain_reporting_errors(self) -> list[ReportingError]:
        """Return and clear the sink failures collected since the last drain."""
        errors, self._reporting_errors = self._reporting_errors, []
        return errors

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
