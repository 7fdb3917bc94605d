"""Exception hierarchy for the preflight check engine.

Check failures are collected by the engine and merged into a single
:class:`AggregateError`; reporting failures are kept apart from the
verdict so a broken sink never masks or fakes a validation result.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence


class PreflightError(Exception):
    """Base class for all preflight engine errors."""


class CheckFailure(PreflightError):
    """A check determined the host does not meet an expectation.

    Parameters
    ----------
    message:
        Why the check failed, phrased for an operator.
    check_name:
        Name of the check that failed.  The engine fills this in when a
        check raises without setting it.
    causes:
        Individual failures merged into this one, when a check
        evaluates several independent expectations.
    cause:
        The original exception when this failure wraps an unexpected
        error raised inside a check.
    """

    def __init__(
        self,
        message: str,
        *,
        check_name: str = "",
        causes: Sequence[CheckFailure] = (),
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.check_name = check_name
        self.causes: tuple[CheckFailure, ...] = tuple(causes)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    @classmethod
    def merge(cls, failures: Sequence[CheckFailure], *, check_name: str = "") -> CheckFailure:
        """Combine several failures of one check into a single failure."""
        if len(failures) == 1:
            failure = failures[0]
            if check_name and not failure.check_name:
                failure.check_name = check_name
            return failure
        return cls(
            _join_messages(f.message for f in failures),
            check_name=check_name,
            causes=failures,
        )

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"CheckFailure(check_name={self.check_name!r}, message={self.message!r})"


class ReportingError(PreflightError):
    """A sink could not record an observation."""

    def __init__(self, message: str, *, item: str = "") -> None:
        super().__init__(message)
        self.item = item


class AggregateError(PreflightError):
    """Combined result of a validation run with one or more failures.

    Holds the constituent errors in the order the checks ran.  The
    message of a single-error aggregate is that error's message; with
    several errors every message is joined, in order, as ``[a, b]``.
    """

    def __init__(self, errors: Sequence[Exception]) -> None:
        if not errors:
            raise ValueError("AggregateError requires at least one error")
        self.errors: tuple[Exception, ...] = tuple(errors)
        super().__init__(self._render())

    def _render(self) -> str:
        if len(self.errors) == 1:
            return str(self.errors[0])
        return _join_messages(str(e) for e in self.errors)

    def messages(self) -> list[str]:
        """Return the constituent messages in run order."""
        return [str(e) for e in self.errors]

    def __iter__(self) -> Iterator[Exception]:
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    def __str__(self) -> str:
        return self._render()


def aggregate_errors(errors: Iterable[Exception | None]) -> AggregateError | None:
    """Merge per-check slots into one aggregate.

    ``None`` slots are dropped and nested aggregates are flattened.
    Returns ``None`` when no real error remains.
    """
    flat: list[Exception] = []
    for err in errors:
        if err is None:
            continue
        if isinstance(err, AggregateError):
            flat.extend(err.errors)
        else:
            flat.append(err)
    if not flat:
        return None
    return AggregateError(flat)


def _join_messages(messages: Iterable[str]) -> str:
    joined = list(messages)
    if len(joined) == 1:
        return joined[0]
    return "[" + ", ".join(joined) + "]"
