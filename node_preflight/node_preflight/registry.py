"""Ordered registry of the checks an engine runs.

Unlike a lookup table, the registry preserves registration order: the
engine runs checks in exactly the order they were added.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from node_preflight.base import BaseCheck

logger = logging.getLogger(__name__)


class CheckRegistry:
    """Registry of check implementations keyed by :attr:`BaseCheck.name`."""

    def __init__(self) -> None:
        self._checks: dict[str, BaseCheck] = {}

    def register(self, check: BaseCheck) -> None:
        """Append a check to the run order.

        Raises
        ------
        ValueError
            If a check with the same name is already registered.
        """
        if check.name in self._checks:
            raise ValueError(f"Check {check.name!r} is already registered. Unregister the existing check first.")
        self._checks[check.name] = check
        logger.debug("Registered check: %s", check.name)

    def unregister(self, name: str) -> None:
        """Remove a check from the registry.

        Raises
        ------
        KeyError
            If no check with that name is registered.
        """
        if name not in self._checks:
            raise KeyError(f"Check {name!r} is not registered.")
        del self._checks[name]
        logger.debug("Unregistered check: %s", name)

    def get(self, name: str) -> BaseCheck | None:
        return self._checks.get(name)

    def get_all(self) -> list[BaseCheck]:
        """Return all registered checks in registration order."""
        return list(self._checks.values())

    def names(self) -> list[str]:
        return list(self._checks)

    def __iter__(self) -> Iterator[BaseCheck]:
        return iter(list(self._checks.values()))

    def __len__(self) -> int:
        return len(self._checks)

    def __contains__(self, name: str) -> bool:
        return name in self._checks
