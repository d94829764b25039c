"""
Process-wide scoring method registry.

Populated once at sport-registration time and read-only afterwards; a
lookup for an unregistered name is a configuration error, never a silent
fallback.
"""

import logging
from typing import Dict, Iterator, List

from multisport_scoring.exceptions import ConfigurationError
from .base import ScoringMethod

logger = logging.getLogger(__name__)


class ScoringMethodRegistry:
    """Maps scoring method names to implementations."""

    def __init__(self):
        self._methods: Dict[str, ScoringMethod] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, method: ScoringMethod) -> ScoringMethod:
        """
        Register a scoring method under its name.

        Registering the same instance twice is a no-op; a different
        implementation under an existing name is rejected.

        Returns:
            The registered method
        """
        if not method.name:
            raise ConfigurationError(f"Scoring method {method!r} has no name")

        existing = self._methods.get(method.name)
        if existing is method:
            return method
        if existing is not None:
            raise ConfigurationError(f"Scoring method '{method.name}' is already registered")
        if self._frozen:
            raise ConfigurationError(
                f"Cannot register scoring method '{method.name}': registry is frozen"
            )

        self._methods[method.name] = method
        logger.info(f"Registered scoring method '{method.name}'")
        return method

    def get(self, name: str) -> ScoringMethod:
        try:
            return self._methods[name]
        except KeyError:
            raise ConfigurationError(f"Scoring method '{name}' is not registered") from None

    def freeze(self):
        """Reject further registrations."""
        self._frozen = True
        logger.debug(f"Scoring method registry frozen with {len(self._methods)} methods")

    def names(self) -> List[str]:
        return sorted(self._methods)

    def __contains__(self, name: str) -> bool:
        return name in self._methods

    def __iter__(self) -> Iterator[ScoringMethod]:
        return iter(self._methods[name] for name in self.names())

    def __len__(self) -> int:
        return len(self._methods)


# Global registry instance
registry = ScoringMethodRegistry()
