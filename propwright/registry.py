"""Strategy registry: resolves a jurisdiction id to its strategy.

Strategies are registered explicitly at startup as factories taking the
jurisdiction's profile. The first resolution builds the strategy and caches
it; every later resolution of the same id returns that same instance.
"""

from __future__ import annotations

import logging

from propwright.common.exceptions import (
    StrategyRegistrationError,
    county_not_found,
)
from propwright.config import ProfileStore
from propwright.data_types import Strategy, StrategyFactory

logger = logging.getLogger(__name__)


class StrategyRegistry:
    """Registry of strategy factories with a lazily populated instance cache.

    The cache is append-only between resets. Two tasks resolving the same
    unseen id may both build a strategy; ``dict.setdefault`` keeps the first
    one stored and the duplicate is discarded, so callers never observe two
    instances for one id.

    Args:
        profiles: Source of jurisdiction profiles (enabled checks and
            factory input).
    """

    def __init__(self, profiles: ProfileStore) -> None:
        self.profiles = profiles
        self._factories: dict[str, StrategyFactory] = {}
        self._cache: dict[str, Strategy] = {}

    def register(
        self,
        jurisdiction_id: str,
        factory: StrategyFactory,
        replace: bool = False,
    ) -> None:
        """Register the strategy factory for a jurisdiction.

        Raises:
            ValueError: If the id is already registered and ``replace`` is
                False.
        """
        if jurisdiction_id in self._factories and not replace:
            raise ValueError(
                f"A strategy is already registered for '{jurisdiction_id}'"
            )
        self._factories[jurisdiction_id] = factory
        self._cache.pop(jurisdiction_id, None)

    def registered_ids(self) -> list[str]:
        return sorted(self._factories)

    def is_registered(self, jurisdiction_id: str) -> bool:
        return jurisdiction_id in self._factories

    def resolve(self, jurisdiction_id: str) -> Strategy:
        """Return the cached strategy for a jurisdiction, building it once.

        Raises:
            ScraperError: COUNTY_NOT_FOUND if no strategy or profile exists,
                COUNTY_DISABLED if the profile is disabled.
            StrategyRegistrationError: If the factory produced a strategy
                without callable ``navigate``/``extract`` hooks.
        """
        factory = self._factories.get(jurisdiction_id)
        if factory is None:
            raise county_not_found(jurisdiction_id)
        profile = self.profiles.get(jurisdiction_id)

        cached = self._cache.get(jurisdiction_id)
        if cached is not None:
            return cached

        strategy = factory(profile)
        if not isinstance(strategy, Strategy):
            raise StrategyRegistrationError(
                jurisdiction_id, list(Strategy.MANDATORY_HOOKS)
            )
        missing = strategy.missing_hooks()
        if missing:
            raise StrategyRegistrationError(jurisdiction_id, missing)

        logger.debug(f"[{jurisdiction_id}] Built strategy")
        return self._cache.setdefault(jurisdiction_id, strategy)

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def reset(self) -> None:
        """Drop every cached strategy instance; registrations are kept."""
        self._cache.clear()


def default_registry(profiles: ProfileStore) -> StrategyRegistry:
    """A registry with every bundled jurisdiction strategy registered."""
    from propwright.strategies import register_default_strategies

    registry = StrategyRegistry(profiles)
    register_default_strategies(registry)
    return registry
