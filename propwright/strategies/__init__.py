"""Bundled county strategies.

Each module exposes ``build(profile) -> Strategy``. They are registered
explicitly here; nothing is imported by name at runtime.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from propwright.data_types import StrategyFactory
from propwright.strategies import (
    alachua,
    clay,
    duval,
    hillsborough,
    miami_dade,
    pasco,
    santa_rosa,
    volusia,
)

if TYPE_CHECKING:
    from propwright.registry import StrategyRegistry

BUNDLED_STRATEGIES: dict[str, StrategyFactory] = {
    "miami-dade": miami_dade.build,
    "hillsborough": hillsborough.build,
    "duval": duval.build,
    "pasco": pasco.build,
    "clay": clay.build,
    "alachua": alachua.build,
    "santa-rosa": santa_rosa.build,
    "volusia": volusia.build,
}


def register_default_strategies(registry: StrategyRegistry) -> None:
    for jurisdiction_id, factory in BUNDLED_STRATEGIES.items():
        registry.register(jurisdiction_id, factory)
