"""Shared fixtures: a demo jurisdiction, its strategy, and fake browsers."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from propwright.common.data_models import PropertyRecord
from propwright.config import JurisdictionProfile, ProfileStore
from propwright.data_types import IdentifierKind, ScrapeContext, Strategy
from propwright.driver.lifecycle import LifecycleController, ScrapeEngine
from propwright.registry import StrategyRegistry, default_registry
from propwright.strategies.base import deep_link, read_lines, read_text
from tests.utils import FakeSessionFactory, page

DEMO_PAGE = page(
    '<div id="owner">DOE JOHN</div>'
    '<p id="address">123 MAIN ST<br>TAMPA, FL 33602</p>'
)


def demo_profile(**overrides) -> JurisdictionProfile:
    fields = {
        "id": "demo",
        "display_name": "Demo County",
        "region": "FL",
        "target_url": "https://demo.example/",
        "search_url": "https://demo.example/parcel",
        "supported_identifier_kinds": [IdentifierKind.PARCEL],
        "locators": {"owner_name": "#owner", "mailing_address": "#address"},
        "wait_condition": "#owner",
        "timeout_ms": 1000,
    }
    fields.update(overrides)
    return JurisdictionProfile.model_validate(fields)


async def demo_extract(ctx: ScrapeContext):
    owner = await read_text(ctx, ctx.profile.locators["owner_name"])
    address = await read_lines(ctx, ctx.profile.locators["mailing_address"])
    return PropertyRecord.raw(
        ctx.session.url,
        owner_names=[owner] if owner else [],
        mailing_address="\n".join(address),
    )


def demo_strategy(profile: JurisdictionProfile) -> Strategy:
    return Strategy(
        jurisdiction_id=profile.id,
        navigate=deep_link("?id={identifier}"),
        extract=demo_extract,
    )


@pytest.fixture
def profile() -> JurisdictionProfile:
    return demo_profile()


@pytest.fixture
def profiles(profile: JurisdictionProfile) -> ProfileStore:
    return ProfileStore.from_profiles(
        profile,
        demo_profile(id="sleepy", display_name="Sleepy County", enabled=False),
    )


@pytest.fixture
def registry(profiles: ProfileStore) -> StrategyRegistry:
    registry = StrategyRegistry(profiles)
    registry.register("demo", demo_strategy)
    registry.register("sleepy", demo_strategy)
    return registry


@pytest.fixture
def factory() -> FakeSessionFactory:
    return FakeSessionFactory(pages={"*": DEMO_PAGE})


@pytest.fixture
def controller(
    registry: StrategyRegistry, factory: FakeSessionFactory
) -> LifecycleController:
    return LifecycleController(registry, factory)


@pytest.fixture
def engine(
    profiles: ProfileStore, controller: LifecycleController
) -> ScrapeEngine:
    return ScrapeEngine(profiles, controller)


@pytest.fixture
def bundled_profiles() -> ProfileStore:
    """The shipped counties.json, independent of PROPWRIGHT_PROFILES."""
    from propwright.config import _read_bundled_profiles, parse_profiles

    text, source = _read_bundled_profiles()
    return ProfileStore(profiles=parse_profiles(json.loads(text), source))


@pytest.fixture
def bundled_engine(
    bundled_profiles: ProfileStore,
) -> Callable[[FakeSessionFactory], ScrapeEngine]:
    """Build an engine over the bundled strategies and a given fake browser."""

    def _build(session_factory: FakeSessionFactory) -> ScrapeEngine:
        controller = LifecycleController(
            default_registry(bundled_profiles), session_factory
        )
        return ScrapeEngine(bundled_profiles, controller)

    return _build


@pytest.fixture
def profiles_file(tmp_path: Path) -> Callable[[dict], Path]:
    """Write a profile document to a temporary JSON file."""

    def _write(document: dict) -> Path:
        path = tmp_path / "counties.json"
        path.write_text(json.dumps(document), encoding="utf-8")
        return path

    return _write
