"""Jurisdiction profile loading.

Profiles are read-only configuration loaded once from a JSON document::

    {
      "counties": {
        "duval": {
          "id": "duval",
          "display_name": "Duval County",
          "region": "FL",
          "target_url": "https://paopropertysearch.coj.net/",
          "search_url": "https://paopropertysearch.coj.net/Basic/Detail.aspx",
          "supported_identifier_kinds": ["parcelId"],
          "locators": {"owner_name": "span[id*='lblOwnerName']"},
          "wait_condition": "span[id*='lblOwnerName']",
          "timeout_ms": 30000,
          "enabled": true
        }
      }
    }

Any malformed document or profile raises ConfigurationError at load time,
never during a scrape.
"""

from __future__ import annotations

import json
import logging
import os
from importlib import resources
from pathlib import Path
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from propwright.common.exceptions import (
    ConfigurationError,
    county_disabled,
    county_not_found,
)
from propwright.data_types import (
    IdentifierKind,
    WaitCondition,
    WaitForLoadState,
    WaitForSelector,
)

logger = logging.getLogger(__name__)

PROFILES_ENV_VAR = "PROPWRIGHT_PROFILES"
DEFAULT_TIMEOUT_MS = 30000


class JurisdictionProfile(BaseModel):
    """Read-only configuration for one county site."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., min_length=1, description="Jurisdiction id")
    display_name: str = Field(..., min_length=1)
    region: str = Field(..., min_length=1, description="State or region")
    target_url: str = Field(..., min_length=1, description="Site home page")
    search_url: str = Field(
        "", description="Search page or deep-link base (default: target_url)"
    )
    supported_identifier_kinds: frozenset[IdentifierKind] = Field(
        ..., min_length=1
    )
    locators: dict[str, str] = Field(default_factory=dict)
    wait_condition: str | None = Field(
        None,
        description="Selector signalling readiness; None waits for network idle",
    )
    timeout_ms: int = Field(DEFAULT_TIMEOUT_MS, gt=0)
    enabled: bool = True
    notes: str | None = None

    @field_validator("locators")
    @classmethod
    def _non_empty_locators(cls, value: dict[str, str]) -> dict[str, str]:
        blank = [name for name, locator in value.items() if not locator.strip()]
        if blank:
            raise ValueError(f"empty locator(s): {', '.join(sorted(blank))}")
        return value

    @model_validator(mode="after")
    def _default_search_url(self) -> JurisdictionProfile:
        if not self.search_url:
            object.__setattr__(self, "search_url", self.target_url)
        return self

    def readiness_condition(self) -> WaitCondition:
        """The default readiness wait for this site."""
        if self.wait_condition:
            return WaitForSelector(self.wait_condition)
        return WaitForLoadState("networkidle")

    def supports(self, kind: IdentifierKind) -> bool:
        return kind in self.supported_identifier_kinds

    def summary(self) -> dict[str, Any]:
        """Public listing form (no locators or URLs beyond the home page)."""
        return {
            "id": self.id,
            "name": self.display_name,
            "state": self.region,
            "identifier_kinds": sorted(
                kind.value for kind in self.supported_identifier_kinds
            ),
            "enabled": self.enabled,
        }


def parse_profiles(
    document: Any, source: str = "<memory>"
) -> dict[str, JurisdictionProfile]:
    """Validate a decoded profile document.

    Args:
        document: Decoded JSON: ``{"counties": {id: profile, ...}}``.
        source: Where the document came from, for error messages.

    Returns:
        Mapping of jurisdiction id to profile, in document order.

    Raises:
        ConfigurationError: If the document or any profile is malformed.
    """
    if not isinstance(document, dict) or not isinstance(
        document.get("counties"), dict
    ):
        raise ConfigurationError(
            "Profile document must be an object with a 'counties' mapping",
            source,
        )

    profiles: dict[str, JurisdictionProfile] = {}
    for key, raw in document["counties"].items():
        if not isinstance(raw, dict):
            raise ConfigurationError(
                f"Profile '{key}' must be an object", source
            )
        payload = {"id": key, **raw}
        try:
            profile = JurisdictionProfile.model_validate(payload)
        except ValidationError as e:
            errors = [
                {"loc": list(err["loc"]), "msg": err["msg"]}
                for err in e.errors()
            ]
            summary = ", ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in errors
            )
            raise ConfigurationError(
                f"Invalid profile '{key}': {summary}", source, errors
            ) from e
        if profile.id != key:
            raise ConfigurationError(
                f"Profile key '{key}' does not match its id '{profile.id}'",
                source,
            )
        profiles[key] = profile
    return profiles


def _read_bundled_profiles() -> tuple[str, str]:
    resource = resources.files("propwright.data").joinpath("counties.json")
    return resource.read_text(encoding="utf-8"), "propwright/data/counties.json"


class ProfileStore:
    """Lazily loaded, read-only cache of jurisdiction profiles.

    The profile file is read on first use and kept until reset(). Pass the
    store to whatever needs profiles instead of reaching for a global.

    Args:
        path: JSON profile file. Defaults to ``$PROPWRIGHT_PROFILES`` or the
            bundled ``counties.json``.
        profiles: Pre-built profiles; skips file loading entirely (tests).
    """

    def __init__(
        self,
        path: Path | str | None = None,
        profiles: dict[str, JurisdictionProfile] | None = None,
    ) -> None:
        env_path = os.environ.get(PROFILES_ENV_VAR)
        self.path = Path(path) if path else (Path(env_path) if env_path else None)
        self._initial = dict(profiles) if profiles is not None else None
        self._cache: dict[str, JurisdictionProfile] | None = (
            dict(self._initial) if self._initial is not None else None
        )

    @classmethod
    def from_profiles(cls, *profiles: JurisdictionProfile) -> ProfileStore:
        return cls(profiles={profile.id: profile for profile in profiles})

    def _load(self) -> dict[str, JurisdictionProfile]:
        if self._cache is not None:
            return self._cache

        if self.path is not None:
            source = str(self.path)
            try:
                text = self.path.read_text(encoding="utf-8")
            except OSError as e:
                raise ConfigurationError(
                    f"Failed to read profile file: {e}", source
                ) from e
        else:
            text, source = _read_bundled_profiles()

        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Profile file is not valid JSON: {e}", source
            ) from e

        self._cache = parse_profiles(document, source)
        logger.info(
            f"Loaded {len(self._cache)} jurisdiction profile(s) from {source}"
        )
        return self._cache

    def load_profiles(self) -> list[JurisdictionProfile]:
        """All profiles, in configuration order."""
        return list(self._load().values())

    def enabled_profiles(self) -> list[JurisdictionProfile]:
        return [profile for profile in self.load_profiles() if profile.enabled]

    def get(
        self, jurisdiction_id: str, check_enabled: bool = True
    ) -> JurisdictionProfile:
        """Look up one profile.

        Raises:
            ScraperError: COUNTY_NOT_FOUND if unknown, COUNTY_DISABLED if
                ``check_enabled`` and the profile is disabled.
        """
        profile = self._load().get(jurisdiction_id)
        if profile is None:
            raise county_not_found(jurisdiction_id)
        if check_enabled and not profile.enabled:
            raise county_disabled(jurisdiction_id)
        return profile

    def is_enabled(self, jurisdiction_id: str) -> bool:
        profile = self._load().get(jurisdiction_id)
        return profile is not None and profile.enabled

    def reset(self) -> None:
        """Drop the cache so the next lookup reloads from the source."""
        self._cache = dict(self._initial) if self._initial is not None else None
