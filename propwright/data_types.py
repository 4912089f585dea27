"""Data types for the scrape engine.

This module defines the values passed between the engine, the strategies
and the harness. They are designed to be:

1. Immutable - frozen dataclasses for requests, metadata and outcomes
2. Exhaustive - ScrapeOutcome is a closed union, matched on ``success``
3. Serializable - every outcome renders to a JSON-compatible dict

Strategies are plain records of async callables, never subclasses.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from propwright.common.data_models import PropertyRecord
    from propwright.common.deferred_validation import DeferredValidation
    from propwright.common.exceptions import ScraperError
    from propwright.common.identifiers import IdentifierTransformer
    from propwright.config import JurisdictionProfile
    from propwright.driver.session import BrowserSession


class IdentifierKind(Enum):
    """Kind of key a caller uses to find a property record."""

    PARCEL = "parcelId"
    FOLIO = "folio"
    ADDRESS = "address"
    OWNER_NAME = "ownerName"

    @classmethod
    def _missing_(cls, value: object) -> IdentifierKind | None:
        # Accept short names ("parcel", "owner_name") as well as values
        if isinstance(value, str):
            key = value.strip().replace("-", "_").upper()
            aliases = {"PARCEL_ID": "PARCEL", "PARCELID": "PARCEL"}
            key = aliases.get(key, key)
            if key in cls.__members__:
                return cls[key]
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return None


# =============================================================================
# Requests
# =============================================================================


@dataclass(frozen=True)
class ScrapeRequest:
    """One extraction attempt: which county, which key.

    Attributes:
        jurisdiction_id: County id, e.g. ``"duval"``.
        identifier_kind: What ``identifier_value`` is.
        identifier_value: The raw key as the caller supplied it.
    """

    jurisdiction_id: str
    identifier_kind: IdentifierKind
    identifier_value: str

    def __post_init__(self) -> None:
        if not isinstance(self.identifier_kind, IdentifierKind):
            object.__setattr__(
                self, "identifier_kind", IdentifierKind(self.identifier_kind)
            )


# =============================================================================
# Wait conditions
# =============================================================================


@dataclass(frozen=True)
class WaitForSelector:
    """Wait for a selector to appear in the DOM.

    Attributes:
        selector: CSS selector to wait for.
        state: State to wait for ('attached', 'detached', 'visible',
            'hidden'). Defaults to 'visible'.
    """

    selector: str
    state: str = "visible"


@dataclass(frozen=True)
class WaitForLoadState:
    """Wait for a document load state.

    Attributes:
        state: 'load', 'domcontentloaded' or 'networkidle'.
    """

    state: str = "load"


@dataclass(frozen=True)
class WaitForText:
    """Wait until the page body contains a piece of text."""

    text: str


@dataclass(frozen=True)
class WaitForTimeout:
    """Wait a fixed amount of time.

    Attributes:
        timeout: Time to wait in milliseconds.
    """

    timeout: int


WaitCondition = Union[WaitForSelector, WaitForLoadState, WaitForText, WaitForTimeout]


# =============================================================================
# Strategy contract
# =============================================================================


@dataclass
class ScrapeContext:
    """Everything a strategy hook may use during one attempt.

    Hooks receive the same context object for every phase of one attempt;
    it is never shared between attempts.

    Attributes:
        request: The attempt's request.
        profile: The jurisdiction's read-only configuration.
        session: The browser session exclusively owned by this attempt.
        identifiers: Transformer for deep-link keys.
        state: Scratch space a strategy may use to pass values between its
            own hooks (e.g. the URL it navigated to).
    """

    request: ScrapeRequest
    profile: JurisdictionProfile
    session: BrowserSession
    identifiers: IdentifierTransformer
    state: dict[str, Any] = field(default_factory=dict)

    @property
    def jurisdiction_id(self) -> str:
        return self.profile.id

    @property
    def identifier(self) -> str:
        return self.request.identifier_value

    def transformed_identifier(self) -> str:
        """The request identifier rewritten for this jurisdiction's site."""
        return self.identifiers.transform(
            self.profile.id, self.request.identifier_value
        )

    def locator(self, name: str) -> str | None:
        return self.profile.locators.get(name)


Hook = Callable[[ScrapeContext], Awaitable[None]]
ExtractHook = Callable[
    [ScrapeContext], Awaitable["DeferredValidation[PropertyRecord]"]
]


@dataclass(frozen=True)
class Strategy:
    """The capability set for one jurisdiction.

    ``navigate`` and ``extract`` are mandatory; ``query`` is only set for
    sites that need a search form, and ``await_stable`` only for sites whose
    readiness can't be expressed by the profile's wait condition.
    """

    jurisdiction_id: str
    navigate: Hook
    extract: ExtractHook
    query: Hook | None = None
    await_stable: Hook | None = None

    MANDATORY_HOOKS = ("navigate", "extract")
    OPTIONAL_HOOKS = ("query", "await_stable")

    def missing_hooks(self) -> list[str]:
        """Names of hooks that are absent or not callable."""
        missing = [
            name
            for name in self.MANDATORY_HOOKS
            if not callable(getattr(self, name, None))
        ]
        missing.extend(
            name
            for name in self.OPTIONAL_HOOKS
            if getattr(self, name, None) is not None
            and not callable(getattr(self, name))
        )
        return missing


StrategyFactory = Callable[["JurisdictionProfile"], Strategy]


# =============================================================================
# Outcomes
# =============================================================================


class Phase(Enum):
    """Lifecycle phases, in the only order they may run."""

    IDLE = "idle"
    SESSION_ACQUIRED = "session_acquired"
    NAVIGATED = "navigated"
    QUERIED = "queried"
    STABLE = "stable"
    EXTRACTED = "extracted"
    VALIDATED = "validated"
    CLOSED = "closed"


@dataclass(frozen=True)
class ScrapeMetadata:
    """Timing and identity of one attempt, present on every outcome."""

    jurisdiction_id: str
    identifier_value: str
    identifier_kind: IdentifierKind
    start_time: datetime
    end_time: datetime
    duration_ms: int
    phase_reached: Phase = Phase.IDLE

    def to_dict(self) -> dict[str, Any]:
        return {
            "jurisdiction_id": self.jurisdiction_id,
            "identifier_value": self.identifier_value,
            "identifier_kind": self.identifier_kind.value,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration_ms": self.duration_ms,
            "phase_reached": self.phase_reached.value,
        }


@dataclass(frozen=True)
class ScrapeSuccess:
    record: PropertyRecord
    metadata: ScrapeMetadata
    success: bool = field(default=True, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "data": self.record.model_dump(mode="json"),
            "metadata": self.metadata.to_dict(),
        }


@dataclass(frozen=True)
class ScrapeFailure:
    error: ScraperError
    metadata: ScrapeMetadata
    success: bool = field(default=False, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": False,
            "error": self.error.to_dict(),
            "metadata": self.metadata.to_dict(),
        }


ScrapeOutcome = Union[ScrapeSuccess, ScrapeFailure]
