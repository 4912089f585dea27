"""The fixed scrape lifecycle shared by every jurisdiction.

Every attempt walks the same phases::

    IDLE -> SESSION_ACQUIRED -> NAVIGATED -> QUERIED (optional) -> STABLE
         -> EXTRACTED -> VALIDATED -> CLOSED

Strategies only supply the variant hooks (navigate, query, await_stable,
extract). The controller owns session acquisition and release, per-phase
deadlines, error classification and the minimum viable record rule, so a
scrape attempt always ends as a ScrapeOutcome value.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, TypeVar

from propwright.common.data_models import PropertyRecord
from propwright.common.deferred_validation import DeferredValidation
from propwright.common.exceptions import (
    ErrorKind,
    ScraperError,
    browser_launch_failed,
    classify,
    extraction_failed,
    invalid_identifier_type,
    no_results,
    timeout,
)
from propwright.common.identifiers import IdentifierTransformer
from propwright.config import JurisdictionProfile, ProfileStore
from propwright.data_types import (
    Phase,
    ScrapeContext,
    ScrapeFailure,
    ScrapeMetadata,
    ScrapeOutcome,
    ScrapeRequest,
    ScrapeSuccess,
)
from propwright.driver.session import (
    BrowserSession,
    SessionFactory,
    SessionOptions,
)
from propwright.registry import StrategyRegistry, default_registry

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def default_await_stable(ctx: ScrapeContext) -> None:
    """Wait for the profile's readiness selector, else for network idle."""
    await ctx.session.wait_for(
        ctx.profile.readiness_condition(), ctx.profile.timeout_ms
    )


def _is_blank(address: Any) -> bool:
    """True for a missing address: None, blank text, or an empty structure."""
    if address is None:
        return True
    if isinstance(address, str):
        return not address.strip()
    if isinstance(address, Mapping):
        return all(_is_blank(value) for value in address.values())
    return False


class _Attempt:
    """Mutable bookkeeping for one attempt."""

    def __init__(self, request: ScrapeRequest, profile: JurisdictionProfile):
        self.request = request
        self.profile = profile
        self.phase = Phase.IDLE
        self.start_time = datetime.now(timezone.utc)
        self._started = time.monotonic()

    def enter(self, phase: Phase) -> None:
        logger.debug(
            f"[{self.profile.id}] {self.phase.value} -> {phase.value}"
        )
        self.phase = phase

    def metadata(self) -> ScrapeMetadata:
        duration_ms = int((time.monotonic() - self._started) * 1000)
        return ScrapeMetadata(
            jurisdiction_id=self.profile.id,
            identifier_value=self.request.identifier_value,
            identifier_kind=self.request.identifier_kind,
            start_time=self.start_time,
            end_time=datetime.now(timezone.utc),
            duration_ms=duration_ms,
            phase_reached=self.phase,
        )


class LifecycleController:
    """Drives one scrape attempt through the fixed phase sequence.

    Args:
        registry: Resolves jurisdiction ids to strategies.
        session_factory: Opens one browser session per attempt.
        identifiers: Identifier transformer handed to strategies.
        session_options: Base options for each session; ``timeout_ms`` is
            replaced by the profile's timeout.
    """

    def __init__(
        self,
        registry: StrategyRegistry,
        session_factory: SessionFactory,
        identifiers: IdentifierTransformer | None = None,
        session_options: SessionOptions | None = None,
    ) -> None:
        self.registry = registry
        self.session_factory = session_factory
        self.identifiers = identifiers or IdentifierTransformer()
        self.session_options = session_options or SessionOptions()

    async def scrape(
        self, request: ScrapeRequest, profile: JurisdictionProfile
    ) -> ScrapeOutcome:
        """Run one attempt and return its outcome.

        Raises:
            ScraperError: Only COUNTY_NOT_FOUND / COUNTY_DISABLED, from
                strategy resolution, before any session is opened.
            StrategyRegistrationError: If the jurisdiction's strategy is
                malformed.
        """
        strategy = self.registry.resolve(profile.id)
        attempt = _Attempt(request, profile)
        jid = profile.id
        logger.info(
            f"[{jid}] Scraping {request.identifier_kind.value}="
            f"{request.identifier_value!r}"
        )

        if not profile.supports(request.identifier_kind):
            error = invalid_identifier_type(
                f"Identifier type '{request.identifier_kind.value}' is not "
                f"supported by {profile.display_name}",
                jurisdiction_id=jid,
                identifier_value=request.identifier_value,
                detail={
                    "supported": sorted(
                        kind.value
                        for kind in profile.supported_identifier_kinds
                    )
                },
            )
            return self._failure(attempt, error)

        session: BrowserSession | None = None
        record: PropertyRecord | None = None
        error: ScraperError | None = None
        try:
            session = await self._open_session(attempt)
            attempt.enter(Phase.SESSION_ACQUIRED)
            ctx = ScrapeContext(
                request=request,
                profile=profile,
                session=session,
                identifiers=self.identifiers,
            )

            await self._run_phase(
                attempt, "navigate", strategy.navigate, ctx,
                ErrorKind.NAVIGATION_FAILED,
            )
            attempt.enter(Phase.NAVIGATED)

            if strategy.query is not None:
                await self._run_phase(
                    attempt, "query", strategy.query, ctx,
                    ErrorKind.SEARCH_FAILED,
                )
                attempt.enter(Phase.QUERIED)

            await_stable = strategy.await_stable or default_await_stable
            await self._run_phase(
                attempt, "await_stable", await_stable, ctx,
                ErrorKind.UNKNOWN_ERROR,
            )
            attempt.enter(Phase.STABLE)

            candidate = await self._run_phase(
                attempt, "extract", strategy.extract, ctx,
                ErrorKind.EXTRACTION_FAILED,
            )
            attempt.enter(Phase.EXTRACTED)

            record = self._confirm(candidate, request, profile, session)
            attempt.enter(Phase.VALIDATED)
        except ScraperError as e:
            error = e.with_context(jid, request.identifier_value)
        except Exception as e:
            error = classify(
                e,
                ErrorKind.UNKNOWN_ERROR,
                jurisdiction_id=jid,
                identifier_value=request.identifier_value,
            )
        finally:
            if session is not None:
                await self._release(session, jid)

        if error is not None:
            return self._failure(attempt, error)
        assert record is not None
        outcome = ScrapeSuccess(record=record, metadata=attempt.metadata())
        logger.info(
            f"[{jid}] Scraped {len(record.owner_names)} owner(s) in "
            f"{outcome.metadata.duration_ms}ms"
        )
        return outcome

    async def _open_session(self, attempt: _Attempt) -> BrowserSession:
        options = replace(
            self.session_options, timeout_ms=attempt.profile.timeout_ms
        )
        try:
            return await self.session_factory.open_session(options)
        except ScraperError:
            raise
        except Exception as e:
            raise browser_launch_failed(
                f"Failed to open browser session: {e}", detail=e
            ) from e

    async def _run_phase(
        self,
        attempt: _Attempt,
        phase_name: str,
        hook: Callable[[ScrapeContext], Awaitable[T]],
        ctx: ScrapeContext,
        kind: ErrorKind,
    ) -> T:
        """Await one hook under the profile deadline, classifying failures.

        Raises:
            ScraperError: TIMEOUT when the deadline elapses; the hook's own
                ScraperError unchanged; anything else wrapped as ``kind``.
        """
        profile = attempt.profile
        identifier = attempt.request.identifier_value
        try:
            return await asyncio.wait_for(
                hook(ctx), timeout=profile.timeout_ms / 1000.0
            )
        except ScraperError:
            raise
        except asyncio.TimeoutError as e:
            raise timeout(
                f"Phase '{phase_name}' exceeded {profile.timeout_ms}ms",
                jurisdiction_id=profile.id,
                identifier_value=identifier,
                detail={"phase": phase_name, "timeout_ms": profile.timeout_ms},
            ) from e
        except Exception as e:
            logger.debug(f"[{profile.id}] {phase_name} hook raised {e!r}")
            raise classify(
                e, kind, jurisdiction_id=profile.id, identifier_value=identifier
            ) from e

    def _confirm(
        self,
        candidate: Any,
        request: ScrapeRequest,
        profile: JurisdictionProfile,
        session: BrowserSession,
    ) -> PropertyRecord:
        """Apply the minimum viable record rule, then validate the record."""
        jid = profile.id
        identifier = request.identifier_value

        if candidate is None:
            raise no_results(jid, identifier)
        if isinstance(candidate, Mapping):
            fields = dict(candidate)
            request_url = fields.pop("request_url", None) or session.url
            candidate = PropertyRecord.raw(request_url, **fields)
        if not isinstance(candidate, DeferredValidation):
            raise extraction_failed(
                f"Extract hook returned {type(candidate).__name__}, expected "
                f"a PropertyRecord candidate",
                jurisdiction_id=jid,
                identifier_value=identifier,
            )

        owners = candidate.get("owner_names")
        if isinstance(owners, str):
            owners = [owners]
        if not any(isinstance(o, str) and o.strip() for o in owners or []):
            raise no_results(jid, identifier)

        address = candidate.get("mailing_address")
        if _is_blank(address):
            raise extraction_failed(
                "Owner name found but mailing address is missing",
                jurisdiction_id=jid,
                identifier_value=identifier,
                detail={"owner_names": owners},
            )

        return candidate.confirm(
            jurisdiction_id=jid,
            identifier_value=identifier,
            identifier_kind=request.identifier_kind,
        )

    async def _release(self, session: BrowserSession, jid: str) -> None:
        try:
            await session.close()
        except Exception as e:
            logger.warning(f"[{jid}] Failed to close browser session: {e}")
        else:
            logger.debug(f"[{jid}] Browser session closed")

    def _failure(self, attempt: _Attempt, error: ScraperError) -> ScrapeFailure:
        outcome = ScrapeFailure(error=error, metadata=attempt.metadata())
        logger.warning(
            f"[{attempt.profile.id}] Scrape failed at {attempt.phase.value}: "
            f"{error.kind.value}: {error.message}",
            extra={
                "jurisdiction_id": attempt.profile.id,
                "identifier_value": attempt.request.identifier_value,
                "error_kind": error.kind.value,
                "phase_reached": attempt.phase.value,
            },
        )
        return outcome


class ScrapeEngine:
    """The single entry point for transport layers.

    Example:
        engine = ScrapeEngine.default(ProfileStore())
        outcome = await engine.scrape(
            ScrapeRequest("duval", IdentifierKind.PARCEL, "035697-0000")
        )
        if outcome.success:
            print(outcome.record.owner_names)
    """

    def __init__(
        self,
        profiles: ProfileStore,
        controller: LifecycleController,
    ) -> None:
        self.profiles = profiles
        self.controller = controller

    @classmethod
    def default(
        cls,
        profiles: ProfileStore,
        session_factory: SessionFactory | None = None,
        session_options: SessionOptions | None = None,
    ) -> ScrapeEngine:
        """Engine with every bundled strategy and a Playwright browser."""
        if session_factory is None:
            from propwright.driver.playwright_session import (
                PlaywrightSessionFactory,
            )

            session_factory = PlaywrightSessionFactory()
        controller = LifecycleController(
            default_registry(profiles),
            session_factory,
            session_options=session_options,
        )
        return cls(profiles, controller)

    async def scrape(self, request: ScrapeRequest) -> ScrapeOutcome:
        """Look up the jurisdiction and run one attempt.

        Raises:
            ScraperError: COUNTY_NOT_FOUND / COUNTY_DISABLED.
            StrategyRegistrationError: For a malformed strategy.
        """
        profile = self.profiles.get(request.jurisdiction_id)
        return await self.controller.scrape(request, profile)

