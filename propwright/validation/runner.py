"""Runs saved regression cases through the scrape engine.

Cases run strictly one after another: a batch shares one browser host and
must not start a second attempt while one is in flight.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from propwright.common.exceptions import ScraperError
from propwright.data_types import (
    Phase,
    ScrapeFailure,
    ScrapeMetadata,
    ScrapeOutcome,
    ScrapeRequest,
)
from propwright.validation.similarity import (
    SIMILARITY_THRESHOLD,
    Assertion,
    assert_field,
)

if TYPE_CHECKING:
    from propwright.common.data_models import PropertyRecord, TestCase
    from propwright.driver.lifecycle import ScrapeEngine

logger = logging.getLogger(__name__)

OWNER_FIELD = "owner_name"
ADDRESS_FIELD = "mailing_address"


@dataclass(frozen=True)
class TestResult:
    """Outcome of one regression case."""

    __test__ = False

    test_case_id: str
    test_case_name: str
    passed: bool
    scrape_outcome: ScrapeOutcome
    assertions: tuple[Assertion, ...]
    executed_at: datetime
    duration_ms: int
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "test_case_id": self.test_case_id,
            "test_case_name": self.test_case_name,
            "passed": self.passed,
            "scrape_outcome": self.scrape_outcome.to_dict(),
            "assertions": [assertion.to_dict() for assertion in self.assertions],
            "executed_at": self.executed_at.isoformat(),
            "duration_ms": self.duration_ms,
            "error": self.error,
        }


@dataclass(frozen=True)
class BatchResult:
    """Totals and per-case results of a batch, in input order."""

    total: int
    passed: int
    failed: int
    results: tuple[TestResult, ...] = field(default_factory=tuple)
    executed_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    total_duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "results": [result.to_dict() for result in self.results],
            "executed_at": self.executed_at.isoformat(),
            "total_duration_ms": self.total_duration_ms,
        }


def owner_text(record: PropertyRecord) -> str:
    """Owner names as compared against ``expected_owner_name``."""
    return ", ".join(record.owner_names)


def _early_failure(
    case: TestCase, error: ScraperError, started: datetime, duration_ms: int
) -> ScrapeFailure:
    """Failure outcome for an error raised before the engine produced one."""
    return ScrapeFailure(
        error=error,
        metadata=ScrapeMetadata(
            jurisdiction_id=case.jurisdiction_id,
            identifier_value=case.identifier_value,
            identifier_kind=case.identifier_kind,
            start_time=started,
            end_time=datetime.now(timezone.utc),
            duration_ms=duration_ms,
            phase_reached=Phase.IDLE,
        ),
    )


async def run_test_case(
    engine: ScrapeEngine,
    case: TestCase,
    threshold: float = SIMILARITY_THRESHOLD,
) -> TestResult:
    """Scrape one case and compare the record to its expectations.

    A failed scrape (including an unknown or disabled jurisdiction) yields a
    failed result with no assertions and the error message in ``error``.
    """
    executed_at = datetime.now(timezone.utc)
    started = time.monotonic()
    request = ScrapeRequest(
        jurisdiction_id=case.jurisdiction_id,
        identifier_kind=case.identifier_kind,
        identifier_value=case.identifier_value,
    )

    try:
        outcome = await engine.scrape(request)
    except ScraperError as e:
        outcome = _early_failure(
            case, e, executed_at, int((time.monotonic() - started) * 1000)
        )

    duration_ms = int((time.monotonic() - started) * 1000)
    if isinstance(outcome, ScrapeFailure):
        return TestResult(
            test_case_id=case.id,
            test_case_name=case.name,
            passed=False,
            scrape_outcome=outcome,
            assertions=(),
            executed_at=executed_at,
            duration_ms=duration_ms,
            error=outcome.error.message,
        )

    record = outcome.record
    assertions = (
        assert_field(
            OWNER_FIELD, case.expected_owner_name, owner_text(record), threshold
        ),
        assert_field(
            ADDRESS_FIELD,
            case.expected_address,
            record.mailing_address_text,
            threshold,
        ),
    )
    return TestResult(
        test_case_id=case.id,
        test_case_name=case.name,
        passed=all(assertion.passed for assertion in assertions),
        scrape_outcome=outcome,
        assertions=assertions,
        executed_at=executed_at,
        duration_ms=duration_ms,
    )


async def run_test_cases(
    engine: ScrapeEngine,
    cases: Iterable[TestCase],
    threshold: float = SIMILARITY_THRESHOLD,
) -> BatchResult:
    """Run cases one at a time, preserving input order in the results."""
    executed_at = datetime.now(timezone.utc)
    started = time.monotonic()
    results: list[TestResult] = []
    for case in cases:
        logger.info(f"Running test case: {case.name} ({case.jurisdiction_id})")
        result = await run_test_case(engine, case, threshold)
        if result.passed:
            logger.info(f"PASS {case.name}")
        else:
            logger.warning(f"FAIL {case.name}: {result.error or 'assertion failed'}")
        results.append(result)

    passed = sum(1 for result in results if result.passed)
    return BatchResult(
        total=len(results),
        passed=passed,
        failed=len(results) - passed,
        results=tuple(results),
        executed_at=executed_at,
        total_duration_ms=int((time.monotonic() - started) * 1000),
    )
