"""Tests for the regression batch runner."""

from __future__ import annotations

import asyncio

import pytest

from propwright.common.data_models import TestCase
from propwright.common.exceptions import ErrorKind
from propwright.data_types import IdentifierKind, Phase, ScrapeFailure
from propwright.validation.runner import (
    ADDRESS_FIELD,
    OWNER_FIELD,
    run_test_case,
    run_test_cases,
)


def make_case(
    case_id: str,
    owner: str = "Doe John",
    address: str = "123 Main St., Tampa FL 33602",
    jurisdiction_id: str = "demo",
    kind: IdentifierKind = IdentifierKind.PARCEL,
) -> TestCase:
    return TestCase(
        id=case_id,
        name=f"case {case_id}",
        jurisdiction_id=jurisdiction_id,
        identifier_kind=kind,
        identifier_value="A-1",
        expected_owner_name=owner,
        expected_address=address,
    )


class TestRunTestCase:
    """Tests for run_test_case."""

    @pytest.mark.asyncio
    async def test_passing_case(self, engine):
        """A matching record shall pass both assertions."""
        result = await run_test_case(engine, make_case("1"))

        assert result.passed is True
        assert result.test_case_id == "1"
        assert [a.field for a in result.assertions] == [OWNER_FIELD, ADDRESS_FIELD]
        assert all(a.passed for a in result.assertions)
        assert result.error is None

    @pytest.mark.asyncio
    async def test_failing_assertion(self, engine):
        """A different owner shall fail only the owner assertion."""
        result = await run_test_case(engine, make_case("1", owner="SMITH JANE"))

        assert result.passed is False
        owner, address = result.assertions
        assert owner.passed is False
        assert owner.actual == "DOE JOHN"
        assert address.passed is True

    @pytest.mark.asyncio
    async def test_threshold_override(self, engine):
        """A stricter threshold shall fail a near match."""
        case = make_case("1", owner="DOE JON")

        assert (await run_test_case(engine, case)).passed is True
        assert (await run_test_case(engine, case, threshold=1.0)).passed is False

    @pytest.mark.asyncio
    async def test_scrape_failure(self, engine):
        """A failed scrape shall fail the case with no assertions."""
        result = await run_test_case(
            engine, make_case("1", kind=IdentifierKind.OWNER_NAME)
        )

        assert result.passed is False
        assert result.assertions == ()
        assert result.scrape_outcome.error.kind is ErrorKind.INVALID_IDENTIFIER_TYPE
        assert result.error == result.scrape_outcome.error.message

    @pytest.mark.asyncio
    async def test_unknown_county(self, engine, factory):
        """An unknown county shall fail the case instead of raising."""
        result = await run_test_case(engine, make_case("1", jurisdiction_id="atlantis"))

        assert result.passed is False
        assert result.assertions == ()
        assert isinstance(result.scrape_outcome, ScrapeFailure)
        assert result.scrape_outcome.error.kind is ErrorKind.COUNTY_NOT_FOUND
        assert result.scrape_outcome.metadata.phase_reached is Phase.IDLE
        assert "atlantis" in result.error
        assert factory.open_calls == 0

    @pytest.mark.asyncio
    async def test_to_dict(self, engine):
        """A result shall serialize with its outcome and assertions."""
        result = await run_test_case(engine, make_case("1"))

        payload = result.to_dict()
        assert payload["passed"] is True
        assert payload["scrape_outcome"]["success"] is True
        assert [a["field"] for a in payload["assertions"]] == [
            OWNER_FIELD,
            ADDRESS_FIELD,
        ]


class TestRunTestCases:
    """Tests for run_test_cases."""

    @pytest.mark.asyncio
    async def test_totals_and_order(self, engine):
        """Totals shall add up and results keep input order."""
        cases = [
            make_case("first"),
            make_case("second", owner="SMITH JANE"),
            make_case("third"),
        ]

        batch = await run_test_cases(engine, cases)

        assert (batch.total, batch.passed, batch.failed) == (3, 2, 1)
        assert [r.test_case_id for r in batch.results] == ["first", "second", "third"]
        assert [r.passed for r in batch.results] == [True, False, True]

    @pytest.mark.asyncio
    async def test_runs_one_at_a_time(self, engine, factory):
        """Each case shall finish, session closed, before the next starts."""
        await run_test_cases(engine, [make_case(str(n)) for n in range(3)])

        assert factory.events == ["open", "close"] * 3
        assert [s.close_calls for s in factory.sessions] == [1, 1, 1]

    @pytest.mark.asyncio
    async def test_concurrent_attempts_interleave(self, engine, factory):
        """Attempts started together shall overlap, unlike a batch run."""
        await asyncio.gather(
            *(run_test_case(engine, make_case(str(n))) for n in range(3))
        )

        assert factory.events[:3] == ["open", "open", "open"]
        assert factory.events.count("close") == 3

    @pytest.mark.asyncio
    async def test_empty_batch(self, engine):
        """An empty batch shall report zero totals."""
        batch = await run_test_cases(engine, [])

        assert (batch.total, batch.passed, batch.failed) == (0, 0, 0)
        assert batch.to_dict()["results"] == []
