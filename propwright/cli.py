"""propwright CLI: scrape county records and run regression cases.

Usage:
    propwright counties                          # List enabled counties
    propwright counties --all --json             # Every profile, as JSON
    propwright scrape duval 035697-0000          # Scrape one record
    propwright scrape miami-dade 01-3105-032-0040 --kind folio
    propwright cases add --name ... --county duval ...
    propwright cases list
    propwright cases update CASE_ID --owner "DOE JANE"
    propwright cases run                         # Run every saved case
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any

import click
from pydantic import ValidationError

from propwright.common.data_models import TestCaseInput
from propwright.common.exceptions import (
    ConfigurationError,
    ScraperError,
    StrategyRegistrationError,
    is_not_found,
)
from propwright.config import PROFILES_ENV_VAR, ProfileStore
from propwright.data_types import IdentifierKind, ScrapeRequest
from propwright.driver.lifecycle import ScrapeEngine
from propwright.driver.session import SessionOptions
from propwright.validation.runner import run_test_cases
from propwright.validation.storage import (
    DEFAULT_CASES_DIR,
    CaseNotFoundError,
    CaseStore,
)

EXIT_FAILURE = 1
EXIT_NOT_FOUND = 2

_KIND_CHOICES = [kind.value for kind in IdentifierKind]


def _build_engine(profiles: ProfileStore, headless: bool) -> ScrapeEngine:
    return ScrapeEngine.default(
        profiles, session_options=SessionOptions(headless=headless)
    )


def _unescape_newlines(value: str | None) -> str | None:
    # Addresses span lines; accept "\n" typed on the command line
    return value.replace("\\n", "\n") if value is not None else None


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2))


def _exit_for_error(error: ScraperError) -> None:
    _echo_json({"success": False, "error": error.to_dict()})
    sys.exit(EXIT_NOT_FOUND if is_not_found(error) else EXIT_FAILURE)


@click.group()
@click.version_option(package_name="propwright")
@click.option(
    "--profiles",
    "profiles_path",
    type=click.Path(dir_okay=False),
    envvar=PROFILES_ENV_VAR,
    default=None,
    help="Jurisdiction profile JSON (default: bundled counties.json).",
)
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging.")
@click.pass_context
def cli(ctx: click.Context, profiles_path: str | None, verbose: bool) -> None:
    """propwright: county property-appraiser scraper."""
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = ProfileStore(profiles_path)


def _load_profiles(store: ProfileStore, include_disabled: bool):
    try:
        if include_disabled:
            return store.load_profiles()
        return store.enabled_profiles()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e


@cli.command()
@click.option(
    "--all", "include_disabled", is_flag=True, help="Include disabled counties."
)
@click.option("--json", "as_json", is_flag=True, help="Print JSON.")
@click.pass_obj
def counties(store: ProfileStore, include_disabled: bool, as_json: bool) -> None:
    """List configured counties."""
    profiles = _load_profiles(store, include_disabled)
    if as_json:
        _echo_json([profile.summary() for profile in profiles])
        return
    if not profiles:
        click.echo("No counties configured.")
        return
    for profile in profiles:
        summary = profile.summary()
        status = "" if profile.enabled else "  [disabled]"
        click.echo(
            f"{summary['id']:<14} {summary['name']:<22} {summary['state']:<4} "
            f"{', '.join(summary['identifier_kinds'])}{status}"
        )


@cli.command()
@click.argument("jurisdiction")
@click.argument("identifier")
@click.option(
    "--kind",
    type=click.Choice(_KIND_CHOICES),
    default=IdentifierKind.PARCEL.value,
    show_default=True,
    help="What IDENTIFIER is.",
)
@click.option("--headed", is_flag=True, help="Show the browser window.")
@click.pass_obj
def scrape(
    store: ProfileStore,
    jurisdiction: str,
    identifier: str,
    kind: str,
    headed: bool,
) -> None:
    """Scrape the owner and mailing address of one property.

    Prints the outcome as JSON. Exits 2 for an unknown or disabled county
    and 1 for any other failure.

    \b
    Examples:
        propwright scrape duval 035697-0000
        propwright scrape pasco 22-26-21-0030-00000-0280
    """
    request = ScrapeRequest(
        jurisdiction_id=jurisdiction,
        identifier_kind=IdentifierKind(kind),
        identifier_value=identifier,
    )
    engine = _build_engine(store, headless=not headed)

    async def _go():
        return await engine.scrape(request)

    try:
        outcome = asyncio.run(_go())
    except ScraperError as e:
        _exit_for_error(e)
        return
    except (ConfigurationError, StrategyRegistrationError) as e:
        raise click.ClickException(str(e)) from e

    _echo_json(outcome.to_dict())
    if not outcome.success:
        sys.exit(EXIT_FAILURE)


@cli.group()
@click.option(
    "--dir",
    "cases_dir",
    type=click.Path(file_okay=False),
    default=str(DEFAULT_CASES_DIR),
    show_default=True,
    help="Directory holding saved test cases.",
)
@click.pass_context
def cases(ctx: click.Context, cases_dir: str) -> None:
    """Manage and run saved regression cases."""
    ctx.obj = {"profiles": ctx.obj, "store": CaseStore(cases_dir)}


@cases.command("list")
@click.option("--tag", default=None, help="Only cases carrying this tag.")
@click.pass_obj
def list_cases(obj: dict[str, Any], tag: str | None) -> None:
    """List saved cases."""
    saved = [
        case
        for case in obj["store"].list_cases()
        if tag is None or tag in case.tags
    ]
    if not saved:
        click.echo("No test cases found.")
        return
    for case in saved:
        tags = f"  [{', '.join(case.tags)}]" if case.tags else ""
        click.echo(
            f"{case.id}  {case.jurisdiction_id:<14} {case.name}{tags}"
        )


@cases.command("add")
@click.option("--name", required=True)
@click.option("--county", "jurisdiction_id", required=True)
@click.option(
    "--kind",
    type=click.Choice(_KIND_CHOICES),
    default=IdentifierKind.PARCEL.value,
    show_default=True,
)
@click.option("--identifier", required=True)
@click.option("--owner", "expected_owner_name", required=True)
@click.option("--address", "expected_address", required=True)
@click.option("--description", default=None)
@click.option("--tag", "tags", multiple=True, help="Repeatable.")
@click.pass_obj
def add_case(
    obj: dict[str, Any],
    name: str,
    jurisdiction_id: str,
    kind: str,
    identifier: str,
    expected_owner_name: str,
    expected_address: str,
    description: str | None,
    tags: tuple[str, ...],
) -> None:
    """Save a new regression case."""
    try:
        case_input = TestCaseInput(
            name=name,
            jurisdiction_id=jurisdiction_id,
            identifier_kind=IdentifierKind(kind),
            identifier_value=identifier,
            expected_owner_name=_unescape_newlines(expected_owner_name),
            expected_address=_unescape_newlines(expected_address),
            description=description,
            tags=list(tags),
        )
    except ValidationError as e:
        raise click.BadParameter(str(e)) from e
    case = obj["store"].save(case_input)
    click.echo(f"Saved test case {case.id}")


@cases.command("update")
@click.argument("case_id")
@click.option("--name", default=None)
@click.option("--county", "jurisdiction_id", default=None)
@click.option("--kind", type=click.Choice(_KIND_CHOICES), default=None)
@click.option("--identifier", default=None)
@click.option("--owner", "expected_owner_name", default=None)
@click.option("--address", "expected_address", default=None)
@click.option("--description", default=None)
@click.option("--tag", "tags", multiple=True, help="Replaces all tags.")
@click.pass_obj
def update_case(
    obj: dict[str, Any],
    case_id: str,
    name: str | None,
    jurisdiction_id: str | None,
    kind: str | None,
    identifier: str | None,
    expected_owner_name: str | None,
    expected_address: str | None,
    description: str | None,
    tags: tuple[str, ...],
) -> None:
    """Change fields of a saved case; unset options keep their value."""
    store: CaseStore = obj["store"]
    try:
        existing = store.load(case_id)
    except CaseNotFoundError as e:
        raise click.ClickException(str(e)) from e

    fields = existing.model_dump(include=set(TestCaseInput.model_fields))
    changes = {
        "name": name,
        "jurisdiction_id": jurisdiction_id,
        "identifier_kind": IdentifierKind(kind) if kind else None,
        "identifier_value": identifier,
        "expected_owner_name": _unescape_newlines(expected_owner_name),
        "expected_address": _unescape_newlines(expected_address),
        "description": description,
        "tags": list(tags) if tags else None,
    }
    fields.update({key: value for key, value in changes.items() if value is not None})
    try:
        case_input = TestCaseInput(**fields)
    except ValidationError as e:
        raise click.BadParameter(str(e)) from e
    case = store.save(case_input, existing_id=case_id)
    click.echo(f"Updated test case {case.id}")


@cases.command("show")
@click.argument("case_id")
@click.pass_obj
def show_case(obj: dict[str, Any], case_id: str) -> None:
    """Print one saved case as JSON."""
    try:
        case = obj["store"].load(case_id)
    except CaseNotFoundError as e:
        raise click.ClickException(str(e)) from e
    click.echo(case.model_dump_json(indent=2))


@cases.command("remove")
@click.argument("case_id")
@click.pass_obj
def remove_case(obj: dict[str, Any], case_id: str) -> None:
    """Delete one saved case."""
    try:
        obj["store"].delete(case_id)
    except CaseNotFoundError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Removed test case {case_id}")


@cases.command("run")
@click.argument("case_ids", nargs=-1)
@click.option("--tag", default=None, help="Only cases carrying this tag.")
@click.option("--json", "as_json", is_flag=True, help="Print the full batch result.")
@click.option("--headed", is_flag=True, help="Show the browser window.")
@click.pass_obj
def run_cases(
    obj: dict[str, Any],
    case_ids: tuple[str, ...],
    tag: str | None,
    as_json: bool,
    headed: bool,
) -> None:
    """Run saved cases one at a time; exit 1 if any fails.

    With CASE_IDS, run only those cases, in the order given.
    """
    store: CaseStore = obj["store"]
    try:
        selected = (
            [store.load(case_id) for case_id in case_ids]
            if case_ids
            else store.list_cases()
        )
    except CaseNotFoundError as e:
        raise click.ClickException(str(e)) from e
    if tag is not None:
        selected = [case for case in selected if tag in case.tags]
    if not selected:
        click.echo("No test cases to run.")
        return

    engine = _build_engine(obj["profiles"], headless=not headed)

    async def _go():
        return await run_test_cases(engine, selected)

    try:
        batch = asyncio.run(_go())
    except (ConfigurationError, StrategyRegistrationError) as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        _echo_json(batch.to_dict())
    else:
        for result in batch.results:
            mark = "PASS" if result.passed else "FAIL"
            click.echo(f"{mark}  {result.test_case_name} ({result.duration_ms}ms)")
            if result.error:
                click.echo(f"      {result.error}")
            for assertion in result.assertions:
                if not assertion.passed:
                    click.echo(
                        f"      {assertion.field}: {assertion.similarity:.2f} "
                        f"expected {assertion.expected!r}, got {assertion.actual!r}"
                    )
        click.echo(
            f"\n{batch.passed}/{batch.total} passed "
            f"({batch.total_duration_ms}ms)"
        )
    if batch.failed:
        sys.exit(EXIT_FAILURE)


def main() -> None:
    """Entry point for the ``propwright`` console script."""
    cli()


if __name__ == "__main__":
    main()
