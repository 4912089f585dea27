"""Tests for the propwright command line."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

import propwright.cli
from propwright.cli import cli
from propwright.config import PROFILES_ENV_VAR

PROFILE_DOCUMENT = {
    "counties": {
        "demo": {
            "display_name": "Demo County",
            "region": "FL",
            "target_url": "https://demo.example/",
            "supported_identifier_kinds": ["parcelId"],
        },
        "sleepy": {
            "display_name": "Sleepy County",
            "region": "FL",
            "target_url": "https://sleepy.example/",
            "supported_identifier_kinds": ["parcelId", "folio"],
            "enabled": False,
        },
    }
}


@pytest.fixture
def runner(monkeypatch, engine):
    """A CliRunner whose commands scrape through the fake demo engine."""
    monkeypatch.delenv(PROFILES_ENV_VAR, raising=False)
    monkeypatch.setattr(
        propwright.cli, "_build_engine", lambda profiles, headless: engine
    )
    return CliRunner()


@pytest.fixture
def profiles_path(profiles_file):
    return str(profiles_file(PROFILE_DOCUMENT))


def invoke_cases(runner, tmp_path, *args):
    return runner.invoke(cli, ["cases", "--dir", str(tmp_path / "cases"), *args])


def add_case(runner, tmp_path, owner="DOE JOHN"):
    result = invoke_cases(
        runner,
        tmp_path,
        "add",
        "--name", "demo parcel",
        "--county", "demo",
        "--identifier", "A-1",
        "--owner", owner,
        "--address", "123 MAIN ST\\nTAMPA, FL 33602",
        "--tag", "smoke",
    )
    assert result.exit_code == 0, result.output
    return result.output.strip().rsplit(" ", 1)[-1]


class TestCounties:
    """Tests for the counties command."""

    def test_enabled_only(self, runner, profiles_path):
        """Only enabled counties shall be listed by default."""
        result = runner.invoke(cli, ["--profiles", profiles_path, "counties"])

        assert result.exit_code == 0
        assert "Demo County" in result.output
        assert "Sleepy County" not in result.output

    def test_all(self, runner, profiles_path):
        """--all shall include disabled counties, marked as such."""
        result = runner.invoke(cli, ["--profiles", profiles_path, "counties", "--all"])

        assert "Sleepy County" in result.output
        assert "[disabled]" in result.output

    def test_json(self, runner, profiles_path):
        """--json shall print profile summaries."""
        result = runner.invoke(cli, ["--profiles", profiles_path, "counties", "--json"])

        assert json.loads(result.stdout) == [
            {
                "id": "demo",
                "name": "Demo County",
                "state": "FL",
                "identifier_kinds": ["parcelId"],
                "enabled": True,
            }
        ]

    def test_bad_profile_file(self, runner, tmp_path):
        """A missing profile file shall be reported as an error."""
        result = runner.invoke(
            cli, ["--profiles", str(tmp_path / "missing.json"), "counties"]
        )

        assert result.exit_code == 1
        assert "Failed to read profile file" in result.output

    def test_bundled(self, runner):
        """Without --profiles the bundled counties shall be listed."""
        result = runner.invoke(cli, ["counties"])

        assert result.exit_code == 0
        assert "Duval County" in result.output


class TestScrape:
    """Tests for the scrape command."""

    def test_success(self, runner):
        """A successful scrape shall print the record and exit 0."""
        result = runner.invoke(cli, ["scrape", "demo", "A-1"])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["success"] is True
        assert payload["data"]["owner_names"] == ["DOE JOHN"]

    def test_failure(self, runner):
        """A failed scrape shall print the error and exit 1."""
        result = runner.invoke(cli, ["scrape", "demo", "A-1", "--kind", "folio"])

        assert result.exit_code == 1
        payload = json.loads(result.stdout)
        assert payload["error"]["kind"] == "INVALID_IDENTIFIER_TYPE"

    @pytest.mark.parametrize(
        "jurisdiction,kind",
        [("atlantis", "COUNTY_NOT_FOUND"), ("sleepy", "COUNTY_DISABLED")],
    )
    def test_not_found(self, runner, jurisdiction, kind):
        """An unknown or disabled county shall exit 2."""
        result = runner.invoke(cli, ["scrape", jurisdiction, "A-1"])

        assert result.exit_code == 2
        payload = json.loads(result.stdout)
        assert payload == {"success": False, "error": payload["error"]}
        assert payload["error"]["kind"] == kind


class TestCases:
    """Tests for the cases command group."""

    def test_add_and_show(self, runner, tmp_path):
        """An added case shall be shown with its multi-line address."""
        case_id = add_case(runner, tmp_path)

        result = invoke_cases(runner, tmp_path, "show", case_id)

        assert result.exit_code == 0
        case = json.loads(result.stdout)
        assert case["expected_address"] == "123 MAIN ST\nTAMPA, FL 33602"
        assert case["tags"] == ["smoke"]

    def test_list(self, runner, tmp_path):
        """Listed cases shall show their id and tags."""
        case_id = add_case(runner, tmp_path)

        result = invoke_cases(runner, tmp_path, "list")

        assert case_id in result.output
        assert "[smoke]" in result.output
        assert "No test cases found." in invoke_cases(
            runner, tmp_path, "list", "--tag", "nightly"
        ).output

    def test_remove(self, runner, tmp_path):
        """A removed case shall no longer be found."""
        case_id = add_case(runner, tmp_path)

        result = invoke_cases(runner, tmp_path, "remove", case_id)
        assert result.exit_code == 0
        assert f"Removed test case {case_id}" in result.output

        again = invoke_cases(runner, tmp_path, "remove", case_id)
        assert again.exit_code == 1
        assert "not found" in again.output

    def test_update(self, runner, tmp_path):
        """An update shall change the given fields and keep the rest."""
        case_id = add_case(runner, tmp_path, owner="SOMEONE ELSE")
        before = json.loads(invoke_cases(runner, tmp_path, "show", case_id).stdout)

        result = invoke_cases(
            runner, tmp_path, "update", case_id, "--owner", "DOE JOHN"
        )

        assert result.exit_code == 0, result.output
        assert f"Updated test case {case_id}" in result.output
        after = json.loads(invoke_cases(runner, tmp_path, "show", case_id).stdout)
        assert after["expected_owner_name"] == "DOE JOHN"
        assert after["expected_address"] == before["expected_address"]
        assert after["tags"] == ["smoke"]
        assert after["created_at"] == before["created_at"]

    def test_update_fixes_failing_case(self, runner, tmp_path):
        """A corrected case shall pass the next run."""
        case_id = add_case(runner, tmp_path, owner="SOMEONE ELSE")
        assert invoke_cases(runner, tmp_path, "run").exit_code == 1

        invoke_cases(runner, tmp_path, "update", case_id, "--owner", "DOE JOHN")

        result = invoke_cases(runner, tmp_path, "run")
        assert result.exit_code == 0
        assert "1/1 passed" in result.output

    def test_update_unknown(self, runner, tmp_path):
        """Updating a missing case shall fail with exit 1."""
        result = invoke_cases(runner, tmp_path, "update", "nope", "--name", "x")

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_update_invalid(self, runner, tmp_path):
        """An update that empties a required field shall be rejected."""
        case_id = add_case(runner, tmp_path)

        result = invoke_cases(runner, tmp_path, "update", case_id, "--name", "")

        assert result.exit_code == 2
        assert json.loads(
            invoke_cases(runner, tmp_path, "show", case_id).stdout
        )["name"] == "demo parcel"

    def test_run_passing(self, runner, tmp_path):
        """A passing batch shall exit 0."""
        add_case(runner, tmp_path)

        result = invoke_cases(runner, tmp_path, "run")

        assert result.exit_code == 0
        assert "PASS  demo parcel" in result.output
        assert "1/1 passed" in result.output

    def test_run_failing(self, runner, tmp_path):
        """A failing case shall be reported and exit 1."""
        add_case(runner, tmp_path)
        add_case(runner, tmp_path, owner="SMITH JANE")

        result = invoke_cases(runner, tmp_path, "run")

        assert result.exit_code == 1
        assert "FAIL  demo parcel" in result.output
        assert "owner_name:" in result.output
        assert "1/2 passed" in result.output

    def test_run_json(self, runner, tmp_path):
        """--json shall print the batch result."""
        case_id = add_case(runner, tmp_path)

        result = invoke_cases(runner, tmp_path, "run", case_id, "--json")

        batch = json.loads(result.stdout)
        assert batch["total"] == 1
        assert batch["results"][0]["test_case_id"] == case_id

    def test_run_nothing(self, runner, tmp_path):
        """An empty store shall run nothing."""
        result = invoke_cases(runner, tmp_path, "run")

        assert result.exit_code == 0
        assert "No test cases to run." in result.output
