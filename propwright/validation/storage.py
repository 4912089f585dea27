"""File-backed store of regression cases: one JSON document per case."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from propwright.common.data_models import TestCase, TestCaseInput

logger = logging.getLogger(__name__)

DEFAULT_CASES_DIR = Path("test-cases")


class CaseNotFoundError(KeyError):
    """No saved case has the requested id."""

    def __init__(self, case_id: str) -> None:
        self.case_id = case_id
        super().__init__(f"Test case '{case_id}' not found")

    def __str__(self) -> str:
        return self.args[0]


class CaseStore:
    """Saves and loads TestCase documents under ``directory``.

    Files are named ``<id>.json``. Unreadable files are skipped (with a
    warning) when listing so one corrupt case doesn't hide the others.
    """

    def __init__(self, directory: Path | str = DEFAULT_CASES_DIR) -> None:
        self.directory = Path(directory)

    def _path(self, case_id: str) -> Path:
        if not case_id or Path(case_id).name != case_id:
            raise CaseNotFoundError(case_id)
        return self.directory / f"{case_id}.json"

    def save(
        self, case_input: TestCaseInput, existing_id: str | None = None
    ) -> TestCase:
        """Create a case, or replace an existing one keeping its created_at.

        Raises:
            CaseNotFoundError: If ``existing_id`` names no saved case.
        """
        now = datetime.now(timezone.utc)
        if existing_id is not None:
            created_at = self.load(existing_id).created_at
            case_id = existing_id
        else:
            created_at = now
            case_id = str(uuid.uuid4())

        case = TestCase(
            id=case_id,
            created_at=created_at,
            updated_at=now,
            **case_input.model_dump(),
        )
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(case_id).write_text(
            case.model_dump_json(indent=2), encoding="utf-8"
        )
        logger.debug(f"Saved test case {case_id} ({case.name})")
        return case

    def load(self, case_id: str) -> TestCase:
        path = self._path(case_id)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise CaseNotFoundError(case_id) from e
        return TestCase.model_validate_json(text)

    def exists(self, case_id: str) -> bool:
        try:
            return self._path(case_id).is_file()
        except CaseNotFoundError:
            return False

    def list_cases(self) -> list[TestCase]:
        """All readable cases, oldest first."""
        if not self.directory.is_dir():
            return []
        cases: list[TestCase] = []
        for path in sorted(self.directory.glob("*.json")):
            try:
                cases.append(
                    TestCase.model_validate_json(path.read_text(encoding="utf-8"))
                )
            except (OSError, UnicodeDecodeError, ValidationError) as e:
                logger.warning(f"Skipping unreadable test case {path.name}: {e}")
        return sorted(cases, key=lambda case: case.created_at)

    def delete(self, case_id: str) -> None:
        """Remove a saved case.

        Raises:
            CaseNotFoundError: If no such case exists.
        """
        try:
            self._path(case_id).unlink()
        except FileNotFoundError as e:
            raise CaseNotFoundError(case_id) from e
