"""Exception types for scrape errors.

This module defines the closed taxonomy of scrape failure kinds and the
ScraperError carrying one of them. Scrape-domain failures are converted to
ScrapeFailure values by the lifecycle; only configuration defects
(ConfigurationError, StrategyRegistrationError) and unknown/disabled
jurisdictions propagate to callers.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(Enum):
    """Closed set of failure kinds a scrape attempt can end with."""

    # Configuration
    COUNTY_NOT_FOUND = "COUNTY_NOT_FOUND"
    COUNTY_DISABLED = "COUNTY_DISABLED"
    INVALID_IDENTIFIER_TYPE = "INVALID_IDENTIFIER_TYPE"

    # Navigation
    NAVIGATION_FAILED = "NAVIGATION_FAILED"
    PAGE_LOAD_TIMEOUT = "PAGE_LOAD_TIMEOUT"

    # Search
    SEARCH_FAILED = "SEARCH_FAILED"
    NO_RESULTS_FOUND = "NO_RESULTS_FOUND"
    MULTIPLE_RESULTS_FOUND = "MULTIPLE_RESULTS_FOUND"

    # Extraction
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    INVALID_DATA_FORMAT = "INVALID_DATA_FORMAT"

    # Browser
    BROWSER_LAUNCH_FAILED = "BROWSER_LAUNCH_FAILED"
    BROWSER_CRASH = "BROWSER_CRASH"

    # Generic
    TIMEOUT = "TIMEOUT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


NOT_FOUND_KINDS = frozenset(
    {ErrorKind.COUNTY_NOT_FOUND, ErrorKind.COUNTY_DISABLED}
)


class ScraperError(Exception):
    """A classified scrape error.

    Every failure that crosses the lifecycle boundary is (or is wrapped
    into) a ScraperError so callers can branch on ``kind`` alone.

    Attributes:
        kind: The ErrorKind of this failure.
        message: Human-readable description.
        detail: Opaque extra context (original exception, selector, etc).
        jurisdiction_id: County the attempt targeted, if known.
        identifier_value: Record key the attempt used, if known.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        detail: Any = None,
        jurisdiction_id: str | None = None,
        identifier_value: str | None = None,
    ) -> None:
        """Initialize the error.

        Args:
            kind: The ErrorKind of this failure.
            message: Human-readable description (required).
            detail: Optional opaque context.
            jurisdiction_id: Optional county id.
            identifier_value: Optional record key.
        """
        if not message:
            raise ValueError("ScraperError requires a message")
        self.kind = kind
        self.message = message
        self.detail = detail
        self.jurisdiction_id = jurisdiction_id
        self.identifier_value = identifier_value
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with context.

        Returns:
            Formatted error message string.
        """
        parts = [f"[{self.kind.value}] {self.message}"]
        if self.jurisdiction_id:
            parts.append(f"Jurisdiction: {self.jurisdiction_id}")
        if self.identifier_value:
            parts.append(f"Identifier: {self.identifier_value}")
        return "\n".join(parts)

    def with_context(
        self,
        jurisdiction_id: str | None = None,
        identifier_value: str | None = None,
    ) -> ScraperError:
        """Fill in missing jurisdiction/identifier context in place.

        Returns:
            This error, for chaining.
        """
        if self.jurisdiction_id is None and jurisdiction_id is not None:
            self.jurisdiction_id = jurisdiction_id
        if self.identifier_value is None and identifier_value is not None:
            self.identifier_value = identifier_value
        self.args = (self._format_message(),)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "detail": _serializable_detail(self.detail),
            "jurisdiction_id": self.jurisdiction_id,
            "identifier_value": self.identifier_value,
        }


class ConfigurationError(Exception):
    """Raised when jurisdiction profiles are missing or malformed.

    This is a load-time defect, never a scrape outcome.
    """

    def __init__(
        self, message: str, source: str = "", errors: Any = None
    ) -> None:
        self.message = message
        self.source = source
        self.errors = errors
        text = f"{message} ({source})" if source else message
        super().__init__(text)


class StrategyRegistrationError(Exception):
    """Raised when a registered strategy is malformed.

    Attributes:
        jurisdiction_id: The jurisdiction whose strategy is broken.
        missing: Names of the hooks that are absent or not callable.
    """

    def __init__(self, jurisdiction_id: str, missing: list[str]) -> None:
        self.jurisdiction_id = jurisdiction_id
        self.missing = missing
        super().__init__(
            f"Strategy for '{jurisdiction_id}' is malformed: "
            f"missing or non-callable hooks: {', '.join(missing)}"
        )


def _serializable_detail(detail: Any) -> Any:
    if detail is None or isinstance(detail, (str, int, float, bool)):
        return detail
    if isinstance(detail, BaseException):
        return f"{type(detail).__name__}: {detail}"
    if isinstance(detail, dict):
        return {str(k): _serializable_detail(v) for k, v in detail.items()}
    if isinstance(detail, (list, tuple)):
        return [_serializable_detail(v) for v in detail]
    return str(detail)


def is_not_found(error: ScraperError) -> bool:
    """Whether a transport layer should report this error as "not found"."""
    return error.kind in NOT_FOUND_KINDS


def classify(
    exc: BaseException,
    kind: ErrorKind = ErrorKind.UNKNOWN_ERROR,
    jurisdiction_id: str | None = None,
    identifier_value: str | None = None,
) -> ScraperError:
    """Return exc as a ScraperError, wrapping it under ``kind`` if needed.

    Already classified errors keep their kind and only gain missing context.
    """
    if isinstance(exc, ScraperError):
        return exc.with_context(jurisdiction_id, identifier_value)
    return ScraperError(
        kind,
        str(exc) or type(exc).__name__,
        detail=exc,
        jurisdiction_id=jurisdiction_id,
        identifier_value=identifier_value,
    )


# =============================================================================
# Constructors
# =============================================================================


def county_not_found(jurisdiction_id: str) -> ScraperError:
    return ScraperError(
        ErrorKind.COUNTY_NOT_FOUND,
        f"County '{jurisdiction_id}' not found in configuration",
        jurisdiction_id=jurisdiction_id,
    )


def county_disabled(jurisdiction_id: str) -> ScraperError:
    return ScraperError(
        ErrorKind.COUNTY_DISABLED,
        f"County '{jurisdiction_id}' is currently disabled",
        jurisdiction_id=jurisdiction_id,
    )


def invalid_identifier_type(
    message: str,
    jurisdiction_id: str | None = None,
    identifier_value: str | None = None,
    detail: Any = None,
) -> ScraperError:
    return ScraperError(
        ErrorKind.INVALID_IDENTIFIER_TYPE,
        message,
        detail,
        jurisdiction_id,
        identifier_value,
    )


def navigation_failed(
    message: str,
    jurisdiction_id: str | None = None,
    identifier_value: str | None = None,
    detail: Any = None,
) -> ScraperError:
    return ScraperError(
        ErrorKind.NAVIGATION_FAILED,
        message,
        detail,
        jurisdiction_id,
        identifier_value,
    )


def page_load_timeout(
    message: str,
    jurisdiction_id: str | None = None,
    identifier_value: str | None = None,
    detail: Any = None,
) -> ScraperError:
    return ScraperError(
        ErrorKind.PAGE_LOAD_TIMEOUT,
        message,
        detail,
        jurisdiction_id,
        identifier_value,
    )


def search_failed(
    message: str,
    jurisdiction_id: str | None = None,
    identifier_value: str | None = None,
    detail: Any = None,
) -> ScraperError:
    return ScraperError(
        ErrorKind.SEARCH_FAILED,
        message,
        detail,
        jurisdiction_id,
        identifier_value,
    )


def no_results(
    jurisdiction_id: str,
    identifier_value: str,
    message: str | None = None,
    detail: Any = None,
) -> ScraperError:
    return ScraperError(
        ErrorKind.NO_RESULTS_FOUND,
        message
        or f"No results found for identifier '{identifier_value}' "
        f"in {jurisdiction_id}",
        detail,
        jurisdiction_id,
        identifier_value,
    )


def multiple_results(
    message: str,
    jurisdiction_id: str | None = None,
    identifier_value: str | None = None,
    detail: Any = None,
) -> ScraperError:
    return ScraperError(
        ErrorKind.MULTIPLE_RESULTS_FOUND,
        message,
        detail,
        jurisdiction_id,
        identifier_value,
    )


def extraction_failed(
    message: str,
    jurisdiction_id: str | None = None,
    identifier_value: str | None = None,
    detail: Any = None,
) -> ScraperError:
    return ScraperError(
        ErrorKind.EXTRACTION_FAILED,
        message,
        detail,
        jurisdiction_id,
        identifier_value,
    )


def missing_field(
    field: str,
    jurisdiction_id: str | None = None,
    identifier_value: str | None = None,
    detail: Any = None,
) -> ScraperError:
    """A field (or the locator needed to read it) is absent."""
    return ScraperError(
        ErrorKind.MISSING_REQUIRED_FIELD,
        f"Required field '{field}' is missing",
        detail,
        jurisdiction_id,
        identifier_value,
    )


def invalid_data_format(
    message: str,
    jurisdiction_id: str | None = None,
    identifier_value: str | None = None,
    detail: Any = None,
) -> ScraperError:
    return ScraperError(
        ErrorKind.INVALID_DATA_FORMAT,
        message,
        detail,
        jurisdiction_id,
        identifier_value,
    )


def browser_launch_failed(message: str, detail: Any = None) -> ScraperError:
    return ScraperError(ErrorKind.BROWSER_LAUNCH_FAILED, message, detail)


def browser_crash(
    message: str,
    jurisdiction_id: str | None = None,
    identifier_value: str | None = None,
    detail: Any = None,
) -> ScraperError:
    return ScraperError(
        ErrorKind.BROWSER_CRASH,
        message,
        detail,
        jurisdiction_id,
        identifier_value,
    )


def timeout(
    message: str,
    jurisdiction_id: str | None = None,
    identifier_value: str | None = None,
    detail: Any = None,
) -> ScraperError:
    return ScraperError(
        ErrorKind.TIMEOUT,
        message,
        detail,
        jurisdiction_id,
        identifier_value,
    )


def validation_error(
    message: str,
    jurisdiction_id: str | None = None,
    identifier_value: str | None = None,
    detail: Any = None,
) -> ScraperError:
    return ScraperError(
        ErrorKind.VALIDATION_ERROR,
        message,
        detail,
        jurisdiction_id,
        identifier_value,
    )


def unknown_error(
    message: str,
    jurisdiction_id: str | None = None,
    identifier_value: str | None = None,
    detail: Any = None,
) -> ScraperError:
    return ScraperError(
        ErrorKind.UNKNOWN_ERROR,
        message,
        detail,
        jurisdiction_id,
        identifier_value,
    )
