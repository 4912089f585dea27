"""Pydantic data models for scraped records and saved regression cases.

PropertyRecord is the only success payload the engine produces. It either
carries at least one owner name and a non-empty mailing address or it does
not exist; extract hooks build unvalidated candidates with
``PropertyRecord.raw(...)`` and the lifecycle confirms them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from propwright.common.deferred_validation import DeferredValidation
from propwright.data_types import IdentifierKind

T = TypeVar("T", bound="ScrapedData")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScrapedData(BaseModel):
    """Base class for scraped data with deferred validation support.

    Example:
        # Normal usage (validates immediately)
        record = PropertyRecord(owner_names=["DOE JOHN"], ...)

        # Deferred validation
        candidate = PropertyRecord.raw(owner_names=["DOE JOHN"])
        record = candidate.confirm(jurisdiction_id="duval", ...)
    """

    @classmethod
    def raw(
        cls: type[T], request_url: str = "", **data: Any
    ) -> DeferredValidation[T]:
        """Create a DeferredValidation wrapper with raw, unvalidated data.

        Args:
            request_url: Optional URL for error reporting.
            **data: Raw field values (not validated).
        """
        return DeferredValidation(cls, request_url, **data)


class MailingAddress(BaseModel):
    """A mailing address split into its parts."""

    model_config = ConfigDict(frozen=True)

    street: str = Field(..., min_length=1, description="Street line(s)")
    city: str = Field(..., description="City")
    state: str = Field(..., description="Two-letter state code")
    zip: str = Field(..., description="ZIP or ZIP+4")
    raw: str | None = Field(None, description="Original text, if available")

    def formatted(self) -> str:
        """Render as ``street\\ncity, state zip``, the comparison form."""
        last_line = ", ".join(
            part for part in (self.city, f"{self.state} {self.zip}".strip()) if part
        )
        return "\n".join(part for part in (self.street, last_line) if part)


class PropertyRecord(ScrapedData):
    """Owner and mailing address of one property."""

    owner_names: list[str] = Field(
        ...,
        min_length=1,
        description="Owner names in document order",
    )
    mailing_address: MailingAddress | str = Field(
        ..., description="Raw address text or structured address"
    )
    jurisdiction_id: str = Field(..., min_length=1)
    identifier_value: str = Field(..., min_length=1)
    identifier_kind: IdentifierKind
    scraped_at: datetime = Field(default_factory=_utcnow)
    additional_data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("owner_names", mode="before")
    @classmethod
    def _drop_blank_owners(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = [value]
        if isinstance(value, (list, tuple)):
            return [
                name.strip()
                for name in value
                if isinstance(name, str) and name.strip()
            ]
        return value

    @field_validator("mailing_address", mode="after")
    @classmethod
    def _require_address(cls, value: MailingAddress | str) -> MailingAddress | str:
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise ValueError("mailing address must not be empty")
        return value

    @property
    def mailing_address_text(self) -> str:
        """The address as one string, whichever form was extracted."""
        if isinstance(self.mailing_address, MailingAddress):
            return self.mailing_address.raw or self.mailing_address.formatted()
        return self.mailing_address


class TestCaseInput(BaseModel):
    """Fields a user supplies when saving a regression case."""

    __test__ = False

    name: str = Field(..., min_length=1, description="Test case name")
    jurisdiction_id: str = Field(..., min_length=1)
    identifier_kind: IdentifierKind
    identifier_value: str = Field(..., min_length=1)
    expected_owner_name: str = Field(..., min_length=1)
    expected_address: str = Field(..., min_length=1)
    description: str | None = None
    tags: list[str] = Field(default_factory=list)


class TestCase(TestCaseInput):
    """A saved regression case."""

    __test__ = False

    id: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
