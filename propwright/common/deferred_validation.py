"""Deferred validation for extracted records.

Extract hooks return an unvalidated candidate; the lifecycle decides what a
missing owner or address means (NO_RESULTS_FOUND vs EXTRACTION_FAILED)
before handing the candidate to pydantic in confirm().
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from propwright.common.exceptions import invalid_data_format

T = TypeVar("T", bound=BaseModel)


class DeferredValidation(Generic[T]):
    """Wrapper for unvalidated data that validates on confirm().

    Example:
        # In an extract hook - defer validation
        candidate = PropertyRecord.raw(owner_names=names, mailing_address=addr)
        return candidate

        # In the lifecycle - validate once context is known
        record = candidate.confirm(jurisdiction_id="duval", ...)
    """

    def __init__(
        self,
        model_class: type[T],
        request_url: str = "",
        **data: Any,
    ) -> None:
        """Initialize deferred validation.

        Args:
            model_class: The Pydantic model class to validate against.
            request_url: Optional URL for error reporting.
            **data: Raw field values (not validated).
        """
        self._model_class = model_class
        self._request_url = request_url
        self._data = data

    def confirm(self, **context: Any) -> T:
        """Validate the data and return the validated model instance.

        Args:
            **context: Extra fields merged over the raw data before
                validation (identifiers, timestamps).

        Returns:
            Validated instance of the model class.

        Raises:
            ScraperError: INVALID_DATA_FORMAT if validation fails.
        """
        payload = {**self._data, **context}
        try:
            return self._model_class.model_validate(payload)
        except ValidationError as e:
            errors_list = [dict(err) for err in e.errors()]
            error_summary = ", ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in errors_list
            )
            raise invalid_data_format(
                f"Data validation failed for model "
                f"'{self._model_class.__name__}': {error_summary}",
                jurisdiction_id=context.get("jurisdiction_id"),
                identifier_value=context.get("identifier_value"),
                detail={
                    "model": self._model_class.__name__,
                    "request_url": self._request_url,
                    "error_count": len(errors_list),
                    "errors": [
                        {"loc": list(err["loc"]), "msg": err["msg"]}
                        for err in errors_list
                    ],
                },
            ) from e

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    @property
    def raw_data(self) -> dict:
        """Access the raw unvalidated data.

        Returns:
            A copy of the raw data dictionary.
        """
        return self._data.copy()

    @property
    def model_name(self) -> str:
        return self._model_class.__name__

