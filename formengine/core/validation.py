"""
Validation result models.

A ValidationResult is produced for every applicable form element on every
validation pass. Failures are data, not exceptions: the message key tells
the caller which rule the answer broke.
"""

from enum import Enum
from typing import Any

from pydantic import Field

from formengine.core.base import WireModel


class ValidationMessage(str, Enum):
    """Message keys attached to failed results."""

    EMPTY = "emptyValidationMessage"
    NUMERIC = "numericValueValidation"
    ABOVE_HIGH_ABSOLUTE = "numberAboveHiAbsolute"
    BELOW_LOW_ABSOLUTE = "numberBelowLowAbsolute"
    INVALID_DATE = "invalidDate"
    INVALID_DATETIME = "invalidDateTime"
    INVALID_LOCATION = "invalidLocation"
    INVALID_ANSWER = "invalidAnswer"
    TOO_MANY_ANSWERS = "tooManyAnswers"
    INVALID_FORMAT = "invalidFormat"


class ValidationResult(WireModel):
    """Outcome of validating one form element (instance).

    `question_group_index` is None outside a question group, and the
    repetition index (0 for non-repeating groups) inside one.
    """

    success: bool
    form_identifier: str = Field(
        ...,
        description="UUID of the form element this result belongs to",
    )
    message_key: ValidationMessage | None = Field(
        default=None,
        description="Why validation failed (None on success)",
    )
    extra: dict[str, Any] | None = Field(
        default=None,
        description="Values interpolated into the failure message",
    )
    question_group_index: int | None = None

    @classmethod
    def success_for(cls, form_identifier: str) -> "ValidationResult":
        return cls(success=True, form_identifier=form_identifier)

    @classmethod
    def failure_for(
        cls,
        form_identifier: str,
        message_key: ValidationMessage,
        extra: dict[str, Any] | None = None,
    ) -> "ValidationResult":
        return cls(
            success=False,
            form_identifier=form_identifier,
            message_key=message_key,
            extra=extra,
        )

    def add_question_group_index(self, index: int | None) -> "ValidationResult":
        """Stamp the repetition index this result was evaluated under."""
        self.question_group_index = index
        return self
