"""
Form element definition models.

These Pydantic models describe the static side of a form: concepts (what
is being asked), form elements (how and where it is asked) and the
per-instance projection of an element produced when applicability
decisions from the rule engine are applied. Each form element also carries
the capability of validating a raw answer against itself.
"""

import re
from enum import Enum
from typing import Any

from pydantic import ConfigDict, Field, model_validator

from formengine.core.base import WireModel
from formengine.core.errors import AssociationErrorKind, UnsupportedAssociationError
from formengine.core.utils import is_blank, parse_date, parse_datetime
from formengine.core.validation import ValidationMessage, ValidationResult


# --- Enums ---


class ConceptDatatype(str, Enum):
    """Semantic datatype of the value a concept captures."""

    NUMERIC = "Numeric"
    TEXT = "Text"
    NOTES = "Notes"
    CODED = "Coded"
    DATE = "Date"
    DATETIME = "DateTime"
    LOCATION = "Location"
    QUESTION_GROUP = "QuestionGroup"
    NA = "NA"


class ElementType(str, Enum):
    """Kind declared on the form element wrapper itself (coded concepts only)."""

    SINGLE_SELECT = "SingleSelect"
    MULTI_SELECT = "MultiSelect"


class FieldKind(str, Enum):
    """How a form element takes part in validation traversal."""

    SCALAR = "scalar"
    QUESTION_GROUP = "question_group"
    REPEATING_QUESTION_GROUP = "repeating_question_group"


# --- Concepts ---


class ConceptAnswer(WireModel):
    """One selectable answer of a coded concept."""

    uuid: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    answer_order: float = 0
    voided: bool = False


class Concept(WireModel):
    """The question behind a form element: its name and datatype."""

    uuid: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    datatype: ConceptDatatype
    answers: list[ConceptAnswer] = Field(
        default_factory=list,
        description="Selectable answers (coded concepts only)",
    )
    low_absolute: float | None = None
    high_absolute: float | None = None

    @model_validator(mode="after")
    def validate_datatype_attributes(self) -> "Concept":
        if self.datatype == ConceptDatatype.CODED and not self.answers:
            raise ValueError(f"Coded concept '{self.name}' must have at least one answer")

        if (
            self.low_absolute is not None
            and self.high_absolute is not None
            and self.low_absolute > self.high_absolute
        ):
            raise ValueError(
                f"Concept '{self.name}' has low_absolute above high_absolute"
            )
        return self

    def is_question_group(self) -> bool:
        return self.datatype == ConceptDatatype.QUESTION_GROUP

    def matches(self, name_or_uuid: str) -> bool:
        return name_or_uuid in (self.uuid, self.name)

    def non_voided_answers(self) -> list[ConceptAnswer]:
        return sorted(
            (answer for answer in self.answers if not answer.voided),
            key=lambda answer: answer.answer_order,
        )

    def associate_child(self, child: Any) -> "Concept":
        if not isinstance(child, ConceptAnswer):
            raise UnsupportedAssociationError(
                AssociationErrorKind.CONCEPT_ANSWER_CONCEPT,
                type(child).__name__,
                type(self).__name__,
            )
        self.answers = [a for a in self.answers if a.uuid != child.uuid] + [child]
        return self


# --- Form Elements ---


class ValidFormat(WireModel):
    """Regex that a text answer must fully match."""

    regex: str = Field(..., min_length=1)
    description_key: str = "invalidFormat"


class FormElement(WireModel):
    """Definition of a single question within a form element group.

    A form element whose concept is a question group is the parent of the
    elements whose `group_uuid` points at it. When it is also `repeatable`
    it may be answered any number of times.
    """

    uuid: str = Field(
        ...,
        min_length=1,
        description="Logical identity of the element",
    )
    name: str = Field(..., min_length=1)
    display_order: int | float = Field(
        ...,
        description="Rank within the group; unique among non-voided elements",
    )
    concept: Concept
    type: ElementType | None = None
    mandatory: bool = False
    voided: bool = False
    group_uuid: str | None = Field(
        default=None,
        description="UUID of the owning question-group element, if any",
    )
    repeatable: bool = False
    valid_format: ValidFormat | None = None

    @model_validator(mode="after")
    def validate_element_attributes(self) -> "FormElement":
        if self.repeatable and not self.concept.is_question_group():
            raise ValueError(
                f"Form element '{self.name}' is repeatable but its concept is not a question group"
            )

        if self.type is not None and self.concept.datatype != ConceptDatatype.CODED:
            raise ValueError(
                f"Form element '{self.name}' declares '{self.type.value}' for a non-coded concept"
            )

        if self.valid_format is not None:
            if self.concept.datatype not in {ConceptDatatype.TEXT, ConceptDatatype.NOTES}:
                raise ValueError(
                    f"Form element '{self.name}' has a valid_format but is not a text element"
                )
            try:
                re.compile(self.valid_format.regex)
            except re.error as e:
                raise ValueError(f"Form element '{self.name}' has an invalid regex: {e}")

        return self

    @property
    def kind(self) -> FieldKind:
        if not self.concept.is_question_group():
            return FieldKind.SCALAR
        if self.repeatable:
            return FieldKind.REPEATING_QUESTION_GROUP
        return FieldKind.QUESTION_GROUP

    def is_question_group(self) -> bool:
        """True when this element is a member of a question group."""
        return self.group_uuid is not None

    def matches(self, name_or_uuid: str) -> bool:
        return name_or_uuid in (self.uuid, self.name)

    def instance(self, status: "FormElementStatus | None" = None) -> "FormElementInstance":
        """Project this definition into a per-decision instance."""
        if status is None:
            return FormElementInstance(element=self)
        return FormElementInstance(
            element=self,
            question_group_index=status.question_group_index,
            answers_to_show=frozenset(status.answers_to_show),
            answers_to_skip=frozenset(status.answers_to_skip),
        )

    # -----------------------------------------------------------------
    # Answer validation per concept datatype
    # -----------------------------------------------------------------

    def validate(self, value: Any) -> ValidationResult:
        """Validate a raw answer (None when unanswered) against this element."""
        if is_blank(value):
            if self.mandatory:
                return ValidationResult.failure_for(self.uuid, ValidationMessage.EMPTY)
            return ValidationResult.success_for(self.uuid)

        match self.concept.datatype:
            case ConceptDatatype.NUMERIC:
                return self._validate_numeric(value)
            case ConceptDatatype.DATE:
                return self._validate_date(value)
            case ConceptDatatype.DATETIME:
                return self._validate_datetime(value)
            case ConceptDatatype.CODED:
                return self._validate_coded(value)
            case ConceptDatatype.LOCATION:
                return self._validate_location(value)
            case ConceptDatatype.TEXT | ConceptDatatype.NOTES:
                return self._validate_text(value)

        return ValidationResult.success_for(self.uuid)

    def _fail(self, message_key: ValidationMessage, **extra) -> ValidationResult:
        return ValidationResult.failure_for(self.uuid, message_key, extra or None)

    def _validate_numeric(self, value: Any) -> ValidationResult:
        """Numeric value must parse as a number within the absolute range."""
        if isinstance(value, bool):
            return self._fail(ValidationMessage.NUMERIC)
        try:
            number = float(value)
        except (ValueError, TypeError):
            return self._fail(ValidationMessage.NUMERIC)

        if self.concept.high_absolute is not None and number > self.concept.high_absolute:
            return self._fail(
                ValidationMessage.ABOVE_HIGH_ABSOLUTE, limit=self.concept.high_absolute
            )
        if self.concept.low_absolute is not None and number < self.concept.low_absolute:
            return self._fail(
                ValidationMessage.BELOW_LOW_ABSOLUTE, limit=self.concept.low_absolute
            )
        return ValidationResult.success_for(self.uuid)

    def _validate_date(self, value: Any) -> ValidationResult:
        if parse_date(value) is None:
            return self._fail(ValidationMessage.INVALID_DATE)
        return ValidationResult.success_for(self.uuid)

    def _validate_datetime(self, value: Any) -> ValidationResult:
        if parse_datetime(value) is None:
            return self._fail(ValidationMessage.INVALID_DATETIME)
        return ValidationResult.success_for(self.uuid)

    def _validate_coded(self, value: Any) -> ValidationResult:
        """Coded value(s) must name known, non-voided answers."""
        selected = value if isinstance(value, list) else [value]
        if self.type == ElementType.SINGLE_SELECT and len(selected) > 1:
            return self._fail(ValidationMessage.TOO_MANY_ANSWERS)

        known = set()
        for answer in self.concept.non_voided_answers():
            known.update((answer.uuid, answer.name))

        invalid = [v for v in selected if not isinstance(v, str) or v not in known]
        if invalid:
            return self._fail(ValidationMessage.INVALID_ANSWER, invalid=invalid)
        return ValidationResult.success_for(self.uuid)

    def _validate_location(self, value: Any) -> ValidationResult:
        """Location value must be a dict with lat/lng in range."""
        if not isinstance(value, dict) or "lat" not in value or "lng" not in value:
            return self._fail(ValidationMessage.INVALID_LOCATION)
        try:
            lat = float(value["lat"])
            lng = float(value["lng"])
        except (ValueError, TypeError):
            return self._fail(ValidationMessage.INVALID_LOCATION)
        if not (-90 <= lat <= 90) or not (-180 <= lng <= 180):
            return self._fail(ValidationMessage.INVALID_LOCATION)
        return ValidationResult.success_for(self.uuid)

    def _validate_text(self, value: Any) -> ValidationResult:
        if self.valid_format is None:
            return ValidationResult.success_for(self.uuid)
        if not isinstance(value, str) or not re.fullmatch(self.valid_format.regex, value):
            return self._fail(
                ValidationMessage.INVALID_FORMAT,
                description_key=self.valid_format.description_key,
            )
        return ValidationResult.success_for(self.uuid)


# --- Applicability decisions ---


class FormElementStatus(WireModel):
    """Visibility decision for one form element instance.

    Produced by the external rule engine. `question_group_index` scopes the
    decision to one repetition of a repeating group and is ignored for
    elements outside one.
    """

    uuid: str = Field(..., min_length=1)
    question_group_index: int | None = None
    visibility: bool = True
    answers_to_show: set[str] = Field(default_factory=set)
    answers_to_skip: set[str] = Field(default_factory=set)


class FormElementInstance(WireModel):
    """A form element as it applies to one pass: definition plus decision.

    The same definition may appear several times, once per repetition,
    each time with its own answer filtering.
    """

    model_config = ConfigDict(frozen=True)

    element: FormElement
    question_group_index: int | None = None
    answers_to_show: frozenset[str] = frozenset()
    answers_to_skip: frozenset[str] = frozenset()

    @property
    def uuid(self) -> str:
        return self.element.uuid

    @property
    def name(self) -> str:
        return self.element.name

    @property
    def display_order(self) -> int | float:
        return self.element.display_order

    @property
    def group_uuid(self) -> str | None:
        return self.element.group_uuid

    @property
    def repeatable(self) -> bool:
        return self.element.repeatable

    @property
    def concept(self) -> Concept:
        return self.element.concept

    @property
    def kind(self) -> FieldKind:
        return self.element.kind

    @property
    def options(self) -> list[ConceptAnswer]:
        """Coded answers to present for this instance, after show/skip filtering."""
        answers = self.concept.non_voided_answers()
        if self.answers_to_show:
            answers = [
                a for a in answers
                if a.uuid in self.answers_to_show or a.name in self.answers_to_show
            ]
        return [
            a for a in answers
            if a.uuid not in self.answers_to_skip and a.name not in self.answers_to_skip
        ]

    def validate(self, value: Any) -> ValidationResult:
        return self.element.validate(value)

    def to_json(self) -> dict:
        data = self.element.to_json()
        data["questionGroupIndex"] = self.question_group_index
        data["answersToShow"] = sorted(self.answers_to_show)
        data["answersToSkip"] = sorted(self.answers_to_skip)
        data["options"] = [answer.to_json() for answer in self.options]
        return data
