"""
Forms and form element groups.

A Form owns an ordered list of FormElementGroups (pages). A group owns an
ordered list of FormElements and is where applicability decisions from the
rule engine are turned into the list of element instances to validate, and
where those instances are validated against the recorded answers,
including the fan-out over repetitions of repeating question groups.
"""

import logging
from typing import Any, Iterable

from pydantic import Field, model_validator

from formengine.core.base import WireModel
from formengine.core.errors import AssociationErrorKind, UnsupportedAssociationError
from formengine.core.observations import QuestionGroup, RepeatableQuestionGroup
from formengine.core.schema import (
    FieldKind,
    FormElement,
    FormElementInstance,
    FormElementStatus,
)
from formengine.core.validation import ValidationResult

logger = logging.getLogger(__name__)


def _sorted_by_display_order(items: Iterable) -> list:
    # sorted() is stable: equal ranks keep their incoming order
    return sorted(items, key=lambda item: item.display_order)


class FormElementGroup(WireModel):
    """An ordered page of form elements within a form.

    The group refers to its form by `form_uuid` only; navigation helpers
    take the owning Form as an argument.
    """

    uuid: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    display_order: int | float = Field(
        ...,
        description="Rank of the group within its form (dense and 1-based)",
    )
    display: str | None = None
    form_elements: list[FormElement] = Field(default_factory=list)
    form_uuid: str | None = Field(default=None, alias="formUUID")
    voided: bool = False
    rule: str | None = None
    start_time: int | None = None
    stay_time: int | None = None
    timed: bool = False
    text_colour: str | None = None
    background_colour: str | None = None

    @model_validator(mode="after")
    def validate_unique_display_order(self) -> "FormElementGroup":
        """Non-voided elements must not share a display order."""
        self._check_unique_display_order(self.form_elements)
        return self

    def _check_unique_display_order(self, form_elements: list[FormElement]) -> None:
        seen = {}
        for form_element in (fe for fe in form_elements if not fe.voided):
            other = seen.get(form_element.display_order)
            if other is not None:
                raise ValueError(
                    f"Form elements '{other}' and '{form_element.name}' in group "
                    f"'{self.name}' share display order {form_element.display_order}"
                )
            seen[form_element.display_order] = form_element.name

    @classmethod
    def from_resource(cls, resource: dict, form: "Form") -> "FormElementGroup":
        """Build a group from its wire representation, owned by `form`."""
        return cls.model_validate({**resource, "formUUID": form.uuid})

    # -----------------------------------------------------------------
    # Element access
    # -----------------------------------------------------------------

    def non_voided_form_elements(self) -> list[FormElement]:
        return [fe for fe in self.form_elements if not fe.voided]

    def get_form_elements(self) -> list[FormElement]:
        """Non-voided elements sorted by display order."""
        return _sorted_by_display_order(self.non_voided_form_elements())

    @property
    def form_element_ids(self) -> list[str]:
        return [fe.uuid for fe in self.get_form_elements()]

    def get_form_elements_of_type(self, type: str) -> list[FormElement]:
        """Elements whose declared type or whose concept's datatype equals `type`."""
        return [
            fe for fe in self.get_form_elements()
            if fe.type == type or fe.concept.datatype == type
        ]

    def add_form_element(self, form_element: FormElement) -> None:
        self.associate_child(form_element)

    def associate_child(self, child: Any) -> "FormElementGroup":
        """Add or replace a child element by uuid.

        Raises:
            UnsupportedAssociationError: If the child is not a FormElement.
            ValueError: If the child's display order is already taken.
        """
        if not isinstance(child, FormElement):
            raise UnsupportedAssociationError(
                AssociationErrorKind.FORM_ELEMENT_FORM_ELEMENT_GROUP,
                type(child).__name__,
                type(self).__name__,
            )
        form_elements = [fe for fe in self.form_elements if fe.uuid != child.uuid]
        form_elements.append(child)
        self._check_unique_display_order(form_elements)
        self.form_elements = form_elements
        return self

    def remove_form_element(self, form_element_name: str) -> "FormElementGroup":
        self.form_elements = [
            fe for fe in self.get_form_elements() if not fe.matches(form_element_name)
        ]
        return self

    # -----------------------------------------------------------------
    # Applicability filtering
    # -----------------------------------------------------------------

    def filter_elements(
        self, form_element_statuses: Iterable[FormElementStatus]
    ) -> list[FormElementInstance]:
        """Build the ordered instances that apply, from rule-engine decisions.

        A decision yields an instance only if its element exists in this
        group (non-voided) and is visible. The repetition index is kept
        only for children of repeating question groups; at most one
        instance is produced per (uuid, index). The definitions are never
        modified.
        """
        all_form_elements = self.get_form_elements()
        by_uuid = {fe.uuid: fe for fe in all_form_elements}
        repeating_uuids = {
            fe.uuid for fe in all_form_elements
            if fe.kind == FieldKind.REPEATING_QUESTION_GROUP
        }

        filtered_form_elements = []
        seen = set()
        for status in form_element_statuses:
            form_element = by_uuid.get(status.uuid)
            if form_element is None or not status.visibility:
                continue

            if form_element.group_uuid not in repeating_uuids:
                status = status.model_copy(update={"question_group_index": None})

            key = (status.uuid, status.question_group_index)
            if key in seen:
                logger.debug(
                    "Dropping duplicate decision for %s (index %s)",
                    status.uuid,
                    status.question_group_index,
                )
                continue
            seen.add(key)
            filtered_form_elements.append(form_element.instance(status))

        return _sorted_by_display_order(filtered_form_elements)

    # -----------------------------------------------------------------
    # Validation
    # -----------------------------------------------------------------

    def validate(
        self,
        observations_holder,
        filtered_form_elements: list[FormElementInstance],
    ) -> list[ValidationResult]:
        """Validate every applicable instance against the recorded answers.

        Members of question groups are validated with their group, once
        per recorded repetition. Missing answers are passed on as None;
        each element decides whether that is a failure.

        Args:
            observations_holder: The answer record of the response session.
            filtered_form_elements: Output of `filter_elements`.

        Returns:
            One ValidationResult per validated instance, in order.
        """
        validation_results: list[ValidationResult] = []
        for form_element in filtered_form_elements:
            if form_element.group_uuid is not None:
                continue
            self._validate_element(
                form_element,
                observations_holder,
                filtered_form_elements,
                validation_results,
                None,
            )
        return validation_results

    def _validate_element(
        self,
        form_element: FormElementInstance,
        record,
        filtered_form_elements: list[FormElementInstance],
        validation_results: list[ValidationResult],
        question_group_index: int | None,
    ) -> None:
        observation = record.find_observation(form_element.concept)

        match form_element.kind:
            case FieldKind.REPEATING_QUESTION_GROUP:
                repeatable_question_group = (
                    RepeatableQuestionGroup() if observation is None
                    else observation.get_value_wrapper()
                )
                self._validate_form_element(
                    form_element,
                    None if repeatable_question_group.is_empty() else repeatable_question_group,
                    validation_results,
                    question_group_index,
                )
                child_form_elements = self._child_form_elements(form_element, filtered_form_elements)
                question_groups = repeatable_question_group.get_all_question_group_observations()
                logger.debug(
                    "Validating %d repetitions of %s", len(question_groups), form_element.name
                )
                for index, question_group in enumerate(question_groups):
                    self._validate_question_group(
                        question_group,
                        child_form_elements,
                        filtered_form_elements,
                        validation_results,
                        index,
                    )

            case FieldKind.QUESTION_GROUP:
                question_group = (
                    QuestionGroup() if observation is None
                    else observation.get_value_wrapper()
                )
                self._validate_form_element(
                    form_element,
                    None if question_group.is_empty() else question_group,
                    validation_results,
                    question_group_index,
                )
                self._validate_question_group(
                    question_group,
                    self._child_form_elements(form_element, filtered_form_elements),
                    filtered_form_elements,
                    validation_results,
                    0,
                )

            case FieldKind.SCALAR:
                self._validate_form_element(
                    form_element,
                    None if observation is None else observation.get_value(),
                    validation_results,
                    question_group_index,
                )

    @staticmethod
    def _child_form_elements(
        parent: FormElementInstance,
        filtered_form_elements: list[FormElementInstance],
    ) -> list[FormElementInstance]:
        return [fe for fe in filtered_form_elements if fe.group_uuid == parent.uuid]

    def _validate_question_group(
        self,
        question_group: QuestionGroup,
        child_form_elements: list[FormElementInstance],
        filtered_form_elements: list[FormElementInstance],
        validation_results: list[ValidationResult],
        question_group_index: int,
    ) -> None:
        indexed_uuids = {
            fe.uuid for fe in child_form_elements
            if fe.question_group_index == question_group_index
        }
        for form_element in child_form_elements:
            # Unindexed children apply to every repetition without their own instance
            if form_element.question_group_index is None:
                if form_element.uuid in indexed_uuids:
                    continue
            elif form_element.question_group_index != question_group_index:
                continue
            self._validate_element(
                form_element,
                question_group,
                filtered_form_elements,
                validation_results,
                question_group_index,
            )

    @staticmethod
    def _validate_form_element(
        form_element: FormElementInstance,
        value: Any,
        validation_results: list[ValidationResult],
        question_group_index: int | None,
    ) -> None:
        validation_result = form_element.validate(value)
        validation_result.add_question_group_index(question_group_index)
        validation_results.append(validation_result)

    # -----------------------------------------------------------------
    # Navigation
    # -----------------------------------------------------------------

    def _check_form(self, form: "Form") -> None:
        if form.uuid != self.form_uuid:
            raise ValueError(
                f"Form element group '{self.name}' does not belong to form '{form.name}'"
            )

    def next(self, form: "Form") -> "FormElementGroup | None":
        self._check_form(form)
        return form.get_next_form_element_group(self.display_order)

    def previous(self, form: "Form") -> "FormElementGroup | None":
        self._check_form(form)
        return form.get_prev_form_element_group(self.display_order)

    @property
    def is_first(self) -> bool:
        return self.display_order == 1

    def is_last(self, form: "Form") -> bool:
        """True when no group of `form` is ranked after this one."""
        self._check_form(form)
        last = form.get_last_form_element_group()
        return last is not None and last.display_order == self.display_order

    # -----------------------------------------------------------------
    # Presentation
    # -----------------------------------------------------------------

    @property
    def styles(self) -> dict:
        style = {}
        if self.background_colour:
            style["backgroundColor"] = self.background_colour
        if self.text_colour:
            style["color"] = self.text_colour
        if style:
            style["paddingHorizontal"] = 5
        return style

    @property
    def translated_field_value(self) -> str | None:
        return self.display

    def to_json(self) -> dict:
        return {
            "uuid": self.uuid,
            "name": self.name,
            "displayOrder": self.display_order,
            "display": self.display,
            "formElements": [fe.to_json() for fe in self.form_elements],
            "formUUID": self.form_uuid,
            "startTime": self.start_time,
            "stayTime": self.stay_time,
            "timed": self.timed,
            "textColour": self.text_colour,
            "backgroundColour": self.background_colour,
        }


class Form(WireModel):
    """A form: the exclusive owner of its form element groups."""

    uuid: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    form_type: str | None = None
    form_element_groups: list[FormElementGroup] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_group_ownership(self) -> "Form":
        """Groups default to this form and must not claim another one."""
        for group in self.form_element_groups:
            if group.form_uuid is None:
                group.form_uuid = self.uuid
            elif group.form_uuid != self.uuid:
                raise ValueError(
                    f"Form element group '{group.name}' belongs to form "
                    f"'{group.form_uuid}', not '{self.uuid}'"
                )
        return self

    def get_form_element_groups(self) -> list[FormElementGroup]:
        """Non-voided groups sorted by display order."""
        return _sorted_by_display_order(g for g in self.form_element_groups if not g.voided)

    def get_next_form_element_group(self, display_order: float) -> FormElementGroup | None:
        for group in self.get_form_element_groups():
            if group.display_order > display_order:
                return group
        return None

    def get_prev_form_element_group(self, display_order: float) -> FormElementGroup | None:
        for group in reversed(self.get_form_element_groups()):
            if group.display_order < display_order:
                return group
        return None

    def get_last_form_element_group(self) -> FormElementGroup | None:
        groups = self.get_form_element_groups()
        return groups[-1] if groups else None

    def find_form_element(self, name_or_uuid: str) -> FormElement | None:
        for group in self.get_form_element_groups():
            for form_element in group.get_form_elements():
                if form_element.matches(name_or_uuid):
                    return form_element
        return None

    def add_form_element_group(self, group: FormElementGroup) -> FormElementGroup:
        return self.associate_child(group)

    def associate_child(self, child: Any) -> FormElementGroup:
        """Adopt a group, replacing any group with the same uuid.

        Raises:
            UnsupportedAssociationError: If the child is not a FormElementGroup.
        """
        if not isinstance(child, FormElementGroup):
            raise UnsupportedAssociationError(
                AssociationErrorKind.FORM_ELEMENT_GROUP_FORM,
                type(child).__name__,
                type(self).__name__,
            )
        child.form_uuid = self.uuid
        self.form_element_groups = [
            g for g in self.form_element_groups if g.uuid != child.uuid
        ]
        self.form_element_groups.append(child)
        return child
