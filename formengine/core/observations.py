"""
Recorded answers (observations) and how they are looked up.

An ObservationsHolder is the answer record of one response session. It maps
concepts to observations; an observation's value is either a scalar, a
QuestionGroup (an inner flat record) or a RepeatableQuestionGroup (one inner
record per repetition).
"""

import logging
from typing import Any, Iterable

from formengine.core.schema import Concept, FieldKind, FormElement

logger = logging.getLogger(__name__)


class Observation:
    """A recorded answer for one concept."""

    def __init__(self, concept: Concept, value: Any):
        self.concept = concept
        self.value = value

    def matches(self, concept: Concept | str) -> bool:
        if isinstance(concept, str):
            return self.concept.matches(concept)
        return self.concept.uuid == concept.uuid

    def get_value_wrapper(self) -> Any:
        return self.value

    def get_value(self) -> Any:
        """Return the raw value (inner records are exported as plain data)."""
        if isinstance(self.value, (QuestionGroup, RepeatableQuestionGroup)):
            return self.value.to_json()
        return self.value

    def to_json(self) -> dict:
        return {"concept": self.concept.uuid, "value": self.get_value()}

    def __repr__(self) -> str:
        return f"Observation({self.concept.name!r}, {self.value!r})"


class _FlatRecord:
    """Shared lookup over a list of observations."""

    def __init__(self, observations: Iterable[Observation] | None = None):
        self.observations: list[Observation] = list(observations or [])

    def find_observation(self, concept: Concept | str) -> Observation | None:
        """Return the observation recorded for a concept (uuid or name), or None."""
        for observation in self.observations:
            if observation.matches(concept):
                return observation
        return None

    def add_or_update_observation(self, concept: Concept, value: Any) -> Observation:
        observation = self.find_observation(concept)
        if observation is None:
            observation = Observation(concept, value)
            self.observations.append(observation)
        else:
            observation.value = value
        return observation

    def remove_observation(self, concept: Concept | str) -> None:
        self.observations = [o for o in self.observations if not o.matches(concept)]

    def is_empty(self) -> bool:
        return len(self.observations) == 0

    def to_json(self) -> list[dict]:
        return [observation.to_json() for observation in self.observations]


class QuestionGroup(_FlatRecord):
    """Answers recorded for the children of one question-group element."""


class RepeatableQuestionGroup:
    """Answers for a repeating question group: one QuestionGroup per repetition.

    Holds zero repetitions until one is explicitly recorded.
    """

    def __init__(self, groups: Iterable[QuestionGroup] | None = None):
        self.groups: list[QuestionGroup] = list(groups or [])

    def get_all_question_group_observations(self) -> list[QuestionGroup]:
        return list(self.groups)

    def get_group(self, index: int) -> QuestionGroup | None:
        if 0 <= index < len(self.groups):
            return self.groups[index]
        return None

    def add_group(self, group: QuestionGroup | None = None) -> QuestionGroup:
        group = group if group is not None else QuestionGroup()
        self.groups.append(group)
        return group

    def size(self) -> int:
        return len(self.groups)

    def is_empty(self) -> bool:
        return all(group.is_empty() for group in self.groups)

    def to_json(self) -> list[list[dict]]:
        return [group.to_json() for group in self.groups]


class ObservationsHolder(_FlatRecord):
    """The answer record of one response session."""

    def update_question_group_observation(
        self,
        parent: FormElement,
        child: FormElement,
        value: Any,
        question_group_index: int | None = None,
    ) -> Observation:
        """Record `value` for `child` inside the question group answered by `parent`.

        For a repeating parent, repetitions up to `question_group_index` are
        created as needed.
        """
        observation = self.find_observation(parent.concept)

        match parent.kind:
            case FieldKind.REPEATING_QUESTION_GROUP:
                index = question_group_index or 0
                if observation is None:
                    observation = self.add_or_update_observation(
                        parent.concept, RepeatableQuestionGroup()
                    )
                repeatable = observation.get_value_wrapper()
                while repeatable.size() <= index:
                    repeatable.add_group()
                group = repeatable.get_group(index)
            case FieldKind.QUESTION_GROUP:
                if observation is None:
                    observation = self.add_or_update_observation(
                        parent.concept, QuestionGroup()
                    )
                group = observation.get_value_wrapper()
            case _:
                raise ValueError(f"Form element '{parent.name}' is not a question group")

        return group.add_or_update_observation(child.concept, value)


# -----------------------------------------------------------------
# Building records from wire data
# -----------------------------------------------------------------


def build_observations_holder(
    payload: Iterable[dict],
    form_elements: Iterable[FormElement],
) -> ObservationsHolder:
    """Build an answer record from `[{"concept": uuid-or-name, "value": ...}]`.

    Concepts are resolved against the given form elements. A question-group
    value is a list of observation dicts, a repeating one a list of such
    lists. Entries for unknown concepts are skipped.

    Raises:
        ValueError: If the payload or a group value does not have that shape.
    """
    return ObservationsHolder(_build_record(list(payload), list(form_elements)))


def _build_record(payload: Any, elements: list[FormElement]) -> list[Observation]:
    if not isinstance(payload, list):
        raise ValueError(f"Expected a list of observations, got {type(payload).__name__}")

    observations = []
    for entry in payload:
        if not isinstance(entry, dict):
            raise ValueError(f"Expected an observation object, got {type(entry).__name__}")
        key = entry.get("concept")
        element = next(
            (e for e in elements if isinstance(key, str) and e.concept.matches(key)),
            None,
        )
        if element is None:
            logger.debug("Skipping observation for unknown concept: %s", key)
            continue

        value = entry.get("value")
        match element.kind:
            case FieldKind.REPEATING_QUESTION_GROUP:
                repetitions = value if value is not None else []
                if not isinstance(repetitions, list) or not all(
                    isinstance(group, list) for group in repetitions
                ):
                    raise ValueError(
                        f"Repeating question group '{element.name}' expects a list of "
                        "repetitions, each a list of observations"
                    )
                value = RepeatableQuestionGroup(
                    QuestionGroup(_build_record(group, elements)) for group in repetitions
                )
            case FieldKind.QUESTION_GROUP:
                value = QuestionGroup(
                    _build_record(value if value is not None else [], elements)
                )

        observations.append(Observation(element.concept, value))
    return observations
