"""
Schema association errors.

Raised while wiring child entities into their parents (a form owns groups,
a group owns form elements). These are programmer/schema errors: they abort
loading and are never turned into validation outcomes.
"""

from enum import Enum


class AssociationErrorKind(str, Enum):
    """Parent/child pairs that can fail to associate, with their stable codes."""

    FORM_ELEMENT_GROUP_FORM = "Association error 02"
    FORM_ELEMENT_FORM_ELEMENT_GROUP = "Association error 03"
    CONCEPT_ANSWER_CONCEPT = "Association error 04"

    @property
    def code(self) -> str:
        return self.value


class UnsupportedAssociationError(Exception):
    """Raised when a parent is asked to adopt a child kind it does not own.

    Args:
        kind: Which association was being wired.
        child_type: Name of the offending child class.
        parent_type: Name of the parent class that rejected it.
    """

    def __init__(self, kind: AssociationErrorKind, child_type: str, parent_type: str):
        self.kind = kind
        self.child_type = child_type
        self.parent_type = parent_type
        self.message = f"{child_type} not supported by {parent_type}"
        super().__init__(f"{kind.code}: {self.message}")

    @property
    def code(self) -> str:
        return self.kind.code
