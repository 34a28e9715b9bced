"""
Shared fixtures for the formengine test suite.

Provides a small "visit" page: a mandatory name, a repeating visits group
with weight and notes children, and a voided element that must never
surface.
"""

import pytest

from formengine.core.form import Form, FormElementGroup
from formengine.core.schema import Concept, FormElement


@pytest.fixture
def visits_group() -> FormElementGroup:
    """A page with a scalar, a repeating question group and its children."""
    return FormElementGroup(
        uuid="page-1",
        name="Visit details",
        display_order=1,
        form_uuid="form-1",
        form_elements=[
            FormElement(
                uuid="weight",
                name="Weight",
                display_order=3,
                mandatory=True,
                group_uuid="visits",
                concept=Concept(
                    uuid="c-weight",
                    name="Weight",
                    datatype="Numeric",
                    low_absolute=0,
                    high_absolute=300,
                ),
            ),
            FormElement(
                uuid="name",
                name="Name",
                display_order=1,
                mandatory=True,
                concept=Concept(uuid="c-name", name="Name", datatype="Text"),
            ),
            FormElement(
                uuid="visits",
                name="Visits",
                display_order=2,
                repeatable=True,
                concept=Concept(uuid="c-visits", name="Visits", datatype="QuestionGroup"),
            ),
            FormElement(
                uuid="notes",
                name="Notes",
                display_order=4,
                group_uuid="visits",
                concept=Concept(uuid="c-notes", name="Notes", datatype="Notes"),
            ),
            FormElement(
                uuid="old",
                name="Old question",
                display_order=2,
                voided=True,
                concept=Concept(uuid="c-old", name="Old question", datatype="Text"),
            ),
        ],
    )


@pytest.fixture
def three_page_form() -> Form:
    """A form whose groups are listed out of order."""
    return Form(
        uuid="form-1",
        name="Registration",
        form_element_groups=[
            FormElementGroup(uuid="p3", name="Third", display_order=3),
            FormElementGroup(uuid="p1", name="First", display_order=1),
            FormElementGroup(uuid="p2", name="Second", display_order=2),
        ],
    )
