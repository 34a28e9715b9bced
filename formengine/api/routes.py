"""
FastAPI routes for the formengine backend.

Endpoints:
- POST /filter      — apply rule-engine decisions to a form element group
- POST /validate    — filter, then validate the group against recorded answers
- POST /navigation  — paging information for one group of a form
- GET  /health      — health check
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from formengine.core.form import Form, FormElementGroup
from formengine.core.observations import build_observations_holder
from formengine.core.schema import FormElementStatus

logger = logging.getLogger(__name__)

router = APIRouter()

# Injected by the app factory
_include_debug = False


def configure_routes(include_debug: bool = False):
    """Set route options. Called by the app factory during startup."""
    global _include_debug
    _include_debug = include_debug


# --- Request / Response Models ---


class FilterRequest(BaseModel):
    """Request body for the /filter endpoint."""

    group: FormElementGroup
    statuses: list[FormElementStatus] = Field(default_factory=list)


class ValidateRequest(FilterRequest):
    """Request body for the /validate endpoint.

    `observations` is a list of `{"concept": uuid-or-name, "value": ...}`.
    """

    observations: list[dict[str, Any]] = Field(default_factory=list)


class NavigationRequest(BaseModel):
    """Request body for the /navigation endpoint."""

    form: Form
    group_uuid: str


# --- Endpoints ---


@router.post("/filter")
async def filter_elements(request: FilterRequest):
    """Return the applicable form element instances, in display order."""
    instances = request.group.filter_elements(request.statuses)
    return {"form_elements": [instance.to_json() for instance in instances]}


@router.post("/validate")
async def validate(request: ValidateRequest):
    """Validate the applicable elements of a group against recorded answers."""
    group = request.group
    filtered = group.filter_elements(request.statuses)
    try:
        observations_holder = build_observations_holder(
            request.observations, group.get_form_elements()
        )
    except ValueError as e:
        logger.warning("Rejected observations for group %s: %s", group.uuid, e)
        raise HTTPException(status_code=422, detail=str(e))

    try:
        results = group.validate(observations_holder, filtered)
    except Exception as e:
        logger.error("Error validating group %s: %s", group.uuid, e, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Error validating group: {str(e)}",
        )

    failures = [r for r in results if not r.success]
    logger.info(
        "Validated group %s: %d results, %d failures",
        group.uuid,
        len(results),
        len(failures),
    )

    response = {
        "success": not failures,
        "results": [result.to_json() for result in results],
    }
    if _include_debug:
        response["debug"] = {
            "filtered_count": len(filtered),
            "observation_count": len(observations_holder.observations),
        }
    return response


@router.post("/navigation")
async def navigation(request: NavigationRequest):
    """Describe one group of a form and its neighbours."""
    form = request.form
    group = next(
        (g for g in form.get_form_element_groups() if g.uuid == request.group_uuid),
        None,
    )
    if group is None:
        raise HTTPException(
            status_code=404,
            detail=f"Form element group '{request.group_uuid}' not found",
        )

    next_group = group.next(form)
    previous_group = group.previous(form)
    return {
        "group": group.to_json(),
        "styles": group.styles,
        "is_first": group.is_first,
        "is_last": group.is_last(form),
        "next_group_uuid": next_group.uuid if next_group else None,
        "previous_group_uuid": previous_group.uuid if previous_group else None,
    }


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
