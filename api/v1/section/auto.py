"""Section API endpoints - read and write entries of any configured section"""

from fastapi import APIRouter, Depends

from services.api_request import ApiRequest
from services.rest_orchestrator import RestOrchestrator
from .dependencies import get_auto_orchestrator
from .transport import get_api_request, to_response

router = APIRouter()


@router.api_route("/section/{handle}/id/{id}", methods=["GET", "OPTIONS"])
def get_entry_by_id(
    handle: str,
    id: str,
    api_request: ApiRequest = Depends(get_api_request),
    orchestrator: RestOrchestrator = Depends(get_auto_orchestrator),
):
    """
    Get one entry by id.

    Query parameters:
    - fields: comma separated properties to include (default: id)
    - depth: how many levels of related entries to include
    """
    return to_response(orchestrator.get_by_id(api_request, handle, id))


@router.api_route("/section/{handle}/slug/{slug}", methods=["GET", "OPTIONS"])
def get_entry_by_slug(
    handle: str,
    slug: str,
    api_request: ApiRequest = Depends(get_api_request),
    orchestrator: RestOrchestrator = Depends(get_auto_orchestrator),
):
    """Get one entry by slug"""
    return to_response(orchestrator.get_by_slug(api_request, handle, slug))


@router.api_route("/section/{handle}/{field_handle}", methods=["GET", "OPTIONS"])
def get_entries_by_field_value(
    handle: str,
    field_handle: str,
    api_request: ApiRequest = Depends(get_api_request),
    orchestrator: RestOrchestrator = Depends(get_auto_orchestrator),
):
    """
    Get entries where a field matches ``value``.

    ``value`` may be a comma separated list. The field handle may name a
    relationship followed by a field of the related section, separated
    by colons (``author:slug``).
    """
    return to_response(orchestrator.get_by_field_value(api_request, handle, field_handle))


@router.api_route("/sections/{handle}", methods=["GET", "OPTIONS"])
def list_entries(
    handle: str,
    api_request: ApiRequest = Depends(get_api_request),
    orchestrator: RestOrchestrator = Depends(get_auto_orchestrator),
):
    """List entries; supports offset, limit, orderBy and sort"""
    return to_response(orchestrator.get_list(api_request, handle))


@router.api_route("/section/{handle}", methods=["POST", "OPTIONS"])
def create_entry(
    handle: str,
    api_request: ApiRequest = Depends(get_api_request),
    orchestrator: RestOrchestrator = Depends(get_auto_orchestrator),
):
    """Create an entry from a JSON or form encoded body"""
    return to_response(orchestrator.create(api_request, handle))


@router.put("/section/{handle}/id/{id}")
def update_entry_by_id(
    handle: str,
    id: str,
    api_request: ApiRequest = Depends(get_api_request),
    orchestrator: RestOrchestrator = Depends(get_auto_orchestrator),
):
    """Update an entry; fields missing from the body keep their value"""
    return to_response(orchestrator.update_by_id(api_request, handle, id))


@router.put("/section/{handle}/slug/{slug}")
def update_entry_by_slug(
    handle: str,
    slug: str,
    api_request: ApiRequest = Depends(get_api_request),
    orchestrator: RestOrchestrator = Depends(get_auto_orchestrator),
):
    return to_response(orchestrator.update_by_slug(api_request, handle, slug))


@router.delete("/section/{handle}/id/{id}")
def delete_entry_by_id(
    handle: str,
    id: str,
    api_request: ApiRequest = Depends(get_api_request),
    orchestrator: RestOrchestrator = Depends(get_auto_orchestrator),
):
    return to_response(orchestrator.delete_by_id(api_request, handle, id))


@router.delete("/section/{handle}/slug/{slug}")
def delete_entry_by_slug(
    handle: str,
    slug: str,
    api_request: ApiRequest = Depends(get_api_request),
    orchestrator: RestOrchestrator = Depends(get_auto_orchestrator),
):
    return to_response(orchestrator.delete_by_slug(api_request, handle, slug))
