"""Section info endpoints - field configuration for building entry forms"""

from fastapi import APIRouter, Depends

from services.api_request import ApiRequest
from services.rest_orchestrator import RestOrchestrator
from .dependencies import get_info_orchestrator
from .transport import get_api_request, to_response

router = APIRouter()


@router.api_route("/section/info/{handle}", methods=["GET", "OPTIONS"])
def get_section_info(
    handle: str,
    api_request: ApiRequest = Depends(get_api_request),
    orchestrator: RestOrchestrator = Depends(get_info_orchestrator),
):
    """
    Get the fields of a section in declared order.

    Relationship fields include the entries that can be related. Use
    ``options=field|limit:5|offset:10`` to page them, ``field:F|value:V``
    or ``join:J|value:V`` to restrict them.
    """
    return to_response(orchestrator.get_info(api_request, handle))


@router.api_route("/section/info/{handle}/slug/{slug}", methods=["GET", "OPTIONS"])
def get_section_info_by_slug(
    handle: str,
    slug: str,
    api_request: ApiRequest = Depends(get_api_request),
    orchestrator: RestOrchestrator = Depends(get_info_orchestrator),
):
    """Section info with the values of the entry with this slug"""
    return to_response(orchestrator.get_info_by_slug(api_request, handle, slug))


@router.api_route("/section/info/{handle}/{id}", methods=["GET", "OPTIONS"])
def get_section_info_for_entry(
    handle: str,
    id: str,
    api_request: ApiRequest = Depends(get_api_request),
    orchestrator: RestOrchestrator = Depends(get_info_orchestrator),
):
    """
    Section info with the values of one entry.

    Related entries already associated with the entry are marked
    ``selected``.
    """
    return to_response(orchestrator.get_info(api_request, handle, id))
