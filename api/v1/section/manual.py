"""Manually configured section routes"""

import json
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import TypeAdapter

from core.logging_config import get_logger
from core.settings import settings
from schemas.manual_route import ManualRoute
from services.api_request import ApiRequest
from services.rest_orchestrator import RestOrchestrator
from .dependencies import get_manual_orchestrator
from .transport import get_api_request, to_response

logger = get_logger(__name__)

_routes_adapter = TypeAdapter(list[ManualRoute])


def load_manual_routes(path: Optional[str] = None) -> list[ManualRoute]:
    """Read route definitions from a JSON file holding a list of routes"""
    path = path or settings.MANUAL_ROUTES_FILE
    if not path:
        return []
    routes = _routes_adapter.validate_python(json.loads(Path(path).read_text(encoding="utf-8")))
    logger.info(f"Loaded {len(routes)} manual section routes from {path}")
    return routes


def _endpoint(route: ManualRoute):
    defaults = route.defaults_dict()

    def endpoint(
        api_request: ApiRequest = Depends(get_api_request),
        orchestrator: RestOrchestrator = Depends(get_manual_orchestrator),
    ):
        return to_response(orchestrator.dispatch(route.action.value, api_request, defaults))

    return endpoint


def build_manual_router(routes: list[ManualRoute]) -> APIRouter:
    router = APIRouter()
    for route in routes:
        router.add_api_route(
            route.path,
            _endpoint(route),
            methods=route.methods,
            name=route.name or f"manual_{route.action.value}_{route.path}",
        )
    return router
