"""Wiring of the section API orchestrator per request"""

from typing import Callable, Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from core.auth import get_auth_provider
from core.settings import settings
from db.session import get_db
from repositories.entry_repository import EntryRepository
from repositories.section_repository import SectionRepository
from services.cache_service import get_cache_store
from services.entity_registry import get_entity_registry
from services.entry_resolver import EntryResolver
from services.events import HookRegistry, InvalidateCacheOnWrite
from services.form_service import get_form_service
from services.relationship_hydrator import RelationshipErrorPolicy
from services.rest_orchestrator import AUTO, INFO, INLINE_ERROR_INFO, MANUAL, ControllerVariant, RestOrchestrator
from services.section_info_service import SectionInfoService
from services.serializer import Serializer, get_trigger_registry


_hook_registry: Optional[HookRegistry] = None


def get_hook_registry() -> HookRegistry:
    """
    Get the process wide hook registry.

    Applications register their listeners here; cache invalidation on
    writes is registered when the registry is created.
    """
    global _hook_registry
    if _hook_registry is None:
        _hook_registry = InvalidateCacheOnWrite(get_cache_store()).register(HookRegistry())
    return _hook_registry


def reset_hook_registry():
    """Reset the registry instance (useful for testing)."""
    global _hook_registry
    _hook_registry = None


def info_variant() -> ControllerVariant:
    if RelationshipErrorPolicy(settings.RELATIONSHIP_ERROR_POLICY) == RelationshipErrorPolicy.INLINE_ERROR:
        return INLINE_ERROR_INFO
    return INFO


def build_orchestrator(db: Session, variant: ControllerVariant) -> RestOrchestrator:
    entities = get_entity_registry()
    sections = SectionRepository(db)
    storage = EntryRepository(db, sections, entities)

    return RestOrchestrator(
        sections=sections,
        resolver=EntryResolver(storage, get_form_service(storage)),
        info=SectionInfoService(storage, entities, variant.relationship_error_policy),
        serializer=Serializer(triggers=get_trigger_registry()),
        cache_store=get_cache_store(),
        hooks=get_hook_registry(),
        identity=get_auth_provider(),
        variant=variant,
        allowed_origins=settings.allowed_origins,
    )


def orchestrator_for(variant: Callable[[], ControllerVariant]):
    """Dependency building an orchestrator for the variant returned by ``variant``"""

    def dependency(db: Session = Depends(get_db)) -> RestOrchestrator:
        return build_orchestrator(db, variant())

    return dependency


get_auto_orchestrator = orchestrator_for(lambda: AUTO)
get_manual_orchestrator = orchestrator_for(lambda: MANUAL)
get_info_orchestrator = orchestrator_for(info_variant)
