"""Lifecycle events dispatched around every section API operation"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Iterable, Optional, Type, Union

import redis

from core.logging_config import get_logger
from services.api_request import ApiRequest, ApiResponse
from services.cache_service import CacheStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class Abort:
    """Returned by a listener to stop the operation with this response"""
    status_code: int
    body: Any = None


class ApiEvent:
    NAME: ClassVar[str] = ""


# Dispatched before anything is read or written

@dataclass(frozen=True)
class ApiBeforeEntryEvent(ApiEvent):
    request: ApiRequest
    section_handle: str


class ApiFetchEntry(ApiBeforeEntryEvent):
    NAME = "api.fetch.entry"


class ApiFetchEntries(ApiBeforeEntryEvent):
    NAME = "api.fetch.entries"


class ApiCreateEntry(ApiBeforeEntryEvent):
    NAME = "api.create.entry"


class ApiUpdateEntry(ApiBeforeEntryEvent):
    NAME = "api.update.entry"


class ApiDeleteEntry(ApiBeforeEntryEvent):
    NAME = "api.delete.entry"


class ApiFetchSectionInfo(ApiBeforeEntryEvent):
    NAME = "api.fetch.section.info"


# Dispatched once the response payload is built

@dataclass(frozen=True)
class ApiAfterEntryEvent(ApiEvent):
    request: ApiRequest
    response_data: Any
    response: ApiResponse
    entry: Any


class ApiEntryFetched(ApiAfterEntryEvent):
    NAME = "api.entry.fetched"


class ApiEntryCreated(ApiAfterEntryEvent):
    NAME = "api.entry.created"


class ApiEntryDeleted(ApiAfterEntryEvent):
    NAME = "api.entry.deleted"


class ApiBeforeEntrySavedAfterValidated(ApiAfterEntryEvent):
    NAME = "api.before.entry.saved.after.validated"


@dataclass(frozen=True)
class ApiEntriesFetched(ApiEvent):
    NAME: ClassVar[str] = "api.entries.fetched"

    request: ApiRequest
    response_data: Any
    response: ApiResponse
    entries: list


@dataclass(frozen=True)
class ApiUpdatedEntryEvent(ApiEvent):
    request: ApiRequest
    response_data: Any
    response: ApiResponse
    original_entry: Any
    new_entry: Any


class ApiEntryUpdated(ApiUpdatedEntryEvent):
    NAME = "api.entry.updated"


class ApiBeforeEntryUpdatedAfterValidated(ApiUpdatedEntryEvent):
    NAME = "api.before.entry.updated.after.validated"


@dataclass(frozen=True)
class ApiSectionInfoFetched(ApiEvent):
    NAME: ClassVar[str] = "api.section.info.fetched"

    request: ApiRequest
    response_data: Any
    response: ApiResponse
    section_handle: str


Listener = Callable[[ApiEvent], Optional[Abort]]


class HookRegistry:
    """
    Ordered listeners per event name.

    ``dispatch`` runs every listener for the event in registration order
    and returns the first ``Abort`` any of them produced.
    """

    def __init__(self):
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def register(self, event: Union[Type[ApiEvent], str], listener: Listener) -> None:
        name = event if isinstance(event, str) else event.NAME
        self._listeners[name].append(listener)

    def dispatch(self, event: ApiEvent) -> Optional[Abort]:
        abort = None
        for listener in self._listeners.get(event.NAME, []):
            result = listener(event)
            if isinstance(result, Abort) and abort is None:
                logger.info_ctx("Listener requested abort", event=event.NAME, status_code=result.status_code)
                abort = result
        return abort


class InvalidateCacheOnWrite:
    """Drops cached payloads of an entity class after one of its entries changed"""

    EVENTS: ClassVar[tuple] = (ApiEntryCreated, ApiEntryUpdated, ApiEntryDeleted)

    def __init__(self, store: CacheStore):
        self.store = store

    def __call__(self, event: ApiEvent) -> None:
        entry = getattr(event, "entry", None) or getattr(event, "new_entry", None)
        if entry is None or not hasattr(entry, "qualified_name"):
            return None
        if isinstance(event.response_data, dict) and event.response_data.get("success") is False:
            return None
        try:
            self.store.invalidate(entry.qualified_name())
        except redis.RedisError as e:
            logger.error_ctx(f"Cache invalidation failed: {e}", entity=entry.qualified_name())
            return None
        logger.debug(f"Invalidated cached payloads for {entry.qualified_name()}")
        return None

    def register(self, hooks: HookRegistry, events: Iterable[Type[ApiEvent]] = EVENTS) -> HookRegistry:
        for event in events:
            hooks.register(event, self)
        return hooks
