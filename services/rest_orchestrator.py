"""REST orchestrator - the step sequence behind every section API operation"""

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from core.auth.base import AnonymousAuthProvider, AuthProvider
from core.logging_config import get_logger
from models.entry import CommonSection
from repositories.section_repository import SectionRepository
from services.api_request import ApiRequest, ApiResponse
from services.cache_service import CacheGate, CacheStore
from services.entry_resolver import EntryResolver
from services.events import (
    Abort,
    ApiBeforeEntrySavedAfterValidated,
    ApiBeforeEntryUpdatedAfterValidated,
    ApiCreateEntry,
    ApiDeleteEntry,
    ApiEntriesFetched,
    ApiEntryCreated,
    ApiEntryDeleted,
    ApiEntryFetched,
    ApiEntryUpdated,
    ApiFetchEntries,
    ApiFetchEntry,
    ApiFetchSectionInfo,
    ApiSectionInfoFetched,
    ApiUpdateEntry,
    HookRegistry,
)
from services.exceptions import (
    EntryNotFoundError,
    InvalidCacheKeyError,
    PersistenceFailedError,
    SectionNotFoundError,
)
from services.read_options import ReadOptions
from services.relationship_hydrator import RelationshipErrorPolicy
from services.section_info_service import SectionInfoService
from services.serializer import Serializer
from utils.access_control import allowed_origin

logger = get_logger(__name__)

ALLOWED_HTTP_METHODS = "OPTIONS, GET, POST, PUT, DELETE"
ALLOWED_HEADERS = "token"

CACHE_CONTEXT_GET_ENTRY_BY_ID = "get.entry.by.id"
CACHE_CONTEXT_GET_ENTRY_BY_SLUG = "get.entry.by.slug"
CACHE_CONTEXT_GET_ENTRIES_BY_FIELD_VALUE = "get.entries.by.field.value"
CACHE_CONTEXT_GET_ENTRIES = "get.entries"
CACHE_CONTEXT_SECTION_INFO = "section.info"

DEFAULT_OFFSET = 0
DEFAULT_LIMIT = 100
DEFAULT_ORDER_BY = "created"
DEFAULT_SORT = "DESC"

INVALID_ROUTING = "invalid_routing_configuration"


@dataclass(frozen=True)
class ControllerVariant:
    """
    How one controller flavour names its cache contexts and treats
    relationship lookups that find nothing.
    """
    name: str
    relationship_error_policy: RelationshipErrorPolicy = RelationshipErrorPolicy.EMPTY

    def cache_context(self, label: str, user: Optional[str] = None) -> str:
        if label != CACHE_CONTEXT_SECTION_INFO:
            return label
        context = f"{self.name}.{label}"
        return f"{context}.{user}" if user else context


AUTO = ControllerVariant("auto")
MANUAL = ControllerVariant("manual")
INFO = ControllerVariant("info")
INLINE_ERROR_INFO = ControllerVariant("info", RelationshipErrorPolicy.INLINE_ERROR)


class RestOrchestrator:
    """
    Runs one section API operation from preflight to response.

    Every operation returns an ``ApiResponse``; domain errors are turned
    into ``{"error": message}`` responses (404 for missing sections and
    entries, 400 otherwise) so nothing escapes to the transport.
    """

    def __init__(
        self,
        sections: SectionRepository,
        resolver: EntryResolver,
        info: SectionInfoService,
        serializer: Serializer,
        cache_store: CacheStore,
        hooks: Optional[HookRegistry] = None,
        identity: Optional[AuthProvider] = None,
        variant: ControllerVariant = AUTO,
        allowed_origins: Optional[list[str]] = None
    ):
        self.sections = sections
        self.resolver = resolver
        self.info = info
        self.serializer = serializer
        self.cache_store = cache_store
        self.hooks = hooks or HookRegistry()
        self.identity = identity or AnonymousAuthProvider()
        self.variant = variant
        self.allowed_origins = allowed_origins

    # Responses

    def default_headers(self, request: ApiRequest) -> dict[str, str]:
        return {
            "Access-Control-Allow-Origin": allowed_origin(request.origin, self.allowed_origins),
            "Access-Control-Allow-Credentials": "true",
        }

    def preflight(self, request: ApiRequest) -> Optional[ApiResponse]:
        if not request.is_preflight:
            return None
        headers = self.default_headers(request)
        headers["Access-Control-Allow-Methods"] = ALLOWED_HTTP_METHODS
        headers["Access-Control-Allow-Headers"] = ALLOWED_HEADERS
        return ApiResponse(200, None, headers)

    def abort_response(self, request: ApiRequest, abort: Abort) -> ApiResponse:
        return ApiResponse(abort.status_code, abort.body, self.default_headers(request))

    def error_response(self, request: ApiRequest, exception: Exception) -> ApiResponse:
        if isinstance(exception, (EntryNotFoundError, SectionNotFoundError)):
            status_code = 404
            logger.info_ctx(str(exception), path=request.path)
        else:
            status_code = 400
            logger.warning_ctx(f"Request failed: {exception}", path=request.path, error=type(exception).__name__)
        return ApiResponse(status_code, {"error": str(exception)}, self.default_headers(request))

    def _dispatch(self, event) -> Optional[ApiResponse]:
        abort = self.hooks.dispatch(event)
        return self.abort_response(event.request, abort) if abort else None

    # Cache

    def _requested_fields(self, request: ApiRequest) -> Optional[list[str]]:
        fields = request.get("fields")
        if isinstance(fields, str):
            return [name.strip() for name in fields.split(",")]
        return list(fields) if fields is not None else None

    def _start_cache(self, request: ApiRequest, entity_class: str, context: str, discriminator: Any = None) -> CacheGate:
        gate = CacheGate(self.cache_store)
        try:
            gate.start(entity_class, self._requested_fields(request), context, discriminator)
        except InvalidCacheKeyError as e:
            logger.warning_ctx(f"Caching disabled for request: {e}", path=request.path)
        return gate

    def _cached(self, request: ApiRequest, gate: CacheGate) -> Optional[ApiResponse]:
        if not gate.is_hit():
            return None
        logger.debug_ctx("Cache hit", path=request.path, key=gate.key)
        return ApiResponse(200, gate.get(), self.default_headers(request))

    # Reads

    def get_by_id(self, request: ApiRequest, section_handle: str, entry_id: Any) -> ApiResponse:
        return self._fetch_entry(
            request, section_handle, CACHE_CONTEXT_GET_ENTRY_BY_ID, {ReadOptions.ID: entry_id},
            lambda: self.resolver.by_id(section_handle, entry_id)
        )

    def get_by_slug(self, request: ApiRequest, section_handle: str, slug: str) -> ApiResponse:
        return self._fetch_entry(
            request, section_handle, CACHE_CONTEXT_GET_ENTRY_BY_SLUG, {ReadOptions.SLUG: slug},
            lambda: self.resolver.by_slug(section_handle, slug)
        )

    def get_by_field_value(self, request: ApiRequest, section_handle: str, field_handle: str) -> ApiResponse:
        handles = field_handle.split(":")
        handle, relate = handles[0], handles[1:]

        value: Any = str(request.get("value", ""))
        if "," in value:
            value = value.split(",")

        def read():
            offset, limit, order_by = self._paging(request)
            return self.resolver.by_field_value(section_handle, handle, value, relate, offset, limit, order_by)

        return self._fetch_entries(
            request, section_handle, CACHE_CONTEXT_GET_ENTRIES_BY_FIELD_VALUE,
            {"field": field_handle, "value": value, **self._paging_key(request)}, read
        )

    def get_list(self, request: ApiRequest, section_handle: str) -> ApiResponse:
        def read():
            offset, limit, order_by = self._paging(request)
            return self.resolver.listing(section_handle, offset, limit, order_by)

        return self._fetch_entries(
            request, section_handle, CACHE_CONTEXT_GET_ENTRIES, self._paging_key(request), read
        )

    def _paging(self, request: ApiRequest) -> tuple[int, int, dict[str, str]]:
        offset = int(request.get("offset") or DEFAULT_OFFSET)
        limit = int(request.get("limit") or DEFAULT_LIMIT)
        order_by = request.get("orderBy") or DEFAULT_ORDER_BY
        sort = request.get("sort") or DEFAULT_SORT
        return offset, limit, {order_by: str(sort).lower()}

    def _paging_key(self, request: ApiRequest) -> dict[str, Any]:
        return {
            name: request.get(name)
            for name in ("offset", "limit", "orderBy", "sort", "depth")
        }

    def _fetch_entry(
        self,
        request: ApiRequest,
        section_handle: str,
        context: str,
        selector: Mapping[str, Any],
        read: Callable[[], CommonSection]
    ) -> ApiResponse:
        response = self.preflight(request)
        if response:
            return response
        response = self._dispatch(ApiFetchEntry(request, section_handle))
        if response:
            return response

        try:
            section = self.sections.read_by_handle(section_handle)
            gate = self._start_cache(request, section.entity_class, context, {**selector, "depth": request.get("depth")})
            response = self._cached(request, gate)
            if response:
                return response

            entry = read()
            data = self.serializer.to_array(request, entry)
            response = ApiResponse(200, data, self.default_headers(request))

            abort = self._dispatch(ApiEntryFetched(request, data, response, entry))
            if abort:
                return abort

            gate.set(data)
            return response
        except Exception as e:
            return self.error_response(request, e)

    def _fetch_entries(
        self,
        request: ApiRequest,
        section_handle: str,
        context: str,
        discriminator: Mapping[str, Any],
        read: Callable[[], list[CommonSection]]
    ) -> ApiResponse:
        response = self.preflight(request)
        if response:
            return response
        response = self._dispatch(ApiFetchEntries(request, section_handle))
        if response:
            return response

        try:
            section = self.sections.read_by_handle(section_handle)
            gate = self._start_cache(request, section.entity_class, context, dict(discriminator))
            response = self._cached(request, gate)
            if response:
                return response

            entries = list(read())
            data = [
                self.serializer.to_array(request, entry) if isinstance(entry, CommonSection) else entry
                for entry in entries
            ]
            response = ApiResponse(200, data, self.default_headers(request))

            abort = self._dispatch(ApiEntriesFetched(request, data, response, entries))
            if abort:
                return abort

            gate.set(data)
            return response
        except Exception as e:
            return self.error_response(request, e)

    # Writes

    def create(self, request: ApiRequest, section_handle: str) -> ApiResponse:
        response = self.preflight(request)
        if response:
            return response
        response = self._dispatch(ApiCreateEntry(request, section_handle))
        if response:
            return response

        try:
            response_data: dict[str, Any] = {"code": 200}
            form = self.resolver.build_form(section_handle, request)
            form.submit(dict(request.body))
            response = ApiResponse(200, response_data, self.default_headers(request))

            if not form.is_valid():
                return self._invalid(response, response_data, form)

            entry = form.get_data()
            abort = self._dispatch(ApiBeforeEntrySavedAfterValidated(request, dict(response_data), response, entry))
            if abort:
                return abort

            try:
                response_data = self._save(request, entry, response_data)
            except PersistenceFailedError as e:
                return ApiResponse(500, {"code": 500, "exception": str(e)}, self.default_headers(request))
            response.data = response_data

            abort = self._dispatch(ApiEntryCreated(request, response_data, response, entry))
            if abort:
                return abort
            return response
        except Exception as e:
            return self.error_response(request, e)

    def update_by_id(self, request: ApiRequest, section_handle: str, entry_id: Any) -> ApiResponse:
        return self._update(request, section_handle, {ReadOptions.ID: entry_id})

    def update_by_slug(self, request: ApiRequest, section_handle: str, slug: str) -> ApiResponse:
        return self._update(request, section_handle, {ReadOptions.SLUG: slug})

    def _update(self, request: ApiRequest, section_handle: str, selector: Mapping[str, Any]) -> ApiResponse:
        response = self.preflight(request)
        if response:
            return response
        response = self._dispatch(ApiUpdateEntry(request, section_handle))
        if response:
            return response

        try:
            response_data: dict[str, Any] = {"code": 200}
            form = self.resolver.build_form(section_handle, request, prefill=selector)
            original_entry = self.resolver.one(section_handle, selector).clone()
            form.submit(dict(request.body), clear_missing=False)
            response = ApiResponse(200, response_data, self.default_headers(request))

            if not form.is_valid():
                return self._invalid(response, response_data, form)

            new_entry = form.get_data()
            abort = self._dispatch(ApiBeforeEntryUpdatedAfterValidated(
                request, dict(response_data), response, original_entry, new_entry
            ))
            if abort:
                return abort

            try:
                response_data = self._save(request, new_entry, response_data)
            except PersistenceFailedError as e:
                return ApiResponse(500, {"code": 500, "exception": str(e)}, self.default_headers(request))
            response.data = response_data

            abort = self._dispatch(ApiEntryUpdated(request, response_data, response, original_entry, new_entry))
            if abort:
                return abort
            return response
        except Exception as e:
            return self.error_response(request, e)

    def _invalid(self, response: ApiResponse, response_data: dict, form) -> ApiResponse:
        response_data["errors"] = form.get_errors()
        response_data["code"] = 400
        response.status_code = 400
        response.data = response_data
        return response

    def _save(self, request: ApiRequest, entry: CommonSection, response_data: dict) -> dict:
        try:
            self.resolver.save(entry)
        except Exception as e:
            logger.error_ctx(f"Failed to save entry: {e}", path=request.path, entity=type(entry).__name__)
            raise PersistenceFailedError(str(e)) from e
        return {
            **response_data,
            "success": True,
            "errors": False,
            "code": 200,
            "entry": self.serializer.to_array(request, entry),
        }

    def delete_by_id(self, request: ApiRequest, section_handle: str, entry_id: Any) -> ApiResponse:
        return self._delete(request, section_handle, {ReadOptions.ID: entry_id})

    def delete_by_slug(self, request: ApiRequest, section_handle: str, slug: str) -> ApiResponse:
        return self._delete(request, section_handle, {ReadOptions.SLUG: slug})

    def _delete(self, request: ApiRequest, section_handle: str, selector: Mapping[str, Any]) -> ApiResponse:
        response = self.preflight(request)
        if response:
            return response
        response = self._dispatch(ApiDeleteEntry(request, section_handle))
        if response:
            return response

        try:
            entry = self.resolver.one(section_handle, selector)
            success = self.resolver.delete(entry)
            data = {"success": success}
            response = ApiResponse(200 if success else 404, data, self.default_headers(request))

            abort = self._dispatch(ApiEntryDeleted(request, data, response, entry))
            if abort:
                return abort
            return response
        except Exception as e:
            return self.error_response(request, e)

    # Section info

    def get_info(self, request: ApiRequest, section_handle: str, entry_id: Any = None) -> ApiResponse:
        response = self.preflight(request)
        if response:
            return response
        response = self._dispatch(ApiFetchSectionInfo(request, section_handle))
        if response:
            return response

        try:
            section = self.sections.read_by_handle(section_handle)
            user = self.identity.get_current_user(request.token)
            gate = self._start_cache(
                request,
                section.entity_class,
                self.variant.cache_context(CACHE_CONTEXT_SECTION_INFO, user),
                {"id": entry_id, "options": request.get("options")}
            )
            response = self._cached(request, gate)
            if response:
                return response

            info = self.info.build(
                section,
                allow_list=self._requested_fields(request),
                options=request.get("options"),
                entry_id=int(entry_id) if entry_id is not None else None
            )
            data = info.data
            response = ApiResponse(200, data, self.default_headers(request))

            if entry_id is not None:
                entry = self.resolver.by_id(section_handle, entry_id)
                data = info.map_entry(entry)
                response.data = data
                abort = self._dispatch(ApiEntryFetched(request, data, response, entry))
                if abort:
                    return abort

            abort = self._dispatch(ApiSectionInfoFetched(request, data, response, section_handle))
            if abort:
                return abort

            gate.set(data)
            return response
        except Exception as e:
            return self.error_response(request, e)

    def get_info_by_slug(self, request: ApiRequest, section_handle: str, slug: str) -> ApiResponse:
        response = self.preflight(request)
        if response:
            return response
        try:
            entry = self.resolver.by_slug(section_handle, slug)
        except Exception as e:
            return self.error_response(request, e)
        return self.get_info(request, section_handle, entry.id)

    # Manually configured routes

    def dispatch(self, action: str, request: ApiRequest, defaults: Optional[Mapping[str, Any]] = None) -> ApiResponse:
        """
        Run the operation a manually configured route points at.

        Route defaults override request parameters; ``section_handle``,
        ``id``, ``slug`` and ``field_handle`` select the operation.
        """
        defaults = {key: value for key, value in (defaults or {}).items() if value is not None}
        section_handle = defaults.pop("section_handle", None) or request.get("section_handle")
        entry_id = defaults.pop("id", None) or request.get("id")
        slug = defaults.pop("slug", None) or request.get("slug")
        field_handle = defaults.pop("field_handle", None) or request.get("field_handle")
        if "order_by" in defaults:
            defaults["orderBy"] = defaults.pop("order_by")
        request = request.with_params(defaults)

        if request.is_preflight:
            return self.preflight(request)

        method = request.method.upper()
        if section_handle:
            if action == "get" and method == "GET":
                if entry_id is not None:
                    return self.get_by_id(request, section_handle, entry_id)
                if slug is not None:
                    return self.get_by_slug(request, section_handle, slug)
                if field_handle is not None:
                    return self.get_by_field_value(request, section_handle, field_handle)
                return self.get_list(request, section_handle)
            if action == "post" and method == "POST":
                return self.create(request, section_handle)
            if action == "put" and method == "PUT":
                if entry_id is not None:
                    return self.update_by_id(request, section_handle, entry_id)
                if slug is not None:
                    return self.update_by_slug(request, section_handle, slug)
            if action == "delete" and method == "DELETE":
                if entry_id is not None:
                    return self.delete_by_id(request, section_handle, entry_id)
                if slug is not None:
                    return self.delete_by_slug(request, section_handle, slug)
            if action == "info" and method == "GET":
                if entry_id is not None:
                    return self.get_info(request, section_handle, entry_id)
                if slug is not None:
                    return self.get_info_by_slug(request, section_handle, slug)
                return self.get_info(request, section_handle)

        return ApiResponse(400, {"error": INVALID_ROUTING}, self.default_headers(request))
