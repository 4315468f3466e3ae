import pytest
from unittest.mock import Mock

from entities.blog import Post
from schemas.section import SectionRead
from services.api_request import ApiRequest
from services.cache_service import MemoryCacheStore
from services.events import (
    Abort,
    ApiBeforeEntryUpdatedAfterValidated,
    ApiEntriesFetched,
    ApiEntryCreated,
    ApiEntryFetched,
    ApiFetchEntry,
    ApiFetchSectionInfo,
    ApiSectionInfoFetched,
    HookRegistry,
)
from services.exceptions import EntryNotFoundError, SectionNotFoundError
from services.rest_orchestrator import INFO, MANUAL, RestOrchestrator


@pytest.mark.unit
class TestRestOrchestrator:

    def setup_method(self):
        self.section = SectionRead(handle="post", name="Blog post", entity_class="entities.blog.Post")
        self.sections = Mock()
        self.sections.read_by_handle.return_value = self.section

        self.entry = Mock(spec=Post)
        self.entry.id = 1
        self.resolver = Mock()
        self.resolver.by_id.return_value = self.entry
        self.resolver.by_slug.return_value = self.entry
        self.resolver.one.return_value = self.entry
        self.resolver.listing.return_value = [self.entry]
        self.resolver.by_field_value.return_value = [self.entry]

        self.info = Mock()
        self.serializer = Mock()
        self.serializer.to_array.return_value = {"id": 1}
        self.store = MemoryCacheStore()
        self.hooks = HookRegistry()
        self.identity = Mock()
        self.identity.get_current_user.return_value = None

        self.orchestrator = RestOrchestrator(
            self.sections, self.resolver, self.info, self.serializer, self.store,
            hooks=self.hooks, identity=self.identity, allowed_origins=["https://app.example.com"],
        )

    def _form(self, valid=True, errors=None):
        form = Mock()
        form.is_valid.return_value = valid
        form.get_errors.return_value = errors or {}
        form.get_data.return_value = self.entry
        self.resolver.build_form.return_value = form
        return form

    # Responses

    def test_preflight_short_circuits(self):
        """Test preflight short circuits."""
        listener = Mock()
        self.hooks.register(ApiFetchEntry, listener)

        response = self.orchestrator.get_by_id(ApiRequest(method="OPTIONS"), "post", 1)

        assert response.status_code == 200
        assert response.data is None
        assert response.headers["Access-Control-Allow-Methods"] == "OPTIONS, GET, POST, PUT, DELETE"
        assert response.headers["Access-Control-Allow-Headers"] == "token"
        listener.assert_not_called()
        self.resolver.by_id.assert_not_called()

    def test_allowed_origin_is_echoed(self):
        """Test allowed origin is echoed."""
        response = self.orchestrator.get_by_id(ApiRequest(origin="https://app.example.com"), "post", 1)

        assert response.headers["Access-Control-Allow-Origin"] == "https://app.example.com"
        assert response.headers["Access-Control-Allow-Credentials"] == "true"

    def test_other_origins_get_null(self):
        """Test other origins get null."""
        response = self.orchestrator.get_by_id(ApiRequest(origin="https://evil.example.com"), "post", 1)

        assert response.headers["Access-Control-Allow-Origin"] == "null"

    # Reads

    def test_get_by_id(self):
        """Test getting an entry by id serializes and caches it."""
        response = self.orchestrator.get_by_id(ApiRequest(params={"fields": "id"}), "post", 1)

        assert response.status_code == 200
        assert response.data == {"id": 1}
        self.resolver.by_id.assert_called_once_with("post", 1)

    def test_get_by_id_not_found(self):
        """Test get by id not found."""
        self.resolver.by_id.side_effect = EntryNotFoundError()

        response = self.orchestrator.get_by_id(ApiRequest(), "sexyHandle", 90000)

        assert response.status_code == 404
        assert response.data == {"error": "Entry not found"}
        assert response.headers["Access-Control-Allow-Origin"] == "null"

    def test_unknown_section_is_not_found(self):
        """Test unknown section is not found."""
        self.sections.read_by_handle.side_effect = SectionNotFoundError("nope")

        response = self.orchestrator.get_by_slug(ApiRequest(), "nope", "first-post")

        assert response.status_code == 404
        assert response.data == {"error": "Section not found: nope"}

    def test_generic_error_is_bad_request(self):
        """Test generic error is bad request."""
        self.resolver.by_id.side_effect = ValueError("invalid literal for int()")

        response = self.orchestrator.get_by_id(ApiRequest(), "post", "abc")

        assert response.status_code == 400
        assert response.data == {"error": "invalid literal for int()"}

    def test_warm_cache_skips_resolver_and_after_events(self):
        """Test warm cache skips resolver and after events."""
        fetched = Mock(return_value=None)
        self.hooks.register(ApiEntryFetched, fetched)
        request = ApiRequest(params={"fields": "id"})

        first = self.orchestrator.get_by_id(request, "post", 1)
        second = self.orchestrator.get_by_id(request, "post", 1)

        assert second.data == first.data
        self.resolver.by_id.assert_called_once()
        fetched.assert_called_once()

    def test_different_depth_is_cached_separately(self):
        """Test different depth is cached separately."""
        self.orchestrator.get_by_id(ApiRequest(params={"depth": "1"}), "post", 1)
        self.orchestrator.get_by_id(ApiRequest(params={"depth": "2"}), "post", 1)

        assert self.resolver.by_id.call_count == 2

    def test_unserializable_cache_key_fails_open(self):
        """Test unserializable cache key fails open."""
        request = ApiRequest(params={"depth": object()})

        first = self.orchestrator.get_by_id(request, "post", 1)
        second = self.orchestrator.get_by_id(request, "post", 1)

        assert first.status_code == second.status_code == 200
        assert self.resolver.by_id.call_count == 2

    def test_before_abort_stops_the_operation(self):
        """Test before abort stops the operation."""
        self.hooks.register(ApiFetchEntry, lambda event: Abort(403, {"error": "forbidden"}))

        response = self.orchestrator.get_by_id(ApiRequest(), "post", 1)

        assert response.status_code == 403
        assert response.data == {"error": "forbidden"}
        self.resolver.by_id.assert_not_called()

    def test_after_abort_is_returned_and_not_cached(self):
        """Test after abort is returned and not cached."""
        self.hooks.register(ApiEntryFetched, lambda event: Abort(410, {"error": "gone"}))

        response = self.orchestrator.get_by_id(ApiRequest(), "post", 1)
        self.orchestrator.get_by_id(ApiRequest(), "post", 1)

        assert response.status_code == 410
        assert self.resolver.by_id.call_count == 2

    def test_field_value_list_is_split(self):
        """Test field value list is split."""
        response = self.orchestrator.get_by_field_value(ApiRequest(params={"value": "a,b"}), "post", "uuid")

        assert response.data == [{"id": 1}]
        self.resolver.by_field_value.assert_called_once_with(
            "post", "uuid", ["a", "b"], [], 0, 100, {"created": "desc"}
        )

    def test_field_value_relate_chain(self):
        """Test field value relate chain."""
        self.orchestrator.get_by_field_value(ApiRequest(params={"value": "jane-doe"}), "post", "author:slug")

        args = self.resolver.by_field_value.call_args[0]
        assert args[1:4] == ("author", "jane-doe", ["slug"])

    def test_list_paging(self):
        """Test listing entries passes offset, limit and ordering."""
        entries_fetched = Mock(return_value=None)
        self.hooks.register(ApiEntriesFetched, entries_fetched)
        request = ApiRequest(params={"offset": "5", "limit": "10", "orderBy": "title", "sort": "ASC"})

        response = self.orchestrator.get_list(request, "post")

        assert response.data == [{"id": 1}]
        self.resolver.listing.assert_called_once_with("post", 5, 10, {"title": "asc"})
        assert entries_fetched.call_args[0][0].entries == [self.entry]

    def test_list_defaults(self):
        """Test listing entries without paging parameters uses the defaults."""
        self.orchestrator.get_list(ApiRequest(), "post")

        self.resolver.listing.assert_called_once_with("post", 0, 100, {"created": "desc"})

    # Writes

    def test_create(self):
        """Test creating an entry saves it and returns the serialized entry."""
        created = Mock(return_value=None)
        self.hooks.register(ApiEntryCreated, created)
        form = self._form()
        request = ApiRequest(method="POST", body={"title": "Hello"})

        response = self.orchestrator.create(request, "post")

        assert response.status_code == 200
        assert response.data == {"code": 200, "success": True, "errors": False, "entry": {"id": 1}}
        form.submit.assert_called_once_with({"title": "Hello"})
        self.resolver.save.assert_called_once_with(self.entry)
        created.assert_called_once()

    def test_create_invalid_form(self):
        """Test creating an entry with an invalid form returns 400 with errors."""
        created = Mock()
        self.hooks.register(ApiEntryCreated, created)
        self._form(valid=False, errors={"title": ["Field required"]})

        response = self.orchestrator.create(ApiRequest(method="POST"), "post")

        assert response.status_code == 400
        assert response.data == {"code": 400, "errors": {"title": ["Field required"]}}
        self.resolver.save.assert_not_called()
        created.assert_not_called()

    def test_create_persistence_failure(self):
        """Test creating an entry when saving fails returns 500."""
        created = Mock()
        self.hooks.register(ApiEntryCreated, created)
        self._form()
        self.resolver.save.side_effect = RuntimeError("database is locked")

        response = self.orchestrator.create(ApiRequest(method="POST"), "post")

        assert response.status_code == 500
        assert response.data == {"code": 500, "exception": "database is locked"}
        created.assert_not_called()

    def test_update_keeps_missing_fields_and_passes_original(self):
        """Test update keeps missing fields and passes original."""
        before_update = Mock(return_value=None)
        self.hooks.register(ApiBeforeEntryUpdatedAfterValidated, before_update)
        form = self._form()
        original = Mock()
        self.entry.clone.return_value = original

        response = self.orchestrator.update_by_id(ApiRequest(method="PUT", body={"views": 3}), "post", 1)

        assert response.status_code == 200
        self.resolver.build_form.assert_called_once()
        assert self.resolver.build_form.call_args.kwargs["prefill"] == {"id": 1}
        form.submit.assert_called_once_with({"views": 3}, clear_missing=False)
        event = before_update.call_args[0][0]
        assert event.original_entry is original
        assert event.new_entry is self.entry

    def test_update_by_slug_missing_entry(self):
        """Test update by slug missing entry."""
        self._form()
        self.resolver.one.side_effect = EntryNotFoundError()

        response = self.orchestrator.update_by_slug(ApiRequest(method="PUT"), "post", "missing")

        assert response.status_code == 404

    def test_delete(self):
        """Test deleting an entry."""
        self.resolver.delete.return_value = True

        response = self.orchestrator.delete_by_id(ApiRequest(method="DELETE"), "post", 1)

        assert response.status_code == 200
        assert response.data == {"success": True}
        self.resolver.one.assert_called_once_with("post", {"id": 1})

    def test_delete_reports_failure(self):
        """Test deleting an entry that could not be removed returns 404."""
        self.resolver.delete.return_value = False

        response = self.orchestrator.delete_by_slug(ApiRequest(method="DELETE"), "post", "first-post")

        assert response.status_code == 404
        assert response.data == {"success": False}

    def test_delete_missing_entry(self):
        """Test deleting an entry that doesn't exist."""
        self.resolver.one.side_effect = EntryNotFoundError()

        response = self.orchestrator.delete_by_id(ApiRequest(method="DELETE"), "post", 90000)

        assert response.status_code == 404
        assert response.data == {"error": "Entry not found"}
        self.resolver.delete.assert_not_called()

    # Section info

    def _info_orchestrator(self):
        built = Mock()
        built.data = {"name": "Blog post", "handle": "post", "fields": []}
        built.map_entry.return_value = {"name": "Blog post", "handle": "post", "fields": [], "mapped": True}
        self.info.build.return_value = built
        return RestOrchestrator(
            self.sections, self.resolver, self.info, self.serializer, self.store,
            hooks=self.hooks, identity=self.identity, variant=INFO,
        )

    def test_info(self):
        """Test getting section info."""
        orchestrator = self._info_orchestrator()

        response = orchestrator.get_info(ApiRequest(params={"options": "tags|limit:5"}), "post")

        assert response.data == {"name": "Blog post", "handle": "post", "fields": []}
        self.info.build.assert_called_once_with(self.section, allow_list=None, options="tags|limit:5", entry_id=None)

    def test_info_for_entry_maps_values(self):
        """Test info for entry maps values."""
        orchestrator = self._info_orchestrator()

        response = orchestrator.get_info(ApiRequest(), "post", "1")

        assert response.data["mapped"] is True
        self.resolver.by_id.assert_called_once_with("post", "1")

    def test_info_by_slug(self):
        """Test getting section info by slug resolves the entry id."""
        orchestrator = self._info_orchestrator()

        orchestrator.get_info_by_slug(ApiRequest(), "post", "first-post")

        self.resolver.by_slug.assert_called_once_with("post", "first-post")
        assert self.info.build.call_args.kwargs["entry_id"] == 1

    def test_info_cache_is_kept_per_user(self):
        """Test info cache is kept per user."""
        orchestrator = self._info_orchestrator()

        self.identity.get_current_user.return_value = "jane"
        orchestrator.get_info(ApiRequest(token="a"), "post")
        orchestrator.get_info(ApiRequest(token="a"), "post")
        self.identity.get_current_user.return_value = "john"
        orchestrator.get_info(ApiRequest(token="b"), "post")

        assert self.info.build.call_count == 2

    def test_info_abort_checks(self):
        """Test an abort from the info fetched event replaces the response."""
        orchestrator = self._info_orchestrator()
        self.hooks.register(ApiSectionInfoFetched, lambda event: Abort(418))

        response = orchestrator.get_info(ApiRequest(), "post")

        assert response.status_code == 418

    def test_info_before_event(self):
        """Test an abort before fetching section info."""
        orchestrator = self._info_orchestrator()
        before = Mock(return_value=None)
        self.hooks.register(ApiFetchSectionInfo, before)

        orchestrator.get_info(ApiRequest(), "post")

        assert before.call_args[0][0].section_handle == "post"

    # Manually configured routes

    def _manual(self):
        return RestOrchestrator(
            self.sections, self.resolver, self.info, self.serializer, self.store,
            hooks=self.hooks, identity=self.identity, variant=MANUAL,
        )

    def test_dispatch_get_by_slug_from_route_defaults(self):
        """Test dispatch get by slug from route defaults."""
        response = self._manual().dispatch(
            "get", ApiRequest(params={"slug": "first-post"}), {"section_handle": "post", "fields": "id,title"}
        )

        assert response.status_code == 200
        self.resolver.by_slug.assert_called_once_with("post", "first-post")
        request = self.serializer.to_array.call_args[0][0]
        assert request.get("fields") == "id,title"

    def test_dispatch_defaults_override_request(self):
        """Test dispatch defaults override request."""
        self._manual().dispatch(
            "get", ApiRequest(params={"limit": "50"}), {"section_handle": "post", "limit": 5, "order_by": "title"}
        )

        self.resolver.listing.assert_called_once_with("post", 0, 5, {"title": "desc"})

    def test_dispatch_method_mismatch(self):
        """Test dispatching an action with a method it doesn't handle."""
        response = self._manual().dispatch("post", ApiRequest(method="GET"), {"section_handle": "post"})

        assert response.status_code == 400
        assert response.data == {"error": "invalid_routing_configuration"}

    def test_dispatch_put_without_identity(self):
        """Test dispatch put without identity."""
        response = self._manual().dispatch("put", ApiRequest(method="PUT"), {"section_handle": "post"})

        assert response.status_code == 400
        assert response.data == {"error": "invalid_routing_configuration"}

    def test_dispatch_preflight(self):
        """Test dispatching a preflight request."""
        response = self._manual().dispatch("get", ApiRequest(method="OPTIONS"), {"section_handle": "post"})

        assert response.status_code == 200
        assert response.data is None
