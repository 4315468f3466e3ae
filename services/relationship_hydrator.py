"""Relationship hydrator - related entries for relationship fields of the info endpoint"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional, Protocol

from core.logging_config import get_logger
from models.entry import CommonSection
from services.exceptions import EntryNotFoundError
from services.field_projector import instructions_of, read_property, walk_chain
from services.read_options import ReadOptions
from services.serializer import DATETIME_FORMAT

logger = get_logger(__name__)

DEFAULT_RELATIONSHIPS_LIMIT = 100
DEFAULT_RELATIONSHIPS_OFFSET = 0


class EntryReader(Protocol):
    def read(self, options: ReadOptions) -> list[CommonSection]:
        ...


class RelationshipErrorPolicy(str, Enum):
    """What a relationship field holds when the related section has no entries"""
    EMPTY = "empty"
    INLINE_ERROR = "inline_error"


def parse_relationship_options(raw: Optional[str]) -> dict[str, dict[str, str]]:
    """
    Parse the ``options`` query parameter.

        relField|limit:5|offset:2,otherField|field:type|value:news

    A comma separated part without a ``|`` continues a preceding ``value``,
    so ``relField|field:id|value:1,2`` keeps ``1,2`` as the value. Any other
    bare part is a field handle without options.
    """
    if not raw:
        return {}

    options: dict[str, dict[str, str]] = {}
    current: Optional[dict[str, str]] = None
    last_key: Optional[str] = None
    for part in raw.split(","):
        if "|" not in part and current is not None and last_key == "value":
            current[last_key] = f"{current[last_key]},{part}"
            continue
        handle, *pairs = part.split("|")
        current = options.setdefault(handle.strip(), {})
        last_key = None
        for pair in pairs:
            key, _, value = pair.partition(":")
            current[key.strip()] = value.strip()
            last_key = key.strip()
    return options


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.strftime(DATETIME_FORMAT) if value is not None else None


def _first_set(*candidates: Any, default: int) -> int:
    for candidate in candidates:
        if candidate not in (None, "", 0, "0"):
            return int(candidate)
    return default


def _split_value(value: Any) -> Any:
    if isinstance(value, str) and "," in value:
        return value.split(",")
    return value


class RelationshipHydrator:
    def __init__(
        self,
        storage: EntryReader,
        policy: RelationshipErrorPolicy = RelationshipErrorPolicy.EMPTY,
        request_options: Optional[dict[str, dict[str, str]]] = None
    ):
        self.storage = storage
        self.policy = RelationshipErrorPolicy(policy)
        self.request_options = request_options or {}

    def hydrate(
        self,
        property_name: str,
        blob: dict,
        section_handle: str,
        entry_id: Optional[int] = None
    ) -> dict:
        """Add the related entries to a relationship field config under its ``to`` key"""
        blob["handle"] = property_name
        to = blob.get("to")
        if not to:
            return blob

        instructions = instructions_of(blob).get("relationship") or {}
        name_expression = [name for name in str(instructions.get("name-expression") or "").split("|") if name]
        add_fields = instructions.get("add-fields") or []

        try:
            related = self.storage.read(self.read_options(property_name, to, instructions))
            records = [self._record(entry, name_expression, add_fields) for entry in related]
        except EntryNotFoundError as e:
            logger.info_ctx("No related entries", field=property_name, section=to, policy=self.policy.value)
            if self.policy == RelationshipErrorPolicy.INLINE_ERROR:
                blob[to] = {"error": str(e)}
                return blob
            records = []

        if entry_id:
            self._mark_selected(records, property_name, section_handle, entry_id)

        blob[to] = list(records)
        return blob

    def read_options(self, property_name: str, to: str, instructions: dict) -> ReadOptions:
        requested = self.request_options.get(property_name) or {}
        options: dict[str, Any] = {
            ReadOptions.SECTION: to,
            ReadOptions.LIMIT: _first_set(
                requested.get("limit"), instructions.get("limit"), default=DEFAULT_RELATIONSHIPS_LIMIT
            ),
            ReadOptions.OFFSET: _first_set(
                requested.get("offset"), instructions.get("offset"), default=DEFAULT_RELATIONSHIPS_OFFSET
            ),
        }

        if instructions.get("field") and instructions.get("value"):
            options[ReadOptions.FIELD] = {instructions["field"]: _split_value(instructions["value"])}

        if requested.get("field") and requested.get("value"):
            options[ReadOptions.FIELD] = {requested["field"]: _split_value(requested["value"])}

        if requested.get("join") and requested.get("value"):
            options[ReadOptions.JOIN] = {requested["join"]: _split_value(requested["value"])}

        return ReadOptions.from_array(options)

    @staticmethod
    def _record(entry: CommonSection, name_expression: list[str], add_fields: list[str]) -> dict:
        name = entry.get_default()
        if name_expression:
            found = walk_chain(entry, name_expression)
            if found:
                name = found

        record = {
            "id": entry.id,
            "slug": str(entry.slug) if entry.slug is not None else "",
            "name": name,
            "created": _format_datetime(entry.created),
            "updated": _format_datetime(entry.updated),
            "selected": False,
        }
        for field in add_fields:
            value = read_property(entry, field)
            record[field] = "" if value is None else str(value)
        return record

    def _mark_selected(self, records: list[dict], property_name: str, section_handle: str, entry_id: int) -> None:
        try:
            editing = self.storage.read(ReadOptions.from_array({
                ReadOptions.SECTION: section_handle,
                ReadOptions.ID: int(entry_id),
            }))[0]
        except EntryNotFoundError:
            return

        related = editing.get_field(property_name)
        if related is None:
            return
        if isinstance(related, CommonSection):
            related_ids = {related.id}
        else:
            related_ids = {relation.id for relation in related}

        for record in records:
            if record.get("id") in related_ids:
                record["selected"] = True
