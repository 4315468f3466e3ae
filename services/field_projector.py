"""Field projector - section fields as ordered {property: config} pairs"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional, Type
from uuid import UUID

import inflect

from models.entry import CommonSection
from schemas.section import FieldRead, SectionRead
from services.serializer import DATE_FORMAT, DATETIME_FORMAT

PLURAL_KINDS = ("one-to-many", "many-to-many")
INTERNAL_KEYS = ("generator",)

_inflector = inflect.engine()

# Called for relationship fields: (property name, field, config blob) -> config blob
Hydrate = Callable[[str, FieldRead, dict], dict]


def instructions_of(blob: dict) -> dict:
    return (blob.get("form") or {}).get("instructions") or {}


def handle_to_property_name(field: FieldRead, fields_map: dict[str, dict]) -> str:
    """
    Resolve the entity property backing a field.

    Relationship fields are stored under their ``as`` or ``to`` name,
    pluralized for the to-many kinds. Everything else is matched on the
    handle configured in the entity's FIELDS map.
    """
    candidates = []
    if field.is_relationship:
        target = field.config.get("as") or field.config.get("to")
        if target:
            if field.config.get("kind") in PLURAL_KINDS:
                target = _inflector.plural(target)
            candidates.append(target)
    candidates.append(field.handle)

    for candidate in candidates:
        for property_name, properties in fields_map.items():
            if properties.get("handle") == candidate:
                return property_name
        if candidate in fields_map:
            return candidate
    return candidates[0]


def walk_chain(entry: Any, chain: Iterable[str], dates_as_string: bool = False) -> Any:
    """Follow a chain of property names through the entry graph"""
    found = entry
    for name in chain:
        if not found:
            return None
        found = read_property(found, name)
        if dates_as_string and isinstance(found, (datetime, date)):
            found = found.strftime(DATE_FORMAT)
    return found


def read_property(obj: Any, name: str) -> Any:
    if isinstance(obj, CommonSection) and obj.has_field(name):
        return obj.get_field(name)
    getter = getattr(obj, f"get_{name}", None)
    try:
        if callable(getter):
            return getter()
        return getattr(obj, name, None)
    except AttributeError:
        return None


class FieldProjector:
    def __init__(self, section: SectionRead, entity_class: Type[CommonSection]):
        self.section = section
        self.entity_class = entity_class
        self.fields_map = entity_class.FIELDS
        self._properties = {
            field.handle: handle_to_property_name(field, self.fields_map) for field in section.fields
        }

    def property_name(self, handle: str) -> str:
        return self._properties.get(handle, handle)

    def project(self, allow_list: Optional[list[str]] = None, hydrate: Optional[Hydrate] = None) -> list[dict]:
        """One {property: config} pair per field, in resolution order"""
        projected = []
        for field in self.section.fields:
            property_name = self.property_name(field.handle)
            if allow_list is not None and property_name not in allow_list:
                continue
            blob = field.to_config()
            if field.is_relationship and hydrate is not None and self._hydration_enabled(blob):
                blob = hydrate(property_name, field, blob)
            projected.append({property_name: blob})
        return projected

    def order(self, projected: list[dict], allow_list: Optional[list[str]] = None) -> list[dict]:
        """Re-order projected fields to the declared section order"""
        by_property = {next(iter(pair)): pair for pair in projected}
        ordered = []
        for handle in self.section.declared_fields:
            property_name = self.property_name(handle)
            if allow_list is not None and property_name not in allow_list:
                continue
            if property_name in by_property:
                ordered.append(by_property[property_name])
        return ordered

    @staticmethod
    def clean(projected: list[dict]) -> list[dict]:
        for pair in projected:
            blob = next(iter(pair.values()))
            for key in INTERNAL_KEYS:
                blob.pop(key, None)
        return projected

    def map_entry(self, projected: list[dict], entry: CommonSection) -> list[dict]:
        """Attach the entry's value to every projected field"""
        for pair in projected:
            property_name, blob = next(iter(pair.items()))
            blob["value"] = self.entry_value(property_name, blob, entry)
        return projected

    def entry_value(self, property_name: str, blob: dict, entry: CommonSection) -> Any:
        maps_to = instructions_of(blob).get("maps-to")
        if maps_to:
            found = walk_chain(entry, str(maps_to).split("|"), dates_as_string=True)
            return str(found) if found else None

        if "slug" in property_name.lower():
            slug = entry.get_field("slug")
            return str(slug) if slug is not None else None

        return _display_value(entry.get_field(property_name))

    @staticmethod
    def _hydration_enabled(blob: dict) -> bool:
        section_info = instructions_of(blob).get("section-info") or {}
        return section_info.get("data", True) is not False


def _display_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.strftime(DATETIME_FORMAT)
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, CommonSection):
        return value.slug
    if isinstance(value, (list, tuple, set)):
        return [item.slug if isinstance(item, CommonSection) else _display_value(item) for item in value]
    return value
