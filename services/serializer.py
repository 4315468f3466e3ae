"""Response serializer - entries to plain JSON structures"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Optional
from uuid import UUID
from zoneinfo import ZoneInfo

from core.logging_config import get_logger
from core.settings import settings
from models.entry import CommonSection
from services.api_request import ApiRequest
from services.exceptions import TriggerHandlerError

logger = get_logger(__name__)

DATETIME_FORMAT = "%Y-%m-%d %H:%M"
DATE_FORMAT = "%Y-%m-%d"

_OMIT = object()


@dataclass(frozen=True)
class Trigger:
    """An entity value computed by a registered service when serialized"""
    service: str
    options: dict = field(default_factory=dict)


class TriggerRegistry:
    def __init__(self):
        self._services: dict[str, Callable[[Trigger, Any], Any]] = {}

    def register(self, name: str, service: Callable[[Trigger, Any], Any]) -> None:
        self._services[name] = service

    def execute(self, trigger: Trigger, entry: Any) -> Any:
        service = self._services.get(trigger.service)
        if service is None:
            raise TriggerHandlerError(trigger.service)
        return service(trigger, entry)


class FieldsExclusionStrategy:
    """Skips properties missing from the allow-list, on every level"""

    def __init__(self, fields: Optional[list[str]]):
        self.fields = [name for name in (fields or []) if name]

    def should_skip_property(self, name: str) -> bool:
        if not self.fields:
            return False
        return name not in self.fields


class DepthExclusionStrategy:
    """Skips entities nested deeper than ``max_depth``; the root is level 1"""

    def __init__(self, max_depth: int):
        self.max_depth = max_depth

    def should_skip_level(self, level: int) -> bool:
        return level > self.max_depth


class Serializer:
    DEFAULT_FIELDS = ["id"]

    def __init__(
        self,
        timezone_name: str = None,
        default_depth: int = None,
        triggers: TriggerRegistry = None
    ):
        self.timezone = ZoneInfo(timezone_name or settings.SERIALIZER_TIMEZONE)
        self.default_depth = default_depth or settings.SERIALIZER_DEFAULT_DEPTH
        self.triggers = triggers or TriggerRegistry()

    def requested_fields(self, request: ApiRequest) -> list[str]:
        fields = request.get("fields")
        if fields is None:
            return list(self.DEFAULT_FIELDS)
        if isinstance(fields, str):
            return [name.strip() for name in fields.split(",") if name.strip()]
        return [str(name) for name in fields]

    def requested_depth(self, request: ApiRequest) -> int:
        depth = request.get("depth")
        if isinstance(depth, int) and not isinstance(depth, bool):
            return depth
        if isinstance(depth, str) and depth.strip().isdigit():
            return int(depth)
        return self.default_depth

    def to_array(self, request: ApiRequest, entry: CommonSection) -> dict[str, Any]:
        fields = FieldsExclusionStrategy(self.requested_fields(request))
        depth = DepthExclusionStrategy(self.requested_depth(request))
        return self.serialize_entry(entry, fields, depth)

    def serialize_entry(
        self,
        entry: CommonSection,
        fields: FieldsExclusionStrategy,
        depth: DepthExclusionStrategy,
        level: int = 1,
        path: frozenset = frozenset()
    ) -> dict[str, Any]:
        path = path | {id(entry)}
        result = {}
        for name in _property_names(entry):
            if fields.should_skip_property(name):
                continue
            value = self._value(entry.get_field(name), entry, fields, depth, level, path)
            if value is not _OMIT:
                result[name] = value
        return result

    def format_datetime(self, value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(self.timezone).strftime(DATETIME_FORMAT)

    def _value(self, value, owner, fields, depth, level, path) -> Any:
        if isinstance(value, CommonSection):
            if depth.should_skip_level(level + 1) or id(value) in path:
                return _OMIT
            return self.serialize_entry(value, fields, depth, level + 1, path)

        if isinstance(value, (list, tuple, set)):
            items = list(value)
            if any(isinstance(item, CommonSection) for item in items) and depth.should_skip_level(level + 1):
                return _OMIT
            converted = [self._value(item, owner, fields, depth, level, path) for item in items]
            return [item for item in converted if item is not _OMIT]

        if isinstance(value, dict):
            return {
                str(key): item for key, item in (
                    (key, self._value(item, owner, fields, depth, level, path)) for key, item in value.items()
                ) if item is not _OMIT
            }

        if isinstance(value, Trigger):
            return self._value(self.triggers.execute(value, owner), owner, fields, depth, level, path)
        if isinstance(value, datetime):
            return self.format_datetime(value)
        if isinstance(value, date):
            return value.strftime(DATE_FORMAT)
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, (UUID, Decimal)):
            return str(value)
        return value


def _property_names(entry: CommonSection) -> list[str]:
    names = ["id", "slug", "created", "updated"]
    names.extend(name for name in type(entry).FIELDS if name not in names)
    return names


_trigger_registry: Optional[TriggerRegistry] = None


def get_trigger_registry() -> TriggerRegistry:
    """Get the process wide trigger registry"""
    global _trigger_registry
    if _trigger_registry is None:
        _trigger_registry = TriggerRegistry()
    return _trigger_registry
