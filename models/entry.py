"""Entry base - declarative base and mixin for section backed entities"""

import operator
from datetime import datetime, timezone
from typing import Any, Callable, ClassVar, Optional

from sqlalchemy import DateTime, Integer, String, inspect as sa_inspect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _build_accessor_table(cls) -> dict[str, Callable[[Any], Any]]:
    """
    Map every readable property of an entity class to a callable.

    A ``get_<property>`` method wins over plain attribute access, so entity
    classes can compute values for configured fields.
    """
    names = ["id", "slug", "created", "updated", *cls.FIELDS.keys()]
    table = {}
    for name in names:
        getter = getattr(cls, f"get_{name}", None)
        if callable(getter):
            table[name] = getter
        else:
            table[name] = operator.attrgetter(name)
    return table


class EntryBase(DeclarativeBase):
    """Declarative base for entity tables; kept apart from the registry tables"""

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if hasattr(cls, "FIELDS"):
            cls._accessors = _build_accessor_table(cls)


class CommonSection:
    """
    Columns and field access shared by every section entity.

    Subclasses describe their configured fields in ``FIELDS``:

        FIELDS = {
            "title": {"handle": "title", "type": "TextInput"},
            "tags": {"handle": "tags", "type": "Relationship", "kind": "many-to-many", "to": "tag"},
        }

    and name the property used as display value in ``DEFAULT_FIELD``.
    """
    FIELDS: ClassVar[dict[str, dict]] = {}
    DEFAULT_FIELD: ClassVar[str] = "slug"
    _accessors: ClassVar[dict[str, Callable[[Any], Any]]]

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    slug: Mapped[Optional[str]] = mapped_column(String(255), index=True, nullable=True)
    created: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)

    @classmethod
    def qualified_name(cls) -> str:
        return f"{cls.__module__}.{cls.__name__}"

    @classmethod
    def has_field(cls, property_name: str) -> bool:
        return property_name in cls._accessors

    @classmethod
    def property_for_handle(cls, handle: str) -> Optional[str]:
        """Find the property configured for a field handle"""
        for property_name, field in cls.FIELDS.items():
            if field.get("handle") == handle:
                return property_name
        if handle in cls._accessors:
            return handle
        return None

    def get_field(self, property_name: str) -> Any:
        accessor = self._accessors.get(property_name)
        if accessor is None:
            return None
        try:
            return accessor(self)
        except AttributeError:
            return None

    def get_default(self) -> Any:
        return self.get_field(self.DEFAULT_FIELD)

    def clone(self):
        """Copy of the column values; relationships are not copied"""
        copy = type(self)()
        for attribute in sa_inspect(type(self)).column_attrs:
            setattr(copy, attribute.key, getattr(self, attribute.key))
        return copy

    def __str__(self):
        default = self.get_default()
        return str(default) if default is not None else f"{type(self).__name__}#{self.id}"
