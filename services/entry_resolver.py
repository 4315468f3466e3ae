"""Entry resolver - one entry point for reading, binding and persisting entries"""

from typing import Any, Iterable, Mapping, Optional, Protocol

from core.logging_config import get_logger
from models.entry import CommonSection
from services.exceptions import EntryNotFoundError
from services.read_options import ReadOptions

logger = get_logger(__name__)


class EntryStorage(Protocol):
    def read(self, options: ReadOptions) -> Iterable[CommonSection]:
        ...

    def save(self, entry: CommonSection) -> Any:
        ...

    def delete(self, entry: CommonSection) -> bool:
        ...


class FormBinder(Protocol):
    def build_form_for_section(
        self,
        section_handle: str,
        request: Any = None,
        prefill: Optional[Mapping[str, Any]] = None,
        options: Optional[Mapping[str, Any]] = None
    ) -> Any:
        ...


class EntryResolver:
    """
    Reads go through ``ReadOptions``; a lookup by id or slug that matches
    nothing raises ``EntryNotFoundError``. Writes delegate to the storage.
    """

    def __init__(self, storage: EntryStorage, forms: Optional[FormBinder] = None):
        self.storage = storage
        self.forms = forms

    def read(self, options: Mapping[str, Any]) -> list[CommonSection]:
        return list(self.storage.read(ReadOptions.from_array(options)))

    def one(self, section_handle: str, selector: Mapping[str, Any]) -> CommonSection:
        for entry in self.storage.read(ReadOptions.from_array({ReadOptions.SECTION: section_handle, **selector})):
            return entry
        raise EntryNotFoundError()

    def by_id(self, section_handle: str, entry_id: Any) -> CommonSection:
        return self.one(section_handle, {ReadOptions.ID: int(entry_id)})

    def by_slug(self, section_handle: str, slug: str) -> CommonSection:
        return self.one(section_handle, {ReadOptions.SLUG: slug})

    def by_field_value(
        self,
        section_handle: str,
        field_handle: str,
        value: Any,
        relate: Optional[list[str]] = None,
        offset: int = 0,
        limit: int = 100,
        order_by: Optional[Mapping[str, str]] = None
    ) -> list[CommonSection]:
        return self.read({
            ReadOptions.SECTION: section_handle,
            ReadOptions.FIELD: {field_handle: value},
            ReadOptions.RELATE: relate or [],
            ReadOptions.OFFSET: offset,
            ReadOptions.LIMIT: limit,
            ReadOptions.ORDER_BY: dict(order_by or {}),
        })

    def listing(
        self,
        section_handle: str,
        offset: int = 0,
        limit: int = 100,
        order_by: Optional[Mapping[str, str]] = None
    ) -> list[CommonSection]:
        return self.read({
            ReadOptions.SECTION: section_handle,
            ReadOptions.OFFSET: offset,
            ReadOptions.LIMIT: limit,
            ReadOptions.ORDER_BY: dict(order_by or {}),
        })

    def build_form(self, section_handle: str, request: Any = None, prefill: Optional[Mapping[str, Any]] = None):
        if self.forms is None:
            raise RuntimeError("No form binder configured")
        return self.forms.build_form_for_section(section_handle, request, prefill)

    def save(self, entry: CommonSection) -> None:
        self.storage.save(entry)
        logger.debug(f"Saved {type(entry).__name__} #{entry.id}")

    def delete(self, entry: CommonSection) -> bool:
        deleted = bool(self.storage.delete(entry))
        if not deleted:
            logger.warning(f"{type(entry).__name__} #{entry.id} was not deleted")
        return deleted
