"""Entry Repository - Reads and writes entries of any configured section"""

from typing import Any, Type

from fastapi import Depends
from sqlalchemy import inspect as sa_inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, load_only
from sqlalchemy.orm.relationships import RelationshipProperty

from core.logging_config import get_logger
from db.session import get_db
from models.entry import CommonSection
from repositories.section_repository import SectionRepository
from services.entity_registry import EntityRegistry, get_entity_registry
from services.exceptions import EntryNotFoundError, InvalidReadOptionsError
from services.read_options import ReadMode, ReadOptions

logger = get_logger(__name__)


class EntryRepository:
    """
    Entry storage over a SQLAlchemy session.

    The section handle in the read options selects the entity class; the
    identity selector picks one of four query modes. Any read that matches
    nothing raises ``EntryNotFoundError``.
    """

    def __init__(self, session: Session, sections: SectionRepository, entities: EntityRegistry):
        self.session = session
        self.sections = sections
        self.entities = entities

    def entity_class_for(self, section_handle: str) -> Type[CommonSection]:
        section = self.sections.read_by_handle(section_handle)
        return self.entities.get_entity_class(section.entity_class)

    def read(self, options: ReadOptions) -> list[CommonSection]:
        entity_class = self.entity_class_for(options.section_handle)
        stmt = select(entity_class)

        mode = options.mode
        if mode == ReadMode.ID:
            stmt = stmt.where(entity_class.id == options.id)
        elif mode == ReadMode.SLUG:
            stmt = stmt.where(entity_class.slug == options.slug)
        elif mode == ReadMode.FIELD:
            for handle, value in options.field.items():
                stmt = stmt.where(self._condition(entity_class, [handle, *options.relate], value))

        if options.join:
            for handle, value in options.join.items():
                stmt = stmt.where(self._condition(entity_class, [handle], value))

        if options.order_by:
            for handle, direction in options.order_by.items():
                column = self._attribute(entity_class, handle)
                stmt = stmt.order_by(column.desc() if direction == "desc" else column.asc())
        else:
            stmt = stmt.order_by(entity_class.id.asc())

        if options.fetch_fields:
            columns = {attribute.key for attribute in sa_inspect(entity_class).column_attrs}
            wanted = [
                getattr(entity_class, name) for name in options.fetch_fields
                if name in columns and name != "id"
            ]
            if wanted:
                stmt = stmt.options(load_only(entity_class.id, *wanted))

        if options.offset:
            stmt = stmt.offset(options.offset)
        if options.limit:
            stmt = stmt.limit(options.limit)

        entries = list(self.session.scalars(stmt).unique().all())
        if not entries:
            raise EntryNotFoundError(f"No entries found in section '{options.section_handle}'")

        logger.debug(f"Read {len(entries)} entries from {options.section_handle} ({mode.value})")
        return entries

    def save(self, entry: CommonSection) -> None:
        try:
            self.session.add(entry)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise
        self.session.refresh(entry)

    def delete(self, entry: CommonSection) -> bool:
        if not sa_inspect(entry).persistent:
            return False
        try:
            self.session.delete(entry)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise
        return True

    def _attribute(self, entity_class: Type[CommonSection], handle: str):
        property_name = entity_class.property_for_handle(handle)
        attribute = getattr(entity_class, property_name, None) if property_name else None
        if attribute is None or not hasattr(attribute, "property"):
            raise InvalidReadOptionsError(f"Unknown field '{handle}' for {entity_class.__name__}")
        return attribute

    def _condition(self, entity_class: Type[CommonSection], path: list[str], value: Any):
        """Filter on a field, following relationships along the path"""
        attribute = self._attribute(entity_class, path[0])
        prop = attribute.property

        if isinstance(prop, RelationshipProperty):
            related_class = prop.mapper.class_
            if len(path) > 1:
                inner = self._condition(related_class, path[1:], value)
            else:
                inner = _match(related_class.id, value)
            return attribute.any(inner) if prop.uselist else attribute.has(inner)

        if len(path) > 1:
            raise InvalidReadOptionsError(f"Field '{path[0]}' is not a relationship")
        return _match(attribute, value)


def _match(column, value: Any):
    if isinstance(value, (list, tuple)):
        return column.in_(list(value))
    return column == value


def get_entry_repository(db: Session = Depends(get_db)) -> EntryRepository:
    """Dependency for entry repository"""
    return EntryRepository(db, SectionRepository(db), get_entity_registry())

