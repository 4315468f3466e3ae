"""Section Repository - Data access layer for the section registry"""

from fastapi import HTTPException, Depends
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import select

from db.session import get_db
from models import Section, Field, SectionFieldAssignment
from schemas.section import FieldRead, SectionCreate, SectionRead
from services.exceptions import SectionNotFoundError


class SectionRepository:
    def __init__(self, session: Session):
        self.session = session

    def _load(self, handle: str) -> Section | None:
        stmt = (
            select(Section)
            .where(Section.handle == handle)
            .options(
                selectinload(Section.field_assignments).selectinload(SectionFieldAssignment.field)
            )
        )
        return self.session.scalar(stmt)

    def read_by_handle(self, handle: str) -> SectionRead:
        """Load a section with its fields in resolution order"""
        section = self._load(handle)
        if section is None:
            raise SectionNotFoundError(handle)
        return self.to_read(section)

    def list_sections(self) -> list[SectionRead]:
        stmt = (
            select(Section)
            .options(
                selectinload(Section.field_assignments).selectinload(SectionFieldAssignment.field)
            )
            .order_by(Section.handle)
        )
        return [self.to_read(section) for section in self.session.scalars(stmt).all()]

    def create(self, section_data: SectionCreate) -> Section:
        """Create a section together with its fields"""
        if self._load(section_data.handle) is not None:
            raise HTTPException(
                status_code=409,
                detail=f"Section with handle '{section_data.handle}' already exists"
            )

        section = Section(
            handle=section_data.handle,
            name=section_data.name,
            entity_class=section_data.entity_class,
            config=section_data.build_config(),
        )
        self.session.add(section)

        for sort_order, field_data in enumerate(section_data.fields):
            field = Field(**field_data.model_dump())
            self.session.add(field)
            section.field_assignments.append(
                SectionFieldAssignment(field=field, sort_order=sort_order)
            )

        self.session.commit()
        self.session.refresh(section)
        return section

    @staticmethod
    def to_read(section: Section) -> SectionRead:
        return SectionRead(
            handle=section.handle,
            name=section.name,
            entity_class=section.entity_class,
            config=section.config or {},
            fields=tuple(
                FieldRead.model_validate(assignment.field)
                for assignment in section.field_assignments
            ),
        )


def get_section_repository(db: Session = Depends(get_db)) -> SectionRepository:
    """Dependency for section repository"""
    return SectionRepository(db)
