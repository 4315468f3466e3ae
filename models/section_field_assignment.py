"""Section Field Assignment - many-to-many relationship between Section and Field"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Integer, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base

if TYPE_CHECKING:
    from models.section import Section
    from models.field import Field


class SectionFieldAssignment(Base):
    """
    Assignment of a Field to a Section.

    ``sort_order`` is the order fields are resolved in. It is allowed to
    differ from the declared order in the section config; responses always
    follow the declared order.
    """
    __tablename__ = "section_field_assignments"

    section_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("sections.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    field_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("fields.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    section: Mapped["Section"] = relationship(
        "Section",
        back_populates="field_assignments"
    )

    field: Mapped["Field"] = relationship(
        "Field",
        backref="section_assignments"
    )

    __table_args__ = (
        UniqueConstraint('section_id', 'field_id', name='uq_section_field_assignment'),
    )

    def __repr__(self):
        return f"<SectionFieldAssignment(section_id='{self.section_id}', field_id='{self.field_id}', order={self.sort_order})>"
