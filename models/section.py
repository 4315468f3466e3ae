"""Section model - registry row describing one content type"""

from typing import TYPE_CHECKING

from sqlalchemy import String, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base

if TYPE_CHECKING:
    from models.section_field_assignment import SectionFieldAssignment


class Section(Base):
    """
    Section represents a configured content type.

    Each section:
    - Is backed by an entity class (dotted import path)
    - Has assigned fields (via SectionFieldAssignment)
    - Declares the order of its fields in ``config["section"]["fields"]``
    """
    __tablename__ = "sections"

    handle: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # e.g. "entities.blog.Post"
    entity_class: Mapped[str] = mapped_column(String(255), nullable=False)

    # {
    #   "section": {
    #     "name": "Blog post",
    #     "handle": "post",
    #     "fields": ["title", "slug", "author"],
    #     "default": "title"
    #   }
    # }
    config: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    field_assignments: Mapped[list["SectionFieldAssignment"]] = relationship(
        "SectionFieldAssignment",
        back_populates="section",
        cascade="all, delete-orphan",
        order_by="SectionFieldAssignment.sort_order"
    )

    def __repr__(self):
        return f"<Section(handle='{self.handle}', entity_class='{self.entity_class}')>"
