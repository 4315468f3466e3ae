"""Field model - field definitions of a section"""

from sqlalchemy import String, JSON
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class Field(Base):
    """
    Field represents one configured attribute of a section.

    A field belongs to one section. The ``config`` blob is
    returned as-is by the section info endpoint (minus internal keys), so
    relationship targets (``to``, ``as``, ``kind``) and form instructions
    live there.
    """
    __tablename__ = "fields"

    handle: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # TextInput, TextArea, Number, Checkbox, DateTimeField, Email, Slug, Relationship
    field_type: Mapped[str] = mapped_column(String(100), nullable=False)

    config: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    def __repr__(self):
        return f"<Field(handle='{self.handle}', type='{self.field_type}')>"
