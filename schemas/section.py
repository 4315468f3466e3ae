"""Section schemas"""

from copy import deepcopy
from typing import Any, Optional

from pydantic import BaseModel, Field


class FieldRead(BaseModel):
    """One configured field of a loaded section"""
    handle: str
    name: str
    field_type: str
    config: dict = Field(default_factory=dict)

    model_config = {"from_attributes": True, "frozen": True}

    @property
    def is_relationship(self) -> bool:
        return self.field_type == "Relationship"

    def to_config(self) -> dict[str, Any]:
        """The field config blob as the info endpoint exposes it"""
        blob = {"name": self.name, "handle": self.handle, "type": self.field_type}
        blob.update(deepcopy(self.config))
        return blob


class SectionRead(BaseModel):
    """
    A loaded section. Immutable; ``fields`` is the order fields are resolved
    in, ``declared_fields`` the order responses follow.
    """
    handle: str
    name: str
    entity_class: str
    fields: tuple[FieldRead, ...] = ()
    config: dict = Field(default_factory=dict)

    model_config = {"from_attributes": True, "frozen": True}

    @property
    def declared_fields(self) -> list[str]:
        declared = (self.config.get("section") or {}).get("fields")
        if declared:
            return list(declared)
        return [field.handle for field in self.fields]


class FieldCreate(BaseModel):
    """Schema for creating a field as part of a section"""
    handle: str = Field(..., max_length=100, pattern=r'^[a-zA-Z][a-zA-Z0-9_-]*$')
    name: str = Field(..., max_length=200)
    field_type: str = Field(..., max_length=100)
    config: dict = Field(default_factory=dict)


class SectionCreate(BaseModel):
    """Schema for creating section"""
    handle: str = Field(..., max_length=100, pattern=r'^[a-zA-Z][a-zA-Z0-9_-]*$')
    name: str = Field(..., max_length=200)
    entity_class: str = Field(..., max_length=255)
    default: Optional[str] = Field(None, max_length=100)
    fields: list[FieldCreate] = Field(default_factory=list)

    # Declared order of the fields; defaults to the order of ``fields``
    field_order: Optional[list[str]] = None

    # Extra keys merged into the section info response
    extra_config: dict = Field(default_factory=dict)

    def build_config(self) -> dict:
        config = deepcopy(self.extra_config)
        config["section"] = {
            "name": self.name,
            "handle": self.handle,
            "fields": self.field_order or [field.handle for field in self.fields],
            "default": self.default,
        }
        return config
