"""ReadOptions - immutable query descriptor handed to the entry storage"""

from enum import Enum
from typing import Any, ClassVar, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from services.exceptions import InvalidReadOptionsError

FieldValue = Union[int, str, list[Union[int, str]]]


class ReadMode(str, Enum):
    ID = "id"
    SLUG = "slug"
    FIELD = "field"
    LISTING = "listing"


class ReadOptions(BaseModel):
    """
    One query against the entry storage.

    Exactly one of the identity selectors (id, slug, field) may be given;
    with none of them the options describe a listing. The option names
    used by ``from_array`` are the same ones the request layer uses, so
    ``orderBy`` and ``fetchFields`` are accepted as aliases.
    """

    SECTION: ClassVar[str] = "section"
    ID: ClassVar[str] = "id"
    SLUG: ClassVar[str] = "slug"
    FIELD: ClassVar[str] = "field"
    RELATE: ClassVar[str] = "relate"
    JOIN: ClassVar[str] = "join"
    OFFSET: ClassVar[str] = "offset"
    LIMIT: ClassVar[str] = "limit"
    ORDER_BY: ClassVar[str] = "orderBy"
    FETCH_FIELDS: ClassVar[str] = "fetchFields"

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    section: list[str]
    id: Optional[int] = None
    slug: Optional[str] = None
    field: Optional[dict[str, FieldValue]] = None
    relate: list[str] = Field(default_factory=list)
    join: Optional[dict[str, FieldValue]] = None
    offset: Optional[int] = Field(None, ge=0)
    limit: Optional[int] = Field(None, ge=1)
    order_by: Optional[dict[str, str]] = Field(None, alias="orderBy")
    fetch_fields: Optional[list[str]] = Field(None, alias="fetchFields")

    @field_validator("section", mode="before")
    @classmethod
    def _section_as_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = [value]
        if not value or not all(isinstance(handle, str) and handle for handle in value):
            raise ValueError("a section handle is required")
        return value

    @field_validator("field", "join", mode="before")
    @classmethod
    def _empty_filter_is_none(cls, value: Any) -> Any:
        return value or None

    @field_validator("order_by")
    @classmethod
    def _normalize_direction(cls, value: Optional[dict[str, str]]) -> Optional[dict[str, str]]:
        if value is None:
            return None
        normalized = {}
        for handle, direction in value.items():
            direction = direction.lower()
            if direction not in ("asc", "desc"):
                raise ValueError(f"invalid sort direction '{direction}' for '{handle}'")
            normalized[handle] = direction
        return normalized

    @model_validator(mode="after")
    def _one_identity_selector(self) -> "ReadOptions":
        selectors = [
            name for name, value in (("id", self.id), ("slug", self.slug), ("field", self.field))
            if value is not None
        ]
        if len(selectors) > 1:
            raise ValueError(f"conflicting selectors: {', '.join(selectors)}")
        return self

    @classmethod
    def from_array(cls, options: Mapping[str, Any]) -> "ReadOptions":
        try:
            return cls.model_validate(dict(options))
        except ValidationError as exception:
            messages = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'options'}: {error['msg']}"
                for error in exception.errors()
            )
            raise InvalidReadOptionsError(f"Invalid read options ({messages})") from exception

    @property
    def section_handle(self) -> str:
        return self.section[0]

    @property
    def mode(self) -> ReadMode:
        if self.id is not None:
            return ReadMode.ID
        if self.slug is not None:
            return ReadMode.SLUG
        if self.field is not None:
            return ReadMode.FIELD
        return ReadMode.LISTING
