from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class ManualRouteAction(str, Enum):
    GET = "get"
    POST = "post"
    PUT = "put"
    DELETE = "delete"
    INFO = "info"


class ManualRouteDefaults(BaseModel):
    """Values a route fixes; they win over request parameters"""
    section_handle: str | None = None
    id: int | None = None
    slug: str | None = None
    field_handle: str | None = None
    fields: str | None = None
    depth: int | None = None
    options: str | None = None
    offset: int | None = None
    limit: int | None = None
    order_by: str | None = None
    sort: str | None = None
    value: str | None = None


class ManualRoute(BaseModel):
    """
    One developer defined route, e.g.

        {
            "path": "/blog/{slug}",
            "action": "get",
            "defaults": {"section_handle": "post", "fields": "id,title,body"}
        }
    """
    path: str = Field(..., pattern=r"^/")
    action: ManualRouteAction
    methods: list[str] = Field(default_factory=lambda: ["GET", "OPTIONS"])
    defaults: ManualRouteDefaults = Field(default_factory=ManualRouteDefaults)
    name: str | None = None

    @field_validator("methods")
    @classmethod
    def _upper_methods(cls, value: list[str]) -> list[str]:
        return [method.upper() for method in value]

    def defaults_dict(self) -> dict[str, Any]:
        return self.defaults.model_dump(exclude_none=True)
