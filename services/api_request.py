"""Transport independent request and response values used by the core"""

from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class ApiRequest:
    """
    One HTTP request, normalized once at the transport boundary.

    ``params`` holds route attributes, query parameters and body values
    merged in that order of precedence. ``body`` is the submitted entry data,
    already unwrapped from the section handle key when it was nested.
    """
    method: str = "GET"
    params: Mapping[str, Any] = field(default_factory=dict)
    body: Mapping[str, Any] = field(default_factory=dict)
    origin: Optional[str] = None
    token: Optional[str] = None
    path: str = ""

    def get(self, name: str, default: Any = None) -> Any:
        value = self.params.get(name)
        return default if value is None else value

    @property
    def is_preflight(self) -> bool:
        return self.method.upper() == "OPTIONS"

    def with_params(self, overrides: Mapping[str, Any]) -> "ApiRequest":
        return replace(self, params={**self.params, **overrides})


@dataclass
class ApiResponse:
    """Response built by the orchestrator; after-event listeners may adjust it"""
    status_code: int
    data: Any
    headers: dict[str, str] = field(default_factory=dict)
