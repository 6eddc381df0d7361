"""Operation description models produced by the pipeline.

These mirror the OpenAPI operation object. JSON schemas stay plain dicts so
that component references can be shared between operations.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ParameterKind(str, Enum):
    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    COOKIE = "cookie"
    FORM_DATA = "formData"
    BODY = "body"


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_openapi(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True, exclude_defaults=True)


class Parameter(_Model):
    """A single operation parameter."""

    name: str
    kind: ParameterKind = Field(alias="in")
    required: bool = False
    schema_: dict | None = Field(default=None, alias="schema")
    description: str | None = None
    example: Any = None
    default: Any = None


class Example(_Model):
    summary: str | None = None
    description: str | None = None
    value: Any = None


class MediaType(_Model):
    schema_: dict | None = Field(default=None, alias="schema")
    example: Any = None
    examples: dict[str, Example] = {}


class RequestBody(_Model):
    content: dict[str, MediaType] = {}
    required: bool = False
    description: str | None = None
    name: str | None = Field(default=None, exclude=True)


class Header(_Model):
    description: str | None = None
    schema_: dict | None = Field(default=None, alias="schema")
    example: Any = None


class Response(_Model):
    description: str = ""
    content: dict[str, MediaType] = {}
    headers: dict[str, Header] = {}

    def to_openapi(self) -> dict:
        data = super().to_openapi()
        data["description"] = self.description
        return data


class Operation(_Model):
    """One endpoint's assembled contract."""

    path: str = Field(exclude=True)
    method: str = Field(exclude=True)
    operation_id: str | None = Field(default=None, alias="operationId")
    tags: list[str] = []
    summary: str | None = None
    description: str | None = None
    parameters: list[Parameter] = []
    request_body: RequestBody | None = Field(default=None, alias="requestBody")
    responses: dict[str, Response] = {}
    deprecated: bool = False
    bare_route: str | None = Field(default=None, exclude=True)
    version_marker: str | None = Field(default=None, exclude=True)

    def parameter(self, name: str, kind: ParameterKind) -> Parameter | None:
        for p in self.parameters:
            if p.name == name and p.kind is kind:
                return p
        return None

    def to_openapi(self) -> dict:
        data = super().to_openapi()
        data["parameters"] = [p.to_openapi() for p in self.parameters]
        data["responses"] = {k: r.to_openapi() for k, r in self.responses.items()}
        if not data["parameters"]:
            del data["parameters"]
        return data
