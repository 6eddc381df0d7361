"""Endpoint metadata models.

The routing collaborator reflects every endpoint into an EndpointDescriptor.
Descriptors are read-only to the pipeline; all parsers and loaders convert
their input into these models.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from api_doc_builder.document.models import Parameter


class HeaderBinding(BaseModel):
    """Field is bound from a request header."""

    kind: Literal["header"] = "header"
    header_name: str | None = None
    is_required: bool = True
    remove_from_schema: bool = False


class ClaimBinding(BaseModel):
    """Field is bound from a claim of the authenticated user."""

    kind: Literal["claim"] = "claim"
    claim_type: str | None = None
    is_required: bool = True
    remove_from_schema: bool = False


class PermissionBinding(BaseModel):
    """Field is bound from a permission of the authenticated user."""

    kind: Literal["permission"] = "permission"
    permission: str | None = None
    is_required: bool = True
    remove_from_schema: bool = False


class QueryBinding(BaseModel):
    kind: Literal["query"] = "query"


class BindFrom(BaseModel):
    """Field binds from a differently named route/query value."""

    kind: Literal["bind_from"] = "bind_from"
    name: str


class BodyBinding(BaseModel):
    kind: Literal["body"] = "body"


class FormBinding(BaseModel):
    kind: Literal["form"] = "form"


class IgnoreBinding(BaseModel):
    kind: Literal["ignore"] = "ignore"


class HiddenBinding(BaseModel):
    kind: Literal["hidden"] = "hidden"


class ToHeaderBinding(BaseModel):
    """Response field is sent as a response header."""

    kind: Literal["to_header"] = "to_header"
    header_name: str | None = None


Binding = Annotated[
    Union[
        HeaderBinding,
        ClaimBinding,
        PermissionBinding,
        QueryBinding,
        BindFrom,
        BodyBinding,
        FormBinding,
        IgnoreBinding,
        HiddenBinding,
        ToHeaderBinding,
    ],
    Field(discriminator="kind"),
]


class ShapeField(BaseModel):
    """A reflected field of a request or response shape."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    schema_: dict = Field(default={"type": "string"}, alias="schema")
    nullable: bool = False
    has_default: bool = False
    default: Any = None
    example: Any = None
    description: str | None = None
    json_name: str | None = None
    settable: bool = True
    bindings: list[Binding] = []

    def binding(self, kind: str):
        """Return the first binding of the given kind, if any."""
        for b in self.bindings:
            if b.kind == kind:
                return b
        return None

    def has_binding(self, kind: str) -> bool:
        return self.binding(kind) is not None

    @property
    def route_name(self) -> str:
        bind_from = self.binding("bind_from")
        return bind_from.name if bind_from else self.name

    @property
    def is_file(self) -> bool:
        t = self.schema_.get("type")
        return t == "file" or (t == "string" and self.schema_.get("format") == "binary")

    @property
    def is_hidden(self) -> bool:
        return self.has_binding("ignore") or self.has_binding("hidden") or not self.settable


class RequestShape(BaseModel):
    name: str
    fields: list[ShapeField] = []
    is_list: bool = False
    is_empty_marker: bool = False
    base: str | None = None


class ResponseShape(BaseModel):
    name: str
    fields: list[ShapeField] = []
    is_list: bool = False
    base: str | None = None


class ResponseMeta(BaseModel):
    """Declared response type for one status code."""

    status_code: int
    content_types: list[str] = ["application/json"]
    shape: ResponseShape | None = None
    example: Any = None


class RequestExample(BaseModel):
    value: Any
    label: str = "Example"
    summary: str | None = None
    description: str | None = None


class ResponseHeader(BaseModel):
    status_code: int
    header_name: str
    description: str | None = None
    example: Any = None


class EndpointSummary(BaseModel):
    """Developer-authored documentation for an endpoint."""

    summary: str | None = None
    description: str | None = None
    params: dict[str, str] = {}
    request_examples: list[RequestExample] = []
    responses: dict[int, str] = {}
    response_params: dict[int, dict[str, str]] = {}
    response_examples: dict[int, Any] = {}
    response_headers: list[ResponseHeader] = []


class EndpointVersion(BaseModel):
    current: int = 0
    starting_release_version: int = 0
    deprecated_at: int = 0


class IdempotencyOptions(BaseModel):
    header_name: str = "Idempotency-Key"
    header_description: str | None = None
    header_schema: dict | None = None
    example: Any = None


class EndpointDefinition(BaseModel):
    """Metadata marker attached to every endpoint this package documents."""

    model_config = ConfigDict(frozen=True)

    endpoint_type: str = "Endpoint"
    name: str | None = None
    version: EndpointVersion = EndpointVersion()
    request: RequestShape | None = None
    consumes: list[str] = ["application/json"]
    responses: list[ResponseMeta] = []
    summary: EndpointSummary | None = None
    doc_summary: str | None = None
    doc_description: str | None = None
    obsolete: bool = False
    dont_auto_tag: bool = False
    auto_tag_override: str | None = None
    idempotency: IdempotencyOptions | None = None


class EndpointDescriptor(BaseModel):
    """An endpoint as reflected by the routing collaborator.

    `definition` is None for endpoints that are not managed here; their
    pre-rendered `operation` passes through the build untouched.
    """

    model_config = ConfigDict(frozen=True)

    route: str
    verb: str
    parameters: list[Parameter] = []
    operation: dict = {}
    definition: EndpointDefinition | None = None

    @property
    def is_get(self) -> bool:
        return self.verb.upper() == "GET"
