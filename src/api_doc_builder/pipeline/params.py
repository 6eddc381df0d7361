"""Request parameter classification.

Every visible request field is classified by a fixed precedence: path ->
query -> header/claim/permission -> legacy-dialect file upload. Classified
fields are pruned from the body schema; the wire names of every pruned field
are returned to the caller so that examples can be pruned the same way.
"""

import copy
import logging
from dataclasses import dataclass, field as dc_field
from typing import Any

from api_doc_builder.config import DocumentPolicy
from api_doc_builder.document.models import MediaType, Operation, Parameter, ParameterKind
from api_doc_builder.errors import EmptyRequestShapeError
from api_doc_builder.naming import apply_naming, is_list_like, to_wire
from api_doc_builder.parser.base import EndpointDescriptor, EndpointSummary, ShapeField
from api_doc_builder.pipeline.pruner import prune_field
from api_doc_builder.pipeline.routes import ROUTE_PARAM, RouteInfo
from api_doc_builder.schema.generator import wire_name
from api_doc_builder.schema.graph import SchemaGraph

logger = logging.getLogger(__name__)

RESERVED_HEADERS = ("Accept", "Content-Type", "Authorization")


@dataclass
class ParamDescription:
    description: str | None = None
    example: Any = None


class ParamDescriptions:
    """Case-insensitive map of field name -> ParamDescription."""

    def __init__(self):
        self._items: dict[str, ParamDescription] = {}

    def set(self, name: str, value: ParamDescription) -> None:
        self._items[name.lower()] = value

    def get(self, *names: str) -> ParamDescription | None:
        for name in names:
            if name and name.lower() in self._items:
                return self._items[name.lower()]
        return None

    def get_or_add(self, name: str) -> ParamDescription:
        return self._items.setdefault(name.lower(), ParamDescription())


def collect_descriptions(content: dict[str, MediaType] | None, summary: EndpointSummary | None,
                         graph: SchemaGraph, policy: DocumentPolicy) -> ParamDescriptions:
    """Merge field docs: body schema < summary params < first request example."""
    descriptions = ParamDescriptions()

    for media in (content or {}).values():
        for key, prop in graph.all_properties(media.schema_).items():
            descriptions.set(key, ParamDescription(prop.get("description"), prop.get("example")))

    if summary is None:
        return descriptions

    for name, text in summary.params.items():
        descriptions.get_or_add(name).description = text

    if summary.request_examples:
        value = summary.request_examples[0].value
        if not is_list_like(value):
            wire = to_wire(value, policy.naming_policy)
            if isinstance(wire, dict):
                for name, example in wire.items():
                    descriptions.get_or_add(name).example = example

    return descriptions


def apply_descriptions(content: dict[str, MediaType] | None, descriptions: ParamDescriptions,
                       graph: SchemaGraph) -> None:
    for media in (content or {}).values():
        for key, prop in graph.all_properties(media.schema_).items():
            desc = descriptions.get(key)
            if desc is None:
                continue
            if desc.description is not None:
                prop["description"] = desc.description
            if desc.example is not None:
                prop["example"] = desc.example


@dataclass
class ParamContext:
    policy: DocumentPolicy
    graph: SchemaGraph
    descriptions: ParamDescriptions
    route: RouteInfo


def create_param(ctx: ParamContext, kind: ParameterKind, field: ShapeField | None = None,
                 name: str | None = None, required: bool | None = None,
                 schema: dict | None = None) -> Parameter:
    """Build a parameter for a request field (or a field-less route/header value).

    An explicit `name` is used verbatim; otherwise the field's bind-from name
    or its name under the naming convention is used.
    """
    policy = ctx.policy
    if name is None:
        if field is None:
            raise ValueError("param name is required!")
        bind_from = field.binding("bind_from")
        name = bind_from.name if bind_from else apply_naming(field.name, policy.naming_policy)

    if schema is None:
        schema = copy.deepcopy(field.schema_) if field is not None else {"type": "string"}
    else:
        schema = copy.deepcopy(schema)

    if required is None:
        required = field is not None and not field.has_default and not field.nullable

    param = Parameter(name=name, kind=kind, required=required, schema=schema)
    schema = param.schema_
    desc = ctx.descriptions.get(field.name, wire_name(field, policy), name) if field else ctx.descriptions.get(name)
    param.description = desc.description if desc and desc.description is not None else None
    if param.description is None and field is not None:
        param.description = field.description

    if required:
        schema.pop("nullable", None)
    elif field is not None and field.nullable and not policy.is_swagger2:
        schema["nullable"] = True

    has_default = field is not None and field.has_default
    if has_default:
        if policy.is_swagger2:
            param.default = field.default
        else:
            schema["default"] = field.default

    if policy.generate_examples:
        if desc is not None and desc.example is not None:
            param.example = desc.example
        elif field is not None:
            param.example = field.example

        if param.example is None and not has_default and required:
            sample = ctx.graph.sample(schema)
            param.example = sample if isinstance(sample, (dict, list)) and sample else None

    return param


def should_add_query_param(field: ShapeField, params: list[Parameter], get_without_body: bool,
                           policy: DocumentPolicy) -> bool:
    bind_from = field.binding("bind_from")
    name = bind_from.name if bind_from else apply_naming(field.name, policy.naming_policy)

    if field.has_binding("header"):
        return False

    for kind in ("claim", "permission"):
        binding = field.binding(kind)
        if binding is not None and binding.is_required:
            if field.has_binding("query"):
                logger.warning(
                    "Field %s has a required %s binding and a query annotation; "
                    "it is bound from the security context only", field.name, kind)
            return False

    already_path = any(p.name.lower() == name.lower() for p in params if p.kind is ParameterKind.PATH)
    return (get_without_body and not already_path) or field.has_binding("query")


@dataclass
class Classification:
    parameters: list[Parameter] = dc_field(default_factory=list)
    removed: list[str] = dc_field(default_factory=list)
    body_field: ShapeField | None = None
    form_field: ShapeField | None = None
    context: ParamContext | None = None


def classify_parameters(op: Operation, descriptor: EndpointDescriptor, route: RouteInfo,
                        graph: SchemaGraph, policy: DocumentPolicy) -> Classification:
    """Classify request fields into parameters and prune them from the body.

    Rewrites path tokens on `op.path` to the naming convention. Raises
    EmptyRequestShapeError for a request shape without settable fields.
    """
    definition = descriptor.definition
    request = definition.request
    content = op.request_body.content if op.request_body else None

    fields: list[ShapeField] = []
    if request is not None and not request.is_list:
        fields = list(request.fields)
        if (not request.is_empty_marker and not any(f.settable for f in fields)
                and not policy.allow_empty_request_dtos):
            raise EmptyRequestShapeError(definition.endpoint_type, request.name)

    result = Classification()
    removed = result.removed

    def prune(f: ShapeField) -> None:
        key = prune_field(wire_name(f, policy), content, graph)
        if key is not None:
            removed.append(key)

    descriptions = collect_descriptions(content, definition.summary, graph, policy)
    apply_descriptions(content, descriptions, graph)
    ctx = result.context = ParamContext(policy, graph, descriptions, route)

    for f in [f for f in fields if f.is_hidden]:
        prune(f)
        fields.remove(f)

    params = result.parameters
    classified: set[str] = set()

    # path
    for token in ROUTE_PARAM.findall(op.path):
        wire_token = apply_naming(token, policy.naming_policy)
        match = next((f for f in fields if f.route_name.lower() == token.lower()), None)
        if match is not None:
            op.path = op.path.replace("{" + token + "}", "{" + wire_token + "}")
            prune(match)
            classified.add(match.name)
            params.append(create_param(ctx, ParameterKind.PATH, match, wire_token, True))
        else:
            params.append(create_param(ctx, ParameterKind.PATH, None, wire_token, True,
                                       route.type_for_route_param(token)))

    remaining = [f for f in fields if f.name not in classified]

    # query
    get_without_body = descriptor.is_get and not policy.enable_get_requests_with_body
    if request is not None:
        for f in remaining:
            if should_add_query_param(f, params, get_without_body, policy):
                prune(f)
                classified.add(f.name)
                params.append(create_param(ctx, ParameterKind.QUERY, f))

    # header / claim / permission
    for f in remaining:
        header = f.binding("header")
        if header is not None:
            header_name = header.header_name or f.name
            if header_name.lower() in (h.lower() for h in RESERVED_HEADERS):
                logger.warning("Dropping field %s: header %s is reserved", f.name, header_name)
                prune(f)
                continue
            params.append(create_param(ctx, ParameterKind.HEADER, f, header_name, header.is_required))
            if header.is_required or header.remove_from_schema:
                prune(f)

        for kind in ("claim", "permission"):
            binding = f.binding(kind)
            if binding is not None and (binding.is_required or binding.remove_from_schema):
                prune(f)

    # legacy dialect has no file-in-body support
    if policy.is_swagger2:
        for f in [f for f in remaining if f.is_file and f.name not in classified]:
            prune(f)
            fields.remove(f)
            params.append(create_param(ctx, ParameterKind.FORM_DATA, f))

    if definition.idempotency is not None:
        opts = definition.idempotency
        param = create_param(ctx, ParameterKind.HEADER, None, opts.header_name, True, opts.header_schema)
        param.example = opts.example
        param.description = opts.header_description
        params.append(param)

    result.body_field = next((f for f in fields if f.has_binding("body")), None)
    result.form_field = next((f for f in fields if f.has_binding("form")), None)

    logger.debug("Classified %d parameters for %s %s; pruned: %s",
                 len(params), descriptor.verb, op.path, removed)
    return result


def add_parameters(op: Operation, params: list[Parameter], policy: DocumentPolicy) -> None:
    """Append parameters; a colliding (name, kind) pair is replaced."""
    for p in params:
        existing = op.parameter(p.name, p.kind)
        if existing is not None:
            if policy.external_versioning:
                logger.debug("Replacing pre-populated %s parameter %s", p.kind.value, p.name)
            else:
                logger.warning("Duplicate %s parameter %s; keeping the last one", p.kind.value, p.name)
            op.parameters.remove(existing)
        op.parameters.append(p)


def apply_body_override(op: Operation, classification: Classification, graph: SchemaGraph) -> None:
    """Replace the whole body with the schema of a body/form-bound field."""
    ctx = classification.context
    for f in (classification.body_field, classification.form_field):
        if f is None or op.request_body is None:
            continue
        body = op.request_body
        old_name = body.name
        param = create_param(ctx, ParameterKind.BODY, f, f.name, True)
        for media in body.content.values():
            media.schema_ = param.schema_
        body.required = param.required
        body.description = param.description
        body.name = param.name
        graph.remove(old_name)
        logger.debug("Request body replaced by field %s", f.name)
