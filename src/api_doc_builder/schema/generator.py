"""Reflection-based schema generation.

Produces component schemas for request/response shapes that the registry
does not already hold, and seeds the raw operation the way a reflection
schema generator emits it: one content type per body/response, all pointing
at the shape's component.
"""

import copy

from api_doc_builder.config import DocumentPolicy
from api_doc_builder.document.models import MediaType, Operation, RequestBody, Response
from api_doc_builder.naming import apply_naming
from api_doc_builder.parser.base import EndpointDescriptor, ResponseMeta, ShapeField
from api_doc_builder.schema.graph import SchemaGraph


def wire_name(field: ShapeField, policy: DocumentPolicy) -> str:
    """Property key of a field inside a reflected schema."""
    return field.json_name or apply_naming(field.name, policy.naming_policy)


def shape_schema(name: str, fields: list[ShapeField], base: str | None,
                 is_list: bool, graph: SchemaGraph, policy: DocumentPolicy) -> dict:
    """Return a schema reference for a shape, generating its component if needed."""
    if not graph.has(name):
        graph.add(name, _object_schema(fields, base, graph, policy))
    if is_list:
        return {"type": "array", "items": graph.ref(name)}
    return graph.ref(name)


def _object_schema(fields, base, graph, policy) -> dict:
    inherited = set(graph.all_properties(graph.ref(base))) if base and graph.has(base) else set()
    properties = {}
    required = []
    for f in fields:
        key = wire_name(f, policy)
        if key in inherited or f.has_binding("ignore"):
            continue
        prop = copy.deepcopy(f.schema_)
        if f.description:
            prop["description"] = f.description
        if f.example is not None:
            prop["example"] = f.example
        if f.nullable and not policy.is_swagger2:
            prop["nullable"] = True
        properties[key] = prop
        if not f.nullable and not f.has_default:
            required.append(key)

    own = {"type": "object", "properties": properties}
    if required:
        own["required"] = required
    if base:
        return {"allOf": [graph.ref(base), own]}
    return own


def seed_operation(descriptor: EndpointDescriptor, graph: SchemaGraph,
                   policy: DocumentPolicy) -> Operation:
    """Raw operation before any pipeline stage has run."""
    definition = descriptor.definition
    op = Operation(
        path=descriptor.route,
        method=descriptor.verb.lower(),
        parameters=[p.model_copy(deep=True) for p in descriptor.parameters],
    )

    request = definition.request
    if request is not None:
        schema = shape_schema(request.name, request.fields, request.base, request.is_list, graph, policy)
        content_type = definition.consumes[0] if definition.consumes else "application/json"
        op.request_body = RequestBody(
            content={content_type: MediaType(schema=schema)},
            required=True,
            name=request.name,
        )

    for status, meta in last_meta_per_status(definition.responses).items():
        response = Response()
        if meta.shape is not None and meta.content_types:
            schema = shape_schema(meta.shape.name, meta.shape.fields, meta.shape.base,
                                  meta.shape.is_list, graph, policy)
            response.content = {meta.content_types[0]: MediaType(schema=schema)}
        op.responses[str(status)] = response

    return op


def last_meta_per_status(metas: list[ResponseMeta]) -> dict[int, ResponseMeta]:
    result: dict[int, ResponseMeta] = {}
    for meta in metas:
        result[meta.status_code] = meta
    return dict(sorted(result.items()))
