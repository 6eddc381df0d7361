"""Response assembly: examples, headers, content types and descriptions."""

import copy
import json
import logging

from api_doc_builder.config import DocumentPolicy
from api_doc_builder.document.models import Header, MediaType, Operation, Response
from api_doc_builder.naming import apply_naming, is_list_like, to_wire
from api_doc_builder.parser.base import EndpointDescriptor, EndpointSummary, ResponseMeta
from api_doc_builder.pipeline.pruner import distinct_media
from api_doc_builder.schema.generator import last_meta_per_status
from api_doc_builder.schema.graph import SchemaGraph

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTIONS = {
    "200": "Success",
    "201": "Created",
    "202": "Accepted",
    "204": "No Content",
    "400": "Bad Request",
    "401": "Unauthorized",
    "403": "Forbidden",
    "404": "Not Found",
    "405": "Method Not Allowed",
    "406": "Not Acceptable",
    "429": "Too Many Requests",
    "500": "Server Error",
}


def schema_for_value(value) -> dict | None:
    """JSON schema describing the type of a plain example value."""
    if value is None:
        return None
    if isinstance(value, bool):
        return {"type": "boolean"}
    if isinstance(value, int):
        return {"type": "integer"}
    if isinstance(value, float):
        return {"type": "number"}
    if isinstance(value, str):
        return {"type": "string"}
    if is_list_like(value):
        return {"type": "array"}
    return {"type": "object"}


def resolve_example(meta: ResponseMeta, summary: EndpointSummary | None, policy: DocumentPolicy):
    example = meta.example
    if example is None and summary is not None:
        example = summary.response_examples.get(meta.status_code)
    if example is None:
        return None
    example = to_wire(example, policy.naming_policy)
    if policy.is_swagger2 and isinstance(example, list):
        return json.dumps(example)
    return example


def _exposed_headers(meta: ResponseMeta, graph: SchemaGraph, policy: DocumentPolicy) -> dict[str, Header]:
    headers = {}
    if meta.shape is None:
        return headers
    for f in meta.shape.fields:
        to_header = f.binding("to_header")
        if to_header is None:
            continue
        name = to_header.header_name or apply_naming(f.name, policy.naming_policy)
        schema = copy.deepcopy(f.schema_)
        example = to_wire(f.example, policy.naming_policy) if f.example is not None else graph.sample(schema)
        headers[name] = Header(description=f.description, schema=schema, example=example)
    return headers


def _flatten_polymorphism(response: Response, graph: SchemaGraph) -> None:
    for media in distinct_media(response.content.values()):
        actual = graph.resolve(media.schema_)
        if not actual or not actual.get("oneOf"):
            continue
        discriminator = actual.get("discriminator")
        if not isinstance(discriminator, dict) or not discriminator.get("mapping"):
            continue
        flattened = {k: v for k, v in media.schema_.items() if k != "$ref"}
        flattened["oneOf"] = flattened.get("oneOf", []) + copy.deepcopy(actual["oneOf"])
        media.schema_ = flattened


def _fix_byte_format(response: Response) -> None:
    for media in response.content.values():
        schema = media.schema_
        if schema is not None and schema.get("type") == "string" and schema.get("format") == "byte":
            schema["format"] = "binary"


def assemble_responses(op: Operation, descriptor: EndpointDescriptor, graph: SchemaGraph,
                       policy: DocumentPolicy) -> None:
    """Merge declared response metadata with the user's examples and headers."""
    definition = descriptor.definition
    summary = definition.summary
    metas = last_meta_per_status(definition.responses)

    for key, response in op.responses.items():
        meta = metas.get(int(key))
        if meta is None:
            continue

        media: MediaType | None = next(iter(response.content.values()), None)
        example = resolve_example(meta, summary, policy)
        if media is not None and example is not None:
            media.example = example

        response.headers.update(_exposed_headers(meta, graph, policy))

        for hdr in (summary.response_headers if summary else []):
            if hdr.status_code != meta.status_code:
                continue
            response.headers[hdr.header_name] = Header(
                description=hdr.description,
                example=to_wire(hdr.example, policy.naming_policy),
                schema=schema_for_value(hdr.example),
            )

        # every declared content type shares the one resolved schema
        if media is not None:
            response.content = {ct: media for ct in meta.content_types}

        if policy.use_one_of_for_polymorphism:
            _flatten_polymorphism(response, graph)

        _fix_byte_format(response)

    logger.debug("Assembled %d responses for %s %s", len(op.responses), descriptor.verb, op.path)


def _response_schema(response: Response, graph: SchemaGraph) -> dict | None:
    media = next(iter(response.content.values()), None)
    if media is None or media.schema_ is None:
        return None
    schema = graph.resolve(media.schema_)
    if schema.get("type") == "array":
        return schema.get("items")
    return schema


def apply_response_descriptions(op: Operation, descriptor: EndpointDescriptor, graph: SchemaGraph,
                                policy: DocumentPolicy) -> None:
    """Fill blank response descriptions and response property descriptions."""
    summary = descriptor.definition.summary
    metas = last_meta_per_status(descriptor.definition.responses)

    for key, response in op.responses.items():
        if response.description.strip():
            continue

        response.description = DEFAULT_DESCRIPTIONS.get(key, "")
        status = int(key)
        if summary is None:
            continue
        if status in summary.responses:
            response.description = summary.responses[status]

        prop_descriptions = summary.response_params.get(status)
        schema = _response_schema(response, graph)
        if not prop_descriptions or schema is None:
            continue

        meta = metas.get(status)
        json_names = {f.name: f.json_name for f in meta.shape.fields if f.json_name} if meta and meta.shape else {}
        by_wire_name = {}
        for name, text in prop_descriptions.items():
            by_wire_name[name] = text
            by_wire_name[json_names.get(name) or apply_naming(name, policy.naming_policy)] = text

        for prop_key, prop in graph.all_properties(schema).items():
            if prop_key in by_wire_name:
                prop["description"] = by_wire_name[prop_key]
