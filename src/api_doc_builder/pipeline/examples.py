"""Request example synthesis."""

import logging

from api_doc_builder.config import DocumentPolicy
from api_doc_builder.document.models import Example, Operation
from api_doc_builder.naming import is_list_like, to_wire
from api_doc_builder.parser.base import EndpointDefinition, RequestExample, ShapeField
from api_doc_builder.schema.generator import wire_name
from api_doc_builder.schema.graph import SchemaGraph

logger = logging.getLogger(__name__)


def unique_labels(examples: list[RequestExample]) -> list[str]:
    """Labels in encounter order; repeats get a " 2", " 3", ... suffix."""
    used: set[str] = set()
    counts: dict[str, int] = {}
    labels = []
    for ex in examples:
        n = counts.get(ex.label, 0) + 1
        label = ex.label if n == 1 else f"{ex.label} {n}"
        while label in used:
            n += 1
            label = f"{ex.label} {n}"
        counts[ex.label] = n
        used.add(label)
        labels.append(label)
    return labels


def _field_value(value, field: ShapeField, policy: DocumentPolicy):
    if isinstance(value, dict):
        for key in (field.name, wire_name(field, policy)):
            if key in value:
                return value[key]
        return None
    return getattr(value, field.name, None)


def project_example(value, removed: list[str], policy: DocumentPolicy,
                    override_fields: tuple[ShapeField | None, ...] = ()):
    """Serialize a user example the way the pruned body schema describes it."""
    for f in override_fields:
        if f is not None:
            inner = _field_value(value, f, policy)
            value = inner if inner is not None else value

    wire = to_wire(value, policy.naming_policy)
    if is_list_like(value) or not isinstance(wire, dict):
        return wire

    lowered = {name.lower() for name in removed}
    return {k: v for k, v in wire.items() if k.lower() not in lowered}


def attach_request_examples(op: Operation, definition: EndpointDefinition, removed: list[str],
                            override_fields: tuple[ShapeField | None, ...], graph: SchemaGraph,
                            policy: DocumentPolicy) -> None:
    summary = definition.summary
    if summary is None or not summary.request_examples or op.request_body is None:
        return

    media = next(iter(op.request_body.content.values()), None)
    if media is None:
        return

    examples = summary.request_examples
    if len(examples) == 1:
        schema = graph.resolve(media.schema_)
        if schema is not None:
            schema["example"] = project_example(examples[0].value, removed, policy, override_fields)
        return

    for label, ex in zip(unique_labels(examples), examples):
        media.examples[label] = Example(
            summary=ex.summary,
            description=ex.description,
            value=project_example(ex.value, removed, policy, override_fields),
        )
    logger.debug("Attached %d request examples to %s %s", len(examples), op.method.upper(), op.path)
