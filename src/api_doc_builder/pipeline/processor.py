"""Operation assembly: runs every pipeline stage for one endpoint, in order."""

import logging

from api_doc_builder.config import DocumentPolicy
from api_doc_builder.document.models import Operation, ParameterKind
from api_doc_builder.parser.base import EndpointDescriptor
from api_doc_builder.pipeline.examples import attach_request_examples
from api_doc_builder.pipeline.params import add_parameters, apply_body_override, classify_parameters
from api_doc_builder.pipeline.responses import apply_response_descriptions, assemble_responses
from api_doc_builder.pipeline.routes import normalize_route
from api_doc_builder.schema.generator import seed_operation
from api_doc_builder.schema.graph import SchemaGraph

logger = logging.getLogger(__name__)


class OperationProcessor:
    """Builds the operation description of managed endpoints."""

    def __init__(self, policy: DocumentPolicy, graph: SchemaGraph):
        self.policy = policy
        self.graph = graph

    def process(self, descriptor: EndpointDescriptor) -> Operation | None:
        """Return the assembled operation, or None for a foreign endpoint."""
        definition = descriptor.definition
        if definition is None:
            return None

        policy, graph = self.policy, self.graph
        op = seed_operation(descriptor, graph, policy)

        route = normalize_route(descriptor, policy)
        op.path = route.path
        op.bare_route = route.bare_route
        op.version_marker = route.version_marker
        op.tags = list(route.tags)
        op.operation_id = definition.name

        self._propagate_request_content(op, descriptor)

        assemble_responses(op, descriptor, graph, policy)
        summary = definition.summary
        op.summary = summary.summary if summary and summary.summary is not None else definition.doc_summary
        op.description = (summary.description if summary and summary.description is not None
                          else definition.doc_description)
        if definition.obsolete:
            op.deprecated = True
        apply_response_descriptions(op, descriptor, graph, policy)

        classification = classify_parameters(op, descriptor, route, graph, policy)
        add_parameters(op, classification.parameters, policy)

        self._collapse_body(op, descriptor)
        if policy.remove_empty_request_schema:
            graph.remove_empty_objects()

        apply_body_override(op, classification, graph)
        attach_request_examples(
            op, definition, classification.removed,
            (classification.body_field, classification.form_field), graph, policy,
        )

        logger.debug("Processed %s %s", descriptor.verb.upper(), op.path)
        return op

    @staticmethod
    def _propagate_request_content(op: Operation, descriptor: EndpointDescriptor) -> None:
        """Every declared request content type shares the generated body schema."""
        body = op.request_body
        consumes = descriptor.definition.consumes
        if body is None or not body.content or not consumes:
            return
        media = next(iter(body.content.values()))
        body.content = {ct: media for ct in consumes}

    def _collapse_body(self, op: Operation, descriptor: EndpointDescriptor) -> None:
        request = descriptor.definition.request
        if request is None or request.is_list or op.request_body is None:
            return

        get_without_body = descriptor.is_get and not self.policy.enable_get_requests_with_body
        no_properties = all(self.graph.has_no_properties(m.schema_) for m in op.request_body.content.values())
        if get_without_body or no_properties:
            op.request_body = None
            op.parameters = [p for p in op.parameters if p.kind is not ParameterKind.BODY]
