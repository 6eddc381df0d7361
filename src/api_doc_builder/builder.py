"""Document build driver.

Runs the operation pipeline over a pre-collected endpoint set, one endpoint
at a time, and attaches every operation to a shared OpenAPI document.
"""

import copy
import logging

from api_doc_builder.config import DocumentPolicy
from api_doc_builder.parser.base import EndpointDescriptor
from api_doc_builder.pipeline.processor import OperationProcessor
from api_doc_builder.schema.graph import SchemaGraph

logger = logging.getLogger(__name__)


class DocumentBuilder:
    """Assembles an OpenAPI document from endpoint descriptors."""

    def __init__(self, policy: DocumentPolicy | None = None, schemas: dict[str, dict] | None = None,
                 info: dict | None = None):
        self.policy = policy or DocumentPolicy()
        self.schemas = schemas or {}
        self.info = info or {"title": "API", "version": "v1"}

    def build(self, endpoints: list[EndpointDescriptor]) -> dict:
        """Build the document; any fatal error aborts before anything is returned."""
        graph = SchemaGraph(copy.deepcopy(self.schemas))
        processor = OperationProcessor(self.policy, graph)
        paths: dict[str, dict] = {}

        for descriptor in endpoints:
            op = processor.process(descriptor)
            if op is None:
                logger.debug("Passing through foreign endpoint %s %s", descriptor.verb, descriptor.route)
                path = "/" + descriptor.route.lstrip("~").strip("/")
                paths.setdefault(path, {})[descriptor.verb.lower()] = copy.deepcopy(descriptor.operation)
                continue
            paths.setdefault(op.path, {})[op.method] = op.to_openapi()

        logger.info("Built document with %d paths and %d component schemas", len(paths), len(graph.schemas))
        return self._document(paths, graph)

    def _document(self, paths: dict, graph: SchemaGraph) -> dict:
        # rendering into the swagger2 wire layout is left to the renderer
        return {
            "openapi": "3.0.1",
            "info": self.info,
            "paths": paths,
            "components": {"schemas": graph.schemas},
        }
