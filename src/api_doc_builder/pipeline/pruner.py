"""Removal of classified-out fields from request body schemas."""

import logging

from api_doc_builder.document.models import MediaType
from api_doc_builder.schema.graph import SchemaGraph

logger = logging.getLogger(__name__)


def prune_field(key: str, content: dict[str, MediaType] | None, graph: SchemaGraph) -> str | None:
    """Remove a body property from every content type's schema.

    `key` is the field's wire name; matching is case-insensitive and the
    removal cascades through every composed/inherited schema. Returns the
    name to record in the removed-field list, or None when there is no body.
    Removing an absent field is a no-op.
    """
    if content is None:
        return None

    for media in distinct_media(content.values()):
        found = graph.find_key(media.schema_, key)
        if found is not None:
            graph.remove_property(media.schema_, found)
            logger.debug("Pruned %s from request body", found)
    return key


def distinct_media(media_types):
    seen = set()
    for media in media_types:
        if id(media) not in seen:
            seen.add(id(media))
            yield media
