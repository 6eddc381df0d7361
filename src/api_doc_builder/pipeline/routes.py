"""Route template normalization and tag derivation."""

import logging
import re
from dataclasses import dataclass, field

from api_doc_builder.config import DocumentPolicy, TagCase
from api_doc_builder.parser.base import EndpointDescriptor

logger = logging.getLogger(__name__)

ROUTE_PARAM = re.compile(r"(?<=\{)[^{}]*(?=\})")
_CONSTRAINED_TOKEN = re.compile(r"\{([^?:}]+)[^}]*\}")
_CONSTRAINED_SEGMENT = re.compile(r"\{[^{}]*:[^{}]*\}")
_SYMBOLS = re.compile(r"[^a-zA-Z0-9]")


@dataclass
class RouteInfo:
    path: str
    bare_route: str
    tags: list[str] = field(default_factory=list)
    param_types: dict[str, dict] = field(default_factory=dict)
    version_marker: str = ""

    def type_for_route_param(self, name: str) -> dict:
        return dict(self.param_types.get(name, {"type": "string"}))


def strip_route_constraints(relative_path: str) -> str:
    """`{id:int:min(1)}` -> `{id}` for every `/` segment."""
    return "/".join(_CONSTRAINED_TOKEN.sub(r"{\1}", part) for part in relative_path.split("/"))


def canonical_path(route: str) -> str:
    return "/" + strip_route_constraints(route.lstrip("~").strip("/"))


def bare_route(path: str, version: int, policy: DocumentPolicy) -> str:
    """Path with the route prefix and version segment removed."""
    route_prefix = "/" + (policy.endpoint_route_prefix or "_")
    version_segment = f"/{policy.versioning_prefix or 'v'}{version}"
    return path.replace(route_prefix, "", 1).replace(version_segment, "", 1)


def route_param_types(route: str, policy: DocumentPolicy) -> dict[str, dict]:
    """Map constrained route params to schemas, for params without a matching field."""
    types = {}
    for segment in route.split("/"):
        if not _CONSTRAINED_SEGMENT.search(segment):
            continue
        # api/{id:int:min(5)}:deactivate
        start = segment.index("{") + 1
        ends = [i for i in (segment.find("(", start), segment.find("}", start)) if i != -1]
        name, _, constraint = segment[start:min(ends)].partition(":")
        constraint = constraint.split(":")[0].strip()
        types[name.strip()] = dict(policy.route_constraint_map.get(constraint, {"type": "string"}))
    return types


def tag_name(value: str, tag_case: TagCase, strip_symbols: bool) -> str:
    if tag_case is TagCase.TITLE:
        value = value.title()
    elif tag_case is TagCase.LOWER:
        value = value.lower()
    return _SYMBOLS.sub("", value) if strip_symbols else value


def derive_tags(bare: str, descriptor: EndpointDescriptor, policy: DocumentPolicy) -> list[str]:
    index = policy.auto_tag_path_segment_index
    definition = descriptor.definition
    if index <= 0 or definition.dont_auto_tag:
        return []

    if definition.auto_tag_override is not None:
        return [tag_name(definition.auto_tag_override, policy.tag_case, policy.tag_strip_symbols)]

    segments = [s for s in bare.split("/") if s]
    if len(segments) >= index:
        return [tag_name(segments[index - 1], policy.tag_case, policy.tag_strip_symbols)]
    return []


def normalize_route(descriptor: EndpointDescriptor, policy: DocumentPolicy) -> RouteInfo:
    version = descriptor.definition.version
    path = canonical_path(descriptor.route)
    bare = bare_route(path, version.current, policy)
    info = RouteInfo(
        path=path,
        bare_route=bare,
        tags=derive_tags(bare, descriptor, policy),
        param_types=route_param_types(descriptor.route, policy),
        version_marker=(
            f"|{descriptor.verb.upper()}:{bare}|{version.current}"
            f"|{version.starting_release_version}|{version.deprecated_at}"
        ),
    )
    logger.debug("Normalized route %s -> %s (bare: %s)", descriptor.route, path, bare)
    return info
