"""Wire-level naming conventions and example serialization."""

import dataclasses
import re

from pydantic import BaseModel
from pydantic.alias_generators import to_snake

from api_doc_builder.config import NamingPolicy

_WORD_SEPARATORS = re.compile(r"[_\-\s]+")


def apply_naming(name: str, policy: NamingPolicy) -> str:
    """Convert a reflected field name into its wire name."""
    if not name or policy is NamingPolicy.NONE:
        return name
    if policy is NamingPolicy.CAMEL:
        return _camel(name)
    if policy is NamingPolicy.PASCAL:
        camel = _camel(name)
        return camel[:1].upper() + camel[1:]
    if policy is NamingPolicy.SNAKE:
        return to_snake(name)
    return to_snake(name).replace("_", "-")


def _camel(name: str) -> str:
    if _WORD_SEPARATORS.search(name.strip("_")):
        first, *rest = [w for w in _WORD_SEPARATORS.split(name) if w]
        return _lower_leading(first) + "".join(w[:1].upper() + w[1:] for w in rest)
    return _lower_leading(name)


def _lower_leading(word: str) -> str:
    # "URLValue" -> "urlValue", "ID" -> "id", "Name" -> "name"
    chars = list(word)
    for i, ch in enumerate(chars):
        if not ch.isupper():
            break
        if i > 0 and i + 1 < len(chars) and chars[i + 1].islower():
            break
        chars[i] = ch.lower()
    return "".join(chars)


def to_wire(value, policy: NamingPolicy):
    """Serialize an example object into JSON-compatible data.

    Object keys are passed through the naming convention so that examples
    line up with the property keys of reflected schemas.
    """
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json", by_alias=True)
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)

    if isinstance(value, dict):
        return {apply_naming(str(k), policy): to_wire(v, policy) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_wire(v, policy) for v in value]
    return value


def is_list_like(value) -> bool:
    return isinstance(value, (list, tuple, set))
