"""Component schema registry and JSON-Schema graph traversal.

Schemas are plain dicts. Nodes are connected by `$ref` edges into the
registry and by `allOf` composition edges; every traversal follows both and
tracks visited nodes so that recursive schemas terminate.
"""

import logging

logger = logging.getLogger(__name__)

REF_PREFIX = "#/components/schemas/"


class SchemaGraph:
    """Named component schemas shared by every operation of a document."""

    def __init__(self, schemas: dict[str, dict] | None = None):
        self.schemas: dict[str, dict] = schemas if schemas is not None else {}

    # -- registry -------------------------------------------------------------

    @staticmethod
    def ref(name: str) -> dict:
        return {"$ref": REF_PREFIX + name}

    @staticmethod
    def ref_name(schema: dict | None) -> str | None:
        ref = (schema or {}).get("$ref")
        if isinstance(ref, str) and ref.startswith(REF_PREFIX):
            return ref[len(REF_PREFIX):]
        return None

    def has(self, name: str) -> bool:
        return name in self.schemas

    def add(self, name: str, schema: dict) -> dict:
        self.schemas[name] = schema
        return self.ref(name)

    def remove(self, name: str | None) -> None:
        if name is not None and self.schemas.pop(name, None) is not None:
            logger.debug("Removed component schema %s", name)

    # -- traversal ------------------------------------------------------------

    def resolve(self, schema: dict | None) -> dict | None:
        """Follow `$ref` edges to the actual schema node."""
        seen = set()
        while schema is not None:
            name = self.ref_name(schema)
            if name is None or name in seen:
                return schema
            seen.add(name)
            target = self.schemas.get(name)
            if target is None:
                return schema
            schema = target
        return None

    def composed(self, schema: dict | None) -> list[dict]:
        """Actual schemas reachable through the node's allOf edges."""
        actual = self.resolve(schema)
        if actual is None:
            return []
        return [r for r in (self.resolve(s) for s in actual.get("allOf", [])) if r is not None]

    def all_properties(self, schema: dict | None) -> dict[str, dict]:
        """Own properties followed by every inherited/composed property."""
        result: dict[str, dict] = {}
        self._collect_properties(schema, result, set())
        return result

    def _collect_properties(self, schema, result, visited) -> None:
        actual = self.resolve(schema)
        if actual is None or id(actual) in visited:
            return
        visited.add(id(actual))
        for key, prop in actual.get("properties", {}).items():
            result.setdefault(key, prop)
        for sub in self.composed(actual):
            self._collect_properties(sub, result, visited)

    def has_no_properties(self, schema: dict | None) -> bool:
        return not self.all_properties(schema)

    def find_key(self, schema: dict | None, name: str) -> str | None:
        """Case-insensitive lookup of a property key anywhere in the graph."""
        lowered = name.lower()
        for key in self.all_properties(schema):
            if key.lower() == lowered:
                return key
        return None

    def remove_property(self, schema: dict | None, key: str) -> None:
        """Remove a property and its required entry from every reachable node."""
        self._remove(schema, key, set())

    def _remove(self, schema, key, visited) -> None:
        actual = self.resolve(schema)
        if actual is None or id(actual) in visited:
            return
        visited.add(id(actual))
        actual.get("properties", {}).pop(key, None)
        required = actual.get("required")
        if required and key in required:
            required.remove(key)
            if not required:
                del actual["required"]
        for sub in self.composed(actual):
            self._remove(sub, key, visited)

    # -- maintenance ----------------------------------------------------------

    def remove_empty_objects(self) -> list[str]:
        """Delete object components left without any properties.

        A component still referenced by another component is kept.
        """
        removed = []
        while True:
            referenced = {ref for name, schema in self.schemas.items()
                          for ref in _iter_refs(schema) if ref != name}
            empty = [name for name, schema in self.schemas.items()
                     if name not in referenced and _is_object(schema)
                     and not schema.get("properties") and not _is_composed(schema)]
            if not empty:
                break
            for name in empty:
                del self.schemas[name]
            removed.extend(empty)
        if removed:
            logger.debug("Removed empty component schemas: %s", ", ".join(removed))
        return removed

    def sample(self, schema: dict | None, _depth: int = 0):
        """Generate a sample JSON value for a schema."""
        actual = self.resolve(schema)
        if actual is None or _depth > 8:
            return None
        if "example" in actual:
            return actual["example"]
        if actual.get("enum"):
            return actual["enum"][0]
        if _is_object(actual) or _is_composed(actual):
            return {k: self.sample(v, _depth + 1) for k, v in self.all_properties(actual).items()}
        schema_type = actual.get("type")
        if schema_type == "array":
            return [self.sample(actual.get("items"), _depth + 1)]
        if schema_type == "integer":
            return 0
        if schema_type == "number":
            return 0.0
        if schema_type == "boolean":
            return False
        if schema_type == "string":
            return _STRING_SAMPLES.get(actual.get("format"), "string")
        return None


_STRING_SAMPLES = {
    "date-time": "2024-01-01T00:00:00Z",
    "date": "2024-01-01",
    "uuid": "00000000-0000-0000-0000-000000000000",
}


def _is_object(schema: dict) -> bool:
    return schema.get("type") == "object" or ("properties" in schema and "type" not in schema)


def _is_composed(schema: dict) -> bool:
    return bool(schema.get("allOf") or schema.get("oneOf") or schema.get("anyOf"))


def _iter_refs(node):
    """Component names referenced anywhere below a node."""
    if isinstance(node, dict):
        name = SchemaGraph.ref_name(node)
        if name is not None:
            yield name
        for value in node.values():
            yield from _iter_refs(value)
    elif isinstance(node, list):
        for item in node:
            yield from _iter_refs(item)
