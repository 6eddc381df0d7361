"""Build file loader.

A build file (YAML or JSON) bundles the document info, the documentation
policy, pre-registered component schemas and the reflected endpoints.
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, ValidationError

from api_doc_builder.config import DocumentPolicy
from api_doc_builder.errors import BuildFileError
from .base import EndpointDescriptor


class BuildInput(BaseModel):
    info: dict = {"title": "API", "version": "v1"}
    policy: DocumentPolicy = DocumentPolicy()
    schemas: dict[str, dict] = {}
    endpoints: list[EndpointDescriptor] = []


def load_build_file(file_path: Path) -> BuildInput:
    """Parse a build file into a BuildInput."""
    text = file_path.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise BuildFileError(f"{file_path}: not valid YAML/JSON: {e}") from e

    if not isinstance(data, dict):
        raise BuildFileError(f"{file_path}: expected a mapping at the top level")

    components = data.get("components") or {}
    try:
        return BuildInput(
            info=data.get("info") or {"title": "API", "version": "v1"},
            policy=data.get("policy") or {},
            schemas=components.get("schemas") or {},
            endpoints=data.get("endpoints") or [],
        )
    except ValidationError as e:
        raise BuildFileError(f"{file_path}: invalid build file:\n{e}") from e
