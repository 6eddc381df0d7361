"""Global documentation policy.

A single frozen DocumentPolicy is created per document build and handed
explicitly to every pipeline stage.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class TagCase(str, Enum):
    NONE = "none"
    TITLE = "title"
    LOWER = "lower"


class NamingPolicy(str, Enum):
    NONE = "none"
    CAMEL = "camel"
    PASCAL = "pascal"
    SNAKE = "snake"
    KEBAB = "kebab"


class SpecDialect(str, Enum):
    OAS3 = "oas3"
    SWAGGER2 = "swagger2"


DEFAULT_ROUTE_CONSTRAINTS: dict[str, dict] = {
    "int": {"type": "integer", "format": "int32"},
    "long": {"type": "integer", "format": "int64"},
    "bool": {"type": "boolean"},
    "decimal": {"type": "number", "format": "decimal"},
    "double": {"type": "number", "format": "double"},
    "float": {"type": "number", "format": "float"},
    "guid": {"type": "string", "format": "uuid"},
    "datetime": {"type": "string", "format": "date-time"},
    "alpha": {"type": "string"},
}


class DocumentPolicy(BaseModel):
    """Document-wide options shared by every endpoint run."""

    model_config = ConfigDict(frozen=True)

    auto_tag_path_segment_index: int = 1  # 0 disables auto tagging
    tag_case: TagCase = TagCase.TITLE
    tag_strip_symbols: bool = False
    enable_get_requests_with_body: bool = False
    use_one_of_for_polymorphism: bool = False
    remove_empty_request_schema: bool = False
    naming_policy: NamingPolicy = NamingPolicy.CAMEL
    endpoint_route_prefix: str | None = None
    versioning_prefix: str | None = None
    allow_empty_request_dtos: bool = False
    external_versioning: bool = False
    dialect: SpecDialect = SpecDialect.OAS3
    generate_examples: bool = True
    route_constraint_map: dict[str, dict] = DEFAULT_ROUTE_CONSTRAINTS

    @property
    def is_swagger2(self) -> bool:
        return self.dialect is SpecDialect.SWAGGER2
