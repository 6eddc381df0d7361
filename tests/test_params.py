import logging

import pytest

from api_doc_builder.config import DocumentPolicy, SpecDialect
from api_doc_builder.document.models import MediaType, Operation, Parameter, ParameterKind
from api_doc_builder.errors import EmptyRequestShapeError
from api_doc_builder.parser.base import (
    BindFrom,
    ClaimBinding,
    EndpointDefinition,
    EndpointDescriptor,
    EndpointSummary,
    HeaderBinding,
    HiddenBinding,
    IdempotencyOptions,
    PermissionBinding,
    QueryBinding,
    RequestExample,
    RequestShape,
    ShapeField,
)
from api_doc_builder.pipeline.params import (
    ParamContext,
    add_parameters,
    classify_parameters,
    collect_descriptions,
    create_param,
)
from api_doc_builder.pipeline.routes import RouteInfo, normalize_route
from api_doc_builder.schema.generator import seed_operation
from api_doc_builder.schema.graph import SchemaGraph


def _classify(route: str, verb: str, fields: list[ShapeField], policy: DocumentPolicy | None = None,
              **definition):
    policy = policy or DocumentPolicy()
    graph = SchemaGraph()
    descriptor = EndpointDescriptor(
        route=route,
        verb=verb,
        definition=EndpointDefinition(request=RequestShape(name="Req", fields=fields), **definition),
    )
    op = seed_operation(descriptor, graph, policy)
    route_info = normalize_route(descriptor, policy)
    op.path = route_info.path
    result = classify_parameters(op, descriptor, route_info, graph, policy)
    return op, result, graph


def _body_props(graph: SchemaGraph) -> list[str]:
    return list(graph.schemas["Req"]["properties"])


def _kinds(result) -> list[tuple[str, ParameterKind]]:
    return [(p.name, p.kind) for p in result.parameters]


class TestPathParams:
    def test_matched_field_becomes_path_param(self):
        fields = [ShapeField(name="Id", schema={"type": "integer"}), ShapeField(name="Note")]
        op, result, graph = _classify("orders/{ID:int}", "POST", fields)

        assert op.path == "/orders/{id}"
        assert _kinds(result) == [("id", ParameterKind.PATH)]
        assert result.parameters[0].required is True
        assert result.parameters[0].schema_ == {"type": "integer"}
        assert result.removed == ["id"]
        assert _body_props(graph) == ["note"]

    def test_unmatched_token_uses_constraint_type(self):
        op, result, graph = _classify("orders/{orderId:long}/lines", "POST", [ShapeField(name="Note")])

        param = result.parameters[0]
        assert (param.name, param.kind, param.required) == ("orderId", ParameterKind.PATH, True)
        assert param.schema_ == {"type": "integer", "format": "int64"}
        assert _body_props(graph) == ["note"]

    def test_bind_from_name_matches_token(self):
        fields = [ShapeField(name="Identifier", bindings=[BindFrom(name="id")]), ShapeField(name="Note")]
        op, result, graph = _classify("orders/{id}", "PUT", fields)

        assert _kinds(result) == [("id", ParameterKind.PATH)]
        assert _body_props(graph) == ["note"]


class TestQueryParams:
    def test_get_fields_become_query_params(self):
        fields = [ShapeField(name="Page", schema={"type": "integer"}), ShapeField(name="Size", schema={"type": "integer"})]
        op, result, graph = _classify("items", "GET", fields)

        assert _kinds(result) == [("page", ParameterKind.QUERY), ("size", ParameterKind.QUERY)]
        assert _body_props(graph) == []

    def test_get_path_field_not_duplicated_as_query(self):
        fields = [ShapeField(name="Id"), ShapeField(name="Filter")]
        op, result, graph = _classify("items/{id}", "GET", fields)

        assert _kinds(result) == [("id", ParameterKind.PATH), ("filter", ParameterKind.QUERY)]

    def test_get_with_body_opt_in(self):
        policy = DocumentPolicy(enable_get_requests_with_body=True)
        op, result, graph = _classify("items", "GET", [ShapeField(name="Filter")], policy)

        assert result.parameters == []
        assert _body_props(graph) == ["filter"]

    def test_query_annotation_on_post(self):
        fields = [ShapeField(name="Dry", bindings=[QueryBinding()]), ShapeField(name="Note")]
        op, result, graph = _classify("orders", "POST", fields)

        assert _kinds(result) == [("dry", ParameterKind.QUERY)]
        assert _body_props(graph) == ["note"]


class TestHeaderParams:
    def test_required_header_removed_from_body(self):
        fields = [ShapeField(name="Auth", bindings=[HeaderBinding()]), ShapeField(name="Note")]
        op, result, graph = _classify("orders", "POST", fields)

        assert _kinds(result) == [("Auth", ParameterKind.HEADER)]
        assert result.parameters[0].required is True
        assert _body_props(graph) == ["note"]

    def test_header_name_defaults_to_field_name(self):
        fields = [ShapeField(name="XTenant", bindings=[HeaderBinding()]), ShapeField(name="Note")]
        op, result, graph = _classify("orders", "POST", fields)

        assert _kinds(result) == [("XTenant", ParameterKind.HEADER)]
        assert _body_props(graph) == ["note"]
        assert result.removed == ["xTenant"]

    def test_optional_header_stays_in_body(self):
        fields = [ShapeField(name="Trace", bindings=[HeaderBinding(header_name="X-Trace", is_required=False)])]
        op, result, graph = _classify("orders", "POST", fields)

        assert _kinds(result) == [("X-Trace", ParameterKind.HEADER)]
        assert result.parameters[0].required is False
        assert _body_props(graph) == ["trace"]

    def test_remove_from_schema(self):
        binding = HeaderBinding(header_name="X-Trace", is_required=False, remove_from_schema=True)
        fields = [ShapeField(name="Trace", bindings=[binding]), ShapeField(name="Note")]
        op, result, graph = _classify("orders", "POST", fields)

        assert _kinds(result) == [("X-Trace", ParameterKind.HEADER)]
        assert _body_props(graph) == ["note"]

    def test_reserved_header_dropped(self):
        fields = [ShapeField(name="Token", bindings=[HeaderBinding(header_name="authorization")]), ShapeField(name="Note")]
        op, result, graph = _classify("orders", "POST", fields)

        assert result.parameters == []
        assert _body_props(graph) == ["note"]
        assert result.removed == ["token"]

    def test_header_field_never_query_on_get(self):
        fields = [ShapeField(name="Tenant", bindings=[HeaderBinding(header_name="X-Tenant")])]
        op, result, graph = _classify("items", "GET", fields)

        assert _kinds(result) == [("X-Tenant", ParameterKind.HEADER)]


class TestSecurityBindings:
    def test_required_claim_excluded_from_body(self):
        fields = [ShapeField(name="UserId", bindings=[ClaimBinding(claim_type="sub")]), ShapeField(name="Note")]
        op, result, graph = _classify("orders", "POST", fields)

        assert result.parameters == []
        assert _body_props(graph) == ["note"]

    def test_required_permission_excluded_on_get(self):
        fields = [ShapeField(name="CanEdit", bindings=[PermissionBinding(permission="edit")]), ShapeField(name="Q")]
        op, result, graph = _classify("items", "GET", fields)

        assert _kinds(result) == [("q", ParameterKind.QUERY)]

    def test_optional_claim_on_get_is_query(self):
        fields = [ShapeField(name="UserId", bindings=[ClaimBinding(is_required=False)])]
        op, result, graph = _classify("items", "GET", fields)

        assert _kinds(result) == [("userId", ParameterKind.QUERY)]

    def test_optional_claim_on_post_stays_in_body(self):
        fields = [ShapeField(name="UserId", bindings=[ClaimBinding(is_required=False)])]
        op, result, graph = _classify("orders", "POST", fields)

        assert result.parameters == []
        assert _body_props(graph) == ["userId"]

    def test_required_claim_dominates_query_annotation(self, caplog):
        fields = [ShapeField(name="UserId", bindings=[ClaimBinding(), QueryBinding()]), ShapeField(name="Note")]
        with caplog.at_level(logging.WARNING, logger="api_doc_builder.pipeline.params"):
            op, result, graph = _classify("orders", "POST", fields)

        assert result.parameters == []
        assert _body_props(graph) == ["note"]
        assert "security context" in caplog.text


class TestOtherRules:
    def test_hidden_fields_pruned_and_unclassified(self):
        fields = [
            ShapeField(name="Secret", bindings=[HiddenBinding()]),
            ShapeField(name="Computed", settable=False),
            ShapeField(name="Q"),
        ]
        op, result, graph = _classify("items", "GET", fields)

        assert _kinds(result) == [("q", ParameterKind.QUERY)]
        assert result.removed == ["secret", "computed", "q"]

    def test_file_field_is_form_data_in_swagger2(self):
        fields = [ShapeField(name="File", schema={"type": "string", "format": "binary"}), ShapeField(name="Note")]
        policy = DocumentPolicy(dialect=SpecDialect.SWAGGER2)
        op, result, graph = _classify("uploads", "POST", fields, policy)

        assert _kinds(result) == [("file", ParameterKind.FORM_DATA)]
        assert _body_props(graph) == ["note"]

    def test_file_field_stays_in_body_in_oas3(self):
        fields = [ShapeField(name="File", schema={"type": "string", "format": "binary"})]
        op, result, graph = _classify("uploads", "POST", fields)

        assert result.parameters == []
        assert _body_props(graph) == ["file"]

    def test_idempotency_header_appended(self):
        options = IdempotencyOptions(header_description="Retry key", example="abc-123")
        op, result, graph = _classify("orders", "POST", [ShapeField(name="Note")], idempotency=options)

        param = result.parameters[-1]
        assert (param.name, param.kind, param.required) == ("Idempotency-Key", ParameterKind.HEADER, True)
        assert param.example == "abc-123"
        assert param.description == "Retry key"

    def test_body_and_form_fields_detected(self):
        from api_doc_builder.parser.base import BodyBinding, FormBinding

        fields = [ShapeField(name="Payload", bindings=[BodyBinding()]), ShapeField(name="Upload", bindings=[FormBinding()])]
        op, result, graph = _classify("orders", "POST", fields)

        assert result.body_field.name == "Payload"
        assert result.form_field.name == "Upload"


class TestEmptyShape:
    def test_no_settable_fields_is_fatal(self):
        with pytest.raises(EmptyRequestShapeError, match="Req"):
            _classify("orders", "POST", [ShapeField(name="X", settable=False)], endpoint_type="CreateOrder")

    def test_allowed_by_policy(self):
        policy = DocumentPolicy(allow_empty_request_dtos=True)
        op, result, graph = _classify("orders", "POST", [], policy)
        assert result.parameters == []

    def test_empty_marker_allowed(self):
        graph = SchemaGraph()
        descriptor = EndpointDescriptor(
            route="ping", verb="POST",
            definition=EndpointDefinition(request=RequestShape(name="EmptyRequest", is_empty_marker=True)),
        )
        op = seed_operation(descriptor, graph, DocumentPolicy())
        route = normalize_route(descriptor, DocumentPolicy())
        result = classify_parameters(op, descriptor, route, graph, DocumentPolicy())
        assert result.parameters == []


class TestCreateParam:
    def _ctx(self, policy=None) -> ParamContext:
        from api_doc_builder.pipeline.params import ParamDescriptions

        return ParamContext(policy or DocumentPolicy(), SchemaGraph(), ParamDescriptions(), RouteInfo("/x", "/x"))

    def test_default_makes_optional(self):
        f = ShapeField(name="Page", schema={"type": "integer"}, has_default=True, default=1)
        param = create_param(self._ctx(), ParameterKind.QUERY, f)

        assert param.required is False
        assert param.schema_ == {"type": "integer", "default": 1}

    def test_default_on_param_in_swagger2(self):
        f = ShapeField(name="Page", schema={"type": "integer"}, has_default=True, default=1)
        param = create_param(self._ctx(DocumentPolicy(dialect=SpecDialect.SWAGGER2)), ParameterKind.QUERY, f)

        assert param.default == 1
        assert "default" not in param.schema_

    def test_nullable_is_optional(self):
        f = ShapeField(name="Size", schema={"type": "integer"}, nullable=True)
        param = create_param(self._ctx(), ParameterKind.QUERY, f)

        assert param.required is False
        assert param.schema_["nullable"] is True

    def test_forced_required(self):
        f = ShapeField(name="Size", nullable=True)
        param = create_param(self._ctx(), ParameterKind.HEADER, f, "X-Size", True)

        assert param.required is True
        assert "nullable" not in param.schema_

    def test_required_object_gets_sample_example(self):
        f = ShapeField(name="Filter", schema={"type": "object", "properties": {"q": {"type": "string"}}})
        param = create_param(self._ctx(), ParameterKind.QUERY, f)

        assert param.example == {"q": "string"}

    def test_primitive_without_example(self):
        param = create_param(self._ctx(), ParameterKind.QUERY, ShapeField(name="Q"))
        assert param.example is None

    def test_name_required(self):
        with pytest.raises(ValueError):
            create_param(self._ctx(), ParameterKind.QUERY)


class TestDescriptions:
    def test_tiers_override_in_order(self):
        graph = SchemaGraph({"Req": {"type": "object", "properties": {
            "note": {"type": "string", "description": "from schema", "example": "s"},
            "size": {"type": "integer", "description": "size from schema"},
        }}})
        content = {"application/json": MediaType(schema=graph.ref("Req"))}
        summary = EndpointSummary(
            params={"Note": "from summary"},
            request_examples=[RequestExample(value={"Note": "from example"})],
        )

        descriptions = collect_descriptions(content, summary, graph, DocumentPolicy())

        assert descriptions.get("note").description == "from summary"
        assert descriptions.get("NOTE").example == "from example"
        assert descriptions.get("size").description == "size from schema"

    def test_description_flows_into_param(self):
        fields = [ShapeField(name="Q", description="Search text")]
        op, result, graph = _classify(
            "items", "GET", fields, summary=EndpointSummary(params={"Q": "Full text query"}),
        )
        assert result.parameters[0].description == "Full text query"


class TestAddParameters:
    def test_collision_replaced_last_wins(self):
        op = Operation(path="/v{version}/orders", method="get", parameters=[
            Parameter(name="version", kind=ParameterKind.PATH, description="from add-on"),
        ])
        add_parameters(op, [Parameter(name="version", kind=ParameterKind.PATH, required=True)],
                       DocumentPolicy(external_versioning=True))

        assert len(op.parameters) == 1
        assert op.parameters[0].required is True
        assert op.parameters[0].description is None

    def test_different_kinds_kept(self):
        op = Operation(path="/x", method="get", parameters=[Parameter(name="id", kind=ParameterKind.QUERY)])
        add_parameters(op, [Parameter(name="id", kind=ParameterKind.HEADER)], DocumentPolicy())

        assert [(p.name, p.kind) for p in op.parameters] == [("id", ParameterKind.QUERY), ("id", ParameterKind.HEADER)]
