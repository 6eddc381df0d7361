import json
from pathlib import Path

import yaml
from click.testing import CliRunner

from api_doc_builder.cli import main

FIXTURES = Path(__file__).parent / "fixtures"


class TestCliBuild:
    def test_build_yaml(self, tmp_path):
        output_file = tmp_path / "openapi.yaml"
        runner = CliRunner()
        result = runner.invoke(main, ["build", str(FIXTURES / "orders.yaml"), "-o", str(output_file)])

        assert result.exit_code == 0, result.output
        assert "Found 3 endpoints." in result.output
        doc = yaml.safe_load(output_file.read_text())
        assert doc["paths"]["/api/v1/orders/{id}"]["post"]["operationId"] == "UpdateOrder"
        assert "&id" not in output_file.read_text()

    def test_build_json(self, tmp_path):
        output_file = tmp_path / "out" / "openapi.json"
        runner = CliRunner()
        result = runner.invoke(main, [
            "build", str(FIXTURES / "orders.yaml"),
            "-o", str(output_file),
            "--format", "json",
        ])

        assert result.exit_code == 0, result.output
        doc = json.loads(output_file.read_text())
        assert doc["openapi"] == "3.0.1"
        assert "Document saved to" in result.output

    def test_policy_overrides(self, tmp_path):
        output_file = tmp_path / "openapi.json"
        runner = CliRunner()
        result = runner.invoke(main, [
            "build", str(FIXTURES / "orders.yaml"),
            "-o", str(output_file),
            "--format", "json",
            "--tag-case", "lower",
            "--naming", "snake",
        ])

        assert result.exit_code == 0, result.output
        doc = json.loads(output_file.read_text())
        op = doc["paths"]["/api/v1/orders/{id}"]["post"]
        assert op["tags"] == ["orders"]
        assert "total_count" in doc["components"]["schemas"]["OrderResponse"]["properties"]

    def test_tagging_disabled(self, tmp_path):
        output_file = tmp_path / "openapi.json"
        runner = CliRunner()
        result = runner.invoke(main, [
            "build", str(FIXTURES / "orders.yaml"),
            "-o", str(output_file),
            "--format", "json",
            "--tag-index", "0",
        ])

        assert result.exit_code == 0, result.output
        doc = json.loads(output_file.read_text())
        assert "tags" not in doc["paths"]["/api/v1/items"]["get"]

    def test_fatal_error_writes_nothing(self, tmp_path):
        build_file = tmp_path / "build.yaml"
        build_file.write_text(
            "endpoints:\n"
            "  - route: ping\n"
            "    verb: POST\n"
            "    definition:\n"
            "      endpoint_type: PingEndpoint\n"
            "      request:\n"
            "        name: PingRequest\n"
            "        fields:\n"
            "          - name: A\n"
            "            settable: false\n"
        )
        output_file = tmp_path / "openapi.yaml"
        runner = CliRunner()
        result = runner.invoke(main, ["build", str(build_file), "-o", str(output_file)])

        assert result.exit_code == 1
        assert "Offending shape: [PingRequest]" in result.output
        assert not output_file.exists()

    def test_invalid_build_file(self, tmp_path):
        build_file = tmp_path / "build.yaml"
        build_file.write_text("- nope\n")
        runner = CliRunner()
        result = runner.invoke(main, ["build", str(build_file), "-o", str(tmp_path / "out.yaml")])

        assert result.exit_code == 1
        assert "expected a mapping" in result.output


class TestCliRoutes:
    def test_lists_routes(self):
        runner = CliRunner()
        result = runner.invoke(main, ["routes", str(FIXTURES / "orders.yaml")])

        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0] == "POST    /api/v1/orders/{id}  bare=/orders/{id}  tags=Orders"
        assert lines[1] == "GET     /api/v1/items  bare=/items  tags=Items"
        assert lines[2] == "GET     health  (not managed)"
