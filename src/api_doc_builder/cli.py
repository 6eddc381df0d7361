"""CLI entry point for api-doc-builder."""

import json
import logging
from pathlib import Path

import click
import yaml

from api_doc_builder.builder import DocumentBuilder
from api_doc_builder.config import DocumentPolicy, NamingPolicy, SpecDialect, TagCase
from api_doc_builder.errors import ApiDocError
from api_doc_builder.parser.loader import BuildInput, load_build_file
from api_doc_builder.pipeline.routes import normalize_route


def _load(input_path: Path, overrides: dict) -> BuildInput:
    try:
        data = load_build_file(input_path)
    except ApiDocError as e:
        raise click.ClickException(str(e)) from e
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides:
        data.policy = DocumentPolicy.model_validate({**data.policy.model_dump(), **overrides})
    return data


class _NoAliasDumper(yaml.SafeDumper):
    def ignore_aliases(self, data):
        return True


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """API Doc Builder: assemble OpenAPI operations from reflected endpoint metadata."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("input_path", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output file for the document.")
@click.option("--format", "fmt", default="yaml", type=click.Choice(["yaml", "json"]), help="Output format.")
@click.option("--dialect", default=None, type=click.Choice([d.value for d in SpecDialect]), help="Specification dialect.")
@click.option("--tag-index", default=None, type=int, help="Route segment used as tag (0 disables auto tagging).")
@click.option("--tag-case", default=None, type=click.Choice([c.value for c in TagCase]), help="Tag case transform.")
@click.option("--strip-symbols/--keep-symbols", default=None, help="Strip non-alphanumeric characters from tags.")
@click.option("--naming", default=None, type=click.Choice([n.value for n in NamingPolicy]), help="Property naming convention.")
def build(input_path: Path, output: Path, fmt: str, dialect: str | None, tag_index: int | None,
          tag_case: str | None, strip_symbols: bool | None, naming: str | None):
    """Build an OpenAPI document from a build file."""
    click.echo(f"Loading {input_path}...")
    data = _load(input_path, {
        "dialect": dialect,
        "auto_tag_path_segment_index": tag_index,
        "tag_case": tag_case,
        "tag_strip_symbols": strip_symbols,
        "naming_policy": naming,
    })
    click.echo(f"Found {len(data.endpoints)} endpoints.")

    builder = DocumentBuilder(policy=data.policy, schemas=data.schemas, info=data.info)
    try:
        document = builder.build(data.endpoints)
    except ApiDocError as e:
        raise click.ClickException(str(e)) from e

    if fmt == "json":
        text = json.dumps(document, indent=2, ensure_ascii=False)
    else:
        text = yaml.dump(document, Dumper=_NoAliasDumper, sort_keys=False, allow_unicode=True)

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    click.echo(f"Document saved to {output}")


@main.command()
@click.argument("input_path", type=click.Path(exists=True, path_type=Path))
def routes(input_path: Path):
    """List canonical paths, bare routes and tags of managed endpoints."""
    data = _load(input_path, {})
    for descriptor in data.endpoints:
        if descriptor.definition is None:
            click.echo(f"{descriptor.verb.upper():7} {descriptor.route}  (not managed)")
            continue
        info = normalize_route(descriptor, data.policy)
        tags = ", ".join(info.tags) or "-"
        click.echo(f"{descriptor.verb.upper():7} {info.path}  bare={info.bare_route}  tags={tags}")
