"""CLI entry point for api-contract-checker."""

import json
import logging
from pathlib import Path

import click
import pydantic
import yaml

from api_contract_checker.config import MatchMode, Settings, TieBreak
from api_contract_checker.parser.detect import detect_syntax
from api_contract_checker.parser.swagger import SpecLoadError
from api_contract_checker.traffic import TrafficRecord
from api_contract_checker.validator.engine import OpenApiValidator


def _load_validator(ctx: click.Context, spec: str) -> OpenApiValidator:
    try:
        return OpenApiValidator.from_source(spec, ctx.obj)
    except SpecLoadError as e:
        raise click.ClickException(f"Cannot load {spec}: {e}") from e


def _load_records(file_path: Path) -> list[TrafficRecord]:
    """Read one traffic record or a list of them from JSON/YAML."""
    text = file_path.read_text(encoding="utf-8")
    try:
        data = json.loads(text) if detect_syntax(text) == "json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise click.ClickException(f"Cannot parse {file_path}: {e}") from e

    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise click.ClickException(f"{file_path} must hold a traffic record or a list of them")
    try:
        return [TrafficRecord.model_validate(item) for item in data]
    except pydantic.ValidationError as e:
        raise click.ClickException(f"Invalid traffic record in {file_path}: {e}") from e


@click.group()
@click.option("--match-mode", type=click.Choice([m.value for m in MatchMode]), envvar="API_CONTRACT_MATCH_MODE", default=None, help="Anchor templates at the end only (suffix) or at both ends (exact).")
@click.option("--tie-break", type=click.Choice([t.value for t in TieBreak]), envvar="API_CONTRACT_TIE_BREAK", default=None, help="Which template wins when several match.")
@click.option("--max-ref-depth", type=int, envvar="API_CONTRACT_MAX_REF_DEPTH", default=None, help="Maximum $ref expansion depth.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, match_mode: str | None, tie_break: str | None, max_ref_depth: int | None, verbose: bool):
    """API Contract Checker: check captured HTTP traffic against an OpenAPI document."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = Settings.from_env(
        match_mode=match_mode, tie_break=tie_break, max_ref_depth=max_ref_depth
    )


@main.command("check-spec")
@click.argument("spec")
@click.pass_context
def check_spec(ctx: click.Context, spec: str):
    """Load SPEC (file or URL) and report what it declares."""
    validator = _load_validator(ctx, spec)
    info = validator.spec.info
    click.echo(f"{info.title} {info.version}")
    click.echo(f"Found {len(validator.spec.operations())} operations in {len(validator.spec.paths)} paths.")


@main.command()
@click.argument("spec")
@click.pass_context
def paths(ctx: click.Context, spec: str):
    """List every METHOD /template declared in SPEC."""
    validator = _load_validator(ctx, spec)
    for pattern, method, operation in validator.spec.operations():
        summary = f"  {operation.summary}" if operation.summary else ""
        click.echo(f"{method:7} {pattern}{summary}")


@main.command()
@click.argument("spec")
@click.argument("method")
@click.argument("url")
@click.pass_context
def match(ctx: click.Context, spec: str, method: str, url: str):
    """Show which template of SPEC a METHOD URL request resolves to."""
    validator = _load_validator(ctx, spec)
    result = validator.find_operation(url, method)
    if result is None:
        raise click.ClickException(f"No path in the specification matches {url}")
    if result.operation is None:
        raise click.ClickException(f"{method.upper()} is not defined for {result.pattern}")
    click.echo(f"{method.upper()} {result.pattern}")
    for name, value in result.path_params.items():
        click.echo(f"  {name} = {value}")


@main.command()
@click.argument("spec")
@click.argument("traffic_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", type=click.Path(path_type=Path), default=None, help="Write the JSON report to this file instead of stdout.")
@click.option("--strict", is_flag=True, help="Exit with status 1 when any record is invalid.")
@click.pass_context
def validate(ctx: click.Context, spec: str, traffic_path: Path, output: Path | None, strict: bool):
    """Validate the traffic records in TRAFFIC_PATH against SPEC."""
    validator = _load_validator(ctx, spec)
    records = _load_records(traffic_path)

    report = []
    invalid = 0
    for record in records:
        result = validator.validate_traffic(record)
        if not result.valid:
            invalid += 1
        report.append({
            "method": record.method.upper(),
            "path": record.path,
            "status": record.status,
            "request": result.request.model_dump(mode="json"),
            "response": result.response.model_dump(mode="json"),
        })

    text = json.dumps(report, indent=2, ensure_ascii=False)
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text, encoding="utf-8")
        click.echo(f"Report saved to {output}")
    else:
        click.echo(text)

    click.echo(f"{len(records) - invalid}/{len(records)} records conform.", err=True)
    if strict and invalid:
        ctx.exit(1)
