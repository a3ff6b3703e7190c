"""Command Line Interface for migrate-transforms.

This module provides a Typer CLI for running the transforms against files
and JSON values: extracting records from XML exports, selecting values with
XPath, normalizing values and zipping sequences.

Machine-readable results go to stdout as JSON; status and summaries go to
stderr through Rich.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from migrate_transforms.adapters.xml_record_source import XMLRecordSource
from migrate_transforms.domain.ports import MigrateTransformError
from migrate_transforms.domain.services.record_zipper import zip_sequences
from migrate_transforms.domain.services.type_normalizer import normalize as normalize_value
from migrate_transforms.domain.services.xml_record_extractor import select_values
from migrate_transforms.infrastructure.logging_config import setup_logging
from migrate_transforms.infrastructure.settings import APP_VERSION, settings

# Initialize Typer app and Rich console
app = typer.Typer(
    name="migrate-transforms",
    help="Value normalization and XML record extraction for record migrations",
    add_completion=False
)
console = Console(stderr=True)


def _emit(value: Any) -> None:
    typer.echo(json.dumps(value, ensure_ascii=False))


def _parse_json(text: str, what: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        console.print(f"[red]✗[/red] {what} is not valid JSON: {escape(str(e))}")
        raise typer.Exit(code=1)


def _parse_namespaces(bindings: Optional[List[str]]) -> Dict[str, str]:
    namespaces: Dict[str, str] = {}
    for binding in bindings or []:
        prefix, sep, uri = binding.partition('=')
        if not sep or not prefix or not uri:
            console.print(f"[red]✗[/red] Namespace binding must look like prefix=uri, got '{escape(binding)}'")
            raise typer.Exit(code=1)
        namespaces[prefix] = uri
    return namespaces


@app.command()
def extract(
    source: Path = typer.Argument(..., help="XML document to extract records from", exists=True, dir_okay=False),
    config: Path = typer.Option(..., "--config", "-c", help="JSON extractor configuration", exists=True, dir_okay=False),
    streaming: Optional[bool] = typer.Option(None, "--streaming/--no-streaming", help="Force streaming mode"),
) -> None:
    """Extract one record per item of an XML document as JSON lines.

    Examples:
        migrate-transforms extract export.xml --config objects.json
        migrate-transforms extract huge.xml -c objects.json --streaming
    """
    try:
        record_source = XMLRecordSource(config_path=str(config), streaming_enabled=streaming)
    except (ValueError, FileNotFoundError, json.JSONDecodeError, MigrateTransformError) as e:
        console.print(f"[red]✗[/red] Invalid configuration: {escape(str(e))}")
        raise typer.Exit(code=1)

    success_count = 0
    failure_count = 0
    try:
        for result in record_source.read(str(source)):
            if result.is_success():
                success_count += 1
                _emit(result.value.to_row())
            else:
                failure_count += 1
                details = result.error_details or {}
                console.print(
                    f"[yellow]⚠[/yellow] Record {details.get('record_index', '?')}: "
                    f"{result.error_type}: {escape(result.error)}"
                )
    except MigrateTransformError as e:
        console.print(f"[red]✗[/red] Extraction failed: {escape(str(e))}")
        raise typer.Exit(code=1)

    summary_table = Table(show_header=False, box=None, padding=(0, 2))
    summary_table.add_row("Extracted:", f"[green]{success_count:,}[/green]")
    summary_table.add_row("Failed:", f"[red]{failure_count:,}[/red]" if failure_count > 0 else f"{failure_count:,}")
    console.print(summary_table)

    if failure_count > 0:
        raise typer.Exit(code=1)


@app.command()
def select(
    xml_file: Path = typer.Argument(..., help="XML file", exists=True, dir_okay=False),
    xpath: str = typer.Argument(..., help="XPath selecting the values"),
    namespace: Optional[List[str]] = typer.Option(None, "--namespace", "-n", help="Namespace binding prefix=uri"),
) -> None:
    """Print the trimmed values an XPath selects, as a JSON list."""
    try:
        values = select_values([xml_file.read_text(encoding='utf-8'), xpath], _parse_namespaces(namespace))
    except MigrateTransformError as e:
        console.print(f"[red]✗[/red] {escape(str(e))}")
        raise typer.Exit(code=1)
    _emit(values)


@app.command()
def normalize(
    value: str = typer.Argument(..., help="Value as JSON"),
    value_type: str = typer.Option("anything", "--type", "-t", help="Target type (anything, array, object, string, int, float, bool)"),
) -> None:
    """Normalize a JSON value to an array-wrapped target type.

    Examples:
        migrate-transforms normalize '"42"' --type int
        migrate-transforms normalize '{"a": 1}' --type array
    """
    try:
        result = normalize_value(_parse_json(value, "Value"), value_type)
    except MigrateTransformError as e:
        console.print(f"[red]✗[/red] {escape(str(e))}")
        raise typer.Exit(code=1)
    _emit(result)


@app.command(name="zip")
def zip_command(
    sequences: str = typer.Argument(..., help="JSON list of sources"),
    key: Optional[List[str]] = typer.Option(None, "--key", "-k", help="Output key (repeat, one per source)"),
    coalesce: Optional[str] = typer.Option(None, "--coalesce", help="none, first_non_null or first_non_empty"),
) -> None:
    """Zip parallel JSON sequences into keyed records.

    Examples:
        migrate-transforms zip '[[1, 2], ["a", "b"]]' -k number -k letter
        migrate-transforms zip '[["", "B"], ["_", "b"]]' --coalesce first_non_empty
    """
    config: Dict[str, Any] = {}
    if key:
        config['keys'] = key
    if coalesce:
        config['coalesce'] = coalesce
    try:
        result = zip_sequences(_parse_json(sequences, "Sequences"), config)
    except MigrateTransformError as e:
        console.print(f"[red]✗[/red] {escape(str(e))}")
        raise typer.Exit(code=1)
    _emit(result)


@app.command()
def info() -> None:
    """Display configuration."""
    info_table = Table(show_header=False, box=None, padding=(0, 2))
    info_table.add_row("Application:", settings.app_name)
    info_table.add_row("Version:", APP_VERSION)
    info_table.add_row("Log Level:", settings.log_level)
    info_table.add_row("XML Max Depth:", str(settings.xml_max_depth))
    info_table.add_row("XML Streaming:", "Enabled" if settings.xml_streaming_enabled else "Disabled")
    info_table.add_row("XML Streaming Threshold:", f"{settings.xml_streaming_threshold / (1024*1024):.0f} MB")
    info_table.add_row("Max Record Size:", f"{settings.max_record_size:,} bytes")
    console.print(info_table)


@app.callback()
def main_callback(
    version: bool = typer.Option(False, "--version", help="Show version information"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Value normalization and XML record extraction for record migrations."""
    if version:
        console.print(f"migrate-transforms v{APP_VERSION}")
        raise typer.Exit()
    setup_logging(use_json=settings.log_json, log_level="DEBUG" if verbose else settings.log_level)


if __name__ == "__main__":
    app()
