"""Command-line interface for classifying HAR captures with dupemark."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from dupemark import __version__
from dupemark.annotations import RecordingSink, color_for
from dupemark.config import ComparisonConfig, Settings, find_config_file
from dupemark.container import DuplicateHighlighter
from dupemark.har import HarFormatError, HarHistory
from dupemark.observability import configure_logging, start_metrics_server
from dupemark.protocols import ClassificationDecision

console = Console()

FLAG_CHOICE = click.Choice(ComparisonConfig.flag_names())

DECISION_STYLES = {
    ClassificationDecision.UNIQUE: "cyan",
    ClassificationDecision.DUPLICATE: "bright_black",
    ClassificationDecision.STATIC_ASSET: "bright_black",
    ClassificationDecision.SUPPRESSED: "default",
}


def _flag_options(func: Any) -> Any:
    func = click.option(
        "--disable", "disabled", multiple=True, type=FLAG_CHOICE, help="Comparison flag to turn off (repeatable)"
    )(func)
    func = click.option(
        "--enable", "enabled", multiple=True, type=FLAG_CHOICE, help="Comparison flag to turn on (repeatable)"
    )(func)
    return func


def _build_highlighter(
    ctx: click.Context, enabled: Tuple[str, ...], disabled: Tuple[str, ...]
) -> Tuple[DuplicateHighlighter, RecordingSink]:
    overlap = sorted(set(enabled) & set(disabled))
    if overlap:
        raise click.UsageError(f"Flag(s) both enabled and disabled: {', '.join(overlap)}")

    sink = RecordingSink()
    highlighter = DuplicateHighlighter(sink, settings=ctx.obj["settings"])
    flags: Dict[str, bool] = {name: True for name in enabled}
    flags.update({name: False for name in disabled})
    if flags:
        highlighter.update_config(**flags)
    return highlighter, sink


def _load_history(har_file: str) -> HarHistory:
    try:
        return HarHistory(har_file)
    except HarFormatError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True, dir_okay=False), help="Configuration file path")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level (overrides the config file)",
)
@click.option("--metrics-port", type=int, default=None, help="Expose Prometheus metrics on this port")
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], log_level: Optional[str], metrics_port: Optional[int]) -> None:
    """dupemark - mark first-seen and duplicate requests in captured traffic."""
    ctx.ensure_object(dict)

    config_path = Path(config) if config else find_config_file()
    try:
        settings = Settings.from_yaml(config_path) if config_path else Settings()
    except (ValidationError, yaml.YAMLError) as e:
        raise click.ClickException(f"Invalid configuration in {config_path}: {e}") from e

    if log_level:
        settings.monitoring.log_level = log_level
    if metrics_port is not None:
        settings.monitoring.prometheus_port = metrics_port

    configure_logging(settings.monitoring)
    if settings.monitoring.prometheus_port:
        start_metrics_server(settings.monitoring.prometheus_port)

    ctx.obj["settings"] = settings
    ctx.obj["config_path"] = config_path


@cli.command()
@click.argument("har_file", type=click.Path(exists=True, dir_okay=False))
@_flag_options
@click.option("--json", "as_json", is_flag=True, help="Emit JSON lines instead of a table")
@click.pass_context
def replay(
    ctx: click.Context, har_file: str, enabled: Tuple[str, ...], disabled: Tuple[str, ...], as_json: bool
) -> None:
    """Classify every request in HAR_FILE in capture order."""
    history = _load_history(har_file)
    highlighter, sink = _build_highlighter(ctx, enabled, disabled)

    count = highlighter.replay_all(history)
    requests = {entry.request_id: entry.request for entry in history}

    if as_json:
        for request_id, decision in sink.records:
            request = requests[request_id]
            click.echo(
                json.dumps(
                    {
                        "id": request_id,
                        "method": request.method,
                        "url": request.url,
                        "decision": decision.value,
                        "color": color_for(decision).value,
                    }
                )
            )
        return

    table = Table(title=f"{Path(har_file).name}: {count} requests")
    table.add_column("#", justify="right")
    table.add_column("Method")
    table.add_column("URL", overflow="fold")
    table.add_column("Decision")
    for request_id, decision in sink.records:
        request = requests[request_id]
        style = DECISION_STYLES[decision]
        table.add_row(str(request_id), request.method, request.url, f"[{style}]{decision.value}[/{style}]")
    console.print(table)

    summary = sink.summary()
    parts: List[str] = [f"{decision.value}={summary.get(decision, 0)}" for decision in ClassificationDecision]
    console.print(f"Processed {count} entries: " + ", ".join(parts))


@cli.command()
@click.argument("har_file", type=click.Path(exists=True, dir_okay=False))
@_flag_options
@click.pass_context
def fingerprint(ctx: click.Context, har_file: str, enabled: Tuple[str, ...], disabled: Tuple[str, ...]) -> None:
    """Print the fingerprint of every request in HAR_FILE."""
    history = _load_history(har_file)
    highlighter, _ = _build_highlighter(ctx, enabled, disabled)

    for entry in history:
        key = highlighter.engine.fingerprint(entry.request)
        click.echo(f"{entry.request_id}\t{key if key is not None else '-'}")


@cli.command(name="config")
@_flag_options
@click.pass_context
def show_config(ctx: click.Context, enabled: Tuple[str, ...], disabled: Tuple[str, ...]) -> None:
    """Print the effective comparison configuration as YAML."""
    highlighter, _ = _build_highlighter(ctx, enabled, disabled)
    click.echo(yaml.safe_dump({"comparison": highlighter.config.model_dump()}, sort_keys=False), nl=False)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    sys.exit(main())
