"""CLI entry point - thin adapter over copydesk-core."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from copydesk_core.config import AppSettings
from copydesk_core.gateway import TextGateway
from copydesk_core.util.logging import configure_logging
from copydesk_llm import OpenAICompatibleRuntime
from copydesk_schemas.llm import LlmDiagnostic
from copydesk_schemas.primitives import utc_timestamp
from copydesk_schemas.responses import ApiResponse, ErrorResponse, MetaInfo
from copydesk_schemas.version import VERSION

ENV_FILE_OPTION = typer.Option(
    Path(".env"), "--env-file", help="Dotenv file loaded before reading settings"
)

app = typer.Typer(
    help="Batch product copy optimization and translation",
    no_args_is_help=True,
)


@app.callback()
def main() -> None:
    """Copydesk CLI."""


@app.command()
def version() -> None:
    """Display version information."""
    rprint(f"[bold]copydesk[/bold] v{VERSION}")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
    env_file: Path = ENV_FILE_OPTION,
) -> None:
    """Run the HTTP API server."""
    from copydesk_api.main import main as run_api

    _load_dotenv(env_file)
    run_api(host=host, port=port)


@app.command("check-llm")
def check_llm(
    name: str | None = typer.Option(None, "--name", help="Diagnostic product name"),
    text: str | None = typer.Option(None, "--text", help="Diagnostic description"),
    env_file: Path = ENV_FILE_OPTION,
) -> None:
    """Run one rewrite and report which mode produced it."""
    response: ApiResponse[LlmDiagnostic]
    try:
        _load_dotenv(env_file)
        settings = AppSettings()
        configure_logging(settings.log_level)
        config = settings.build_gateway_config()
        gateway = TextGateway(
            config,
            OpenAICompatibleRuntime(config.base_url),
            api_key=settings.api_key(),
            glossary=settings.load_glossary(),
        )
        diagnostic = asyncio.run(gateway.diagnose(name, text))
        response = ApiResponse(
            data=diagnostic,
            error=None,
            meta=MetaInfo(timestamp=utc_timestamp()),
        )
    except (ValidationError, OSError, ValueError) as exc:
        response = _error_response(
            ErrorResponse(code="config_error", message=str(exc) or "Invalid settings")
        )
    print(response.model_dump_json())
    if response.error is not None:
        raise typer.Exit(code=1)


@app.command("show-config")
def show_config(env_file: Path = ENV_FILE_OPTION) -> None:
    """Print the resolved configuration without secrets."""
    _load_dotenv(env_file)
    try:
        settings = AppSettings()
        config = settings.build_app_config()
    except ValidationError as exc:
        rprint(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from None

    table = Table(title="copydesk configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("gateway mode", str(config.gateway.mode))
    table.add_row("configured mode", str(settings.openai_mode))
    table.add_row("api key", "set" if settings.api_key() else "missing")
    table.add_row("base url", config.gateway.base_url)
    table.add_row("rewrite model", config.gateway.model_optimize)
    table.add_row("translate model", config.gateway.model_translate)
    table.add_row("timeout (s)", str(config.gateway.timeout_s))
    table.add_row("storage", str(config.storage.backend))
    table.add_row("data dir", config.storage.root_dir or "-")
    table.add_row("lease ttl (s)", str(config.storage.lease_ttl_s))
    table.add_row("poll interval (s)", str(config.notifier.poll_interval_s))
    table.add_row("heartbeat (s)", str(config.notifier.heartbeat_interval_s))
    table.add_row("log file", config.log_path or "-")
    Console().print(table)


def _load_dotenv(env_path: Path) -> None:
    if env_path.exists():
        load_dotenv(env_path, override=False)


def _error_response(error: ErrorResponse) -> ApiResponse[LlmDiagnostic]:
    return ApiResponse(
        data=None,
        error=error,
        meta=MetaInfo(timestamp=utc_timestamp()),
    )
