"""modwire CLI — Entry point.

Usage:
    modwire modules list
    modwire run <module>                       (worker mode over stdio)
    modwire params <module> [args...]          (print a parameters message)
    modwire params <module> --interactive
    modwire exec <module> [args...]            (parse, run, print)
    modwire print <module> [--verbose] < results.jsonl
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from modwire.cli.commands import modules, worker
from modwire.config import LoggingConfig, Settings, override_settings
from modwire.logging import configure_logging, get_logger
from modwire.modules import ModuleRegistry, override_registry, register_builtin_modules

app = typer.Typer(
    name="modwire",
    help="modwire — drive pluggable module workers over a line-delimited JSON protocol.",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

app.add_typer(modules.app, name="modules")
app.command("run")(worker.run_command)
app.command(
    "params",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)(worker.params_command)
app.command(
    "exec",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)(worker.exec_command)
app.command("print")(worker.print_command)

log = get_logger(__name__)
err_console = Console(stderr=True)


def bootstrap(settings: Settings) -> ModuleRegistry:
    """Build and install the process-wide registry from *settings*."""
    registry = ModuleRegistry()
    register_builtin_modules(registry, settings.active_modules())
    if settings.modules.load_entrypoints:
        registry.load_entrypoints()
    override_registry(registry)
    log.debug("registry_ready", modules=registry.list_modules())
    return registry


@app.callback()
def main_callback(
    config: Optional[Path] = typer.Option(None, "--config", help="Extra YAML config file."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override the log level."),
    log_format: Optional[str] = typer.Option(None, "--log-format", help="console or json."),
) -> None:
    try:
        settings = Settings.load(config_file=config)
        overrides = {
            key: value.lower()
            for key, value in (("level", log_level), ("format", log_format))
            if value
        }
        if overrides:
            settings.logging = LoggingConfig.model_validate(
                {**settings.logging.model_dump(), **overrides}
            )
    except ValidationError as exc:
        messages = "; ".join(e.get("msg", "") for e in exc.errors(include_url=False))
        err_console.print(f"[red]Error: invalid configuration: {escape(messages)}[/red]")
        raise typer.Exit(1)
    override_settings(settings)
    configure_logging(
        level=settings.logging.level,
        format=settings.logging.format,
        log_file=str(settings.logging.file) if settings.logging.file else None,
    )
    bootstrap(settings)


if __name__ == "__main__":
    app()
