"""CLI — Running modules and handling their parameters and results."""

from __future__ import annotations

import json
import sys
from typing import Any, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax

from modwire.config import get_settings
from modwire.exceptions import EndOfStreamError, ModuleNotFoundError, ModwireError
from modwire.modules import Capability, get_registry, has_capability, require_capability
from modwire.protocol.models import MessageClass, Result
from modwire.protocol.reader import read_result
from modwire.protocol.writer import make_message
from modwire.runner import run_module, serve

console = Console()
err_console = Console(stderr=True)


def _fail(exc: ModwireError) -> typer.Exit:
    err_console.print(f"[red]Error: {escape(exc.message)}[/red]")
    return typer.Exit(1)


def _build_parameters(name: str, args: list[str], interactive: bool) -> Any:
    module = get_registry().create(name)
    if interactive:
        require_capability(module, Capability.PARAMS_CREATOR, name)
        return module.create_parameters()
    require_capability(module, Capability.PARAMS_PARSER, name)
    return module.parse_parameters(args)


def _render(name: str, result: Result, verbose: bool) -> None:
    module = get_registry().create(name)
    if has_capability(module, Capability.RESULTS_PRINTER):
        for line in module.print_results(result, verbose):
            console.print(line, markup=False, highlight=False, emoji=False, soft_wrap=True)
        return
    console.print(Syntax(json.dumps(json.loads(result.to_json()), indent=2), "json"))


def run_command(name: str = typer.Argument(help="Module to run.")) -> None:
    """Run a module as a worker: control messages on stdin, result on stdout."""
    try:
        serve(name, sys.stdin.buffer, sys.stdout.buffer)
    except ModwireError as exc:
        raise _fail(exc)


def params_command(
    ctx: typer.Context,
    name: str = typer.Argument(help="Module whose parameters to build."),
    interactive: bool = typer.Option(
        False, "--interactive", "-i", help="Prompt for parameters instead of parsing arguments."
    ),
) -> None:
    """Print a 'parameters' message line for NAME built from the remaining arguments."""
    try:
        payload = _build_parameters(name, list(ctx.args), interactive)
    except ModwireError as exc:
        raise _fail(exc)
    sys.stdout.buffer.write(make_message(MessageClass.PARAMETERS, payload) + b"\n")
    sys.stdout.buffer.flush()


def exec_command(
    ctx: typer.Context,
    name: str = typer.Argument(help="Module to run."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Include statistics and errors."),
    json_output: bool = typer.Option(False, "--json", help="Output the raw result line."),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Seconds to wait for the module."),
) -> None:
    """Parse arguments for NAME, run it in-process and print its results."""
    try:
        payload = _build_parameters(name, list(ctx.args), interactive=False)
        result = run_module(name, payload, timeout=timeout)
    except ModwireError as exc:
        raise _fail(exc)
    except TimeoutError as exc:
        err_console.print(f"[red]Error: {escape(str(exc))}[/red]")
        raise typer.Exit(1)

    if json_output:
        sys.stdout.buffer.write(result.to_json() + b"\n")
        sys.stdout.buffer.flush()
    else:
        _render(name, result, verbose)
    if not result.success:
        raise typer.Exit(1)


def print_command(
    name: str = typer.Argument(help="Module that produced the results."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Include statistics and errors."),
) -> None:
    """Read result lines from stdin and print them with NAME's printer."""
    if name not in get_registry():
        raise _fail(ModuleNotFoundError(name))
    max_bytes = get_settings().protocol.max_line_bytes
    while True:
        try:
            result = read_result(sys.stdin.buffer, max_bytes)
        except EndOfStreamError:
            return
        except ModwireError as exc:
            raise _fail(exc)
        try:
            _render(name, result, verbose)
        except ModwireError as exc:
            raise _fail(exc)
