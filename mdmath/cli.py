#!/usr/bin/env python3
"""
mdmath command line

Commands:
    serve  - Run the render server on stdin/stdout
    render - Render one equation through the server pipeline and print its frame
    macros - Show the macros parsed from a preamble file

Examples:\n

    mdmath serve --preamble ~/notes/preamble.tex          # Serve with user macros

    mdmath serve --log-dir /tmp/mdmath-logs --verbose     # Debug logging to file

    mdmath render '\\frac{a}{b}' --dynamic --keep           # Check the tool chain

    mdmath macros ~/notes/preamble.tex                    # Inspect parsed macros
"""

import asyncio
import os
import sys
import tempfile
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from typing_extensions import Annotated

from mdmath.contexts.rendering import WorkspaceError
from mdmath.contexts.rendering.models import FLAG_CENTER, FLAG_DYNAMIC
from mdmath.contexts.rendering.rasterizer import RSVG_CONVERT
from mdmath.contexts.serving import (
    LifecycleManager,
    RequestDispatcher,
    ResponseWriter,
    Workspace,
    build_service,
    run_server,
)
from mdmath.contexts.serving.logger import _log_error, setup_serving_logger
from mdmath.contexts.typesetting import PreambleError, load_preamble_macros
from mdmath.contexts.typesetting.typesetter import DVISVGM, LATEX_COMPILER

load_dotenv()
PREAMBLE_PATH = os.getenv("MDMATH_PREAMBLE_PATH")
LOGS_PATH = os.getenv("MDMATH_LOGS_PATH")
WORKSPACE_ROOT = Path(os.getenv("MDMATH_WORKSPACE_ROOT", tempfile.gettempdir()))
RENDER_WORKERS = int(os.getenv("MDMATH_RENDER_WORKERS", "4"))

TOOLS = {
    "LaTeX compiler": LATEX_COMPILER,
    "dvisvgm": DVISVGM,
    "rsvg-convert": RSVG_CONVERT,
}

app = typer.Typer(
    help="Render LaTeX equations to PNG images sized for a terminal cell grid",
    add_completion=False,
    invoke_without_command=True,
)


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command("serve")
def serve_command(
    preamble: Annotated[
        Optional[Path],
        typer.Option(
            "--preamble",
            "-p",
            help="LaTeX preamble with \\newcommand/\\DeclareMathOperator macros",
        ),
    ] = Path(PREAMBLE_PATH) if PREAMBLE_PATH else None,
    workspace_root: Annotated[
        Path,
        typer.Option("--workspace-root", help="Parent directory of the private image workspace"),
    ] = WORKSPACE_ROOT,
    workers: Annotated[
        int,
        typer.Option("--workers", "-w", help="Render worker threads", min=1, max=64),
    ] = RENDER_WORKERS,
    log_dir: Annotated[
        Optional[Path],
        typer.Option("--log-dir", help="Also write a DEBUG log to <log-dir>/serve.log"),
    ] = Path(LOGS_PATH) if LOGS_PATH else None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log DEBUG messages to stderr"),
    ] = False,
):
    """
    Serve render requests from stdin until it closes.

    Requests are JSON objects, one per line; responses are colon-delimited
    frames on stdout. Logs go to stderr.
    """
    setup_serving_logger(log_dir=log_dir, level="DEBUG" if verbose else None, tools=TOOLS)

    try:
        run_server(preamble=preamble, workspace_root=workspace_root, workers=workers)
    except (WorkspaceError, PreambleError) as e:
        _log_error(str(e))
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        raise typer.Exit(code=130)


@app.command("render")
def render_command(
    equation: Annotated[str, typer.Argument(help="LaTeX source of the equation")],
    cell_width: Annotated[float, typer.Option("--cell-width", help="Cell width in pixels")] = 8,
    cell_height: Annotated[float, typer.Option("--cell-height", help="Cell height in pixels")] = 16,
    width: Annotated[int, typer.Option("--width", help="Span in cells", min=1)] = 1,
    height: Annotated[int, typer.Option("--height", help="Span in cells", min=1)] = 1,
    dynamic: Annotated[bool, typer.Option("--dynamic", "-d", help="Auto-fit to natural size")] = False,
    center: Annotated[bool, typer.Option("--center", "-c", help="Center inside the box")] = False,
    color: Annotated[str, typer.Option("--color", help="Foreground color")] = "#000000",
    preamble: Annotated[
        Optional[Path], typer.Option("--preamble", "-p", help="Preamble with macros")
    ] = Path(PREAMBLE_PATH) if PREAMBLE_PATH else None,
    keep: Annotated[
        bool, typer.Option("--keep", "-k", help="Keep the image instead of removing it at exit")
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log DEBUG messages")] = False,
):
    """
    Render a single equation and print the response frame.

    Useful for checking that latex, dvisvgm and rsvg-convert are installed and
    produce what the server expects.
    """
    setup_serving_logger(level="DEBUG" if verbose else None, tools=TOOLS)

    lifecycle = LifecycleManager(Workspace(root=WORKSPACE_ROOT))
    try:
        workspace = lifecycle.start()
        service = build_service(workspace, preamble=preamble)
    except (WorkspaceError, PreambleError) as e:
        _log_error(str(e))
        raise typer.Exit(code=1)

    lifecycle.attach(service.cache)
    if not keep:
        lifecycle.install()

    flags = (FLAG_DYNAMIC if dynamic else 0) | (FLAG_CENTER if center else 0)
    message = {
        "type": "render",
        "identifier": "cli",
        "equation": equation,
        "cellWidth": cell_width,
        "cellHeight": cell_height,
        "width": width,
        "height": height,
        "flags": flags,
        "color": color,
    }
    dispatcher = RequestDispatcher(service, ResponseWriter(sys.stdout))
    asyncio.run(dispatcher.handle_render(message))
    typer.echo()


@app.command("macros")
def macros_command(
    preamble: Annotated[Path, typer.Argument(help="Preamble file to parse", exists=True)],
):
    """Print the macros parsed from a preamble, one per line."""
    try:
        macros = load_preamble_macros(preamble)
    except PreambleError as e:
        typer.secho(str(e), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if not macros:
        typer.secho("No macros found", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)

    for name, definition in macros.items():
        if isinstance(definition, tuple):
            body, arity = definition
            typer.echo(f"\\{name}[{arity}] -> {body}")
        else:
            typer.echo(f"\\{name} -> {definition}")


if __name__ == "__main__":
    app()
