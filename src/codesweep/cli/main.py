"""
codesweep CLI
=============

Entry point exposing the "Clean project code" action: organize imports and
remove unused variables and functions across a JavaScript/TypeScript project,
using the TypeScript language server as the analyzer.
"""

import asyncio
import dataclasses
import json
import signal
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from codesweep import __version__
from codesweep.cleaning.application.file_cleanup import FileCleanupCoordinator
from codesweep.cleaning.application.project_cleanup import ProjectCleanupController
from codesweep.cleaning.domain.models import CleanupConfig, CleanupState, CleanupSummary
from codesweep.cleaning.domain.ports import CancellationToken
from codesweep.cleaning.infrastructure.documents import FileDocumentStore
from codesweep.cleaning.infrastructure.settings_store import YamlSettingsStore, load_cleanup_config
from codesweep.cli.progress import RichProgressSink, create_progress
from codesweep.lsp.manager import LSPManager
from codesweep.lsp.workspace import LanguageServerWorkspace
from codesweep.shared.domain.exceptions import ConfigurationError
from codesweep.shared.infrastructure.config import Settings
from codesweep.shared.infrastructure.logging import configure_logging, get_logger

app = typer.Typer(
    name="codesweep",
    help="Clean unused imports, variables and functions across a JS/TS project",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
logger = get_logger(__name__)


@app.command()
def version():
    """Show codesweep version info."""
    table = Table(show_header=False, box=None)
    table.add_row("codesweep", f"[bold green]v{__version__}[/bold green]")
    table.add_row("Python", sys.version.split()[0])
    table.add_row("Platform", sys.platform)

    console.print(Panel(table, title="[bold blue]codesweep[/bold blue]", expand=False))


@app.command()
def clean(
    roots: Optional[List[Path]] = typer.Argument(None, help="Project roots (default: current directory)"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Settings file (default: <root>/.codesweep.yaml)"),
    server: Optional[str] = typer.Option(None, "--server", help="typescript-language-server binary"),
    variables: Optional[bool] = typer.Option(None, "--variables/--no-variables", help="Override removeUnusedVariables"),
    functions: Optional[bool] = typer.Option(None, "--functions/--no-functions", help="Override removeUnusedFunctions"),
    props: Optional[bool] = typer.Option(None, "--props/--no-props", help="Override removeUnusedProps"),
    as_json: bool = typer.Option(False, "--json", help="Print the run summary as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed logs"),
):
    """
    Clean project code.

    Press Ctrl-C once to stop after the current file.
    """
    overrides = {"log_level": "DEBUG"} if verbose else {}
    if server:
        overrides["lsp_server_path"] = server
    settings = Settings(**overrides)
    configure_logging(settings=settings)
    logger.info("codesweep_started", version=__version__)

    project_roots = _existing_roots(roots if roots else [Path.cwd()])

    try:
        cleanup_config = _load_config(project_roots, config, settings)
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        raise typer.Exit(2)

    cleanup_config = dataclasses.replace(
        cleanup_config,
        **{
            name: value
            for name, value in (
                ("remove_unused_variables", variables),
                ("remove_unused_functions", functions),
                ("remove_unused_props", props),
            )
            if value is not None
        },
    )

    try:
        exit_code = asyncio.run(_run_clean_async(project_roots, cleanup_config, settings, as_json))
    except KeyboardInterrupt:
        console.print("\n[yellow]Cleanup interrupted by user[/yellow]")
        raise typer.Exit(130)
    finally:
        logger.info("codesweep_stopped")

    if exit_code != 0:
        raise typer.Exit(exit_code)


def _existing_roots(roots: List[Path]) -> List[Path]:
    existing: List[Path] = []
    for root in roots:
        if root.is_dir():
            existing.append(root.resolve())
        else:
            console.print(f"[yellow]Skipping missing project root:[/yellow] {escape(str(root))}")
    return existing


def _load_config(roots: List[Path], config_path: Optional[Path], settings: Settings) -> CleanupConfig:
    if config_path is None:
        if not roots:
            return CleanupConfig()
        config_path = roots[0] / settings.settings_file
    return load_cleanup_config(YamlSettingsStore(config_path))


async def _run_clean_async(
    roots: List[Path],
    config: CleanupConfig,
    settings: Settings,
    as_json: bool,
) -> int:
    """Async implementation of the clean command."""
    token = CancellationToken()
    _install_cancel_handler(token)

    manager: Optional[LSPManager] = None
    workspace: Optional[LanguageServerWorkspace] = None

    if roots:
        manager = LSPManager(server_path=settings.lsp_server_path, request_timeout=settings.lsp_request_timeout)
        # One server for the whole run; every root is one of its workspace folders
        client = await manager.get_client_async("typescript", str(roots[0]), [str(root) for root in roots])
        if client is None:
            console.print(
                "[bold red]typescript-language-server not available.[/bold red] "
                "Install it with: [green]npm install -g typescript typescript-language-server[/green]"
            )
            return 1
        workspace = LanguageServerWorkspace(
            client,
            FileDocumentStore(),
            settle_seconds=settings.diagnostics_settle_seconds,
        )

    def coordinator_factory(cleanup_config: CleanupConfig) -> FileCleanupCoordinator:
        return FileCleanupCoordinator.create(
            cleanup_config,
            documents=workspace,
            diagnostics=workspace,
            fix_provider=workspace,
            edit_applier=workspace,
        )

    try:
        with create_progress(console) as progress:
            sink = RichProgressSink(progress, console)
            controller = ProjectCleanupController(
                coordinator_factory,
                progress_sink=sink,
                yield_delay=settings.yield_delay_seconds,
            )
            summary = await controller.run_async(roots, config, token)
    finally:
        if workspace is not None:
            await workspace.close_all_async()
        if manager is not None:
            await manager.shutdown_all_async()

    _print_summary(summary, as_json)
    return 0


def _install_cancel_handler(token: CancellationToken) -> None:
    """First Ctrl-C requests cancellation; a second one interrupts."""
    loop = asyncio.get_running_loop()

    def request_cancel() -> None:
        console.print("\n[yellow]Cancelling after the current file...[/yellow]")
        token.cancel("keyboard_interrupt")
        loop.remove_signal_handler(signal.SIGINT)

    try:
        loop.add_signal_handler(signal.SIGINT, request_cancel)
    except (NotImplementedError, RuntimeError, ValueError):
        # Windows event loops and non-main threads have no signal handlers
        logger.debug("cancel_handler_unavailable")


def _print_summary(summary: CleanupSummary, as_json: bool) -> None:
    if as_json:
        console.print_json(json.dumps(summary.to_json()))
        return

    if summary.state not in (CleanupState.COMPLETED, CleanupState.CANCELLED) or not summary.modified_paths:
        return

    table = Table(title="Modified files", show_header=False, box=None)
    for path in summary.modified_paths:
        table.add_row(f"[green]✓[/green] {escape(path)}")
    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
