"""
Command-line interface for the repository synchronization tool.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import os
import sys
from pathlib import Path
from typing import List, Optional
from datetime import datetime

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from .columns import ColumnSelector
from .credentials import AskPassCredentials, CredentialResolver, NoCredentials
from .models import CommitInfo, FetchOutcome, SubmoduleOutcome, SyncError
from .progress import ProgressSink
from .sync_orchestrator import SyncOrchestrator
from . import __version__ as PACKAGE_VERSION


console = Console()
logger = logging.getLogger(__name__)


COMMIT_COLUMNS: List[ColumnSelector[CommitInfo]] = [
    ColumnSelector.fixed("Commit", lambda c: c.short_hash, 10),
    ColumnSelector.proportional("Message", lambda c: c.summary, "3*"),
    ColumnSelector.proportional("Author", lambda c: c.author),
    ColumnSelector.fixed("Date", lambda c: c.date[:19].replace("T", " "), 19),
]


class RichProgressSink(ProgressSink):
    """Progress sink printing to a rich console.

    Consecutive ratio updates are only printed when the whole percentage
    changes, so a large transfer does not flood the terminal.
    """

    def __init__(self, out: Console) -> None:
        self.out = out
        self._last_percent: Optional[int] = None

    def push(self, message: str, ratio: Optional[float] = None) -> None:
        logger.debug(f"progress: {message} ratio={ratio}")
        if ratio is None:
            self._last_percent = None
            self.out.print(f"[dim]{escape(message)}[/dim]", highlight=False)
            return
        percent = int(ratio * 100)
        if percent == self._last_percent:
            return
        self._last_percent = percent
        self.out.print(f"[dim]{escape(message)}[/dim] [cyan]{percent:3d}%[/cyan]", highlight=False)


def _print_version(ctx, param, value):
    """Print the version before any subcommand runs."""
    if not value or ctx.resilient_parsing:
        return
    click.echo(f"repo-sync {PACKAGE_VERSION}")
    ctx.exit()


LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _default_log_path() -> Path:
    """Aggregate log location: $REPO_SYNC_LOG, else ~/.repo-sync/repo-sync.log."""
    configured = os.environ.get("REPO_SYNC_LOG")
    path = Path(configured).expanduser() if configured else Path.home() / ".repo-sync" / "repo-sync.log"
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


class SafeConsoleFilter(logging.Filter):
    """Rewrite console records the terminal encoding cannot display.

    Only the console handler carries this filter; log files stay UTF-8.
    """

    def __init__(self, encoding: Optional[str] = None):
        super().__init__()
        self.encoding = encoding or "utf-8"

    def filter(self, record: logging.LogRecord) -> bool:
        text = record.getMessage()
        try:
            text.encode(self.encoding)
        except UnicodeEncodeError:
            record.msg = text.encode(self.encoding, errors="replace").decode(self.encoding)
            record.args = ()
        return True


def _file_handler(handler: logging.FileHandler) -> logging.FileHandler:
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logging(verbose: bool = False, console_level: Optional[str] = None, log_file: Optional[Path] = None) -> Path:
    """Route log records to files and, on request, to the console.

    Every run writes ``<stem>-<timestamp>.log`` next to the aggregate
    ``<stem>.log``, which rotates at 1 MB. Console output through rich is off
    unless ``verbose`` or ``console_level`` is given.

    Returns the aggregate log path.
    """
    target = Path(log_file) if log_file else _default_log_path()
    if target.is_dir():
        target = target / "repo-sync.log"
    target.parent.mkdir(parents=True, exist_ok=True)
    run_log = target.with_name(f"{target.stem or 'repo-sync'}-{datetime.now():%Y%m%d_%H%M%S}.log")

    root = logging.getLogger()
    # Repeated invocations in one process must not stack handlers
    root.handlers.clear()
    root.setLevel(logging.DEBUG)
    root.addHandler(_file_handler(logging.FileHandler(str(run_log), encoding="utf-8")))
    root.addHandler(_file_handler(
        RotatingFileHandler(str(target), maxBytes=1_000_000, backupCount=3, encoding="utf-8")
    ))

    # GitPython logs every command it runs at DEBUG
    logging.getLogger("git").setLevel(logging.DEBUG if console_level == "debug" else logging.INFO)

    if verbose or console_level:
        rich_handler = RichHandler(console=console, rich_tracebacks=True, show_path=False)
        rich_handler.setLevel(LOG_LEVELS.get((console_level or "info").lower(), logging.INFO))
        rich_handler.addFilter(SafeConsoleFilter(getattr(console.file, "encoding", None)))
        root.addHandler(rich_handler)

    return target


def _maybe_print_log_notice(ctx: click.Context) -> None:
    """Tell the user where the log file is when console logging is off."""
    if ctx.obj.get("verbose") or ctx.obj.get("console_level"):
        return
    console.print(
        f"[dim]Logs are written to {ctx.obj.get('log_path')}. Use -v or --log-level to enable console logs.[/dim]"
    )


def _make_orchestrator(ctx: click.Context) -> SyncOrchestrator:
    askpass = ctx.obj.get("askpass")
    credentials: CredentialResolver = AskPassCredentials(askpass) if askpass else NoCredentials()
    return SyncOrchestrator(
        ctx.obj.get("repo_path"),
        progress_sink=RichProgressSink(console),
        credentials=credentials,
    )


def _fail(message: str, error: Exception) -> None:
    console.print(f"\n❌ **{message}:** {escape(str(error))}", style="bold red")
    # Traceback goes to the log files only
    logger.debug(message, exc_info=True)
    sys.exit(1)


@click.group()
@click.option(
    "--version",
    "-V",
    is_flag=True,
    callback=_print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose console logging (INFO)")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Console log level. By default, console logging is disabled.",
)
@click.option(
    "--repo-path",
    type=click.Path(exists=True, path_type=Path),
    help="Path to repository (defaults to current directory)",
)
@click.option(
    "--remote-name",
    envvar="REPO_SYNC_REMOTE",
    default="origin",
    show_default=True,
    help="Preferred default remote name.",
)
@click.option(
    "--askpass",
    envvar="REPO_SYNC_ASKPASS",
    default=None,
    help="Askpass helper program used for fetch credentials.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    log_level: Optional[str],
    repo_path: Optional[Path],
    remote_name: str,
    askpass: Optional[str],
) -> None:
    """Repository Sync - fetch remotes, update submodules and inspect divergence."""
    log_path = setup_logging(verbose, console_level=log_level)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["console_level"] = log_level
    ctx.obj["log_path"] = log_path
    ctx.obj["repo_path"] = repo_path.resolve() if isinstance(repo_path, Path) else None
    ctx.obj["remote_name"] = remote_name
    ctx.obj["askpass"] = askpass
    logger.debug(f"CLI init: cwd={Path.cwd()} repo_path={ctx.obj['repo_path']}")


@cli.command()
@click.argument("remotes", nargs=-1)
@click.option("--all", "fetch_all", is_flag=True, help="Fetch every configured remote")
@click.option("--prune", is_flag=True, help="Remove remote-tracking refs that no longer exist")
@click.pass_context
def fetch(ctx: click.Context, remotes: tuple[str, ...], fetch_all: bool, prune: bool) -> None:
    """
    Fetch REMOTES (default: the default remote).

    Example: repo-sync fetch origin upstream --prune
    """
    _maybe_print_log_notice(ctx)
    try:
        orchestrator = _make_orchestrator(ctx)
        if fetch_all:
            outcomes = orchestrator.fetch(prune=prune)
        else:
            names = list(remotes)
            if not names:
                default = orchestrator.get_default_remote_name(ctx.obj.get("remote_name"))
                if default is None:
                    console.print("No remotes configured.", style="yellow")
                    return
                names = [default]
            outcomes = []
            for name in names:
                fetched = orchestrator.fetch_remote(name, prune=prune)
                if not fetched:
                    console.print(f"⚠️  Remote {name} is not configured; skipped.", style="yellow")
                outcomes.extend(fetched)
    except SyncError as e:
        _fail("Fetch error", e)
        return

    _display_fetch_outcomes(outcomes)
    if any(not o.success for o in outcomes):
        sys.exit(1)


@cli.command()
@click.option("--no-recursive", "no_recursive", is_flag=True, help="Do not descend into nested submodules")
@click.pass_context
def submodules(ctx: click.Context, no_recursive: bool) -> None:
    """Initialize and update all submodules."""
    _maybe_print_log_notice(ctx)
    try:
        orchestrator = _make_orchestrator(ctx)
        outcomes = orchestrator.update_submodules(recursive=not no_recursive)
    except SyncError as e:
        _fail("Submodule update error", e)
        return

    if not outcomes:
        console.print("No submodules declared.")
        return

    _display_submodule_outcomes(outcomes)
    if not all(o.all_succeeded for o in outcomes):
        sys.exit(1)


@cli.command()
@click.argument("reference")
@click.option("--limit", type=int, default=None, help="Show at most this many commits")
@click.pass_context
def ahead(ctx: click.Context, reference: str, limit: Optional[int]) -> None:
    """List commits on the current branch that REFERENCE does not contain."""
    try:
        orchestrator = _make_orchestrator(ctx)
        commits: List[CommitInfo] = []
        for commit in orchestrator.commits_ahead_of(reference):
            if limit is not None and len(commits) >= limit:
                break
            commits.append(commit)
    except SyncError as e:
        _fail("History error", e)
        return

    if not commits:
        console.print(f"✅ Nothing to rebase: the current branch is contained in {reference}.", style="green")
        return

    console.print(f"\n📋 **{len(commits)} commit(s) ahead of {reference}**")
    table = Table(show_header=True, header_style="bold magenta", expand=True)
    for column in COMMIT_COLUMNS:
        table.add_column(**column.rich_column_kwargs())
    for commit in commits:
        table.add_row(*(column.get_value(commit) for column in COMMIT_COLUMNS))
    console.print(table)


@cli.command()
@click.pass_context
def branches(ctx: click.Context) -> None:
    """List local and remote branch names, marking the checked-out one."""
    try:
        orchestrator = _make_orchestrator(ctx)
        names = orchestrator.get_branch_names()
        current = orchestrator.get_current_branch()
    except SyncError as e:
        _fail("Error listing branches", e)
        return
    for name in names:
        marker = "*" if name == current else " "
        console.print(f"{marker} {escape(name)}", highlight=False)


@cli.command()
@click.pass_context
def remotes(ctx: click.Context) -> None:
    """List remotes, marking the default one."""
    try:
        orchestrator = _make_orchestrator(ctx)
        default = orchestrator.get_default_remote_name(ctx.obj.get("remote_name"))
        configured = orchestrator.get_remotes()
    except SyncError as e:
        _fail("Error listing remotes", e)
        return

    if not configured:
        console.print("No remotes configured.")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Remote", style="cyan")
    table.add_column("URL", style="dim")
    table.add_column("Fetch Refspecs")
    table.add_column("Default", justify="center")
    for remote in sorted(configured, key=lambda r: r.name):
        table.add_row(
            remote.name,
            remote.url or "",
            "\n".join(remote.fetch_refspecs),
            "✅" if remote.name == default else "",
        )
    console.print(table)


@cli.command()
@click.argument("paths", nargs=-1, required=True)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def revert(ctx: click.Context, paths: tuple[str, ...], yes: bool) -> None:
    """Discard local changes to PATHS, restoring them from the branch tip."""
    try:
        orchestrator = _make_orchestrator(ctx)
        full_paths = [orchestrator.get_full_path(p) for p in paths]
        if not yes:
            for p in full_paths:
                console.print(f"  • {p}")
            if not click.confirm("\nDiscard local changes to these paths?", default=False):
                console.print("Revert cancelled.")
                return
        orchestrator.revert_file_changes(*full_paths)
    except SyncError as e:
        _fail("Revert error", e)
        return
    console.print(f"↩️  Reverted {len(full_paths)} path(s)", style="bold green")


@cli.command()
@click.argument("commit", required=False)
@click.option("--remote", "remote_name", default=None, help="Remote whose URL is used")
@click.option("--open", "open_browser", is_flag=True, help="Open the URL in a browser")
@click.pass_context
def url(ctx: click.Context, commit: Optional[str], remote_name: Optional[str], open_browser: bool) -> None:
    """Print the web URL of the repository, or of COMMIT."""
    try:
        orchestrator = _make_orchestrator(ctx)
        remote_name = remote_name or orchestrator.get_default_remote_name(ctx.obj.get("remote_name"))
        if commit:
            target = orchestrator.get_commit_url(commit, remote_name)
        else:
            target = orchestrator.get_repo_url(remote_name)
    except SyncError as e:
        _fail("URL error", e)
        return

    if not target:
        console.print("No remote URL configured.", style="yellow")
        sys.exit(1)
    click.echo(target)
    if open_browser:
        click.launch(target)


@cli.command()
def version() -> None:
    """Print the current repo-sync version."""
    console.print(f"repo-sync {PACKAGE_VERSION}")


def _display_fetch_outcomes(outcomes: List[FetchOutcome]) -> None:
    if not outcomes:
        console.print("Nothing fetched.")
        return
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Remote", style="cyan")
    table.add_column("Status")
    table.add_column("Error", style="red")
    for outcome in outcomes:
        table.add_row(
            outcome.remote_name,
            "✅ Fetched" if outcome.success else "❌ Failed",
            outcome.error or "",
        )
    console.print(table)


def _display_submodule_outcomes(outcomes: List[SubmoduleOutcome]) -> None:
    tree = Tree("📦 Submodules", guide_style="dim")

    def _add(node: Tree, outcome: SubmoduleOutcome) -> None:
        if outcome.success:
            label = f"[green]✅ {escape(outcome.name)}[/green] [dim]{outcome.path}[/dim]"
        else:
            label = f"[red]❌ {escape(outcome.name)}[/red] [dim]{outcome.path}[/dim] {escape(outcome.error or '')}"
        child = node.add(label)
        for nested in outcome.children:
            _add(child, nested)

    for outcome in outcomes:
        _add(tree, outcome)
    console.print(tree)


def main() -> None:
    """Console script entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n\n🚫 **Operation cancelled by user**", style="bold yellow")
        logger.debug("Top-level cancellation (KeyboardInterrupt)", exc_info=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
