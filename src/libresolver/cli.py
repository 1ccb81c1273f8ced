"""
Command line interface for libresolver.

Exit codes: 0 on success, 1 when the library was not found and could not be
installed, 2 for any other resolver error.
"""

import json
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TransferSpeedColumn,
)
from rich.table import Table

from libresolver.libresolver_config import ResolverConfig, load_config, write_example_config
from libresolver.libresolver_exceptions import LibresolverException, NotFound
from libresolver.libresolver_logger import LibresolverLogger
from libresolver.resolver import LibraryResolver
from libresolver.runtime_dependency_downloader.downloader import ProgressCallback

EXIT_NOT_FOUND = 1
EXIT_ERROR = 2

app = typer.Typer(
    add_completion=False,
    help="Locate, install and load a native library published as a release asset.",
    no_args_is_help=True,
)
console = Console()
error_console = Console(stderr=True)

logger = LibresolverLogger()


def build_resolver(config: ResolverConfig) -> LibraryResolver:
    return LibraryResolver(config, logger)


def _load(config_file: Optional[str], **overrides) -> ResolverConfig:
    try:
        return load_config(config_file, **overrides)
    except LibresolverException as e:
        _fail(e)


def _fail(error: LibresolverException) -> None:
    error_console.print(f"[bold red]Error:[/bold red] {escape(str(error))}", highlight=False)
    raise typer.Exit(code=EXIT_NOT_FOUND if isinstance(error, NotFound) else EXIT_ERROR)


@contextmanager
def _download_progress(enabled: bool) -> Iterator[Optional[ProgressCallback]]:
    if not enabled:
        yield None
        return

    with Progress(
        TextColumn("[bold blue]Downloading"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        console=error_console,
        transient=True,
    ) as progress:
        task_id = progress.add_task("download", total=None)

        def update(read: int, total: int) -> None:
            progress.update(task_id, completed=read, total=total or None)

        yield update


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every resolver step."),
    debug: bool = typer.Option(False, "--debug", help="Log probe details as well."),
):
    """
    libresolver command line interface.
    """
    if debug:
        logger.configure(logging.DEBUG)
    elif verbose:
        logger.configure(logging.INFO)
    else:
        logger.configure(logging.WARNING)


@app.command()
def ensure(
    library_path: Optional[str] = typer.Option(None, "--library-path", help="Library file or directory to try first."),
    install_dir: Optional[str] = typer.Option(None, "--install-dir", help="Directory the library is installed into."),
    version: Optional[str] = typer.Option(None, "--version", help='Release tag to install, or "latest".'),
    force: bool = typer.Option(False, "--force", help="Skip local candidates and install from the release host."),
    skip_install: bool = typer.Option(False, "--skip-install", help="Never download; fail if no local copy loads."),
    token: Optional[str] = typer.Option(None, "--token", help="Release host API token."),
    no_progress: bool = typer.Option(False, "--no-progress", help="Do not show a download progress bar."),
    db_path: Optional[str] = typer.Option(None, "--db", help="Database file; its directory is searched too."),
    config_file: Optional[str] = typer.Option(None, "--config", help="Path to a libresolver.toml file."),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON."),
):
    """
    Make sure the library is available and loads, installing it if needed.
    """
    config = _load(
        config_file,
        library_path=library_path,
        install_dir=install_dir,
        version=version,
        force=force or None,
        skip_install=skip_install or None,
        token=token,
        no_progress=no_progress or None,
        db_path=db_path,
    )
    resolver = build_resolver(config)

    try:
        with _download_progress(not config.no_progress and not json_output) as progress:
            loaded = resolver.ensure_installed(progress=progress)
    except LibresolverException as e:
        _fail(e)

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "path": loaded.path,
                    "version": loaded.version_text,
                    "major": loaded.major_version,
                    "origin": loaded.origin.value if loaded.origin else None,
                    "installed_to": loaded.record.library_path if loaded.record else None,
                    "warning": loaded.compatibility_warning,
                },
                indent=2,
            )
        )
        return

    console.print(f"[green]Loaded[/green] {escape(loaded.path)} (version {loaded.version_text})", highlight=False)
    if loaded.record:
        console.print(f"Installed to {escape(loaded.record.library_path)}", highlight=False)
    if loaded.compatibility_warning:
        console.print(f"[yellow]Warning:[/yellow] {escape(loaded.compatibility_warning)}", highlight=False)


@app.command()
def candidates(
    library_path: Optional[str] = typer.Option(None, "--library-path", help="Library file or directory to try first."),
    install_dir: Optional[str] = typer.Option(None, "--install-dir", help="Directory the library is installed into."),
    db_path: Optional[str] = typer.Option(None, "--db", help="Database file; its directory is searched too."),
    config_file: Optional[str] = typer.Option(None, "--config", help="Path to a libresolver.toml file."),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON."),
):
    """
    List the locations searched for the library, in order, without loading anything.
    """
    config = _load(config_file, library_path=library_path, install_dir=install_dir, db_path=db_path)
    resolver = build_resolver(config)
    probe = resolver.make_probe(config)

    record = resolver.installation(config)
    installed = None
    if record is not None:
        installed = {"path": record.library_path, "version": record.version or None, "valid": record.valid}

    rows = []
    for candidate in resolver.candidates():
        ruled_out = probe.check_file(candidate.path, candidate.origin)
        status = "present" if ruled_out is None else ruled_out.describe()
        rows.append({"path": candidate.path, "origin": candidate.origin.value, "status": status})

    if json_output:
        typer.echo(json.dumps({"installed": installed, "candidates": rows}, indent=2))
        return

    table = Table(title=f"Candidates for {config.library_names[0]}")
    table.add_column("#", justify="right")
    table.add_column("Path", overflow="fold")
    table.add_column("Origin")
    table.add_column("Status")
    for index, row in enumerate(rows, start=1):
        style = "green" if row["status"] == "present" else None
        table.add_row(str(index), row["path"], row["origin"], row["status"], style=style)
    console.print(table)

    if installed is None:
        console.print(f"Nothing installed in {escape(config.install_dir)}", highlight=False)
    else:
        state = "[green]valid[/green]" if installed["valid"] else "[red]invalid[/red]"
        console.print(
            f"Installed: {escape(installed['path'])} (version {escape(installed['version'] or 'unknown')}, {state})",
            highlight=False,
        )


@app.command()
def releases(
    config_file: Optional[str] = typer.Option(None, "--config", help="Path to a libresolver.toml file."),
    token: Optional[str] = typer.Option(None, "--token", help="Release host API token."),
    page: int = typer.Option(1, "--page", min=1, help="Page of the release list to show."),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON."),
):
    """
    List the releases of the configured repository, newest first.
    """
    config = _load(config_file, token=token)
    resolver = build_resolver(config)
    try:
        found = resolver.release_client(config).list_releases(config.owner, config.repo, token=config.token, page=page)
    except LibresolverException as e:
        _fail(e)

    if json_output:
        typer.echo(
            json.dumps(
                [
                    {
                        "tag": release.tag,
                        "published_at": release.published_at.isoformat() if release.published_at else None,
                        "prerelease": release.is_prerelease,
                        "assets": release.asset_names,
                    }
                    for release in found
                ],
                indent=2,
            )
        )
        return

    table = Table(title=f"Releases of {config.owner}/{config.repo}")
    table.add_column("Tag")
    table.add_column("Published")
    table.add_column("Pre-release")
    table.add_column("Assets", justify="right")
    for release in found:
        published = release.published_at.strftime("%Y-%m-%d") if release.published_at else "-"
        table.add_row(release.tag, published, "yes" if release.is_prerelease else "", str(len(release.assets)))
    console.print(table)


config_app = typer.Typer(no_args_is_help=True)
cache_app = typer.Typer(no_args_is_help=True)
app.add_typer(config_app, name="config", help="Configuration file commands (init)")
app.add_typer(cache_app, name="cache", help="Download cache commands (purge)")


@config_app.command("init")
def config_init(
    path: Optional[str] = typer.Option(None, "--path", help="Where to write the file, the default config location if omitted."),
    overwrite: bool = typer.Option(False, "--force", help="Replace an existing file."),
):
    """
    Write a commented starter libresolver.toml.
    """
    try:
        written = write_example_config(path, overwrite=overwrite)
    except LibresolverException as e:
        _fail(e)
    console.print(f"Wrote {escape(written)}", highlight=False)


@cache_app.command("purge")
def cache_purge(
    older_than: Optional[float] = typer.Option(
        None, "--older-than", min=0, help="Only remove files older than this many days."
    ),
    config_file: Optional[str] = typer.Option(None, "--config", help="Path to a libresolver.toml file."),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON."),
):
    """
    Delete downloaded release assets from the cache directory.
    """
    config = _load(config_file)
    resolver = build_resolver(config)
    max_age = older_than * 24 * 60 * 60 if older_than is not None else None
    try:
        removed = resolver.downloader(config).purge(config.cache_dir, older_than=max_age)
    except OSError as e:
        error_console.print(f"[bold red]Error:[/bold red] {escape(str(e))}", highlight=False)
        raise typer.Exit(code=EXIT_ERROR)

    if json_output:
        typer.echo(json.dumps({"cache_dir": config.cache_dir, "removed": removed}, indent=2))
        return
    console.print(f"Removed {len(removed)} file(s) from {escape(config.cache_dir)}", highlight=False)


if __name__ == "__main__":
    app()
