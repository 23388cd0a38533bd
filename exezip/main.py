"""CLI entry point for exezip."""

import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import click
import uvicorn
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .builder import ContainerBuilder
from .config import BuildSettings
from .errors import ExezipError
from .restorer import restore_file_system

EXIT_SUCCESS = 0
EXIT_FAILURE = 255

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]

console = Console()


class CommandError(click.ClickException):
    """Failure reported to the user with the exezip exit code."""

    exit_code = EXIT_FAILURE

    def show(self, file=None) -> None:
        click.echo(f"❌ {self.format_message()}", err=True)


def _setup_logging(log_level: str) -> None:
    """Setup logging configuration."""
    level = getattr(logging, log_level.upper())
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )
    logging.getLogger("exezip").setLevel(level)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(
    __version__,
    "-v",
    "--version",
    prog_name="exezip",
    message="%(prog)s version %(version)s",
)
def cli() -> None:
    """Embed asset files into an executable and serve them back from it."""
    pass


@cli.command()
@click.option(
    "--exe",
    "-e",
    "exe_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Executable file's path. *REQUIRED (unless set in --config)",
)
@click.option(
    "--zip-path",
    "-z",
    "zip_paths",
    type=click.Path(path_type=Path),
    multiple=True,
    help="File or directory to embed; repeatable. *REQUIRED (unless set in --config)",
)
@click.option(
    "--out",
    "-o",
    "out_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Output file's path (default: out)",
)
@click.option(
    "--namespace",
    "-n",
    default=None,
    help="Top-level archive segment (default: the application tag)",
)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="JSON build settings; command line options override them",
)
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Log level (default: INFO)",
)
def build(
    exe_path: Optional[Path],
    zip_paths: Tuple[Path, ...],
    out_path: Optional[Path],
    namespace: Optional[str],
    config: Optional[Path],
    log_level: Optional[str],
) -> None:
    """Build a container from an executable and asset files."""
    try:
        settings = _load_settings(
            config, exe_path, list(zip_paths), out_path, namespace, log_level
        )
        _setup_logging(settings.log_level)

        click.echo(f"📦 Building {settings.out_path}")
        builder = ContainerBuilder.from_settings(settings)
        signature = builder.build()

        click.echo(f"✅ Exported {settings.out_path}")
        click.echo(f"   {signature}")

    except ExezipError as e:
        raise CommandError(f"Build failed: {e}")

    except FileNotFoundError as e:
        raise CommandError(f"Configuration file not found: {e}")

    except ValueError as e:
        raise CommandError(f"Configuration error: {e}")


def _load_settings(
    config: Optional[Path],
    exe_path: Optional[Path],
    zip_paths: List[Path],
    out_path: Optional[Path],
    namespace: Optional[str],
    log_level: Optional[str],
) -> BuildSettings:
    """Merge the configuration file with command line overrides."""
    data = {}
    if config:
        data = BuildSettings.from_json(config).model_dump(exclude_unset=True)

    # Apply CLI overrides
    if exe_path:
        data["exe_path"] = exe_path
    if zip_paths:
        data["zip_paths"] = zip_paths
    if out_path:
        data["out_path"] = out_path
    if namespace:
        data["namespace"] = namespace
    if log_level:
        data["log_level"] = log_level

    return BuildSettings.model_validate(data)


@cli.command()
@click.option(
    "--file",
    "-f",
    "container_path",
    type=click.Path(path_type=Path),
    required=True,
    help="Container file's path",
)
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    help="Log level",
)
def show(container_path: Path, log_level: str) -> None:
    """Print the signature and embedded paths of a container."""
    _setup_logging(log_level)
    try:
        zfs = restore_file_system(container_path)
    except ExezipError as e:
        raise CommandError(f"Cannot read {container_path}: {e}")

    console.print(f"[bold]{escape(str(zfs.signature))}[/bold]")

    table = Table(title=f"Embedded files ({len(zfs)})")
    table.add_column("Path")
    table.add_column("Size", justify="right")
    table.add_column("Mode")
    table.add_column("Modified")
    for path in zfs.paths():
        info = zfs.get_file(path).info
        table.add_row(
            escape(path),
            f"{info.size:,}",
            f"{info.permissions:o}",
            info.mod_time.strftime("%Y-%m-%d %H:%M:%S"),
        )
    console.print(table)


@cli.command()
@click.option(
    "--file",
    "-f",
    "container_path",
    type=click.Path(path_type=Path),
    required=True,
    help="Container file's path",
)
@click.option(
    "--base",
    "-b",
    "base_path",
    default="",
    help="Embedded directory to serve as the document root",
)
@click.option("--host", default="127.0.0.1", help="Interface to bind")
@click.option("--port", "-p", type=int, default=8080, help="Port to listen on")
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="INFO",
    help="Log level",
)
def serve(
    container_path: Path, base_path: str, host: str, port: int, log_level: str
) -> None:
    """Serve the files embedded in a container over HTTP."""
    _setup_logging(log_level)
    try:
        zfs = restore_file_system(container_path)
    except ExezipError as e:
        raise CommandError(f"Cannot read {container_path}: {e}")

    app = zfs.file_server(base_path)
    if app is None:
        raise CommandError(f"Invalid base path: {base_path}")

    click.echo(f"🌐 Serving {container_path} on http://{host}:{port}/")
    uvicorn.run(app, host=host, port=port, log_level=log_level.lower())


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the exezip CLI.

    Args:
        argv: Optional argument list (excluding program name)

    Returns:
        Exit code: 0 on success, 255 on usage errors or failures
    """
    try:
        rv = cli.main(args=argv, prog_name="exezip", standalone_mode=False)
    except click.ClickException as e:
        e.show()
        return EXIT_FAILURE
    except click.Abort:
        click.echo("\n⚠️ Interrupted by user", err=True)
        return EXIT_FAILURE

    if isinstance(rv, int):
        return rv
    return EXIT_SUCCESS


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
