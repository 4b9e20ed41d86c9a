"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from es_provision import __version__
from es_provision.core.acquirer import ArtifactAcquirer, build_download_url
from es_provision.core.descriptor import resolve_descriptor
from es_provision.core.provisioner import InstanceProvisioner, ProvisionResult
from es_provision.core.stager import ArchiveStager
from es_provision.exceptions import EsProvisionError
from es_provision.models.artifact import Platform
from es_provision.models.config import InstanceConfig
from es_provision.net.downloader import Downloader
from es_provision.storage.config_manager import ConfigManager
from es_provision.storage.repository import LocalArtifactRepository

from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_descriptor,
    print_summary_table,
)

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("es_provision")

app = typer.Typer(
    name="es-provision",
    help=(
        "Download, cache and unpack Elasticsearch distributions into instance"
        " directories. Use 'es-provision <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if override := os.getenv("ES_PROVISION_CONFIG_DIR"):
        return Path(override).expanduser()
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "es-provision"


def get_config_file() -> Path:
    return get_config_dir() / "config.ini"


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
    clear_cache: bool = typer.Option(
        False, "--clear-cache", help="Empty the local artifact repository and exit."
    ),
):
    """Elasticsearch provisioning CLI"""
    if version:
        console.print(f"[bold]es-provision[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("es_provision").setLevel(log_level)

    config_file = get_config_file()

    if clear_cache:
        repository_path = ConfigManager(config_file).load_repository_path()
        repository = LocalArtifactRepository(repository_path)
        files_count = len(repository.list_artifacts())
        console.print("[cyan]Clearing artifact repository...[/cyan]")
        if repository.clear():
            console.print(
                f"[green]✓ Repository cleared successfully ({files_count} artifacts"
                " removed).[/green]"
            )
        else:
            console.print("[red]✗ Failed to clear the repository.[/red]")
        raise typer.Exit()

    if show_config:
        if not config_file.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]es-provision init[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        config_manager = ConfigManager(config_file)
        settings = config_manager.load_config()
        print_config(config_file, settings.model_dump(exclude={"config_path"}))
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    es_version: str = typer.Argument(..., help="Elasticsearch version, e.g. 7.1.0."),
    flavour: str = typer.Option(
        "", "--flavour", help="Distribution flavour (empty for oss, 'default', ...)."
    ),
    download_url: str = typer.Option(
        "",
        "--download-url",
        help="Literal download URL, or a template ending with '/%s'.",
    ),
    path_conf: str = typer.Option(
        "", "--path-conf", help="Directory merged into each instance's config/."
    ),
    repository_dir: str = typer.Option(
        "", "--repository-dir", help="Where downloaded archives are cached."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration file."
    ),
):
    """Write a configuration file with the default cluster settings."""
    config_file = get_config_file()
    if (
        config_file.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = {
        "version": es_version,
        "flavour": flavour,
        "download_url": download_url,
        "path_conf": path_conf,
        "repository_dir": repository_dir,
    }
    config_manager = ConfigManager(config_file)
    try:
        config_manager.save_new_config(settings)
        config_manager.load_config()
    except EsProvisionError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1) from e
    console.print(f"[bold green]✓ Configuration saved to '{config_file}'[/bold green]")


@app.command()
def resolve(
    es_version: str | None = typer.Option(
        None, "--es-version", "-e", help="Elasticsearch version, e.g. 7.1.0."
    ),
    flavour: str | None = typer.Option(None, "--flavour", help="Distribution flavour."),
    download_url: str | None = typer.Option(
        None, "--download-url", help="Literal download URL or '/%s' template."
    ),
    platform: Platform | None = typer.Option(
        None, "--platform", help="Target platform (detected when omitted)."
    ),
):
    """Show which artifact a version/flavour/platform resolves to."""
    cli_options = {
        "version": es_version,
        "flavour": flavour,
        "download_url": download_url,
    }
    try:
        settings = ConfigManager(get_config_file()).load_config(cli_options)
        descriptor = resolve_descriptor(
            settings.version, settings.flavour, platform or Platform.detect()
        )
    except EsProvisionError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e
    url = build_download_url(descriptor.filename, settings.download_url)
    print_descriptor(descriptor, url)


@app.command()
def provision(
    base_dir: Path = typer.Argument(
        ..., help="Instance root (one instance) or parent of instance-<n> dirs."
    ),
    es_version: str | None = typer.Option(
        None, "--es-version", "-e", help="Elasticsearch version, e.g. 7.1.0."
    ),
    flavour: str | None = typer.Option(None, "--flavour", help="Distribution flavour."),
    download_url: str | None = typer.Option(
        None, "--download-url", help="Literal download URL or '/%s' template."
    ),
    path_conf: str | None = typer.Option(
        None, "--path-conf", help="Directory merged into each instance's config/."
    ),
    instances: int | None = typer.Option(
        None, "--instances", "-n", help="Number of instances to provision."
    ),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Download timeout in seconds."
    ),
):
    """Download (if needed) and unpack Elasticsearch into instance directories."""
    cli_options = {
        "version": es_version,
        "flavour": flavour,
        "download_url": download_url,
        "path_conf": path_conf,
        "instance_count": instances,
        "download_timeout": timeout,
    }
    try:
        settings = ConfigManager(get_config_file()).load_config(cli_options)
        cluster = settings.cluster_config()
    except EsProvisionError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e

    if settings.instance_count == 1:
        instance_dirs = [base_dir]
    else:
        instance_dirs = [
            base_dir / f"instance-{i}" for i in range(settings.instance_count)
        ]
    instance_configs = [
        InstanceConfig(base_dir=path, cluster=cluster, instance_id=i)
        for i, path in enumerate(instance_dirs)
    ]

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}", justify="left"),
        BarColumn(bar_width=30),
        "[progress.percentage]{task.percentage:>3.0f}%",
        "•",
        DownloadColumn(),
        "•",
        TransferSpeedColumn(),
        "•",
        TimeRemainingColumn(),
        console=console,
        transient=True,
    )
    provisioner = InstanceProvisioner(
        ArtifactAcquirer(
            LocalArtifactRepository(settings.repository_path()),
            Downloader(timeout=settings.download_timeout, progress=progress),
        ),
        ArchiveStager(),
        Platform.detect(),
    )

    console.print(
        f"[bold cyan]Provisioning {len(instance_configs)} instance(s) of "
        f"Elasticsearch {cluster.version}...[/bold cyan]"
    )
    start_time = time.monotonic()
    with progress:
        outcomes = asyncio.run(provisioner.provision_all(instance_configs))
    print_summary_table(outcomes, time.monotonic() - start_time)

    failures = [o for o in outcomes if not isinstance(o, ProvisionResult)]
    for failure in failures:
        log.debug("Provisioning failure:", exc_info=failure)
    if failures:
        raise typer.Exit(code=1)
