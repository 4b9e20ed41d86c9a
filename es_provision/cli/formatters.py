"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from es_provision.core.provisioner import ProvisionResult
from es_provision.exceptions import ProvisioningError
from es_provision.models.artifact import ArtifactDescriptor
from es_provision.utils.formatting import format_duration


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    if isinstance(error, ProvisioningError) and error.cause is not None:
        error_type = type(error.cause).__name__
    else:
        error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ConfigurationError": [
            "• Check the version is written as major.minor.patch.",
            "• Run `es-provision --show-config` to review the settings in use.",
        ],
        "DownloadError": [
            "• Check your internet connection.",
            "• Verify --download-url; a template must end with '/%s'.",
            "• Raise `download_timeout` for slow mirrors.",
        ],
        "InstallError": [
            "• Check the repository directory is writable and has free space.",
        ],
        "ArtifactConsistencyError": [
            "• The artifact repository may be corrupt.",
            "• Run `es-provision --clear-cache` and try again.",
        ],
        "ExtractionError": [
            "• The cached archive may be truncated or corrupt.",
            "• Run `es-provision --clear-cache` to force a fresh download.",
        ],
        "StructuralError": [
            "• The archive is not an Elasticsearch distribution.",
            "• Check --download-url points at the right file.",
        ],
        "ConfigMergeError": [
            "• Check --path-conf points at an existing, readable directory.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration."""
    console = Console()
    content = ""
    for key, value in config_data.items():
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_descriptor(descriptor: ArtifactDescriptor, download_url: str):
    """Displays how a version/flavour/platform request resolves."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    table.add_row("Artifact ID:", descriptor.artifact_id)
    table.add_row("Version:", descriptor.version)
    table.add_row("Classifier:", descriptor.classifier or "[dim]none[/dim]")
    table.add_row("Type:", descriptor.type)
    table.add_row("Coordinates:", f"[dim]{descriptor.coordinates}[/dim]")
    table.add_row("File:", descriptor.filename)
    table.add_row("Download URL:", f"[dim]{download_url}[/dim]")

    console.print(
        Panel(
            table,
            title="[bold green]Resolved Artifact[/bold green]",
            border_style="green",
        )
    )


def print_summary_table(
    outcomes: list[ProvisionResult | ProvisioningError], duration: float
):
    """Displays one row per instance with its outcome."""
    console = Console()
    table = Table(box=box.ROUNDED, border_style="cyan")
    table.add_column("Instance", justify="right")
    table.add_column("Directory")
    table.add_column("Result")

    failed = 0
    for index, outcome in enumerate(outcomes):
        if isinstance(outcome, ProvisionResult):
            table.add_row(
                str(outcome.instance_id),
                str(outcome.base_dir),
                f"[green]✓ {outcome.descriptor.filename}[/green] "
                f"[dim]({format_duration(outcome.duration_s)})[/dim]",
            )
        else:
            failed += 1
            cause = outcome.cause or outcome
            table.add_row(
                str(index),
                "",
                f"[red]✗ {type(cause).__name__}: {cause}[/red]",
            )

    title_style = "bold red" if failed else "bold green"
    console.print(
        Panel(
            table,
            title=(
                f"[{title_style}]{len(outcomes) - failed}/{len(outcomes)} "
                f"instances provisioned in {format_duration(duration)}"
                f"[/{title_style}]"
            ),
            border_style="red" if failed else "green",
            expand=False,
        )
    )
