"""Rich-based terminal display layer for PunchOut attempts.

Provides the four-stage progress table, result summary, network request
table, customer table, countdown line and error panels.  Uses a
module-level :class:`~rich.console.Console` singleton for consistent
output.
"""

from __future__ import annotations

from collections.abc import Iterable

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from src.punchout_orchestrator.models import (
    STAGE_LABELS,
    STAGE_ORDER,
    CustomerContext,
    ExecutionAttempt,
    ExecutionResult,
    Stage,
    StageStatus,
)
from src.shared.constants import APP_NAME, VERSION
from src.shared.models.punchout import AuditEntry

# ---------------------------------------------------------------------------
# Module-level Console singleton
# ---------------------------------------------------------------------------

_console = Console()

_STATUS_MARKUP: dict[StageStatus, str] = {
    StageStatus.PENDING: "[dim]PENDING[/dim]",
    StageStatus.LOADING: "[yellow]RUNNING[/yellow]",
    StageStatus.SUCCESS: "[green]SUCCESS[/green]",
    StageStatus.ERROR: "[red]ERROR[/red]",
}


# ---------------------------------------------------------------------------
# Renderables
# ---------------------------------------------------------------------------


def build_progress_table(stages: dict[Stage, StageStatus]) -> Table:
    """Return a table with one row per progress stage."""
    table = Table(title="PunchOut Progress", show_header=True, header_style="bold magenta")
    table.add_column("Stage", style="cyan", min_width=28)
    table.add_column("Status", justify="center", min_width=10)
    for stage in STAGE_ORDER:
        status = stages.get(stage, StageStatus.PENDING)
        table.add_row(STAGE_LABELS[stage], _STATUS_MARKUP[status])
    return table


def build_network_table(entries: Iterable[AuditEntry]) -> Table:
    """Return a table of audited network requests."""
    table = Table(title="Network Requests", show_header=True, header_style="bold magenta")
    table.add_column("Direction", min_width=9)
    table.add_column("Destination", style="cyan", min_width=16)
    table.add_column("Method", min_width=6)
    table.add_column("Status", justify="right", min_width=6)
    table.add_column("Result", justify="center", min_width=6)
    for entry in entries:
        table.add_row(
            entry.direction.value,
            entry.destination,
            entry.method or "-",
            str(entry.status_code) if entry.status_code is not None else "-",
            "[green]OK[/green]" if entry.success else "[red]FAIL[/red]",
        )
    return table


# ---------------------------------------------------------------------------
# Display functions
# ---------------------------------------------------------------------------


def print_attempt_header(attempt: ExecutionAttempt) -> None:
    """Print a panel identifying the attempt."""
    header = Text()
    header.append(APP_NAME, style="bold white")
    header.append(f" v{VERSION}\n", style="dim")
    header.append("Customer: ", style="bold")
    header.append(f"{attempt.customer.name} ({attempt.customer.customer_id})\n", style="cyan")
    header.append("Environment: ", style="bold")
    header.append(f"{attempt.environment}\n", style="green")
    header.append("Template: ", style="bold")
    header.append(attempt.template_origin.value, style="yellow")

    _console.print(
        Panel(
            header,
            title="[bold]PunchOut Attempt[/bold]",
            border_style="blue",
            expand=False,
        )
    )


def print_progress_table(stages: dict[Stage, StageStatus]) -> None:
    """Print the four-stage progress table."""
    _console.print(build_progress_table(stages))


def print_customers_table(customers: list[CustomerContext], environment: str) -> None:
    """Print the deployed customers available in *environment*."""
    if not customers:
        _console.print(f"[dim]No deployed customers in {environment}.[/dim]")
        return
    table = Table(
        title=f"Customers ({environment})", show_header=True, header_style="bold magenta"
    )
    table.add_column("Customer ID", style="cyan")
    table.add_column("Name")
    table.add_column("Domain")
    table.add_column("Buyer ID")
    for customer in customers:
        table.add_row(customer.customer_id, customer.name, customer.domain, customer.buyer_id)
    _console.print(table)


def print_result_summary(result: ExecutionResult) -> None:
    """Print the attempt outcome, stage table and network requests."""
    style = "green" if result.success else "red"
    content = Text()
    content.append(f"Status: {result.status.value}\n", style=f"bold {style}")
    content.append(
        f"HTTP Status: {result.http_status if result.http_status is not None else '-'}\n"
    )
    content.append(f"Session Key: {result.session_key or '-'}\n")
    content.append(f"Catalog URL: {result.catalog_url or '-'}\n")
    content.append(f"Duration: {result.duration_ms} ms\n")
    if result.error:
        content.append(f"Error: {result.error}\n", style="red")
    for note in result.notes:
        content.append(f"Note ({note.kind.value}): {note.message}\n", style="yellow")

    parts: list = [content, build_progress_table(result.stages)]
    if result.network_requests:
        parts.append(build_network_table(result.network_requests))

    _console.print(
        Panel(
            Group(*parts),
            title="[bold]PunchOut Result[/bold]",
            border_style=style,
            expand=False,
        )
    )


def print_countdown(remaining: int, url: str) -> None:
    """Print one countdown line of the catalog redirect."""
    if remaining > 0:
        _console.print(f"[bold blue]Redirecting in {remaining}s...[/bold blue] {url}")
    else:
        _console.print(f"[bold green]Opening catalog:[/bold green] {url}")


def print_error_panel(error: str | Exception) -> None:
    """Print an error message in a red Rich panel."""
    _console.print(
        Panel(
            Text(str(error), style="bold white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            expand=False,
        )
    )
