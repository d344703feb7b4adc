"""
Cafeteria counter CLI.

Command-line interface for the pickup counter and local maintenance.
Every order command acts as a staff identity (--staff or CAFETERIA_STAFF_ID).
"""

import asyncio
import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent))

import typer
from rich.console import Console
from rich.table import Table

from shared.config.logging import setup_logging
from shared.infrastructure.db import get_db_context
from shared.utils.exceptions import AppException

app = typer.Typer(
    name="cafeteria",
    help="Cafeteria ordering counter CLI",
    add_completion=False,
)
console = Console()

StaffOption = typer.Option(..., "--staff", "-s", envvar="CAFETERIA_STAFF_ID", help="Staff identity id")


def _fail(error: AppException) -> None:
    console.print(f"[red]✗ {error.detail}[/red]")
    raise typer.Exit(1)


def _order_table(title: str, orders) -> Table:
    table = Table(title=title)
    table.add_column("Order", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Code", style="yellow")
    table.add_column("Items", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Placed")
    for order in orders:
        table.add_row(
            str(order.id),
            order.status,
            order.pickup_code,
            str(order.item_count),
            f"{order.total_cents / 100:.2f}",
            order.created_at.strftime("%H:%M:%S"),
        )
    return table


# =============================================================================
# Counter Commands
# =============================================================================


@app.command()
def verify_pickup(
    code: str = typer.Argument(..., help="4-digit pickup code"),
    staff: str = StaffOption,
):
    """Show the ready order holding CODE."""
    from rest_api.services.domain import OrderService

    with get_db_context() as db:
        try:
            order = OrderService(db).verify_pickup(code, actor_id=staff)
        except AppException as e:
            _fail(e)
        console.print(_order_table(f"Pickup code {code}", [order]))
        for item in order.items:
            console.print(f"  {item.quantity} x {item.item_name}")
        if order.notes:
            console.print(f"  [dim]Notes: {order.notes}[/dim]")


@app.command()
def complete_order(
    order_id: int = typer.Argument(..., help="Order id"),
    staff: str = StaffOption,
):
    """Hand an order over (ready -> completed)."""
    from rest_api.services.domain import OrderService

    with get_db_context() as db:
        try:
            order = OrderService(db).complete_pickup(order_id, staff)
        except AppException as e:
            _fail(e)
        console.print(f"[green]✓ Order {order.id} completed[/green]")


@app.command()
def queue(
    staff: str = StaffOption,
    status: list[str] = typer.Option(None, "--status", help="Only these statuses"),
):
    """Show the active order queue."""
    from rest_api.services.domain import OrderService

    with get_db_context() as db:
        try:
            orders = OrderService(db).list_queue(staff, status or None)
        except AppException as e:
            _fail(e)
        if not orders:
            console.print("[yellow]Queue is empty[/yellow]")
            return
        console.print(_order_table("Order queue", orders))


# =============================================================================
# Database Commands
# =============================================================================


@app.command()
def seed():
    """Create tables and seed the menu and default settings."""
    from rest_api.models import Base
    from rest_api.seed import seed as seed_database
    from shared.infrastructure.db import engine

    Base.metadata.create_all(bind=engine)
    with get_db_context() as db:
        seed_database(db)
    console.print("[green]✓ Database seeded[/green]")


# =============================================================================
# Health Commands
# =============================================================================


@app.command()
def health():
    """Check database and Redis connectivity."""
    from rest_api.routers.public.health import check_database, check_redis

    table = Table(title="Dependency Health")
    table.add_column("Dependency", style="cyan")
    table.add_column("Status", style="green")
    table.add_row("Database", "✓ Healthy" if check_database() else "✗ Unreachable")
    table.add_row("Redis", "✓ Healthy" if asyncio.run(check_redis()) else "✗ Unreachable")
    console.print(table)


if __name__ == "__main__":
    setup_logging()
    app()
