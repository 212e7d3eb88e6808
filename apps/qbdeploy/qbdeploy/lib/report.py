"""Rendering of the end-of-run deployment information."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from qbdeploy.lib.kube import Listing

TITLES = {
    "services": "Services",
    "deployments": "Deployments",
    "pods": "Pods",
    "ingress": "Ingress",
}


def listing_table(listing: Listing) -> Table:
    table = Table(title=TITLES.get(listing.kind, listing.kind), title_justify="left")
    for i, column in enumerate(listing.columns):
        table.add_column(column, style="cyan" if i == 0 else None)
    for row in listing.rows:
        table.add_row(*row)
    return table


def print_header(console: Console, name: str, environment: str, namespace: str) -> None:
    console.rule()
    console.print(f"[bold]Application:[/bold] {name}")
    console.print(f"[bold]Environment:[/bold] {environment}")
    console.print(f"[bold]Namespace:[/bold] {namespace}")


def print_listing(console: Console, listing: Listing) -> None:
    console.print()
    if not listing.rows:
        title = TITLES.get(listing.kind, listing.kind)
        console.print(f"[yellow]No {title.lower()} found[/yellow]")
        return
    console.print(listing_table(listing))
