"""Status command: what the host already has configured and mounted."""

from __future__ import annotations

import json

import click

from ..inventory import HostInventory, collect_inventory
from ._common import AppContext, console, entries_table, mode_label, pass_app


def print_inventory(inventory: HostInventory) -> None:
    """Render the host inventory as Rich tables."""
    console.print()
    table = entries_table("CIFS entries in fstab")
    for e in inventory.fstab:
        table.add_row(e.source, e.target, mode_label(e.access_mode.value), str(e.credentials_path or "—"))
    if inventory.fstab:
        console.print(table)
    else:
        console.print("[bold]CIFS entries in fstab[/]\n  [dim](none)[/]")

    console.print()
    console.print("[bold]Currently mounted CIFS filesystems[/]")
    if not inventory.mounted:
        console.print("  [dim](none)[/]")
    for source, target in inventory.mounted:
        console.print(f"  [cyan]{source}[/] -> {target}")

    console.print()
    console.print("[bold]Autofs control mounts[/]")
    if not inventory.autofs_mounts:
        console.print("  [dim](none)[/]")
    for source, target in inventory.autofs_mounts:
        console.print(f"  [cyan]{source}[/] on {target}")

    console.print()
    console.print("[bold]Autofs CIFS maps configured by lxcshare[/]")
    if not inventory.autofs:
        console.print("  [dim](none)[/]")
    for e in inventory.autofs:
        console.print(f"  {e.target} -> [cyan]{e.source}[/]  [dim][map: {e.map_file}][/]")
    console.print()


def register_status_commands(main: click.Group) -> None:
    """Register the status command."""

    @main.command("status")
    @click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
    @pass_app
    def status(app: AppContext, as_json: bool):
        """Show CIFS mounts in fstab, active mounts and autofs maps.

        \b
        Examples:

            lxcshare status

            lxcshare status --json
        """
        inventory = collect_inventory(app.config, app.system)
        if as_json:
            click.echo(json.dumps(inventory.to_dict(), indent=2))
            return
        print_inventory(inventory)
