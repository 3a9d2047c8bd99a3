"""Shared utilities for all CLI command modules.

Provides the Rich console, the per-invocation application context and
the helpers that turn reconciler results and errors into output.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..errors import ShareError
from ..models import HostMountOutcome, ReconcileResult, ShareConfig
from ..reconciler import MountReconciler
from ..system import HostSystem, SystemOperations

console = Console()


@dataclass
class AppContext:
    """What every command needs: configuration and the system seam."""

    config: ShareConfig = field(default_factory=ShareConfig)
    system: SystemOperations = field(default_factory=HostSystem)
    skip_root_check: bool = False
    _reconciler: Optional[MountReconciler] = None

    @property
    def reconciler(self) -> MountReconciler:
        if self._reconciler is None:
            self._reconciler = MountReconciler(self.config, self.system)
        return self._reconciler


pass_app = click.make_pass_decorator(AppContext)


def require_root(app: AppContext) -> None:
    """Exit unless running as root (host tables are root-owned)."""
    if app.skip_root_check:
        return
    if os.geteuid() != 0:
        console.print("[bold red]Please run this command as root.[/]")
        raise SystemExit(1)


def fail(exc: ShareError) -> None:
    """Print an error with its manual remediation commands and exit 1."""
    body = f"[bold red]{exc}[/]"
    if exc.remediation:
        body += "\n\n[yellow]Manual fix:[/]\n" + "\n".join(f"  {cmd}" for cmd in exc.remediation)
    console.print(Panel(body, title="Failed", border_style="red"))
    raise SystemExit(1)


def mode_label(value: str) -> str:
    return "[yellow]ro[/]" if value == "ro" else "[green]rw[/]"


def host_outcome_lines(outcome: HostMountOutcome) -> list[str]:
    if outcome.reused:
        state = "[cyan]already configured[/]"
    elif outcome.created:
        state = "[green]created[/]"
    else:
        state = "[cyan]entry present[/]"
    lines = [f"Host mount: [white]{outcome.target}[/] ({outcome.mechanism.value}, {state})"]
    if outcome.fell_back:
        lines.append("  [yellow]autofs unavailable - fell back to systemd automount[/]")
    if outcome.activated is False:
        lines.append("  [yellow]mount not active yet - check logs if it does not come up[/]")
    if outcome.credentials_path:
        lines.append(f"  Credentials: [dim]{outcome.credentials_path}[/]")
    return lines


def print_result(result: ReconcileResult, config: ShareConfig) -> None:
    """Summarise a configure run."""
    lines: list[str] = []
    if result.host is not None:
        lines.extend(host_outcome_lines(result.host))
    else:
        lines.append(f"Host mount: [white]{result.target}[/] (existing)")

    if result.bind is not None:
        bind = result.bind
        entry = bind.entry
        state = "[green]added[/]" if bind.created else "[cyan]already present[/]"
        lines.append(f"Bound source on host: [white]{entry.source_path}[/]")
        lines.append(f"LXC config: [dim]{bind.config_path}[/] as mp{entry.index} ({state})")
        lines.append(
            f"LXC target mount: [white]{entry.container_path}[/] "
            f"({mode_label(entry.access_mode.value)})"
        )
        group = f"{config.container_group} (GID {config.container_gid})"
        if bind.group_ready:
            lines.append(f"LXC group: {group}")
            lines.append(
                f"  [dim]Grant access to other users: usermod -aG {config.container_group} USERNAME[/]"
            )
        else:
            lines.append(f"LXC group: [yellow]{group} not created[/]")

    if result.remediation:
        lines.append("")
        lines.append("[yellow]Manual fix:[/]")
        lines.extend(f"  {cmd}" for cmd in result.remediation)

    console.print(Panel("\n".join(lines), title="Setup complete", border_style="green"))


def entries_table(title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Share", style="cyan")
    table.add_column("Mount point")
    table.add_column("Mode")
    table.add_column("Credentials", style="dim")
    return table
