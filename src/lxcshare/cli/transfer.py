"""Export and import commands: move host mount definitions between nodes."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import IO, Optional

import click
from rich.table import Table

from ..credentials import write_private
from ..errors import ShareError
from ..models import CredentialRecord, ExportBlock
from ..transfer import IMPORT_END, ExportImportCodec
from ._common import AppContext, console, fail, pass_app, require_root


def read_until_end(stream: IO[str]) -> str:
    """Read lines until ``END_IMPORT`` or end of input."""
    lines = []
    for line in stream:
        if line.rstrip("\r\n") == IMPORT_END:
            break
        lines.append(line.rstrip("\r\n"))
    return "\n".join(lines)


def prompt_credentials(block: ExportBlock) -> Optional[CredentialRecord]:
    username = click.prompt(f"NAS username for {block.source}", err=True)
    password = click.prompt(f"NAS password for {block.source}", hide_input=True, err=True)
    return CredentialRecord(username=username, password=password)


def register_transfer_commands(main: click.Group) -> None:
    """Register the export and import commands."""

    @main.command("export")
    @click.option("--output", "-o", default=None, type=click.Path(), help="Write the bundle to a file.")
    @pass_app
    def export_cmd(app: AppContext, output: Optional[str]):
        """Export host mount definitions created by lxcshare.

        The bundle includes base64-encoded credentials so the target
        node can recreate identical mounts without prompts. Treat it
        like a password.

        \b
        Examples:

            lxcshare export

            lxcshare export -o /root/mounts.export
        """
        require_root(app)
        codec = ExportImportCodec(app.reconciler)
        bundle = codec.export()

        if output:
            path = Path(output).expanduser()
            write_private(path, bundle.encode("utf-8"))
            console.print(f"[green]Exported to[/] [cyan]{path}[/]", highlight=False)
            return

        click.echo("# Copy everything between the BEGIN_EXPORT and END_EXPORT markers", err=True)
        click.echo(bundle, nl=False)

    @main.command("import")
    @click.option("--input", "-i", "input_file", default=None, type=click.Path(exists=True),
                  help="Read the bundle from a file instead of stdin.")
    @pass_app
    def import_cmd(app: AppContext, input_file: Optional[str]):
        """Recreate host mounts from an export bundle.

        Paste the exported blocks, then type END_IMPORT on a new line.
        Blocks without embedded credentials prompt for them. Container
        binds are not part of the bundle.

        \b
        Examples:

            lxcshare import

            lxcshare import -i /root/mounts.export
        """
        require_root(app)
        if input_file:
            text = Path(input_file).read_text(encoding="utf-8")
        else:
            click.echo("Paste exported blocks, then type END_IMPORT on a new line", err=True)
            text = read_until_end(sys.stdin)

        codec = ExportImportCodec(app.reconciler)
        try:
            outcomes = codec.import_bundle(text, prompt_credentials=prompt_credentials)
        except ShareError as exc:
            fail(exc)

        if not outcomes:
            console.print("\n[yellow]No complete blocks found.[/]\n")
            return

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("Share", style="cyan")
        table.add_column("Mount point")
        table.add_column("Method")
        table.add_column("Result")
        for outcome in outcomes:
            block = outcome.block
            if outcome.skipped:
                result = f"[yellow]skipped: {outcome.reason}[/]"
                method = block.method.value
            else:
                host = outcome.host
                method = host.mechanism.value
                result = "[green]configured[/]" if host.created else "[cyan]already present[/]"
                if host.fell_back:
                    result += " [yellow](autofs unavailable)[/]"
            table.add_row(block.source, block.target, method, result)

        console.print()
        console.print(table)
        console.print("\n[green]Import completed.[/]\n")
