"""Host mount and container bind commands: host add, bind add, bind list."""

from __future__ import annotations

import click
from rich.table import Table

from ..errors import ShareError
from ..models import (
    AccessMode,
    BindRequest,
    CredentialRecord,
    HostMountRequest,
    MountMechanism,
    ReconcileRequest,
)
from ._common import AppContext, console, fail, mode_label, pass_app, print_result, require_root

MODE_CHOICE = click.Choice([m.value for m in AccessMode])
METHOD_CHOICE = click.Choice([m.value for m in MountMechanism])


def register_mount_commands(main: click.Group) -> None:
    """Register the host and bind command groups."""

    @main.group()
    def host():
        """Host CIFS mounts — one per NAS share.

        \b
        Add:     lxcshare host add --share //10.0.0.5/main --target /mnt/lxc_shares/main
        Review:  lxcshare status
        """

    @host.command("add")
    @click.option("--share", required=True, help="NAS share address, e.g. //10.0.0.5/main.")
    @click.option("--target", required=True, help="Host mount point, e.g. /mnt/lxc_shares/main.")
    @click.option("--username", prompt="NAS username", help="NAS username.")
    @click.option("--password", prompt="NAS password", hide_input=True, help="NAS password.")
    @click.option("--method", type=METHOD_CHOICE, default="fstab", show_default=True,
                  help="fstab (systemd automount) or autofs (mount on access).")
    @click.option("--mode", type=MODE_CHOICE, default="rw", show_default=True, help="Host mount mode.")
    @click.option("--install-helper", is_flag=True, help="Install autofs if it is missing.")
    @pass_app
    def host_add(app: AppContext, share: str, target: str, username: str, password: str,
                 method: str, mode: str, install_helper: bool):
        """Create the host mount for a NAS share.

        Writes the credentials file, then the fstab entry or the
        autofs master/map pair. Re-running with the same target
        leaves the existing entry untouched.

        \b
        Examples:

            lxcshare host add --share //10.0.0.5/main --target /mnt/lxc_shares/main

            lxcshare host add --share //10.0.0.5/media --target /mnt/lxc_shares/media \\
                --method autofs --install-helper --mode ro
        """
        require_root(app)
        request = ReconcileRequest(
            host=HostMountRequest(
                source=share,
                target=target,
                mechanism=MountMechanism(method),
                access_mode=AccessMode(mode),
                credentials=CredentialRecord(username=username, password=password),
                install_helper=install_helper,
            ),
        )
        try:
            result = app.reconciler.reconcile(request)
        except ShareError as exc:
            fail(exc)
        print_result(result, app.config)

    @main.group()
    def bind():
        """Container binds — expose host mount sub-folders inside an LXC.

        \b
        Add:   lxcshare bind add 101 --target /mnt/lxc_shares/main --subpath media --path /mnt/media
        List:  lxcshare bind list 101
        """

    @bind.command("add")
    @click.argument("container_id")
    @click.option("--target", required=True, help="Existing host mount point.")
    @click.option("--subpath", default="", help="Sub-folder under the host mount, e.g. media/movies.")
    @click.option("--path", "container_path", required=True, help="Mount point inside the LXC.")
    @click.option("--mode", type=MODE_CHOICE, default="rw", show_default=True, help="Access inside the LXC.")
    @pass_app
    def bind_add(app: AppContext, container_id: str, target: str, subpath: str,
                 container_path: str, mode: str):
        """Bind a folder of an existing host mount into a container.

        Uses the next free mpN slot, creates the mount point and the
        shared access group inside the container.

        \b
        Example:

            lxcshare bind add 101 --target /mnt/lxc_shares/main --subpath media --path /mnt/media --mode ro
        """
        require_root(app)
        request = ReconcileRequest(
            target=target,
            bind=BindRequest(
                container_id=container_id,
                subpath=subpath,
                container_path=container_path,
                access_mode=AccessMode(mode),
            ),
        )
        try:
            result = app.reconciler.reconcile(request)
        except ShareError as exc:
            fail(exc)
        print_result(result, app.config)

    @bind.command("list")
    @click.argument("container_id")
    @pass_app
    def bind_list(app: AppContext, container_id: str):
        """List the mpN entries of a container config.

        \b
        Example:

            lxcshare bind list 101
        """
        bind_table = app.reconciler.binds
        config_path = bind_table.config_path(container_id)
        if not config_path.is_file():
            console.print(f"[red]LXC config not found: {config_path}[/]")
            raise SystemExit(1)

        binds = bind_table.list_binds(config_path)
        if not binds:
            console.print(f"\n[dim]No mount points in {config_path}.[/]\n")
            return

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("Slot", style="cyan")
        table.add_column("Host source")
        table.add_column("LXC path")
        table.add_column("Mode")
        for entry in binds:
            table.add_row(
                f"mp{entry.index}",
                entry.source_path,
                entry.container_path,
                mode_label(entry.access_mode.value),
            )
        console.print(f"\n[bold]{len(binds)}[/] mount point(s) in [dim]{config_path}[/]:\n")
        console.print(table)
        console.print()
