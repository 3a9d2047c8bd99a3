"""Interactive configure wizard.

Walks the operator through one configure run: show what exists,
optionally create a host mount, then optionally bind a sub-folder into
a container. All answers are collected first;
the reconciler only sees the finished request.
"""

from __future__ import annotations

import click

from ..credentials import credential_name_for
from ..errors import ShareError
from ..inventory import collect_inventory
from ..models import (
    AccessMode,
    BindRequest,
    CredentialRecord,
    HostMountRequest,
    MountMechanism,
    ReconcileRequest,
)
from ._common import AppContext, console, fail, pass_app, print_result, require_root
from .status import print_inventory

_MODE = click.Choice(["rw", "ro"])


def ask_host_mount(app: AppContext) -> HostMountRequest:
    source = click.prompt("NAS share address (e.g. //10.0.0.1/main)")
    target = click.prompt("Host mount point (e.g. /mnt/lxc_shares/TNAS01)")
    username = click.prompt("NAS username")
    password = click.prompt("NAS password", hide_input=True)

    console.print("\n[bold]Choose host mount mechanism[/]")
    console.print("  1) systemd automount via /etc/fstab (default)")
    console.print("  2) autofs (mount on access and re-mount if disconnected)")
    choice = click.prompt("Select", type=click.Choice(["1", "2"]), default="1")
    mechanism = MountMechanism.ON_DEMAND if choice == "2" else MountMechanism.STATIC

    mode = click.prompt("Host mount mode", type=_MODE, default="rw")

    install_helper = False
    if mechanism == MountMechanism.ON_DEMAND and not app.system.helper_installed():
        console.print(f"[yellow]{app.config.helper_package} is not installed[/]")
        install_helper = click.confirm(f"Install {app.config.helper_package} now?", default=False)

    return HostMountRequest(
        source=source,
        target=target,
        mechanism=mechanism,
        access_mode=AccessMode(mode),
        credentials=CredentialRecord(username=username, password=password),
        cred_name=credential_name_for(target),
        install_helper=install_helper,
    )


def ask_bind() -> BindRequest:
    container_id = click.prompt("LXC container ID")
    subpath = click.prompt(
        "Relative subfolder under host mount to bind (e.g. media or media/movies)",
        default="", show_default=False,
    )
    container_path = click.prompt("Mount point inside the LXC (e.g. /mnt/media)")
    mode = click.prompt("Access inside the LXC", type=_MODE, default="rw")
    return BindRequest(
        container_id=container_id,
        subpath=subpath,
        container_path=container_path,
        access_mode=AccessMode(mode),
    )


def register_configure_commands(main: click.Group) -> None:
    """Register the configure wizard."""

    @main.command("configure")
    @pass_app
    def configure(app: AppContext):
        """Configure a host mount and an LXC bind interactively.

        \b
        Example:

            lxcshare configure
        """
        require_root(app)
        console.print("[bold cyan]===== Proxmox LXC CIFS Bind Mount Automation =====[/]")
        print_inventory(collect_inventory(app.config, app.system))

        request = ReconcileRequest()
        if click.confirm("Do you want to create or update a host CIFS mount?", default=False):
            request.host = ask_host_mount(app)
            request.target = request.host.target
        else:
            console.print("[dim]Skipping host CIFS mount creation[/]")
            request.target = click.prompt(
                "Path to existing host mount to use (e.g. /mnt/lxc_shares/TNAS01)",
                default="", show_default=False,
            )

        if request.target and click.confirm(
            "Do you want to continue and add a bind into an LXC container?", default=False,
        ):
            request.bind = ask_bind()

        try:
            result = app.reconciler.reconcile(request)
        except ShareError as exc:
            fail(exc)

        if request.bind is None:
            console.print("[dim]Host mount configured - skipping LXC bind[/]")
        print_result(result, app.config)
