"""
lxcshare CLI — CIFS share mounts for Proxmox LXC containers.

The main Click group is defined here and every command group is
registered from its own module.

Entry point: lxcshare.cli:main
"""

from __future__ import annotations

import logging

import click

from .. import DEFAULT_CONFIG_PATH, __version__
from ..config import load_config
from ._common import AppContext


@click.group()
@click.version_option(version=__version__, prog_name="lxcshare")
@click.option(
    "--config",
    "config_path",
    default=DEFAULT_CONFIG_PATH,
    type=click.Path(),
    show_default=True,
    help="YAML file overriding host paths and ID mapping.",
)
@click.option("--verbose", "-v", is_flag=True, help="Debug logging.")
@click.option(
    "--no-root-check",
    is_flag=True,
    help="Allow running as a normal user (for alternate config paths).",
)
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool, no_root_check: bool):
    """Proxmox LXC CIFS mount and bind automation.

    Keeps one CIFS mount per NAS share on the host and binds
    sub-folders of it into containers.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    if ctx.obj is None:
        ctx.obj = AppContext(config=load_config(config_path), skip_root_check=no_root_check)


# ---------------------------------------------------------------------------
# Register all command groups/commands from modular files
# ---------------------------------------------------------------------------

from .status import register_status_commands
from .mount import register_mount_commands
from .transfer import register_transfer_commands
from .configure import register_configure_commands

register_status_commands(main)
register_mount_commands(main)
register_transfer_commands(main)
register_configure_commands(main)
