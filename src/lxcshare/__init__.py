"""
lxcshare — CIFS share mounts for Proxmox LXC containers.

Keeps one CIFS mount per NAS share on the Proxmox host and binds
sub-folders of it into containers. Host mount definitions travel
between nodes as a plain-text export bundle.
"""

import os

__version__ = "0.1.0"

DEFAULT_CONFIG_PATH = os.environ.get("LXCSHARE_CONFIG", "/etc/lxcshare/config.yaml")
