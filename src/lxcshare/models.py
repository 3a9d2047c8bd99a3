"""
Pydantic models for host mounts, container binds and the export bundle.

Each record mirrors one line (or one block) of a file that lxcshare
reads or writes. Encoding to the on-disk text format lives with the
table that owns the file, not here.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class AccessMode(str, Enum):
    """Read-write or read-only restriction on a mount or bind."""

    READ_WRITE = "rw"
    READ_ONLY = "ro"

    @classmethod
    def parse(cls, value: Optional[str]) -> "AccessMode":
        """Anything other than ``ro`` means read-write, like the prompts."""
        if value and value.strip().lower() == "ro":
            return cls.READ_ONLY
        return cls.READ_WRITE


class MountMechanism(str, Enum):
    """How the host mount is performed.

    The values double as the ``method=`` field of the export bundle.
    """

    STATIC = "fstab"
    ON_DEMAND = "autofs"

    @classmethod
    def parse(cls, value: Optional[str]) -> "MountMechanism":
        """Unknown or empty methods fall back to the static mechanism."""
        if value and value.strip().lower() == cls.ON_DEMAND.value:
            return cls.ON_DEMAND
        return cls.STATIC


class HostMountEntry(BaseModel):
    """A CIFS share mounted on the host (fstab line or autofs map line)."""

    source: str
    target: str
    mechanism: MountMechanism = MountMechanism.STATIC
    access_mode: AccessMode = AccessMode.READ_WRITE
    credentials_path: Optional[Path] = None
    map_file: Optional[Path] = None


class CredentialRecord(BaseModel):
    """Username and password for a CIFS share."""

    username: str
    password: str

    def render(self) -> bytes:
        """Credential file content as mount.cifs expects it."""
        return f"username={self.username}\npassword={self.password}\n".encode("utf-8")


class ContainerBindEntry(BaseModel):
    """One ``mpN:`` bind mount in a container config."""

    index: int = Field(ge=0)
    source_path: str
    container_path: str
    access_mode: AccessMode = AccessMode.READ_WRITE

    def to_line(self) -> str:
        """Render as a Proxmox container config line."""
        line = f"mp{self.index}: {self.source_path},mp={self.container_path}"
        if self.access_mode == AccessMode.READ_ONLY:
            line += ",ro=1"
        return line


class ExportBlock(BaseModel):
    """One host mount definition inside an export bundle."""

    method: MountMechanism = MountMechanism.STATIC
    source: str = ""
    target: str = ""
    cred_name: str = ""
    access_mode: AccessMode = AccessMode.READ_WRITE
    cred_b64: Optional[str] = None

    @property
    def complete(self) -> bool:
        """Blocks without a share or a target cannot be imported."""
        return bool(self.source) and bool(self.target)


# ---------------------------------------------------------------------------
# Reconciler requests and outcomes
# ---------------------------------------------------------------------------


class HostMountRequest(BaseModel):
    """Desired host mount.

    Either ``credentials`` or ``credential_blob`` (base64 of a whole
    credential file) populates the credential file before the mount
    entry is written. With neither, the existing file is left alone.
    """

    source: str
    target: str
    mechanism: MountMechanism = MountMechanism.STATIC
    access_mode: AccessMode = AccessMode.READ_WRITE
    credentials: Optional[CredentialRecord] = None
    credential_blob: Optional[str] = None
    cred_name: Optional[str] = None
    install_helper: bool = False


class BindRequest(BaseModel):
    """Desired bind of ``<target>/<subpath>`` into a container."""

    container_id: str
    subpath: str
    container_path: str
    access_mode: AccessMode = AccessMode.READ_WRITE


class ReconcileRequest(BaseModel):
    """A full configure run.

    With ``host`` unset, ``target`` names an existing host mount and is
    used verbatim.
    """

    target: str = ""
    host: Optional[HostMountRequest] = None
    bind: Optional[BindRequest] = None


class HostMountOutcome(BaseModel):
    target: str
    mechanism: MountMechanism
    created: bool = False
    reused: bool = False
    fell_back: bool = False
    activated: Optional[bool] = None
    credentials_path: Optional[Path] = None


class BindOutcome(BaseModel):
    config_path: Path
    entry: ContainerBindEntry
    created: bool = False
    group_ready: bool = False


class ReconcileResult(BaseModel):
    target: str
    host: Optional[HostMountOutcome] = None
    bind: Optional[BindOutcome] = None
    remediation: list[str] = Field(default_factory=list)


class ImportOutcome(BaseModel):
    block: ExportBlock
    host: Optional[HostMountOutcome] = None
    skipped: bool = False
    reason: str = ""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ShareConfig(BaseModel):
    """Host paths, naming conventions and ID mapping.

    Defaults match a stock Proxmox VE node with unprivileged containers
    (container GID 10000 maps to host GID 110000).
    """

    fstab_path: Path = Path("/etc/fstab")
    fs_type: str = "cifs"

    autofs_master_dir: Path = Path("/etc/auto.master.d")
    autofs_master_prefix: str = "proxmox-lxc-cifs"
    autofs_map_dir: Path = Path("/etc")
    autofs_map_prefix: str = "auto.cifs-proxmox-lxc"
    autofs_timeout: int = 60
    helper_package: str = "autofs"
    helper_service: str = "autofs"

    credentials_dir: Path = Path("/root")
    credentials_prefix: str = ".cifs-credentials-"

    lxc_config_dir: Path = Path("/etc/pve/lxc")

    host_uid: int = 100000
    host_gid: int = 110000
    container_gid: int = 10000
    container_group: str = "lxc_shares"

    dir_mode: str = "0770"
    file_mode: str = "0770"
    iocharset: str = "utf8"
