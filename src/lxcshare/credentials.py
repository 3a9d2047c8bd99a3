"""CIFS credential files.

One file per share at ``<credentials_dir>/<prefix><name>``, mode 0600,
holding ``username=`` and ``password=`` lines. The export bundle carries
the whole file base64-encoded so the importing node gets it byte for
byte.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
import re
from pathlib import Path
from typing import Optional

from .errors import InvalidName
from .models import CredentialRecord, ShareConfig

logger = logging.getLogger("lxcshare.credentials")

_NAME_RE = re.compile(r"^[A-Za-z0-9._-]+$")


def encode_blob(data: bytes) -> str:
    """Base64-encode credential file bytes on a single line."""
    return base64.b64encode(data).decode("ascii")


def decode_blob(blob: str) -> bytes:
    """Decode a base64 credential blob.

    Raises:
        ValueError: If the blob is not valid base64.
    """
    try:
        return base64.b64decode("".join(blob.split()), validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Invalid credential blob: {exc}") from exc


def credential_name_for(target: str) -> str:
    """Credential name for a host mount point (``/mnt/x/TNAS01`` → ``tnas01``)."""
    return os.path.basename(target.rstrip("/")).lower()


def is_valid_name(name: str) -> bool:
    """Names key file paths: one path component of ``[A-Za-z0-9._-]``."""
    return bool(_NAME_RE.fullmatch(name)) and ".." not in name


def check_name(name: str) -> str:
    """Return ``name`` unchanged.

    Raises:
        InvalidName: The name could escape its directory.
    """
    if not is_valid_name(name):
        raise InvalidName(name)
    return name


def write_private(path: Path, data: bytes) -> None:
    """Write ``data`` to a file that is never readable by others."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as fh:
        os.fchmod(fh.fileno(), 0o600)
        fh.write(data)


class CredentialStore:
    """Reads and writes the per-share credential files."""

    def __init__(self, config: ShareConfig) -> None:
        self._dir = config.credentials_dir
        self._prefix = config.credentials_prefix

    def path_for(self, name: str) -> Path:
        return self._dir / f"{self._prefix}{check_name(name)}"

    def owns(self, path: Path | str) -> bool:
        """Whether a credentials path follows this tool's naming."""
        return str(path).startswith(str(self._dir / self._prefix))

    def name_from_path(self, path: Path | str) -> str:
        base = os.path.basename(str(path))
        if base.startswith(self._prefix):
            return base[len(self._prefix):]
        return base

    def write(self, name: str, record: CredentialRecord) -> Path:
        """Write a credential file from a username/password pair."""
        path = self.path_for(name)
        logger.info("Writing credentials file: %s", path)
        write_private(path, record.render())
        return path

    def write_blob(self, name: str, blob: str) -> Path:
        """Write a credential file from an exported base64 blob."""
        data = decode_blob(blob)
        path = self.path_for(name)
        logger.info("Writing credentials file from export: %s", path)
        write_private(path, data)
        return path

    def read_blob(self, path: Path | str) -> Optional[str]:
        """Base64 of a credential file, or None if it cannot be read."""
        try:
            return encode_blob(Path(path).read_bytes())
        except OSError as exc:
            logger.warning("Credentials file %s unreadable: %s", path, exc)
            return None

