"""Error kinds raised by the lxcshare core.

Host-side table problems are absorbed where they happen and only
logged. Container-side problems propagate to the caller and carry the
commands an operator can run by hand to finish the job.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class ShareError(Exception):
    """Base for all lxcshare errors.

    Attributes:
        remediation: Commands an operator can run by hand to finish.
    """

    def __init__(self, *args: object, remediation: Optional[list[str]] = None) -> None:
        super().__init__(*args)
        self.remediation: list[str] = list(remediation or [])


class TableUnreadable(ShareError):
    """A mount table exists but cannot be read. Treated as empty."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Unable to read {path}: {reason}")
        self.path = path


class MechanismUnavailable(ShareError):
    """The autofs helper is missing and was not (or could not be) installed."""


class MountActivationFailed(ShareError):
    """``mount <target>`` returned non-zero. The fstab entry stays."""


class ConfigNotFound(ShareError):
    """The container config file does not exist."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"LXC config not found: {path}")
        self.path = path


class ContainerUnreachable(ShareError):
    """The container could not be started or a command inside it failed."""

    def __init__(
        self,
        container_id: str,
        message: str,
        remediation: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message, remediation=remediation)
        self.container_id = container_id


class InvalidName(ShareError, ValueError):
    """A credential name that is not a single safe path component."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Invalid credential name: {name!r}")
        self.name = name


class MissingRequiredInput(ShareError):
    """A required value was empty."""

    def __init__(self, field: str) -> None:
        super().__init__(f"{field} is required")
        self.field = field
