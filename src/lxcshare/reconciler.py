"""
Mount reconciler — bring the host and a container to the desired state.

One configure run goes through these stages::

    check host target ──> create host mount ──┐
            │                                  ├──> container bind (optional)
            └────────> reuse host mount ───────┘

Every stage reads the current tables first, so running the same request
twice leaves the files exactly as after the first run. Host-side
problems are logged and absorbed; container-side problems raise.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from .autofs import OnDemandMountTable
from .credentials import CredentialStore, check_name, credential_name_for
from .errors import (
    ConfigNotFound,
    ContainerUnreachable,
    MechanismUnavailable,
    MissingRequiredInput,
    MountActivationFailed,
)
from .fstab import HostMountTable
from .lxc_config import ContainerBindTable
from .models import (
    BindOutcome,
    BindRequest,
    ContainerBindEntry,
    HostMountEntry,
    HostMountOutcome,
    HostMountRequest,
    MountMechanism,
    ReconcileRequest,
    ReconcileResult,
    ShareConfig,
)
from .system import SystemOperations

logger = logging.getLogger("lxcshare.reconciler")


def bind_source_path(target: str, subpath: str) -> str:
    """Host path of a bind: the target (one trailing slash dropped) plus
    the sub-path (one leading ``./`` dropped)."""
    base = target[:-1] if target.endswith("/") else target
    sub = subpath[2:] if subpath.startswith("./") else subpath
    return f"{base}/{sub}" if sub else base


class MountReconciler:
    """Create host CIFS mounts and container binds idempotently.

    Args:
        config: Paths, naming and ID mapping.
        system: Side-effect implementation (real host or a fake).
    """

    def __init__(self, config: ShareConfig, system: SystemOperations) -> None:
        self.config = config
        self.system = system
        self.fstab = HostMountTable(config)
        self.autofs = OnDemandMountTable(config)
        self.binds = ContainerBindTable(config)
        self.credentials = CredentialStore(config)

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------

    def reconcile(self, request: ReconcileRequest) -> ReconcileResult:
        """Run the host stage, then the bind stage if one was requested.

        Raises:
            MissingRequiredInput: No host target was given.
            ConfigNotFound: The container config does not exist.
            ContainerUnreachable: The mount point could not be created
                inside the container.
        """
        target = request.host.target if request.host else request.target
        if not target:
            raise MissingRequiredInput("Host mount path")

        result = ReconcileResult(target=target)
        if request.host is not None:
            result.host = self.ensure_host_mount(request.host)
        else:
            logger.info("Skipping host CIFS mount creation, using existing %s", target)

        if request.bind is not None:
            result.bind = self.create_container_bind(target, request.bind, result.remediation)
        return result

    # ------------------------------------------------------------------
    # Host stage
    # ------------------------------------------------------------------

    def find_host_entry(self, target: str) -> Optional[HostMountEntry]:
        """The fstab or autofs entry mounting exactly ``target``."""
        for entry in self.fstab.list_entries():
            if entry.target == target:
                return entry
        for entry in self.autofs.list_entries():
            if entry.target == target:
                return entry
        return None

    def ensure_host_mount(self, request: HostMountRequest) -> HostMountOutcome:
        """Reuse the host mount for the target, or create it."""
        existing = self.find_host_entry(request.target)
        if existing is not None:
            logger.info(
                "CIFS entry already present for %s (%s) - leaving as is",
                request.target, existing.mechanism.value,
            )
            return HostMountOutcome(
                target=request.target,
                mechanism=existing.mechanism,
                reused=True,
                credentials_path=existing.credentials_path,
            )
        return self.create_host_mount(request)

    def create_host_mount(self, request: HostMountRequest) -> HostMountOutcome:
        """Write credentials, then the fstab entry or autofs files.

        An autofs request on a host without autofs (and without
        permission to install it) becomes an fstab entry.

        Raises:
            MissingRequiredInput: Target or share address is empty.
            InvalidName: The credential name is not a safe file name.
        """
        if not request.target:
            raise MissingRequiredInput("Host mount path")
        if not request.source:
            raise MissingRequiredInput("NAS share address")

        name = check_name(request.cred_name or credential_name_for(request.target))
        self.system.ensure_dir(request.target)
        cred_path = self._write_credentials(request, name)

        entry = HostMountEntry(
            source=request.source,
            target=request.target,
            mechanism=request.mechanism,
            access_mode=request.access_mode,
            credentials_path=cred_path,
        )

        if request.mechanism == MountMechanism.ON_DEMAND:
            try:
                self._prepare_on_demand(request.install_helper)
            except MechanismUnavailable as exc:
                logger.warning("%s - falling back to systemd automount", exc)
                entry.mechanism = MountMechanism.STATIC
                outcome = self._write_static(entry)
                outcome.fell_back = True
                return outcome
            return self._write_on_demand(entry, name)

        return self._write_static(entry)

    def _write_credentials(self, request: HostMountRequest, name: str) -> Path:
        if request.credentials is not None:
            return self.credentials.write(name, request.credentials)
        if request.credential_blob:
            return self.credentials.write_blob(name, request.credential_blob)
        path = self.credentials.path_for(name)
        if not path.exists():
            logger.warning("No credentials given and %s does not exist", path)
        return path

    def _prepare_on_demand(self, install: bool) -> None:
        if self.system.helper_installed():
            return
        package = self.config.helper_package
        if not install:
            raise MechanismUnavailable(f"{package} is not installed")
        logger.info("%s is not installed - installing", package)
        if not self.system.install_package(package) or not self.system.helper_installed():
            raise MechanismUnavailable(f"Failed to install {package}")

    def _write_static(self, entry: HostMountEntry) -> HostMountOutcome:
        created = False
        if self.fstab.has_entry_for_target(entry.target):
            logger.info("CIFS entry already present for %s - leaving as is", entry.target)
        else:
            created = self.fstab.append_entry(entry)

        activated = True
        try:
            self._activate_static(entry.target)
        except MountActivationFailed as exc:
            logger.warning("%s - entry kept, check logs if not mounted", exc)
            activated = False
        return HostMountOutcome(
            target=entry.target,
            mechanism=MountMechanism.STATIC,
            created=created,
            activated=activated,
            credentials_path=entry.credentials_path,
        )

    def _activate_static(self, target: str) -> None:
        if not self.system.mount(target):
            raise MountActivationFailed(f"Mount attempt for {target} returned non-zero")

    def _write_on_demand(self, entry: HostMountEntry, name: str) -> HostMountOutcome:
        if self.autofs.write_entry(entry, name) is None:
            return HostMountOutcome(
                target=entry.target,
                mechanism=MountMechanism.ON_DEMAND,
                activated=False,
                credentials_path=entry.credentials_path,
            )
        service = self.config.helper_service
        if not self.system.enable_service(service):
            logger.debug("Enabling %s returned non-zero", service)
        if not self.system.reload_service(service):
            logger.debug("Reloading %s returned non-zero", service)
        activated = self.system.trigger_lazy_mount(entry.target)
        logger.info("Autofs configured for %s", entry.target)
        return HostMountOutcome(
            target=entry.target,
            mechanism=MountMechanism.ON_DEMAND,
            created=True,
            activated=activated,
            credentials_path=entry.credentials_path,
        )

    # ------------------------------------------------------------------
    # Container stage
    # ------------------------------------------------------------------

    def create_container_bind(
        self,
        target: str,
        bind: BindRequest,
        remediation: Optional[List[str]] = None,
    ) -> BindOutcome:
        """Add the bind to the container config and prepare the container.

        Args:
            target: Host mount point the bind lives under.
            bind: Container, sub-path, container path and access mode.
            remediation: Collects manual commands for soft failures.

        Raises:
            MissingRequiredInput: Container id or path is empty.
            ConfigNotFound: The container config does not exist.
            ContainerUnreachable: The mount point could not be created.
        """
        if not bind.container_id:
            raise MissingRequiredInput("LXC container ID")
        if not bind.container_path:
            raise MissingRequiredInput("Mount point inside the LXC")
        remediation = remediation if remediation is not None else []

        source_path = bind_source_path(target, bind.subpath)
        self.system.ensure_dir(source_path)

        config_path = self.binds.config_path(bind.container_id)
        if not config_path.is_file():
            raise ConfigNotFound(config_path)

        entry = self.binds.find_bind(
            config_path, source_path, bind.container_path, bind.access_mode,
        )
        if entry is not None:
            logger.info("Bind already present in %s as mp%d", config_path, entry.index)
            created = False
        else:
            entry = ContainerBindEntry(
                index=self.binds.next_index(config_path),
                source_path=source_path,
                container_path=bind.container_path,
                access_mode=bind.access_mode,
            )
            created = self.binds.append_bind(config_path, entry)

        self._prepare_mount_point(bind.container_id, bind.container_path)
        group_ready = self._ensure_group(bind.container_id, remediation)

        return BindOutcome(
            config_path=config_path,
            entry=entry,
            created=created,
            group_ready=group_ready,
        )

    def ensure_container_running(self, container_id: str) -> bool:
        if self.system.container_running(container_id):
            return True
        logger.info("Container %s is not running - starting it", container_id)
        return self.system.start_container(container_id)

    def _prepare_mount_point(self, container_id: str, container_path: str) -> None:
        mkdir = f"mkdir -p {container_path}"
        if not self.ensure_container_running(container_id):
            raise ContainerUnreachable(
                container_id,
                f"Cannot prepare mount point because container {container_id} is not running",
                [f"pct start {container_id}", f"pct exec {container_id} -- {mkdir}"],
            )
        if not self.system.exec_in_container(container_id, ["mkdir", "-p", container_path]):
            raise ContainerUnreachable(
                container_id,
                "Failed to create mount point inside the container",
                [f"pct exec {container_id} -- {mkdir}"],
            )

    def _ensure_group(self, container_id: str, remediation: List[str]) -> bool:
        group = self.config.container_group
        gid = self.config.container_gid
        groupadd = f"groupadd -g {gid} {group}"
        manual = [f"pct exec {container_id} -- {groupadd}"]

        if not self.ensure_container_running(container_id):
            logger.warning("Cannot create group because container %s is not running", container_id)
            remediation.extend([f"pct start {container_id}", *manual])
            return False
        if self.system.exec_in_container(container_id, ["getent", "group", group]):
            return True
        if self.system.exec_in_container(container_id, ["groupadd", "-g", str(gid), group]):
            logger.info("Created group %s (GID %d) in container %s", group, gid, container_id)
            return True
        logger.warning("Failed to create group '%s' inside container %s", group, container_id)
        remediation.extend(manual)
        return False
