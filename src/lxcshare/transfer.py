"""
Export and import of host mount definitions.

The bundle is plain text meant to be copied between terminals::

    BEGIN_EXPORT
    BEGIN
    method=fstab
    nas_share=//10.0.0.5/main
    host_mount=/mnt/lxc_shares/main
    cred_name=main
    host_mode=rw
    cred_b64=dXNlcm5hbWU9...
    END
    END_EXPORT

Importing stops at a line reading ``END_IMPORT``. Only host mounts
travel; container binds are recreated per node.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional

from .credentials import credential_name_for, is_valid_name
from .models import (
    AccessMode,
    CredentialRecord,
    ExportBlock,
    HostMountEntry,
    HostMountRequest,
    ImportOutcome,
    MountMechanism,
)
from .reconciler import MountReconciler

logger = logging.getLogger("lxcshare.transfer")

BUNDLE_BEGIN = "BEGIN_EXPORT"
BUNDLE_END = "END_EXPORT"
BLOCK_BEGIN = "BEGIN"
BLOCK_END = "END"
IMPORT_END = "END_IMPORT"

CredentialPrompt = Callable[[ExportBlock], Optional[CredentialRecord]]


def render_block(block: ExportBlock) -> List[str]:
    lines = [
        BLOCK_BEGIN,
        f"method={block.method.value}",
        f"nas_share={block.source}",
        f"host_mount={block.target}",
        f"cred_name={block.cred_name}",
        f"host_mode={block.access_mode.value}",
    ]
    if block.cred_b64:
        lines.append(f"cred_b64={block.cred_b64}")
    lines.append(BLOCK_END)
    return lines


def render_bundle(blocks: Iterable[ExportBlock]) -> str:
    lines = [BUNDLE_BEGIN]
    for block in blocks:
        lines.extend(render_block(block))
    lines.append(BUNDLE_END)
    return "\n".join(lines) + "\n"


def parse_bundle(text: str) -> List[ExportBlock]:
    """Parse pasted bundle text into complete blocks.

    Markers only count when they make up the whole line. Lines outside
    ``BEGIN``/``END`` are ignored, unknown keys are ignored, and a block
    missing ``nas_share`` or ``host_mount`` is dropped without affecting
    the others.
    """
    blocks: List[ExportBlock] = []
    fields: dict[str, str] = {}
    inside = False

    for line in text.splitlines():
        if line == IMPORT_END:
            break
        if line == BLOCK_BEGIN:
            inside = True
            fields = {}
            continue
        if line == BLOCK_END:
            if inside:
                block = _block_from_fields(fields)
                if block.complete:
                    blocks.append(block)
                else:
                    logger.debug("Dropping incomplete export block: %s", fields)
            inside = False
            continue
        if inside and "=" in line:
            key, _, value = line.partition("=")
            fields[key] = value

    return blocks


def _block_from_fields(fields: dict[str, str]) -> ExportBlock:
    return ExportBlock(
        method=MountMechanism.parse(fields.get("method")),
        source=fields.get("nas_share", ""),
        target=fields.get("host_mount", ""),
        cred_name=fields.get("cred_name", ""),
        access_mode=AccessMode.parse(fields.get("host_mode")),
        cred_b64=fields.get("cred_b64") or None,
    )


class ExportImportCodec:
    """Move host mount definitions between Proxmox nodes."""

    def __init__(self, reconciler: MountReconciler) -> None:
        self.reconciler = reconciler

    def export_blocks(self) -> List[ExportBlock]:
        """Blocks for every fstab entry using this tool's credential
        files, followed by every autofs map entry."""
        store = self.reconciler.credentials
        blocks: List[ExportBlock] = []

        for entry in self.reconciler.fstab.list_entries():
            if entry.credentials_path is None or not store.owns(entry.credentials_path):
                continue
            blocks.append(self._block_for(entry))

        for entry in self.reconciler.autofs.list_entries():
            blocks.append(self._block_for(entry))

        logger.info("Exporting %d host mount definition(s)", len(blocks))
        return blocks

    def _block_for(self, entry: HostMountEntry) -> ExportBlock:
        store = self.reconciler.credentials
        cred_name = ""
        cred_b64 = None
        if entry.credentials_path is not None:
            cred_name = store.name_from_path(entry.credentials_path)
            cred_b64 = store.read_blob(entry.credentials_path)
        return ExportBlock(
            method=entry.mechanism,
            source=entry.source,
            target=entry.target,
            cred_name=cred_name,
            access_mode=entry.access_mode,
            cred_b64=cred_b64,
        )

    def export(self) -> str:
        return render_bundle(self.export_blocks())

    def import_bundle(
        self,
        text: str,
        prompt_credentials: Optional[CredentialPrompt] = None,
    ) -> List[ImportOutcome]:
        """Recreate the host mounts described by a bundle.

        Args:
            text: Bundle text, read up to ``END_IMPORT``.
            prompt_credentials: Asked for a username and password when a
                block carries no ``cred_b64``. Without it such blocks
                are skipped.

        Returns:
            One outcome per complete block, in bundle order.
        """
        outcomes = []
        for block in parse_bundle(text):
            outcomes.append(self._import_block(block, prompt_credentials))
        logger.info("Import completed (%d block(s))", len(outcomes))
        return outcomes

    def _import_block(
        self,
        block: ExportBlock,
        prompt_credentials: Optional[CredentialPrompt],
    ) -> ImportOutcome:
        logger.info("Importing %s mount: %s -> %s", block.method.value, block.source, block.target)

        cred_name = block.cred_name or credential_name_for(block.target)
        if not is_valid_name(cred_name):
            fallback = credential_name_for(block.target)
            logger.warning(
                "Ignoring unsafe cred_name %r for %s - using %r",
                block.cred_name, block.target, fallback,
            )
            cred_name = fallback

        credentials = None
        if not block.cred_b64 and self.reconciler.find_host_entry(block.target) is None:
            credentials = prompt_credentials(block) if prompt_credentials else None
            if credentials is None:
                logger.warning("No credentials for %s - skipping", block.source)
                return ImportOutcome(block=block, skipped=True, reason="no credentials")

        request = HostMountRequest(
            source=block.source,
            target=block.target,
            mechanism=block.method,
            access_mode=block.access_mode,
            credentials=credentials,
            credential_blob=block.cred_b64,
            cred_name=cred_name,
        )
        try:
            host = self.reconciler.ensure_host_mount(request)
        except ValueError as exc:
            logger.warning("Skipping %s: %s", block.target, exc)
            return ImportOutcome(block=block, skipped=True, reason=str(exc))
        return ImportOutcome(block=block, host=host)
