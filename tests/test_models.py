"""Tests for the lxcshare data models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from lxcshare.models import (
    AccessMode,
    ContainerBindEntry,
    CredentialRecord,
    ExportBlock,
    MountMechanism,
)


class TestEnums:
    """Tests for lenient parsing of modes and mechanisms."""

    @pytest.mark.parametrize("value,expected", [
        ("ro", AccessMode.READ_ONLY),
        (" RO ", AccessMode.READ_ONLY),
        ("rw", AccessMode.READ_WRITE),
        ("", AccessMode.READ_WRITE),
        (None, AccessMode.READ_WRITE),
        ("readonly", AccessMode.READ_WRITE),
    ])
    def test_access_mode(self, value, expected) -> None:
        assert AccessMode.parse(value) is expected

    @pytest.mark.parametrize("value,expected", [
        ("autofs", MountMechanism.ON_DEMAND),
        ("fstab", MountMechanism.STATIC),
        ("nfs", MountMechanism.STATIC),
        (None, MountMechanism.STATIC),
    ])
    def test_mechanism(self, value, expected) -> None:
        assert MountMechanism.parse(value) is expected


class TestRecords:
    def test_credential_render(self) -> None:
        record = CredentialRecord(username="alice", password="p=ss word")
        assert record.render() == b"username=alice\npassword=p=ss word\n"

    def test_bind_line(self) -> None:
        entry = ContainerBindEntry(index=12, source_path="/mnt/a/b", container_path="/mnt/b")
        assert entry.to_line() == "mp12: /mnt/a/b,mp=/mnt/b"

    def test_bind_index_non_negative(self) -> None:
        with pytest.raises(ValidationError):
            ContainerBindEntry(index=-1, source_path="/a", container_path="/b")

    @pytest.mark.parametrize("source,target,complete", [
        ("//nas/a", "/mnt/a", True),
        ("", "/mnt/a", False),
        ("//nas/a", "", False),
    ])
    def test_block_complete(self, source: str, target: str, complete: bool) -> None:
        assert ExportBlock(source=source, target=target).complete is complete
