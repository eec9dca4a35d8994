"""Tests for FileWriter: digest, sniffing, commit and discard."""

from __future__ import annotations

import hashlib
import uuid

import pytest

from pgfs.storage.config import FileSystemConfig
from pgfs.storage.errors import (
    AlreadyExistsError,
    ClosedHandleError,
    InvalidArgumentError,
    ShortWriteError,
    StoreFailureError,
)
from pgfs.storage.filesystem import FileSystem
from pgfs.storage.models import Capability, supports
from pgfs.testing import InMemoryDatabase, make_filesystem

PNG_HEADER = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"


class TestCommit:
    def test_close_returns_persisted_info(self, fs: FileSystem, name: str) -> None:
        writer = fs.create(name, "text/csv")
        writer.write(b"a,b\n")
        writer.write(b"1,2\n")
        info = writer.close()

        assert info.name == name
        assert info.id == uuid.UUID(name)
        assert info.content_type == "text/csv"
        assert info.content_size == 8
        assert info.content_sha256 == hashlib.sha256(b"a,b\n1,2\n").digest()
        assert fs.stat(name) == info

    def test_write_returns_length(self, fs: FileSystem, name: str) -> None:
        with fs.create(name) as writer:
            assert writer.write(b"abc") == 3
            assert writer.write(memoryview(b"defg")) == 4
            assert writer.size == 7

    def test_empty_file(self, fs: FileSystem, name: str) -> None:
        info = fs.create(name).close()
        assert info.content_size == 0
        assert info.content_sha256 == hashlib.sha256(b"").digest()
        assert info.content_type == "application/octet-stream"

    def test_record_only_exists_after_close(self, fs: FileSystem, name: str) -> None:
        writer = fs.create(name)
        writer.write(b"pending")
        assert not fs.exists(name)
        writer.close()
        assert fs.exists(name)

    def test_attributes_are_stored(self, fs: FileSystem, name: str) -> None:
        writer = fs.create(name, "", {"origin": "upload", "owner": "ops"})
        writer.write(b"x")
        info = writer.close()
        assert info.attributes == {"origin": "upload", "owner": "ops"}
        assert fs.stat(name).attributes == {"origin": "upload", "owner": "ops"}

    def test_descriptor_released_on_close(self, fs: FileSystem, db: InMemoryDatabase, name: str) -> None:
        fs.create(name).close()
        assert db.descriptors == {}


class TestContentType:
    def test_detected_when_not_given(self, fs: FileSystem, name: str) -> None:
        writer = fs.create(name)
        writer.write(PNG_HEADER[:4])
        writer.write(PNG_HEADER[4:])
        assert writer.close().content_type == "image/png"

    def test_given_type_wins_over_detection(self, fs: FileSystem, name: str) -> None:
        writer = fs.create(name, "application/x-custom")
        writer.write(PNG_HEADER)
        assert writer.close().content_type == "application/x-custom"

    def test_inconclusive_falls_back_to_binary_type(self, db: InMemoryDatabase, name: str) -> None:
        fs = make_filesystem(db, FileSystemConfig(binary_type="application/x-blob"))
        writer = fs.create(name)
        writer.write(b"\x00\x01\x02\x03")
        assert writer.close().content_type == "application/x-blob"

    def test_only_sniff_window_is_kept(self, db: InMemoryDatabase) -> None:
        small = make_filesystem(db, FileSystemConfig(sniff_size=4))
        default = make_filesystem(db)
        data = b"<html><body>hello</body></html>"

        first = small.create(str(uuid.uuid4()))
        first.write(data)
        second = default.create(str(uuid.uuid4()))
        second.write(data)

        # "<htm" alone is not recognisable markup.
        assert first.close().content_type == "text/plain; charset=utf-8"
        assert second.close().content_type == "text/html; charset=utf-8"

    def test_window_larger_than_512_bytes_is_used(self, db: InMemoryDatabase, name: str) -> None:
        fs = make_filesystem(db, FileSystemConfig(sniff_size=2048))
        writer = fs.create(name)
        writer.write(b"a" * 1000 + b"\x00")
        assert writer.close().content_type == "application/octet-stream"


class TestClosedState:
    def test_write_after_close_fails(self, fs: FileSystem, name: str) -> None:
        writer = fs.create(name)
        writer.close()
        with pytest.raises(ClosedHandleError):
            writer.write(b"late")

    def test_double_close_fails(self, fs: FileSystem, name: str) -> None:
        writer = fs.create(name)
        writer.close()
        with pytest.raises(ClosedHandleError):
            writer.close()

    def test_double_discard_fails(self, fs: FileSystem, name: str) -> None:
        writer = fs.create(name)
        writer.discard()
        with pytest.raises(ClosedHandleError):
            writer.discard()


class TestDiscard:
    def test_discard_unlinks_object(self, fs: FileSystem, db: InMemoryDatabase, name: str) -> None:
        writer = fs.create(name)
        writer.write(b"abandoned")
        writer.discard()

        assert not fs.exists(name)
        assert db.objects == {}
        assert db.descriptors == {}

    def test_error_in_context_discards(self, fs: FileSystem, db: InMemoryDatabase, name: str) -> None:
        with pytest.raises(RuntimeError), fs.create(name) as writer:
            writer.write(b"partial")
            raise RuntimeError("upload interrupted")

        assert writer.closed
        assert not fs.exists(name)
        assert db.objects == {}

    def test_name_is_reusable_after_discard(self, fs: FileSystem, name: str) -> None:
        fs.create(name).discard()
        info = fs.create(name).close()
        assert info.name == name


class TestShortWrite:
    def test_short_write_is_reported(self, fs: FileSystem, db: InMemoryDatabase, name: str) -> None:
        db.write_limit = 3
        writer = fs.create(name)

        with pytest.raises(ShortWriteError) as exc_info:
            writer.write(b"abcdef")

        assert exc_info.value.written == 3
        assert exc_info.value.expected == 6
        assert exc_info.value.name == name
        assert writer.size == 3

    def test_accepted_prefix_counts_toward_digest(
        self, fs: FileSystem, db: InMemoryDatabase, name: str
    ) -> None:
        db.write_limit = 2
        writer = fs.create(name)
        with pytest.raises(ShortWriteError):
            writer.write(b"abcd")
        db.write_limit = None
        writer.write(b"cd")

        info = writer.close()
        assert info.content_size == 4
        assert info.content_sha256 == hashlib.sha256(b"abcd").digest()
        assert fs.read_file(name) == b"abcd"


class TestCommitFailures:
    def test_concurrent_create_of_same_name(self, fs: FileSystem, db: InMemoryDatabase, name: str) -> None:
        first = fs.create(name)
        second = fs.create(name)
        first.write(b"first")
        second.write(b"second")

        first.close()
        with pytest.raises(AlreadyExistsError):
            second.close()

        assert fs.read_file(name) == b"first"
        assert second.closed
        assert db.descriptors == {}

    def test_insert_failure_leaves_writer_closed(
        self,
        fs: FileSystem,
        db: InMemoryDatabase,
        name: str,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        def failing_insert(**kwargs: object) -> None:
            raise StoreFailureError(message="connection lost", operation="close")

        monkeypatch.setattr(fs.metadata, "insert", failing_insert)
        writer = fs.create(name)
        writer.write(b"data")

        with pytest.raises(StoreFailureError, match="connection lost"):
            writer.close()

        assert writer.closed
        assert db.descriptors == {}
        with pytest.raises(ClosedHandleError):
            writer.close()


class TestCreateValidation:
    def test_invalid_attributes_rejected_before_allocation(
        self, fs: FileSystem, db: InMemoryDatabase, name: str
    ) -> None:
        with pytest.raises(InvalidArgumentError):
            fs.create(name, "", {"size": 3})  # type: ignore[dict-item]
        assert db.objects == {}


def test_writer_capabilities(fs: FileSystem, name: str) -> None:
    writer = fs.create(name)
    assert supports(writer, Capability.WRITABLE)
    assert not supports(writer, Capability.READABLE)
    assert not supports(writer, Capability.SEEKABLE)
    assert writer.writable() and not writer.readable()
    writer.discard()
