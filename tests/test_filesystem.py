"""Tests for the FileSystem facade."""

from __future__ import annotations

import hashlib
from collections.abc import Callable

import pytest

from pgfs.storage.config import FileSystemConfig
from pgfs.storage.directory import DirectoryHandle
from pgfs.storage.errors import AlreadyExistsError, InvalidArgumentError, NotFoundError
from pgfs.storage.filesystem import FileSystem
from pgfs.storage.identifiers import generate_name
from pgfs.storage.models import FileInfo
from pgfs.storage.reader import FileReader
from pgfs.testing import InMemoryDatabase, make_filesystem


class TestRoundtrip:
    def test_create_then_read_returns_identical_bytes(
        self, fs: FileSystem, name: str, put: Callable[..., FileInfo]
    ) -> None:
        data = b"Hello, large object!" * 100
        info = put(name, data, "text/plain")

        assert fs.read_file(name) == data
        assert info.content_sha256 == hashlib.sha256(data).digest()
        assert fs.stat(name).content_type == "text/plain"

    def test_open_returns_reader(self, fs: FileSystem, name: str, put: Callable[..., FileInfo]) -> None:
        put(name, b"x")
        with fs.open(name) as handle:
            assert isinstance(handle, FileReader)

    def test_open_root_returns_directory(self, fs: FileSystem) -> None:
        with fs.open("") as handle:
            assert isinstance(handle, DirectoryHandle)


class TestNames:
    @pytest.mark.parametrize("bad", ["not-a-uuid", "../etc/passwd", "1234"])
    def test_stat_and_open_of_invalid_names_are_not_found(self, fs: FileSystem, bad: str) -> None:
        with pytest.raises(NotFoundError):
            fs.stat(bad)
        with pytest.raises(NotFoundError):
            fs.open(bad)

    def test_unknown_name_is_not_found(self, fs: FileSystem, name: str) -> None:
        with pytest.raises(NotFoundError):
            fs.stat(name)
        with pytest.raises(NotFoundError):
            fs.open(name)

    @pytest.mark.parametrize("bad", ["", "not-a-uuid"])
    def test_create_with_invalid_name_fails(self, fs: FileSystem, db: InMemoryDatabase, bad: str) -> None:
        with pytest.raises(InvalidArgumentError):
            fs.create(bad)
        assert db.objects == {}

    def test_trailing_newline_is_not_a_name(
        self, fs: FileSystem, db: InMemoryDatabase, name: str, put: Callable[..., FileInfo]
    ) -> None:
        put(name, b"data")
        padded = name + "\n"

        with pytest.raises(NotFoundError):
            fs.stat(padded)
        with pytest.raises(NotFoundError):
            fs.open(padded)
        with pytest.raises(NotFoundError):
            fs.remove(padded)
        with pytest.raises(InvalidArgumentError):
            fs.create(generate_name() + "\n")
        assert len(db.objects) == 1

    def test_create_existing_name_fails(self, fs: FileSystem, name: str, put: Callable[..., FileInfo]) -> None:
        put(name, b"first")
        with pytest.raises(AlreadyExistsError):
            fs.create(name)
        assert fs.read_file(name) == b"first"

    def test_custom_root_name(self, db: InMemoryDatabase) -> None:
        fs = make_filesystem(db, FileSystemConfig(root_name="/"))
        assert fs.stat("/").is_dir
        with pytest.raises(NotFoundError):
            fs.stat("")
        assert fs.read_dir() == []


class TestRemove:
    def test_remove_deletes_record_and_content(
        self, fs: FileSystem, db: InMemoryDatabase, name: str, put: Callable[..., FileInfo]
    ) -> None:
        info = put(name, b"doomed")
        fs.remove(name)

        assert not fs.exists(name)
        assert info.oid not in db.objects

    def test_remove_twice_fails(self, fs: FileSystem, name: str, put: Callable[..., FileInfo]) -> None:
        put(name, b"x")
        fs.remove(name)
        with pytest.raises(NotFoundError):
            fs.remove(name)

    @pytest.mark.parametrize("bad", ["", "not-a-uuid"])
    def test_remove_root_or_invalid_is_not_found(self, fs: FileSystem, bad: str) -> None:
        with pytest.raises(NotFoundError):
            fs.remove(bad)

    def test_name_is_reusable_after_remove(
        self, fs: FileSystem, name: str, put: Callable[..., FileInfo]
    ) -> None:
        put(name, b"old")
        fs.remove(name)
        put(name, b"new")
        assert fs.read_file(name) == b"new"


class TestListing:
    def test_list_is_ordered_by_id(self, fs: FileSystem, put: Callable[..., FileInfo]) -> None:
        names = [generate_name() for _ in range(8)]
        for name in names:
            put(name, name.encode())
        assert [info.name for info in fs.list()] == sorted(names)

    def test_read_dir_of_root_matches_list(self, fs: FileSystem, put: Callable[..., FileInfo]) -> None:
        for _ in range(3):
            put(generate_name(), b"x")
        assert fs.read_dir("") == fs.list()
        assert fs.read_dir() == fs.list()

    def test_read_dir_of_file_is_invalid(self, fs: FileSystem, name: str, put: Callable[..., FileInfo]) -> None:
        put(name, b"x")
        with pytest.raises(InvalidArgumentError):
            fs.read_dir(name)


class TestConvenience:
    def test_exists(self, fs: FileSystem, name: str, put: Callable[..., FileInfo]) -> None:
        assert not fs.exists(name)
        assert not fs.exists("garbage")
        put(name, b"x")
        assert fs.exists(name)
        assert fs.exists("")

    def test_read_file_of_root_is_invalid(self, fs: FileSystem) -> None:
        with pytest.raises(InvalidArgumentError):
            fs.read_file("")

    def test_read_file_releases_descriptor(
        self, fs: FileSystem, db: InMemoryDatabase, name: str, put: Callable[..., FileInfo]
    ) -> None:
        put(name, b"x")
        fs.read_file(name)
        assert db.descriptors == {}


class TestConstruction:
    def test_connection_required_without_backends(self) -> None:
        with pytest.raises(ValueError):
            FileSystem(None)

    def test_default_config(self, fs: FileSystem) -> None:
        assert fs.config == FileSystemConfig()
        assert fs.table_name == "pgfs_metadata"
