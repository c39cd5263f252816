"""
Unit tests for dump sources.

Tests cover:
- Filesystem layout validation
- Entry ordering and the finish() signal
- Tar member classification and compression
- One-entry-at-a-time delivery
"""

import asyncio
import io
import tarfile

import pytest

from dbtools.mongo_restore.config import RestoreConfig
from dbtools.mongo_restore.errors import ConfigurationError, SourceFormatError
from dbtools.mongo_restore.source import (
    DumpEntry,
    EntryKind,
    FilesystemDumpSource,
    TarDumpSource,
    create_dump_source,
    split_entry_path,
)
from tests.dumps import build_tar, write_fs_dump


class RecordingListener:
    """Listener that records every call and reads every file."""

    def __init__(self):
        self.events = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _enter(self):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0)

    async def on_directory(self, path):
        await self._enter()
        self.events.append(("dir", path))
        self.in_flight -= 1

    async def on_file(self, path, stream):
        await self._enter()
        self.events.append(("file", path, stream.read()))
        self.in_flight -= 1

    async def finish(self):
        self.events.append(("finish",))

    def kinds(self):
        return [event[0] for event in self.events]


class TestEntryPaths:
    """Tests for path parsing."""

    def test_split(self):
        assert split_entry_path("mydb/users/") == ("mydb", "users")
        assert split_entry_path("./mydb\\users\\1.json") == ("mydb", "users", "1.json")

    def test_collection_of_directory(self):
        assert DumpEntry(EntryKind.DIRECTORY, "mydb/users").collection == "users"
        assert DumpEntry(EntryKind.DIRECTORY, "mydb").collection is None

    def test_collection_of_file(self):
        entry = DumpEntry(EntryKind.FILE, "mydb/.metadata/users")
        assert entry.collection == ".metadata"
        assert entry.filename == "users"
        assert DumpEntry(EntryKind.FILE, "mydb/x.json").collection is None


class TestFilesystemDumpSource:
    """Tests for FilesystemDumpSource."""

    def test_validate_single_database(self, tmp_path):
        write_fs_dump(tmp_path, {"users": [{"_id": 1}]})

        FilesystemDumpSource(tmp_path).validate()

    def test_validate_rejects_two_databases(self, tmp_path):
        (tmp_path / "one").mkdir()
        (tmp_path / "two").mkdir()

        with pytest.raises(ConfigurationError):
            FilesystemDumpSource(tmp_path).validate()

    def test_validate_rejects_empty_root(self, tmp_path):
        with pytest.raises(ConfigurationError):
            FilesystemDumpSource(tmp_path).validate()

    def test_validate_rejects_missing_root(self, tmp_path):
        with pytest.raises(ConfigurationError):
            FilesystemDumpSource(tmp_path / "missing").validate()

    @pytest.mark.asyncio
    async def test_directories_before_files(self, tmp_path):
        write_fs_dump(
            tmp_path,
            {"users": [{"_id": 1}, {"_id": 2}], "orders": [{"_id": 3}]},
            metadata={"users": [{"key": {"name": 1}, "name": "name_1"}]},
        )
        listener = RecordingListener()

        await FilesystemDumpSource(tmp_path).begin(listener)

        kinds = listener.kinds()
        assert kinds == ["dir"] * 3 + ["file"] * 4 + ["finish"]
        dirs = sorted(event[1] for event in listener.events if event[0] == "dir")
        assert dirs == ["mydb/.metadata", "mydb/orders", "mydb/users"]
        files = {event[1] for event in listener.events if event[0] == "file"}
        assert "mydb/.metadata/users" in files
        assert "mydb/users/doc00001.json" in files

    @pytest.mark.asyncio
    async def test_one_entry_in_flight(self, tmp_path):
        write_fs_dump(tmp_path, {"a": [{"_id": i} for i in range(5)], "b": [{"_id": 9}]})
        listener = RecordingListener()

        await FilesystemDumpSource(tmp_path).begin(listener)

        assert listener.max_in_flight == 1
        assert listener.kinds().count("finish") == 1

    @pytest.mark.asyncio
    async def test_empty_database(self, tmp_path):
        (tmp_path / "mydb").mkdir()
        listener = RecordingListener()

        await FilesystemDumpSource(tmp_path).begin(listener)

        assert listener.events == [("finish",)]


class TestTarDumpSource:
    """Tests for TarDumpSource."""

    @pytest.mark.asyncio
    async def test_stream_entries(self):
        data = build_tar({"users": [{"_id": 1}]}, metadata={"users": []})
        listener = RecordingListener()

        await TarDumpSource(stream=io.BytesIO(data)).begin(listener)

        assert listener.kinds() == ["dir", "dir", "file", "file", "finish"]
        assert listener.events[0] == ("dir", "mydb/users")
        assert listener.events[2][1] == "mydb/users/doc00000.json"

    @pytest.mark.asyncio
    async def test_gzip_stream(self):
        data = build_tar({"users": [{"_id": 1}, {"_id": 2}]}, compression="gz")
        listener = RecordingListener()

        await TarDumpSource(stream=io.BytesIO(data)).begin(listener)

        assert listener.kinds() == ["dir", "file", "file", "finish"]

    @pytest.mark.asyncio
    async def test_other_member_types_skipped(self):
        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w") as archive:
            link = tarfile.TarInfo("mydb/users/link")
            link.type = tarfile.SYMTYPE
            link.linkname = "doc.json"
            archive.addfile(link)
            data = b'{"_id": 1}'
            info = tarfile.TarInfo("mydb/users/doc.json")
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
        listener = RecordingListener()

        await TarDumpSource(stream=io.BytesIO(buffer.getvalue())).begin(listener)

        assert listener.events == [("file", "mydb/users/doc.json", b'{"_id": 1}'), ("finish",)]

    @pytest.mark.asyncio
    async def test_unread_members_are_skipped(self):
        """Listeners may ignore a member's data; the next member still arrives."""
        data = build_tar({"users": [{"_id": 1}, {"_id": 2}]})
        seen = []

        class IgnoringListener:
            async def on_directory(self, path):
                seen.append(path)

            async def on_file(self, path, stream):
                seen.append(path)

            async def finish(self):
                seen.append("finish")

        await TarDumpSource(stream=io.BytesIO(data)).begin(IgnoringListener())

        assert seen == [
            "mydb/users",
            "mydb/users/doc00000.json",
            "mydb/users/doc00001.json",
            "finish",
        ]

    @pytest.mark.asyncio
    async def test_from_path(self, tmp_path):
        (tmp_path / "dump.tar").write_bytes(build_tar({"users": [{"_id": 1}]}))
        source = TarDumpSource(path=tmp_path / "dump.tar")
        listener = RecordingListener()

        source.validate()
        await source.begin(listener)

        assert listener.kinds() == ["dir", "file", "finish"]

    def test_validate_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            TarDumpSource(path=tmp_path / "missing.tar").validate()

    def test_needs_stream_or_path(self):
        with pytest.raises(ValueError):
            TarDumpSource()

    @pytest.mark.asyncio
    async def test_corrupt_archive(self):
        with pytest.raises(SourceFormatError):
            await TarDumpSource(stream=io.BytesIO(b"this is not a tar archive" * 40)).begin(
                RecordingListener()
            )


class TestCreateDumpSource:
    """Tests for the dump source factory."""

    def test_filesystem(self, tmp_path):
        source = create_dump_source(RestoreConfig(uri="mongodb://x/db", root=str(tmp_path)))
        assert isinstance(source, FilesystemDumpSource)

    def test_tar_file(self, tmp_path):
        config = RestoreConfig(uri="mongodb://x/db", root=str(tmp_path), tar="dump.tar")
        source = create_dump_source(config)
        assert isinstance(source, TarDumpSource)
        assert source.path == tmp_path.resolve() / "dump.tar"

    def test_stream_wins(self, tmp_path):
        stream = io.BytesIO()
        config = RestoreConfig(uri="mongodb://x/db", root=str(tmp_path), tar="dump.tar", stream=stream)
        source = create_dump_source(config)
        assert source.stream is stream
