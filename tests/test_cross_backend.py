"""Tests for rename, copy and symlink between different storage backends."""

import logging

import pytest

from fsdriver import (
    FileSystemException,
    LocalDriver,
    MemoryDriver,
    MemoryStore,
    PathNotFoundException,
    PermissionDeniedException,
)


@pytest.fixture
def local():
    return LocalDriver()


@pytest.fixture
def memory():
    return MemoryDriver()


class TestSameBackend:
    """Test the capability check used to pick native primitives."""

    def test_local_drivers_share_a_backend(self, local):
        """Test any two local drivers are interchangeable."""
        assert local.same_backend(LocalDriver("file")) is True

    def test_local_and_memory_differ(self, local, memory):
        """Test different kinds are never the same backend."""
        assert local.same_backend(memory) is False
        assert memory.same_backend(local) is False

    def test_memory_needs_shared_store(self):
        """Test memory drivers must share a store."""
        store = MemoryStore()
        assert MemoryDriver(store).same_backend(MemoryDriver(store)) is True
        assert MemoryDriver().same_backend(MemoryDriver()) is False


class TestCrossBackendCopy:
    """Test copy() with a target on another backend."""

    def test_local_to_memory(self, local, memory, tmp_path):
        """Test content arrives and the source is kept."""
        source = tmp_path / "src.bin"
        source.write_bytes(b"\x00payload")

        local.copy(str(source), "/dst.bin", memory)

        assert memory.file_get_contents("/dst.bin") == b"\x00payload"
        assert source.exists()

    def test_memory_to_local(self, local, memory, tmp_path):
        """Test the reverse direction."""
        memory.file_put_contents("/src.txt", "hello")
        memory.copy("/src.txt", str(tmp_path / "dst.txt"), local)
        assert (tmp_path / "dst.txt").read_text() == "hello"

    def test_empty_file(self, local, memory, tmp_path):
        """Test a zero-length file is copied without error."""
        memory.file_put_contents("/empty", b"")
        memory.copy("/empty", str(tmp_path / "empty"), local)
        assert (tmp_path / "empty").read_bytes() == b""

    def test_between_memory_stores(self, memory):
        """Test separate stores fall back to a content transfer."""
        other = MemoryDriver()
        memory.file_put_contents("/a.txt", "a")
        memory.copy("/a.txt", "/b.txt", other)
        assert other.file_get_contents("/b.txt") == b"a"
        assert memory.is_exists("/b.txt") is False

    def test_missing_source_raises(self, local, memory, tmp_path):
        """Test a failed read is wrapped with the copy message."""
        missing = str(tmp_path / "missing")
        with pytest.raises(PathNotFoundException) as info:
            local.copy(missing, "/dst", memory)
        assert info.value.message.startswith(
            f'The file or directory "{missing}" cannot be copied to "/dst"'
        )
        assert memory.is_exists("/dst") is False

    def test_logs_transfer(self, local, memory, tmp_path, caplog):
        """Test the fallback is logged."""
        source = tmp_path / "src.txt"
        source.write_text("x")
        with caplog.at_level(logging.INFO, logger="fsdriver.driver"):
            local.copy(str(source), "/dst.txt", memory)
        assert "across backends" in caplog.text


class TestCrossBackendRename:
    """Test rename() with a target on another backend."""

    def test_local_to_memory(self, local, memory, tmp_path):
        """Test the source is removed once the content has arrived."""
        source = tmp_path / "src.txt"
        source.write_text("moving")

        local.rename(str(source), "/moved.txt", memory)

        assert memory.file_get_contents("/moved.txt") == b"moving"
        assert not source.exists()

    def test_failed_write_keeps_source(self, local, memory, tmp_path):
        """Test the source is untouched when the target cannot be written."""
        memory.file_put_contents("/src.txt", "keep me")
        target = str(tmp_path / "missing" / "dst.txt")

        with pytest.raises(PathNotFoundException, match="cannot be renamed into"):
            memory.rename("/src.txt", target, local)

        assert memory.file_get_contents("/src.txt") == b"keep me"

    def test_failed_delete_is_reported(self, memory):
        """Test a source that cannot be removed fails the rename."""
        other = MemoryDriver()
        memory.create_directory("/ro")
        memory.file_put_contents("/ro/a.txt", "a")
        memory.change_permissions("/ro", 0o555)

        with pytest.raises(PermissionDeniedException, match="cannot be renamed into"):
            memory.rename("/ro/a.txt", "/a.txt", other)

        assert other.file_get_contents("/a.txt") == b"a"
        assert memory.is_exists("/ro/a.txt") is True


class TestCrossBackendSymlink:
    """Test symlink() refuses targets on another backend."""

    def test_local_to_memory_refused(self, local, memory, tmp_path):
        """Test nothing is created on either side."""
        source = tmp_path / "src.txt"
        source.write_text("x")
        with pytest.raises(FileSystemException, match="Cannot create a symlink"):
            local.symlink(str(source), "/link", memory)
        assert memory.is_exists("/link") is False

    def test_memory_to_local_refused(self, local, memory, tmp_path):
        """Test the refusal does not depend on direction."""
        memory.file_put_contents("/src.txt", "x")
        link = tmp_path / "link"
        with pytest.raises(FileSystemException, match="cannot span storage backends"):
            memory.symlink("/src.txt", str(link), local)
        assert not link.exists()
