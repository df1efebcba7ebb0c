import io
import os

import pytest

from procfork import Pipe

from .utils import check_no_fd_leak


def test_invalid_pipe_holds_no_fd():
    pipe = Pipe.invalid()
    assert not pipe.is_valid
    assert pipe.read_fd == -1
    assert pipe.write_fd == -1
    assert pipe.reader() is None
    assert pipe.writer() is None


def test_invalid_pipe_close_is_a_noop():
    with check_no_fd_leak():
        pipe = Pipe.invalid()
        for _ in range(2):
            pipe.close_read_fd()
            pipe.close_write_fd()
            pipe.close()
        assert not pipe.is_valid


def test_real_pipe_ends_are_closed_independently():
    with check_no_fd_leak():
        pipe = Pipe()
        assert pipe.is_valid
        read_fd, write_fd = pipe.read_fd, pipe.write_fd
        assert read_fd >= 0 and write_fd >= 0 and read_fd != write_fd

        pipe.close_write_fd()
        assert pipe.write_fd == -1
        assert pipe.read_fd == read_fd
        # The remaining end is still usable: EOF as the writer is gone.
        assert os.read(read_fd, 1) == b""

        pipe.close_write_fd()
        pipe.close_read_fd()
        pipe.close_read_fd()
        assert not pipe.is_valid
        with pytest.raises(OSError):
            os.fstat(read_fd)


def test_pipe_transfers_bytes():
    with check_no_fd_leak():
        with Pipe() as pipe:
            os.write(pipe.write_fd, b"payload")
            pipe.close_write_fd()
            assert os.read(pipe.read_fd, 16) == b"payload"


def test_reader_and_writer_enforce_direction():
    with check_no_fd_leak():
        pipe = Pipe()
        writer = pipe.writer()
        reader = pipe.reader()
        # The file objects now own the fds.
        assert not pipe.is_valid
        pipe.close()

        with writer, reader:
            with pytest.raises(io.UnsupportedOperation):
                writer.read()
            with pytest.raises(io.UnsupportedOperation):
                reader.write(b"x")

            writer.write(b"hello")
            writer.close()
            assert reader.read() == b"hello"


def test_detach_moves_ownership():
    with check_no_fd_leak():
        pipe = Pipe()
        read_fd = pipe.detach_read()
        write_fd = pipe.detach_write()
        assert not pipe.is_valid
        assert pipe.detach_read() == -1
        pipe.close()
        os.close(read_fd)
        os.close(write_fd)
