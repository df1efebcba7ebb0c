###############################################################################
# Pipe holding the two descriptors shared between a parent and its forked
# child. Each end is owned by exactly one object and closed at most once.
#
import os

from .._base import ResourceError


__all__ = ["Pipe"]

_CLOSED = -1


class Pipe:
    """Unidirectional OS pipe with independently closable ends.

    ``Pipe()`` allocates a real pipe. ``Pipe.invalid()`` holds no descriptor
    and performs no system call; closing its ends is a no-op, as is closing
    an end twice.
    """

    def __init__(self):
        try:
            self._read_fd, self._write_fd = os.pipe()
        except OSError as e:
            raise ResourceError.from_oserror(e) from e

    @classmethod
    def invalid(cls):
        pipe = cls.__new__(cls)
        pipe._read_fd = pipe._write_fd = _CLOSED
        return pipe

    def __repr__(self):
        return (f"{self.__class__.__name__}(read_fd={self._read_fd}, "
                f"write_fd={self._write_fd})")

    @property
    def read_fd(self):
        return self._read_fd

    @property
    def write_fd(self):
        return self._write_fd

    @property
    def is_valid(self):
        return self._read_fd != _CLOSED or self._write_fd != _CLOSED

    def close_read_fd(self):
        fd, self._read_fd = self._read_fd, _CLOSED
        if fd != _CLOSED:
            os.close(fd)

    def close_write_fd(self):
        fd, self._write_fd = self._write_fd, _CLOSED
        if fd != _CLOSED:
            os.close(fd)

    def close(self):
        self.close_read_fd()
        self.close_write_fd()

    def detach_read(self):
        """Give up ownership of the read end and return it."""
        fd, self._read_fd = self._read_fd, _CLOSED
        return fd

    def detach_write(self):
        """Give up ownership of the write end and return it."""
        fd, self._write_fd = self._write_fd, _CLOSED
        return fd

    def reader(self):
        """Move the read end into a read-only binary file object.

        Return None if the read end is not held by this pipe.
        """
        fd = self.detach_read()
        if fd == _CLOSED:
            return None
        return os.fdopen(fd, "rb")

    def writer(self):
        """Move the write end into a write-only unbuffered file object.

        Return None if the write end is not held by this pipe.
        """
        fd = self.detach_write()
        if fd == _CLOSED:
            return None
        return os.fdopen(fd, "wb", buffering=0)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
