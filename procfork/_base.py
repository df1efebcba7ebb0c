import enum


class ExitStatus(enum.IntEnum):
    """Terminal disposition of a forked child, collapsed to two values."""
    success = 0
    failure = 1


class ResourceError(OSError):
    """Raised when the OS refuses to duplicate a process or a descriptor.

    The ``errno`` and ``strerror`` attributes carry the originating OS error,
    as for any :class:`OSError`.
    """

    @classmethod
    def from_oserror(cls, e):
        return cls(e.errno, e.strerror)
