###############################################################################
# Wire a pipe end onto one of the standard stream slots of the current
# process.
#
import os
import sys

from .._base import ResourceError
from .standard_stream import StandardStream


__all__ = ["redirect_stream_to_fd", "rebind_sys_stream"]

_SYS_STREAMS = {0: "stdin", 1: "stdout", 2: "stderr"}


def _check_slot(stream):
    if isinstance(stream, StandardStream):
        return StandardStream.fileno(stream)
    if stream not in _SYS_STREAMS:
        raise ValueError(
            f"stream should be one of 0, 1 or 2, got {stream!r}"
        )
    return stream


def redirect_stream_to_fd(fd, stream):
    """Duplicate ``fd`` onto the standard slot ``stream``.

    Once this returns, any I/O on the slot goes through ``fd``. OS failures
    are raised as ResourceError.
    """
    slot = _check_slot(stream)
    try:
        os.dup2(fd, slot)
    except OSError as e:
        raise ResourceError.from_oserror(e) from e
    return slot


def rebind_sys_stream(stream):
    """Point the matching ``sys`` stream object at the standard slot.

    The interpreter-level objects may have been replaced (for instance by an
    output-capturing harness) and would otherwise bypass the slot.
    """
    slot = _check_slot(stream)
    name = _SYS_STREAMS[slot]
    current = getattr(sys, name)
    try:
        if current is not None and current.fileno() == slot:
            return current
    except (AttributeError, OSError, ValueError):
        pass
    if slot == 0:
        new_stream = open(slot, "r", closefd=False)
    else:
        new_stream = open(slot, "w", buffering=1, closefd=False)
    setattr(sys, name, new_stream)
    return new_stream
