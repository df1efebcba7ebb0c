###############################################################################
# Flags selecting which standard streams of a forked child are piped back to
# the parent.
#
import enum


class StandardStream(enum.IntFlag):
    empty = 0
    stdin = 1
    stdout = 2
    stderr = 4
    all = stdin | stdout | stderr

    def requested(self, stream):
        """Return True if ``stream`` is part of these flags."""
        return (self & stream) != StandardStream.empty

    @staticmethod
    def fileno(stream):
        """Return the standard slot (0, 1 or 2) of a single stream flag."""
        try:
            return _SLOTS[StandardStream(stream)]
        except (KeyError, ValueError):
            raise ValueError(
                f"{stream!r} is not a single standard stream"
            ) from None


_SLOTS = {
    StandardStream.stdin: 0,
    StandardStream.stdout: 1,
    StandardStream.stderr: 2,
}

# Order in which the child redirects its streams.
STREAMS = (StandardStream.stdin, StandardStream.stdout, StandardStream.stderr)


def check_flags(flags):
    """Coerce ``flags`` to a StandardStream, rejecting unknown bits."""
    if isinstance(flags, bool) or not isinstance(flags, int):
        raise ValueError(
            f"flags should be a StandardStream union, got {flags!r}"
        )
    if int(flags) & ~int(StandardStream.all):
        raise ValueError(f"Unknown standard stream bits in {flags!r}")
    return StandardStream(flags)
