import itertools

import pytest

from procfork import StandardStream
from procfork.backend.standard_stream import STREAMS, check_flags


def test_flags_compose_by_union():
    flags = StandardStream.stdin | StandardStream.stderr
    assert flags.requested(StandardStream.stdin)
    assert flags.requested(StandardStream.stderr)
    assert not flags.requested(StandardStream.stdout)
    assert (flags & StandardStream.stdout) == StandardStream.empty
    assert StandardStream.all == (StandardStream.stdin |
                                  StandardStream.stdout |
                                  StandardStream.stderr)


def test_empty_requests_nothing():
    for stream in STREAMS:
        assert not StandardStream.empty.requested(stream)


@pytest.mark.parametrize("stream, slot", [
    (StandardStream.stdin, 0),
    (StandardStream.stdout, 1),
    (StandardStream.stderr, 2),
])
def test_fileno(stream, slot):
    assert StandardStream.fileno(stream) == slot


@pytest.mark.parametrize("stream", [
    StandardStream.empty,
    StandardStream.stdin | StandardStream.stdout,
    8,
])
def test_fileno_rejects_non_single_stream(stream):
    with pytest.raises(ValueError):
        StandardStream.fileno(stream)


def test_check_flags_accepts_every_subset():
    for n in range(len(STREAMS) + 1):
        for subset in itertools.combinations(STREAMS, n):
            flags = StandardStream.empty
            for stream in subset:
                flags |= stream
            assert check_flags(flags) == flags
            assert check_flags(int(flags)) == flags
            assert isinstance(check_flags(int(flags)), StandardStream)


@pytest.mark.parametrize("flags", [8, 16 | 1, "stdout", None, 1.0, True])
def test_check_flags_rejects_invalid_values(flags):
    with pytest.raises(ValueError):
        check_flags(flags)
