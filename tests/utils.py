import re
import time
import contextlib

import psutil


# One line of a crash report: a tab, an hexadecimal address and a symbol.
FRAME_LINE = re.compile(r"^\t0x[0-9a-f]+: \S.*$", re.M)


def num_fds():
    return psutil.Process().num_fds()


@contextlib.contextmanager
def check_no_fd_leak():
    """Check that the wrapped block closes all the fds it opens."""
    before = num_fds()
    yield
    after = num_fds()
    assert after == before, f"leaked {after - before} fd(s)"


#
# Wrapper
#


class TimingWrapper:
    def __init__(self, func):
        self.func = func
        self.elapsed = None

    def __call__(self, *args, **kwds):
        t = time.time()
        try:
            return self.func(*args, **kwds)
        finally:
            self.elapsed = time.time() - t

    def assert_timing_lower_than(self, delay):
        msg = (
            f"expected duration lower than {delay:.3f}s, "
            f"got {self.elapsed:.3f}s"
        )
        assert self.elapsed < delay, msg
