###############################################################################
# Parent-side handle on a forked child: pid, retained pipe ends and exit
# status.
#
import os
import time
import signal
import weakref
from multiprocessing import util

from .._base import ExitStatus
from .pipe import Pipe
from .utils import _get_exitcode_name


__all__ = ["ChildProcess"]

# Handles whose descriptors are still held by this process. A forked child
# inherits them and releases them with close_inherited_ends().
_live_children = weakref.WeakSet()


class ChildProcess:
    """Handle on a child created by :func:`procfork.fork`.

    The pipes hold the ends retained by the parent: the write end of
    ``stdin_pipe`` and the read ends of ``stdout_pipe`` and ``stderr_pipe``.
    Streams that were not requested are invalid pipes. The ``stdin``,
    ``stdout`` and ``stderr`` attributes lazily wrap these ends in binary
    file objects that can only be used in the pipe direction.
    """

    def __init__(self, pid, stdin_pipe=None, stdout_pipe=None,
                 stderr_pipe=None):
        self.pid = pid
        self.returncode = None
        self.stdin_pipe = stdin_pipe or Pipe.invalid()
        self.stdout_pipe = stdout_pipe or Pipe.invalid()
        self.stderr_pipe = stderr_pipe or Pipe.invalid()
        self._stdin = self._stdout = self._stderr = None
        self._finalizer = util.Finalize(
            self, _close_all, (self.stdin_pipe, self.stdout_pipe,
                               self.stderr_pipe)
        )
        _live_children.add(self)

    def __repr__(self):
        if self.returncode is None:
            status = "running"
        else:
            status = f"{_get_exitcode_name(self.returncode)}" \
                     f"({self.returncode})"
        return f"<{self.__class__.__name__} pid={self.pid} {status}>"

    @property
    def stdin(self):
        if self._stdin is None:
            self._stdin = self.stdin_pipe.writer()
        return self._stdin

    @property
    def stdout(self):
        if self._stdout is None:
            self._stdout = self.stdout_pipe.reader()
        return self._stdout

    @property
    def stderr(self):
        if self._stderr is None:
            self._stderr = self.stderr_pipe.reader()
        return self._stderr

    @property
    def exit_status(self):
        if self.returncode is None:
            return None
        if self.returncode == ExitStatus.success:
            return ExitStatus.success
        return ExitStatus.failure

    def poll(self, flag=os.WNOHANG):
        if self.returncode is None:
            try:
                pid, sts = os.waitpid(self.pid, flag)
            except ChildProcessError:
                # The child was reaped elsewhere.
                return None
            if pid == self.pid:
                self.returncode = os.waitstatus_to_exitcode(sts)
                util.debug(f"child process {self.pid} exited with "
                           f"{self.returncode}")
        return self.returncode

    def wait(self, timeout=None):
        if self.returncode is None:
            if timeout is None:
                return self.poll(0)
            return self._poll_until(timeout)
        return self.returncode

    def _poll_until(self, timeout):
        deadline = time.monotonic() + timeout
        delay = 0.0005
        while True:
            res = self.poll()
            if res is not None:
                return res
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            delay = min(delay * 2, remaining, 0.05)
            time.sleep(delay)

    def send_signal(self, sig):
        if self.returncode is None:
            try:
                os.kill(self.pid, sig)
            except ProcessLookupError:
                pass
            except OSError:
                if self.wait(timeout=0.1) is None:
                    raise

    def terminate(self):
        self.send_signal(signal.SIGTERM)

    def kill(self):
        self.send_signal(signal.SIGKILL)

    def close(self):
        """Close every descriptor retained by the parent."""
        for f in (self._stdin, self._stdout, self._stderr):
            if f is not None:
                f.close()
        self._finalizer()
        _live_children.discard(self)

    def _close_inherited(self):
        # The finalizer is bound to the parent pid and is a no-op here.
        for f in (self._stdin, self._stdout, self._stderr):
            if f is not None:
                try:
                    f.close()
                except OSError:
                    pass
        for pipe in (self.stdin_pipe, self.stdout_pipe, self.stderr_pipe):
            for close in (pipe.close_read_fd, pipe.close_write_fd):
                try:
                    close()
                except OSError:
                    pass

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


def close_inherited_ends():
    """Close, in a forked child, the ends held for the parent's children.

    Otherwise a later child keeps, for instance, the stdin write end of an
    earlier one open, and that earlier child never sees EOF on its stdin.
    """
    for child in list(_live_children):
        child._close_inherited()
    _live_children.clear()


def _close_all(stdin_pipe, stdout_pipe, stderr_pipe):
    for pipe in (stdin_pipe, stdout_pipe, stderr_pipe):
        pipe.close()
