###############################################################################
# Fork the current process to run a callable in a child, optionally piping
# the standard streams of the child back to the parent.
#
# The child never returns to the caller: whatever happens in the callable, it
# leaves through os._exit with a concrete exit status.
#
import os
import sys
from multiprocessing import util

from .._base import ExitStatus, ResourceError
from .pipe import Pipe
from .child_process import ChildProcess, close_inherited_ends
from .crash_report import CrashReporter
from .redirect import redirect_stream_to_fd, rebind_sys_stream
from .standard_stream import STREAMS, StandardStream, check_flags


__all__ = ["ForkLauncher", "launch", "fork", "vfork"]


def _flush_std_streams():
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (AttributeError, OSError, ValueError):
            pass


def _get_exitcode(result):
    if result is None:
        return ExitStatus.success
    if isinstance(result, bool) or not isinstance(result, int):
        raise TypeError(
            f"The child entry should return an exit status, got {result!r}"
        )
    if not 0 <= result <= 255:
        raise ValueError(
            f"The child exit status should be in [0, 255], got {result}"
        )
    return int(result)


def _safe_str(exc):
    try:
        return str(exc)
    except Exception:
        return "<exception str() failed>"


def _get_system_exit_code(exc):
    # Same semantic as an uncaught SystemExit in the interpreter.
    code = exc.code
    if code is None:
        return ExitStatus.success
    try:
        return _get_exitcode(code)
    except (TypeError, ValueError):
        if sys.stderr is not None:
            print(code, file=sys.stderr)
        return ExitStatus.failure


class ForkLauncher:
    """Run callables in forked children.

    Parameters
    ----------
    flags : StandardStream (default=StandardStream.empty)
        Standard streams of the child piped back to the parent. The returned
        ChildProcess holds the parent ends of the requested pipes.

    share_address_space : bool (default=False)
        Keep the vfork contract: the parent is suspended until the child
        exits. CPython cannot share its heap with a child safely, so the
        child is still created with fork. As the parent cannot read or write
        the pipes while suspended, the child should not fill the output pipe
        buffers nor wait for input.

    crash_reporter : CrashReporter or None (default=None)
        Reporter writing the backtrace of a faulting child to its standard
        error. If None, a CrashReporter configured from the environment is
        used.
    """

    def __init__(self, flags=StandardStream.empty, share_address_space=False,
                 crash_reporter=None):
        self.flags = check_flags(flags)
        self.share_address_space = share_address_space
        if crash_reporter is None:
            crash_reporter = CrashReporter()
        self.crash_reporter = crash_reporter

    def __repr__(self):
        return (f"{self.__class__.__name__}(flags={self.flags!r}, "
                f"share_address_space={self.share_address_space})")

    def launch(self, entry):
        """Fork a child running ``entry()`` and return its ChildProcess.

        ``entry`` is called once, in the child only. Its return value is the
        exit status of the child. Errors happening before the fork are raised
        as ResourceError; after the fork, they are only visible through the
        exit status and the standard error of the child.
        """
        if not callable(entry):
            raise TypeError(f"entry should be callable, got {entry!r}")

        # Avoid flushing buffered output of the parent twice.
        _flush_std_streams()

        self.crash_reporter.prepare()
        pipes = self._allocate_pipes()
        try:
            pid = os.fork()
        except OSError as e:
            _close_pipes(pipes)
            raise ResourceError.from_oserror(e) from e

        if pid == 0:
            self._run_child(entry, *pipes)

        stdin_pipe, stdout_pipe, stderr_pipe = pipes
        stdin_pipe.close_read_fd()
        stdout_pipe.close_write_fd()
        stderr_pipe.close_write_fd()
        util.debug(f"forked child process with pid {pid} and "
                   f"flags={self.flags!r}")

        child = ChildProcess(pid, stdin_pipe, stdout_pipe, stderr_pipe)
        if self.share_address_space:
            child.wait()
            util.debug(f"resuming after the exit of child process {pid}")
        return child

    def _allocate_pipes(self):
        pipes = []
        try:
            for stream in STREAMS:
                if self.flags.requested(stream):
                    pipes.append(Pipe())
                else:
                    pipes.append(Pipe.invalid())
        except ResourceError:
            _close_pipes(pipes)
            raise
        return pipes

    def _run_child(self, entry, stdin_pipe, stdout_pipe, stderr_pipe):
        exitcode = ExitStatus.failure
        try:
            close_inherited_ends()
            stdin_pipe.close_write_fd()
            stdout_pipe.close_read_fd()
            stderr_pipe.close_read_fd()

            # Replace the standard streams of the child before running entry.
            for stream, fd, close in [
                (StandardStream.stdin, stdin_pipe.read_fd,
                 stdin_pipe.close_read_fd),
                (StandardStream.stdout, stdout_pipe.write_fd,
                 stdout_pipe.close_write_fd),
                (StandardStream.stderr, stderr_pipe.write_fd,
                 stderr_pipe.close_write_fd),
            ]:
                if self.flags.requested(stream):
                    slot = redirect_stream_to_fd(fd, stream)
                    if fd != slot:
                        close()
                    rebind_sys_stream(slot)

            exitcode = _get_exitcode(entry())
        except SystemExit as e:
            exitcode = _get_system_exit_code(e)
        except BaseException as e:
            self._report_fault(e)
        finally:
            # Exiting here is the only way out of the child, even if the
            # entry left unflushable stdio objects behind.
            try:
                _flush_std_streams()
            finally:
                os._exit(exitcode)

    def _report_fault(self, exc):
        sink = sys.stderr
        if sink is None:
            return
        try:
            sink.write("procfork.fork(): An unhandled exception occurred in "
                       "the child process:\n")
            sink.write(f"\t{type(exc).__name__}: {_safe_str(exc)}\n")
        except Exception:
            pass
        self.crash_reporter.report(sink, exc=exc)


def _close_pipes(pipes):
    for pipe in pipes:
        pipe.close()


def launch(entry, flags=StandardStream.empty, share_address_space=False,
           crash_reporter=None):
    """Fork a child running ``entry()``, see :class:`ForkLauncher`."""
    launcher = ForkLauncher(flags=flags,
                            share_address_space=share_address_space,
                            crash_reporter=crash_reporter)
    return launcher.launch(entry)


def fork(entry, flags=StandardStream.empty):
    return launch(entry, flags=flags)


def vfork(entry, flags=StandardStream.empty):
    return launch(entry, flags=flags, share_address_space=True)
