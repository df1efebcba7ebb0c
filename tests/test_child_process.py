import gc
import time

import psutil

import procfork
from procfork import ChildProcess, ExitStatus, Pipe, StandardStream

from .utils import check_no_fd_leak


TIMEOUT = 30


def _sleep_then_exit(delay, status=0):
    def entry():
        time.sleep(delay)
        return status
    return entry


def test_default_pipes_are_invalid():
    child = ChildProcess(12345)
    assert not child.stdin_pipe.is_valid
    assert not child.stdout_pipe.is_valid
    assert not child.stderr_pipe.is_valid
    assert child.stdin is None
    assert child.returncode is None
    assert child.exit_status is None
    assert "pid=12345 running" in repr(child)
    child.close()
    child.close()


def test_close_releases_every_fd():
    with check_no_fd_leak():
        pipes = [Pipe(), Pipe(), Pipe()]
        child = ChildProcess(12345, *pipes)
        # Open one of the file objects before closing.
        assert child.stdout is not None
        child.close()
        child.close()
        assert not any(pipe.is_valid for pipe in pipes)


def test_fds_are_released_on_garbage_collection():
    with check_no_fd_leak():
        child = procfork.fork(_sleep_then_exit(0), StandardStream.all)
        assert child.wait() == ExitStatus.success
        del child
        gc.collect()


def test_wait_with_timeout():
    with procfork.fork(_sleep_then_exit(0.5, status=4)) as child:
        assert child.wait(timeout=0) is None
        assert child.exit_status is None
        assert child.wait(timeout=TIMEOUT) == 4
        # The exit code is cached.
        assert child.wait() == 4
        assert child.poll() == 4
        assert child.exit_status is ExitStatus.failure
        assert "EXIT(4)" in repr(child)


def test_wait_with_timeout_after_close():
    child = procfork.fork(_sleep_then_exit(0.5))
    child.close()
    assert child.wait(timeout=0.01) is None
    assert child.wait(timeout=TIMEOUT) == ExitStatus.success


def test_child_is_reaped():
    with procfork.fork(_sleep_then_exit(0)) as child:
        assert child.wait() == ExitStatus.success
        assert not psutil.pid_exists(child.pid) or \
            psutil.Process(child.pid).status() != psutil.STATUS_ZOMBIE


def test_kill():
    with procfork.fork(_sleep_then_exit(TIMEOUT)) as child:
        assert child.poll() is None
        child.kill()
        assert child.wait(timeout=TIMEOUT) < 0
        assert "SIGKILL" in repr(child)
        # Signaling an exited child is a no-op.
        child.terminate()
