"""
Crash Report
============

A callable raising in the child never crashes the parent nor returns into its
code: the child exits with a failure status and writes a backtrace on its
standard error, which is piped back here.

Set ``PROCFORK_UNWINDER=python`` to report the interpreter frames instead of
the native ones.
"""
import procfork
from procfork import StandardStream


def divide_by_zero():
    return 1 // 0


with procfork.fork(divide_by_zero, StandardStream.stderr) as child:
    print(child.stderr.read().decode(), end="")
    assert child.wait() == procfork.ExitStatus.failure
    print(f"child {child.pid} exited with {child.exit_status!r}")
