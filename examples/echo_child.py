"""
Echo Child
==========

This example highlights the ``procfork`` API to pipe the standard streams of a
forked child back to the parent.

The child reads its standard input until EOF, writes it back uppercased on its
standard output, and its exit status is the return value of the callable.
"""
import os
import sys

import procfork
from procfork import StandardStream


def shout():
    data = sys.stdin.read()
    print(f"[{os.getpid()}] {data.upper()}")
    return procfork.ExitStatus.success


flags = StandardStream.stdin | StandardStream.stdout
with procfork.fork(shout, flags) as child:
    child.stdin.write(b"hello from the parent")
    child.stdin.close()
    print(child.stdout.read().decode(), end="")
    print(f"child {child.pid} exited with {child.wait()}")
