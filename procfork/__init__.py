r"""The :mod:`procfork` module runs a callable in a forked child process.

The standard streams of the child can be piped back to the parent, and the
child always terminates with a concrete exit status: a fault in the callable
is reported as a backtrace on the standard error of the child and turned into
a failure status, never into a return to the caller.
"""

from ._base import ExitStatus, ResourceError
from .backend import (
    ChildProcess,
    CrashReporter,
    ForkLauncher,
    Pipe,
    StandardStream,
    fork,
    launch,
    vfork,
)


__all__ = [
    # Constants
    "ExitStatus",
    "StandardStream",
    # Classes
    "ChildProcess",
    "CrashReporter",
    "ForkLauncher",
    "Pipe",
    # Functions
    "fork",
    "launch",
    "vfork",
    # Errors
    "ResourceError",
]


__version__ = "0.1.0dev0"
