from .pipe import Pipe
from .standard_stream import StandardStream
from .child_process import ChildProcess
from .crash_report import CrashReporter
from .fork import ForkLauncher, fork, launch, vfork


__all__ = [
    "ChildProcess",
    "CrashReporter",
    "ForkLauncher",
    "Pipe",
    "StandardStream",
    "fork",
    "launch",
    "vfork",
]
