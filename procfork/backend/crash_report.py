###############################################################################
# Postmortem diagnostics for a faulting child: capture the current call stack
# and write it, symbolicated, to a diagnostic sink.
#
# The native unwinder relies on the execinfo functions of the libc and on the
# C++ ABI demangler, both bound through ctypes. The layout of the symbols
# returned by backtrace_symbols is not portable, so anything that cannot be
# parsed is reported as raw text.
#
import os
import sys
import ctypes
import warnings

from .utils import get_libc, load_clib, get_clib_function


__all__ = ["CrashReporter", "parse_symbol", "demangle"]

MAX_FRAMES = 100
UNWINDERS = ("auto", "native", "python")


def _default_max_frames():
    value = os.environ.get("PROCFORK_MAX_FRAMES")
    if value is None:
        return MAX_FRAMES
    try:
        return max(0, int(value))
    except ValueError:
        warnings.warn(f"Ignoring invalid PROCFORK_MAX_FRAMES={value!r}, "
                      f"using {MAX_FRAMES} frames.")
        return MAX_FRAMES


def _default_unwinder():
    unwinder = os.environ.get("PROCFORK_UNWINDER", "auto")
    if unwinder not in UNWINDERS:
        warnings.warn(f"Unknown PROCFORK_UNWINDER={unwinder!r}, should be "
                      f"one of {UNWINDERS}. Falling back to 'auto'.")
        return "auto"
    return unwinder


def _free(ptr):
    free = get_clib_function(get_libc(), "free")
    if free is not None and ptr:
        free.argtypes = [ctypes.c_void_p]
        free.restype = None
        free(ptr)


def _get_cxa_demangle():
    lib = load_clib("stdc++")
    if lib is None and sys.platform == "darwin":
        lib = load_clib("c++")
    cxa_demangle = get_clib_function(lib, "__cxa_demangle")
    if cxa_demangle is not None:
        cxa_demangle.restype = ctypes.c_void_p
        cxa_demangle.argtypes = [ctypes.c_char_p, ctypes.c_void_p,
                                 ctypes.c_void_p,
                                 ctypes.POINTER(ctypes.c_int)]
    return cxa_demangle


def has_demangler():
    return _get_cxa_demangle() is not None


def demangle(name):
    """Demangle a C++ symbol name.

    Return a tuple ``(readable_name, True)`` on success and ``("", False)``
    when the name is not a valid mangled name or no demangler is available.
    """
    cxa_demangle = _get_cxa_demangle()
    if cxa_demangle is None or not name:
        return "", False

    status = ctypes.c_int(1)
    result = cxa_demangle(name.encode("utf-8", "replace"), None, None,
                          ctypes.byref(status))
    if not result:
        return "", False
    try:
        if status.value != 0:
            return "", False
        return ctypes.string_at(result).decode("utf-8", "replace"), True
    finally:
        _free(result)


def parse_symbol(symbol):
    """Return the name embedded in a backtrace symbol, or None.

    Symbols are expected as ``object(name+offset) [address]`` where the
    ``+offset`` part is optional and stripped from the returned name.
    """
    first = symbol.find("(")
    last = symbol.rfind(")")
    if first == -1 or last <= first:
        return None
    name = symbol[first + 1:last]
    plus = name.find("+")
    if plus != -1:
        name = name[:plus]
    return name or None


def has_native_unwinder():
    libc = get_libc()
    return (get_clib_function(libc, "backtrace") is not None and
            get_clib_function(libc, "backtrace_symbols") is not None)


def _native_frames(max_frames):
    libc = get_libc()
    backtrace = get_clib_function(libc, "backtrace")
    backtrace_symbols = get_clib_function(libc, "backtrace_symbols")
    if backtrace is None or backtrace_symbols is None:
        return []

    backtrace.restype = ctypes.c_int
    backtrace.argtypes = [ctypes.POINTER(ctypes.c_void_p), ctypes.c_int]
    backtrace_symbols.restype = ctypes.POINTER(ctypes.c_char_p)
    backtrace_symbols.argtypes = [ctypes.POINTER(ctypes.c_void_p),
                                  ctypes.c_int]

    addresses = (ctypes.c_void_p * max_frames)()
    n_frames = backtrace(addresses, max_frames)
    if n_frames <= 0:
        return []

    symbols = backtrace_symbols(addresses, n_frames)
    if not symbols:
        return [(addresses[i] or 0, "??") for i in range(n_frames)]
    try:
        return [
            (addresses[i] or 0,
             (symbols[i] or b"??").decode("utf-8", "replace"))
            for i in range(n_frames)
        ]
    finally:
        _free(ctypes.cast(symbols, ctypes.c_void_p))


def _format_python_frame(frame, lasti, lineno):
    code = frame.f_code
    qualname = getattr(code, "co_qualname", code.co_name)
    return (f"{code.co_filename}:{lineno}({qualname}+{max(lasti, 0):#x}) "
            f"[{id(frame):#x}]")


def _python_frames(max_frames, exc=None):
    frames = []
    if exc is not None:
        tb_frames = []
        tb = exc.__traceback__
        while tb is not None:
            tb_frames.append((tb.tb_frame, tb.tb_lasti, tb.tb_lineno))
            tb = tb.tb_next
        frames.extend(reversed(tb_frames))

    frame = sys._getframe(1)
    while frame is not None:
        # Skip the frames of the reporter itself.
        if frame.f_code.co_filename != __file__:
            frames.append((frame, frame.f_lasti, frame.f_lineno))
        frame = frame.f_back

    seen = set()
    result = []
    for frame, lasti, lineno in frames:
        if id(frame) in seen:
            continue
        seen.add(id(frame))
        result.append((id(frame), _format_python_frame(frame, lasti, lineno)))
        if len(result) >= max_frames:
            break
    return result


class CrashReporter:
    """Write a symbolicated backtrace of the calling context to a sink.

    Parameters
    ----------
    max_frames : int or None (default=None)
        Maximal number of frames captured. If None, use the value of the
        ``PROCFORK_MAX_FRAMES`` environment variable, or 100.

    unwinder : {'auto', 'native', 'python'} or None (default=None)
        'native' walks the C stack with the libc ``backtrace`` function,
        'python' walks the interpreter frames, including the ones of the
        exception passed to :meth:`report`. 'auto' picks 'native' when the
        libc provides it and 'python' otherwise. If None, use the value of
        the ``PROCFORK_UNWINDER`` environment variable, or 'auto'.
    """

    def __init__(self, max_frames=None, unwinder=None):
        if max_frames is None:
            max_frames = _default_max_frames()
        if unwinder is None:
            unwinder = _default_unwinder()
        elif unwinder not in UNWINDERS:
            raise ValueError(f"unwinder should be one of {UNWINDERS}, got "
                             f"{unwinder!r}")
        self.max_frames = max_frames
        self.unwinder = unwinder

    def __repr__(self):
        return (f"{self.__class__.__name__}(max_frames={self.max_frames}, "
                f"unwinder={self.unwinder!r})")

    def prepare(self):
        """Resolve the C-libraries used to capture and demangle frames.

        Binders are cached, so calling this before forking spares the child
        from looking them up on its termination path.
        """
        if self.unwinder in ("auto", "native"):
            has_native_unwinder()
        has_demangler()

    def capture(self, exc=None):
        """Return a list of ``(address, raw_symbol)``, innermost first."""
        if self.max_frames <= 0:
            return []
        unwinder = self.unwinder
        if unwinder == "auto":
            unwinder = "native" if has_native_unwinder() else "python"
        if unwinder == "native":
            return _native_frames(self.max_frames)
        return _python_frames(self.max_frames, exc=exc)

    @staticmethod
    def symbolize(symbol):
        name = parse_symbol(symbol)
        if name is None:
            return symbol
        readable, successful = demangle(name)
        return readable if successful else symbol

    def format_frames(self, frames):
        return [f"\t{address:#x}: {self.symbolize(symbol)}\n"
                for address, symbol in frames]

    def report(self, sink, exc=None):
        """Write one line per captured frame to ``sink``.

        Return the number of lines written. Failures to capture or to write
        end the report early and are never raised, as the report runs on the
        termination path of a faulting child.
        """
        try:
            lines = self.format_frames(self.capture(exc=exc))
        except Exception:
            return 0

        n_written = 0
        try:
            for line in lines:
                sink.write(line)
                n_written += 1
            sink.flush()
        except Exception:
            pass
        return n_written
