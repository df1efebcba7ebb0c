###############################################################################
# Utilities to bind C-libraries through ctypes and to report comprehensible
# exit codes.
#
import ctypes
import signal
from ctypes.util import find_library


_clibs = {}


def load_clib(name):
    """Return a ctypes binder on the C-library ``name``, or None.

    Binders are cached per library. ``find_library`` returning None is not
    passed to ``ctypes.CDLL`` since it would bind the main program instead.
    """
    if name not in _clibs:
        path = find_library(name)
        lib = None
        if path is not None:
            try:
                lib = ctypes.CDLL(path)
            except OSError:
                lib = None
        _clibs[name] = lib
    return _clibs[name]


def get_libc():
    return load_clib("c")


def get_clib_function(lib, name):
    """Return the function ``name`` exported by ``lib``, or None."""
    if lib is None:
        return None
    try:
        return lib[name]
    except AttributeError:
        return None


#############################################################################
# The following provides utils to introspect the exit codes of the processes
# and report comprehensible errors.
#

def _get_exitcode_name(exitcode):
    if exitcode < 0:
        try:
            return signal.Signals(-exitcode).name
        except ValueError:
            return "UNKNOWN"
    return "EXIT"
