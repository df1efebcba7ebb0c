import logging
import warnings
from multiprocessing.util import log_to_stderr


def pytest_addoption(parser):
    parser.addoption("--procfork-verbosity", type=int, default=logging.DEBUG,
                     help="log-level: integer, SUBDEBUG(5) - INFO(20)")


def pytest_configure(config):
    """Setup multiprocessing logging for procfork testing"""
    logging._levelToName[5] = "SUBDEBUG"
    log = log_to_stderr(config.getoption("--procfork-verbosity"))
    log.handlers[0].setFormatter(logging.Formatter(
        '[%(levelname)s:%(processName)s:%(threadName)s] %(message)s'))

    warnings.simplefilter('always')
