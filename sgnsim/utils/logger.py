"""
The package's logging module.

All messages are sent through the standard `logging` hierarchy below the
``sgnsim`` logger. By default, messages of level ``INFO`` and above are shown
on the console and everything down to ``DIAGNOSTIC`` is written to a
temporary log file that is deleted at exit unless an uncaught exception
occurred.
"""
import atexit
import logging
import os
import sys
import tempfile
from warnings import warn

import numpy
import scipy
import sympy

from sgnsim.core.preferences import SimPreference, prefs

__all__ = ["get_logger", "SimLogger", "catch_logs"]

# ===============================================================================
# Logging preferences
# ===============================================================================


def log_level_validator(log_level):
    log_levels = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "DIAGNOSTIC")
    return isinstance(log_level, str) and log_level.upper() in log_levels


#: Our new log level for more detailed debug output (e.g. per time step
#: information of the solver)
DIAGNOSTIC = 5

#: Translation from string representation to number
LOG_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "DIAGNOSTIC": DIAGNOSTIC,
}
logging.addLevelName(DIAGNOSTIC, "DIAGNOSTIC")

if "logging" not in prefs.pref_register:
    prefs.register_preferences(
        "logging",
        "Logging system preferences",
        delete_log_on_exit=SimPreference(
            default=True,
            docs="""
            Whether to delete the log file on exit.

            If set to ``True`` (the default), the log file will be deleted
            after the process has exited, unless an uncaught exception
            occurred. If set to ``False``, the log file will be kept.
            """,
        ),
        file_log_level=SimPreference(
            default="DIAGNOSTIC",
            docs="""
            What log level to use for the log written to the log file.

            Has to be one of CRITICAL, ERROR, WARNING, INFO, DEBUG or
            DIAGNOSTIC.
            """,
            validator=log_level_validator,
        ),
        console_log_level=SimPreference(
            default="INFO",
            docs="""
            What log level to use for the log written to the console.

            Has to be one of CRITICAL, ERROR, WARNING, INFO, DEBUG or
            DIAGNOSTIC.
            """,
            validator=log_level_validator,
        ),
        file_log=SimPreference(
            default=True,
            docs="""
            Whether to log to a file or not.

            If set to ``True`` (the default), logging information will be
            written to a file. The log level can be set via the
            `logging.file_log_level` preference.
            """,
        ),
    )

# ===============================================================================
# Initial setup
# ===============================================================================

UNHANDLED_ERROR_MESSAGE = (
    "sgnsim encountered an unexpected error. If you think this is a bug, "
    "please report it together with the model configuration you used."
)


def sim_excepthook(exc_type, exc_obj, exc_tb):
    """
    Display a message mentioning the debug log in case of an uncaught
    exception.
    """
    # Do not catch Ctrl+C
    if exc_type == KeyboardInterrupt:
        return
    SimLogger.exception_occured = True

    message = UNHANDLED_ERROR_MESSAGE
    if SimLogger.tmp_log is not None:
        message += (
            " Please include this file with debug information in your "
            f"report: {SimLogger.tmp_log} "
        )
    logging.getLogger("sgnsim").error(message, exc_info=(exc_type, exc_obj, exc_tb))


def clean_up_logging():
    """
    Shutdown the logging system and delete the debug log file if no error
    occured.
    """
    logging.shutdown()
    if not SimLogger.exception_occured and prefs["logging.delete_log_on_exit"]:
        if SimLogger.tmp_log is not None:
            try:
                os.remove(SimLogger.tmp_log)
            except OSError as exc:
                warn(f"Could not delete log file: {exc}")


atexit.register(clean_up_logging)


class HierarchyFilter:
    """
    A class for suppressing all log messages in a subtree of the name
    hierarchy. Does exactly the opposite as the `logging.Filter` class, which
    allows messages in a certain name hierarchy to *pass*.

    Parameters
    ----------
    name : str
        The name hiearchy to suppress. See `SimLogger.suppress_hierarchy` for
        details.
    """

    def __init__(self, name):
        self.orig_filter = logging.Filter(name)

    def filter(self, record):
        return not self.orig_filter.filter(record)


class NameFilter:
    """
    A class for suppressing log messages ending with a certain name.

    Parameters
    ----------
    name : str
        The name to suppress. See `SimLogger.suppress_name` for details.
    """

    def __init__(self, name):
        self.name = name

    def filter(self, record):
        record_name = record.name.split(".")[-1]
        return self.name != record_name


class SimLogger:
    """
    Convenience object for logging. Call `get_logger` to get an instance of
    this class.

    Parameters
    ----------
    name : str
        The name used for logging, normally the name of the module.
    """

    #: Class attribute to remember whether any exception occured
    exception_occured = False

    #: Class attribute for remembering log messages that should only be
    #: displayed once
    _log_messages = set()

    #: The name of the temporary log file, if any
    tmp_log = None

    #: The `logging.FileHandler` responsible for logging to the temporary log
    #: file
    file_handler = None

    #: The `logging.StreamHandler` writing to the console
    console_handler = None

    def __init__(self, name):
        self.name = name

    def _log(self, log_level, msg, name_suffix, once):
        """
        Log an entry.

        Parameters
        ----------
        log_level : {'DIAGNOSTIC', 'DEBUG', 'INFO', 'WARNING', 'ERROR'}
            The level with which to log the message.
        msg : str
            The log message.
        name_suffix : str
            A suffix that will be added to the logger name.
        once : bool
            Whether to suppress identical messages if they are logged again.
        """
        name = self.name
        if name_suffix:
            name += "." + name_suffix

        if once:
            log_tuple = (name, log_level, msg)
            if log_tuple in SimLogger._log_messages:
                return
            SimLogger._log_messages.add(log_tuple)

        the_logger = logging.getLogger(name)
        the_logger.log(LOG_LEVELS[log_level], msg)

    def diagnostic(self, msg, name_suffix=None, once=False):
        """
        Log a diagnostic message.

        Parameters
        ----------
        msg : str
            The message to log.
        name_suffix : str, optional
            A suffix to add to the name, e.g. a class or function name.
        once : bool, optional
            Whether this message should be logged only once and not repeated
            if sent another time.
        """
        self._log("DIAGNOSTIC", msg, name_suffix, once)

    def debug(self, msg, name_suffix=None, once=False):
        """
        Log a debug message. See `diagnostic` for the arguments.
        """
        self._log("DEBUG", msg, name_suffix, once)

    def info(self, msg, name_suffix=None, once=False):
        """
        Log an info message. See `diagnostic` for the arguments.
        """
        self._log("INFO", msg, name_suffix, once)

    def warn(self, msg, name_suffix=None, once=False):
        """
        Log a warning message. See `diagnostic` for the arguments.
        """
        self._log("WARNING", msg, name_suffix, once)

    def error(self, msg, name_suffix=None, once=False):
        """
        Log an error message. See `diagnostic` for the arguments.
        """
        self._log("ERROR", msg, name_suffix, once)

    @staticmethod
    def _suppress(filterobj, filter_log_file):
        """
        Apply a filter object to log messages.

        Parameters
        ----------
        filterobj : `logging.Filter`
            A filter object to apply to log messages.
        filter_log_file : bool
            Whether the filter also applies to log messages in the log file.
        """
        SimLogger.console_handler.addFilter(filterobj)

        if filter_log_file and SimLogger.file_handler is not None:
            SimLogger.file_handler.addFilter(filterobj)

    @staticmethod
    def suppress_hierarchy(name, filter_log_file=False):
        """
        Suppress all log messages in a given hiearchy.

        Parameters
        ----------
        name : str
            Suppress all log messages in the given `name` hierarchy. For
            example, specifying ``'sgnsim'`` suppresses all messages logged
            by the package, specifying ``'sgnsim.threshold'`` suppresses all
            messages generated by the threshold search.
        filter_log_file : bool, optional
            Whether to suppress the messages also in the log file. Defaults to
            ``False`` meaning that suppressed messages are not displayed on
            the console but are still saved to the log file.
        """
        SimLogger._suppress(HierarchyFilter(name), filter_log_file)

    @staticmethod
    def suppress_name(name, filter_log_file=False):
        """
        Suppress all log messages with a given name.

        Parameters
        ----------
        name : str
            Suppress all log messages ending in the given `name`. For
            example, specifying ``'nonconvergence'`` would suppress the
            warnings of a threshold search hitting its iteration limit.
        filter_log_file : bool, optional
            Whether to suppress the messages also in the log file.
        """
        SimLogger._suppress(NameFilter(name), filter_log_file)

    @staticmethod
    def log_level_diagnostic():
        """
        Set the log level to "diagnostic".
        """
        SimLogger.console_handler.setLevel(DIAGNOSTIC)

    @staticmethod
    def log_level_debug():
        """
        Set the log level to "debug".
        """
        SimLogger.console_handler.setLevel(logging.DEBUG)

    @staticmethod
    def log_level_info():
        """
        Set the log level to "info".
        """
        SimLogger.console_handler.setLevel(logging.INFO)

    @staticmethod
    def log_level_warn():
        """
        Set the log level to "warn".
        """
        SimLogger.console_handler.setLevel(logging.WARN)

    @staticmethod
    def log_level_error():
        """
        Set the log level to "error".
        """
        SimLogger.console_handler.setLevel(logging.ERROR)

    @staticmethod
    def initialize():
        """
        Initialize the logging system. This function will be called
        automatically when the package is imported.
        """
        logger = logging.getLogger("sgnsim")
        logger.propagate = False
        logger.setLevel(LOG_LEVELS["DIAGNOSTIC"])

        # Remove handlers of a previous initialization
        for handler in (SimLogger.console_handler, SimLogger.file_handler):
            if handler is not None:
                logger.removeHandler(handler)
                logging.getLogger("py.warnings").removeHandler(handler)
        SimLogger.file_handler = None

        # Log to a file
        if prefs["logging.file_log"]:
            try:
                # Temporary filename used for logging
                with tempfile.NamedTemporaryFile(
                    prefix="sgnsim_debug_", suffix=".log", delete=False
                ) as tmp_file:
                    SimLogger.tmp_log = tmp_file.name
                SimLogger.file_handler = logging.FileHandler(
                    SimLogger.tmp_log, mode="w", encoding="utf-8"
                )
                SimLogger.file_handler.setLevel(
                    LOG_LEVELS[prefs["logging.file_log_level"].upper()]
                )
                SimLogger.file_handler.setFormatter(
                    logging.Formatter(
                        "%(asctime)s %(levelname)-10s %(name)s: %(message)s"
                    )
                )
                logger.addHandler(SimLogger.file_handler)
            except OSError as ex:
                warn(f"Could not create log file: {ex}")

        # create console handler with a higher log level
        SimLogger.console_handler = logging.StreamHandler()
        SimLogger.console_handler.setLevel(
            LOG_LEVELS[prefs["logging.console_log_level"].upper()]
        )
        SimLogger.console_handler.setFormatter(
            logging.Formatter("%(levelname)-10s %(message)s [%(name)s]")
        )
        logger.addHandler(SimLogger.console_handler)

        # We want to log all warnings
        logging.captureWarnings(True)
        warn_logger = logging.getLogger("py.warnings")
        warn_logger.addHandler(SimLogger.console_handler)
        if SimLogger.file_handler is not None:
            warn_logger.addHandler(SimLogger.file_handler)

        # Put some standard info into the log file
        logger.log(DIAGNOSTIC, f"Logging to file: {SimLogger.tmp_log}")
        logger.log(DIAGNOSTIC, f"Python interpreter: {sys.executable}")
        logger.log(DIAGNOSTIC, f"Platform: {sys.platform}")
        from sgnsim import __version__

        version_infos = {
            "sgnsim": __version__,
            "numpy": numpy.__version__,
            "scipy": scipy.__version__,
            "sympy": sympy.__version__,
            "python": sys.version,
        }
        for _name, _version in version_infos.items():
            logger.log(DIAGNOSTIC, f"{_name} version is: {_version}")
        # Handle uncaught exceptions
        sys.excepthook = sim_excepthook


def get_logger(module_name="sgnsim"):
    """
    Get an object that can be used for logging.

    Parameters
    ----------
    module_name : str
        The name used for logging, should normally be the module name as
        returned by ``__name__``.

    Returns
    -------
    logger : `SimLogger`
    """
    return SimLogger(module_name)


class catch_logs:
    """
    A context manager for catching log messages. Use this for testing the
    messages that are logged. Defaults to catching warning/error messages.
    Note that while this context manager is active, *all* log messages are
    suppressed. Using this context manager returns a list of
    (log level, name, message) tuples.

    Parameters
    ----------
    log_level : int or str, optional
        The log level above which messages are caught.

    Examples
    --------
    >>> logger = get_logger('sgnsim.logtest')
    >>> with catch_logs() as l:
    ...    logger.warn('a caught warning')
    ...    print(l)
    [('WARNING', 'sgnsim.logtest', 'a caught warning')]
    """

    _entered = False

    def __init__(self, log_level=logging.WARN):
        if isinstance(log_level, str):
            log_level = LOG_LEVELS[log_level.upper()]
        self.log_list = []
        self.handler = LogCapture(self.log_list, log_level)
        self._entered = False

    def __enter__(self):
        if self._entered:
            raise RuntimeError(f"Cannot enter {self!r} twice")
        self._entered = True
        return self.log_list

    def __exit__(self, *exc_info):
        if not self._entered:
            raise RuntimeError(f"Cannot exit {self!r} without entering first")
        self.handler.uninstall()


class LogCapture(logging.Handler):
    """
    A class for capturing log warnings. This class is used by `catch_logs`
    to allow testing in a similar way as with `warnings.catch_warnings`.
    """

    captured_loggers = ["sgnsim", "py.warnings"]

    def __init__(self, log_list, log_level=logging.WARN):
        logging.Handler.__init__(self, level=log_level)
        self.log_list = log_list
        # make a copy of the previous handlers
        self.handlers = {}
        for logger_name in LogCapture.captured_loggers:
            self.handlers[logger_name] = list(logging.getLogger(logger_name).handlers)
        self.install()

    def emit(self, record):
        self.log_list.append((record.levelname, record.name, record.getMessage()))

    def install(self):
        """
        Install this handler to catch all warnings. Temporarily disconnect all
        other handlers.
        """
        for logger_name in LogCapture.captured_loggers:
            the_logger = logging.getLogger(logger_name)
            for handler in self.handlers[logger_name]:
                the_logger.removeHandler(handler)
            the_logger.addHandler(self)

    def uninstall(self):
        """
        Uninstall this handler and re-connect the previously installed
        handlers.
        """
        for logger_name in LogCapture.captured_loggers:
            the_logger = logging.getLogger(logger_name)
            the_logger.removeHandler(self)
            for handler in self.handlers[logger_name]:
                the_logger.addHandler(handler)
