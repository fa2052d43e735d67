import logging
import sys

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"

# verbosity levels accepted by the CLI (0-4)
VERBOSITY_LEVELS = {
    0: logging.CRITICAL,
    1: logging.ERROR,
    2: logging.WARNING,
    3: logging.INFO,
    4: logging.DEBUG,
}


def get_logger(name: str) -> logging.Logger:
    """Return a module logger under the idgate namespace."""
    return logging.getLogger(name)


def setup_logging(verbosity: int = 3) -> None:
    """
    Configure the root logger once for the process.

    Args:
        verbosity: 0 (critical only) to 4 (debug)
    """
    level = VERBOSITY_LEVELS.get(verbosity, logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level)
