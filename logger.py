# logger.py
import logging
import sys
import tempfile
from datetime import datetime
from pathlib import Path

LOGGER_NAME = "tower_setup"
DEFAULT_LOG_DIR = "/var/log/tower"


def setup_logger(log_dir: str = DEFAULT_LOG_DIR) -> logging.Logger:
    """Attach a DEBUG file handler and a WARNING stderr handler, once."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    if logger.handlers:
        return logger

    fmt = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    log_name = f"setup-{datetime.now().strftime('%Y-%m-%d-%H:%M:%S')}.log"

    # /var/log/tower is only writable as root; fall back to the temp dir
    try:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(Path(log_dir) / log_name)
    except OSError:
        fh = logging.FileHandler(Path(tempfile.gettempdir()) / log_name)
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(fmt)

    sh = logging.StreamHandler(sys.stderr)
    sh.setLevel(logging.WARNING)
    sh.setFormatter(fmt)

    logger.addHandler(fh)
    logger.addHandler(sh)
    logger.debug("Logging to %s", fh.baseFilename)
    return logger


def get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)
