import logging
import sys

from swm_dashboard.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
ROOT_LOGGER_NAME = "swm_dashboard"


def setup_logging(level: str = None) -> None:
    """Configure the application logger once (stdout handler, level from settings)."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO))

    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    # Keep SQLAlchemy quiet unless echo is requested explicitly
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a named child of the application logger."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
