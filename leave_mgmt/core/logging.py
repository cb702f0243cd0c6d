"""
Logging setup: one stdout handler for the API, services and workflow core
"""
import logging
import sys
from leave_mgmt.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# logger name -> level, applied after the root level
QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
}


def setup_logging() -> None:
    """
    Configure the root logger from settings.LOG_LEVEL.

    Workflow decisions (submission, step decisions, ledger changes) are
    logged at INFO by the services; rejected operations at INFO or WARNING.
    """
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root = logging.getLogger()
    root.setLevel(level)
    # Re-running (tests, reload) must not stack handlers
    root.handlers = [handler]

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(max(quiet_level, level))
    logging.getLogger("leave_mgmt").setLevel(level)

    logging.getLogger(__name__).info(
        "Logging configured: level=%s env=%s", settings.LOG_LEVEL, settings.APP_ENV
    )
