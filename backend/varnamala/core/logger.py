import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import LoggingConfig, get_config

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


class DueCountFilter(logging.Filter):
    """Drop access-log lines for the due counter the dashboard polls."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.getMessage().find("GET /api/srs/cards/due/count") == -1


def setup_logging(config: LoggingConfig | None = None) -> None:
    cfg = config or get_config().logging
    log_file = Path(cfg.file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    file_handler = RotatingFileHandler(log_file, maxBytes=5_000_000, backupCount=5, encoding="utf-8")
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, cfg.level.upper(), logging.INFO))
    root_logger.handlers = [file_handler, console_handler]

    # SQL echo is configured on the engine, not through the root level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").addFilter(DueCountFilter())
