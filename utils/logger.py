"""Application logging: rotating file plus console, with structured context."""
import logging
import os
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(module)s:%(lineno)d | %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"

_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


def _one_line(value) -> str:
    return str(value).replace("\r", " ").replace("\n", " ")


class ContextFormatter(logging.Formatter):
    """Append the ``extra=`` fields of a record as ``key=value`` pairs.

    Events such as ``complaint_state_changed`` carry their identifiers only in
    ``extra``; without this they would reach the log as a bare event name.
    """

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if not context:
            return line
        rendered = " ".join(f"{key}={_one_line(value)}" for key, value in sorted(context.items()))
        head, sep, tail = line.partition("\n")
        return f"{head} | {rendered}{sep}{tail}"


def _handler(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def init_logging(app) -> logging.Logger:
    log_dir = app.config.get("LOG_DIR") or os.path.join(app.instance_path, "logs")
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, "app.log")

    level = getattr(logging, (app.config.get("LOG_LEVEL") or "INFO").upper(), logging.INFO)
    formatter = ContextFormatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    logger = logging.getLogger(app.name)
    logger.setLevel(level)
    # create_app may run several times in one process; never stack handlers.
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()
    logger.addHandler(
        _handler(RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=5, encoding="utf-8"), level, formatter)
    )
    logger.addHandler(_handler(logging.StreamHandler(), level, formatter))
    logger.propagate = False

    app.logger.handlers = logger.handlers
    app.logger.setLevel(level)

    logger.info("logging_initialized", extra={"path": log_path, "level": logging.getLevelName(level)})
    return logger
