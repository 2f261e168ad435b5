import logging.config

from core.config import settings


def configure_logging(level: str | None = None) -> None:
    """Install the console logging setup used by the API and the scripts."""
    level = (level or settings.log_level or "INFO").upper()
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "simple": {
                "format": "{asctime} [{levelname}] {name} - {message}",
                "style": "{",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "simple",
                "level": level,
            },
        },
        "root": {
            "handlers": ["console"],
            "level": level,
        },
        "loggers": {
            "sqlalchemy.engine": {
                "level": "WARNING",
                "propagate": True,
            },
        },
    })
