import logging.config

from gatepass.core.config.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str | None = None) -> None:
    level = (level or settings.LOG_LEVEL).upper()
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": LOG_FORMAT},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "stream": "ext://sys.stdout",
                },
            },
            "loggers": {
                "gatepass": {"level": level},
                # keep SQL echo out of the app log unless explicitly asked for
                "sqlalchemy.engine": {"level": "WARNING"},
            },
            "root": {"handlers": ["console"], "level": "WARNING"},
        }
    )
