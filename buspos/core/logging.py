from logging.config import dictConfig

from buspos.core.config import settings


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the API, worker and scripts."""
    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": "%(asctime)s %(levelname)s [%(name)s] %(message)s"},
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "formatter": "default"},
        },
        "root": {"handlers": ["console"], "level": (level or settings.LOG_LEVEL).upper()},
        "loggers": {
            # SQL echo is noisy; flip to INFO when debugging queries.
            "sqlalchemy.engine": {"level": "WARNING"},
        },
    })
