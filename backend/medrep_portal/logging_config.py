import logging.config

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install one console handler for the portal and uvicorn loggers."""
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": LOG_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            },
        },
        "loggers": {
            "medrep_portal": {"handlers": ["console"], "level": level.upper(), "propagate": False},
            "uvicorn.error": {"level": level.upper()},
        },
    })
