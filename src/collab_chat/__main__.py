"""Entrypoint: python -m collab_chat"""
from __future__ import annotations

import uvicorn

LOG_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "correlation_id": {
            "()": "collab_chat.api.middleware.correlation_id.CorrelationIdFilter",
        },
    },
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s",
        },
    },
    "handlers": {
        "default": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "filters": ["correlation_id"],
        },
    },
    "loggers": {
        "collab_chat": {"handlers": ["default"], "level": "INFO", "propagate": False},
        "uvicorn": {"handlers": ["default"], "level": "INFO", "propagate": False},
    },
}


def main() -> None:
    uvicorn.run(
        "collab_chat.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        log_config=LOG_CONFIG,
    )


if __name__ == "__main__":
    main()
