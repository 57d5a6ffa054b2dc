"""
Structured logging configuration using structlog.
JSON lines in production, colored console output everywhere else.
Request-scoped fields (request_id, method, path, user_id) come from contextvars.
Credentials and one-time codes passed as event keys are masked before rendering.
"""

import logging
import sys

import structlog

from unihub.core.config import get_settings

_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "asyncpg")

# Event keys whose values never reach a log line
SECRET_KEYS = frozenset(
    {
        "password",
        "current_password",
        "new_password",
        "hashed_password",
        "access_token",
        "token",
        "authorization",
        "verification_code",
        "reset_code",
    }
)
REDACTED = "[redacted]"


def redact_secrets(logger, method_name, event_dict):
    """Mask credentials and one-time codes, and shrink inline uploads to their size."""
    for key in SECRET_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    image = event_dict.get("image_base64")
    if isinstance(image, str):
        event_dict["image_base64"] = f"<{len(image)} chars>"
    return event_dict


def service_context(app_name: str, environment: str):
    def add_service(logger, method_name, event_dict):
        event_dict.setdefault("service", app_name)
        event_dict.setdefault("env", environment)
        return event_dict

    return add_service


def setup_logging() -> None:
    settings = get_settings()
    json_logs = settings.ENVIRONMENT == "production"

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        service_context(settings.APP_NAME, settings.ENVIRONMENT),
        redact_secrets,
    ]

    if json_logs:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    # Reconfiguring (tests, reload) must not stack handlers
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
