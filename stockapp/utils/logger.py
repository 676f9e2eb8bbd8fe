import functools
import inspect
import json
import logging
import os

from pydantic import BaseModel

LOG_LEVEL = os.getenv("STOCKAPP_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Keys whose values never reach the log
_SECRET_KEYS = ("password", "old_password", "new_password", "password_hash", "picture")


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=LOG_FORMAT)


def sanitize(value):
    """Makes call arguments safe to log: secrets masked, models flattened."""
    if isinstance(value, BaseModel):
        value = value.model_dump()
    if isinstance(value, dict):
        return {
            k: ("***" if k in _SECRET_KEYS else sanitize(v))
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [sanitize(v) for v in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def operation(name: str):
    """
    Boundary decorator for repository and service methods.
    Failures are logged with the operation name and sanitized input, then re-raised.
    """
    def decorator(fn):
        log = logging.getLogger(fn.__module__)
        signature = inspect.signature(fn)

        @functools.wraps(fn)
        def wrapper(self, *args, **kwargs):
            try:
                return fn(self, *args, **kwargs)
            except Exception as err:
                try:
                    arguments = dict(signature.bind(self, *args, **kwargs).arguments)
                    arguments.pop("self", None)
                except TypeError:
                    arguments = {"args": list(args), "kwargs": kwargs}
                context = json.dumps(
                    sanitize(arguments),
                    ensure_ascii=False,
                    default=str,
                )
                log.error(f"{name} failed: {type(err).__name__}: {err} | input={context}")
                raise
        return wrapper
    return decorator
