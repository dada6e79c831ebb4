import logging
import os
from typing import Any, Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

logger = logging.getLogger(__name__)


def _parse_sample_rate(env_var: str, default: float = 0.0) -> float:
    raw_value = os.getenv(env_var)
    if raw_value is None:
        return default

    try:
        value = float(raw_value)
    except ValueError:
        logger.warning(
            "%s is not a valid float (got %r); defaulting to %.2f",
            env_var,
            raw_value,
            default,
        )
        return default

    if not 0 <= value <= 1:
        logger.warning("%s must be between 0 and 1; defaulting to %.2f", env_var, default)
        return default

    return value


def _optional_env(name: str) -> Optional[str]:
    return (os.getenv(name) or "").strip() or None


def sentry_options() -> Optional[dict[str, Any]]:
    """Build ``sentry_sdk.init`` keyword arguments from the environment.

    Returns ``None`` when ``SENTRY_DSN`` is unset. Only server errors are
    reported; scoring rejections are answered as 4xx problems and never reach
    Sentry.
    """

    dsn = _optional_env("SENTRY_DSN")
    if dsn is None:
        return None
    return {
        "dsn": dsn,
        "integrations": [FastApiIntegration()],
        "environment": _optional_env("SENTRY_ENVIRONMENT"),
        "release": _optional_env("SENTRY_RELEASE"),
        "traces_sample_rate": _parse_sample_rate("SENTRY_TRACES_SAMPLE_RATE"),
        "profiles_sample_rate": _parse_sample_rate("SENTRY_PROFILES_SAMPLE_RATE"),
        "send_default_pii": False,
    }


def init_sentry() -> bool:
    options = sentry_options()
    if options is None:
        logger.info("SENTRY_DSN not provided; skipping Sentry initialization.")
        return False

    sentry_sdk.init(**options)
    logger.info(
        "Initialized Sentry (environment=%s, release=%s)",
        options["environment"],
        options["release"],
    )
    return True
