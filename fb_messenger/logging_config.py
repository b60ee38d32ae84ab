"""Centralized logging configuration with Pydantic Logfire integration."""

import logging
from typing import Any

import httpx
import logfire
from fastapi import FastAPI

from fb_messenger.config import get_settings
from fb_messenger.constants import ACCESS_TOKEN_PARAM


def setup_logfire(app: FastAPI) -> None:
    """
    Initialize and configure Pydantic Logfire for observability.

    Sets up:
    - FastAPI instrumentation (webhook request tracing)
    - Pydantic instrumentation (envelope and event validation)
    - httpx instrumentation (Graph API calls)
    - Environment-aware stdlib logging format
    """
    settings = get_settings()

    logfire_config: dict[str, Any] = {
        "environment": settings.env,
        "send_to_logfire": "if-token-present",
    }
    if settings.logfire_token:
        logfire_config["token"] = settings.logfire_token

    logfire.configure(**logfire_config)

    logfire.instrument_fastapi(app)
    logfire.instrument_pydantic()
    logfire.instrument_httpx()

    if settings.env == "local":
        # Local: Console formatting for development
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
    else:
        # Production: Logfire handles structured formatting
        logging.basicConfig(level=logging.INFO, format="%(message)s")


def mask_pii(value: str | None, mask_char: str = "*") -> str:
    """
    Mask potentially sensitive data in logs.

    Args:
        value: Value to mask
        mask_char: Character to use for masking

    Returns:
        Masked string
    """
    if not value:
        return ""

    if len(value) <= 4:
        return mask_char * len(value)

    # Show first 2 and last 2 characters, mask the rest
    return f"{value[:2]}{mask_char * (len(value) - 4)}{value[-2:]}"


def redact_url(url: str) -> str:
    """Mask the access token in a URL's query string, keeping the rest."""
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL:
        return url
    token = parsed.params.get(ACCESS_TOKEN_PARAM)
    if token is None:
        return url
    return str(parsed.copy_set_param(ACCESS_TOKEN_PARAM, mask_pii(token)))
