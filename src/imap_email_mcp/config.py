"""
Configuration
=============

Account and server settings read once from the environment at startup and
passed by reference into the server and its clients.

Credentials are held in memory only and are never logged.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from imap_email_mcp.contracts import ConfigurationError

REQUIRED_VARIABLES = ("IMAP_USER", "IMAP_PASSWORD", "IMAP_HOST")


@dataclass(frozen=True)
class ImapSettings:
    """Mailbox store connection settings."""

    user: str
    password: str = field(repr=False)
    host: str
    port: int = 993
    use_tls: bool = True
    auth_timeout_ms: int = 10000
    tls_verify: bool = True

    @property
    def timeout_seconds(self) -> float:
        return self.auth_timeout_ms / 1000


@dataclass(frozen=True)
class SmtpSettings:
    """Relay settings. ``host`` is None when sending is not configured."""

    host: str | None
    user: str
    password: str = field(repr=False)
    port: int = 465
    secure: bool = True


@dataclass(frozen=True)
class ServerConfig:
    imap: ImapSettings
    smtp: SmtpSettings
    log_level: str = "INFO"


def _flag(environ: Mapping[str, str], key: str) -> bool:
    # Only the literal "false" turns a switch off.
    return environ.get(key) != "false"


def _integer(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from e


def load_config(environ: Mapping[str, str] | None = None) -> ServerConfig:
    """
    Build the server configuration from environment variables.

    PRE: IMAP_USER, IMAP_PASSWORD and IMAP_HOST are set and non-empty

    POST: SMTP host, user and password fall back to their IMAP counterparts

    ERRORS:
    - ConfigurationError: a required variable is missing or a number is malformed
    """
    if environ is None:
        environ = os.environ

    missing = [key for key in REQUIRED_VARIABLES if not environ.get(key)]
    if missing:
        raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

    imap = ImapSettings(
        user=environ["IMAP_USER"],
        password=environ["IMAP_PASSWORD"],
        host=environ["IMAP_HOST"],
        port=_integer(environ, "IMAP_PORT", 993),
        use_tls=_flag(environ, "IMAP_TLS"),
        auth_timeout_ms=_integer(environ, "IMAP_AUTH_TIMEOUT", 10000),
        tls_verify=_flag(environ, "IMAP_TLS_REJECT_UNAUTHORIZED"),
    )
    smtp = SmtpSettings(
        host=environ.get("SMTP_HOST") or imap.host,
        port=_integer(environ, "SMTP_PORT", 465),
        secure=_flag(environ, "SMTP_SECURE"),
        user=environ.get("SMTP_USER") or imap.user,
        password=environ.get("SMTP_PASSWORD") or imap.password,
    )
    log_level = environ.get("LOG_LEVEL", "INFO").upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigurationError(f"LOG_LEVEL is not a logging level: {log_level!r}")

    return ServerConfig(imap=imap, smtp=smtp, log_level=log_level)
