"""Shared-secret authentication for the trigger endpoints.

Two callers are recognised:

- **Admin** callers (manual export endpoints) send the ``AUTH_SECRET``
  in the ``x-rest-auth-secret`` header, or as ``Authorization: Bearer
  <secret>`` (a bare secret in ``Authorization`` is accepted too).
- **Scheduler** callers (cron endpoint) send ``Authorization: Bearer``
  with either ``CRON_SECRET`` or ``AUTH_SECRET``, or come from a GitHub
  Actions workflow that sets ``x-github-actions: true``.

On the ``dev`` stage every request is accepted.  All checks raise
``AuthorizationError`` so the trigger can answer 401 before anything is
queued.
"""

from __future__ import annotations

import hmac
import logging
from typing import TYPE_CHECKING

from snapshot_export.core.exceptions import AuthorizationError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from snapshot_export.core.config import ExportConfig

logger = logging.getLogger("snapshot_export.core.auth")

ADMIN_SECRET_HEADER = "x-rest-auth-secret"
GITHUB_ACTIONS_HEADER = "x-github-actions"
_BEARER_PREFIX = "Bearer "


def _header(headers: Mapping[str, str], name: str) -> str:
    value = headers.get(name)
    if value is None:
        value = headers.get(name.title())
    return str(value or "")


def _matches(candidate: str, secret: str) -> bool:
    if not candidate or not secret:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), secret.encode("utf-8"))


def _bearer_token(headers: Mapping[str, str]) -> str:
    auth_header = _header(headers, "authorization")
    if auth_header.startswith(_BEARER_PREFIX):
        return auth_header[len(_BEARER_PREFIX) :]
    return auth_header


def check_admin_auth(headers: Mapping[str, str], config: ExportConfig) -> None:
    """Authorise a manual export request.

    Raises:
        AuthorizationError: If authentication is not configured or the
            request carries no matching secret.
    """
    if config.is_dev:
        return

    if not config.auth_secret:
        logger.error("AUTH_SECRET environment variable not configured")
        msg = "Authentication not configured"
        raise AuthorizationError(msg, code="AUTH_NOT_CONFIGURED")

    if _matches(_header(headers, ADMIN_SECRET_HEADER), config.auth_secret):
        return

    if _matches(_bearer_token(headers), config.auth_secret):
        return

    msg = "Invalid or missing admin secret"
    raise AuthorizationError(msg)


def check_cron_auth(headers: Mapping[str, str], config: ExportConfig) -> None:
    """Authorise a scheduled export request.

    Raises:
        AuthorizationError: If no accepted scheduler credential is present.
    """
    if config.is_dev:
        return

    auth_header = _header(headers, "authorization")
    if auth_header.startswith(_BEARER_PREFIX):
        token = auth_header[len(_BEARER_PREFIX) :]
        if _matches(token, config.cron_secret) or _matches(token, config.auth_secret):
            return

    if _header(headers, GITHUB_ACTIONS_HEADER).lower() == "true":
        return

    msg = "Invalid or missing scheduler credentials"
    raise AuthorizationError(msg)
