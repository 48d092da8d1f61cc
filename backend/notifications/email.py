"""Best-effort email side channel.

Emails are queued only after the surrounding transaction commits, so a
rolled-back state change never sends mail, and a broken broker never rolls
back a state change.
"""

from __future__ import annotations

import logging

from django.db import transaction

from souqify_backend import errors

logger = logging.getLogger("souqify.email")

TEMPLATES = (
    "verification_approved",
    "verification_rejected",
    "listing_approved",
    "listing_rejected",
)


def _enqueue(recipient: str, template: str, params: dict) -> None:
    from .tasks import send_templated_email

    try:
        send_templated_email.delay(recipient, template, params)
    except Exception as exc:
        failure = errors.DependencyError(f"email enqueue failed: {exc}")
        logger.warning(str(failure), extra={"template": template}, exc_info=True)


def schedule_email(recipient: str, template: str, params: dict | None = None) -> None:
    if template not in TEMPLATES:
        raise ValueError(f"Unknown email template: {template}")
    if not recipient:
        return

    params = dict(params or {})
    transaction.on_commit(lambda: _enqueue(recipient, template, params))
