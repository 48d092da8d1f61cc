from __future__ import annotations

import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string

from souqify_backend import errors

logger = logging.getLogger("souqify.email")


def render_email(template: str, params: dict) -> tuple[str, str]:
    context = {"frontend_url": settings.FRONTEND_URL, **params}
    subject = render_to_string(f"notifications/email/{template}_subject.txt", context).strip()
    body = render_to_string(f"notifications/email/{template}.txt", context)
    return subject, body


@shared_task(name="notifications.tasks.send_templated_email")
def send_templated_email(recipient: str, template: str, params: dict) -> bool:
    try:
        subject, body = render_email(template, params)
        send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [recipient])
    except Exception as exc:
        failure = errors.DependencyError(f"email send failed: {exc}")
        logger.error(str(failure), extra={"template": template}, exc_info=True)
        return False

    logger.info("email sent", extra={"template": template})
    return True
