import logging
import os

from celery import Celery
from celery.signals import worker_ready


os.environ.setdefault("DJANGO_SETTINGS_MODULE", "souqify_backend.settings")

celery_app = Celery("souqify_backend")
celery_app.config_from_object("django.conf:settings", namespace="CELERY")
celery_app.autodiscover_tasks()

logger = logging.getLogger("souqify.retention")


@worker_ready.connect
def sweep_on_startup(sender=None, **kwargs):
    # The beat schedule only fires after its first interval; sweep once eagerly.
    logger.info("worker ready, scheduling startup sweep")
    sender.app.send_task("market.tasks.purge_expired_listings")
