from celery import shared_task

from . import retention


@shared_task(name="market.tasks.purge_expired_listings")
def purge_expired_listings() -> int:
    return retention.purge_expired_listings()
