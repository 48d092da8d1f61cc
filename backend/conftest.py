import pytest
from django.core.cache import cache

from realtime.push import set_push_channel


@pytest.fixture(autouse=True)
def _isolated_backend(settings, tmp_path):
    # Throttle counters live in the cache; uploads go to a throwaway dir.
    cache.clear()
    settings.MEDIA_ROOT = str(tmp_path / "media")
    settings.EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
    settings.CELERY_TASK_ALWAYS_EAGER = True
    set_push_channel(None)
    yield
    set_push_channel(None)
    cache.clear()
