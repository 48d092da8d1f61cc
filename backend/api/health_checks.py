from __future__ import annotations

from dataclasses import dataclass

from django.conf import settings
from django.core.files.storage import default_storage
from django.db import connections

from market.retention import backlog
from realtime.push import get_push_channel


@dataclass(frozen=True)
class HealthStatus:
    ok: bool
    payload: dict


def _check_db() -> HealthStatus:
    try:
        with connections["default"].cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        return HealthStatus(ok=True, payload={"ok": True})
    except Exception as exc:
        return HealthStatus(ok=False, payload={"ok": False, "error": str(exc)})


def _check_migrations() -> HealthStatus:
    # Loads the whole migration graph; opt-in only.
    try:
        from django.db.migrations.executor import MigrationExecutor

        executor = MigrationExecutor(connections["default"])
        plan = executor.migration_plan(executor.loader.graph.leaf_nodes())
        pending = len(plan)
        return HealthStatus(ok=pending == 0, payload={"ok": pending == 0, "pending": pending})
    except Exception as exc:
        return HealthStatus(ok=False, payload={"ok": False, "error": str(exc)})


def _check_storage() -> HealthStatus:
    try:
        backend = default_storage.__class__
        return HealthStatus(ok=True, payload={"ok": True, "backend": f"{backend.__module__}.{backend.__name__}"})
    except Exception as exc:
        return HealthStatus(ok=False, payload={"ok": False, "error": str(exc)})


def _check_retention() -> HealthStatus:
    # A backlog means the sweeper is behind, not that the service is down.
    try:
        return HealthStatus(ok=True, payload={"ok": True, "backlog": backlog()})
    except Exception as exc:
        return HealthStatus(ok=False, payload={"ok": False, "error": str(exc)})


def _check_realtime() -> HealthStatus:
    try:
        registry = get_push_channel().registry
        return HealthStatus(
            ok=True,
            payload={
                "ok": True,
                "connections": registry.connection_count(),
                "online_users": len(registry.online_user_ids()),
            },
        )
    except Exception as exc:
        return HealthStatus(ok=False, payload={"ok": False, "error": str(exc)})


def build_health_payload() -> tuple[dict, bool]:
    """Return (payload, overall_ok)."""

    db = _check_db()
    payload: dict = {"db": db.payload}
    overall_ok = db.ok

    if settings.HEALTH_CHECK_MIGRATIONS:
        migrations = _check_migrations()
        payload["migrations"] = migrations.payload
        overall_ok = overall_ok and migrations.ok
    else:
        payload["migrations"] = {"skipped": True}

    if settings.HEALTH_CHECK_STORAGE:
        storage = _check_storage()
        payload["storage"] = storage.payload
        overall_ok = overall_ok and storage.ok
    else:
        payload["storage"] = {"skipped": True}

    payload["retention"] = _check_retention().payload if db.ok else {"skipped": True}
    payload["realtime"] = _check_realtime().payload

    payload["status"] = "ok" if overall_ok else "degraded"
    return payload, overall_ok
