import json
import logging
from datetime import datetime, timezone


class JsonFormatter(logging.Formatter):
    """One JSON object per line for request, domain and ops logs."""

    extra_keys = (
        "request_id",
        "user_id",
        "client_ip",
        "method",
        "path",
        "view",
        "status_code",
        "duration_ms",
        "listing_id",
        "conversation_id",
        "message_id",
        "notification_id",
        "verification_status",
        "action",
        "template",
        "purged",
        "categories",
        "event",
    )

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in self.extra_keys:
            if hasattr(record, key):
                payload[key] = getattr(record, key)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)
