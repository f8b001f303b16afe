from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from .config import get_usage_tracking_enabled
from .errors import ValidationError
from .models import SkillUsageEvent

logger = logging.getLogger("contentontology.usage")

DEFAULT_TOOL_CATEGORY = "cms_ontology"
ANONYMOUS_CLIENT = "anonymous"
CLIENT_HASH_LENGTH = 32


def hash_client(client_ip: Optional[str]) -> str:
    """
    Return a stable anonymous identifier for a client address.
    """
    identifier = client_ip or ANONYMOUS_CLIENT
    return hashlib.sha256(identifier.encode("utf-8")).hexdigest()[:CLIENT_HASH_LENGTH]


def _metadata_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True)


def record_skill_usage(
    db: Session,
    event: Dict[str, Any],
    client_ip: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Store one tool invocation reported by the assistant plugin.

    This is best-effort: a store failure is logged and reported in the
    returned payload instead of failing the request. Missing tool_name or
    status is still a caller error.
    """
    if not get_usage_tracking_enabled():
        return {"success": False, "error": "Usage tracking disabled"}

    tool_name = (event.get("tool_name") or "").strip()
    status = (event.get("status") or "").strip()
    if not tool_name or not status:
        raise ValidationError("tool_name and status are required")

    try:
        db.add(
            SkillUsageEvent(
                user_id_hash=hash_client(client_ip),
                tool_name=tool_name,
                tool_category=event.get("tool_category") or DEFAULT_TOOL_CATEGORY,
                duration_ms=event.get("duration_ms"),
                status=status,
                error_type=event.get("error_type") or None,
                error_message=event.get("error_message") or None,
                event_metadata=_metadata_text(event.get("metadata")),
            )
        )
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.warning("Failed to track skill usage event", exc_info=True)
        return {"success": False, "error": str(exc)}

    return {"success": True, "message": "Event tracked"}


__all__ = ["hash_client", "record_skill_usage"]
