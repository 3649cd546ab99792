# activity.py — Append-only audit trail writer
# One recorder per use-case invocation; a second record() call is a bug.

import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from models import Activity, ActivityAction, EntityType, as_utc
from repositories import ActivityRepository

logger = logging.getLogger("kanban.activity")


def json_safe(value: Any) -> Any:
    """Convert a value to something the JSON column accepts"""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [json_safe(v) for v in value]
    return value


def diff_fields(entity: Any, changes: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    """Build a ``{field: {"from": old, "to": new}}`` diff for the fields that changed.

    Only keys present in ``changes`` are considered; ``entity`` is read for the
    old value. Nothing is written to the entity here.
    """
    diff = {}
    for field in fields:
        if field not in changes:
            continue
        old, new = as_utc(getattr(entity, field)), as_utc(changes[field])
        if old != new:
            diff[field] = {"from": json_safe(old), "to": json_safe(new)}
    return diff


class ActivityRecorder:
    def __init__(self, activities: ActivityRepository):
        self.activities = activities
        self._recorded: Optional[Activity] = None

    @property
    def recorded(self) -> Optional[Activity]:
        return self._recorded

    async def record(
        self,
        action: ActivityAction,
        entity_type: EntityType,
        entity_id: str,
        entity_title: str,
        user_id: str,
        board_id: str,
        card_id: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Activity:
        if self._recorded is not None:
            raise RuntimeError("Activity already recorded for this operation")

        activity = Activity(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            entity_title=entity_title,
            user_id=user_id,
            board_id=board_id,
            card_id=card_id,
            data=json_safe(data) if data else None,
        )
        await self.activities.create(activity)
        self._recorded = activity

        logger.debug(
            f"{action.value} {entity_type.value} {entity_id} by {user_id} on board {board_id}"
        )
        return activity
