# models.py — Record vocabulary for the TaskBoard snapshot
# The snapshot is a single JSON document; records are plain dicts so that
# unknown keys written by older clients survive a load/save cycle.

import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Any, Dict


def utcnow():
    return datetime.now(timezone.utc)


def new_uuid():
    return str(uuid.uuid4())


def isoformat(dt: datetime) -> str:
    return dt.isoformat()


# ============================================================
# ENUMS
# ============================================================

class TaskStatus(str, PyEnum):
    BACKLOG = "backlog"
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    DONE = "done"


class TaskPriority(str, PyEnum):
    URGENT = "urgent"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


class ActivityAction(str, PyEnum):
    CREATED = "created"
    MOVED = "moved"
    UPDATED = "updated"
    ARCHIVED = "archived"
    RESTORED = "restored"
    COMMENTED = "commented"
    LINKED = "linked"
    UNLINKED = "unlinked"


KNOWN_STATUSES = {s.value for s in TaskStatus}

PRIORITY_RANK = {
    TaskPriority.URGENT.value: 1,
    TaskPriority.HIGH.value: 2,
    TaskPriority.NORMAL.value: 3,
    TaskPriority.LOW.value: 4,
}
DEFAULT_PRIORITY_RANK = PRIORITY_RANK[TaskPriority.NORMAL.value]

# Stats keys use underscores; "in-progress" is not a valid identifier
STATS_KEYS = {
    TaskStatus.BACKLOG.value: "backlog",
    TaskStatus.TODO.value: "todo",
    TaskStatus.IN_PROGRESS.value: "in_progress",
    TaskStatus.REVIEW.value: "review",
    TaskStatus.DONE.value: "done",
}

# Keys a partial update may never overwrite
IMMUTABLE_TASK_FIELDS = frozenset({"id", "created_at", "created_by", "archived_at"})

# Keys that always carry a value; an explicit null in a partial update is ignored
NON_NULLABLE_TASK_FIELDS = frozenset({"status", "priority", "project"})

COMMENT_PREVIEW_CHARS = 100


# ============================================================
# SNAPSHOT
# ============================================================

COLLECTIONS = ("tasks", "activity", "archived", "comments")


def empty_document() -> Dict[str, Any]:
    """The snapshot written when no data file exists yet."""
    return {
        "tasks": [],
        "activity": [],
        "archived": [],
        "comments": [],
        "taskDocuments": {},
    }


def backfill_document(data: Dict[str, Any]) -> Dict[str, Any]:
    """Fill in collections missing from snapshots written by older versions."""
    for key in COLLECTIONS:
        if data.get(key) is None:
            data[key] = []
    if data.get("taskDocuments") is None:
        data["taskDocuments"] = {}
    return data
