# repository.py — Task lifecycle, activity trail and derived views over the snapshot
import logging
from datetime import datetime, time, timezone
from typing import Any, Callable, Dict, List, Optional

from database import JsonStore
from errors import ValidationError, NotFound, Conflict
from models import (
    TaskStatus, TaskPriority, ActivityAction,
    KNOWN_STATUSES, PRIORITY_RANK, DEFAULT_PRIORITY_RANK, STATS_KEYS,
    IMMUTABLE_TASK_FIELDS, NON_NULLABLE_TASK_FIELDS, COMMENT_PREVIEW_CHARS,
    utcnow, new_uuid, isoformat,
)

logger = logging.getLogger("taskboard.repository")

DEFAULT_ACTOR = "bom"
SYSTEM_ACTOR = "system"
DEFAULT_PROJECT = "general"

Record = Dict[str, Any]


# ============================================================
# HELPERS
# ============================================================

def _parse_ts(value: Any) -> Optional[datetime]:
    """Parse an ISO date or datetime string; None when absent or malformed."""
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def is_overdue(task: Record, day_start: datetime) -> bool:
    """True when due_date falls strictly before ``day_start`` (local, naive)."""
    due = _parse_ts(task.get("due_date"))
    if due is None:
        return False
    if due.tzinfo is not None:
        due = due.astimezone().replace(tzinfo=None)
    return due < day_start


def _updated_epoch(task: Record) -> float:
    ts = _parse_ts(task.get("updated_at"))
    if ts is None:
        return 0.0
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.timestamp()


def sort_tasks(tasks: List[Record], now: datetime) -> List[Record]:
    """Overdue first, then priority rank, then most recently updated, then id."""
    day_start = datetime.combine(now.astimezone().date(), time.min)

    def key(task: Record):
        return (
            0 if is_overdue(task, day_start) else 1,
            PRIORITY_RANK.get(task.get("priority"), DEFAULT_PRIORITY_RANK),
            -_updated_epoch(task),
            str(task.get("id", "")),
        )

    return sorted(tasks, key=key)


def _find(records: List[Record], record_id: str) -> int:
    for i, record in enumerate(records):
        if record.get("id") == record_id:
            return i
    return -1


# ============================================================
# REPOSITORY
# ============================================================

class TaskRepository:
    """Stateless facade over the snapshot store.

    Each call loads a fresh document; each mutation runs inside a store
    transaction and, once the snapshot is saved, notifies the hub (if any).
    """

    def __init__(
        self,
        store: JsonStore,
        hub=None,
        default_actor: str = DEFAULT_ACTOR,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.hub = hub
        self.default_actor = default_actor
        self._clock = clock

    # -------------------- internals --------------------

    def _now(self) -> str:
        return isoformat(self._clock())

    def _next_activity_id(self, data: Record) -> int:
        now_ms = int(self._clock().timestamp() * 1000)
        last = max(
            (a["id"] for a in data["activity"]
             if isinstance(a.get("id"), int) and not isinstance(a.get("id"), bool)),
            default=0,
        )
        return max(now_ms, last + 1)

    def _record_activity(
        self, data: Record, task_id: str, action: ActivityAction, by: str, note: str,
        created_at: str, **fields,
    ) -> Record:
        """Append one activity entry to the in-memory snapshot"""
        entry = {
            "id": self._next_activity_id(data),
            "task_id": task_id,
            "action": action.value,
            **fields,
            "by": by,
            "note": note,
            "created_at": created_at,
        }
        data["activity"].append(entry)
        return entry

    async def _notify(self, kind: str, task: Record, **extra) -> None:
        if self.hub is not None:
            await self.hub.notify_mutation(kind, task, **extra)

    def _warn_unknown_status(self, status: Any) -> None:
        if status not in KNOWN_STATUSES:
            logger.warning(f"Task status {status!r} is not one of {sorted(KNOWN_STATUSES)}")

    # -------------------- reads --------------------

    async def list_tasks(self, project: Optional[str] = None, status: Optional[str] = None) -> List[Record]:
        data = await self.store.load()
        tasks = data["tasks"]
        if project:
            tasks = [t for t in tasks if t.get("project") == project]
        if status:
            tasks = [t for t in tasks if t.get("status") == status]
        return sort_tasks(tasks, self._clock())

    async def list_archived(self) -> List[Record]:
        data = await self.store.load()
        return data["archived"]

    async def get_task(self, task_id: str) -> Record:
        data = await self.store.load()
        index = _find(data["tasks"], task_id)
        if index == -1:
            raise NotFound("task")
        task = data["tasks"][index]
        return {
            **task,
            "activity": [a for a in data["activity"] if a.get("task_id") == task_id],
            "comments": [c for c in data["comments"] if c.get("task_id") == task_id],
            "linkedDocuments": data["taskDocuments"].get(task_id, []),
        }

    async def list_comments(self, task_id: str) -> List[Record]:
        data = await self.store.load()
        return [c for c in data["comments"] if c.get("task_id") == task_id]

    async def list_activity(self, task_id: str) -> List[Record]:
        data = await self.store.load()
        return [a for a in data["activity"] if a.get("task_id") == task_id]

    async def stats(self) -> Dict[str, int]:
        data = await self.store.load()
        counts = {key: 0 for key in STATS_KEYS.values()}
        for task in data["tasks"]:
            key = STATS_KEYS.get(task.get("status"))
            if key:
                counts[key] += 1
        return {"total": len(data["tasks"]), **counts, "archived": len(data["archived"])}

    async def document_index(self) -> Dict[str, Record]:
        """Map each linked document path to the tasks that reference it."""
        data = await self.store.load()
        every_task = {t.get("id"): t for t in data["tasks"] + data["archived"]}
        result: Dict[str, Record] = {}
        for task_id, docs in data["taskDocuments"].items():
            task = every_task.get(task_id)
            for doc in docs:
                entry = result.setdefault(doc["path"], {"count": 0, "tasks": []})
                if task is not None:
                    entry["count"] += 1
                    entry["tasks"].append({"id": task_id, "title": task.get("title"), "status": task.get("status")})
        return result

    # -------------------- task lifecycle --------------------

    async def create_task(self, fields: Record, by: Optional[str] = None) -> Record:
        title = fields.get("title")
        if _is_blank(title):
            raise ValidationError("title", "Title is required")

        created_by = fields.get("created_by") or by or self.default_actor
        status = fields.get("status") or TaskStatus.BACKLOG.value
        self._warn_unknown_status(status)

        async with self.store.transaction() as data:
            now = self._now()
            task = {
                "id": new_uuid(),
                "title": title,
                "description": fields.get("description") or "",
                "status": status,
                "priority": fields.get("priority") or TaskPriority.NORMAL.value,
                "project": fields.get("project") or DEFAULT_PROJECT,
                "assignee": fields.get("assignee") or self.default_actor,
                "due_date": fields.get("due_date") or None,
                "created_at": now,
                "updated_at": now,
                "created_by": created_by,
            }
            data["tasks"].append(task)
            self._record_activity(
                data, task["id"], ActivityAction.CREATED, created_by,
                f"Task created by {created_by}", now,
            )

        logger.info(f"Task created: {task['id'][:8]} {task['title']!r} by {created_by}")
        await self._notify("created", task)
        return task

    async def update_task(self, task_id: str, changes: Record, by: Optional[str] = None) -> Record:
        changes = {
            k: v for k, v in changes.items()
            if k not in IMMUTABLE_TASK_FIELDS and not (v is None and k in NON_NULLABLE_TASK_FIELDS)
        }
        if "title" in changes and _is_blank(changes["title"]):
            raise ValidationError("title", "Title cannot be blank")
        actor = by or SYSTEM_ACTOR

        async with self.store.transaction() as data:
            index = _find(data["tasks"], task_id)
            if index == -1:
                raise NotFound("task")
            task = data["tasks"][index]
            now = self._now()

            new_status = changes.get("status")
            if new_status and new_status != task.get("status"):
                self._warn_unknown_status(new_status)
                self._record_activity(
                    data, task_id, ActivityAction.MOVED, actor,
                    f"Moved from {task.get('status')} to {new_status}", now,
                    from_status=task.get("status"), to_status=new_status,
                )

            if "due_date" in changes and changes["due_date"] != task.get("due_date"):
                due = changes["due_date"]
                self._record_activity(
                    data, task_id, ActivityAction.UPDATED, actor,
                    f"Due date set to {due}" if due else "Due date removed", now,
                )

            task.update(changes)
            task["updated_at"] = now

        await self._notify("updated", task)
        return task

    async def archive_task(self, task_id: str, by: Optional[str] = None) -> Record:
        async with self.store.transaction() as data:
            index = _find(data["tasks"], task_id)
            if index == -1:
                raise NotFound("task")
            task = data["tasks"].pop(index)
            now = self._now()
            task["archived_at"] = now
            task["updated_at"] = now
            data["archived"].append(task)
            self._record_activity(data, task_id, ActivityAction.ARCHIVED, by or SYSTEM_ACTOR, "Task archived", now)

        logger.info(f"Task archived: {task_id[:8]}")
        await self._notify("archived", task)
        return task

    async def restore_task(self, task_id: str, by: Optional[str] = None) -> Record:
        async with self.store.transaction() as data:
            index = _find(data["archived"], task_id)
            if index == -1:
                raise NotFound("archived task", code="TB-TASK-002")
            task = data["archived"].pop(index)
            now = self._now()
            task.pop("archived_at", None)
            task["updated_at"] = now
            data["tasks"].append(task)
            self._record_activity(
                data, task_id, ActivityAction.RESTORED, by or SYSTEM_ACTOR, "Task restored from archive", now,
            )

        logger.info(f"Task restored: {task_id[:8]}")
        await self._notify("restored", task)
        return task

    async def delete_task(self, task_id: str) -> Record:
        """Permanently remove a task and everything that references it."""
        async with self.store.transaction() as data:
            for collection in ("tasks", "archived"):
                index = _find(data[collection], task_id)
                if index != -1:
                    task = data[collection].pop(index)
                    break
            else:
                raise NotFound("task")
            data["activity"] = [a for a in data["activity"] if a.get("task_id") != task_id]
            data["comments"] = [c for c in data["comments"] if c.get("task_id") != task_id]
            data["taskDocuments"].pop(task_id, None)

        logger.info(f"Task deleted: {task_id[:8]}")
        await self._notify("deleted", {"id": task_id})
        return task

    # -------------------- comments --------------------

    async def add_comment(self, task_id: str, text: Optional[str], by: Optional[str] = None) -> Record:
        author = by or self.default_actor
        async with self.store.transaction() as data:
            if _find(data["tasks"], task_id) == -1:
                raise NotFound("task")
            if _is_blank(text):
                raise ValidationError("text", "Comment text is required")
            now = self._now()
            comment = {
                "id": new_uuid(),
                "task_id": task_id,
                "text": text,
                "by": author,
                "created_at": now,
            }
            data["comments"].append(comment)
            self._record_activity(
                data, task_id, ActivityAction.COMMENTED, author,
                f"Comment: {text[:COMMENT_PREVIEW_CHARS]}", now,
            )

        await self._notify("commented", {"id": task_id}, comment=comment)
        return comment

    # -------------------- document links --------------------

    async def link_document(
        self, task_id: str, path: Optional[str], title: Optional[str] = None,
        type: Optional[str] = None, by: Optional[str] = None,
    ) -> Record:
        async with self.store.transaction() as data:
            index = _find(data["tasks"], task_id)
            if index == -1:
                raise NotFound("task")
            if _is_blank(path):
                raise ValidationError("path", "Document path is required")
            links = data["taskDocuments"].setdefault(task_id, [])
            if any(d.get("path") == path for d in links):
                raise Conflict()
            now = self._now()
            link = {"path": path, "title": title, "type": type, "linkedAt": now}
            links.append(link)
            self._record_activity(
                data, task_id, ActivityAction.LINKED, by or SYSTEM_ACTOR,
                f"Linked document: {title or path}", now,
            )
            task = data["tasks"][index]

        await self._notify("updated", task, change="linked", document=link)
        return link

    async def unlink_document(self, task_id: str, path: str, by: Optional[str] = None) -> Record:
        async with self.store.transaction() as data:
            index = _find(data["tasks"], task_id)
            if index == -1:
                raise NotFound("task")
            links = data["taskDocuments"].get(task_id)
            if not links:
                raise NotFound("document", code="TB-DOC-001")
            position = next((i for i, d in enumerate(links) if d.get("path") == path), -1)
            if position == -1:
                raise NotFound("document", code="TB-DOC-002")
            removed = links.pop(position)
            self._record_activity(
                data, task_id, ActivityAction.UNLINKED, by or SYSTEM_ACTOR,
                f"Unlinked document: {removed.get('title') or removed.get('path')}", self._now(),
            )
            task = data["tasks"][index]

        await self._notify("updated", task, change="unlinked", document=removed)
        return removed
