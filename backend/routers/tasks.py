# routers/tasks.py — Task board REST surface
import os
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel

from broadcast import BroadcastHub
from database import JsonStore, get_store
from repository import TaskRepository

router = APIRouter(prefix="/api", tags=["Tasks"])

DEFAULT_ACTOR = os.getenv("TASKBOARD_DEFAULT_ACTOR", "bom")


# ============================================================
# SCHEMAS
# ============================================================

# Required fields stay Optional here so blank and missing values reach the
# repository and fail with the same field-level 400.

class TaskCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    project: Optional[str] = None
    assignee: Optional[str] = None
    due_date: Optional[str] = None
    created_by: Optional[str] = None


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    project: Optional[str] = None
    assignee: Optional[str] = None
    due_date: Optional[str] = None
    updated_by: Optional[str] = None


class ActorBody(BaseModel):
    by: Optional[str] = None


class CommentCreate(BaseModel):
    text: Optional[str] = None
    by: Optional[str] = None


class DocumentLinkCreate(BaseModel):
    path: Optional[str] = None
    title: Optional[str] = None
    type: Optional[str] = None
    by: Optional[str] = None


# ============================================================
# DEPENDENCIES
# ============================================================

def get_hub(request: Request) -> BroadcastHub:
    return request.app.state.hub


def get_repository(
    store: JsonStore = Depends(get_store),
    hub: BroadcastHub = Depends(get_hub),
) -> TaskRepository:
    return TaskRepository(store, hub=hub, default_actor=DEFAULT_ACTOR)


# ============================================================
# TASKS
# ============================================================

@router.get("/tasks")
async def list_tasks(
    project: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    repo: TaskRepository = Depends(get_repository),
):
    """List active tasks: overdue first, then priority, then most recently updated"""
    return await repo.list_tasks(project=project, status=status)


@router.get("/tasks/{task_id}")
async def get_task(task_id: str, repo: TaskRepository = Depends(get_repository)):
    return await repo.get_task(task_id)


@router.post("/tasks", status_code=201)
async def create_task(data: TaskCreate, repo: TaskRepository = Depends(get_repository)):
    return await repo.create_task(data.model_dump(exclude_none=True))


@router.patch("/tasks/{task_id}")
async def update_task(task_id: str, data: TaskUpdate, repo: TaskRepository = Depends(get_repository)):
    changes = data.model_dump(exclude_unset=True)
    actor = changes.pop("updated_by", None)
    return await repo.update_task(task_id, changes, by=actor)


@router.patch("/tasks/{task_id}/archive")
async def archive_task(
    task_id: str,
    data: Optional[ActorBody] = None,
    repo: TaskRepository = Depends(get_repository),
):
    return await repo.archive_task(task_id, by=data.by if data else None)


@router.post("/tasks/{task_id}/restore")
async def restore_task(
    task_id: str,
    data: Optional[ActorBody] = None,
    repo: TaskRepository = Depends(get_repository),
):
    return await repo.restore_task(task_id, by=data.by if data else None)


@router.delete("/tasks/{task_id}")
async def delete_task(task_id: str, repo: TaskRepository = Depends(get_repository)):
    """Permanently delete an active or archived task with its history"""
    await repo.delete_task(task_id)
    return {"success": True}


@router.get("/archived")
async def list_archived(repo: TaskRepository = Depends(get_repository)):
    return await repo.list_archived()


@router.get("/stats")
async def stats(repo: TaskRepository = Depends(get_repository)):
    return await repo.stats()


# ============================================================
# COMMENTS & ACTIVITY
# ============================================================

@router.post("/tasks/{task_id}/comments", status_code=201)
async def add_comment(task_id: str, data: CommentCreate, repo: TaskRepository = Depends(get_repository)):
    return await repo.add_comment(task_id, data.text, by=data.by)


@router.get("/tasks/{task_id}/comments")
async def list_comments(task_id: str, repo: TaskRepository = Depends(get_repository)):
    return await repo.list_comments(task_id)


@router.get("/tasks/{task_id}/activity")
async def list_activity(task_id: str, repo: TaskRepository = Depends(get_repository)):
    return await repo.list_activity(task_id)


# ============================================================
# DOCUMENT LINKS
# ============================================================

@router.post("/tasks/{task_id}/documents", status_code=201)
async def link_document(task_id: str, data: DocumentLinkCreate, repo: TaskRepository = Depends(get_repository)):
    return await repo.link_document(task_id, data.path, title=data.title, type=data.type, by=data.by)


@router.delete("/tasks/{task_id}/documents/{doc_path:path}")
async def unlink_document(
    task_id: str,
    doc_path: str,
    by: Optional[str] = Query(None),
    repo: TaskRepository = Depends(get_repository),
):
    await repo.unlink_document(task_id, doc_path, by=by)
    return {"success": True}


@router.get("/task-documents")
async def task_documents(repo: TaskRepository = Depends(get_repository)):
    """Reverse index: document path -> tasks linking it"""
    return await repo.document_index()
