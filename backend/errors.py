# errors.py — TaskBoard error taxonomy with TB-DOMAIN-NUMBER codes
from typing import Optional

# ============================================================
# ERROR CODE CATALOGUE
# TB-{DOMAIN}-{NUMBER}
# Domains: VAL, TASK, DOC, DB
# ============================================================

ERROR_CATALOGUE = {
    # Validation
    "TB-VAL-001": {"message": "Required field missing or blank", "http_status": 400},

    # Tasks
    "TB-TASK-001": {"message": "Task not found", "http_status": 404},
    "TB-TASK-002": {"message": "Archived task not found", "http_status": 404},

    # Document links
    "TB-DOC-001": {"message": "No linked documents", "http_status": 404},
    "TB-DOC-002": {"message": "Document not linked", "http_status": 404},
    "TB-DOC-003": {"message": "Document already linked", "http_status": 409},
    "TB-DOC-004": {"message": "Document not found", "http_status": 404},

    # Storage
    "TB-DB-001": {"message": "Task storage unavailable", "http_status": 503},
}


class TaskBoardError(Exception):
    """Base class for every error the repository and store raise."""

    code = "TB-SYS-001"
    http_status = 500

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        if code is not None:
            self.code = code
        entry = ERROR_CATALOGUE.get(self.code, {})
        self.message = message or entry.get("message", "Internal server error")
        self.http_status = entry.get("http_status", self.http_status)
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class ValidationError(TaskBoardError):
    code = "TB-VAL-001"

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"{field.capitalize()} is required")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "field": self.field}


class NotFound(TaskBoardError):
    code = "TB-TASK-001"

    def __init__(self, resource: str = "task", message: Optional[str] = None, code: Optional[str] = None):
        self.resource = resource
        super().__init__(message, code=code)


class Conflict(TaskBoardError):
    code = "TB-DOC-003"


class StorageUnavailable(TaskBoardError):
    code = "TB-DB-001"
