#!/usr/bin/env python3
"""
TaskBoard — Sample Data Generator
Writes a complete snapshot (tasks, archive, activity, comments, document
links) in the format the API server loads. Used for demos and UAT.

Usage:
    python scripts/generate-sample-data.py
    python scripts/generate-sample-data.py --tasks 60 --archived 10 --output data.json
"""

import json
import random
import uuid
import argparse
from datetime import datetime, timedelta, timezone
from typing import Any


# ── Configuration ───────────────────────────────────────────

STATUSES = ["backlog", "todo", "in-progress", "review", "done"]
PRIORITIES = ["urgent", "high", "normal", "normal", "normal", "low"]
PROJECTS = ["general", "website", "infra", "research", "ops"]
PEOPLE = ["bom", "alice", "cloud", "tifa", "yuna"]

TITLE_VERBS = ["Fix", "Write", "Review", "Migrate", "Design", "Document", "Benchmark", "Refactor"]
TITLE_OBJECTS = [
    "login flow", "nightly backup job", "landing page copy", "CI pipeline",
    "release notes", "search indexer", "metrics dashboard", "onboarding guide",
    "rate limiter", "cron schedule", "model fallback config", "archive export",
]
COMMENTS = [
    "Started on this, first pass looks good.",
    "Blocked on review from the infra side.",
    "Can we split this into two smaller tasks?",
    "Pushed a draft, feedback welcome.",
    "Done locally, waiting on deploy.",
]
DOCUMENTS = [
    {"path": "concepts/task-lifecycle.md", "title": "Task Lifecycle", "type": "concept"},
    {"path": "journal/2024-05-02.md", "title": "Journal 2024-05-02", "type": "journal"},
    {"path": "notes/release-checklist.md", "title": "Release Checklist", "type": "note"},
    {"path": "concepts/priority-rules.md", "title": "Priority Rules", "type": "concept"},
]


class SampleDataGenerator:
    """Generates a realistic TaskBoard snapshot."""

    def __init__(self, seed: int = 42):
        self.rng = random.Random(seed)
        self.now = datetime.now(timezone.utc)
        self._activity_id = int(self.now.timestamp() * 1000) - 10_000_000

    def _uuid(self) -> str:
        return str(uuid.UUID(int=self.rng.getrandbits(128), version=4))

    def _past_date(self, max_days: int = 60) -> str:
        delta = timedelta(days=self.rng.randint(0, max_days), hours=self.rng.randint(0, 23))
        return (self.now - delta).isoformat()

    def _due_date(self) -> str | None:
        if self.rng.random() < 0.4:
            return None
        offset = self.rng.randint(-10, 30)
        return (self.now + timedelta(days=offset)).date().isoformat()

    def _activity(self, task_id: str, action: str, by: str, note: str, created_at: str, **fields) -> dict:
        self._activity_id += 1
        return {
            "id": self._activity_id,
            "task_id": task_id,
            "action": action,
            **fields,
            "by": by,
            "note": note,
            "created_at": created_at,
        }

    # ── Generators ──────────────────────────────────────────

    def generate_task(self) -> dict:
        created_at = self._past_date()
        creator = self.rng.choice(PEOPLE)
        return {
            "id": self._uuid(),
            "title": f"{self.rng.choice(TITLE_VERBS)} {self.rng.choice(TITLE_OBJECTS)}",
            "description": "",
            "status": self.rng.choice(STATUSES),
            "priority": self.rng.choice(PRIORITIES),
            "project": self.rng.choice(PROJECTS),
            "assignee": self.rng.choice(PEOPLE),
            "due_date": self._due_date(),
            "created_at": created_at,
            "updated_at": created_at,
            "created_by": creator,
        }

    def generate_history(self, task: dict) -> list[dict]:
        """Creation entry plus a move into the task's current status."""
        entries = [self._activity(
            task["id"], "created", task["created_by"],
            f"Task created by {task['created_by']}", task["created_at"],
        )]
        if task["status"] != "backlog":
            entries.append(self._activity(
                task["id"], "moved", task["assignee"],
                f"Moved from backlog to {task['status']}", task["updated_at"],
                from_status="backlog", to_status=task["status"],
            ))
        return entries

    def generate_comment(self, task: dict) -> dict:
        return {
            "id": self._uuid(),
            "task_id": task["id"],
            "text": self.rng.choice(COMMENTS),
            "by": self.rng.choice(PEOPLE),
            "created_at": task["updated_at"],
        }

    def generate_all(self, tasks: int = 30, archived: int = 5) -> dict[str, Any]:
        data: dict[str, Any] = {"tasks": [], "activity": [], "archived": [], "comments": [], "taskDocuments": {}}

        for i in range(tasks + archived):
            task = self.generate_task()
            data["activity"].extend(self.generate_history(task))

            if self.rng.random() < 0.3:
                comment = self.generate_comment(task)
                data["comments"].append(comment)
                data["activity"].append(self._activity(
                    task["id"], "commented", comment["by"],
                    f"Comment: {comment['text'][:100]}", comment["created_at"],
                ))

            if self.rng.random() < 0.25:
                doc = self.rng.choice(DOCUMENTS)
                data["taskDocuments"][task["id"]] = [{**doc, "linkedAt": task["updated_at"]}]
                data["activity"].append(self._activity(
                    task["id"], "linked", task["assignee"],
                    f"Linked document: {doc['title']}", task["updated_at"],
                ))

            if i >= tasks:
                task["archived_at"] = task["updated_at"]
                data["archived"].append(task)
                data["activity"].append(self._activity(
                    task["id"], "archived", "system", "Task archived", task["updated_at"],
                ))
            else:
                data["tasks"].append(task)

        return data


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="TaskBoard Sample Data Generator")
    parser.add_argument("--tasks", type=int, default=30, help="Active tasks")
    parser.add_argument("--archived", type=int, default=5, help="Archived tasks")
    parser.add_argument("--output", type=str, default="sample-data.json", help="Output file")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    args = parser.parse_args(argv)

    generator = SampleDataGenerator(seed=args.seed)
    data = generator.generate_all(tasks=args.tasks, archived=args.archived)

    with open(args.output, "w") as f:
        json.dump(data, f, indent=2)

    print(f"✅ Sample data generated: {args.output}")
    print(f"   Tasks: {len(data['tasks'])}")
    print(f"   Archived: {len(data['archived'])}")
    print(f"   Activity: {len(data['activity'])}")
    print(f"   Comments: {len(data['comments'])}")
    print(f"   Linked tasks: {len(data['taskDocuments'])}")


if __name__ == "__main__":
    main()
