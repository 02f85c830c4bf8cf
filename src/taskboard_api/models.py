"""Data models for Airtable project and task records."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date
from typing import Any, Mapping

from ._fields import first_value, from_fields, linked_ids, parse_progress, to_fields
from .const import (
    DEFAULT_CLIENT_NAME,
    DEFAULT_PROJECT_NAME,
    DEFAULT_TASK_NAME,
    PROJECT_FIELDS,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_PENDING,
    TASK_FIELDS,
)


@dataclass(frozen=True)
class Responsable:
    """Team member assigned to a task."""

    id: str
    name: str


@dataclass(frozen=True)
class Project:
    """Row of the Projects table."""

    id: str
    name: str
    client_name: str
    university: str | None = None
    project_type: str | None = None
    status: str | None = None
    remaining_payment: float | None = None
    promised_date: str | None = None  # YYYY-MM-DD
    progress: int = 0  # 0-100
    total_tasks: int = 0
    completed_tasks: int = 0
    responsable_ids: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Project:
        """Construct from an Airtable record (``{"id", "fields"}``)."""
        data = from_fields(record.get("fields", {}), PROJECT_FIELDS)
        return cls(
            id=record["id"],
            name=data.get("name") or DEFAULT_PROJECT_NAME,
            client_name=data.get("client_name") or DEFAULT_CLIENT_NAME,
            university=first_value(data.get("university")),
            project_type=data.get("project_type") or None,
            status=data.get("status") or None,
            remaining_payment=data.get("remaining_payment"),
            promised_date=data.get("promised_date") or None,
            progress=parse_progress(data.get("progress")),
            total_tasks=data.get("total_tasks") or 0,
            completed_tasks=data.get("completed_tasks") or 0,
            responsable_ids=tuple(linked_ids(data.get("responsable"))),
        )


@dataclass(frozen=True)
class Task:
    """Row of the Tasks table."""

    id: str
    name: str
    project_id: str | None = None
    block: str | None = None
    order: int | None = None
    task_type: str | None = None
    status: str = STATUS_PENDING
    due_date: str | None = None
    start_date: str | None = None
    completed_date: str | None = None
    description: str | None = None
    notes: str | None = None
    responsables: tuple[Responsable, ...] = field(default_factory=tuple)

    @classmethod
    def from_record(
        cls,
        record: Mapping[str, Any],
        team_names: Mapping[str, str] | None = None,
    ) -> Task:
        """Construct from an Airtable record.

        Args:
            record: Raw record with ``id`` and ``fields``.
            team_names: Team member ID -> name map. IDs without a name
                are kept as their own display name.
        """
        data = from_fields(record.get("fields", {}), TASK_FIELDS)
        names = team_names or {}
        project_ids = linked_ids(data.get("project"))
        return cls(
            id=record["id"],
            name=data.get("name") or DEFAULT_TASK_NAME,
            project_id=project_ids[0] if project_ids else None,
            block=data.get("block") or None,
            order=data.get("order"),
            task_type=data.get("task_type") or None,
            status=data.get("status") or STATUS_PENDING,
            due_date=data.get("due_date") or None,
            start_date=data.get("start_date") or None,
            completed_date=data.get("completed_date") or None,
            description=data.get("description") or None,
            notes=data.get("notes") or None,
            responsables=tuple(
                Responsable(id=rid, name=names.get(rid, rid))
                for rid in linked_ids(data.get("responsable"))
            ),
        )

    @property
    def is_completed(self) -> bool:
        return self.status == STATUS_COMPLETED


@dataclass(frozen=True)
class TaskMutation:
    """Data for creating a task.

    Empty optional values are left out of the request so Airtable applies
    its own column defaults.
    """

    name: str
    status: str | None = None
    block: str | None = None
    order: int | None = None
    task_type: str | None = None
    due_date: str | None = None
    description: str | None = None
    notes: str | None = None

    def to_api_fields(self, project_id: str) -> dict[str, Any]:
        """Build the Airtable ``fields`` payload, linked to ``project_id``."""
        values: dict[str, Any] = {"name": self.name, "project": [project_id]}
        for f in fields(self):
            if f.name == "name":
                continue
            value = getattr(self, f.name)
            if value is None or value == "":
                continue
            values[f.name] = value
        return to_fields(values, TASK_FIELDS)


@dataclass(frozen=True)
class TaskUpdate:
    """Partial update of a task.

    ``None`` leaves a column untouched; an empty string clears it.
    """

    name: str | None = None
    status: str | None = None
    block: str | None = None
    order: int | None = None
    task_type: str | None = None
    due_date: str | None = None
    description: str | None = None
    notes: str | None = None

    def to_api_fields(
        self,
        current: Task | None = None,
        *,
        today: date | None = None,
    ) -> dict[str, Any]:
        """Build the Airtable ``fields`` payload.

        Status changes also maintain the tracking dates:

        - to "En progreso": start date set to today if ``current`` has none
        - to "Completado": completion date set to today, and the start date
          too if ``current`` has none
        - from "Completado" to anything else: completion date cleared

        Start-date tracking needs ``current``; without it only the
        completion date is set.
        """
        values: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            values[f.name] = None if value == "" else value

        if self.status is not None:
            values.update(self._tracking_dates(current, today or date.today()))

        return to_fields(values, TASK_FIELDS)

    def _tracking_dates(self, current: Task | None, today: date) -> dict[str, Any]:
        stamp = today.isoformat()
        tracked: dict[str, Any] = {}
        no_start = current is not None and not current.start_date

        if self.status == STATUS_IN_PROGRESS and no_start:
            tracked["start_date"] = stamp

        if self.status == STATUS_COMPLETED:
            tracked["completed_date"] = stamp
            if no_start:
                tracked["start_date"] = stamp
        elif current is not None and current.is_completed:
            tracked["completed_date"] = None

        return tracked

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))
