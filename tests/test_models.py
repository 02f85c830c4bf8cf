"""Tests for record mapping and task mutation payloads.

These cover the pure mapping functions without any HTTP. They protect
against the shapes Airtable actually returns:
- lookup columns arriving as single-element lists
- the progress formula being a fraction, a percentage string or "Sin tareas"
- linked records arriving as IDs, objects or a bare string
"""

from __future__ import annotations

from datetime import date

import pytest

from conftest import record

from taskboard_api import Project, Task, TaskMutation, TaskUpdate
from taskboard_api._fields import linked_ids, parse_progress
from taskboard_api.const import STATUS_COMPLETED, STATUS_IN_PROGRESS, STATUS_PENDING

TODAY = date(2026, 2, 10)


# =========================================================================== #
#  1. Field helpers
# =========================================================================== #


class TestParseProgress:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (0.5, 50),
            (1, 100),
            (0.333, 33),
            ("75%", 75),
            ("Sin tareas", 0),
            ("n/a", 0),
            (None, 0),
            (True, 0),
        ],
    )
    def test_values(self, value, expected):
        assert parse_progress(value) == expected


class TestLinkedIds:
    def test_list_of_ids(self):
        assert linked_ids(["recA", "recB"]) == ["recA", "recB"]

    def test_list_of_objects(self):
        assert linked_ids([{"id": "recA", "name": "Ana"}, {"name": "no id"}]) == ["recA"]

    def test_single_string(self):
        assert linked_ids("recA") == ["recA"]

    @pytest.mark.parametrize("value", [None, [], "", 42])
    def test_empty_or_unknown(self, value):
        assert linked_ids(value) == []


# =========================================================================== #
#  2. Records -> models
# =========================================================================== #


class TestProjectFromRecord:
    def test_full_record(self):
        project = Project.from_record(
            record(
                "recP1",
                **{
                    "Nombre del Proyecto": "Tesis",
                    "Cliente Nombre": "María",
                    "Universidad": ["UNAM", "ignored"],
                    "Tipo de Proyecto": "Maestría",
                    "Estado Manual": "En progreso",
                    "Pago Restante": 1500.0,
                    "Fecha Prometida": "2026-05-01",
                    "% Progreso": 0.25,
                    "Total Tareas": 8,
                    "Tareas Completadas": 2,
                    "Responsable": ["recAna"],
                },
            )
        )
        assert project.name == "Tesis"
        assert project.client_name == "María"
        assert project.university == "UNAM"
        assert project.remaining_payment == 1500.0
        assert project.progress == 25
        assert project.total_tasks == 8
        assert project.completed_tasks == 2
        assert project.responsable_ids == ("recAna",)

    def test_defaults(self):
        project = Project.from_record(record("recP2"))
        assert project.name == "Sin nombre"
        assert project.client_name == "Sin cliente"
        assert project.university is None
        assert project.status is None
        assert project.progress == 0
        assert project.total_tasks == 0

    def test_zero_remaining_payment_is_kept(self):
        project = Project.from_record(record("recP3", **{"Pago Restante": 0}))
        assert project.remaining_payment == 0


class TestTaskFromRecord:
    def test_defaults(self):
        task = Task.from_record(record("recT1"))
        assert task.name == "Sin nombre"
        assert task.status == STATUS_PENDING
        assert task.project_id is None
        assert task.order is None
        assert task.responsables == ()

    def test_first_project_link_wins(self):
        task = Task.from_record(record("recT1", Proyecto=["recP1", "recP2"]))
        assert task.project_id == "recP1"

    def test_order_zero_is_kept(self):
        task = Task.from_record(record("recT1", Orden=0))
        assert task.order == 0

    def test_names_resolved(self):
        task = Task.from_record(
            record("recT1", Responsable=["recAna", "recX"]), {"recAna": "Ana"}
        )
        assert [r.name for r in task.responsables] == ["Ana", "recX"]


# =========================================================================== #
#  3. Mutations -> payloads
# =========================================================================== #


class TestTaskMutation:
    def test_minimal(self):
        assert TaskMutation(name="Intro").to_api_fields("recP1") == {
            "Nombre de Tarea": "Intro",
            "Proyecto": ["recP1"],
        }

    def test_all_fields(self):
        fields = TaskMutation(
            name="Intro",
            status=STATUS_PENDING,
            block="2° Bloque",
            order=3,
            task_type="Cliente",
            due_date="2026-03-01",
            description="Write it",
            notes="soon",
        ).to_api_fields("recP1")
        assert fields["Estado"] == STATUS_PENDING
        assert fields["Bloque"] == "2° Bloque"
        assert fields["Orden"] == 3
        assert fields["Tipo de Tarea"] == "Cliente"
        assert fields["Fecha Límite"] == "2026-03-01"
        assert fields["Descripción"] == "Write it"
        assert fields["Notas"] == "soon"


class TestTaskUpdate:
    def test_none_is_untouched_and_empty_clears(self):
        fields = TaskUpdate(name="Renamed", notes="").to_api_fields(today=TODAY)
        assert fields == {"Nombre de Tarea": "Renamed", "Notas": None}

    def test_is_empty(self):
        assert TaskUpdate().is_empty
        assert not TaskUpdate(order=0).is_empty

    def test_start_sets_start_date(self):
        current = Task(id="t", name="t", status=STATUS_PENDING)
        fields = TaskUpdate(status=STATUS_IN_PROGRESS).to_api_fields(current, today=TODAY)
        assert fields == {"Estado": STATUS_IN_PROGRESS, "Fecha Inicio": "2026-02-10"}

    def test_start_keeps_existing_start_date(self):
        current = Task(id="t", name="t", status=STATUS_PENDING, start_date="2026-01-01")
        fields = TaskUpdate(status=STATUS_IN_PROGRESS).to_api_fields(current, today=TODAY)
        assert fields == {"Estado": STATUS_IN_PROGRESS}

    def test_start_without_current_sets_nothing(self):
        fields = TaskUpdate(status=STATUS_IN_PROGRESS).to_api_fields(today=TODAY)
        assert fields == {"Estado": STATUS_IN_PROGRESS}

    def test_complete_sets_both_dates_when_never_started(self):
        current = Task(id="t", name="t", status=STATUS_PENDING)
        fields = TaskUpdate(status=STATUS_COMPLETED).to_api_fields(current, today=TODAY)
        assert fields == {
            "Estado": STATUS_COMPLETED,
            "Fecha Completado": "2026-02-10",
            "Fecha Inicio": "2026-02-10",
        }

    def test_complete_without_current(self):
        fields = TaskUpdate(status=STATUS_COMPLETED).to_api_fields(today=TODAY)
        assert fields == {"Estado": STATUS_COMPLETED, "Fecha Completado": "2026-02-10"}

    def test_reopen_clears_completion_date(self):
        current = Task(
            id="t",
            name="t",
            status=STATUS_COMPLETED,
            start_date="2026-01-01",
            completed_date="2026-02-01",
        )
        fields = TaskUpdate(status=STATUS_IN_PROGRESS).to_api_fields(current, today=TODAY)
        assert fields == {"Estado": STATUS_IN_PROGRESS, "Fecha Completado": None}

    def test_non_status_update_leaves_dates_alone(self):
        current = Task(id="t", name="t", status=STATUS_COMPLETED)
        fields = TaskUpdate(block="3° Bloque").to_api_fields(current, today=TODAY)
        assert fields == {"Bloque": "3° Bloque"}
