import unittest
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
from conftest import headers_for
from fastapi import HTTPException

from opsboard.domain.tasks.propagation import DependencyPropagator, PropagationDepthError
from opsboard.domain.tasks.repository import TaskRepository
from opsboard.domain.tasks.schemas import TaskUpdate
from opsboard.domain.tasks.service import TaskService
from opsboard.models import TaskActivity
from opsboard.tenancy import TenantContext

DUE = datetime(2030, 2, 1, 17, 0)


class PropagationTests(unittest.TestCase):
    @pytest.fixture(autouse=True)
    def _inject(self, db, workspace):
        self.db = db
        self.tenant_id = workspace["tenant"].id
        self.context = TenantContext(
            tenant_id=self.tenant_id, user_id=workspace["owner"].id, role="owner"
        )
        self.service = TaskService(db)

    def make_task(self, title, due=DUE, status="todo", start=None):
        return TaskRepository.create_task(
            self.db,
            self.tenant_id,
            title=title,
            status=status,
            due_date=due,
            start_date=start,
        )

    def link(self, dependent, upstream):
        TaskRepository.add_dependency(self.db, dependent.id, upstream.id, "finish_to_start")

    def reload(self, task):
        self.db.refresh(task)
        return task

    def test_shift_reaches_every_transitive_dependent(self):
        a = self.make_task("A")
        b = self.make_task("B", due=DUE + timedelta(days=2), start=DUE + timedelta(days=1))
        c = self.make_task("C", due=DUE + timedelta(days=5))
        self.link(b, a)
        self.link(c, b)

        task, result = self.service.update_task(
            self.context, a.id, TaskUpdate(dueDate=DUE + timedelta(days=3))
        )

        self.assertEqual(task.due_date, DUE + timedelta(days=3))
        self.assertEqual(self.reload(b).due_date, DUE + timedelta(days=5))
        self.assertEqual(self.reload(b).start_date, DUE + timedelta(days=4))
        self.assertEqual(self.reload(c).due_date, DUE + timedelta(days=8))
        self.assertEqual(result.shifted, [b.id, c.id])
        self.assertFalse(result.cycle_detected)

    def test_shift_is_logged_as_activity(self):
        a = self.make_task("A")
        b = self.make_task("B")
        self.link(b, a)

        self.service.update_task(self.context, a.id, TaskUpdate(dueDate=DUE + timedelta(days=1)))

        actions = [
            row.action
            for row in self.db.query(TaskActivity).filter(TaskActivity.task_id == b.id).all()
        ]
        self.assertIn("due_date_shifted", actions)

    def test_zero_delta_is_a_no_op(self):
        a = self.make_task("A")
        b = self.make_task("B")
        self.link(b, a)

        result = self.service.on_task_due_date_changed(self.context, a.id, DUE, DUE)

        self.assertEqual(result.shifted, [])
        self.assertEqual(self.reload(b).due_date, DUE)

    def test_diamond_shifts_shared_dependent_once(self):
        a = self.make_task("A")
        b = self.make_task("B")
        c = self.make_task("C")
        d = self.make_task("D")
        self.link(b, a)
        self.link(c, a)
        self.link(d, b)
        self.link(d, c)

        result = self.service.on_task_due_date_changed(
            self.context, a.id, DUE, DUE + timedelta(days=1)
        )

        self.assertEqual(self.reload(d).due_date, DUE + timedelta(days=1))
        self.assertEqual(result.shifted.count(d.id), 1)

    def test_cycle_terminates_and_is_reported(self):
        a = self.make_task("A")
        b = self.make_task("B")
        # Written directly; the API refuses cycles
        self.link(b, a)
        self.link(a, b)

        result = self.service.on_task_due_date_changed(
            self.context, a.id, DUE, DUE + timedelta(days=2)
        )

        self.assertTrue(result.cycle_detected)
        self.assertEqual(result.shifted, [b.id])
        self.assertEqual(self.reload(b).due_date, DUE + timedelta(days=2))

    def test_terminal_dependents_stop_the_chain(self):
        a = self.make_task("A")
        b = self.make_task("B", status="completed")
        c = self.make_task("C")
        self.link(b, a)
        self.link(c, b)

        result = self.service.on_task_due_date_changed(
            self.context, a.id, DUE, DUE + timedelta(days=1)
        )

        self.assertEqual(result.skipped, [b.id])
        self.assertEqual(self.reload(b).due_date, DUE)
        self.assertEqual(self.reload(c).due_date, DUE)

    def test_dependents_without_due_date_are_skipped(self):
        a = self.make_task("A")
        b = self.make_task("B", due=None)
        self.link(b, a)

        result = self.service.on_task_due_date_changed(
            self.context, a.id, DUE, DUE + timedelta(days=1)
        )

        self.assertEqual(result.skipped, [b.id])
        self.assertIsNone(self.reload(b).due_date)

    def test_depth_limit_aborts_after_partial_shift(self):
        tasks = [self.make_task(f"T{i}") for i in range(4)]
        for upstream, dependent in zip(tasks, tasks[1:]):
            self.link(dependent, upstream)

        propagator = DependencyPropagator(
            self.db, self.tenant_id, self.service._shift_dates, max_depth=2
        )
        with self.assertRaises(PropagationDepthError):
            propagator.on_due_date_changed(tasks[0].id, DUE, DUE + timedelta(days=1))

        self.assertEqual(self.reload(tasks[1]).due_date, DUE + timedelta(days=1))
        self.assertEqual(self.reload(tasks[2]).due_date, DUE + timedelta(days=1))
        self.assertEqual(self.reload(tasks[3]).due_date, DUE)

    def test_depth_limit_surfaces_as_422(self):
        a = self.make_task("A")
        b = self.make_task("B")
        self.link(b, a)

        with patch(
            "opsboard.domain.tasks.service.DependencyPropagator.on_due_date_changed",
            side_effect=PropagationDepthError(b.id, 50),
        ):
            with self.assertRaises(HTTPException) as exc:
                self.service.on_task_due_date_changed(
                    self.context, a.id, DUE, DUE + timedelta(days=1)
                )
        self.assertEqual(exc.exception.status_code, 422)

    def test_setting_first_due_date_does_not_propagate(self):
        a = self.make_task("A", due=None)
        b = self.make_task("B")
        self.link(b, a)

        _, result = self.service.update_task(self.context, a.id, TaskUpdate(dueDate=DUE))

        self.assertIsNone(result)
        self.assertEqual(self.reload(b).due_date, DUE)


# ============================================================================
# HTTP
# ============================================================================


def create_task(client, workspace, title, due="2030-02-01T17:00:00Z", depends_on=None):
    response = client.post(
        "/tasks",
        json={"title": title, "dueDate": due, "dependsOn": depends_on or []},
        headers=headers_for(workspace),
    )
    assert response.status_code == 200
    return response.json()


def test_patch_due_date_reports_propagation(client, workspace):
    a = create_task(client, workspace, "Design")
    b = create_task(client, workspace, "Build", due="2030-02-05T17:00:00Z", depends_on=[a["id"]])

    response = client.patch(
        f"/tasks/{a['id']}", json={"dueDate": "2030-02-08T17:00:00Z"}, headers=headers_for(workspace)
    )

    body = response.json()
    assert body["propagation"]["shifted"] == [b["id"]]
    assert body["propagation"]["deltaSeconds"] == 7 * 24 * 3600
    moved = client.get(f"/tasks/{b['id']}", headers=headers_for(workspace)).json()
    assert moved["dueDate"].startswith("2030-02-12T17:00:00")


def test_dependency_cycle_is_refused(client, workspace):
    a = create_task(client, workspace, "A")
    b = create_task(client, workspace, "B", depends_on=[a["id"]])

    response = client.post(
        f"/tasks/{a['id']}/dependencies",
        json={"dependsOnTaskId": b["id"]},
        headers=headers_for(workspace),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Circular dependency detected"


def test_self_dependency_is_refused(client, workspace):
    a = create_task(client, workspace, "A")
    response = client.post(
        f"/tasks/{a['id']}/dependencies",
        json={"dependsOnTaskId": a["id"]},
        headers=headers_for(workspace),
    )
    assert response.status_code == 400


def test_blocking_and_dependents(client, workspace):
    a = create_task(client, workspace, "A")
    b = create_task(client, workspace, "B", depends_on=[a["id"]])
    headers = headers_for(workspace)

    assert [t["id"] for t in client.get(f"/tasks/{a['id']}/dependents", headers=headers).json()] == [b["id"]]
    assert [t["id"] for t in client.get(f"/tasks/{b['id']}/blocking", headers=headers).json()] == [a["id"]]

    client.patch(f"/tasks/{a['id']}", json={"status": "completed"}, headers=headers)
    assert client.get(f"/tasks/{b['id']}/blocking", headers=headers).json() == []

    response = client.delete(f"/tasks/{b['id']}/dependencies/{a['id']}", headers=headers)
    assert response.status_code == 200
    assert client.get(f"/tasks/{a['id']}/dependents", headers=headers).json() == []
