"""
test_task_service.py — Tests for handler tasks.

Called by: pytest
Depends on: caseflow/services/task_service.py, conftest.py
"""

from datetime import date

import pytest

from caseflow.errors import NotFoundError, ValidationError
from caseflow.services import task_service


class TestTasks:
    def test_create_defaults(self, db_session, test_lead):
        t = task_service.create_task(db_session, test_lead.id, {"title": " Call archive "}, created_by="Dana")
        assert t.title == "Call archive"
        assert t.priority == "medium"
        assert t.status == "pending"
        assert t.completed_at is None
        assert t.created_by == "Dana"

    def test_blank_title(self, db_session, test_lead):
        with pytest.raises(ValidationError):
            task_service.create_task(db_session, test_lead.id, {"title": ""})

    def test_bad_priority(self, db_session, test_lead):
        with pytest.raises(ValidationError):
            task_service.create_task(db_session, test_lead.id, {"title": "x", "priority": "asap"})

    def test_completion_stamps_and_reopen_clears(self, db_session, test_lead):
        t = task_service.create_task(db_session, test_lead.id, {"title": "Translate"})
        t = task_service.update_task_status(db_session, t.id, "completed")
        assert t.completed_at is not None
        t = task_service.update_task_status(db_session, t.id, "in_progress")
        assert t.completed_at is None

    def test_update_fields(self, db_session, test_lead):
        t = task_service.create_task(db_session, test_lead.id, {"title": "Translate"})
        t = task_service.update_task(db_session, t.id, {"actual_hours": 2.5, "tags": ["polish"]})
        assert float(t.actual_hours) == 2.5
        assert t.tags == ["polish"]

    def test_filters_and_open_count(self, db_session, test_lead):
        task_service.create_task(db_session, test_lead.id, {"title": "A", "priority": "urgent"})
        task_service.create_task(db_session, test_lead.id, {"title": "B", "due_date": date(2026, 3, 1)})
        done = task_service.create_task(db_session, test_lead.id, {"title": "C"})
        task_service.update_task_status(db_session, done.id, "completed")

        urgent = task_service.list_tasks_for_lead(db_session, test_lead.id, priority="urgent")
        assert [t.title for t in urgent] == ["A"]
        assert task_service.count_open_tasks(db_session, [test_lead.id]) == {test_lead.id: 2}

    def test_delete(self, db_session, test_lead):
        t = task_service.create_task(db_session, test_lead.id, {"title": "A"})
        task_service.delete_task(db_session, t.id)
        with pytest.raises(NotFoundError):
            task_service.update_task_status(db_session, t.id, "completed")
