"""Base test case for the JSON API."""

from __future__ import annotations

import unittest

from app import app, db
from models.project_member import ProjectRole
from services.project_service import add_member, create_project
from services.task_service import create_task
from tests.utils.db import clear_database, make_user, reset_database


class ApiTestCase(unittest.TestCase):
    """Seeds an owner, an editor, a viewer and an outsider around one project."""

    csrf_enabled = False

    def setUp(self):
        self._original_testing = app.config.get("TESTING", False)
        self._original_csrf_enabled = app.config.get("WTF_CSRF_ENABLED", True)
        app.config["TESTING"] = True
        app.config["WTF_CSRF_ENABLED"] = self.csrf_enabled

        with app.app_context():
            reset_database(db)
            owner = make_user(db, "owner@example.com", "Project Owner")
            editor = make_user(db, "editor@example.com", "Editor")
            viewer = make_user(db, "viewer@example.com", "Viewer")
            outsider = make_user(db, "outsider@example.com", "Outsider")

            project = create_project(owner, "Launch", "Everything for the launch")
            db.session.commit()
            add_member(project, editor.email, ProjectRole.EDITOR.value, owner)
            add_member(project, viewer.email, ProjectRole.VIEWER.value, owner)
            db.session.commit()

            self.owner_id = owner.id
            self.editor_id = editor.id
            self.viewer_id = viewer.id
            self.outsider_id = outsider.id
            self.project_id = project.id

        self.client = app.test_client()

    def tearDown(self):
        with app.app_context():
            clear_database(db)
        app.config["TESTING"] = self._original_testing
        app.config["WTF_CSRF_ENABLED"] = self._original_csrf_enabled

    def _login(self, user_id):
        with self.client.session_transaction() as client_session:
            client_session["user_id"] = user_id

    def _seed_tasks(self, status, *titles):
        """Create tasks directly and return their ids in column order."""
        from models.project import Project
        from models.task import TaskStatus

        with app.app_context():
            project = db.session.get(Project, self.project_id)
            tasks = [create_task(project, title, status=TaskStatus(status)) for title in titles]
            db.session.commit()
            return [task.id for task in tasks]

    def _column_titles(self, status):
        response = self.client.get(f"/api/projects/{self.project_id}/tasks")
        self.assertEqual(response.status_code, 200)
        return [task["title"] for task in response.get_json()["columns"][status]]
