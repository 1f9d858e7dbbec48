import unittest

from app import app, db
from models.project import Project
from models.project_member import ProjectMember
from models.task import Task
from tests.utils.api import ApiTestCase


class AuthRoutesTestCase(ApiTestCase):
    def test_register_logs_the_user_in(self):
        response = self.client.post(
            "/api/auth/register",
            json={"email": "new@example.com", "name": "Newcomer", "password": "secret123"},
        )

        self.assertEqual(response.status_code, 201)
        payload = response.get_json()
        self.assertEqual(payload["user"]["email"], "new@example.com")
        self.assertIn("csrf_token", payload)

        me = self.client.get("/api/auth/me")
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.get_json()["user"]["name"], "Newcomer")

    def test_register_rejects_duplicate_email(self):
        response = self.client.post(
            "/api/auth/register",
            json={"email": "owner@example.com", "name": "Copycat", "password": "secret123"},
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn("email", response.get_json()["errors"])

    def test_login_and_logout(self):
        response = self.client.post(
            "/api/auth/login", json={"email": "editor@example.com", "password": "password123"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["user"]["id"], self.editor_id)

        self.assertEqual(self.client.post("/api/auth/logout").status_code, 200)
        self.assertEqual(self.client.get("/api/auth/me").status_code, 401)

    def test_login_with_wrong_password(self):
        response = self.client.post(
            "/api/auth/login", json={"email": "editor@example.com", "password": "wrong-password"}
        )

        self.assertEqual(response.status_code, 401)
        self.assertFalse(response.get_json()["success"])


class ProjectRoutesTestCase(ApiTestCase):
    def test_projects_are_listed_for_members(self):
        self._login(self.viewer_id)

        response = self.client.get("/api/projects")

        self.assertEqual(response.status_code, 200)
        projects = response.get_json()["projects"]
        self.assertEqual([project["id"] for project in projects], [self.project_id])
        self.assertEqual(projects[0]["role"], "VIEWER")

    def test_outsider_sees_no_projects(self):
        self._login(self.outsider_id)

        response = self.client.get("/api/projects")

        self.assertEqual(response.get_json()["projects"], [])

    def test_create_project_makes_creator_owner(self):
        self._login(self.outsider_id)

        response = self.client.post("/api/projects", json={"title": "Side project"})

        self.assertEqual(response.status_code, 201)
        project = response.get_json()["project"]
        self.assertEqual(project["role"], "OWNER")
        self.assertEqual(project["owner"]["id"], self.outsider_id)
        self.assertEqual([member["role"] for member in project["members"]], ["OWNER"])

    def test_editor_can_rename_but_not_delete(self):
        self._login(self.editor_id)

        rename = self.client.patch(f"/api/projects/{self.project_id}", json={"title": "Renamed"})
        self.assertEqual(rename.status_code, 200)
        self.assertEqual(rename.get_json()["project"]["title"], "Renamed")

        delete = self.client.delete(f"/api/projects/{self.project_id}")
        self.assertEqual(delete.status_code, 403)

    def test_owner_deletes_project_with_tasks(self):
        self._seed_tasks("TODO", "a", "b")
        self._login(self.owner_id)

        response = self.client.delete(f"/api/projects/{self.project_id}")

        self.assertEqual(response.status_code, 200)
        with app.app_context():
            self.assertIsNone(db.session.get(Project, self.project_id))
            self.assertEqual(Task.query.count(), 0)
            self.assertEqual(ProjectMember.query.filter_by(project_id=self.project_id).count(), 0)

    def test_check_access(self):
        self._login(self.viewer_id)
        self.assertEqual(self.client.get(f"/api/projects/{self.project_id}/check-access").status_code, 204)

        self._login(self.outsider_id)
        self.assertEqual(self.client.get(f"/api/projects/{self.project_id}/check-access").status_code, 403)

        self.assertEqual(self.client.get("/api/projects/999/check-access").status_code, 404)

    def test_owner_manages_members(self):
        self._login(self.owner_id)

        added = self.client.post(
            f"/api/projects/{self.project_id}/members",
            json={"email": "outsider@example.com", "role": "EDITOR"},
        )
        self.assertEqual(added.status_code, 201)
        member = added.get_json()["member"]
        self.assertEqual(member["user_id"], self.outsider_id)

        updated = self.client.patch(
            f"/api/projects/{self.project_id}/members/{member['id']}", json={"role": "VIEWER"}
        )
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.get_json()["member"]["role"], "VIEWER")

        removed = self.client.delete(f"/api/projects/{self.project_id}/members/{member['id']}")
        self.assertEqual(removed.status_code, 200)

        self._login(self.outsider_id)
        self.assertEqual(self.client.get(f"/api/projects/{self.project_id}").status_code, 403)

    def test_duplicate_member_is_rejected(self):
        self._login(self.owner_id)

        response = self.client.post(
            f"/api/projects/{self.project_id}/members",
            json={"email": "editor@example.com", "role": "VIEWER"},
        )

        self.assertEqual(response.status_code, 400)

    def test_unknown_member_email_is_not_found(self):
        self._login(self.owner_id)

        response = self.client.post(
            f"/api/projects/{self.project_id}/members",
            json={"email": "ghost@example.com", "role": "VIEWER"},
        )

        self.assertEqual(response.status_code, 404)

    def test_owner_membership_cannot_be_removed(self):
        with app.app_context():
            owner_member = ProjectMember.query.filter_by(
                project_id=self.project_id, user_id=self.owner_id
            ).one()
            owner_member_id = owner_member.id
        self._login(self.owner_id)

        response = self.client.delete(f"/api/projects/{self.project_id}/members/{owner_member_id}")

        self.assertEqual(response.status_code, 400)

    def test_removing_member_clears_their_assignments(self):
        self._login(self.owner_id)
        created = self.client.post(
            f"/api/projects/{self.project_id}/tasks", json={"title": "assigned", "assignee_id": self.editor_id}
        )
        self.assertEqual(created.status_code, 201)
        task_id = created.get_json()["task"]["id"]
        with app.app_context():
            member_id = ProjectMember.query.filter_by(
                project_id=self.project_id, user_id=self.editor_id
            ).one().id

        response = self.client.delete(f"/api/projects/{self.project_id}/members/{member_id}")

        self.assertEqual(response.status_code, 200)
        with app.app_context():
            self.assertIsNone(db.session.get(Task, task_id).assignee_id)

    def test_editor_cannot_manage_members(self):
        self._login(self.editor_id)

        response = self.client.get(f"/api/projects/{self.project_id}/members")

        self.assertEqual(response.status_code, 403)


if __name__ == "__main__":
    unittest.main()
