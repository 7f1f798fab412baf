import io
import unittest
from contextlib import redirect_stdout
from unittest.mock import patch

import manage_projects
from projectshelf.models.project import Project
from support import ApiTestCase


class ManageProjectsTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.alice = self.register()
        patcher = patch.object(manage_projects, "open_session", self.context.session_factory)
        patcher.start()
        self.addCleanup(patcher.stop)

    def run_cli(self, *args):
        out = io.StringIO()
        with redirect_stdout(out):
            code = manage_projects.main(["manage_projects.py", *args])
        return code, out.getvalue()

    def test_no_command_prints_usage(self):
        code, output = self.run_cli()
        self.assertEqual(code, 1)
        self.assertIn("--list-users", output)

    def test_unknown_command(self):
        code, output = self.run_cli("--frobnicate")
        self.assertEqual(code, 1)
        self.assertIn("Unknown command", output)

    def test_list_users(self):
        self.create_project(self.alice["token"])
        code, output = self.run_cli("--list-users")
        self.assertEqual(code, 0)
        self.assertIn("alice", output)
        self.assertIn("a@x.com", output)

    def test_user_stats(self):
        project = self.create_project(self.alice["token"])
        self.client.post(
            f"/api/analytics/project-view/{project['id']}", headers=self.auth(self.alice["token"])
        )
        code, output = self.run_cli("--user-stats", "alice")
        self.assertEqual(code, 0)
        self.assertIn("My Demo!", output)

        code, output = self.run_cli("--user-stats", "nobody")
        self.assertEqual(code, 1)

    def test_list_projects(self):
        self.create_project(self.alice["token"])
        code, output = self.run_cli("--list-projects", "alice")
        self.assertEqual(code, 0)
        self.assertIn("my-demo", output)

    def test_reslug_repairs_stale_slugs(self):
        first = self.create_project(self.alice["token"], title="Alpha")
        second = self.create_project(self.alice["token"], title="Beta")

        db = self.session()
        db.query(Project).filter(Project.id == first["id"]).update({"slug": "old-alpha"})
        db.query(Project).filter(Project.id == second["id"]).update({"title": "Alpha"})
        db.commit()
        db.close()

        code, output = self.run_cli("--reslug")
        self.assertEqual(code, 0)
        self.assertIn("2 slug(s) updated", output)

        db = self.session()
        slugs = {p.id: p.slug for p in db.query(Project).all()}
        db.close()
        self.assertEqual(sorted(slugs.values()), ["alpha", "alpha-2"])

    def test_delete_project(self):
        project = self.create_project(self.alice["token"])
        code, output = self.run_cli("--delete-project", project["id"])
        self.assertEqual(code, 0)
        self.assertIn("My Demo!", output)
        self.assertEqual(self.client.get(f"/api/projects/{project['id']}").status_code, 404)

        code, _ = self.run_cli("--delete-project", project["id"])
        self.assertEqual(code, 1)


if __name__ == "__main__":
    unittest.main()
