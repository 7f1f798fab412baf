import unittest
from datetime import date, timedelta
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from projectshelf.models.user import ProjectView, User, VisitStat
from projectshelf.services import analytics
from support import ApiTestCase


class RecorderTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.alice = self.register()
        self.db = self.session()

    def tearDown(self):
        self.db.close()
        super().tearDown()

    def test_same_day_views_share_one_entry(self):
        analytics.record_page_view(self.db, self.alice["id"])
        analytics.record_page_view(self.db, self.alice["id"])

        stats = self.db.query(VisitStat).filter(VisitStat.user_id == self.alice["id"]).all()
        self.assertEqual(len(stats), 1)
        self.assertEqual(stats[0].count, 2)
        self.assertEqual(stats[0].date, date.today())

    def test_new_day_gets_new_entry(self):
        yesterday = date.today() - timedelta(days=1)
        analytics.record_page_view(self.db, self.alice["id"], today=yesterday)
        analytics.record_page_view(self.db, self.alice["id"])

        stats = self.db.query(VisitStat).order_by(VisitStat.id).all()
        self.assertEqual([(s.date, s.count) for s in stats], [(yesterday, 1), (date.today(), 1)])

    def test_project_view_increments_and_refreshes_timestamp(self):
        analytics.record_project_view(self.db, self.alice["id"], "p1")
        first = self.db.query(ProjectView).one()
        first_seen = first.last_viewed

        analytics.record_project_view(self.db, self.alice["id"], "p1")
        self.db.expire_all()
        view = self.db.query(ProjectView).one()
        self.assertEqual(view.view_count, 2)
        self.assertGreaterEqual(view.last_viewed, first_seen)

    def test_dashboard_aggregates(self):
        today = date.today()
        old_day = today - timedelta(days=45)
        analytics.record_page_view(self.db, self.alice["id"], today=old_day)
        analytics.record_page_view(self.db, self.alice["id"], today=old_day)
        analytics.record_page_view(self.db, self.alice["id"])

        # p1..p6 viewed once each, then p4 and p2 get one more view
        for n in range(1, 7):
            analytics.record_project_view(self.db, self.alice["id"], f"p{n}")
        analytics.record_project_view(self.db, self.alice["id"], "p4")
        analytics.record_project_view(self.db, self.alice["id"], "p2")

        user = self.db.query(User).filter(User.id == self.alice["id"]).one()
        result = analytics.dashboard(self.db, user)

        self.assertEqual(result["total_visits"], 3)
        self.assertEqual(result["recent_visits"], [{"date": today.isoformat(), "count": 1}])
        # ties keep insertion order
        self.assertEqual(
            [p["project_id"] for p in result["top_projects"]], ["p2", "p4", "p1", "p3", "p5"]
        )
        self.assertEqual(result["login_count"], 0)

    def test_recent_window_is_thirty_days_including_today(self):
        today = date(2026, 10, 19)
        analytics.record_page_view(self.db, self.alice["id"], today=today - timedelta(days=30))
        analytics.record_page_view(self.db, self.alice["id"], today=today - timedelta(days=29))

        user = self.db.query(User).filter(User.id == self.alice["id"]).one()
        result = analytics.dashboard(self.db, user, today=today)

        self.assertEqual(result["recent_visits"], [{"date": "2026-09-20", "count": 1}])
        self.assertEqual(result["total_visits"], 2)

    def test_best_effort_swallows_failures(self):
        def broken(db, user_id):
            raise OperationalError("UPDATE visit_stats", {}, Exception("database is locked"))

        with self.assertLogs("projectshelf.services.analytics", level="ERROR"):
            ok = analytics.record_best_effort(self.context.session_factory, broken, self.alice["id"])
        self.assertFalse(ok)


class AnalyticsApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.alice = self.register()
        self.headers = self.auth(self.alice["token"])

    def test_page_view_route(self):
        for _ in range(2):
            response = self.client.post("/api/analytics/page-view", headers=self.headers)
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.json(), {"message": "Page view recorded"})

        body = self.client.get("/api/analytics/user", headers=self.headers).json()
        self.assertEqual(body["visit_stats"], [{"date": date.today().isoformat(), "count": 2}])

    def test_project_view_route(self):
        project = self.create_project(self.alice["token"])
        response = self.client.post(
            f"/api/analytics/project-view/{project['id']}", headers=self.headers
        )
        self.assertEqual(response.status_code, 200)

        body = self.client.get("/api/analytics/user", headers=self.headers).json()
        self.assertEqual(len(body["projects_viewed"]), 1)
        self.assertEqual(body["projects_viewed"][0]["project_id"], project["id"])
        self.assertEqual(body["projects_viewed"][0]["title"], "My Demo!")
        self.assertEqual(body["projects_viewed"][0]["view_count"], 1)

    def test_project_view_route_unknown_project(self):
        response = self.client.post("/api/analytics/project-view/nope", headers=self.headers)
        self.assertEqual(response.status_code, 404)

    def test_routes_require_auth(self):
        self.assertEqual(self.client.get("/api/analytics/dashboard").status_code, 401)
        self.assertEqual(self.client.post("/api/analytics/page-view").status_code, 401)

    def test_dashboard_route(self):
        self.client.post("/api/auth/login", json={"email": "a@x.com", "password": "secret1"})
        project = self.create_project(self.alice["token"])
        self.client.get(f"/api/projects/{project['id']}/public")
        self.client.get("/api/users/portfolio/alice")

        body = self.client.get("/api/analytics/dashboard", headers=self.headers).json()
        self.assertEqual(body["total_visits"], 1)
        self.assertEqual(body["login_count"], 1)
        self.assertIsNotNone(body["last_login"])
        self.assertEqual(body["top_projects"][0]["project_id"], project["id"])

    def test_deleted_project_keeps_tally_without_title(self):
        project = self.create_project(self.alice["token"])
        self.client.post(f"/api/analytics/project-view/{project['id']}", headers=self.headers)
        self.client.delete(f"/api/projects/{project['id']}", headers=self.headers)

        body = self.client.get("/api/analytics/dashboard", headers=self.headers).json()
        self.assertEqual(body["top_projects"][0]["project_id"], project["id"])
        self.assertIsNone(body["top_projects"][0]["title"])

    def test_failed_recording_does_not_break_portfolio(self):
        def broken(db, user_id):
            raise RuntimeError("analytics store down")

        with patch("projectshelf.api.users.record_page_view", broken):
            response = self.client.get("/api/users/portfolio/alice")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user"]["username"], "alice")

    def test_failed_recording_does_not_break_public_project(self):
        project = self.create_project(self.alice["token"])

        def broken(db, user_id, project_id):
            raise RuntimeError("analytics store down")

        with patch("projectshelf.api.projects.record_project_view", broken):
            response = self.client.get(f"/api/projects/{project['id']}/public")
        self.assertEqual(response.status_code, 200)


if __name__ == "__main__":
    unittest.main()
