import unittest
from datetime import timedelta

from userdesk.sessions import DashboardSessions
from userdesk.client import UserDirectoryClient
from userdesk.views import UserListView


def test_resolve_returns_registered_view(directory):
    sessions = DashboardSessions()
    view = UserListView(directory.client(), "1")
    token = sessions.create(view)

    assert sessions.resolve(token) is view
    assert sessions.resolve("unknown") is None
    assert sessions.resolve(None) is None


def test_expired_views_are_unmounted(directory):
    sessions = DashboardSessions(ttl=timedelta(seconds=-1))
    view = UserListView(directory.client(), "1")
    token = sessions.create(view)

    assert sessions.resolve(token) is None
    assert view.mounted is False
    assert len(sessions) == 0


def test_destroy_and_clear_unmount_views(directory):
    sessions = DashboardSessions()
    first = UserListView(directory.client(), "1")
    second = UserListView(directory.client(), "6")
    token = sessions.create(first)
    sessions.create(second)

    sessions.destroy(token)
    assert first.mounted is False
    assert first.create_form.mounted is False
    assert len(sessions) == 1

    sessions.clear()
    assert second.mounted is False
    assert len(sessions) == 0


class SessionSweepTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = UserDirectoryClient("http://directory.test/users")

    def test_create_sweeps_expired_sessions(self) -> None:
        sessions = DashboardSessions(ttl=timedelta(seconds=-1))
        views = [UserListView(self.client, "1") for _ in range(51)]
        for view in views:
            sessions.create(view)

        self.assertLessEqual(len(sessions), 1)
        self.assertTrue(all(not view.mounted for view in views[:-1]))
        self.assertTrue(views[-1].mounted)

    def test_live_sessions_survive_sweep(self) -> None:
        sessions = DashboardSessions()
        first = UserListView(self.client, "1")
        token = sessions.create(first)
        sessions.create(UserListView(self.client, "6"))

        self.assertEqual(len(sessions), 2)
        self.assertIs(sessions.resolve(token), first)
        self.assertTrue(first.mounted)
