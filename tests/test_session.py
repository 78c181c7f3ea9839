from __future__ import annotations

from calorie_client.session import InMemoryNavigator, SessionTeardown


def test_teardown_clears_and_redirects(store, navigator, teardown):
    store.sign_in("Bearer a", "r")
    store.set_pending_marker("me@example.test")

    teardown.run()

    assert store.credentials().access is None
    assert store.credentials().refresh is None
    assert store.credentials().pending_marker is None
    assert navigator.history == ["/sign-in"]
    assert navigator.current_location() == "/sign-in"


def test_teardown_at_sign_in_does_not_navigate_again(store):
    navigator = InMemoryNavigator("/sign-in")
    teardown = SessionTeardown(store, navigator, "/sign-in")

    teardown.run()
    teardown.run()

    assert navigator.history == []


def test_sign_in_subpath_counts_as_sign_in(store):
    navigator = InMemoryNavigator("/sign-in/callback")

    assert SessionTeardown(store, navigator, "/sign-in").redirect_to_sign_in() is False
    assert navigator.history == []


def test_similar_prefix_is_not_sign_in(store):
    navigator = InMemoryNavigator("/sign-inside")

    assert SessionTeardown(store, navigator, "/sign-in").redirect_to_sign_in() is True
    assert navigator.history == ["/sign-in"]


def test_navigation_failure_still_clears_session(store, caplog):
    class BrokenNavigator:
        def current_location(self) -> str:
            return "/apps"

        def navigate(self, location: str) -> None:
            raise RuntimeError("window closed")

    store.sign_in("Bearer a", "r")

    SessionTeardown(store, BrokenNavigator(), "/sign-in").run()

    assert store.credentials().access is None
    assert "Navigation to /sign-in failed" in caplog.text
