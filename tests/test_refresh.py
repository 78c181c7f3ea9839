from __future__ import annotations

from dataclasses import replace
import threading
import time

import pytest

from calorie_client.errors import RefreshFailed, TransportFailure
from calorie_client.refresh import RefreshCoordinator

from conftest import REFRESH_PATH, json_response, refresh_success


def test_refresh_posts_refresh_token_and_stores_access(store, transport, coordinator):
    store.sign_in("Bearer old", "refresh-1")
    transport.handler = lambda request: refresh_success("fresh")

    coordinator.ensure_fresh()

    [request] = transport.calls_to(REFRESH_PATH)
    assert request.method == "POST"
    assert request.body == {"refresh_token": "refresh-1"}
    assert "Authorization" not in request.headers
    assert store.access_credential == "Bearer fresh"
    assert store.refresh_credential == "refresh-1"
    assert not coordinator.in_flight


def test_refresh_rotates_refresh_token_when_returned(store, transport, coordinator):
    store.sign_in("Bearer old", "refresh-1")
    transport.handler = lambda request: refresh_success("fresh", "refresh-2")

    coordinator.ensure_fresh()

    assert store.refresh_credential == "refresh-2"


def test_required_rotation_rejects_missing_refresh_token(settings, store, transport, teardown, navigator):
    coordinator = RefreshCoordinator(replace(settings, refresh_rotation="require"), transport, store, teardown)
    store.sign_in("Bearer old", "refresh-1")
    transport.handler = lambda request: refresh_success("fresh")

    with pytest.raises(RefreshFailed):
        coordinator.ensure_fresh()

    assert store.access_credential is None
    assert navigator.history == ["/sign-in"]


def test_missing_refresh_token_fails_without_network(store, transport, coordinator, navigator):
    store.sign_in("Bearer old", None)

    with pytest.raises(RefreshFailed) as exc_info:
        coordinator.ensure_fresh()

    assert exc_info.value.message == "No refresh token"
    assert transport.requests == []
    assert store.access_credential is None
    assert navigator.history == ["/sign-in"]
    assert not coordinator.in_flight


def test_rejected_refresh_tears_down_with_normalized_error(store, transport, coordinator, navigator):
    store.sign_in("Bearer old", "refresh-1")
    transport.handler = lambda request: json_response(401, {"detail": "Refresh token expired"})

    with pytest.raises(RefreshFailed) as exc_info:
        coordinator.ensure_fresh()

    assert exc_info.value.status == 401
    assert exc_info.value.form_error == "Refresh token expired"
    assert store.refresh_credential is None
    assert navigator.history == ["/sign-in"]
    assert not coordinator.in_flight


def test_malformed_refresh_response_fails(store, transport, coordinator):
    store.sign_in("Bearer old", "refresh-1")
    transport.handler = lambda request: json_response(200, {"data": {"token_type": "Bearer"}})

    with pytest.raises(RefreshFailed, match="Malformed refresh response"):
        coordinator.ensure_fresh()

    assert store.access_credential is None


def test_transport_failure_during_refresh_fails(store, transport, coordinator):
    store.sign_in("Bearer old", "refresh-1")

    def handler(request):
        raise TransportFailure("Request failed: timed out")

    transport.handler = handler

    with pytest.raises(RefreshFailed) as exc_info:
        coordinator.ensure_fresh()

    assert exc_info.value.status == 0
    assert isinstance(exc_info.value.__cause__, TransportFailure)
    assert not coordinator.in_flight


def test_unexpected_exception_still_clears_in_flight(store, transport, coordinator):
    store.sign_in("Bearer old", "refresh-1")

    def handler(request):
        raise KeyError("boom")

    transport.handler = handler

    with pytest.raises(KeyError):
        coordinator.ensure_fresh()

    assert not coordinator.in_flight

    transport.handler = lambda request: refresh_success("fresh")
    coordinator.ensure_fresh()
    assert store.access_credential == "Bearer fresh"


def test_concurrent_callers_share_one_refresh(store, transport, coordinator):
    store.sign_in("Bearer old", "refresh-1")
    started = threading.Event()
    release = threading.Event()

    def handler(request):
        started.set()
        release.wait(5)
        return refresh_success("fresh")

    transport.handler = handler
    errors: list[BaseException] = []

    def worker():
        try:
            coordinator.ensure_fresh()
        except BaseException as exc:  # pragma: no cover - surfaced by the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(6)]
    threads[0].start()
    assert started.wait(5)
    for thread in threads[1:]:
        thread.start()
    time.sleep(0.2)
    release.set()
    for thread in threads:
        thread.join(5)

    assert errors == []
    assert len(transport.calls_to(REFRESH_PATH)) == 1
    assert coordinator.refresh_count == 1
    assert store.access_credential == "Bearer fresh"


def test_concurrent_waiters_share_the_same_failure(store, transport, coordinator, navigator):
    store.sign_in("Bearer old", "refresh-1")
    started = threading.Event()
    release = threading.Event()

    def handler(request):
        started.set()
        release.wait(5)
        return json_response(401, {"detail": "Refresh token expired"})

    transport.handler = handler
    errors: list[BaseException] = []
    lock = threading.Lock()

    def worker():
        try:
            coordinator.ensure_fresh()
        except RefreshFailed as exc:
            with lock:
                errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(5)]
    threads[0].start()
    assert started.wait(5)
    for thread in threads[1:]:
        thread.start()
    time.sleep(0.2)
    release.set()
    for thread in threads:
        thread.join(5)

    assert len(errors) == 5
    assert all(error is errors[0] for error in errors)
    assert len(transport.calls_to(REFRESH_PATH)) == 1
    assert navigator.history == ["/sign-in"]


def test_next_expiry_starts_a_new_refresh(store, transport, coordinator):
    store.sign_in("Bearer old", "refresh-1")
    tokens = iter(["first", "second"])
    transport.handler = lambda request: refresh_success(next(tokens))

    coordinator.ensure_fresh()
    coordinator.ensure_fresh()

    assert store.access_credential == "Bearer second"
    assert coordinator.refresh_count == 2


def test_stale_credential_already_replaced_skips_refresh(store, transport, coordinator):
    store.sign_in("Bearer fresh", "refresh-1")

    coordinator.ensure_fresh("Bearer old")

    assert transport.requests == []
    assert coordinator.refresh_count == 0


def test_stale_credential_still_stored_refreshes(store, transport, coordinator):
    store.sign_in("Bearer old", "refresh-1")
    transport.handler = lambda request: refresh_success("fresh")

    coordinator.ensure_fresh("Bearer old")

    assert store.access_credential == "Bearer fresh"
    assert coordinator.refresh_count == 1
