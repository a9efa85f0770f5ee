"""
tests/test_frontend_state.py

Pytest unit tests for frontend/state.py.

Coverage
--------
- TableController: latest token wins, stale responses discarded
- filter change resets to page 1; navigation bounded by [1, total_pages]
- error state and retry
- SearchDebouncer: rapid submits fire once, after the delay
- ImportProgress: phase order, percent, invalid transitions
- AuthGate: session check, sign-in failure, sign-up confirmation, sign-out
"""

from __future__ import annotations

import pytest

from app.domain.results import ImportSummary, PageResult
from app.services.auth_service import AuthError, AuthSession, AuthUser
from frontend.state import AuthGate, ImportProgress, SearchDebouncer, TableController


def _page(page: int, *, total: int = 25, size: int = 10) -> PageResult:
    start = (page - 1) * size
    rows = [{"id": index, "amount": 1.5} for index in range(start, min(start + size, total))]
    return PageResult(
        rows=rows,
        total_count=total,
        total_pages=-(-total // size),
        current_page=page,
        page_size=size,
    )


# ---------------------------------------------------------------------------
# TableController
# ---------------------------------------------------------------------------


class TestTableController:
    def test_latest_request_wins(self):
        controller = TableController(page_size=10)
        slow = controller.set_filters({"tahun": 2023})
        fast = controller.set_filters({"tahun": 2024})

        assert controller.resolve(fast, _page(1, total=4)) is True
        assert controller.resolve(slow, _page(1, total=25)) is False
        assert controller.total_count == 4
        assert controller.filters == {"tahun": 2024}

    def test_stale_failure_ignored(self):
        controller = TableController(page_size=10)
        old = controller.request({}, 1)
        new = controller.request({}, 1)
        controller.resolve(new, _page(1))
        assert controller.fail(old, "timeout") is False
        assert controller.state == "loaded"

    def test_filter_change_resets_page(self):
        controller = TableController(page_size=10)
        controller.resolve(controller.request({}, 1), _page(1))
        controller.resolve(controller.go_to(3), _page(3))
        assert controller.page == 3
        controller.set_filters({"status_modal": "PMA"})
        assert controller.page == 1
        assert controller.state == "loading"

    def test_navigation_bounds(self):
        controller = TableController(page_size=10)
        controller.resolve(controller.request({}, 1), _page(1))
        assert controller.previous_page() is None
        assert controller.go_to(4) is None
        controller.resolve(controller.go_to(3), _page(3))
        assert controller.has_next is False
        assert controller.next_page() is None
        assert controller.has_previous is True

    def test_request_rejects_page_zero(self):
        with pytest.raises(ValueError):
            TableController(page_size=10).request({}, 0)

    def test_error_and_retry(self):
        controller = TableController(page_size=10)
        token = controller.request({"tahun": 2024}, 2)
        assert controller.fail(token, "backend unavailable") is True
        assert controller.state == "errored"
        assert controller.error == "backend unavailable"

        retry = controller.retry()
        assert retry != token
        assert (controller.page, controller.filters, controller.state) == (2, {"tahun": 2024}, "loading")
        assert controller.error is None

    def test_page_grand_total(self):
        controller = TableController(page_size=10)
        controller.resolve(controller.request({}, 1), _page(3))
        assert controller.page_grand_total(["amount"]) == {"amount": 7.5}


# ---------------------------------------------------------------------------
# SearchDebouncer
# ---------------------------------------------------------------------------


class _Clock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class TestSearchDebouncer:
    def test_rapid_submits_fire_once(self):
        clock = _Clock()
        debouncer = SearchDebouncer(delay=0.5, clock=clock)
        fired = []
        for term in ("b", "ba", "ban"):
            debouncer.submit(term)
            clock.now += 0.1
            if (value := debouncer.poll()) is not None:
                fired.append(value)

        clock.now += 0.5
        fired.append(debouncer.poll())
        assert fired == ["ban"]
        assert debouncer.poll() is None
        assert debouncer.last_fired == "ban"

    def test_remaining(self):
        clock = _Clock()
        debouncer = SearchDebouncer(delay=0.5, clock=clock)
        assert debouncer.remaining() == 0.0
        debouncer.submit("x")
        clock.now += 0.2
        assert debouncer.remaining() == pytest.approx(0.3)


# ---------------------------------------------------------------------------
# ImportProgress
# ---------------------------------------------------------------------------


def _summary(**overrides) -> ImportSummary:
    values = dict(
        dataset="ekraf_analysis",
        status="success",
        rows_total=10,
        rows_valid=8,
        rows_inserted=8,
        rows_skipped=2,
        batches_committed=1,
    )
    values.update(overrides)
    return ImportSummary(**values)


class TestImportProgress:
    def test_happy_path(self):
        progress = ImportProgress()
        assert progress.percent == 0
        progress.start_upload("data.csv")
        assert (progress.phase, progress.percent) == ("uploading", 0)
        progress.advance(0, 8)
        progress.advance(4, 8)
        assert (progress.phase, progress.percent) == ("processing", 50)
        progress.finish(_summary())
        assert (progress.phase, progress.percent) == ("success", 100)
        assert progress.finished

    def test_batch_failure_ends_in_error(self):
        progress = ImportProgress()
        progress.start_upload("data.csv")
        progress.advance(0, 8)
        progress.finish(_summary(status="error", rows_inserted=4, error_message="duplicate key"))
        assert progress.phase == "error"
        assert progress.message == "duplicate key"
        assert progress.percent == 50

    def test_invalid_transition(self):
        progress = ImportProgress()
        with pytest.raises(ValueError):
            progress.advance(1, 2)
        progress.start_upload("data.csv")
        progress.fail("Unsupported file type")
        with pytest.raises(ValueError):
            progress.start_upload("again.csv")

    def test_reset(self):
        progress = ImportProgress()
        progress.start_upload("data.csv")
        progress.fail("bad")
        progress.reset()
        assert progress.phase == "idle"
        assert progress.summary is None


# ---------------------------------------------------------------------------
# AuthGate
# ---------------------------------------------------------------------------

USER = AuthUser(id="1", email="dinas@example.com", name="dinas")
SESSION = AuthSession(access_token="tok", refresh_token="ref", user=USER)


class _FakeAuthService:
    def __init__(self, *, fail: bool = False, confirm_email: bool = False) -> None:
        self.fail = fail
        self.confirm_email = confirm_email
        self.signed_out: list[str] = []

    def sign_in(self, email, password):
        if self.fail:
            raise AuthError("Invalid login credentials", status_code=400)
        return SESSION

    def sign_up(self, email, password, name=None):
        if self.fail:
            raise AuthError("User already registered", status_code=422)
        return None if self.confirm_email else SESSION

    def sign_out(self, access_token):
        self.signed_out.append(access_token)
        if self.fail:
            raise AuthError("unreachable")

    def get_user(self, access_token):
        if self.fail:
            raise AuthError("JWT expired", status_code=401)
        return USER


class TestAuthGate:
    def test_starts_checking(self):
        assert AuthGate(_FakeAuthService()).status == "checking-session"

    def test_no_stored_session(self):
        gate = AuthGate(_FakeAuthService())
        assert gate.check_session(None) == "unauthenticated"

    def test_valid_stored_session(self):
        gate = AuthGate(_FakeAuthService())
        assert gate.check_session(SESSION) == "authenticated"
        assert gate.user == USER

    def test_expired_session(self):
        gate = AuthGate(_FakeAuthService(fail=True))
        assert gate.check_session(SESSION) == "unauthenticated"
        assert gate.session is None

    def test_sign_in_failure_sets_error(self):
        gate = AuthGate(_FakeAuthService(fail=True))
        gate.check_session(None)
        assert gate.sign_in("dinas@example.com", "salah") is False
        assert gate.error == "Invalid login credentials"
        assert not gate.is_authenticated

    def test_sign_in(self):
        gate = AuthGate(_FakeAuthService())
        assert gate.sign_in(" dinas@example.com ", "rahasia") is True
        assert gate.is_authenticated
        assert gate.session == SESSION

    def test_sign_up_pending_confirmation(self):
        gate = AuthGate(_FakeAuthService(confirm_email=True))
        gate.toggle_mode()
        assert gate.mode == "register"
        assert gate.sign_up("baru@example.com", "rahasia123", name="Baru") is True
        assert gate.mode == "login"
        assert gate.notice
        assert not gate.is_authenticated

    def test_sign_out_always_clears(self):
        service = _FakeAuthService()
        gate = AuthGate(service)
        gate.sign_in("dinas@example.com", "rahasia")
        service.fail = True
        gate.sign_out()
        assert service.signed_out == ["tok"]
        assert gate.status == "unauthenticated"
        assert gate.user is None
