"""
frontend/state.py

UI state machines for the dashboard, kept free of Streamlit calls so they
can be driven from tests.

TableController  paginated table fetch state with stale-response discard
SearchDebouncer  fires a search term only after typing pauses
ImportProgress   upload/processing progress of one import run
AuthGate         session check, sign-in/sign-up mode and current user
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from app.domain.results import ImportSummary, PageResult, page_totals
from app.services.auth_service import AuthError, AuthService, AuthSession, AuthUser

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Paginated table
# ---------------------------------------------------------------------------


class TableController:
    """
    Fetch state of one paginated table.

    Every `request` returns a new token. Only the response carrying the
    latest token may land; older responses are discarded so a slow fetch
    can never overwrite the result of a newer one.
    """

    def __init__(self, *, page_size: int) -> None:
        if page_size < 1:
            raise ValueError("page_size must be >= 1.")
        self.page_size = page_size
        self.state = "idle"
        self.filters: dict[str, Any] = {}
        self.page = 1
        self.result: PageResult | None = None
        self.error: str | None = None
        self._generation = 0

    @property
    def current_token(self) -> int:
        return self._generation

    @property
    def rows(self) -> list[dict[str, Any]]:
        return self.result.rows if self.result is not None else []

    @property
    def total_pages(self) -> int:
        return self.result.total_pages if self.result is not None else 0

    @property
    def total_count(self) -> int:
        return self.result.total_count if self.result is not None else 0

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    def request(self, filters: Mapping[str, Any] | None = None, page: int = 1) -> int:
        if page < 1:
            raise ValueError("page must be >= 1.")
        self._generation += 1
        self.filters = dict(filters or {})
        self.page = page
        self.state = "loading"
        self.error = None
        return self._generation

    def set_filters(self, filters: Mapping[str, Any] | None) -> int:
        """A filter change always starts again from page 1."""
        return self.request(filters, 1)

    def resolve(self, token: int, result: PageResult) -> bool:
        if token != self._generation:
            logger.debug("Discarding stale page token=%d latest=%d", token, self._generation)
            return False
        self.result = result
        self.page = result.current_page
        self.state = "loaded"
        return True

    def fail(self, token: int, message: str) -> bool:
        if token != self._generation:
            logger.debug("Discarding stale failure token=%d latest=%d", token, self._generation)
            return False
        self.error = message
        self.state = "errored"
        return True

    def go_to(self, page: int) -> int | None:
        """Request `page`; outside [1, total_pages] nothing is fetched."""
        if page < 1 or page > self.total_pages:
            return None
        return self.request(self.filters, page)

    def next_page(self) -> int | None:
        return self.go_to(self.page + 1)

    def previous_page(self) -> int | None:
        return self.go_to(self.page - 1)

    def retry(self) -> int:
        return self.request(self.filters, self.page)

    def page_grand_total(self, columns: Sequence[str]) -> dict[str, int | float]:
        return page_totals(self.rows, columns)


# ---------------------------------------------------------------------------
# Search debounce
# ---------------------------------------------------------------------------


class SearchDebouncer:
    """
    Holds the latest submitted search term and releases it once `delay`
    seconds have passed since the last submit. Each term fires at most once.
    """

    def __init__(self, delay: float = 0.5, clock: Callable[[], float] = time.monotonic) -> None:
        self.delay = max(0.0, delay)
        self._clock = clock
        self._pending: str | None = None
        self._submitted_at = 0.0
        self.last_fired: str | None = None

    @property
    def pending(self) -> str | None:
        return self._pending

    def submit(self, value: str) -> None:
        self._pending = value
        self._submitted_at = self._clock()

    def remaining(self) -> float:
        if self._pending is None:
            return 0.0
        return max(0.0, self.delay - (self._clock() - self._submitted_at))

    def poll(self) -> str | None:
        if self._pending is None or self.remaining() > 0:
            return None
        value = self._pending
        self._pending = None
        self.last_fired = value
        return value


# ---------------------------------------------------------------------------
# Import progress
# ---------------------------------------------------------------------------

_IMPORT_TRANSITIONS: dict[str, frozenset[str]] = {
    "idle": frozenset({"uploading"}),
    "uploading": frozenset({"processing", "error"}),
    "processing": frozenset({"processing", "success", "error"}),
    "success": frozenset(),
    "error": frozenset(),
}


class ImportProgress:
    """
    idle -> uploading -> processing -> success | error

    `advance(processed, total)` matches the import service progress
    callback, so an instance can be handed to it directly.
    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.phase = "idle"
        self.filename: str | None = None
        self.processed = 0
        self.total = 0
        self.summary: ImportSummary | None = None
        self.message: str | None = None

    @property
    def percent(self) -> int:
        if self.phase == "success":
            return 100
        if self.phase in {"idle", "uploading"}:
            return 0
        if self.total <= 0:
            return 100 if self.phase == "processing" else 0
        return min(100, int(self.processed * 100 / self.total))

    @property
    def finished(self) -> bool:
        return self.phase in {"success", "error"}

    def start_upload(self, filename: str) -> None:
        self._move("uploading")
        self.filename = filename

    def advance(self, processed: int, total: int) -> None:
        self._move("processing")
        self.processed = processed
        self.total = total

    def finish(self, summary: ImportSummary) -> None:
        self.summary = summary
        self.processed = summary.rows_inserted
        self.total = summary.rows_valid
        if summary.succeeded:
            self._move("success")
            self.message = f"{summary.rows_inserted} row(s) imported."
        else:
            self._move("error")
            self.message = summary.error_message
            if summary.failed_batch is not None:
                self.message = f"Batch {summary.failed_batch} rejected: {summary.error_message}"

    def fail(self, message: str) -> None:
        self._move("error")
        self.message = message

    def _move(self, target: str) -> None:
        if target not in _IMPORT_TRANSITIONS[self.phase]:
            raise ValueError(f"Invalid import transition {self.phase!r} -> {target!r}.")
        self.phase = target


# ---------------------------------------------------------------------------
# Auth gate
# ---------------------------------------------------------------------------


class AuthGate:
    """
    checking-session -> unauthenticated | authenticated

    Holds only what the auth API hands back (the session tokens and user).
    """

    def __init__(self, service: AuthService) -> None:
        self._service = service
        self.status = "checking-session"
        self.mode = "login"
        self.user: AuthUser | None = None
        self.session: AuthSession | None = None
        self.error: str | None = None
        self.notice: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.status == "authenticated"

    def check_session(self, session: AuthSession | None) -> str:
        """Validate a stored session with the backend and settle the status."""
        if session is None:
            self.on_auth_state_change(None)
            return self.status
        try:
            user = self._service.get_user(session.access_token)
        except AuthError as exc:
            logger.info("Stored session rejected: %s", exc)
            self.on_auth_state_change(None)
            return self.status
        self.on_auth_state_change(user, session)
        return self.status

    def toggle_mode(self) -> str:
        self.mode = "register" if self.mode == "login" else "login"
        self.error = None
        self.notice = None
        return self.mode

    def sign_in(self, email: str, password: str) -> bool:
        self.error = None
        try:
            session = self._service.sign_in(email.strip(), password)
        except AuthError as exc:
            self.error = str(exc)
            return False
        self.on_auth_state_change(session.user, session)
        return True

    def sign_up(self, email: str, password: str, name: str | None = None) -> bool:
        self.error = None
        try:
            session = self._service.sign_up(email.strip(), password, name=name or None)
        except AuthError as exc:
            self.error = str(exc)
            return False
        if session is None:
            self.mode = "login"
            self.notice = "Account created. Confirm your email address, then sign in."
            return True
        self.on_auth_state_change(session.user, session)
        return True

    def sign_out(self) -> None:
        if self.session is not None:
            try:
                self._service.sign_out(self.session.access_token)
            except AuthError as exc:
                logger.warning("Sign-out request failed: %s", exc)
        self.on_auth_state_change(None)

    def on_auth_state_change(self, user: AuthUser | None, session: AuthSession | None = None) -> None:
        if user is None:
            self.status = "unauthenticated"
            self.user = None
            self.session = None
            return
        self.status = "authenticated"
        self.user = user
        if session is not None:
            self.session = session
        self.error = None
