"""
Tests for GrantSelectionPersistence: start-up resolution, explicit
selection, the debounced confirmation write and fallbacks.
"""

from uuid import uuid4

import pytest

from grant_kernel.exceptions import (
    InvalidSelectionStateError,
    RecordNotFoundError,
    SettingsWriteError,
    StoreReadError,
)
from grant_services.grant_selection import (
    GrantSelectionPersistence,
    ManualScheduler,
    SelectionState,
)

KEY = "selectedGrantId"
G1, G2, G3 = uuid4(), uuid4(), uuid4()


class FakeStore:
    """In-memory settings backend recording every write."""

    def __init__(self, initial=None):
        self.values = dict(initial or {})
        self.writes: list[tuple[str, object]] = []
        self.fail_reads = False
        self.fail_writes = False
        self.on_get = None

    def get(self, key):
        if self.on_get is not None:
            self.on_get()
        if self.fail_reads:
            raise StoreReadError("app_setting", "offline")
        return self.values.get(key)

    def set(self, key, value):
        if self.fail_writes:
            raise SettingsWriteError(key, "offline")
        self.writes.append((key, value))
        self.values[key] = value


@pytest.fixture
def remote():
    return FakeStore()


@pytest.fixture
def cache():
    return FakeStore()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def selection(remote, cache, scheduler):
    return GrantSelectionPersistence(remote, cache, scheduler, settings_key=KEY)


class TestInitialResolution:

    def test_starts_uninitialized(self, selection):
        assert selection.state is SelectionState.UNINITIALIZED
        assert selection.is_initial_load
        with pytest.raises(InvalidSelectionStateError):
            selection.select(G1)

    def test_remote_value_wins(self, selection, remote, cache, captured_logs):
        remote.values[KEY] = str(G2)
        cache.values[KEY] = str(G3)
        assert selection.resolve_initial([G1, G2, G3]) == G2
        assert selection.state is SelectionState.READY
        resolved = [r for r in captured_logs() if r["message"] == "selection_resolved"]
        assert resolved[0]["source"] == "remote"
        assert remote.writes == []
        assert cache.writes == []

    def test_cache_used_when_remote_empty(self, selection, cache):
        cache.values[KEY] = str(G3)
        assert selection.resolve_initial([G1, G2, G3]) == G3

    def test_cache_used_when_remote_unreadable(self, selection, remote, cache, captured_logs):
        remote.fail_reads = True
        cache.values[KEY] = str(G2)
        assert selection.resolve_initial([G1, G2]) == G2
        assert any(r["message"] == "remote_selection_read_failed" for r in captured_logs())

    def test_unknown_saved_grant_falls_back_to_first(self, selection, remote, cache, captured_logs):
        remote.values[KEY] = str(uuid4())
        assert selection.resolve_initial([G1, G2]) == G1
        assert any(r["message"] == "saved_selection_discarded" for r in captured_logs())
        assert remote.writes == []
        assert cache.writes == []

    def test_no_grants(self, selection):
        assert selection.resolve_initial([]) is None
        assert selection.state is SelectionState.READY

    def test_fallback_not_persisted(self, selection, remote, cache, scheduler):
        selection.resolve_initial([G1, G2])
        assert remote.writes == []
        assert cache.writes == []
        assert scheduler.pending_count == 0


class TestSelect:

    @pytest.fixture(autouse=True)
    def _loaded(self, selection):
        selection.resolve_initial([G1, G2, G3])

    def test_writes_cache_then_remote(self, selection, remote, cache, scheduler):
        selection.select(G2)
        assert selection.selected_grant_id == G2
        assert cache.writes == [(KEY, str(G2))]
        assert remote.writes == [(KEY, str(G2))]
        assert selection.state is SelectionState.READY
        assert scheduler.pending_count == 1

    def test_confirmation_rewrites_remote(self, selection, remote, scheduler):
        selection.select(G2)
        assert scheduler.run_pending() == 1
        assert remote.writes == [(KEY, str(G2)), (KEY, str(G2))]
        assert selection.state is SelectionState.READY

    def test_accepts_string_id(self, selection):
        selection.select(str(G3))
        assert selection.selected_grant_id == G3

    def test_unknown_grant(self, selection, cache):
        with pytest.raises(RecordNotFoundError):
            selection.select(uuid4())
        assert cache.writes == []
        assert selection.selected_grant_id == G1

    def test_newer_selection_cancels_pending_confirmation(self, selection, remote, scheduler):
        selection.select(G2)
        selection.select(G3)
        assert scheduler.pending_count == 1
        scheduler.run_pending()
        assert remote.writes == [(KEY, str(G2)), (KEY, str(G3)), (KEY, str(G3))]

    def test_remote_failure_raises_after_caching(self, selection, remote, cache, scheduler, captured_logs):
        remote.fail_writes = True
        with pytest.raises(SettingsWriteError):
            selection.select(G2)
        assert selection.selected_grant_id == G2
        assert cache.values[KEY] == str(G2)
        assert selection.state is SelectionState.READY
        assert scheduler.pending_count == 1
        assert any(r["message"] == "selection_remote_write_failed" for r in captured_logs())

        remote.fail_writes = False
        scheduler.run_pending()
        assert remote.values[KEY] == str(G2)

    def test_unexpected_backend_error_leaves_selection_usable(self, selection, remote, scheduler):
        def broken_set(key, value):
            raise RuntimeError("session factory unavailable")

        remote.set = broken_set
        with pytest.raises(RuntimeError):
            selection.select(G2)
        assert selection.state is SelectionState.READY
        assert not selection.is_saving
        assert scheduler.pending_count == 1

        del remote.set
        assert scheduler.run_pending() == 1
        assert remote.values[KEY] == str(G2)
        assert selection.resolve_initial([G1, G2, G3]) == G2

    def test_failed_confirmation_is_logged(self, selection, remote, scheduler, captured_logs):
        selection.select(G2)
        remote.fail_writes = True
        scheduler.run_pending()
        assert selection.state is SelectionState.READY
        assert any(r["message"] == "selection_confirmation_failed" for r in captured_logs())

    def test_confirmation_skipped_during_reload(self, selection, remote, scheduler, captured_logs):
        selection.select(G2)
        remote.on_get = scheduler.run_pending
        selection.resolve_initial([G1, G2, G3])
        remote.on_get = None

        assert remote.writes == [(KEY, str(G2))]
        skipped = [r for r in captured_logs() if r["message"] == "selection_confirmation_skipped"]
        assert skipped[0]["state"] == "loading"
        assert selection.selected_grant_id == G2

    def test_close_cancels_confirmation(self, selection, remote, scheduler):
        selection.select(G2)
        selection.close()
        assert scheduler.run_pending() == 0
        assert len(remote.writes) == 1


class TestGrantListChanges:

    def test_selected_grant_removed(self, selection, remote, scheduler, captured_logs):
        selection.resolve_initial([G1, G2, G3])
        selection.select(G2)
        assert selection.on_grants_changed([G1, G3]) == G1
        assert scheduler.run_pending() == 0
        assert remote.writes == [(KEY, str(G2))]
        assert any(r["message"] == "selection_fell_back" for r in captured_logs())

    def test_selection_kept_when_still_present(self, selection):
        selection.resolve_initial([G1, G2])
        selection.select(G2)
        assert selection.on_grants_changed([G2, G3]) == G2

    def test_new_grant_becomes_selectable(self, selection):
        selection.resolve_initial([G1])
        new = uuid4()
        selection.on_grants_changed([G1, new])
        selection.select(new)
        assert selection.selected_grant_id == new

    def test_last_grant_removed(self, selection):
        selection.resolve_initial([G1])
        assert selection.on_grants_changed([]) is None
