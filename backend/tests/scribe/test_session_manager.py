"""
Unit tests for SessionManager.

Tests the recording state machine, action capture, tab lifecycle
handling and listener re-arming.
"""

import asyncio
import pytest
from pathlib import Path
from unittest.mock import AsyncMock, call
import sys

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "app"))

from scribe.config import ScribeConfig
from scribe.errors import (
    CollaboratorUnavailableError, NoActiveSessionError, NoTabError,
    SessionAlreadyActiveError, SessionNotFoundError,
)
from scribe.models import ActionType, SessionStatus, TabContext
from scribe.recorder.session_manager import SessionManager

TAB = TabContext(tab_id=7, url="https://shop.example.com/", title="Shop")


def click(element_id="buy", timestamp=1000, **extra):
    action = {"id": f"a{timestamp}", "type": "click", "timestamp": timestamp,
              "url": "https://shop.example.com/", "element": {"tagName": "button", "id": element_id}}
    action.update(extra)
    return action


@pytest.fixture
def manager(fake_collaborator, clock, no_sleep):
    return SessionManager(collaborator=fake_collaborator, config=ScribeConfig(), clock=clock, sleep=no_sleep)


class TestStart:
    """Test starting a session."""

    @pytest.mark.asyncio
    async def test_start(self, manager, fake_collaborator, clock):
        """Test that start creates a recording session and arms the listener."""
        session = await manager.start(TAB)

        assert session.status == SessionStatus.RECORDING
        assert session.tab_id == 7
        assert session.url == "https://shop.example.com/"
        assert session.start_time == clock.now
        assert session.id.startswith(f"session_{int(clock.now)}_")
        fake_collaborator.start_recording.assert_awaited_once_with(7, session.id)

    @pytest.mark.asyncio
    async def test_start_without_tab(self, manager):
        """Test that a tab is required."""
        with pytest.raises(NoTabError):
            await manager.start(None)
        with pytest.raises(NoTabError):
            await manager.start(TabContext(tab_id=None))

    @pytest.mark.asyncio
    async def test_single_active_session(self, manager):
        """Test that a second start fails while one session is active."""
        first = await manager.start(TAB)

        with pytest.raises(SessionAlreadyActiveError) as exc_info:
            await manager.start(TabContext(tab_id=8))

        assert exc_info.value.session_id == first.id

    @pytest.mark.asyncio
    async def test_start_while_paused(self, manager):
        """Test that a paused session still blocks a new one."""
        await manager.start(TAB)
        await manager.pause()

        with pytest.raises(SessionAlreadyActiveError):
            await manager.start(TAB)

    @pytest.mark.asyncio
    async def test_unreachable_listener(self, manager, fake_collaborator):
        """Test that an unreachable page does not prevent recording."""
        fake_collaborator.start_recording.side_effect = CollaboratorUnavailableError("no page")

        session = await manager.start(TAB)

        assert manager.active_session == session


class TestTransitions:
    """Test pause, resume and stop."""

    @pytest.mark.asyncio
    async def test_pause_and_resume(self, manager, fake_collaborator, clock):
        """Test the pause/resume round trip."""
        await manager.start(TAB)
        clock.advance(500)

        paused = await manager.pause()
        clock.advance(500)
        resumed = await manager.resume()

        assert paused.status == SessionStatus.PAUSED
        assert paused.paused_at == clock.now - 500
        assert resumed.status == SessionStatus.RECORDING
        assert resumed.resumed_at == clock.now
        fake_collaborator.pause_recording.assert_awaited_once_with(7)
        fake_collaborator.resume_recording.assert_awaited_once_with(7)

    @pytest.mark.asyncio
    async def test_pause_without_session(self, manager):
        """Test that pausing needs a recording session."""
        with pytest.raises(NoActiveSessionError):
            await manager.pause()

    @pytest.mark.asyncio
    async def test_resume_before_start(self, manager):
        """Test that resuming with no session fails."""
        with pytest.raises(NoActiveSessionError):
            await manager.resume()

    @pytest.mark.asyncio
    async def test_stop_twice(self, manager):
        """Test that a second stop fails."""
        await manager.start(TAB)
        await manager.stop()

        with pytest.raises(NoActiveSessionError):
            await manager.stop()

    @pytest.mark.asyncio
    async def test_pause_twice(self, manager):
        """Test that a paused session cannot be paused again."""
        await manager.start(TAB)
        await manager.pause()

        with pytest.raises(NoActiveSessionError):
            await manager.pause()

    @pytest.mark.asyncio
    async def test_resume_while_recording(self, manager):
        """Test that only paused sessions can resume."""
        await manager.start(TAB)

        with pytest.raises(NoActiveSessionError):
            await manager.resume()

    @pytest.mark.asyncio
    async def test_stop(self, manager, clock):
        """Test that stop completes the session and files it in history."""
        session = await manager.start(TAB)
        clock.advance(2500)

        stopped = await manager.stop()

        assert stopped.id == session.id
        assert stopped.status == SessionStatus.COMPLETED
        assert stopped.duration == 2500
        assert manager.active_session is None
        assert manager.history.get(session.id) == stopped

    @pytest.mark.asyncio
    async def test_stop_from_paused(self, manager):
        """Test that a paused session can be stopped."""
        await manager.start(TAB)
        await manager.pause()

        assert (await manager.stop()).status == SessionStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_stop_without_session(self, manager):
        """Test that stop needs an active session."""
        with pytest.raises(NoActiveSessionError):
            await manager.stop()

    @pytest.mark.asyncio
    async def test_stop_pulls_final_actions(self, manager, fake_collaborator):
        """Test that actions flushed by the listener on stop are kept."""
        await manager.start(TAB)
        fake_collaborator.stop_recording.return_value = [click(timestamp=5000)]

        stopped = await manager.stop()

        assert stopped.action_count == 1

    @pytest.mark.asyncio
    async def test_stop_keeps_actions_flushed_during_stop(self, manager, fake_collaborator):
        """Test that actions the listener flushes while stopping are kept."""
        await manager.start(TAB)
        manager.append_actions([click("first", 1)])

        async def flush_then_stop(tab_id):
            await asyncio.sleep(0)
            manager.append_actions([click("last", 9)])
            return []

        fake_collaborator.stop_recording.side_effect = flush_then_stop

        stopped = await manager.stop()

        assert [a.element.id for a in stopped.actions] == ["first", "last"]
        assert manager.history.get(stopped.id).action_count == 2

    @pytest.mark.asyncio
    async def test_concurrent_stop_and_tab_close(self, manager, fake_collaborator):
        """Test that a tab close racing a stop completes the session once."""
        await manager.start(TAB)

        async def slow_stop(tab_id):
            await asyncio.sleep(0)
            return []

        fake_collaborator.stop_recording.side_effect = slow_stop

        stopped, removed = await asyncio.gather(manager.stop(), manager.handle_tab_removed(7))

        assert stopped.status == SessionStatus.COMPLETED
        assert removed is None
        assert len(manager.history) == 1

    @pytest.mark.asyncio
    async def test_concurrent_stops(self, manager, fake_collaborator):
        """Test that the second of two overlapping stops fails."""
        await manager.start(TAB)

        async def slow_stop(tab_id):
            await asyncio.sleep(0)
            return []

        fake_collaborator.stop_recording.side_effect = slow_stop

        results = await asyncio.gather(manager.stop(), manager.stop(), return_exceptions=True)

        assert results[0].status == SessionStatus.COMPLETED
        assert isinstance(results[1], NoActiveSessionError)
        assert len(manager.history) == 1

    @pytest.mark.asyncio
    async def test_start_while_stopping(self, manager, fake_collaborator):
        """Test that no session can start until the previous one completed."""
        await manager.start(TAB)
        errors = []

        async def start_during_stop(tab_id):
            try:
                await manager.start(TAB)
            except SessionAlreadyActiveError as e:
                errors.append(e)
            return []

        fake_collaborator.stop_recording.side_effect = start_during_stop

        stopped = await manager.stop()

        assert [e.session_id for e in errors] == [stopped.id]

    @pytest.mark.asyncio
    async def test_new_session_after_stop(self, manager):
        """Test that a new session can start once the old one stopped."""
        first = await manager.start(TAB)
        await manager.stop()

        second = await manager.start(TAB)

        assert second.id != first.id
        assert manager.get_session(first.id).status == SessionStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_recording_state(self, manager):
        """Test the recording state snapshot."""
        assert manager.recording_state()["is_recording"] is False

        session = await manager.start(TAB)
        manager.append_actions([click()])
        await manager.pause()

        assert manager.recording_state() == {
            "is_recording": False,
            "is_paused": True,
            "session_id": session.id,
            "action_count": 1,
        }

    def test_unknown_session(self, manager):
        """Test lookups of unknown sessions."""
        with pytest.raises(SessionNotFoundError):
            manager.get_session("session_missing")


class TestAppendActions:
    """Test action capture."""

    @pytest.mark.asyncio
    async def test_append(self, manager):
        """Test that actions are appended in arrival order."""
        await manager.start(TAB)

        count = manager.append_actions([click("a", 1), click("b", 2)])

        assert count == 2
        assert [a.element.id for a in manager.active_session.actions] == ["a", "b"]

    def test_no_session_is_noop(self, manager):
        """Test that actions without a session are dropped."""
        assert manager.append_actions([click()]) == 0

    @pytest.mark.asyncio
    async def test_tab_filled_in(self, manager):
        """Test that actions inherit the session tab."""
        await manager.start(TAB)
        manager.append_actions([click()])

        assert manager.active_session.actions[0].tab_id == 7

    @pytest.mark.asyncio
    async def test_append_while_paused(self, manager):
        """Test that actions flushed during a pause are kept."""
        await manager.start(TAB)
        await manager.pause()

        assert manager.append_actions([click()]) == 1

    @pytest.mark.asyncio
    async def test_other_tab_ignored(self, manager):
        """Test that actions from another tab are ignored."""
        await manager.start(TAB)

        assert manager.append_actions([click()], tab_id=99) == 0

    @pytest.mark.asyncio
    async def test_unknown_type_skipped(self, manager):
        """Test that unparseable actions are skipped, others kept."""
        await manager.start(TAB)

        count = manager.append_actions([{"type": "teleport", "timestamp": 1}, click()])

        assert count == 1

    @pytest.mark.asyncio
    async def test_snapshots_are_immutable(self, manager):
        """Test that appending does not change earlier snapshots."""
        before = await manager.start(TAB)
        manager.append_actions([click()])

        assert before.action_count == 0
        assert manager.active_session.action_count == 1


class TestTabLifecycle:
    """Test tab close and reload handling."""

    @pytest.mark.asyncio
    async def test_tab_removed_stops(self, manager):
        """Test that closing the recorded tab stops the session."""
        session = await manager.start(TAB)

        stopped = await manager.handle_tab_removed(7)

        assert stopped.id == session.id
        assert manager.active_session is None

    @pytest.mark.asyncio
    async def test_other_tab_removed(self, manager):
        """Test that closing another tab does nothing."""
        await manager.start(TAB)

        assert await manager.handle_tab_removed(8) is None
        assert manager.active_session is not None

    @pytest.mark.asyncio
    async def test_navigation_recorded(self, manager):
        """Test that a URL change on the tab is recorded as navigation."""
        await manager.start(TAB)

        await manager.handle_tab_updated(7, url="https://shop.example.com/cart", title="Cart")

        action = manager.active_session.actions[-1]
        assert action.type == ActionType.NAVIGATION
        assert action.url == "https://shop.example.com/cart"
        assert action.title == "Cart"

    @pytest.mark.asyncio
    async def test_same_url_not_recorded(self, manager):
        """Test that an update without URL change adds nothing."""
        await manager.start(TAB)

        await manager.handle_tab_updated(7, url="https://shop.example.com/")

        assert manager.active_session.action_count == 0

    @pytest.mark.asyncio
    async def test_paused_session_ignores_updates(self, manager):
        """Test that a paused session records no navigation."""
        await manager.start(TAB)
        await manager.pause()

        await manager.handle_tab_updated(7, url="https://shop.example.com/cart", status="complete")

        assert manager.active_session.action_count == 0

    @pytest.mark.asyncio
    async def test_reload_rearms_listener(self, manager, fake_collaborator):
        """Test that a completed load restarts the page listener."""
        session = await manager.start(TAB)
        fake_collaborator.start_recording.reset_mock()

        await manager.handle_tab_updated(7, status="complete")

        fake_collaborator.start_recording.assert_awaited_once_with(7, session.id)


class TestRearm:
    """Test re-arming with retries."""

    @pytest.mark.asyncio
    async def test_retries_with_backoff(self, manager, fake_collaborator, no_sleep):
        """Test that failed attempts are retried after 500ms and 1000ms."""
        await manager.start(TAB)
        fake_collaborator.start_recording.reset_mock()
        fake_collaborator.start_recording.side_effect = [
            CollaboratorUnavailableError("loading"),
            CollaboratorUnavailableError("loading"),
            None,
        ]

        assert await manager.rearm(7) is True

        assert fake_collaborator.start_recording.await_count == 3
        assert no_sleep.await_args_list == [call(0.5), call(1.0)]

    @pytest.mark.asyncio
    async def test_gives_up(self, manager, fake_collaborator):
        """Test that re-arming gives up after the last attempt."""
        await manager.start(TAB)
        fake_collaborator.start_recording.reset_mock()
        fake_collaborator.start_recording.side_effect = CollaboratorUnavailableError("gone")

        assert await manager.rearm(7) is False
        assert fake_collaborator.start_recording.await_count == 3

    @pytest.mark.asyncio
    async def test_aborts_when_session_stops(self, fake_collaborator, clock):
        """Test that a retry is abandoned once recording stopped."""
        manager = SessionManager(collaborator=fake_collaborator, clock=clock)

        async def stop_during_backoff(delay):
            await manager.stop()

        manager.sleep = AsyncMock(side_effect=stop_during_backoff)
        await manager.start(TAB)
        fake_collaborator.start_recording.reset_mock()
        fake_collaborator.start_recording.side_effect = CollaboratorUnavailableError("loading")

        assert await manager.rearm(7) is False
        assert fake_collaborator.start_recording.await_count == 1

    @pytest.mark.asyncio
    async def test_custom_delays(self, fake_collaborator, clock, no_sleep):
        """Test configurable retry delays."""
        config = ScribeConfig(rearm_retry_delays_ms=(100,))
        manager = SessionManager(collaborator=fake_collaborator, config=config, clock=clock, sleep=no_sleep)
        await manager.start(TAB)
        fake_collaborator.start_recording.side_effect = CollaboratorUnavailableError("loading")

        assert await manager.rearm(7) is False
        assert no_sleep.await_args_list == [call(0.1)]


class TestHistoryAccess:
    """Test history listing and export through the manager."""

    @pytest.mark.asyncio
    async def test_list_history(self, manager):
        """Test that history lists summaries without actions."""
        await manager.start(TAB)
        manager.append_actions([click()])
        session = await manager.stop()

        history = manager.list_history()

        assert history[0]["id"] == session.id
        assert "actions" not in history[0]
        assert history[0]["action_count"] == 1

    @pytest.mark.asyncio
    async def test_export_csv(self, manager):
        """Test CSV export of a stored session."""
        await manager.start(TAB)
        manager.append_actions([click()])
        session = await manager.stop()

        csv_text = manager.export_session(session.id, "csv")

        assert csv_text.splitlines()[1] == '"1","click","#buy","","1000","https://shop.example.com/"'
