"""
Recording Session Manager

Owns the recording lifecycle: at most one session may be recording or
paused at any time. Sessions move Recording <-> Paused -> Completed
and are never deleted; completed sessions are folded into a bounded
history.

The manager talks to an in-page collaborator (the DOM listener) to
start, pause, resume and stop event capture, and re-arms it after the
owning tab reloads.
"""

import time
import uuid
import asyncio
import logging
from dataclasses import replace
from typing import Dict, List, Any, Optional, Callable, Awaitable, Sequence, Protocol

from ..config import ScribeConfig
from ..errors import (
    CollaboratorUnavailableError, NoActiveSessionError, NoTabError,
    SessionAlreadyActiveError, SessionNotFoundError,
)
from ..models import Action, ActionType, RecordingSession, SessionStatus, TabContext
from .export import export_session
from .history import SessionHistory

# Configure logging
logger = logging.getLogger(__name__)


class InPageCollaborator(Protocol):
    """The listener injected into the recorded page"""

    async def start_recording(self, tab_id: int, session_id: str) -> None:
        ...

    async def pause_recording(self, tab_id: int) -> None:
        ...

    async def resume_recording(self, tab_id: int) -> None:
        ...

    async def stop_recording(self, tab_id: int) -> List[Dict[str, Any]]:
        ...


class SessionManager:
    """Recording session state machine"""

    def __init__(
        self,
        collaborator: Optional[InPageCollaborator] = None,
        history: Optional[SessionHistory] = None,
        config: Optional[ScribeConfig] = None,
        clock: Optional[Callable[[], float]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config or ScribeConfig()
        self.collaborator = collaborator
        self.history = history or SessionHistory(
            limit=self.config.history_limit,
            data_dir=self.config.data_dir if self.config.persist_history else None,
        )
        self.clock = clock or (lambda: time.time() * 1000)
        self.sleep = sleep
        self._sessions: Dict[str, RecordingSession] = {}
        self._active_id: Optional[str] = None
        # Session detached by stop() while the listener flushes its last actions
        self._closing_id: Optional[str] = None

    # ==================== State ====================

    @property
    def active_session(self) -> Optional[RecordingSession]:
        if self._active_id is None:
            return None
        return self._sessions[self._active_id]

    def current_session(self) -> Optional[RecordingSession]:
        return self.active_session

    def get_session(self, session_id: str) -> RecordingSession:
        session = self._sessions.get(session_id) or self.history.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def recording_state(self) -> Dict[str, Any]:
        session = self.active_session
        return {
            "is_recording": session is not None and session.status == SessionStatus.RECORDING,
            "is_paused": session is not None and session.status == SessionStatus.PAUSED,
            "session_id": session.id if session else None,
            "action_count": session.action_count if session else 0,
        }

    def _store(self, session: RecordingSession) -> RecordingSession:
        self._sessions[session.id] = session
        return session

    def _require_active(self, *statuses: SessionStatus) -> RecordingSession:
        session = self.active_session
        if session is None or session.status not in statuses:
            raise NoActiveSessionError()
        return session

    async def _notify(self, operation: str, *args) -> Any:
        if self.collaborator is None:
            return None
        try:
            return await getattr(self.collaborator, operation)(*args)
        except CollaboratorUnavailableError as e:
            logger.warning(f"Could not reach page listener for {operation}: {e}")
            return None

    # ==================== Transitions ====================

    async def start(self, tab: Optional[TabContext]) -> RecordingSession:
        if tab is None or tab.tab_id is None:
            raise NoTabError()

        active = self.active_session
        if active is not None:
            raise SessionAlreadyActiveError(active.id)
        if self._closing_id is not None:
            raise SessionAlreadyActiveError(self._closing_id)

        now = self.clock()
        session = self._store(RecordingSession(
            id=f"session_{int(now)}_{uuid.uuid4().hex[:9]}",
            tab_id=tab.tab_id,
            url=tab.url,
            title=tab.title,
            start_time=now,
        ))
        self._active_id = session.id
        logger.info(f"Recording session {session.id} started on tab {tab.tab_id}")

        await self._notify("start_recording", tab.tab_id, session.id)
        return session

    async def pause(self) -> RecordingSession:
        session = self._require_active(SessionStatus.RECORDING)
        session = self._store(replace(session, status=SessionStatus.PAUSED, paused_at=self.clock()))
        logger.info(f"Recording session {session.id} paused")
        await self._notify("pause_recording", session.tab_id)
        return session

    async def resume(self) -> RecordingSession:
        session = self._require_active(SessionStatus.PAUSED)
        session = self._store(replace(session, status=SessionStatus.RECORDING, resumed_at=self.clock()))
        logger.info(f"Recording session {session.id} resumed")
        await self._notify("resume_recording", session.tab_id)
        return session

    async def stop(self) -> RecordingSession:
        session = self._require_active(SessionStatus.RECORDING, SessionStatus.PAUSED)

        # Detach before awaiting so a concurrent stop sees no active session
        self._active_id = None
        self._closing_id = session.id
        try:
            final_actions = await self._notify("stop_recording", session.tab_id) or []
            if final_actions:
                self.append_actions(final_actions)
        finally:
            self._closing_id = None
        session = self._sessions[session.id]

        end_time = self.clock()
        session = self._store(replace(
            session,
            status=SessionStatus.COMPLETED,
            end_time=end_time,
            duration=end_time - session.start_time,
        ))
        self.history.add(session)
        logger.info(f"Recording session {session.id} stopped with {session.action_count} actions")
        return session

    # ==================== Actions ====================

    def append_actions(self, raw_actions: Sequence[Any], tab_id: Optional[int] = None) -> int:
        """Append captured actions to the active session.

        Without an active session this is a no-op. Actions flushed by the
        listener while a session is stopping still land in that session.
        Returns the number of actions appended.
        """
        session = self.active_session
        if session is None and self._closing_id is not None:
            session = self._sessions[self._closing_id]
        if session is None:
            logger.debug(f"Dropping {len(raw_actions)} actions, no active session")
            return 0
        if tab_id is not None and tab_id != session.tab_id:
            logger.debug(f"Ignoring actions from tab {tab_id}, recording tab {session.tab_id}")
            return 0

        parsed: List[Action] = []
        for raw in raw_actions:
            try:
                action = Action.from_dict(raw)
            except (ValueError, TypeError, KeyError) as e:
                logger.warning(f"Skipping unrecognized action {raw!r}: {e}")
                continue
            if action.tab_id is None:
                action = replace(action, tab_id=session.tab_id)
            parsed.append(action)

        if parsed:
            self._store(replace(session, actions=session.actions + tuple(parsed)))
        return len(parsed)

    def _last_url(self, session: RecordingSession) -> str:
        for action in reversed(session.actions):
            if action.url:
                return action.url
        return session.url

    # ==================== Tab lifecycle ====================

    async def handle_tab_removed(self, tab_id: int) -> Optional[RecordingSession]:
        session = self.active_session
        if session is None or session.tab_id != tab_id:
            return None
        logger.info(f"Tab {tab_id} closed, stopping session {session.id}")
        return await self.stop()

    async def handle_tab_updated(
        self,
        tab_id: int,
        url: Optional[str] = None,
        status: Optional[str] = None,
        title: Optional[str] = None,
    ) -> Optional[RecordingSession]:
        session = self.active_session
        if session is None or session.tab_id != tab_id or session.status != SessionStatus.RECORDING:
            return None

        if url and url != self._last_url(session):
            now = self.clock()
            self.append_actions([{
                "id": f"nav_{int(now)}",
                "type": ActionType.NAVIGATION.value,
                "timestamp": now,
                "tabId": tab_id,
                "url": url,
                "title": title,
            }])

        if status == "complete":
            await self.rearm(tab_id)

        return self.active_session

    async def rearm(self, tab_id: int) -> bool:
        """Restart the page listener after a reload, retrying with backoff."""
        if self.collaborator is None:
            return False

        attempts = [0] + list(self.config.rearm_retry_delays_ms)
        for attempt, delay_ms in enumerate(attempts, 1):
            if delay_ms:
                await self.sleep(delay_ms / 1000)

            session = self.active_session
            if session is None or session.tab_id != tab_id or session.status != SessionStatus.RECORDING:
                return False

            try:
                await self.collaborator.start_recording(tab_id, session.id)
                logger.debug(f"Re-armed page listener on tab {tab_id} (attempt {attempt})")
                return True
            except CollaboratorUnavailableError as e:
                logger.debug(f"Re-arm attempt {attempt} on tab {tab_id} failed: {e}")

        logger.warning(f"Giving up re-arming page listener on tab {tab_id} after {len(attempts)} attempts")
        return False

    # ==================== History ====================

    def list_history(self) -> List[Dict[str, Any]]:
        return self.history.summaries()

    def export_session(self, session_id: str, export_format: str = "json") -> str:
        return export_session(self.get_session(session_id), export_format)
