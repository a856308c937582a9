"""
Recorder Service

Single entry point over the recording pipeline. Composes the session
manager, the network correlation engine and the script generators,
and dispatches the operation-keyed message protocol used by browser
front-ends.
"""

import asyncio
import logging
from dataclasses import replace
from typing import Dict, List, Any, Optional, Callable, Sequence

from .config import ScribeConfig, get_config
from .errors import ScribeError, SessionNotFoundError
from .generators import generate_script
from .models import GenerationOptions, NetworkRequest, RecordingSession, TabContext
from .network.correlation import NetworkCorrelationEngine
from .recorder.playwright_bridge import PlaywrightCollaborator
from .recorder.session_manager import InPageCollaborator, SessionManager

# Configure logging
logger = logging.getLogger(__name__)


def _tab_context(tab: Any) -> Optional[TabContext]:
    if tab is None or isinstance(tab, TabContext):
        return tab
    tab_id = tab.get("tab_id", tab.get("tabId", tab.get("id")))
    return TabContext(
        tab_id=int(tab_id) if tab_id is not None else None,
        url=tab.get("url", ""),
        title=tab.get("title", ""),
    )


class RecorderService:
    """Facade over sessions, network capture and script generation"""

    def __init__(
        self,
        config: Optional[ScribeConfig] = None,
        collaborator: Optional[InPageCollaborator] = None,
        clock: Optional[Callable[[], float]] = None,
        sleep: Callable = asyncio.sleep,
    ):
        self.config = config or get_config()
        self.manager = SessionManager(
            collaborator=collaborator,
            config=self.config,
            clock=clock,
            sleep=sleep,
        )
        self.network = NetworkCorrelationEngine(config=self.config, clock=clock)

    @classmethod
    def with_playwright(cls, config: Optional[ScribeConfig] = None) -> "RecorderService":
        """Service whose listener runs in Playwright pages."""
        service = cls(config=config)
        service.manager.collaborator = PlaywrightCollaborator(
            on_actions=lambda tab_id, actions: service.append_actions(actions, tab_id=tab_id),
            on_tab_removed=service.handle_tab_removed,
            on_tab_updated=service.handle_tab_updated,
        )
        return service

    @property
    def collaborator(self) -> Optional[InPageCollaborator]:
        return self.manager.collaborator

    # ==================== Sessions ====================

    async def start_session(self, tab: Any) -> str:
        session = await self.manager.start(_tab_context(tab))
        self.network.start_recording()
        return session.id

    async def pause_session(self) -> RecordingSession:
        return await self.manager.pause()

    async def resume_session(self) -> RecordingSession:
        return await self.manager.resume()

    async def stop_session(self) -> Dict[str, Any]:
        session = await self.manager.stop()
        network = self.network.stop_recording()
        return {
            "session": session.to_dict(),
            "network_summary": network["summary"],
        }

    def append_actions(self, actions: Sequence[Any], tab_id: Optional[int] = None) -> int:
        return self.manager.append_actions(actions, tab_id=tab_id)

    def current_session(self) -> Optional[RecordingSession]:
        return self.manager.current_session()

    def history(self) -> List[Dict[str, Any]]:
        return self.manager.list_history()

    def export_session(self, session_id: str, export_format: str = "json") -> str:
        return self.manager.export_session(session_id, export_format)

    async def handle_tab_removed(self, tab_id: int) -> Optional[RecordingSession]:
        session = await self.manager.handle_tab_removed(tab_id)
        if session is not None:
            self.network.stop_recording()
        return session

    async def handle_tab_updated(self, tab_id: int, url: Optional[str] = None,
                                 status: Optional[str] = None, title: Optional[str] = None):
        return await self.manager.handle_tab_updated(tab_id, url=url, status=status, title=title)

    # ==================== Generation ====================

    def _latest_session(self, session_id: Optional[str]) -> RecordingSession:
        if session_id:
            return self.manager.get_session(session_id)
        session = self.manager.current_session()
        if session is None:
            entries = self.manager.history.entries()
            if not entries:
                raise SessionNotFoundError("latest")
            session = entries[0]
        return session

    def generate_script(
        self,
        framework: Any = None,
        actions: Optional[Sequence[Any]] = None,
        options: Optional[Any] = None,
        session_id: Optional[str] = None,
    ) -> str:
        """Compile actions, or a recorded session's actions, into a test script."""
        options = GenerationOptions.from_dict(options)
        if actions is None:
            session = self._latest_session(session_id)
            actions = session.actions
            if options.start_url is None:
                options = replace(options, start_url=session.url or None)

        network = []
        if options.include_network_assertions:
            network = [(r, self.network.classification(r)) for r in self.network.requests]

        return generate_script(
            framework or self.config.default_framework,
            actions,
            options,
            network=network,
            dedup_window_ms=self.config.dedup_window_ms,
        )

    # ==================== Network ====================

    def ingest_network_event(self, event: Any) -> Optional[NetworkRequest]:
        return self.network.ingest(event)

    def export_network_data(self, export_format: str = "json") -> str:
        return self.network.export(export_format)

    def network_summary(self) -> Dict[str, Any]:
        return self.network.summary().to_dict()

    # ==================== Message protocol ====================

    async def handle_message(self, message: Dict[str, Any]) -> Dict[str, Any]:
        """Dispatch one operation-keyed message.

        Returns ``{"success": True, ...}`` or a failure payload carrying
        the error message and its type name.
        """
        message_type = message.get("type")
        handler = MESSAGE_HANDLERS.get(message_type)
        if handler is None:
            return {"success": False, "error": f"Unknown message type: {message_type}", "error_type": "UnknownMessageType"}

        try:
            result = await handler(self, message)
        except (ScribeError, ValueError) as e:
            logger.warning(f"{message_type} failed: {e}")
            return {"success": False, "error": str(e), "error_type": type(e).__name__}
        return {"success": True, **(result or {})}

    async def _msg_start(self, message):
        return {"session_id": await self.start_session(message.get("tab") or message)}

    async def _msg_pause(self, message):
        return {"session": (await self.pause_session()).to_dict(include_actions=False)}

    async def _msg_resume(self, message):
        return {"session": (await self.resume_session()).to_dict(include_actions=False)}

    async def _msg_stop(self, message):
        return await self.stop_session()

    async def _msg_actions(self, message):
        return {"appended": self.append_actions(message.get("actions", []), tab_id=message.get("tabId"))}

    async def _msg_current(self, message):
        session = self.current_session()
        return {"session": session.to_dict() if session else None}

    async def _msg_state(self, message):
        return self.manager.recording_state()

    async def _msg_history(self, message):
        return {"history": self.history()}

    async def _msg_export_session(self, message):
        export_format = message.get("format", "json")
        return {"data": self.export_session(message.get("sessionId"), export_format), "format": export_format}

    async def _msg_generate(self, message):
        framework = message.get("framework")
        script = self.generate_script(
            framework,
            actions=message.get("actions"),
            options=message.get("options"),
            session_id=message.get("sessionId"),
        )
        return {"script": script, "framework": framework or self.config.default_framework}

    async def _msg_network_event(self, message):
        request = self.ingest_network_event(message.get("event") or {})
        return {"request": request.to_dict() if request else None}

    async def _msg_export_network(self, message):
        export_format = message.get("format", "json")
        return {"data": self.export_network_data(export_format), "format": export_format}

    async def _msg_tab_removed(self, message):
        session = await self.handle_tab_removed(message.get("tabId"))
        return {"stopped": session is not None}

    async def _msg_tab_updated(self, message):
        await self.handle_tab_updated(
            message.get("tabId"),
            url=message.get("url"),
            status=message.get("status"),
            title=message.get("title"),
        )
        return {}


MESSAGE_HANDLERS = {
    "START_RECORDING_SESSION": RecorderService._msg_start,
    "PAUSE_RECORDING": RecorderService._msg_pause,
    "RESUME_RECORDING": RecorderService._msg_resume,
    "STOP_RECORDING_SESSION": RecorderService._msg_stop,
    "ACTIONS_RECORDED": RecorderService._msg_actions,
    "GET_CURRENT_SESSION": RecorderService._msg_current,
    "CHECK_RECORDING_STATE": RecorderService._msg_state,
    "GET_SESSION_HISTORY": RecorderService._msg_history,
    "EXPORT_SESSION": RecorderService._msg_export_session,
    "GENERATE_SCRIPT": RecorderService._msg_generate,
    "NETWORK_EVENT": RecorderService._msg_network_event,
    "EXPORT_NETWORK_DATA": RecorderService._msg_export_network,
    "TAB_REMOVED": RecorderService._msg_tab_removed,
    "TAB_UPDATED": RecorderService._msg_tab_updated,
}


# Global service instance
_service: Optional[RecorderService] = None


def get_recorder_service() -> RecorderService:
    global _service
    if _service is None:
        _service = RecorderService()
    return _service


def reset_recorder_service(service: Optional[RecorderService] = None):
    global _service
    _service = service
