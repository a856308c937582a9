import json
import os
import logging
from typing import List, Optional

from ..models import RecordingSession

# Configure logging
logger = logging.getLogger(__name__)


class SessionHistory:
    """Bounded, most-recent-first list of completed sessions.

    When a data directory is given the list is mirrored to
    ``history.json`` after every change.
    """

    def __init__(self, limit: int = 50, data_dir: Optional[str] = None):
        self.limit = limit
        self.data_dir = data_dir
        self._sessions: List[RecordingSession] = []
        if data_dir:
            os.makedirs(data_dir, exist_ok=True)
            self._load()

    def _get_history_file(self) -> str:
        """Get history file path"""
        return os.path.join(self.data_dir, "history.json")

    def _load(self):
        path = self._get_history_file()
        if not os.path.exists(path):
            return
        with open(path, "r") as f:
            data = json.load(f)
        self._sessions = [RecordingSession.from_dict(s) for s in data][:self.limit]
        logger.info(f"Loaded {len(self._sessions)} sessions from history")

    def _save(self):
        if not self.data_dir:
            return
        with open(self._get_history_file(), "w") as f:
            json.dump([s.to_dict() for s in self._sessions], f, indent=2)

    def add(self, session: RecordingSession):
        self._sessions.insert(0, session)
        del self._sessions[self.limit:]
        self._save()

    def get(self, session_id: str) -> Optional[RecordingSession]:
        for session in self._sessions:
            if session.id == session_id:
                return session
        return None

    def entries(self) -> List[RecordingSession]:
        return list(self._sessions)

    def summaries(self) -> List[dict]:
        return [s.to_dict(include_actions=False) for s in self._sessions]

    def clear(self):
        self._sessions = []
        self._save()

    def __len__(self) -> int:
        return len(self._sessions)
