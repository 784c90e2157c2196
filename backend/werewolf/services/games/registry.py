import logging
import random
import threading
import time
from typing import Dict, List, Optional

from werewolf.errors import NotFound, PreconditionFailed
from werewolf.models import Session

logger = logging.getLogger(__name__)


def normalize_code(code) -> str:
    return str(code or '').strip().upper()


def generate_game_code(taken, rng: Optional[random.Random] = None) -> str:
    """Generate a short numeric room code not present in ``taken``."""
    rng = rng or random.Random()
    while True:
        code = str(rng.randint(1000, 9999))
        if code not in taken:
            return code


class SessionRegistry:
    """Owns every live session, keyed by room code."""

    def __init__(self, max_sessions: int = 0, rng: Optional[random.Random] = None):
        self.max_sessions = max_sessions
        self._rng = rng or random.Random()
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, code) -> bool:
        return normalize_code(code) in self._sessions

    def create(self, host_id: str, host_name: str) -> Session:
        with self._lock:
            if self.max_sessions and len(self._sessions) >= self.max_sessions:
                raise PreconditionFailed('No free rooms right now, try again later', 'capacityReached')
            code = generate_game_code(self._sessions, self._rng)
            session = Session(code=code, host_id=host_id)
            session.add_player(host_id, host_name, is_host=True)
            self._sessions[code] = session
        logger.info(f"[create] game={code} host={host_name} live={len(self._sessions)}")
        return session

    def get(self, code) -> Session:
        session = self._sessions.get(normalize_code(code))
        if session is None:
            raise NotFound('Game not found')
        return session

    def destroy(self, code) -> Optional[Session]:
        with self._lock:
            session = self._sessions.pop(normalize_code(code), None)
        if session is not None:
            session.closed = True
            logger.info(f"[destroy] game={session.code} live={len(self._sessions)}")
        return session

    def idle(self, timeout: float, now: Optional[float] = None) -> List[Session]:
        """Sessions with no activity for at least ``timeout`` seconds."""
        if not timeout or timeout <= 0:
            return []
        now = time.monotonic() if now is None else now
        with self._lock:
            return [s for s in self._sessions.values() if now - s.last_activity >= timeout]
