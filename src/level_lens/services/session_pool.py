"""Bounded pool of reusable generation sessions."""

import asyncio
from typing import Dict, List, Optional, Set

from ..core import get_logger
from ..core.metrics import POOL_IDLE_SESSIONS, POOL_SESSIONS_CREATED, POOL_SESSIONS_DESTROYED
from .provider import (
    DEFAULT_SESSION_CONFIGS,
    GenerationProvider,
    GenerationSession,
    SessionConfig,
    SessionKind,
)

logger = get_logger(__name__)


class SessionPool:
    """
    Reuses expensive generation sessions across nearby requests.

    A session is always in exactly one state: checked out by one caller,
    idle in the pool (with an expiry timer armed), or destroyed. At most
    ``max_pool_size`` idle sessions are kept per kind; extra released
    sessions are destroyed straight away.
    """

    def __init__(
        self,
        provider: GenerationProvider,
        max_pool_size: int = 3,
        idle_timeout: float = 30.0,
        configs: Optional[Dict[SessionKind, SessionConfig]] = None,
    ):
        self.provider = provider
        self.max_pool_size = max_pool_size
        self.idle_timeout = idle_timeout
        self.configs = dict(configs or DEFAULT_SESSION_CONFIGS)
        self._idle: Dict[SessionKind, List[GenerationSession]] = {kind: [] for kind in SessionKind}
        self._timers: Dict[int, asyncio.TimerHandle] = {}
        self._checked_out: Set[int] = set()

    async def acquire(self, kind: SessionKind) -> GenerationSession:
        """
        Hand out an idle session of ``kind``, or create one.

        Raises:
            ProviderUnavailableError: If a new session is needed and the provider cannot make one
        """
        kind = SessionKind(kind)
        idle = self._idle[kind]
        if idle:
            session = idle.pop()
            self._cancel_timer(session)
            self._checked_out.add(id(session))
            POOL_IDLE_SESSIONS.labels(kind=kind.value).set(len(idle))
            logger.debug("Reusing pooled session", session_id=session.id, kind=kind.value)
            return session

        session = await self.provider.create_session(self.configs[kind])
        self._checked_out.add(id(session))
        POOL_SESSIONS_CREATED.labels(kind=kind.value).inc()
        logger.debug("Created new session", session_id=session.id, kind=kind.value)
        return session

    def release(self, session: GenerationSession, kind: Optional[SessionKind] = None) -> None:
        """
        Return a checked-out session.

        It is pooled with an idle timer when there is room for its kind,
        otherwise destroyed. Sessions that are not checked out are ignored.
        """
        kind = SessionKind(kind or session.kind)
        if id(session) not in self._checked_out:
            logger.warning("Ignoring release of a session that is not checked out", session_id=session.id)
            return
        self._checked_out.discard(id(session))

        idle = self._idle[kind]
        if session.destroyed:
            return
        if len(idle) >= self.max_pool_size:
            self._destroy(session, kind, reason="pool_full")
            return

        idle.append(session)
        loop = asyncio.get_running_loop()
        self._timers[id(session)] = loop.call_later(self.idle_timeout, self._expire, session, kind)
        POOL_IDLE_SESSIONS.labels(kind=kind.value).set(len(idle))
        logger.debug("Session returned to pool", session_id=session.id, kind=kind.value, idle=len(idle))

    def discard(self, session: GenerationSession, kind: Optional[SessionKind] = None) -> None:
        """Destroy a checked-out session instead of pooling it (e.g. after it failed)."""
        kind = SessionKind(kind or session.kind)
        if id(session) not in self._checked_out:
            return
        self._checked_out.discard(id(session))
        self._destroy(session, kind, reason="discarded")

    def cleanup(self) -> None:
        """Destroy every idle session and cancel all timers."""
        destroyed = 0
        for kind, idle in self._idle.items():
            while idle:
                session = idle.pop()
                self._cancel_timer(session)
                self._destroy(session, kind, reason="cleanup")
                destroyed += 1
            POOL_IDLE_SESSIONS.labels(kind=kind.value).set(0)
        logger.info("Session pool cleaned up", destroyed=destroyed, checked_out=len(self._checked_out))

    def idle_count(self, kind: SessionKind) -> int:
        return len(self._idle[SessionKind(kind)])

    def is_checked_out(self, session: GenerationSession) -> bool:
        return id(session) in self._checked_out

    def stats(self) -> Dict[str, object]:
        return {
            "idle": {kind.value: len(idle) for kind, idle in self._idle.items()},
            "checked_out": len(self._checked_out),
            "max_pool_size": self.max_pool_size,
        }

    def _expire(self, session: GenerationSession, kind: SessionKind) -> None:
        self._timers.pop(id(session), None)
        idle = self._idle[kind]
        if session not in idle:
            return
        idle.remove(session)
        POOL_IDLE_SESSIONS.labels(kind=kind.value).set(len(idle))
        self._destroy(session, kind, reason="idle_timeout")
        logger.debug("Idle session expired", session_id=session.id, kind=kind.value)

    def _cancel_timer(self, session: GenerationSession) -> None:
        timer = self._timers.pop(id(session), None)
        if timer is not None:
            timer.cancel()

    def _destroy(self, session: GenerationSession, kind: SessionKind, reason: str) -> None:
        try:
            session.destroy()
        except Exception as exc:
            logger.warning("Session destroy failed", session_id=session.id, error=str(exc))
        POOL_SESSIONS_DESTROYED.labels(kind=kind.value, reason=reason).inc()
