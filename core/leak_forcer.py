"""
LeakProbe Leak Forcer
Provokes creation of identifier-bearing storage and polls until it appears.

Flow:
    1. Open an auxiliary authenticated session (background popup) on the
       target service
    2. Probe the storage inventory every ``poll_interval_ms``
    3. Resolve with the first non-empty probe, or with an empty set once
       ``timeout_ms`` elapses

The poll ticker and the deadline timer are two tasks raced with
asyncio.wait; a single ``finally`` cancels both and closes the session,
so cleanup happens exactly once on every exit path.
"""

import asyncio
import inspect
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Set

from core.exceptions import InvalidStateTransition
from core.pattern_matcher import descriptor_names
from services.leak_state_machine import LeakForceStatus, LeakStateMachine
from shared.constants import (
    DEFAULT_FORCE_TIMEOUT_MS,
    DEFAULT_POLL_INTERVAL_MS,
    GOOGLE_KEEP_TARGET,
)

logger = logging.getLogger(__name__)

DIGITS = re.compile(r"\d+")

# opener(url) -> handle with close(); inventory() -> descriptors with a name
Opener = Callable[[str], Awaitable[Any]]
Inventory = Callable[[], Awaitable[Iterable[Any]]]


@dataclass(frozen=True)
class ForceTarget:
    """Service whose storage a forced session provokes"""
    name: str
    url: str
    prefix: str
    separator: str = "-"

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "ForceTarget":
        return cls(
            name=data["name"],
            url=data["url"],
            prefix=data["prefix"],
            separator=data.get("separator", "-"),
        )

    def extract(self, names: Iterable[str]) -> Set[str]:
        """
        Collect identifiers from names carrying this target's prefix.

        Narrower than the full rule table: only the active target's
        storage is expected to appear during a forced session.
        """
        identifiers: Set[str] = set()
        for name in names:
            if not name.startswith(self.prefix):
                continue
            parts = name.split(self.separator)
            if len(parts) > 1 and DIGITS.search(parts[1]):
                identifiers.add(parts[1])
        return identifiers


GOOGLE_KEEP = ForceTarget.from_dict(GOOGLE_KEEP_TARGET)


@dataclass
class LeakForceSession:
    """Transient state of one forced-leak attempt"""
    target: ForceTarget
    status: LeakForceStatus = LeakForceStatus.IDLE
    handle: Any = None
    poll_task: Optional[asyncio.Future] = field(default=None, repr=False)
    deadline_task: Optional[asyncio.Future] = field(default=None, repr=False)
    probes: int = 0
    session_opened: bool = False
    identifiers: Set[str] = field(default_factory=set)
    started_at: Optional[float] = None
    finished_at: Optional[float] = None

    @property
    def elapsed_ms(self) -> Optional[float]:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at) * 1000

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target.name,
            "status": self.status.value,
            "probes": self.probes,
            "session_opened": self.session_opened,
            "identifiers": sorted(self.identifiers),
            "elapsed_ms": self.elapsed_ms,
        }


class LeakForcer:
    """
    Opens an auxiliary session and polls the storage inventory for the
    target's identifier-bearing database.

    Both capabilities are injected, so the forcer never touches the
    browser directly:

        forcer = LeakForcer(browser.open_popup, browser.list_databases)
        identifiers = await forcer.force()  # empty set on timeout
    """

    def __init__(
        self,
        opener: Opener,
        inventory: Inventory,
        target: ForceTarget = GOOGLE_KEEP,
        poll_interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
        timeout_ms: float = DEFAULT_FORCE_TIMEOUT_MS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if poll_interval_ms <= 0 or timeout_ms <= 0:
            raise ValueError("poll_interval_ms and timeout_ms must be positive")

        self.opener = opener
        self.inventory = inventory
        self.target = target
        self.poll_interval_ms = poll_interval_ms
        self.timeout_ms = timeout_ms
        self._sleep = sleep
        self._clock = clock
        self.last_session: Optional[LeakForceSession] = None

    async def force(self) -> Set[str]:
        """
        Run one forced-leak attempt.

        Returns:
            Identifiers from the first non-empty probe, or an empty set
            if the deadline passed first
        """
        session = LeakForceSession(target=self.target, started_at=self._clock())
        self.last_session = session
        identifiers: Set[str] = set()

        self._transition(session, LeakForceStatus.AWAITING_SESSION)
        try:
            session.handle = await self._open_session()
            session.session_opened = session.handle is not None

            self._transition(session, LeakForceStatus.POLLING)
            session.poll_task = asyncio.ensure_future(self._poll(session))
            session.deadline_task = asyncio.ensure_future(self._sleep(self.timeout_ms / 1000))

            done, _pending = await asyncio.wait(
                {session.poll_task, session.deadline_task},
                return_when=asyncio.FIRST_COMPLETED,
            )

            if session.poll_task in done:
                identifiers = session.poll_task.result()
                self._transition(session, LeakForceStatus.FOUND)
            else:
                self._transition(session, LeakForceStatus.TIMED_OUT)
        finally:
            await self._cleanup(session)
            session.identifiers = set(identifiers)
            session.finished_at = self._clock()
            if not LeakStateMachine.is_terminal_status(session.status):
                logger.info(f"Forced leak on {self.target.name} abandoned while {session.status.value}")

        if identifiers:
            logger.info(
                f"Forced leak on {self.target.name} found {len(identifiers)} identifier(s) "
                f"after {session.probes} probe(s)"
            )
        else:
            logger.info(
                f"Forced leak on {self.target.name} timed out after {self.timeout_ms:.0f}ms "
                f"({session.probes} probe(s))"
            )
        return identifiers

    async def _open_session(self) -> Any:
        """Open the auxiliary session; a failed open counts as no session"""
        try:
            handle = await self.opener(self.target.url)
            logger.debug(f"Auxiliary session opened on {self.target.url}")
            return handle
        except Exception as e:
            # Indistinguishable from a missing identifier: keep polling until the deadline
            logger.warning(f"Could not open auxiliary session on {self.target.url}: {type(e).__name__}: {e}")
            return None

    async def _poll(self, session: LeakForceSession) -> Set[str]:
        """Probe at a fixed cadence until a probe yields identifiers"""
        while True:
            await self._sleep(self.poll_interval_ms / 1000)
            session.probes += 1
            identifiers = await self._probe()
            if identifiers:
                return identifiers

    async def _probe(self) -> Set[str]:
        """Single inventory probe; an enumeration failure or malformed inventory is an empty probe"""
        try:
            descriptors = await self.inventory()
            return self.target.extract(descriptor_names(descriptors))
        except Exception as e:
            logger.debug(f"Storage inventory probe failed: {type(e).__name__}: {e}")
            return set()

    async def _cleanup(self, session: LeakForceSession) -> None:
        """Stop both timers and close the auxiliary session exactly once"""
        tasks = [t for t in (session.poll_task, session.deadline_task) if t is not None]
        for task in tasks:
            task.cancel()  # No-op for the task that already finished
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        handle, session.handle = session.handle, None
        if handle is None:
            return

        try:
            result = handle.close()
            if inspect.isawaitable(result):
                await result
            logger.debug("Auxiliary session closed")
        except Exception as e:
            logger.debug(f"Auxiliary session close error (non-critical): {e}")

    def _transition(self, session: LeakForceSession, target: LeakForceStatus) -> None:
        ok, msg = LeakStateMachine.validate_transition(session.status, target, self.target.name)
        if not ok:
            raise InvalidStateTransition(msg)
        session.status = target
