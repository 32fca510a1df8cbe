"""
Q&A Interception

Decides, per incoming conversational event, whether the Q&A matching stage
should run at all.

Lifecycle of the process-wide gate (get_interception_gate()):
- init:    created empty on first access, matching always runs
- replace: register() swaps in a new predicate, the previous one is dropped
- clear:   clear() removes the predicate, matching always runs again
"""

import inspect
import logging
import threading
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Union

logger = logging.getLogger(__name__)


@dataclass
class IncomingEvent:
    """Incoming conversational event as seen by the middleware chain."""

    user_id: str
    text: str = ""
    session_id: Optional[str] = None
    channel: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def state_key(self) -> str:
        """Key of the conversation state: session when known, user otherwise."""
        return self.session_id or self.user_id


class StateManager(Protocol):
    """Source of the caller's current conversation state."""

    async def get_state(self, key: str) -> Dict[str, Any]: ...


ShouldProcess = Callable[
    [IncomingEvent, Dict[str, Any]], Union[Optional[bool], Awaitable[Optional[bool]]]
]
EventProcessor = Callable[[IncomingEvent], Awaitable[bool]]
NextHandler = Callable[[], Awaitable[None]]


class InterceptionGate:
    """
    Single slot for a user-supplied "should Q&A process this event" predicate.

    The predicate receives the event and the conversation state and may be
    sync or async. Only an explicit False skips matching; True, None or any
    other value lets it run.
    """

    def __init__(self, predicate: Optional[ShouldProcess] = None):
        self._lock = threading.Lock()
        self._predicate: Optional[ShouldProcess] = None
        if predicate is not None:
            self.register(predicate)

    def register(self, predicate: ShouldProcess) -> None:
        """Install predicate, replacing any previously registered one."""
        if not callable(predicate):
            raise TypeError("predicate must be callable")
        with self._lock:
            replaced = self._predicate is not None
            self._predicate = predicate
        logger.info(f"Q&A interception predicate {'replaced' if replaced else 'registered'}")

    def clear(self) -> None:
        with self._lock:
            self._predicate = None
        logger.info("Q&A interception predicate cleared")

    @property
    def is_registered(self) -> bool:
        with self._lock:
            return self._predicate is not None

    async def should_skip(self, event: IncomingEvent, state_manager: StateManager) -> bool:
        """
        Evaluate the registered predicate for an event.

        Args:
            event: Incoming event
            state_manager: Used to fetch the conversation state of the event

        Returns:
            True if matching must be skipped for this event
        """
        with self._lock:
            predicate = self._predicate
        if predicate is None:
            return False

        state = await state_manager.get_state(event.state_key)
        result = predicate(event, state)
        if inspect.isawaitable(result):
            result = await result

        skip = result is False
        if skip:
            logger.debug(f"Q&A skipped for {event.state_key} by interception predicate")
        return skip


@lru_cache
def get_interception_gate() -> InterceptionGate:
    """Process-wide interception gate."""
    return InterceptionGate()


class QnaMiddleware:
    """
    Incoming middleware stage running the Q&A matcher.

    Must run after NLU and before the dialog engine. The matcher itself is
    injected as `processor`; it returns True when it handled the event.
    """

    name = "qna.incoming"
    order = 11
    description = "Listen for predefined questions and send canned responses."

    def __init__(
        self,
        processor: EventProcessor,
        state_manager: StateManager,
        gate: Optional[InterceptionGate] = None,
    ):
        self.processor = processor
        self.state_manager = state_manager
        self.gate = gate or get_interception_gate()

    async def __call__(self, event: IncomingEvent, next_: NextHandler) -> None:
        if await self.gate.should_skip(event, self.state_manager):
            await next_()
            return

        if not await self.processor(event):
            await next_()
