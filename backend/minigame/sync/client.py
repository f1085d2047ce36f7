"""Client side of the score channel.

The client never blocks the game loop. Transport callbacks are parked in an
inbox and applied by ``poll``, which the session calls once per frame. A
push that fails, errors or times out is reported to ``on_push_result``
listeners and never retried here.
"""

import itertools
import logging
import queue
import time
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from minigame.errors import InvalidPayload, NotConnectedError
from minigame.messages import (
    BROADCAST_SCORE,
    SAVE_SCORE,
    STATUS_OK,
    ScoreEvent,
    score_payload,
)
from minigame.sync.transport import ChannelTransport

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    DISCONNECTED = 'disconnected'
    JOINING = 'joining'
    JOINED = 'joined'


class PushStatus(Enum):
    OK = 'ok'
    ERROR = 'error'
    TIMEOUT = 'timeout'


@dataclass(frozen=True)
class PushResult:
    ref: int
    score: int
    status: PushStatus
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is PushStatus.OK


@dataclass
class _PendingPush:
    ref: int
    score: int
    deadline: float


ResultListener = Callable[[PushResult], None]
EventHandler = Callable[[ScoreEvent], None]


def _reply_reason(reply: Any) -> str:
    if isinstance(reply, dict):
        response = reply.get('response')
        if isinstance(response, dict) and response.get('reason'):
            return str(response['reason'])
    return 'error'


class ScoreSyncClient:
    def __init__(self, transport: ChannelTransport, push_timeout: float = 5.0,
                 clock: Callable[[], float] = time.monotonic):
        self.transport = transport
        self.push_timeout = float(push_timeout)
        self._clock = clock
        self.state = ConnectionState.DISCONNECTED
        self.topic: Optional[str] = None
        self.last_synced_score: Optional[int] = None
        self.last_error: Optional[str] = None
        self._synced_ref = 0
        self._inbox: 'queue.Queue[tuple]' = queue.Queue()
        self._refs = itertools.count(1)
        self._join_attempt = 0
        self._join_deadline: Optional[float] = None
        self._pending: Dict[int, _PendingPush] = {}
        self._result_listeners: List[ResultListener] = []
        self._event_handlers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._transport_events = set()
        self._closed = False

    @classmethod
    def from_config(cls, transport: ChannelTransport, config: Any, **kwargs) -> 'ScoreSyncClient':
        timeout = getattr(config, 'SCORE_PUSH_TIMEOUT_SEC', None)
        if isinstance(config, dict):
            timeout = config.get('SCORE_PUSH_TIMEOUT_SEC')
        return cls(transport, push_timeout=timeout if timeout is not None else 5.0, **kwargs)

    # ---- channel membership ----

    def join(self, topic: str) -> ConnectionState:
        if self._closed:
            raise NotConnectedError('sync client is closed')
        if self.state is not ConnectionState.DISCONNECTED:
            if topic != self.topic:
                raise ValueError(f"already bound to {self.topic}; close before joining {topic}")
            return self.state

        self.topic = topic
        self.state = ConnectionState.JOINING
        self._join_attempt += 1
        attempt = self._join_attempt
        self._join_deadline = self._clock() + self.push_timeout
        for event in list(self._event_handlers):
            self._subscribe_transport(event)
        logger.info(f"[join] topic={topic} attempt={attempt}")
        try:
            self.transport.join(topic, lambda reply: self._inbox.put(('join', attempt, reply)))
        except NotConnectedError:
            self.state = ConnectionState.DISCONNECTED
            self._join_deadline = None
            raise
        return self.state

    def close(self) -> None:
        """Tear down: leave the topic and forget anything still in flight."""
        if self._closed:
            return
        self._closed = True
        if self.topic and self.state is not ConnectionState.DISCONNECTED:
            self.transport.leave(self.topic)
        self.state = ConnectionState.DISCONNECTED
        dropped = len(self._pending)
        self._pending.clear()
        self._drain_inbox()
        logger.info(f"[close] topic={self.topic} dropped_pending={dropped}")

    # ---- pushes ----

    def push_score(self, score: int) -> int:
        """Send ``score`` to the joined topic and return the push ref."""
        if self.state is not ConnectionState.JOINED:
            raise NotConnectedError(f"cannot push score while {self.state.value}")
        ref = next(self._refs)
        self._pending[ref] = _PendingPush(ref, int(score), self._clock() + self.push_timeout)
        try:
            self.transport.push(
                self.topic, SAVE_SCORE, score_payload(score),
                lambda reply: self._inbox.put(('push', ref, reply)),
            )
        except NotConnectedError:
            self._pending.pop(ref, None)
            self.state = ConnectionState.DISCONNECTED
            raise
        logger.debug(f"[push] ref={ref} score={score} topic={self.topic}")
        return ref

    def on_push_result(self, listener: ResultListener) -> None:
        self._result_listeners.append(listener)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_synced(self, score: int) -> bool:
        return self.last_synced_score is not None and self.last_synced_score == score

    # ---- broadcasts ----

    def subscribe(self, handler: EventHandler, event: str = SAVE_SCORE) -> None:
        if event not in (SAVE_SCORE, BROADCAST_SCORE):
            raise ValueError(f"unknown score event {event!r}")
        self._event_handlers[event].append(handler)
        if self.topic and self.state is not ConnectionState.DISCONNECTED:
            self._subscribe_transport(event)

    def _subscribe_transport(self, event: str) -> None:
        key = (self.topic, event)
        if key in self._transport_events:
            return
        self._transport_events.add(key)
        topic = self.topic
        self.transport.subscribe(topic, event, lambda payload: self._inbox.put(('event', (topic, event), payload)))

    # ---- game-loop side ----

    def poll(self, now: Optional[float] = None) -> List[PushResult]:
        """Apply queued replies and expire overdue requests.

        Returns the push results settled during this call.
        """
        if self._closed:
            self._drain_inbox()
            return []
        now = self._clock() if now is None else now
        settled: List[PushResult] = []
        while True:
            try:
                kind, key, body = self._inbox.get_nowait()
            except queue.Empty:
                break
            if kind == 'join':
                self._apply_join_reply(key, body)
            elif kind == 'push':
                result = self._apply_push_reply(key, body)
                if result is not None:
                    settled.append(result)
            elif kind == 'event':
                topic, event = key
                self._deliver_event(topic, event, body)

        if self.state is ConnectionState.JOINING and self._join_deadline is not None and now >= self._join_deadline:
            self.last_error = 'timeout'
            logger.warning(f"[join-timeout] topic={self.topic}")
            self._abandon_join()

        for ref in [r for r, p in self._pending.items() if now >= p.deadline]:
            pending = self._pending.pop(ref)
            settled.append(PushResult(ref, pending.score, PushStatus.TIMEOUT, 'timeout'))
            logger.warning(f"[push-timeout] ref={ref} score={pending.score} topic={self.topic}")

        for result in settled:
            for listener in list(self._result_listeners):
                listener(result)
        return settled

    def _apply_join_reply(self, attempt: int, reply: Any) -> None:
        if attempt != self._join_attempt or self.state is not ConnectionState.JOINING:
            return
        self._join_deadline = None
        if isinstance(reply, dict) and reply.get('status') == STATUS_OK:
            self.state = ConnectionState.JOINED
            self.last_error = None
            logger.info(f"[joined] topic={self.topic}")
        else:
            self.last_error = _reply_reason(reply)
            logger.warning(f"[join-error] topic={self.topic} reason={self.last_error}")
            self._abandon_join()

    def _abandon_join(self) -> None:
        # the server may already have put this socket in the room
        self.state = ConnectionState.DISCONNECTED
        self._join_deadline = None
        if self.topic:
            self.transport.leave(self.topic)

    def _apply_push_reply(self, ref: int, reply: Any) -> Optional[PushResult]:
        pending = self._pending.pop(ref, None)
        if pending is None:
            # already timed out
            return None
        if isinstance(reply, dict) and reply.get('status') == STATUS_OK:
            # acks may arrive out of order; only a newer push moves the marker
            if ref > self._synced_ref:
                self._synced_ref = ref
                self.last_synced_score = pending.score
            return PushResult(ref, pending.score, PushStatus.OK)
        reason = _reply_reason(reply)
        logger.warning(f"[push-error] ref={ref} score={pending.score} reason={reason}")
        return PushResult(ref, pending.score, PushStatus.ERROR, reason)

    def _deliver_event(self, topic: str, event: str, payload: Any) -> None:
        if topic != self.topic or self.state is ConnectionState.DISCONNECTED:
            logger.debug(f"[broadcast-stale] topic={topic} event={event} current={self.topic}")
            return
        try:
            score_event = ScoreEvent.from_wire(payload)
        except InvalidPayload as exc:
            logger.warning(f"[broadcast-dropped] event={event} {exc}")
            return
        for handler in list(self._event_handlers.get(event, ())):
            handler(score_event)

    def _drain_inbox(self) -> None:
        while True:
            try:
                self._inbox.get_nowait()
            except queue.Empty:
                return
