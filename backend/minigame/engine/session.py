import logging
from collections import deque
from typing import Callable, Deque, List, Optional

from minigame.engine.clock import FrameClock
from minigame.engine.input import Action, KeyCode, key_down, key_up
from minigame.engine.machine import CountdownTick, Event, FrameTick, GameStateMachine
from minigame.engine.state import GameState, LevelConfig, Phase
from minigame.errors import NotConnectedError
from minigame.sync.client import ScoreSyncClient

logger = logging.getLogger(__name__)

RenderHandler = Callable[[GameState], None]


class GameSession:
    """One running minigame.

    Key events and clock ticks share a single FIFO queue and are applied one
    at a time, so the state machine never sees interleaved updates.
    """

    def __init__(self, level: Optional[LevelConfig] = None, sync: Optional[ScoreSyncClient] = None,
                 clock: Optional[FrameClock] = None):
        self.machine = GameStateMachine(level)
        self.clock = clock or FrameClock()
        self.sync = sync
        self._queue: Deque[Event] = deque()
        self._render_handlers: List[RenderHandler] = []
        self._now_ms: Optional[float] = None
        self._torn_down = False

        self._unsubscribers = [
            self.clock.subscribe_frames(lambda delta: self._queue.append(FrameTick(delta))),
            self.clock.subscribe_countdown(lambda: self._queue.append(CountdownTick())),
        ]
        self.machine.on_phase_change(self._on_phase_change)

    @property
    def state(self) -> GameState:
        return self.machine.state

    @property
    def score_synced(self) -> bool:
        if self.sync is None:
            return False
        return self.sync.is_synced(self.state.player_score)

    def on_render(self, handler: RenderHandler) -> None:
        self._render_handlers.append(handler)

    def key_down(self, code: KeyCode) -> GameState:
        return self._submit(key_down(code))

    def key_up(self, code: KeyCode) -> GameState:
        return self._submit(key_up(code))

    def tick(self, now_ms: float) -> GameState:
        """Advance to ``now_ms``: frame, due countdowns, sync replies, render."""
        if self._torn_down:
            return self.state
        self._now_ms = now_ms
        self.clock.advance(now_ms)
        self.process()
        if self.sync is not None:
            self.sync.poll()
        snapshot = self.state
        for handler in list(self._render_handlers):
            handler(snapshot)
        return snapshot

    def process(self) -> GameState:
        while self._queue:
            self.machine.dispatch(self._queue.popleft())
        return self.state

    def save_score(self) -> int:
        """Push the current score. Raises NotConnectedError when not joined."""
        if self._torn_down or self.sync is None:
            raise NotConnectedError('no score channel for this session')
        return self.sync.push_score(self.state.player_score)

    def teardown(self) -> None:
        if self._torn_down:
            return
        self._torn_down = True
        self._queue.clear()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        if self.sync is not None:
            self.sync.close()
        logger.info(f"[session-teardown] phase={self.state.phase.value} score={self.state.player_score}")

    def _submit(self, command) -> GameState:
        if self._torn_down or command.action is Action.UNKNOWN:
            return self.state
        self._queue.append(command)
        return self.process()

    def _on_phase_change(self, previous: Phase, current: Phase) -> None:
        if current is Phase.PLAYING:
            self.clock.restart(self._now_ms)
