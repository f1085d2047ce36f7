"""Game state machine.

``transition`` is the only place a ``GameState`` is derived from another;
``GameStateMachine`` keeps the current snapshot and notifies listeners when
the phase changes.

Phases::

    START --confirm--> PLAYING --all items--> SUCCESS --confirm--> START
                               --time out---> GAME_OVER --confirm--> START
"""

import logging
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Union

from minigame.engine.input import Action, InputCommand
from minigame.engine.state import Direction, GameState, LevelConfig, Phase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameTick:
    delta_ms: float


@dataclass(frozen=True)
class CountdownTick:
    pass


Event = Union[InputCommand, FrameTick, CountdownTick]
PhaseListener = Callable[[Phase, Phase], None]


def transition(state: GameState, event: Event, level: LevelConfig) -> GameState:
    if isinstance(event, InputCommand):
        return _apply_input(state, event, level)
    if state.phase is not Phase.PLAYING:
        return state
    if isinstance(event, FrameTick):
        return _apply_frame(state, event.delta_ms, level)
    if isinstance(event, CountdownTick):
        return _apply_countdown(state, level)
    raise TypeError(f"unsupported event {event!r}")


def _apply_input(state: GameState, command: InputCommand, level: LevelConfig) -> GameState:
    action = command.action
    if action is Action.CONFIRM:
        if state.phase is Phase.START:
            return GameState.initial(level, phase=Phase.PLAYING)
        if state.phase.is_terminal:
            return GameState.initial(level, phase=Phase.START)
        return state

    if state.phase is not Phase.PLAYING:
        return state

    if action is Action.MOVE_LEFT:
        return _set_velocity(state, -level.speed)
    if action is Action.MOVE_RIGHT:
        return _set_velocity(state, level.speed)
    if action is Action.STOP:
        velocity = state.character_velocity_x
        if command.released is None:
            return _set_velocity(state, 0.0)
        if command.released is Action.MOVE_RIGHT and velocity > 0:
            return _set_velocity(state, 0.0)
        if command.released is Action.MOVE_LEFT and velocity < 0:
            return _set_velocity(state, 0.0)
    return state


def _set_velocity(state: GameState, velocity: float) -> GameState:
    direction = state.direction
    if velocity > 0:
        direction = Direction.RIGHT
    elif velocity < 0:
        direction = Direction.LEFT
    return replace(state, character_velocity_x=velocity, direction=direction)


def in_capture_band(position_x: float, item_x: int, tolerance: int) -> bool:
    return item_x - tolerance <= position_x <= item_x


def _apply_frame(state: GameState, delta_ms: float, level: LevelConfig) -> GameState:
    if delta_ms <= 0 or state.character_velocity_x == 0:
        return state

    x = state.character_position_x + state.character_velocity_x * delta_ms
    x = min(max(x, 0.0), float(level.world_width))
    state = replace(state, character_position_x=x)

    if not in_capture_band(x, state.item_position_x, level.capture_tolerance):
        return state

    collected = state.items_collected + 1
    phase = Phase.SUCCESS if collected >= level.item_target else Phase.PLAYING
    return replace(
        state,
        items_collected=collected,
        player_score=state.player_score + level.score_per_item,
        item_position_x=level.item_x_at(collected),
        phase=phase,
    )


def _apply_countdown(state: GameState, level: LevelConfig) -> GameState:
    remaining = max(0, state.time_remaining - 1)
    if remaining == 0 and state.items_collected < level.item_target:
        return replace(state, time_remaining=0, phase=Phase.GAME_OVER)
    return replace(state, time_remaining=remaining)


class GameStateMachine:
    def __init__(self, level: Optional[LevelConfig] = None):
        self.level = level or LevelConfig()
        self._state = GameState.initial(self.level)
        self._phase_listeners: List[PhaseListener] = []

    @property
    def state(self) -> GameState:
        return self._state

    def on_phase_change(self, listener: PhaseListener) -> None:
        self._phase_listeners.append(listener)

    def dispatch(self, event: Event) -> GameState:
        previous = self._state
        self._state = transition(previous, event, self.level)
        if self._state.phase is not previous.phase:
            logger.info(
                f"[phase] {previous.phase.value} -> {self._state.phase.value} "
                f"score={self._state.player_score} items={self._state.items_collected} "
                f"time={self._state.time_remaining}"
            )
            for listener in list(self._phase_listeners):
                listener(previous.phase, self._state.phase)
        return self._state
