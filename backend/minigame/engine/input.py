import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from minigame.errors import InputError

logger = logging.getLogger(__name__)

KeyCode = Union[str, int]


class Action(Enum):
    MOVE_LEFT = 'move_left'
    MOVE_RIGHT = 'move_right'
    STOP = 'stop'
    CONFIRM = 'confirm'
    UNKNOWN = 'unknown'


_KEYMAP = {
    'ArrowLeft': Action.MOVE_LEFT,
    'Left': Action.MOVE_LEFT,
    'a': Action.MOVE_LEFT,
    'A': Action.MOVE_LEFT,
    'ArrowRight': Action.MOVE_RIGHT,
    'Right': Action.MOVE_RIGHT,
    'd': Action.MOVE_RIGHT,
    'D': Action.MOVE_RIGHT,
    ' ': Action.CONFIRM,
    'Space': Action.CONFIRM,
    'Spacebar': Action.CONFIRM,
    'Enter': Action.CONFIRM,
    # legacy numeric key codes
    37: Action.MOVE_LEFT,
    39: Action.MOVE_RIGHT,
    32: Action.CONFIRM,
    13: Action.CONFIRM,
}

MOVEMENT_ACTIONS = (Action.MOVE_LEFT, Action.MOVE_RIGHT)


@dataclass(frozen=True)
class InputCommand:
    """What a key event asks the state machine to do.

    ``released`` is set on STOP commands that come from releasing a
    direction key; the machine only halts when moving that way.
    """

    action: Action
    released: Optional[Action] = None


def map_key(code: KeyCode, strict: bool = False) -> Action:
    """Map a key identifier to an action.

    Unrecognized codes map to UNKNOWN, or raise InputError when ``strict``
    (used to validate key bindings rather than live input).
    """
    if isinstance(code, bool):
        action = Action.UNKNOWN
    else:
        try:
            action = _KEYMAP.get(code, Action.UNKNOWN)
        except TypeError:
            action = Action.UNKNOWN
    if action is Action.UNKNOWN:
        if strict:
            raise InputError(f"unrecognized key {code!r}")
        logger.debug(f"[input-ignored] code={code!r}")
    return action


def key_down(code: KeyCode) -> InputCommand:
    return InputCommand(map_key(code))


def key_up(code: KeyCode) -> InputCommand:
    action = map_key(code)
    if action in MOVEMENT_ACTIONS:
        return InputCommand(Action.STOP, released=action)
    return InputCommand(Action.UNKNOWN)
