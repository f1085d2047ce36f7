from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Tuple

# Items that run past the scripted sequence are parked here, out of reach.
OFF_SCREEN_X = -1000


class Phase(Enum):
    START = 'start'
    PLAYING = 'playing'
    SUCCESS = 'success'
    GAME_OVER = 'game_over'

    @property
    def is_terminal(self) -> bool:
        return self in (Phase.SUCCESS, Phase.GAME_OVER)


class Direction(Enum):
    LEFT = 'left'
    RIGHT = 'right'


@dataclass(frozen=True)
class LevelConfig:
    score_per_item: int = 100
    item_target: int = 10
    duration_sec: int = 10
    capture_tolerance: int = 35
    speed: float = 0.25
    world_width: int = 600
    start_x: float = 50.0
    ground_y: float = 300.0
    item_positions: Tuple[int, ...] = field(
        default=(500, 150, 340, 70, 560, 230, 410, 110, 480, 300)
    )

    def __post_init__(self):
        if self.item_target < 1:
            raise ValueError('item_target must be at least 1')
        if self.duration_sec < 1:
            raise ValueError('duration_sec must be at least 1')
        if not self.item_positions:
            raise ValueError('item_positions must not be empty')

    def to_dict(self):
        return {
            'score_per_item': self.score_per_item,
            'item_target': self.item_target,
            'duration_sec': self.duration_sec,
            'capture_tolerance': self.capture_tolerance,
            'speed': self.speed,
            'world_width': self.world_width,
            'item_positions': list(self.item_positions),
        }

    def item_x_at(self, index: int) -> int:
        if 0 <= index < len(self.item_positions):
            return self.item_positions[index]
        return OFF_SCREEN_X

    @classmethod
    def from_object(cls, obj: Any) -> 'LevelConfig':
        """Build from a config class or a Flask ``app.config`` mapping."""
        if isinstance(obj, dict):
            get = obj.get
        else:
            def get(key, default=None):
                return getattr(obj, key, default)
        defaults = cls()
        return cls(
            score_per_item=int(get('SCORE_PER_ITEM', defaults.score_per_item)),
            item_target=int(get('LEVEL_ITEM_TARGET', defaults.item_target)),
            duration_sec=int(get('LEVEL_DURATION_SEC', defaults.duration_sec)),
            capture_tolerance=int(get('ITEM_CAPTURE_TOLERANCE', defaults.capture_tolerance)),
            speed=float(get('CHARACTER_SPEED', defaults.speed)),
            world_width=int(get('WORLD_WIDTH', defaults.world_width)),
            item_positions=tuple(int(x) for x in get('ITEM_POSITIONS', defaults.item_positions)),
        )


@dataclass(frozen=True)
class GameState:
    """One snapshot of a running session. Renderers only read these."""

    phase: Phase = Phase.START
    character_position_x: float = 50.0
    character_position_y: float = 300.0
    character_velocity_x: float = 0.0
    direction: Direction = Direction.RIGHT
    item_position_x: int = 500
    item_position_y: int = 300
    items_collected: int = 0
    player_score: int = 0
    time_remaining: int = 10

    @classmethod
    def initial(cls, level: LevelConfig, phase: Phase = Phase.START) -> 'GameState':
        return cls(
            phase=phase,
            character_position_x=level.start_x,
            character_position_y=level.ground_y,
            item_position_x=level.item_x_at(0),
            item_position_y=int(level.ground_y),
            time_remaining=level.duration_sec,
        )
