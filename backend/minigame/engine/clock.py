import logging
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

FrameHandler = Callable[[float], None]
CountdownHandler = Callable[[], None]


class FrameClock:
    """Turns wall-clock readings into frame deltas and one-second ticks.

    The clock never reads time itself; the owner calls ``advance`` with the
    current time in milliseconds (from an animation frame, a test, ...).
    """

    def __init__(self, countdown_interval_ms: float = 1000.0):
        if countdown_interval_ms <= 0:
            raise ValueError('countdown_interval_ms must be positive')
        self.countdown_interval_ms = float(countdown_interval_ms)
        self._last_ms: Optional[float] = None
        self._accumulated_ms = 0.0
        self._frame_handlers: List[FrameHandler] = []
        self._countdown_handlers: List[CountdownHandler] = []

    def subscribe_frames(self, handler: FrameHandler) -> Callable[[], None]:
        self._frame_handlers.append(handler)
        return lambda: self._unsubscribe(self._frame_handlers, handler)

    def subscribe_countdown(self, handler: CountdownHandler) -> Callable[[], None]:
        self._countdown_handlers.append(handler)
        return lambda: self._unsubscribe(self._countdown_handlers, handler)

    @staticmethod
    def _unsubscribe(handlers, handler) -> None:
        if handler in handlers:
            handlers.remove(handler)

    def restart(self, now_ms: Optional[float] = None) -> None:
        self._last_ms = now_ms
        self._accumulated_ms = 0.0

    def advance(self, now_ms: float) -> float:
        """Emit one frame delta and any countdown ticks that came due.

        Returns the delta that was emitted.
        """
        if self._last_ms is None:
            delta = 0.0
        else:
            delta = float(now_ms) - self._last_ms
        if delta < 0:
            logger.debug(f"[clock-anomaly] delta={delta:.3f}ms clamped to 0")
            delta = 0.0
        self._last_ms = float(now_ms)

        for handler in list(self._frame_handlers):
            handler(delta)

        self._accumulated_ms += delta
        while self._accumulated_ms >= self.countdown_interval_ms:
            self._accumulated_ms -= self.countdown_interval_ms
            for handler in list(self._countdown_handlers):
                handler()
        return delta
