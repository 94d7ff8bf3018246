"""
Shared cursor and mode state.

``NavigationState`` owns a single lock. The keyboard hook and the mover
thread both take it, do a handful of dictionary/float operations and
release it before any injection or sleep happens.
"""

import threading
import time
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from keynames import Key
from settings import NavigationConfig

# X reports auto-repeat as a release immediately followed by a press of the
# same key. A release only counts once this long has passed without a press.
AUTOREPEAT_WINDOW = 0.02


class Mode(Enum):
    NAVIGATION = "navigation"
    TYPING = "typing"


class CursorState:
    """Cursor position, held keys and modifier flags.

    Not thread safe on its own; access goes through ``NavigationState.lock``.
    ``pressed_keys`` and ``current_speeds`` always hold the same keys.
    Keys in ``released`` are still tracked but no longer move the cursor;
    they are dropped by ``expire_releases`` unless pressed again in time.
    """

    def __init__(self, width: int, height: int, config: NavigationConfig,
                 x: Optional[float] = None, y: Optional[float] = None):
        if width < 1 or height < 1:
            raise ValueError(f"invalid screen size {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        self.config = config
        # Start in the centre of the screen
        self.x = 0.0
        self.y = 0.0
        self.x, self.y = self.clamp(width / 2.0 if x is None else x,
                                    height / 2.0 if y is None else y)
        self.pressed_keys: Dict[Key, float] = {}
        self.current_speeds: Dict[Key, float] = {}
        self.released: Dict[Key, float] = {}
        self.shift_held = False
        self.precision_held = False
        self.precision_released: Optional[float] = None
        self.selection_active = False

    # Key-hold tracking

    def start(self, key: Key, now: float):
        self.pressed_keys[key] = now
        self.current_speeds[key] = self.config.initial_move_step
        self.released.pop(key, None)

    def stop(self, key: Key):
        self.pressed_keys.pop(key, None)
        self.current_speeds.pop(key, None)
        self.released.pop(key, None)

    def release(self, key: Key, now: float):
        """Mark a held key as released without forgetting its press time yet."""
        if key in self.pressed_keys:
            self.released[key] = now

    def press(self, key: Key, now: float):
        """Press edge or auto-repeat: resume a just-released key, else start it."""
        released_at = self.released.pop(key, None)
        if released_at is not None and now - released_at <= AUTOREPEAT_WINDOW:
            return
        if released_at is not None or key not in self.pressed_keys:
            self.start(key, now)

    def expire_releases(self, now: float):
        for key, released_at in list(self.released.items()):
            if now - released_at > AUTOREPEAT_WINDOW:
                self.stop(key)
        if self.precision_released is not None and now - self.precision_released > AUTOREPEAT_WINDOW:
            self.precision_held = False
            self.precision_released = None

    def is_held(self, key: Key) -> bool:
        return key in self.pressed_keys and key not in self.released

    def clear_all(self):
        self.pressed_keys.clear()
        self.current_speeds.clear()
        self.released.clear()

    def hold_duration(self, key: Key, now: float) -> float:
        start = self.pressed_keys.get(key)
        if start is None:
            return 0.0
        return max(0.0, now - start)

    def record_speed(self, key: Key, value: float):
        if key in self.pressed_keys:
            self.current_speeds[key] = value

    # Position

    def clamp(self, x: float, y: float) -> Tuple[float, float]:
        x = min(max(x, 0.0), self.width - 1.0)
        y = min(max(y, 0.0), self.height - 1.0)
        return x, y

    def move(self, direction: str, distance: float) -> bool:
        """Move along one axis, clamped to the screen. Returns True if x/y changed."""
        old = (self.x, self.y)
        if direction == "left":
            self.x = max(self.x - distance, 0.0)
        elif direction == "right":
            self.x = min(self.x + distance, self.width - 1.0)
        elif direction == "up":
            self.y = max(self.y - distance, 0.0)
        elif direction == "down":
            self.y = min(self.y + distance, self.height - 1.0)
        else:
            raise ValueError(f"unknown direction {direction!r}")
        return (self.x, self.y) != old

    def goto_edge(self, top: bool) -> Tuple[float, float]:
        self.y = 0.0 if top else self.height - 1.0
        return self.x, self.y

    @property
    def position(self) -> Tuple[int, int]:
        return int(round(self.x)), int(round(self.y))


class NavigationState:
    """Lock owner for the cursor state and the navigation/typing mode.

    Methods without a leading ``with self.lock`` expect the caller to hold
    the lock already.
    """

    def __init__(self, cursor: CursorState, clock: Callable[[], float] = time.monotonic):
        self.lock = threading.Lock()
        self.cursor = cursor
        self.mode = Mode.NAVIGATION
        self.clock = clock

    @property
    def navigating(self) -> bool:
        return self.mode is Mode.NAVIGATION

    def toggle_mode(self) -> bool:
        """Flip the mode. Caller holds the lock.

        Entering typing mode drops every held key and the precision flag.
        Returns True when a selection drag was active and has to be ended
        with a left-button release.
        """
        if self.mode is Mode.NAVIGATION:
            self.mode = Mode.TYPING
            self.cursor.clear_all()
            self.cursor.precision_held = False
            self.cursor.precision_released = None
            end_drag = self.cursor.selection_active
            self.cursor.selection_active = False
            return end_drag
        self.mode = Mode.NAVIGATION
        return False

    def get_mode(self) -> Mode:
        with self.lock:
            return self.mode

    def position(self) -> Tuple[int, int]:
        with self.lock:
            return self.cursor.position
