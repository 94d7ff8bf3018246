"""Periodic cursor movement driven by held direction keys."""

import logging
import threading
import time
from typing import Callable, Optional, Tuple

import acceleration
from emitter import SyntheticEventEmitter
from errors import InjectionError
from settings import NavigationConfig
from state import NavigationState

logger = logging.getLogger(__name__)


class MoverLoop:
    """Polls the held keys every ``repeat_delay_ms`` and moves the pointer.

    All axis updates from one tick are collapsed into a single pointer move,
    which is injected after the state lock has been released.
    """

    def __init__(self, state: NavigationState, emitter: SyntheticEventEmitter,
                 config: NavigationConfig, sleep: Callable[[float], None] = time.sleep):
        self.state = state
        self.emitter = emitter
        self.config = config
        self.sleep = sleep
        self.directions = config.bindings.directions
        self.running = False
        self.thread: Optional[threading.Thread] = None

    def advance(self) -> Optional[Tuple[int, int]]:
        """Apply one tick of movement. Returns the new position if it changed."""
        samples = [] if logger.isEnabledFor(logging.DEBUG) else None
        with self.state.lock:
            if not self.state.navigating:
                return None
            cursor = self.state.cursor
            now = self.state.clock()
            cursor.expire_releases(now)
            moved = False
            for key, direction in self.directions.items():
                if not cursor.is_held(key):
                    continue
                held = cursor.hold_duration(key, now)
                step = acceleration.speed(held, self.config, cursor.precision_held)
                cursor.record_speed(key, step)
                if cursor.move(direction, step):
                    moved = True
                if samples is not None:
                    samples.append((direction, held, step))
            position = cursor.position if moved else None
        if samples:
            for direction, held, step in samples:
                logger.debug("%s: hold_duration=%.2fs speed=%.2f", direction, held, step)
        return position

    def tick(self):
        position = self.advance()
        if position is None:
            return
        try:
            self.emitter.move_to(*position)
        except InjectionError as e:
            logger.error("Failed to move cursor: %s", e)

    def _loop(self):
        while self.running:
            try:
                self.tick()
            except Exception:
                logger.exception("Unexpected error in movement loop")
            self.sleep(self.config.repeat_delay)

    def start(self):
        """Start the movement thread if not already running."""
        if self.thread is not None:
            return
        self.running = True
        self.thread = threading.Thread(target=self._loop, name="vimnav-mover", daemon=True)
        self.thread.start()
        logger.debug("Started continuous movement")

    def stop(self, timeout: Optional[float] = None):
        self.running = False
        if self.thread is not None:
            self.thread.join(timeout)
            self.thread = None
        logger.debug("Stopped continuous movement")
