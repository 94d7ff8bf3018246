"""
One-shot actions triggered by key presses: clicks, selection drag, screen
edge jumps, scroll bursts and clipboard chords.

State changes happen immediately under the state lock; the injections are
handed to a submit function (normally ``ActionWorker.submit``) so that they
run off the keyboard hook's thread.
"""

import logging
import queue
import threading
from typing import Callable, Optional

from emitter import Button, SyntheticEventEmitter
from errors import InjectionError
from keynames import Key
from state import NavigationState

logger = logging.getLogger(__name__)

SCROLL_REPEAT = 3
SCROLL_DELTAS = {
    "up": (0, 120),
    "down": (0, -120),
    "left": (-120, 0),
    "right": (120, 0),
}


def run_action(name: str, fn: Callable[[], None]):
    """Run an injection sequence. Failures are logged and the rest is abandoned."""
    try:
        fn()
    except InjectionError as e:
        logger.error("Failed to %s: %s", name, e)


class ActionWorker:
    """Single background thread running submitted actions in FIFO order."""

    _STOP = object()

    def __init__(self):
        self.queue = queue.Queue()
        self.thread: Optional[threading.Thread] = None

    def start(self):
        if self.thread is None:
            self.thread = threading.Thread(target=self._loop, name="vimnav-actions", daemon=True)
            self.thread.start()

    def submit(self, name: str, fn: Callable[[], None]):
        self.queue.put((name, fn))

    def stop(self, timeout: Optional[float] = None):
        if self.thread is None:
            return
        self.queue.put(self._STOP)
        self.thread.join(timeout)
        self.thread = None

    def _loop(self):
        while True:
            item = self.queue.get()
            try:
                if item is self._STOP:
                    return
                run_action(*item)
            except Exception:
                logger.exception("Unexpected error in action %r", item[0])
            finally:
                self.queue.task_done()


class ActionDispatcher:
    def __init__(self, state: NavigationState, emitter: SyntheticEventEmitter,
                 accelerator: Key, submit: Callable[[str, Callable[[], None]], None] = run_action,
                 release_grab: Optional[Callable[[], None]] = None):
        self.state = state
        self.emitter = emitter
        self.accelerator = accelerator
        self.submit = submit
        # Called before injecting keys while a grabbed binding may still be down
        self.release_grab = release_grab

    def _click(self, button: Button):
        self.emitter.press(button)
        self.emitter.release(button)

    def click(self):
        self.submit("click mouse", lambda: self._click(Button.LEFT))
        logger.debug("Mouse clicked!")

    def right_click(self):
        self.submit("right click mouse", lambda: self._click(Button.RIGHT))
        logger.debug("Right mouse clicked!")

    def toggle_selection(self):
        """Start or end a left-button drag."""
        with self.state.lock:
            cursor = self.state.cursor
            cursor.selection_active = not cursor.selection_active
            begin = cursor.selection_active
        if begin:
            self.submit("start selection", lambda: self.emitter.press(Button.LEFT))
            logger.info("Text selection started")
        else:
            self.end_selection()

    def end_selection(self):
        """Release the drag button. The flag must already be cleared."""
        self.submit("end selection", lambda: self.emitter.release(Button.LEFT))
        logger.info("Text selection ended")

    def goto_edge(self, top: bool):
        with self.state.lock:
            self.state.cursor.goto_edge(top)
            x, y = self.state.cursor.position
        self.submit("go to " + ("top" if top else "bottom"), lambda: self.emitter.move_to(x, y))
        logger.info("Moved to %s of screen", "top" if top else "bottom")

    def goto_top(self):
        self.goto_edge(True)

    def goto_bottom(self):
        self.goto_edge(False)

    def scroll(self, direction: str):
        delta_x, delta_y = SCROLL_DELTAS[direction]

        def burst():
            for _ in range(SCROLL_REPEAT):
                self.emitter.wheel(delta_x, delta_y)

        self.submit("scroll " + direction, burst)

    def _chord(self, letter: Key):
        if self.release_grab is not None:
            self.release_grab()
        self.emitter.key_down(self.accelerator)
        self.emitter.key_down(letter)
        self.emitter.key_up(letter)
        self.emitter.key_up(self.accelerator)

    def yank(self):
        self.submit("yank/copy", lambda: self._chord(Key.C))
        logger.info("Yanked (copied) to clipboard")

    def paste(self):
        self.submit("paste", lambda: self._chord(Key.V))
        logger.info("Pasted from clipboard")
