"""
Input hook decisions.

``InputHookGate`` is called synchronously for every keyboard event before
any other application sees it. It updates the shared state under the lock,
releases the lock, triggers one-shot actions and answers FORWARD or
SUPPRESS. Nothing in here blocks on the X server.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Dict, Optional

from actions import ActionDispatcher
from keynames import CHORD_MODIFIERS, SHIFT_KEYS, Key
from settings import KeyBindings
from state import AUTOREPEAT_WINDOW, Mode, NavigationState

logger = logging.getLogger(__name__)

PRECISION_KEY = Key.SPACE


class Decision(Enum):
    FORWARD = "forward"
    SUPPRESS = "suppress"


class EventKind(Enum):
    PRESS = "press"
    RELEASE = "release"


@dataclass(frozen=True)
class KeyEvent:
    kind: EventKind
    key: Optional[Key]


class InputHookGate:
    def __init__(self, state: NavigationState, bindings: KeyBindings, dispatcher: ActionDispatcher):
        self.state = state
        self.bindings = bindings
        self.dispatcher = dispatcher
        self.directions = bindings.directions
        # Physically held keys, used to tell press edges from auto-repeat
        self.keys_down = set()
        self.released_at: Dict[Key, float] = {}

    def handle(self, event) -> Decision:
        """Entry point for the OS hook. Never raises."""
        try:
            if not isinstance(event, KeyEvent) or event.key is None:
                return Decision.FORWARD
            if event.kind is EventKind.PRESS:
                return self.on_press(event.key)
            return self.on_release(event.key)
        except Exception:
            logger.exception("Error handling %r, forwarding it", event)
            return Decision.FORWARD

    def _is_repeat(self, key: Key, now: float) -> bool:
        released_at = self.released_at.pop(key, None)
        if key in self.keys_down:
            return True
        return released_at is not None and now - released_at <= AUTOREPEAT_WINDOW

    def on_press(self, key: Key) -> Decision:
        b = self.bindings
        action = None
        toggled = None
        decision = Decision.FORWARD
        with self.state.lock:
            cursor = self.state.cursor
            now = self.state.clock()
            repeat = self._is_repeat(key, now)
            self.keys_down.add(key)

            if key in SHIFT_KEYS:
                cursor.shift_held = True
            if key not in CHORD_MODIFIERS and self.keys_down & CHORD_MODIFIERS:
                # Ctrl/Alt/Super shortcuts belong to the focused application
                return Decision.FORWARD
            if key is PRECISION_KEY:
                cursor.precision_held = True
                cursor.precision_released = None
            shift = cursor.shift_held
            navigating = self.state.navigating

            if key is b.toggle_mode:
                if not repeat:
                    if self.state.toggle_mode():
                        action = self.dispatcher.end_selection
                    toggled = self.state.mode
                    if toggled is Mode.NAVIGATION:
                        cursor.precision_held = PRECISION_KEY in self.keys_down
                decision = Decision.SUPPRESS
            elif navigating and key in self.directions:
                if shift:
                    if not repeat:
                        action = partial(self.dispatcher.scroll, self.directions[key])
                else:
                    cursor.press(key, now)
                decision = Decision.SUPPRESS
            elif navigating and key in (b.click, b.right_click, b.select_toggle,
                                        b.goto_top, b.goto_bottom, b.yank, b.paste):
                action = self._one_shot(key, shift)
                if action is not None:
                    decision = Decision.SUPPRESS
                    if repeat:
                        action = None
                elif key is PRECISION_KEY:
                    decision = Decision.SUPPRESS
            elif navigating and key is PRECISION_KEY:
                decision = Decision.SUPPRESS

        if toggled is Mode.TYPING:
            logger.info("TYPING MODE - navigation disabled")
        elif toggled is Mode.NAVIGATION:
            logger.info("VIM NAVIGATION MODE - navigation enabled")
        if action is not None:
            action()
        return decision

    def _one_shot(self, key: Key, shift: bool):
        b = self.bindings
        d = self.dispatcher
        if key is b.click:
            return d.click
        if key is b.right_click:
            return d.right_click
        if key is b.select_toggle:
            return d.toggle_selection
        if key is b.goto_top and not shift:
            return d.goto_top
        if key is b.goto_bottom and shift:
            return d.goto_bottom
        if key is b.yank:
            return d.yank
        if key is b.paste:
            return d.paste
        return None

    def on_release(self, key: Key) -> Decision:
        with self.state.lock:
            cursor = self.state.cursor
            now = self.state.clock()
            self.keys_down.discard(key)
            self.released_at[key] = now
            if key in SHIFT_KEYS:
                cursor.shift_held = bool(self.keys_down & SHIFT_KEYS)
            if key is PRECISION_KEY and cursor.precision_held:
                cursor.precision_released = now

            if key is self.bindings.toggle_mode:
                return Decision.SUPPRESS
            if not self.state.navigating:
                return Decision.FORWARD
            if key in self.directions:
                # Dropped by the mover once it is clear this was not auto-repeat
                cursor.release(key, now)
                return Decision.SUPPRESS
            if key is PRECISION_KEY:
                return Decision.SUPPRESS
        return Decision.FORWARD
