"""
Global keyboard hook for X11.

pynput's listener reports every key event (through XRecord) and feeds it to
the gate. XRecord cannot stop an event from reaching other clients, so keys
the gate suppresses are also passively grabbed on the root window: the
toggle key permanently, the navigation bindings only while navigation mode
is active. Grabbed events land in our own connection and are discarded.
"""

import logging
import threading
import time
from typing import Iterable, Optional

from errors import HookRegistrationError
from gate import Decision, EventKind, InputHookGate, KeyEvent
from keynames import Key, key_for_char
from settings import KeyBindings
from state import Mode, NavigationState

logger = logging.getLogger(__name__)

# pynput Key attribute name -> Key
PYNPUT_SPECIAL_KEYS = {
    "enter": Key.RETURN,
    "esc": Key.ESCAPE,
    "space": Key.SPACE,
    "tab": Key.TAB,
    "backspace": Key.BACKSPACE,
    "shift": Key.SHIFT_LEFT,
    "shift_l": Key.SHIFT_LEFT,
    "shift_r": Key.SHIFT_RIGHT,
    "ctrl": Key.CTRL_LEFT,
    "ctrl_l": Key.CTRL_LEFT,
    "ctrl_r": Key.CTRL_RIGHT,
    "alt": Key.ALT_LEFT,
    "alt_l": Key.ALT_LEFT,
    "alt_r": Key.ALT_RIGHT,
    "alt_gr": Key.ALT_RIGHT,
    "cmd": Key.META_LEFT,
    "cmd_l": Key.META_LEFT,
    "cmd_r": Key.META_RIGHT,
    "up": Key.UP,
    "down": Key.DOWN,
    "left": Key.LEFT,
    "right": Key.RIGHT,
}


def navigation_keys(bindings: KeyBindings) -> set:
    """Keys that must not reach other applications in navigation mode."""
    keys = set(bindings.directions)
    keys.update((bindings.click, bindings.right_click, bindings.select_toggle,
                 bindings.goto_top, bindings.goto_bottom, bindings.yank, bindings.paste,
                 Key.SPACE))
    keys.discard(bindings.toggle_mode)
    return keys


class XKeyGrabber:
    """Passive root-window key grabs on a private Display connection.

    Grab changes are requested from any thread and applied by the grabber's
    own thread, which also drains the grabbed events.
    """

    def __init__(self, always: Iterable[Key], navigation: Iterable[Key], poll_interval: float = 0.005):
        self.always = set(always)
        self.navigation = set(navigation)
        self.poll_interval = poll_interval
        self.display = None
        self.root = None
        self.grabbed = set()  # (keycode, modifiers)
        self.navigation_grabbed = False
        self.wanted_navigation = True
        self.running = False
        self.thread: Optional[threading.Thread] = None
        self.lock = threading.Lock()
        # Serializes use of the private connection across threads
        self.display_lock = threading.RLock()

    def start(self, navigation: bool = True):
        from Xlib.display import Display
        from Xlib.error import DisplayError

        try:
            self.display = Display()
        except DisplayError as e:
            raise HookRegistrationError(f"cannot open X display for key grabs: {e}") from e
        self.root = self.display.screen().root
        self.display.set_error_handler(self._on_x_error)
        self.wanted_navigation = navigation
        self._grab(self.always)
        self.running = True
        self.thread = threading.Thread(target=self._loop, name="vimnav-grabs", daemon=True)
        self.thread.start()

    def set_navigation(self, enabled: bool):
        with self.lock:
            self.wanted_navigation = enabled

    def release_keyboard(self):
        """End the active keyboard grab that a passive key grab starts on press.

        Until the grabbed key is released X would route every keyboard event,
        injected ones included, to this connection only.
        """
        from Xlib import X

        with self.display_lock:
            if self.display is None:
                return
            self.display.ungrab_keyboard(X.CurrentTime)
            self.display.sync()

    def stop(self):
        self.running = False
        if self.thread is not None:
            self.thread.join(1.0)
            self.thread = None
        with self.display_lock:
            if self.display is not None:
                self._ungrab_all()
                self.display.close()
                self.display = None

    def _on_x_error(self, err, *args):
        from Xlib import error as xerror

        # Another client may already own some combination; ignore it
        if isinstance(err, xerror.BadAccess):
            return
        logger.debug("X error while grabbing keys: %s", err)

    def _modifier_combinations(self):
        from Xlib import X

        # Plain and shifted, with any CapsLock/NumLock state. Ctrl/Alt/Super
        # combinations stay with the focused application.
        combos = set()
        for base in (0, X.ShiftMask):
            for caps in (0, X.LockMask):
                for numl in (0, X.Mod2Mask):
                    combos.add(base | caps | numl)
        return combos

    def _keycode(self, key: Key) -> int:
        import Xlib.XK

        keysym = Xlib.XK.string_to_keysym(key.keysym)
        return self.display.keysym_to_keycode(keysym) if keysym else 0

    def _grab(self, keys: Iterable[Key]):
        from Xlib import X

        for key in keys:
            keycode = self._keycode(key)
            if not keycode:
                logger.warning("No keycode for %s, it will not be suppressed", key.keysym)
                continue
            for modifiers in self._modifier_combinations():
                self.root.grab_key(keycode, modifiers, False, X.GrabModeAsync, X.GrabModeAsync)
                self.grabbed.add((keycode, modifiers))
        self.display.sync()

    def _ungrab(self, keys: Iterable[Key]):
        keycodes = {self._keycode(key) for key in keys}
        for keycode, modifiers in list(self.grabbed):
            if keycode in keycodes:
                self.root.ungrab_key(keycode, modifiers)
                self.grabbed.discard((keycode, modifiers))
        self.display.sync()

    def _ungrab_all(self):
        for keycode, modifiers in self.grabbed:
            self.root.ungrab_key(keycode, modifiers)
        self.grabbed.clear()
        self.display.sync()

    def _apply(self):
        with self.lock:
            wanted = self.wanted_navigation
        if wanted == self.navigation_grabbed:
            return
        if wanted:
            self._grab(self.navigation)
            logger.debug("Grabbed navigation keys (%d combinations)", len(self.grabbed))
        else:
            self._ungrab(self.navigation - self.always)
            logger.debug("Released navigation key grabs")
        self.navigation_grabbed = wanted

    def _loop(self):
        while self.running:
            try:
                with self.display_lock:
                    self._apply()
                    while self.display.pending_events():
                        self.display.next_event()
            except Exception:
                logger.exception("X key grab loop failed")
                return
            time.sleep(self.poll_interval)


class KeyboardHook:
    """Connects the pynput keyboard listener to the gate."""

    def __init__(self, gate: InputHookGate, state: NavigationState, grabber: Optional[XKeyGrabber] = None,
                 poll_interval: float = 0.5):
        self.gate = gate
        self.state = state
        self.grabber = grabber
        self.poll_interval = poll_interval
        self.listener = None
        self.stopping = False

    @staticmethod
    def translate(key) -> Optional[Key]:
        """Map a pynput key object to a Key, or None if it is not one we know."""
        name = getattr(key, "name", None)
        if name is not None:
            return PYNPUT_SPECIAL_KEYS.get(name)
        char = getattr(key, "char", None)
        if char:
            return key_for_char(char)
        return None

    def _handle(self, kind: EventKind, key):
        decision = self.gate.handle(KeyEvent(kind, self.translate(key)))
        if self.grabber is not None and decision is Decision.SUPPRESS:
            self.grabber.set_navigation(self.state.get_mode() is Mode.NAVIGATION)
            if kind is EventKind.PRESS:
                # Let other keys reach applications while this one is held
                self.grabber.release_keyboard()
        return decision

    def on_press(self, key):
        self._handle(EventKind.PRESS, key)

    def on_release(self, key):
        self._handle(EventKind.RELEASE, key)

    def run(self):
        """Install the hook and block until it stops.

        Raises HookRegistrationError when the listener cannot be started or
        dies without being asked to.
        """
        try:
            from pynput import keyboard
        except ImportError as e:
            raise HookRegistrationError(f"pynput keyboard backend unavailable: {e}") from e

        if self.grabber is not None:
            self.grabber.start(navigation=self.state.get_mode() is Mode.NAVIGATION)

        self.stopping = False
        self.listener = keyboard.Listener(
            on_press=self.on_press,
            on_release=self.on_release,
            suppress=False,
        )
        try:
            self.listener.start()
        except Exception as e:
            raise HookRegistrationError(f"keyboard listener failed to start: {e}") from e
        logger.info("Keyboard hook installed")

        listener = self.listener
        while listener.is_alive():
            listener.join(self.poll_interval)
        if not self.stopping:
            raise HookRegistrationError("keyboard listener stopped unexpectedly")

    def stop(self):
        self.stopping = True
        if self.listener is not None:
            self.listener.stop()
            self.listener = None
        if self.grabber is not None:
            self.grabber.stop()
