"""
Synthetic event injection for X11.

Two backends are available:
- xlib: direct XTest requests through python-xlib (fastest)
- xdotool: the xdotool command line tool (most compatible)

``SyntheticEventEmitter`` wraps a backend and sleeps ``move_delay`` after
every injected event so the X server does not coalesce or drop them.
"""

import logging
import shutil
import subprocess
import threading
import time
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Callable, Tuple, Union

from errors import DisplayQueryError, InjectionError
from keynames import Key

logger = logging.getLogger(__name__)

WHEEL_DELTA = 120


class X11Backend(Enum):
    XLIB = "xlib"           # Direct python3-xlib (fastest)
    XDOTOOL = "xdotool"     # Command-line xdotool (most compatible)


class Button(IntEnum):
    LEFT = 1
    MIDDLE = 2
    RIGHT = 3


@dataclass(frozen=True)
class PointerMove:
    x: int
    y: int


@dataclass(frozen=True)
class ButtonPress:
    button: Button


@dataclass(frozen=True)
class ButtonRelease:
    button: Button


@dataclass(frozen=True)
class Wheel:
    delta_x: int
    delta_y: int


@dataclass(frozen=True)
class KeyPress:
    key: Key


@dataclass(frozen=True)
class KeyRelease:
    key: Key


Event = Union[PointerMove, ButtonPress, ButtonRelease, Wheel, KeyPress, KeyRelease]


def wheel_buttons(delta_x: int, delta_y: int):
    """X buttons and click counts for a wheel delta (4/5 vertical, 6/7 horizontal)."""
    out = []
    if delta_y:
        out.append((4 if delta_y > 0 else 5, max(1, abs(delta_y) // WHEEL_DELTA)))
    if delta_x:
        out.append((7 if delta_x > 0 else 6, max(1, abs(delta_x) // WHEEL_DELTA)))
    return out


class XlibBackend:
    """XTest injection over a python-xlib Display connection."""

    name = X11Backend.XLIB

    def __init__(self):
        from Xlib.display import Display
        from Xlib.error import DisplayError

        try:
            self.display = Display()
        except DisplayError as e:
            raise DisplayQueryError(f"cannot open X display: {e}") from e
        self.screen = self.display.screen()
        self.root = self.screen.root
        # Display connections are not thread safe
        self.display_lock = threading.RLock()

    def display_size(self) -> Tuple[int, int]:
        try:
            width = int(self.screen.width_in_pixels)
            height = int(self.screen.height_in_pixels)
        except (AttributeError, TypeError, ValueError) as e:
            raise DisplayQueryError(f"cannot read screen geometry: {e}") from e
        if width <= 0 or height <= 0:
            raise DisplayQueryError(f"invalid screen geometry {width}x{height}")
        return width, height

    def _keycode(self, key: Key) -> int:
        import Xlib.XK

        keysym = Xlib.XK.string_to_keysym(key.keysym)
        keycode = self.display.keysym_to_keycode(keysym) if keysym else 0
        if not keycode:
            raise InjectionError(f"no keycode for {key.keysym}")
        return keycode

    def inject(self, event: Event):
        from Xlib import X
        from Xlib.ext.xtest import fake_input

        with self.display_lock:
            if isinstance(event, PointerMove):
                fake_input(self.display, X.MotionNotify, x=event.x, y=event.y)
            elif isinstance(event, ButtonPress):
                fake_input(self.display, X.ButtonPress, int(event.button))
            elif isinstance(event, ButtonRelease):
                fake_input(self.display, X.ButtonRelease, int(event.button))
            elif isinstance(event, Wheel):
                for button, count in wheel_buttons(event.delta_x, event.delta_y):
                    for _ in range(count):
                        fake_input(self.display, X.ButtonPress, button)
                        fake_input(self.display, X.ButtonRelease, button)
            elif isinstance(event, KeyPress):
                fake_input(self.display, X.KeyPress, self._keycode(event.key))
            elif isinstance(event, KeyRelease):
                fake_input(self.display, X.KeyRelease, self._keycode(event.key))
            else:
                raise InjectionError(f"unsupported event {event!r}")
            self.display.sync()

    def close(self):
        with self.display_lock:
            self.display.close()


class XdotoolBackend:
    """Injection through the xdotool binary."""

    name = X11Backend.XDOTOOL

    def __init__(self, runner: Callable = subprocess.run):
        self.run = runner
        if runner is subprocess.run and shutil.which("xdotool") is None:
            raise DisplayQueryError("xdotool not found, install with: sudo apt install xdotool")

    def _xdotool(self, *args) -> str:
        try:
            result = self.run(["xdotool", *args], capture_output=True, text=True)
        except OSError as e:
            raise InjectionError(f"xdotool {' '.join(args)}: {e}") from e
        if result.returncode != 0:
            raise InjectionError(f"xdotool {' '.join(args)} failed: {result.stderr.strip()}")
        return result.stdout

    def display_size(self) -> Tuple[int, int]:
        try:
            output = self._xdotool("getdisplaygeometry")
            width, height = (int(v) for v in output.split()[:2])
        except (InjectionError, ValueError) as e:
            raise DisplayQueryError(f"cannot read screen geometry: {e}") from e
        if width <= 0 or height <= 0:
            raise DisplayQueryError(f"invalid screen geometry {width}x{height}")
        return width, height

    def inject(self, event: Event):
        if isinstance(event, PointerMove):
            self._xdotool("mousemove", str(event.x), str(event.y))
        elif isinstance(event, ButtonPress):
            self._xdotool("mousedown", str(int(event.button)))
        elif isinstance(event, ButtonRelease):
            self._xdotool("mouseup", str(int(event.button)))
        elif isinstance(event, Wheel):
            for button, count in wheel_buttons(event.delta_x, event.delta_y):
                self._xdotool("click", "--repeat", str(count), "--delay", "0", str(button))
        elif isinstance(event, KeyPress):
            self._xdotool("keydown", event.key.keysym)
        elif isinstance(event, KeyRelease):
            self._xdotool("keyup", event.key.keysym)
        else:
            raise InjectionError(f"unsupported event {event!r}")

    def close(self):
        pass


def create_backend(name: str):
    backend = X11Backend(name)
    if backend is X11Backend.XLIB:
        return XlibBackend()
    return XdotoolBackend()


class SyntheticEventEmitter:
    def __init__(self, backend, move_delay: float, sleep: Callable[[float], None] = time.sleep):
        self.backend = backend
        self.move_delay = move_delay
        self.sleep = sleep

    def send(self, event: Event):
        """Inject one event, then let X settle. Raises InjectionError on failure."""
        try:
            self.backend.inject(event)
        except Exception as e:
            logger.debug("Failed to send event %r: %s", event, e)
            if isinstance(e, InjectionError):
                raise
            raise InjectionError(str(e)) from e
        if self.move_delay > 0:
            self.sleep(self.move_delay)

    def move_to(self, x: int, y: int):
        self.send(PointerMove(int(x), int(y)))

    def press(self, button: Button):
        self.send(ButtonPress(button))

    def release(self, button: Button):
        self.send(ButtonRelease(button))

    def wheel(self, delta_x: int, delta_y: int):
        self.send(Wheel(delta_x, delta_y))

    def key_down(self, key: Key):
        self.send(KeyPress(key))

    def key_up(self, key: Key):
        self.send(KeyRelease(key))
