"""
Key identities and the symbolic name table.

Names from the config are resolved once into ``Key`` members so that the
hook never compares strings at runtime.
"""

import string
from enum import Enum
from typing import Optional


class Key(Enum):
    """A physical key. The value is the X keysym name used for injection."""

    RETURN = "Return"
    ESCAPE = "Escape"
    SPACE = "space"
    TAB = "Tab"
    BACKSPACE = "BackSpace"
    SHIFT_LEFT = "Shift_L"
    SHIFT_RIGHT = "Shift_R"
    CTRL_LEFT = "Control_L"
    CTRL_RIGHT = "Control_R"
    ALT_LEFT = "Alt_L"
    ALT_RIGHT = "Alt_R"
    META_LEFT = "Super_L"
    META_RIGHT = "Super_R"
    UP = "Up"
    DOWN = "Down"
    LEFT = "Left"
    RIGHT = "Right"
    SEMICOLON = "semicolon"
    COMMA = "comma"
    PERIOD = "period"
    SLASH = "slash"

    A = "a"
    B = "b"
    C = "c"
    D = "d"
    E = "e"
    F = "f"
    G = "g"
    H = "h"
    I = "i"
    J = "j"
    K = "k"
    L = "l"
    M = "m"
    N = "n"
    O = "o"
    P = "p"
    Q = "q"
    R = "r"
    S = "s"
    T = "t"
    U = "u"
    V = "v"
    W = "w"
    X = "x"
    Y = "y"
    Z = "z"

    DIGIT_0 = "0"
    DIGIT_1 = "1"
    DIGIT_2 = "2"
    DIGIT_3 = "3"
    DIGIT_4 = "4"
    DIGIT_5 = "5"
    DIGIT_6 = "6"
    DIGIT_7 = "7"
    DIGIT_8 = "8"
    DIGIT_9 = "9"

    @property
    def keysym(self) -> str:
        return self.value


SHIFT_KEYS = frozenset({Key.SHIFT_LEFT, Key.SHIFT_RIGHT})
# Modifiers that turn a key into an application shortcut
CHORD_MODIFIERS = frozenset({Key.CTRL_LEFT, Key.CTRL_RIGHT, Key.ALT_LEFT, Key.ALT_RIGHT,
                             Key.META_LEFT, Key.META_RIGHT})

# Printable characters as reported by the keyboard hook
CHAR_KEYS = {
    ";": Key.SEMICOLON,
    ",": Key.COMMA,
    ".": Key.PERIOD,
    "/": Key.SLASH,
    " ": Key.SPACE,
}
for _ch in string.ascii_lowercase + string.digits:
    CHAR_KEYS[_ch] = Key(_ch)
del _ch

NAMED_KEYS = {
    "return": Key.RETURN,
    "enter": Key.RETURN,
    "escape": Key.ESCAPE,
    "esc": Key.ESCAPE,
    "space": Key.SPACE,
    "tab": Key.TAB,
    "backspace": Key.BACKSPACE,
    "shift": Key.SHIFT_LEFT,
    "shift_l": Key.SHIFT_LEFT,
    "shift_r": Key.SHIFT_RIGHT,
    "ctrl": Key.CTRL_LEFT,
    "control": Key.CTRL_LEFT,
    "ctrl_l": Key.CTRL_LEFT,
    "ctrl_r": Key.CTRL_RIGHT,
    "alt": Key.ALT_LEFT,
    "alt_l": Key.ALT_LEFT,
    "alt_r": Key.ALT_RIGHT,
    "meta": Key.META_LEFT,
    "cmd": Key.META_LEFT,
    "super": Key.META_LEFT,
    "meta_l": Key.META_LEFT,
    "meta_r": Key.META_RIGHT,
    "up": Key.UP,
    "down": Key.DOWN,
    "left": Key.LEFT,
    "right": Key.RIGHT,
    "semicolon": Key.SEMICOLON,
    "comma": Key.COMMA,
    "period": Key.PERIOD,
    "slash": Key.SLASH,
}


def key_for_char(char: str) -> Optional[Key]:
    """Map a character reported by the hook to a Key (shift-insensitive)."""
    if not char:
        return None
    return CHAR_KEYS.get(char.lower())


def string_to_key(name: str) -> Optional[Key]:
    """Resolve a symbolic key name from the config.

    ``shift_<x>`` resolves to the plain key; whether shift is held is checked
    when the key is pressed.
    """
    name = name.strip().lower()
    if name in NAMED_KEYS:
        return NAMED_KEYS[name]
    if name.startswith("shift_") and len(name) > len("shift_"):
        return string_to_key(name[len("shift_"):])
    if len(name) == 1:
        return CHAR_KEYS.get(name)
    return None
