"""
Vim Navigation - Built-in defaults

Edit these values to tune cursor behavior. A vim_navigation_config.toml file
or VIMNAV_* environment variables override them at startup.

Notes:
- Speed per tick = INITIAL_MOVE_STEP + ACCELERATION_MULTIPLIER * ACCELERATION_BASE ** seconds_held
- MAX_MOVE_STEP caps that speed. None means no cap at all (the cursor gets
  very fast after a couple of seconds).
- REPEAT_DELAY_MS controls how often movement ticks happen.
- MOVE_DELAY_MS is the pause after every synthetic event so X can keep up.
- Holding space divides the speed by PRECISION_DIVISOR.
"""

# Backend to use by default: "xlib" (fastest) or "xdotool" (compatible)
DEFAULT_BACKEND = "xlib"

# Speed in pixels per tick before any acceleration is added
INITIAL_MOVE_STEP = 1.0

# Speed ceiling in pixels per tick (None = unlimited)
MAX_MOVE_STEP = None

# Exponential base for acceleration (higher = faster ramp)
ACCELERATION_BASE = 2.0

# Multiplier for the exponential term
ACCELERATION_MULTIPLIER = 50.0

# Time between movement ticks (milliseconds)
REPEAT_DELAY_MS = 30

# Settle delay after each injected event (milliseconds)
MOVE_DELAY_MS = 15

# How much slower the cursor moves while space is held
PRECISION_DIVISOR = 10.0

# Modifier used for yank/paste chords ("ctrl" on X11, "meta" for Cmd-style)
ACCELERATOR_KEY = "ctrl"

# Logging level name
LOG_LEVEL = "INFO"

# Key bindings (symbolic names, see keynames.py)
KEY_LEFT = "h"
KEY_DOWN = "j"
KEY_UP = "k"
KEY_RIGHT = "l"
KEY_CLICK = "return"
KEY_TOGGLE_MODE = "escape"
KEY_RIGHT_CLICK = "i"
KEY_SELECT_TOGGLE = "v"
KEY_GOTO_TOP = "g"
KEY_GOTO_BOTTOM = "shift_g"
KEY_YANK = "y"
KEY_PASTE = "p"
