"""
Configuration loading.

Built-in defaults come from ``config.py``. A TOML file and ``VIMNAV_*``
environment variables are layered on top. Anything that fails to read or
validate falls back to the built-in defaults; loading is never fatal.
"""

import logging
import math
import os
import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Mapping, Optional

from platformdirs import user_config_dir

import config
from errors import ConfigurationError
from keynames import Key, string_to_key

logger = logging.getLogger(__name__)

APP_NAME = "vimnav"
ENV_PREFIX = "VIMNAV_"
LOCAL_CONFIG_FILENAME = "vim_navigation_config.toml"
USER_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / "config.toml"

BACKENDS = ("xlib", "xdotool")
UNLIMITED = ("", "none", "unlimited")

BINDING_NAMES = (
    "key_left",
    "key_down",
    "key_up",
    "key_right",
    "key_click",
    "key_toggle_mode",
    "key_right_click",
    "key_select_toggle",
    "key_goto_top",
    "key_goto_bottom",
    "key_yank",
    "key_paste",
)


@dataclass(frozen=True)
class KeyBindings:
    """Logical actions resolved to physical keys."""

    left: Key
    down: Key
    up: Key
    right: Key
    click: Key
    toggle_mode: Key
    right_click: Key
    select_toggle: Key
    goto_top: Key
    goto_bottom: Key
    yank: Key
    paste: Key

    @property
    def directions(self) -> dict:
        """Direction key -> direction name, in tick order."""
        return {
            self.left: "left",
            self.down: "down",
            self.up: "up",
            self.right: "right",
        }


@dataclass(frozen=True)
class NavigationConfig:
    initial_move_step: float = 1.0
    max_move_step: Optional[float] = None
    acceleration_base: float = 2.0
    acceleration_multiplier: float = 50.0
    repeat_delay_ms: int = 30
    move_delay_ms: int = 15
    precision_divisor: float = 10.0
    key_left: str = "h"
    key_down: str = "j"
    key_up: str = "k"
    key_right: str = "l"
    key_click: str = "return"
    key_toggle_mode: str = "escape"
    key_right_click: str = "i"
    key_select_toggle: str = "v"
    key_goto_top: str = "g"
    key_goto_bottom: str = "shift_g"
    key_yank: str = "y"
    key_paste: str = "p"
    accelerator_key: str = "ctrl"
    backend: str = "xlib"
    log_level: str = "INFO"

    def __post_init__(self):
        _validate(self)
        bindings = KeyBindings(
            **{name[len("key_"):]: string_to_key(getattr(self, name)) for name in BINDING_NAMES}
        )
        object.__setattr__(self, "_bindings", bindings)
        object.__setattr__(self, "_accelerator", string_to_key(self.accelerator_key))

    @property
    def bindings(self) -> KeyBindings:
        return self._bindings

    @property
    def accelerator(self) -> Key:
        return self._accelerator

    @property
    def repeat_delay(self) -> float:
        return self.repeat_delay_ms / 1000.0

    @property
    def move_delay(self) -> float:
        return self.move_delay_ms / 1000.0


def _validate(cfg: NavigationConfig):
    for name in ("initial_move_step", "acceleration_base", "acceleration_multiplier", "precision_divisor"):
        if not math.isfinite(getattr(cfg, name)):
            raise ConfigurationError(f"{name} must be a finite number")
    if cfg.initial_move_step < 0:
        raise ConfigurationError("initial_move_step must be >= 0")
    if cfg.acceleration_base < 1:
        raise ConfigurationError("acceleration_base must be >= 1")
    if cfg.acceleration_multiplier < 0:
        raise ConfigurationError("acceleration_multiplier must be >= 0")
    if cfg.precision_divisor <= 0:
        raise ConfigurationError("precision_divisor must be > 0")
    if cfg.max_move_step is not None and not (math.isfinite(cfg.max_move_step) and cfg.max_move_step > 0):
        raise ConfigurationError("max_move_step must be a positive number or unset")
    if cfg.repeat_delay_ms < 1:
        raise ConfigurationError("repeat_delay_ms must be >= 1")
    if cfg.move_delay_ms < 0:
        raise ConfigurationError("move_delay_ms must be >= 0")
    if cfg.backend not in BACKENDS:
        raise ConfigurationError(f"unknown backend {cfg.backend!r}")
    if not isinstance(logging.getLevelName(cfg.log_level.upper()), int):
        raise ConfigurationError(f"unknown log level {cfg.log_level!r}")

    for name in BINDING_NAMES + ("accelerator_key",):
        if string_to_key(getattr(cfg, name)) is None:
            raise ConfigurationError(f"{name}: unknown key name {getattr(cfg, name)!r}")
    directions = {string_to_key(getattr(cfg, name)) for name in BINDING_NAMES[:4]}
    if len(directions) != 4:
        raise ConfigurationError("direction keys must be four distinct keys")


def default_config() -> NavigationConfig:
    """Snapshot of the values in config.py (dataclass defaults where absent)."""
    base = NavigationConfig()
    overrides = {}
    for f in fields(NavigationConfig):
        attr = "DEFAULT_BACKEND" if f.name == "backend" else f.name.upper()
        if hasattr(config, attr):
            overrides[f.name] = getattr(config, attr)
    try:
        return replace(base, **overrides)
    except (ConfigurationError, TypeError, AttributeError) as e:
        logger.warning("Ignoring invalid defaults in config.py: %s", e)
        return base


def _coerce(name: str, value):
    """Convert a raw TOML/env value to the type of the named field."""
    if name == "max_move_step":
        if value is None or (isinstance(value, str) and value.strip().lower() in UNLIMITED):
            return None
        return _coerce_float(name, value)
    if name in ("repeat_delay_ms", "move_delay_ms"):
        if isinstance(value, bool):
            raise ConfigurationError(f"{name} must be an integer")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None
    if name in ("initial_move_step", "acceleration_base", "acceleration_multiplier", "precision_divisor"):
        return _coerce_float(name, value)
    if not isinstance(value, str):
        raise ConfigurationError(f"{name} must be a string, got {value!r}")
    return value.strip().lower() if name == "backend" else value.strip()


def _coerce_float(name: str, value) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None


def _apply(cfg: NavigationConfig, raw: Mapping[str, object], source: str) -> NavigationConfig:
    known = {f.name for f in fields(NavigationConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigurationError(f"{source}: unknown setting(s) {', '.join(unknown)}")
    if not raw:
        return cfg
    changes = {name: _coerce(name, value) for name, value in raw.items()}
    return replace(cfg, **changes)


def find_config_file(explicit: Optional[Path] = None) -> Optional[Path]:
    """Return the config file to read, or None when there is none."""
    if explicit is not None:
        return Path(explicit)
    local = Path.cwd() / LOCAL_CONFIG_FILENAME
    if local.exists():
        return local
    if USER_CONFIG_PATH.exists():
        return USER_CONFIG_PATH
    return None


def read_config_file(path: Path) -> dict:
    try:
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    except FileNotFoundError:
        raise ConfigurationError(f"config file not found: {path}") from None
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"could not read {path}: {e}") from e


def environment_overrides(environ: Mapping[str, str]) -> dict:
    known = {f.name for f in fields(NavigationConfig)}
    out = {}
    for var, value in environ.items():
        if not var.startswith(ENV_PREFIX):
            continue
        name = var[len(ENV_PREFIX):].lower()
        if name in known:
            out[name] = value
    return out


def load_config(path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> NavigationConfig:
    """Load the effective configuration.

    Args:
        path: explicit TOML file. When omitted the local and per-user
            locations are tried; a missing file there is not an error.
        environ: environment mapping (defaults to os.environ).

    Returns the built-in defaults if anything fails.
    """
    defaults = default_config()
    environ = os.environ if environ is None else environ
    try:
        cfg = defaults
        config_path = find_config_file(path)
        if config_path is not None:
            cfg = _apply(cfg, read_config_file(config_path), str(config_path))
            logger.info("Loaded configuration from %s", config_path)
        cfg = _apply(cfg, environment_overrides(environ), "environment")
        return cfg
    except ConfigurationError as e:
        logger.warning("Failed to load configuration: %s", e)
        logger.warning("Using default configuration")
        return defaults


def describe(cfg: NavigationConfig) -> str:
    """Human readable summary printed at startup."""
    max_speed = "UNLIMITED" if cfg.max_move_step is None else f"{cfg.max_move_step:.1f} px"
    lines = [
        "=== Current Configuration ===",
        f"Backend: {cfg.backend}",
        f"Initial speed: {cfg.initial_move_step:.1f} px",
        f"Max speed: {max_speed}",
        f"Acceleration base: {cfg.acceleration_base:.1f}",
        f"Acceleration multiplier: {cfg.acceleration_multiplier:.1f}",
        f"Update rate: {cfg.repeat_delay_ms} ms",
        f"Move delay: {cfg.move_delay_ms} ms",
        f"Precision mode: {cfg.precision_divisor:.1f}x slower",
        f"Navigation keys: {cfg.key_left} {cfg.key_down} {cfg.key_up} {cfg.key_right} (left/down/up/right)",
        f"Control keys: {cfg.key_toggle_mode} (toggle mode), {cfg.key_click} (click)",
    ]
    return "\n".join(lines)
