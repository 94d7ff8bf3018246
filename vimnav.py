#!/usr/bin/env python3
"""
Vim-style keyboard navigation for the X11 mouse pointer.

h/j/k/l move the pointer with exponential acceleration while held, other
bindings click, drag-select, jump to the screen edges, scroll and copy/paste.
A single toggle key switches between navigation mode and typing mode.
"""

import argparse
import dataclasses
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

import settings
from actions import ActionDispatcher, ActionWorker
from emitter import SyntheticEventEmitter, X11Backend, create_backend
from errors import DisplayQueryError, HookRegistrationError, InjectionError
from gate import InputHookGate
from hook import KeyboardHook, XKeyGrabber, navigation_keys
from mover import MoverLoop
from settings import NavigationConfig
from state import CursorState, NavigationState

logger = logging.getLogger("vimnav")


class VimNavigationController:
    def __init__(self, config: NavigationConfig, backend=None):
        """
        Wire up the engine.

        Args:
            config: effective configuration snapshot
            backend: emitter backend (created from config.backend when omitted)

        Raises DisplayQueryError when the screen size cannot be read.
        """
        self.config = config
        self.backend = backend if backend is not None else create_backend(config.backend)
        width, height = self.backend.display_size()
        logger.info("Display size %dx%d", width, height)

        self.state = NavigationState(CursorState(width, height, config))
        self.emitter = SyntheticEventEmitter(self.backend, config.move_delay)
        self.worker = ActionWorker()
        self.grabber = XKeyGrabber(always={config.bindings.toggle_mode},
                                   navigation=navigation_keys(config.bindings))
        self.dispatcher = ActionDispatcher(self.state, self.emitter, config.accelerator,
                                           submit=self.worker.submit,
                                           release_grab=self.grabber.release_keyboard)
        self.gate = InputHookGate(self.state, config.bindings, self.dispatcher)
        self.mover = MoverLoop(self.state, self.emitter, config)
        self.hook = KeyboardHook(self.gate, self.state, self.grabber)

    def print_banner(self):
        cfg = self.config
        print(settings.describe(cfg))
        print()
        print("Vim-style navigation with configurable keys started!")
        print()
        print("=== CONTROLS ===")
        print("VIM NAVIGATION MODE:")
        print(f"  {cfg.key_left} - move cursor left")
        print(f"  {cfg.key_down} - move cursor down")
        print(f"  {cfg.key_up} - move cursor up")
        print(f"  {cfg.key_right} - move cursor right")
        print(f"  {cfg.key_click} - left mouse click")
        print(f"  {cfg.key_right_click} - right mouse click")
        print(f"  {cfg.key_select_toggle} - toggle text selection")
        print(f"  {cfg.key_goto_top} - go to top of screen")
        print(f"  {cfg.key_goto_bottom} - go to bottom of screen")
        print(f"  {cfg.key_yank} - yank/copy")
        print(f"  {cfg.key_paste} - paste")
        print("  Shift+direction - scroll in that direction")
        print(f"  Space+direction - precision mode ({cfg.precision_divisor:.0f}x slower)")
        print(f"  {cfg.key_toggle_mode} - toggle to typing mode")
        print()
        print("TYPING MODE:")
        print(f"  {cfg.key_toggle_mode} - toggle back to vim navigation mode")
        print("  (all other keys work normally for typing)")
        print()
        print("BOTH MODES:")
        print("  Ctrl+C in this terminal - quit program")
        print()
        print("=== STARTING IN VIM NAVIGATION MODE ===")
        print("Hold movement keys longer for exponential acceleration!")
        print()

    def center_cursor(self):
        x, y = self.state.position()
        try:
            self.emitter.move_to(x, y)
            logger.info("Cursor initialized at center of screen")
        except InjectionError as e:
            logger.warning("Could not move cursor to the screen center: %s", e)

    def run(self):
        """Start the engine and block until interrupted."""
        self.center_cursor()
        self.print_banner()
        self.worker.start()
        self.mover.start()
        try:
            self.hook.run()
        except KeyboardInterrupt:
            print("\nExiting...")
        finally:
            self.shutdown()

    def shutdown(self):
        self.mover.stop(timeout=1.0)
        self.hook.stop()
        with self.state.lock:
            end_drag = self.state.cursor.selection_active
            self.state.cursor.selection_active = False
            self.state.cursor.clear_all()
        if end_drag:
            self.dispatcher.end_selection()
        self.worker.stop(timeout=1.0)
        self.backend.close()
        print("Vim navigation stopped.")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="vimnav", description=__doc__.strip().splitlines()[0])
    parser.add_argument("backend", nargs="?", choices=[b.value for b in X11Backend],
                        help="event injection backend (default from config)")
    parser.add_argument("--config", type=Path, help="TOML configuration file")
    parser.add_argument("--debug", action="store_true", help="log per-tick movement details")
    parser.add_argument("--print-config", action="store_true", help="print the effective configuration and exit")
    return parser.parse_args(argv)


def setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: Optional[list] = None) -> int:
    """Main entry point with backend selection"""
    args = parse_args(argv)
    # Config warnings need a handler before the configured level is known
    setup_logging("DEBUG" if args.debug else "INFO")
    config = settings.load_config(args.config)
    if args.backend:
        config = dataclasses.replace(config, backend=args.backend)
    logging.getLogger().setLevel("DEBUG" if args.debug else config.log_level.upper())

    if args.print_config:
        print(settings.describe(config))
        return 0

    def _handle_signal(signum, frame):
        raise KeyboardInterrupt()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    try:
        controller = VimNavigationController(config)
    except DisplayQueryError as e:
        logger.error("Cannot query the display: %s", e)
        print("Make sure an X session is running and DISPLAY is set.", file=sys.stderr)
        return 1

    try:
        controller.run()
    except HookRegistrationError as e:
        logger.error("Error grabbing events: %s", e)
        print("Note: the keyboard hook needs access to the X server (DISPLAY, XRecord extension).",
              file=sys.stderr)
        print("Under Wayland run the program inside an XWayland session or use an X11 login.",
              file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
