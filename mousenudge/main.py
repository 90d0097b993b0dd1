"""
MouseNudge - Main entry point and toggle window.
"""

import sys
import logging
import argparse
import threading
import tkinter as tk
from tkinter import ttk, messagebox
from pathlib import Path
from typing import Optional

from .config import load_config, save_config, get_config_path, Config, ConfigError
from .cursor import CursorService, CursorServiceFailure, PynputCursorService, BridgeCursorService
from .state import ToggleController, StateChange

LOG_FORMAT = '%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s'
LOG_DATEFMT = '%H:%M:%S'

# Window-local shortcut that toggles Start/Stop like a button press
TOGGLE_SHORTCUTS = ('<Control-g>', '<Command-g>') if sys.platform == 'darwin' else ('<Control-g>',)

log = logging.getLogger(__name__)


class ButtonControl:
    """Control adapter around a Tk button."""

    def __init__(self, button):
        self._button = button

    @property
    def label(self) -> str:
        return str(self._button.cget('text'))

    def set_label(self, text: str) -> None:
        self._button.configure(text=text)


def create_cursor_service(config: Config) -> CursorService:
    """Build the cursor backend selected by config."""
    if config.backend == 'bridge':
        log.info("Using cursor bridge backend")
        return BridgeCursorService.spawn(detect_bounds=config.check_bounds)

    log.info("Using in-process cursor backend")
    return PynputCursorService(detect_bounds=config.check_bounds)


class MouseNudge:
    """Main application controller."""

    def __init__(self, config: Config):
        self.config = config
        self.root: Optional[tk.Tk] = None
        self.cursor: Optional[CursorService] = None
        self.controller: Optional[ToggleController] = None
        self._quit_requested = threading.Event()

    def _on_activate(self):
        """Button command: run one activation, report cursor failures."""
        try:
            self.controller.activate()
        except CursorServiceFailure as e:
            log.error(f"Cursor action failed: {e}")
            messagebox.showerror("MouseNudge", f"Could not move the mouse:\n{e}", parent=self.root)

    def _on_shortcut(self, event=None):
        """Ctrl+G: same dispatch as clicking the button."""
        log.info("Toggle shortcut Ctrl+G pressed")
        self._on_activate()
        return 'break'

    def _on_state_change(self, change: StateChange):
        """Called when toggle state changes."""
        log.info(f"State change: {change.old_state.name} -> {change.new_state.name} (reason: {change.reason})")

    def _poll_quit(self):
        """Stop from the Tk thread once a signal or hotkey asked for it."""
        if self._quit_requested.is_set():
            self.stop()
            return
        self.root.after(200, self._poll_quit)

    def request_quit(self):
        """Ask the window to close. Safe to call from any thread."""
        self._quit_requested.set()

    def _build_window(self):
        window = self.config.window

        self.root = tk.Tk()
        self.root.title(window.title)
        self.root.geometry(f"{window.width}x{window.height}")
        self.root.resizable(False, False)

        main_frame = ttk.Frame(self.root, padding="10")
        main_frame.pack(fill=tk.BOTH, expand=True)

        button = ttk.Button(main_frame, command=self._on_activate)
        button.pack(expand=True)
        button.focus_set()

        for sequence in TOGGLE_SHORTCUTS:
            self.root.bind(sequence, self._on_shortcut)

        self.root.protocol("WM_DELETE_WINDOW", self.stop)
        return button

    def start(self):
        """Open the window and run the Tk main loop."""
        log.info("MouseNudge starting...")

        button = self._build_window()

        self.cursor = create_cursor_service(self.config)
        self.controller = ToggleController(ButtonControl(button), self.cursor, offset_y=self.config.offset_y)
        self.controller.add_listener(self._on_state_change)

        self._poll_quit()
        self.root.mainloop()

    def stop(self):
        """Close the window and release the cursor backend."""
        log.info("Stopping MouseNudge...")

        if self.cursor:
            self.cursor.close()
            self.cursor = None

        if self.root:
            self.root.quit()
            self.root.destroy()
            self.root = None

        log.info("MouseNudge stopped")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog='mousenudge',
        description="Start/Stop button that nudges the mouse cursor down."
    )
    parser.add_argument('--config', type=Path, default=None,
                        help=f"config file (default: {get_config_path()})")
    parser.add_argument('--backend', choices=('local', 'bridge'), default=None,
                        help="where cursor calls run")
    parser.add_argument('--offset', type=int, default=None, dest='offset_y',
                        help="pixels to move the cursor down on Start")
    parser.add_argument('--save-config', action='store_true',
                        help="write the effective settings back to the config file")
    parser.add_argument('-v', '--verbose', action='store_true',
                        help="debug logging")
    return parser.parse_args(argv)


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Command line values win over the config file."""
    if args.backend is not None:
        config.backend = args.backend
    if args.offset_y is not None:
        config.offset_y = args.offset_y
    if args.verbose:
        config.log_level = 'DEBUG'
    return config


def load_settings(args: argparse.Namespace) -> Config:
    """Load the config file, apply command line overrides, optionally save."""
    path = args.config or get_config_path()
    config = apply_overrides(load_config(path), args)
    if args.save_config:
        save_config(config, path)
        log.info(f"Saved settings to {path}")
    return config


def main(argv=None):
    """Main entry point."""
    import signal

    args = parse_args(argv)

    try:
        config = load_settings(args)
    except ConfigError as e:
        print(f"mousenudge: invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT
    )
    log.info(f"Config: backend={config.backend}, offset_y={config.offset_y}, check_bounds={config.check_bounds}")

    app = MouseNudge(config)

    def signal_handler(signum, frame):
        log.info(f"Received signal {signum}, shutting down...")
        app.request_quit()

    # Register signal handlers
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    # Also register a global hotkey to quit (Ctrl+Shift+Q)
    try:
        import keyboard as kb
        def quit_hotkey():
            log.info("Quit hotkey pressed (Ctrl+Shift+Q)")
            app.request_quit()
        kb.add_hotkey('ctrl+shift+q', quit_hotkey, suppress=False)
        log.info("Registered quit hotkey: Ctrl+Shift+Q")
    except Exception as e:
        log.warning(f"Could not register quit hotkey: {e}")

    try:
        app.start()
    except KeyboardInterrupt:
        app.stop()
    except Exception as e:
        log.exception(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
