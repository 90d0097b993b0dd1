"""
Cursor position read and move.

Two backends implement the same CursorService interface:
- PynputCursorService drives the pointer in-process through pynput
- BridgeCursorService forwards every call to a worker process over a
  multiprocessing connection and waits for the reply

pynput is imported on first use. Importing it on a host without a display
fails, and that failure is reported as DeviceUnavailable instead.
"""

import logging
import multiprocessing
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import mss
from mss.exception import ScreenShotError

log = logging.getLogger(__name__)

Position = Tuple[int, int]
Rect = Tuple[int, int, int, int]  # (left, top, width, height)
Bounds = Tuple[Rect, ...]


class CursorServiceFailure(Exception):
    """The cursor automation capability reported a failure."""


class DeviceUnavailable(CursorServiceFailure):
    """No display, missing native binding, or permission denied."""


class OutOfBounds(CursorServiceFailure):
    """Move target lies outside the screen."""


class CursorService(ABC):
    """Pointer read/move capability."""

    @abstractmethod
    def get_position(self) -> Position:
        """Current pointer location in screen coordinates."""

    @abstractmethod
    def move_to(self, x: int, y: int) -> None:
        """Move the pointer to an absolute screen coordinate."""

    def close(self) -> None:
        """Release the backend."""


def virtual_desktop() -> Optional[Bounds]:
    """
    Rectangles of every attached monitor, read through mss.

    Coordinates are virtual-desktop pixels, so monitors left of or above
    the primary one have negative origins. Returns None when the monitor
    layout can't be read.
    """
    try:
        with mss.mss() as sct:
            monitors = sct.monitors[1:]
    except ScreenShotError as e:
        log.warning(f"Could not read monitor layout, bounds check disabled: {e}")
        return None

    if not monitors:
        return None

    return tuple(
        (m['left'], m['top'], m['width'], m['height'])
        for m in monitors
    )


def check_bounds(x: int, y: int, bounds: Optional[Bounds]):
    """Raise OutOfBounds unless (x, y) lies on one of the monitors."""
    if bounds is None:
        return
    for left, top, width, height in bounds:
        if left <= x < left + width and top <= y < top + height:
            return
    raise OutOfBounds(f"({x}, {y}) is not on any of {len(bounds)} monitor(s)")


class PynputCursorService(CursorService):
    """
    In-process cursor control via pynput.mouse.Controller.

    bounds is a tuple of (left, top, width, height) monitor rectangles; a
    move that lands on none of them raises OutOfBounds and leaves the
    pointer where it is. With detect_bounds the rectangles are read from
    the monitor layout on first move, in the process that owns the pointer.
    """

    def __init__(self, bounds: Optional[Bounds] = None, controller=None,
                 detect_bounds: bool = False):
        self._bounds = bounds
        self._controller = controller
        self._detect_bounds = detect_bounds and bounds is None

    @property
    def bounds(self) -> Optional[Bounds]:
        if self._detect_bounds:
            self._detect_bounds = False
            self._bounds = virtual_desktop()
            log.debug(f"Monitor layout: {self._bounds}")
        return self._bounds

    def _get_controller(self):
        """Create the pynput controller on first use."""
        if self._controller is None:
            try:
                from pynput import mouse
                self._controller = mouse.Controller()
            except Exception as e:
                raise DeviceUnavailable(f"Mouse automation not available: {e}") from e
        return self._controller

    def get_position(self) -> Position:
        controller = self._get_controller()
        try:
            x, y = controller.position
        except Exception as e:
            raise DeviceUnavailable(f"Could not read mouse position: {e}") from e
        return int(x), int(y)

    def move_to(self, x: int, y: int) -> None:
        check_bounds(x, y, self.bounds)
        controller = self._get_controller()
        try:
            controller.position = (int(x), int(y))
        except Exception as e:
            raise DeviceUnavailable(f"Could not move mouse: {e}") from e
        log.debug(f"Mouse moved to ({x}, {y})")


# Failure classes that survive the trip across the bridge
FAILURE_TYPES = {
    cls.__name__: cls
    for cls in (CursorServiceFailure, DeviceUnavailable, OutOfBounds)
}


def serve(conn, service: CursorService):
    """
    Worker loop answering bridge requests on conn until "close" or EOF.

    Requests are (operation, args) tuples. Replies are ("ok", result) or
    ("error", (failure_class_name, message)).
    """
    log.info("Cursor bridge worker started")
    while True:
        try:
            operation, args = conn.recv()
        except (EOFError, OSError):
            break

        log.debug(f"Bridge request: {operation}{tuple(args)}")

        if operation == 'close':
            conn.send(('ok', None))
            break

        try:
            if operation == 'get_position':
                reply = ('ok', service.get_position())
            elif operation == 'move_to':
                service.move_to(*args)
                reply = ('ok', None)
            else:
                reply = ('error', ('CursorServiceFailure', f"Unknown operation {operation!r}"))
        except CursorServiceFailure as e:
            reply = ('error', (type(e).__name__, str(e)))
        except Exception as e:
            log.exception(f"Unexpected error handling {operation}")
            reply = ('error', ('CursorServiceFailure', str(e)))

        try:
            conn.send(reply)
        except (EOFError, OSError):
            break

    service.close()
    log.info("Cursor bridge worker stopped")


def _worker_main(conn, detect_bounds: bool):
    """Entry point of the bridge worker process."""
    serve(conn, PynputCursorService(detect_bounds=detect_bounds))


class BridgeCursorService(CursorService):
    """
    Cursor control through a worker process.

    Every call is a blocking request/reply on conn. Failures raised in the
    worker are re-raised here as the same CursorServiceFailure subclass.
    """

    def __init__(self, conn, process: Optional[multiprocessing.Process] = None):
        self._conn = conn
        self._process = process
        self._closed = False

    @classmethod
    def spawn(cls, detect_bounds: bool = False) -> "BridgeCursorService":
        """Start a worker process that owns a PynputCursorService."""
        parent_conn, child_conn = multiprocessing.Pipe()
        process = multiprocessing.Process(
            target=_worker_main,
            args=(child_conn, detect_bounds),
            name='mousenudge-cursor-bridge',
            daemon=True
        )
        process.start()
        child_conn.close()
        log.info(f"Started cursor bridge worker (pid {process.pid})")
        return cls(parent_conn, process)

    def _call(self, operation: str, *args):
        if self._closed:
            raise DeviceUnavailable("Cursor bridge is closed")

        try:
            self._conn.send((operation, args))
            status, payload = self._conn.recv()
        except (EOFError, OSError) as e:
            raise DeviceUnavailable(f"Cursor bridge connection lost: {e}") from e

        if status == 'ok':
            return payload

        name, message = payload
        raise FAILURE_TYPES.get(name, CursorServiceFailure)(message)

    def get_position(self) -> Position:
        x, y = self._call('get_position')
        return int(x), int(y)

    def move_to(self, x: int, y: int) -> None:
        self._call('move_to', int(x), int(y))

    def close(self) -> None:
        """Stop the worker and close the connection."""
        if self._closed:
            return

        try:
            self._call('close')
        except CursorServiceFailure as e:
            log.warning(f"Cursor bridge did not close cleanly: {e}")
        finally:
            self._closed = True
            self._conn.close()

        if self._process is not None:
            self._process.join(timeout=1.0)
            if self._process.is_alive():
                log.warning("Cursor bridge worker still running, terminating")
                self._process.terminate()
            self._process = None
