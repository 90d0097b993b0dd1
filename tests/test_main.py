"""
Tests for the application shell that don't open a window.
"""

import pytest

pytest.importorskip("tkinter")

import mousenudge.main as main_module
from mousenudge.config import Config, load_config
from mousenudge.cursor import BridgeCursorService, DeviceUnavailable, PynputCursorService
from mousenudge.main import (
    ButtonControl,
    MouseNudge,
    apply_overrides,
    create_cursor_service,
    load_settings,
    parse_args,
)
from mousenudge.state import ToggleController, ToggleState


class FakeButton:
    """Just the part of ttk.Button that ButtonControl touches."""

    def __init__(self):
        self.options = {'text': ''}

    def configure(self, **options):
        self.options.update(options)

    def cget(self, key):
        return self.options[key]


def test_button_control_labels_follow_toggle(cursor):
    control = ButtonControl(FakeButton())
    controller = ToggleController(control, cursor)
    assert control.label == 'Start'

    controller.activate()
    assert control.label == 'Stop'
    assert controller.state == ToggleState.RUNNING

    controller.activate()
    assert control.label == 'Start'


def test_parse_args_defaults():
    args = parse_args([])
    assert args.config is None
    assert args.backend is None
    assert args.offset_y is None
    assert not args.verbose


def test_overrides_win_over_config():
    config = apply_overrides(Config(), parse_args(['--backend', 'bridge', '--offset', '7', '-v']))
    assert config.backend == 'bridge'
    assert config.offset_y == 7
    assert config.log_level == 'DEBUG'


def test_no_overrides_keep_config():
    config = apply_overrides(Config(offset_y=55), parse_args([]))
    assert config.backend == 'local'
    assert config.offset_y == 55
    assert config.log_level == 'INFO'


def test_bad_backend_rejected():
    with pytest.raises(SystemExit):
        parse_args(['--backend', 'telepathy'])


def test_local_backend_detects_monitors():
    service = create_cursor_service(Config())
    assert isinstance(service, PynputCursorService)
    assert service._detect_bounds


def test_bounds_check_can_be_disabled():
    service = create_cursor_service(Config(check_bounds=False))
    assert service.bounds is None


def test_bridge_backend_selected_by_config(monkeypatch):
    spawned = []

    def fake_spawn(detect_bounds=False):
        spawned.append(detect_bounds)
        return 'bridge'

    monkeypatch.setattr(BridgeCursorService, 'spawn', fake_spawn)

    assert create_cursor_service(Config(backend='bridge')) == 'bridge'
    assert create_cursor_service(Config(backend='bridge', check_bounds=False)) == 'bridge'
    assert spawned == [True, False]


@pytest.fixture
def app(cursor):
    """A MouseNudge wired to fakes, without opening a window."""
    app = MouseNudge(Config())
    app.control = ButtonControl(FakeButton())
    app.controller = ToggleController(app.control, cursor)
    return app


@pytest.fixture
def errors(monkeypatch):
    shown = []
    monkeypatch.setattr(main_module.messagebox, 'showerror',
                        lambda title, message, **kwargs: shown.append((title, message)))
    return shown


def test_cursor_failure_is_logged_and_shown(app, cursor, errors, caplog):
    cursor.get_error = DeviceUnavailable("no display")

    app._on_activate()

    assert app.controller.state == ToggleState.IDLE
    assert app.control.label == 'Start'
    assert len(errors) == 1
    assert "no display" in errors[0][1]
    assert "Cursor action failed: no display" in caplog.text


def test_other_errors_propagate(app, cursor, errors):
    cursor.get_error = RuntimeError("bug")

    with pytest.raises(RuntimeError):
        app._on_activate()
    assert errors == []


def test_shortcut_toggles_like_button(app, cursor, errors):
    assert app._on_shortcut(object()) == 'break'
    assert app.controller.state == ToggleState.RUNNING
    assert cursor.moves == [(500, 400)]

    app._on_shortcut(object())
    assert app.controller.state == ToggleState.IDLE
    assert app.control.label == 'Start'
    assert errors == []


def test_shortcut_reports_failures(app, cursor, errors):
    cursor.move_error = DeviceUnavailable("permission denied")
    app._on_shortcut()
    assert app.controller.state == ToggleState.IDLE
    assert len(errors) == 1


def test_load_settings_without_save_leaves_file(tmp_path):
    path = tmp_path / 'config.yaml'
    config = load_settings(parse_args(['--config', str(path), '--offset', '30']))

    assert config.offset_y == 30
    assert load_config(path).offset_y == 100


def test_load_settings_saves_overrides(tmp_path):
    path = tmp_path / 'config.yaml'
    load_settings(parse_args(['--config', str(path), '--backend', 'bridge', '--offset', '30', '--save-config']))

    saved = load_config(path)
    assert saved.backend == 'bridge'
    assert saved.offset_y == 30


@pytest.mark.integration
def test_window_binds_toggle_shortcut():
    app = MouseNudge(Config())
    app._build_window()
    try:
        assert app.root.bind('<Control-g>')
    finally:
        app.root.destroy()
