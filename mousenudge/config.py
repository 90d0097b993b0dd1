"""
Configuration loading and management.
"""

import os
import yaml
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional

BACKENDS = ('local', 'bridge')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class ConfigError(ValueError):
    """Invalid value in the configuration file."""


@dataclass
class WindowConfig:
    """Configuration for the toggle window."""
    title: str = "MouseNudge"
    width: int = 240
    height: int = 120


@dataclass
class Config:
    """Main application configuration."""
    backend: str = 'local'  # 'local' (in-process) or 'bridge' (worker process)
    offset_y: int = 100  # Pixels the cursor moves down on Start
    check_bounds: bool = True  # Refuse moves that land on no monitor
    log_level: str = 'INFO'
    window: WindowConfig = field(default_factory=WindowConfig)


def get_config_path() -> Path:
    """Get the configuration file path."""
    if os.name == 'nt':  # Windows
        base = Path(os.environ.get('APPDATA', '~')).expanduser()
    elif os.name == 'posix':
        if 'darwin' in os.uname().sysname.lower():  # macOS
            base = Path.home() / 'Library' / 'Application Support'
        else:  # Linux
            base = Path(os.environ.get('XDG_CONFIG_HOME', Path.home() / '.config'))
    else:
        base = Path.home()

    return base / 'mousenudge' / 'config.yaml'


def parse_int(value, name: str) -> int:
    """Parse an int setting, rejecting bools and non-numeric strings."""
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}")


def validate_config(config: Config) -> Config:
    """Check enumerated settings and normalize their case."""
    config.backend = str(config.backend).lower()
    if config.backend not in BACKENDS:
        raise ConfigError(f"backend must be one of {', '.join(BACKENDS)}, got {config.backend!r}")

    config.log_level = str(config.log_level).upper()
    if config.log_level not in LOG_LEVELS:
        raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {config.log_level!r}")

    if config.window.width <= 0 or config.window.height <= 0:
        raise ConfigError("window width and height must be positive")

    return config


def load_config(path: Optional[Path] = None) -> Config:
    """Load configuration from YAML file."""
    if path is None:
        path = get_config_path()

    if not path.exists():
        return create_default_config(path)

    with open(path, 'r') as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")

    config = Config()

    config.backend = data.get('backend', config.backend)
    config.offset_y = parse_int(data.get('offset_y', config.offset_y), 'offset_y')
    config.check_bounds = data.get('check_bounds', config.check_bounds)
    if not isinstance(config.check_bounds, bool):
        raise ConfigError(f"check_bounds must be true or false, got {config.check_bounds!r}")
    config.log_level = data.get('log_level', config.log_level)

    # Parse window
    window_data = data.get('window') or {}
    if not isinstance(window_data, dict):
        raise ConfigError(f"window must be a mapping, got {window_data!r}")
    config.window = WindowConfig(
        title=str(window_data.get('title', WindowConfig.title)),
        width=parse_int(window_data.get('width', WindowConfig.width), 'window.width'),
        height=parse_int(window_data.get('height', WindowConfig.height), 'window.height')
    )

    return validate_config(config)


def create_default_config(path: Path) -> Config:
    """Create and save a default configuration."""
    default_yaml = """# MouseNudge Configuration

# Where cursor calls run: 'local' (in this process) or 'bridge' (worker process)
backend: local

# Pixels the cursor moves down when Start is pressed
offset_y: 100

# When true, a move that lands on no monitor is refused with an error
check_bounds: true

# DEBUG, INFO, WARNING, ERROR or CRITICAL
log_level: INFO

window:
  title: MouseNudge
  width: 240
  height: 120
"""

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        f.write(default_yaml)

    return load_config(path)


def save_config(config: Config, path: Optional[Path] = None):
    """Save configuration to YAML file."""
    if path is None:
        path = get_config_path()

    data = {
        'backend': config.backend,
        'offset_y': config.offset_y,
        'check_bounds': config.check_bounds,
        'log_level': config.log_level,
        'window': {
            'title': config.window.title,
            'width': config.window.width,
            'height': config.window.height
        }
    }

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        yaml.dump(data, f, default_flow_style=False)
