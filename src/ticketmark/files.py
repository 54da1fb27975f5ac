import os
from pathlib import Path

from ticketmark.constants import CONFIG_FILE_NAME, LOG_FILE_FILE_NAME


def _xdg_directory(variable: str, fallback: Path) -> Path:
    if value := os.getenv(variable):
        return Path(value) / 'ticketmark'
    return fallback / 'ticketmark'


def get_config_directory() -> Path:
    return _xdg_directory('XDG_CONFIG_HOME', Path.home() / '.config')


def get_config_file() -> Path:
    return get_config_directory() / CONFIG_FILE_NAME


def get_log_file() -> Path:
    """Return the default log file, creating its directory if needed."""
    directory = _xdg_directory('XDG_STATE_HOME', Path.home() / '.local' / 'state')
    directory.mkdir(parents=True, exist_ok=True)
    return directory / LOG_FILE_FILE_NAME
