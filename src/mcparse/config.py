"""
Settings for the parse scheduler and the language server.

Values are layered, later sources winning:

1. Built-in defaults.
2. A ``.mcparse.toml`` project file in the workspace root.
3. ``initializationOptions`` sent by the LSP client.
4. Command-line flags.

Example ``.mcparse.toml``::

    debounce_ms = 500
    suffixes = [".instr", ".comp"]
    template_suffixes = [".comp"]
    strict = false
"""
from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path

from mcparse.debounce import DEFAULT_DELAY

logger = logging.getLogger(__name__)

PROJECT_CONFIG = '.mcparse.toml'


@dataclass(frozen=True)
class Settings:
    debounce_delay: float = DEFAULT_DELAY     # seconds
    suffixes: tuple[str, ...] = ('.instr', '.comp')
    template_suffixes: tuple[str, ...] = ('.comp',)
    strict: bool = True
    log_level: str | None = None

    def merged(self, options: dict | None) -> Settings:
        """Return a copy updated from a camelCase or snake_case *options* mapping."""
        if not options:
            return self
        changes = {}
        for keys, name, convert in _FIELDS:
            for key in keys:
                if key in options and options[key] is not None:
                    try:
                        changes[name] = convert(options[key])
                    except (TypeError, ValueError):
                        logger.warning('ignoring invalid setting %s=%r', key, options[key])
                    break
        return replace(self, **changes)


def _delay_from_ms(value) -> float:
    ms = float(value)
    if ms < 0:
        raise ValueError(value)
    return ms / 1000.0


def _suffix_tuple(value) -> tuple[str, ...]:
    if isinstance(value, str) or not all(isinstance(s, str) for s in value):
        raise TypeError(value)
    return tuple(s if s.startswith('.') else f'.{s}' for s in value)


def _bool(value) -> bool:
    if not isinstance(value, bool):
        raise TypeError(value)
    return value


def _level(value) -> str:
    name = str(value).upper()
    if not isinstance(getattr(logging, name, None), int):
        raise ValueError(value)
    return name


_FIELDS = (
    (('debounceMs', 'debounce_ms'), 'debounce_delay', _delay_from_ms),
    (('suffixes',), 'suffixes', _suffix_tuple),
    (('templateSuffixes', 'template_suffixes'), 'template_suffixes', _suffix_tuple),
    (('strict',), 'strict', _bool),
    (('logLevel', 'log_level'), 'log_level', _level),
)


def read_project_config(workspace_root: str | None) -> dict:
    """Parse ``.mcparse.toml`` in *workspace_root*; empty if absent or unreadable."""
    if not workspace_root:
        return {}
    config_path = Path(workspace_root) / PROJECT_CONFIG
    if not config_path.exists():
        return {}
    try:
        return tomllib.loads(config_path.read_text(encoding='utf-8'))
    except (OSError, tomllib.TOMLDecodeError):
        logger.warning('could not read %s', config_path, exc_info=True)
        return {}


def load_settings(workspace_root: str | None = None,
                  init_options: dict | None = None,
                  base: Settings | None = None) -> Settings:
    settings = base or Settings()
    settings = settings.merged(read_project_config(workspace_root))
    return settings.merged(init_options)


def apply_log_level(raw: str | None) -> None:
    """Set the root logger level from a string like 'debug', 'warning', etc."""
    if not raw:
        return
    level = getattr(logging, raw.upper(), None)
    if isinstance(level, int):
        logging.getLogger().setLevel(level)
