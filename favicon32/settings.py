"""
Conversion settings read from the environment (and an optional .env file).
"""

import os
from dataclasses import dataclass
from pathlib import Path

MAX_PALETTE_COLORS = 256
TRUTHY = ('1', 'true', 'yes', 'on')


def load_env_file(path='.env'):
    """Load KEY=VALUE lines into os.environ without overriding existing values."""
    env_file = Path(path)
    if not env_file.exists():
        return False
    with open(env_file, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#') and '=' in line:
                key, value = line.split('=', 1)
                os.environ.setdefault(key.strip(), value.strip())
    return True


@dataclass(frozen=True)
class Settings:
    colors: int = MAX_PALETTE_COLORS
    truecolor: bool = False
    verbose: bool = False


def _flag(value):
    return value is not None and value.strip().lower() in TRUTHY


def parse_colors(value):
    try:
        colors = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Color count must be an integer, got {value!r}") from None
    if not 1 <= colors <= MAX_PALETTE_COLORS:
        raise ValueError(f"Color count must be between 1 and {MAX_PALETTE_COLORS}, got {colors}")
    return colors


def load_settings(environ=None) -> Settings:
    env = os.environ if environ is None else environ
    colors = env.get('FAVICON32_COLORS')
    return Settings(
        colors=parse_colors(colors) if colors else MAX_PALETTE_COLORS,
        truecolor=_flag(env.get('FAVICON32_TRUECOLOR')),
        verbose=_flag(env.get('FAVICON32_VERBOSE')),
    )
