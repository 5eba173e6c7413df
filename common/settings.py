"""Helpers for reading typed application settings from environment variables."""

import os

_TRUE_VALUES = frozenset({'1', 'true', 'yes', 'on'})
_FALSE_VALUES = frozenset({'0', 'false', 'no', 'off'})


def env_str(name: str, default: str) -> str:
    """Return the environment variable as a string, or the default if unset or empty."""
    value = os.environ.get(name)
    return value if value else default


def env_int(name: str, default: int) -> int:
    """Return the environment variable parsed as an integer."""
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f'{name} must be an integer, got {value!r}') from e


def env_bool(name: str, default: bool) -> bool:
    """Return the environment variable parsed as a boolean flag."""
    value = os.environ.get(name)
    if not value:
        return default
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ValueError(f'{name} must be a boolean flag, got {value!r}')
