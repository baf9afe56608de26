"""
Environment variable substitution in configuration values.

Strings may reference ``${NAME}`` or ``${NAME:-fallback}``; an unset variable
without a fallback is kept verbatim so the mistake shows up in the request.
The ``{env}`` placeholder expands to the active environment name.
"""

import os
import re
from collections.abc import Mapping
from typing import Any

_REFERENCE = re.compile(r"\$\{(?P<name>[^}:]+)(?::-(?P<fallback>[^}]*))?\}")


def substitute(text: str, env: str, environ: Mapping[str, str] | None = None) -> str:
    """Expand variable references and ``{env}`` in a single string."""
    environ = os.environ if environ is None else environ

    def lookup(match: re.Match[str]) -> str:
        value = environ.get(match["name"])
        if value is not None:
            return value
        if match["fallback"] is not None:
            return match["fallback"]
        return match[0]

    return _REFERENCE.sub(lookup, text).replace("{env}", env)


def resolve_config(config_data: Any, env: str = "dev", environ: Mapping[str, str] | None = None) -> Any:
    """
    Return a copy of ``config_data`` with every string value expanded.

    Args:
        config_data: Parsed configuration (nested dicts, lists and scalars)
        env: Active environment name
        environ: Variables to read (default: os.environ)
    """
    if isinstance(config_data, dict):
        return {key: resolve_config(value, env, environ) for key, value in config_data.items()}
    if isinstance(config_data, list):
        return [resolve_config(item, env, environ) for item in config_data]
    if isinstance(config_data, str):
        return substitute(config_data, env, environ)
    return config_data
