"""
Configuration file loading.

A config is a YAML mapping. ``load_config("layover.yaml", env="prod")``
merges ``layover.prod.yaml`` from the same directory over it, then expands
``${VAR}`` references (see resolver). Two sections are understood:

    transport:   decorator chain settings, see build_transport()
    logging:     {level: INFO, file: layover.log}
"""

from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

import yaml

from layover.config.resolver import resolve_config
from layover.exceptions import ConfigurationError

_MISSING = object()


class Config(Mapping[str, Any]):
    """
    Read-only view over a configuration mapping.

    Keys may be dotted paths: ``config.get("transport.retry.max_attempts")``.
    Nested mappings are returned wrapped in Config.
    """

    def __init__(self, data: Mapping[str, Any]):
        self.data = dict(data)

    @property
    def transport(self) -> dict[str, Any]:
        return self.data.get("transport") or {}

    @property
    def logging(self) -> dict[str, Any]:
        return self.data.get("logging") or {}

    def _lookup(self, path: str) -> Any:
        node: Any = self.data
        for part in path.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return _MISSING
            node = node[part]
        return node

    def get(self, key: str, default: Any = None) -> Any:
        value = self._lookup(key)
        return default if value is _MISSING or value is None else value

    def __getitem__(self, key: str) -> Any:
        value = self._lookup(key)
        if value is _MISSING:
            raise KeyError(key)
        return Config(value) if isinstance(value, Mapping) else value

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._lookup(key) not in (_MISSING, None)

    def __iter__(self) -> Iterator[str]:
        return iter(self.data)

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return f"Config({self.data!r})"


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        where = f" at line {mark.line + 1}, column {mark.column + 1}" if mark is not None else ""
        raise ConfigurationError(f"Invalid YAML in {path.name}{where}: {e}", details={"path": str(path)}) from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path.name} must be a mapping at the top level, got {type(data).__name__}")
    return data


def _merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge ``override`` into a copy of ``base``; non-mapping values replace."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, Mapping):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: str | Path, env: str | None = None) -> Config:
    """
    Load a layover configuration file.

    Args:
        path: YAML file
        env: Environment name; ``<stem>.<env><suffix>`` next to ``path`` is merged over it when present

    Returns:
        The resolved Config

    Raises:
        FileNotFoundError: ``path`` does not exist
        ConfigurationError: A file is not valid YAML or not a mapping
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    data = _read_yaml(path)
    if env:
        override = path.with_name(f"{path.stem}.{env}{path.suffix}")
        if override.is_file():
            data = _merge(data, _read_yaml(override))

    return Config(resolve_config(data, env or "dev"))
