"""Layered TOML configuration for rcwalk.

A section is a dataclass registered with ``@configurable``. Its effective
value starts from the dataclass defaults, overlaid by each TOML layer in
turn:

    ~/.config/rcwalk/config.toml        global (user-wide)
    <project>/.rcwalk/config.toml       local

The project is the git repository enclosing the path being worked on (see
``config_root``). Each layer is type-checked on its own so an error names
the file it came from; the section's ``__post_init__`` then judges the
combined result.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import pathlib
import tomllib
import typing
from typing import Any, TypeVar

T = TypeVar("T")

logger = logging.getLogger("rcwalk.config")

GLOBAL = "global"
LOCAL = "local"

_REGISTRY: dict[str, type] = {}

_TRUE = frozenset({"true", "1", "yes", "on"})
_FALSE = frozenset({"false", "0", "no", "off"})


def configurable(section: str):
    """Register the decorated dataclass under *section*."""

    def decorator(cls: type[T]) -> type[T]:
        _REGISTRY[section] = cls
        return cls

    return decorator


def list_sections() -> dict[str, type]:
    """Return a copy of the registry."""
    return dict(_REGISTRY)


def _section_cls(section: str) -> type:
    try:
        return _REGISTRY[section]
    except KeyError:
        raise KeyError(f"Unknown config section: {section}") from None


def _field_types(cls: type) -> dict[str, type]:
    hints = typing.get_type_hints(cls)
    return {f.name: hints[f.name] for f in dataclasses.fields(cls)}


# -- locating files ---------------------------------------------------------


def _global_path() -> pathlib.Path:
    return pathlib.Path.home() / ".config" / "rcwalk" / "config.toml"


def _local_path(root: pathlib.Path) -> pathlib.Path:
    return root / ".rcwalk" / "config.toml"


def find_repo_root(start: str | os.PathLike[str]) -> pathlib.Path | None:
    """Return the nearest directory at or above *start* holding ``.git``."""
    current = pathlib.Path(start).resolve()
    for candidate in (current, *current.parents):
        if (candidate / ".git").exists():
            return candidate
    return None


def config_root(
    start: str | os.PathLike[str] | None = None,
    fallback: str | os.PathLike[str] | None = None,
) -> pathlib.Path:
    """Return the project directory whose local config applies to *start*.

    That is the git repository enclosing *start* (the working directory
    when omitted), else *fallback*, else the working directory.
    """
    repo = find_repo_root(start if start is not None else pathlib.Path.cwd())
    if repo is not None:
        return repo
    if fallback is not None:
        return pathlib.Path(fallback).resolve()
    return pathlib.Path.cwd()


def _scope_path(scope: str, root: pathlib.Path) -> pathlib.Path:
    if scope == GLOBAL:
        return _global_path()
    if scope == LOCAL:
        return _local_path(root)
    raise ValueError(f"Unknown config scope: {scope!r}")


# -- reading and writing ----------------------------------------------------


def _read(path: pathlib.Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        return tomllib.loads(path.read_text())
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.warning("ignoring unreadable config file %s: %s", path, exc)
        return {}


def _write(path: pathlib.Path, data: dict[str, Any]) -> None:
    import tomli_w

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(tomli_w.dumps(data).encode())


def _table(data: dict[str, Any], section: str, origin: pathlib.Path) -> dict[str, Any]:
    table = data.get(section, {})
    if not isinstance(table, dict):
        raise ValueError(f"{origin}: [{section}] must be a table")
    return table


def _layers(
    section: str,
    root: pathlib.Path,
    pending: tuple[pathlib.Path, dict[str, Any]] | None = None,
) -> list[tuple[pathlib.Path, dict[str, Any]]]:
    """Return ``(path, table)`` for each layer, lowest precedence first.

    *pending* substitutes unsaved file contents for one of the paths.
    """
    layers = []
    for path in (_global_path(), _local_path(root)):
        data = pending[1] if pending is not None and pending[0] == path else _read(path)
        layers.append((path, _table(data, section, path)))
    return layers


# -- validation -------------------------------------------------------------


def _parse(value: str, target: type) -> Any:
    """Turn a command-line string into *target*."""
    if target is bool:
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ValueError(f"expected true or false, got {value!r}")
    if target is int or target is float:
        return target(value)
    return value


def _check_type(origin: object, name: str, value: Any, expected: type) -> Any:
    if expected is float and type(value) is int:
        return float(value)
    # bool subclasses int, so `keep_count = true` must be caught explicitly
    if isinstance(value, bool) != (expected is bool) or not isinstance(value, expected):
        raise ValueError(
            f"{origin}: {name} must be {expected.__name__}, got {value!r}"
        )
    return value


def _build(section: str, layers: list[tuple[pathlib.Path, dict[str, Any]]]) -> Any:
    cls = _section_cls(section)
    types = _field_types(cls)
    values: dict[str, Any] = {}
    for origin, table in layers:
        for key, value in table.items():
            if key not in types:
                logger.debug("%s: ignoring unknown key %s.%s", origin, section, key)
                continue
            values[key] = _check_type(origin, f"{section}.{key}", value, types[key])
    try:
        return cls(**values)
    except ValueError as exc:
        raise ValueError(f"invalid [{section}] config: {exc}") from exc


# -- public API -------------------------------------------------------------


def load(section: str, root: pathlib.Path | None = None) -> Any:
    """Build *section* from its defaults and both TOML layers.

    Raises ``KeyError`` for an unregistered section and ``ValueError`` when
    a layer holds a mistyped value or the section rejects the result.
    """
    return _build(section, _layers(section, config_root() if root is None else root))


def get_effective(section: str, key: str, root: pathlib.Path | None = None) -> Any:
    """Return the merged value of ``section.key``."""
    if key not in _field_types(_section_cls(section)):
        raise KeyError(f"Unknown key: {section}.{key}")
    return getattr(load(section, root), key)


def explain(section: str, root: pathlib.Path | None = None) -> list[tuple[str, Any, str]]:
    """Return ``(key, value, origin)`` for every field of *section*.

    *origin* is ``"default"`` or the path of the layer that set the value.
    """
    layers = _layers(section, config_root() if root is None else root)
    instance = _build(section, layers)
    rows = []
    for f in dataclasses.fields(instance):
        origin = "default"
        for path, table in layers:
            if f.name in table:
                origin = str(path)
        rows.append((f.name, getattr(instance, f.name), origin))
    return rows


def set_value(
    section: str,
    key: str,
    value: Any,
    *,
    scope: str = LOCAL,
    root: pathlib.Path | None = None,
) -> None:
    """Persist ``section.key = value`` in the *scope* layer.

    String values are parsed by the field's type. The file is only written
    when the section still loads with the new value in place; otherwise
    ``ValueError`` is raised.
    """
    types = _field_types(_section_cls(section))
    if key not in types:
        raise KeyError(f"Unknown key: {section}.{key}")
    if isinstance(value, str):
        value = _parse(value, types[key])

    root = config_root() if root is None else root
    path = _scope_path(scope, root)
    data = _read(path)
    _table(data, section, path)
    data.setdefault(section, {})[key] = value
    _build(section, _layers(section, root, pending=(path, data)))
    _write(path, data)


def reset_value(
    section: str,
    key: str,
    *,
    scope: str = LOCAL,
    root: pathlib.Path | None = None,
) -> bool:
    """Drop an override so the next layer down applies again.

    Returns whether the *scope* layer held a value for the key.
    """
    path = _scope_path(scope, config_root() if root is None else root)
    data = _read(path)
    table = data.get(section)
    if not isinstance(table, dict) or key not in table:
        return False
    del table[key]
    if not table:
        del data[section]
    _write(path, data)
    return True
