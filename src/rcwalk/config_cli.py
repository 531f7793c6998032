"""CLI for rcwalk configuration.

Usage:
    rcwalk config list [--path P]                  Effective values and where each came from
    rcwalk config get <section.key> [--path P]     Print one effective value
    rcwalk config set [--global] <key> <value>     Validate and write a value
    rcwalk config reset [--global] <key>           Remove an override

``--path`` picks the project: the git repository enclosing it, or the path
itself outside a repository. It defaults to the working directory.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import rcwalk.config


def _ensure_registry() -> None:
    import rcwalk.search_config  # noqa: F401


def _split_key(key: str) -> tuple[str, str]:
    section, sep, field = key.partition(".")
    if not sep or not section or not field:
        raise KeyError(f"Invalid key format: {key!r} (expected section.key)")
    return section, field


def _root(path: Path | None) -> Path:
    start = path if path is not None else Path.cwd()
    return rcwalk.config.config_root(start, fallback=start)


def cmd_list(root: Path) -> int:
    """Print every field of every section with its origin."""
    for name in sorted(rcwalk.config.list_sections()):
        print(f"[{name}]")
        for key, value, origin in rcwalk.config.explain(name, root):
            print(f"  {key} = {value!r}  ({origin})")
        print()
    return 0


def cmd_get(key: str, root: Path) -> int:
    """Print the effective value for section.key."""
    print(rcwalk.config.get_effective(*_split_key(key), root))
    return 0


def cmd_set(key: str, value: str, *, global_flag: bool, root: Path) -> int:
    """Write a value after checking the section still loads with it."""
    scope = rcwalk.config.GLOBAL if global_flag else rcwalk.config.LOCAL
    rcwalk.config.set_value(*_split_key(key), value, scope=scope, root=root)
    print(f"Set {key} = {value} ({scope})")
    return 0


def cmd_reset(key: str, *, global_flag: bool, root: Path) -> int:
    """Remove an override from one layer."""
    scope = rcwalk.config.GLOBAL if global_flag else rcwalk.config.LOCAL
    if rcwalk.config.reset_value(*_split_key(key), scope=scope, root=root):
        print(f"Reset {key} ({scope})")
    else:
        print(f"{key} is not set ({scope})")
    return 0


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rcwalk config", description="rcwalk configuration.")
    sub = parser.add_subparsers(dest="subcmd")

    p_list = sub.add_parser("list", help="Show effective values and their origin")
    p_list.set_defaults(run=lambda a, root: cmd_list(root))

    p_get = sub.add_parser("get", help="Print one effective value")
    p_get.add_argument("key", help="section.key")
    p_get.set_defaults(run=lambda a, root: cmd_get(a.key, root))

    p_set = sub.add_parser("set", help="Validate and write a value")
    p_set.add_argument("key", help="section.key")
    p_set.add_argument("value")
    p_set.set_defaults(
        run=lambda a, root: cmd_set(a.key, a.value, global_flag=a.global_flag, root=root)
    )

    p_reset = sub.add_parser("reset", help="Remove an override")
    p_reset.add_argument("key", help="section.key")
    p_reset.set_defaults(
        run=lambda a, root: cmd_reset(a.key, global_flag=a.global_flag, root=root)
    )

    for p in (p_list, p_get, p_set, p_reset):
        p.add_argument("--path", type=Path, default=None)
    for p in (p_set, p_reset):
        p.add_argument("--global", dest="global_flag", action="store_true")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``rcwalk config``."""
    parser = _parser()
    args = parser.parse_args(argv)
    if args.subcmd is None:
        parser.print_help()
        return 1

    _ensure_registry()
    try:
        return args.run(args, _root(args.path))
    except (KeyError, ValueError) as exc:
        # KeyError's str() is the repr of its argument
        message = exc.args[0] if isinstance(exc, KeyError) and exc.args else exc
        print(message, file=sys.stderr)
        return 1
