"""rcwalk CLI — per-directory local rc files.

Usage:
    rcwalk run [PATH] [--yes] [--no-sandbox] [-v]
                           Source the rc files that apply to PATH (or cwd)
                           and print the resulting settings as JSON
    rcwalk find [PATH] [--raw]
                           List the rc files that apply to PATH, in
                           execution order (--raw: nearest first, untrimmed)
    rcwalk install         Register the hook in the current project
    rcwalk install --global Register the hook globally (~/.claude/settings.json)
    rcwalk install --remove Remove the hook (add --global for global)
    rcwalk config <cmd>    Configuration (list/get/set/reset)
    rcwalk hook <event>    Run a hook (called by Claude Code, not users)
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import pathlib
import sys

_HOOK_EVENTS = {
    "PostToolUse": "rcwalk.hooks.post_tool_use",
}

_HOOK_TIMEOUTS = {
    "PostToolUse": 3000,
}

_HOOK_MATCHERS = {
    "PostToolUse": "Read|Edit|Write|MultiEdit",
}

_GLOBAL_SETTINGS = pathlib.Path.home() / ".claude" / "settings.json"


def _build_hooks_config() -> dict:
    """Build the hooks section for settings.json."""
    hooks: dict = {}
    for event in _HOOK_EVENTS:
        hooks[event] = [
            {
                "matcher": _HOOK_MATCHERS[event],
                "hooks": [
                    {
                        "type": "command",
                        "command": f"rcwalk hook {event}",
                        "timeout": _HOOK_TIMEOUTS[event],
                    }
                ],
            }
        ]
    return hooks


def _cmd_install(args: list[str]) -> int:
    """Register or remove the rcwalk hook.

    By default writes to .claude/settings.local.json in the current
    project. Use ``--global`` to write to ~/.claude/settings.json
    instead. Hooks registered by other tools are left alone.
    """
    remove = "--remove" in args
    is_global = "--global" in args

    if is_global:
        settings_path = _GLOBAL_SETTINGS
    else:
        settings_path = pathlib.Path.cwd() / ".claude" / "settings.local.json"

    settings_path.parent.mkdir(parents=True, exist_ok=True)

    settings: dict = {}
    if settings_path.exists():
        settings = json.loads(settings_path.read_text())
    hooks = settings.setdefault("hooks", {})

    if remove:
        for event in _HOOK_EVENTS:
            hooks.pop(event, None)
        if not hooks:
            del settings["hooks"]
        settings_path.write_text(json.dumps(settings, indent=2) + "\n")
        print("rcwalk hook removed from", settings_path)
        return 0

    hooks.update(_build_hooks_config())
    settings_path.write_text(json.dumps(settings, indent=2) + "\n")
    scope = "global" if is_global else "project"
    print(f"rcwalk hook registered ({scope}) in {settings_path}")
    return 0


def _cmd_hook(args: list[str]) -> int:
    """Dispatch a hook event. Called by Claude Code, not users."""
    if not args:
        print("Usage: rcwalk hook <event>", file=sys.stderr)
        print(f"Events: {', '.join(_HOOK_EVENTS)}", file=sys.stderr)
        return 1

    event = args[0]
    module_name = _HOOK_EVENTS.get(event)
    if module_name is None:
        print(f"Unknown hook event: {event}", file=sys.stderr)
        return 1

    import importlib

    module = importlib.import_module(module_name)

    hook_data: dict = {}
    try:
        raw = sys.stdin.read()
        if raw:
            hook_data = json.loads(raw)
    except (json.JSONDecodeError, ValueError):
        pass

    print(module.main(hook_data))
    return 0


def _ask(message: str) -> str:
    """Prompt on stderr so stdout stays machine-readable."""
    print(message, end="", file=sys.stderr, flush=True)
    line = sys.stdin.readline()
    if not line:
        raise EOFError
    return line


def _load_search(path: str | None):
    """Load the search config of the project *path* belongs to."""
    import rcwalk.config
    import rcwalk.discovery
    import rcwalk.search_config  # noqa: F401

    start = rcwalk.discovery.resolve_start_dir(path)
    return rcwalk.config.load("search", rcwalk.config.config_root(start))


def _cmd_run(args: list[str]) -> int:
    """Source rc files for a path and print the settings they produced."""
    import rcwalk.host
    import rcwalk.log

    parser = argparse.ArgumentParser(prog="rcwalk run")
    parser.add_argument("path", nargs="?", default=None)
    parser.add_argument("--yes", action="store_true", help="Do not ask")
    parser.add_argument("--no-sandbox", dest="no_sandbox", action="store_true")
    parser.add_argument("-v", "--verbose", action="count", default=0)
    opts = parser.parse_args(args)

    try:
        cfg = _load_search(opts.path)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    overrides: dict = {}
    if opts.yes:
        overrides["ask"] = False
    if opts.no_sandbox:
        overrides["sandbox"] = False
    if opts.verbose:
        overrides["verbosity"] = opts.verbose
    cfg = dataclasses.replace(cfg, **overrides)
    rcwalk.log.configure(cfg.verbosity)

    session = rcwalk.host.Session(config=cfg, input_fn=_ask)
    try:
        session.trigger(opts.path)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    print(json.dumps(session.settings, indent=2, sort_keys=True, default=str))
    for path, exc in session.errors:
        print(f"Error in {path}: {exc}", file=sys.stderr)
    return 1 if session.errors else 0


def _cmd_find(args: list[str]) -> int:
    """Print the rc files that apply to a path."""
    import rcwalk.discovery

    parser = argparse.ArgumentParser(prog="rcwalk find")
    parser.add_argument("path", nargs="?", default=None)
    parser.add_argument("--raw", action="store_true")
    opts = parser.parse_args(args)

    start = rcwalk.discovery.resolve_start_dir(opts.path)
    try:
        cfg = _load_search(opts.path)
        if opts.raw:
            paths = rcwalk.discovery.walk_up(start, cfg.target_filename)
        else:
            paths = rcwalk.discovery.find_candidates(
                start, cfg.target_filename, cfg.keep_count
            )
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    for path in paths:
        print(path)
    return 0


def _cmd_config(args: list[str]) -> int:
    """Configuration."""
    import rcwalk.config_cli

    return rcwalk.config_cli.main(args)


def main() -> None:
    args = sys.argv[1:]
    if not args:
        print(__doc__)
        sys.exit(1)

    cmd = args[0]
    rest = args[1:]

    if cmd == "run":
        sys.exit(_cmd_run(rest))
    elif cmd == "find":
        sys.exit(_cmd_find(rest))
    elif cmd == "install":
        sys.exit(_cmd_install(rest))
    elif cmd == "hook":
        sys.exit(_cmd_hook(rest))
    elif cmd == "config":
        sys.exit(_cmd_config(rest))
    else:
        print(__doc__)
        sys.exit(1)


if __name__ == "__main__":
    main()
