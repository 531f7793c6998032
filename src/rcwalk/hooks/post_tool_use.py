"""PostToolUse hook — apply local rc files for the file a tool touched.

Reads stdin JSON. For file tools (Read/Edit/Write/MultiEdit) the rc files
above ``tool_input.file_path`` are run and the resulting settings are
returned as additionalContext. A hook cannot prompt, so when asking is
enabled the pending rc files are listed instead of run.
"""

from __future__ import annotations

import json
import sys

import rcwalk.config
import rcwalk.discovery
import rcwalk.host
import rcwalk.search_config

FILE_TOOLS = frozenset({"Read", "Edit", "Write", "MultiEdit"})


def _target(hook_input: dict) -> str | None:
    tool_input = hook_input.get("tool_input") or {}
    if isinstance(tool_input, dict) and tool_input.get("file_path"):
        return tool_input["file_path"]
    return hook_input.get("cwd")


def _output(context: str) -> str:
    return json.dumps(
        {
            "hookSpecificOutput": {
                "hookEventName": "PostToolUse",
                "additionalContext": context,
            }
        }
    )


def main(hook_input: dict) -> str:
    """Run the PostToolUse hook pipeline. Returns JSON output string."""
    if hook_input.get("tool_name") not in FILE_TOOLS:
        return _output("")

    target = _target(hook_input)
    start = rcwalk.discovery.resolve_start_dir(target)
    # same project lookup as `rcwalk run`; the session cwd only matters
    # for files outside any repository
    root = rcwalk.config.config_root(start, fallback=hook_input.get("cwd") or None)
    try:
        cfg = rcwalk.config.load("search", root)
    except ValueError as exc:
        return _output(f"[rcwalk] Invalid configuration: {exc}")

    if cfg.ask:
        pending = rcwalk.discovery.find_candidates(
            start, cfg.target_filename, cfg.keep_count
        )
        if not pending:
            return _output("")
        listing = "\n".join(f"- {p}" for p in pending)
        return _output(
            f"[rcwalk] {len(pending)} local rc file(s) need confirmation:\n"
            f"{listing}\n"
            f"Run `rcwalk run {target}` in a terminal to review them."
        )

    session = rcwalk.host.Session(config=cfg, root=root)
    result = session.trigger(target)

    parts: list[str] = []
    if result.executed:
        parts.append(
            f"[rcwalk] Applied {len(result.executed)} local rc file(s): "
            + ", ".join(str(p) for p in result.executed)
        )
        parts.append(json.dumps(session.settings, indent=2, sort_keys=True, default=str))
    for path, exc in session.errors:
        parts.append(f"[rcwalk] Error in {path}: {exc}")

    return _output("\n".join(parts))


if __name__ == "__main__":
    hook_data: dict = {}
    try:
        raw = sys.stdin.read()
        if raw:
            hook_data = json.loads(raw)
    except (json.JSONDecodeError, ValueError):
        pass

    print(main(hook_data))
