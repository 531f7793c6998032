"""Default host: runs rc files as Python against a shared settings dict.

A ``Session`` plays the part an editor plays for its local rc files. It
owns the settings the rc files modify, supplies the execute and prompt
primitives to the controller, and reports errors raised by rc content
without stopping the remaining files.

Example ``.localrc``::

    settings["indent"] = 2
    settings.setdefault("ignore", []).append("build/")
"""

from __future__ import annotations

import ast
import builtins
import logging
import pathlib
from typing import TYPE_CHECKING, Any

import rcwalk.config
import rcwalk.controller
import rcwalk.discovery
import rcwalk.log
import rcwalk.search_config

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger("rcwalk.host")

# Builtins that reach outside the settings dict: imports, file and
# terminal I/O, dynamic code and reflective attribute access.
RESTRICTED_BUILTINS = frozenset({
    "__import__",
    "open",
    "exec",
    "eval",
    "compile",
    "input",
    "breakpoint",
    "globals",
    "locals",
    "vars",
    "getattr",
    "setattr",
    "delattr",
    "help",
    "memoryview",
})


class SandboxViolation(RuntimeError):
    """Sandboxed rc content called something the sandbox does not allow."""


def _denied(name: str) -> Callable[..., Any]:
    def deny(*args: Any, **kwargs: Any) -> Any:
        raise SandboxViolation(f"{name}() is not available in sandboxed rc files")

    deny.__name__ = name
    return deny


def _is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


def check_sandboxed(tree: ast.AST, filename: str) -> None:
    """Reject private and dunder attribute access in sandboxed rc files.

    Attributes like ``__class__``, ``__subclasses__`` and ``__globals__``
    lead from any object back to modules such as ``os``, which the
    builtins table alone cannot stop.
    """
    for node in ast.walk(tree):
        if isinstance(node, ast.Attribute) and node.attr.startswith("_"):
            name = node.attr
        elif isinstance(node, ast.Name) and _is_dunder(node.id):
            name = node.id
        elif isinstance(node, ast.MatchClass) and any(
            a.startswith("_") for a in node.kwd_attrs
        ):
            name = next(a for a in node.kwd_attrs if a.startswith("_"))
        else:
            continue
        raise SandboxViolation(
            f"{filename}:{node.lineno}: {name!r} is not available in sandboxed rc files"
        )


def sandbox_builtins() -> dict[str, Any]:
    """Return a builtins table with every restricted name disabled."""
    table = dict(vars(builtins))
    for name in RESTRICTED_BUILTINS:
        table[name] = _denied(name)
    return table


class Session:
    def __init__(
        self,
        config: rcwalk.search_config.SearchConfig | None = None,
        root: pathlib.Path | None = None,
        input_fn: Callable[[str], str] = input,
        settings: dict[str, Any] | None = None,
    ) -> None:
        self.config = config
        self.root = root
        self.input_fn = input_fn
        self.settings: dict[str, Any] = settings if settings is not None else {}
        self.errors: list[tuple[pathlib.Path, Exception]] = []
        self._active = False
        self._debug = rcwalk.log.DebugLog()

    def load_config(
        self, start: pathlib.Path | None = None
    ) -> rcwalk.search_config.SearchConfig:
        """Return the injected config, or read it fresh from TOML.

        Without an explicit root the project config comes from the git
        repository enclosing *start*.
        """
        if self.config is not None:
            return self.config
        root = self.root if self.root is not None else rcwalk.config.config_root(start)
        return rcwalk.config.load("search", root)

    def trigger(self, file_path: str | pathlib.Path | None = None) -> rcwalk.controller.RunResult:
        """Find and run the rc files that apply to *file_path*.

        A trigger arriving while another one is still executing (an rc
        file that opens a file of its own) is ignored.
        """
        if self._active:
            self._debug.emit(1, "ignoring re-entrant trigger for %s", file_path)
            return rcwalk.controller.RunResult()

        start = rcwalk.discovery.resolve_start_dir(file_path)
        cfg = self.load_config(start)
        self._debug = rcwalk.log.DebugLog(cfg.verbosity)
        candidates = rcwalk.discovery.find_candidates(
            start, cfg.target_filename, cfg.keep_count
        )
        self._debug.emit(
            1, "%d %s file(s) apply to %s", len(candidates), cfg.target_filename, start
        )

        self._active = True
        try:
            return rcwalk.controller.run(
                candidates,
                sandbox=cfg.sandbox,
                ask=cfg.ask,
                execute_fn=self.execute,
                prompt_fn=self.prompt,
                debug=self._debug,
            )
        finally:
            self._active = False

    def execute(self, path: pathlib.Path, sandboxed: bool) -> None:
        """Run *path* as Python with ``settings`` in scope."""
        namespace: dict[str, Any] = {
            "__builtins__": sandbox_builtins() if sandboxed else builtins,
            "__name__": "__localrc__",
            "__file__": str(path),
            "settings": self.settings,
        }
        try:
            tree = ast.parse(path.read_text(), str(path))
            if sandboxed:
                check_sandboxed(tree, str(path))
            exec(compile(tree, str(path), "exec"), namespace)
        except Exception as exc:
            logger.exception("error in %s", path)
            self.errors.append((path, exc))

    def prompt(self, path: pathlib.Path) -> rcwalk.controller.Answer:
        """Ask on the terminal until a valid answer comes back."""
        message = rcwalk.controller.PROMPT_TEMPLATE.format(path=path)
        while True:
            try:
                raw = self.input_fn(message)
            except EOFError:
                return rcwalk.controller.Answer.QUIT
            answer = rcwalk.controller.parse_answer(raw)
            if answer is not None:
                return answer
