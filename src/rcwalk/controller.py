"""Confirmation loop that decides which candidates get executed.

One ``run`` call walks the candidate list with a local
``ConfirmationState``. Answering ``a`` stops all further prompting for
the call, answering ``q`` ends it on the spot. Running a file is
delegated to the host's execute primitive; anything it raises
propagates to the caller untouched.
"""

from __future__ import annotations

import dataclasses
import enum
import os
import pathlib
from typing import TYPE_CHECKING

import rcwalk.log

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

PROMPT_TEMPLATE = "rcwalk: source {path}? ([y]es/[n]o/[a]ll/[q]uit) "


class Answer(enum.Enum):
    YES = "y"
    NO = "n"
    ALL = "a"
    QUIT = "q"


class ConfirmationState(enum.Enum):
    UNSET = "unset"
    ALL = "all"
    QUIT = "quit"


@dataclasses.dataclass
class RunResult:
    """What a single ``run`` call did with each candidate."""

    executed: list[pathlib.Path] = dataclasses.field(default_factory=list)
    skipped: list[pathlib.Path] = dataclasses.field(default_factory=list)
    missing: list[pathlib.Path] = dataclasses.field(default_factory=list)
    state: ConfirmationState = ConfirmationState.UNSET


def parse_answer(text: str) -> Answer | None:
    """Map raw prompt input to an answer, ``None`` if it is not one."""
    text = text.strip().lower()
    if not text:
        return None
    try:
        return Answer(text[0])
    except ValueError:
        return None


def _as_answer(value: Answer | str) -> Answer:
    if isinstance(value, Answer):
        return value
    try:
        return Answer(value)
    except ValueError:
        raise ValueError(f"Invalid prompt answer: {value!r}") from None


def _readable(path: pathlib.Path) -> bool:
    return path.is_file() and os.access(path, os.R_OK)


def run(
    candidates: Iterable[pathlib.Path],
    sandbox: bool,
    ask: bool,
    execute_fn: Callable[[pathlib.Path, bool], object],
    prompt_fn: Callable[[pathlib.Path], Answer | str],
    debug: rcwalk.log.DebugLog | None = None,
) -> RunResult:
    """Prompt for and execute *candidates* in order."""
    debug = debug if debug is not None else rcwalk.log.DebugLog()
    result = RunResult()
    state = ConfirmationState.UNSET

    for path in candidates:
        path = pathlib.Path(path)
        if not _readable(path):
            debug.emit(1, "skipping %s: no longer readable", path)
            result.missing.append(path)
            continue

        if state is not ConfirmationState.ALL:
            if not ask:
                state = ConfirmationState.ALL
            else:
                answer = _as_answer(prompt_fn(path))
                debug.emit(2, "answer %s for %s", answer.value, path)
                if answer is Answer.QUIT:
                    result.skipped.append(path)
                    state = ConfirmationState.QUIT
                    break
                if answer is Answer.NO:
                    result.skipped.append(path)
                    continue
                if answer is Answer.ALL:
                    state = ConfirmationState.ALL

        debug.emit(1, "sourcing %s (sandbox=%s)", path, sandbox)
        execute_fn(path, sandbox)
        result.executed.append(path)

    result.state = state
    return result
