"""Per-invocation search settings."""

from __future__ import annotations

import dataclasses

import rcwalk.config
import rcwalk.discovery


@rcwalk.config.configurable("search")
@dataclasses.dataclass(frozen=True)
class SearchConfig:
    # Bare file name looked up in every ancestor directory
    target_filename: str = ".localrc"

    # -1 keeps every match, 0 keeps none, n keeps the n closest to the file
    keep_count: int = -1

    # Ask the host to run rc files in restricted mode
    sandbox: bool = True

    # Prompt before each rc file; False behaves like answering "all"
    ask: bool = True

    # Debug sink threshold, 0 is silent
    verbosity: int = 0

    def __post_init__(self) -> None:
        rcwalk.discovery.check_filename(self.target_filename)
        rcwalk.discovery.check_keep_count(self.keep_count)
        if self.verbosity < 0:
            raise ValueError(f"verbosity must be 0 or greater, got {self.verbosity}")
