"""Tests for rcwalk.host — the default Session host."""

from __future__ import annotations

import ast
import logging
import pathlib
import unittest.mock

import pytest

import rcwalk.controller
import rcwalk.host
import rcwalk.search_config

SearchConfig = rcwalk.search_config.SearchConfig


def _answers(*replies: str):
    replies_iter = iter(replies)
    return unittest.mock.Mock(side_effect=lambda message: next(replies_iter))


class TestTrigger:
    def test_scenario_root_first(self, rc_tree: pathlib.Path) -> None:
        cfg = SearchConfig(target_filename=".lvimrc", ask=False)
        session = rcwalk.host.Session(config=cfg)
        result = session.trigger(rc_tree / "b" / "c" / "file.txt")
        assert result.executed == [rc_tree / ".lvimrc", rc_tree / "b" / ".lvimrc"]
        assert session.settings["order"] == ["a", "b"]

    def test_keep_count_one(self, rc_tree: pathlib.Path) -> None:
        cfg = SearchConfig(target_filename=".lvimrc", keep_count=1, ask=False)
        session = rcwalk.host.Session(config=cfg)
        session.trigger(rc_tree / "b" / "c" / "file.txt")
        assert session.settings["order"] == ["b"]

    def test_no_file_uses_cwd(
        self, rc_tree: pathlib.Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(rc_tree / "b")
        session = rcwalk.host.Session(config=SearchConfig(target_filename=".lvimrc", ask=False))
        session.trigger()
        assert session.settings["order"] == ["a", "b"]

    def test_loads_config_from_toml(self, rc_tree: pathlib.Path) -> None:
        toml_path = rc_tree / ".rcwalk" / "config.toml"
        toml_path.parent.mkdir()
        toml_path.write_text('[search]\ntarget_filename = ".lvimrc"\nask = false\n')
        session = rcwalk.host.Session(root=rc_tree)
        session.trigger(rc_tree / "b" / "c" / "file.txt")
        assert session.settings["order"] == ["a", "b"]

    def test_config_comes_from_target_repo(
        self,
        git_project: pathlib.Path,
        tmp_path: pathlib.Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.chdir(tmp_path / "elsewhere")
        session = rcwalk.host.Session()
        result = session.trigger(git_project / "src" / "main.py")
        assert result.executed == [git_project / ".projrc"]
        assert session.settings == {"project": True}

    def test_prompts_through_input_fn(self, rc_tree: pathlib.Path) -> None:
        input_fn = _answers("n", "y")
        session = rcwalk.host.Session(
            config=SearchConfig(target_filename=".lvimrc"), input_fn=input_fn
        )
        session.trigger(rc_tree / "b" / "c" / "file.txt")
        assert session.settings["order"] == ["b"]
        first_prompt = input_fn.call_args_list[0].args[0]
        assert str(rc_tree / ".lvimrc") in first_prompt

    def test_sandbox_used_by_default(self, write_rc, tmp_path: pathlib.Path) -> None:
        write_rc("proj", "import os\n")
        session = rcwalk.host.Session(config=SearchConfig(ask=False))
        session.trigger(tmp_path / "proj")
        assert len(session.errors) == 1
        assert isinstance(session.errors[0][1], rcwalk.host.SandboxViolation)

    def test_reentrant_trigger_ignored(
        self, rc_tree: pathlib.Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        session = rcwalk.host.Session(config=SearchConfig(target_filename=".lvimrc", ask=False))
        inner_results = []
        original = session.execute

        def _execute(path: pathlib.Path, sandboxed: bool) -> None:
            inner_results.append(session.trigger(rc_tree / "b" / "c"))
            original(path, sandboxed)

        monkeypatch.setattr(session, "execute", _execute)
        result = session.trigger(rc_tree / "b" / "c")
        assert len(result.executed) == 2
        assert all(r.executed == [] for r in inner_results)
        assert session.settings["order"] == ["a", "b"]

    def test_trigger_usable_again_after_error(self, rc_tree: pathlib.Path) -> None:
        session = rcwalk.host.Session(config=SearchConfig(target_filename=".lvimrc", ask=False))
        with (
            unittest.mock.patch.object(
                session, "execute", side_effect=KeyError("x")
            ),
            pytest.raises(KeyError),
        ):
            session.trigger(rc_tree / "b" / "c")
        session.trigger(rc_tree / "b" / "c")
        assert session.settings["order"] == ["a", "b"]


class TestExecute:
    def test_settings_in_scope(self, write_rc) -> None:
        path = write_rc("x", "settings['indent'] = 4\n")
        session = rcwalk.host.Session(settings={"indent": 8})
        session.execute(path, sandboxed=True)
        assert session.settings == {"indent": 4}

    def test_unsandboxed_may_import(self, write_rc) -> None:
        path = write_rc("x", "import os\nsettings['sep'] = os.sep\n")
        session = rcwalk.host.Session()
        session.execute(path, sandboxed=False)
        assert session.errors == []
        assert "sep" in session.settings

    @pytest.mark.parametrize(
        "body",
        [
            "import subprocess\n",
            "open('out.txt', 'w').write('x')\n",
            "eval('1 + 1')\n",
            "exec('x = 1')\n",
            "getattr(settings, 'clear')()\n",
            "[c for c in ().__class__.__base__.__subclasses__()"
            " if c.__name__ == '_wrap_close'][0].__init__.__globals__['system']('true')\n",
            "[c for c in ().__class__.__base__.__subclasses__()"
            " if c.__name__ == 'BuiltinImporter'][0].load_module('posix')\n",
            "x = __builtins__\n",
            "match settings:\n    case dict(__class__=c):\n        pass\n",
        ],
    )
    def test_sandbox_blocks(self, write_rc, body: str) -> None:
        path = write_rc("x", body)
        session = rcwalk.host.Session()
        session.execute(path, sandboxed=True)
        assert isinstance(session.errors[0][1], rcwalk.host.SandboxViolation)

    def test_sandbox_blocks_file_write(self, write_rc, tmp_path: pathlib.Path) -> None:
        target = tmp_path / "written.txt"
        path = write_rc("x", f"open({str(target)!r}, 'w').write('x')\n")
        rcwalk.host.Session().execute(path, sandboxed=True)
        assert not target.exists()

    def test_sandbox_blocks_shell_through_dunders(
        self, write_rc, tmp_path: pathlib.Path
    ) -> None:
        target = tmp_path / "escaped.txt"
        body = (
            "[c for c in ().__class__.__base__.__subclasses__()"
            " if c.__name__ == '_wrap_close'][0].__init__.__globals__['system']"
            f"('echo escaped > {target}')\n"
        )
        path = write_rc("x", body)
        session = rcwalk.host.Session()
        session.execute(path, sandboxed=True)
        assert not target.exists()
        assert "is not available in sandboxed rc files" in str(session.errors[0][1])
        assert f"{path}:1" in str(session.errors[0][1])

    def test_private_attributes_allowed_unsandboxed(self, write_rc) -> None:
        path = write_rc("x", "settings['cls'] = ().__class__.__name__\n")
        session = rcwalk.host.Session()
        session.execute(path, sandboxed=False)
        assert session.settings == {"cls": "tuple"}

    def test_error_logged_with_traceback(
        self, write_rc, caplog: pytest.LogCaptureFixture
    ) -> None:
        path = write_rc("x", "settings['a'] = 1\nraise KeyError('missing')\n")
        with caplog.at_level(logging.ERROR, logger="rcwalk.host"):
            rcwalk.host.Session().execute(path, sandboxed=True)
        (record,) = caplog.records
        assert record.exc_info is not None
        assert record.exc_info[0] is KeyError
        assert "line 2" in caplog.text

    def test_error_reported_and_next_file_still_runs(
        self, write_rc, tmp_path: pathlib.Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        write_rc("p", "settings['outer'] = True\n")
        write_rc("p/q", "raise ValueError('bad rc')\n")
        write_rc("p/q/r", "settings['inner'] = True\n")
        session = rcwalk.host.Session(config=SearchConfig(ask=False))
        with caplog.at_level(logging.ERROR, logger="rcwalk.host"):
            result = session.trigger(tmp_path / "p" / "q" / "r")
        assert len(result.executed) == 3
        assert session.settings == {"outer": True, "inner": True}
        assert str(session.errors[0][1]) == "bad rc"
        assert "bad rc" in caplog.text

    def test_syntax_error_reported(self, write_rc) -> None:
        path = write_rc("x", "settings[\n")
        session = rcwalk.host.Session()
        session.execute(path, sandboxed=True)
        assert isinstance(session.errors[0][1], SyntaxError)


class TestPrompt:
    def test_reasks_until_valid(self) -> None:
        input_fn = _answers("", "what", "a")
        session = rcwalk.host.Session(input_fn=input_fn)
        assert session.prompt(pathlib.Path("/x/.localrc")) is rcwalk.controller.Answer.ALL
        assert input_fn.call_count == 3

    def test_eof_means_quit(self) -> None:
        session = rcwalk.host.Session(input_fn=unittest.mock.Mock(side_effect=EOFError))
        assert session.prompt(pathlib.Path("/x/.localrc")) is rcwalk.controller.Answer.QUIT


class TestSandboxBuiltins:
    def test_restricted_names_replaced(self) -> None:
        table = rcwalk.host.sandbox_builtins()
        for name in rcwalk.host.RESTRICTED_BUILTINS:
            with pytest.raises(rcwalk.host.SandboxViolation, match=name):
                table[name]()

    def test_harmless_builtins_kept(self) -> None:
        table = rcwalk.host.sandbox_builtins()
        assert table["len"]([1, 2]) == 2
        assert table["sorted"]([2, 1]) == [1, 2]


class TestCheckSandboxed:
    @pytest.mark.parametrize(
        "source",
        [
            "settings['indent'] = 2\n",
            "settings.setdefault('ignore', []).append('build/')\n",
            "name = 'x'.upper()\n",
        ],
    )
    def test_plain_code_passes(self, source: str) -> None:
        rcwalk.host.check_sandboxed(ast.parse(source), "rc")

    @pytest.mark.parametrize(
        "source, name",
        [
            ("settings._data\n", "_data"),
            ("x = 1\ny = ().__class__\n", "__class__"),
            ("print(__loader__)\n", "__loader__"),
        ],
    )
    def test_private_names_rejected(self, source: str, name: str) -> None:
        with pytest.raises(rcwalk.host.SandboxViolation, match=repr(name)):
            rcwalk.host.check_sandboxed(ast.parse(source), "rc")

    def test_reports_line(self) -> None:
        with pytest.raises(rcwalk.host.SandboxViolation, match="^rc:2: "):
            rcwalk.host.check_sandboxed(ast.parse("x = 1\ny = x.__dict__\n"), "rc")
