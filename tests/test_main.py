"""Tests for the CLI entry point: argument handling, missing key, single-shot and interactive wiring."""

from __future__ import annotations

import io
from pathlib import Path
from unittest.mock import MagicMock

import pytest

import main as mod
from chat_config import API_KEY_ENV


class DummyClient:
    instances: list["DummyClient"] = []

    def __init__(self, config, http_client=None):
        self.config = config
        self.model = config.model
        self.generate = MagicMock(return_value="hi there")
        self.closed = False
        DummyClient.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True


@pytest.fixture(autouse=True)
def _isolated(monkeypatch, tmp_path):
    DummyClient.instances = []
    monkeypatch.setattr(mod, "GeminiClient", DummyClient)
    monkeypatch.setattr(mod, "load_dotenv", lambda *args, **kw: False)
    monkeypatch.delenv(API_KEY_ENV, raising=False)
    monkeypatch.setattr(mod.sys, "stdin", io.StringIO(""))
    return tmp_path


def _missing_config(tmp_path) -> str:
    return str(tmp_path / "config.json")


def test_single_shot_prints_reply(tmp_path, capsys):
    code = mod.main(["Hello", "--api-key", "k", "--config", _missing_config(tmp_path)])
    assert code == 0
    assert capsys.readouterr().out == "hi there\n"
    client = DummyClient.instances[0]
    assert client.closed
    turns = client.generate.call_args.args[0]
    assert [(t.role, t.text) for t in turns] == [("user", "Hello")]


def test_model_and_timeout_flags(tmp_path, monkeypatch):
    monkeypatch.setenv(API_KEY_ENV, "env-key")
    mod.main(["Hi", "--model", "gemini-2.5-pro", "--timeout", "15", "--config", _missing_config(tmp_path)])
    config = DummyClient.instances[0].config
    assert config.api_key == "env-key"
    assert config.model == "gemini-2.5-pro"
    assert config.timeout == 15.0


def test_prompt_read_from_stdin(tmp_path, monkeypatch):
    monkeypatch.setattr(mod.sys, "stdin", io.StringIO("piped prompt\n"))
    mod.main(["--api-key", "k", "--config", _missing_config(tmp_path)])
    turns = DummyClient.instances[0].generate.call_args.args[0]
    assert turns[0].text == "piped prompt"


def test_missing_prompt_is_usage_error(tmp_path):
    with pytest.raises(SystemExit) as exc_info:
        mod.main(["--api-key", "k", "--config", _missing_config(tmp_path)])
    assert exc_info.value.code == 2


def test_invalid_timeout_is_usage_error(tmp_path):
    with pytest.raises(SystemExit):
        mod.main(["Hi", "--api-key", "k", "--timeout", "0", "--config", _missing_config(tmp_path)])


def test_missing_key_exits_before_any_call(tmp_path, capsys):
    code = mod.main(["Hello", "--config", _missing_config(tmp_path)])
    assert code == 1
    assert DummyClient.instances == []
    assert API_KEY_ENV in capsys.readouterr().err


def test_interactive_mode_runs_chat(tmp_path, monkeypatch):
    run_chat = MagicMock()
    monkeypatch.setattr(mod, "run_chat", run_chat)
    code = mod.main(["-i", "--api-key", "k", "--config", _missing_config(tmp_path)])
    assert code == 0
    run_chat.assert_called_once_with(DummyClient.instances[0])


def test_prompt_with_interactive_is_usage_error(tmp_path, monkeypatch):
    run_chat = MagicMock()
    monkeypatch.setattr(mod, "run_chat", run_chat)
    with pytest.raises(SystemExit) as exc_info:
        mod.main(["Hello", "-i", "--api-key", "k", "--config", _missing_config(tmp_path)])
    assert exc_info.value.code == 2
    run_chat.assert_not_called()
    assert DummyClient.instances == []


def test_dotenv_searched_from_working_directory(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text(f"{API_KEY_ENV}=dotenv-key\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    loaded = []
    monkeypatch.setattr(mod, "load_dotenv", lambda path, **kw: loaded.append((path, kw)))
    mod.main(["Hi", "--api-key", "k", "--config", _missing_config(tmp_path)])
    path, kwargs = loaded[0]
    assert Path(path).resolve() == (tmp_path / ".env").resolve()
    assert kwargs == {"override": False}


def test_config_file_supplies_key_and_model(tmp_path):
    path = tmp_path / "config.json"
    path.write_text('{"ApiKey": "file-key", "Model": "gemini-file"}', encoding="utf-8")
    mod.main(["Hi", "--config", str(path)])
    config = DummyClient.instances[0].config
    assert config.api_key == "file-key"
    assert config.model == "gemini-file"
