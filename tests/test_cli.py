"""CLI tests driven through click's CliRunner against the fake Asana API."""

import json

import pytest
import structlog
from click.testing import CliRunner

from asanawarrior import cli
from conftest import make_task


@pytest.fixture(autouse=True)
def _config(monkeypatch):
    config = {
        "asana": {"personal_access_token": "abc", "base_url": "https://app.asana.com/api/1.0"},
        "sync": {"max_tasks": 1000, "asana_tag": "asana", "carry_sections": True},
    }
    monkeypatch.setattr(cli, "load_config", lambda: config)
    yield config
    structlog.reset_defaults()


@pytest.fixture
def runner():
    return CliRunner()


def test_fetch_prints_tasks(runner, asana):
    asana.route("users", {"data": [{"id": 9, "email": "jane@corp.io"}]})
    asana.add_project(
        1, "Launch", [make_task(1, "Prep:"), make_task(2, "Write doc", assignee=9), make_task(3, "Review")]
    )
    result = runner.invoke(cli.main, ["fetch"])
    assert result.exit_code == 0, result.output
    assert "[ ] Launch [Prep]: Write doc @jane" in result.output
    assert "[ ] Launch [Prep]: Review" in result.output
    assert "Fetched 2 tasks from Asana" in result.output


def test_fetch_json_respects_max(runner, asana):
    asana.add_project(1, "Launch", [make_task(i, f"t{i}") for i in range(5)])
    result = runner.invoke(cli.main, ["fetch", "--json", "--max", "2"])
    assert result.exit_code == 0, result.output
    lines = [json.loads(line) for line in result.stdout.splitlines()]
    assert [d["name"] for d in lines] == ["t0", "t1"]
    assert lines[0]["project"] == "Launch"


def test_fetch_token_option(runner, asana):
    runner.invoke(cli.main, ["fetch", "--token", "cli-token"])
    assert asana.requests[0].get_header("Authorization") == "Bearer cli-token"


def test_fetch_rejects_non_positive_max(runner, asana):
    result = runner.invoke(cli.main, ["fetch", "--max", "0"])
    assert result.exit_code == 2
    assert asana.requests == []


def test_fetch_error_exits_non_zero(runner, asana):
    asana.add_project(1, "Launch", [make_task(1, "broken", created="nope")])
    result = runner.invoke(cli.main, ["fetch"])
    assert result.exit_code == 1
    assert "Error reading Asana: asana created at" in result.output


def test_missing_token_exits_non_zero(runner, asana, _config):
    _config["asana"]["personal_access_token"] = ""
    result = runner.invoke(cli.main, ["fetch"])
    assert result.exit_code == 1
    assert "token not configured" in result.output
    assert asana.requests == []


def test_sync_upserts_each_task(runner, asana, monkeypatch):
    from asanawarrior import taskwarrior

    asana.add_project(1, "Launch", [make_task(1, "a"), make_task(2, "b", completed="2024-03-02T00:00:00.000Z")])
    seen = []

    def fake_upsert(tw, task, *, source_tag):
        seen.append((task.name, source_tag))
        return ("created" if task.completed is None else "skipped"), None

    monkeypatch.setattr(taskwarrior, "get_tw", lambda: object())
    monkeypatch.setattr(taskwarrior, "upsert_task", fake_upsert)

    result = runner.invoke(cli.main, ["sync"])
    assert result.exit_code == 0, result.output
    assert seen == [("a", "asana"), ("b", "asana")]
    assert "1 new, 0 updated, 0 completed, 1 unchanged" in result.output


@pytest.fixture
def udas(monkeypatch):
    from asanawarrior import taskwarrior

    calls = []
    monkeypatch.setattr(taskwarrior, "get_tw", lambda: "tw")
    monkeypatch.setattr(taskwarrior, "ensure_udas", lambda tw: calls.append(tw) or ["asana_id"])
    return calls


def test_setup_writes_prompted_token(runner, monkeypatch, tmp_path, udas):
    written = []
    monkeypatch.delenv("ASANA_TOKEN", raising=False)
    monkeypatch.setattr(cli, "config_exists", lambda: False)
    monkeypatch.setattr(
        cli, "create_default_config", lambda asana_token: written.append(asana_token) or tmp_path / "c.toml"
    )
    result = runner.invoke(cli.main, ["setup"], input="pat-123\n")
    assert result.exit_code == 0, result.output
    assert written == ["pat-123"]
    assert udas == ["tw"]
    assert "UDAs added: asana_id" in result.output


def test_setup_keeps_env_token_off_disk(runner, monkeypatch, tmp_path, udas):
    written = []
    monkeypatch.setenv("ASANA_TOKEN", "from-env")
    monkeypatch.setattr(cli, "config_exists", lambda: False)
    monkeypatch.setattr(
        cli, "create_default_config", lambda asana_token: written.append(asana_token) or tmp_path / "c.toml"
    )
    result = runner.invoke(cli.main, ["setup", "--skip-udas"])
    assert result.exit_code == 0, result.output
    assert written == [""]
    assert udas == []


def test_setup_with_existing_config(runner, monkeypatch, udas):
    monkeypatch.setattr(cli, "config_exists", lambda: True)
    monkeypatch.setattr(cli, "create_default_config", lambda **kw: pytest.fail("config rewritten"))
    result = runner.invoke(cli.main, ["setup"])
    assert result.exit_code == 0, result.output
    assert "already present" in result.output
    assert udas == ["tw"]
