import importlib
import json

import pytest
from click.testing import CliRunner

from oil.model import load_events


@pytest.fixture
def cli_main():
    import oil.cli.main as cli_main

    return importlib.reload(cli_main)


@pytest.fixture
def runner():
    # rich sizes tables from COLUMNS when output is not a terminal
    return CliRunner(env={"COLUMNS": "120"})


@pytest.mark.unit
def test_help_does_not_require_config(monkeypatch, tmp_path, runner, cli_main):
    home = tmp_path / "home"
    xdg = tmp_path / "xdg"

    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg))
    monkeypatch.delenv("OIL_HOME", raising=False)

    result = runner.invoke(cli_main.cli, ["--help"])

    assert result.exit_code == 0
    assert "Usage:" in result.output
    assert not (xdg / "oil" / "config.toml").exists()


@pytest.mark.unit
def test_version(runner, cli_main):
    result = runner.invoke(cli_main.cli, ["--version"])
    assert result.exit_code == 0
    assert result.output.startswith("oil version")


@pytest.mark.unit
def test_add_list_call(oil_home, runner, cli_main):
    result = runner.invoke(cli_main.cli, ["add", "water the plants", "--when", "every 3d"])
    assert result.exit_code == 0, result.output
    assert "Added" in result.output

    result = runner.invoke(cli_main.cli, ["add", "lunch", "--when", "daily 12:30", "--stacks"])
    assert result.exit_code == 0, result.output

    store = load_events(oil_home / "events.json")
    assert [ev.text for _, ev in store.items()] == ["water the plants", "lunch"]
    assert store.get(1).event.stacks is True

    result = runner.invoke(cli_main.cli, ["list", "--all"])
    assert result.exit_code == 0, result.output
    assert "Daily Events" in result.output
    assert result.output.index("lunch") < result.output.index("water the plants")

    # lunch is listed first, so the plants are at position 1
    result = runner.invoke(cli_main.cli, ["call", "1"])
    assert result.exit_code == 0, result.output
    store = load_events(oil_home / "events.json")
    assert store.get(0).is_done()
    assert not store.get(1).is_done()

    result = runner.invoke(cli_main.cli, ["call", "rm", "0"])
    assert result.exit_code == 0, result.output
    assert load_events(oil_home / "events.json").uids() == [0]


@pytest.mark.unit
def test_call_failure_exits_nonzero(oil_home, runner, cli_main):
    result = runner.invoke(cli_main.cli, ["call", "rm", "4"])
    assert result.exit_code == 1
    assert "Nothing applied" in result.output


@pytest.mark.unit
def test_add_rejects_bad_recurrence(oil_home, runner, cli_main):
    result = runner.invoke(cli_main.cli, ["add", "nap", "--when", "sometimes"])
    assert result.exit_code == 1
    assert "Invalid recurrence" in result.output
    assert not (oil_home / "events.json").exists()


@pytest.mark.unit
def test_check(runner, cli_main):
    result = runner.invoke(cli_main.cli, ["check", "weekly", "mon", "9:00"])
    assert result.exit_code == 0
    assert "weekly mon 09:00" in result.output
    assert "Monday" in result.output

    result = runner.invoke(cli_main.cli, ["check", "monthly 32 12:00"])
    assert result.exit_code == 1


@pytest.mark.unit
@pytest.mark.parametrize("answer, exit_code", [("n\n", 1), ("y\n", 0)])
def test_malformed_file_prompts(oil_home, runner, cli_main, answer, exit_code):
    oil_home.mkdir(parents=True)
    path = oil_home / "events.json"
    path.write_text("{oops", encoding="utf-8")

    result = runner.invoke(cli_main.cli, ["list"], input=answer)
    assert result.exit_code == exit_code
    assert "{oops" in result.output
    if exit_code:
        assert path.read_text(encoding="utf-8") == "{oops"
    else:
        assert json.loads(path.read_text(encoding="utf-8"))["events"] == {}


@pytest.mark.unit
def test_file_option_is_remembered(oil_home, tmp_path, runner, cli_main):
    other = tmp_path / "other.json"
    result = runner.invoke(
        cli_main.cli, ["--file", str(other), "add", "tea", "--when", "daily 16:00"]
    )
    assert result.exit_code == 0, result.output
    assert len(load_events(other)) == 1

    result = runner.invoke(cli_main.cli, ["list", "--all"])
    assert "tea" in result.output
