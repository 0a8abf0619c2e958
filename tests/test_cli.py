import pytest

from gitwatch import __version__
from gitwatch.cli import watch as cli


@pytest.fixture
def captured_run(monkeypatch):
    seen = {}

    def fake_run(config, log):
        seen["config"] = config
        return 0

    monkeypatch.setattr(cli, "run", fake_run)
    return seen


def test_version(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(["--version"])
    assert exc.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_flags_become_config(captured_run):
    code = cli.main([
        "-v",
        "--repo", "git@example.com:acme/site.git",
        "--branch", "main",
        "--interval-seconds", "10",
        "--dir", "/srv/site",
        "--key", "/etc/gitwatch/key",
        "--slack-webhook", "https://hooks.example/x",
        "--slack-title", "web-1",
        "make", "deploy", "-j", "2",
    ])
    assert code == 0
    cfg = captured_run["config"]
    assert cfg.repo == "git@example.com:acme/site.git"
    assert cfg.branch == "main"
    assert cfg.interval_seconds == 10
    assert cfg.dir == "/srv/site"
    assert cfg.key == "/etc/gitwatch/key"
    assert cfg.slack_webhook == "https://hooks.example/x"
    assert cfg.slack_title == "web-1"
    assert cfg.verbose is True
    assert cfg.cmd == "make"
    assert cfg.args == ["deploy", "-j", "2"]


def test_separator_before_command(captured_run):
    assert cli.main(["--repo", "r", "--", "echo", "--not-an-option"]) == 0
    cfg = captured_run["config"]
    assert cfg.cmd == "echo"
    assert cfg.args == ["--not-an-option"]


def test_defaults(captured_run):
    assert cli.main(["--repo", "r", "true"]) == 0
    cfg = captured_run["config"]
    assert cfg.branch == "master"
    assert cfg.interval_seconds == 30
    assert cfg.verbose is False
    assert cfg.uses_temp_dir


def test_missing_repo_is_usage_error(captured_run, capsys):
    assert cli.main(["make"]) == 2
    assert "repo" in capsys.readouterr().err
    assert "config" not in captured_run


def test_bad_interval_is_usage_error(captured_run):
    assert cli.main(["--repo", "r", "--interval-seconds", "0", "make"]) == 2


def test_environment_and_config_file(tmp_path, monkeypatch, captured_run):
    conf = tmp_path / "gitwatch.yaml"
    conf.write_text("branch: release\ncmd: ./deploy.sh\nargs: [prod]\n", encoding="utf-8")
    monkeypatch.setenv("GITWATCH_REPO", "https://example.com/site.git")
    monkeypatch.setenv("GITWATCH_BRANCH", "develop")
    assert cli.main(["--config", str(conf)]) == 0
    cfg = captured_run["config"]
    assert cfg.repo == "https://example.com/site.git"
    assert cfg.branch == "release"
    assert cfg.cmd == "./deploy.sh"
    assert cfg.args == ["prod"]


def test_dotenv_file_in_working_directory(tmp_path, captured_run):
    (tmp_path / ".env").write_text("GITWATCH_REPO=https://example.com/dot.git\n", encoding="utf-8")
    assert cli.main(["make"]) == 0
    assert captured_run["config"].repo == "https://example.com/dot.git"
