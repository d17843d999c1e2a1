import shutil
from pathlib import Path

import pytest

from apmtools import gendockerfile
from apmtools.packages import PackageListError, PackageRecord


PACKAGES = [
    PackageRecord(import_path="mymodule/a", imports=["example.com/foo/bar", "fmt"]),
    PackageRecord(import_path="mymodule/b", imports=["example.com/foo/bar", "golang.org/x/tools"]),
]

EXPECTED = (
    "# Code generated by gendockerfile. DO NOT EDIT.\n"
    "FROM golang:latest\n"
    "WORKDIR /go/src/go.elastic.co/apm\n"
    "RUN go get -v example.com/foo/bar\n"
    "RUN go get -v golang.org/x/tools\n"
    "ADD . /go/src/go.elastic.co/apm\n"
)


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    (tmp_path / "scripts").mkdir()
    return tmp_path


def _stub_packages(monkeypatch, records=PACKAGES):  # type: ignore[no-untyped-def]
    calls = {"base": None, "go": None}

    def fake_go_list(base, go="go", verbose=False):  # type: ignore[no-untyped-def]
        calls["base"] = base
        calls["go"] = go
        return iter(records)

    monkeypatch.setattr(gendockerfile, "go_list_packages", fake_go_list)
    return calls


def test_write_mode_creates_dockerfile(monkeypatch, repo: Path):
    calls = _stub_packages(monkeypatch)

    code = gendockerfile.main(["-base", str(repo)])
    assert code == 0
    assert calls["base"] == str(repo)
    assert (repo / "scripts" / "Dockerfile-testing").read_text(encoding="utf-8") == EXPECTED


def test_write_mode_custom_output_and_go(monkeypatch, repo: Path):
    calls = _stub_packages(monkeypatch)

    code = gendockerfile.main(["--base", str(repo), "-o", "Dockerfile-ci", "--go", "/opt/go/bin/go"])
    assert code == 0
    assert calls["go"] == "/opt/go/bin/go"
    assert (repo / "scripts" / "Dockerfile-ci").exists()
    assert not (repo / "scripts" / "Dockerfile-testing").exists()


def test_write_mode_is_idempotent(monkeypatch, repo: Path):
    _stub_packages(monkeypatch)
    out = repo / "scripts" / "Dockerfile-testing"

    assert gendockerfile.main(["-base", str(repo)]) == 0
    first = out.read_bytes()
    assert gendockerfile.main(["-base", str(repo)]) == 0
    assert out.read_bytes() == first


def test_write_mode_truncates_existing_file(monkeypatch, repo: Path):
    _stub_packages(monkeypatch)
    out = repo / "scripts" / "Dockerfile-testing"
    out.write_text("stale\n" * 100, encoding="utf-8")

    assert gendockerfile.main(["-base", str(repo)]) == 0
    assert out.read_text(encoding="utf-8") == EXPECTED


def test_enumeration_failure_leaves_no_output(monkeypatch, repo: Path, capsys):
    def broken(base, go="go", verbose=False):  # type: ignore[no-untyped-def]
        yield PACKAGES[0]
        raise PackageListError("malformed package record: Expecting value")

    monkeypatch.setattr(gendockerfile, "go_list_packages", broken)

    code = gendockerfile.main(["-base", str(repo)])
    assert code == 1
    assert not (repo / "scripts" / "Dockerfile-testing").exists()
    assert "[ERROR] malformed package record" in capsys.readouterr().err


def test_enumeration_failure_keeps_existing_file(monkeypatch, repo: Path):
    out = repo / "scripts" / "Dockerfile-testing"
    out.write_text("previous\n", encoding="utf-8")

    def broken(base, go="go", verbose=False):  # type: ignore[no-untyped-def]
        raise PackageListError("failed to start 'go'")
        yield  # pragma: no cover

    monkeypatch.setattr(gendockerfile, "go_list_packages", broken)

    assert gendockerfile.main(["-base", str(repo)]) == 1
    assert out.read_text(encoding="utf-8") == "previous\n"


def test_write_failure_is_fatal(monkeypatch, tmp_path: Path, capsys):
    _stub_packages(monkeypatch)

    # No scripts/ directory under base
    code = gendockerfile.main(["-base", str(tmp_path / "missing")])
    assert code == 1
    assert "failed to write" in capsys.readouterr().err


def test_from_json_reads_saved_listing(repo: Path):
    saved = repo / "pkgs.json"
    saved.write_text(
        '{"ImportPath": "mymodule/a", "Imports": ["example.com/foo/bar", "fmt"]}\n'
        '{"ImportPath": "mymodule/b", "Imports": ["example.com/foo/bar", "golang.org/x/tools"]}\n',
        encoding="utf-8",
    )

    code = gendockerfile.main(["-base", str(repo), "--from-json", str(saved)])
    assert code == 0
    assert (repo / "scripts" / "Dockerfile-testing").read_text(encoding="utf-8") == EXPECTED


def test_diff_mode_reports_result_of_diff(monkeypatch, repo: Path):
    _stub_packages(monkeypatch)
    out = repo / "scripts" / "Dockerfile-testing"
    out.write_text(EXPECTED, encoding="utf-8")

    calls = {"cmd": None, "input": None}

    def fake_run(cmd, cwd=None, env=None, input_text=None):  # type: ignore[no-untyped-def]
        calls["cmd"] = cmd
        calls["input"] = input_text
        return 0

    monkeypatch.setattr(gendockerfile, "run_command", fake_run)

    assert gendockerfile.main(["-base", str(repo), "-d"]) == 0
    assert calls["cmd"] == ["diff", "-c", str(out), "-"]
    assert calls["input"] == EXPECTED


def test_diff_mode_mismatch_is_fatal(monkeypatch, repo: Path, capsys):
    _stub_packages(monkeypatch)
    monkeypatch.setattr(gendockerfile, "run_command", lambda cmd, cwd=None, env=None, input_text=None: 1)

    assert gendockerfile.main(["-base", str(repo), "-d"]) == 1
    assert "out of date" in capsys.readouterr().err


def test_diff_mode_missing_tool_is_fatal(monkeypatch, repo: Path):
    _stub_packages(monkeypatch)

    def fake_run(cmd, cwd=None, env=None, input_text=None):  # type: ignore[no-untyped-def]
        raise FileNotFoundError(2, "No such file or directory", cmd[0])

    monkeypatch.setattr(gendockerfile, "run_command", fake_run)

    assert gendockerfile.main(["-base", str(repo), "-d"]) == 1


def test_diff_mode_env_default(monkeypatch, repo: Path):
    _stub_packages(monkeypatch)
    monkeypatch.setenv("GENDOCKERFILE_DIFF", "yes")
    monkeypatch.setattr(gendockerfile, "run_command", lambda cmd, cwd=None, env=None, input_text=None: 0)

    assert gendockerfile.main(["-base", str(repo)]) == 0
    # Diff mode never writes the file
    assert not (repo / "scripts" / "Dockerfile-testing").exists()


@pytest.mark.skipif(shutil.which("diff") is None, reason="diff not installed")
def test_diff_mode_with_real_diff(monkeypatch, repo: Path):
    _stub_packages(monkeypatch)
    out = repo / "scripts" / "Dockerfile-testing"

    out.write_text(EXPECTED, encoding="utf-8")
    assert gendockerfile.main(["-base", str(repo), "-d"]) == 0

    out.write_text(EXPECTED.replace("golang.org/x/tools", "golang.org/x/net"), encoding="utf-8")
    assert gendockerfile.main(["-base", str(repo), "-d"]) == 1
    # Diff mode only reads the target
    assert "golang.org/x/net" in out.read_text(encoding="utf-8")
