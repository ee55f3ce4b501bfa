"""End-to-end CLI tests against a temporary SQLite store."""

import json
from pathlib import Path

import pytest

from sherdview.cli import build_parser, main

FIXTURE_PATH = Path(__file__).resolve().parent.parent / "fixtures" / "demo_tree.json"


@pytest.fixture
def config_path(tmp_path):
    """Write a config pointing at a fresh SQLite file and load the demo fixture."""
    path = tmp_path / "sherdview.config.yaml"
    path.write_text(
        f"storage:\n  backend: sqlite\n  sqlite_path: {tmp_path / 'sherd.db'}\nlogging:\n  level: WARNING\n",
        encoding="utf-8",
    )
    assert main(["--config", str(path), "load", str(FIXTURE_PATH)]) == 0
    return path


def _json_output(capsys):
    return json.loads(capsys.readouterr().out)["data"]


def test_build_parser_subcommands():
    """Test that every subcommand is wired to a handler."""
    parser = build_parser()
    for argv in (["projects"], ["project", "p001"], ["search"], ["load", "x.json"]):
        args = parser.parse_args(argv)
        assert callable(args.func)


def test_main_without_command_prints_help(capsys):
    assert main([]) == 0
    assert "usage" in capsys.readouterr().out.lower()


def test_load_reports_counts(tmp_path, capsys):
    """Test the load command output."""
    path = tmp_path / "cfg.yaml"
    path.write_text(f"storage:\n  sqlite_path: {tmp_path / 'a.db'}\n", encoding="utf-8")

    assert main(["--config", str(path), "--log-level", "WARNING", "load", str(FIXTURE_PATH)]) == 0
    assert "Loaded 11 documents into 7 collections" in capsys.readouterr().out


def test_projects_command(config_path, capsys):
    capsys.readouterr()
    assert main(["--config", str(config_path), "projects", "--format", "json"]) == 0
    assert _json_output(capsys) == {"projects": [{"id": "p001", "project_name": "P001"}]}


def test_project_command_json(config_path, capsys):
    """Test the hierarchical project view as JSON."""
    capsys.readouterr()
    assert main(["--config", str(config_path), "project", "p001", "--format", "json"]) == 0
    data = _json_output(capsys)

    assert data["project_id"] == "p001"
    assert len(data["rows"]) == 2
    assert data["stats"]["total_sherds"] == 3
    assert data["stats"]["total_weight"] == pytest.approx(5.7)
    assert data["stats"]["study_areas"] == 1
    assert data["stats"]["containers"] == 1


def test_project_command_markdown(config_path, capsys):
    capsys.readouterr()
    assert main(["--config", str(config_path), "project", "p001"]) == 0
    assert "# Sherd Data for P001 (2 records)" in capsys.readouterr().out


def test_search_command_filters(config_path, capsys):
    """Test search by diagnostic type, newest first."""
    capsys.readouterr()
    assert main(["--config", str(config_path), "search", "--diagnostic", "Rim", "--format", "json"]) == 0
    data = _json_output(capsys)

    assert [r["id"] for r in data["rows"]] == ["u1", "u3"]
    assert data["distinct_diagnostics"] == ["Rim"]


def test_search_command_project(config_path, capsys):
    """Test that an undated record sorts after dated ones."""
    capsys.readouterr()
    assert main(["--config", str(config_path), "search", "--project", "00042", "--format", "json"]) == 0
    data = _json_output(capsys)

    assert [r["id"] for r in data["rows"]] == ["u3", "u4"]
    assert data["stats"]["diagnostic_counts"] == {"Rim": 1, "Unspecified": 1}


def test_search_command_detail(config_path, capsys):
    capsys.readouterr()
    assert main(["--config", str(config_path), "search", "--detail", "u4"]) == 0
    out = capsys.readouterr().out
    assert "# Sherd u4" in out
    assert "x=1, y=2, w=3, h=4" in out


def test_search_command_detail_not_found(config_path, capsys):
    capsys.readouterr()
    assert main(["--config", str(config_path), "search", "--detail", "nope"]) == 1
    assert "Sherd not found" in capsys.readouterr().err


def test_search_command_too_many_diagnostics(config_path, capsys):
    """Test that the diagnostic cap is reported as an error exit."""
    capsys.readouterr()
    argv = ["--config", str(config_path), "search"]
    for i in range(11):
        argv += ["--diagnostic", f"Type{i}"]

    assert main(argv) == 1
    assert "Cannot filter by more than 10 diagnostic types at once" in capsys.readouterr().err


def test_invalid_config_exits_with_error(tmp_path, capsys):
    path = tmp_path / "bad.yaml"
    path.write_text("query:\n  page_size: 9999\n", encoding="utf-8")

    assert main(["--config", str(path), "projects"]) == 1
    assert "Invalid configuration" in capsys.readouterr().err


def test_load_rejects_non_sqlite_backend(tmp_path, capsys):
    path = tmp_path / "mem.yaml"
    path.write_text("storage:\n  backend: memory\n", encoding="utf-8")

    assert main(["--config", str(path), "load", str(FIXTURE_PATH)]) == 1
    assert "only supports the sqlite backend" in capsys.readouterr().err
