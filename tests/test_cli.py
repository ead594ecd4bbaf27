"""
Tests for the command line interface.
"""

import json

import pytest
from typer.testing import CliRunner

from lanes.cli.main import app
from lanes.core import service

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Point the CLI at a config without a feed."""
    config_dir = tmp_path / "xdg" / "lanes"
    config_dir.mkdir(parents=True)
    (config_dir / "config.ini").write_text("[feed]\nenabled = false\n", encoding="utf-8")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "lanes v0.1.0" in result.output


def test_project_add_and_list():
    result = runner.invoke(app, ["project", "add", "Work", "--json"])
    assert result.exit_code == 0
    project = json.loads(result.output)
    assert project["name"] == "Work"

    result = runner.invoke(app, ["project", "ls", "--json"])
    assert result.exit_code == 0
    assert [p["name"] for p in json.loads(result.output)] == ["Work"]

    result = runner.invoke(app, ["project", "ls"])
    assert "Work" in result.output


def test_project_add_rejects_blank_name():
    result = runner.invoke(app, ["project", "add", "  "])
    assert result.exit_code == 1
    assert "Project name cannot be empty" in result.output


def test_column_and_task_commands():
    project = service.create_project("Work")

    result = runner.invoke(app, ["column", "add", "Todo", "--project", str(project.id), "--json"])
    assert result.exit_code == 0
    todo = json.loads(result.output)
    result = runner.invoke(app, ["column", "add", "Done", "--project", str(project.id)])
    assert result.exit_code == 0

    result = runner.invoke(app, ["column", "ls", "--project", str(project.id), "--json"])
    assert [c["name"] for c in json.loads(result.output)] == ["Todo", "Done"]

    result = runner.invoke(app, ["task", "add", "Write spec", "--project", str(project.id), "--json"])
    assert result.exit_code == 0
    task = json.loads(result.output)
    assert task["column_id"] == todo["id"]
    assert task["position"] == 0

    result = runner.invoke(app, ["task", "ls", "--project", str(project.id), "--json"])
    rows = json.loads(result.output)
    assert [(r["title"], r["column"], r["position"]) for r in rows] == [("Write spec", "Todo", 0)]


def test_task_add_needs_a_target():
    result = runner.invoke(app, ["task", "add", "Lost"])
    assert result.exit_code == 1
    assert "Give --column or --project" in result.output


def test_missing_project_is_an_error():
    result = runner.invoke(app, ["column", "ls", "--project", "42"])
    assert result.exit_code == 1
    assert "Project 42 not found" in result.output


def test_project_rm():
    project = service.create_project("Old")
    result = runner.invoke(app, ["project", "rm", str(project.id), "--yes"])
    assert result.exit_code == 0
    assert service.get_project(project.id) is None

    result = runner.invoke(app, ["project", "rm", str(project.id), "--yes"])
    assert result.exit_code == 1
