"""Tests for the plan and apply CLI commands."""

import json

import pytest

from groundwork.cli.main import build_parser, main, settings_from_args
from groundwork.core.errors import ExitCode

MANIFEST = """
resources:
  - name: network
    type: aws:ec2/vpc
    properties:
      cidr_block: 10.0.0.0/16
  - name: alerts
    type: aws:sns/topic
    properties:
      name: alerts-${network.id}
"""


@pytest.fixture
def manifest(tmp_path):
    path = tmp_path / "stack.yaml"
    path.write_text(MANIFEST)
    return path


def run(argv):
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


class TestPlanCommand:
    def test_plan_text(self, manifest, tmp_path, capsys):
        code = run(["plan", str(manifest), "--state", str(tmp_path / "state.json")])

        out = capsys.readouterr().out
        assert code == ExitCode.SUCCESS
        assert "2 to create" in out
        assert "network:create" in out
        assert not (tmp_path / "state.json").exists()

    def test_plan_json(self, manifest, tmp_path, capsys):
        code = run(
            ["plan", str(manifest), "--state", str(tmp_path / "s.json"), "--output", "json"]
        )

        data = json.loads(capsys.readouterr().out)
        assert code == 0
        assert data["summary"]["create"] == 2
        assert [[s["id"] for s in wave] for wave in data["waves"]] == [
            ["network:create"],
            ["alerts:create"],
        ]

    def test_plan_missing_manifest(self, tmp_path):
        assert run(["plan", str(tmp_path / "nope.yaml")]) == ExitCode.CONFIG_ERROR

    def test_plan_cycle(self, tmp_path, capsys):
        path = tmp_path / "cycle.yaml"
        path.write_text(
            "resources:\n"
            "  - {name: a, type: 't:a', properties: {p: '${b.id}'}}\n"
            "  - {name: b, type: 't:b', properties: {p: '${a.id}'}}\n"
        )

        code = run(["plan", str(path), "--state-backend", "memory"])

        assert code == ExitCode.CONFIG_ERROR
        assert "Dependency cycle detected" in capsys.readouterr().out

    def test_plan_malformed_lookup(self, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text(
            "resources:\n"
            "  - {name: web, type: 'aws:ec2/instance', properties: {ami: {$lookup: ami}}}\n"
        )

        code = run(["plan", str(path), "--state-backend", "memory"])

        assert code == ExitCode.CONFIG_ERROR
        assert "LookupFailedError" in capsys.readouterr().out


class TestApplyCommand:
    def test_apply_then_plan(self, manifest, tmp_path, capsys):
        state = str(tmp_path / "state.json")

        assert run(["apply", str(manifest), "--state", state]) == ExitCode.SUCCESS
        assert "Applied 2 steps" in capsys.readouterr().out

        assert run(["plan", str(manifest), "--state", state, "--output", "json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["summary"] == {"create": 0, "update": 0, "replace": 0, "delete": 0}
        assert data["waves"] == []

    def test_apply_json_sqlite(self, manifest, tmp_path, capsys):
        db = tmp_path / "state.db"

        code = run(
            [
                "apply",
                str(manifest),
                "--state-backend",
                "sqlite",
                "--state",
                str(db),
                "--output",
                "json",
            ]
        )

        data = json.loads(capsys.readouterr().out)
        assert code == 0
        assert data["status"] == "success"
        assert {step["step"] for step in data["steps"]} == {"network:create", "alerts:create"}
        assert db.exists()

    def test_apply_cycle_aborts(self, tmp_path, capsys):
        path = tmp_path / "cycle.yaml"
        path.write_text(
            "resources:\n"
            "  - {name: a, type: 't:a', properties: {p: '${b.id}'}}\n"
            "  - {name: b, type: 't:b', properties: {p: '${a.id}'}}\n"
        )

        code = run(["apply", str(path), "--state-backend", "memory"])

        out = capsys.readouterr().out
        assert code == ExitCode.CONFIG_ERROR
        assert "Apply aborted" in out
        assert "cycle=" in out


class TestArguments:
    def test_flags_override_settings(self, tmp_path):
        args = build_parser().parse_args(
            ["apply", "m.yaml", "--concurrency", "3", "--max-attempts", "2", "--state", "x.json"]
        )

        settings = settings_from_args(args)

        assert settings.max_concurrency == 3
        assert settings.max_attempts == 2
        assert settings.state_path == "x.json"

    def test_sqlite_state_becomes_url(self):
        args = build_parser().parse_args(
            ["plan", "m.yaml", "--state-backend", "sqlite", "--state", "db/state.db"]
        )

        assert settings_from_args(args).database_url == "sqlite:///db/state.db"

    def test_invalid_concurrency(self, capsys):
        assert run(["plan", "m.yaml", "--concurrency", "0"]) == ExitCode.CONFIG_ERROR

    def test_no_command_prints_help(self, capsys):
        assert run([]) == 0
        assert "usage" in capsys.readouterr().out
