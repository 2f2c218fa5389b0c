# tests/test_cli.py

import json
import logging

import pytest

from chartint.cli import main


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _write(tmp_path, name, data):
    path = tmp_path / name
    path.write_text(json.dumps(data) if not isinstance(data, str) else data)
    return str(path)


class TestCli:
    def test_prints_verdict_and_json(self, tmp_path, capsys, chart_facts):
        facts = _write(tmp_path, "facts.json", chart_facts)
        assert main([facts, "--compact", "--log-level", "ERROR"]) == 0
        out = capsys.readouterr().out
        assert "PATTERN: pattern.JEONG_GWAN" in out
        payload = json.loads(out.strip().splitlines()[-1])
        assert payload["patterns"]["best"] == "pattern.JEONG_GWAN"
        assert "hits" in payload

    def test_only_hits_with_config(self, tmp_path, capsys, chart_facts):
        facts = _write(tmp_path, "facts.json", chart_facts)
        config = _write(tmp_path, "config.json", {"version": "cli-test"})
        assert main([facts, "--only", "hits", "--config", config, "--compact"]) == 0
        payload = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert payload["config_id"] == "cli-test"
        assert "patterns" not in payload

    def test_unreadable_facts(self, tmp_path):
        assert main([str(tmp_path / "missing.json")]) == 2
        assert main([_write(tmp_path, "bad.json", "{not json")]) == 2
        assert main([_write(tmp_path, "list.json", [1, 2])]) == 2
