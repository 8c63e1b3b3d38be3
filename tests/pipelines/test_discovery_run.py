from __future__ import annotations

import json
from pathlib import Path

from pipelines import discovery_run
from tests.utils import write_fixture


def test_cli_writes_response_json(tmp_path: Path, stub_metrics):
    fixtures = tmp_path / "fixtures"
    write_fixture(fixtures, "techcrunch", [{"name": "Acme AI", "tags": ["ai"], "daysAgo": 1}])
    write_fixture(fixtures, "hackernews", [{"name": "Acme AI Inc.", "daysAgo": 2}])
    output = tmp_path / "out" / "response.json"

    exit_code = discovery_run.main(
        ["--query", "ai", "--mode", "fixture", "--fixture-dir", str(fixtures), "--output", str(output)]
    )

    assert exit_code == 0
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert [record["name"] for record in payload["records"]] == ["Acme AI Inc."]
    assert payload["summary"]["totalSources"] == 2
    assert payload["intent"]["domain"] == "AI"


def test_cli_returns_one_on_configuration_error(tmp_path: Path, stub_metrics):
    exit_code = discovery_run.main(
        ["--query", "ai", "--mode", "fixture", "--fixture-dir", str(tmp_path / "missing")]
    )

    assert exit_code == 1


def test_cli_prints_to_stdout_when_no_output(tmp_path: Path, stub_metrics, capsys):
    write_fixture(tmp_path, "blog", [{"name": "Zeta", "daysAgo": 1}])

    exit_code = discovery_run.main(["--mode", "fixture", "--fixture-dir", str(tmp_path)])

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["records"][0]["name"] == "Zeta"
