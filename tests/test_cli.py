import json
from pathlib import Path

import pytest

from learnsync import cli


@pytest.fixture
def cache_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'cache.db'}"


def test_record_then_show(cache_url: str, capsys: pytest.CaptureFixture[str]) -> None:
    code = cli.main(
        ["--cache-url", cache_url, "record", "--course", "c1", "--lecture", "L1",
         "--time", "95", "--duration", "100"]
    )
    assert code == 0
    recorded = json.loads(capsys.readouterr().out)
    assert recorded["progressPercent"] == 95
    assert recorded["completed"] is True

    assert cli.main(["--cache-url", cache_url, "show", "--course", "c1"]) == 0
    shown = json.loads(capsys.readouterr().out)
    assert list(shown) == ["course-c1-lecture-L1-progress"]


def test_show_empty_course(cache_url: str, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["--cache-url", cache_url, "show", "--course", "c9"]) == 0
    assert "No cached progress" in capsys.readouterr().out


def test_sync_reports_unreachable_service(
    cache_url: str, capsys: pytest.CaptureFixture[str]
) -> None:
    cli.main(
        ["--cache-url", cache_url, "record", "--course", "c1", "--lecture", "L1",
         "--time", "10", "--duration", "100"]
    )
    capsys.readouterr()
    code = cli.main(
        ["--cache-url", cache_url, "sync", "--course", "c1", "--user", "learner-1",
         "--base-url", "http://127.0.0.1:9"]
    )
    assert code == 1
    assert "network_error" in capsys.readouterr().err
