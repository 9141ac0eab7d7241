import asyncio
import json

import pytest

from signage_takeoff import gemini_client, run
from signage_takeoff.errors import AnalysisCancelled

from conftest import StubClient, make_image, ok


@pytest.fixture
def sheet(tmp_path):
    path = tmp_path / "sheet.png"
    make_image(300, 200).save(path)
    return path


def test_writes_takeoff_json(sheet, tmp_path, monkeypatch):
    client = StubClient(ok({"takeoff": [{"sheet": "S1", "signType": "A1"}], "catalog": []}))
    monkeypatch.setattr(run, "GeminiClient", lambda: client)
    out = tmp_path / "out.json"

    assert run.main([str(sheet), "--out", str(out)]) == 0
    data = json.loads(out.read_text())
    assert data["takeoff"][0]["signType"] == "A1"
    assert data["takeoff"][0]["pageNumber"] == 1


def test_missing_api_key_exits_with_failure(sheet, tmp_path, monkeypatch):
    monkeypatch.setattr(gemini_client, "GEMINI_API_KEY", None)
    out = tmp_path / "out.json"
    assert run.main([str(sheet), "--out", str(out)]) == 1
    assert not out.exists()


def test_cancel_event_reaches_the_analysis(sheet, tmp_path, monkeypatch):
    cancel = asyncio.Event()
    client = StubClient(ok({"takeoff": [], "catalog": []}), on_call=cancel.set)
    monkeypatch.setattr(run, "GeminiClient", lambda: client)
    args = run.build_parser().parse_args([str(sheet), "--out", str(tmp_path / "out.json")])

    with pytest.raises(AnalysisCancelled):
        asyncio.run(run.main_async(args, cancel=cancel))
    assert not (tmp_path / "out.json").exists()


def test_cancellation_exit_code(sheet, monkeypatch):
    async def cancelled(args):
        raise AnalysisCancelled()

    monkeypatch.setattr(run, "main_async", cancelled)
    assert run.main([str(sheet)]) == 130
