import asyncio
from urllib.parse import urlsplit

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import Text

from conftest import FakeModel
from chartsense.infrastructure.db.models import AnalysisModel
from chartsense.infrastructure.db.repositories.analysis_repository import AnalysisRepository
from chartsense.domain.services.analysis_service import ChartAnalysisService
from chartsense.infrastructure.llm.vision_client import VisionClient

USER_ID = "22222222-2222-2222-2222-222222222222"


def _files(data: bytes):
    return {"image": ("chart.png", data, "image/png")}


async def _submit(client, png_bytes, **form):
    data = {"asset": "EUR/USD", "timeframe": "1m", "strategy": "simple"}
    data.update(form)
    return await client.post("/api/v1/analyses", data=data, files=_files(png_bytes))


async def _no_sleep(_seconds: float) -> None:
    return None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_submit_stores_and_analyzes(client, png_bytes):
    resp = await _submit(client, png_bytes, user_id=USER_ID)
    assert resp.status_code == 200
    body = resp.json()

    assert body["status"] == "done"
    assert body["result"]["action"] == "buy"

    fetched = await client.get(f"/api/v1/analyses/{body['id']}")
    assert fetched.status_code == 200
    record = fetched.json()
    assert record["status"] == "done"
    assert record["user_id"] == USER_ID
    assert record["image_path"].startswith(f"{USER_ID}/")
    assert record["result_json"]["schedule"]["timeframe_seconds"] == 60
    assert record["image_url"].startswith("/api/v1/charts/")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_signed_image_url_serves_chart(client, png_bytes):
    body = (await _submit(client, png_bytes)).json()
    record = (await client.get(f"/api/v1/analyses/{body['id']}")).json()

    image = await client.get(record["image_url"])
    assert image.status_code == 200
    assert image.headers["content-type"] == "image/png"
    assert image.content == png_bytes

    path = urlsplit(record["image_url"]).path
    tampered = await client.get(f"{path}?expires=9999999999&signature=00")
    assert tampered.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_failed_analysis_is_recorded(app, client, config_engine, png_bytes):
    vision = VisionClient(model=FakeModel([asyncio.TimeoutError()]), max_retries=0, sleep=_no_sleep)
    app.state.analysis_service = ChartAnalysisService(vision, config_engine.timeframe_registry)

    resp = await _submit(client, png_bytes)
    assert resp.status_code == 504
    detail = resp.json()["detail"]
    assert detail["status"] == "error"
    assert set(detail) == {"id", "error", "status"}

    record = (await client.get(f"/api/v1/analyses/{detail['id']}")).json()
    assert record["status"] == "error"
    assert "timed out" in record["error"]
    assert record["result_json"] is None
    assert record["countdown"] is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_submit_rejects_invalid_image_without_record(client):
    resp = await _submit(client, b"nope")
    assert resp.status_code == 400

    history = (await client.get("/api/v1/analyses")).json()
    assert history["total"] == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_unknown_analysis(client):
    resp = await client.get("/api/v1/analyses/33333333-3333-3333-3333-333333333333")
    assert resp.status_code == 404

    resp = await client.get("/api/v1/analyses/not-a-uuid")
    assert resp.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_history_filters_and_limit(client, png_bytes):
    await _submit(client, png_bytes, user_id=USER_ID)
    await _submit(client, png_bytes, asset="BTC/USD", timeframe="5m")
    await _submit(client, png_bytes, user_id=USER_ID, timeframe="5m")

    body = (await client.get("/api/v1/analyses")).json()
    assert body["total"] == 3
    assert body["filters"]["limit"] == 20
    assert all(item["result_json"]["action"] == "buy" for item in body["analyses"])
    assert all(item["error"] is None for item in body["analyses"])

    mine = (await client.get("/api/v1/analyses", params={"user_id": USER_ID})).json()
    assert mine["total"] == 2

    btc = (await client.get("/api/v1/analyses", params={"asset": "BTC/USD"})).json()
    assert [item["timeframe"] for item in btc["analyses"]] == ["5m"]

    limited = (await client.get("/api/v1/analyses", params={"limit": 1})).json()
    assert limited["total"] == 1

    assert (await client.get("/api/v1/analyses", params={"limit": 0})).status_code == 422
    assert (await client.get("/api/v1/analyses", params={"limit": 101})).status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unexpected_failure_hides_raw_error(app, client, config_engine, png_bytes):
    vision = VisionClient(model=FakeModel([RuntimeError("SELECT secret FROM vault")]), sleep=_no_sleep)
    app.state.analysis_service = ChartAnalysisService(vision, config_engine.timeframe_registry)

    resp = await _submit(client, png_bytes)
    assert resp.status_code == 500
    assert "vault" not in resp.text

    record = (await client.get(f"/api/v1/analyses/{resp.json()['detail']['id']}")).json()
    assert "vault" in record["error"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_long_free_form_labels_are_accepted(client, png_bytes):
    strategy = "custom-" + "x" * 60
    asset = "SYNTHETIC/" + "A" * 80

    resp = await _submit(client, png_bytes, asset=asset, timeframe="tick-" + "9" * 40, strategy=strategy)
    assert resp.status_code == 200
    result = resp.json()["result"]
    assert result["strategy"] == strategy
    assert result["schedule"]["timeframe_seconds"] == 60
    assert "gale_1_entry_iso" not in result["schedule"]

    record = (await client.get(f"/api/v1/analyses/{resp.json()['id']}")).json()
    assert record["asset"] == asset


@pytest.mark.integration
def test_label_columns_are_unbounded():
    for name in ("asset", "timeframe", "strategy"):
        assert isinstance(AnalysisModel.__table__.c[name].type, Text)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_chart_is_removed_when_record_cannot_be_created(app, chart_storage, png_bytes, monkeypatch):
    async def failing_create(self, **kwargs):
        raise RuntimeError("insert rejected")

    monkeypatch.setattr(AnalysisRepository, "create", failing_create)

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        resp = await _submit(ac, png_bytes)

    assert resp.status_code == 500
    assert [p for p in chart_storage.root_dir.rglob("*") if p.is_file()] == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_record_includes_countdown(client, png_bytes):
    body = (await _submit(client, png_bytes, strategy="1-gale")).json()

    countdown = (await client.get(f"/api/v1/analyses/{body['id']}")).json()["countdown"]
    assert countdown["phase"] == "entry"
    assert 0 < countdown["remaining_seconds"] <= 65
    assert 0 <= countdown["progress"] <= 100
    assert countdown["display"]
