"""
Tests for the WorldClim HTTP routes. Execution is stubbed; the compiled query is captured.
"""
import pytest
from fastapi.testclient import TestClient

import worldclim_query.worldclim.queries as queries
from worldclim_query.main import app
from worldclim_query.settings import S

POLYGON = {
    "type": "Polygon",
    "coordinates": [[[9.0, 44.0], [11.0, 44.0], [11.0, 46.0], [9.0, 46.0], [9.0, 44.0]]],
}


@pytest.fixture
def captured(monkeypatch):
    seen = []

    def fake_execute(compiled):
        seen.append(compiled)
        if compiled.result_mode.is_aggregate:
            row = {name: None for name in compiled.columns}
            row["count"] = 0
            return compiled.parse([row])
        return compiled.parse([])

    monkeypatch.setattr(queries, "execute", fake_execute)
    return seen


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def test_click(client, captured):
    resp = client.get("/worldclim/click/45.0/10.0")
    assert resp.status_code == 200
    assert resp.json() == []
    compiled = captured[0]
    assert compiled.predicate.value == "intersects"
    assert compiled.result_mode.value == "DATA"
    assert '"coordinates":[10.0,45.0]' in compiled.sql


def test_click_rejects_bad_latitude(client, captured):
    resp = client.get("/worldclim/click/95.0/10.0")
    assert resp.status_code == 422
    assert captured == []


def test_distance_selection(client, captured):
    resp = client.post(
        "/worldclim/dist/KEY/0/5000/ASC",
        json={"geometry": {"type": "Point", "coordinates": [10.0, 45.0]}, "start": 5, "limit": 20},
    )
    assert resp.status_code == 200
    assert resp.json() == []
    assert "LIMIT 20 OFFSET 5" in captured[0].sql
    assert " ASC" in captured[0].sql


def test_distance_aggregate_returns_one_record(client, captured):
    resp = client.post(
        "/worldclim/dist/AVG/0/5000/NO",
        json={"geometry": {"type": "Point", "coordinates": [10.0, 45.0]}},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert len(body) == 1
    assert body[0]["count"] == 0
    assert body[0]["distance"] is None
    assert body[0]["properties"]["1970-2000"]["bio01"] is None


def test_distance_inverted_range(client, captured):
    resp = client.post(
        "/worldclim/dist/KEY/5000/1000/NO",
        json={"geometry": {"type": "Point", "coordinates": [10.0, 45.0]}},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["field"] == "distance_bounds"
    assert captured == []


def test_distance_infinite_bound(client, captured):
    resp = client.post(
        "/worldclim/dist/KEY/0/inf/NO",
        json={"geometry": {"type": "Point", "coordinates": [10.0, 45.0]}},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["field"] == "distance_bounds"
    assert captured == []


def test_limit_over_maximum(client, captured):
    resp = client.post(
        "/worldclim/intersect/SHAPE",
        json={"geometry": POLYGON, "limit": S.max_page_limit + 1},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["field"] == "page_limit"


def test_contain_requires_polygon(client, captured):
    resp = client.post(
        "/worldclim/contain/DATA",
        json={"geometry": {"type": "Point", "coordinates": [10.0, 45.0]}},
    )
    assert resp.status_code == 422


def test_contain_data(client, captured):
    resp = client.post("/worldclim/contain/DATA", json={"geometry": POLYGON})
    assert resp.status_code == 200
    assert captured[0].joined is True


def test_unknown_result_mode(client, captured):
    resp = client.post("/worldclim/intersect/SUM", json={"geometry": POLYGON})
    assert resp.status_code == 422
