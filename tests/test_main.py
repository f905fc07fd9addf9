from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from nurserysync.config import Settings
from nurserysync.main import register_routes
from nurserysync.services.gateway import RemoteCatalogGateway
from nurserysync.services.media import StorageMediaUploader
from nurserysync.session import CatalogSession


def _offline_app(**overrides) -> FastAPI:
    """App whose store is unconfigured, so reads come from the bundled dataset."""

    settings = Settings(_env_file=None, **overrides)
    app = FastAPI()
    register_routes(app)
    app.state.catalog_session = CatalogSession(
        settings,
        RemoteCatalogGateway(settings, None),
        media=StorageMediaUploader(settings, None),
    )
    return app


def test_healthcheck() -> None:
    with TestClient(_offline_app()) as client:
        response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_list_plants_falls_back_to_bundled_dataset() -> None:
    with TestClient(_offline_app()) as client:
        response = client.get("/plants")

    assert response.status_code == 200
    payload = response.json()
    assert payload["degraded"] is True
    assert payload["hasMore"] is False
    assert payload["totalCount"] == 8
    assert payload["items"][0]["common_name"] == "Baby's Tears"
    assert "images" in payload["items"][0]


def test_list_plants_applies_search_and_sort() -> None:
    with TestClient(_offline_app()) as client:
        response = client.get("/plants", params={"search": "e", "sort": "price", "direction": "desc"})

    assert response.status_code == 200
    prices = [item["price"] for item in response.json()["items"]]
    present = [price for price in prices if price is not None]
    assert present == sorted(present, reverse=True)
    assert prices[: len(present)] == present


def test_list_plants_returns_only_requested_pages() -> None:
    with TestClient(_offline_app(PAGE_SIZE=3)) as client:
        everything = client.get("/plants", params={"pages": 3})
        first = client.get("/plants", params={"pages": 1})

    assert len(everything.json()["items"]) == 8
    assert everything.json()["hasMore"] is False
    payload = first.json()
    assert [item["id"] for item in payload["items"]] == [7, 8, 3]
    assert payload["hasMore"] is True


def test_list_plants_rejects_unknown_sort() -> None:
    with TestClient(_offline_app()) as client:
        response = client.get("/plants", params={"sort": "height"})

    assert response.status_code == 400


def test_get_plant_from_bundled_dataset() -> None:
    with TestClient(_offline_app()) as client:
        response = client.get("/plants/3")

    assert response.status_code == 200
    payload = response.json()
    assert payload["item"]["common_name"] == "Blue Fescue"
    assert payload["degraded"] is True
    assert payload["notFound"] is False


def test_get_unknown_plant_returns_404() -> None:
    with TestClient(_offline_app()) as client:
        response = client.get("/plants/999")

    assert response.status_code == 404


def test_mutations_report_unreachable_store() -> None:
    with TestClient(_offline_app()) as client:
        acquired = client.post("/plants/3/acquired")
        media = client.put("/plants/3/media", json={"mediaRef": "https://cdn.example.com/a.jpg"})

    assert acquired.status_code == 502
    assert media.status_code == 502


def test_blank_media_reference_is_a_client_error() -> None:
    with TestClient(_offline_app()) as client:
        response = client.put("/plants/3/media", json={"mediaRef": "  "})

    assert response.status_code == 400


def test_upload_without_storage_returns_502() -> None:
    with TestClient(_offline_app()) as client:
        response = client.post(
            "/plants/3/media/upload",
            params={"filename": "leaf.png"},
            content=b"\x89PNG",
            headers={"content-type": "image/png"},
        )

    assert response.status_code == 502


def test_empty_upload_is_rejected() -> None:
    with TestClient(_offline_app()) as client:
        response = client.post("/plants/3/media/upload", content=b"")

    assert response.status_code == 400
