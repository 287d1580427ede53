"""Hotspot endpoint tests."""

import pytest
from fastapi import status
from httpx import ASGITransport, AsyncClient

from hotspot_service.modules.hotspot.store import RecordStoreError

CREATE_PAYLOAD = {
    "name": "Board games night",
    "category": "entertainment",
    "location": {"latitude": 40.7128, "longitude": -74.006},
    "max_capacity": 8,
    "tags": ["games"],
}

SEARCH_PAYLOAD = {
    "geospatial_query": {
        "center": {"latitude": 40.7128, "longitude": -74.006},
        "radius_km": 5,
    },
    "pagination": {"limit": 10},
}


async def create_hotspot(client: AsyncClient, **overrides) -> dict:
    response = await client.post("/v1/hotspots/", json={**CREATE_PAYLOAD, **overrides})
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()["data"]


@pytest.mark.asyncio
async def test_create_requires_user(public_client: AsyncClient):
    response = await public_client.post("/v1/hotspots/", json=CREATE_PAYLOAD)

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["message_code"] == "AUTH_REQUIRED"


@pytest.mark.asyncio
async def test_create_and_get(authorized_client: AsyncClient):
    created = await create_hotspot(authorized_client)

    response = await authorized_client.get(f"/v1/hotspots/{created['id']}")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["message_code"] == "SUCCESS"
    assert body["data"]["created_by"] == "alice"
    assert body["data"]["attendees"] == ["alice"]


@pytest.mark.asyncio
async def test_create_invalid_payload(authorized_client: AsyncClient):
    response = await authorized_client.post(
        "/v1/hotspots/",
        json={**CREATE_PAYLOAD, "location": {"latitude": 91, "longitude": 0}},
    )

    assert response.status_code == 422
    assert response.json()["message_code"] == "INVALID_INPUT"


@pytest.mark.asyncio
async def test_get_missing_returns_404(authorized_client: AsyncClient):
    response = await authorized_client.get("/v1/hotspots/does-not-exist")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message_code"] == "HOTSPOT_NOT_FOUND"


@pytest.mark.asyncio
async def test_list_mine(authorized_client: AsyncClient, client_factory):
    mine = await create_hotspot(authorized_client)
    async with client_factory("bob") as bob_client:
        await create_hotspot(bob_client)

    response = await authorized_client.get("/v1/hotspots/mine")

    assert [h["id"] for h in response.json()["data"]] == [mine["id"]]


@pytest.mark.asyncio
async def test_update_and_ownership(authorized_client: AsyncClient, client_factory):
    created = await create_hotspot(authorized_client)

    response = await authorized_client.put(
        f"/v1/hotspots/{created['id']}", json={"description": "Bring your own"}
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["description"] == "Bring your own"

    async with client_factory("bob") as bob_client:
        response = await bob_client.put(
            f"/v1/hotspots/{created['id']}", json={"name": "Hijacked"}
        )
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["message_code"] == "HOTSPOT_FORBIDDEN"


@pytest.mark.asyncio
async def test_join_and_leave(authorized_client: AsyncClient, client_factory):
    created = await create_hotspot(authorized_client)
    path = f"/v1/hotspots/{created['id']}"

    async with client_factory("bob") as bob_client:
        joined = await bob_client.post(f"{path}/join")
        again = await bob_client.post(f"{path}/join")

    assert joined.status_code == status.HTTP_200_OK
    assert joined.json()["data"]["current_occupancy"] == 2
    assert again.status_code == status.HTTP_409_CONFLICT
    assert again.json()["message_code"] == "HOTSPOT_ALREADY_MEMBER"

    left = await authorized_client.post(f"{path}/leave")
    assert left.json()["message_code"] == "HOTSPOT_LEFT"
    assert left.json()["data"]["created_by"] == "bob"


@pytest.mark.asyncio
async def test_delete(authorized_client: AsyncClient):
    created = await create_hotspot(authorized_client)

    response = await authorized_client.delete(f"/v1/hotspots/{created['id']}")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["message_code"] == "HOTSPOT_DELETED"

    response = await authorized_client.get(f"/v1/hotspots/{created['id']}")
    assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
async def test_legacy_search(authorized_client: AsyncClient):
    created = await create_hotspot(authorized_client)
    await create_hotspot(authorized_client, category="park")

    response = await authorized_client.get(
        "/v1/hotspots/search",
        params={
            "latitude": 40.7128,
            "longitude": -74.006,
            "radius_km": 2,
            "category": "entertainment",
        },
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["total"] == 1
    assert data["hotspots"][0]["hotspot"]["id"] == created["id"]


@pytest.mark.asyncio
async def test_optimized_search_without_cache(authorized_client: AsyncClient):
    created = await create_hotspot(authorized_client)

    response = await authorized_client.post(
        "/v1/hotspots/search/optimized", json=SEARCH_PAYLOAD
    )

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["message_code"] == "SEARCH_COMPLETED"
    assert body["data"]["cache_hit"] is False
    assert [r["hotspot"]["id"] for r in body["data"]["individual_hotspots"]] == [
        created["id"]
    ]


@pytest.mark.asyncio
async def test_nearby_returns_active_hotspots_within_5km(
    authorized_client: AsyncClient, client_factory
):
    close = await create_hotspot(authorized_client)
    await create_hotspot(
        authorized_client, location={"latitude": 40.7128, "longitude": -73.9}
    )
    async with client_factory("bob") as bob_client:
        abandoned = await create_hotspot(bob_client)
        await bob_client.post(f"/v1/hotspots/{abandoned['id']}/leave")

    response = await authorized_client.get(
        "/v1/hotspots/nearby", params={"latitude": 40.7128, "longitude": -74.006}
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["total"] == 1
    assert [r["hotspot"]["id"] for r in data["hotspots"]] == [close["id"]]


@pytest.mark.asyncio
async def test_nearby_requires_coordinates(authorized_client: AsyncClient):
    response = await authorized_client.get(
        "/v1/hotspots/nearby", params={"latitude": 40.7128}
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_optimized_search_clusters_by_default(authorized_client: AsyncClient):
    for _ in range(3):
        await create_hotspot(authorized_client)

    default = await authorized_client.post(
        "/v1/hotspots/search/optimized", json=SEARCH_PAYLOAD
    )
    unclustered = await authorized_client.post(
        "/v1/hotspots/search/optimized",
        json={**SEARCH_PAYLOAD, "clustering": {"mode": "none"}},
    )

    data = default.json()["data"]
    assert data["cluster_count"] == 1
    assert data["clusters"][0]["hotspot_count"] == 3
    assert data["individual_hotspots"] == []
    assert len(unclustered.json()["data"]["individual_hotspots"]) == 3


@pytest.mark.asyncio
async def test_optimized_search_missing_center(authorized_client: AsyncClient):
    response = await authorized_client.post(
        "/v1/hotspots/search/optimized", json={"geospatial_query": {"radius_km": 5}}
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message_code"] == "INVALID_QUERY"


@pytest.mark.asyncio
async def test_optimized_search_cached(cached_app, client_factory):
    async with client_factory("alice") as client:
        await create_hotspot(client)
        first = await client.post("/v1/hotspots/search/optimized", json=SEARCH_PAYLOAD)
        second = await client.post("/v1/hotspots/search/optimized", json=SEARCH_PAYLOAD)

    assert first.json()["data"]["cache_hit"] is False
    assert second.json()["data"]["cache_hit"] is True
    assert second.json()["data"]["total_count"] == 1


@pytest.mark.asyncio
async def test_store_outage_returns_503(app, authorized_client: AsyncClient, monkeypatch):
    async def broken_scan():
        raise RecordStoreError("backend down")

    monkeypatch.setattr(app.state.hotspot_service.store, "scan", broken_scan)

    response = await authorized_client.post(
        "/v1/hotspots/search/optimized", json=SEARCH_PAYLOAD
    )

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json()["message_code"] == "STORE_UNAVAILABLE"
    assert response.headers["retry-after"] == "5"


@pytest.mark.asyncio
async def test_cache_stats(public_client: AsyncClient):
    response = await public_client.get("/v1/hotspots/cache/stats")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["available"] is False


@pytest.mark.asyncio
async def test_request_id_echoed(app):
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test-hotspot-service"
    ) as client:
        response = await client.get(
            "/v1/hotspots/cache/stats", headers={"X-Request-ID": "req-123"}
        )

    assert response.headers["x-request-id"] == "req-123"


@pytest.mark.asyncio
async def test_request_id_generated_when_absent(public_client: AsyncClient):
    first = await public_client.get("/v1/hotspots/cache/stats")
    second = await public_client.get("/v1/hotspots/cache/stats")

    assert len(first.headers["x-request-id"]) == 32
    assert first.headers["x-request-id"] != second.headers["x-request-id"]
