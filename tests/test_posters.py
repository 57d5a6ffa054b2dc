"""
Tests for poster endpoints, including seat resizing against held bookings.
"""

import base64

import pytest
from httpx import AsyncClient

from tests.conftest import assert_ledger_consistent, headers_for, ledger_state

POSTER = {
    "event_title": "Winter Gala",
    "event_date": "2026-12-20",
    "location": "Ballroom",
    "time": "20:00",
    "description": "Formal dress",
    "seats": 50,
    "price": 15,
}


async def _book(client: AsyncClient, user, poster_id: int, persons: int) -> dict:
    response = await client.post(
        "/api/v1/tickets/",
        json={"poster_id": poster_id, "number_of_persons": persons},
        headers=headers_for(user),
    )
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_create_poster(client: AsyncClient, head, event):
    response = await client.post(
        "/api/v1/posters/", json={**POSTER, "event_id": event.id}, headers=headers_for(head)
    )
    assert response.status_code == 201
    data = response.json()
    assert data["seats"] == 50
    assert data["seats_left"] == 50
    assert data["club_id"] == event.club_id
    assert data["head_id"] == head.id
    assert data["image"] is None


@pytest.mark.asyncio
async def test_create_poster_with_image(client: AsyncClient, head, event, tmp_path):
    image = base64.b64encode(b"\x89PNG fake").decode()
    response = await client.post(
        "/api/v1/posters/",
        json={**POSTER, "event_id": event.id, "image_base64": f"data:image/png;base64,{image}"},
        headers=headers_for(head),
    )
    assert response.status_code == 201
    path = response.json()["image"]
    assert path.startswith("/uploads/poster-") and path.endswith(".png")
    assert (tmp_path / path.rsplit("/", 1)[1]).read_bytes() == b"\x89PNG fake"


@pytest.mark.asyncio
async def test_create_poster_for_foreign_event(client: AsyncClient, other_head, student, event):
    for user in (other_head, student):
        response = await client.post(
            "/api/v1/posters/", json={**POSTER, "event_id": event.id}, headers=headers_for(user)
        )
        assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_poster_invalid_seats(client: AsyncClient, head, event):
    response = await client.post(
        "/api/v1/posters/", json={**POSTER, "event_id": event.id, "seats": 0}, headers=headers_for(head)
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_posters(client: AsyncClient, poster, club):
    response = await client.get("/api/v1/posters/?page=1&page_size=10")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["cached"] is False
    assert data["posters"][0]["id"] == poster.id

    response = await client.get(f"/api/v1/posters/?club_id={club.id + 1}")
    assert response.json()["total"] == 0

    response = await client.get(f"/api/v1/posters/club/{club.id}")
    assert [p["id"] for p in response.json()] == [poster.id]


@pytest.mark.asyncio
async def test_my_posters(client: AsyncClient, head, other_head, student, poster):
    response = await client.get("/api/v1/posters/my-posters", headers=headers_for(head))
    assert [p["id"] for p in response.json()] == [poster.id]

    response = await client.get("/api/v1/posters/my-posters", headers=headers_for(other_head))
    assert response.json() == []

    response = await client.get("/api/v1/posters/my-posters", headers=headers_for(student))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_my_and_club_posters_are_paginated(client: AsyncClient, head, event, poster, club):
    for title in ("Spring Fair", "Summer Ball"):
        response = await client.post(
            "/api/v1/posters/",
            json={**POSTER, "event_id": event.id, "event_title": title},
            headers=headers_for(head),
        )
        assert response.status_code == 201

    for url in ("/api/v1/posters/my-posters", f"/api/v1/posters/club/{club.id}"):
        first = await client.get(f"{url}?page=1&page_size=2", headers=headers_for(head))
        second = await client.get(f"{url}?page=2&page_size=2", headers=headers_for(head))
        assert len(first.json()) == 2
        assert len(second.json()) == 1
        ids = {p["id"] for p in first.json()} | {p["id"] for p in second.json()}
        assert len(ids) == 3

        response = await client.get(f"{url}?page_size=1000", headers=headers_for(head))
        assert response.status_code == 422


@pytest.mark.asyncio
async def test_resize_poster(client: AsyncClient, head, student, poster):
    await _book(client, student, poster.id, 3)
    url = f"/api/v1/posters/{poster.id}"

    response = await client.put(url, json={"seats": 15}, headers=headers_for(head))
    assert response.status_code == 200
    assert response.json()["seats"] == 15
    assert response.json()["seats_left"] == 12
    await assert_ledger_consistent(poster.id)

    response = await client.put(url, json={"seats": 2}, headers=headers_for(head))
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_seat_count"
    assert response.json()["reserved"] == 3
    assert await ledger_state(poster.id) == (15, 12, 3)

    response = await client.put(url, json={"seats": 3}, headers=headers_for(head))
    assert response.status_code == 200
    assert response.json()["seats_left"] == 0
    await assert_ledger_consistent(poster.id)


@pytest.mark.asyncio
async def test_update_poster_fields(client: AsyncClient, head, other_head, poster):
    url = f"/api/v1/posters/{poster.id}"

    response = await client.put(url, json={"location": "Gym"}, headers=headers_for(other_head))
    assert response.status_code == 403

    response = await client.put(url, json={"location": "Gym", "price": 5}, headers=headers_for(head))
    assert response.status_code == 200
    assert response.json()["location"] == "Gym"
    assert response.json()["price"] == 5
    assert response.json()["seats"] == 10


@pytest.mark.asyncio
async def test_delete_poster_removes_bookings(client: AsyncClient, head, student, poster):
    booking = await _book(client, student, poster.id, 2)

    response = await client.delete(f"/api/v1/posters/{poster.id}", headers=headers_for(head))
    assert response.status_code == 200

    assert (await client.get(f"/api/v1/posters/{poster.id}")).status_code == 404
    response = await client.get(f"/api/v1/tickets/{booking['id']}", headers=headers_for(student))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_get_missing_poster(client: AsyncClient, db_session):
    response = await client.get("/api/v1/posters/999999")
    assert response.status_code == 404
