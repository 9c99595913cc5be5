"""API tests for /me (profile, identifiers, deletion hold)."""

import pytest

from slowpost.services import recipient_resolver
from slowpost.services.addressing import Email


@pytest.mark.asyncio
async def test_get_me(authed_client, sender):
    response = await authed_client.get("/me")

    assert response.status_code == 200
    data = response.json()
    assert data["username"] == "sender"
    assert data["region"] == "Lyon, FR"
    assert data["marked_for_deletion_at"] is None


@pytest.mark.asyncio
async def test_add_and_list_identifiers(authed_client):
    response = await authed_client.post(
        "/me/identifiers",
        json={"identifier_type": "email", "value": "  Sender@Example.COM "},
    )
    assert response.status_code == 201
    assert response.json()["value_normalized"] == "sender@example.com"

    listing = await authed_client.get("/me/identifiers")
    assert [i["value_normalized"] for i in listing.json()] == ["sender@example.com"]


@pytest.mark.asyncio
async def test_identifier_taken(authed_client, login, recipient):
    payload = {"identifier_type": "phone", "value": "+1 (555) 010-0200"}
    assert (await authed_client.post("/me/identifiers", json=payload)).status_code == 201

    login(authed_client, recipient)
    response = await authed_client.post("/me/identifiers", json=payload)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_identifier_empty_after_normalization(authed_client):
    response = await authed_client.post(
        "/me/identifiers",
        json={"identifier_type": "phone", "value": "call me"},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_deletion_hold_round_trip(authed_client):
    marked = await authed_client.post("/me/delete")
    assert marked.status_code == 200
    assert marked.json()["marked_for_deletion_at"] == "2024-01-08T09:00:00Z"

    blocked = await authed_client.post(
        "/me/identifiers",
        json={"identifier_type": "email", "value": "sender@example.com"},
    )
    assert blocked.status_code == 423

    cancelled = await authed_client.post("/me/cancel-delete")
    assert cancelled.status_code == 200
    assert cancelled.json()["marked_for_deletion_at"] is None


@pytest.mark.asyncio
async def test_update_profile_is_partial(authed_client):
    response = await authed_client.put(
        "/me",
        json={"timezone": "Asia/Tokyo", "discoverable_by_email": True},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["timezone"] == "Asia/Tokyo"
    assert data["discoverable_by_email"] is True
    assert data["discoverable_by_phone"] is False
    assert data["region"] == "Lyon, FR"


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_zone", ["Mars/Base", "Asia/Calcutta", "EST"])
async def test_update_profile_rejects_invalid_timezone(authed_client, bad_zone):
    response = await authed_client.put("/me", json={"timezone": bad_zone})
    assert response.status_code == 400

    me = await authed_client.get("/me")
    assert me.json()["timezone"] == "UTC"


@pytest.mark.asyncio
async def test_update_profile_rejects_blank_region(authed_client):
    response = await authed_client.put("/me", json={"region": "   "})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_profile_requires_csrf_header(authed_client):
    response = await authed_client.put(
        "/me", json={"region": "Oslo, NO"}, headers={"X-Requested-With": ""}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_profile_refused_during_deletion_hold(authed_client):
    await authed_client.post("/me/delete")

    response = await authed_client.put("/me", json={"region": "Oslo, NO"})
    assert response.status_code == 423


@pytest.mark.asyncio
async def test_discoverability_opt_in_enables_routing(authed_client, db, sender):
    await authed_client.post(
        "/me/identifiers", json={"identifier_type": "email", "value": "sender@example.com"}
    )
    assert not recipient_resolver.resolve(db, Email("sender@example.com")).resolved

    await authed_client.put("/me", json={"discoverable_by_email": True})
    db.expire_all()
    assert recipient_resolver.resolve(db, Email("sender@example.com")).user.id == sender.id


@pytest.mark.asyncio
async def test_remove_identifier(authed_client):
    created = await authed_client.post(
        "/me/identifiers", json={"identifier_type": "email", "value": "sender@example.com"}
    )
    identifier_id = created.json()["id"]

    response = await authed_client.delete(f"/me/identifiers/{identifier_id}")

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert (await authed_client.get("/me/identifiers")).json() == []


@pytest.mark.asyncio
async def test_cannot_remove_someone_elses_identifier(authed_client, login, recipient):
    created = await authed_client.post(
        "/me/identifiers", json={"identifier_type": "phone", "value": "+1 555 010 0200"}
    )
    identifier_id = created.json()["id"]

    login(authed_client, recipient)
    response = await authed_client.delete(f"/me/identifiers/{identifier_id}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_remove_identifier_refused_during_deletion_hold(authed_client):
    created = await authed_client.post(
        "/me/identifiers", json={"identifier_type": "email", "value": "sender@example.com"}
    )
    await authed_client.post("/me/delete")

    response = await authed_client.delete(f"/me/identifiers/{created.json()['id']}")
    assert response.status_code == 423
