"""API tests for /letters."""

import uuid

import pytest

from slowpost.core.deps import get_send_rate_limiter
from slowpost.core.rate_limit import RateLimitDecision
from slowpost.db.enums import LetterStatus
from slowpost.db.models import Letter
from slowpost.main import app
from slowpost.services import delivery_sweep, letter_service
from slowpost.services.addressing import UserReference


class DenyingRateLimiter:
    def hit(self, key: str) -> RateLimitDecision:
        return RateLimitDecision.DENIED


async def _create_draft(client, value="recipient", addressing_type="user_reference"):
    response = await client.post(
        "/letters",
        json={"addressing_type": addressing_type, "addressing_value": value, "body": "Hi there"},
    )
    assert response.status_code == 201, response.text
    return response.json()


def _delivered_letter(db, sender, recipient, clock) -> Letter:
    letter = letter_service.create_draft(db, sender, UserReference(recipient.username), body="Hello")
    letter_service.send_letter(db, letter.id, sender.id, clock=clock)
    delivery_sweep.finalize_letter(db, letter, letter.scheduled_delivery_at)
    db.refresh(letter)
    return letter


# =============================================================================
# Drafts
# =============================================================================

@pytest.mark.asyncio
async def test_create_draft(authed_client, recipient):
    data = await _create_draft(authed_client)

    assert data["status"] == "draft"
    assert data["addressing_type"] == "user_reference"
    assert data["addressing_value"] == "recipient"
    # Resolution is never disclosed to the sender
    assert "recipient_user_id" not in data


@pytest.mark.asyncio
async def test_create_draft_to_unknown_user_looks_the_same(authed_client):
    data = await _create_draft(authed_client, value="nobody")
    assert data["status"] == "draft"
    assert "recipient_user_id" not in data


@pytest.mark.asyncio
async def test_create_draft_rejects_bad_addressing(authed_client):
    response = await authed_client.post(
        "/letters",
        json={"addressing_type": "phone", "addressing_value": "no digits here"},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_draft_rejects_unknown_addressing_type(authed_client):
    response = await authed_client.post(
        "/letters",
        json={"addressing_type": "carrier_pigeon", "addressing_value": "coo"},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_pen_pal_draft_accepts_recipient_user_id(authed_client, recipient):
    response = await authed_client.post(
        "/letters",
        json={"addressing_type": "pen_pal_match", "recipient_user_id": str(recipient.id)},
    )
    assert response.status_code == 201
    assert response.json()["addressing_value"] == str(recipient.id)


@pytest.mark.asyncio
async def test_requires_session_cookie(client):
    response = await client.post(
        "/letters",
        json={"addressing_type": "user_reference", "addressing_value": "recipient"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_revoked_session_is_rejected(authed_client, db, sender):
    sender.token_version += 1
    db.commit()

    response = await authed_client.get("/letters", params={"folder": "DRAFTS"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_mutations_require_csrf_header(authed_client, recipient):
    response = await authed_client.post(
        "/letters",
        json={"addressing_type": "user_reference", "addressing_value": "recipient"},
        headers={"X-Requested-With": ""},
    )
    assert response.status_code == 403


# =============================================================================
# Send
# =============================================================================

@pytest.mark.asyncio
async def test_send_returns_bare_success(authed_client, db, recipient):
    draft = await _create_draft(authed_client)

    response = await authed_client.post(f"/letters/{draft['id']}/send")

    assert response.status_code == 200
    assert response.json() == {"success": True}
    letter = db.get(Letter, uuid.UUID(draft["id"]))
    db.refresh(letter)
    assert letter.status == LetterStatus.IN_TRANSIT.value


@pytest.mark.asyncio
async def test_send_unknown_letter(authed_client):
    response = await authed_client.post(f"/letters/{uuid.uuid4()}/send")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_send_someone_elses_letter(authed_client, login, recipient):
    draft = await _create_draft(authed_client)

    login(authed_client, recipient)
    response = await authed_client.post(f"/letters/{draft['id']}/send")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_send_twice_conflicts(authed_client, recipient):
    draft = await _create_draft(authed_client)

    assert (await authed_client.post(f"/letters/{draft['id']}/send")).status_code == 200
    assert (await authed_client.post(f"/letters/{draft['id']}/send")).status_code == 409


@pytest.mark.asyncio
async def test_send_during_deletion_hold(authed_client, recipient):
    draft = await _create_draft(authed_client)
    assert (await authed_client.post("/me/delete")).status_code == 200

    response = await authed_client.post(f"/letters/{draft['id']}/send")
    assert response.status_code == 423


@pytest.mark.asyncio
async def test_fourth_send_hits_daily_limit(authed_client, recipient):
    drafts = [await _create_draft(authed_client) for _ in range(4)]
    for draft in drafts[:3]:
        assert (await authed_client.post(f"/letters/{draft['id']}/send")).status_code == 200

    response = await authed_client.post(f"/letters/{drafts[3]['id']}/send")
    assert response.status_code == 422

    listing = await authed_client.get("/letters", params={"folder": "DRAFTS"})
    assert [d["id"] for d in listing.json()] == [drafts[3]["id"]]


@pytest.mark.asyncio
async def test_send_rate_limited(authed_client, recipient):
    draft = await _create_draft(authed_client)
    app.dependency_overrides[get_send_rate_limiter] = lambda: DenyingRateLimiter()

    response = await authed_client.post(f"/letters/{draft['id']}/send")
    assert response.status_code == 429


@pytest.mark.asyncio
async def test_send_with_bad_recipient_timezone_is_server_error(authed_client, db, recipient):
    draft = await _create_draft(authed_client)
    recipient.timezone = "Not/AZone"
    db.commit()

    response = await authed_client.post(f"/letters/{draft['id']}/send")
    assert response.status_code == 500


@pytest.mark.asyncio
async def test_send_to_unresolved_address_looks_the_same(authed_client):
    draft = await _create_draft(authed_client, value="nobody@example.com", addressing_type="email")

    response = await authed_client.post(f"/letters/{draft['id']}/send")
    assert response.status_code == 200
    assert response.json() == {"success": True}


# =============================================================================
# Listing and recipient actions
# =============================================================================

@pytest.mark.asyncio
async def test_sent_letters_disappear_from_drafts(authed_client, recipient):
    sent = await _create_draft(authed_client)
    kept = await _create_draft(authed_client)
    await authed_client.post(f"/letters/{sent['id']}/send")

    response = await authed_client.get("/letters", params={"folder": "DRAFTS"})
    assert response.status_code == 200
    assert [d["id"] for d in response.json()] == [kept["id"]]


@pytest.mark.asyncio
async def test_unknown_folder_is_not_found(authed_client):
    response = await authed_client.get("/letters", params={"folder": "ARCHIVE"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_recipient_sees_delivered_letter_with_snapshot(
    authed_client, login, db, sender, recipient, clock
):
    letter = _delivered_letter(db, sender, recipient, clock)
    moved = await authed_client.put("/me", json={"region": "Oslo, NO", "timezone": "Europe/Oslo"})
    assert moved.status_code == 200

    login(authed_client, recipient)
    response = await authed_client.get("/letters", params={"folder": "UNOPENED"})

    assert response.status_code == 200
    [item] = response.json()
    assert item["id"] == str(letter.id)
    assert item["sender_username"] == "sender"
    assert item["sender_region_at_send"] == "Lyon, FR"
    assert item["sender_timezone_at_send"] == "UTC"
    assert item["opened_at"] is None


@pytest.mark.asyncio
async def test_tear_open(authed_client, login, db, sender, recipient, clock):
    letter = _delivered_letter(db, sender, recipient, clock)

    login(authed_client, recipient)
    first = await authed_client.post(f"/letters/{letter.id}/tear-open")
    second = await authed_client.post(f"/letters/{letter.id}/tear-open")

    assert first.status_code == 200
    assert first.json()["opened_at"] is not None
    assert second.json()["opened_at"] == first.json()["opened_at"]

    opened = await authed_client.get("/letters", params={"folder": "OPENED"})
    assert [d["id"] for d in opened.json()] == [str(letter.id)]


@pytest.mark.asyncio
async def test_sender_cannot_tear_open(authed_client, db, sender, recipient, clock):
    letter = _delivered_letter(db, sender, recipient, clock)

    response = await authed_client.post(f"/letters/{letter.id}/tear-open")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_reply(authed_client, login, db, sender, recipient, clock):
    letter = _delivered_letter(db, sender, recipient, clock)

    login(authed_client, recipient)
    response = await authed_client.post(f"/letters/{letter.id}/reply")

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "draft"
    assert data["addressing_value"] == "sender"
    assert data["in_reply_to_id"] == str(letter.id)


@pytest.mark.asyncio
async def test_block_sender(authed_client, login, db, sender, recipient, clock):
    letter = _delivered_letter(db, sender, recipient, clock)

    login(authed_client, recipient)
    first = await authed_client.post(f"/letters/{letter.id}/block-sender")
    second = await authed_client.post(f"/letters/{letter.id}/block-sender")

    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json() == {"success": True}
    assert letter_service.is_blocked(db, recipient.id, sender.id)
