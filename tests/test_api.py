from __future__ import annotations

import json
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from double_draw.auth import ADDRESS_HEADER, sign_request
from double_draw.fhe.decryption import HandleContractPair, generate_keypair, open_decrypted, sign_decrypt_request
from double_draw.fhe.types import ZERO_HANDLE

from tests.conftest import CONTRACT, TICKET_PRICE


def _signed_post(client, player, path, payload=None, headers=None):
    body = json.dumps(payload).encode() if payload is not None else b""
    signed = sign_request(player.key, "POST", path, body)
    signed.update(headers or {})
    return client.post(path, data=body, content_type="application/json", headers=signed)


def _encrypt(client, player, *values):
    resp = client.post(
        "/relayer/inputs",
        json={"contract_address": CONTRACT, "user_address": player.address, "values": list(values)},
    )
    assert resp.status_code == 201
    return resp.get_json()["data"]


def _buy(client, player, first, second, value=TICKET_PRICE):
    enc = _encrypt(client, player, first, second)
    return _signed_post(
        client,
        player,
        "/lottery/tickets",
        {
            "first_handle": enc["handles"][0],
            "second_handle": enc["handles"][1],
            "input_proof": enc["input_proof"],
            "value": value,
        },
    )


def _draw(client, player):
    return _signed_post(client, player, "/lottery/draws")


def _withdraw(client, player, payload, headers=None):
    return _signed_post(client, player, "/lottery/withdraw", payload, headers=headers)


def _decrypt(client, player, *handles):
    keypair = generate_keypair()
    request = sign_decrypt_request(
        player.key,
        keypair,
        [HandleContractPair(h, CONTRACT) for h in handles],
        [CONTRACT],
        start_timestamp=int(time.time()) - 5,
        duration_days=10,
    )
    resp = client.post(
        "/relayer/user-decrypt",
        json={
            "pairs": [{"handle": p.handle, "contract_address": p.contract_address} for p in request.pairs],
            "public_key": request.public_key,
            "signature": request.signature,
            "contract_addresses": list(request.contract_addresses),
            "user_address": request.user_address,
            "user_verify_key": request.user_verify_key,
            "start_timestamp": request.start_timestamp,
            "duration_days": request.duration_days,
        },
    )
    return resp, keypair


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json()["data"] == {"status": "ok"}


def test_info(client, owner):
    data = client.get("/lottery/info").get_json()["data"]
    assert data == {
        "contract_address": CONTRACT,
        "owner": owner.address,
        "ticket_price": str(TICKET_PRICE),
        "ticket_price_ether": "0.001",
    }


def test_full_round(client, alice):
    resp = _buy(client, alice, 2, 8)
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["success"] is True
    assert body["data"]["status"] == "confirmed"

    status = client.get(f"/lottery/players/{alice.address}/status").get_json()["data"]
    assert status == {"has_ticket": True, "has_result": False, "has_points": False}

    resp = _draw(client, alice)
    assert resp.status_code == 201

    status = client.get(f"/lottery/players/{alice.address}/status").get_json()["data"]
    assert status == {"has_ticket": False, "has_result": True, "has_points": True}

    winning = client.get(f"/lottery/players/{alice.address}/winning-numbers").get_json()["data"]
    points = client.get(f"/lottery/players/{alice.address}/points").get_json()["data"]
    assert winning["has_result"] and points["has_points"]

    resp, keypair = _decrypt(
        client, alice, winning["winning_first"], winning["winning_second"], points["encrypted_points"]
    )
    assert resp.status_code == 200
    clear = open_decrypted(keypair, resp.get_json()["data"]["results"])
    first, second = clear[winning["winning_first"]], clear[winning["winning_second"]]
    assert 1 <= first <= 9 and 1 <= second <= 9
    matches = int(first == 2) + int(second == 8)
    assert clear[points["encrypted_points"]] == {0: 0, 1: 100, 2: 1000}[matches]

    stats = client.get("/lottery/stats").get_json()["data"]
    assert stats == {"total_tickets": 1, "total_draws": 1, "balance": str(TICKET_PRICE)}

    events = client.get(f"/lottery/events?player={alice.address}").get_json()["data"]
    assert [e["name"] for e in events] == ["DrawCompleted", "TicketPurchased"]


def test_wrong_price_returns_error_envelope(client, alice):
    resp = _buy(client, alice, 5, 7, value=0)
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["success"] is False
    assert body["error"]["code"] == "invalid_payment"
    assert body["error"]["message"] == "Ticket price is 0.001 ether"

    status = client.get(f"/lottery/players/{alice.address}/status").get_json()["data"]
    assert status == {"has_ticket": False, "has_result": False, "has_points": False}


def test_second_ticket_conflict(client, alice):
    assert _buy(client, alice, 5, 7).status_code == 201
    resp = _buy(client, alice, 5, 7)
    assert resp.status_code == 409
    assert resp.get_json()["error"]["code"] == "ticket_already_active"
    assert client.get("/lottery/stats").get_json()["data"]["total_tickets"] == 1


def test_bad_proof_rolls_back(client, alice, bob):
    enc = _encrypt(client, bob, 1, 2)
    resp = _signed_post(
        client,
        alice,
        "/lottery/tickets",
        {
            "first_handle": enc["handles"][0],
            "second_handle": enc["handles"][1],
            "input_proof": enc["input_proof"],
            "value": TICKET_PRICE,
        },
    )
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "proof_invalid"
    assert client.get("/lottery/stats").get_json()["data"]["total_tickets"] == 0
    ticket = client.get(f"/lottery/players/{alice.address}/ticket").get_json()["data"]
    assert ticket == {"first_guess": ZERO_HANDLE, "second_guess": ZERO_HANDLE, "has_ticket": False}


def test_draw_without_ticket(client, alice):
    resp = _draw(client, alice)
    assert resp.status_code == 409
    assert resp.get_json()["error"]["code"] == "no_active_ticket"


def test_unsigned_mutation_is_rejected(client, alice):
    resp = client.post("/lottery/draws")
    assert resp.status_code == 401
    assert resp.get_json()["error"]["code"] == "unauthenticated"

    resp = client.post("/lottery/draws", headers={ADDRESS_HEADER: alice.address})
    assert resp.status_code == 401


def test_schema_validation(client, alice):
    resp = _signed_post(
        client,
        alice,
        "/lottery/tickets",
        {"first_handle": "0x12", "second_handle": "nope", "input_proof": "0x00", "value": "1"},
    )
    assert resp.status_code == 400
    details = resp.get_json()["error"]["details"]
    assert {"first_handle", "second_handle", "value"} <= set(details)


def test_views_are_public(client, alice, bob):
    _buy(client, alice, 3, 4)
    path = f"/lottery/players/{alice.address}/ticket"
    as_alice = client.get(path, headers={ADDRESS_HEADER: alice.address})
    as_bob = client.get(path, headers=sign_request(bob.key, "GET", path))
    anonymous = client.get(f"/lottery/players/{alice.address}/ticket")
    assert as_alice.get_json() == as_bob.get_json() == anonymous.get_json()

    # Reading a handle is not decrypting it.
    ticket = anonymous.get_json()["data"]
    resp, _ = _decrypt(client, bob, ticket["first_guess"])
    assert resp.status_code == 403
    assert resp.get_json()["error"]["code"] == "decryption_rejected"

    resp, keypair = _decrypt(client, alice, ticket["first_guess"], ticket["second_guess"])
    assert resp.status_code == 200
    clear = open_decrypted(keypair, resp.get_json()["data"]["results"])
    assert (clear[ticket["first_guess"]], clear[ticket["second_guess"]]) == (3, 4)


def test_invalid_player_address(client):
    resp = client.get("/lottery/players/not-an-address/status")
    assert resp.status_code == 400


def test_withdraw_flow(client, owner, alice, bob):
    _buy(client, alice, 7, 2)

    resp = _withdraw(client, alice, {"recipient": alice.address, "amount": TICKET_PRICE})
    assert resp.status_code == 403
    assert resp.get_json()["error"]["code"] == "not_owner"

    resp = _withdraw(client, owner, {"amount": 1})
    assert resp.get_json()["error"]["code"] == "invalid_recipient"

    resp = _withdraw(client, owner, {"recipient": bob.address, "amount": TICKET_PRICE + 1})
    assert resp.get_json()["error"]["code"] == "insufficient_balance"

    resp = _withdraw(client, owner, {"recipient": bob.address, "amount": TICKET_PRICE})
    assert resp.status_code == 200
    assert client.get("/lottery/stats").get_json()["data"]["balance"] == "0"


def test_owner_address_header_alone_cannot_withdraw(client, owner, alice):
    _buy(client, alice, 7, 2)
    published_owner = client.get("/lottery/info").get_json()["data"]["owner"]
    assert published_owner == owner.address

    payload = {"recipient": alice.address, "amount": TICKET_PRICE}
    resp = client.post("/lottery/withdraw", json=payload, headers={ADDRESS_HEADER: published_owner})
    assert resp.status_code == 401
    assert resp.get_json()["error"]["code"] == "unauthenticated"

    # Signed by alice while claiming to be the owner.
    resp = _withdraw(client, alice, payload, headers={ADDRESS_HEADER: published_owner})
    assert resp.status_code == 403
    assert resp.get_json()["error"]["code"] == "caller_mismatch"

    assert client.get("/lottery/stats").get_json()["data"]["balance"] == str(TICKET_PRICE)


def test_draw_is_bound_to_the_signer(client, alice, bob):
    _buy(client, alice, 1, 1)

    resp = _signed_post(client, bob, "/lottery/draws", headers={ADDRESS_HEADER: alice.address})
    assert resp.status_code == 403
    resp = _draw(client, bob)
    assert resp.get_json()["error"]["code"] == "no_active_ticket"

    status = client.get(f"/lottery/players/{alice.address}/status").get_json()["data"]
    assert status["has_ticket"] is True


def test_tampered_body_is_rejected(client, owner, alice, bob):
    _buy(client, alice, 7, 2)
    signed = sign_request(
        owner.key, "POST", "/lottery/withdraw", json.dumps({"recipient": bob.address, "amount": 1}).encode()
    )
    body = json.dumps({"recipient": alice.address, "amount": TICKET_PRICE})
    resp = client.post("/lottery/withdraw", data=body, content_type="application/json", headers=signed)
    assert resp.status_code == 401
    assert resp.get_json()["error"]["message"] == "Invalid request signature"


def test_replayed_request_is_rejected(client, owner, alice, bob):
    _buy(client, alice, 7, 2)
    body = json.dumps({"recipient": bob.address, "amount": 1})
    signed = sign_request(owner.key, "POST", "/lottery/withdraw", body.encode())

    first = client.post("/lottery/withdraw", data=body, content_type="application/json", headers=signed)
    assert first.status_code == 200
    again = client.post("/lottery/withdraw", data=body, content_type="application/json", headers=signed)
    assert again.status_code == 401
    assert again.get_json()["error"]["message"] == "Request already used"
    assert client.get("/lottery/stats").get_json()["data"]["balance"] == str(TICKET_PRICE - 1)


def test_stale_signature_is_rejected(client, alice):
    signed = sign_request(alice.key, "POST", "/lottery/draws", timestamp=int(time.time()) - 3600)
    resp = client.post("/lottery/draws", headers=signed)
    assert resp.status_code == 401
    assert resp.get_json()["error"]["message"] == "Request timestamp outside the accepted window"


def test_failed_commit_is_not_reported_as_confirmed(client, alice, monkeypatch):
    enc = _encrypt(client, alice, 4, 4)

    def refuse_commit(self):
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    with monkeypatch.context() as m:
        m.setattr(Session, "commit", refuse_commit)
        resp = _signed_post(
            client,
            alice,
            "/lottery/tickets",
            {
                "first_handle": enc["handles"][0],
                "second_handle": enc["handles"][1],
                "input_proof": enc["input_proof"],
                "value": TICKET_PRICE,
            },
        )

    assert resp.status_code == 503
    body = resp.get_json()
    assert body["success"] is False
    assert body["error"]["code"] == "commit_failed"

    assert client.get("/lottery/stats").get_json()["data"]["total_tickets"] == 0
    status = client.get(f"/lottery/players/{alice.address}/status").get_json()["data"]
    assert status["has_ticket"] is False


def test_relayer_rejects_out_of_range_values(client, alice):
    resp = client.post(
        "/relayer/inputs",
        json={"contract_address": CONTRACT, "user_address": alice.address, "values": [2**32]},
    )
    assert resp.status_code == 400


def test_unknown_route(client):
    resp = client.get("/nope")
    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "not_found"
