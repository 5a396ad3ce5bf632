import base64
from uuid import UUID

import pytest
import responses

from proofcheck.base import (
    Action,
    ValidationError,
    generate_keypair,
    sign_personal,
    timestamp_to_time,
)
from proofcheck.minds import ENTITIES_URL, Minds

PROOF_ID = "1421043369127186449"
OWNER_GUID = "1302892485034381316"


def make(pubkey=None, identity="nykma", previous=""):
    return Minds(
        pubkey=pubkey,
        identity=identity,
        previous=previous,
        action=Action.CREATE,
        proof_location=PROOF_ID,
        created_at=timestamp_to_time("1664179121"),
        uuid=UUID("3d770975-5085-411b-91e4-661bcc407aa9"),
    )


def post_body(text, username="nykma"):
    return {
        "status": "success",
        "entities": [
            {
                "guid": PROOF_ID,
                "message": text,
                "ownerObj": {"guid": OWNER_GUID, "username": username},
            }
        ],
    }


def signed_text(pubkey, secret):
    minds = make(pubkey)
    sig = base64.b64encode(sign_personal(minds.generate_sign_payload(), secret)).decode()
    return minds.generate_post_payload()["default"].replace("%SIG_BASE64%", sig)


def test_generate_post_payload():
    minds = make()
    post = minds.generate_post_payload()
    text = post["default"]
    assert "Verifying my Minds ID" in text
    assert minds.identity in text
    assert str(minds.uuid) in text
    assert "%SIG_BASE64%" in text
    assert "CreatedAt: 1664179121" in text
    assert "Previous" not in text


def test_generate_post_payload_with_previous():
    minds = make(previous="abc")
    assert "\nPrevious: abc\n" in minds.generate_post_payload()["default"]


def test_generate_sign_payload():
    minds = make()
    payload = minds.generate_sign_payload()
    assert str(minds.uuid) in payload
    assert "1664179121" in payload
    assert minds.identity in payload
    assert '"platform":"minds"' in payload


def test_validate_success():
    pubkey, secret = generate_keypair()
    minds = make(pubkey, identity="NYKMA")
    with responses.RequestsMock() as rsps:
        rsps.get(ENTITIES_URL, json=post_body(signed_text(pubkey, secret), username="NyKma"))
        minds.validate()
        assert "urn%3Aactivity%3A" + PROOF_ID in rsps.calls[0].request.url
    assert minds.alt_id == OWNER_GUID
    assert minds.identity == "nykma"
    assert len(minds.signature) == 65


def test_validate_username_mismatch():
    pubkey, secret = generate_keypair()
    minds = make(pubkey)
    with responses.RequestsMock() as rsps:
        rsps.get(ENTITIES_URL, json=post_body(signed_text(pubkey, secret), username="other"))
        with pytest.raises(ValidationError, match="Username mismatch"):
            minds.validate()


def test_validate_post_not_found():
    pubkey, _ = generate_keypair()
    minds = make(pubkey)
    with responses.RequestsMock() as rsps:
        rsps.get(ENTITIES_URL, json={"status": "success", "entities": []})
        with pytest.raises(ValidationError, match="Post not found"):
            minds.validate()


def test_validate_signature_missing():
    pubkey, _ = generate_keypair()
    minds = make(pubkey)
    with responses.RequestsMock() as rsps:
        rsps.get(ENTITIES_URL, json=post_body("hello there"))
        with pytest.raises(ValidationError, match="Signature not found"):
            minds.validate()


def test_validate_wrong_signer():
    pubkey, _ = generate_keypair()
    _, wrong_secret = generate_keypair()
    minds = make(pubkey)
    with responses.RequestsMock() as rsps:
        rsps.get(ENTITIES_URL, json=post_body(signed_text(pubkey, wrong_secret)))
        with pytest.raises(ValidationError, match="bad signature"):
            minds.validate()


def test_validate_status_error():
    pubkey, _ = generate_keypair()
    minds = make(pubkey)
    with responses.RequestsMock() as rsps:
        rsps.get(ENTITIES_URL, status=500)
        with pytest.raises(ValidationError, match="Status code 500"):
            minds.validate()