import base64

import pytest

from proofcheck.base import (
    Action,
    ValidationError,
    compressed_pubkey_hex,
    generate_keypair,
    pubkey_to_address,
    sign_personal,
)
from proofcheck.ethereum import Ethereum, validate_eth_signature


def generate():
    persona_pub, persona_sk = generate_keypair()
    wallet_pub, wallet_sk = generate_keypair()
    eth = Ethereum(
        action=Action.CREATE,
        pubkey=persona_pub,
        identity=pubkey_to_address(wallet_pub),
        extra={"wallet_signature": ""},
    )
    payload = eth.generate_sign_payload()
    eth.signature = sign_personal(payload, persona_sk)
    eth.extra = {
        "wallet_signature": base64.b64encode(sign_personal(payload, wallet_sk)).decode()
    }
    return eth, persona_sk, wallet_sk, wallet_pub


def test_generate_post_payload():
    eth, *_ = generate()
    assert eth.generate_post_payload()["default"] == ""


def test_generate_sign_payload():
    eth, _, _, wallet_pub = generate()
    result = eth.generate_sign_payload()
    assert '"identity":"' + pubkey_to_address(wallet_pub).lower() in result
    assert '"persona":"0x' + compressed_pubkey_hex(eth.pubkey) in result
    assert '"platform":"ethereum"' in result


def test_validate_success():
    eth, *_ = generate()
    eth.validate()
    assert eth.alt_id == eth.identity
    assert eth.identity == eth.identity.lower()


def test_validate_create_without_wallet_signature():
    eth, *_ = generate()
    eth.extra = {}
    with pytest.raises(ValidationError, match="wallet_signature not found"):
        eth.validate()


def test_validate_create_with_persona_signature_as_wallet():
    eth, *_ = generate()
    eth.extra = {"wallet_signature": base64.b64encode(eth.signature).decode()}
    with pytest.raises(ValidationError, match="wallet signature validation failed"):
        eth.validate()


def test_delete_signed_by_persona():
    eth, persona_sk, _, _ = generate()
    eth.action = Action.DELETE
    eth.extra = {"wallet_signature": ""}
    eth.signature = sign_personal(eth.generate_sign_payload(), persona_sk)
    eth.validate()
    assert eth.alt_id == eth.identity


def test_delete_signed_by_wallet():
    eth, _, wallet_sk, _ = generate()
    eth.action = Action.DELETE
    wallet_sig = sign_personal(eth.generate_sign_payload(), wallet_sk)
    eth.extra = {"wallet_signature": base64.b64encode(wallet_sig).decode()}
    eth.validate()
    assert eth.signature == wallet_sig


def test_delete_persona_signature_in_wallet_field():
    eth, persona_sk, _, _ = generate()
    eth.action = Action.DELETE
    eth.signature = sign_personal(eth.generate_sign_payload(), persona_sk)
    eth.extra = {"wallet_signature": base64.b64encode(eth.signature).decode()}
    with pytest.raises(ValidationError, match="not signed by this wallet"):
        eth.validate()


def test_delete_wallet_signature_in_persona_field():
    eth, _, wallet_sk, _ = generate()
    eth.action = Action.DELETE
    eth.signature = sign_personal(eth.generate_sign_payload(), wallet_sk)
    eth.extra = {}
    with pytest.raises(ValidationError, match="bad signature"):
        eth.validate()


def test_validate_eth_signature_accepts_any_case():
    wallet_pub, wallet_sk = generate_keypair()
    sig = sign_personal("hello", wallet_sk)
    address = pubkey_to_address(wallet_pub)
    validate_eth_signature(sig, "hello", address.lower())
    with pytest.raises(ValidationError, match="validation failed"):
        validate_eth_signature(sig, "other", address)


def test_validate_eth_signature_bad_length():
    with pytest.raises(ValidationError, match="Error when extracting pubkey"):
        validate_eth_signature(b"short", "hello", "0x" + "00" * 20)