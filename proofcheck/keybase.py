"""Proofs published as a JSON file in a Keybase public folder."""

from __future__ import annotations

import json
from typing import Any, Mapping

import requests

from .base import (
    Platform,
    ValidationError,
    Validator,
    compressed_pubkey_hex,
    decode_signature,
    register_platform,
    timestamp_string,
    validate_personal_signature,
)

PROOF_URL = "https://{username}.keybase.pub/NextID/0x{persona}.json"
_TIMEOUT = 30


class Keybase(Validator):
    """A Keybase account proven by a file in its public folder."""

    platform = Platform.KEYBASE

    def generate_post_payload(self) -> dict[str, str]:
        self.identity = self.identity.lower()
        payload = {
            "version": "1",
            "comment": "Here's an NextID proof of this Keybase account.",
            "comment2": (
                "To validate, base64.decode the signature, and recover pubkey from it "
                "using sign_payload with ethereum personal_sign algo."
            ),
            "persona": "0x" + compressed_pubkey_hex(self.pubkey),
            "keybase_username": self.identity,
            "sign_payload": self.generate_sign_payload(),
            "signature": "%SIG_BASE64%",
            "created_at": timestamp_string(self.created_at),
            "uuid": str(self.uuid),
        }
        return {"default": json.dumps(payload, indent="\t", ensure_ascii=False)}

    def generate_sign_payload(self) -> str:
        self.identity = self.identity.lower()
        return self._sign_payload()

    def validate(self) -> None:
        self.identity = self.identity.lower()
        self.signature_payload = self.generate_sign_payload()
        self.alt_id = self.identity

        url = PROOF_URL.format(username=self.identity, persona=compressed_pubkey_hex(self.pubkey))
        self.proof_location = url
        try:
            resp = requests.get(url, timeout=_TIMEOUT)
        except requests.RequestException as exc:
            raise ValidationError(f"Error when requesting proof: {exc}") from exc
        if resp.status_code != 200:
            raise ValidationError(f"Error when requesting proof: Status code {resp.status_code}")
        try:
            payload = resp.json()
        except ValueError as exc:
            raise ValidationError(f"error when decoding JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise ValidationError("error when decoding JSON: not an object")
        self.validate_body(payload)

    def validate_body(self, payload: Mapping[str, Any]) -> None:
        """Check a fetched proof file against the persona key."""
        if payload.get("persona") != "0x" + compressed_pubkey_hex(self.pubkey):
            raise ValidationError("Persona mismatch")
        try:
            signature = decode_signature(payload.get("signature", ""))
        except ValidationError as exc:
            raise ValidationError(f"error when decoding sig: {exc}") from exc
        self.signature = signature
        validate_personal_signature(self.signature_payload, signature, self.pubkey)


register_platform(Platform.KEYBASE, Keybase)