"""Proofs published as a JSON file in a public GitHub gist."""

from __future__ import annotations

import json
from typing import Any

import requests

from .base import (
    Platform,
    ValidationError,
    Validator,
    compressed_pubkey_hex,
    decode_signature,
    register_platform,
    string_to_pubkey,
    timestamp_string,
    validate_personal_signature,
)

GIST_URL = "https://api.github.com/gists/{gist_id}"
_TIMEOUT = 30


class Github(Validator):
    """A GitHub account proven by a gist file named after the persona key."""

    platform = Platform.GITHUB

    def generate_post_payload(self) -> dict[str, str]:
        self.identity = self.identity.lower()
        payload = {
            "version": "1",
            "comment": "Here's an NextID proof of this Github account.",
            "comment2": (
                "To validate, base64.decode the signature, and recover pubkey from it "
                "using sign_payload with ethereum personal_sign algo."
            ),
            "persona": "0x" + compressed_pubkey_hex(self.pubkey),
            "github_username": self.identity,
            "sign_payload": self.generate_sign_payload(),
            "signature": "%SIG_BASE64%",
            "created_at": timestamp_string(self.created_at),
            "uuid": str(self.uuid),
        }
        return {"default": json.dumps(payload, indent="\t", ensure_ascii=False)}

    def generate_sign_payload(self) -> str:
        self.identity = self.identity.lower()
        return self._sign_payload()

    def _fetch_gist(self) -> dict[str, Any]:
        url = GIST_URL.format(gist_id=self.proof_location)
        try:
            resp = requests.get(
                url, headers={"Accept": "application/vnd.github+json"}, timeout=_TIMEOUT
            )
        except requests.RequestException as exc:
            raise ValidationError(f"error when fetching gist: {exc}") from exc
        if resp.status_code != 200:
            raise ValidationError(f"error when fetching gist: status code {resp.status_code}")
        try:
            body = resp.json()
        except ValueError as exc:
            raise ValidationError(f"error when fetching gist: {exc}") from exc
        if not isinstance(body, dict):
            raise ValidationError("error when fetching gist: unexpected response")
        return body

    def validate(self) -> None:
        self.identity = self.identity.lower()
        self.signature_payload = self.generate_sign_payload()

        gist = self._fetch_gist()
        owner = gist.get("owner") or {}
        login = owner.get("login") or ""
        if self.identity != login:
            raise ValidationError(
                f"gist owner mismatch: should be {self.identity}, but got {login}"
            )
        self.alt_id = str(owner.get("id") or 0)

        filename = f"0x{compressed_pubkey_hex(self.pubkey)}.json"
        files = gist.get("files") or {}
        content = (files.get(filename) or {}).get("content") or ""
        if not content:
            raise ValidationError(f"{filename} not found or empty")
        try:
            payload = json.loads(content)
        except ValueError as exc:
            raise ValidationError(f"error when parsing JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise ValidationError("error when parsing JSON: not an object")

        try:
            persona = string_to_pubkey(payload.get("persona", ""))
        except ValidationError as exc:
            raise ValidationError(f"error when recovering pubkey: {exc}") from exc
        try:
            signature = decode_signature(payload.get("signature", ""))
        except ValidationError as exc:
            raise ValidationError(f"error when decoding signature: {exc}") from exc
        validate_personal_signature(payload.get("sign_payload", ""), signature, persona)


register_platform(Platform.GITHUB, Github)