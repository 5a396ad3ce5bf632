"""Proofs posted as activities on Minds."""

from __future__ import annotations

import re
from typing import Any, Mapping

import requests

from .base import (
    Platform,
    ValidationError,
    Validator,
    decode_signature,
    register_platform,
    timestamp_string,
    validate_personal_signature,
)

ENTITIES_URL = "https://www.minds.com/api/v2/entities/"
POST_TEMPLATES = {
    "default": (
        "\U0001f3ad Verifying my Minds ID @{identity} for NextID.\n\n"
        "Sig: %SIG_BASE64%\n"
        "CreatedAt: {created_at}\n"
        "UUID: {uuid}{previous}\n\n"
        "Powered by Next.ID - Connect All Digital Identities.\n"
    ),
}

_SIG_LINE = re.compile(r"^Sig: (.*)$")
_TIMEOUT = 30


class Minds(Validator):
    """A Minds account proven by a public activity holding the persona signature."""

    platform = Platform.MINDS

    def generate_post_payload(self) -> dict[str, str]:
        previous = f"\nPrevious: {self.previous}" if self.previous else ""
        return {
            lang: template.format(
                identity=self.identity,
                created_at=timestamp_string(self.created_at),
                uuid=self.uuid,
                previous=previous,
            )
            for lang, template in POST_TEMPLATES.items()
        }

    def generate_sign_payload(self) -> str:
        return self._sign_payload()

    def validate(self) -> None:
        # Minds usernames are case-insensitive.
        self.identity = self.identity.lower()
        self.signature_payload = self.generate_sign_payload()
        post = self.fetch_content()
        self.text = post["entities"][0].get("message") or ""
        self.validate_payload(post)

    def fetch_content(self) -> dict[str, Any]:
        """Fetch the activity named by `proof_location`."""
        params = {
            "urns": f"urn:activity:{self.proof_location}",
            "as_activities": "0",
            "export_user_counts": "false",
        }
        try:
            resp = requests.get(ENTITIES_URL, params=params, timeout=_TIMEOUT)
        except requests.RequestException as exc:
            raise ValidationError(f"error when getting Minds post: {exc}") from exc
        if resp.status_code != 200:
            raise ValidationError(f"error when requesting proof: Status code {resp.status_code}")
        try:
            post = resp.json()
        except ValueError as exc:
            raise ValidationError(f"error when decoding JSON: {exc}") from exc
        if not isinstance(post, dict) or not post.get("entities"):
            raise ValidationError("Post not found")
        return post

    def validate_payload(self, payload: Mapping[str, Any]) -> None:
        """Check the owner of the first entity and the signature in the post text."""
        entities = payload.get("entities") or []
        if not entities:
            raise ValidationError("Post not found")
        owner = entities[0].get("ownerObj") or {}
        username = owner.get("username") or ""
        if self.identity != username.lower():
            raise ValidationError(f"Username mismatch: expect @{self.identity}, got @{username}")
        self.alt_id = str(owner.get("guid") or "")

        for line in self.text.splitlines():
            match = _SIG_LINE.match(line)
            if match is None:
                continue
            sig_base64 = match.group(1)
            try:
                signature = decode_signature(sig_base64)
            except ValidationError as exc:
                raise ValidationError(
                    f"Error when decoding signature {sig_base64}: {exc}"
                ) from exc
            self.signature = signature
            validate_personal_signature(self.signature_payload, signature, self.pubkey)
            return
        raise ValidationError("Signature not found in post text.")


register_platform(Platform.MINDS, Minds)