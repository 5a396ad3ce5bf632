"""Proofs posted as statuses on ActivityPub servers (Mastodon, Pleroma, Misskey)."""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

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

POST_TEMPLATE = (
    "Validate my ActivityPub identity @{identity} for Avatar 0x{persona}:\n\n"
    "Signature: %SIG_BASE64%\n"
    "UUID: {uuid}\n"
    "Previous: {previous}\n"
    "CreatedAt: {created_at}\n\n"
    "Powered by Next.ID - Connect All Digital Identities.\n"
)
NODEINFO_SCHEMA = "http://nodeinfo.diaspora.software/ns/schema/2.0"
MASTODON_STATUS_URL = "https://{server}/api/v1/statuses/{status_id}"
MISSKEY_NOTE_URL = "https://{server}/api/notes/show"

_SIGNATURE_LINE = re.compile(r"^Signature: (.*)$")
_TIMEOUT = 30


class ServerSoftware(str, Enum):
    """Server software an ActivityPub instance can run."""

    MASTODON = "mastodon"
    MISSKEY = "misskey"
    PLEROMA = "pleroma"


def _get_json(url: str, context: str) -> Any:
    try:
        resp = requests.get(url, timeout=_TIMEOUT)
    except requests.RequestException as exc:
        raise ValidationError(f"{context}: {exc}") from exc
    if resp.status_code != 200:
        raise ValidationError(f"{context}: node info returns {resp.status_code}")
    try:
        return resp.json()
    except ValueError as exc:
        raise ValidationError(f"{context}: {exc}") from exc


class ActivityPub(Validator):
    """An ActivityPub account proven by a public post holding the persona signature."""

    platform = Platform.ACTIVITYPUB

    def split_id(self) -> tuple[str, str]:
        """Normalise the identity to `user@server` and return (user, server)."""
        self.identity = self.identity.strip("@")
        parts = self.identity.split("@")
        if len(parts) != 2:
            raise ValidationError("invalid ActivityPub ID: Only one @ symbol should appear")
        username, server = parts
        return username, server

    def detect_server_software(self) -> ServerSoftware:
        """Ask the server's NodeInfo which software it runs."""
        context = "error when detecting server software"
        try:
            _, server = self.split_id()
        except ValidationError as exc:
            raise ValidationError(f"{context}: {exc}") from exc
        node_info = _get_json(f"https://{server}/.well-known/nodeinfo", context)
        links = node_info.get("links") or [] if isinstance(node_info, dict) else []
        for link in links:
            if link.get("rel") != NODEINFO_SCHEMA:
                continue
            details = _get_json(link.get("href", ""), context)
            name = ((details or {}).get("software") or {}).get("name", "")
            try:
                return ServerSoftware(name)
            except ValueError:
                raise ValidationError(f"{context}: unsupported server: {name}") from None
        raise ValidationError(f"{context}: no supported node info link found")

    def generate_post_payload(self) -> dict[str, str]:
        return {
            "default": POST_TEMPLATE.format(
                identity=self.identity,
                persona=compressed_pubkey_hex(self.pubkey),
                uuid=self.uuid,
                previous=self.previous or "null",
                created_at=timestamp_string(self.created_at),
            )
        }

    def generate_sign_payload(self) -> str:
        return self._sign_payload()

    def validate(self) -> None:
        server = self.detect_server_software()
        if server is ServerSoftware.MISSKEY:
            self.fetch_misskey_text()
        else:
            self.fetch_mastodon_text()
        self.extract_signature()
        self.signature_payload = self.generate_sign_payload()
        validate_personal_signature(self.signature_payload, self.signature, self.pubkey)

    def extract_signature(self) -> None:
        """Find the `Signature:` line in the post text and decode it."""
        for line in self.text.splitlines():
            match = _SIGNATURE_LINE.match(line)
            if match is None:
                continue
            try:
                self.signature = decode_signature(match.group(1))
            except ValidationError as exc:
                raise ValidationError(f"error when parsing signature: {exc}") from exc
            return
        raise ValidationError("no signature found")

    def fetch_mastodon_text(self) -> None:
        """Fetch the status from a Mastodon or Pleroma server."""
        _, server = self.split_id()
        url = MASTODON_STATUS_URL.format(server=server, status_id=self.proof_location)
        try:
            resp = requests.get(url, timeout=_TIMEOUT)
        except requests.RequestException as exc:
            raise ValidationError(f"failed to get mastodon / pleroma status: {exc}") from exc
        try:
            body = resp.json()
        except ValueError as exc:
            raise ValidationError(f"failed to decode mastodon / pleroma status: {exc}") from exc
        account = body.get("account") or {}
        post_identity = f"{account.get('username', '')}@{server}"
        if post_identity != self.identity:
            raise ValidationError(
                "failed to identify mastodon / pleroma status: identity mismatch: "
                f"{post_identity} != {self.identity}"
            )
        self.alt_id = str(account.get("id", ""))
        self.text = body.get("content") or ""

    def fetch_misskey_text(self) -> None:
        """Fetch the note from a Misskey server."""
        _, server = self.split_id()
        try:
            resp = requests.post(
                MISSKEY_NOTE_URL.format(server=server),
                json={"noteId": self.proof_location},
                timeout=_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise ValidationError(f"error when fetching Misskey note: {exc}") from exc
        try:
            body = resp.json()
        except ValueError as exc:
            raise ValidationError(f"error when decoding Misskey note response: {exc}") from exc
        user = body.get("user") or {}
        post_identity = f"{user.get('username', '')}@{server}"
        if post_identity != self.identity:
            raise ValidationError(
                f"Error when fetching Misskey note: This post is made by {post_identity}, "
                f"not {self.identity}"
            )
        self.alt_id = str(user.get("id", ""))
        self.text = body.get("text") or ""


register_platform(Platform.ACTIVITYPUB, ActivityPub)