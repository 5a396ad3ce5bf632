"""Proofs written into the summary of a public Steam community profile."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from itertools import islice
from xml.etree.ElementTree import Element, ParseError

import requests
from defusedxml import ElementTree

from .base import (
    Platform,
    ValidationError,
    Validator,
    decode_signature,
    register_platform,
    timestamp_string,
    validate_personal_signature,
)

# Profile by digit-based SteamID, e.g. "76561197968575517".
PROFILE_PAGE_STEAMID = "https://steamcommunity.com/profiles/{identity}/?xml=1"
# Profile by user-defined custom URL.
PROFILE_PAGE_CUSTOM_URL = "https://steamcommunity.com/id/{identity}/?xml=1"
# signature:created_at:uuid:previous
POST_TEMPLATES = {"default": "NextID proof: %SIG_BASE64%:{created_at}:{uuid}:{previous}"}

# Only the signature part of a proof is of interest.
_PROOF = re.compile(r"NextID proof: (.+?):")
_MAX_PROOFS = 10
_TIMEOUT = 30

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SteamID:
    """The parts of a 64-bit individual-account SteamID."""

    universe: int
    user_id: int
    y: int


def extract_steam_id(id_in_decimal: str) -> SteamID:
    """Split a decimal SteamID of a public individual account into its parts."""
    if not (id_in_decimal.isascii() and id_in_decimal.isdigit()):
        raise ValidationError(f"parsing string SteamID: invalid syntax: {id_in_decimal!r}")
    value = int(id_in_decimal)
    if value >= 1 << 64:
        raise ValidationError(f"parsing string SteamID: value out of range: {id_in_decimal!r}")

    # Account type (4 bits) and account instance (20 bits): individual, instance 1.
    if (value >> 32) & 0x00FFFFFF != 0x00100001:
        raise ValidationError("parsing SteamID: account type mismatch")

    universe = (value >> 56) & 0xFF
    user_id = (value & 0xFFFFFFFE) >> 1
    y = value & 0x1
    if universe != 1:
        raise ValidationError("parsing SteamID: invalid universe identifier")
    return SteamID(universe=universe, user_id=user_id, y=y)


def _child_text(root: Element, tag: str) -> str:
    child = root.find(tag)
    return (child.text or "") if child is not None else ""


def parse_steam_xml(xml_body: bytes | str) -> tuple[str, str, str]:
    """Return (steamID64, customURL, summary) from a profile page XML."""
    try:
        root = ElementTree.fromstring(xml_body)
    except (ParseError, ValueError) as exc:
        raise ValidationError(f"Error when parsing steam profile page: {exc}") from exc
    if root.tag == "response":
        raise ValidationError(
            f"Error when fetching steam profile page: {_child_text(root, 'error')}"
        )
    if root.tag != "profile":
        raise ValidationError(
            f"Error when parsing steam profile page: unexpected element <{root.tag}>"
        )
    return (
        _child_text(root, "steamID64"),
        _child_text(root, "customURL"),
        _child_text(root, "summary"),
    )


class Steam(Validator):
    """A Steam account proven by a signature in its profile summary."""

    platform = Platform.STEAM

    def generate_post_payload(self) -> dict[str, str]:
        return {
            lang: template.format(
                created_at=timestamp_string(self.created_at),
                uuid=self.uuid,
                previous=self.previous or "null",
            )
            for lang, template in POST_TEMPLATES.items()
        }

    def generate_sign_payload(self) -> str:
        """The sign payload, keyed by the numeric SteamID (fetches the profile if needed)."""
        self.fetch_user_info()
        return self._sign_payload()

    def validate(self) -> None:
        try:
            payload = self.generate_sign_payload()
        except ValidationError as exc:
            raise ValidationError(f"error when generating sign payload: {exc}") from exc
        self.signature_payload = payload
        _log.debug("Summary for user %s: %s", self.identity, self.text)

        found = [m.group(1) for m in islice(_PROOF.finditer(self.text), _MAX_PROOFS)]
        if not found:
            raise ValidationError("proof not found in user summary")

        last_error: ValidationError | None = None
        valid = False
        for sig_text in found:
            try:
                signature = decode_signature(sig_text)
                validate_personal_signature(payload, signature, self.pubkey)
            except ValidationError as exc:
                last_error = exc
                continue
            self.signature = signature
            valid = True
        # At least one valid proof is enough; other errors are ignored.
        if not valid and last_error is not None:
            raise last_error

    def fetch_user_info(self) -> None:
        """Load the profile page; sets identity, alt_id and text. Skipped if text is set."""
        if self.text:
            return
        try:
            extract_steam_id(self.identity)
        except ValidationError as exc:
            _log.warning("Error when parsing identity %s to steamID: %s", self.identity, exc)
            url = PROFILE_PAGE_CUSTOM_URL.format(identity=self.identity)
        else:
            url = PROFILE_PAGE_STEAMID.format(identity=self.identity)

        try:
            resp = requests.get(url, timeout=_TIMEOUT)
        except requests.RequestException as exc:
            raise ValidationError(f"getting steam profile page: {exc}") from exc
        if resp.status_code != 200:
            raise ValidationError(f"getting steam profile page: status code {resp.status_code}")

        uid, username, description = parse_steam_xml(resp.content)
        self.identity = uid
        self.alt_id = username
        self.text = description


register_platform(Platform.STEAM, Steam)