"""Links between a persona key and a Solana wallet."""

from __future__ import annotations

from nacl.exceptions import CryptoError
from nacl.signing import VerifyKey

from .base import (
    Action,
    Platform,
    ValidationError,
    Validator,
    compressed_pubkey_hex,
    register_platform,
    validate_personal_signature,
)

_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_INDEX = {char: value for value, char in enumerate(_ALPHABET)}


def b58encode(data: bytes) -> str:
    """Base58 (Bitcoin alphabet) encoding of `data`."""
    number = int.from_bytes(data, "big")
    digits = []
    while number:
        number, remainder = divmod(number, 58)
        digits.append(_ALPHABET[remainder])
    zeros = len(data) - len(data.lstrip(b"\x00"))
    return "1" * zeros + "".join(reversed(digits))


def b58decode(text: str) -> bytes:
    """Decode a Base58 (Bitcoin alphabet) string."""
    number = 0
    for char in text:
        value = _INDEX.get(char)
        if value is None:
            raise ValidationError(f"invalid base58 character: {char!r}")
        number = number * 58 + value
    zeros = len(text) - len(text.lstrip("1"))
    return b"\x00" * zeros + number.to_bytes((number.bit_length() + 7) // 8, "big")


def validate_wallet_signature(payload: str, signature: str, address: str) -> None:
    """Raise ValidationError unless the base58 ed25519 `signature` of `payload` is by `address`."""
    try:
        pubkey = b58decode(address)
        if len(pubkey) != 32:
            raise ValidationError(f"public key must be 32 bytes, got {len(pubkey)}")
    except ValidationError as exc:
        raise ValidationError(f"error when decoding pubkey: {exc}") from exc
    try:
        sig = b58decode(signature)
        if len(sig) != 64:
            raise ValidationError(f"signature must be 64 bytes, got {len(sig)}")
    except ValidationError as exc:
        raise ValidationError(f"error when decoding signature: {exc}") from exc
    try:
        VerifyKey(pubkey).verify(payload.encode("utf-8"), sig)
    except (CryptoError, ValueError, TypeError):
        raise ValidationError("solana wallet signature validation failed") from None


class Solana(Validator):
    """A wallet proven by a base58 wallet signature and a persona signature."""

    platform = Platform.SOLANA

    def generate_post_payload(self) -> dict[str, str]:
        return {"default": ""}

    def generate_sign_payload(self) -> str:
        return self._sign_payload(persona="0x" + compressed_pubkey_hex(self.pubkey))

    def validate(self) -> None:
        """The wallet signature is base58; the persona signature is raw bytes."""
        self.signature_payload = self.generate_sign_payload()
        self.alt_id = self.identity
        if self.action is Action.CREATE:
            self._validate_create()
        elif self.action is Action.DELETE:
            self._validate_delete()
        else:
            raise ValidationError(f"unknown action: {self.action}")

    def _validate_persona(self) -> None:
        try:
            validate_personal_signature(self.signature_payload, self.signature, self.pubkey)
        except ValidationError as exc:
            raise ValidationError(f"invalid persona signature {exc}") from exc

    def _validate_wallet(self, wallet_sig: str) -> None:
        try:
            validate_wallet_signature(self.signature_payload, wallet_sig, self.identity)
        except ValidationError as exc:
            raise ValidationError(f"invalid wallet signature {exc}") from exc

    def _validate_create(self) -> None:
        wallet_sig = self.extra.get("wallet_signature")
        if wallet_sig is None:
            raise ValidationError("wallet_signature not found")
        self._validate_wallet(wallet_sig)
        self._validate_persona()

    def _validate_delete(self) -> None:
        wallet_sig = self.extra.get("wallet_signature")
        if wallet_sig:
            self._validate_wallet(wallet_sig)
            self.signature = b58decode(wallet_sig)
            return
        self._validate_persona()


register_platform(Platform.SOLANA, Solana)