"""Links between a persona key and an Ethereum wallet address."""

from __future__ import annotations

from .base import (
    Action,
    Platform,
    ValidationError,
    Validator,
    compressed_pubkey_hex,
    decode_signature,
    pubkey_to_address,
    recover_pubkey_from_personal_signature,
    register_platform,
    validate_personal_signature,
)


def _address_bytes(address: str) -> bytes:
    """The 20 address bytes of a hex string, padded or truncated as needed."""
    text = address[2:] if address[:2] in ("0x", "0X") else address
    if len(text) % 2:
        text = "0" + text
    try:
        raw = bytes.fromhex(text)
    except ValueError:
        raw = b""
    return raw[-20:].rjust(20, b"\x00")


def _recovered_address(payload: str, signature: bytes) -> str:
    return pubkey_to_address(recover_pubkey_from_personal_signature(payload, signature))


def validate_eth_signature(signature: bytes, payload: str, address: str) -> None:
    """Raise ValidationError unless `signature` over `payload` comes from wallet `address`."""
    try:
        recovered = _recovered_address(payload, signature)
    except ValidationError as exc:
        raise ValidationError(f"Error when extracting pubkey: {exc}") from exc
    if _address_bytes(recovered) != _address_bytes(address):
        raise ValidationError("ETH wallet signature validation failed")


class Ethereum(Validator):
    """A wallet proven by signatures of both the persona and the wallet."""

    platform = Platform.ETHEREUM

    def generate_post_payload(self) -> dict[str, str]:
        return {"default": ""}

    def generate_sign_payload(self) -> str:
        return self._sign_payload(
            identity=self.identity.lower(),
            persona="0x" + compressed_pubkey_hex(self.pubkey),
        )

    def validate(self) -> None:
        """Either a persona-signed or a wallet-signed request is accepted for deletion."""
        self.signature_payload = self.generate_sign_payload()
        self.identity = self.identity.lower()
        self.alt_id = self.identity
        if self.action is Action.CREATE:
            self._validate_create()
        elif self.action is Action.DELETE:
            self._validate_delete()
        else:
            raise ValidationError(f"unknown action: {self.action}")

    def _validate_create(self) -> None:
        wallet_sig = self.extra.get("wallet_signature")
        if wallet_sig is None:
            raise ValidationError("wallet_signature not found")
        try:
            sig_bytes = decode_signature(wallet_sig)
        except ValidationError as exc:
            raise ValidationError(f"error when decoding sig: {exc}") from exc
        validate_eth_signature(sig_bytes, self.signature_payload, self.identity)
        validate_personal_signature(self.signature_payload, self.signature, self.pubkey)

    def _validate_delete(self) -> None:
        wallet_sig = self.extra.get("wallet_signature")
        if wallet_sig:
            try:
                sig = decode_signature(wallet_sig)
            except ValidationError as exc:
                raise ValidationError(f"error when decoding wallet sig: {exc}") from exc
            self.signature = sig
            try:
                wallet_address = _recovered_address(self.signature_payload, sig)
            except ValidationError as exc:
                raise ValidationError(f"error when recovering pubkey from sig: {exc}") from exc
            if _address_bytes(self.identity) != _address_bytes(wallet_address):
                raise ValidationError(
                    f"not signed by this wallet: found {wallet_address} instead of {self.identity}"
                )
            return
        validate_personal_signature(self.signature_payload, self.signature, self.pubkey)


register_platform(Platform.ETHEREUM, Ethereum)