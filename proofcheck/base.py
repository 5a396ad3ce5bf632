"""Validator model, platform registry and secp256k1 personal-signature helpers."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import math
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, ClassVar, Iterator
from uuid import UUID, uuid4

from Crypto.Hash import keccak


class Platform(str, Enum):
    """Platforms a proof can be published on."""

    TWITTER = "twitter"
    KEYBASE = "keybase"
    ETHEREUM = "ethereum"
    GITHUB = "github"
    DISCORD = "discord"
    DAS = "dotbit"
    SOLANA = "solana"
    MINDS = "minds"
    DNS = "dns"
    STEAM = "steam"
    ACTIVITYPUB = "activitypub"
    ENS = "ens"
    TELEGRAM = "telegram"
    SLACK = "slack"


class Action(str, Enum):
    """What a proof asks for."""

    CREATE = "create"
    DELETE = "delete"


class ValidationError(Exception):
    """Raised when a proof cannot be generated, fetched or verified."""


_P = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
_G = (
    0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798,
    0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8,
)

_Point = "tuple[int, int] | None"


@dataclass(frozen=True)
class PublicKey:
    """A point on the secp256k1 curve."""

    x: int
    y: int

    def __post_init__(self) -> None:
        if not (0 <= self.x < _P and 0 <= self.y < _P):
            raise ValidationError("public key coordinates out of range")
        if (self.y * self.y - self.x**3 - 7) % _P != 0:
            raise ValidationError("public key is not on the secp256k1 curve")


def _add(a, b):
    if a is None:
        return b
    if b is None:
        return a
    (x1, y1), (x2, y2) = a, b
    if x1 == x2:
        if (y1 + y2) % _P == 0:
            return None
        slope = 3 * x1 * x1 * pow(2 * y1, -1, _P) % _P
    else:
        slope = (y2 - y1) * pow(x2 - x1, -1, _P) % _P
    x3 = (slope * slope - x1 - x2) % _P
    return x3, (slope * (x1 - x3) - y1) % _P


def _multiply(scalar: int, point):
    result = None
    addend = point
    while scalar:
        if scalar & 1:
            result = _add(result, addend)
        addend = _add(addend, addend)
        scalar >>= 1
    return result


def _lift_x(x: int, odd: bool) -> tuple[int, int]:
    y_squared = (pow(x, 3, _P) + 7) % _P
    y = pow(y_squared, (_P + 1) // 4, _P)
    if y * y % _P != y_squared:
        raise ValidationError("no curve point for this x coordinate")
    if bool(y & 1) != odd:
        y = _P - y
    return x, y


def _keccak256(data: bytes) -> bytes:
    return keccak.new(digest_bits=256, data=data).digest()


def _as_bytes(payload: str | bytes) -> bytes:
    return payload.encode("utf-8") if isinstance(payload, str) else bytes(payload)


def _personal_hash(payload: str | bytes) -> bytes:
    message = _as_bytes(payload)
    prefix = b"\x19Ethereum Signed Message:\n" + str(len(message)).encode("ascii")
    return _keccak256(prefix + message)


def _nonces(secret: int, digest: bytes) -> Iterator[int]:
    """Deterministic nonces as in RFC 6979 with HMAC-SHA256."""

    def mac(key: bytes, data: bytes) -> bytes:
        return hmac.new(key, data, hashlib.sha256).digest()

    secret_bytes = secret.to_bytes(32, "big")
    hashed = (int.from_bytes(digest, "big") % _N).to_bytes(32, "big")
    v = b"\x01" * 32
    k = b"\x00" * 32
    k = mac(k, v + b"\x00" + secret_bytes + hashed)
    v = mac(k, v)
    k = mac(k, v + b"\x01" + secret_bytes + hashed)
    v = mac(k, v)
    while True:
        v = mac(k, v)
        candidate = int.from_bytes(v, "big")
        if 1 <= candidate < _N:
            yield candidate
        k = mac(k, v + b"\x00")
        v = mac(k, v)


_JSON_ESCAPES = str.maketrans(
    {"<": "\\u003c", ">": "\\u003e", "&": "\\u0026", "\u2028": "\\u2028", "\u2029": "\\u2029"}
)


def _marshal(value: Any) -> str:
    """Compact JSON with sorted keys and HTML-safe escaping."""
    text = json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return text.translate(_JSON_ESCAPES)


def timestamp_string(moment: datetime) -> str:
    """Seconds since the epoch, as a decimal string."""
    return str(math.floor(moment.timestamp()))


def timestamp_to_time(text: str) -> datetime:
    """Parse a decimal seconds-since-epoch string into an aware UTC datetime."""
    try:
        seconds = int(text)
    except (TypeError, ValueError):
        raise ValidationError(f"invalid timestamp: {text!r}") from None
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def decode_signature(text: str) -> bytes:
    """Decode a base64-encoded signature."""
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError(f"invalid signature encoding: {exc}") from exc


def string_to_pubkey(text: str) -> PublicKey:
    """Parse a hex public key, compressed or uncompressed, with or without 0x."""
    hex_text = text[2:] if text[:2] in ("0x", "0X") else text
    try:
        raw = bytes.fromhex(hex_text)
    except ValueError:
        raise ValidationError(f"public key is not hex: {text!r}") from None
    if len(raw) == 33 and raw[0] in (2, 3):
        x, y = _lift_x(int.from_bytes(raw[1:], "big"), raw[0] == 3)
        return PublicKey(x, y)
    if len(raw) == 65 and raw[0] == 4:
        return PublicKey(int.from_bytes(raw[1:33], "big"), int.from_bytes(raw[33:], "big"))
    raise ValidationError(f"unrecognised public key format: {text!r}")


def compressed_pubkey_hex(pubkey: PublicKey) -> str:
    """Compressed SEC1 encoding of the key as lower-case hex, without 0x."""
    if not isinstance(pubkey, PublicKey):
        raise ValidationError("public key missing")
    prefix = 3 if pubkey.y & 1 else 2
    return (bytes([prefix]) + pubkey.x.to_bytes(32, "big")).hex()


def pubkey_to_address(pubkey: PublicKey) -> str:
    """Checksummed Ethereum address of the key."""
    raw = _keccak256(pubkey.x.to_bytes(32, "big") + pubkey.y.to_bytes(32, "big"))[-20:]
    lower = raw.hex()
    digest = _keccak256(lower.encode("ascii")).hex()
    return "0x" + "".join(
        char.upper() if int(nibble, 16) >= 8 else char for char, nibble in zip(lower, digest)
    )


def generate_keypair() -> tuple[PublicKey, int]:
    """A fresh (public key, private scalar) pair."""
    secret = secrets.randbelow(_N - 1) + 1
    x, y = _multiply(secret, _G)
    return PublicKey(x, y), secret


def sign_personal(payload: str | bytes, private_key: int) -> bytes:
    """Sign with the Ethereum personal_sign scheme; returns r || s || v."""
    if not 1 <= private_key < _N:
        raise ValidationError("private key out of range")
    digest = _personal_hash(payload)
    z = int.from_bytes(digest, "big")
    for nonce in _nonces(private_key, digest):
        point = _multiply(nonce, _G)
        r = point[0] % _N
        if r == 0:
            continue
        s = pow(nonce, -1, _N) * (z + r * private_key) % _N
        if s == 0:
            continue
        recovery = (point[1] & 1) | (2 if point[0] >= _N else 0)
        if s > _N // 2:
            s = _N - s
            recovery ^= 1
        return r.to_bytes(32, "big") + s.to_bytes(32, "big") + bytes([27 + recovery])
    raise ValidationError("could not produce a signature")  # pragma: no cover


def recover_pubkey_from_personal_signature(payload: str | bytes, signature: bytes) -> PublicKey:
    """Recover the signer's public key from a personal_sign signature."""
    if len(signature) != 65:
        raise ValidationError(f"signature must be 65 bytes, got {len(signature)}")
    r = int.from_bytes(signature[:32], "big")
    s = int.from_bytes(signature[32:64], "big")
    recovery = signature[64]
    if recovery >= 27:
        recovery -= 27
    if recovery > 3:
        raise ValidationError("invalid signature recovery id")
    if not (1 <= r < _N and 1 <= s < _N):
        raise ValidationError("signature values out of range")
    x = r + _N if recovery & 2 else r
    if x >= _P:
        raise ValidationError("invalid signature point")
    point_r = _lift_x(x, bool(recovery & 1))
    z = int.from_bytes(_personal_hash(payload), "big") % _N
    r_inverse = pow(r, -1, _N)
    recovered = _add(
        _multiply(s * r_inverse % _N, point_r),
        _multiply(-z * r_inverse % _N, _G),
    )
    if recovered is None:
        raise ValidationError("signature recovers to the point at infinity")
    return PublicKey(*recovered)


def validate_personal_signature(payload: str | bytes, signature: bytes, pubkey: PublicKey) -> None:
    """Raise ValidationError unless `signature` over `payload` was made by `pubkey`."""
    recovered = recover_pubkey_from_personal_signature(payload, signature)
    if recovered != pubkey:
        raise ValidationError("bad signature: signer does not match the given public key")


@dataclass(kw_only=True)
class Validator(ABC):
    """A link between a persona key and an identity on some platform."""

    platform: ClassVar[Platform]

    pubkey: PublicKey | None = None
    identity: str = ""
    action: Action = Action.CREATE
    previous: str = ""
    alt_id: str = ""
    proof_location: str = ""
    signature: bytes = b""
    signature_payload: str = ""
    text: str = ""
    extra: dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    uuid: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        try:
            self.action = Action(self.action)
        except ValueError:
            raise ValidationError(f"unknown action: {self.action}") from None
        self.extra = dict(self.extra)

    @abstractmethod
    def generate_post_payload(self) -> dict[str, str]:
        """Post text (with placeholders) for the user to publish, keyed by language."""

    @abstractmethod
    def generate_sign_payload(self) -> str:
        """The string the persona key signs."""

    @abstractmethod
    def validate(self) -> None:
        """Check the published proof; raise ValidationError if it does not hold."""

    def _sign_payload(self, identity: str | None = None, **extra: Any) -> str:
        payload: dict[str, Any] = {
            "action": self.action.value,
            "identity": self.identity if identity is None else identity,
            "platform": self.platform.value,
            "prev": self.previous or None,
            "created_at": timestamp_string(self.created_at),
            "uuid": str(self.uuid),
        }
        payload.update(extra)
        return _marshal(payload)


_FACTORIES: dict[Platform, Callable[..., Validator]] = {}


def register_platform(platform: Platform | str, factory: Callable[..., Validator]) -> Callable[..., Validator]:
    """Make `factory` the constructor used for `platform`."""
    _FACTORIES[Platform(platform)] = factory
    return factory


def create_validator(platform: Platform | str, **kwargs: Any) -> Validator:
    """Build the validator registered for `platform`."""
    try:
        key = Platform(platform)
    except ValueError:
        raise ValidationError(f"unsupported platform: {platform}") from None
    factory = _FACTORIES.get(key)
    if factory is None:
        raise ValidationError(f"unsupported platform: {key.value}")
    return factory(**kwargs)