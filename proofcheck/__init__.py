"""Generate and verify signed identity proofs linking a persona key to wallets and accounts."""

__version__ = "0.1.0"

__all__ = [
    "activitypub",
    "base",
    "ethereum",
    "github",
    "keybase",
    "minds",
    "solana",
    "steam",
]