# proofcheck

`proofcheck` creates and checks signed identity proofs. A proof links a
*persona* to an account somewhere else. The persona is a secp256k1 public key.
The account can be a wallet address or a profile on a social or developer
platform.

Every validator is a `proofcheck.base.Validator` dataclass. They all work in
the same way.

1. **Sign payload.** `generate_sign_payload()` returns a compact JSON string
   with its keys sorted. The string contains:
   - `action`
   - `identity`
   - `platform`
   - `prev`, which is `null` when `previous` is empty
   - `created_at`, as seconds since the epoch
   - `uuid`

   The wallet validators also add a `persona` key. The persona key signs this
   string using the Ethereum `personal_sign` scheme.
2. **Post payload.** `generate_post_payload()` returns the text the user should
   publish. The result is keyed by language and always has a `"default"` entry.
   Where a signature belongs, the text holds the placeholder `%SIG_BASE64%`.
3. **Validation.** `validate()` fetches the published proof, extracts the
   signature and checks it against the persona key. If any step fails, it
   raises `proofcheck.base.ValidationError`. Along the way it sets fields such
   as `alt_id` (the platform's own account id), `text` and `signature`.

A validator has these fields:

- `pubkey`
- `identity`
- `action` (`Action.CREATE` or `Action.DELETE`)
- `previous`
- `alt_id`
- `proof_location`
- `signature`
- `signature_payload`
- `text`
- `extra`
- `created_at`
- `uuid`

Validators that fetch data make HTTPS requests through `requests`, with a
30-second timeout.

## Platforms

| Module                   | Class         | Where the proof lives                                                        |
|--------------------------|---------------|------------------------------------------------------------------------------|
| `proofcheck.activitypub` | `ActivityPub` | a Mastodon, Pleroma or Misskey post, found by the post id in `proof_location` |
| `proofcheck.ethereum`    | `Ethereum`    | a base64 wallet signature in `extra["wallet_signature"]`                      |
| `proofcheck.github`      | `Github`      | a gist file named `0x<compressed persona key>.json`                           |
| `proofcheck.keybase`     | `Keybase`     | `https://<user>.keybase.pub/NextID/0x<compressed persona key>.json`           |
| `proofcheck.minds`       | `Minds`       | a `Sig:` line in a Minds activity                                             |
| `proofcheck.steam`       | `Steam`       | a `NextID proof: <sig>:...` entry in the profile summary                      |
| `proofcheck.solana`      | `Solana`      | a base58 ed25519 wallet signature in `extra["wallet_signature"]`              |

Platform-specific behaviour:

- **ActivityPub.** The identity must have the form `user@server`; a leading `@`
  is removed. The server software is detected through its NodeInfo document.
- **Ethereum and Solana.**
  - A `create` request needs both the wallet signature and the persona
    signature.
  - A `delete` request needs only one of them.
- **Steam.**
  - The `identity` may be a numeric SteamID or a custom profile name. After the
    profile is fetched, `identity` becomes the numeric id and `alt_id` becomes
    the custom name.
  - `extract_steam_id(text)` returns a `SteamID(universe, user_id, y)`. It
    raises `ValidationError` unless the id belongs to an individual account in
    the public universe. For example, `extract_steam_id("76561198092541763")`
    returns `SteamID(universe=1, user_id=66138017, y=1)`.
  - `parse_steam_xml(body)` reads `(steamID64, customURL, summary)` from a
    profile page.

### Looking up validators by platform

Importing a platform module registers its class under a
`proofcheck.base.Platform` value. After that:

- `create_validator(platform, **fields)` builds the validator registered for
  that platform.
- `register_platform(platform, factory)` installs your own factory.

If no validator is registered for a platform, `create_validator` raises
`ValidationError`.

## Example: an Ethereum wallet link

```python
import base64

from proofcheck.base import generate_keypair, pubkey_to_address, sign_personal
from proofcheck.ethereum import Ethereum

persona_pub, persona_priv = generate_keypair()
wallet_pub, wallet_priv = generate_keypair()

proof = Ethereum(pubkey=persona_pub, identity=pubkey_to_address(wallet_pub))
payload = proof.generate_sign_payload()
proof.signature = sign_personal(payload, persona_priv)
proof.extra["wallet_signature"] = base64.b64encode(
    sign_personal(payload, wallet_priv)
).decode()

proof.validate()            # raises ValidationError if either signature is wrong
print(proof.alt_id)         # the lower-cased wallet address
```

## Key and signature helpers (`proofcheck.base`)

- `string_to_pubkey(text)` reads a hex key, with or without `0x`. It accepts
  the compressed (33-byte) and the uncompressed (65-byte) form.
- `compressed_pubkey_hex(pubkey)` returns the compressed form as lower-case hex.
- `pubkey_to_address(pubkey)` returns the checksummed Ethereum address.
- `generate_keypair()` returns `(PublicKey, private scalar)`.
- `sign_personal(payload, private_key)` returns a deterministic 65-byte
  `r || s || v` signature.
- `recover_pubkey_from_personal_signature(payload, signature)` recovers the
  signer's key from a signature.
- `validate_personal_signature(payload, signature, pubkey)` checks a signature
  against a key and raises `ValidationError` if they do not match.
- `decode_signature(text)` decodes strict base64.
- `timestamp_string(moment)` and `timestamp_to_time(text)` convert between
  datetimes and seconds-since-epoch strings.

`proofcheck.solana` also provides `b58encode`, `b58decode` and
`validate_wallet_signature(payload, signature, address)`.

## What this package does not do

- **Platforms without validators.** `Platform` also lists `dns`, `dotbit`,
  `discord`, `twitter`, `ens`, `telegram` and `slack`. No validator is
  registered for any of them, so `create_validator` raises `ValidationError`
  for these platforms.
- **Service layer.** The package is a library only. It has no command-line
  tool, no HTTP server and no storage for proofs.