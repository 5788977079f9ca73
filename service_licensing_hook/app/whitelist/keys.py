"""
Authorization key derivation.

A key is SHA-256 over a fixed 128-byte encoding of the whitelist target:

    pad32(asset_id) || pad32(template_id) || uint256(terms_id) || pad32(minter_id)

Addresses are 20 bytes left-padded with zeros to a 32-byte word and the
terms id is a 32-byte big-endian word. The layout is part of the storage
contract: changing it orphans every persisted entry.
"""

import hashlib

from .models import WhitelistTarget

WORD_SIZE = 32


def encode_address(address: str) -> bytes:
    """Encode a canonical ``0x`` address as one left-padded word."""
    return bytes.fromhex(address[2:]).rjust(WORD_SIZE, b"\x00")


def encode_uint256(value: int) -> bytes:
    """Encode an unsigned integer as one big-endian word."""
    return value.to_bytes(WORD_SIZE, "big")


def encode_target(target: WhitelistTarget) -> bytes:
    return b"".join((
        encode_address(target.asset_id),
        encode_address(target.template_id),
        encode_uint256(target.terms_id),
        encode_address(target.minter_id),
    ))


def derive_authorization_key(target: WhitelistTarget) -> str:
    """Return the ``0x``-prefixed hex key for a whitelist target."""
    return "0x" + hashlib.sha256(encode_target(target)).hexdigest()
