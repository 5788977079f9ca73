"""
Unit tests for authorization key derivation.
"""

import hashlib

import pytest

from service_licensing_hook.app.whitelist.keys import (
    derive_authorization_key, encode_target, encode_address, encode_uint256
)
from service_licensing_hook.app.whitelist.models import WhitelistTarget, MAX_UINT256
from shared.errors import ValidationError
from shared.test_helpers import make_address


ASSET = make_address(0xA1)
TEMPLATE = make_address(0xA2)
MINTER = make_address(0xB1)


class TestAuthorizationKey:
    """Test cases for derive_authorization_key."""

    def test_key_is_sha256_of_fixed_width_encoding(self):
        """Test the documented 128-byte big-endian layout."""
        target = WhitelistTarget.create(ASSET, TEMPLATE, 7, MINTER)

        expected_bytes = (
            b"\x00" * 12 + bytes.fromhex(ASSET[2:])
            + b"\x00" * 12 + bytes.fromhex(TEMPLATE[2:])
            + (7).to_bytes(32, "big")
            + b"\x00" * 12 + bytes.fromhex(MINTER[2:])
        )

        assert encode_target(target) == expected_bytes
        assert len(encode_target(target)) == 128
        assert derive_authorization_key(target) == "0x" + hashlib.sha256(expected_bytes).hexdigest()

    def test_key_is_deterministic(self):
        """Test that equal targets derive equal keys."""
        first = WhitelistTarget.create(ASSET, TEMPLATE, 1, MINTER)
        second = WhitelistTarget.create(ASSET, TEMPLATE, 1, MINTER)

        assert derive_authorization_key(first) == derive_authorization_key(second)

    def test_address_case_does_not_change_key(self):
        """Test that checksummed and lower-case addresses are the same identity."""
        mixed = "0x" + "AbCdEf" + "0" * 34
        lower = mixed.lower()

        assert derive_authorization_key(WhitelistTarget.create(ASSET, TEMPLATE, 1, mixed)) == \
            derive_authorization_key(WhitelistTarget.create(ASSET, TEMPLATE, 1, lower))

    @pytest.mark.parametrize("field,value", [
        ("asset_id", make_address(0xA9)),
        ("template_id", make_address(0xA9)),
        ("terms_id", 2),
        ("minter_id", make_address(0xB9)),
    ])
    def test_any_field_change_changes_key(self, field, value):
        """Test that every field participates in the key."""
        base = {"asset_id": ASSET, "template_id": TEMPLATE, "terms_id": 1, "minter_id": MINTER}
        changed = dict(base, **{field: value})

        assert derive_authorization_key(WhitelistTarget.create(**base)) != \
            derive_authorization_key(WhitelistTarget.create(**changed))

    def test_key_is_order_sensitive(self):
        """Test that swapping asset and minter yields a different key."""
        forward = WhitelistTarget.create(ASSET, TEMPLATE, 1, MINTER)
        swapped = WhitelistTarget.create(MINTER, TEMPLATE, 1, ASSET)

        assert derive_authorization_key(forward) != derive_authorization_key(swapped)

    def test_encoders_pad_to_word(self):
        """Test single-field encoders."""
        assert encode_address(MINTER) == b"\x00" * 12 + bytes.fromhex(MINTER[2:])
        assert encode_uint256(MAX_UINT256) == b"\xff" * 32

    @pytest.mark.parametrize("asset_id", ["0x1234", "not-an-address", None, "0x" + "g" * 40])
    def test_invalid_address_rejected(self, asset_id):
        """Test that malformed addresses raise ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            WhitelistTarget.create(asset_id, TEMPLATE, 1, MINTER)

        assert exc_info.value.details["field"] == "asset_id"

    @pytest.mark.parametrize("terms_id", [-1, MAX_UINT256 + 1, "1.5", True])
    def test_invalid_terms_id_rejected(self, terms_id):
        """Test that terms ids outside uint256 raise ValidationError."""
        with pytest.raises(ValidationError):
            WhitelistTarget.create(ASSET, TEMPLATE, terms_id, MINTER)

    def test_decimal_string_terms_id_accepted(self):
        """Test that decimal strings parse to the same terms id."""
        assert WhitelistTarget.create(ASSET, TEMPLATE, "42", MINTER) == \
            WhitelistTarget.create(ASSET, TEMPLATE, 42, MINTER)
