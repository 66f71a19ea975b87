"""
Unit tests for input validation and principal helpers.
"""

import pytest

from ascend.crypto import (
    address_from_public_key,
    bytes_to_hex,
    generate_keypair,
    hex_to_bytes,
    ledger_address,
)
from ascend.utils.validation import (
    validate_amount,
    validate_hex_string,
    validate_principal,
    validate_timestamp,
    validate_wallet_name,
    MAX_AMOUNT,
)


class TestValidation:
    """Tests for (is_valid, error) validators."""

    def test_principal_must_be_20_bytes(self):
        assert validate_principal(b"\x01" * 20)[0]
        assert not validate_principal(b"\x01" * 19)[0]
        assert not validate_principal("0x" + "01" * 20)[0]

    def test_principal_rejects_bytearray(self):
        valid, error = validate_principal(bytearray(b"\x01" * 20), "caller")
        assert not valid
        assert "bytearray" in error

    def test_amount_bounds(self):
        assert validate_amount(0)[0]
        assert validate_amount(MAX_AMOUNT)[0]
        assert not validate_amount(-1)[0]
        assert not validate_amount(MAX_AMOUNT + 1)[0]

    def test_bool_is_not_an_amount(self):
        valid, error = validate_amount(True)
        assert not valid
        assert "must be int" in error

    def test_timestamp(self):
        assert validate_timestamp(1_700_000_000)[0]
        assert not validate_timestamp(-5)[0]
        assert not validate_timestamp(1.5)[0]

    def test_hex_string(self):
        assert validate_hex_string("0x" + "ab" * 20, "address", 20)[0]
        assert not validate_hex_string("0xabc", "address")[0]
        assert not validate_hex_string("0xzz", "address")[0]

    @pytest.mark.parametrize("name,ok", [
        ("alice", True),
        ("bob_2", True),
        ("../etc", False),
        ("", False),
    ])
    def test_wallet_name(self, name, ok):
        assert validate_wallet_name(name)[0] is ok


class TestPrincipals:
    """Tests for address derivation."""

    def test_keypair_address(self):
        kp = generate_keypair()
        assert len(kp.public_key) == 64
        assert kp.address == address_from_public_key(kp.public_key)
        assert len(kp.address) == 20

    def test_distinct_keypairs_distinct_addresses(self):
        assert generate_keypair().address != generate_keypair().address

    def test_ledger_address_deterministic(self):
        owner = b"\x07" * 20
        assert ledger_address(owner, 100) == ledger_address(owner, 100)
        assert ledger_address(owner, 100) != ledger_address(owner, 101)
        assert len(ledger_address(owner, 100)) == 20

    def test_bad_public_key_length(self):
        with pytest.raises(ValueError):
            address_from_public_key(b"\x00" * 63)

    def test_hex_helpers(self):
        data = b"\x00\xff" * 10
        assert bytes_to_hex(data).startswith("0x")
        assert hex_to_bytes(bytes_to_hex(data)) == data
        assert hex_to_bytes(data.hex()) == data


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
