"""Principal Text Codec — tests for the checksummed textual identity format.

Tests cover:
    - Known encodings (management canister, anonymous principal)
    - from_text round-trips and normalizes case
    - Bad checksum, bad characters, non-canonical grouping rejected
    - Raw length limit enforced
    - neuron_id_from_hex length check
"""

import pytest

from neuronkeeper.core.domain_types import Principal, neuron_id_from_hex


def test_empty_principal_text():
    assert Principal(b"").to_text() == "aaaaa-aa"


def test_anonymous_principal_text():
    assert Principal(b"\x04").to_text() == "2vxsx-fae"
    assert str(Principal(b"\x04")) == "2vxsx-fae"


def test_from_text_round_trip():
    principal = Principal(bytes(range(1, 30)))
    assert Principal.from_text(principal.to_text()) == principal


def test_from_text_accepts_uppercase():
    assert Principal.from_text("2VXSX-FAE") == Principal(b"\x04")


def test_canister_id_round_trips():
    text = "rrkah-fqaaa-aaaaa-aaaaq-cai"
    assert Principal.from_text(text).to_text() == text


def test_from_text_rejects_bad_checksum():
    with pytest.raises(ValueError, match="checksum"):
        Principal.from_text("2vxsx-faf")


def test_from_text_rejects_garbage():
    with pytest.raises(ValueError):
        Principal.from_text("not a principal!")


def test_from_text_rejects_empty():
    with pytest.raises(ValueError):
        Principal.from_text("")


def test_from_text_rejects_non_canonical_grouping():
    with pytest.raises(ValueError, match="canonical"):
        Principal.from_text("2vxsxfae")


def test_raw_length_limit():
    with pytest.raises(ValueError):
        Principal(b"\x01" * 30)


def test_neuron_id_from_hex_checks_length():
    assert len(neuron_id_from_hex("ab" * 32)) == 32
    with pytest.raises(ValueError):
        neuron_id_from_hex("abcd")
    with pytest.raises(ValueError):
        neuron_id_from_hex("zz" * 32)
