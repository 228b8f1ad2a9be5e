"""Tests for challenge transaction building, parsing and signature checks."""

from datetime import UTC

import pytest
from stellar_sdk import Keypair

from lumenpulse.errors import ConfigurationError, InvalidFormatError, InvalidInputError
from lumenpulse.services.stellar_challenge import (
    WEB_AUTH_DOMAIN_KEY,
    build_challenge_transaction,
    load_server_keypair,
    parse_public_key,
    parse_signed_transaction,
    signature_bytes,
    verify_any,
)
from tests.test_utils import utcnow


@pytest.fixture
def client_keypair():
    return Keypair.random()


@pytest.fixture
def challenge(server_keypair, client_keypair, passphrase):
    return build_challenge_transaction(
        server_keypair,
        client_keypair.public_key,
        "ab" * 32,
        home_domain="lumenpulse.test",
        data_name="LumenPulse auth",
        passphrase=passphrase,
        issued_at=utcnow(),
        ttl_seconds=300,
    )


class TestKeyParsing:
    def test_parse_valid_public_key(self, client_keypair):
        keypair = parse_public_key(client_keypair.public_key)
        assert keypair.raw_public_key() == client_keypair.raw_public_key()

    @pytest.mark.parametrize(
        "value",
        ["", "not-a-key", "G" + "A" * 55, Keypair.random().secret],
    )
    def test_parse_invalid_public_key(self, value):
        with pytest.raises(InvalidInputError):
            parse_public_key(value)

    def test_load_server_keypair_missing(self):
        with pytest.raises(ConfigurationError):
            load_server_keypair(None)

    def test_load_server_keypair_invalid(self):
        with pytest.raises(ConfigurationError):
            load_server_keypair("SNOTAVALIDSEED")

    def test_load_server_keypair_valid(self):
        keypair = Keypair.random()
        assert load_server_keypair(keypair.secret).public_key == keypair.public_key


class TestBuildChallenge:
    def test_challenge_structure(self, challenge, server_keypair, client_keypair):
        tx = challenge.transaction

        assert tx.source.account_id == server_keypair.public_key
        assert tx.sequence == 0
        assert len(tx.operations) == 2

        nonce_op, domain_op = tx.operations
        assert nonce_op.data_name == "LumenPulse auth"
        assert nonce_op.data_value == ("ab" * 32).encode()
        assert nonce_op.source.account_id == client_keypair.public_key

        assert domain_op.data_name == WEB_AUTH_DOMAIN_KEY
        assert domain_op.data_value == b"lumenpulse.test"
        assert domain_op.source.account_id == server_keypair.public_key

    def test_challenge_time_bounds(self, server_keypair, client_keypair, passphrase):
        issued_at = utcnow()
        envelope = build_challenge_transaction(
            server_keypair,
            client_keypair.public_key,
            "cd" * 32,
            home_domain="lumenpulse.test",
            data_name="LumenPulse auth",
            passphrase=passphrase,
            issued_at=issued_at,
            ttl_seconds=300,
        )
        time_bounds = envelope.transaction.preconditions.time_bounds

        assert time_bounds.min_time == 0
        assert time_bounds.max_time == int(issued_at.replace(tzinfo=UTC).timestamp()) + 300

    def test_challenge_signed_by_server(self, challenge, server_keypair, client_keypair):
        signatures = signature_bytes(challenge)

        assert len(signatures) == 1
        assert verify_any(challenge.hash(), signatures, server_keypair.raw_public_key())
        assert not verify_any(challenge.hash(), signatures, client_keypair.raw_public_key())

    def test_xdr_round_trip_keeps_hash(self, challenge, passphrase):
        parsed = parse_signed_transaction(challenge.to_xdr(), passphrase)
        assert parsed.hash() == challenge.hash()


class TestParseSignedTransaction:
    @pytest.mark.parametrize("value", ["", "not base64 !!", "AAAA", "aGVsbG8gd29ybGQ="])
    def test_garbage_raises_invalid_format(self, value, passphrase):
        with pytest.raises(InvalidFormatError):
            parse_signed_transaction(value, passphrase)


class TestVerifyAny:
    def test_matching_signature(self):
        keypair = Keypair.random()
        message = b"x" * 32
        assert verify_any(message, [keypair.sign(message)], keypair.raw_public_key())

    def test_finds_match_among_many(self):
        signer = Keypair.random()
        other = Keypair.random()
        message = b"y" * 32
        signatures = [other.sign(message), b"\x00" * 64, signer.sign(message)]

        assert verify_any(message, signatures, signer.raw_public_key())

    def test_no_signatures(self):
        assert not verify_any(b"z" * 32, [], Keypair.random().raw_public_key())

    def test_signature_over_other_message(self):
        keypair = Keypair.random()
        signature = keypair.sign(b"a" * 32)
        assert not verify_any(b"b" * 32, [signature], keypair.raw_public_key())

    def test_malformed_expected_key(self):
        keypair = Keypair.random()
        message = b"m" * 32
        assert not verify_any(message, [keypair.sign(message)], b"short")
