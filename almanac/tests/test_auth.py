"""
Almanac Authentication Tests

Ed25519 challenge-response and JWT issuance:
- Address derivation from public key
- Challenge single use and expiry
- Bad signatures, tampered and expired tokens
"""
import pytest

from almanac.auth import ChallengeAuth
from almanac.identity import (
    address_from_private_key,
    address_from_public_key,
    generate_keypair,
    normalize_address,
    sign_challenge,
    verify_signature,
)


@pytest.fixture
def auth(tmp_path):
    return ChallengeAuth(db_path=tmp_path / "auth.db", jwt_secret_file=tmp_path / ".jwt_secret")


@pytest.fixture
def keypair():
    return generate_keypair()


class TestIdentity:
    def test_keypair_hex_lengths(self, keypair):
        private_key, public_key = keypair
        assert len(private_key) == 64
        assert len(public_key) == 64

    def test_address_deterministic(self, keypair):
        private_key, public_key = keypair
        assert address_from_public_key(public_key) == address_from_private_key(private_key)
        assert len(address_from_public_key(public_key)) == 40

    def test_normalize_address(self):
        assert normalize_address("0xABCDEF" + "0" * 34) == "abcdef" + "0" * 34
        assert normalize_address(None) == "0" * 40
        with pytest.raises(ValueError):
            normalize_address("1234")
        with pytest.raises(ValueError):
            address_from_private_key("nothex")

    def test_sign_and_verify(self, keypair):
        private_key, public_key = keypair
        sig = sign_challenge(private_key, b"hello")
        assert verify_signature(public_key, b"hello", sig)
        assert not verify_signature(public_key, b"other", sig)
        assert not verify_signature(public_key, b"hello", "zz")


class TestChallengeFlow:
    def test_full_flow_issues_token(self, auth, keypair):
        private_key, public_key = keypair
        address, challenge = auth.create_challenge(public_key)
        assert len(challenge) == 32
        result = auth.verify_challenge(address, sign_challenge(private_key, challenge))
        assert result.success
        assert result.address == address_from_public_key(public_key)
        payload = auth.verify_jwt(result.token)
        assert payload["sub"] == address

    def test_challenge_single_use(self, auth, keypair):
        private_key, public_key = keypair
        address, challenge = auth.create_challenge(public_key)
        sig = sign_challenge(private_key, challenge)
        assert auth.verify_challenge(address, sig).success
        replay = auth.verify_challenge(address, sig)
        assert not replay.success
        assert replay.error == "No pending challenge"

    def test_wrong_key_signature_rejected(self, auth, keypair):
        _, public_key = keypair
        other_private, _ = generate_keypair()
        address, challenge = auth.create_challenge(public_key)
        result = auth.verify_challenge(address, sign_challenge(other_private, challenge))
        assert not result.success
        assert result.error == "Invalid signature"

    def test_expired_challenge(self, auth, keypair, monkeypatch):
        monkeypatch.setenv("ALMANAC_CHALLENGE_TTL_SECONDS", "-1")
        private_key, public_key = keypair
        address, challenge = auth.create_challenge(public_key)
        result = auth.verify_challenge(address, sign_challenge(private_key, challenge))
        assert not result.success
        assert result.error == "Challenge expired"

    def test_bad_public_key(self, auth):
        with pytest.raises(ValueError):
            auth.create_challenge("abcd")
        with pytest.raises(ValueError):
            auth.create_challenge("zz" * 32)


class TestJWT:
    def _token(self, auth, keypair):
        private_key, public_key = keypair
        address, challenge = auth.create_challenge(public_key)
        return auth.verify_challenge(address, sign_challenge(private_key, challenge)).token

    def test_tampered_token_rejected(self, auth, keypair):
        token = self._token(auth, keypair)
        header, payload, sig = token.split(".")
        assert auth.verify_jwt(f"{header}.{payload}x.{sig}") is None
        assert auth.verify_jwt("not.a.token") is None
        assert auth.verify_jwt("garbage") is None

    def test_expired_token_rejected(self, auth, keypair, monkeypatch):
        monkeypatch.setenv("ALMANAC_JWT_TTL_HOURS", "-1")
        assert auth.verify_jwt(self._token(auth, keypair)) is None

    def test_secret_persisted(self, tmp_path, keypair):
        first = ChallengeAuth(db_path=tmp_path / "a.db", jwt_secret_file=tmp_path / ".s")
        token = self._token(first, keypair)
        second = ChallengeAuth(db_path=tmp_path / "a.db", jwt_secret_file=tmp_path / ".s")
        assert second.verify_jwt(token) is not None
