"""
Almanac Identities

Principals are addresses derived from Ed25519 public keys. The private key
never leaves the holder; only the public key and signatures reach the server.

Usage:
    from almanac.identity import generate_keypair, address_from_public_key

    private_key, public_key = generate_keypair()
    address = address_from_public_key(public_key)
"""

import hashlib
from typing import Optional, Tuple, Union

from nacl.encoding import HexEncoder
from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

ADDRESS_LENGTH = 40
NULL_ADDRESS = "0" * ADDRESS_LENGTH

_HEX_DIGITS = frozenset("0123456789abcdef")


# =============================================================================
# ADDRESSES
# =============================================================================

def normalize_address(address: Optional[str]) -> str:
    """
    Canonical lowercase form of an address.

    None and the empty string map to NULL_ADDRESS. An optional "0x" prefix is
    accepted. Anything that is not 40 hex characters raises ValueError.
    """
    if address is None:
        return NULL_ADDRESS
    if not isinstance(address, str):
        raise ValueError(f"Address must be a string, got {type(address).__name__}")
    value = address.strip().lower()
    if value.startswith("0x"):
        value = value[2:]
    if not value:
        return NULL_ADDRESS
    if len(value) != ADDRESS_LENGTH or not set(value) <= _HEX_DIGITS:
        raise ValueError(f"Malformed address: {address!r}")
    return value


def is_null_address(address: Optional[str]) -> bool:
    return normalize_address(address) == NULL_ADDRESS


def address_from_public_key(public_key_hex: Union[str, bytes]) -> str:
    """Derive an address from a hex-encoded public key (deterministic)."""
    if isinstance(public_key_hex, bytes):
        public_key_hex = public_key_hex.decode()
    return hashlib.sha256(public_key_hex.lower().encode()).hexdigest()[:ADDRESS_LENGTH]


# =============================================================================
# KEYS
# =============================================================================

def generate_keypair() -> Tuple[bytes, bytes]:
    """
    Generate an Ed25519 keypair.

    Returns:
        (private_key_hex, public_key_hex) - Both as hex-encoded bytes
    """
    signing_key = SigningKey.generate()
    private_key_hex = signing_key.encode(encoder=HexEncoder)
    public_key_hex = signing_key.verify_key.encode(encoder=HexEncoder)
    return private_key_hex, public_key_hex


def public_key_from_private(private_key_hex: Union[str, bytes]) -> bytes:
    """Hex public key for a hex private key. Raises ValueError when malformed."""
    if isinstance(private_key_hex, str):
        private_key_hex = private_key_hex.strip().encode()
    try:
        signing_key = SigningKey(private_key_hex, encoder=HexEncoder)
    except (ValueError, TypeError) as e:
        raise ValueError(f"Malformed private key: {e}") from e
    return signing_key.verify_key.encode(encoder=HexEncoder)


def address_from_private_key(private_key_hex: Union[str, bytes]) -> str:
    return address_from_public_key(public_key_from_private(private_key_hex))


def sign_challenge(private_key_hex: Union[str, bytes], challenge: bytes) -> bytes:
    """
    Sign a challenge with the holder's private key.

    Returns:
        Signature (hex-encoded)
    """
    if isinstance(private_key_hex, str):
        private_key_hex = private_key_hex.encode()
    signing_key = SigningKey(private_key_hex, encoder=HexEncoder)
    return signing_key.sign(challenge).signature.hex().encode()


def verify_signature(public_key_hex: Union[str, bytes], message: bytes, signature_hex: Union[str, bytes]) -> bool:
    if isinstance(public_key_hex, str):
        public_key_hex = public_key_hex.encode()
    if isinstance(signature_hex, bytes):
        signature_hex = signature_hex.decode()
    try:
        verify_key = VerifyKey(public_key_hex, encoder=HexEncoder)
        verify_key.verify(message, bytes.fromhex(signature_hex))
        return True
    except (BadSignatureError, ValueError, TypeError):
        return False
