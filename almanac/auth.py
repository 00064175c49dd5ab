"""
Almanac Authentication

Ed25519 challenge-response. The caller proves control of a private key; the
server derives the address from the public key and issues a short-lived
HMAC-signed JWT whose ``sub`` is that address. No registration step: any key
can authenticate, and the registry's access controller decides what the
resulting address may do.

Flow:
    challenge = auth.create_challenge(public_key_hex)     # -> address, bytes
    signature = sign_challenge(private_key_hex, challenge)
    result = auth.verify_challenge(address, signature)    # -> AuthResult(token)
"""

import base64
import hashlib
import hmac
import json
import logging
import secrets
import sqlite3
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Tuple, Union

from . import config
from .identity import address_from_public_key, verify_signature

logger = logging.getLogger(__name__)


@dataclass
class AuthResult:
    """Result of authentication attempt."""
    success: bool
    token: Optional[str] = None
    address: Optional[str] = None
    error: Optional[str] = None
    expires_at: Optional[str] = None


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def _unb64url(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


class ChallengeAuth:
    def __init__(self, db_path: Path, jwt_secret_file: Optional[Path] = None):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.jwt_secret_file = jwt_secret_file or config.get_jwt_secret_file()
        self._init_db()
        self._jwt_secret = self._load_or_create_jwt_secret()

    def _init_db(self):
        conn = sqlite3.connect(self.db_path)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS challenges (
                address TEXT PRIMARY KEY,
                public_key_hex TEXT NOT NULL,
                challenge_hex TEXT NOT NULL,
                created_at TEXT NOT NULL,
                expires_at TEXT NOT NULL
            )
        """)
        conn.commit()
        conn.close()

    def _load_or_create_jwt_secret(self) -> bytes:
        self.jwt_secret_file.parent.mkdir(parents=True, exist_ok=True)
        if self.jwt_secret_file.exists():
            return self.jwt_secret_file.read_bytes()
        secret = secrets.token_bytes(32)
        self.jwt_secret_file.write_bytes(secret)
        self.jwt_secret_file.chmod(0o600)  # Owner read/write only
        return secret

    def create_challenge(self, public_key_hex: Union[str, bytes]) -> Tuple[str, bytes]:
        """
        Issue a 32-byte challenge for the key's address.

        Raises:
            ValueError: public key is not 32 hex-encoded bytes
        """
        if isinstance(public_key_hex, bytes):
            public_key_hex = public_key_hex.decode()
        public_key_hex = public_key_hex.strip().lower()
        try:
            if len(bytes.fromhex(public_key_hex)) != 32:
                raise ValueError
        except ValueError:
            raise ValueError("Public key must be 32 hex-encoded bytes")

        address = address_from_public_key(public_key_hex)
        challenge = secrets.token_bytes(32)
        now = datetime.now(timezone.utc)
        expires = now + timedelta(seconds=config.get_challenge_ttl_seconds())

        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("""
                INSERT OR REPLACE INTO challenges (address, public_key_hex, challenge_hex, created_at, expires_at)
                VALUES (?, ?, ?, ?, ?)
            """, (address, public_key_hex, challenge.hex(), now.isoformat(), expires.isoformat()))
            conn.commit()
        finally:
            conn.close()
        return address, challenge

    def verify_challenge(self, address: str, signature_hex: Union[str, bytes]) -> AuthResult:
        """Check the signature over the pending challenge and issue a JWT."""
        conn = sqlite3.connect(self.db_path)
        try:
            row = conn.execute(
                "SELECT public_key_hex, challenge_hex, expires_at FROM challenges WHERE address = ?",
                (address,),
            ).fetchone()
            if not row:
                return AuthResult(success=False, error="No pending challenge")
            public_key_hex, challenge_hex, expires_at = row

            # single use: consumed whatever the outcome
            conn.execute("DELETE FROM challenges WHERE address = ?", (address,))
            conn.commit()
        finally:
            conn.close()

        if datetime.fromisoformat(expires_at) < datetime.now(timezone.utc):
            return AuthResult(success=False, error="Challenge expired")

        if not verify_signature(public_key_hex, bytes.fromhex(challenge_hex), signature_hex):
            logger.warning("Bad challenge signature for %s", address)
            return AuthResult(success=False, error="Invalid signature")

        expires = datetime.now(timezone.utc) + timedelta(hours=config.get_jwt_ttl_hours())
        token = self._create_jwt(address, expires)
        return AuthResult(success=True, token=token, address=address, expires_at=expires.isoformat())

    def _create_jwt(self, address: str, expires_at: datetime) -> str:
        """Create simple HMAC-signed JWT."""
        header = {"alg": "HS256", "typ": "JWT"}
        payload = {
            "sub": address,
            "exp": int(expires_at.timestamp()),
            "iat": int(time.time()),
        }
        message = f"{_b64url(json.dumps(header).encode())}.{_b64url(json.dumps(payload).encode())}"
        signature = hmac.new(self._jwt_secret, message.encode(), hashlib.sha256).digest()
        return f"{message}.{_b64url(signature)}"

    def verify_jwt(self, token: str) -> Optional[dict]:
        """Verify JWT and return payload if valid."""
        parts = token.split(".")
        if len(parts) != 3:
            return None
        header_b64, payload_b64, signature_b64 = parts
        message = f"{header_b64}.{payload_b64}"
        expected_sig = hmac.new(self._jwt_secret, message.encode(), hashlib.sha256).digest()
        try:
            actual_sig = _unb64url(signature_b64)
            payload = json.loads(_unb64url(payload_b64))
        except (ValueError, TypeError):
            return None
        if not hmac.compare_digest(expected_sig, actual_sig):
            return None
        if not isinstance(payload, dict) or payload.get("exp", 0) < time.time():
            return None
        return payload
