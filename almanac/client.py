"""
Almanac HTTP client.

Publishers authenticate with their Ed25519 key and commit quarterly records.
Anyone can read records, follow notifications, and check a record's hash
against the document it points to.
"""
from __future__ import annotations

import hmac
from typing import Any, Optional

import httpx

from .errors import RegistryError, error_from_code
from .identity import public_key_from_private, sign_challenge
from .models import PeriodRecord, hash_document


def verify_document(record: PeriodRecord, document: bytes) -> bool:
    """True when ``document`` hashes to the record's content hash."""
    return hmac.compare_digest(hash_document(document), record.content_hash)


def _extract_error_detail(response: httpx.Response) -> tuple[Optional[str], str]:
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return None, text if text else response.reason_phrase
    if isinstance(body, dict):
        return body.get("code"), str(body.get("detail", body))
    return None, str(body)


def _raise_for_status(response: httpx.Response) -> None:
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        code, detail = _extract_error_detail(response)
        if code:
            raise error_from_code(code, detail) from exc
        request = exc.request
        raise RuntimeError(f"{request.method} {request.url.path} -> {response.status_code}: {detail}") from exc


class RegistryClient:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        timeout_s: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self._client = client or httpx.Client(base_url=self.base_url, timeout=timeout_s)
        self._owns_client = client is None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def health(self) -> dict[str, Any]:
        r = self._client.get("/health")
        _raise_for_status(r)
        return r.json()

    # --- Auth ---
    def authenticate(self, private_key_hex: str) -> str:
        """Run challenge-response and keep the bearer token. Returns the address."""
        public_key = public_key_from_private(private_key_hex).decode()
        r = self._client.post("/auth/challenge", json={"public_key": public_key})
        _raise_for_status(r)
        data = r.json()
        signature = sign_challenge(private_key_hex, bytes.fromhex(data["challenge"]))
        r = self._client.post("/auth/verify", json={"address": data["address"],
                                                    "signature": signature.decode()})
        _raise_for_status(r)
        self.token = r.json()["token"]
        return data["address"]

    # --- Administrator ---
    def administrator(self) -> str:
        r = self._client.get("/administrator")
        _raise_for_status(r)
        return r.json()["administrator"]

    def transfer_control(self, new_holder: Optional[str]) -> bool:
        r = self._client.post("/administrator/transfer", headers=self._headers(),
                              json={"new_holder": new_holder})
        _raise_for_status(r)
        return r.json()["success"]

    # --- Periods ---
    def commit(self, period_key: str, content_hash: bytes, document_location: str, indicator_value: int) -> bool:
        payload = {
            "content_hash": bytes(content_hash).hex(),
            "document_location": document_location,
            "indicator_value": indicator_value,
        }
        r = self._client.put(f"/periods/{period_key}", headers=self._headers(), json=payload)
        _raise_for_status(r)
        return r.json()["success"]

    def read(self, period_key: str) -> PeriodRecord:
        r = self._client.get(f"/periods/{period_key}")
        _raise_for_status(r)
        data = r.json()
        return PeriodRecord(
            content_hash=data["content_hash"],
            document_location=data["document_location"],
            indicator_value=data["indicator_value"],
        )

    # --- Notifications ---
    def events(self, *, name: Optional[str] = None, period_key: Optional[str] = None,
               after_id: int = 0, limit: int = 100) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"after_id": after_id, "limit": limit}
        if name:
            params["name"] = name
        if period_key:
            params["period_key"] = period_key
        r = self._client.get("/events", params=params)
        _raise_for_status(r)
        return r.json()

    def verify_chain(self) -> dict[str, Any]:
        r = self._client.get("/events/verify")
        _raise_for_status(r)
        return r.json()

    # --- Third-party verification ---
    def fetch_and_verify(self, period_key: str, fetcher: Optional[httpx.Client] = None) -> dict[str, Any]:
        """Read a record, download its document independently and compare hashes."""
        record = self.read(period_key)
        http = fetcher or httpx.Client(timeout=60.0, follow_redirects=True)
        try:
            response = http.get(record.document_location)
            response.raise_for_status()
            document = response.content
        finally:
            if fetcher is None:
                http.close()
        return {
            "period_key": period_key,
            "verified": verify_document(record, document),
            "expected_hash": record.content_hash_hex,
            "actual_hash": hash_document(document).hex(),
            "document_location": record.document_location,
        }


__all__ = ["RegistryClient", "RegistryError", "verify_document", "hash_document"]
