"""RegistryClient against the in-process API, plus document verification."""
import httpx
import pytest

from almanac.client import RegistryClient, verify_document
from almanac.errors import InvalidTimePeriod, NoData, Unauthorized
from almanac.models import PeriodRecord

from conftest import make_principal, sha


@pytest.fixture
def client(deployed_app):
    test_client, _, _ = deployed_app
    return RegistryClient("http://testserver", client=test_client)


def test_verify_document():
    record = PeriodRecord(sha(b"doc"), "https://example.org/q2.pdf", 215)
    assert verify_document(record, b"doc") is True
    assert verify_document(record, b"tampered") is False


def test_publish_and_read(client, admin):
    assert client.authenticate(admin["private_key"].decode()) == admin["address"]
    assert client.commit("2025Q2", sha(b"doc"), "https://example.org/q2.pdf", 215) is True
    assert client.read("2025Q2") == PeriodRecord(sha(b"doc"), "https://example.org/q2.pdf", 215)
    assert [e["name"] for e in client.events(period_key="2025Q2")] == ["NewEntry"]
    assert client.verify_chain()["valid"] is True
    assert client.health()["deployed"] is True


def test_errors_map_to_registry_errors(client, admin):
    with pytest.raises(NoData):
        client.read("2025Q2")

    outsider = make_principal()
    client.authenticate(outsider["private_key"].decode())
    with pytest.raises(Unauthorized):
        client.commit("2025Q2", sha(b"doc"), "", 1)

    client.authenticate(admin["private_key"].decode())
    with pytest.raises(InvalidTimePeriod):
        client.commit("2025M2", sha(b"doc"), "", 1)


def test_transfer_control(client, admin):
    newcomer = make_principal()
    client.authenticate(admin["private_key"].decode())
    assert client.transfer_control(newcomer["address"]) is True
    assert client.administrator() == newcomer["address"]


def test_fetch_and_verify(client, admin):
    documents = {"/q2.pdf": b"doc", "/q3.pdf": b"not what was hashed"}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=documents[request.url.path])

    fetcher = httpx.Client(transport=httpx.MockTransport(handler))
    client.authenticate(admin["private_key"].decode())
    client.commit("2025Q2", sha(b"doc"), "https://example.org/q2.pdf", 215)
    client.commit("2025Q3", sha(b"doc2"), "https://example.org/q3.pdf", 200)

    ok = client.fetch_and_verify("2025Q2", fetcher=fetcher)
    assert ok["verified"] is True
    bad = client.fetch_and_verify("2025Q3", fetcher=fetcher)
    assert bad["verified"] is False
    assert bad["expected_hash"] == sha(b"doc2").hex()
