"""
API tests for the Merkle Commitment Service.

Drives the FastAPI application through TestClient with an in-memory
root store:
1. Root publication requires the API key
2. Proofs built by /proofs verify through /verify
3. Tampered values verify as false, malformed input is a 400
"""

from collections.abc import Iterator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from merkle_commit.core.config import settings
from merkle_commit.crypto.hashing import DEFAULT_COMBINATOR
from merkle_commit.crypto.merkle import build_root
from merkle_commit.main import create_application
from merkle_commit.services.commitment_service import CommitmentService
from merkle_commit.services.root_store import InMemoryRootStore, RootRecord


API_KEY = "test-publisher-key-0001"
SCENARIO_LEAVES = [0x0BAD0010, 0x60A70020, 0xBEEF0030, 0xDEAD0040, 0xCA110050]
HEX_LEAVES = [hex(leaf) for leaf in SCENARIO_LEAVES]


@pytest.fixture
def client(
    commitment_service: CommitmentService,
    monkeypatch: pytest.MonkeyPatch,
) -> Iterator[TestClient]:
    """Test client with API key auth configured."""
    monkeypatch.setattr(settings, "API_AUTH_ENABLED", True)
    monkeypatch.setattr(settings, "API_KEY", API_KEY)

    with TestClient(create_application(commitment_service)) as test_client:
        yield test_client


def publish(client: TestClient, leaves: list[str] = HEX_LEAVES):
    return client.post("/api/v1/roots", json={"leaves": leaves}, headers={"X-API-Key": API_KEY})


# =============================================================================
# Probes
# =============================================================================

class TestProbes:
    """Tests for health and status endpoints."""

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_live_and_ready(self, client: TestClient) -> None:
        assert client.get("/live").status_code == 200
        assert client.get("/ready").status_code == 200

    def test_status_before_publish(self, client: TestClient) -> None:
        """Status reports no current root until one is published."""
        data = client.get("/status").json()

        assert data["current_root"] is None
        assert data["root_store"] == "InMemoryRootStore"


# =============================================================================
# Root publication
# =============================================================================

class TestRoots:
    """Tests for /api/v1/roots."""

    def test_publish_requires_api_key(self, client: TestClient) -> None:
        response = client.post("/api/v1/roots", json={"leaves": HEX_LEAVES})

        assert response.status_code == 401

    def test_publish_rejects_wrong_key(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/roots",
            json={"leaves": HEX_LEAVES},
            headers={"X-API-Key": "not-the-publisher-key"},
        )

        assert response.status_code == 401

    def test_publish_root(self, client: TestClient) -> None:
        response = publish(client)

        assert response.status_code == 201
        data = response.json()
        assert data["root"] == DEFAULT_COMBINATOR.to_hex(build_root(SCENARIO_LEAVES))
        assert data["leaf_count"] == 5
        assert data["version"] == 1
        assert data["algorithm"] == "sha256"

    def test_current_root(self, client: TestClient) -> None:
        assert client.get("/api/v1/roots/current").status_code == 404

        published = publish(client).json()
        response = client.get("/api/v1/roots/current")

        assert response.status_code == 200
        assert response.json()["root"] == published["root"]

    def test_publish_empty_leaves(self, client: TestClient) -> None:
        response = publish(client, [])

        assert response.status_code == 400
        assert "empty" in response.json()["detail"]

    def test_publish_malformed_leaf(self, client: TestClient) -> None:
        response = publish(client, ["0x01", "not-hex"])

        assert response.status_code == 400
        assert response.json()["detail"].startswith("leaves[1]")

    def test_list_roots(self, client: TestClient) -> None:
        publish(client, ["0x01"])
        publish(client, ["0x01", "0x02"])

        data = client.get("/api/v1/roots", params={"limit": 1}).json()

        assert data["total"] == 2
        assert data["has_more"] is True
        assert [item["version"] for item in data["items"]] == [2]

    def test_publish_with_auth_disabled(
        self,
        client: TestClient,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(settings, "API_AUTH_ENABLED", False)

        response = client.post("/api/v1/roots", json={"leaves": HEX_LEAVES})

        assert response.status_code == 201

    def test_publish_without_configured_key(
        self,
        client: TestClient,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Writes are refused when auth is on but no key is set."""
        monkeypatch.setattr(settings, "API_KEY", None)

        response = client.post(
            "/api/v1/roots",
            json={"leaves": HEX_LEAVES},
            headers={"X-API-Key": API_KEY},
        )

        assert response.status_code == 503


# =============================================================================
# Proofs and verification
# =============================================================================

class TestProofs:
    """Tests for /api/v1/proofs and /api/v1/verify."""

    def test_build_proof(self, client: TestClient) -> None:
        response = client.post("/api/v1/proofs", json={"leaves": HEX_LEAVES, "index": 3})

        assert response.status_code == 200
        data = response.json()
        assert data["leaf_index"] == 3
        assert data["tree_size"] == 5
        assert len(data["proof"]) == 3
        assert int(data["value"], 16) == SCENARIO_LEAVES[3]

    def test_proof_index_out_of_range(self, client: TestClient) -> None:
        response = client.post("/api/v1/proofs", json={"leaves": HEX_LEAVES, "index": 5})

        assert response.status_code == 400
        assert "out of range" in response.json()["detail"]

    def test_proof_empty_leaves(self, client: TestClient) -> None:
        response = client.post("/api/v1/proofs", json={"leaves": [], "index": 0})

        assert response.status_code == 400

    def test_verify_before_publish(self, client: TestClient) -> None:
        response = client.post("/api/v1/verify", json={"value": "0x01", "proof": []})

        assert response.status_code == 409

    def test_proof_round_trip(self, client: TestClient) -> None:
        """Every proof from /proofs verifies against the published root."""
        publish(client)

        for index, value in enumerate(HEX_LEAVES):
            proof = client.post(
                "/api/v1/proofs",
                json={"leaves": HEX_LEAVES, "index": index},
            ).json()["proof"]

            response = client.post("/api/v1/verify", json={"value": value, "proof": proof})

            assert response.status_code == 200
            data = response.json()
            assert data["verified"] is True
            assert data["root_version"] == 1
            assert data["message"] == "Verification successful"

    def test_verify_tampered_value(self, client: TestClient) -> None:
        publish(client)
        proof = client.post(
            "/api/v1/proofs",
            json={"leaves": HEX_LEAVES, "index": 0},
        ).json()["proof"]

        response = client.post("/api/v1/verify", json={"value": "0x0bad0011", "proof": proof})

        assert response.status_code == 200
        assert response.json()["verified"] is False

    def test_verify_malformed_proof(self, client: TestClient) -> None:
        publish(client)

        response = client.post("/api/v1/verify", json={"value": "0x01", "proof": ["0xzz"]})

        assert response.status_code == 400
        assert response.json()["detail"].startswith("proof[0]")

    def test_verify_is_public(
        self,
        client: TestClient,
        mock_metrics: MagicMock,
    ) -> None:
        """Verification needs no API key."""
        publish(client, ["0x07"])

        response = client.post("/api/v1/verify", json={"value": "0x07", "proof": []})

        assert response.status_code == 200
        assert response.json()["verified"] is True
        mock_metrics.record_verification.assert_called_once_with(True)


# =============================================================================
# Consistency under republication
# =============================================================================

class RepublishingStore(InMemoryRootStore):
    """Store whose root is replaced right after each read."""

    def __init__(self, records: list[RootRecord]) -> None:
        super().__init__()
        self._queued = list(records)
        self.reads = 0

    async def get_record(self) -> RootRecord:
        self.reads += 1
        return self._queued[min(self.reads, len(self._queued)) - 1]


class TestVerifyReadsRootOnce:
    """A verification is checked and reported against a single root."""

    def test_republish_during_verify(self, mock_metrics: MagicMock) -> None:
        old_leaves = [0x01, 0x02]
        old = RootRecord(root=build_root(old_leaves), algorithm="sha256", leaf_count=2, version=1)
        new = RootRecord(
            root=build_root(SCENARIO_LEAVES),
            algorithm="sha256",
            leaf_count=5,
            version=2,
        )
        store = RepublishingStore([old, new])
        service = CommitmentService(store, metrics=mock_metrics)
        proof = service.build_proof(SCENARIO_LEAVES, 0)

        with TestClient(create_application(service)) as test_client:
            response = test_client.post(
                "/api/v1/verify",
                json={
                    "value": HEX_LEAVES[0],
                    "proof": [DEFAULT_COMBINATOR.to_hex(s) for s in proof.siblings],
                },
            )

        assert store.reads == 1
        data = response.json()
        assert data["root_version"] == 1
        assert data["root"] == old.root_hex
        assert data["verified"] is False


class TestLeafBound:
    """Leaf bound is enforced before any hex is decoded."""

    def test_oversized_request_rejected_before_decoding(self, mock_metrics: MagicMock) -> None:
        service = CommitmentService(InMemoryRootStore(), max_leaves=2, metrics=mock_metrics)

        with TestClient(create_application(service)) as test_client:
            response = test_client.post(
                "/api/v1/proofs",
                json={"leaves": ["0x01", "0x02", "not-hex"], "index": 0},
            )

        assert response.status_code == 400
        assert "exceeds the limit" in response.json()["detail"]
