"""Shared fixtures for the HTTP tests.

The app reads its settings on import, so the test database is configured first:
an in-memory SQLite database shared by every request through a StaticPool.
"""

from __future__ import annotations

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from main import app


@pytest.fixture(scope="session")
def client():
    # Entering the client runs the lifespan, which creates the tables
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def proposal_id() -> str:
    return f"prop-{uuid4().hex[:12]}"


def make_payload(group_id: str = "GRP-100", members: int = 3, goal: str = "Working capital") -> dict:
    """Submission body as the field app sends it."""
    photos = ["clientSelfie", "idFront", "idBack", "residenceProofOfAddress", "businessProofOfAddress"]
    return {
        "groupId": group_id,
        "groupName": "Market Women",
        "leaderName": "Luci Machado",
        "leaderPhone": "555-0100",
        "members": [
            {
                "memberId": str(i),
                "name": f"Member {i}",
                "loanAmount": 1000,
                "loanGoal": goal,
                "installments": 12,
                "firstPaymentDate": "2026-11-10",
                "evidence": {
                    key: {"uri": f"file:///{i}/{key}.jpg", "capturedAt": "2026-10-01T12:00:00Z"}
                    for key in photos
                },
                "signature": "data:image/png;base64,AAAA",
            }
            for i in range(1, members + 1)
        ],
        "totalAmount": 1000 * members,
        "contractText": "CREDIT CONTRACT AGREEMENT",
    }


@pytest.fixture
def submit(client):
    def _submit(proposal_id: str, **payload_kwargs):
        return client.post(
            "/api/proposals/submit",
            json={"proposalId": proposal_id, "payload": make_payload(**payload_kwargs)},
        )

    return _submit
