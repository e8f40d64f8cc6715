from __future__ import annotations

from uuid import uuid4


def _decide(client, proposal_id: str, stage: str, decision: str, **extra):
    body = {"stage": stage, "decision": decision, "userId": "reviewer-1", **extra}
    return client.post(f"/api/gate/proposals/{proposal_id}/decision", json=body)


def _ids(response) -> list[str]:
    return [item["proposalId"] for item in response.json()]


def test_health(client) -> None:
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_submit_creates_doc_review_proposal(client, submit, proposal_id) -> None:
    response = submit(proposal_id)
    assert response.status_code == 201
    body = response.json()
    assert body["proposalId"] == proposal_id
    assert body["stage"] == "DOC_REVIEW"
    assert body["submittedAt"]

    stored = client.get(f"/api/proposals/submissions/{proposal_id}").json()
    assert stored["payload"]["groupId"] == "GRP-100"
    assert len(stored["payload"]["members"]) == 3
    assert proposal_id in _ids(client.get("/api/proposals/submissions"))


def test_duplicate_submission_conflicts(submit, proposal_id) -> None:
    assert submit(proposal_id).status_code == 201
    response = submit(proposal_id, group_id="GRP-OTHER")
    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "conflict"
    assert body["data"] is None
    assert body["details"]["proposalId"] == proposal_id


def test_submit_validates_body(client) -> None:
    response = client.post("/api/proposals/submit", json={"payload": {"groupId": "g"}})
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "validation_error"
    assert body["details"]["errors"]

    response = client.post("/api/proposals/submit", json={"proposalId": "", "payload": {}})
    assert response.status_code == 400


def test_unknown_submission(client) -> None:
    response = client.get("/api/proposals/submissions/does-not-exist")
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


def test_list_requires_valid_stage(client) -> None:
    missing = client.get("/api/gate/proposals")
    assert missing.status_code == 400
    assert missing.json()["code"] == "validation_error"

    invalid = client.get("/api/gate/proposals", params={"stage": "PENDING"})
    assert invalid.status_code == 400
    assert "DOC_REVIEW" in invalid.json()["details"]["allowed"]


def test_list_by_stage(client, submit) -> None:
    first, second = f"prop-{uuid4().hex[:12]}", f"prop-{uuid4().hex[:12]}"
    submit(first, goal="Investment")
    submit(second, members=4)

    response = client.get("/api/gate/proposals", params={"stage": "DOC_REVIEW"})
    assert response.status_code == 200
    ids = _ids(response)
    assert ids.index(second) < ids.index(first)

    rows = {item["proposalId"]: item for item in response.json()}
    # Five of the six base photos were sent; investment also needs a renovation photo
    assert rows[first]["membersCount"] == 3
    assert rows[first]["evidenceRequiredCount"] == 21
    assert rows[first]["evidenceCompletedCount"] == 15
    assert rows[second]["evidenceRequiredCount"] == 24
    assert rows[second]["evidenceCompletedCount"] == 20
    assert rows[second]["totalAmount"] == 4000
    assert rows[second]["leaderName"] == "Luci Machado"

    lowercase = client.get("/api/gate/proposals", params={"stage": "doc_review"})
    assert first in _ids(lowercase)
    assert first not in _ids(client.get("/api/gate/proposals", params={"stage": "RISK_REVIEW"}))


def test_detail_not_found(client) -> None:
    response = client.get("/api/gate/proposals/missing-proposal")
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


def test_decision_on_unknown_proposal(client) -> None:
    response = _decide(client, "missing-proposal", "DOC_REVIEW", "APPROVE")
    assert response.status_code == 404


def test_full_approval_flow(client, submit, proposal_id) -> None:
    submit(proposal_id)

    first = _decide(client, proposal_id, "DOC_REVIEW", "APPROVE", comment="Documents verified")
    assert first.status_code == 201
    assert first.json()["previousStage"] == "DOC_REVIEW"
    assert first.json()["newStage"] == "RISK_REVIEW"
    assert first.json()["decisionId"].startswith("dec-")
    assert proposal_id in _ids(client.get("/api/gate/proposals", params={"stage": "RISK_REVIEW"}))

    second = _decide(client, proposal_id, "RISK_REVIEW", "APPROVE")
    assert second.status_code == 201
    assert second.json()["newStage"] == "APPROVED"

    detail = client.get(f"/api/gate/proposals/{proposal_id}").json()
    assert detail["stage"] == "APPROVED"
    assert [d["stage"] for d in detail["decisions"]] == ["DOC_REVIEW", "RISK_REVIEW"]
    assert detail["decisions"][0]["comment"] == "Documents verified"
    assert detail["decisions"][0]["userId"] == "reviewer-1"


def test_reject_records_reasons(client, submit, proposal_id) -> None:
    submit(proposal_id)
    response = _decide(client, proposal_id, "DOC_REVIEW", "REJECT", reasons=["ID photo unreadable"])
    assert response.status_code == 201
    assert response.json()["newStage"] == "REJECTED"

    detail = client.get(f"/api/gate/proposals/{proposal_id}").json()
    assert detail["stage"] == "REJECTED"
    assert detail["decisions"][0]["reasons"] == ["ID photo unreadable"]


def test_stage_mismatch_changes_nothing(client, submit, proposal_id) -> None:
    submit(proposal_id)
    response = _decide(client, proposal_id, "RISK_REVIEW", "APPROVE")
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "stage_mismatch"
    assert body["details"]["currentStage"] == "DOC_REVIEW"
    assert body["details"]["attemptedStage"] == "RISK_REVIEW"

    detail = client.get(f"/api/gate/proposals/{proposal_id}").json()
    assert detail["stage"] == "DOC_REVIEW"
    assert detail["decisions"] == []


def test_final_stage_refuses_decisions(client, submit, proposal_id) -> None:
    submit(proposal_id)
    assert _decide(client, proposal_id, "DOC_REVIEW", "REJECT").status_code == 201

    for stage in ("DOC_REVIEW", "RISK_REVIEW"):
        response = _decide(client, proposal_id, stage, "APPROVE")
        assert response.status_code == 400
        assert response.json()["code"] == "already_final"
        assert response.json()["details"]["currentStage"] == "REJECTED"

    detail = client.get(f"/api/gate/proposals/{proposal_id}").json()
    assert len(detail["decisions"]) == 1


def test_decision_body_validation(client, submit, proposal_id) -> None:
    submit(proposal_id)
    response = client.post(
        f"/api/gate/proposals/{proposal_id}/decision",
        json={"stage": "DOC_REVIEW", "decision": "MAYBE", "userId": "reviewer-1"},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"

    response = client.post(
        f"/api/gate/proposals/{proposal_id}/decision",
        json={"stage": "DOC_REVIEW", "decision": "APPROVE"},
    )
    assert response.status_code == 400


def test_summary_counts_every_stage(client, submit, proposal_id) -> None:
    before = client.get("/api/gate/summary").json()
    assert set(before) == {"DOC_REVIEW", "RISK_REVIEW", "APPROVED", "REJECTED"}

    submit(proposal_id)
    _decide(client, proposal_id, "DOC_REVIEW", "APPROVE")
    after = client.get("/api/gate/summary").json()
    assert after["RISK_REVIEW"] == before["RISK_REVIEW"] + 1
    assert after["DOC_REVIEW"] == before["DOC_REVIEW"]


def test_decision_must_name_a_review_stage(client, submit, proposal_id) -> None:
    submit(proposal_id)
    for stage in ("APPROVED", "REJECTED"):
        response = _decide(client, proposal_id, stage, "APPROVE")
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"
        assert response.json()["message"].startswith("stage:")

    detail = client.get(f"/api/gate/proposals/{proposal_id}").json()
    assert detail["stage"] == "DOC_REVIEW"
    assert detail["decisions"] == []


def test_unknown_loan_goal_is_accepted_as_other(client, submit, proposal_id) -> None:
    response = submit(proposal_id, goal="Livestock")
    assert response.status_code == 201

    member = client.get(f"/api/proposals/submissions/{proposal_id}").json()["payload"]["members"][0]
    assert member["loanGoal"] == "Other"
    assert member["otherGoal"] == "Livestock"

    rows = {item["proposalId"]: item for item in client.get("/api/gate/proposals", params={"stage": "DOC_REVIEW"}).json()}
    # Only the base photo set is required for a goal outside the list
    assert rows[proposal_id]["evidenceRequiredCount"] == 18
    assert rows[proposal_id]["evidenceCompletedCount"] == 15
