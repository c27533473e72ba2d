# tests/test_analysis_api.py
import json

import pytest

from featherweight_functions.blueprints.analysis import training_summary
from featherweight_functions.errors import RefundFailure
from featherweight_functions.extensions import db
from featherweight_functions.models import AnalysisQuota
from featherweight_functions.services.quota_ledger import QuotaLedger

ANALYSIS = {
    "overall_assessment": "Solid start.",
    "key_insights": [{"category": "VOLUME", "message": "Fine", "severity": "INFO"}],
    "recommendations": ["Keep going"],
    "warnings": [],
}


def _training(workouts=3, weeks=1, deviation=False):
    data = {
        "analysis_period": {"total_workouts": workouts, "total_weeks": weeks},
        "workouts": [{"exercise": "Barbell Back Squat", "sets": 5, "reps": 5, "weight": 100}],
    }
    if deviation:
        data["programme_deviation_summary"] = {"skipped": 2}
    return json.dumps(data)


def _balance(app, user_id="user-1"):
    with app.app_context():
        row = db.session.execute(db.select(AnalysisQuota).filter_by(user_id=user_id)).scalar_one_or_none()
        return None if row is None else row.monthly_count


def test_training_summary_defaults(app):
    with app.app_context():
        assert training_summary(_training(8, 3, True)) == (8, 3, True)
        assert training_summary("x" * 60) == (1, 1, False)
        assert training_summary(json.dumps({"analysis_period": {"total_workouts": 0}})) == (1, 1, False)
        assert training_summary(json.dumps([1, 2, 3])) == (1, 1, False)


def test_analysis_success(client, auth_headers, fake_openai, app):
    fake_openai.reply(ANALYSIS)

    r = client.post("/analyze-training", json={"trainingData": _training(12, 6, True)}, headers=auth_headers)

    assert r.status_code == 200
    assert r.get_json() == {"analysis": ANALYSIS, "quota": {"remaining": {"monthly": 9}}}
    messages = fake_openai.calls[0]["messages"]
    assert "sufficient data for trend analysis" in messages[0]["content"]
    assert "PROGRAMME ADHERENCE ANALYSIS" in messages[0]["content"]
    assert messages[1]["content"].startswith("Training data:\n\n")
    assert _balance(app) == 9


def test_failure_after_consumption_is_refunded(client, auth_headers, fake_openai, app):
    fake_openai.error(502, "bad gateway")

    r = client.post("/analyze-training", json={"trainingData": _training()}, headers=auth_headers)

    assert r.status_code == 500
    assert r.get_json()["error"]["message"] == "Failed to analyze training. Please try again."
    assert _balance(app) == 10


def test_empty_model_reply_is_refunded(client, auth_headers, fake_openai, app):
    fake_openai.reply(None)

    r = client.post("/analyze-training", json={"trainingData": _training()}, headers=auth_headers)

    assert r.status_code == 500
    assert _balance(app) == 10


def test_exhausted_quota_is_not_refunded(client, auth_headers, fake_openai, app):
    for _ in range(10):
        assert client.post("/analyze-training", json={"trainingData": _training()},
                           headers=auth_headers).status_code == 200

    r = client.post("/analyze-training", json={"trainingData": _training()}, headers=auth_headers)

    assert r.status_code == 429
    details = r.get_json()["error"]["details"]
    assert details["remaining"] == {"monthly": 0}
    assert set(details["resetsAt"]) == {"monthly"}
    assert _balance(app) == 0
    with app.app_context():
        row = db.session.execute(db.select(AnalysisQuota).filter_by(user_id="user-1")).scalar_one()
        assert row.quota_exceeded_count == 1
        assert row.total_requests == 10


def test_validation_failure_consumes_nothing(client, auth_headers, fake_openai, app):
    r = client.post("/analyze-training", json={"trainingData": "too short"}, headers=auth_headers)

    assert r.status_code == 400
    assert r.get_json()["error"]["message"] == "Insufficient training data"
    assert _balance(app) is None
    assert fake_openai.calls == []


def test_refund_failure_keeps_original_error(client, auth_headers, fake_openai, app, monkeypatch):
    def failing_refund(self, user_id, family, now=None):
        raise RefundFailure(family.name, user_id)

    monkeypatch.setattr(QuotaLedger, "refund", failing_refund)
    fake_openai.error(503, "overloaded")

    r = client.post("/analyze-training", json={"trainingData": _training()}, headers=auth_headers)

    assert r.status_code == 500
    assert r.get_json()["error"]["message"] == "Failed to analyze training. Please try again."
    assert _balance(app) == 9


@pytest.mark.parametrize("workouts, marker", [(2, "INITIAL feedback"), (9, "early-stage")])
def test_prompt_tier_follows_history(client, auth_headers, fake_openai, workouts, marker):
    client.post("/analyze-training", json={"trainingData": _training(workouts, 2)}, headers=auth_headers)
    assert marker in fake_openai.calls[0]["messages"][0]["content"]
