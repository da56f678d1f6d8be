"""HTTP surface: auth, envelopes and status codes."""

import pytest

pytestmark = pytest.mark.integration

from gameia.domains.rewards.models.reward_models import RewardConfigRecord
from gameia.extensions import db


@pytest.fixture
def reward_config(app, user_id):
    activity_type = f"quiz-{user_id}"
    db.session.add(
        RewardConfigRecord(
            activity_type=activity_type,
            config={
                "xp_base_reward": 100,
                "coins_base_reward": 50,
                "difficulty_multipliers": {"hard": 1.5},
                "time_bonus_config": {"enabled": True, "max_bonus_percent": 20},
                "streak_bonus_config": {"enabled": True, "bonus_per_day": 5, "max_bonus": 50},
            },
        )
    )
    db.session.commit()
    return activity_type


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"ok": True}


def test_csrf_token_endpoint(client):
    resp = client.get("/api/csrf")
    assert resp.status_code == 200
    assert resp.get_json()["csrf_token"]


def test_mutations_require_csrf_header_when_enabled(app, client, auth_headers):
    app.config["WTF_CSRF_ENABLED"] = True
    body = {"title": "Growth"}

    assert client.post("/api/pdi/plans", json=body, headers=auth_headers).status_code == 403

    token = client.get("/api/csrf").get_json()["csrf_token"]
    resp = client.post("/api/pdi/plans", json=body, headers={**auth_headers, "X-CSRF-Token": token})
    assert resp.status_code == 201
    # Reads are never CSRF checked.
    assert client.get("/api/pdi/plans", headers=auth_headers).status_code == 200


def test_requires_jwt(client):
    resp = client.get("/api/rewards/balance")
    assert resp.status_code == 401


class TestActivityAPI:
    def test_submit_event_uses_token_identity(self, client, auth_headers, user_id, reward_config):
        resp = client.post(
            "/api/activity/events",
            json={
                "user_id": "spoofed",
                "event_type": "game_completed",
                "source_id": reward_config,
                "score": 95,
                "difficulty": "hard",
                "skill_ids": ["s-1"],
                "attempt_id": "a-1",
            },
            headers=auth_headers,
        )
        assert resp.status_code == 201
        outcome = resp.get_json()["outcome"]
        # hard 1.5 with 5% for the first streak day: 157.5 rounds up
        assert outcome["reward"]["xp"] == 158
        assert outcome["streak_days"] == 1

        listed = client.get("/api/activity/events", headers=auth_headers).get_json()
        assert [e["attempt_id"] for e in listed["events"]] == ["a-1"]

        balance = client.get("/api/rewards/balance", headers=auth_headers).get_json()["balance"]
        assert balance["xp"] == 158
        assert balance["current_streak"] == 1

    def test_duplicate_attempt_is_conflict(self, client, auth_headers, reward_config):
        body = {"event_type": "game_completed", "source_id": reward_config, "attempt_id": "a-1"}
        assert client.post("/api/activity/events", json=body, headers=auth_headers).status_code == 201
        resp = client.post("/api/activity/events", json=body, headers=auth_headers)
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "duplicate"

    def test_invalid_event_is_bad_request(self, client, auth_headers):
        resp = client.post("/api/activity/events", json={"event_type": "nap_taken", "source_id": "x"}, headers=auth_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "validation_error"

    def test_non_object_body_rejected(self, client, auth_headers):
        resp = client.post("/api/activity/events", json=[1, 2], headers=auth_headers)
        assert resp.status_code == 400


class TestRewardsAPI:
    def test_preview_matches_full_reward_example(self, client, auth_headers, reward_config):
        resp = client.post(
            "/api/rewards/preview",
            json={
                "activity_type": reward_config,
                "difficulty": "hard",
                "streak_days": 10,
                "met_target": True,
                "completion_time_ratio": 0.4,
            },
            headers=auth_headers,
        )
        assert resp.status_code == 200
        reward = resp.get_json()["reward"]
        assert (reward["xp"], reward["coins"]) == (255, 128)

    def test_preview_without_config_is_unprocessable(self, client, auth_headers):
        resp = client.post("/api/rewards/preview", json={"activity_type": "nope"}, headers=auth_headers)
        assert resp.status_code == 422
        assert resp.get_json()["error"] == "configuration_error"

    def test_empty_balance_and_history(self, client, auth_headers):
        balance = client.get("/api/rewards/balance", headers=auth_headers).get_json()["balance"]
        assert balance == {"xp": 0, "coins": 0, "current_streak": 0, "longest_streak": 0}
        history = client.get("/api/rewards/history", headers=auth_headers).get_json()
        assert history["transactions"] == []


class TestSkillsAPI:
    def test_record_and_score(self, client, make_headers, user_id, org_id):
        manager_headers = make_headers(user_id, org_id, roles=["manager"])
        for value in (70, 90):
            resp = client.post(
                "/api/skills/impacts",
                json={
                    "skill_id": "s-api",
                    "source_type": "feedback_360",
                    "source_id": "fb",
                    "impact_type": "peer_feedback",
                    "impact_value": value,
                },
                headers=manager_headers,
            )
            assert resp.status_code == 201
            assert resp.get_json()["impact_id"]

        score = client.get("/api/skills/s-api/score?period_days=30", headers=manager_headers).get_json()["score"]
        assert score["consolidated_score"] == 80
        assert score["breakdown"]["peer_feedback"]["count"] == 2

        history = client.get("/api/skills/s-api/history", headers=manager_headers).get_json()
        assert len(history["impacts"]) == 2
        assert len(client.get("/api/skills/impacts", headers=manager_headers).get_json()["impacts"]) == 2

    def test_feedback_impacts_require_manager_role(self, client, auth_headers):
        body = {
            "skill_id": "s-api",
            "source_type": "feedback_360",
            "source_id": "fb",
            "impact_type": "manager_feedback",
            "impact_value": 95,
        }
        resp = client.post("/api/skills/impacts", json=body, headers=auth_headers)
        assert resp.status_code == 403
        assert resp.get_json()["error"] == "forbidden"
        assert client.get("/api/skills/impacts", headers=auth_headers).get_json()["impacts"] == []

        own = {**body, "impact_type": "self_assessment", "impact_value": 60}
        assert client.post("/api/skills/impacts", json=own, headers=auth_headers).status_code == 201

    def test_score_without_data_is_null(self, client, auth_headers):
        score = client.get("/api/skills/unknown/score", headers=auth_headers).get_json()["score"]
        assert score["consolidated_score"] is None
        assert score["total_events"] == 0

    def test_invalid_period_rejected(self, client, auth_headers):
        resp = client.get("/api/skills/s-1/score?period_days=0", headers=auth_headers)
        assert resp.status_code == 400

    def test_invalid_impact_type_rejected(self, client, auth_headers):
        resp = client.post(
            "/api/skills/impacts",
            json={"skill_id": "s", "source_type": "game", "impact_type": "luck", "impact_value": 1},
            headers=auth_headers,
        )
        assert resp.status_code == 400


class TestPdiAPI:
    def test_plan_goal_checkin_flow(self, client, auth_headers):
        plan = client.post("/api/pdi/plans", json={"title": "Growth"}, headers=auth_headers).get_json()["plan"]
        resp = client.post(
            f"/api/pdi/plans/{plan['id']}/goals",
            json={"title": "Feedback", "skill_id": "s-fb", "linked_training_ids": ["T1"]},
            headers=auth_headers,
        )
        assert resp.status_code == 201
        goal = resp.get_json()["goal"]
        assert goal["status"] == "not_started"

        resp = client.post(f"/api/pdi/goals/{goal['id']}/checkin", json={"progress": 30}, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.get_json()["goal"]["progress"] == 30

        history = client.get(f"/api/pdi/goals/{goal['id']}/history", headers=auth_headers).get_json()
        assert history["events"][0]["progress_after"] == 30

        plans = client.get("/api/pdi/plans", headers=auth_headers).get_json()["plans"]
        assert [p["id"] for p in plans] == [plan["id"]]

    def test_checkin_out_of_range(self, client, auth_headers):
        plan = client.post("/api/pdi/plans", json={"title": "Growth"}, headers=auth_headers).get_json()["plan"]
        goal = client.post(
            f"/api/pdi/plans/{plan['id']}/goals", json={"title": "G"}, headers=auth_headers
        ).get_json()["goal"]
        resp = client.post(f"/api/pdi/goals/{goal['id']}/checkin", json={"progress": 150}, headers=auth_headers)
        assert resp.status_code == 400

    def test_actions(self, client, auth_headers):
        plan = client.post("/api/pdi/plans", json={"title": "Growth"}, headers=auth_headers).get_json()["plan"]
        goal = client.post(
            f"/api/pdi/plans/{plan['id']}/goals", json={"title": "G"}, headers=auth_headers
        ).get_json()["goal"]
        resp = client.post(
            f"/api/pdi/goals/{goal['id']}/actions",
            json={"action_type": "training", "action_name": "Course", "action_id": "T9"},
            headers=auth_headers,
        )
        assert resp.status_code == 201
        action = resp.get_json()["action"]

        pending = client.get("/api/pdi/actions", headers=auth_headers).get_json()["actions"]
        assert [a["id"] for a in pending] == [action["id"]]

        assert client.post(f"/api/pdi/actions/{action['id']}/complete", headers=auth_headers).status_code == 200
        again = client.post(f"/api/pdi/actions/{action['id']}/dismiss", headers=auth_headers)
        assert again.status_code == 409

    def test_unknown_goal_is_not_found(self, client, auth_headers):
        resp = client.post("/api/pdi/goals/999999/checkin", json={"progress": 10}, headers=auth_headers)
        assert resp.status_code == 404


class TestAssessmentsAPI:
    def test_submit_and_accept(self, client, auth_headers):
        resp = client.post(
            "/api/assessments",
            json={
                "assessment_type": "self",
                "responses": {"q1": {"value": 1, "skill_id": "s-weak"}},
            },
            headers=auth_headers,
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["assessment"]["skill_scores"] == {"s-weak": 20.0}
        [consequence] = body["consequences"]
        assert consequence["consequence_type"] == "pdi_goal"

        pending = client.get("/api/assessments/consequences", headers=auth_headers).get_json()["consequences"]
        assert [c["id"] for c in pending] == [consequence["id"]]

        accepted = client.post(f"/api/assessments/consequences/{consequence['id']}/accept", headers=auth_headers)
        assert accepted.status_code == 200
        assert accepted.get_json()["created"]["goal_id"]

        again = client.post(f"/api/assessments/consequences/{consequence['id']}/dismiss", headers=auth_headers)
        assert again.status_code == 409
        everything = client.get("/api/assessments/consequences?status=all", headers=auth_headers).get_json()
        assert everything["consequences"][0]["status"] == "accepted"

    def test_evaluating_someone_else_requires_manager(self, client, make_headers, user_id):
        body = {
            "assessment_type": "manager",
            "evaluated_user_id": user_id,
            "responses": {"q1": {"value": 4, "skill_id": "s-1"}},
        }
        peer = client.post("/api/assessments", json=body, headers=make_headers("peer-" + user_id))
        assert peer.status_code == 403

        manager = client.post(
            "/api/assessments", json=body, headers=make_headers("mgr-" + user_id, roles=["manager"])
        )
        assert manager.status_code == 201
        assessment = manager.get_json()["assessment"]
        assert assessment["user_id"] == user_id
        assert assessment["evaluator_id"] == "mgr-" + user_id

    def test_empty_responses_rejected(self, client, auth_headers):
        resp = client.post("/api/assessments", json={"assessment_type": "self", "responses": {}}, headers=auth_headers)
        assert resp.status_code == 400

    def test_suggestion_accepted_as_request(self, client, auth_headers):
        event = {"event_type": "training_completed", "source_id": "T-api", "skill_ids": ["s-1"]}
        assert client.post("/api/activity/events", json=event, headers=auth_headers).status_code == 201

        suggestions = client.get("/api/assessments/suggestions", headers=auth_headers).get_json()["suggestions"]
        assert [(s["context_type"], s["context_id"], s["skill_ids"]) for s in suggestions] == [
            ("training", "T-api", ["s-1"])
        ]

        resp = client.post(
            "/api/assessments/requests",
            json={"context_type": "training", "context_id": "T-api", "skill_ids": ["s-1"]},
            headers=auth_headers,
        )
        assert resp.status_code == 201
        created = resp.get_json()["request"]
        assert (created["status"], created["assessment_type"]) == ("open", "self")

        assert client.get("/api/assessments/suggestions", headers=auth_headers).get_json()["suggestions"] == []
        listed = client.get("/api/assessments/requests", headers=auth_headers).get_json()["requests"]
        assert [r["id"] for r in listed] == [created["id"]]

    def test_request_without_skills_rejected(self, client, auth_headers):
        resp = client.post(
            "/api/assessments/requests",
            json={"context_type": "training", "context_id": "T-api", "skill_ids": []},
            headers=auth_headers,
        )
        assert resp.status_code == 400
