API = "/api/v1/assistant"


def test_app_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] == 1
    assert body["data"]["status"] == "healthy"
    assert body["metadata"]["statusCode"] == 200


def test_query_endpoint(client):
    response = client.post(f"{API}/query", json={
        "text": "What is OD?",
        "user_id": "user-1",
        "session_id": "session-1",
        "context": {"form_type": "ClaimsSubmissionForm", "current_field": "odSphere", "device_type": "mobile"},
    })
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["path"] == "local"
    assert data["handler"] == "terminology"
    assert "Right Eye" in data["response"]


def test_query_validation(client):
    empty = client.post(f"{API}/query", json={"text": ""})
    assert empty.status_code == 422
    assert empty.json()["success"] == 0
    assert empty.json()["metadata"]["errors"][0].startswith("body.text")
    assert client.post(f"{API}/query", json={"text": "x" * 2001}).status_code == 422


def test_assistant_health_and_usage(client):
    health = client.get(f"{API}/health").json()["data"]
    assert health["memory_available"] is True
    assert health["remote_configured"] is False

    usage = client.get(f"{API}/usage").json()["data"]
    assert usage["requests_this_window"] == 0
    assert usage["max_requests"] == 15


def test_suggestions_and_field_help(client):
    suggestions = client.get(f"{API}/suggestions", params={"form_type": "PatientEligibilityForm"}).json()["data"]
    assert "providerId" in suggestions["suggestions"]

    found = client.get(f"{API}/field-help", params={"form_type": "PatientEligibilityForm", "field": "providerId"})
    assert "NPI" in found.json()["data"]["guidance"]

    missing = client.get(f"{API}/field-help", params={"form_type": "PatientEligibilityForm", "field": "nope"}).json()
    assert missing["success"] == 0
    assert missing["metadata"]["statusCode"] == 404


def test_preferences_personalize_answers(client):
    stored = client.put(f"{API}/preferences/user-1", json={"key": "response_style", "value": "detailed"})
    assert stored.json()["success"] == 1

    data = client.post(f"{API}/query", json={"text": "What is OD?", "user_id": "user-1"}).json()["data"]
    assert "**More detail**" in data["response"]

    stats = client.get(f"{API}/memory/stats").json()["data"]
    assert stats["entries_by_type"]["preference"] == 1
    assert stats["top_terms"][0]["term"] == "OD"


def test_insights(client):
    client.post(f"{API}/query", json={"text": "diabetes codes", "user_id": "user-1",
                                      "context": {"form_type": "ClaimsSubmissionForm"}})
    insights = client.get(f"{API}/insights", params={"user_id": "user-1", "form_type": "ClaimsSubmissionForm"}).json()["data"]
    assert insights["total_interactions"] == 1
    assert insights["hints"] == ["diabetes", "codes"]
