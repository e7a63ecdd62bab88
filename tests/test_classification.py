from studentlink.services.classification import (
    analyze_sentiment,
    classify,
    classify_concern,
    detect_category,
    detect_priority,
    extract_keywords,
)


def test_urgent_keyword_wins_over_high():
    assert detect_priority("urgent: the system error is back") == "urgent"
    assert detect_priority("the form is broken") == "high"
    assert detect_priority("a question about schedules") == "medium"

def test_category_prefers_most_hits():
    assert detect_category("i cannot login to the portal") == "technical"
    assert detect_category("my tuition payment shows an error") == "financial"
    assert detect_category("nothing matches here") == "general"

def test_category_ties_go_to_first_listed():
    # one academic hit ("grade") and one technical hit ("portal")
    assert detect_category("grade missing on portal") == "academic"

def test_sentiment():
    assert analyze_sentiment("i am frustrated and upset") == "negative"
    assert analyze_sentiment("the staff were helpful, great job") == "positive"
    assert analyze_sentiment("just checking") == "neutral"

def test_keywords_are_capped_and_ranked():
    text = "login password system website portal error bug technical computer internet wifi network server"
    keywords = extract_keywords(text)
    assert len(keywords) == 10
    relevances = [k["relevance"] for k in keywords]
    assert relevances == sorted(relevances, reverse=True)

def test_classify_empty_text():
    result = classify("")
    assert result["priority"] == "medium"
    assert result["category"] == "general"
    assert result["sentiment"] == "neutral"
    assert result["keywords"] == []
    assert result["auto_escalation"] is False

def test_auto_escalation_needs_urgent_and_negative():
    result = classify_concern("Emergency", "I am worried and upset, there was a threat on campus")
    assert result["priority"] == "urgent"
    assert result["auto_escalation"] is True

def test_classify_is_deterministic():
    text = "URGENT: cannot login to student portal"
    assert classify(text) == classify(text)

def test_classify_endpoint(client, make_user, auth_headers):
    uid = make_user("student")
    r = client.post(
        "/api/ai/classify-concern",
        json={
            "subject": "URGENT: Cannot login to student portal",
            "description": "I am unable to access my student portal and need immediate help with my grades",
            "type": "technical",
        },
        headers=auth_headers(uid),
    )
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["priority"] == "urgent"
    assert data["category"] == "technical"

def test_classify_endpoint_requires_text(client, make_user, auth_headers):
    uid = make_user("student")
    r = client.post("/api/ai/classify-concern", json={"text": "   "}, headers=auth_headers(uid))
    assert r.status_code == 422
