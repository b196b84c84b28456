from app.services.auth import create_access_token


UPLOAD_TEXT = "Kommen - To come - আসা\nbad line\nLaufen - To run - দৌড়ানো"


def _upload(client, headers, text=UPLOAD_TEXT, section=None):
    body = {"vocabulary_text": text}
    if section is not None:
        body["section"] = section
    return client.post("/vocab/upload", json=body, headers=headers)


def _correct_answer(client, headers, question):
    vocabs = client.get("/vocab/list", headers=headers).json()["vocabs"]
    item = next(v for v in vocabs if v["id"] == question["item_id"])
    return item[question["asked_language"]]


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"


def test_register_login_and_me(client):
    r = client.post("/auth/register", json={"username": "clara", "password": "pw-123"})
    assert r.status_code == 200, r.text
    assert r.json()["user"]["username"] == "clara"

    r = client.post("/auth/register", json={"username": "clara", "password": "other"})
    assert r.status_code == 400

    r = client.post("/auth/login", json={"username": "clara", "password": "wrong"})
    assert r.status_code == 401

    r = client.post("/auth/login", json={"username": "clara", "password": "pw-123"})
    assert r.status_code == 200
    token = r.json()["access_token"]

    r = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["user"]["username"] == "clara"


def test_endpoints_require_authentication(client):
    assert client.get("/vocab/list").status_code == 401
    assert client.get("/quiz/next-question").status_code == 401
    r = client.get("/stats", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 401


def test_quiz_session_token_is_not_an_access_token(client, auth_headers, saved_items):
    r = client.post("/quiz/sessions", json={"mode": "swipe", "length": 1}, headers=auth_headers)
    session_token = r.json()["session_token"]

    r = client.get("/vocab/list", headers={"Authorization": f"Bearer {session_token}"})
    assert r.status_code == 401


def test_upload_drops_malformed_lines(client, auth_headers):
    r = _upload(client, auth_headers)
    assert r.status_code == 200, r.text
    assert r.json()["count"] == 2

    r = client.get("/vocab/list", headers=auth_headers)
    assert r.json()["total_count"] == 2
    assert r.json()["vocabs"][0]["german"] == "Kommen"
    assert r.json()["vocabs"][0]["practice_count"] == 0


def test_upload_without_valid_lines(client, auth_headers):
    r = _upload(client, auth_headers, text="nothing useful here")
    assert r.status_code == 422
    assert r.json()["error"] == "validation_error"
    assert r.json()["field"] == "vocabulary_text"


def test_upload_file_with_sections(client, auth_headers):
    content = "Haus - House - বাড়ি - Nouns\nGehen - To go - যাওয়া\n".encode("utf-8")
    r = client.post(
        "/vocab/upload-file",
        files={"file": ("words.txt", content, "text/plain")},
        data={"section": "Verbs"},
        headers=auth_headers,
    )
    assert r.status_code == 200, r.text
    assert r.json()["count"] == 2

    r = client.get("/vocab/sections", headers=auth_headers)
    assert r.json()["sections"] == ["Nouns", "Verbs"]

    r = client.get("/vocab/list", params={"section": "Nouns"}, headers=auth_headers)
    assert [v["german"] for v in r.json()["vocabs"]] == ["Haus"]


def test_empty_vocabulary_asks_for_upload(client, auth_headers):
    for path in ("/quiz/next-question", "/quiz/next-card"):
        r = client.get(path, headers=auth_headers)
        assert r.status_code == 404
        assert r.json()["error"] == "empty_pool"
        assert "upload" in r.json()["message"].lower()


def test_next_question_and_answer(client, auth_headers, saved_items):
    r = client.get("/quiz/next-question", headers=auth_headers)
    assert r.status_code == 200, r.text
    question = r.json()
    assert len(question["options"]) == 4
    assert question["asked_language"] in ("english", "bengali")
    assert "correct_answer" not in question

    correct = _correct_answer(client, auth_headers, question)
    assert correct in question["options"]

    r = client.post("/quiz/answer", json={
        "item_id": question["item_id"],
        "answer": f"  {correct.lower()} ",
        "asked_language": question["asked_language"],
    }, headers=auth_headers)
    assert r.status_code == 200
    assert r.json() == {"is_correct": True, "correct_answer": correct}

    r = client.post("/quiz/answer", json={
        "item_id": question["item_id"],
        "answer": "definitely wrong",
        "asked_language": question["asked_language"],
    }, headers=auth_headers)
    assert r.json()["is_correct"] is False

    vocabs = client.get("/vocab/list", headers=auth_headers).json()["vocabs"]
    item = next(v for v in vocabs if v["id"] == question["item_id"])
    assert item["choice_attempts"] == 2
    assert item["choice_correct"] == 1
    assert item["choice_mistakes"] == 1
    assert item["practice_count"] == 2


def test_answer_requires_fields(client, auth_headers, saved_items):
    r = client.post("/quiz/answer", json={"item_id": saved_items[0].id}, headers=auth_headers)
    assert r.status_code == 422


def test_answer_for_foreign_item(client, other_user, saved_items):
    headers = {"Authorization": f"Bearer {create_access_token(other_user.id)}"}
    r = client.post("/quiz/answer", json={
        "item_id": saved_items[0].id,
        "answer": "To come",
        "asked_language": "english",
    }, headers=headers)
    assert r.status_code == 404
    assert r.json()["error"] == "item_not_found"


def test_swipe_card_and_marks(client, auth_headers, saved_items):
    r = client.get("/quiz/next-card", headers=auth_headers)
    assert r.status_code == 200
    card = r.json()
    assert {"german", "english", "bengali", "counters"} <= set(card)

    r = client.post("/quiz/mark-unknown", json={"item_id": card["item_id"]}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["counters"]["swipe_unknown"] == 1

    r = client.post("/quiz/mark-known", json={"item_id": card["item_id"]}, headers=auth_headers)
    counters = r.json()["counters"]
    assert counters["swipe_known"] == 1
    assert counters["swipe_attempts"] == 2
    assert counters["practice_count"] == 2
    assert counters["last_practiced_at"] is not None


def test_stats(client, auth_headers, saved_items):
    r = client.get("/stats", headers=auth_headers)
    assert r.status_code == 200
    stats = r.json()
    assert stats["total_items"] == 3
    assert stats["choice_success_rate"] == 0
    assert stats["most_mistaken"] == []

    client.post("/quiz/mark-unknown", json={"item_id": saved_items[1].id}, headers=auth_headers)
    stats = client.get("/stats", headers=auth_headers).json()
    assert stats["total_swipe_unknown"] == 1
    assert stats["swipe_success_rate"] == 0
    assert stats["most_mistaken"][0]["german"] == "Laufen"


def test_multiple_choice_session_flow(client, auth_headers, saved_items):
    r = client.post("/quiz/sessions", json={"mode": "multiple_choice", "length": 3}, headers=auth_headers)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["state"] == "awaiting_answer"
    assert body["position"] == 1 and body["total"] == 3

    seen = []
    for _ in range(3):
        question = body["question"]
        seen.append(question["item_id"])
        correct = _correct_answer(client, auth_headers, question)
        r = client.post("/quiz/sessions/answer", json={
            "session_token": body["session_token"],
            "item_id": question["item_id"],
            "answer": correct,
        }, headers=auth_headers)
        assert r.status_code == 200, r.text
        body = r.json()
        assert body["result"]["is_correct"] is True

    assert body["state"] == "completed"
    assert body["question"] is None
    assert body["summary"]["total"] == 3
    assert body["summary"]["correct"] == 3
    assert body["summary"]["score_percent"] == 100
    assert sorted(seen) == sorted(item.id for item in saved_items)

    r = client.post("/quiz/sessions/answer", json={
        "session_token": body["session_token"],
        "item_id": seen[-1],
        "answer": "again",
    }, headers=auth_headers)
    assert r.status_code == 409


def test_swipe_session_with_skip(client, auth_headers, saved_items):
    r = client.post("/quiz/sessions", json={"mode": "swipe", "length": 1}, headers=auth_headers)
    body = r.json()
    assert body["card"]["english"]

    r = client.post("/quiz/sessions/skip", json={"session_token": body["session_token"]}, headers=auth_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["state"] == "awaiting_answer"
    assert body["position"] == 1

    r = client.post("/quiz/sessions/answer", json={
        "session_token": body["session_token"],
        "item_id": body["card"]["item_id"],
        "is_known": True,
    }, headers=auth_headers)
    body = r.json()
    assert body["state"] == "completed"
    assert body["summary"]["correct"] == 1
    assert body["result"]["counters"]["swipe_known"] == 1


def test_session_token_from_another_user(client, auth_headers, other_user, saved_items):
    r = client.post("/quiz/sessions", json={"mode": "swipe", "length": 2}, headers=auth_headers)
    body = r.json()

    other_headers = {"Authorization": f"Bearer {create_access_token(other_user.id)}"}
    r = client.post("/quiz/sessions/answer", json={
        "session_token": body["session_token"],
        "item_id": body["card"]["item_id"],
        "is_known": True,
    }, headers=other_headers)
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_session"


def test_session_requires_vocabulary(client, auth_headers):
    r = client.post("/quiz/sessions", json={"mode": "swipe"}, headers=auth_headers)
    assert r.status_code == 404
    assert r.json()["error"] == "empty_pool"


def test_answered_session_token_cannot_be_sent_again(client, auth_headers, saved_items):
    r = client.post("/quiz/sessions", json={"mode": "swipe", "length": 1}, headers=auth_headers)
    body = r.json()
    answer = {
        "session_token": body["session_token"],
        "item_id": body["card"]["item_id"],
        "is_known": False,
    }

    r = client.post("/quiz/sessions/answer", json=answer, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["state"] == "completed"

    for _ in range(2):
        r = client.post("/quiz/sessions/answer", json=answer, headers=auth_headers)
        assert r.status_code == 409
        assert r.json()["error"] == "invalid_session_state"

    vocabs = client.get("/vocab/list", headers=auth_headers).json()["vocabs"]
    item = next(v for v in vocabs if v["id"] == answer["item_id"])
    assert item["swipe_unknown"] == 1
    assert item["practice_count"] == 1


def test_logout(client, auth_headers):
    r = client.post("/auth/logout", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["message"]

    assert client.post("/auth/logout").status_code == 401


def test_stats_schema_lists_every_field(client):
    schema = client.get("/openapi.json").json()
    fields = schema["components"]["schemas"]["StatsResponse"]["properties"]
    assert {"choice_success_rate", "swipe_success_rate", "most_mistaken"} <= set(fields)
