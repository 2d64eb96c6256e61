import sqlite3

import pytest

from conftest import DATE, LETTERS, add


def test_create_day_normalizes_letters(client):
    r = client.post("/api/days", json={"date": DATE, "letters": [l.lower() for l in LETTERS]})
    assert r.status_code == 201
    body = r.json()
    assert body["letters"] == LETTERS
    assert body["center_letter"] == "T"
    assert body["current_stage"] == "pre-pangram"
    assert body["genius_achieved"] is False
    assert body["backfill_cursor_word_id"] is None


@pytest.mark.parametrize("letters", [
    ["T", "I", "A", "O", "L", "K"],
    ["T", "I", "A", "O", "L", "K", "C", "E"],
    ["T", "I", "A", "O", "L", "K", "T"],
    ["T", "I", "A", "O", "L", "K", "7"],
    "TIAOLKC",
])
def test_create_day_rejects_bad_letters(client, letters):
    r = client.post("/api/days", json={"date": DATE, "letters": letters})
    assert r.status_code == 400
    assert "error" in r.json()


def test_create_day_requires_date(client):
    r = client.post("/api/days", json={"letters": LETTERS})
    assert r.status_code == 400


def test_duplicate_day_conflicts(client, day):
    r = client.post("/api/days", json={"date": DATE, "letters": LETTERS})
    assert r.status_code == 409
    assert r.json() == {"error": "Day already exists for this date"}


def test_missing_day_is_404(client):
    assert client.get("/api/days/1999-01-01").status_code == 404
    assert client.patch("/api/days/1999-01-01", json={"genius_achieved": True}).status_code == 404
    assert client.delete("/api/days/1999-01-01").status_code == 404
    assert client.get("/api/days/1999-01-01/export").status_code == 404
    assert client.get("/api/days/1999-01-01/attractors").status_code == 404
    assert client.get("/api/days/1999-01-01/words").status_code == 404
    r = client.post("/api/days/1999-01-01/words", json={"word": "TICK"})
    assert r.status_code == 404
    assert r.json() == {"error": "Day not found"}


def test_list_days_newest_first_with_counts(client, day):
    client.post("/api/days", json={"date": "2096-01-02", "letters": LETTERS})
    add(client, "TICK")
    add(client, "COCKTAIL", is_pangram=True)

    days = client.get("/api/days").json()
    assert [d["date"] for d in days] == ["2096-01-02", DATE]
    assert days[1]["word_count"] == 2
    assert days[1]["pangram_count"] == 1
    assert days[0]["word_count"] == 0


def test_stage_moves_forward_one_step_at_a_time(client, day):
    r = client.patch(f"/api/days/{DATE}", json={"current_stage": "new-discovery"})
    assert r.status_code == 400
    assert "skip" in r.json()["error"]

    r = client.patch(f"/api/days/{DATE}", json={"current_stage": "pre-pangram"})
    assert r.status_code == 200
    assert r.json()["current_stage"] == "pre-pangram"

    r = client.patch(f"/api/days/{DATE}", json={"current_stage": "backfill"})
    assert r.json()["current_stage"] == "backfill"

    r = client.patch(f"/api/days/{DATE}", json={"current_stage": "pre-pangram"})
    assert r.status_code == 400
    assert "backward" in r.json()["error"]

    r = client.patch(f"/api/days/{DATE}", json={"current_stage": "backfill"})
    assert r.status_code == 200


def test_invalid_stage_name(client, day):
    r = client.patch(f"/api/days/{DATE}", json={"current_stage": "finished"})
    assert r.status_code == 400


def test_entering_new_discovery_clears_cursor(client, day):
    tick = add(client, "TICK")
    client.patch(f"/api/days/{DATE}", json={"current_stage": "backfill"})
    r = client.patch(f"/api/days/{DATE}", json={"backfill_cursor_word_id": tick["id"]})
    assert r.json()["backfill_cursor_word_id"] == tick["id"]

    r = client.patch(f"/api/days/{DATE}", json={"current_stage": "new-discovery"})
    assert r.json()["current_stage"] == "new-discovery"
    assert r.json()["backfill_cursor_word_id"] is None


def test_cursor_only_settable_during_backfill(client, day):
    tick = add(client, "TICK")
    r = client.patch(f"/api/days/{DATE}", json={"backfill_cursor_word_id": tick["id"]})
    assert r.status_code == 400

    client.patch(f"/api/days/{DATE}", json={"current_stage": "backfill"})
    r = client.patch(f"/api/days/{DATE}", json={"backfill_cursor_word_id": 9999})
    assert r.status_code == 400


def test_genius_toggle_and_empty_patch(client, day):
    r = client.patch(f"/api/days/{DATE}", json={"genius_achieved": True})
    assert r.json()["genius_achieved"] is True
    r = client.patch(f"/api/days/{DATE}", json={})
    assert r.status_code == 200
    assert r.json()["genius_achieved"] is True


def test_delete_cascades_and_frees_date(client, day, db_url):
    tick = add(client, "TICK")
    tock = client.post(
        f"/api/days/{DATE}/words/{tick['id']}/inspire", json={"word": "TOCK"}
    ).json()
    add(client, "TICK")

    assert client.delete(f"/api/days/{DATE}").status_code == 204
    assert client.get(f"/api/days/{DATE}").status_code == 404

    con = sqlite3.connect(db_url.split("///", 1)[1])
    try:
        for table in ("words", "word_attempts", "word_inspirations"):
            assert con.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0] == 0
    finally:
        con.close()

    r = client.post("/api/days", json={"date": DATE, "letters": LETTERS})
    assert r.status_code == 201
    assert client.get(f"/api/days/{DATE}/words").json() == []
    assert client.get(f"/api/days/{DATE}/words/{tock['id']}/attempts").status_code == 404


def test_export_snapshot(client, day):
    tick = add(client, "TICK")
    add(client, "tick", context="again")
    client.post(f"/api/days/{DATE}/words/{tick['id']}/inspire", json={"word": "TACK"})
    add(client, "ZZZZ")

    snap = client.get(f"/api/days/{DATE}/export").json()
    assert snap["date"] == DATE
    assert snap["letters"] == LETTERS
    assert [w["word"] for w in snap["words"]] == ["TICK", "TACK", "ZZZZ"]
    by_word = {w["word"]: w for w in snap["words"]}
    assert by_word["TACK"]["inspired_by_ids"] == [tick["id"]]
    assert by_word["TICK"]["attempt_count"] == 2
    assert by_word["TICK"]["valid"] is True
    assert by_word["ZZZZ"]["valid"] is False
    assert len(snap["attempts"]) == 4
    assert [a["context"] for a in snap["attempts"] if a["word_id"] == tick["id"]] == [None, "again"]


def test_health(client):
    assert client.get("/api/health").json()["status"] == "ok"
