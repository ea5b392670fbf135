"""
Tests for the HTTP surface.

TestClient runs background tasks before returning the response, so an
ingested entry is fully enriched by the time the next request is made.
"""

import logging

import pytest
from fastapi.testclient import TestClient

from lifelog.core import LifeLog
from lifelog.providers import Providers
from lifelog.schemas import AnalysisResult
from plugins import load_observers
from server.main import create_app


@pytest.fixture
def client(config, providers):
    lifelog = LifeLog(config, providers=providers, observers=load_observers(["exercise", "wearable"], config.data_dir))
    yield TestClient(create_app(lifelog))
    logging.getLogger().removeHandler(lifelog.log_buffer)


def _ingest(client, **form):
    response = client.post("/api/lifelog/ingest", data=form)
    assert response.status_code == 200, response.text
    return response.json()["entry_id"]


class TestIngest:

    def test_transcript_ingest_is_enriched_in_background(self, client):
        entry_id = _ingest(client, transcript="Budget meeting at work", context="work")

        entries = client.get("/api/lifelog/entries").json()
        assert [e["id"] for e in entries] == [entry_id]
        entry = entries[0]
        assert entry["summary"] == "A short reflection"
        assert entry["processed"] is True
        assert entry["embedded_at"] is not None
        assert "embedding" not in entry

    def test_audio_upload(self, client, config, stubs):
        response = client.post(
            "/api/lifelog/ingest",
            files={"audio": ("memo.m4a", b"fake audio bytes", "audio/mp4")},
            data={"device": "watch"},
        )
        assert response.status_code == 200
        entry_id = response.json()["entry_id"]

        assert len(stubs["transcriber"].calls) == 1
        saved = stubs["transcriber"].calls[0]
        assert saved.startswith(str(config.audio_dir))

        entry = client.get("/api/lifelog/entries").json()[0]
        assert entry["id"] == entry_id
        assert entry["device"] == "watch"
        assert entry["transcript"] == stubs["transcriber"].text

    def test_unsupported_audio_format(self, client):
        response = client.post(
            "/api/lifelog/ingest",
            files={"audio": ("notes.txt", b"text", "text/plain")},
        )
        assert response.status_code == 400

    def test_nothing_to_ingest(self, client):
        response = client.post("/api/lifelog/ingest", data={"device": "web"})
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_bad_timestamp(self, client):
        response = client.post("/api/lifelog/ingest", data={"transcript": "x", "timestamp": "yesterday"})
        assert response.status_code == 400

    def test_exercise_plugin_flags_entry(self, client):
        _ingest(client, transcript="Went for a walk before work")
        entry = client.get("/api/lifelog/entries").json()[0]
        assert entry["plugin_data"]["exercise"]["on_entry_created"]["keywords"] == ["walk"]


class TestManualEndpoints:

    def test_analyze(self, client):
        entry_id = _ingest(client, transcript="meeting")
        response = client.post(f"/api/lifelog/analyze/{entry_id}")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["analysis"]["mood"] == "calm"
        assert body["embedded"] is True

    def test_unknown_entry_is_404(self, client):
        for path in ("transcribe", "analyze", "embed"):
            response = client.post(f"/api/lifelog/{path}/424242")
            assert response.status_code == 404
            assert response.json()["error"] == "Entry not found: 424242"

    def test_transcribe_without_audio_is_400(self, client):
        entry_id = _ingest(client, transcript="typed")
        assert client.post(f"/api/lifelog/transcribe/{entry_id}").status_code == 400

    def test_provider_failure_is_502(self, client, stubs):
        entry_id = _ingest(client, transcript="typed")
        stubs["analyzer"].fail = True
        response = client.post(f"/api/lifelog/analyze/{entry_id}")
        assert response.status_code == 502
        assert response.json()["error"] == "Analysis service unavailable"

    def test_unconfigured_provider_is_503(self, config):
        lifelog = LifeLog(config, providers=Providers())
        client = TestClient(create_app(lifelog))
        try:
            entry_id = _ingest(client, transcript="typed")
            assert client.post(f"/api/lifelog/analyze/{entry_id}").status_code == 503
            assert client.get("/api/lifelog/search/semantic", params={"q": "x"}).status_code == 503
        finally:
            logging.getLogger().removeHandler(lifelog.log_buffer)

    def test_embed_all(self, client, stubs):
        stubs["embedder"].fail = True
        _ingest(client, transcript="one")
        _ingest(client, transcript="two")
        stubs["embedder"].fail = False
        body = client.post("/api/lifelog/embed-all").json()
        assert (body["embedded"], body["failed"], body["total"]) == (2, 0, 2)


class TestEntries:

    def test_by_date_patch_and_delete(self, client):
        entry_id = _ingest(client, transcript="note", timestamp="2024-03-05T10:00:00+00:00")

        on_day = client.get("/api/lifelog/entries/2024-03-05").json()
        assert [e["id"] for e in on_day] == [entry_id]
        assert client.get("/api/lifelog/entries/2024-03-06").json() == []

        patched = client.patch(f"/api/lifelog/entries/{entry_id}", json={"context": "home"})
        assert patched.json()["entry"]["context"] == "home"

        assert client.patch(f"/api/lifelog/entries/{entry_id}", json={"summary": "forged"}).status_code == 400

        assert client.delete(f"/api/lifelog/entries/{entry_id}").json() == {"success": True}
        assert client.delete(f"/api/lifelog/entries/{entry_id}").status_code == 404

    def test_invalid_date(self, client):
        assert client.get("/api/lifelog/entries/not-a-date").status_code == 400

    @pytest.mark.parametrize("changes", [
        {"timestamp": ""},
        {"timestamp": "yesterday"},
        {"timestamp": 5},
        {"timestamp": None},
        {"transcript": None},
        {"transcript": "   "},
        {"context": None},
        {"device": 42},
    ])
    def test_rejected_edit_leaves_entry_untouched(self, client, changes):
        entry_id = _ingest(client, transcript="note", timestamp="2024-03-05T10:00:00+00:00")
        before = client.get("/api/lifelog/entries/2024-03-05").json()

        response = client.patch(f"/api/lifelog/entries/{entry_id}", json=changes)
        assert response.status_code == 400
        assert response.json()["success"] is False

        assert client.get("/api/lifelog/entries/2024-03-05").json() == before
        assert client.get("/api/lifelog/patterns", params={"days": 100000}).status_code == 200
        assert client.get("/api/lifelog/digest/2024-03-05").status_code == 200

    def test_timestamp_edit_moves_entry(self, client):
        entry_id = _ingest(client, transcript="note", timestamp="2024-03-05T10:00:00+00:00")
        response = client.patch(f"/api/lifelog/entries/{entry_id}", json={"timestamp": "2024-03-04T09:00:00Z"})
        assert response.status_code == 200
        assert [e["id"] for e in client.get("/api/lifelog/entries/2024-03-04").json()] == [entry_id]
        assert client.get("/api/lifelog/entries/2024-03-05").json() == []


class TestSearchAndAnalytics:

    def test_keyword_and_semantic_search(self, client):
        _ingest(client, transcript="Budget meeting at work")
        _ingest(client, transcript="Family dinner")

        keyword = client.get("/api/lifelog/search", params={"q": "dinner"}).json()
        assert [e["transcript"] for e in keyword] == ["Family dinner"]

        semantic = client.get("/api/lifelog/search/semantic", params={"q": "budget", "threshold": 0.3}).json()
        assert semantic["total_embedded"] == 2
        assert [r["transcript"] for r in semantic["results"]] == ["Budget meeting at work"]
        assert 0.3 <= semantic["results"][0]["similarity"] <= 1.0

    def test_semantic_query_required(self, client):
        assert client.get("/api/lifelog/search/semantic").status_code == 400

    def test_daily_digest_with_failing_narrative(self, client, stubs):
        _ingest(client, transcript="note", timestamp="2024-03-05T10:00:00+00:00")
        stubs["narrator"].fail = True
        digest = client.get("/api/lifelog/digest/2024-03-05", params={"ai": "true"}).json()
        assert digest["total_entries"] == 1
        assert digest["narrative_error"] == "Narrative service unavailable"

    def test_weekly_digest(self, client):
        _ingest(client, transcript="note", timestamp="2024-03-05T10:00:00+00:00")
        digest = client.get("/api/lifelog/digest/week/2024-03-06", params={"ai": "true"}).json()
        assert digest["week_start"] == "2024-03-03"
        assert digest["narrative"]["title"] == "A busy week"

    def test_patterns_end_to_end(self, client, stubs):
        text = "Meeting went well, Sarah mentioned the budget"
        stubs["analyzer"].results[text] = AnalysisResult(
            summary="Good meeting", sentiment="positive", sentimentScore=0.8,
            topics=["work", "budget"], mood="pleased",
        )
        _ingest(client, transcript=text, context="work")

        body = client.get("/api/lifelog/patterns", params={"days": 1}).json()
        topics = {t["topic"]: t["count"] for t in body["patterns"]["top_topics"]}
        assert topics == {"work": 1, "budget": 1}
        assert body["patterns"]["avg_sentiment"] == 0.8

    def test_patterns_empty_window(self, client):
        body = client.get("/api/lifelog/patterns", params={"days": 7}).json()
        assert body["patterns"] is None
        assert body["error"] == "No entries in the specified time range"


class TestServiceEndpoints:

    def test_health_and_status(self, client):
        _ingest(client, transcript="note")
        health = client.get("/api/health").json()
        assert health["status"] == "ok"
        assert health["entries"] == 1

        status = client.get("/api/status").json()
        assert status["total"] == 1
        assert status["today"] == 1
        assert status["analyzed"] == 1
        assert status["pending_analysis"] == 0

    def test_logs(self, client):
        assert isinstance(client.get("/api/logs", params={"limit": 5}).json(), list)

    def test_plugins_listed_and_mounted(self, client):
        plugins = {p["name"]: p for p in client.get("/api/plugins").json()}
        assert set(plugins) == {"exercise", "wearable"}
        assert plugins["exercise"]["has_routes"] is True

        assert client.post("/api/plugins/exercise/sessions", json={"duration": 60}).status_code == 400
        bad = client.post("/api/plugins/exercise/sessions", json={"category": "walk", "timestamp": "not-a-date"})
        assert bad.status_code == 400
        assert client.get("/api/plugins/exercise/sessions").json() == []
        created = client.post("/api/plugins/exercise/sessions", json={"category": "walk", "duration": 600})
        assert created.json()["session"]["category"] == "walk"
        assert client.get("/api/plugins/exercise/streaks").json()["current"] == 1

        assert client.get("/api/plugins/wearable/activities/2024-03-05").status_code == 404
        posted = client.post("/api/plugins/wearable/activity", json={"date": "2024-03-05", "steps": 4000})
        assert posted.json()["result"] == {"added": 1, "updated": 0}
        assert client.get("/api/plugins/wearable/activities/2024-03-05").json()["steps"] == 4000
        assert client.get("/api/plugins/wearable/today").json()["goals"]["steps"] == 10000

    def test_wearable_import(self, client):
        export = '[{"date": "2024-03-01", "steps": 5000}, {"date": "2024-03-02", "steps": 6000}]'
        response = client.post(
            "/api/plugins/wearable/import",
            data={"data": export, "source": "generic", "source_id": "band"},
        )
        body = response.json()
        assert body["imported"] == {"days": 2, "added": 2, "updated": 0}
        assert body["date_range"] == {"from": "2024-03-01", "to": "2024-03-02"}
        assert client.get("/api/plugins/wearable/sources").json()[0]["id"] == "band"
