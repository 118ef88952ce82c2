import dataclasses
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from dependencies.settings import get_settings
from main import app


@pytest.fixture
def client(settings):
    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


class TestHealth:
    def test_reports_ok(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "OK"
        assert body["transcoderAvailable"] is True
        assert body["uptimeSeconds"] >= 0
        datetime.fromisoformat(body["timestamp"].replace("Z", "+00:00"))

    def test_reports_missing_transcoder(self, client, settings, tmp_path):
        broken = dataclasses.replace(settings, ffmpeg_bin=str(tmp_path / "missing"))
        app.dependency_overrides[get_settings] = lambda: broken

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["transcoderAvailable"] is False


class TestTranscoderCheck:
    def test_reports_version(self, client, settings):
        response = client.get("/test-transcoder")

        assert response.status_code == 200
        assert response.json() == {
            "status": "FFmpeg is working",
            "version": "6.1-fake",
            "path": settings.ffmpeg_bin,
        }

    def test_broken_transcoder(self, client, settings, tmp_path):
        broken = dataclasses.replace(settings, ffmpeg_bin=str(tmp_path / "missing"))
        app.dependency_overrides[get_settings] = lambda: broken

        response = client.get("/test-transcoder")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "FFmpeg not working"
        assert "No such file" in body["details"]
