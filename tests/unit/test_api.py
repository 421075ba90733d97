"""Tests for the HTTP surface."""

import io
import json
import zipfile

import pytest
from litestar.testing import TestClient

from ezgen.api import create_app
from ezgen.orchestration import GenerationPipeline

FIELDS_A = {
    "appName": "MyStore",
    "websiteUrl": "https://mystoreapp.com",
    "packageName": "com.mystore.app",
}


def multipart(fields, **files):
    """Multipart body with plain form fields and optional files."""
    parts = {name: (None, value) for name, value in fields.items()}
    parts.update(files)
    return parts


@pytest.fixture
def client(config, pipeline):
    with TestClient(app=create_app(config, pipeline)) as client:
        yield client


@pytest.fixture
def generated(client):
    """Response body of one successful generation."""
    response = client.post("/api/generate-app", files=multipart({**FIELDS_A, "sessionId": "s-1"}))
    assert response.status_code == 200
    return response.json()


def sse_events(body):
    """Parse `log` events out of a Server-Sent Events body."""
    events = []
    for block in body.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in block.splitlines())
        assert lines["event"] == "log"
        events.append(json.loads(lines["data"]))
    return events


class TestGenerateEndpoint:
    """Tests for POST /api/generate-app."""

    def test_health(self, client, reporter):
        """Health reports the status and the number of buffered sessions."""
        reporter.log("s-h", "hello")

        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "OK"
        assert response.json()["activeSessions"] == 1

    def test_success_response(self, generated):
        """A successful generation returns ids, state and download links."""
        app_id = generated["appId"]

        assert generated["success"] is True
        assert generated["sessionId"] == "s-1"
        assert generated["state"] == "Done"
        assert generated["artifacts"] == ["mystore-debug.apk", "mystore-release.apk", "mystore-release.aab"]
        assert generated["downloadUrl"] == f"/api/download/{app_id}"
        assert generated["apkDownloadUrl"] == f"/api/download-apk/{app_id}"
        assert generated["releaseApkDownloadUrl"] == f"/api/download-release-apk/{app_id}"
        assert generated["aabDownloadUrl"] == f"/api/download-aab/{app_id}"
        assert generated["guideUrl"] == f"/api/download-guide/{app_id}"

    def test_validation_failure(self, client, config):
        """Invalid input is a 400 naming the problem; nothing is generated."""
        fields = {**FIELDS_A, "websiteUrl": "not-a-valid-url", "sessionId": "s-bad"}

        response = client.post("/api/generate-app", files=multipart(fields))

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Invalid website URL"
        assert body["sessionId"] == "s-bad"
        assert "Invalid URL format" in body["message"]
        assert not any(config.storage.generated_apps_dir.iterdir())

    def test_session_id_generated_when_absent(self, client):
        """Requests without a session id get one."""
        response = client.post("/api/generate-app", files=multipart({**FIELDS_A, "appName": "x"}))

        assert response.status_code == 400
        assert response.json()["sessionId"]

    def test_logo_upload(self, client, config):
        """An uploaded logo becomes the workspace icon and leaves uploads/."""
        files = multipart(FIELDS_A, logo=("logo.png", b"\x89PNG fake", "image/png"))

        response = client.post("/api/generate-app", files=files)

        assert response.status_code == 200
        root = config.storage.generated_apps_dir / response.json()["appId"]
        assert (root / "resources" / "icon.png").read_bytes() == b"\x89PNG fake"
        assert list(config.storage.uploads_dir.iterdir()) == []

    def test_rejected_upload_discarded(self, client, config):
        """Uploads of rejected requests are not kept."""
        fields = {**FIELDS_A, "packageName": "com.android.test"}

        response = client.post("/api/generate-app", files=multipart(fields, splash=("s.png", b"png", "image/png")))

        assert response.status_code == 400
        assert list(config.storage.uploads_dir.iterdir()) == []

    def test_unexpected_failure(self, config, toolchain, reporter, temp_dir):
        """Errors other than validation are a 500."""
        config.storage.template_dir = temp_dir / "missing"
        pipeline = GenerationPipeline(config=config, runner=toolchain, reporter=reporter)

        with TestClient(app=create_app(config, pipeline)) as client:
            response = client.post("/api/generate-app", files=multipart(FIELDS_A))

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Failed to generate app"
        assert "Template directory not found" in body["error"]


class TestDownloads:
    """Tests for the download endpoints."""

    @pytest.mark.parametrize(
        "route, name, content",
        [
            ("download-apk", "mystore-debug.apk", b"PK\x03\x04app-debug.apk"),
            ("download-release-apk", "mystore-release.apk", b"PK\x03\x04app-release.apk"),
            ("download-aab", "mystore-release.aab", b"PK\x03\x04app-release.aab"),
        ],
    )
    def test_artifacts(self, client, generated, route, name, content):
        """Artifacts are served from the store under their stable names."""
        response = client.get(f"/api/{route}/{generated['appId']}")

        assert response.status_code == 200
        assert response.content == content
        assert name in response.headers["content-disposition"]

    def test_artifact_falls_back_to_build_tree(self, client, config):
        """Outputs not in the store are served from the workspace build tree."""
        bundle_dir = config.storage.generated_apps_dir / "manual-1" / "android/app/build/outputs/bundle/release"
        bundle_dir.mkdir(parents=True)
        (bundle_dir / "app-release.aab").write_bytes(b"aab")

        response = client.get("/api/download-aab/manual-1")

        assert response.status_code == 200
        assert response.content == b"aab"

    @pytest.mark.parametrize(
        "route, message",
        [
            ("download-apk", "APK not found"),
            ("download-release-apk", "Release APK not found"),
            ("download-aab", "AAB file not found"),
            ("download-guide", "Play Store guide not found"),
            ("download", "App not found"),
        ],
    )
    def test_unknown_app(self, client, route, message):
        """Unknown workspaces are a JSON 404."""
        response = client.get(f"/api/{route}/does-not-exist")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": message}

    def test_malformed_app_id(self, client):
        """Identifiers outside [A-Za-z0-9-] are never looked up."""
        response = client.get("/api/download-apk/bad.id")

        assert response.status_code == 404

    def test_workspace_zip(self, client, config, generated):
        """The workspace downloads as a zip and the temporary archive is removed."""
        app_id = generated["appId"]

        response = client.get(f"/api/download/{app_id}")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/zip"
        assert f"generated-app-{app_id}.zip" in response.headers["content-disposition"]
        names = zipfile.ZipFile(io.BytesIO(response.content)).namelist()
        assert "capacitor.config.ts" in names
        assert "Play-Store-Guide.md" in names
        assert list(config.storage.generated_apps_dir.glob("*.zip")) == []

    def test_guide(self, client, generated):
        """The submission guide downloads as Markdown."""
        response = client.get(f"/api/download-guide/{generated['appId']}")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/markdown")
        assert "Play Store Submission Guide for MyStore" in response.text


class TestSessionLogs:
    """Tests for the Server-Sent Events log channel."""

    def test_replay(self, client, reporter):
        """Buffered entries are delivered as `log` events."""
        reporter.log("s-9", "first")
        reporter.log("s-9", "second")

        response = client.get("/api/sessions/s-9/logs", params={"follow": "false"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = sse_events(response.text)
        assert [e["message"] for e in events] == ["first", "second"]
        assert set(events[0]) == {"timestamp", "message", "type", "id"}

    def test_unknown_session_replay(self, client):
        """Replaying a session that never logged is a JSON 404."""
        response = client.get("/api/sessions/never-seen/logs", params={"follow": "false"})

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Session not found"}

    def test_generation_logs_available(self, client, generated):
        """A finished generation's progress can be replayed."""
        response = client.get("/api/sessions/s-1/logs", params={"follow": "false"})

        messages = [e["message"] for e in sse_events(response.text)]
        assert messages[0] == "🚀 Starting app generation for: MyStore"
        assert messages[-1] == "🎉 App generation completed!"
