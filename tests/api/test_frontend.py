"""Tests for single-page frontend serving."""

import pytest
from fastapi.testclient import TestClient

from auth.attempts import MemoryAttemptStore
from main import create_app

INDEX_HTML = "<!doctype html><div id=\"root\"></div>"


@pytest.fixture
def dist(tmp_path):
    (tmp_path / "index.html").write_text(INDEX_HTML)
    (tmp_path / "favicon.svg").write_text("<svg/>")
    (tmp_path / "assets").mkdir()
    (tmp_path / "assets" / "app.js").write_text("console.log('tasko')")
    return tmp_path


def build_client(config, google_config, store, clock, frontend_dir):
    app = create_app(
        config,
        google_config,
        store,
        MemoryAttemptStore(config, clock),
        clock=clock,
        frontend_dir=frontend_dir,
    )
    return TestClient(app, raise_server_exceptions=False, follow_redirects=False)


@pytest.fixture
def client(config, google_config, store, clock, dist):
    with build_client(config, google_config, store, clock, dist) as c:
        yield c


class TestClientRoutes:

    def test_dashboard_serves_index(self, client):
        response = client.get("/dashboard")

        assert response.status_code == 200
        assert response.text == INDEX_HTML
        assert response.headers["content-type"].startswith("text/html")

    def test_root_with_login_error_serves_index(self, client):
        response = client.get("/?error=auth_failed")

        assert response.status_code == 200
        assert response.text == INDEX_HTML

    def test_nested_client_route_serves_index(self, client):
        assert client.get("/tasks/archived").text == INDEX_HTML


class TestStaticFiles:

    def test_asset_served(self, client):
        response = client.get("/assets/app.js")

        assert response.status_code == 200
        assert response.text == "console.log('tasko')"

    def test_top_level_file_served(self, client):
        assert client.get("/favicon.svg").text == "<svg/>"

    def test_missing_asset_is_404(self, client):
        assert client.get("/assets/missing.js").status_code == 404


class TestApiUnaffected:

    def test_unknown_api_path_is_json_404(self, client):
        response = client.get("/api/nope")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "NOT_FOUND"

    def test_api_routes_take_precedence(self, client):
        assert client.get("/api/tasks").status_code == 401

    def test_ping_still_plain_text(self, client):
        assert client.get("/ping").text == "pong\n"


class TestWithoutBuild:

    def test_missing_index_is_404(self, config, google_config, store, clock, tmp_path):
        with build_client(config, google_config, store, clock, tmp_path) as client:
            response = client.get("/dashboard")

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Frontend not built"
