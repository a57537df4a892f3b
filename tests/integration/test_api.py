"""Integration tests for the assembled FastAPI application.

Covers the full request flow through the middleware chain, dependency
injection, authentication and the uniform error payload. The application
lifespan is only run by TestLifespan; elsewhere services are injected
through dependency overrides backed by the demo catalog.
"""

from pathlib import Path
from typing import Dict, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api import health, videos
from app.core.rate_limiter import configure_rate_limiter
from app.main import create_app, create_player_session
from app.middleware.auth import configure_auth
from app.middleware.request_id import REQUEST_ID_HEADER
from app.models.role import ViewerRole
from app.providers.memory import InMemoryVideoRepository
from app.providers.signing import HmacStorageGateway
from app.services.url_resolver import UrlResolutionService
from app.services.video_lookup import VideoLookupService
from app.testing.fixtures import (
    FREE_DRAFT_ID,
    FREE_PUBLISHED_ID,
    PREMIUM_ARCHIVED_ID,
    PREMIUM_PUBLISHED_ID,
    demo_catalog,
)

BASE_URL = "https://cdn.example.com/storage/v1"
MISSING_ID = "00000000-0000-4000-8000-000000000000"

FREE = {"Authorization": "Bearer free-token"}
PREMIUM = {"Authorization": "Bearer premium-token"}
ADMIN = {"Authorization": "Bearer admin-token"}

NEW_VIDEO: Dict[str, object] = {
    "title": "Shoulder Opener",
    "category": "mobility",
    "level": "beginner",
    "duration": 600,
    "video_url": "videos-free/shoulder-opener.mp4",
    "thumbnail_url": "thumbnails/shoulder-opener.jpg",
}


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def repository() -> InMemoryVideoRepository:
    return InMemoryVideoRepository(demo_catalog())


@pytest.fixture
def gateway() -> HmacStorageGateway:
    return HmacStorageGateway(BASE_URL, "integration-secret")


@pytest.fixture
def app(repository: InMemoryVideoRepository, gateway: HmacStorageGateway) -> FastAPI:
    configure_auth(
        tokens={
            "free-token": ViewerRole.FREE,
            "premium-token": ViewerRole.PREMIUM,
            "admin-token": ViewerRole.ADMIN,
        }
    )
    configure_rate_limiter(catalog_rpm=1000, playback_rpm=1000, burst_capacity=1000)

    lookup = VideoLookupService(repository, gateway)
    resolver = UrlResolutionService(gateway)

    application = create_app()
    application.dependency_overrides[videos.get_lookup_service] = lambda: lookup
    application.dependency_overrides[videos.get_url_resolver] = lambda: resolver
    application.dependency_overrides[health.get_repository] = lambda: repository
    application.dependency_overrides[health.get_storage_gateway] = lambda: gateway
    return application


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    yield TestClient(app, raise_server_exceptions=False)


# ============================================================================
# Catalog reads
# ============================================================================


class TestListVideos:
    """Tests for GET /api/v1/videos."""

    def test_anonymous_sees_published_only(self, client: TestClient) -> None:
        response = client.get("/api/v1/videos")

        assert response.status_code == 200
        body = response.json()
        ids = {video["id"] for video in body["data"]}
        assert ids == {FREE_PUBLISHED_ID, PREMIUM_PUBLISHED_ID}
        assert body["meta"] == {"total": 2, "limit": 50, "offset": 0, "count": 2}

    def test_premium_metadata_listed_for_everyone(self, client: TestClient) -> None:
        body = client.get("/api/v1/videos", params={"is_premium": "true"}).json()

        assert [video["id"] for video in body["data"]] == [PREMIUM_PUBLISHED_ID]
        video = body["data"][0]
        assert video["duration_formatted"] == "45:00"
        assert video["thumbnail_url"] == (
            f"{BASE_URL}/object/public/thumbnails/deep-hip-mobility.webp"
        )

    def test_admin_sees_every_status(self, client: TestClient) -> None:
        body = client.get("/api/v1/videos", headers=ADMIN).json()

        assert body["meta"]["total"] == 5

    def test_admin_status_filter(self, client: TestClient) -> None:
        body = client.get("/api/v1/videos", params={"status": "draft"}, headers=ADMIN).json()

        assert {video["status"] for video in body["data"]} == {"draft"}
        assert body["meta"]["total"] == 2

    def test_non_admin_status_filter_rejected(self, client: TestClient) -> None:
        response = client.get("/api/v1/videos", params={"status": "draft"}, headers=PREMIUM)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"]["errors"][0]["field"] == "status"

    def test_sort_and_paginate(self, client: TestClient) -> None:
        body = client.get(
            "/api/v1/videos",
            params={"sort": "duration", "order": "asc", "limit": "1", "offset": "1"},
            headers=ADMIN,
        ).json()

        # Durations: 900, 1200, 2700, 3600, 5400
        assert [video["id"] for video in body["data"]] == [FREE_PUBLISHED_ID]
        assert body["meta"] == {"total": 5, "limit": 1, "offset": 1, "count": 1}

    def test_invalid_parameters_reported_per_field(self, client: TestClient) -> None:
        response = client.get(
            "/api/v1/videos", params={"category": "pilates", "limit": "500", "order": "up"}
        )

        assert response.status_code == 400
        errors = response.json()["error"]["details"]["errors"]
        assert {error["field"] for error in errors} == {"category", "limit", "order"}
        category_error = next(error for error in errors if error["field"] == "category")
        assert category_error["allowed_values"] == ["yoga", "mobility", "calisthenics"]


class TestGetVideo:
    """Tests for GET /api/v1/videos/{video_id}."""

    def test_published_video(self, client: TestClient) -> None:
        response = client.get(f"/api/v1/videos/{PREMIUM_PUBLISHED_ID}")

        assert response.status_code == 200
        assert response.json()["data"]["title"] == "Deep Hip Mobility"

    @pytest.mark.parametrize("headers", [{}, FREE, PREMIUM])
    def test_draft_hidden_from_non_admins(self, client: TestClient, headers: dict) -> None:
        response = client.get(f"/api/v1/videos/{FREE_DRAFT_ID}", headers=headers)

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "NOT_FOUND"
        assert error["details"] == {"video_id": FREE_DRAFT_ID}

    def test_draft_visible_to_admin(self, client: TestClient) -> None:
        response = client.get(f"/api/v1/videos/{FREE_DRAFT_ID}", headers=ADMIN)

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "draft"

    def test_missing_video(self, client: TestClient) -> None:
        assert client.get(f"/api/v1/videos/{MISSING_ID}").status_code == 404

    def test_malformed_id(self, client: TestClient) -> None:
        response = client.get("/api/v1/videos/not-a-uuid")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_INPUT"

    def test_unknown_token_rejected(self, client: TestClient) -> None:
        response = client.get(
            f"/api/v1/videos/{FREE_PUBLISHED_ID}",
            headers={"Authorization": "Bearer stolen"},
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"


# ============================================================================
# Playback
# ============================================================================


class TestPlayback:
    """Tests for GET /api/v1/videos/{video_id}/playback."""

    def test_free_video_public_url(self, client: TestClient) -> None:
        response = client.get(f"/api/v1/videos/{FREE_PUBLISHED_ID}/playback")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["url"] == f"{BASE_URL}/object/public/videos-free/morning-flow.mp4"
        assert data["expires_at"] is None

    def test_free_url_stable(self, client: TestClient) -> None:
        first = client.get(f"/api/v1/videos/{FREE_PUBLISHED_ID}/playback").json()
        second = client.get(f"/api/v1/videos/{FREE_PUBLISHED_ID}/playback").json()

        assert first == second

    @pytest.mark.parametrize("headers", [{}, FREE])
    def test_premium_denied(self, client: TestClient, headers: dict) -> None:
        response = client.get(f"/api/v1/videos/{PREMIUM_PUBLISHED_ID}/playback", headers=headers)

        assert response.status_code == 403
        error = response.json()["error"]
        assert error["code"] == "ACCESS_DENIED"
        assert error["details"] == {
            "has_access": False,
            "reason": "PREMIUM_REQUIRED",
            "required_role": "premium",
        }

    def test_premium_signed_url(self, client: TestClient, gateway: HmacStorageGateway) -> None:
        response = client.get(f"/api/v1/videos/{PREMIUM_PUBLISHED_ID}/playback", headers=PREMIUM)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["url"].startswith(
            f"{BASE_URL}/object/sign/videos-premium/deep-hip-mobility.mp4?"
        )
        assert data["expires_at"] is not None
        assert gateway.verify(data["url"])

    def test_premium_urls_differ_per_call(self, client: TestClient) -> None:
        path = f"/api/v1/videos/{PREMIUM_PUBLISHED_ID}/playback"

        first = client.get(path, headers=PREMIUM).json()["data"]["url"]
        second = client.get(path, headers=PREMIUM).json()["data"]["url"]

        assert first != second

    def test_archived_hidden_from_premium(self, client: TestClient) -> None:
        response = client.get(f"/api/v1/videos/{PREMIUM_ARCHIVED_ID}/playback", headers=PREMIUM)

        assert response.status_code == 404

    def test_admin_previews_archived(self, client: TestClient) -> None:
        response = client.get(f"/api/v1/videos/{PREMIUM_ARCHIVED_ID}/playback", headers=ADMIN)

        assert response.status_code == 200
        assert "exp=" in response.json()["data"]["url"]

    def test_storage_outage(self, client: TestClient, gateway: HmacStorageGateway) -> None:
        gateway.available = False

        response = client.get(f"/api/v1/videos/{PREMIUM_PUBLISHED_ID}/playback", headers=PREMIUM)

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "STORAGE_UNAVAILABLE"

    def test_corrupt_reference(
        self, client: TestClient, repository: InMemoryVideoRepository
    ) -> None:
        repository._rows[FREE_PUBLISHED_ID]["video_url"] = "videos-premium/morning-flow.mp4"

        response = client.get(f"/api/v1/videos/{FREE_PUBLISHED_ID}/playback")

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "INVALID_URL"
        assert "videos-premium" not in error["message"]


# ============================================================================
# Admin writes
# ============================================================================


class TestAdminWrites:
    """Tests for the admin-only write endpoints."""

    def test_create_requires_authentication(self, client: TestClient) -> None:
        response = client.post("/api/v1/videos", json=NEW_VIDEO)

        assert response.status_code == 401

    @pytest.mark.parametrize("headers", [FREE, PREMIUM])
    def test_create_requires_admin(self, client: TestClient, headers: dict) -> None:
        response = client.post("/api/v1/videos", json=NEW_VIDEO, headers=headers)

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    def test_create_defaults_to_draft(self, client: TestClient) -> None:
        response = client.post("/api/v1/videos", json=NEW_VIDEO, headers=ADMIN)

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["status"] == "draft"
        assert data["is_premium"] is False

        # New drafts are invisible to viewers
        assert client.get(f"/api/v1/videos/{data['id']}").status_code == 404

    def test_create_rejects_tier_mismatch(self, client: TestClient) -> None:
        payload = dict(NEW_VIDEO, is_premium=True)

        response = client.post("/api/v1/videos", json=payload, headers=ADMIN)

        assert response.status_code == 400
        errors = response.json()["error"]["details"]["errors"]
        assert errors[0]["field"] == "video_url"

    def test_create_reports_missing_fields(self, client: TestClient) -> None:
        response = client.post("/api/v1/videos", json={"title": "Only a title"}, headers=ADMIN)

        assert response.status_code == 400
        fields = {error["field"] for error in response.json()["error"]["details"]["errors"]}
        assert {"category", "level", "duration", "video_url", "thumbnail_url"} <= fields

    def test_create_duplicate_asset(self, client: TestClient) -> None:
        payload = dict(NEW_VIDEO, video_url="videos-free/morning-flow.mp4")

        response = client.post("/api/v1/videos", json=payload, headers=ADMIN)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"

    def test_publish_then_archive(self, client: TestClient) -> None:
        path = f"/api/v1/videos/{FREE_DRAFT_ID}"

        published = client.patch(path, json={"status": "published"}, headers=ADMIN)
        assert published.status_code == 200
        assert client.get(path).status_code == 200

        archived = client.patch(path, json={"status": "archived"}, headers=ADMIN)
        assert archived.json()["data"]["status"] == "archived"
        assert client.get(path).status_code == 404

    def test_patch_tier_flip_requires_matching_asset(self, client: TestClient) -> None:
        path = f"/api/v1/videos/{FREE_PUBLISHED_ID}"

        rejected = client.patch(path, json={"is_premium": True}, headers=ADMIN)
        assert rejected.status_code == 400
        assert rejected.json()["error"]["details"]["errors"][0]["field"] == "is_premium"

        accepted = client.patch(
            path,
            json={"is_premium": True, "video_url": "videos-premium/morning-flow.mp4"},
            headers=ADMIN,
        )
        assert accepted.status_code == 200
        assert client.get(f"{path}/playback").status_code == 403

    def test_replace_video(self, client: TestClient) -> None:
        payload = dict(NEW_VIDEO, status="published")

        response = client.put(f"/api/v1/videos/{FREE_DRAFT_ID}", json=payload, headers=ADMIN)

        assert response.status_code == 200
        assert response.json()["data"]["title"] == "Shoulder Opener"

    def test_update_missing_video(self, client: TestClient) -> None:
        response = client.patch(
            f"/api/v1/videos/{MISSING_ID}", json={"title": "New"}, headers=ADMIN
        )

        assert response.status_code == 404

    def test_delete(self, client: TestClient) -> None:
        path = f"/api/v1/videos/{FREE_PUBLISHED_ID}"

        response = client.delete(path, headers=ADMIN)

        assert response.status_code == 204
        assert response.content == b""
        assert client.get(path).status_code == 404
        assert client.delete(path, headers=ADMIN).status_code == 404


# ============================================================================
# Middleware and cross-cutting behavior
# ============================================================================


class TestMiddleware:
    def test_request_id_generated(self, client: TestClient) -> None:
        response = client.get("/api/v1/videos")

        assert response.headers[REQUEST_ID_HEADER].startswith("req_")

    def test_request_id_propagated(self, client: TestClient) -> None:
        response = client.get(
            f"/api/v1/videos/{MISSING_ID}", headers={REQUEST_ID_HEADER: "trace-42"}
        )

        assert response.headers[REQUEST_ID_HEADER] == "trace-42"
        assert response.json()["error"]["request_id"] == "trace-42"

    def test_malformed_request_id_replaced(self, client: TestClient) -> None:
        response = client.get("/api/v1/videos", headers={REQUEST_ID_HEADER: "bad id!"})

        assert response.headers[REQUEST_ID_HEADER] != "bad id!"

    def test_playback_rate_limited(self, client: TestClient) -> None:
        configure_rate_limiter(catalog_rpm=1000, playback_rpm=6, burst_capacity=2)
        path = f"/api/v1/videos/{FREE_PUBLISHED_ID}/playback"

        statuses = [client.get(path, headers=PREMIUM).status_code for _ in range(3)]

        assert statuses == [200, 200, 429]
        response = client.get(path, headers=PREMIUM)
        assert int(response.headers["Retry-After"]) >= 1
        assert response.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
        # Other callers and categories keep their own budget
        assert client.get(path, headers=FREE).status_code == 200
        assert client.get("/api/v1/videos", headers=PREMIUM).status_code == 200

    def test_unmatched_route(self, client: TestClient) -> None:
        response = client.get("/api/v2/videos")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_method_not_allowed(self, client: TestClient) -> None:
        response = client.post(f"/api/v1/videos/{FREE_PUBLISHED_ID}/playback")

        assert response.status_code == 405
        assert response.json()["error"]["code"] == "METHOD_NOT_ALLOWED"

    def test_metrics_endpoint(self, client: TestClient) -> None:
        client.get("/api/v1/videos")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text


# ============================================================================
# Health
# ============================================================================


class TestHealth:
    def test_healthy(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert set(body["components"]) == {"database", "storage"}

    def test_storage_down(self, client: TestClient, gateway: HmacStorageGateway) -> None:
        gateway.available = False

        response = client.get("/health")

        assert response.status_code == 503
        storage = response.json()["components"]["storage"]
        assert storage["status"] == "unhealthy"
        assert storage["details"] == {"error": "storage not reachable"}

    def test_readiness_ignores_storage(
        self, client: TestClient, gateway: HmacStorageGateway
    ) -> None:
        gateway.available = False

        assert client.get("/readiness").json() == {
            "status": "ready",
            "ready": True,
            "message": None,
        }

    def test_not_ready_without_database(
        self, client: TestClient, repository: InMemoryVideoRepository
    ) -> None:
        repository.available = False

        response = client.get("/readiness")

        assert response.status_code == 503
        assert response.json()["message"] == "Database not reachable"

    def test_liveness(self, client: TestClient) -> None:
        assert client.get("/liveness").json() == {"status": "alive"}


class TestLifespan:
    """Startup wiring from configuration."""

    def test_player_sessions_use_configured_lookup_timeout(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("APP_CONFIG_PATH", str(tmp_path / "missing.yaml"))
        monkeypatch.setenv("APP_TESTING_SEED_DEMO_CATALOG", "true")
        monkeypatch.setenv("APP_TIMEOUTS_LOOKUP", "2.5")

        with TestClient(create_app()) as client:
            assert client.get("/api/v1/videos").json()["meta"]["total"] == 2

            session = create_player_session(locale="pl")
            assert session.lookup_timeout == 2.5
            assert session.locale == "pl"

        with pytest.raises(RuntimeError):
            create_player_session()
