"""Tests for the rate limiting pure function and middleware integration."""

from docuhub.core.config import settings
from docuhub.middleware.request_context import check_rate_limit


class TestCheckRateLimit:
    """Unit tests for the pure function: no middleware, no HTTP."""

    def test_allows_within_limit(self):
        bucket: dict = {}
        allowed, retry = check_rate_limit(bucket, "client-a", max_per_minute=60, now=0.0)
        assert allowed is True
        assert retry == 0.0

    def test_denies_after_exhaustion(self):
        bucket: dict = {}
        for _ in range(60):
            check_rate_limit(bucket, "client-a", max_per_minute=60, now=0.0)

        allowed, retry = check_rate_limit(bucket, "client-a", max_per_minute=60, now=0.0)
        assert allowed is False
        assert retry > 0

    def test_refills_over_time(self):
        bucket: dict = {}
        for _ in range(60):
            check_rate_limit(bucket, "client-a", max_per_minute=60, now=0.0)

        # 2 seconds later: ~2 tokens back
        allowed, _ = check_rate_limit(bucket, "client-a", max_per_minute=60, now=2.0)
        assert allowed is True

    def test_separate_keys_independent(self):
        bucket: dict = {}
        for _ in range(60):
            check_rate_limit(bucket, "client-a", max_per_minute=60, now=0.0)

        allowed, _ = check_rate_limit(bucket, "client-b", max_per_minute=60, now=0.0)
        assert allowed is True

    def test_zero_limit_always_allows(self):
        bucket: dict = {}
        allowed, _ = check_rate_limit(bucket, "any", max_per_minute=0, now=0.0)
        assert allowed is True


class TestMiddleware:

    def test_returns_429_when_exhausted(self, client, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_per_minute", 2)
        assert client.get("/api/environments").status_code == 200
        assert client.get("/api/environments").status_code == 200

        resp = client.get("/api/environments")
        assert resp.status_code == 429
        assert resp.json()["error"] == "RATE_LIMITED"
        assert "retry-after" in resp.headers

    def test_health_is_exempt(self, client, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_per_minute", 1)
        for _ in range(3):
            assert client.get("/health").status_code == 200

    def test_api_keys_have_their_own_bucket(self, client, monkeypatch):
        raw = client.post("/api/api-keys", json={"name": "ci"}).json()["key"]
        monkeypatch.setattr(settings, "rate_limit_per_minute", 1)

        assert client.get("/api/environments").status_code == 200
        assert client.get("/api/environments").status_code == 429
        assert client.get("/api/environments", headers={"X-API-Key": raw}).status_code == 200
