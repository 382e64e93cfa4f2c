"""
Integration tests for health check and metrics endpoints
"""
import redis
from fastapi import status


class TestHealthEndpoints:
    """Test health check endpoints"""

    def test_basic_health_check(self, client):
        """Test basic health check endpoint"""
        response = client.get("/api/v1/health/")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "subshare"
        assert "timestamp" in data

    def test_readiness_check_healthy(self, client):
        """Test readiness check when all services are healthy"""
        response = client.get("/api/v1/health/ready")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"]["status"] == "healthy"
        assert data["checks"]["redis"]["status"] == "healthy"

    def test_readiness_with_redis_down(self, client, redis_client):
        """Redis outage degrades readiness without failing it"""
        redis_client.ping.side_effect = redis.ConnectionError("down")

        response = client.get("/api/v1/health/ready")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "degraded"
        assert data["checks"]["redis"]["status"] == "unhealthy"

    def test_liveness_check(self, client):
        response = client.get("/api/v1/health/live")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "alive"


class TestMetricsEndpoint:
    """Test Prometheus metrics endpoint"""

    def test_metrics_exposed(self, client):
        client.get("/api/v1/health/")

        response = client.get("/metrics")

        assert response.status_code == status.HTTP_200_OK
        assert "text/plain" in response.headers["content-type"]
        assert "subshare_requests_total" in response.text

    def test_request_ids_normalised(self, client):
        client.get("/api/v1/platforms/12345")

        assert 'endpoint="/api/v1/platforms/{id}"' in client.get("/metrics").text


class TestErrorResponses:

    def test_unknown_route(self, client):
        response = client.get("/api/v1/does-not-exist")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_not_found_error_body(self, client):
        response = client.get("/api/v1/platforms/12345")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        data = response.json()
        assert data["error"] == "NOT_FOUND"
        assert "message" in data

    def test_unauthorized_has_challenge_header(self, client):
        response = client.get("/api/v1/users/profile")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.headers["www-authenticate"] == "Bearer"

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["name"] == "SubShare API"
