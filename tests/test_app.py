class TestServiceEndpoints:
    """Tests for health and root endpoints"""

    async def test_health_reports_fallbacks(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["environment"] == "test"
        assert body["redis"] == "unavailable"
        assert body["connected_clients"] >= 0

    async def test_root(self, client):
        response = await client.get("/")

        assert response.json()["version"] == "1.0.0"

    async def test_unknown_route_uses_envelope(self, client):
        response = await client.get("/api/v1/nope")

        assert response.status_code == 404
        assert response.json()["status"] == "ERROR"
        assert response.json()["code"] == 404

    async def test_success_envelope_carries_code(self, client, seed):
        instructor = await seed.user("instructor")
        course = await seed.course(instructor)

        response = await client.get(f"/api/v1/lms/lessons/course/{course.id}")

        assert response.json()["status"] == "SUCCESS"
        assert response.json()["code"] == 200
