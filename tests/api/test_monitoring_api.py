"""Tests for the metrics endpoint."""

import pytest
from httpx import AsyncClient


class TestMetrics:
    """Tests for GET /metrics"""

    @pytest.mark.asyncio
    async def test_metrics_exposed(self, test_client: AsyncClient):
        await test_client.get("/api/v1/users/me")

        response = await test_client.get("/metrics")

        assert response.status_code == 200
        body = response.text
        assert "bookrats_app_info" in body
        assert "bookrats_checkins_created_total" in body
        assert any(
            line.startswith("bookrats_") and "http_requests_total" in line
            for line in body.splitlines()
        )

    @pytest.mark.asyncio
    async def test_checkin_counter_increments(
        self, test_client: AsyncClient, test_group, auth_headers: dict
    ):
        def checkins_created(text: str) -> float:
            for line in text.splitlines():
                if line.startswith("bookrats_checkins_created_total "):
                    return float(line.split()[1])
            raise AssertionError("counter missing")

        before = checkins_created((await test_client.get("/metrics")).text)
        await test_client.post(
            f"/api/v1/groups/{test_group.id}/checkins",
            data={"title": "Counted"},
            headers=auth_headers,
        )
        after = checkins_created((await test_client.get("/metrics")).text)

        assert after == before + 1
