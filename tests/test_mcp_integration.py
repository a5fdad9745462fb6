"""
Integration tests for MCP tool endpoints.

Uses a registry with stub operations so tests do not require a database or embedding API.
"""

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from kol_agent.agent.tools import ToolRegistry, ToolSpec
from kol_agent.api.routes import get_agent_service
from kol_agent.main import app
from kol_agent.schemas.tools import AggregateMetricsInput, AnalyzePostsInput

USER_ID = "123e4567-e89b-12d3-a456-426614174000"


@pytest.fixture
def calls() -> list:
    return []


@pytest.fixture
def client(calls) -> TestClient:
    async def analyze_posts(tenant_id, op_input):
        calls.append((tenant_id, op_input))
        return {"type": "analyze_posts", "count": 0, "posts": []}

    async def aggregate_metrics(tenant_id, op_input):
        raise RuntimeError("database is locked")

    registry = ToolRegistry([
        ToolSpec("analyze_posts", "Get posts.", AnalyzePostsInput, analyze_posts),
        ToolSpec("aggregate_metrics", "Get metrics.", AggregateMetricsInput, aggregate_metrics),
    ])
    app.dependency_overrides[get_agent_service] = lambda: SimpleNamespace(registry=registry)
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_mcp_list_tools(client: TestClient) -> None:
    """GET /mcp/tools returns name, description and a self-contained input schema per tool."""
    response = client.get("/mcp/tools")
    assert response.status_code == 200
    tools = response.json()["tools"]
    assert [t["name"] for t in tools] == ["analyze_posts", "aggregate_metrics"]
    assert tools[0]["description"] == "Get posts."
    assert "filters" in tools[0]["input_schema"]["properties"]
    assert "$ref" not in str(tools[0]["input_schema"])


def test_mcp_call_tool_returns_result(client: TestClient, calls) -> None:
    """POST /mcp/tools/analyze_posts runs the tool for userId with sanitized arguments."""
    response = client.post(
        "/mcp/tools/analyze_posts",
        json={"userId": USER_ID, "arguments": {"filters": {"kol_id": "kol_1", "platform": "instagram"}}},
    )
    assert response.status_code == 200
    assert response.json() == {
        "tool": "analyze_posts",
        "ok": True,
        "result": {"type": "analyze_posts", "count": 0, "posts": []},
        "error": None,
    }
    tenant_id, op_input = calls[0]
    assert tenant_id == USER_ID
    assert op_input.filters.kol_id is None
    assert op_input.filters.platform == "instagram"


def test_mcp_call_tool_failure_is_data(client: TestClient) -> None:
    """Executor failures come back as ok=false with the error text, not as HTTP errors."""
    response = client.post("/mcp/tools/aggregate_metrics", json={"userId": USER_ID, "arguments": {"scope": "kol"}})
    assert response.status_code == 200
    assert response.json()["ok"] is False
    assert response.json()["error"] == "database is locked"


def test_mcp_call_tool_invalid_arguments(client: TestClient) -> None:
    response = client.post("/mcp/tools/aggregate_metrics", json={"userId": USER_ID, "arguments": {}})
    assert response.status_code == 200
    assert response.json()["ok"] is False
    assert response.json()["error"].startswith("Invalid arguments")


def test_mcp_unknown_tool_returns_404(client: TestClient) -> None:
    response = client.post("/mcp/tools/search_documents", json={"userId": USER_ID})
    assert response.status_code == 404


def test_mcp_missing_user_id_returns_422(client: TestClient) -> None:
    """POST without userId returns 422."""
    response = client.post("/mcp/tools/analyze_posts", json={"arguments": {}})
    assert response.status_code == 422
