"""E2E tests: a full RCA investigation over framed JSON-RPC."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

from mcp_rca.llm.config import ModelConfig
from mcp_rca.llm.provider import LiteLLMProvider, LLMProviderManager
from mcp_rca.protocol.errors import INVALID_PARAMS, NOT_INITIALIZED, TOOL_EXECUTION_FAILED, TOOL_NOT_FOUND
from mcp_rca.protocol.framing import encode_frame

from tests.e2e.conftest import make_mock_litellm_response

_HYPOTHESES = {
    "hypotheses": [
        {
            "text": "Connection pool exhausted after deploy",
            "rationale": "Errors started with release 42",
            "testPlan": {"method": "Compare pool metrics", "expected": "Pool at max", "metric": "db_pool_in_use"},
        },
        {
            "text": "Upstream DNS flapping",
            "rationale": "Intermittent resolution errors",
            "testPlan": {"method": "Inspect resolver logs", "expected": "SERVFAIL bursts"},
        },
    ]
}


class TestInvestigationFlow:
    async def test_full_investigation(self, make_client, cases_path: Path) -> None:  # type: ignore[no-untyped-def]
        llm = LLMProviderManager([LiteLLMProvider("openai", ModelConfig(model="openai/gpt-4o-mini"))])
        client = make_client(llm)

        init = await client.initialize()
        assert init["result"]["serverInfo"]["name"] == "mcp-rca"

        listing = await client.request("tools/list")
        assert len(listing["result"]["tools"]) == 18

        created = await client.call_tool(
            "case_create", {"title": "Checkout 500s", "severity": "SEV1", "tags": ["payments"]}
        )
        case_id = created["caseId"]

        await client.call_tool("observation_add", {"caseId": case_id, "what": "5xx rate at 12%"})
        await client.call_tool(
            "observation_add", {"caseId": case_id, "what": "DB pool saturated", "deployEnv": "prod"}
        )
        observations = await client.call_tool("observations_list", {"caseId": case_id, "deployEnv": "prod"})
        assert [item["what"] for item in observations["observations"]] == ["DB pool saturated"]

        with patch("mcp_rca.llm.provider.litellm") as mock_litellm:
            mock_litellm.acompletion = AsyncMock(
                return_value=make_mock_litellm_response(content=json.dumps(_HYPOTHESES))
            )
            proposed = await client.call_tool("hypothesis_propose", {"caseId": case_id, "text": "Checkout failing"})
        pool, dns = proposed["hypotheses"]
        assert pool["testPlan"]["metric"] == "db_pool_in_use"

        plan = await client.call_tool(
            "test_plan",
            {
                "caseId": case_id,
                "hypothesisId": pool["id"],
                "method": "Raise pool size in canary",
                "expected": "Errors drop",
                "priority": 1,
            },
        )
        assert plan["status"] == "draft"

        await client.call_tool("hypothesis_finalize", {"caseId": case_id, "hypothesisId": pool["id"]})
        pruned = await client.call_tool("bulk_delete_provisional", {"caseId": case_id})
        assert [item["id"] for item in pruned["deletedHypotheses"]] == [dns["id"]]
        assert dns["testPlan"]["id"] in [item["id"] for item in pruned["deletedTestPlans"]]

        concluded = await client.call_tool(
            "conclusion_finalize",
            {"caseId": case_id, "rootCauses": ["Pool size too small for new query pattern"], "fix": "Raise pool to 50"},
        )
        assert concluded["conclusion"]["confidenceMarker"] == "🟢"

        fetched = await client.call_tool("case_get", {"caseId": case_id})
        case = fetched["case"]
        assert [item["id"] for item in case["hypotheses"]] == [pool["id"]]
        assert case["hypotheses"][0]["confidence"] == 1.0
        assert {item["id"] for item in case["tests"]} == {pool["testPlan"]["id"], plan["testPlanId"]}
        assert case["conclusion"]["fix"] == "Raise pool to 50"

        assert await client.finish() == 0
        stored = json.loads(cases_path.read_text(encoding="utf-8"))
        assert stored["cases"][0]["conclusion"]["rootCauses"] == ["Pool size too small for new query pattern"]

    async def test_cases_survive_restart(self, make_client) -> None:  # type: ignore[no-untyped-def]
        first = make_client()
        await first.initialize()
        created = await first.call_tool("case_create", {"title": "Nightly job stalled", "severity": "SEV3"})
        assert await first.close() == 0

        second = make_client()
        await second.initialize()
        listed = await second.call_tool("case_list", {"query": "nightly"})
        assert [item["id"] for item in listed["cases"]] == [created["caseId"]]
        assert await second.close() == 0

    async def test_placeholder_hypothesis_without_llm(self, make_client) -> None:  # type: ignore[no-untyped-def]
        client = make_client(LLMProviderManager())
        await client.initialize()
        created = await client.call_tool("case_create", {"title": "Slow search", "severity": "SEV2"})
        proposed = await client.call_tool("hypothesis_propose", {"caseId": created["caseId"], "text": "p99 up"})
        assert proposed["hypotheses"][0]["rationale"] == "LLM integration not yet configured."
        await client.close()


class TestWireContract:
    async def test_single_item_prioritize_after_handshake(self, make_client) -> None:  # type: ignore[no-untyped-def]
        client = make_client()
        init = await client.request("initialize", {"protocolVersion": "2024-11-05"})
        assert "result" in init
        client.notify("initialized")

        response = await client.request(
            "tools/call",
            {
                "name": "test_prioritize",
                "arguments": {
                    "strategy": "RICE",
                    "items": [{"id": "a", "impact": 2, "confidence": 0.5, "effort": 5, "reach": 10}],
                },
            },
        )
        (ranked,) = response["result"]["structuredContent"]["ranked"]
        assert ranked["id"] == "a"
        assert ranked["rank"] == 1
        await client.close()

    async def test_ping_with_zero_id_is_answered(self, make_client) -> None:  # type: ignore[no-untyped-def]
        client = make_client()
        client.reader.feed_data(encode_frame({"jsonrpc": "2.0", "id": 0, "method": "ping"}))
        response = await client.wait_for(0)
        assert response == {"jsonrpc": "2.0", "id": 0, "result": {"ok": True}}
        await client.close()

    async def test_prioritize_envelope(self, make_client) -> None:  # type: ignore[no-untyped-def]
        client = make_client()
        await client.initialize()
        response = await client.request(
            "tools/call",
            {
                "name": "test_prioritize",
                "arguments": {
                    "strategy": "RICE",
                    "items": [
                        {"id": "a", "reach": 10, "impact": 1, "confidence": 0.5, "effort": 5},
                        {"id": "b", "reach": 100, "impact": 2, "confidence": 0.8, "effort": 2},
                    ],
                },
            },
        )
        result = response["result"]
        assert result["content"][0]["type"] == "application/json"
        assert result["content"][0]["data"] == result["structuredContent"]
        ranked = result["structuredContent"]["ranked"]
        assert ranked[0]["rank"] == 1
        assert ranked[0]["id"] == "b"
        await client.close()

    async def test_error_codes(self, make_client) -> None:  # type: ignore[no-untyped-def]
        client = make_client()
        early = await client.request("tools/list")
        assert early["error"]["code"] == NOT_INITIALIZED

        await client.initialize()
        missing_tool = await client.request("tools/call", {"name": "case_delete"})
        assert missing_tool["error"]["code"] == TOOL_NOT_FOUND

        invalid = await client.request("tools/call", {"name": "case_create", "arguments": {"title": "x"}})
        assert invalid["error"]["code"] == INVALID_PARAMS

        missing_case = await client.request("tools/call", {"name": "case_get", "arguments": {"caseId": "case_x"}})
        assert missing_case["error"] == {
            "code": TOOL_EXECUTION_FAILED,
            "message": "Tool execution failed: case_get",
            "data": "Case case_x not found",
        }
        await client.close()

    async def test_concurrent_writes_over_the_wire(self, make_client) -> None:  # type: ignore[no-untyped-def]
        client = make_client()
        await client.initialize()
        created = await client.call_tool("case_create", {"title": "Burst", "severity": "SEV3"})

        await asyncio.gather(
            *(
                client.call_tool("observation_add", {"caseId": created["caseId"], "what": f"signal {index}"})
                for index in range(8)
            )
        )
        fetched = await client.call_tool("case_get", {"caseId": created["caseId"], "observationLimit": 100})
        assert len(fetched["case"]["observations"]) == 8
        await client.close()

    async def test_llm_failure_is_reported(self, make_client) -> None:  # type: ignore[no-untyped-def]
        llm = LLMProviderManager([LiteLLMProvider("openai", ModelConfig(model="openai/gpt-4o-mini"))])
        client = make_client(llm)
        await client.initialize()
        created = await client.call_tool("case_create", {"title": "t", "severity": "SEV3"})

        with patch("mcp_rca.llm.provider.litellm") as mock_litellm:
            mock_litellm.acompletion = AsyncMock(side_effect=RuntimeError("quota exceeded"))
            response = await client.request(
                "tools/call", {"name": "hypothesis_propose", "arguments": {"caseId": created["caseId"], "text": "t"}}
            )
        assert response["error"]["code"] == TOOL_EXECUTION_FAILED
        assert "quota exceeded" in response["error"]["data"]
        await client.close()

