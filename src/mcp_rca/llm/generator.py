"""Hypothesis generation from an incident synopsis."""

from __future__ import annotations

import json
import logging
from string import Template
from typing import Any

from pydantic import ValidationError

from mcp_rca.llm.provider import LLMMessage, LLMProviderManager
from mcp_rca.protocol.models import WireModel

logger = logging.getLogger(__name__)

MAX_HYPOTHESES = 3

SYSTEM_PROMPT = (
    "You are a site reliability engineer assisting with a root cause analysis. "
    "Answer with JSON only."
)

HYPOTHESIS_PROMPT = Template(
    """\
Propose at most $limit testable root cause hypotheses for the incident below.

Respond with a JSON object of the form:
{"hypotheses": [{"text": "...", "rationale": "...",
  "testPlan": {"method": "...", "expected": "...", "metric": "..."}}]}

Each hypothesis must be falsifiable, and its test plan must name the signal
that would confirm or refute it.

Case: $case_id
Summary: $summary
Rationale: $rationale
Context: $context
Logs:
$logs
"""
)


class GeneratedTestPlan(WireModel):
    method: str
    expected: str
    metric: str | None = None


class GeneratedHypothesis(WireModel):
    text: str
    rationale: str
    test_plan: GeneratedTestPlan


class HypothesisGenerator:
    """Turns a case synopsis into candidate hypotheses, each with a test plan.

    Without an LLM manager (or with one that has no providers) a single
    deterministic placeholder is returned, so the tool stays usable offline.
    """

    def __init__(self, manager: LLMProviderManager | None = None, *, limit: int = MAX_HYPOTHESES) -> None:
        self._manager = manager
        self._limit = limit

    @property
    def enabled(self) -> bool:
        return self._manager is not None and bool(self._manager.available_providers())

    def render_prompt(
        self,
        *,
        case_id: str,
        text: str,
        rationale: str | None = None,
        context: str | None = None,
        logs: list[str] | None = None,
    ) -> str:
        return HYPOTHESIS_PROMPT.substitute(
            limit=self._limit,
            case_id=case_id,
            summary=text,
            rationale=rationale or "(none)",
            context=context or "(none)",
            logs="\n".join(f"- {line}" for line in logs) if logs else "(none)",
        )

    async def generate(
        self,
        *,
        case_id: str,
        text: str,
        rationale: str | None = None,
        context: str | None = None,
        logs: list[str] | None = None,
    ) -> list[GeneratedHypothesis]:
        """Return up to ``limit`` hypotheses.

        Raises:
            LLMError: If a configured provider fails.
        """
        if not self.enabled:
            return [
                GeneratedHypothesis(
                    text=f"Placeholder hypothesis for case {case_id}",
                    rationale="LLM integration not yet configured.",
                    test_plan=GeneratedTestPlan(
                        method="Review telemetry",
                        expected="Identify signals contradicting the hypothesis",
                    ),
                )
            ]

        assert self._manager is not None
        prompt = self.render_prompt(
            case_id=case_id, text=text, rationale=rationale, context=context, logs=logs
        )
        response = await self._manager.generate(
            [
                LLMMessage(role="system", content=SYSTEM_PROMPT),
                LLMMessage(role="user", content=prompt),
            ]
        )
        return self.parse(response.content)[: self._limit]

    def parse(self, raw: str) -> list[GeneratedHypothesis]:
        """Parse a JSON list or ``{"hypotheses": [...]}``; otherwise wrap the raw text."""
        items = _extract_items(raw)
        hypotheses: list[GeneratedHypothesis] = []
        for item in items:
            try:
                hypotheses.append(GeneratedHypothesis.model_validate(item))
            except ValidationError:
                logger.debug("Skipping malformed generated hypothesis: %r", item)
        if hypotheses:
            return hypotheses

        logger.info("Unable to parse structured LLM output, returning raw text")
        return [
            GeneratedHypothesis(
                text=raw.strip(),
                rationale="Unable to parse structured LLM output, returning raw text.",
                test_plan=GeneratedTestPlan(
                    method="Operator review",
                    expected="Convert narrative into actionable verification steps.",
                ),
            )
        ]


def _extract_items(raw: str) -> list[Any]:
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return []
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict) and isinstance(parsed.get("hypotheses"), list):
        return parsed["hypotheses"]
    return []

