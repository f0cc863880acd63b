"""Summarization gateway — hands README text to the LLM and parses its answer."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import replace
from typing import Any

from summarizer_gateway.domain.entities import ReadmeResult, RepoMetadata, SummaryResult
from summarizer_gateway.domain.exceptions import SummarizationFailed
from summarizer_gateway.domain.ports.llm_gateway import LlmGateway
from summarizer_gateway.services.readme_text import prepare_readme

logger = logging.getLogger(__name__)

# ── Prompt templates ────────────────────────────────────────────────────────

SYSTEM_PROMPT = """\
You are a senior engineer.  Given the README of a GitHub repository (and, \
when available, a few facts from the GitHub API), summarise the project \
precisely using only the provided content.

Return **only** valid JSON with exactly these three keys:

{
  "summary": "<3-5 sentence description of what the project does and for whom>",
  "cool_facts": ["<short notable fact>", ...],
  "tools_used": ["<language>", "<framework>", "<library or service>", ...]
}

Guidelines:
- At most 5 cool_facts and 10 tools_used.
- Only mention tools you see evidence of in the README.
- Do NOT invent information that is not supported by the provided content.
"""

_MAX_FACTS = 5
_MAX_TOOLS = 10
_MIN_TOOLS = 3
_MAX_LANGUAGE_TOOLS = 5


class SummarizationGateway:
    """Call contract around the external summarization model.

    Parameters
    ----------
    llm:
        Adapter that can send prompts to an LLM.
    max_readme_tokens:
        README text beyond this many tokens is cut before the call.
    """

    def __init__(self, llm: LlmGateway, max_readme_tokens: int = 12_000) -> None:
        self._llm = llm
        self._max_tokens = max_readme_tokens

    @property
    def model_name(self) -> str:
        return self._llm.model_name

    async def summarize(
        self, readme: ReadmeResult, metadata: RepoMetadata | None = None
    ) -> SummaryResult:
        prompt = self._build_prompt(readme, metadata)
        raw = await self._llm.complete(SYSTEM_PROMPT, prompt)
        return parse_summary(raw)

    def _build_prompt(self, readme: ReadmeResult, metadata: RepoMetadata | None) -> str:
        sections = [f"## README ({readme.source_url})\n\n{prepare_readme(readme.text, self._max_tokens)}"]
        if metadata is not None:
            facts = [
                f"- Stars: {metadata.stars}",
                f"- Latest version: {metadata.latest_version}",
                f"- License: {metadata.license_name}",
            ]
            if metadata.description:
                facts.append(f"- Description: {metadata.description}")
            sections.append("## Repository facts\n\n" + "\n".join(facts))
        return "\n\n---\n\n".join(sections)


def parse_summary(raw: str) -> SummaryResult:
    """Parse the LLM JSON output into a SummaryResult.

    Tolerates markdown code fences around the JSON.
    """
    text = raw.strip()

    if text.startswith("```"):
        first_nl = text.index("\n") if "\n" in text else 3
        text = text[first_nl + 1 :]
        if text.endswith("```"):
            text = text[:-3]
        text = text.strip()

    try:
        data: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SummarizationFailed(f"Summarizer returned invalid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise SummarizationFailed("Summarizer returned JSON that is not an object.")

    summary = data.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        raise SummarizationFailed("Summarizer response is missing the 'summary' field.")

    return SummaryResult(
        summary=summary.strip(),
        cool_facts=_string_list(data.get("cool_facts"))[:_MAX_FACTS],
        tools_used=_string_list(data.get("tools_used"))[:_MAX_TOOLS],
    )


def pad_tools_with_languages(result: SummaryResult, languages: Sequence[str]) -> SummaryResult:
    """Top up a short ``tools_used`` list with the repository's languages.

    Only applies when fewer than three tools were extracted; extracted tools
    keep their order and come first.
    """
    if len(result.tools_used) >= _MIN_TOOLS or not languages:
        return result

    tools = list(result.tools_used)
    seen = {tool.lower() for tool in tools}
    for language in languages[:_MAX_LANGUAGE_TOOLS]:
        name = language.lower()
        if name not in seen:
            tools.append(name)
            seen.add(name)
    return replace(result, tools_used=tools[:_MAX_TOOLS])


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if item and str(item).strip()]
