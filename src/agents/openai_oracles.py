"""OpenAI-backed oracles.

Every call uses JSON mode (except the recommendation text) and a hard
timeout. Any API error, empty reply or unparsable JSON raises
``OracleUnavailable``.
"""

import json
import re
from typing import Any, Optional

import structlog
from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from src.agents.oracles import OracleSet
from src.errors import OracleUnavailable
from src.state.models import Candidate, Intent, ListingFacts, SearchRequest
from src.tools.scoring import CandidateScore

logger = structlog.get_logger()

INTENT_PROMPT = """You turn a Romanian shopping query into search constraints.
Return ONLY a JSON object:
{
  "category": "tv|laptop|phone|audio|accessory|other",
  "budget_lei": number|null,
  "size_min": number|null,
  "size_max": number|null,
  "condition_ok": ["new","resealed","used"],
  "must_have": ["..."],
  "must_exclude": ["..."],
  "search_query": "string",
  "expanded_queries": ["...", "...", "..."]
}

Rules:
- If the query implies a TV and OLED, set category="tv" and include "oled" in must_have.
- If the user wants e.g. 55-65 inch, set size_min/size_max.
- must_exclude should include broken/non-working phrases (Romanian and English).
- search_query should be a compact query suitable for Romanian price search."""

FACTS_PROMPT = """You extract facts from marketplace listings.
Return ONLY a JSON object:
{"items": [{"link": "...", "condition": "new|used|resealed|unknown", "negotiable": true|false|"unknown", "defects": ["..."], "sizeInch": number|null, "notes": "..."}]}
Use exactly the links you were given. Do not invent prices."""

SCORING_PROMPT = """You compare offers for a Romanian buyer and score them 0-100.
Return ONLY a JSON object:
{"items": [{"link": "...", "overallScore": number, "valueScore": number, "differences": ["..."], "pros": ["..."], "cons": ["..."], "modelCode": "string|null", "productKey": "string|null", "canonical": "string|null", "panelType": "oled|qled|lcd|unknown", "condition": "new|used|resealed|unknown"}]}
Use exactly the links you were given."""

RECOMMENDATION_PROMPT = """You are a Romanian "best value for money" assistant.
From the JSON you get, produce:
- Best pick under budget
- Best overall value (may be slightly over budget if justified)
- Best used/resealed deal (if present)
For each: rationale, key differences vs request, risks/defects, negotiable yes/no/unknown.
Then a short buying checklist (questions to ask the seller; what photos/tests to request).
Keep it compact but specific."""


def _strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = re.sub(r"^```(?:json)?\n?", "", text)
        text = re.sub(r"\n?```$", "", text)
    return text


def _listing_payload(candidate: Candidate) -> dict:
    return {
        "title": candidate.title,
        "link": candidate.link,
        "priceRON": candidate.price_ron,
        "snippet": candidate.snippet,
        "rawText": candidate.raw_text,
        "source": candidate.source.value,
    }


class OpenAIOracle:
    """Shared chat-completions plumbing."""

    name = "oracle"

    def __init__(self, client: AsyncOpenAI, model: str = "gpt-4o-mini", timeout: float = 12.0):
        self._client = client
        self._model = model
        self._timeout = timeout

    async def _complete(self, system: str, user: str, temperature: float, json_mode: bool) -> str:
        kwargs: dict[str, Any] = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                temperature=temperature,
                timeout=self._timeout,
                **kwargs,
            )
        except OpenAIError as e:
            raise OracleUnavailable(self.name, f"{e.__class__.__name__}: {e}") from e

        if not response.choices:
            raise OracleUnavailable(self.name, "empty_response")
        content = response.choices[0].message.content
        if not content or not content.strip():
            raise OracleUnavailable(self.name, "empty_response")
        return content

    async def _complete_json(self, system: str, user: str) -> dict:
        text = await self._complete(system, user, temperature=0, json_mode=True)
        try:
            data = json.loads(_strip_fences(text))
        except json.JSONDecodeError as e:
            raise OracleUnavailable(self.name, "invalid_json") from e
        if not isinstance(data, dict):
            raise OracleUnavailable(self.name, "invalid_json")
        return data

    def _items(self, data: dict) -> list[dict]:
        items = data.get("items")
        if not isinstance(items, list):
            raise OracleUnavailable(self.name, "missing_items")
        return [item for item in items if isinstance(item, dict)]


class OpenAIIntentOracle(OpenAIOracle):
    name = "intent"

    async def parse(self, request: SearchRequest) -> Intent:
        user = (
            f"User query: {request.q}\n"
            f"Constraints: budget={request.budget}, sizeMin={request.size_min}, "
            f"sizeMax={request.size_max}, condition={request.condition}"
        )
        data = await self._complete_json(INTENT_PROMPT, user)
        if not str(data.get("search_query") or data.get("searchQuery") or "").strip():
            data["search_query"] = request.q
        try:
            return Intent.model_validate(data)
        except ValidationError as e:
            raise OracleUnavailable(self.name, "invalid_intent") from e


class OpenAIFactOracle(OpenAIOracle):
    name = "facts"

    async def extract(self, candidates: list[Candidate], intent: Intent) -> list[ListingFacts]:
        if not candidates:
            return []
        user = (
            f"User intent:\n{json.dumps(intent.to_wire(), ensure_ascii=False)}\n\n"
            f"Items:\n{json.dumps([_listing_payload(c) for c in candidates], ensure_ascii=False)}"
        )
        data = await self._complete_json(FACTS_PROMPT, user)

        facts = []
        for item in self._items(data):
            try:
                facts.append(ListingFacts.model_validate(item))
            except ValidationError:
                logger.debug("Invalid fact record skipped", link=str(item.get("link"))[:100])
        return facts


class OpenAIScoringOracle(OpenAIOracle):
    name = "scoring"

    async def score(self, candidates: list[Candidate], intent: Intent) -> list[CandidateScore]:
        if not candidates:
            return []
        payload = [
            {
                **_listing_payload(c),
                "condition": c.condition.value,
                "negotiable": c.negotiable,
                "defects": c.defects,
                "sizeInch": c.size_inch,
            }
            for c in candidates
        ]
        user = (
            f"User intent:\n{json.dumps(intent.to_wire(), ensure_ascii=False)}\n\n"
            f"Candidates:\n{json.dumps(payload, ensure_ascii=False)}"
        )
        data = await self._complete_json(SCORING_PROMPT, user)

        scores = []
        for item in self._items(data):
            try:
                scores.append(CandidateScore.model_validate(item))
            except ValidationError:
                logger.debug("Invalid score record skipped", link=str(item.get("link"))[:100])
        if not scores:
            raise OracleUnavailable(self.name, "no_scored_items")
        return scores


class OpenAITextOracle(OpenAIOracle):
    name = "recommendation"

    async def recommend(self, payload: dict[str, Any]) -> Optional[str]:
        user = f"JSON:\n{json.dumps(payload, ensure_ascii=False, default=str)}"
        text = await self._complete(RECOMMENDATION_PROMPT, user, temperature=0.2, json_mode=False)
        return text.strip()


def create_openai_oracles(api_key: str, model: str, timeout: float) -> OracleSet:
    client = AsyncOpenAI(api_key=api_key)
    return OracleSet(
        intent=OpenAIIntentOracle(client, model, timeout),
        facts=OpenAIFactOracle(client, model, timeout),
        scoring=OpenAIScoringOracle(client, model, timeout),
        text=OpenAITextOracle(client, model, timeout),
        available=True,
    )
