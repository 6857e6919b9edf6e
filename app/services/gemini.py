import json
import logging
import re

import httpx
from pydantic import ValidationError

from app.exceptions.custom import GeminiError, RateLimitError
from app.schemas.pricing import PriceRecommendation

logger = logging.getLogger(__name__)

API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_MODEL = "gemini-2.5-flash"

_PROMPT_TEMPLATE = """You are a hotel pricing assistant. Analyze the data below and provide ONLY a JSON response.

INPUT DATA:
{payload}

INSTRUCTIONS:
- Base your recommendation on the calculated_range (which already includes demand adjustments)
- If is_peak_month is true or event_active is true, the calculated_range already reflects this
- Use hotel rating and reviews to adjust confidence
- Consider user_budget if provided
- Fairness label rules:
  * "cheap": recommended < city avg_price * 0.8
  * "fair": recommended between city avg_price * 0.8 and * 1.3
  * "expensive": recommended > city avg_price * 1.3
- Confidence should reflect data quality (higher if more reviews, peak context is clear)
- Explanation MUST mention:
  * Peak season status if applicable
  * Active events if any
  * Whether price is above/below city average

RETURN ONLY THIS EXACT JSON (no markdown, no extra text):
{{
  "recommended_min_price": <number in INR>,
  "recommended_max_price": <number in INR>,
  "fairness_label": "cheap" | "fair" | "expensive",
  "confidence_score": <0.0 to 1.0>,
  "explanation": "<1-2 sentences>"
}}"""

# First "{" to last "}" so nested objects stay intact
_JSON_RE = re.compile(r"\{.*\}", re.DOTALL)
_FENCE_RE = re.compile(r"```(?:json)?\s*")


class GeminiService:
    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        model: str = DEFAULT_MODEL,
        timeout: float = 20.0,
    ):
        self._client = client
        self._api_key = api_key
        self._url = f"{API_BASE}/{model}:generateContent"
        self._timeout = timeout

    async def get_price_insight(self, payload: dict) -> PriceRecommendation | None:
        """Ask Gemini for a price recommendation.

        Returns None when the model answered but the answer is not a valid
        recommendation. Raises RateLimitError on 429 and GeminiError on any
        other transport or HTTP failure.
        """
        prompt = _PROMPT_TEMPLATE.format(payload=json.dumps(payload, indent=2))
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": 0.7,
                "maxOutputTokens": 500,
                "responseMimeType": "application/json",
            },
        }

        try:
            resp = await self._client.post(
                self._url,
                json=body,
                headers={
                    "x-goog-api-key": self._api_key,
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            raise GeminiError(f"Gemini request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise GeminiError(f"Gemini request failed: {exc}") from exc

        if resp.status_code == 429:
            logger.warning("Gemini rate limited: %s", resp.text[:200])
            raise RateLimitError("Gemini")
        if resp.status_code >= 400:
            logger.error(
                "Gemini API error: status=%s body=%s", resp.status_code, resp.text
            )
            raise GeminiError(
                f"Gemini API returned {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError:
            logger.warning("Gemini returned a non-JSON body")
            return None
        return self._parse_response(data)

    def _parse_response(self, data: dict) -> PriceRecommendation | None:
        try:
            content = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            logger.warning("Unexpected Gemini response structure")
            return None

        parsed = self._try_parse_json(content)
        if parsed is None:
            logger.warning("Could not parse JSON from Gemini response: %s", content[:200])
            return None

        try:
            return PriceRecommendation.model_validate(parsed)
        except ValidationError as exc:
            logger.warning("Gemini recommendation failed validation: %s", exc)
            return None

    @staticmethod
    def _try_parse_json(text: str) -> dict | None:
        """Try to extract a JSON object from text."""
        # First try direct parse
        try:
            obj = json.loads(text.strip())
            if isinstance(obj, dict):
                return obj
        except (json.JSONDecodeError, ValueError):
            pass

        # Fallback: find JSON object in the text, ignoring markdown fences
        match = _JSON_RE.search(_FENCE_RE.sub("", text))
        if match:
            try:
                obj = json.loads(match.group(0))
            except (json.JSONDecodeError, ValueError):
                return None
            if isinstance(obj, dict):
                return obj

        return None
