"""Sentiment and topic classification of feedback text"""
import json
import re
import httpx
from typing import Any, Optional
from pydantic import ValidationError
import logging

from feedback_wizard.config import Settings
from feedback_wizard.models.submission import AnalysisError, AnalysisOutcome

logger = logging.getLogger(__name__)

MISTRAL_CHAT_URL = "https://api.mistral.ai/v1/chat/completions"


class SentimentAnalysisService:
    async def analyze(self, text: str) -> AnalysisOutcome:
        """
        Classify feedback text.

        Raises:
            AnalysisError: On transport failure or an unusable response
        """
        raise NotImplementedError


def parse_analysis(payload: Any) -> AnalysisOutcome:
    """Validate a classifier response body"""
    try:
        return AnalysisOutcome.model_validate(payload)
    except ValidationError as e:
        logger.error(f"Invalid analysis payload: {e}")
        raise AnalysisError("The analysis service returned an invalid result")


class HttpSentimentService(SentimentAnalysisService):
    """Classifier exposed as `POST {feedbackText}` -> `{sentiment, topic, confidence}`"""

    def __init__(self, url: str, timeout: float = 60.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def analyze(self, text: str) -> AnalysisOutcome:
        if not self.url:
            raise AnalysisError("Sentiment analysis URL is not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json={"feedbackText": text})
        except httpx.TimeoutException:
            logger.warning(f"Sentiment analysis timed out after {self.timeout}s")
            raise AnalysisError("Request timed out")
        except httpx.HTTPError as e:
            logger.error(f"Sentiment analysis request failed: {e}")
            raise AnalysisError(str(e) or "Could not reach the analysis service")

        if response.status_code != 200:
            logger.error(f"Sentiment analysis error: {response.status_code} - {response.text}")
            raise AnalysisError(f"Analysis service error: {response.status_code}")

        try:
            payload = response.json()
        except ValueError:
            raise AnalysisError("The analysis service returned a non-JSON response")
        return parse_analysis(payload)


class MistralSentimentService(SentimentAnalysisService):
    """Classifier backed by the Mistral chat-completions API in JSON mode"""

    SYSTEM_MESSAGE = (
        "You are a JSON API that analyzes customer feedback. "
        "You MUST respond with ONLY a valid JSON object, no markdown, no explanation, no extra text."
    )

    def __init__(
        self,
        api_key: str,
        model: str = "mistral-small-latest",
        timeout: float = 60.0,
        url: str = MISTRAL_CHAT_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.url = url
        self._transport = transport

    def _build_messages(self, text: str):
        user_prompt = f"""Analyze this client feedback and return a JSON object with these exact fields:

- "sentiment": One of "positive", "neutral", or "negative".
- "topic": A short label for the main topic of the feedback (e.g. "Delivery speed").
- "confidence": A number between 0 and 1 expressing how confident you are in the sentiment.

FEEDBACK:
{text}"""
        return [
            {"role": "system", "content": self.SYSTEM_MESSAGE},
            {"role": "user", "content": user_prompt}
        ]

    async def analyze(self, text: str) -> AnalysisOutcome:
        if not self.api_key:
            raise AnalysisError("MISTRAL_API_KEY not configured")

        payload = {
            "model": self.model,
            "messages": self._build_messages(text),
            "temperature": 0.3,
            "max_tokens": 300,
            "response_format": {"type": "json_object"}
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.url,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json"
                    },
                    json=payload
                )
        except httpx.TimeoutException:
            logger.warning(f"Mistral request timeout after {self.timeout}s")
            raise AnalysisError("Request timed out")
        except httpx.HTTPError as e:
            logger.error(f"Mistral request failed: {e}")
            raise AnalysisError(str(e) or "Could not reach the analysis service")

        if response.status_code != 200:
            logger.error(f"Mistral API error: {response.status_code} - {response.text}")
            raise AnalysisError(f"Mistral API error: {response.status_code}")

        try:
            raw = response.json()["choices"][0]["message"]["content"].strip()
            # Strip markdown code fences if the model wraps the JSON
            if raw.startswith("```"):
                raw = re.sub(r"^```(?:json)?\s*", "", raw)
                raw = re.sub(r"\s*```$", "", raw)
            result = json.loads(raw)
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            logger.error(f"Could not read Mistral analysis response: {e}")
            raise AnalysisError("The analysis service returned an unreadable response")

        return parse_analysis(result)


def build_sentiment_service(settings: Settings) -> SentimentAnalysisService:
    if settings.sentiment_backend == "mistral":
        return MistralSentimentService(
            settings.mistral_api_key,
            model=settings.mistral_model,
            timeout=settings.analysis_timeout
        )
    return HttpSentimentService(settings.sentiment_url, timeout=settings.analysis_timeout)
