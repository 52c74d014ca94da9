import asyncio
import json

import httpx
import pytest

from feedback_wizard.config import Settings
from feedback_wizard.models.submission import AnalysisError
from feedback_wizard.services.sentiment_service import (
    HttpSentimentService,
    MistralSentimentService,
    build_sentiment_service,
)


def http_service(handler):
    return HttpSentimentService("https://nlp.example/analyze", transport=httpx.MockTransport(handler))


def mistral_service(handler):
    return MistralSentimentService("test-key", transport=httpx.MockTransport(handler))


def chat_reply(content):
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


def test_http_service_sends_feedback_text():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"sentiment": "neutral", "topic": "Pricing", "confidence": 0.55})

    outcome = asyncio.run(http_service(handler).analyze("Other Comments: fine"))

    assert seen["body"] == {"feedbackText": "Other Comments: fine"}
    assert (outcome.sentiment, outcome.topic, outcome.confidence) == ("neutral", "Pricing", 0.55)


@pytest.mark.parametrize("response", [
    httpx.Response(503, text="unavailable"),
    httpx.Response(200, text="not json"),
    httpx.Response(200, json={"sentiment": "ecstatic", "topic": "x", "confidence": 0.5}),
    httpx.Response(200, json={"sentiment": "positive", "topic": "x", "confidence": 1.5}),
    httpx.Response(200, json={"sentiment": "positive"}),
])
def test_http_service_rejects_unusable_responses(response):
    with pytest.raises(AnalysisError):
        asyncio.run(http_service(lambda request: response).analyze("text"))


def test_http_service_timeout():
    def handler(request):
        raise httpx.ConnectTimeout("slow", request=request)

    with pytest.raises(AnalysisError) as exc_info:
        asyncio.run(http_service(handler).analyze("text"))

    assert exc_info.value.message == "Request timed out"


def test_mistral_service_requests_json_mode():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return chat_reply('{"sentiment": "negative", "topic": "Deadlines", "confidence": 0.8}')

    outcome = asyncio.run(mistral_service(handler).analyze("Working Relationship: late again"))

    assert seen["auth"] == "Bearer test-key"
    assert seen["body"]["response_format"] == {"type": "json_object"}
    assert "Working Relationship: late again" in seen["body"]["messages"][-1]["content"]
    assert outcome.sentiment == "negative"
    assert outcome.topic == "Deadlines"


def test_mistral_service_strips_code_fences():
    reply = '```json\n{"sentiment": "Positive", "topic": "Video", "confidence": 0.9}\n```'

    outcome = asyncio.run(mistral_service(lambda request: chat_reply(reply)).analyze("text"))

    assert outcome.sentiment == "positive"


@pytest.mark.parametrize("response", [
    httpx.Response(429, json={"error": {"message": "rate limited"}}),
    chat_reply("I think it is positive"),
    httpx.Response(200, json={"choices": []}),
])
def test_mistral_service_failures(response):
    with pytest.raises(AnalysisError):
        asyncio.run(mistral_service(lambda request: response).analyze("text"))


def test_mistral_service_requires_key():
    with pytest.raises(AnalysisError):
        asyncio.run(MistralSentimentService("").analyze("text"))


def test_backend_is_chosen_from_settings():
    mistral = build_sentiment_service(Settings(sentiment_backend="mistral", mistral_api_key="k", mistral_model="m"))
    http = build_sentiment_service(Settings(sentiment_url="https://nlp.example/analyze"))

    assert isinstance(mistral, MistralSentimentService)
    assert mistral.model == "m"
    assert isinstance(http, HttpSentimentService)
