"""Prediction council: direction calls and accept judgments from an LLM."""
import json
import logging
import re
import time
from typing import Any

from council.prompts import build_accept_prompt, build_prediction_prompt
from shared.errors import ValidationError
from shared.llm_client import LLMClient
from shared.schemas import AcceptAnalysis, MarketContext, PredictedDirection, PredictionResult, Wager

logger = logging.getLogger(__name__)

JSON_PATTERN = re.compile(r"\{.*\}", re.DOTALL)
THINK_PATTERN = re.compile(r"<think>.*?</think>", re.DOTALL)

DEFAULT_DURATION = 3600
DEFAULT_STAKE_PERCENT = 3.0
DEFAULT_ACCEPT_CONFIDENCE = 50.0


def parse_json_response(text: str) -> dict:
    """Extract the first-to-last brace span of a response and decode it."""
    match = JSON_PATTERN.search(THINK_PATTERN.sub("", text or ""))
    if not match:
        raise ValidationError("No JSON object found in response")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ValidationError(f"Failed to parse JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError("Response JSON is not an object")
    return data


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _confidence(value: Any) -> float:
    if not _is_number(value) or not 0 <= value <= 100:
        raise ValidationError(f"Invalid confidence in AI response: {value!r}")
    return float(value)


def validate_prediction(data: dict) -> PredictionResult:
    direction = data.get("direction")
    if direction not in {d.value for d in PredictedDirection}:
        raise ValidationError(f"Invalid direction in AI response: {direction!r}")
    duration = data.get("duration_seconds")
    stake = data.get("stake_percent")
    return PredictionResult(
        direction=PredictedDirection(direction),
        confidence=_confidence(data.get("confidence")),
        reasoning=str(data.get("reasoning") or ""),
        duration_seconds=int(duration) if _is_number(duration) and duration > 0 else DEFAULT_DURATION,
        stake_percent=float(stake) if _is_number(stake) and stake > 0 else DEFAULT_STAKE_PERCENT,
    )


def validate_accept(data: dict) -> AcceptAnalysis:
    accept = data.get("accept")
    if not isinstance(accept, bool):
        raise ValidationError(f"Invalid accept value in AI response: {accept!r}")
    confidence = data.get("confidence")
    return AcceptAnalysis(
        accept=accept,
        confidence=DEFAULT_ACCEPT_CONFIDENCE if confidence is None else _confidence(confidence),
        reasoning=str(data.get("reasoning") or ""),
    )


class Predictor:
    """Asks the LLM for a creation call or an accept judgment.

    Transport failures and malformed output both raise; callers decide
    how to treat an unavailable prediction.
    """

    def __init__(self, client: LLMClient, model: str | None = None, temperature: float = 0.3):
        self.client = client
        self.model = model or client.default_model
        self.temperature = temperature

    @property
    def provider(self) -> str:
        return self.client.provider

    async def _ask(self, prompt: str) -> tuple[dict, float]:
        start = time.monotonic()
        result = await self.client.chat_async(
            messages=[{"role": "user", "content": prompt}],
            model=self.model,
            temperature=self.temperature,
        )
        latency = (time.monotonic() - start) * 1000
        # prefer the clean response field, fall back to the merged text
        text = result.get("response", "").strip()
        if not JSON_PATTERN.search(text):
            text = result["merged"]
        return parse_json_response(text), latency

    async def predict(self, context: MarketContext) -> PredictionResult:
        data, latency = await self._ask(build_prediction_prompt(context))
        prediction = validate_prediction(data)
        prediction.model = self.model
        prediction.latency_ms = latency
        logger.info("Prediction", extra={
            "direction": prediction.direction.value,
            "confidence": prediction.confidence,
            "latency_ms": round(latency),
        })
        return prediction

    async def evaluate_accept(self, wager: Wager, context: MarketContext) -> AcceptAnalysis:
        data, latency = await self._ask(build_accept_prompt(wager, context))
        analysis = validate_accept(data)
        analysis.model = self.model
        analysis.latency_ms = latency
        logger.info("Accept evaluation", extra={
            "wager_id": wager.id,
            "accept": analysis.accept,
            "confidence": analysis.confidence,
            "latency_ms": round(latency),
        })
        return analysis
