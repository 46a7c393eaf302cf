"""Tests for council.predictor and council.prompts."""
import pytest
from unittest.mock import AsyncMock, MagicMock
from helpers import make_wager, mcr, mjson

from council.predictor import Predictor, parse_json_response, validate_accept, validate_prediction
from council.prompts import build_accept_prompt, build_prediction_prompt
from shared.errors import ValidationError
from shared.schemas import Direction, MarketContext, MarketSnapshot, PerformanceStats, PricePoint


def _client(*responses):
    client = MagicMock()
    client.provider = "claude"
    client.default_model = "claude-sonnet-4-20250514"
    client.chat_async = AsyncMock(side_effect=list(responses))
    return client


def _context(points=40, market=None):
    history = [PricePoint(price=95_000 + i, timestamp=1_700_000_000 + 60 * i) for i in range(points)]
    return MarketContext(
        current_price=95_040.0,
        price_history=history,
        performance=PerformanceStats(wins=3, losses=1),
        market=market,
    )


# Parsing

def test_parse_plain_json():
    assert parse_json_response('{"direction": "UP", "confidence": 70}') == {"direction": "UP", "confidence": 70}


def test_parse_json_in_prose_and_think_block():
    text = '<think>maybe {"direction": "DOWN"}</think>Sure! {"direction": "UP", "confidence": 61} hope this helps'
    assert parse_json_response(text)["direction"] == "UP"


@pytest.mark.parametrize("text", ["", "no json here", "{not valid json}", None])
def test_parse_rejects_garbage(text):
    with pytest.raises(ValidationError):
        parse_json_response(text)


# Validation

def test_prediction_defaults():
    result = validate_prediction({"direction": "DOWN", "confidence": 66})
    assert result.direction.value == "DOWN"
    assert result.confidence == 66.0
    assert result.duration_seconds == 3600
    assert result.stake_percent == 3.0


@pytest.mark.parametrize("data", [
    {"direction": "SIDEWAYS", "confidence": 70},
    {"direction": "up", "confidence": 70},
    {"confidence": 70},
    {"direction": "UP", "confidence": 101},
    {"direction": "UP", "confidence": -1},
    {"direction": "UP", "confidence": "80"},
    {"direction": "UP", "confidence": True},
    {"direction": "UP"},
])
def test_prediction_rejects_invalid(data):
    with pytest.raises(ValidationError):
        validate_prediction(data)


def test_accept_validation():
    assert validate_accept({"accept": True, "confidence": 80}).confidence == 80.0
    assert validate_accept({"accept": False}).confidence == 50.0
    with pytest.raises(ValidationError):
        validate_accept({"accept": "yes", "confidence": 80})
    with pytest.raises(ValidationError):
        validate_accept({"accept": True, "confidence": 150})


# Predictor

@pytest.mark.asyncio
async def test_predict_returns_validated_result():
    client = _client(mjson(direction="UP", confidence=82, reasoning="trend", duration_seconds=7200, stake_percent=2))
    predictor = Predictor(client)
    result = await predictor.predict(_context())

    assert result.direction.value == "UP"
    assert result.confidence == 82.0
    assert result.duration_seconds == 7200
    assert result.model == "claude-sonnet-4-20250514"
    assert predictor.provider == "claude"
    kwargs = client.chat_async.call_args.kwargs
    assert kwargs["temperature"] == 0.3
    assert "CURRENT MARKET DATA" in kwargs["messages"][0]["content"]


@pytest.mark.asyncio
async def test_predict_falls_back_to_thinking_text():
    client = _client(mcr(response="", thinking='{"direction": "DOWN", "confidence": 77}'))
    result = await Predictor(client).predict(_context())
    assert result.direction.value == "DOWN"


@pytest.mark.asyncio
async def test_predict_malformed_output_raises():
    client = _client(mcr(response="I think it goes up."))
    with pytest.raises(ValidationError):
        await Predictor(client).predict(_context())


@pytest.mark.asyncio
async def test_predict_transport_error_propagates():
    client = MagicMock()
    client.default_model = "m"
    client.chat_async = AsyncMock(side_effect=RuntimeError("timeout"))
    with pytest.raises(RuntimeError):
        await Predictor(client).predict(_context())


@pytest.mark.asyncio
async def test_evaluate_accept():
    client = _client(mjson(accept=True, confidence=78, reasoning="reversal likely"))
    analysis = await Predictor(client, model="custom").evaluate_accept(make_wager(), _context())
    assert analysis.accept is True
    assert analysis.confidence == 78.0
    assert analysis.model == "custom"
    assert client.chat_async.call_args.kwargs["model"] == "custom"


# Prompts

def test_prediction_prompt_uses_last_thirty_points():
    prompt = build_prediction_prompt(_context(points=40))
    assert "last 30 data points" in prompt
    assert "$95,040.00" in prompt
    assert "Win Rate: 75.0%" in prompt


def test_prediction_prompt_includes_market_snapshot():
    market = MarketSnapshot(price=95_040.0, sma20=94_000.0, sma50=96_000.0, rsi14=72.0, change_24h=1.5)
    prompt = build_prediction_prompt(_context(market=market))
    assert "RSI(14): 72.0" in prompt
    assert "+1.50%" in prompt


def test_accept_prompt_names_both_sides():
    wager = make_wager(id=42, direction=Direction.UP, stake=1_000_000, duration=5400)
    prompt = build_accept_prompt(wager, _context(points=20))
    assert "Challenge ID: 42" in prompt
    assert "Creator bets: UP" in prompt
    assert "you bet: DOWN" in prompt
    assert "100.0000 XPR" in prompt
    assert "last 15 data points" in prompt
