"""Test helpers shared across test files."""
import json

from shared.llm_client import _merge_fields
from shared.schemas import Direction, Wager, WagerStatus

ACCOUNT = "agentbot"


def mcr(response="", thinking="", model="test-model"):
    """Build a mock LLMClient.chat() return dict with merged field.

    Short name (mock chat response) for compact test code.
    """
    return {
        "response": response,
        "thinking": thinking,
        "merged": _merge_fields(response, thinking),
        "model": model,
    }


def mjson(**fields):
    """mcr() whose response is a JSON object."""
    return mcr(response=json.dumps(fields))


def make_wager(
    id=1,
    creator="alice",
    opponent=None,
    stake=1_000_000,
    direction=Direction.UP,
    duration=3600,
    status=WagerStatus.OPEN,
    created_at=1_700_000_000,
    started_at=None,
    expires_at=None,
    start_price=None,
    winner=None,
    oracle_feed=4,
):
    return Wager(
        id=id,
        creator=creator,
        opponent=opponent,
        stake=stake,
        direction=direction,
        oracle_feed=oracle_feed,
        duration=duration,
        start_price=start_price,
        created_at=created_at,
        started_at=started_at,
        expires_at=expires_at,
        status=status,
        winner=winner,
    )


def ledger_row(
    id=1,
    creator="alice",
    opponent="",
    amount="1000000",
    direction=1,
    duration=3600,
    status=0,
    created_at=1_700_000_000,
    started_at=0,
    expires_at=0,
    start_price="0",
    end_price="0",
    winner="",
    oracle_index=4,
):
    """A `challenges` table row as the chain API returns it."""
    return {
        "id": id,
        "creator": creator,
        "opponent": opponent,
        "amount": amount,
        "direction": direction,
        "oracle_index": oracle_index,
        "duration": duration,
        "start_price": start_price,
        "end_price": end_price,
        "created_at": created_at,
        "started_at": started_at,
        "expires_at": expires_at,
        "status": status,
        "winner": winner,
    }
