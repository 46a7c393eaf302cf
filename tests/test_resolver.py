"""Tests for execution.resolver."""
import pytest
from unittest.mock import AsyncMock, MagicMock
from helpers import ACCOUNT, make_wager

from execution.performance import PerformanceLedger
from execution.resolver import Resolver, resolver_fee_units, summarize
from shared.errors import OracleMissingAggregate, TransportError
from shared.schemas import OraclePrice, ResolveResult, TransactReceipt, WagerStatus

NOW = 1_700_010_000


@pytest.fixture(autouse=True)
def fixed_clock(monkeypatch):
    monkeypatch.setattr("execution.resolver.now_seconds", lambda: NOW)


@pytest.fixture
def sleeps(monkeypatch):
    calls = []

    async def fake_sleep(seconds):
        calls.append(seconds)

    monkeypatch.setattr("execution.resolver.asyncio.sleep", fake_sleep)
    return calls


def _ended(id=1, stake=1_000_000, **kw):
    return make_wager(id=id, stake=stake, status=WagerStatus.ACTIVE, opponent="bob",
                      started_at=NOW - 3600, duration=3600, start_price=9_500_000_000_000, **kw)


def _resolver(db, resolvable=(), expired=(), pacing=1.0):
    actions = MagicMock()
    actions.resolve_wager = AsyncMock(return_value=TransactReceipt(transaction_id="tx-resolve"))
    actions.cancel_wager = AsyncMock(return_value=TransactReceipt(transaction_id="tx-cancel"))
    actions.expire_wager = AsyncMock(return_value=TransactReceipt(transaction_id="tx-expire"))
    book = MagicMock()
    book.account = ACCOUNT
    book.get_resolvable = AsyncMock(return_value=list(resolvable))
    book.get_expired = AsyncMock(return_value=list(expired))
    oracle = MagicMock()
    oracle.get_price = AsyncMock(return_value=OraclePrice(price=95_300.5, timestamp=NOW, feed_id=4))
    oracle.to_fixed = MagicMock(side_effect=lambda p: round(p * 100_000_000))
    resolver = Resolver(actions, book, oracle, db, PerformanceLedger(db), pacing_seconds=pacing)
    return resolver, actions, oracle


def test_resolver_fee_is_two_percent_of_pot():
    assert resolver_fee_units(1_000_000) == 40_000
    assert resolver_fee_units(0) == 0


def test_summarize():
    results = [
        ResolveResult(challenge_id=1, success=True),
        ResolveResult(challenge_id=2, success=False, error="boom"),
        ResolveResult(challenge_id=3, success=True),
    ]
    assert summarize(results) == {"succeeded": 2, "failed": 1}


@pytest.mark.asyncio
async def test_resolve_one_success(db):
    resolver, actions, oracle = _resolver(db)
    result = await resolver.resolve_one(_ended(id=7))

    assert result.success is True
    assert result.tx_id == "tx-resolve"
    assert result.resolver_reward == pytest.approx(4.0)
    oracle.get_price.assert_awaited_once_with(4)
    actions.resolve_wager.assert_awaited_once_with(7, 9_530_050_000_000)

    total = await resolver.performance.total_performance()
    assert total.resolver_earnings == pytest.approx(4.0)
    decisions = await db.get_recent_decisions()
    assert decisions[0]["action"] == "resolve"
    assert decisions[0]["challenge_id"] == 7


@pytest.mark.asyncio
async def test_resolve_one_rejects_not_yet_ended(db):
    resolver, actions, _ = _resolver(db)
    wager = make_wager(status=WagerStatus.ACTIVE, opponent="bob",
                       started_at=NOW - 100, duration=3600, start_price=1)
    result = await resolver.resolve_one(wager)
    assert result.success is False
    assert result.error_type == "StaleStateError"
    actions.resolve_wager.assert_not_awaited()


@pytest.mark.asyncio
async def test_resolve_one_rejects_inactive(db):
    resolver, actions, _ = _resolver(db)
    result = await resolver.resolve_one(make_wager(status=WagerStatus.RESOLVED))
    assert result.success is False
    assert result.error_type == "StaleStateError"
    actions.resolve_wager.assert_not_awaited()


@pytest.mark.asyncio
async def test_resolve_all_continues_after_failure(db, sleeps):
    wagers = [_ended(id=1), _ended(id=2), _ended(id=3)]
    resolver, actions, _ = _resolver(db, resolvable=wagers)
    actions.resolve_wager = AsyncMock(side_effect=[
        TransactReceipt(transaction_id="a"),
        TransportError("all endpoints down"),
        TransactReceipt(transaction_id="c"),
    ])

    results = await resolver.resolve_all()

    assert [r.success for r in results] == [True, False, True]
    assert results[1].error_type == "TransportError"
    assert actions.resolve_wager.await_count == 3
    total = await resolver.performance.total_performance()
    assert total.resolver_earnings == pytest.approx(8.0)


@pytest.mark.asyncio
async def test_pacing_sleeps_between_items_only(db, sleeps):
    resolver, _, _ = _resolver(db, resolvable=[_ended(id=1), _ended(id=2), _ended(id=3)], pacing=1.5)
    await resolver.resolve_all()
    assert sleeps == [1.5, 1.5]


@pytest.mark.asyncio
async def test_single_item_does_not_sleep(db, sleeps):
    resolver, _, _ = _resolver(db, resolvable=[_ended(id=1)])
    await resolver.resolve_all()
    assert sleeps == []


@pytest.mark.asyncio
async def test_empty_batch(db, sleeps):
    resolver, actions, _ = _resolver(db)
    assert await resolver.resolve_all() == []
    assert await resolver.expire_all() == []
    actions.resolve_wager.assert_not_awaited()


@pytest.mark.asyncio
async def test_expire_all_cancels_ours_and_expires_others(db, sleeps):
    ours = make_wager(id=1, creator=ACCOUNT, expires_at=NOW - 10)
    theirs = make_wager(id=2, creator="alice", expires_at=NOW - 10)
    resolver, actions, _ = _resolver(db, expired=[ours, theirs])

    results = await resolver.expire_all()

    assert [r.tx_id for r in results] == ["tx-cancel", "tx-expire"]
    actions.cancel_wager.assert_awaited_once_with(1)
    actions.expire_wager.assert_awaited_once_with(2)


@pytest.mark.asyncio
async def test_expire_one_rejects_unexpired(db):
    resolver, actions, _ = _resolver(db)
    result = await resolver.expire_one(make_wager(expires_at=NOW + 600))
    assert result.success is False
    assert result.error_type == "StaleStateError"
    actions.expire_wager.assert_not_awaited()


@pytest.mark.asyncio
async def test_programming_errors_propagate(db, sleeps):
    resolver, actions, _ = _resolver(db)
    actions.resolve_wager = AsyncMock(side_effect=AttributeError("no such field"))
    with pytest.raises(AttributeError):
        await resolver.resolve_one(_ended(id=1))

    actions.expire_wager = AsyncMock(side_effect=TypeError("bad call"))
    with pytest.raises(TypeError):
        await resolver.expire_one(make_wager(id=2, expires_at=NOW - 10))


@pytest.mark.asyncio
async def test_oracle_failure_is_a_per_item_failure(db):
    resolver, actions, oracle = _resolver(db)
    oracle.get_price = AsyncMock(side_effect=OracleMissingAggregate("no aggregate", 4))
    result = await resolver.resolve_one(_ended(id=3))
    assert result.success is False
    assert result.error_type == "OracleMissingAggregate"
    actions.resolve_wager.assert_not_awaited()
