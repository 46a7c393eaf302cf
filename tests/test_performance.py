"""Tests for execution.performance and the performance tables."""
import pytest

from execution.performance import PerformanceLedger

DAY = "2026-01-10"
NEXT_DAY = "2026-01-11"


@pytest.fixture
def ledger(db):
    return PerformanceLedger(db)


@pytest.mark.asyncio
async def test_three_wins_one_loss(ledger):
    for amount in (10.0, 5.0, 5.0):
        await ledger.record_win(amount, date=DAY)
    await ledger.record_loss(8.0, date=DAY)

    daily = await ledger.daily_performance(DAY)
    assert daily.wins == 3
    assert daily.losses == 1
    assert daily.win_rate == pytest.approx(75.0)
    assert daily.total_won == pytest.approx(20.0)
    assert daily.total_lost == pytest.approx(8.0)
    assert daily.current_streak == -1
    assert daily.best_win_streak == 3
    assert daily.worst_loss_streak == -1


@pytest.mark.asyncio
async def test_loss_before_final_win(ledger):
    await ledger.record_win(10.0, date=DAY)
    await ledger.record_win(5.0, date=DAY)
    await ledger.record_loss(8.0, date=DAY)
    await ledger.record_win(5.0, date=DAY)

    daily = await ledger.daily_performance(DAY)
    assert daily.win_rate == pytest.approx(75.0)
    assert daily.total_won == pytest.approx(20.0)
    assert daily.current_streak == 1
    assert daily.best_win_streak == 2


@pytest.mark.asyncio
async def test_streak_flips_sign(ledger):
    await ledger.record_loss(1.0, date=DAY)
    await ledger.record_loss(1.0, date=DAY)
    assert (await ledger.daily_performance(DAY)).current_streak == -2
    await ledger.record_win(1.0, date=DAY)
    daily = await ledger.daily_performance(DAY)
    assert daily.current_streak == 1
    assert daily.worst_loss_streak == -2


@pytest.mark.asyncio
async def test_tie_leaves_streak_alone(ledger):
    await ledger.record_win(2.0, date=DAY)
    await ledger.record_win(2.0, date=DAY)
    await ledger.record_tie(date=DAY)
    daily = await ledger.daily_performance(DAY)
    assert daily.ties == 1
    assert daily.current_streak == 2
    assert daily.win_rate == pytest.approx(200 / 3)


@pytest.mark.asyncio
async def test_streak_carries_across_days(ledger):
    await ledger.record_win(1.0, date=DAY)
    await ledger.record_win(1.0, date=DAY)
    await ledger.record_win(1.0, date=NEXT_DAY)

    next_day = await ledger.daily_performance(NEXT_DAY)
    assert next_day.current_streak == 3
    assert next_day.best_win_streak == 3
    assert next_day.wins == 1


@pytest.mark.asyncio
async def test_empty_day_is_zeroed(ledger):
    daily = await ledger.daily_performance("2020-01-01")
    assert daily.wins == 0
    assert daily.win_rate == 0.0
    assert await ledger.daily_net_loss("2020-01-01") == 0.0


@pytest.mark.asyncio
async def test_daily_net_loss(ledger):
    await ledger.record_win(3.0, date=DAY)
    await ledger.record_loss(10.0, date=DAY)
    assert await ledger.daily_net_loss(DAY) == pytest.approx(7.0)


@pytest.mark.asyncio
async def test_totals_span_days(ledger):
    await ledger.record_win(4.0, date=DAY)
    await ledger.record_win(4.0, date=DAY)
    await ledger.record_resolver_earnings(0.5, date=DAY)
    await ledger.record_loss(2.0, date=NEXT_DAY)
    await ledger.record_resolver_earnings(1.5, date=NEXT_DAY)

    total = await ledger.total_performance()
    assert total.wins == 2
    assert total.losses == 1
    assert total.total_won == pytest.approx(8.0)
    assert total.total_lost == pytest.approx(2.0)
    assert total.resolver_earnings == pytest.approx(2.0)
    assert total.best_win_streak == 2
    assert total.worst_loss_streak == -1
    assert total.current_streak == -1
    assert total.net_pnl == pytest.approx(6.0)


@pytest.mark.asyncio
async def test_totals_when_empty(ledger):
    total = await ledger.total_performance()
    assert total.wins == 0
    assert total.current_streak == 0
    assert total.win_rate == 0.0


@pytest.mark.asyncio
async def test_confidence_buckets(ledger):
    await ledger.record_win(5.0, confidence=55, date=DAY)
    await ledger.record_loss(3.0, confidence=70, date=DAY)
    await ledger.record_win(6.0, confidence=80, date=DAY)
    await ledger.record_win(6.0, confidence=95, date=DAY)
    await ledger.record_tie(confidence=95, date=DAY)
    await ledger.record_win(9.0, date=DAY)  # no confidence, no bucket

    buckets = {b.bucket: b for b in await ledger.confidence_performance()}
    assert list(buckets) == ["low", "medium", "high", "very_high"]
    assert buckets["low"].wins == 1
    assert buckets["low"].total_won == pytest.approx(5.0)
    assert buckets["medium"].losses == 1
    assert buckets["medium"].total_lost == pytest.approx(3.0)
    assert buckets["high"].wins == 1
    assert buckets["very_high"].wins == 1
    assert buckets["very_high"].ties == 1
    assert buckets["very_high"].win_rate == pytest.approx(50.0)
    assert sum(b.wins for b in buckets.values()) == 3


@pytest.mark.asyncio
async def test_unknown_bucket_outcome_rejected(db):
    with pytest.raises(ValueError):
        await db.increment_confidence_outcome("low", "draw")
