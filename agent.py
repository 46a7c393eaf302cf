"""Main entry point: wires all layers together and exposes the CLI."""
import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

from council.predictor import Predictor
from execution.performance import PerformanceLedger
from execution.resolver import Resolver, summarize
from execution.settlement import OutcomeRecorder
from execution.wager_book import WagerBook
from feeds.market_data import MarketDataFeed
from ledger.actions import LedgerActions
from ledger.oracle import OracleReader
from ledger.rpc import FailoverRpcClient
from ledger.signer import AioeosPusher
from shared.clock import now_seconds
from shared.config import BOT_MODES, Config
from shared.llm_client import LLMClient
from shared.logging import setup_logging
from shared.units import format_asset, format_duration, format_usd
from storage.db import Database
from strategy.base import BaseStrategy, StrategyDeps
from strategy.factory import create_strategy

logger = logging.getLogger("pricebattle-agent")


class PriceBattleAgent:
    """Owns every component and runs the price and strategy loops."""

    def __init__(self, config: Config):
        self.config = config
        self._shutdown = asyncio.Event()

        # Components (initialized in init())
        self.db: Database | None = None
        self.rpc: FailoverRpcClient | None = None
        self.oracle: OracleReader | None = None
        self.actions: LedgerActions | None = None
        self.book: WagerBook | None = None
        self.performance: PerformanceLedger | None = None
        self.resolver: Resolver | None = None
        self.strategy: BaseStrategy | None = None

    async def init(self):
        """Build every component. The strategy is chosen once, here."""
        config = self.config

        self.db = Database(config.DATABASE_PATH)
        await self.db.init()

        pusher = None
        if config.PRIVATE_KEY and not config.DRY_RUN:
            pusher = AioeosPusher(config.ACCOUNT_NAME, config.PRIVATE_KEY)
        self.rpc = FailoverRpcClient(config.endpoints, pusher=pusher)

        self.oracle = OracleReader(self.rpc)
        self.actions = LedgerActions(
            self.rpc,
            config.ACCOUNT_NAME,
            permission=config.PERMISSION,
            dry_run=config.DRY_RUN,
        )
        self.book = WagerBook(self.rpc, self.db, config.ACCOUNT_NAME)
        self.performance = PerformanceLedger(self.db)
        self.resolver = Resolver(
            self.actions,
            self.book,
            self.oracle,
            self.db,
            self.performance,
            pacing_seconds=config.RESOLVE_PACING_SECONDS,
        )

        predictor = None
        market_feed = None
        if config.is_trading:
            client = LLMClient(
                provider=config.AI_PROVIDER,
                api_key=config.ai_api_key,
                model=config.AI_MODEL or None,
                max_tokens=config.AI_MAX_TOKENS,
                host=config.OLLAMA_HOST,
            )
            predictor = Predictor(client)
            market_feed = MarketDataFeed(api_key=config.COINGECKO_API_KEY)

        self.strategy = create_strategy(config.BOT_MODE, StrategyDeps(
            config=config,
            db=self.db,
            book=self.book,
            oracle=self.oracle,
            actions=self.actions,
            resolver=self.resolver,
            performance=self.performance,
            outcomes=OutcomeRecorder(self.db, self.performance, config.ACCOUNT_NAME),
            predictor=predictor,
            market_feed=market_feed,
        ))

    async def start(self):
        """Initialize and run until shutdown() is called."""
        await self.init()

        logger.info("Starting PriceBattle agent", extra={
            "account": self.config.ACCOUNT_NAME,
            "chain": self.config.CHAIN,
            "mode": self.config.BOT_MODE,
            "strategy": self.strategy.name,
            "dry_run": self.config.DRY_RUN,
        })

        await self.record_price()

        tasks = [
            asyncio.create_task(self._price_loop(), name="price"),
            asyncio.create_task(self._strategy_loop(), name="strategy"),
        ]
        logger.info("Agent started", extra={
            "price_interval": self.config.PRICE_CHECK_INTERVAL,
            "strategy_interval": self.config.RESOLVER_CHECK_INTERVAL,
        })

        await self._shutdown.wait()

        logger.info("Shutting down...")
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await self.close()
        logger.info("Shutdown complete")

    async def record_price(self):
        try:
            quote = await self.oracle.get_btc_price()
            await self.db.insert_price(quote.price, quote.timestamp)
            logger.debug("Recorded price", extra={"price": quote.price})
        except Exception as e:
            logger.error(f"Failed to record price: {e}")

    async def run_tick(self):
        try:
            await self.strategy.tick()
        except Exception as e:
            logger.error(f"Strategy tick failed: {e}", exc_info=True)

    async def _price_loop(self):
        while not self._shutdown.is_set():
            await asyncio.sleep(self.config.PRICE_CHECK_INTERVAL)
            await self.record_price()

    async def _strategy_loop(self):
        while not self._shutdown.is_set():
            await self.run_tick()
            await asyncio.sleep(self.config.RESOLVER_CHECK_INTERVAL)

    async def close(self):
        if self.rpc:
            await self.rpc.close()
            self.rpc = None
        if self.db:
            await self.db.close()

    def shutdown(self):
        self._shutdown.set()


# CLI commands


async def cmd_start(agent: PriceBattleAgent, args):
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, agent.shutdown)
    await agent.start()


async def cmd_status(agent: PriceBattleAgent, args):
    config = agent.config
    balance = await agent.book.get_balance()
    today = await agent.performance.daily_performance()
    total = await agent.performance.total_performance()
    buckets = await agent.performance.confidence_performance()

    print(f"\nAccount:  {config.ACCOUNT_NAME}")
    print(f"Balance:  {balance:.4f} XPR")
    print(f"Network:  {config.CHAIN}")

    print(f"\nToday ({today.date} UTC)")
    print(f"  Wins / Losses / Ties: {today.wins} / {today.losses} / {today.ties}")
    print(f"  Win rate:             {today.win_rate:.1f}%")
    print(f"  P&L:                  {today.net_pnl:.4f} XPR")

    print("\nAll time")
    print(f"  Wins / Losses / Ties: {total.wins} / {total.losses} / {total.ties}")
    print(f"  Win rate:             {total.win_rate:.1f}%")
    print(f"  P&L:                  {total.net_pnl:.4f} XPR")
    print(f"  Resolver fees:        {total.resolver_earnings:.4f} XPR")
    print(f"  Streak:               {total.current_streak:+d} "
          f"(best {total.best_win_streak}, worst {total.worst_loss_streak})")

    print("\nBy confidence")
    for b in buckets:
        print(f"  {b.bucket:<10} {b.wins}W {b.losses}L {b.ties}T  {b.win_rate:.1f}%")
    print()


async def cmd_resolve(agent: PriceBattleAgent, args):
    print("Checking for resolvable wagers...\n")
    resolvable = await agent.book.get_resolvable()
    if not resolvable:
        print("No wagers to resolve.")
        return

    print(f"Found {len(resolvable)} resolvable wager(s):\n")
    for w in resolvable:
        print(f"  Wager #{w.id}")
        print(f"    Creator:  {w.creator} ({w.direction.label})")
        print(f"    Opponent: {w.opponent}")
        print(f"    Stake:    {format_asset(w.stake)} each")
        print(f"    Duration: {format_duration(w.duration)}\n")

    if args.dry_run:
        print("[DRY RUN] Would resolve these wagers.")
        return

    results = await agent.resolver.resolve_all()
    counts = summarize(results)
    earned = sum(r.resolver_reward or 0.0 for r in results)
    print(f"Resolved {counts['succeeded']}, failed {counts['failed']}, earned {earned:.4f} XPR")
    for r in results:
        if not r.success:
            print(f"  #{r.challenge_id}: {r.error_type}: {r.error}")


async def cmd_history(agent: PriceBattleAgent, args):
    decisions = await agent.db.get_recent_decisions(args.limit)
    if not decisions:
        print("No decisions recorded yet.")
        return

    print("\nRecent decisions:\n")
    print(f"{'ID':<6}{'Action':<16}{'Direction':<11}{'Confidence':<12}{'Price':<14}Time")
    print("-" * 80)
    for d in decisions:
        confidence = f"{d['confidence']:.0f}%" if d["confidence"] is not None else "-"
        price = format_usd(d["price_at_decision"]) if d["price_at_decision"] else "-"
        print(f"{d['id']:<6}{d['action']:<16}{d['direction'] or '-':<11}{confidence:<12}{price:<14}{d['created_at']}")


async def cmd_price(agent: PriceBattleAgent, args):
    quote = await agent.oracle.get_btc_price()
    print(f"\nCurrent BTC price: {format_usd(quote.price)}\n")


async def cmd_challenges(agent: PriceBattleAgent, args):
    now = now_seconds()
    open_ = await agent.book.get_open()
    active = await agent.book.get_active()

    print(f"\n=== Open wagers ({len(open_)}) ===\n")
    if not open_:
        print("  No open wagers.")
    for w in open_:
        expires_in = (w.expires_at or now) - now
        print(f"  #{w.id}: {w.creator} bets {w.direction.label}")
        print(f"      Stake:    {format_asset(w.stake)}")
        print(f"      Duration: {format_duration(w.duration)}")
        print(f"      Expires:  {format_duration(expires_in) if expires_in > 0 else 'Expired'}\n")

    print(f"\n=== Active wagers ({len(active)}) ===\n")
    if not active:
        print("  No active wagers.")
    for w in active:
        remaining = (w.ends_at or now) - now
        print(f"  #{w.id}: {w.creator} vs {w.opponent}")
        print(f"      Creator: {w.direction.label} | Opponent: {w.direction.opposite().label}")
        print(f"      Stake:   {format_asset(w.stake)} each")
        print(f"      Remaining: {format_duration(remaining) if remaining > 0 else 'Ready to resolve'}\n")


COMMANDS = {
    "start": cmd_start,
    "status": cmd_status,
    "resolve": cmd_resolve,
    "history": cmd_history,
    "price": cmd_price,
    "challenges": cmd_challenges,
}

# commands that sign transactions need a fully valid configuration
VALIDATED_COMMANDS = {"start", "resolve"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pricebattle-agent",
        description="PriceBattle trading and resolver agent for XPR Network",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    start = sub.add_parser("start", help="Start the agent")
    start.add_argument("-m", "--mode", choices=BOT_MODES, default="resolver")
    start.add_argument("--dry-run", action="store_true", help="Run without executing transactions")

    sub.add_parser("status", help="Show balance and performance")

    resolve = sub.add_parser("resolve", help="Resolve all resolvable wagers now")
    resolve.add_argument("--dry-run", action="store_true", help="Show what would be resolved")

    history = sub.add_parser("history", help="Show decision history")
    history.add_argument("-n", "--limit", type=int, default=20)

    sub.add_parser("price", help="Show the oracle BTC price")
    sub.add_parser("challenges", help="Show open and active wagers")
    return parser


async def run_command(args, config: Config):
    agent = PriceBattleAgent(config)
    try:
        if args.command != "start":
            await agent.init()
        await COMMANDS[args.command](agent, args)
    finally:
        await agent.close()


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    overrides = {}
    if args.command == "start":
        overrides["BOT_MODE"] = args.mode
    if args.command in ("start", "resolve"):
        overrides["DRY_RUN"] = args.dry_run

    try:
        config = Config.from_env(**overrides)
        setup_logging("pricebattle-agent", config.LOG_LEVEL, config.LOG_DIR)
        if args.command in VALIDATED_COMMANDS:
            config.validate_for_start()
        asyncio.run(run_command(args, config))
    except KeyboardInterrupt:
        return 0
    except Exception as e:
        print(f"Failed to run {args.command}: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
