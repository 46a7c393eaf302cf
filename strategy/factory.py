"""Builds the tick policy for a bot mode."""
from shared.config import BOT_MODES
from shared.errors import ValidationError
from strategy.active import ActiveStrategy
from strategy.base import BaseStrategy, StrategyDeps
from strategy.conservative import ConservativeStrategy
from strategy.resolver_only import ResolverOnlyStrategy

STRATEGIES = {
    "resolver": ResolverOnlyStrategy,
    "passive": ConservativeStrategy,
    "aggressive": ActiveStrategy,
}


def create_strategy(mode: str, deps: StrategyDeps) -> BaseStrategy:
    if mode not in STRATEGIES:
        raise ValidationError(f"Invalid mode: {mode}. Must be one of {', '.join(BOT_MODES)}")
    return STRATEGIES[mode](deps)
