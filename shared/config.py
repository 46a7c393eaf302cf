"""Configuration management for pricebattle-agent."""
import os
import re
from typing import Optional

from pydantic import BaseModel, Field

from shared.constants import NETWORKS
from shared.errors import ValidationError

BOT_MODES = ("resolver", "passive", "aggressive")
AI_PROVIDERS = ("claude", "openai", "ollama")
ACCOUNT_PATTERN = re.compile(r"^[a-z1-5.]{1,12}$")
PRIVATE_KEY_PREFIX = "PVT_K1_"


class Config(BaseModel):
    """Application configuration loaded from environment variables."""
    PRIVATE_KEY: str = ""
    ACCOUNT_NAME: str = ""
    PERMISSION: str = "active"
    CHAIN: str = "proton"
    BOT_MODE: str = "resolver"
    DRY_RUN: bool = False
    AI_PROVIDER: str = "claude"
    CLAUDE_API_KEY: str = ""
    OPENAI_API_KEY: str = ""
    OLLAMA_HOST: str = "https://ollama.com"
    OLLAMA_API_KEY: str = ""
    AI_MODEL: str = ""
    AI_MAX_TOKENS: int = 1024
    MAX_PERCENT_PER_CHALLENGE: float = Field(default=5.0, ge=1, le=50)
    MAX_CONCURRENT_CHALLENGES: int = Field(default=3, ge=1, le=10)
    MIN_BALANCE_RESERVE: float = Field(default=100.0, ge=0)
    MAX_DAILY_LOSS: float = Field(default=500.0, ge=0)
    PRICE_CHECK_INTERVAL: float = Field(default=60.0, ge=10)
    RESOLVER_CHECK_INTERVAL: float = Field(default=15.0, ge=5)
    RESOLVE_PACING_SECONDS: float = Field(default=1.0, ge=0)
    LOG_LEVEL: str = "info"
    LOG_DIR: str = ""
    DATABASE_PATH: str = "data/pricebattle.db"
    COINGECKO_API_KEY: str = ""
    RPC_ENDPOINTS: str = ""

    @classmethod
    def from_env(cls, **overrides) -> "Config":
        """Load configuration from environment variables."""
        values = dict(
            PRIVATE_KEY=os.getenv("PRIVATE_KEY", ""),
            ACCOUNT_NAME=os.getenv("ACCOUNT_NAME", ""),
            PERMISSION=os.getenv("PERMISSION", "active"),
            CHAIN=os.getenv("CHAIN", "proton"),
            AI_PROVIDER=os.getenv("AI_PROVIDER", "claude"),
            CLAUDE_API_KEY=os.getenv("CLAUDE_API_KEY", ""),
            OPENAI_API_KEY=os.getenv("OPENAI_API_KEY", ""),
            OLLAMA_HOST=os.getenv("OLLAMA_HOST", "https://ollama.com"),
            OLLAMA_API_KEY=os.getenv("OLLAMA_API_KEY", ""),
            AI_MODEL=os.getenv("AI_MODEL", ""),
            AI_MAX_TOKENS=int(os.getenv("AI_MAX_TOKENS", "1024")),
            MAX_PERCENT_PER_CHALLENGE=float(os.getenv("MAX_PERCENT_PER_CHALLENGE", "5")),
            MAX_CONCURRENT_CHALLENGES=int(os.getenv("MAX_CONCURRENT_CHALLENGES", "3")),
            MIN_BALANCE_RESERVE=float(os.getenv("MIN_BALANCE_RESERVE", "100")),
            MAX_DAILY_LOSS=float(os.getenv("MAX_DAILY_LOSS", "500")),
            PRICE_CHECK_INTERVAL=float(os.getenv("PRICE_CHECK_INTERVAL", "60")),
            RESOLVER_CHECK_INTERVAL=float(os.getenv("RESOLVER_CHECK_INTERVAL", "15")),
            RESOLVE_PACING_SECONDS=float(os.getenv("RESOLVE_PACING_SECONDS", "1.0")),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "info"),
            LOG_DIR=os.getenv("LOG_DIR", ""),
            DATABASE_PATH=os.getenv("DATABASE_PATH", "data/pricebattle.db"),
            COINGECKO_API_KEY=os.getenv("COINGECKO_API_KEY", ""),
            RPC_ENDPOINTS=os.getenv("RPC_ENDPOINTS", ""),
        )
        values.update(overrides)
        return cls(**values)

    @property
    def endpoints(self) -> list[str]:
        """Explicit RPC_ENDPOINTS override, else the chain's public endpoints."""
        custom = [e.strip() for e in self.RPC_ENDPOINTS.split(",") if e.strip()]
        if custom:
            return custom
        return list(NETWORKS[self.CHAIN]["endpoints"])

    @property
    def chain_id(self) -> str:
        return NETWORKS[self.CHAIN]["chain_id"]

    @property
    def ai_api_key(self) -> Optional[str]:
        keys = {
            "claude": self.CLAUDE_API_KEY,
            "openai": self.OPENAI_API_KEY,
            "ollama": self.OLLAMA_API_KEY,
        }
        return keys.get(self.AI_PROVIDER) or None

    @property
    def is_trading(self) -> bool:
        return self.BOT_MODE != "resolver"

    def validate_for_start(self) -> None:
        """Reject configurations that must never reach the scheduler."""
        if self.CHAIN not in NETWORKS:
            raise ValidationError(f"Unknown chain: {self.CHAIN}")
        if self.BOT_MODE not in BOT_MODES:
            raise ValidationError(
                f"Invalid mode: {self.BOT_MODE}. Must be one of {', '.join(BOT_MODES)}"
            )
        if self.AI_PROVIDER not in AI_PROVIDERS:
            raise ValidationError(f"Unknown AI provider: {self.AI_PROVIDER}")
        if not self.PRIVATE_KEY.startswith(PRIVATE_KEY_PREFIX):
            raise ValidationError(
                f"Invalid private key format. Expected {PRIVATE_KEY_PREFIX}... format"
            )
        if not ACCOUNT_PATTERN.match(self.ACCOUNT_NAME):
            raise ValidationError(
                "Invalid account name. Must be 1-12 characters, lowercase a-z, 1-5, or ."
            )
        # ollama can run keyless against a local host
        if self.is_trading and self.AI_PROVIDER != "ollama" and not self.ai_api_key:
            raise ValidationError(
                f"{self.AI_PROVIDER.upper()} API key is required for {self.BOT_MODE} mode"
            )
