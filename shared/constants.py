"""Fixed ledger constants for the PriceBattle contract on XPR Network."""

CONTRACT_ACCOUNT = "pricebattle"
TOKEN_CONTRACT = "eosio.token"
TOKEN_SYMBOL = "XPR"
TOKEN_DECIMALS = 4
TOKEN_MULTIPLIER = 10 ** TOKEN_DECIMALS
STAKE_MEMO = "PriceBattle stake"

ORACLE_CONTRACT = "oracles"
ORACLE_TABLE = "data"
ORACLE_DECIMALS = 8
ORACLE_MULTIPLIER = 10 ** ORACLE_DECIMALS
FEED_BTC_USD = 4
FEED_ETH_USD = 5
FEED_XPR_USD = 13

# Resolver share of the combined pot, in basis points (2%)
RESOLVER_FEE_BPS = 200

# Stake limits in whole XPR
MIN_STAKE = 100
STAKE_LOT = 100

WAGER_PAGE_SIZE = 200
TRANSACTION_EXPIRE_SECONDS = 300

RETRY_INITIAL_DELAY = 0.5
RETRY_MAX_DELAY = 5.0
RETRY_BACKOFF = 2.0

NETWORKS = {
    "proton": {
        "chain_id": "384da888112027f0321850a169f737c33e53b388aad48b5adace4bab97f437e0",
        "endpoints": [
            "https://proton.greymass.com",
            "https://proton.eosusa.io",
            "https://proton.cryptolions.io",
        ],
    },
    "proton-test": {
        "chain_id": "71ee83bcf52142d61019d95f9cc5427ba6a0d7ff8accd9e2088ae2abeaf3d3dd",
        "endpoints": [
            "https://testnet.protonchain.com",
        ],
    },
}
