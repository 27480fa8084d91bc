"""
Core constants and limits.

Defines engine-wide defaults for order simulation, data loading,
snapshotting and performance calculation.
"""

# Result schema
RESULT_SCHEMA_VERSION = "1.0.0"

# Clock and snapshot cadence (milliseconds)
CLOCK_STEP_MS = 60_000  # One simulated minute per tick
SNAPSHOT_INTERVAL_MS = 60 * 60 * 1000  # Hourly portfolio snapshots
MS_PER_DAY = 24 * 60 * 60 * 1000

# Fee Constants
DEFAULT_TAKER_FEE = 0.001  # 0.1% taker fee
DEFAULT_SLIPPAGE_PERCENTAGE = 0.001  # 0.1% configured slippage

# Portfolio
DEFAULT_QUOTE_CURRENCY = "USDT"

# Data loading
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_MS = 1000
DEFAULT_FETCH_LIMIT = 1000  # Max candles per exchange request
DEFAULT_MAX_CONCURRENT_SYMBOLS = 5
DEFAULT_CACHE_DIRECTORY = "reports/historical_data"
DEFAULT_MEMORY_CACHE_SIZE = 64

# Performance calculation
DEFAULT_RISK_FREE_RATE = 0.02  # 2% annual
DEFAULT_TRADING_DAYS_PER_YEAR = 365  # Crypto markets trade 24/7
DEFAULT_MINIMUM_TRADES = 10  # Minimum observations for ratio statistics

# Float tolerance for ledger comparisons
BALANCE_TOLERANCE = 1e-9
