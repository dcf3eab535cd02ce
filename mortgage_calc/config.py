"""Business constants and configuration defaults for the mortgage calculator.

Every regulatory ratio, yield assumption and tenor rule used by the engines
lives here so there is a single place to adjust them. Web settings are read
from the environment when the Flask app starts.
"""

from __future__ import annotations

import os
from decimal import Decimal

ZERO = Decimal("0")

# Schedules stop once the outstanding balance drops to this amount or below.
BALANCE_EPSILON = Decimal("0.01")

# ── Affordability ratios ──────────────────────────────────────────────────────

TDSR_LIMIT = Decimal("0.55")  # private property, all debt obligations
MSR_LIMIT = Decimal("0.30")  # HDB property, property loans only

# ── Income conventions ────────────────────────────────────────────────────────

BONUS_RECOGNITION = Decimal("0.7")  # 70% of variable income above base salary
SHOW_FUND_YIELD = Decimal("0.00625")  # notional monthly income per dollar shown
PLEDGE_MONTHS = Decimal("48")

# ── Front-end defaults ────────────────────────────────────────────────────────

DEFAULT_STRESS_TEST_RATE = Decimal("4")
DEFAULT_LOAN_PERCENTAGE = Decimal("75")

# ── Loan tenor rules ──────────────────────────────────────────────────────────

# Loans of 56% to 75% of the purchase price form the high band; any other
# percentage uses the longer low-band tenor.
HIGH_LTV_BAND = (Decimal("56"), Decimal("75"))

# (property type, high LTV band) -> (max years, age cap)
TENOR_RULES = {
    ("hdb", True): (25, 65),
    ("hdb", False): (30, 75),
    ("private", True): (30, 65),
    ("private", False): (35, 75),
}
MIN_TENOR_YEARS = 1

# Longest loan term accepted by the schedulers.
MAX_TERM_YEARS = 35

# ── Progressive payments ──────────────────────────────────────────────────────

DEFAULT_TENURE_YEARS = 20
CONSTRUCTION_START_MONTH = 3  # month after the S&P agreement is signed
MIN_CONSTRUCTION_MONTHS = 24
CSC_MONTHS_AFTER_TOP = 12

PROPERTY_TYPE_LABELS = {
    "private": "Private Property",
    "hdb": "HDB Property",
}

# ── Web ───────────────────────────────────────────────────────────────────────


def web_settings() -> dict:
    """Return settings for the Flask front end, read from the environment."""
    return {
        "MAX_SCHEDULE_ROWS": int(os.environ.get("MORTGAGE_CALC_MAX_ROWS", "420")),
    }
