"""
Centralized application constants.

This file acts as the single point of truth for business logic constants
shared across pricing, inventory and the order lifecycle.
"""

from decimal import Decimal

# ==============================================================================
# ORDER CODES
# ==============================================================================

# Format: ORD-YYYYMMDD-XXXXXX (random upper-case hex suffix)
ORDER_CODE_PREFIX = "ORD"
ORDER_CODE_RANDOM_BYTES = 3

# Attempts at finding an unused order code before giving up
ORDER_CODE_MAX_RETRIES = 5

# ==============================================================================
# MONEY AND QUANTITIES
# ==============================================================================

# Money is stored with 2 decimal places, quantities with 3
MONEY_QUANTUM = Decimal("0.01")
QUANTITY_QUANTUM = Decimal("0.001")

ZERO = Decimal("0")

# ==============================================================================
# ORDER LISTING
# ==============================================================================

ORDER_LIST_DEFAULT_LIMIT = 100
ORDER_LIST_MAX_LIMIT = 500

# ==============================================================================
# LINE PUSH NOTIFICATIONS
# ==============================================================================

LINE_PUSH_ENDPOINT = "https://api.line.me/v2/bot/message/push"

# LINE rejects text messages longer than 5000 characters
LINE_MAX_MESSAGE_LENGTH = 5000

# Per-request timeout in seconds (bounded best-effort delivery)
LINE_REQUEST_TIMEOUT = 5.0

# Timestamp format used inside notification texts
MESSAGE_TIME_FORMAT = "%Y-%m-%d %H:%M"
