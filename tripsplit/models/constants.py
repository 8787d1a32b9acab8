"""Domain constants and enumerations for validation.

Kept as plain string sets so stored rows and request payloads compare
directly without Enum coercion.
"""

from typing import Dict, Set

CATEGORIES: Set[str] = {
    "food",
    "transportation",
    "accommodation",
    "activities",
    "shopping",
    "other",
}
DEFAULT_CATEGORY = "other"

SPLIT_POLICIES: Set[str] = {"equal", "custom", "individual"}
DEFAULT_SPLIT_POLICY = "equal"

EXPENSE_STATUSES: Set[str] = {"pending", "settled", "disputed"}

# Allowed manual status moves; "settled" is terminal.
STATUS_TRANSITIONS: Dict[str, Set[str]] = {
    "pending": {"pending", "settled", "disputed"},
    "disputed": {"pending", "disputed"},
    "settled": {"settled"},
}

MEMBER_ROLES: Set[str] = {"admin", "member"}

# Absolute tolerance treating float residue as zero (shares vs total, balances).
TOLERANCE = 0.01

# Smallest accepted expense total.
MIN_AMOUNT = 0.01

DESCRIPTION_MAX_LENGTH = 200
TAG_MAX_LENGTH = 20
