"""
Staffing composition rule for a schedule.

A schedule is confirmed when it has at least one category-A assignee and
between one and two (inclusive) category-B assignees.
"""

from typing import Iterable, Optional

from app.db.models.users import Gender

CATEGORY_A = Gender.MALE
CATEGORY_B = Gender.FEMALE

MIN_CATEGORY_A = 1
MIN_CATEGORY_B = 1
MAX_CATEGORY_B = 2


def count_by_category(categories: Iterable[str]) -> tuple[int, int]:
    """Return (category A count, category B count)."""
    count_a = count_b = 0
    for category in categories:
        if category == CATEGORY_A:
            count_a += 1
        elif category == CATEGORY_B:
            count_b += 1
    return count_a, count_b


def staffing_violation(categories: Iterable[str]) -> Optional[str]:
    """Describe why the set does not satisfy the rule, or None if it does."""
    count_a, count_b = count_by_category(categories)
    if count_a < MIN_CATEGORY_A:
        return f"At least {MIN_CATEGORY_A} {CATEGORY_A.value.lower()} volunteer must be assigned"
    if count_b < MIN_CATEGORY_B or count_b > MAX_CATEGORY_B:
        return (
            f"Between {MIN_CATEGORY_B} and {MAX_CATEGORY_B} "
            f"{CATEGORY_B.value.lower()} volunteers must be assigned"
        )
    return None


def is_staffed(categories: Iterable[str]) -> bool:
    return staffing_violation(categories) is None
