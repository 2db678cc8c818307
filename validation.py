import math
from typing import List, Optional

from models import ExpenseCreate, Participant


def validate_participant_name(name: str, existing_participants: List[Participant]) -> Optional[str]:
    """Return an error message for a bad participant name, or None if it can be added"""
    trimmed_name = name.strip()

    if not trimmed_name:
        return "Please enter a participant name"

    is_duplicate = any(
        participant.name.lower() == trimmed_name.lower()
        for participant in existing_participants
    )
    if is_duplicate:
        return "A participant with this name already exists"

    return None


def validate_expense(expense: ExpenseCreate) -> List[str]:
    errors = []

    if not expense.description.strip():
        errors.append("Description is required")

    if not math.isfinite(expense.amount) or expense.amount <= 0:
        errors.append("Amount must be greater than 0")

    if not expense.payer:
        errors.append("Please select a payer")

    if not expense.involved:
        errors.append("At least one participant must be involved")
    elif len(set(expense.involved)) != len(expense.involved):
        errors.append("Each participant can only be involved once")

    return errors
