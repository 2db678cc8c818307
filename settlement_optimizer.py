import logging
import math
from typing import Dict, List

from models import Balance, Expense, Participant, ParticipantStats, Settlement

logger = logging.getLogger(__name__)

# Balances closer to zero than this are treated as settled
EPSILON = 0.01

# Per-entry rounding can leave the group total off by up to a couple of cents
ZERO_SUM_TOLERANCE = 0.02


class InvalidExpenseError(ValueError):
    """Raised when an expense cannot be split (no one involved, bad amount)."""


def round_to_two_decimals(amount: float) -> float:
    return round(amount * 100) / 100


def is_settled(amount: float) -> bool:
    return abs(amount) < EPSILON


class SettlementOptimizer:
    @staticmethod
    def calculate_stats(participants: List[Participant], expenses: List[Expense]) -> Dict[str, Dict[str, float]]:
        """Total paid and total owed per participant name, unrounded.

        Names keep the order of the participant list. Payers or involved
        names that are not participants contribute nothing.
        """
        stats = {}
        for participant in participants:
            stats[participant.name] = {"total_paid": 0.0, "total_owed": 0.0}

        for expense in expenses:
            if not expense.involved:
                raise InvalidExpenseError(f"Expense {expense.id} has no involved participants")
            if not math.isfinite(expense.amount) or expense.amount <= 0:
                raise InvalidExpenseError(f"Expense {expense.id} has an invalid amount: {expense.amount}")

            share = expense.amount / len(expense.involved)

            # Credit payer
            payer_stats = stats.get(expense.payer)
            if payer_stats is not None:
                payer_stats["total_paid"] += expense.amount

            # Debit involved participants
            for name in expense.involved:
                participant_stats = stats.get(name)
                if participant_stats is not None:
                    participant_stats["total_owed"] += share

        return stats

    @staticmethod
    def participant_stats(participants: List[Participant], expenses: List[Expense]) -> List[ParticipantStats]:
        """Rounded paid/owed/net figures, one entry per participant"""
        stats = SettlementOptimizer.calculate_stats(participants, expenses)
        return [
            ParticipantStats(
                name=name,
                total_paid=round_to_two_decimals(totals["total_paid"]),
                total_owed=round_to_two_decimals(totals["total_owed"]),
                net_balance=round_to_two_decimals(totals["total_paid"] - totals["total_owed"]),
            )
            for name, totals in stats.items()
        ]

    @staticmethod
    def calculate_balances(participants: List[Participant], expenses: List[Expense]) -> List[Balance]:
        """Net balance for each participant (positive = is owed money)"""
        return [
            Balance(name=entry.name, amount=entry.net_balance)
            for entry in SettlementOptimizer.participant_stats(participants, expenses)
        ]

    @staticmethod
    def minimize_transactions(balances: List[Balance]) -> List[Settlement]:
        """Greedy matching of the largest creditor with the largest debtor.

        Creditors are sorted descending and debtors ascending; ties keep the
        input order. Remaining amounts are re-rounded after every transfer.
        The input balances are never mutated.
        """
        total = sum(balance.amount for balance in balances)
        if abs(total) > ZERO_SUM_TOLERANCE:
            logger.warning(f"Balances sum to {total:.2f} instead of zero, the plan will leave a residual")

        # Work on [name, amount] copies so callers keep their own records
        creditors = [[b.name, b.amount] for b in balances if b.amount > EPSILON]
        debtors = [[b.name, b.amount] for b in balances if b.amount < -EPSILON]

        creditors.sort(key=lambda x: x[1], reverse=True)
        debtors.sort(key=lambda x: x[1])

        settlements = []
        i = j = 0
        while i < len(creditors) and j < len(debtors):
            creditor = creditors[i]
            debtor = debtors[j]

            if is_settled(creditor[1]) or is_settled(debtor[1]):
                if is_settled(creditor[1]):
                    i += 1
                if is_settled(debtor[1]):
                    j += 1
                continue

            transfer = min(creditor[1], abs(debtor[1]))
            settlements.append(Settlement(from_=debtor[0], to=creditor[0], amount=round_to_two_decimals(transfer)))

            creditor[1] = round_to_two_decimals(creditor[1] - transfer)
            debtor[1] = round_to_two_decimals(debtor[1] + transfer)

            if is_settled(creditor[1]):
                i += 1
            if is_settled(debtor[1]):
                j += 1

        return settlements

    @staticmethod
    def apply_settlements(balances: List[Balance], settlements: List[Settlement]) -> List[Balance]:
        """Balances left over once every transfer in the plan has been paid"""
        remaining = {}
        for balance in balances:
            remaining[balance.name] = remaining.get(balance.name, 0.0) + balance.amount

        for settlement in settlements:
            remaining[settlement.from_] = remaining.get(settlement.from_, 0.0) + settlement.amount
            remaining[settlement.to] = remaining.get(settlement.to, 0.0) - settlement.amount

        return [Balance(name=name, amount=round_to_two_decimals(amount)) for name, amount in remaining.items()]

    @staticmethod
    def optimize_settlements(participants: List[Participant], expenses: List[Expense]) -> dict:
        """Main method to calculate stats, balances and the settlement plan"""
        stats = SettlementOptimizer.participant_stats(participants, expenses)
        balances = [Balance(name=entry.name, amount=entry.net_balance) for entry in stats]
        settlements = SettlementOptimizer.minimize_transactions(balances)

        return {
            "stats": stats,
            "balances": balances,
            "optimal_settlements": settlements
        }
