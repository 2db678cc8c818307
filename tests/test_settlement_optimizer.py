import math

import pytest

from models import Balance, Expense, Participant, Settlement
from settlement_optimizer import (
    InvalidExpenseError, SettlementOptimizer, is_settled, round_to_two_decimals
)


def make_participants(*names):
    return [Participant(id=str(i), name=name) for i, name in enumerate(names, start=1)]


def make_expense(amount, payer, involved, expense_id="e1"):
    return Expense(
        id=expense_id,
        description="dinner",
        amount=amount,
        payer=payer,
        involved=involved,
        date="2025-01-01T12:00:00",
    )


def settle(balances):
    return SettlementOptimizer.minimize_transactions([Balance(name=n, amount=a) for n, a in balances])


def as_tuples(settlements):
    return [(s.from_, s.to, s.amount) for s in settlements]


def test_round_to_two_decimals():
    assert round_to_two_decimals(33.333333) == 33.33
    assert round_to_two_decimals(66.666666) == 66.67
    assert round_to_two_decimals(-33.336) == -33.34


def test_is_settled():
    assert is_settled(0.0)
    assert is_settled(0.009)
    assert is_settled(-0.009)
    assert not is_settled(0.01)
    assert not is_settled(-0.02)


def test_stats_single_payer():
    participants = make_participants("Alice", "Bob", "Carol")
    expenses = [make_expense(90, "Alice", ["Alice", "Bob", "Carol"])]

    stats = SettlementOptimizer.participant_stats(participants, expenses)

    assert [(s.name, s.total_paid, s.total_owed, s.net_balance) for s in stats] == [
        ("Alice", 90, 30, 60),
        ("Bob", 0, 30, -30),
        ("Carol", 0, 30, -30),
    ]


def test_stats_ignore_unknown_names():
    participants = make_participants("Alice", "Bob")
    expenses = [
        make_expense(40, "Alice", ["Alice", "Bob", "Zed", "Yan"], "e1"),
        make_expense(25, "Ghost", ["Bob"], "e2"),
    ]

    stats = SettlementOptimizer.calculate_stats(participants, expenses)

    assert stats == {
        "Alice": {"total_paid": 40.0, "total_owed": 10.0},
        "Bob": {"total_paid": 0.0, "total_owed": 35.0},
    }


def test_stats_do_not_depend_on_order():
    participants = make_participants("Alice", "Bob", "Carol")
    expenses = [
        make_expense(90, "Alice", ["Alice", "Bob", "Carol"], "e1"),
        make_expense(40, "Bob", ["Bob", "Carol"], "e2"),
        make_expense(10, "Carol", ["Alice"], "e3"),
    ]

    forward = SettlementOptimizer.calculate_stats(participants, expenses)
    backward = SettlementOptimizer.calculate_stats(list(reversed(participants)), list(reversed(expenses)))

    assert forward == backward
    assert SettlementOptimizer.calculate_stats(participants, expenses) == forward


def test_stats_reject_expense_without_involved():
    participants = make_participants("Alice")
    expense = make_expense(10, "Alice", [])

    with pytest.raises(InvalidExpenseError):
        SettlementOptimizer.calculate_stats(participants, [expense])


@pytest.mark.parametrize("amount", [0, -5, math.inf, math.nan])
def test_stats_reject_bad_amount(amount):
    participants = make_participants("Alice")
    expense = make_expense(amount, "Alice", ["Alice"])

    with pytest.raises(InvalidExpenseError):
        SettlementOptimizer.calculate_stats(participants, [expense])


def test_balances_follow_participant_order():
    participants = make_participants("Carol", "Alice", "Bob")
    expenses = [make_expense(90, "Alice", ["Alice", "Bob", "Carol"])]

    balances = SettlementOptimizer.calculate_balances(participants, expenses)

    assert balances == [
        Balance(name="Carol", amount=-30),
        Balance(name="Alice", amount=60),
        Balance(name="Bob", amount=-30),
    ]


def test_balances_sum_to_zero_with_uneven_split():
    participants = make_participants("Alice", "Bob", "Carol", "Dave")
    expenses = [
        make_expense(100, "Alice", ["Alice", "Bob", "Carol"], "e1"),
        make_expense(17.35, "Bob", ["Alice", "Bob", "Carol", "Dave"], "e2"),
        make_expense(9.99, "Dave", ["Carol", "Dave"], "e3"),
        make_expense(0.05, "Carol", ["Alice", "Bob", "Carol"], "e4"),
    ]

    balances = SettlementOptimizer.calculate_balances(participants, expenses)

    assert abs(sum(b.amount for b in balances)) <= 0.02 + 1e-9


def test_settlements_single_creditor():
    settlements = settle([("Alice", 60), ("Bob", -30), ("Carol", -30)])

    assert as_tuples(settlements) == [("Bob", "Alice", 30), ("Carol", "Alice", 30)]


def test_settlements_multiple_creditors_and_debtors():
    settlements = settle([("Alice", 50), ("Bob", 20), ("Carol", -40), ("Dave", -30)])

    assert as_tuples(settlements) == [
        ("Carol", "Alice", 40),
        ("Dave", "Alice", 10),
        ("Dave", "Bob", 20),
    ]


def test_settlements_sort_order_not_input_order():
    settlements = settle([("Dave", -30), ("Bob", 20), ("Carol", -40), ("Alice", 50)])

    assert as_tuples(settlements) == [
        ("Carol", "Alice", 40),
        ("Dave", "Alice", 10),
        ("Dave", "Bob", 20),
    ]


def test_settlements_ties_keep_input_order():
    settlements = settle([("Erin", -25), ("Bob", 25), ("Alice", 25), ("Carol", -25)])

    assert as_tuples(settlements) == [("Erin", "Bob", 25), ("Carol", "Alice", 25)]


def test_settlements_empty_when_everyone_is_even():
    participants = make_participants("Alice", "Bob")
    expenses = [
        make_expense(20, "Alice", ["Alice", "Bob"], "e1"),
        make_expense(20, "Bob", ["Alice", "Bob"], "e2"),
    ]

    result = SettlementOptimizer.optimize_settlements(participants, expenses)

    assert result["optimal_settlements"] == []
    assert all(is_settled(b.amount) for b in result["balances"])


def test_settlements_ignore_rounding_noise():
    assert settle([("Alice", 0.005), ("Bob", -0.005)]) == []
    assert settle([]) == []


def test_settlements_do_not_mutate_input():
    balances = [Balance(name="Alice", amount=50), Balance(name="Bob", amount=-50)]

    SettlementOptimizer.minimize_transactions(balances)

    assert balances == [Balance(name="Alice", amount=50), Balance(name="Bob", amount=-50)]


def test_settlements_serialize_with_from_key():
    settlement = Settlement(from_="Bob", to="Alice", amount=30)

    assert settlement.model_dump(by_alias=True) == {"from": "Bob", "to": "Alice", "amount": 30}


def test_settlements_uneven_split_leaves_at_most_a_cent():
    participants = make_participants("Alice", "Bob", "Carol")
    expenses = [make_expense(100, "Alice", ["Alice", "Bob", "Carol"])]

    result = SettlementOptimizer.optimize_settlements(participants, expenses)

    assert as_tuples(result["optimal_settlements"]) == [("Bob", "Alice", 33.33), ("Carol", "Alice", 33.33)]
    residual = SettlementOptimizer.apply_settlements(result["balances"], result["optimal_settlements"])
    assert all(abs(b.amount) <= 0.01 + 1e-9 for b in residual)


def test_settlement_properties_on_larger_group():
    names = ["Ana", "Ben", "Cid", "Dee", "Eve", "Fay"]
    participants = make_participants(*names)
    expenses = [
        make_expense(120, "Ana", names, "e1"),
        make_expense(45, "Ben", ["Ben", "Cid", "Dee"], "e2"),
        make_expense(300, "Cid", ["Ana", "Eve", "Fay", "Cid"], "e3"),
        make_expense(12.34, "Fay", ["Fay", "Ana"], "e4"),
        make_expense(78, "Eve", names, "e5"),
    ]

    balances = SettlementOptimizer.calculate_balances(participants, expenses)
    first = SettlementOptimizer.minimize_transactions(balances)
    second = SettlementOptimizer.minimize_transactions(balances)

    creditors = [b for b in balances if b.amount > 0.01]
    debtors = [b for b in balances if b.amount < -0.01]

    assert as_tuples(first) == [
        ("Fay", "Cid", 101.83),
        ("Dee", "Cid", 48),
        ("Eve", "Cid", 27.17),
        ("Eve", "Ana", 2.83),
        ("Ben", "Ana", 3),
    ]
    assert first == second
    assert len(first) <= len(creditors) + len(debtors) - 1
    assert all(s.from_ != s.to for s in first)
    assert all(s.amount > 0 for s in first)

    residual = SettlementOptimizer.apply_settlements(balances, first)
    assert all(abs(b.amount) <= 0.01 + 1e-9 for b in residual)


def test_settlements_with_unbalanced_input_leave_residual(caplog):
    balances = [Balance(name="Alice", amount=50), Balance(name="Bob", amount=-20)]

    with caplog.at_level("WARNING"):
        settlements = SettlementOptimizer.minimize_transactions(balances)

    assert as_tuples(settlements) == [("Bob", "Alice", 20)]
    assert "instead of zero" in caplog.text
    residual = SettlementOptimizer.apply_settlements(balances, settlements)
    assert residual == [Balance(name="Alice", amount=30), Balance(name="Bob", amount=0)]


def test_settlements_skip_balances_of_exactly_one_cent():
    assert settle([("Alice", 0.01), ("Bob", -0.01)]) == []


def test_settlements_include_balances_just_above_one_cent():
    assert as_tuples(settle([("Alice", 0.02), ("Bob", -0.02)])) == [("Bob", "Alice", 0.02)]
