# Chains are not collapsed: if A owes B and B owes C, both debts are reported.
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..errors import SelfSettlement, ValidationFailed

EPSILON = 0.01
SPLIT_TYPES = ("equal", "custom")


def _require_id(value: str, what: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed(f"{what} must be a non-empty string.")


@dataclass(frozen=True, slots=True)
class Member:
    id: str
    name: str
    email: Optional[str] = None

    def __post_init__(self):
        _require_id(self.id, "Member id")
        if not self.name or not self.name.strip():
            raise ValidationFailed("All members must have a name.")


@dataclass(frozen=True, slots=True)
class Participant:
    member_id: str
    amount: float

    def __post_init__(self):
        _require_id(self.member_id, "Participant member id")
        if self.amount < 0:
            raise ValidationFailed(f"Share of {self.member_id} cannot be negative.")


@dataclass(frozen=True, slots=True)
class Expense:
    id: str
    paid_by: str
    amount: float
    participants: Tuple[Participant, ...]
    split_type: str = "equal"
    title: str = ""
    currency: str = ""
    original_amount: Optional[float] = None

    def __post_init__(self):
        _require_id(self.id, "Expense id")
        _require_id(self.paid_by, "Payer id")
        object.__setattr__(self, "participants", tuple(self.participants))
        if self.amount <= 0:
            raise ValidationFailed("Please enter a valid amount greater than zero.")
        if self.split_type not in SPLIT_TYPES:
            raise ValidationFailed(f"Unknown split type {self.split_type!r}.")
        if not self.participants:
            raise ValidationFailed("Please select at least one participant for this expense.")
        ids = [p.member_id for p in self.participants]
        if len(set(ids)) != len(ids):
            raise ValidationFailed("A member can appear only once among the participants.")
        total = sum(p.amount for p in self.participants)
        if abs(total - self.amount) > EPSILON:
            raise ValidationFailed(
                f"The sum of shares ({total:.2f}) must equal the total amount ({self.amount:.2f})."
            )


@dataclass(frozen=True, slots=True)
class Settlement:
    id: str
    paid_by: str
    paid_to: str
    amount: float
    currency: str = ""

    def __post_init__(self):
        _require_id(self.id, "Settlement id")
        _require_id(self.paid_by, "Payer id")
        _require_id(self.paid_to, "Recipient id")
        if self.paid_by == self.paid_to:
            raise SelfSettlement()
        if self.amount <= 0:
            raise ValidationFailed("Please enter a valid amount greater than zero.")


@dataclass(frozen=True, slots=True)
class Group:
    members: Tuple[Member, ...]
    expenses: Tuple[Expense, ...] = ()
    settlements: Tuple[Settlement, ...] = ()
    base_currency: str = "USD"
    id: str = ""

    def __post_init__(self):
        for field in ("members", "expenses", "settlements"):
            object.__setattr__(self, field, tuple(getattr(self, field)))
        if not self.members:
            raise ValidationFailed("A group must have at least 1 member.")
        ids = {m.id for m in self.members}
        if len(ids) != len(self.members):
            raise ValidationFailed("Member ids must be unique within a group.")
        for e in self.expenses:
            unknown = {e.paid_by, *(p.member_id for p in e.participants)} - ids
            if unknown:
                raise ValidationFailed(f"Expense {e.id} references unknown members: {sorted(unknown)}")
        for s in self.settlements:
            unknown = {s.paid_by, s.paid_to} - ids
            if unknown:
                raise ValidationFailed(f"Settlement {s.id} references unknown members: {sorted(unknown)}")


@dataclass(frozen=True, slots=True)
class Balance:
    """`from_id` owes `to_id` `amount` in the group's base currency."""
    from_id: str
    to_id: str
    amount: float


@dataclass(frozen=True, slots=True)
class MemberSummary:
    member_id: str
    paid: float
    owed: float

    @property
    def net(self) -> float:
        return self.paid - self.owed


def build_ledger(group: Group) -> Dict[str, Dict[str, float]]:
    """ledger[a][b] > 0 means a owes b; ledger[b][a] always mirrors it."""
    ids = [m.id for m in group.members]
    ledger = {a: {b: 0.0 for b in ids if b != a} for a in ids}

    for expense in group.expenses:
        payer = expense.paid_by
        for p in expense.participants:
            if p.member_id == payer:
                continue
            ledger[p.member_id][payer] += p.amount
            ledger[payer][p.member_id] -= p.amount

    for s in group.settlements:
        ledger[s.paid_by][s.paid_to] -= s.amount
        ledger[s.paid_to][s.paid_by] += s.amount

    return ledger


def calculate_balances(group: Group) -> List[Balance]:
    ledger = build_ledger(group)
    members = group.members
    balances: List[Balance] = []
    for i, first in enumerate(members):
        for second in members[i + 1:]:
            net = ledger[first.id][second.id]
            if net > EPSILON:
                balances.append(Balance(from_id=first.id, to_id=second.id, amount=net))
            elif net < -EPSILON:
                balances.append(Balance(from_id=second.id, to_id=first.id, amount=-net))
            # within EPSILON: settled
    return balances


def owed_between(balances: Sequence[Balance], debtor: str, creditor: str) -> float:
    for b in balances:
        if b.from_id == debtor and b.to_id == creditor:
            return b.amount
    return 0.0


def summarize_members(group: Group) -> List[MemberSummary]:
    paid = {m.id: 0.0 for m in group.members}
    owed = {m.id: 0.0 for m in group.members}
    for e in group.expenses:
        paid[e.paid_by] += e.amount
        for p in e.participants:
            owed[p.member_id] += p.amount
    for s in group.settlements:
        paid[s.paid_by] += s.amount
        owed[s.paid_to] += s.amount
    return [MemberSummary(member_id=m.id, paid=paid[m.id], owed=owed[m.id]) for m in group.members]


def total_spent(group: Group) -> float:
    return sum(e.amount for e in group.expenses)
