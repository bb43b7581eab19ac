import datetime as dt
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from .. import models
from ..config import get_settings
from ..errors import NotFound, OverSettlement, SelfSettlement, ValidationFailed
from ..logs import get_logger
from . import engine
from .currency import normalize
from .splits import scale_shares, split_equal, validate_custom

log = get_logger(__name__)


def get_group(db: Session, group_id: str) -> models.Group:
    g = db.get(models.Group, group_id)
    if not g:
        raise NotFound("Group not found")
    return g


def get_member(group: models.Group, member_id: str) -> models.Member:
    for m in group.members:
        if m.id == member_id:
            return m
    raise NotFound(f"Member {member_id} is not a member of group {group.id}")


def ensure_member(group: models.Group, member_id: str):
    get_member(group, member_id)


def get_expense(group: models.Group, expense_id: str) -> models.Expense:
    for e in group.expenses:
        if e.id == expense_id:
            return e
    raise NotFound("Expense not found")


def get_settlement(group: models.Group, settlement_id: str) -> models.Settlement:
    for s in group.settlements:
        if s.id == settlement_id:
            return s
    raise NotFound("Settlement not found")


def touch(group: models.Group):
    group.updated_at = dt.datetime.utcnow()


def load_rates(db: Session) -> Dict[str, float]:
    rates = {r.code: r.rate for r in db.query(models.CurrencyRate).all()}
    # every rate is quoted against the anchor
    rates[get_settings().anchor_currency] = 1.0
    return rates


def ensure_unique_name(group: models.Group, name: str, exclude_id: Optional[str] = None):
    key = name.strip().lower()
    for m in group.members:
        if m.id != exclude_id and m.name.strip().lower() == key:
            raise ValidationFailed(f"A member named {name!r} already exists in this group")


def member_is_referenced(group: models.Group, member_id: str) -> bool:
    for e in group.expenses:
        if e.paid_by == member_id or any(p.member_id == member_id for p in e.participants):
            return True
    return any(s.paid_by == member_id or s.paid_to == member_id for s in group.settlements)


def to_domain(group: models.Group, exclude_settlement: Optional[str] = None) -> engine.Group:
    return engine.Group(
        id=group.id,
        base_currency=group.base_currency,
        members=[engine.Member(id=m.id, name=m.name, email=m.email) for m in group.members],
        expenses=[
            engine.Expense(
                id=e.id,
                title=e.title,
                paid_by=e.paid_by,
                amount=e.amount,
                currency=e.currency,
                original_amount=e.original_amount,
                split_type=e.split_type,
                participants=[engine.Participant(member_id=p.member_id, amount=p.amount) for p in e.participants],
            )
            for e in group.expenses
        ],
        settlements=[
            engine.Settlement(id=s.id, paid_by=s.paid_by, paid_to=s.paid_to, amount=s.amount, currency=s.currency)
            for s in group.settlements
            if s.id != exclude_settlement
        ],
    )


def entered_shares(group: models.Group, amount: float, split_type: str, participants) -> Dict[str, float]:
    ids = [p.member_id for p in participants]
    if len(set(ids)) != len(ids):
        raise ValidationFailed("A member can appear only once among the participants.")
    for mid in ids:
        ensure_member(group, mid)
    if split_type == "equal":
        return split_equal(amount, ids)
    if any(p.amount is None for p in participants):
        raise ValidationFailed("Custom splits need an amount for every participant.")
    shares = {p.member_id: p.amount for p in participants}
    validate_custom(amount, shares)
    return shares


def normalize_expense(
    db: Session, group: models.Group, amount: float, currency: str, shares: Dict[str, float]
) -> Tuple[float, Optional[float], Dict[str, float], List[str]]:
    conv = normalize(amount, currency, group.base_currency, load_rates(db))
    if not conv.converted:
        return amount, None, shares, [conv.warning] if conv.warning else []
    return conv.amount, amount, scale_shares(shares, conv.amount / amount, total=conv.amount), []


def check_expense(expense_id: str, paid_by: str, amount: float, split_type: str, shares: Dict[str, float]):
    engine.Expense(
        id=expense_id,
        paid_by=paid_by,
        amount=amount,
        split_type=split_type,
        participants=[engine.Participant(member_id=m, amount=v) for m, v in shares.items()],
    )


def sync_participants(expense: models.Expense, shares: Dict[str, float]):
    existing = {p.member_id: p for p in expense.participants}
    for mid, p in existing.items():
        if mid not in shares:
            expense.participants.remove(p)
    for mid, amount in shares.items():
        if mid in existing:
            existing[mid].amount = amount
        else:
            expense.participants.append(models.ExpenseParticipant(member_id=mid, amount=amount))


def check_settlement(
    group: models.Group, paid_by: str, paid_to: str, amount: float, exclude_id: Optional[str] = None
):
    ensure_member(group, paid_by)
    ensure_member(group, paid_to)
    if paid_by == paid_to:
        raise SelfSettlement()
    balances = engine.calculate_balances(to_domain(group, exclude_settlement=exclude_id))
    owed = engine.owed_between(balances, paid_by, paid_to)
    if amount - owed > engine.EPSILON:
        log.info("settlement_rejected", group_id=group.id, paid_by=paid_by, paid_to=paid_to, amount=amount, owed=owed)
        raise OverSettlement(f"You cannot settle more than the owed amount ({owed:.2f} {group.base_currency}).")
