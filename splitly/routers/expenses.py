from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..database import get_db
from .. import models, schemas
from ..logs import get_logger
from ..services.finance import (
    check_expense, ensure_member, entered_shares, get_expense, get_group, normalize_expense, sync_participants, touch,
)
from ..services.splits import recalculate_shares, split_equal

router = APIRouter()
log = get_logger(__name__)


@router.get("", response_model=list[schemas.ExpenseOut])
def list_expenses(group_id: str, db: Session = Depends(get_db)):
    return get_group(db, group_id).expenses


@router.post("", response_model=schemas.ExpenseResult, status_code=201)
def add_expense(group_id: str, data: schemas.ExpenseIn, db: Session = Depends(get_db)):
    group = get_group(db, group_id)
    ensure_member(group, data.paid_by)
    shares = entered_shares(group, data.amount, data.split_type, data.participants)
    amount, original, shares, warnings = normalize_expense(db, group, data.amount, data.currency, shares)
    check_expense("new", data.paid_by, amount, data.split_type, shares)

    exp = models.Expense(
        title=data.title.strip(), amount=amount, original_amount=original, currency=data.currency,
        paid_by=data.paid_by, date=data.date, split_type=data.split_type, notes=data.notes,
    )
    for mid, share in shares.items():
        exp.participants.append(models.ExpenseParticipant(member_id=mid, amount=share))
    group.expenses.append(exp)
    touch(group)
    db.commit(); db.refresh(exp)
    log.info("expense_added", group_id=group_id, expense_id=exp.id, amount=amount, currency=data.currency,
             converted=original is not None)
    return {"expense": exp, "warnings": warnings}


@router.patch("/{expense_id}", response_model=schemas.ExpenseResult)
def update_expense(group_id: str, expense_id: str, data: schemas.ExpenseUpdate, db: Session = Depends(get_db)):
    group = get_group(db, group_id)
    exp = get_expense(group, expense_id)
    warnings: list[str] = []

    paid_by = data.paid_by or exp.paid_by
    ensure_member(group, paid_by)
    split_type = data.split_type or exp.split_type
    currency = data.currency or exp.currency
    entered = data.amount if data.amount is not None else (
        exp.original_amount if exp.original_amount is not None else exp.amount
    )
    money_changed = data.amount is not None or currency != exp.currency

    amount, original = exp.amount, exp.original_amount
    shares = {p.member_id: p.amount for p in exp.participants}
    if data.participants is not None:
        shares = entered_shares(group, entered, split_type, data.participants)
        amount, original, shares, warnings = normalize_expense(db, group, entered, currency, shares)
    elif money_changed:
        amount, original, _, warnings = normalize_expense(db, group, entered, currency, {})
        shares = recalculate_shares(shares, exp.amount, amount, split_type)
    elif split_type == "equal" and exp.split_type != "equal":
        shares = split_equal(exp.amount, list(shares))
    check_expense(exp.id, paid_by, amount, split_type, shares)

    if data.title is not None:
        exp.title = data.title.strip()
    if data.date is not None:
        exp.date = data.date
    if "notes" in data.model_fields_set:
        exp.notes = data.notes
    exp.paid_by = paid_by
    exp.split_type = split_type
    exp.currency = currency
    exp.amount = amount
    exp.original_amount = original
    sync_participants(exp, shares)
    touch(group)
    db.commit(); db.refresh(exp)
    log.info("expense_updated", group_id=group_id, expense_id=exp.id, amount=amount)
    return {"expense": exp, "warnings": warnings}


@router.delete("/{expense_id}", status_code=204)
def delete_expense(group_id: str, expense_id: str, db: Session = Depends(get_db)):
    group = get_group(db, group_id)
    exp = get_expense(group, expense_id)
    group.expenses.remove(exp)
    touch(group)
    db.commit()
    log.info("expense_deleted", group_id=group_id, expense_id=expense_id)
    return Response(status_code=204)
