from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..database import get_db
from .. import models, schemas
from ..errors import ValidationFailed
from ..logs import get_logger
from ..services.currency import normalize
from ..services.finance import check_settlement, get_group, get_settlement, load_rates, touch

router = APIRouter()
log = get_logger(__name__)


@router.get("", response_model=list[schemas.SettlementOut])
def list_settlements(group_id: str, db: Session = Depends(get_db)):
    return get_group(db, group_id).settlements


@router.post("", response_model=schemas.SettlementResult, status_code=201)
def settle(group_id: str, data: schemas.SettlementIn, db: Session = Depends(get_db)):
    group = get_group(db, group_id)
    conv = normalize(data.amount, data.currency, group.base_currency, load_rates(db))
    check_settlement(group, data.paid_by, data.paid_to, conv.amount)

    s = models.Settlement(
        paid_by=data.paid_by, paid_to=data.paid_to, amount=conv.amount, currency=data.currency,
        date=data.date, notes=data.notes,
    )
    group.settlements.append(s)
    touch(group)
    db.commit(); db.refresh(s)
    log.info("settlement_added", group_id=group_id, settlement_id=s.id, amount=s.amount)
    return {"settlement": s, "warnings": [conv.warning] if conv.warning else []}


@router.patch("/{settlement_id}", response_model=schemas.SettlementResult)
def update_settlement(group_id: str, settlement_id: str, data: schemas.SettlementUpdate, db: Session = Depends(get_db)):
    group = get_group(db, group_id)
    s = get_settlement(group, settlement_id)
    if data.currency is not None and data.currency != s.currency and data.amount is None:
        raise ValidationFailed("Provide the amount together with a new currency")

    paid_by = data.paid_by or s.paid_by
    paid_to = data.paid_to or s.paid_to
    currency = data.currency or s.currency
    amount, warnings = s.amount, []
    if data.amount is not None:
        conv = normalize(data.amount, currency, group.base_currency, load_rates(db))
        amount = conv.amount
        warnings = [conv.warning] if conv.warning else []
    check_settlement(group, paid_by, paid_to, amount, exclude_id=s.id)

    s.paid_by, s.paid_to, s.currency, s.amount = paid_by, paid_to, currency, amount
    if data.date is not None:
        s.date = data.date
    if "notes" in data.model_fields_set:
        s.notes = data.notes
    touch(group)
    db.commit(); db.refresh(s)
    log.info("settlement_updated", group_id=group_id, settlement_id=s.id, amount=amount)
    return {"settlement": s, "warnings": warnings}


@router.delete("/{settlement_id}", status_code=204)
def delete_settlement(group_id: str, settlement_id: str, db: Session = Depends(get_db)):
    group = get_group(db, group_id)
    s = get_settlement(group, settlement_id)
    group.settlements.remove(s)
    touch(group)
    db.commit()
    log.info("settlement_deleted", group_id=group_id, settlement_id=settlement_id)
    return Response(status_code=204)
