from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from .. import schemas
from ..services.currency import format_currency
from ..services.engine import calculate_balances, summarize_members, total_spent
from ..services.finance import get_group, to_domain

router = APIRouter()


@router.get("", response_model=list[schemas.BalanceOut])
def get_balances(group_id: str, db: Session = Depends(get_db)):
    group = get_group(db, group_id)
    return [
        schemas.BalanceOut(
            from_=b.from_id, to=b.to_id, amount=round(b.amount, 2),
            formatted=format_currency(b.amount, group.base_currency),
        )
        for b in calculate_balances(to_domain(group))
    ]


@router.get("/summary", response_model=schemas.GroupSummaryOut)
def get_balance_summary(group_id: str, db: Session = Depends(get_db)):
    group = get_group(db, group_id)
    snapshot = to_domain(group)
    names = {m.id: m.name for m in snapshot.members}
    members = [
        schemas.MemberSummaryOut(
            member_id=s.member_id, name=names[s.member_id],
            paid=round(s.paid, 2), owed=round(s.owed, 2), net=round(s.net, 2),
        )
        for s in summarize_members(snapshot)
    ]
    return schemas.GroupSummaryOut(
        group_id=group.id,
        base_currency=group.base_currency,
        total_spent=round(total_spent(snapshot), 2),
        members=members,
        settled=not calculate_balances(snapshot),
    )
