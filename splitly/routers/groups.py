from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..database import get_db
from .. import models, schemas
from ..errors import MemberInUse, ValidationFailed
from ..logs import get_logger
from ..services.finance import ensure_unique_name, get_group, get_member, member_is_referenced, touch

router = APIRouter()
log = get_logger(__name__)


@router.post("", response_model=schemas.GroupOut, status_code=201)
def create_group(data: schemas.GroupCreate, db: Session = Depends(get_db)):
    names = [m.name.lower() for m in data.members]
    if len(set(names)) != len(names):
        raise ValidationFailed("Duplicate member names are not allowed")
    g = models.Group(name=data.name, base_currency=data.base_currency)
    for pos, m in enumerate(data.members):
        g.members.append(models.Member(name=m.name, email=m.email, position=pos))
    db.add(g)
    db.commit()
    db.refresh(g)
    log.info("group_created", group_id=g.id, members=len(g.members), base_currency=g.base_currency)
    return g


@router.get("", response_model=list[schemas.GroupOut])
def list_groups(db: Session = Depends(get_db)):
    return db.query(models.Group).order_by(models.Group.created_at).all()


@router.get("/{group_id}", response_model=schemas.GroupOut)
def read_group(group_id: str, db: Session = Depends(get_db)):
    return get_group(db, group_id)


@router.patch("/{group_id}", response_model=schemas.GroupOut)
def update_group(group_id: str, data: schemas.GroupUpdate, db: Session = Depends(get_db)):
    g = get_group(db, group_id)
    if data.base_currency is not None and data.base_currency != g.base_currency:
        # stored amounts are already in the old base currency
        if g.expenses or g.settlements:
            raise ValidationFailed("Base currency can only change while the group has no expenses or settlements")
        g.base_currency = data.base_currency
    if data.name is not None:
        g.name = data.name
    touch(g)
    db.commit(); db.refresh(g)
    return g


@router.delete("/{group_id}", status_code=204)
def delete_group(group_id: str, db: Session = Depends(get_db)):
    g = get_group(db, group_id)
    db.delete(g)
    db.commit()
    log.info("group_deleted", group_id=group_id)
    return Response(status_code=204)


@router.post("/{group_id}/members", response_model=schemas.MemberOut, status_code=201)
def add_member(group_id: str, member: schemas.MemberIn, db: Session = Depends(get_db)):
    g = get_group(db, group_id)
    ensure_unique_name(g, member.name)
    position = max((m.position for m in g.members), default=-1) + 1
    m = models.Member(name=member.name, email=member.email, position=position)
    g.members.append(m)
    touch(g)
    db.commit(); db.refresh(m)
    log.info("member_added", group_id=group_id, member_id=m.id)
    return m


@router.patch("/{group_id}/members/{member_id}", response_model=schemas.MemberOut)
def update_member(group_id: str, member_id: str, data: schemas.MemberUpdate, db: Session = Depends(get_db)):
    g = get_group(db, group_id)
    m = get_member(g, member_id)
    if data.name is not None:
        ensure_unique_name(g, data.name, exclude_id=member_id)
        m.name = data.name
    if "email" in data.model_fields_set:
        m.email = data.email
    touch(g)
    db.commit(); db.refresh(m)
    return m


@router.delete("/{group_id}/members/{member_id}", status_code=204)
def remove_member(group_id: str, member_id: str, db: Session = Depends(get_db)):
    g = get_group(db, group_id)
    m = get_member(g, member_id)
    if member_is_referenced(g, member_id):
        log.info("member_removal_blocked", group_id=group_id, member_id=member_id)
        raise MemberInUse()
    if len(g.members) == 1:
        raise ValidationFailed("A group must have at least 1 member")
    g.members.remove(m)
    touch(g)
    db.commit()
    log.info("member_removed", group_id=group_id, member_id=member_id)
    return Response(status_code=204)
