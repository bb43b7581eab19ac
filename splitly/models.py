import datetime as dt
import uuid
from typing import List, Optional

from sqlalchemy import String, ForeignKey, Float, Date, DateTime, Integer, UniqueConstraint, CheckConstraint, Text
from sqlalchemy.orm import relationship, Mapped, mapped_column

from .database import Base


def new_id() -> str:
    return uuid.uuid4().hex


class Group(Base):
    __tablename__ = "groups"
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    base_currency: Mapped[str] = mapped_column(String(3), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow, onupdate=dt.datetime.utcnow)

    members: Mapped[List["Member"]] = relationship(
        back_populates="group", cascade="all, delete-orphan", order_by="Member.position"
    )
    expenses: Mapped[List["Expense"]] = relationship(
        back_populates="group", cascade="all, delete-orphan", order_by="Expense.created_at"
    )
    settlements: Mapped[List["Settlement"]] = relationship(
        back_populates="group", cascade="all, delete-orphan", order_by="Settlement.created_at"
    )


class Member(Base):
    __tablename__ = "members"
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    group_id: Mapped[str] = mapped_column(ForeignKey("groups.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    group: Mapped[Group] = relationship(back_populates="members")


class CurrencyRate(Base):
    __tablename__ = "currency_rates"
    code: Mapped[str] = mapped_column(String(3), primary_key=True)
    rate: Mapped[float] = mapped_column(Float, nullable=False)
    as_of: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow, onupdate=dt.datetime.utcnow)
    __table_args__ = (CheckConstraint("rate > 0", name="ck_rate_positive"),)


class Expense(Base):
    __tablename__ = "expenses"
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    group_id: Mapped[str] = mapped_column(ForeignKey("groups.id", ondelete="CASCADE"), index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    original_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    paid_by: Mapped[str] = mapped_column(ForeignKey("members.id"), index=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    split_type: Mapped[str] = mapped_column(String(10), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)

    group: Mapped[Group] = relationship(back_populates="expenses")
    payer: Mapped[Member] = relationship(foreign_keys=[paid_by])
    participants: Mapped[List["ExpenseParticipant"]] = relationship(
        back_populates="expense", cascade="all, delete-orphan", order_by="ExpenseParticipant.id"
    )


class ExpenseParticipant(Base):
    __tablename__ = "expense_participants"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    expense_id: Mapped[str] = mapped_column(ForeignKey("expenses.id", ondelete="CASCADE"), index=True)
    member_id: Mapped[str] = mapped_column(ForeignKey("members.id"), index=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    __table_args__ = (UniqueConstraint("expense_id", "member_id", name="uq_participant"),)

    expense: Mapped[Expense] = relationship(back_populates="participants")
    member: Mapped[Member] = relationship()


class Settlement(Base):
    __tablename__ = "settlements"
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    group_id: Mapped[str] = mapped_column(ForeignKey("groups.id", ondelete="CASCADE"), index=True)
    paid_by: Mapped[str] = mapped_column(ForeignKey("members.id"), index=True)
    paid_to: Mapped[str] = mapped_column(ForeignKey("members.id"), index=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)
    __table_args__ = (CheckConstraint("paid_by <> paid_to", name="ck_not_self"),)

    group: Mapped[Group] = relationship(back_populates="settlements")
    payer: Mapped[Member] = relationship(foreign_keys=[paid_by])
    recipient: Mapped[Member] = relationship(foreign_keys=[paid_to])
