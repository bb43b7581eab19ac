import datetime as dt
from typing import Annotated, Dict, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, Field, ConfigDict, EmailStr, field_validator

SplitType = Literal["equal", "custom"]
Currency = Annotated[str, Field(min_length=3, max_length=3, description="ISO code like INR, USD"), AfterValidator(str.upper)]


def _clean_name(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("Name cannot be blank")
    return v


class MemberIn(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    email: Optional[EmailStr] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _clean_name(v)


class MemberUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    email: Optional[EmailStr] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return _clean_name(v)


class MemberOut(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class GroupCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    base_currency: Currency = "USD"
    members: List[MemberIn] = Field(min_length=1)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _clean_name(v)


class GroupUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    base_currency: Optional[Currency] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return _clean_name(v)


class GroupOut(BaseModel):
    id: str
    name: str
    base_currency: str
    members: List[MemberOut]
    created_at: dt.datetime
    updated_at: dt.datetime
    model_config = ConfigDict(from_attributes=True)


class ParticipantIn(BaseModel):
    member_id: str
    amount: Optional[float] = Field(default=None, ge=0, description="Required for custom splits")


class ParticipantOut(BaseModel):
    member_id: str
    amount: float
    model_config = ConfigDict(from_attributes=True)


class ExpenseIn(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    amount: float = Field(gt=0)
    currency: Currency
    paid_by: str
    date: dt.date
    split_type: SplitType = "equal"
    participants: List[ParticipantIn] = Field(min_length=1)
    notes: Optional[str] = None


class ExpenseUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    amount: Optional[float] = Field(default=None, gt=0)
    currency: Optional[Currency] = None
    paid_by: Optional[str] = None
    date: Optional[dt.date] = None
    split_type: Optional[SplitType] = None
    participants: Optional[List[ParticipantIn]] = Field(default=None, min_length=1)
    notes: Optional[str] = None


class ExpenseOut(BaseModel):
    id: str
    group_id: str
    title: str
    amount: float
    original_amount: Optional[float] = None
    currency: str
    paid_by: str
    date: dt.date
    split_type: str
    participants: List[ParticipantOut]
    notes: Optional[str] = None
    created_at: dt.datetime
    model_config = ConfigDict(from_attributes=True)


class ExpenseResult(BaseModel):
    expense: ExpenseOut
    warnings: List[str] = []


class SettlementIn(BaseModel):
    paid_by: str
    paid_to: str
    amount: float = Field(gt=0)
    currency: Currency
    date: dt.date
    notes: Optional[str] = None


class SettlementUpdate(BaseModel):
    paid_by: Optional[str] = None
    paid_to: Optional[str] = None
    amount: Optional[float] = Field(default=None, gt=0)
    currency: Optional[Currency] = None
    date: Optional[dt.date] = None
    notes: Optional[str] = None


class SettlementOut(BaseModel):
    id: str
    group_id: str
    paid_by: str
    paid_to: str
    amount: float
    currency: str
    date: dt.date
    notes: Optional[str] = None
    created_at: dt.datetime
    model_config = ConfigDict(from_attributes=True)


class SettlementResult(BaseModel):
    settlement: SettlementOut
    warnings: List[str] = []


class BalanceOut(BaseModel):
    from_: str = Field(serialization_alias="from")
    to: str
    amount: float
    formatted: str


class MemberSummaryOut(BaseModel):
    member_id: str
    name: str
    paid: float
    owed: float
    net: float


class GroupSummaryOut(BaseModel):
    group_id: str
    base_currency: str
    total_spent: float
    members: List[MemberSummaryOut]
    settled: bool


class RateUpsert(BaseModel):
    rates: Dict[str, float] = Field(description="Units of each currency per one anchor-currency unit")

    @field_validator("rates")
    @classmethod
    def check_rates(cls, v: Dict[str, float]) -> Dict[str, float]:
        out = {}
        for code, rate in v.items():
            if len(code) != 3:
                raise ValueError(f"Invalid currency code {code!r}")
            if rate <= 0:
                raise ValueError(f"Rate for {code} must be positive")
            out[code.upper()] = rate
        return out


class RateTableOut(BaseModel):
    anchor: str
    rates: Dict[str, float]


class ConversionOut(BaseModel):
    amount: float
    source: str
    target: str
    converted: float
    rate: float
    formatted: str
