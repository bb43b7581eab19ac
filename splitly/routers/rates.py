from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import get_db
from .. import models, schemas
from ..errors import ValidationFailed
from ..logs import get_logger
from ..services.currency import convert, exchange_rate, format_currency
from ..services.finance import load_rates

router = APIRouter()
log = get_logger(__name__)


@router.get("", response_model=schemas.RateTableOut)
def read_rates(db: Session = Depends(get_db)):
    return {"anchor": get_settings().anchor_currency, "rates": load_rates(db)}


@router.put("", response_model=schemas.RateTableOut)
def upsert_rates(data: schemas.RateUpsert, db: Session = Depends(get_db)):
    anchor = get_settings().anchor_currency
    if anchor in data.rates and data.rates[anchor] != 1.0:
        raise ValidationFailed(f"The anchor currency {anchor} is fixed at a rate of 1.0")
    for code, rate in data.rates.items():
        fx = db.get(models.CurrencyRate, code)
        if fx:
            fx.rate = rate
        else:
            db.add(models.CurrencyRate(code=code, rate=rate))
    db.commit()
    log.info("rates_upserted", codes=sorted(data.rates))
    return {"anchor": get_settings().anchor_currency, "rates": load_rates(db)}


@router.get("/convert", response_model=schemas.ConversionOut)
def convert_amount(
    amount: float = Query(gt=0),
    source: str = Query(min_length=3, max_length=3),
    target: str = Query(min_length=3, max_length=3),
    db: Session = Depends(get_db),
):
    source, target = source.upper(), target.upper()
    rates = load_rates(db)
    converted = convert(amount, source, target, rates)
    return {
        "amount": amount,
        "source": source,
        "target": target,
        "converted": converted,
        "rate": exchange_rate(source, target, rates),
        "formatted": format_currency(converted, target),
    }
