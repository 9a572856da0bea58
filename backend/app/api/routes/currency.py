"""Currency — manual exchange rates per tenant and amount conversion.

Invariants:
    - Rates are entered manually; nothing here calls a remote rate provider
    - Conversion uses the latest rate effective on or before the requested date,
      falling back to the inverse pair; identical currencies convert at 1.0
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_tenant
from app.config import get_settings
from app.core.currency import StoredRate, convert, latest_by_target, resolve_rate
from app.core.errors import BusinessRuleError, ValidationFailedError
from app.core.security import is_valid_currency_code
from app.core.tenant import TenantContext
from app.infrastructure.database import get_db
from app.models.exchange_rate import ExchangeRate
from app.schemas.banking import ConvertRequest, ExchangeRateCreate, ExchangeRateResponse
from app.schemas.common import dump
from app.services.activity_log import log_activity
from app.services.scoping import scoped_select, stamp_tenant

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/currency", tags=["currency"])


async def _stored_rates(
    db: AsyncSession, tenant: TenantContext, *currencies: str,
) -> list[StoredRate]:
    query = scoped_select(ExchangeRate, tenant)
    if currencies:
        query = query.where(
            ExchangeRate.base_currency.in_(currencies),
            ExchangeRate.target_currency.in_(currencies),
        )
    result = await db.execute(query)
    return [
        StoredRate(r.base_currency, r.target_currency, r.rate, r.effective_date)
        for r in result.scalars().all()
    ]


@router.get("/rates")
async def get_exchange_rates(
    base: str | None = Query(None),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    base_currency = (base or get_settings().base_currency).upper()
    if not is_valid_currency_code(base_currency):
        raise ValidationFailedError("Invalid currency code", field="base")
    latest = latest_by_target(await _stored_rates(db, tenant), base_currency)
    return {
        "data": {
            "base": base_currency,
            "rates": {
                target: {"rate": r.rate, "effective_date": r.effective_date.isoformat()}
                for target, r in sorted(latest.items())
            },
        },
    }


@router.post("/rates", status_code=status.HTTP_201_CREATED)
async def set_exchange_rate(
    body: ExchangeRateCreate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    rate = ExchangeRate(
        **stamp_tenant(tenant),
        base_currency=body.from_currency,
        target_currency=body.to_currency,
        rate=body.rate,
        effective_date=body.effective_date or date.today(),
        source="manual",
    )
    db.add(rate)
    await db.flush()
    log_activity(db, tenant, "exchange_rate_set", "exchange_rate", rate.id, {
        "pair": f"{rate.base_currency}/{rate.target_currency}", "rate": rate.rate,
    })
    await db.commit()
    return {"message": "Exchange rate set successfully", "data": dump(ExchangeRateResponse, rate)}


@router.post("/convert")
async def convert_amount(
    body: ConvertRequest,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    on_date = body.on_date or date.today()
    rates = await _stored_rates(db, tenant, body.from_currency, body.to_currency)
    rate = resolve_rate(rates, body.from_currency, body.to_currency, on_date)
    if rate is None:
        raise BusinessRuleError(
            "Exchange rate not available",
            code="EXCHANGE_RATE_UNAVAILABLE",
            details=[{"from": body.from_currency, "to": body.to_currency}],
        )
    return {
        "data": {
            "original_amount": body.amount,
            "converted_amount": convert(body.amount, rate),
            "rate": rate,
            "date": on_date.isoformat(),
            "from": body.from_currency,
            "to": body.to_currency,
        },
    }


@router.get("/supported")
async def get_supported_currencies(tenant: TenantContext = Depends(get_tenant)):
    settings = get_settings()
    return {
        "data": {
            "base_currency": settings.base_currency,
            "currencies": settings.supported_currencies,
        },
    }
