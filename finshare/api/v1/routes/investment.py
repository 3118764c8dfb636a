from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends

from finshare.core.dependencies import get_current_user, get_settings
from finshare.core.exceptions import ValidationError
from finshare.schemas.investment import InvestmentRecommendation
from finshare.services.investment_services import estimate_available_funds, generate_investment_recommendations

router = APIRouter()


@router.get("/recommendations", response_model=list[InvestmentRecommendation])
async def recommendations(
    available_funds: Optional[Decimal] = None,
    monthly_income: Optional[Decimal] = None,
    current_user = Depends(get_current_user),
    settings = Depends(get_settings)
):
    if available_funds is None:
        if monthly_income is None:
            raise ValidationError("Provide available_funds or monthly_income",
                                  operation="generate_investment_recommendations", entity="available_funds")
        available_funds = estimate_available_funds(monthly_income, settings.INVESTABLE_INCOME_RATIO)

    return generate_investment_recommendations(available_funds, settings.MONTHLY_EXPENSE_ESTIMATE)
