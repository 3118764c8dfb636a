from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from typing import List

from finshare.core.utils import CENTS, qround, to_decimal, to_money
from finshare.schemas.investment import InvestmentRecommendation

MONTHLY_EXPENSE_ESTIMATE = Decimal("40000")
EMERGENCY_MONTHS = 3
# Below this nothing is worth splitting across instruments.
MINIMUM_INVESTABLE_FUNDS = Decimal("5000")


def _floor_cents(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_DOWN)


def _percentage(allocation: Decimal, available: Decimal) -> int:
    return int((allocation / available * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _recommendation(name, description, allocation, available, risk_level, return_rate,
                    instrument, priority) -> InvestmentRecommendation:
    return InvestmentRecommendation(
        name=name,
        description=description,
        allocation=allocation,
        percentage=_percentage(allocation, available),
        risk_level=risk_level,
        return_rate=return_rate,
        instrument=instrument,
        priority=priority,
    )


def generate_investment_recommendations(
    available_funds,
    monthly_expense_estimate=MONTHLY_EXPENSE_ESTIMATE,
) -> List[InvestmentRecommendation]:
    # Each step takes its slice of what is still unallocated; [] below 5,000.
    available = _floor_cents(to_decimal(available_funds, "generate_investment_recommendations",
                                        "available_funds"))
    if available < MINIMUM_INVESTABLE_FUNDS:
        return []

    monthly = to_money(monthly_expense_estimate, "generate_investment_recommendations",
                       "monthly_expense_estimate")
    recommendations = []
    remaining = available

    # 1. Emergency fund, only if worth at least 5,000
    emergency = _floor_cents(min(remaining * Decimal("0.3"), monthly * EMERGENCY_MONTHS))
    if emergency >= Decimal("5000"):
        recommendations.append(_recommendation(
            "Emergency Fund",
            "High-liquidity savings for unexpected expenses",
            emergency, available,
            "Very Low", "4-6%", "High-yield Savings Account", "High",
        ))
        remaining -= emergency

    # 2. SIP
    if remaining >= Decimal("5000"):
        sip = _floor_cents(min(remaining * Decimal("0.4"), Decimal("25000")))
        recommendations.append(_recommendation(
            "SIP Investment",
            "Systematic Investment Plan in equity mutual funds",
            sip, available,
            "Medium", "10-14%", "HDFC Mid-Cap Opportunities Fund", "Medium",
        ))
        remaining -= sip

    # 3. Blue-chip stocks
    if remaining >= Decimal("10000"):
        stocks = _floor_cents(min(remaining * Decimal("0.5"), Decimal("50000")))
        recommendations.append(_recommendation(
            "Blue-chip Stocks",
            "Diversified portfolio of established companies",
            stocks, available,
            "Medium-High", "12-18%", "HDFC Bank, Infosys, Reliance", "Medium",
        ))
        remaining -= stocks

    # 4. Fixed deposit takes the rest
    if remaining >= Decimal("1000"):
        recommendations.append(_recommendation(
            "Fixed Deposit",
            "Fixed term deposit with guaranteed returns",
            remaining, available,
            "Low", "5-7%", "SBI Fixed Deposit (1 year)", "Low",
        ))

    return recommendations


def estimate_available_funds(monthly_income, ratio=Decimal("0.1")) -> Decimal:
    income = to_money(monthly_income, "estimate_available_funds", "monthly_income")
    if income <= 0:
        return Decimal("0.00")
    return qround(income * Decimal(str(ratio)))
