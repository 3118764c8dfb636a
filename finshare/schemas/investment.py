from decimal import Decimal

from pydantic import BaseModel


class InvestmentRecommendation(BaseModel):
    name: str
    description: str
    allocation: Decimal
    percentage: int
    risk_level: str
    return_rate: str
    instrument: str
    priority: str
