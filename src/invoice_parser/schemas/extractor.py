"""Response schemas of the external PDF extraction service.

The service answers ``POST /parse/<layout>`` with JSON like::

    {"bank": "ITAU_PERSONNALITE", "dueDate": "2025-12-01", "total": 3760.96,
     "transactions": [{"date": "2025-11-17", "description": "ALLIANZ SEGU",
                       "amount": 188.39, "cardFinal": "8578",
                       "installment": {"current": 9, "total": 10}}]}

Unknown keys are ignored; every field is optional because the service
is not under our control.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class ExtractorInstallment(BaseModel):
    model_config = ConfigDict(extra="ignore")

    current: int | None = None
    total: int | None = None


class ExtractorTransaction(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    date: str | None = Field(None, description="ISO date (some versions send dd/mm or dd/mm/yyyy)")
    description: str | None = None
    amount: Decimal | None = Field(None, description="Signed amount; negative means credit")
    card_final: str | None = Field(None, alias="cardFinal")
    installment: ExtractorInstallment | None = None


class ExtractorResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    bank: str | None = None
    due_date: str | None = Field(None, alias="dueDate")
    total: Decimal | None = None
    transactions: list[ExtractorTransaction] = Field(default_factory=list)
