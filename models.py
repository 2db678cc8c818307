from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Dict
from datetime import datetime

class ParticipantCreate(BaseModel):
    name: str = Field(..., description="Display name of the participant")

class Participant(BaseModel):
    id: str
    name: str

class ExpenseCreate(BaseModel):
    description: str = Field("", description="What the money was spent on")
    amount: float = Field(0, description="Total amount paid")
    payer: str = Field("", description="Name of the participant who paid")
    involved: List[str] = Field(default_factory=list, description="Names of the participants sharing the expense")
    date: Optional[datetime] = Field(None, description="When the expense happened, defaults to now")

class Expense(BaseModel):
    id: str
    description: str
    amount: float
    payer: str
    involved: List[str]
    date: datetime

class Balance(BaseModel):
    name: str
    amount: float

class Settlement(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(..., alias="from")
    to: str
    amount: float

class ParticipantStats(BaseModel):
    name: str
    total_paid: float
    total_owed: float
    net_balance: float

class SettlementResult(BaseModel):
    balances: List[Balance]
    optimal_settlements: List[Settlement]

class ReportSummary(BaseModel):
    total_participants: int
    total_expenses: int
    total_amount: float
    total_settlements: int

class ReportExpense(BaseModel):
    description: str
    amount: float
    payer: str
    involved: List[str]
    date: str
    share_per_person: float

class Report(BaseModel):
    title: str
    generated_at: str
    summary: ReportSummary
    participants: List[Dict[str, str]]
    expenses: List[ReportExpense]
    balances: List[Balance]
    settlements: List[Settlement]
    detailed_stats: List[ParticipantStats]
