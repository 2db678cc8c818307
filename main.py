from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, Response
from pydantic import ValidationError
from typing import List, Dict
from datetime import datetime
import logging
import os
import uuid

from models import (
    Participant, ParticipantCreate, Expense, ExpenseCreate, Balance,
    ParticipantStats, SettlementResult, Report
)
from settlement_optimizer import SettlementOptimizer, InvalidExpenseError
from storage import JsonStorage, STORAGE_KEYS
from validation import validate_participant_name, validate_expense
from reports import build_report, report_to_csv, report_to_text, report_to_pdf, report_to_png

# Configure logging
logging.basicConfig(level=os.getenv("DAMFAIR_LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

DATA_FILE = os.getenv("DAMFAIR_DATA_FILE")

app = FastAPI(
    title="DamFair API",
    description="Fair expense splitting, no drama",
    version="1.0.0"
)

# CORS middleware to allow frontend connections
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# ===== STORAGE =====
storage = JsonStorage(DATA_FILE)

participants_db: Dict[str, Participant] = {}
expenses_db: Dict[str, Expense] = {}

def load_data():
    """Fill the in-memory tables from storage, skipping records that no longer match the models"""
    participants_db.clear()
    expenses_db.clear()
    for item in storage.load(STORAGE_KEYS["participants"]) or []:
        try:
            participant = Participant(**item)
        except (ValidationError, TypeError) as e:
            logger.error(f"Skipping stored participant {item!r}: {e}")
            continue
        participants_db[participant.id] = participant
    for item in storage.load(STORAGE_KEYS["expenses"]) or []:
        try:
            expense = Expense(**item)
        except (ValidationError, TypeError) as e:
            logger.error(f"Skipping stored expense {item!r}: {e}")
            continue
        expenses_db[expense.id] = expense
    logger.info(f"Loaded {len(participants_db)} participants and {len(expenses_db)} expenses")

def save_participants():
    storage.save(STORAGE_KEYS["participants"], [p.model_dump(mode="json") for p in participants_db.values()])

def save_expenses():
    storage.save(STORAGE_KEYS["expenses"], [e.model_dump(mode="json") for e in expenses_db.values()])

def current_data():
    return list(participants_db.values()), list(expenses_db.values())

def run_optimizer():
    participants, expenses = current_data()
    try:
        return SettlementOptimizer.optimize_settlements(participants, expenses)
    except InvalidExpenseError as e:
        logger.error(f"Error calculating settlements: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error calculating settlements: {str(e)}")

load_data()

# ===== API ENDPOINTS =====
@app.get("/")
async def root():
    return {"message": "DamFair Expense Splitting API"}

@app.post("/participants/", response_model=Participant)
def create_participant(participant: ParticipantCreate):
    """Add a participant to the group"""
    error = validate_participant_name(participant.name, list(participants_db.values()))
    if error:
        raise HTTPException(status_code=400, detail=error)

    participant_id = uuid.uuid4().hex
    participants_db[participant_id] = Participant(id=participant_id, name=participant.name.strip())
    save_participants()
    logger.info(f"Added participant {participants_db[participant_id].name}")
    return participants_db[participant_id]

@app.get("/participants/", response_model=List[Participant])
async def list_participants():
    """List participants in the order they were added"""
    return list(participants_db.values())

@app.delete("/participants/{participant_id}", response_model=Participant)
def delete_participant(participant_id: str):
    """Remove a participant. Their expenses stay and their name is ignored in calculations"""
    if participant_id not in participants_db:
        raise HTTPException(status_code=404, detail="Participant not found")

    participant = participants_db.pop(participant_id)
    save_participants()
    logger.info(f"Removed participant {participant.name}")
    return participant

@app.post("/expenses/", response_model=Expense)
def create_expense(expense: ExpenseCreate):
    """Record a new expense split equally among the involved participants"""
    errors = validate_expense(expense)
    if errors:
        raise HTTPException(status_code=400, detail=errors)

    names = {p.name for p in participants_db.values()}

    # Validate that payer exists
    if expense.payer not in names:
        raise HTTPException(status_code=400, detail=[f"Participant {expense.payer} does not exist"])

    # Validate that all involved participants exist
    for name in expense.involved:
        if name not in names:
            raise HTTPException(status_code=400, detail=[f"Participant {name} does not exist"])

    expense_id = uuid.uuid4().hex
    expenses_db[expense_id] = Expense(
        id=expense_id,
        description=expense.description.strip(),
        amount=expense.amount,
        payer=expense.payer,
        involved=expense.involved,
        date=expense.date or datetime.now(),
    )
    save_expenses()
    logger.info(f"Added expense {expense_id}: {expense.amount} paid by {expense.payer}")
    return expenses_db[expense_id]

@app.get("/expenses/", response_model=List[Expense])
async def list_expenses():
    """List all expenses"""
    return list(expenses_db.values())

@app.get("/expenses/{expense_id}", response_model=Expense)
async def get_expense(expense_id: str):
    """Get expense details"""
    if expense_id not in expenses_db:
        raise HTTPException(status_code=404, detail="Expense not found")
    return expenses_db[expense_id]

@app.delete("/expenses/{expense_id}", response_model=Expense)
def delete_expense(expense_id: str):
    """Delete an expense"""
    if expense_id not in expenses_db:
        raise HTTPException(status_code=404, detail="Expense not found")

    expense = expenses_db.pop(expense_id)
    save_expenses()
    logger.info(f"Deleted expense {expense_id}")
    return expense

@app.get("/stats", response_model=List[ParticipantStats])
async def get_stats():
    """Paid, owed and net balance per participant"""
    return run_optimizer()["stats"]

@app.get("/balances", response_model=List[Balance])
async def get_balances():
    """Net balance per participant (positive means the group owes them)"""
    return run_optimizer()["balances"]

@app.get("/settlements", response_model=SettlementResult)
async def get_settlements():
    """Calculate the settlement plan for the group"""
    result = run_optimizer()
    return {
        "balances": result["balances"],
        "optimal_settlements": result["optimal_settlements"]
    }

def current_report() -> Report:
    participants, expenses = current_data()
    try:
        return build_report(participants, expenses)
    except InvalidExpenseError as e:
        logger.error(f"Error building report: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error building report: {str(e)}")

@app.get("/report", response_model=Report)
async def get_report():
    """Full report with summary, balances, settlements and per-participant stats"""
    return current_report()

@app.get("/export/csv", response_class=PlainTextResponse)
async def export_csv():
    return PlainTextResponse(
        report_to_csv(current_report()),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=damfair-report.csv"}
    )

@app.get("/export/text", response_class=PlainTextResponse)
async def export_text():
    return PlainTextResponse(
        report_to_text(current_report()),
        headers={"Content-Disposition": "attachment; filename=damfair-report.txt"}
    )

@app.get("/export/pdf")
def export_pdf():
    return Response(
        report_to_pdf(current_report()),
        media_type="application/pdf",
        headers={"Content-Disposition": "attachment; filename=damfair-report.pdf"}
    )

@app.get("/export/image")
def export_image():
    return Response(
        report_to_png(current_report()),
        media_type="image/png",
        headers={"Content-Disposition": "attachment; filename=damfair-report.png"}
    )

@app.delete("/reset")
def reset_all():
    """Clear all participants and expenses"""
    participants_db.clear()
    expenses_db.clear()
    storage.clear()
    logger.info("Cleared all participants and expenses")
    return {"message": "All data cleared"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=os.getenv("DAMFAIR_HOST", "0.0.0.0"), port=int(os.getenv("DAMFAIR_PORT", "8000")))
