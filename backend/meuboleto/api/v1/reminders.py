from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from meuboleto.core.auth import CurrentUser, get_current_user
from meuboleto.core.dependencies import get_db
from meuboleto.services import bill_store
from meuboleto.services.reminders import Reminder, due_reminders, send_reminders
from meuboleto.services.settings_repository import SqlSettingsRepository

router = APIRouter()


class ReminderOut(BaseModel):
    bill_id: str
    beneficiary: str
    amount: float
    due_date: date
    days_until_due: int
    message: str


class ReminderListResponse(BaseModel):
    reminders: list[ReminderOut]


class ReminderSendResponse(BaseModel):
    reminders: int
    sent: int
    failed: int
    skipped_channels: list[str]


def _out(reminder: Reminder) -> ReminderOut:
    return ReminderOut(
        bill_id=reminder.bill_id,
        beneficiary=reminder.beneficiary,
        amount=float(reminder.amount),
        due_date=reminder.due_date,
        days_until_due=reminder.days_until_due,
        message=reminder.message,
    )


@router.get("/reminders", response_model=ReminderListResponse)
def preview_reminders(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    preferences = SqlSettingsRepository(db).load(current_user.id)
    reminders = due_reminders(bill_store.list_for_owner(db, current_user.id), preferences, date.today())
    return ReminderListResponse(reminders=[_out(r) for r in reminders])


@router.post("/reminders/send", response_model=ReminderSendResponse)
def dispatch_reminders(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    preferences = SqlSettingsRepository(db).load(current_user.id)
    reminders = due_reminders(bill_store.list_for_owner(db, current_user.id), preferences, date.today())
    report = send_reminders(reminders, preferences)
    return ReminderSendResponse(
        reminders=len(reminders),
        sent=report.sent,
        failed=report.failed,
        skipped_channels=sorted(set(report.skipped_channels)),
    )
