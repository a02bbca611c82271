from typing import List

from fastapi import APIRouter, Depends

from core.dependencies import get_scheduler
from core.reminders import ReminderScheduler
from schemas.reports import Reminder

router = APIRouter()


@router.get("/", response_model=List[Reminder])
async def list_reminders(scheduler: ReminderScheduler = Depends(get_scheduler)):
    """Reminders as of the scheduler's last tick (or last customer change)."""
    return scheduler.reminders
