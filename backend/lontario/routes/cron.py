from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lontario.core.database import get_db
from lontario.dependencies.ai import get_notifier
from lontario.dependencies.cron import require_cron_secret
from lontario.schemas.interview import ReminderSweepOut, StatusSweepOut
from lontario.services.interview_sweeps import InterviewStatusSweeper, ReminderSweeper
from lontario.services.notifications import Notifier


router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(require_cron_secret)])


@router.post("/interview-status", response_model=StatusSweepOut)
def run_interview_status_sweep(
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    result = InterviewStatusSweeper(db, notifier=notifier).run()
    return StatusSweepOut(**vars(result))


@router.post("/interview-reminders", response_model=ReminderSweepOut)
def run_interview_reminder_sweep(
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    result = ReminderSweeper(db, notifier=notifier).run()
    return ReminderSweepOut(**vars(result))
