"""FastAPI web application for Rhythm."""

import os
import uuid
from contextlib import asynccontextmanager
from datetime import date, time
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from rhythm.api.dependencies import get_bus, get_household
from rhythm.api.schemas import (
    AwayStartRequest,
    CareBlockCreateRequest,
    CareBlockUpdateRequest,
    ChildCreateRequest,
    ChildUpdateRequest,
    LogUpdateRequest,
    NapScheduleCreateRequest,
    SleepStartRequest,
    TransitionCheckResponse,
)
from rhythm.database.database import init_db
from rhythm.engine.household import Household
from rhythm.models.availability import AvailabilitySnapshot, AvailabilityState
from rhythm.models.care_block import CareBlock
from rhythm.models.care_log import AwayLog, SleepLog
from rhythm.models.child import Child
from rhythm.models.nap_schedule import NapSchedule
from rhythm.models.transition import PendingTransition
from rhythm.scheduler import start_scheduler, stop_scheduler


def _scan_enabled() -> bool:
    return os.getenv("TRANSITION_SCAN_ENABLED", "True").lower() == "true"


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if _scan_enabled():
        start_scheduler(bus=get_bus())
    try:
        yield
    finally:
        stop_scheduler()


app = FastAPI(
    title="Rhythm API",
    description="Tracks children's sleep, absences and care arrangements, and tells you what you can do right now",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    # Pydantic ValidationError is a ValueError too.
    return JSONResponse(status_code=422, content={"detail": str(exc)})


def _require_child(household: Household, child_id: str) -> Child:
    child = household.children.get(child_id)
    if child is None:
        raise HTTPException(status_code=404, detail="Child not found")
    return child


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# -- children ---------------------------------------------------------------

@app.get("/children", response_model=List[Child])
def list_children(household: Household = Depends(get_household)):
    return household.children.list()


@app.post("/children", response_model=Child, status_code=201)
def create_child(request: ChildCreateRequest, household: Household = Depends(get_household)):
    child = Child(id=str(uuid.uuid4()), **request.model_dump())
    return household.children.add(child)


@app.get("/children/{child_id}", response_model=Child)
def get_child(child_id: str, household: Household = Depends(get_household)):
    return _require_child(household, child_id)


@app.patch("/children/{child_id}", response_model=Child)
def update_child(child_id: str, request: ChildUpdateRequest, household: Household = Depends(get_household)):
    child = _require_child(household, child_id)
    updated = Child.model_validate({**child.model_dump(), **request.model_dump(exclude_unset=True)})
    return household.children.update(updated)


@app.delete("/children/{child_id}", status_code=204)
def delete_child(child_id: str, household: Household = Depends(get_household)):
    if not household.children.remove(child_id):
        raise HTTPException(status_code=404, detail="Child not found")


# -- care blocks ------------------------------------------------------------

@app.get("/care-blocks", response_model=List[CareBlock])
def list_care_blocks(household: Household = Depends(get_household)):
    return household.care_blocks.list()


@app.post("/care-blocks", response_model=CareBlock, status_code=201)
def create_care_block(request: CareBlockCreateRequest, household: Household = Depends(get_household)):
    block = CareBlock(id=str(uuid.uuid4()), **request.model_dump())
    return household.care_blocks.add(block)


@app.get("/care-blocks/active", response_model=List[CareBlock])
def active_care_blocks(household: Household = Depends(get_household)):
    """Blocks in effect right now, travel buffers included."""
    return household.care_blocks.active_now()


@app.get("/care-blocks/on/{on_date}", response_model=List[CareBlock])
def care_blocks_on(on_date: date, household: Household = Depends(get_household)):
    return household.care_blocks.active_on(on_date)


@app.get("/care-blocks/{block_id}")
def get_care_block(block_id: str, household: Household = Depends(get_household)):
    block = household.care_blocks.get(block_id)
    if block is None:
        raise HTTPException(status_code=404, detail="Care block not found")
    leave_by = household.care_blocks.leave_by_time(block)
    return_at = household.care_blocks.return_time(block)
    return {
        "block": block,
        "leave_by": leave_by.strftime("%H:%M") if leave_by else None,
        "return_time": return_at.strftime("%H:%M") if return_at else None,
    }


@app.patch("/care-blocks/{block_id}", response_model=CareBlock)
def update_care_block(block_id: str, request: CareBlockUpdateRequest, household: Household = Depends(get_household)):
    updated = household.care_blocks.update(block_id, **request.model_dump(exclude_unset=True))
    if updated is None:
        raise HTTPException(status_code=404, detail="Care block not found")
    return updated


@app.delete("/care-blocks/{block_id}", status_code=204)
def delete_care_block(block_id: str, household: Household = Depends(get_household)):
    if not household.care_blocks.remove(block_id):
        raise HTTPException(status_code=404, detail="Care block not found")


# -- nap schedules ----------------------------------------------------------

@app.get("/nap-schedules", response_model=List[NapSchedule])
def list_nap_schedules(child_id: Optional[str] = None, household: Household = Depends(get_household)):
    if child_id:
        return household.nap_schedules.list_for_child(child_id)
    return household.nap_schedules.list()


@app.post("/nap-schedules", response_model=NapSchedule, status_code=201)
def create_nap_schedule(request: NapScheduleCreateRequest, household: Household = Depends(get_household)):
    _require_child(household, request.child_id)
    schedule = NapSchedule(id=str(uuid.uuid4()), **request.model_dump())
    return household.nap_schedules.add(schedule)


@app.delete("/nap-schedules/{schedule_id}", status_code=204)
def delete_nap_schedule(schedule_id: str, household: Household = Depends(get_household)):
    if not household.nap_schedules.remove(schedule_id):
        raise HTTPException(status_code=404, detail="Nap schedule not found")


# -- sleep and away ---------------------------------------------------------

@app.post("/children/{child_id}/sleep/start", response_model=SleepLog, status_code=201)
def start_sleep(child_id: str, request: SleepStartRequest, household: Household = Depends(get_household)):
    _require_child(household, child_id)
    return household.sleep_logs.start(child_id, request.sleep_type, at=request.started_at)


@app.post("/children/{child_id}/sleep/end", response_model=SleepLog)
def end_sleep(child_id: str, household: Household = Depends(get_household)):
    _require_child(household, child_id)
    log = household.sleep_logs.end(child_id)
    if log is None:
        raise HTTPException(status_code=404, detail="No open sleep log for child")
    return log


@app.get("/children/{child_id}/sleep/active", response_model=Optional[SleepLog])
def active_sleep(child_id: str, household: Household = Depends(get_household)):
    _require_child(household, child_id)
    return household.sleep_logs.active_for(child_id)


@app.post("/children/{child_id}/away/start", response_model=AwayLog, status_code=201)
def start_away(child_id: str, request: AwayStartRequest, household: Household = Depends(get_household)):
    _require_child(household, child_id)
    return household.away_logs.start(child_id, request.label, at=request.started_at)


@app.post("/children/{child_id}/away/end", response_model=AwayLog)
def end_away(child_id: str, household: Household = Depends(get_household)):
    _require_child(household, child_id)
    log = household.away_logs.end(child_id)
    if log is None:
        raise HTTPException(status_code=404, detail="No open away log for child")
    return log


@app.get("/children/{child_id}/away/active", response_model=Optional[AwayLog])
def active_away(child_id: str, household: Household = Depends(get_household)):
    _require_child(household, child_id)
    return household.away_logs.active_for(child_id)


@app.get("/sleep-logs", response_model=List[SleepLog])
def list_sleep_logs(on_date: Optional[date] = Query(None, alias="date"), household: Household = Depends(get_household)):
    """Sleep entries touching a date (all entries without one)."""
    if on_date is None:
        return household.sleep_logs.list_all()
    return household.sleep_logs.logs_overlapping(on_date)


@app.patch("/sleep-logs/{log_id}", response_model=SleepLog)
def update_sleep_log(log_id: str, request: LogUpdateRequest, household: Household = Depends(get_household)):
    updated = household.sleep_logs.update(log_id, **request.model_dump(exclude_unset=True))
    if updated is None:
        raise HTTPException(status_code=404, detail="Sleep log not found")
    return updated


@app.delete("/sleep-logs/{log_id}", status_code=204)
def delete_sleep_log(log_id: str, household: Household = Depends(get_household)):
    if not household.sleep_logs.delete(log_id):
        raise HTTPException(status_code=404, detail="Sleep log not found")


@app.get("/away-logs", response_model=List[AwayLog])
def list_away_logs(on_date: Optional[date] = Query(None, alias="date"), household: Household = Depends(get_household)):
    if on_date is None:
        return household.away_logs.list_all()
    return household.away_logs.logs_overlapping(on_date)


@app.patch("/away-logs/{log_id}", response_model=AwayLog)
def update_away_log(log_id: str, request: LogUpdateRequest, household: Household = Depends(get_household)):
    updated = household.away_logs.update(log_id, **request.model_dump(exclude_unset=True))
    if updated is None:
        raise HTTPException(status_code=404, detail="Away log not found")
    return updated


@app.delete("/away-logs/{log_id}", status_code=204)
def delete_away_log(log_id: str, household: Household = Depends(get_household)):
    if not household.away_logs.delete(log_id):
        raise HTTPException(status_code=404, detail="Away log not found")


# -- availability -----------------------------------------------------------

@app.get("/availability", response_model=AvailabilitySnapshot)
def current_availability(household: Household = Depends(get_household)):
    return household.availability.snapshot()


@app.get("/availability/at")
def availability_at(
    on_date: date = Query(..., alias="date"),
    at: time = Query(..., alias="time"),
    household: Household = Depends(get_household),
):
    """Block-based availability for any date and time."""
    state: AvailabilityState = household.availability.availability_at(on_date, at)
    return {"date": on_date, "time": at.strftime("%H:%M"), "state": state.value}


# -- transitions ------------------------------------------------------------

@app.get("/transitions/pending", response_model=List[PendingTransition])
def pending_transitions(household: Household = Depends(get_household)):
    return household.detector.pending_transitions()


@app.post("/transitions/check", response_model=TransitionCheckResponse)
def check_transitions(household: Household = Depends(get_household)):
    """Run a transition scan now (the app also scans on a timer)."""
    created = household.detector.check_for_transitions()
    return TransitionCheckResponse(
        created=created,
        pending=household.detector.pending_transitions(),
        checked_at=household.detector.last_checked_at,
    )


def _resolve_transition(household: Household, transition_id: str, action) -> PendingTransition:
    if household.transition_store.get(transition_id) is None:
        raise HTTPException(status_code=404, detail="Transition not found")
    resolved = action(transition_id)
    if resolved is None:
        raise HTTPException(status_code=409, detail="Transition is no longer pending")
    return resolved


@app.post("/transitions/{transition_id}/confirm", response_model=PendingTransition)
def confirm_transition(transition_id: str, household: Household = Depends(get_household)):
    return _resolve_transition(household, transition_id, household.detector.confirm)


@app.post("/transitions/{transition_id}/dismiss", response_model=PendingTransition)
def dismiss_transition(transition_id: str, household: Household = Depends(get_household)):
    return _resolve_transition(household, transition_id, household.detector.dismiss)
