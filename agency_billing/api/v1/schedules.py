"""/v1/payment-schedules - recurring obligation definitions"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from agency_billing.api.dependencies import get_agency_id
from agency_billing.api.v1.schemas import (
    GenerateMonthRequest,
    GenerationStatsResponse,
    ScheduleCreateRequest,
    ScheduleResponse,
    ScheduleUpdateRequest,
)
from agency_billing.config import settings
from agency_billing.domain.exceptions import NotFoundError
from agency_billing.domain.models import NewSchedule, ScheduleUpdate
from agency_billing.domain.validation import validate_new_schedule, validate_schedule_update
from agency_billing.infrastructure.database.repositories import ScheduleRepository
from agency_billing.infrastructure.database.session import get_db, unit_of_work
from agency_billing.services.generation import generate_payments_for_month

router = APIRouter()


@router.post("/payment-schedules", response_model=ScheduleResponse, status_code=201)
def create_schedule(
    body: ScheduleCreateRequest,
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    data = validate_new_schedule(NewSchedule(**body.model_dump()), settings.default_currency)
    with unit_of_work(db):
        schedule = ScheduleRepository(db).create_schedule(agency_id, data)
    return schedule


@router.get("/payment-schedules", response_model=List[ScheduleResponse])
def list_schedules(
    active: Optional[bool] = Query(None, description="Only active (true) or inactive (false) schedules"),
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    return ScheduleRepository(db).list_by_agency(agency_id, is_active=active)


@router.post("/payment-schedules/generate", response_model=GenerationStatsResponse)
def generate_month(
    body: GenerateMonthRequest,
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    """Create the given month's payment for every active schedule of the agency"""
    year, month = (int(part) for part in body.month.split("-"))
    stats = generate_payments_for_month(db, agency_id, year, month)
    return GenerationStatsResponse(
        month=body.month,
        schedules_processed=stats.schedules_processed,
        payments_created=stats.payments_created,
        payments_skipped=stats.payments_skipped,
        errors=stats.errors,
    )


@router.get("/payment-schedules/{schedule_id}", response_model=ScheduleResponse)
def get_schedule(
    schedule_id: uuid.UUID,
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    schedule = ScheduleRepository(db).get_schedule(agency_id, schedule_id)
    if schedule is None:
        raise NotFoundError("payment schedule", schedule_id)
    return schedule


@router.get("/contracts/{contract_id}/payment-schedules", response_model=List[ScheduleResponse])
def list_contract_schedules(
    contract_id: uuid.UUID,
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    return ScheduleRepository(db).list_by_contract(agency_id, contract_id)


@router.patch("/payment-schedules/{schedule_id}", response_model=ScheduleResponse)
def update_schedule(
    schedule_id: uuid.UUID,
    body: ScheduleUpdateRequest,
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    update = validate_schedule_update(ScheduleUpdate(**body.model_dump(exclude_unset=True)))
    with unit_of_work(db):
        schedule = ScheduleRepository(db).update_schedule(agency_id, schedule_id, update)
    return schedule


@router.post("/payment-schedules/{schedule_id}/toggle", response_model=ScheduleResponse)
def toggle_schedule(
    schedule_id: uuid.UUID,
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        schedule = ScheduleRepository(db).toggle_active(agency_id, schedule_id)
    return schedule


@router.delete("/payment-schedules/{schedule_id}", status_code=204)
def delete_schedule(
    schedule_id: uuid.UUID,
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        ScheduleRepository(db).delete_schedule(agency_id, schedule_id)
    return Response(status_code=204)
