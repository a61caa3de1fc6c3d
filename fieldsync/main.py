from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

import requests
from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from fieldsync import utility_api
from fieldsync.config import settings
from fieldsync.db import SessionLocal
from fieldsync.models import (
    IncidentType,
    MeterReadingSheet,
    ReadingAnomaly,
    ReadingAnomalyCase,
    ReadingCase,
    SyncHistory,
    UserSession,
)
from fieldsync.reconciler import Reconciler
from fieldsync.schemas import AssignedSheetRecord, LoginResponse
from fieldsync.utility_api import UtilityApiClient, UtilityApiError

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Field Service Backend")


class ApiError(Exception):
    def __init__(self, status_code: int, error: str, details: Optional[str] = None):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details


@app.exception_handler(ApiError)
def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    content = {"error": exc.error}
    if exc.details is not None:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_utility_api() -> UtilityApiClient:
    return UtilityApiClient(settings.utility_api_base, timeout=settings.utility_api_timeout)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@app.get("/", tags=["root"])
def read_root() -> dict:
    return {"status": "ok"}


@app.get("/health", tags=["health"])
def health_check() -> dict:
    return {"status": "healthy"}


class LoginRequest(BaseModel):
    model_config = {"json_schema_extra": {"example": {"username": "jdoe", "password": "secret"}}}
    username: str
    password: str


@app.post("/api/login", tags=["Auth"])
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    api: UtilityApiClient = Depends(get_utility_api),
) -> dict:
    try:
        data = api.login(payload.username, payload.password)
    except (requests.exceptions.RequestException, UtilityApiError) as exc:
        logger.warning("Login request for %s failed: %s", payload.username, exc)
        raise ApiError(500, "Login failed")
    if data is None:
        logger.warning("Remote rejected credentials for %s", payload.username)
        raise ApiError(401, "Invalid credentials")
    try:
        account = LoginResponse.model_validate(data)
    except ValidationError as exc:
        logger.warning("Login payload for %s did not validate: %s", payload.username, exc)
        raise ApiError(500, "Login failed")

    db.add(
        UserSession(
            user_id=account.user_id,
            trongate_user_id=account.trongate_user_id,
            trongate_token=account.trongate_token,
            username=account.username,
            employee_name=account.employee_name,
            user_role_id=account.user_role_id,
            created_at=_now(),
        )
    )
    db.commit()
    return {
        "userId": account.user_id,
        "trongateUserId": account.trongate_user_id,
        "trongateToken": account.trongate_token,
        "username": account.username,
        "employeeName": account.employee_name,
        "userRoleId": account.user_role_id,
    }


class SyncRequest(BaseModel):
    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {"example": {"userId": 42, "token": "trongate-token"}},
    }
    user_id: int = Field(alias="userId")
    token: str


@app.post("/api/sync/all", tags=["Sync"])
def sync_all(
    payload: SyncRequest,
    db: Session = Depends(get_db),
    api: UtilityApiClient = Depends(get_utility_api),
) -> dict:
    reconciler = Reconciler(db, api, error_max_length=settings.sync_error_max_length)
    result = reconciler.run_full_sync(payload.user_id, payload.token)
    if not result.success:
        raise ApiError(500, "Sync failed", result.error)
    return {
        "success": True,
        "message": "All data synced successfully",
        "records": result.records_synced,
    }


@app.get("/api/sync/history", tags=["Sync"])
def list_sync_history(db: Session = Depends(get_db)) -> list[dict]:
    runs = db.scalars(
        select(SyncHistory)
        .order_by(SyncHistory.created_at.desc(), SyncHistory.id.desc())
        .limit(settings.sync_history_limit)
    )
    return [
        {
            "id": run.id,
            "syncType": run.sync_type,
            "recordsSynced": run.records_synced,
            "isSuccess": run.is_success,
            "errorMessage": run.error_message,
            "createdAt": _isoformat(run.created_at),
        }
        for run in runs
    ]


@app.get("/api/reading-cases", tags=["Reference Data"])
def list_reading_cases(db: Session = Depends(get_db)) -> list[dict]:
    cases = db.scalars(select(ReadingCase).order_by(ReadingCase.id))
    return [
        {
            "id": case.id,
            "name": case.name,
            "hasReading": bool(case.has_reading),
            "hasImage": bool(case.has_image),
        }
        for case in cases
    ]


@app.get("/api/reading-anomalies", tags=["Reference Data"])
def list_reading_anomalies(db: Session = Depends(get_db)) -> list[dict]:
    anomalies = db.scalars(select(ReadingAnomaly).order_by(ReadingAnomaly.id))
    return [{"id": anom.id, "name": anom.name, "description": anom.description} for anom in anomalies]


@app.get("/api/reading-anomaly-cases", tags=["Reference Data"])
def list_reading_anomaly_cases(
    case_id: Optional[int] = Query(default=None, alias="caseId"),
    db: Session = Depends(get_db),
) -> list[dict]:
    query = select(ReadingAnomalyCase).order_by(ReadingAnomalyCase.id)
    if case_id is not None:
        query = query.where(ReadingAnomalyCase.case_id == case_id)
    return [{"id": row.id, "name": row.name, "caseId": row.case_id} for row in db.scalars(query)]


@app.get("/api/incident-types", tags=["Reference Data"])
def list_incident_types(db: Session = Depends(get_db)) -> list[dict]:
    types = db.scalars(select(IncidentType).order_by(IncidentType.id))
    return [{"id": row.id, "name": row.name} for row in types]


@app.get("/api/meter-reading/sheets", tags=["Meter Reading"])
def list_assigned_sheets(
    user_id: int = Query(alias="userId"),
    token: str = Query(),
    db: Session = Depends(get_db),
    api: UtilityApiClient = Depends(get_utility_api),
) -> list[dict]:
    try:
        data = api.fetch(utility_api.ASSIGNED_SHEETS, token, {"user_id": str(user_id)}, strict=True)
        payload = (data or {}).get("meter_sheets")
        if not payload and not isinstance(payload, list):
            return []
        sheets = [AssignedSheetRecord.model_validate(item) for item in payload]
    except (UtilityApiError, ValidationError, TypeError) as exc:
        logger.warning("Fetching assigned sheets for user %s failed: %s", user_id, exc)
        raise ApiError(500, "Failed to fetch sheets")

    db.execute(delete(MeterReadingSheet).where(MeterReadingSheet.user_id == user_id))
    for sheet in sheets:
        db.merge(MeterReadingSheet(**sheet.to_row(), user_id=user_id))
    db.commit()

    stored = db.scalars(
        select(MeterReadingSheet).where(MeterReadingSheet.user_id == user_id).order_by(MeterReadingSheet.id)
    )
    return [
        {
            "id": row.id,
            "sheet": row.sheet,
            "assigned": row.assigned,
            "returned": row.returned,
            "dateDue": row.date_due,
            "isActive": bool(row.is_active),
            "isClosed": bool(row.is_closed),
            "userId": row.user_id,
        }
        for row in stored
    ]
