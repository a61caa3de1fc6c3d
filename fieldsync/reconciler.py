"""
Reference-data sync cascade.

One run walks the remote API in a fixed order, validates each payload and
mirrors it into the local tables:

    service areas -> zones (one call per area) -> meter books -> meter sheets

followed by the independent lookups (task types, tariff data, reading cases,
incident types, ...). Each mirrored table is replaced wholesale by the freshly
fetched set; zones are the exception and are upserted area by area.

Transport failures mean "no data" for that step. Validation failures and any
other exception abort the run. Either way exactly one ``SyncHistory`` row is
written per run. Tables replaced before an abort stay replaced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, TypeAdapter
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from fieldsync import utility_api
from fieldsync.models import (
    AccountType,
    IncidentType,
    MaterialPipeline,
    MeterBook,
    MeterSheet,
    MeterSize,
    ReadingAnomaly,
    ReadingAnomalyCase,
    ReadingCase,
    ServiceArea,
    ServiceZone,
    SyncHistory,
    TariffCategory,
    TariffChargeCategory,
    TaskAction,
    TaskType,
)
from fieldsync.schemas import (
    AccountTypeRecord,
    IncidentTypeRecord,
    MaterialPipelineRecord,
    MeterBookRecord,
    MeterSheetRecord,
    MeterSizeRecord,
    ReadingAnomalyCaseRecord,
    ReadingAnomalyRecord,
    ReadingCaseRecord,
    RemoteRecord,
    ServiceAreaRecord,
    ServiceZoneRecord,
    TariffCategoryRecord,
    TariffChargeCategoryRecord,
    TaskActionRecord,
    TaskTypeRecord,
)
from fieldsync.utility_api import UtilityApiClient

logger = logging.getLogger(__name__)

SYNC_TYPE = "complete_sync"


@dataclass(frozen=True)
class Lookup:
    path: str
    key: str
    schema: type[RemoteRecord]
    model: type


# Fetched after the area/zone/book/sheet chain; none depends on another.
INDEPENDENT_LOOKUPS = (
    Lookup(utility_api.TASK_TYPES, "field_task_types", TaskTypeRecord, TaskType),
    Lookup(utility_api.TASK_ACTIONS, "field_task_actions", TaskActionRecord, TaskAction),
    Lookup(utility_api.ACCOUNT_TYPES, "account_types", AccountTypeRecord, AccountType),
    Lookup(
        utility_api.TARIFF_CHARGE_CATEGORIES,
        "tariff_charge_categories",
        TariffChargeCategoryRecord,
        TariffChargeCategory,
    ),
    Lookup(utility_api.MATERIAL_PIPELINES, "material_pipelines", MaterialPipelineRecord, MaterialPipeline),
    Lookup(utility_api.METER_SIZES, "meter_sizes", MeterSizeRecord, MeterSize),
    Lookup(utility_api.TARIFF_CATEGORIES, "tariff_categories", TariffCategoryRecord, TariffCategory),
    Lookup(utility_api.READING_CASES, "reading_cases", ReadingCaseRecord, ReadingCase),
    Lookup(utility_api.READING_ANOMALIES, "reading_anom", ReadingAnomalyRecord, ReadingAnomaly),
    Lookup(utility_api.READING_ANOMALY_CASES, "reading_anom_cases", ReadingAnomalyCaseRecord, ReadingAnomalyCase),
    Lookup(utility_api.INCIDENT_TYPES, "report_incidents", IncidentTypeRecord, IncidentType),
)


@dataclass
class SyncResult:
    success: bool
    records_synced: int
    error: Optional[str] = None


@dataclass
class SyncProgress:
    """Running total shared by every step of one run."""

    records: int = 0
    per_table: dict[str, int] = field(default_factory=dict)

    def add(self, table: str, count: int) -> None:
        self.records += count
        self.per_table[table] = self.per_table.get(table, 0) + count


def _validate(schema: type[BaseModel], payload: Any) -> list:
    return TypeAdapter(list[schema]).validate_python(payload)


def _no_data(payload: Any) -> bool:
    # the remote answers "nothing" with a missing key, null, false, "" or 0
    return not payload and not isinstance(payload, list)


def _rows_by_id(records: list[RemoteRecord]) -> list[dict[str, Any]]:
    # later duplicates win, like an insert-or-replace
    rows: dict[int, dict[str, Any]] = {}
    for record in records:
        row = record.to_row()
        rows[row["id"]] = row
    return list(rows.values())


class Reconciler:
    def __init__(self, db: Session, api: UtilityApiClient, error_max_length: int = 500):
        self.db = db
        self.api = api
        self.error_max_length = error_max_length

    def run_full_sync(self, user_id: int, token: str) -> SyncResult:
        progress = SyncProgress()
        logger.info("Complete sync started for user %s", user_id)
        try:
            areas = self._sync_service_areas(user_id, token, progress)
            for area in areas:
                self._sync_zones_for_area(area, token, progress)
            book_ids = self._sync_meter_books(token, progress)
            if book_ids:
                self._sync_meter_sheets(book_ids, token, progress)
            for lookup in INDEPENDENT_LOOKUPS:
                self._sync_lookup(lookup, token, progress)
        except Exception as exc:
            self.db.rollback()
            logger.exception("Complete sync failed for user %s", user_id)
            message = (str(exc) or type(exc).__name__)[: self.error_max_length]
            self._record_run(0, False, message)
            return SyncResult(success=False, records_synced=0, error=message)

        self._record_run(progress.records, True, None)
        logger.info("Complete sync finished: %s records %s", progress.records, progress.per_table)
        return SyncResult(success=True, records_synced=progress.records)

    def _sync_service_areas(self, user_id: int, token: str, progress: SyncProgress) -> list[ServiceAreaRecord]:
        data = self.api.fetch(utility_api.SERVICE_AREAS, token, {"user_id": str(user_id)})
        payload = (data or {}).get("service_areas")
        if _no_data(payload):
            return []
        areas = _validate(ServiceAreaRecord, payload)
        progress.add(ServiceArea.__tablename__, self._replace_all(ServiceArea, areas))
        return areas

    def _sync_zones_for_area(self, area: ServiceAreaRecord, token: str, progress: SyncProgress) -> None:
        data = self.api.fetch(utility_api.SERVICE_ZONES, token, {"parent_id": area.id})
        payload = (data or {}).get("service_zones")
        if not isinstance(payload, list):
            return
        zones = _validate(ServiceZoneRecord, payload)
        rows = _rows_by_id(zones)
        try:
            for row in rows:
                self.db.merge(ServiceZone(**row))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        progress.add(ServiceZone.__tablename__, len(rows))

    def _sync_meter_books(self, token: str, progress: SyncProgress) -> list[int]:
        # every zone held locally, not only the ones fetched in this run
        zone_ids = list(self.db.scalars(select(ServiceZone.id).order_by(ServiceZone.id)))
        if not zone_ids:
            return []
        data = self.api.fetch(utility_api.METER_BOOKS, token, {"zone_ids": zone_ids})
        payload = (data or {}).get("meter_books")
        if not isinstance(payload, list):
            return []
        books = _validate(MeterBookRecord, payload)
        rows = _rows_by_id(books)
        progress.add(MeterBook.__tablename__, self._replace_rows(MeterBook, rows))
        return [row["id"] for row in rows]

    def _sync_meter_sheets(self, book_ids: list[int], token: str, progress: SyncProgress) -> None:
        data = self.api.fetch(utility_api.METER_SHEETS, token, {"book_ids": book_ids})
        payload = (data or {}).get("meter_sheets")
        if not isinstance(payload, list):
            return
        sheets = _validate(MeterSheetRecord, payload)
        progress.add(MeterSheet.__tablename__, self._replace_all(MeterSheet, sheets))

    def _sync_lookup(self, lookup: Lookup, token: str, progress: SyncProgress) -> None:
        data = self.api.fetch(lookup.path, token)
        payload = (data or {}).get(lookup.key)
        if _no_data(payload):
            return
        records = _validate(lookup.schema, payload)
        progress.add(lookup.model.__tablename__, self._replace_all(lookup.model, records))

    def _replace_all(self, model: type, records: list[RemoteRecord]) -> int:
        return self._replace_rows(model, _rows_by_id(records))

    def _replace_rows(self, model: type, rows: list[dict[str, Any]]) -> int:
        """Delete every row of ``model`` and insert ``rows`` in one transaction."""
        try:
            self.db.execute(delete(model))
            self.db.add_all([model(**row) for row in rows])
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return len(rows)

    def _record_run(self, records: int, success: bool, error: Optional[str]) -> None:
        self.db.add(
            SyncHistory(
                sync_type=SYNC_TYPE,
                records_synced=records,
                is_success=success,
                error_message=error,
                created_at=datetime.now(timezone.utc),
            )
        )
        self.db.commit()
