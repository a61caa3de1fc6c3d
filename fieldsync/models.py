from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from fieldsync.db import Base

ID_TYPE = BigInteger().with_variant(Integer, "sqlite")


class ServiceArea(Base):
    __tablename__ = "service_areas"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)


class ServiceZone(Base):
    __tablename__ = "service_zones"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    parent_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)


class MeterBook(Base):
    __tablename__ = "meter_books"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    service_area_id: Mapped[int] = mapped_column(BigInteger, nullable=False)


class MeterSheet(Base):
    __tablename__ = "meter_sheets"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    meter_book_id: Mapped[int] = mapped_column(BigInteger, nullable=False)


class TaskType(Base):
    __tablename__ = "task_types"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)


class TaskAction(Base):
    __tablename__ = "task_actions"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    task_type_id: Mapped[int] = mapped_column(BigInteger, nullable=False)


class AccountType(Base):
    __tablename__ = "account_types"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)


class TariffChargeCategory(Base):
    __tablename__ = "tariff_charge_categories"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)


class MaterialPipeline(Base):
    __tablename__ = "material_pipelines"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)


class MeterSize(Base):
    __tablename__ = "meter_sizes"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)


class TariffCategory(Base):
    __tablename__ = "tariff_categories"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=False)
    name: Mapped[str | None] = mapped_column(Text)


class ReadingCase(Base):
    __tablename__ = "reading_cases"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    # 0/1 flags as delivered by the remote API
    has_reading: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    has_image: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class ReadingAnomaly(Base):
    __tablename__ = "reading_anomalies"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)


class ReadingAnomalyCase(Base):
    __tablename__ = "reading_anomaly_cases"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    case_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)


class IncidentType(Base):
    __tablename__ = "incident_types"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)


class SyncHistory(Base):
    """Append-only audit record, one row per sync run."""

    __tablename__ = "sync_history"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    sync_type: Mapped[str] = mapped_column(String(64), nullable=False)
    records_synced: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)


class UserSession(Base):
    __tablename__ = "sessions"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    trongate_user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    trongate_token: Mapped[str] = mapped_column(Text, nullable=False)
    username: Mapped[str] = mapped_column(Text, nullable=False)
    employee_name: Mapped[str] = mapped_column(Text, nullable=False)
    user_role_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class MeterReadingSheet(Base):
    __tablename__ = "meter_reading_sheets"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=False)
    sheet: Mapped[str] = mapped_column(Text, nullable=False)
    assigned: Mapped[int] = mapped_column(Integer, nullable=False)
    returned: Mapped[int] = mapped_column(Integer, nullable=False)
    date_due: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[int] = mapped_column(Integer, nullable=False)
    is_closed: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
