"""Shapes of the payloads returned by the remote utility API.

Every remote identifier arrives as a numeric string and every flag as "0"/"1";
``to_row`` turns a validated record into column values for its local table.
Fields the remote sends as JSON numbers are strict: "1", true and 1.0 are rejected.
"""

from typing import Annotated, Any, Optional

from pydantic import BaseModel, StrictInt, StringConstraints

NumericString = Annotated[str, StringConstraints(pattern=r"^-?\d+$")]


class RemoteRecord(BaseModel):
    id: NumericString

    def to_row(self) -> dict[str, Any]:
        return {"id": int(self.id)}


class NamedRecord(RemoteRecord):
    name: str

    def to_row(self) -> dict[str, Any]:
        return {**super().to_row(), "name": self.name}


class ServiceAreaRecord(NamedRecord):
    pass


class ServiceZoneRecord(NamedRecord):
    parent_id: StrictInt

    def to_row(self) -> dict[str, Any]:
        return {**super().to_row(), "parent_id": self.parent_id}


class MeterBookRecord(NamedRecord):
    service_areas_id: StrictInt

    def to_row(self) -> dict[str, Any]:
        return {**super().to_row(), "service_area_id": self.service_areas_id}


class MeterSheetRecord(NamedRecord):
    meter_books_id: StrictInt

    def to_row(self) -> dict[str, Any]:
        return {**super().to_row(), "meter_book_id": self.meter_books_id}


class TaskTypeRecord(NamedRecord):
    pass


class TaskActionRecord(NamedRecord):
    task_type: StrictInt

    def to_row(self) -> dict[str, Any]:
        return {**super().to_row(), "task_type_id": self.task_type}


class AccountTypeRecord(NamedRecord):
    pass


class TariffChargeCategoryRecord(NamedRecord):
    pass


class MaterialPipelineRecord(NamedRecord):
    pass


class MeterSizeRecord(NamedRecord):
    pass


class TariffCategoryRecord(NamedRecord):
    name: Optional[str]


class ReadingCaseRecord(NamedRecord):
    has_reading: NumericString
    has_image: NumericString

    def to_row(self) -> dict[str, Any]:
        return {
            **super().to_row(),
            "has_reading": int(self.has_reading),
            "has_image": int(self.has_image),
        }


class ReadingAnomalyRecord(NamedRecord):
    description: str

    def to_row(self) -> dict[str, Any]:
        return {**super().to_row(), "description": self.description}


class ReadingAnomalyCaseRecord(NamedRecord):
    case_id: NumericString

    def to_row(self) -> dict[str, Any]:
        return {**super().to_row(), "case_id": int(self.case_id)}


class IncidentTypeRecord(NamedRecord):
    pass


class AssignedSheetRecord(RemoteRecord):
    sheet: str
    assigned: NumericString
    returned: NumericString
    date_due: str
    active: NumericString
    closed: NumericString

    def to_row(self) -> dict[str, Any]:
        return {
            **super().to_row(),
            "sheet": self.sheet,
            "assigned": int(self.assigned),
            "returned": int(self.returned),
            "date_due": self.date_due,
            "is_active": int(self.active),
            "is_closed": int(self.closed),
        }


class LoginResponse(BaseModel):
    trongate_token: str
    user_role_id: StrictInt
    trongate_user_id: StrictInt
    user_id: StrictInt
    username: str
    employee_name: str
