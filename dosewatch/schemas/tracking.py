"""
Esquemas Pydantic para la tabla de seguimiento de medicación
"""
from pydantic import BaseModel, Field, field_serializer
from typing import List, Optional
from datetime import datetime

from dosewatch.models.medication import MedicationFrequency


def _iso_utc(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat(timespec="milliseconds") + "Z"


class TrackingRow(BaseModel):
    """
    Fila derivada por (paciente, medicamento, programa); nunca se persiste.
    Se transmite con los nombres compactos que esperan los clientes existentes.
    """
    patient_id: int = Field(..., alias="pId")
    patient_name: str = Field(..., alias="pName")
    medication_id: int = Field(..., alias="mId")
    medication_name: str = Field(..., alias="mName")
    dosage: str = Field(..., alias="d")
    frequency: MedicationFrequency = Field(..., alias="f")
    program_id: int = Field(..., alias="prId")
    program_name: str = Field(..., alias="prName")
    last_collected: Optional[datetime] = Field(None, alias="lc")
    next_due: datetime = Field(..., alias="nd")
    adherence_rate: int = Field(..., ge=0, le=100, alias="ar")

    class Config:
        populate_by_name = True

    @field_serializer("last_collected", "next_due", when_used="json")
    def serialize_instant(self, value: Optional[datetime]) -> Optional[str]:
        return _iso_utc(value)


class TrackingPagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int = Field(..., alias="totalPages")

    class Config:
        populate_by_name = True


class TrackingPage(BaseModel):
    """Página de la tabla de seguimiento"""
    rows: List[TrackingRow]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit)

    def to_response(self) -> dict:
        """Formato de transmisión: {data: [...], pagination: {...}}"""
        pagination = TrackingPagination(
            page=self.page,
            limit=self.limit,
            total=self.total,
            total_pages=self.total_pages,
        )
        return {
            "data": [row.model_dump(mode="json", by_alias=True) for row in self.rows],
            "pagination": pagination.model_dump(by_alias=True),
        }


class OverdueDetail(BaseModel):
    """Fila vencida con nombres de campo completos"""
    patient_id: int
    patient_name: str
    medication_id: int
    medication_name: str
    dosage: str
    frequency: MedicationFrequency
    program_id: int
    program_name: str
    last_collected: Optional[datetime] = None
    next_due: datetime
    adherence_rate: int

    @field_serializer("last_collected", "next_due", when_used="json")
    def serialize_instant(self, value: Optional[datetime]) -> Optional[str]:
        return _iso_utc(value)


class OverdueCount(BaseModel):
    count: int
