from __future__ import annotations

from sqlalchemy import JSON, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from dental_records.models.base import Base, TimestampMixin


class DentalChart(Base, TimestampMixin):
    __tablename__ = "dental_charts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    chart_data: Mapped[dict] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict
    )
    updated_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
