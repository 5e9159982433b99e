from dental_records.models.base import Base
from dental_records.models.audit_log import AuditLog
from dental_records.models.service import Service
from dental_records.models.appointment import Appointment, AppointmentService, AppointmentStatus
from dental_records.models.treatment import Treatment
from dental_records.models.dental_chart import DentalChart

__all__ = [
    "Base",
    "AuditLog",
    "Service",
    "Appointment",
    "AppointmentService",
    "AppointmentStatus",
    "Treatment",
    "DentalChart",
]
