import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dental_records.core.settings import settings, validate_settings
from dental_records.db.session import engine
from dental_records.models import Base
from dental_records.routers.appointments import (
    patient_router as patient_appointments_router,
    router as services_router,
)
from dental_records.routers.dental_chart import (
    patient_router as patient_chart_router,
    router as dental_chart_router,
)
from dental_records.routers.treatments import (
    patient_router as patient_treatments_router,
    router as treatments_router,
)
from dental_records.services.errors import (
    PersistenceError,
    TreatmentNotFoundError,
    ValidationError,
)

app = FastAPI(title="Dental Records API", version="0.1.0")
logger = logging.getLogger("dental_records.startup")


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.message, "field": exc.field})


@app.exception_handler(TreatmentNotFoundError)
async def treatment_not_found_handler(request: Request, exc: TreatmentNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.warning("Store failure during %s: %s", exc.operation, exc)
    return JSONResponse(
        status_code=502,
        content={"detail": "Could not save to the data store", "operation": exc.operation},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = request.headers.get("x-request-id")
    logger.exception("Unhandled server error", extra={"request_id": request_id})
    payload = {"detail": "Internal server error"}
    if request_id:
        payload["request_id"] = request_id
    return JSONResponse(status_code=500, content=payload)


@app.on_event("startup")
def startup():
    validate_settings(settings)
    Base.metadata.create_all(bind=engine)
    logger.info("Clinic timezone %s (%s)", settings.clinic_timezone, settings.app_env)


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(patient_treatments_router)
app.include_router(treatments_router)
app.include_router(patient_chart_router)
app.include_router(dental_chart_router)
app.include_router(patient_appointments_router)
app.include_router(services_router)
