import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from api import (
    billing_router,
    lab_tests_router,
    medications_router,
    patients_router,
    practitioners_router,
    prescriptions_router,
    visits_router,
)
from database.connection import Base, engine
from database.errors import (
    CascadeFailure,
    RecordError,
    RecordNotFound,
    RecordReferenceError,
    UniquenessViolation,
    ValidationError,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Most specific class first
ERROR_STATUS = [
    (RecordNotFound, 404),
    (RecordReferenceError, 422),
    (ValidationError, 422),
    (UniquenessViolation, 409),
    (CascadeFailure, 409),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create database tables
    Base.metadata.create_all(bind=engine)
    logger.info(f"Record store ready at {engine.url.render_as_string(hide_password=True)}")
    yield


app = FastAPI(
    title="Hospital Records API",
    description="Patients, practitioners, visits, prescriptions, lab tests and billing",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RecordError)
async def record_error_handler(request: Request, exc: RecordError):
    status_code = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 400)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # loc starts with "body", "query" or "path"
    first = exc.errors()[0]
    loc = [str(part) for part in first["loc"][1:]]
    field = ".".join(loc) or None
    detail = f"{field}: {first['msg']}" if field else first["msg"]
    error = ValidationError(detail, field=field)
    return JSONResponse(status_code=422, content=error.to_dict())


# Include routers
app.include_router(patients_router)
app.include_router(practitioners_router)
app.include_router(medications_router)
app.include_router(visits_router)
app.include_router(prescriptions_router)
app.include_router(lab_tests_router)
app.include_router(billing_router)


@app.get("/")
async def root():
    return {
        "message": "Hospital Records API",
        "status": "running",
        "version": "1.0.0",
        "endpoints": {
            "patients": "/api/patients",
            "practitioners": "/api/practitioners",
            "medications": "/api/medications",
            "visits": "/api/visits",
            "prescriptions": "/api/prescriptions",
            "lab_tests": "/api/lab-tests",
            "billing": "/api/billing",
            "docs": "/docs"
        }
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=True)
