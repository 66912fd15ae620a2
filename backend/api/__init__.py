# API Package - Centralized imports
# Allows easy importing of all routers

from .patients import router as patients_router
from .practitioners import router as practitioners_router
from .medications import router as medications_router
from .visits import router as visits_router
from .prescriptions import router as prescriptions_router
from .lab_tests import router as lab_tests_router
from .billing import router as billing_router

__all__ = [
    # Registry
    "patients_router",
    "practitioners_router",
    "medications_router",

    # Visit records
    "visits_router",
    "prescriptions_router",
    "lab_tests_router",
    "billing_router",
]
