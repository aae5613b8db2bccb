"""API route modules."""

from hrpay_engine.api.routes.coverage import router as coverage_router
from hrpay_engine.api.routes.health import router as health_router
from hrpay_engine.api.routes.leave import router as leave_router
from hrpay_engine.api.routes.payroll import router as payroll_router
from hrpay_engine.api.routes.vacations import router as vacations_router

__all__ = [
    "coverage_router",
    "health_router",
    "leave_router",
    "payroll_router",
    "vacations_router",
]
