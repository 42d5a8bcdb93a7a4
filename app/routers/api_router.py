from fastapi import APIRouter
from app.routers import auth, employees, evaluation_periods, evaluations, notifications

# Centralized API router hub: main.py only imports this single router.
api_router = APIRouter()

api_router.include_router(auth.router, tags=["Authentication"])
api_router.include_router(employees.router, tags=["Employees"])
api_router.include_router(evaluation_periods.router, tags=["Evaluation Periods"])
api_router.include_router(evaluation_periods.defaults_router, tags=["Evaluation Periods"])
api_router.include_router(evaluations.router, tags=["Evaluations"])
api_router.include_router(notifications.router, tags=["Notifications"])
