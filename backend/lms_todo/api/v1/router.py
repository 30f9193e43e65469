"""API v1 router - includes all v1 endpoints."""

from fastapi import APIRouter

from lms_todo.api.v1.endpoints import health, submissions, todo

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(health.router, prefix="", tags=["Health"])
api_router.include_router(todo.router, prefix="", tags=["To-Do"])
api_router.include_router(submissions.router, prefix="", tags=["Submissions"])
