from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from ..services.container import Services
from .deps import get_services

router = APIRouter()

ENDPOINTS = {
    "/": "API info",
    "/api/health": "Health check",
    "/api/notes": "List notes (requires X-App-Token)",
    "/api/notes/:id": "Get note by ID (requires X-App-Token)",
    "/api/search": "Search notes (requires X-App-Token)",
    "/api/quizzes": "List quizzes (GET) or create a quiz (POST, requires credentials)",
    "/api/quizzes/:id": "Get a quiz (GET) or delete it (DELETE, admin only)",
    "/api/quizzes/shuffle": "Combine and shuffle quizzes (POST)",
    "/auth/code": "Issue a desktop sign-in code (official site only)",
    "/auth/exchange": "Redeem a desktop sign-in code (desktop app only)",
}


@router.get("/")
def api_info(services: Services = Depends(get_services)):
    settings = services.settings
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "operational",
        "endpoints": ENDPOINTS,
        "documentation": settings.DOCUMENTATION_URL,
    }


@router.get("/api/health")
@router.get("/health", include_in_schema=False)
def health():
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}
