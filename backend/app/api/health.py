from fastapi import APIRouter

from app.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    return {"status": "healthy", "service": "health-advisor-api"}


@router.get("/")
async def root():
    """Root endpoint with API information."""
    return {"message": "Welcome to Health Advisor API", "docs": "/docs", "health": "/health"}


@router.get("/health/llm")
async def llm_health():
    """Report whether the LLM provider is configured, without calling it."""
    missing = settings.missing_llm_settings()
    return {"ok": not missing, "model": settings.llm_model, "missing": missing}
