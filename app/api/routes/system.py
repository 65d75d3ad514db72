from fastapi import APIRouter, Request

router = APIRouter(prefix="/system", tags=["System"])


@router.get("/health")
async def system_health(request: Request):
    store_ok = await request.app.state.session_store.ping()
    provider_ok = getattr(request.app.state, "llm_provider", None) is not None

    return {
        "status": "ok" if store_ok else "degraded",
        "session_store": "connected" if store_ok else "error",
        "llm_provider": "configured" if provider_ok else "not_configured",
        "api_version": "1.0.0",
        "service": "Role-Play Interview API"
    }
