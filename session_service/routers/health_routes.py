from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz(request: Request):
    return {"status": "ok", "service": request.app.state.settings.SERVICE_NAME}
