from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from ..core.errors import ValidationError
from ..services.container import Services
from .deps import get_services

router = APIRouter()

NO_STORE = {"Cache-Control": "no-store"}


@router.post("/code")
async def issue_code(
    request: Request,
    origin: Optional[str] = Header(None),
    referer: Optional[str] = Header(None),
    services: Services = Depends(get_services),
):
    broker = services.broker
    # Origin first: a disallowed origin is refused whatever the body holds.
    broker.check_origin(origin, referer)
    try:
        payload = await request.json()
    except ValueError:
        payload = None
    if not isinstance(payload, dict):
        raise ValidationError(["Body must be a JSON object"])
    issued = await run_in_threadpool(
        broker.issue, payload.get("credential"), payload.get("user"), origin=origin, referer=referer
    )
    return JSONResponse(
        {"success": True, "code": issued.code, "expiresIn": issued.expires_in},
        headers=NO_STORE,
    )


@router.get("/exchange")
def exchange_code(
    code: Optional[str] = Query(None),
    x_desktop_secret: Optional[str] = Header(None),
    services: Services = Depends(get_services),
):
    redeemed = services.broker.redeem(code, x_desktop_secret)
    return JSONResponse(
        {"success": True, "credential": redeemed.credential, "user": redeemed.user},
        headers=NO_STORE,
    )
