import logging

from fastapi import APIRouter, Depends, Request, Response

from ..services.container import Services
from .deps import CallerContext, get_services, rate_limited_caller

logger = logging.getLogger(__name__)

router = APIRouter()


@router.api_route("/api/{api_path:path}", methods=["GET", "POST"])
async def proxy_to_upstream(
    api_path: str,
    request: Request,
    caller: CallerContext = Depends(rate_limited_caller),
    services: Services = Depends(get_services),
):
    body = await request.body() if request.method == "POST" else None
    upstream = await services.upstream.forward(
        request.method,
        api_path,
        list(request.query_params.multi_items()),
        body=body,
    )
    if upstream.status_code >= 500:
        logger.warning("Upstream returned %d for /api/%s", upstream.status_code, api_path)
    return Response(
        content=upstream.body,
        status_code=upstream.status_code,
        media_type="application/json",
        headers={
            "X-App-Id": caller.principal.subject,
            "X-Powered-By": "OpenNotesAPI Gateway",
            "X-RateLimit-Limit": str(caller.rate_limit.limit),
            "X-RateLimit-Remaining": str(caller.rate_limit.remaining),
            "X-RateLimit-Reset": str(int(caller.rate_limit.reset_at)),
        },
    )
