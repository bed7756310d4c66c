"""
Status and health check endpoints.

WHAT: Health monitoring for the bot
WHY: Quick diagnostics for ops and deploy probes
HOW: Report the service context state and a non-secret config summary
"""

from fastapi import APIRouter, Depends

from ....core.context import ServiceContext, get_context

router = APIRouter()


@router.get("/health")
async def health_check(context: ServiceContext = Depends(get_context)):
    """
    Overall application health check.

    Returns:
        JSON with status, version and configuration summary
    """
    summary = context.summary()
    return {
        "status": "healthy" if summary["started"] else "starting",
        "version": context.settings.APP_VERSION,
        "app_name": context.settings.APP_NAME,
        "components": summary,
    }
