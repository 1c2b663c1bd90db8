import asyncio
from typing import Any, Tuple

from fastapi import APIRouter, Depends, status
from sse_starlette.sse import EventSourceResponse

from site_auditor.features.audit.schemas.audit import AuditProgressEvent, AuditRequest
from site_auditor.features.audit.services.audit_service import AuditService, build_crawl_snapshot
from site_auditor.features.llm.services.backend_factory import resolve_api_key
from site_auditor.platform.exceptions import AuditorError, status_for_error
from site_auditor.platform.logger import get_logger
from site_auditor.platform.response import api_response, sse_event

logger = get_logger(__name__)
router = APIRouter(prefix="/audits", tags=["audits"])


def get_audit_service() -> AuditService:
    return AuditService()


@router.post("")
async def run_audit(request: AuditRequest, service: AuditService = Depends(get_audit_service)):
    snapshot = await service.run_audit(request)
    return api_response(
        data=snapshot.model_dump(mode="json"),
        message=f"{request.analysis_mode.value.capitalize()} audit completed",
        status_code=status.HTTP_200_OK,
    )


@router.post("/crawl/stream")
async def stream_crawl_audit(request: AuditRequest, service: AuditService = Depends(get_audit_service)):
    """
    Crawl audit streamed as server-sent events.

    Events: `discovered` (URL count), one `batch` per analyzed batch,
    then `completed` with the full snapshot, or `error`.
    """
    # URL and credential problems are reported as plain HTTP errors, before the stream opens
    url = service.prepare_url(request.url)
    agent = request.agent
    api_key = resolve_api_key(agent.provider, request.api_key)

    queue: "asyncio.Queue[Tuple[str, Any]]" = asyncio.Queue()

    async def on_batch(event: AuditProgressEvent):
        await queue.put(("batch", event))

    async def run():
        try:
            async with service.open_fetcher() as fetcher:
                urls = await service.discover_crawl_urls(fetcher, url, request.crawl_depth)
                await queue.put(("discovered", {"url": url, "total": len(urls)}))
                pages = await service.analyze_crawl_urls(fetcher, urls, agent, api_key, on_batch)
            await queue.put(("completed", build_crawl_snapshot(url, agent, pages)))
        except AuditorError as e:
            logger.warning(f"[SSE] Crawl audit of {url} failed: {e}")
            await queue.put(("error", {"message": str(e), "status_code": status_for_error(e)}))
        except Exception as e:
            logger.error(f"[SSE] Error in crawl audit of {url}: {e}", exc_info=True)
            await queue.put(("error", {
                "message": "Internal server error",
                "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
            }))

    async def event_generator():
        task = asyncio.create_task(run())
        try:
            while True:
                event, payload = await queue.get()
                yield sse_event(event, payload)
                if event in ("completed", "error"):
                    break
        finally:
            if not task.done():
                task.cancel()
            logger.info(f"[SSE] Closed crawl stream for {url}")

    return EventSourceResponse(event_generator())
