from fastapi import APIRouter, Depends, HTTPException, status

from site_auditor.features.indexing.schemas.indexnow import IndexNowSubmission
from site_auditor.features.indexing.services.indexnow_service import IndexNowService, healthy_urls
from site_auditor.platform.logger import get_logger
from site_auditor.platform.response import api_response

logger = get_logger(__name__)
router = APIRouter(prefix="/indexing", tags=["indexing"])


def get_indexnow_service() -> IndexNowService:
    return IndexNowService()


@router.post("/indexnow")
async def submit_to_indexnow(
    submission: IndexNowSubmission,
    service: IndexNowService = Depends(get_indexnow_service),
):
    urls = submission.urls or healthy_urls(submission.pages or [])
    try:
        result = await service.submit(urls, submission.api_key, submission.site_url)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return api_response(
        data=result.model_dump(),
        message=f"Successfully submitted {result.submitted} URLs to IndexNow.",
        status_code=status.HTTP_200_OK,
    )
