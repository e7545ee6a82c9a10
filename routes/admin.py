"""
관리자 API (업로드 / 목록 / 발행 / 전환 / 등록)
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile

from core.response import success
from routes.auth import require_admin
from schemas import VersionActionRequest
from services.publish_service import PublishService
from services.upload_service import UploadService

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])
logger = logging.getLogger(__name__)


def get_upload_service(request: Request) -> UploadService:
    return request.app.state.upload_service


def get_publish_service(request: Request) -> PublishService:
    return request.app.state.publish_service


@router.post("/upload", summary="버전 zip 업로드")
async def upload_version(
    platform: str = Form(""),
    file: Optional[UploadFile] = File(None),
    service: UploadService = Depends(get_upload_service),
):
    """
    **사용 예시:**
    ```bash
    curl -u admin:secret -X POST "http://127.0.0.1:20808/admin/upload" \
         -F "platform=wxmini" -F "file=@100.zip"
    ```
    """
    try:
        result = await service.handle_upload(platform, file.filename if file else None, file)
    finally:
        if file is not None:
            await file.close()

    message = 'uploaded_overwrite' if result.overwrite else 'uploaded'
    return success({"version": result.version, "platform": result.platform}, message)


@router.get("/versions", summary="버전 목록")
async def list_versions(
    platform: str = Query(""),
    service: PublishService = Depends(get_publish_service),
):
    return success(await service.list_versions(platform))


@router.post("/publish", summary="버전 발행")
async def publish_version(
    body: VersionActionRequest,
    service: PublishService = Depends(get_publish_service),
):
    result = await service.publish(body.platform, body.version)
    message = 'already_current' if result.already_current else 'published'
    return success({"version": result.version, "platform": body.platform}, message)


@router.post("/switch", summary="버전 전환")
async def switch_version(
    body: VersionActionRequest,
    service: PublishService = Depends(get_publish_service),
):
    result = await service.switch(body.platform, body.version)
    message = 'already_current' if result.already_current else 'switched'
    return success({"version": result.version, "platform": body.platform}, message)


@router.post("/register", summary="외부 업로드 버전 등록")
async def register_version(
    body: VersionActionRequest,
    service: PublishService = Depends(get_publish_service),
):
    result = await service.register(body.platform, body.version)
    message = 'registered' if result.registered else 'already_registered'
    return success({"version": result.version, "platform": body.platform}, message)
