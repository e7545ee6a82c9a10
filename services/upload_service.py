"""
버전 zip 업로드 서비스
검증 -> 임시 파일 저장 -> 추출 -> 스토리지 동기화 -> 레지스트리 기록
"""
import asyncio
import logging
import os
import tempfile
from typing import Callable, NamedTuple, Optional

import config
from core.archive import extract_zip_to_version, parse_version_from_filename
from core.errors import FileTooLarge, InvalidRequest, InvalidVersionName
from core.state import VersionRegistry
from core.storage import StorageDriver
from core.utils import ensure_platform

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 1024 * 1024


class UploadResult(NamedTuple):
    version: str
    platform: str
    overwrite: bool


class UploadService:
    """관리자 업로드 처리"""

    def __init__(
        self,
        registry: VersionRegistry,
        storage: StorageDriver,
        upload_root_fn: Callable[[str], str] = config.get_upload_root,
        max_bytes: Optional[int] = None,
    ):
        self.registry = registry
        self.storage = storage
        self._upload_root = upload_root_fn
        self.max_bytes = max_bytes if max_bytes is not None else config.get_upload_max_bytes()

    async def _spool(self, reader) -> str:
        """업로드 스트림을 임시 zip 파일로 저장 (용량 초과 시 FileTooLarge)"""
        fd, temp_path = tempfile.mkstemp(prefix='pulzz-upload-', suffix='.zip')
        size = 0
        try:
            with os.fdopen(fd, 'wb') as f:
                while True:
                    chunk = await reader.read(READ_CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.max_bytes:
                        raise FileTooLarge()
                    f.write(chunk)
        except BaseException:
            os.remove(temp_path)
            raise
        return temp_path

    async def handle_upload(self, platform: str, filename: Optional[str], reader) -> UploadResult:
        """
        업로드 처리

        Args:
            platform: 플랫폼 식별자 (wxmini)
            filename: 원본 파일명 ('100.zip')
            reader: async read(size) 를 제공하는 파일 객체 (FastAPI UploadFile 등)

        Raises:
            InvalidPlatform, InvalidRequest, InvalidVersionName, FileTooLarge, ZipStructureMismatch
        """
        platform = ensure_platform(platform)
        if reader is None:
            raise InvalidRequest('missing_file')

        version = parse_version_from_filename(filename)
        if not version:
            raise InvalidVersionName()

        temp_path = await self._spool(reader)
        logger.info(f"📤 [UPLOAD] Received {filename} for {platform} ({os.path.getsize(temp_path)} bytes)")

        try:
            upload_root = self._upload_root(platform)
            bundle_dir = await asyncio.to_thread(extract_zip_to_version, temp_path, version, upload_root)
            await self.storage.sync(platform, version, bundle_dir)
            overwrite = await asyncio.to_thread(self.registry.record_upload, version)
        finally:
            if os.path.exists(temp_path):
                os.remove(temp_path)

        logger.info(f"✅ [UPLOAD] Version {version} uploaded (overwrite={overwrite})")
        return UploadResult(version=version, platform=platform, overwrite=overwrite)
