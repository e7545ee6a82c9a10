"""
발행/전환 코디네이터

currentVersion 변경은 항상 파일 락 안에서 "스토리지 존재 확인 -> 현재 버전 비교
-> 레지스트리 갱신" 순서로 실행된다.
"""
import asyncio
import logging
from typing import Any, Dict, NamedTuple, Optional

from config import ADMIN_PLATFORM, LockConfig
from core.errors import LockBusy, LockTimeout, VersionNotFound
from core.lock import file_lock
from core.state import VersionRegistry
from core.storage import StorageDriver, sort_versions
from core.utils import ensure_platform, ensure_version
from schemas import VersionListItem

logger = logging.getLogger(__name__)


class ApplyResult(NamedTuple):
    version: str
    action: str
    already_current: bool


class RegisterResult(NamedTuple):
    version: str
    registered: bool


class PublishService:
    """버전 발행/전환/등록/목록 서비스"""

    def __init__(
        self,
        registry: VersionRegistry,
        storage: StorageDriver,
        lock_config: Optional[LockConfig] = None,
        platform: str = ADMIN_PLATFORM,
    ):
        self.registry = registry
        self.storage = storage
        self.lock_config = lock_config or LockConfig()
        self.platform = platform

    def _lock(self):
        return file_lock(
            self.registry.lock_path,
            retries=self.lock_config.retries,
            retry_delay=self.lock_config.retry_delay,
        )

    async def _ensure_available(self, version: str):
        available = await self.storage.list_available_versions(self.platform)
        if version not in available:
            logger.warning(f"⚠️ [PUBLISH] Version {version} not found in {self.storage.name} storage")
            raise VersionNotFound()

    async def apply_version(self, version: str, action: str) -> ApplyResult:
        """
        currentVersion 을 version 으로 변경

        이미 현재 버전이면 레지스트리를 건드리지 않고 already_current=True 반환.

        Raises:
            VersionNotFound: 스토리지에서 찾을 수 없는 버전
            LockBusy: 락 획득 시간 초과
        """
        try:
            async with self._lock():
                await self._ensure_available(version)

                document = await asyncio.to_thread(self.registry.read)
                if document.currentVersion == version:
                    logger.info(f"ℹ️ [PUBLISH] {version} is already current")
                    return ApplyResult(version=version, action=action, already_current=True)

                await self.storage.activate(self.platform, version)
                await asyncio.to_thread(self.registry.set_current, version, action)
        except LockTimeout:
            raise LockBusy()

        logger.info(f"✅ [PUBLISH] {action} -> {version}")
        return ApplyResult(version=version, action=action, already_current=False)

    async def publish(self, platform: Any, version: Any) -> ApplyResult:
        ensure_platform(platform)
        return await self.apply_version(ensure_version(version), 'publish')

    async def switch(self, platform: Any, version: Any) -> ApplyResult:
        ensure_platform(platform)
        return await self.apply_version(ensure_version(version), 'switch')

    async def register(self, platform: Any, version: Any) -> RegisterResult:
        """스토리지에 직접 올라간 버전을 레지스트리에 등록"""
        ensure_platform(platform)
        version = ensure_version(version)
        try:
            async with self._lock():
                await self._ensure_available(version)

                document = await asyncio.to_thread(self.registry.read)
                if document.find(version) is not None:
                    return RegisterResult(version=version, registered=False)

                await asyncio.to_thread(self.registry.record_upload, version)
        except LockTimeout:
            raise LockBusy()

        logger.info(f"✅ [REGISTER] Registered out-of-band version {version}")
        return RegisterResult(version=version, registered=True)

    async def list_versions(self, platform: Any) -> Dict[str, Any]:
        """레지스트리 메타데이터 + 스토리지에서 발견된 버전의 합집합"""
        platform = ensure_platform(platform)
        document = await asyncio.to_thread(self.registry.read)
        discovered = set(await self.storage.list_available_versions(platform))
        known = {record.version: record for record in document.versions}

        items = []
        for version in sort_versions(discovered | set(known)):
            record = known.get(version)
            items.append(VersionListItem(
                version=version,
                uploadedAt=(record.uploadedAt or '') if record else '',
                publishedAt=(record.publishedAt or '') if record else '',
                available=version in discovered,
            ).model_dump())

        return {
            "platform": platform,
            "currentVersion": document.currentVersion,
            "versions": items,
            "history": [entry.model_dump() for entry in document.history],
        }
