"""
버전 번들 스토리지 드라이버

- LocalStorageDriver: 로컬 업로드 루트가 원본 (동기화 없음)
- MockCosStorageDriver: 버킷 대신 로컬 미러 디렉토리 (테스트/스테이징)
- CosStorageDriver: Tencent COS 버킷으로 미러링

모든 드라이버는 sync / list_available_versions / activate 를 구현한다.
"""
import asyncio
import logging
import os
import shutil
from typing import Callable, List, Optional

import config
from config import StorageConfig
from core.archive import is_valid_version
from core.s3_client import AsyncS3Client

logger = logging.getLogger(__name__)


def sort_versions(versions) -> List[str]:
    return sorted(set(versions), key=lambda v: (len(v), v))


def list_files(root_dir: str) -> List[str]:
    out = []
    for current, dirs, files in os.walk(root_dir):
        dirs.sort()
        for name in sorted(files):
            out.append(os.path.join(current, name))
    return out


def to_key_path(path: str, root_dir: str) -> str:
    """호스트 경로 구분자와 무관하게 '/' 구분 상대경로로 변환"""
    return os.path.relpath(path, root_dir).replace(os.sep, '/')


def list_version_dirs(parent: str) -> List[str]:
    try:
        names = os.listdir(parent)
    except FileNotFoundError:
        return []
    return [n for n in names if is_valid_version(n) and os.path.isdir(os.path.join(parent, n))]


def replace_tree(source_dir: str, target_dir: str):
    shutil.rmtree(target_dir, ignore_errors=True)
    os.makedirs(os.path.dirname(target_dir), exist_ok=True)
    shutil.copytree(source_dir, target_dir)


class StorageDriver:
    """스토리지 드라이버 공통 인터페이스"""

    name = 'base'

    async def sync(self, platform: str, version: str, source_dir: str):
        raise NotImplementedError

    async def list_available_versions(self, platform: str) -> List[str]:
        raise NotImplementedError

    async def activate(self, platform: str, version: str):
        """발행/전환 직후 호출 (기본: 아무것도 하지 않음)"""
        return None


class LocalStorageDriver(StorageDriver):
    """로컬 CDN 디렉토리를 그대로 서빙하는 드라이버"""

    name = 'local'

    def __init__(
        self,
        upload_root_fn: Callable[[str], str] = config.get_upload_root,
        publish_base_fn: Callable[[], str] = config.get_publish_base_path,
    ):
        self._upload_root = upload_root_fn
        self._publish_base = publish_base_fn

    async def sync(self, platform: str, version: str, source_dir: str):
        return None

    async def list_available_versions(self, platform: str) -> List[str]:
        found = list_version_dirs(self._upload_root(platform)) + list_version_dirs(self._publish_base())
        return sort_versions(found)

    async def activate(self, platform: str, version: str):
        """업로드 번들을 구버전 hotupdate 경로로 복사"""
        source_dir = os.path.join(self._upload_root(platform), version)
        if not os.path.isdir(source_dir):
            # hotupdate 경로에 직접 배치된 번들
            return
        target_dir = os.path.join(self._publish_base(), version)
        await asyncio.to_thread(replace_tree, source_dir, target_dir)
        logger.info(f"✅ [STORAGE] Activated {version} -> {target_dir}")


class MockCosStorageDriver(StorageDriver):
    """COS 버킷 대신 로컬 디렉토리에 같은 prefix 구조로 복사"""

    name = 'cos-mock'

    def __init__(self, storage_config: StorageConfig):
        self.config = storage_config
        self.mock_root = storage_config.mock_root

    def _primary_root(self, platform: str) -> str:
        return os.path.join(self.mock_root, *self.config.assets_prefix.split('/'), platform)

    def _legacy_root(self) -> str:
        return os.path.join(self.mock_root, *self.config.legacy_prefix.split('/'))

    def _copy(self, platform: str, version: str, source_dir: str):
        for target_root in (self._primary_root(platform), self._legacy_root()):
            replace_tree(source_dir, os.path.join(target_root, version))

    async def sync(self, platform: str, version: str, source_dir: str):
        await asyncio.to_thread(self._copy, platform, version, source_dir)
        logger.info(f"✅ [COS-MOCK] Synced {platform}/{version} -> {self.mock_root}")

    async def list_available_versions(self, platform: str) -> List[str]:
        return sort_versions(list_version_dirs(self._primary_root(platform)))


class CosStorageDriver(StorageDriver):
    """Tencent COS 버킷 미러링 (primary + legacy prefix)"""

    name = 'cos'

    def __init__(self, storage_config: StorageConfig, client_factory=None, sleep=None):
        self.config = storage_config
        self._client_factory = client_factory
        self._sleep = sleep

    def _bucket(self) -> AsyncS3Client:
        return AsyncS3Client(self.config, client_factory=self._client_factory, sleep=self._sleep)

    def version_prefixes(self, platform: str, version: str) -> List[str]:
        return [
            f"{self.config.assets_prefix}/{platform}/{version}/",
            f"{self.config.legacy_prefix}/{version}/",
        ]

    async def sync(self, platform: str, version: str, source_dir: str):
        prefixes = self.version_prefixes(platform, version)
        files = await asyncio.to_thread(list_files, source_dir)

        async with self._bucket() as bucket:
            # 이전 업로드의 잔여 파일 (예: .../100/100/*) 이 남지 않도록 먼저 비움
            for prefix in prefixes:
                stale_keys = await bucket.list_keys(prefix)
                await bucket.delete_keys(stale_keys)

            for prefix in prefixes:
                for path in files:
                    key = f"{prefix}{to_key_path(path, source_dir)}"
                    body = await asyncio.to_thread(_read_bytes, path)
                    await bucket.put_object(key, body)

        logger.info(f"✅ [COS] Synced {platform}/{version}: {len(files)} files x {len(prefixes)} prefixes")

    async def list_available_versions(self, platform: str) -> List[str]:
        async with self._bucket() as bucket:
            names = await bucket.list_subfolders(f"{self.config.assets_prefix}/{platform}/")
        return sort_versions(n for n in names if is_valid_version(n))


def _read_bytes(path: str) -> bytes:
    with open(path, 'rb') as f:
        return f.read()


def create_storage_driver(storage_config: Optional[StorageConfig] = None) -> StorageDriver:
    """설정에 따라 드라이버 선택 (앱 시작 시 한 번)"""
    storage_config = storage_config or StorageConfig()
    if not storage_config.is_remote:
        logger.info("📦 [STORAGE] Using local driver")
        return LocalStorageDriver()
    if storage_config.is_mock:
        logger.info(f"📦 [STORAGE] Using COS mock driver: {storage_config.mock_root}")
        return MockCosStorageDriver(storage_config)
    if storage_config.missing_credentials:
        logger.warning(f"⚠️ [STORAGE] COS driver selected but missing: {', '.join(storage_config.missing_credentials)}")
    else:
        logger.info(f"📦 [STORAGE] Using COS driver: {storage_config.bucket} ({storage_config.region})")
    return CosStorageDriver(storage_config)
