"""
비동기 S3 호환 버킷 클라이언트 (Tencent COS)
aioboto3 기반, 모든 목록/삭제/업로드 호출은 일시적 오류에 대해 재시도한다.
"""
import logging
import mimetypes
from typing import Any, Callable, List, Optional

import aioboto3
from botocore.config import Config as BotoConfig

from config import StorageConfig
from core.errors import InternalError, StorageConfigMissing
from core.retry import call_with_retry

logger = logging.getLogger(__name__)

# DeleteObjects 한 번에 보낼 수 있는 최대 키 수
DELETE_BATCH_SIZE = 1000
LIST_PAGE_SIZE = 1000


class AsyncS3Client:
    """
    버킷 단위 비동기 클라이언트

    사용 예:
        async with AsyncS3Client(config) as bucket:
            keys = await bucket.list_keys('gameres/wxmini/100/')
    """

    def __init__(
        self,
        config: StorageConfig,
        client_factory: Optional[Callable[[], Any]] = None,
        sleep: Optional[Callable] = None,
    ):
        missing = config.missing_credentials
        if missing:
            logger.error(f"❌ [COS] Missing configuration: {', '.join(missing)}")
            raise StorageConfigMissing()

        self.config = config
        self.bucket = config.bucket
        self.region = config.region
        self.endpoint = config.endpoint
        self._sleep = sleep
        self._client_factory = client_factory or self._default_client_factory
        self._session = None
        self._context = None
        self._s3 = None

    def _default_client_factory(self):
        if self._session is None:
            self._session = aioboto3.Session(
                aws_access_key_id=self.config.secret_id,
                aws_secret_access_key=self.config.secret_key,
                region_name=self.region,
            )
        return self._session.client(
            's3',
            endpoint_url=self.endpoint,
            region_name=self.region,
            # 재시도는 call_with_retry 가 담당하므로 botocore 자체 재시도는 끈다
            config=BotoConfig(
                retries={'max_attempts': 1, 'mode': 'standard'},
                s3={'addressing_style': 'virtual'},
            ),
        )

    async def __aenter__(self) -> 'AsyncS3Client':
        self._context = self._client_factory()
        self._s3 = await self._context.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        context, self._context, self._s3 = self._context, None, None
        return await context.__aexit__(exc_type, exc, tb)

    async def _call(self, label: str, method: str, **params):
        if self._s3 is None:
            raise RuntimeError('AsyncS3Client must be used as an async context manager')
        fn = getattr(self._s3, method)
        return await call_with_retry(
            lambda: fn(Bucket=self.bucket, **params),
            attempts=self.config.retry_attempts,
            base_delay=self.config.retry_base_delay,
            label=label,
            sleep=self._sleep,
        )

    async def list_keys(self, prefix: str) -> List[str]:
        """prefix 아래의 모든 객체 키 (Marker 페이지네이션)"""
        keys: List[str] = []
        marker = ''
        while True:
            page = await self._call(
                f"list {prefix}", 'list_objects',
                Prefix=prefix, Marker=marker, MaxKeys=LIST_PAGE_SIZE,
            )
            page_keys = [item['Key'] for item in page.get('Contents') or [] if item.get('Key')]
            keys.extend(page_keys)
            if str(page.get('IsTruncated')).lower() != 'true' or not page_keys:
                break
            marker = page.get('NextMarker') or page_keys[-1]
        return keys

    async def list_subfolders(self, prefix: str) -> List[str]:
        """prefix 바로 아래의 '폴더' 이름 목록 (Delimiter='/')"""
        names: List[str] = []
        marker = ''
        while True:
            page = await self._call(
                f"list folders {prefix}", 'list_objects',
                Prefix=prefix, Delimiter='/', Marker=marker, MaxKeys=LIST_PAGE_SIZE,
            )
            for item in page.get('CommonPrefixes') or []:
                name = (item.get('Prefix') or '')[len(prefix):].strip('/')
                if name:
                    names.append(name)
            next_marker = page.get('NextMarker')
            if str(page.get('IsTruncated')).lower() != 'true' or not next_marker:
                break
            marker = next_marker
        return names

    async def delete_keys(self, keys: List[str]):
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            chunk = keys[start:start + DELETE_BATCH_SIZE]
            result = await self._call(
                f"delete {len(chunk)} keys", 'delete_objects',
                Delete={'Objects': [{'Key': key} for key in chunk], 'Quiet': True},
            )
            errors = (result or {}).get('Errors') or []
            if errors:
                logger.error(f"❌ [COS] Failed to delete {len(errors)} objects, first: {errors[0]}")
                raise InternalError('cos_delete_failed')
        if keys:
            logger.info(f"🗑️ [COS] Deleted {len(keys)} objects")

    async def put_object(self, key: str, body: bytes):
        params = {'Key': key, 'Body': body}
        content_type, _ = mimetypes.guess_type(key)
        if content_type:
            params['ContentType'] = content_type
        await self._call(f"put {key}", 'put_object', **params)
