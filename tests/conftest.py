import io
import os
import zipfile

import pytest

import config

ENV_TO_CLEAR = (
    'STORAGE_DRIVER',
    'PULZZ_COS_MOCK_ROOT',
    'TENCENT_SECRET_ID',
    'TENCENT_SECRET_KEY',
    'TENCENT_COS_BUCKET',
    'TENCENT_COS_REGION',
    'TENCENT_COS_ENDPOINT',
    'COS_ASSETS_PREFIX',
    'COS_LEGACY_PREFIX',
    'COS_RETRY_ATTEMPTS',
    'COS_RETRY_BASE_DELAY_MS',
    'ADMIN_USERNAME',
    'ADMIN_PASSWORD',
    'UPLOAD_MAX_MB',
    'CHECK_APP_VERSION_URL',
    'CHECK_RESOURCE_VERSION_URL',
    'CDN_ROOT_PATH',
)


@pytest.fixture
def pulzz_root(tmp_path, monkeypatch):
    """모든 경로를 tmp_path 아래로 돌리고 스토리지/인증 환경변수 초기화"""
    root = tmp_path / 'pulzz'
    monkeypatch.setenv('PULZZ_ROOT', str(root))
    monkeypatch.setenv('PULZZ_APP_ROOT', str(root / 'app'))
    monkeypatch.setenv('PULZZ_CDN_ROOT', str(root / 'cdn'))
    monkeypatch.setenv('PULZZ_STATE_PATH', str(root / 'app' / 'config' / 'state.json'))
    monkeypatch.setenv('PUBLISH_LOCK_RETRIES', '400')
    monkeypatch.setenv('PUBLISH_LOCK_RETRY_DELAY_MS', '5')
    for name in ENV_TO_CLEAR:
        monkeypatch.delenv(name, raising=False)
    return root


def build_zip(entries) -> bytes:
    """{이름: 내용} -> zip 바이트 (내용이 None이면 디렉토리 엔트리)"""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as zf:
        for name, content in entries.items():
            if content is None:
                zf.writestr(zipfile.ZipInfo(name), b'')
            else:
                zf.writestr(name, content)
    return buffer.getvalue()


class BytesReader:
    """UploadFile.read(size) 흉내"""

    def __init__(self, data: bytes):
        self._buffer = io.BytesIO(data)

    async def read(self, size: int = -1) -> bytes:
        return self._buffer.read(size)


class FakeS3:
    """aioboto3 S3 클라이언트 대역 (메모리 버킷 + 장애 주입)"""

    def __init__(self, objects=None, failures=None):
        self.objects = dict(objects or {})
        self.failures = {k: list(v) for k, v in (failures or {}).items()}
        self.calls = []

    def _record(self, method, **params):
        self.calls.append((method, params))
        queue = self.failures.get(method)
        if queue:
            raise queue.pop(0)

    def count(self, method):
        return sum(1 for name, _ in self.calls if name == method)

    async def list_objects(self, Bucket, Prefix='', Marker='', MaxKeys=1000, Delimiter=None):
        self._record('list_objects', Prefix=Prefix, Marker=Marker, Delimiter=Delimiter)
        keys = sorted(k for k in self.objects if k.startswith(Prefix) and k > Marker)
        if Delimiter:
            folders = sorted({
                Prefix + k[len(Prefix):].split(Delimiter)[0] + Delimiter
                for k in keys if Delimiter in k[len(Prefix):]
            })
            return {'CommonPrefixes': [{'Prefix': p} for p in folders], 'IsTruncated': False}
        page = keys[:MaxKeys]
        return {'Contents': [{'Key': k} for k in page], 'IsTruncated': len(keys) > MaxKeys}

    async def delete_objects(self, Bucket, Delete):
        self._record('delete_objects', Count=len(Delete['Objects']))
        for item in Delete['Objects']:
            self.objects.pop(item['Key'], None)
        return {}

    async def put_object(self, Bucket, Key, Body, ContentType=None):
        self._record('put_object', Key=Key)
        self.objects[Key] = Body
        return {}


class FakeClientContext:
    def __init__(self, s3):
        self.s3 = s3

    async def __aenter__(self):
        return self.s3

    async def __aexit__(self, exc_type, exc, tb):
        return False


async def no_sleep(delay):
    return None


def publish_target(version: str) -> str:
    """구버전 hotupdate 경로 아래의 버전 폴더"""
    return os.path.join(config.get_publish_base_path(), version)
