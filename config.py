import os
import logging

logger = logging.getLogger(__name__)

LOG_FORMAT = '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# 관리 API가 허용하는 유일한 플랫폼 식별자
ADMIN_PLATFORM = 'wxmini'


class GameConstants:
    """클라이언트 핫업데이트 프로토콜에 고정된 값"""

    PACKAGE_NAME = 'com.smartdog.bbqgame'
    PLATFORM = 'WebGLWxMiniGame'
    CHANNEL = 'WxMiniGame'
    ASSET_PACKAGE_NAME = 'DefaultPackage'
    APP_VERSION = '1.0.0'


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"⚠️ [CONFIG] {name}={raw!r} is not an integer, using {default}")
        return default


# --- 경로 (호출 시점에 환경변수를 읽음) ---

def get_root() -> str:
    return os.getenv('PULZZ_ROOT') or '/opt/pulzz-hotupdate'


def get_app_root() -> str:
    return os.getenv('PULZZ_APP_ROOT') or os.path.join(get_root(), 'app')


def get_cdn_root() -> str:
    return os.getenv('PULZZ_CDN_ROOT') or os.path.join(get_root(), 'cdn')


def get_state_file_path() -> str:
    return os.getenv('PULZZ_STATE_PATH') or os.path.join(get_app_root(), 'config', 'state.json')



def get_upload_root(platform: str = ADMIN_PLATFORM) -> str:
    return os.path.join(get_cdn_root(), 'gameres', platform)


def get_legacy_relative_path() -> str:
    """구버전 클라이언트가 사용하는 hotupdate 경로 (플랫폼 구분 없음)"""
    return '/'.join([
        'hotupdate',
        GameConstants.PACKAGE_NAME,
        GameConstants.PLATFORM,
        GameConstants.APP_VERSION,
        GameConstants.CHANNEL,
        GameConstants.ASSET_PACKAGE_NAME,
    ])


def get_publish_base_path() -> str:
    return os.path.join(get_cdn_root(), *get_legacy_relative_path().split('/'))


def get_upload_max_bytes() -> int:
    return max(1, _env_int('UPLOAD_MAX_MB', 512)) * 1024 * 1024


class StorageConfig:
    """
    스토리지 드라이버 설정

    STORAGE_DRIVER=cos 일 때만 원격 버킷 동기화가 활성화된다.
    PULZZ_COS_MOCK_ROOT가 지정되면 실제 버킷 대신 로컬 디렉토리를 미러로 사용한다.
    """

    def __init__(self):
        self.driver = (os.getenv('STORAGE_DRIVER') or 'local').strip().lower()
        self.mock_root = os.getenv('PULZZ_COS_MOCK_ROOT') or ''

        self.secret_id = os.getenv('TENCENT_SECRET_ID') or ''
        self.secret_key = os.getenv('TENCENT_SECRET_KEY') or ''
        self.bucket = os.getenv('TENCENT_COS_BUCKET') or ''
        self.region = os.getenv('TENCENT_COS_REGION') or ''
        self.endpoint = os.getenv('TENCENT_COS_ENDPOINT') or (
            f"https://cos.{self.region}.myqcloud.com" if self.region else ''
        )

        self.assets_prefix = (os.getenv('COS_ASSETS_PREFIX') or 'gameres').strip('/')
        self.legacy_prefix = (os.getenv('COS_LEGACY_PREFIX') or get_legacy_relative_path()).strip('/')

        self.retry_attempts = max(1, _env_int('COS_RETRY_ATTEMPTS', 3))
        self.retry_base_delay = max(0, _env_int('COS_RETRY_BASE_DELAY_MS', 300)) / 1000.0

    @property
    def is_remote(self) -> bool:
        return self.driver == 'cos'

    @property
    def is_mock(self) -> bool:
        return self.is_remote and bool(self.mock_root)

    @property
    def missing_credentials(self) -> list:
        required = {
            'TENCENT_SECRET_ID': self.secret_id,
            'TENCENT_SECRET_KEY': self.secret_key,
            'TENCENT_COS_BUCKET': self.bucket,
            'TENCENT_COS_REGION': self.region,
        }
        return [name for name, value in required.items() if not value]

class LockConfig:
    """발행/전환 임계구역 파일 락 설정"""

    def __init__(self):
        self.retries = max(1, _env_int('PUBLISH_LOCK_RETRIES', 60))
        self.retry_delay = max(0, _env_int('PUBLISH_LOCK_RETRY_DELAY_MS', 100)) / 1000.0

class AdminAuthConfig:
    """관리자 Basic 인증 (ADMIN_PASSWORD가 없으면 비활성)"""

    def __init__(self):
        self.username = os.getenv('ADMIN_USERNAME') or ''
        self.password = os.getenv('ADMIN_PASSWORD') or ''

    @property
    def enabled(self) -> bool:
        return bool(self.password)

def get_server_bind():
    return os.getenv('HOST') or '127.0.0.1', _env_int('PORT', 20808)
