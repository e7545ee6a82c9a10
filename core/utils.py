"""
공통 유틸리티 함수
"""
import logging
from typing import Any

from config import ADMIN_PLATFORM
from core.archive import is_valid_version
from core.errors import InvalidPlatform, InvalidRequest

logger = logging.getLogger(__name__)


def ensure_platform(platform: Any) -> str:
    """고정 플랫폼(wxmini)만 허용"""
    value = str(platform or '').strip()
    if value != ADMIN_PLATFORM:
        raise InvalidPlatform()
    return value


def ensure_version(version: Any) -> str:
    """요청 본문의 버전 값 검증 (숫자 문자열만 허용)"""
    if isinstance(version, bool):
        raise InvalidRequest('invalid_version')
    value = str(version if version is not None else '').strip()
    if not is_valid_version(value):
        raise InvalidRequest('invalid_version')
    return value


def split_header_first(value: Any) -> str:
    """X-Forwarded-* 헤더의 첫 번째 값"""
    return str(value or '').split(',')[0].strip()


def join_url(base: str, endpoint_path: str) -> str:
    normalized_base = str(base or '').rstrip('/')
    normalized_path = endpoint_path if endpoint_path.startswith('/') else f"/{endpoint_path}"
    return f"{normalized_base}{normalized_path}"
