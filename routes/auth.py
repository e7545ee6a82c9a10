"""
관리자 인증 헬퍼 모듈
- HTTP Basic 인증 (ADMIN_PASSWORD 가 설정된 경우에만 활성)
- 상수 시간 비교
"""
import hmac
import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from config import AdminAuthConfig
from core.errors import Unauthorized

logger = logging.getLogger(__name__)

admin_basic = HTTPBasic(realm="Pulzz Admin", auto_error=False)


def safe_equal_text(a: Optional[str], b: Optional[str]) -> bool:
    return hmac.compare_digest(str(a or '').encode('utf-8'), str(b or '').encode('utf-8'))


def get_admin_auth_config(request: Request) -> AdminAuthConfig:
    return request.app.state.admin_auth


def require_admin(
    credentials: Optional[HTTPBasicCredentials] = Depends(admin_basic),
    auth_config: AdminAuthConfig = Depends(get_admin_auth_config),
):
    """관리자 라우트 의존성 (실패 시 401)"""
    if not auth_config.enabled:
        return None

    if credentials is None:
        raise Unauthorized()

    password_ok = safe_equal_text(credentials.password, auth_config.password)
    username_ok = not auth_config.username or safe_equal_text(credentials.username, auth_config.username)
    if not (password_ok and username_ok):
        logger.warning(f"⚠️ [AUTH] Rejected admin credentials for user {credentials.username!r}")
        raise Unauthorized()
    return credentials.username
