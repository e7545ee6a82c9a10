"""
핫업데이트 코어 예외 정의

모든 예외는 고정된 kind / code 를 가지므로 라우터 계층은 메시지 문자열을
해석하지 않고도 응답 코드와 HTTP 상태를 결정할 수 있다.
"""
from typing import Optional


class ErrorCodes:
    INVALID_VERSION_NAME = 4001
    ZIP_STRUCTURE_MISMATCH = 4002
    INVALID_PLATFORM = 4003
    VERSION_NOT_FOUND = 4004
    INVALID_REQUEST = 4005
    LOCK_BUSY = 4006
    FILE_TOO_LARGE = 4007
    UNAUTHORIZED = 401
    INTERNAL = 5000


class HotUpdateError(Exception):
    """코어 예외의 공통 부모"""

    kind = 'Internal'
    code = ErrorCodes.INTERNAL
    message = 'internal_error'
    status_code = 500

    def __init__(self, message: Optional[str] = None):
        if message:
            self.message = message
        super().__init__(self.message)

    def __repr__(self):
        return f"{type(self).__name__}(kind={self.kind!r}, code={self.code}, message={self.message!r})"


class InvalidPlatform(HotUpdateError):
    kind = 'InvalidPlatform'
    code = ErrorCodes.INVALID_PLATFORM
    message = 'invalid_platform'
    status_code = 400


class InvalidVersionName(HotUpdateError):
    kind = 'InvalidVersionName'
    code = ErrorCodes.INVALID_VERSION_NAME
    message = 'invalid_version_filename'
    status_code = 400


class InvalidRequest(HotUpdateError):
    kind = 'InvalidRequest'
    code = ErrorCodes.INVALID_REQUEST
    message = 'invalid_request'
    status_code = 400


class ZipStructureMismatch(HotUpdateError):
    kind = 'ZipStructureMismatch'
    code = ErrorCodes.ZIP_STRUCTURE_MISMATCH
    message = 'zip_structure_mismatch'
    status_code = 400


class VersionNotFound(HotUpdateError):
    kind = 'VersionNotFound'
    code = ErrorCodes.VERSION_NOT_FOUND
    message = 'version_not_found'
    status_code = 400


class LockBusy(HotUpdateError):
    kind = 'LockBusy'
    code = ErrorCodes.LOCK_BUSY
    message = 'lock_busy'
    status_code = 409


class FileTooLarge(HotUpdateError):
    kind = 'FileTooLarge'
    code = ErrorCodes.FILE_TOO_LARGE
    message = 'file_too_large'
    status_code = 413


class StorageConfigMissing(HotUpdateError):
    kind = 'StorageConfigMissing'
    code = ErrorCodes.INTERNAL
    message = 'cos_config_missing'
    status_code = 500


class Unauthorized(HotUpdateError):
    kind = 'Unauthorized'
    code = ErrorCodes.UNAUTHORIZED
    message = 'unauthorized'
    status_code = 401


class InternalError(HotUpdateError):
    pass


class LockTimeout(Exception):
    """파일 락 획득 실패 (코디네이터에서 LockBusy로 변환됨)"""

    def __init__(self, lock_path: str, attempts: int):
        self.lock_path = lock_path
        self.attempts = attempts
        super().__init__(f"lock_timeout: {lock_path} after {attempts} attempts")
