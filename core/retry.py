"""
원격 스토리지 호출 재시도

오류를 TRANSIENT / PERMANENT 로 분류하고 일시적 오류만 선형 백오프
(base_delay * attempt)로 재시도한다.
"""
import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from botocore.exceptions import ClientError, HTTPClientError
from botocore.exceptions import ConnectionError as BotoConnectionError

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ErrorClass(str, Enum):
    TRANSIENT = 'transient'
    PERMANENT = 'permanent'


TRANSIENT_ERROR_CODES = {
    'SlowDown',
    'Throttling',
    'ThrottlingException',
    'RequestLimitExceeded',
    'TooManyRequests',
    'ServiceUnavailable',
    'InternalError',
    'RequestTimeout',
    'RequestTimeoutException',
}

# 구조화된 정보가 없는 예외에 대해서만 사용
TRANSIENT_MESSAGE_MARKERS = (
    'timeout',
    'timed out',
    'econnreset',
    'connection reset',
    'eai_again',
    'temporary failure in name resolution',
    'socket hang up',
)


def _client_error_details(error: ClientError):
    response = getattr(error, 'response', None) or {}
    code = str(response.get('Error', {}).get('Code', '') or '')
    status = response.get('ResponseMetadata', {}).get('HTTPStatusCode')
    try:
        status = int(status) if status is not None else None
    except (TypeError, ValueError):
        status = None
    return code, status


def classify_error(error: BaseException) -> ErrorClass:
    if isinstance(error, ClientError):
        code, status = _client_error_details(error)
        if code in TRANSIENT_ERROR_CODES:
            return ErrorClass.TRANSIENT
        if status is not None and (status >= 500 or status == 429):
            return ErrorClass.TRANSIENT
        return ErrorClass.PERMANENT

    # botocore 연결/읽기 타임아웃, 엔드포인트 연결 실패, 연결 끊김
    if isinstance(error, (HTTPClientError, BotoConnectionError)):
        return ErrorClass.TRANSIENT

    if isinstance(error, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return ErrorClass.TRANSIENT

    message = str(error).lower()
    if any(marker in message for marker in TRANSIENT_MESSAGE_MARKERS):
        return ErrorClass.TRANSIENT
    return ErrorClass.PERMANENT


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    base_delay: float = 0.3,
    label: str = 'operation',
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> T:
    """
    operation()을 최대 attempts 회 실행

    영구 오류는 즉시, 일시적 오류는 마지막 시도 후 원래 예외 그대로 전파한다.
    """
    sleep = sleep or asyncio.sleep
    attempts = max(1, attempts)

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except Exception as e:
            if classify_error(e) is ErrorClass.PERMANENT:
                raise
            if attempt >= attempts:
                logger.error(f"❌ [COS] {label} failed after {attempt} attempts: {e}")
                raise
            delay = base_delay * attempt
            logger.warning(f"⏳ [COS] {label} transient error, retry {attempt}/{attempts - 1} in {delay:.2f}s: {e}")
            await sleep(delay)

    raise RuntimeError('unreachable')
