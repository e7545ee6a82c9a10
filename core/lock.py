"""
파일 기반 상호배제 락

센티넬 파일을 O_EXCL 로 생성해 락을 잡는다. 여러 프로세스(롤링 배포 중의
구/신 인스턴스)가 같은 상태 파일을 건드려도 직렬화가 보장된다.
"""
import asyncio
import contextlib
import logging
import os
from typing import AsyncIterator

from core.errors import LockTimeout

logger = logging.getLogger(__name__)


def _try_create(lock_path: str) -> bool:
    try:
        fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
    except FileExistsError:
        return False
    try:
        os.write(fd, str(os.getpid()).encode('ascii'))
    finally:
        os.close(fd)
    return True


@contextlib.asynccontextmanager
async def file_lock(lock_path: str, retries: int = 60, retry_delay: float = 0.1) -> AsyncIterator[str]:
    """
    락 파일을 잡고 블록을 실행한 뒤 반드시 삭제한다.

    Args:
        lock_path: 센티넬 파일 경로
        retries: 최대 시도 횟수
        retry_delay: 충돌 시 대기 시간 (초)

    Raises:
        LockTimeout: retries 회 안에 락을 얻지 못한 경우
    """
    os.makedirs(os.path.dirname(lock_path) or '.', exist_ok=True)

    acquired = False
    for attempt in range(retries):
        if _try_create(lock_path):
            acquired = True
            break
        if attempt == 0:
            logger.info(f"⏳ [LOCK] Waiting for {lock_path}")
        await asyncio.sleep(retry_delay)

    if not acquired:
        logger.warning(f"⚠️ [LOCK] Timed out after {retries} attempts: {lock_path}")
        raise LockTimeout(lock_path, retries)

    try:
        yield lock_path
    finally:
        try:
            os.remove(lock_path)
        except FileNotFoundError:
            logger.warning(f"⚠️ [LOCK] Lock file already gone: {lock_path}")
