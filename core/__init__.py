"""
Core 모듈 - 아카이브 검사, 상태 저장소, 락, 스토리지 드라이버
"""
from .state import VersionRegistry
from .storage import StorageDriver, create_storage_driver

__all__ = ['VersionRegistry', 'StorageDriver', 'create_storage_driver']
