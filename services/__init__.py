"""
Services 모듈 - 비즈니스 로직
"""
from .upload_service import UploadService, UploadResult
from .publish_service import PublishService, ApplyResult, RegisterResult

__all__ = ['UploadService', 'UploadResult', 'PublishService', 'ApplyResult', 'RegisterResult']
