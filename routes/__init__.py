"""
Routes 모듈 - FastAPI 라우터 정의
"""
from .admin import router as admin_router
from .client_api import router as client_router

__all__ = ['admin_router', 'client_router']
