"""
게임 클라이언트용 핫업데이트 조회 API
"""
import asyncio
import logging
import os

from fastapi import APIRouter, Request

from config import GameConstants
from core.response import success
from core.utils import join_url, split_header_first

router = APIRouter(prefix="/api", tags=["client"])
logger = logging.getLogger(__name__)


def get_request_base_url(request: Request) -> str:
    proto = split_header_first(request.headers.get('x-forwarded-proto')) or 'https'
    host = (
        split_header_first(request.headers.get('x-forwarded-host'))
        or request.headers.get('host')
        or 'api.kaukei.com'
    )
    return f"{proto}://{host}"


def get_check_app_version_url(request: Request) -> str:
    return os.getenv('CHECK_APP_VERSION_URL') or join_url(
        get_request_base_url(request), '/api/GameAppVersion/GetVersion'
    )


def get_check_resource_version_url(request: Request) -> str:
    return os.getenv('CHECK_RESOURCE_VERSION_URL') or join_url(
        get_request_base_url(request), '/api/GameAssetPackageVersion/GetVersion'
    )


def get_resource_root_path(request: Request) -> str:
    """CDN 루트 (api.<domain> -> cdn.<domain>/hotupdate)"""
    if os.getenv('CDN_ROOT_PATH'):
        return os.getenv('CDN_ROOT_PATH')
    cdn_base = get_request_base_url(request).replace('://api.', '://cdn.')
    return join_url(cdn_base, '/hotupdate')


@router.post("/GameGlobalInfo/GetInfo")
async def get_global_info(request: Request):
    return success({
        "CheckAppVersionUrl": get_check_app_version_url(request),
        "CheckResourceVersionUrl": get_check_resource_version_url(request),
        "AOTCodeList": os.getenv('AOT_CODE_LIST') or '[]',
        "Content": os.getenv('GLOBAL_INFO_CONTENT') or '{}',
    })


@router.post("/GameAppVersion/GetVersion")
async def get_app_version():
    # 앱 강제 업데이트는 사용하지 않음 (리소스 핫업데이트만)
    return success({
        "IsForce": False,
        "AppDownloadUrl": "",
        "IsUpgrade": False,
        "UpdateAnnouncement": "",
        "UpdateTitle": "",
        "PackageName": GameConstants.PACKAGE_NAME,
        "Platform": GameConstants.PLATFORM,
        "Channel": GameConstants.CHANNEL,
        "AppVersion": GameConstants.APP_VERSION,
        "CurrentVersion": "0",
    })


@router.post("/GameAssetPackageVersion/GetVersion")
async def get_asset_package_version(request: Request):
    registry = request.app.state.registry
    document = await asyncio.to_thread(registry.read)
    current_version = document.currentVersion or '0'
    return success({
        "Language": "",
        "Version": current_version,
        "PackageName": GameConstants.PACKAGE_NAME,
        "Platform": GameConstants.PLATFORM,
        "Channel": GameConstants.CHANNEL,
        "AssetPackageName": GameConstants.ASSET_PACKAGE_NAME,
        "RootPath": get_resource_root_path(request),
        "AppVersion": GameConstants.APP_VERSION,
        "CurrentVersion": current_version,
    })
