"""
업로드된 버전 zip 검사 및 추출

운영자가 `zip -r 100.zip 100` 처럼 버전 폴더 자체를 압축하는 경우가 많아서
최상위 폴더가 하나뿐이고 이름이 버전과 같으면 한 단계를 벗겨(flatten) 추출한다.
"""
import logging
import os
import re
import shutil
import tempfile
import zipfile
from typing import Iterable, List, NamedTuple, Optional

from core.errors import ZipStructureMismatch

logger = logging.getLogger(__name__)

VERSION_PATTERN = re.compile(r'[0-9]+')
ARCHIVE_EXTENSIONS = ('.zip',)
MACOSX_DIR = '__MACOSX'


class ArchiveEntry(NamedTuple):
    name: str
    is_dir: bool


class ArchiveLayout(NamedTuple):
    ok: bool
    flatten: bool


def is_valid_version(value) -> bool:
    return isinstance(value, str) and VERSION_PATTERN.fullmatch(value) is not None


def parse_version_from_filename(filename: Optional[str]) -> Optional[str]:
    """'100.zip' -> '100', 그 외 형식은 None"""
    base = os.path.basename((filename or '').replace('\\', '/'))
    stem, ext = os.path.splitext(base)
    if ext.lower() not in ARCHIVE_EXTENSIONS:
        return None
    if not is_valid_version(stem):
        return None
    return stem


def normalize_entry_name(name: str) -> str:
    return name.replace('\\', '/').lstrip('/')


def _is_macosx(name: str) -> bool:
    return name == MACOSX_DIR or name.startswith(MACOSX_DIR + '/')


def list_entries(zf: zipfile.ZipFile) -> List[ArchiveEntry]:
    entries = []
    for info in zf.infolist():
        name = normalize_entry_name(info.filename)
        if not name or _is_macosx(name):
            continue
        # "100/" 같은 디렉토리 마커는 루트 파일로 취급하지 않음
        entries.append(ArchiveEntry(name=name, is_dir=info.is_dir() or name.endswith('/')))
    return entries


def inspect_archive_layout(entries: Iterable[ArchiveEntry], version: str) -> ArchiveLayout:
    """
    zip 엔트리 목록으로 레이아웃 판정

    - 엔트리 없음: 거부
    - 최상위 폴더 1개 + 루트 파일 없음: 폴더명이 버전과 같으면 flatten, 다르면 거부
    - 최상위 폴더 여러 개 + 루트 파일 없음: 그대로 허용
    - 루트 파일이 하나라도 있음: 그대로 허용
    """
    top_folders = set()
    has_root_file = False
    count = 0

    for entry in entries:
        parts = [p for p in entry.name.split('/') if p]
        if not parts:
            continue
        count += 1
        if entry.is_dir:
            top_folders.add(parts[0])
            continue
        if len(parts) == 1:
            has_root_file = True
            continue
        top_folders.add(parts[0])

    if count == 0:
        return ArchiveLayout(ok=False, flatten=False)

    if len(top_folders) == 1 and not has_root_file:
        only_folder = next(iter(top_folders))
        if only_folder != version:
            return ArchiveLayout(ok=False, flatten=False)
        return ArchiveLayout(ok=True, flatten=True)

    return ArchiveLayout(ok=True, flatten=False)


def _safe_members(zf: zipfile.ZipFile, staging_dir: str) -> List[zipfile.ZipInfo]:
    root = os.path.realpath(staging_dir)
    members = []
    for info in zf.infolist():
        name = normalize_entry_name(info.filename)
        if not name or _is_macosx(name):
            continue
        if '..' in name.split('/') or re.match(r'^[A-Za-z]:', name):
            raise ZipStructureMismatch('zip_unsafe_path')
        target = os.path.realpath(os.path.join(root, name))
        if target != root and not target.startswith(root + os.sep):
            raise ZipStructureMismatch('zip_unsafe_path')
        members.append(info)
    return members


def extract_zip_to_version(archive_path: str, version: str, upload_root: str) -> str:
    """
    zip을 {upload_root}/{version} 으로 추출 (기존 내용은 교체)

    임시 디렉토리에 먼저 풀고 나서 대상 디렉토리를 통째로 바꾸므로
    추출 도중 실패해도 라이브 번들이 반쯤 덮어써지지 않는다.

    Returns:
        추출된 번들 디렉토리 경로

    Raises:
        ZipStructureMismatch: zip이 아니거나 레이아웃이 허용되지 않는 경우
    """
    try:
        zf = zipfile.ZipFile(archive_path)
    except (zipfile.BadZipFile, OSError) as e:
        logger.warning(f"⚠️ [ZIP] Unreadable archive {archive_path}: {e}")
        raise ZipStructureMismatch()

    dest_dir = os.path.join(upload_root, version)
    with zf:
        layout = inspect_archive_layout(list_entries(zf), version)
        if not layout.ok:
            logger.warning(f"⚠️ [ZIP] Layout rejected for version {version}")
            raise ZipStructureMismatch()

        os.makedirs(upload_root, exist_ok=True)
        staging_dir = tempfile.mkdtemp(prefix='pulzz-upload-')
        try:
            zf.extractall(staging_dir, members=_safe_members(zf, staging_dir))

            source_dir = os.path.join(staging_dir, version) if layout.flatten else staging_dir
            shutil.rmtree(dest_dir, ignore_errors=True)
            shutil.copytree(source_dir, dest_dir)
        finally:
            shutil.rmtree(staging_dir, ignore_errors=True)

    logger.info(f"✅ [ZIP] Extracted version {version} -> {dest_dir} (flatten={layout.flatten})")
    return dest_dir
