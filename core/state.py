"""
버전 레지스트리 (상태 문서) 관리

상태는 JSON 문서 하나로 저장된다.
- 쓰기는 항상 같은 디렉토리의 임시 파일에 쓴 뒤 os.replace 로 교체 (원자적)
- 파일이 없거나 깨져 있으면 기본 문서로 간주하고 다음 쓰기에서 복구
"""
import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from typing import Any, List

from pydantic import ValidationError

from schemas import HistoryEntry, RegistryDocument, VersionRecord

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def _normalize_records(raw: Any, model) -> List:
    if not isinstance(raw, list):
        return []
    items = []
    for item in raw:
        try:
            items.append(model.model_validate(item))
        except ValidationError:
            logger.warning(f"⚠️ [STATE] Dropping malformed {model.__name__}: {item!r}")
    return items


def normalize_document(raw: Any) -> RegistryDocument:
    """필드 단위로 관대하게 정규화 (잘못된 값은 기본값으로)"""
    if not isinstance(raw, dict):
        return RegistryDocument()

    current = raw.get('currentVersion')
    return RegistryDocument(
        currentVersion=current if isinstance(current, str) else '',
        versions=_normalize_records(raw.get('versions'), VersionRecord),
        history=_normalize_records(raw.get('history'), HistoryEntry),
    )


class VersionRegistry:
    """버전 목록 / 현재 버전 / 이력을 담는 단일 문서 저장소"""

    def __init__(self, state_path: str):
        self.state_path = state_path

    @property
    def lock_path(self) -> str:
        return f"{self.state_path}.publish.lock"

    def ensure(self):
        """상태 파일이 없으면 기본 문서 생성"""
        os.makedirs(os.path.dirname(self.state_path) or '.', exist_ok=True)
        if not os.path.exists(self.state_path):
            logger.info(f"📦 [STATE] Creating state file: {self.state_path}")
            self.write(RegistryDocument())

    def read(self) -> RegistryDocument:
        try:
            with open(self.state_path, 'r', encoding='utf-8') as f:
                raw = json.load(f)
        except FileNotFoundError:
            return RegistryDocument()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"❌ [STATE] Unparsable state file, using defaults: {e}")
            return RegistryDocument()
        return normalize_document(raw)

    def write(self, document: RegistryDocument):
        directory = os.path.dirname(self.state_path) or '.'
        os.makedirs(directory, exist_ok=True)
        content = json.dumps(document.to_json_dict(), ensure_ascii=False, indent=2) + '\n'

        fd, temp_path = tempfile.mkstemp(
            prefix=os.path.basename(self.state_path) + '.',
            suffix='.tmp',
            dir=directory,
        )
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self.state_path)
        except BaseException:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise

    def record_upload(self, version: str) -> bool:
        """
        업로드 기록 (uploadedAt 갱신 + 이력 추가)

        Returns:
            기존 레코드를 덮어썼으면 True
        """
        document = self.read()
        now = utc_now_iso()

        existing = document.find(version)
        if existing is not None:
            existing.uploadedAt = now
        else:
            document.versions.append(VersionRecord(version=version, uploadedAt=now))

        overwrite = existing is not None
        document.history.append(HistoryEntry(
            action='upload_overwrite' if overwrite else 'upload',
            version=version,
            at=now,
        ))
        self.write(document)
        logger.info(f"✅ [STATE] Recorded upload {version} (overwrite={overwrite})")
        return overwrite

    def set_current(self, version: str, action: str):
        """현재 버전 변경 (publishedAt 갱신 + 이력 추가)"""
        if action not in ('publish', 'switch'):
            raise ValueError(f"unsupported action: {action}")

        document = self.read()
        now = utc_now_iso()

        existing = document.find(version)
        if existing is not None:
            existing.publishedAt = now
        else:
            document.versions.append(VersionRecord(version=version, uploadedAt=now, publishedAt=now))

        document.currentVersion = version
        document.history.append(HistoryEntry(action=action, version=version, at=now))
        self.write(document)
        logger.info(f"✅ [STATE] Current version -> {version} ({action})")
