from pydantic import BaseModel, Field, StrictBool, StrictInt, StrictStr
from typing import List, Literal, Optional, Union


# --- Registry Document ---

HistoryAction = Literal["upload", "upload_overwrite", "publish", "switch"]


class VersionRecord(BaseModel):
    version: str
    uploadedAt: Optional[str] = Field(None, description="ISO-8601, refreshed on every upload")
    publishedAt: Optional[str] = Field(None, description="ISO-8601, set on publish/switch")


class HistoryEntry(BaseModel):
    action: HistoryAction
    version: str
    at: str


class RegistryDocument(BaseModel):
    currentVersion: str = Field(default="", description="Empty until first publish/switch")
    versions: List[VersionRecord] = Field(default=[])
    history: List[HistoryEntry] = Field(default=[])

    def find(self, version: str) -> Optional[VersionRecord]:
        for record in self.versions:
            if record.version == version:
                return record
        return None

    def to_json_dict(self) -> dict:
        return {
            "currentVersion": self.currentVersion,
            "versions": [r.model_dump(exclude_none=True) for r in self.versions],
            "history": [h.model_dump() for h in self.history],
        }


# --- Admin API ---

class VersionActionRequest(BaseModel):
    platform: str = ""
    # bool 은 ensure_version 에서 invalid_version 으로 거절된다
    version: Union[StrictStr, StrictInt, StrictBool] = ""


class VersionListItem(BaseModel):
    version: str
    uploadedAt: str = ""
    publishedAt: str = ""
    available: bool = Field(default=True, description="Discoverable in storage")
