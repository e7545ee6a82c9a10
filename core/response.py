"""
관리/클라이언트 API 공통 응답 봉투
{"Code": int, "Message": str, "Data": str(JSON)}
"""
import json
from typing import Any, Dict


def http_json_result(code: int, message: str, data: Any) -> Dict[str, Any]:
    return {
        "Code": code,
        "Message": message,
        "Data": data if isinstance(data, str) else json.dumps(data, ensure_ascii=False, separators=(',', ':')),
    }


def success(data: Any, message: str = 'ok') -> Dict[str, Any]:
    return http_json_result(0, message, data)


def failure(code: int, message: str, data: Any = None) -> Dict[str, Any]:
    return http_json_result(code, message, {} if data is None else data)
