# src/services/fingerprint.py
import hashlib

FINGERPRINT_LENGTH = 16


def content_fingerprint(title: str, description: str) -> str:
    """제목+설명 → 16자리 hex (중복 판정 전용, 역변환 불가)"""
    payload = f"{title}::{description}".encode("utf-8")
    return hashlib.sha256(payload).hexdigest()[:FINGERPRINT_LENGTH]
