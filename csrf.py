import time
from typing import Optional

from itsdangerous import BadSignature, URLSafeSerializer

from config import get_settings


def _serializer() -> URLSafeSerializer:
    settings = get_settings()
    return URLSafeSerializer(settings.csrf_secret, salt="manual-input")


def generate_csrf_token(max_age_hours: int = 2) -> str:
    issued = int(time.time())
    return _serializer().dumps({"ts": issued, "exp": issued + max_age_hours * 3600})


def validate_csrf_token(token: Optional[str]) -> bool:
    if not token:
        return False
    try:
        data = _serializer().loads(token)
    except BadSignature:
        return False
    if not isinstance(data, dict):
        return False
    return int(time.time()) <= data.get("exp", 0)
