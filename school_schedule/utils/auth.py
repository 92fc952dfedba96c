import hmac
from typing import Optional

from fastapi import Header, HTTPException

from school_schedule.config import settings


class APIKeyAuth:
    """Dependency checking the x-api-key header against a configured secret."""

    def __init__(self, expected: str):
        self.expected = expected

    def __call__(self, x_api_key: Optional[str] = Header(None)):
        if not x_api_key or not self.expected:
            raise HTTPException(status_code=401, detail="unauthorized")
        if not hmac.compare_digest(x_api_key.encode("utf-8"), self.expected.encode("utf-8")):
            raise HTTPException(status_code=401, detail="unauthorized")
        return x_api_key


require_api_key = APIKeyAuth(settings.API_KEY)
