"""
Shared slowapi limiter.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from sortmyai.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


def messages_rate() -> str:
    return f"{settings.rate_limit_messages_per_minute}/minute"
