"""
Shared annotated field types.
"""
from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator

from sortmyai.utils.datetime_utils import ensure_utc

# SQLite returns naive datetimes; always emit timezone-aware UTC
UTCDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase."""
    components = string.split('_')
    return components[0] + ''.join(x.title() for x in components[1:])
