# Copyright (c) 2024-2026 nickdsmith. All Rights Reserved.
# SPDX-License-Identifier: PROPRIETARY
#
# This file is proprietary and confidential. Unauthorized copying of this file,
# via any medium is strictly prohibited.

"""Shared JSON serialization utilities for structured log output."""

from datetime import date, datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any


def json_serializer(obj: Any) -> Any:
    """
    JSON ``default=`` hook for log records.

    - datetime/date -> ISO 8601 string
    - timedelta -> seconds (float)
    - Path -> string
    - Enum -> value
    - Everything else -> str()

    Args:
        obj: Object the json module could not encode

    Returns:
        JSON-serializable representation
    """
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, timedelta):
        return obj.total_seconds()
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    return str(obj)


__all__ = ["json_serializer"]
