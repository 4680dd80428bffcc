from __future__ import annotations

import uuid


def generate_id(prefix: str) -> str:
    """
    Unique string id for sessions, food lines, transactions and closures.

    Uniqueness is the only contract; ids carry no ordering.
    """
    return f"{prefix}-{uuid.uuid4().hex[:16]}"
