from uuid import uuid4


def new_id(prefix: str = "") -> str:
    """Random identifier, safe against two contexts creating records in the same millisecond."""
    return f"{prefix}{uuid4().hex}"
