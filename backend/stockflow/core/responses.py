"""List response envelopes.

List endpoints return {"items": [...], "total": <int>}; paged ones add
skip, limit and has_more. Single objects are returned unwrapped.
"""


def list_response(items: list, total: int = None) -> dict:
    return {
        "items": items,
        "total": total if total is not None else len(items),
    }


def paginated_response(items: list, total: int, skip: int = 0, limit: int = 50) -> dict:
    """Page of a longer list, e.g. the audit history of a busy transaction."""
    return {
        "items": items,
        "total": total,
        "skip": skip,
        "limit": limit,
        "has_more": (skip + len(items)) < total,
    }
