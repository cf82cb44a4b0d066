# Overview: List/pagination envelope shared by every collection endpoint.

from __future__ import annotations

DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


def paginate(query, *, page: int | None = None, per_page: int | None = None, serialize=None) -> dict:
    """
    Run ``query`` and wrap the rows in the standard list envelope.

    Without ``page`` every row is returned. With ``page`` the result carries
    a ``pagination`` block (per_page defaults to 20, capped at 100).
    """
    serialize = serialize or (lambda row: row.to_dict())

    if page is None:
        rows = query.all()
        return {
            "items": [serialize(r) for r in rows],
            "count": len(rows),
        }

    per_page = min(per_page or DEFAULT_PER_PAGE, MAX_PER_PAGE)
    per_page = max(per_page, 1)
    page = max(page, 1)

    total = query.order_by(None).count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    rows = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [serialize(r) for r in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
