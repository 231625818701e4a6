"""Repository query helpers."""

import structlog
from protean.utils.globals import current_domain

logger = structlog.get_logger(__name__)

# Queries page at a small size by default; scans ask for everything that matches.
SCAN_LIMIT = 10_000


def _query(element_cls, criteria: dict):
    query = current_domain.repository_for(element_cls)._dao.query
    if criteria:
        query = query.filter(**criteria)
    return query


def fetch_all(element_cls, **criteria) -> list:
    """All records of ``element_cls`` matching ``criteria`` (field lookups such as
    ``available_date__lte`` are passed through to the query)."""
    result = _query(element_cls, criteria).limit(SCAN_LIMIT).all()
    if result.total > len(result.items):
        logger.warning(
            "Scan truncated",
            element=element_cls.__name__,
            returned=len(result.items),
            total=result.total,
        )
    return result.items


def fetch_page(element_cls, offset: int, limit: int, order_by: str, **criteria) -> tuple[list, int]:
    """One page of matching records and the total number of matches."""
    result = _query(element_cls, criteria).order_by(order_by).offset(offset).limit(limit).all()
    return result.items, result.total
