"""Read helpers over repositories and projections."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from delivery.errors import NotFound

PAGE_SIZE = 100


def fetch_all(record_cls, **filters) -> list:
    """Return every record of `record_cls` matching `filters`, page by page."""
    dao = current_domain.repository_for(record_cls)._dao
    records = []
    offset = 0
    while True:
        query = dao.query.filter(**filters) if filters else dao.query
        page = query.offset(offset).limit(PAGE_SIZE).all().items
        records.extend(page)
        if len(page) < PAGE_SIZE:
            return records
        offset += PAGE_SIZE


def fetch_one(record_cls, **filters):
    """Return the first record matching `filters`, or None."""
    dao = current_domain.repository_for(record_cls)._dao
    results = dao.query.filter(**filters).all()
    if not results or not results.items:
        return None
    return results.first


def load(record_cls, identifier, label: str | None = None):
    """Fetch an aggregate by id, raising `NotFound` for unknown ids."""
    try:
        return current_domain.repository_for(record_cls).get(identifier)
    except ObjectNotFoundError:
        name = label or record_cls.__name__
        raise NotFound({"id": [f"{name} {identifier} does not exist"]}) from None
