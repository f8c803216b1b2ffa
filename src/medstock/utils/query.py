"""Helpers for reading whole result sets through Protean query sets."""

PAGE_SIZE = 500


def fetch_all(queryset, page_size: int = PAGE_SIZE) -> list:
    """Return every record matched by ``queryset``, reading it page by page."""
    items = []
    offset = 0
    while True:
        page = queryset.offset(offset).limit(page_size).all().items
        items.extend(page)
        if len(page) < page_size:
            return items
        offset += page_size
