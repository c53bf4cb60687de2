from typing import Any, Dict, Generic, List, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """Paginated response with page-number metadata."""

    items: List[T]
    pagination: Dict[str, Any]

    @classmethod
    def create(cls, items: List[T], total_count: int, page: int, page_size: int):
        total_pages = (total_count + page_size - 1) // page_size if page_size > 0 else 1

        return cls(
            items=items,
            pagination={
                "total_count": total_count,
                "total_pages": total_pages,
                "current_page": page,
                "per_page": page_size,
                "has_next": page * page_size < total_count,
                "has_previous": page > 1,
                "count": len(items),
            },
        )
