from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import Select, and_, asc, desc, func, or_, select


class BaseQueryBuilder:
    """Base query builder with common filtering and sorting capabilities."""

    def __init__(self, model_class):
        self.model_class = model_class
        self.query = select(model_class)
        self.filters = []
        self.order_by_clauses = []

    def where(self, condition):
        """Add a WHERE condition to the query."""
        self.filters.append(condition)
        return self

    def where_equals(self, field, value: Any):
        """Add WHERE field = value when a value is given."""
        if value is not None:
            self.filters.append(field == value)
        return self

    def where_text_search(self, fields: List, query: str):
        """Add multi-field text search using OR conditions."""
        if query and fields:
            search_conditions = []
            for field in fields:
                search_conditions.append(func.lower(field).contains(query.lower()))
            self.filters.append(or_(*search_conditions))
        return self

    def where_datetime_range(
        self,
        field,
        start_datetime: Optional[datetime],
        end_datetime: Optional[datetime],
    ):
        """Add datetime range filtering."""
        if start_datetime:
            self.filters.append(field >= start_datetime)
        if end_datetime:
            self.filters.append(field <= end_datetime)
        return self

    def where_number_range(
        self,
        field,
        min_value: Optional[int],
        max_value: Optional[int],
    ):
        """Add numeric range filtering."""
        if min_value is not None:
            self.filters.append(field >= min_value)
        if max_value is not None:
            self.filters.append(field <= max_value)
        return self

    def order_by(self, field, direction: str = "asc"):
        """Add ORDER BY clause."""
        if direction.lower() == "desc":
            self.order_by_clauses.append(desc(field))
        else:
            self.order_by_clauses.append(asc(field))
        return self

    def paginate(self, skip: int = 0, limit: int = 100):
        """Add pagination to the query."""
        self.query = self.query.offset(skip).limit(limit)
        return self

    def build(self) -> Select:
        """Build the final query with all conditions applied."""
        if self.filters:
            self.query = self.query.where(and_(*self.filters))

        if self.order_by_clauses:
            self.query = self.query.order_by(*self.order_by_clauses)

        return self.query

    def build_count(self) -> Select:
        """Build a COUNT query sharing the same filters, without pagination."""
        count_query = select(func.count()).select_from(self.model_class)
        if self.filters:
            count_query = count_query.where(and_(*self.filters))
        return count_query


class BookingQueryBuilder(BaseQueryBuilder):
    """Specialized query builder for booking searches."""

    def filter_by_establishment(self, establishment_id: Optional[int]):
        return self.where_equals(self.model_class.establishment_id, establishment_id)

    def filter_by_accommodation(self, accommodation_id: Optional[int]):
        return self.where_equals(self.model_class.accommodation_id, accommodation_id)

    def filter_by_status(self, status):
        """Filter by booking status."""
        return self.where_equals(self.model_class.status, status)

    def filter_by_payment_status(self, payment_status):
        """Filter by payment status."""
        return self.where_equals(self.model_class.payment_status, payment_status)

    def filter_by_kind(self, kind):
        return self.where_equals(self.model_class.kind, kind)

    def filter_by_client_email(self, client_email: Optional[str]):
        if client_email:
            return self.where(
                func.lower(self.model_class.client_email) == client_email.lower()
            )
        return self

    def filter_by_code(self, booking_code: Optional[str]):
        """Codes are stored upper-case; the lookup accepts any case."""
        if booking_code:
            return self.where(
                self.model_class.booking_code == booking_code.strip().upper()
            )
        return self

    def filter_by_check_in(
        self, check_in_from: Optional[datetime], check_in_to: Optional[datetime]
    ):
        return self.where_datetime_range(
            self.model_class.check_in, check_in_from, check_in_to
        )

    def search_by_text(self, search_text: Optional[str]):
        """Search bookings by code, client name or client email."""
        if search_text:
            return self.where_text_search(
                [
                    self.model_class.booking_code,
                    self.model_class.client_first_name,
                    self.model_class.client_last_name,
                    self.model_class.client_email,
                ],
                search_text,
            )
        return self


class AccommodationQueryBuilder(BaseQueryBuilder):
    """Specialized query builder for accommodation searches."""

    def filter_by_establishment(self, establishment_id: Optional[int]):
        return self.where_equals(self.model_class.establishment_id, establishment_id)

    def filter_by_type(self, accommodation_type):
        """Filter by accommodation type."""
        return self.where_equals(self.model_class.type, accommodation_type)

    def filter_by_status(self, status):
        """Filter by accommodation status."""
        return self.where_equals(self.model_class.status, status)

    def filter_by_capacity(self, min_guests: Optional[int]):
        """Keep accommodations that can host at least ``min_guests``."""
        return self.where_number_range(self.model_class.max_guests, min_guests, None)
