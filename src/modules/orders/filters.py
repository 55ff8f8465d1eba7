import django_filters

from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    """Query-string filters for ``GET /api/v1/orders/``.

    ``status`` takes a comma separated list (``?status=shipped,delivered``).
    Status values match case-insensitively.
    """

    status = django_filters.CharFilter(method="filter_status")
    payment_status = django_filters.CharFilter(lookup_expr="iexact")
    created_after = django_filters.DateFilter(
        field_name="created_at", lookup_expr="date__gte"
    )
    created_before = django_filters.DateFilter(
        field_name="created_at", lookup_expr="date__lte"
    )
    min_total = django_filters.NumberFilter(field_name="total_amount", lookup_expr="gte")
    max_total = django_filters.NumberFilter(field_name="total_amount", lookup_expr="lte")

    class Meta:
        model = Order
        fields = ["status", "payment_status", "is_confirmed"]

    def filter_status(self, queryset, name, value):
        wanted = [part.strip().upper() for part in value.split(",") if part.strip()]
        return queryset.filter(status__in=wanted) if wanted else queryset
