import django_filters
from django.db.models import Q

from modules.orders.models import Order

ALL_STATUSES = "all"


class OrderFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method="filter_search")
    status = django_filters.CharFilter(method="filter_status")
    customer = django_filters.NumberFilter(field_name="customer_id")
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    min_total = django_filters.NumberFilter(
        field_name="total_amount", lookup_expr="gte"
    )
    max_total = django_filters.NumberFilter(
        field_name="total_amount", lookup_expr="lte"
    )

    class Meta:
        model = Order
        fields = [
            "search",
            "status",
            "customer",
            "start_date",
            "end_date",
            "min_total",
            "max_total",
        ]

    def filter_search(self, queryset, name, value):
        term = value.strip()
        if not term:
            return queryset
        return queryset.filter(
            Q(order_number__icontains=term)
            | Q(customer_name__icontains=term)
            | Q(customer_email__icontains=term)
        )

    def filter_status(self, queryset, name, value):
        status = value.strip()
        if not status or status.lower() == ALL_STATUSES:
            return queryset
        return queryset.filter(delivery_status=status)
