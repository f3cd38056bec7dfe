import django_filters

from modules.orders.constants import OrderStatus, PaymentMethod
from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.MultipleChoiceFilter(choices=OrderStatus.choices)
    retailer = django_filters.UUIDFilter(field_name="retailer_id")
    payment_method = django_filters.ChoiceFilter(choices=PaymentMethod.choices)
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    min_total = django_filters.NumberFilter(field_name="total_amount", lookup_expr="gte")
    max_total = django_filters.NumberFilter(field_name="total_amount", lookup_expr="lte")
    order_number = django_filters.CharFilter(lookup_expr="icontains")

    class Meta:
        model = Order
        fields = [
            "status",
            "retailer",
            "payment_method",
            "start_date",
            "end_date",
            "min_total",
            "max_total",
            "order_number",
        ]
