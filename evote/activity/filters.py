import django_filters
from django.db.models import Q

from .models import ActivityLog


class ActivityLogFilter(django_filters.FilterSet):
    """
    Narrow activity logs by user, action type or date range.
    """

    search = django_filters.CharFilter(method="filter_search")
    action = django_filters.ChoiceFilter(choices=ActivityLog.Action.choices)
    date_from = django_filters.IsoDateTimeFilter(
        field_name="timestamp", lookup_expr="gte"
    )
    date_to = django_filters.IsoDateTimeFilter(field_name="timestamp", lookup_expr="lte")

    class Meta:
        model = ActivityLog
        fields = ["action"]

    def filter_search(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(
            Q(user_name__icontains=value)
            | Q(user_email__icontains=value)
            | Q(details__icontains=value)
        )
