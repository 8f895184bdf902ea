import django_filters
from django.utils import timezone

from .lifecycle import ElectionStatus, status_q
from .models import Election


class ElectionFilter(django_filters.FilterSet):
    """
    Filter elections by their derived status. The predicate is evaluated
    against the time of the request.
    """

    status = django_filters.ChoiceFilter(
        choices=ElectionStatus.choices, method="filter_status"
    )

    class Meta:
        model = Election
        fields = ["status"]

    def filter_status(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(status_q(value, timezone.now()))
