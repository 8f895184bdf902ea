import logging

from accounts.permissions import IsAdminRole
from evote.exports import csv_response
from rest_framework import generics
from rest_framework.filters import OrderingFilter
from django_filters.rest_framework import DjangoFilterBackend

from .filters import ActivityLogFilter
from .models import ActivityLog
from .serializers import ActivityLogSerializer

logger = logging.getLogger("activity")


class ActivityLogListView(generics.ListAPIView):
    """
    API endpoint for administrators to browse the activity log,
    newest entries first.
    """

    queryset = ActivityLog.objects.all()
    serializer_class = ActivityLogSerializer
    permission_classes = [IsAdminRole]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = ActivityLogFilter
    ordering_fields = ["timestamp"]
    ordering = ["-timestamp"]


class ActivityLogExportView(generics.GenericAPIView):
    """
    Download the filtered activity log as CSV. Invalid filters are
    rejected the same way the list endpoint rejects them.
    """

    queryset = ActivityLog.objects.all()
    permission_classes = [IsAdminRole]
    filter_backends = [DjangoFilterBackend]
    filterset_class = ActivityLogFilter

    def get(self, request):
        queryset = self.filter_queryset(self.get_queryset()).order_by("-timestamp")
        logger.info(f"Activity log export requested by {request.user.username}")
        return csv_response(
            "activity_logs.csv",
            ["Timestamp", "User", "Email", "Action", "Details", "IP Address"],
            (
                [
                    log.timestamp.isoformat(),
                    log.user_name,
                    log.user_email,
                    log.get_action_display(),
                    log.details,
                    log.ip_address,
                ]
                for log in queryset
            ),
        )
