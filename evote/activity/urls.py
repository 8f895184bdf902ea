from django.urls import path

from .views import ActivityLogExportView, ActivityLogListView

app_name = "activity"

urlpatterns = [
    path("", ActivityLogListView.as_view(), name="log-list"),
    path("export/", ActivityLogExportView.as_view(), name="log-export"),
]
