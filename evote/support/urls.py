from django.urls import path

from .views import (
    AdminThreadDetailView,
    AdminThreadListView,
    AdminThreadReadView,
    MessageListCreateView,
    MessagesReadView,
    UnreadCountView,
)

app_name = "support"

urlpatterns = [
    path("messages/", MessageListCreateView.as_view(), name="messages"),
    path("messages/read/", MessagesReadView.as_view(), name="messages-read"),
    path("unread-count/", UnreadCountView.as_view(), name="unread-count"),
    path("threads/", AdminThreadListView.as_view(), name="thread-list"),
    path("threads/<int:user_id>/", AdminThreadDetailView.as_view(), name="thread-detail"),
    path("threads/<int:user_id>/read/", AdminThreadReadView.as_view(), name="thread-read"),
]
