import logging

from accounts.permissions import IsAdminRole
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    ReplySerializer,
    SendMessageSerializer,
    SupportMessageSerializer,
    SupportThreadDetailSerializer,
    SupportThreadSerializer,
    ViewerMessageSerializer,
)
from .services import (
    MessageStoreError,
    NoAdministratorError,
    SupportPermissionError,
    SupportServiceError,
    get_support_service,
)
from .threads import annotate_for_viewer, total_unread

logger = logging.getLogger("support")


def error_response(error: SupportServiceError):
    """Translate a support service error into an API response."""
    if isinstance(error, SupportPermissionError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(error, NoAdministratorError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif isinstance(error, MessageStoreError):
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        code = status.HTTP_400_BAD_REQUEST
    return Response({"status": "error", "message": str(error)}, status=code)


class MessageListCreateView(APIView):
    """
    GET: the caller's own conversation, oldest first, with delivery and
    read indicators.
    POST: send a message. Voters always reach the support administrator.
    """

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        service = get_support_service()
        messages = service.user_messages(request.user)
        data = ViewerMessageSerializer(
            annotate_for_viewer(messages, request.user.pk), many=True
        ).data
        return Response(
            {
                "status": "success",
                "data": {
                    "messages": data,
                    "unread_count": service.unread_count(request.user),
                },
            }
        )

    def post(self, request):
        serializer = SendMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            message = get_support_service().send_message(
                request.user,
                serializer.validated_data["message"],
                receiver_id=serializer.validated_data.get("receiver_id"),
            )
        except SupportServiceError as e:
            return error_response(e)

        return Response(
            {"status": "success", "data": SupportMessageSerializer(message).data},
            status=status.HTTP_201_CREATED,
        )


class MessagesReadView(APIView):
    """
    Mark every administrator message addressed to the caller as read.
    """

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        updated = get_support_service().mark_messages_as_read(request.user)
        return Response({"status": "success", "data": {"updated": updated}})


class UnreadCountView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        count = get_support_service().unread_count(request.user)
        return Response({"status": "success", "data": {"unread_count": count}})


class AdminThreadListView(APIView):
    """
    The administrator inbox: one thread per voter, most recent first.
    """

    permission_classes = [IsAdminRole]

    def get(self, request):
        threads = get_support_service().admin_threads(request.user)
        return Response(
            {
                "status": "success",
                "data": {
                    "threads": SupportThreadSerializer(threads, many=True).data,
                    "unread_count": total_unread(threads),
                },
            }
        )


class AdminThreadDetailView(APIView):
    """
    GET: one voter's full conversation.
    POST: reply to that voter.
    """

    permission_classes = [IsAdminRole]

    def get(self, request, user_id):
        thread = get_support_service().admin_thread(request.user, user_id)
        if thread is None:
            return Response(
                {"status": "error", "message": "No conversation with this user"},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(
            {"status": "success", "data": SupportThreadDetailSerializer(thread).data}
        )

    def post(self, request, user_id):
        serializer = ReplySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            message = get_support_service().send_message(
                request.user, serializer.validated_data["message"], receiver_id=user_id
            )
        except SupportServiceError as e:
            return error_response(e)

        return Response(
            {"status": "success", "data": SupportMessageSerializer(message).data},
            status=status.HTTP_201_CREATED,
        )


class AdminThreadReadView(APIView):
    """
    Mark a voter's unread messages as read. Safe to repeat.
    """

    permission_classes = [IsAdminRole]

    def post(self, request, user_id):
        updated = get_support_service().mark_thread_as_read(request.user, user_id)
        return Response({"status": "success", "data": {"updated": updated}})
