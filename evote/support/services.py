import logging
from typing import List, Optional

from accounts.models import User
from django.conf import settings
from django.db import DatabaseError
from django.db.models import Q

from .models import SupportMessage
from .threads import SupportThread, build_threads, conversation_key, thread_display_name

logger = logging.getLogger("support")


class SupportServiceError(Exception):
    """Base Exception for support service"""

    pass


class NotLoggedInError(SupportServiceError):
    """Raised when an anonymous caller uses the inbox"""

    pass


class SupportPermissionError(SupportServiceError):
    """Raised when a voter calls an administrator operation"""

    pass


class InvalidMessageError(SupportServiceError):
    """Raised when a message cannot be sent as given"""

    pass


class NoAdministratorError(SupportServiceError):
    """Raised when there is nobody to deliver a voter's message to"""

    pass


class MessageStoreError(SupportServiceError):
    """Raised when the message table rejected a read or write"""

    pass


class SupportService:
    """
    Support inbox operations for both sides of the conversation.
    """

    def _require_user(self, user):
        if user is None or not user.is_authenticated:
            raise NotLoggedInError("You must be logged in to use support messages.")

    def _require_admin(self, user):
        self._require_user(user)
        if not user.is_admin:
            logger.warning(f"Support admin operation refused for {user.username}")
            raise SupportPermissionError("Administrator access required.")

    def default_admin(self) -> User:
        """
        The administrator every voter message is addressed to.

        `SUPPORT_DEFAULT_ADMIN_ID` names it; without that setting the
        earliest administrator account is used.
        """
        admin_id = getattr(settings, "SUPPORT_DEFAULT_ADMIN_ID", None)
        admins = User.objects.filter(Q(role=User.Role.ADMIN) | Q(is_staff=True))
        if admin_id is not None:
            admin = admins.filter(pk=admin_id).first()
            if admin is not None:
                return admin
            logger.warning(f"Configured support admin {admin_id} not found, falling back")
        admin = admins.order_by("date_joined", "pk").first()
        if admin is None:
            raise NoAdministratorError("No administrator is available to receive messages.")
        return admin

    def send_message(self, user, body: str, receiver_id=None) -> SupportMessage:
        """
        Send a support message.

        Voters always write to the default administrator; `receiver_id` is
        ignored for them. Administrators must name the voter they reply to.
        """
        self._require_user(user)
        body = (body or "").strip()
        if not body:
            raise InvalidMessageError("Message cannot be empty.")

        if user.is_admin:
            if receiver_id is None:
                raise InvalidMessageError("A receiver is required for administrator messages.")
            receiver = User.objects.filter(pk=receiver_id).first()
            if receiver is None:
                raise InvalidMessageError("Receiver not found.")
        else:
            receiver = self.default_admin()

        try:
            message = SupportMessage.objects.create(
                sender=user,
                sender_name=user.display_name,
                receiver=receiver,
                message=body,
                is_from_admin=user.is_admin,
                read=False,
            )
        except DatabaseError as e:
            logger.error(f"Failed to send message from {user.username}: {e}")
            raise MessageStoreError(f"Failed to send message: {e}") from e

        logger.info(f"Support message sent by {user.username} to {receiver.username}")
        return message

    def user_messages(self, user) -> List[SupportMessage]:
        """Messages the user sent or received, oldest first."""
        self._require_user(user)
        return list(
            SupportMessage.objects.filter(Q(sender=user) | Q(receiver=user)).order_by(
                "created_at"
            )
        )

    def admin_threads(self, admin) -> List[SupportThread]:
        """Every voter conversation, most recently active first."""
        self._require_admin(admin)
        messages = list(SupportMessage.objects.order_by("created_at"))
        dropped = sum(1 for msg in messages if conversation_key(msg) is None)
        if dropped:
            logger.warning(f"{dropped} support messages have no conversation and are not shown")
        return build_threads(messages, self._display_names(messages))

    def admin_thread(self, admin, voter_id) -> Optional[SupportThread]:
        self._require_admin(admin)
        messages = list(
            SupportMessage.objects.filter(
                Q(sender_id=voter_id, is_from_admin=False)
                | Q(receiver_id=voter_id, is_from_admin=True)
            ).order_by("created_at")
        )
        threads = build_threads(messages, self._display_names(messages))
        return threads[0] if threads else None

    def _display_names(self, messages):
        keys = {conversation_key(msg) for msg in messages} - {None}
        return {
            profile.pk: thread_display_name(profile.display_name, profile.registration_id)
            for profile in User.objects.filter(pk__in=keys)
        }

    def mark_thread_as_read(self, admin, voter_id) -> int:
        """
        Mark the voter's unread messages to the administrators as read.
        Returns how many messages changed.
        """
        self._require_admin(admin)
        updated = SupportMessage.objects.filter(
            sender_id=voter_id, is_from_admin=False, read=False
        ).update(read=True)
        logger.debug(f"Marked {updated} messages from {voter_id} as read")
        return updated

    def mark_messages_as_read(self, user) -> int:
        """
        Mark administrator messages addressed to `user` as read.
        Returns how many messages changed.
        """
        self._require_user(user)
        updated = SupportMessage.objects.filter(
            receiver=user, is_from_admin=True, read=False
        ).update(read=True)
        logger.debug(f"Marked {updated} admin messages to {user.username} as read")
        return updated

    def unread_count(self, user) -> int:
        self._require_user(user)
        if user.is_admin:
            return SupportMessage.objects.filter(
                is_from_admin=False, read=False
            ).count()
        return SupportMessage.objects.filter(
            receiver=user, is_from_admin=True, read=False
        ).count()


# Singleton instance
_support_service: Optional[SupportService] = None


def get_support_service() -> SupportService:
    """Get or create the support service singleton"""
    global _support_service
    if _support_service is None:
        _support_service = SupportService()
    return _support_service
