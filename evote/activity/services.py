import logging

from django.db import DatabaseError, transaction

from .models import ActivityLog

logger = logging.getLogger("activity")


def client_ip(request):
    """Best-effort client address, honouring a single proxy hop."""
    if request is None:
        return None
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.META.get("REMOTE_ADDR") or None


def record_activity(action, user=None, details="", request=None):
    """
    Append an entry to the activity log.

    Store errors are logged and never raised to the caller.
    """
    if user is not None and not user.is_authenticated:
        user = None

    try:
        with transaction.atomic():
            entry = ActivityLog.objects.create(
                user=user,
                user_name=user.display_name if user else "",
                user_email=user.email if user else "",
                action=action,
                details=details,
                ip_address=client_ip(request),
            )
    except DatabaseError as e:
        logger.error(f"Could not record activity {action}: {e}")
        return None

    logger.debug(f"Activity recorded: {action} - {details}")
    return entry
