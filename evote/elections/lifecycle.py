"""
Election lifecycle classification.

An election's status is never stored. It is derived from the stored start
and end timestamps every time it is read:

    now <  start          -> upcoming
    now >  end            -> completed
    start <= now <= end   -> active

Equality with either bound counts as active. "Ending" an election early is
done by moving its end timestamp to the current time.
"""
from django.db import models
from django.db.models import Q


class ElectionStatus(models.TextChoices):
    UPCOMING = "upcoming", "Upcoming"
    ACTIVE = "active", "Active"
    COMPLETED = "completed", "Completed"


def classify(start, end, now):
    """
    Return the status of an election running from `start` to `end` at `now`.

    All three arguments must be comparable datetimes (all aware or all naive).
    """
    if now < start:
        return ElectionStatus.UPCOMING
    if now > end:
        return ElectionStatus.COMPLETED
    return ElectionStatus.ACTIVE


def status_q(status, now):
    """
    Database predicate selecting the elections `classify` would put in
    `status` at `now`.
    """
    if status == ElectionStatus.UPCOMING:
        return Q(start_time__gt=now)
    if status == ElectionStatus.COMPLETED:
        return Q(start_time__lte=now, end_time__lt=now)
    if status == ElectionStatus.ACTIVE:
        return Q(start_time__lte=now, end_time__gte=now)
    raise ValueError(f"Unknown election status: {status!r}")
