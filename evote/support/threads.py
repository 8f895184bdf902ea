"""
Rebuild per-voter conversation threads from the flat support message table.

Every message belongs to the thread of its non-admin participant: a voter's
own messages are keyed by their sender, administrator replies by their
receiver. These functions work on any objects exposing the SupportMessage
attributes (`sender_id`, `receiver_id`, `is_from_admin`, `read`,
`created_at`, `message`), so they run without a database.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

UNKNOWN_USER = "Unknown User"


@dataclass
class SupportThread:
    user_id: Any
    user_name: str
    messages: List[Any] = field(default_factory=list)

    @property
    def last_message(self):
        return self.messages[-1] if self.messages else None

    @property
    def last_message_text(self) -> str:
        last = self.last_message
        return last.message if last is not None else ""

    @property
    def last_message_time(self) -> Optional[datetime]:
        last = self.last_message
        return last.created_at if last is not None else None

    @property
    def unread_count(self) -> int:
        # only inbound (voter) messages wait on an administrator
        return sum(1 for msg in self.messages if not msg.is_from_admin and not msg.read)


@dataclass
class ViewerMessage:
    """A message as seen by one participant."""

    message: Any
    is_own: bool
    delivered: bool
    seen: bool


def conversation_key(message):
    """
    The voter id a message's thread is keyed by, or None when it cannot be
    resolved (an administrator message without a receiver).
    """
    if message.is_from_admin:
        return message.receiver_id
    return message.sender_id


def group_by_conversation(messages: Iterable) -> Dict[Any, list]:
    groups: Dict[Any, list] = {}
    for message in messages:
        key = conversation_key(message)
        if key is None:
            continue
        groups.setdefault(key, []).append(message)
    return groups


def thread_display_name(name: Optional[str], registration_id: Optional[str] = None) -> str:
    name = name or UNKNOWN_USER
    if registration_id:
        return f"{name} ({registration_id})"
    return name


def build_threads(messages: Iterable, display_names: Optional[Mapping] = None) -> List[SupportThread]:
    """
    Group `messages` into one thread per voter.

    Each thread's messages are in ascending `created_at` order; threads are
    returned most recent first. Messages without a conversation key are
    left out. `display_names` maps voter id to the name shown for the thread.
    """
    display_names = display_names or {}
    threads = [
        SupportThread(
            user_id=key,
            user_name=display_names.get(key, UNKNOWN_USER),
            messages=sorted(group, key=lambda msg: msg.created_at),
        )
        for key, group in group_by_conversation(messages).items()
    ]
    threads.sort(key=lambda thread: thread.last_message_time, reverse=True)
    return threads


def annotate_for_viewer(messages: Iterable, viewer_id) -> List[ViewerMessage]:
    """
    Chronological list of `messages` with delivery and read indicators
    relative to `viewer_id`. Indicators only apply to the viewer's own
    messages.
    """
    annotated = []
    for message in sorted(messages, key=lambda msg: msg.created_at):
        is_own = message.sender_id == viewer_id
        annotated.append(
            ViewerMessage(
                message=message,
                is_own=is_own,
                delivered=is_own and message.receiver_id is not None,
                seen=is_own and message.read,
            )
        )
    return annotated


def total_unread(threads: Iterable[SupportThread]) -> int:
    return sum(thread.unread_count for thread in threads)
