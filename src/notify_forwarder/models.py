"""Notification, rule, and raw payload models."""

import time
from dataclasses import asdict, dataclass, field
from enum import Enum, auto
from typing import Any, Protocol, runtime_checkable

from notify_forwarder.constants import DEFAULT_MQTT_PORT, EXTRA_MESSAGES


class Visibility(Enum):
    """Lock-screen visibility of a posted notification."""
    PUBLIC = auto()
    PRIVATE = auto()
    SECRET = auto()
    UNKNOWN = auto()

    @classmethod
    def parse(cls, value: Any) -> "Visibility":
        """Map an Android VISIBILITY_* int or a visibility name to a member."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.UNKNOWN
        if isinstance(value, int):
            return _ANDROID_VISIBILITY.get(value, cls.UNKNOWN)
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                return cls.UNKNOWN
        return cls.UNKNOWN

    @property
    def may_be_redacted(self) -> bool:
        return self in (Visibility.PRIVATE, Visibility.SECRET)


# Notification.VISIBILITY_PUBLIC / _PRIVATE / _SECRET
_ANDROID_VISIBILITY = {
    1: Visibility.PUBLIC,
    0: Visibility.PRIVATE,
    -1: Visibility.SECRET,
}


class RuleType(Enum):
    """Destination transport of a forwarding rule."""
    HTTP = "HTTP"
    MQTT = "MQTT"


@dataclass(frozen=True)
class NotificationEvent:
    """Normalized notification content handed from the extractor to matching
    and dispatch. title/text are always strings, possibly empty."""
    source_package: str
    title: str = ""
    text: str = ""
    visibility: Visibility = Visibility.UNKNOWN
    posted_at_millis: int = 0

    @property
    def content(self) -> str:
        """Text searched by keyword filters."""
        return f"{self.title} {self.text}"


@dataclass(frozen=True)
class ForwardRule:
    """Persisted forwarding rule binding one source app to one destination.

    Fields of the other transport variant are kept as stored and ignored at
    dispatch time.
    """
    id: str
    name: str = ""
    type: RuleType = RuleType.HTTP
    app_package_name: str = ""
    app_name: str = ""
    filter_keywords: str = ""
    # HTTP
    server_url: str = ""
    # MQTT
    broker_host: str = ""
    port: str = DEFAULT_MQTT_PORT
    client_id: str = ""
    username: str = ""
    password: str = ""
    topic: str = ""
    message_template: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "ForwardRule":
        """Build a rule from a (schema-validated) record dict."""
        values = {k: data[k] for k in cls.__dataclass_fields__ if k in data}
        values["id"] = str(data.get("id", ""))
        values["type"] = RuleType(str(data.get("type", RuleType.HTTP.value)).upper())
        if "port" in values:
            values["port"] = str(values["port"])
        return cls(**values)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["type"] = self.type.value
        return data


@runtime_checkable
class MessageLike(Protocol):
    """One entry of a messaging-style notification; only its text is read."""
    text: str | None


@dataclass
class Message:
    """Adapter-side MessageLike built from an ingest payload."""
    text: str | None = None
    sender: str = ""


@dataclass
class RawNotification:
    """Platform notification payload as handed over by the device listener."""
    package: str
    extras: dict[str, Any] = field(default_factory=dict)
    visibility: Visibility = Visibility.UNKNOWN
    post_time: int = field(default_factory=lambda: int(time.time() * 1000))
    public_extras: dict[str, Any] | None = None
    messages: list[MessageLike] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "RawNotification":
        """Adapt a JSON ingest body into a RawNotification.

        Expected shape (all keys optional except the object itself)::

            {"package": "com.chat.app", "post_time": 1700000000000,
             "visibility": 0, "extras": {"android.title": "...", ...},
             "public_version": {"extras": {...}}}

        Structured messages under extras["android.messages"] may be objects
        with text/sender or bare strings; they are adapted to Message.
        """
        if not isinstance(data, dict):
            raise TypeError("notification payload must be a JSON object")
        extras = data.get("extras")
        extras = dict(extras) if isinstance(extras, dict) else {}
        raw_messages = extras.pop(EXTRA_MESSAGES, None)
        # Anything but a JSON array (number, bool, bare string) carries no messages
        if not isinstance(raw_messages, (list, tuple)):
            raw_messages = []
        messages = [_to_message(m) for m in raw_messages]
        public = data.get("public_version")
        public_extras = None
        if isinstance(public, dict):
            pe = public.get("extras")
            public_extras = dict(pe) if isinstance(pe, dict) else {}
        post_time = data.get("post_time")
        try:
            post_time = int(post_time)
        except (TypeError, ValueError):
            post_time = int(time.time() * 1000)
        return cls(
            package=str(data.get("package") or ""),
            extras=extras,
            visibility=Visibility.parse(data.get("visibility")),
            post_time=post_time,
            public_extras=public_extras,
            messages=messages,
        )


def _to_message(item: Any) -> Message:
    if isinstance(item, dict):
        text = item.get("text")
        return Message(text=None if text is None else str(text), sender=str(item.get("sender") or ""))
    return Message(text=None if item is None else str(item))
