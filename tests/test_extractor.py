"""Tests for content extraction: base fields, public version, and redaction fallbacks."""

import unittest

from notify_forwarder.models import Message, RawNotification, Visibility
from notify_forwarder.services.extractor import extract

HIDDEN = "内容已隐藏"


def _raw(
    extras: dict | None = None,
    visibility: Visibility = Visibility.PRIVATE,
    package: str = "com.chat.app",
    public_extras: dict | None = None,
    messages: list | None = None,
) -> RawNotification:
    return RawNotification(
        package=package,
        extras=extras or {},
        visibility=visibility,
        post_time=1700000000000,
        public_extras=public_extras,
        messages=messages or [],
    )


class _BrokenMessage:
    @property
    def text(self):
        raise RuntimeError("no accessor")


class TestBaseExtraction(unittest.TestCase):
    """Public notifications use title/text as posted."""

    def test_public_notification_reads_title_and_text(self):
        event = extract(_raw({"android.title": "Alice", "android.text": "hello"}, Visibility.PUBLIC))
        self.assertEqual(event.source_package, "com.chat.app")
        self.assertEqual(event.title, "Alice")
        self.assertEqual(event.text, "hello")
        self.assertEqual(event.visibility, Visibility.PUBLIC)
        self.assertEqual(event.posted_at_millis, 1700000000000)

    def test_missing_fields_are_empty_strings(self):
        event = extract(_raw({}, Visibility.PUBLIC))
        self.assertEqual(event.title, "")
        self.assertEqual(event.text, "")

    def test_none_values_are_empty_strings(self):
        event = extract(_raw({"android.title": None, "android.text": None}))
        self.assertEqual(event.title, "")
        self.assertEqual(event.text, "")

    def test_public_visibility_ignores_fallbacks(self):
        event = extract(
            _raw({"android.text": HIDDEN, "android.bigText": "secret"}, Visibility.PUBLIC)
        )
        self.assertEqual(event.text, HIDDEN)


class TestRedactionFallbacks(unittest.TestCase):
    """PRIVATE/SECRET notifications recover text in priority order."""

    def test_big_text_replaces_redaction_placeholder(self):
        event = extract(_raw({"android.title": "Bank", "android.text": HIDDEN, "android.bigText": "You paid $5"}))
        self.assertEqual(event.text, "You paid $5")

    def test_secret_visibility_also_recovers(self):
        event = extract(_raw({"android.text": "", "android.bigText": "full"}, Visibility.SECRET))
        self.assertEqual(event.text, "full")

    def test_big_text_not_used_when_text_present(self):
        event = extract(_raw({"android.text": "short", "android.bigText": "long version"}))
        self.assertEqual(event.text, "short")

    def test_public_version_preferred(self):
        event = extract(
            _raw(
                {"android.title": "Redacted", "android.text": HIDDEN},
                public_extras={"android.title": "Alice", "android.text": "hi"},
            )
        )
        self.assertEqual(event.title, "Alice")
        self.assertEqual(event.text, "hi")

    def test_public_version_empty_values_do_not_override(self):
        event = extract(
            _raw(
                {"android.title": "Alice", "android.text": "hello"},
                public_extras={"android.title": "", "android.text": None},
            )
        )
        self.assertEqual(event.title, "Alice")
        self.assertEqual(event.text, "hello")

    def test_text_lines_joined_in_order(self):
        event = extract(_raw({"android.text": HIDDEN, "android.textLines": ["one", "two", "three"]}))
        self.assertEqual(event.text, "one\ntwo\nthree")

    def test_big_text_wins_over_text_lines(self):
        event = extract(
            _raw({"android.text": "", "android.bigText": "big", "android.textLines": ["a", "b"]})
        )
        self.assertEqual(event.text, "big")

    def test_empty_big_text_falls_through_to_lines(self):
        event = extract(
            _raw({"android.text": "", "android.bigText": "", "android.textLines": ["a", "b"]})
        )
        self.assertEqual(event.text, "a\nb")

    def test_last_message_used(self):
        event = extract(
            _raw({"android.text": HIDDEN}, messages=[Message("first"), Message("latest", "Bob")])
        )
        self.assertEqual(event.text, "latest")

    def test_message_accessor_failure_is_ignored(self):
        event = extract(_raw({"android.text": HIDDEN}, messages=[_BrokenMessage()]))
        self.assertEqual(event.text, HIDDEN)

    def test_message_without_text_keeps_previous_value(self):
        event = extract(_raw({"android.text": ""}, messages=[Message(None)]))
        self.assertEqual(event.text, "")

    def test_remote_input_history_only_for_system_package(self):
        extras = {"android.text": "", "android.remoteInputHistory": ["typed", "reply"]}
        system = extract(_raw(dict(extras), package="android"))
        other = extract(_raw(dict(extras), package="com.chat.app"))
        self.assertEqual(system.text, "typed\nreply")
        self.assertEqual(other.text, "")

    def test_custom_placeholders(self):
        event = extract(
            _raw({"android.text": "Hidden", "android.bigText": "real"}),
            redaction_placeholders=("Hidden",),
        )
        self.assertEqual(event.text, "real")


class TestRawNotificationFromDict(unittest.TestCase):
    """JSON ingest bodies are adapted into RawNotification."""

    def test_from_dict_full_payload(self):
        raw = RawNotification.from_dict(
            {
                "package": "com.chat.app",
                "post_time": 1700000000123,
                "visibility": 0,
                "extras": {
                    "android.title": "Alice",
                    "android.text": HIDDEN,
                    "android.messages": [{"text": "m1", "sender": "A"}, "m2"],
                },
                "public_version": {"extras": {"android.title": "Alice"}},
            }
        )
        self.assertEqual(raw.package, "com.chat.app")
        self.assertEqual(raw.post_time, 1700000000123)
        self.assertEqual(raw.visibility, Visibility.PRIVATE)
        self.assertNotIn("android.messages", raw.extras)
        self.assertEqual([m.text for m in raw.messages], ["m1", "m2"])
        self.assertEqual(raw.messages[0].sender, "A")
        self.assertEqual(raw.public_extras, {"android.title": "Alice"})
        self.assertEqual(extract(raw).text, "m2")

    def test_from_dict_minimal_payload(self):
        raw = RawNotification.from_dict({"package": "com.x"})
        self.assertEqual(raw.visibility, Visibility.UNKNOWN)
        self.assertEqual(raw.extras, {})
        self.assertIsNone(raw.public_extras)
        self.assertIsInstance(raw.post_time, int)

    def test_visibility_names_and_ints(self):
        self.assertEqual(Visibility.parse(1), Visibility.PUBLIC)
        self.assertEqual(Visibility.parse(-1), Visibility.SECRET)
        self.assertEqual(Visibility.parse("private"), Visibility.PRIVATE)
        self.assertEqual(Visibility.parse("bogus"), Visibility.UNKNOWN)
        self.assertEqual(Visibility.parse(None), Visibility.UNKNOWN)
        self.assertEqual(Visibility.parse(7), Visibility.UNKNOWN)

    def test_non_object_rejected(self):
        with self.assertRaises(TypeError):
            RawNotification.from_dict(["not", "a", "dict"])

    def test_non_list_messages_ignored(self):
        for value in (5, True, "hello", {"text": "x"}):
            with self.subTest(messages=value):
                raw = RawNotification.from_dict(
                    {"package": "p", "visibility": 0, "extras": {"android.text": HIDDEN, "android.messages": value}}
                )
                self.assertEqual(raw.messages, [])
                self.assertNotIn("android.messages", raw.extras)
                self.assertEqual(extract(raw).text, HIDDEN)


if __name__ == "__main__":
    unittest.main()
