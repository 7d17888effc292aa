import unittest
from unittest.mock import Mock, patch

import requests

from misub.core.event_bus import EventBus, Events
from misub.services.telegram_notifier import TelegramNotifier

CONFIG = {"BotToken": "123:abc", "ChatID": "42"}


class TestTelegramNotifier(unittest.TestCase):
    def test_skips_when_unconfigured(self):
        with patch("requests.post") as post:
            self.assertFalse(TelegramNotifier().send({"BotToken": "", "ChatID": "42"}, "t", "1.2.3.4"))
        self.assertFalse(post.called)

    def test_posts_markdown_message(self):
        with patch("requests.post", return_value=Mock(status_code=200)) as post:
            self.assertTrue(TelegramNotifier(timeout=4.0).send(CONFIG, "*Title*", "1.2.3.4", "*Format:* `clash`"))
        args, kwargs = post.call_args
        self.assertEqual(args[0], "https://api.telegram.org/bot123:abc/sendMessage")
        self.assertEqual(kwargs["json"]["chat_id"], "42")
        self.assertEqual(kwargs["json"]["parse_mode"], "Markdown")
        self.assertIn("*IP:* `1.2.3.4`", kwargs["json"]["text"])
        self.assertIn("*Format:* `clash`", kwargs["json"]["text"])
        self.assertEqual(kwargs["timeout"], 4.0)

    def test_failures_are_swallowed(self):
        with patch("requests.post", side_effect=requests.Timeout("slow")):
            self.assertFalse(TelegramNotifier().send(CONFIG, "t", "1.2.3.4"))

    def test_event_bus_isolates_handler_errors(self):
        bus = EventBus()
        received = []

        def boom(_):
            raise RuntimeError("handler broke")

        bus.subscribe(Events.SUBSCRIPTION_ACCESSED, boom)
        bus.subscribe(Events.SUBSCRIPTION_ACCESSED, received.append)
        bus.emit(Events.SUBSCRIPTION_ACCESSED, "notice")
        self.assertEqual(received, ["notice"])


if __name__ == "__main__":
    unittest.main()
