import base64
import http.server
import json
import socketserver
import threading
import unittest
from urllib.parse import unquote

from misub.core.node_selector import EXPIRED_ENTRIES, EXPIRED_NODES
from misub.services.node_composer import NodeComposer, decode_payload, rename_node
from misub.models.subscription import parse_entries

REMOTE_NODES = "trojan://pw@10.0.0.1:443#Tokyo\nss://Y2hhY2hhMjA6cA==@10.0.0.2:8388#Osaka\n"


class SubHandler(http.server.BaseHTTPRequestHandler):
    seen_agents = []

    def do_GET(self):
        SubHandler.seen_agents.append(self.headers.get("User-Agent"))
        if self.path == "/plain":
            body = "trojan://pw@1.1.1.1:443#香港\n".encode("utf-8")
            self.send_response(200)
            self.send_header("Content-Type", "text/plain")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)
            return
        if self.path == "/broken":
            self.send_response(500)
            self.end_headers()
            return
        payload = base64.b64encode(REMOTE_NODES.encode("utf-8"))
        self.send_response(200)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, format, *args):
        return


class TestNodeComposerHelpers(unittest.TestCase):
    def test_decode_payload(self):
        encoded = base64.urlsafe_b64encode(REMOTE_NODES.encode("utf-8")).decode("ascii").rstrip("=")
        self.assertEqual(decode_payload(encoded), REMOTE_NODES)
        self.assertEqual(decode_payload("trojan://a@b:1#c"), "trojan://a@b:1#c")

    def test_rename_fragment_node(self):
        renamed = rename_node("trojan://pw@1.1.1.1:443#Tokyo", "Remote")
        self.assertEqual(unquote(renamed.split("#", 1)[1]), "Remote - Tokyo")
        self.assertEqual(rename_node(renamed, "Remote"), renamed)
        self.assertEqual(rename_node("trojan://pw@1.1.1.1:443", "Remote"), "trojan://pw@1.1.1.1:443#Remote")

    def test_rename_vmess_node(self):
        raw = base64.b64encode(json.dumps({"ps": "HK", "add": "1.1.1.1"}).encode()).decode()
        renamed = rename_node(f"vmess://{raw}", "Remote")
        data = json.loads(base64.b64decode(renamed[len("vmess://"):]))
        self.assertEqual(data["ps"], "Remote - HK")
        self.assertEqual(rename_node("vmess://%%%", "Remote"), "vmess://%%%")


class TestNodeComposer(unittest.TestCase):
    def test_manual_nodes_with_prepended_line(self):
        entries = parse_entries([
            {"id": "n1", "url": "trojan://pw@1.1.1.1:443#HK", "enabled": True},
            {"id": "n2", "url": "trojan://pw@1.1.1.1:443#HK", "enabled": True},
            {"id": "n3", "url": "not a node", "enabled": True},
        ])
        text = NodeComposer().compose(None, {"prependSubName": False}, "ua", entries, "trojan://x@127.0.0.1:443#T")
        self.assertEqual(text.split("\n"), ["trojan://x@127.0.0.1:443#T", "trojan://pw@1.1.1.1:443#HK"])

    def test_manual_prefix_from_profile_settings(self):
        entries = parse_entries([{"id": "n1", "url": "trojan://pw@1.1.1.1:443#HK", "enabled": True}])
        text = NodeComposer().compose(
            None, {"prependSubName": False}, "ua", entries, "",
            {"enableManualNodes": True, "manualNodePrefix": "Mine"},
        )
        self.assertEqual(unquote(text.split("#", 1)[1]), "Mine - HK")

    def test_expired_nodes_are_kept_verbatim(self):
        text = NodeComposer().compose(None, {"prependSubName": True}, "ua", EXPIRED_ENTRIES, "")
        self.assertEqual(text.split("\n"), list(EXPIRED_NODES))

    def test_remote_subscriptions_are_fetched(self):
        SubHandler.seen_agents = []
        with socketserver.TCPServer(("127.0.0.1", 0), SubHandler) as httpd:
            port = httpd.server_address[1]
            t = threading.Thread(target=httpd.serve_forever, daemon=True)
            t.start()
            try:
                entries = parse_entries([
                    {"id": "s1", "url": f"http://127.0.0.1:{port}/sub", "name": "Remote", "enabled": True},
                    {"id": "s2", "url": f"http://127.0.0.1:{port}/broken", "name": "Broken", "enabled": True},
                    {"id": "n1", "url": "trojan://pw@1.1.1.1:443#HK", "enabled": True},
                ])
                text = NodeComposer().compose(
                    None, {"prependSubName": True}, "clash-verge/1.0", entries, "",
                    {"enableManualNodes": False},
                )
            finally:
                httpd.shutdown()

        names = [unquote(line.split("#", 1)[1]) for line in text.split("\n")]
        self.assertEqual(names, ["Remote - Tokyo", "Remote - Osaka", "HK"])
        self.assertIn("clash-verge/1.0", SubHandler.seen_agents)

    def test_plain_text_subscription_without_charset_is_utf8(self):
        with socketserver.TCPServer(("127.0.0.1", 0), SubHandler) as httpd:
            port = httpd.server_address[1]
            t = threading.Thread(target=httpd.serve_forever, daemon=True)
            t.start()
            try:
                entries = parse_entries([
                    {"id": "s1", "url": f"http://127.0.0.1:{port}/plain", "name": "Remote", "enabled": True},
                ])
                text = NodeComposer().compose(None, {"prependSubName": False}, "ua", entries, "")
            finally:
                httpd.shutdown()
        self.assertEqual(text, "trojan://pw@1.1.1.1:443#香港")


if __name__ == "__main__":
    unittest.main()
