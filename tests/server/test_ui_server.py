import json
import socket
import unittest
import urllib.error
import urllib.request

from websockets.sync.client import connect

from app_config_schema import UIServerSettings
from server import ServerConfigurationError, UIServer, UIServerConfig


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class UIServerConfigTests(unittest.TestCase):
    def test_from_settings_copies_values(self) -> None:
        settings = UIServerSettings(enabled=True, host=" 0.0.0.0 ", port=9001)

        config = UIServerConfig.from_settings(settings)

        self.assertTrue(config.enabled)
        self.assertEqual("0.0.0.0", config.host)
        self.assertEqual(9001, config.port)
        self.assertEqual("ws://0.0.0.0:9001/ws", config.websocket_url)

    def test_from_settings_rejects_out_of_range_port(self) -> None:
        for port in (0, 70000):
            with self.subTest(port=port):
                with self.assertRaises(ServerConfigurationError):
                    UIServerConfig.from_settings(
                        UIServerSettings(enabled=True, host="127.0.0.1", port=port)
                    )

    def test_rejects_blank_host(self) -> None:
        with self.assertRaises(ServerConfigurationError):
            UIServerConfig(enabled=True, host="  ", port=8765)


class UIServerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.port = _free_port()
        self.server = UIServer(UIServerConfig(enabled=True, host="127.0.0.1", port=self.port))

    def _start(self) -> None:
        self.server.start(timeout_seconds=5.0)
        self.addCleanup(self.server.stop, 5.0)

    def test_new_client_receives_hello_then_sticky_events(self) -> None:
        self.server.publish("session", state="focusing", message="Focusing on Fix login", ticket_id="1")
        self.server.publish("pomodoro", ticket_id="1", remaining_seconds=1500)
        self._start()

        with connect(f"ws://127.0.0.1:{self.port}/ws", open_timeout=5) as client:
            hello = json.loads(client.recv(timeout=5))
            session = json.loads(client.recv(timeout=5))
            pomodoro = json.loads(client.recv(timeout=5))

        self.assertEqual("hello", hello["type"])
        self.assertEqual("session", session["type"])
        self.assertEqual("focusing", session["state"])
        self.assertEqual("Focusing on Fix login", session["message"])
        self.assertEqual("1", session["ticket_id"])
        self.assertEqual("pomodoro", pomodoro["type"])
        self.assertEqual(1500, pomodoro["remaining_seconds"])

    def test_published_events_reach_connected_clients(self) -> None:
        self._start()

        with connect(f"ws://127.0.0.1:{self.port}/ws", open_timeout=5) as client:
            self.assertEqual("hello", json.loads(client.recv(timeout=5))["type"])
            self.server.publish("settlement", ticket_id="1", xp_earned=36)
            event = json.loads(client.recv(timeout=5))

        self.assertEqual("settlement", event["type"])
        self.assertEqual(36, event["xp_earned"])

    def test_healthz_and_unknown_paths(self) -> None:
        self._start()

        with urllib.request.urlopen(f"http://127.0.0.1:{self.port}/healthz", timeout=5) as response:
            self.assertEqual(200, response.status)
            self.assertEqual(b"ok\n", response.read())

        with self.assertRaises(urllib.error.HTTPError) as raised:
            urllib.request.urlopen(f"http://127.0.0.1:{self.port}/index.html", timeout=5)
        self.assertEqual(404, raised.exception.code)
        raised.exception.close()

    def test_stop_ends_server_thread(self) -> None:
        self.server.start(timeout_seconds=5.0)
        self.assertTrue(self.server.is_running)

        self.server.stop(timeout_seconds=5.0)

        self.assertFalse(self.server.is_running)
        # Publishing after stop only updates the replay cache.
        self.server.publish("pomodoro", remaining_seconds=10)


if __name__ == "__main__":
    unittest.main()
