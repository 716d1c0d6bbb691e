from __future__ import annotations

import pytest

from camctl.core.addressing import device_session_url, is_valid_url, normalize_base_url, probe_url


@pytest.mark.parametrize(
    ("address", "expected"),
    [
        ("192.168.1.50", "ws://192.168.1.50/ws"),
        ("192.168.1.50:81", "ws://192.168.1.50:81/ws"),
        ("ws://192.168.1.50", "ws://192.168.1.50/ws"),
        ("ws://192.168.1.50/ws", "ws://192.168.1.50/ws"),
        ("192.168.1.50/ws/", "ws://192.168.1.50/ws"),
        ("wss://cam.example/ws", "wss://cam.example/ws"),
        ("http://cam.local", "ws://cam.local/ws"),
        ("https://cam.local/ws", "wss://cam.local/ws"),
        ("ws://ws", "ws://ws/ws"),
    ],
)
def test_device_session_url_prefix_and_path_exactly_once(address: str, expected: str) -> None:
    assert device_session_url(address) == expected


def test_device_session_url_custom_path() -> None:
    assert device_session_url("10.0.0.2", "/stream/") == "ws://10.0.0.2/stream"
    assert device_session_url("ws://10.0.0.2/stream", "stream") == "ws://10.0.0.2/stream"


def test_normalize_base_url_adds_scheme_and_strips_slash() -> None:
    assert normalize_base_url("192.168.1.14/capstone/") == "http://192.168.1.14/capstone"
    assert normalize_base_url("https://api.example") == "https://api.example"
    assert not is_valid_url("192.168.1.14")
    assert not is_valid_url(None)


def test_probe_url_joins_with_single_slash() -> None:
    url = probe_url("http://192.168.1.14/capstone/", "/smokedetection-api/network_test.php")
    assert url == "http://192.168.1.14/capstone/smokedetection-api/network_test.php"
