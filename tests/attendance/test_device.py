from __future__ import annotations

import pytest

from ulb_staff.attendance.device import detect_browser, detect_device_type, detect_os, parse_device_info
from ulb_staff.attendance.geo import geo_from_payload

ANDROID_PHONE = (
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Mobile Safari/537.36"
)
ANDROID_TABLET = "Mozilla/5.0 (Linux; Android 13; SM-X700) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36"
IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.4 Mobile/15E148 Safari/604.1"
)
IPAD = "Mozilla/5.0 (iPad; CPU OS 17_4 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4 Safari/604.1"
WINDOWS_EDGE = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36 Edg/124.0"
)
MAC_FIREFOX = "Mozilla/5.0 (Macintosh; Intel Mac OS X 14.4; rv:125.0) Gecko/20100101 Firefox/125.0"


@pytest.mark.parametrize(
    "ua, device, browser, os_name",
    [
        (ANDROID_PHONE, "mobile", "Chrome", "Android"),
        (ANDROID_TABLET, "tablet", "Chrome", "Android"),
        (IPHONE, "mobile", "Safari", "iOS"),
        (IPAD, "tablet", "Safari", "iPadOS"),
        (WINDOWS_EDGE, "desktop", "Edge", "Windows 10/11"),
        (MAC_FIREFOX, "desktop", "Firefox", "macOS"),
        ("unknown", "desktop", "Unknown", "Unknown"),
    ],
)
def test_user_agent_parsing(ua, device, browser, os_name):
    assert detect_device_type(ua) == device
    assert detect_browser(ua) == browser
    assert detect_os(ua) == os_name


def test_device_info_prefers_forwarded_ip():
    info = parse_device_info(
        {"User-Agent": ANDROID_PHONE, "X-Forwarded-For": "203.0.113.9, 10.0.0.1", "X-App-Source": "Mobile"},
        "127.0.0.1",
    )

    assert info.ip_address == "203.0.113.9"
    assert info.source == "mobile"
    assert info.device_type == "mobile"


def test_device_info_defaults():
    info = parse_device_info({}, None)

    assert info.ip_address == "unknown"
    assert info.source == "web"
    assert info.browser == "Unknown"


def test_geo_drops_unusable_coordinates():
    geo = geo_from_payload({"latitude": "17.38", "longitude": 200, "address": "Main road"})

    assert geo.latitude == pytest.approx(17.38)
    assert geo.longitude is None
    assert geo.address == "Main road"
    assert geo_from_payload({}).latitude is None
