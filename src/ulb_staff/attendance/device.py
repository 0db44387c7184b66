from __future__ import annotations

import re
from typing import Mapping, Optional

from .model import DeviceInfo

_MOBILE_RE = re.compile(r"android|webos|iphone|ipod|blackberry|iemobile|opera mini", re.I)
_TABLET_RE = re.compile(r"ipad|android(?!.*mobile)|tablet", re.I)


def detect_device_type(user_agent: str) -> str:
    if not user_agent or user_agent == "unknown":
        return "desktop"
    if _TABLET_RE.search(user_agent):
        return "tablet"
    if _MOBILE_RE.search(user_agent):
        return "mobile"
    return "desktop"


def detect_browser(user_agent: str) -> str:
    ua = (user_agent or "").lower()
    if not ua or ua == "unknown":
        return "Unknown"
    if "edg/" in ua:
        return "Edge"
    if "opr/" in ua or "opera/" in ua:
        return "Opera"
    if "chrome/" in ua:
        return "Chrome"
    if "firefox/" in ua:
        return "Firefox"
    if "safari/" in ua:
        return "Safari"
    if "msie" in ua or "trident/" in ua:
        return "Internet Explorer"
    return "Unknown"


def detect_os(user_agent: str) -> str:
    ua = (user_agent or "").lower()
    if not ua or ua == "unknown":
        return "Unknown"
    if "windows nt" in ua:
        if "windows nt 10" in ua:
            return "Windows 10/11"
        if "windows nt 6.3" in ua:
            return "Windows 8.1"
        if "windows nt 6.2" in ua:
            return "Windows 8"
        if "windows nt 6.1" in ua:
            return "Windows 7"
        return "Windows"
    # Android and iOS user agents also mention Linux / Mac OS X.
    if "android" in ua:
        return "Android"
    if "ipad" in ua:
        return "iPadOS"
    if "iphone os" in ua or "iphone" in ua:
        return "iOS"
    if "mac os x" in ua or "macintosh" in ua:
        return "macOS"
    if "linux" in ua:
        return "Linux"
    return "Unknown"


def client_ip(headers: Mapping[str, str], remote_addr: Optional[str]) -> str:
    forwarded = (headers.get("X-Forwarded-For") or "").split(",")[0].strip()
    return forwarded or headers.get("X-Real-IP") or remote_addr or "unknown"


def parse_device_info(headers: Mapping[str, str], remote_addr: Optional[str] = None) -> DeviceInfo:
    """Device details for an attendance row, from request headers."""
    user_agent = headers.get("User-Agent") or "unknown"
    source = "mobile" if (headers.get("X-App-Source") or "").lower() == "mobile" else "web"
    return DeviceInfo(
        ip_address=client_ip(headers, remote_addr),
        device_type=detect_device_type(user_agent),
        browser=detect_browser(user_agent),
        operating_system=detect_os(user_agent),
        source=source,
    )
