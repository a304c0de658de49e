"""Coarse user-agent classification for the audit log."""

from __future__ import annotations

import re

UNKNOWN = "unknown"


def detect_device_type(user_agent: str | None) -> str:
    """Return 'mobile', 'tablet', 'desktop' or 'unknown'."""
    if not user_agent or user_agent == UNKNOWN:
        return UNKNOWN
    ua = user_agent.lower()
    if re.search(r"tablet|ipad|playbook|silk", ua):
        return "tablet"
    if re.search(r"mobile|iphone|ipod|android|blackberry|opera mini|windows phone", ua):
        return "mobile"
    if re.search(r"windows|macintosh|linux|x11", ua):
        return "desktop"
    return UNKNOWN


def detect_browser(user_agent: str | None) -> str:
    if not user_agent:
        return UNKNOWN
    ua = user_agent.lower()
    if "edg/" in ua:
        return "Edge"
    if "opera" in ua or "opr/" in ua:
        return "Opera"
    if "chrome" in ua:
        return "Chrome"
    if "firefox" in ua:
        return "Firefox"
    if "safari" in ua:
        return "Safari"
    return UNKNOWN


def detect_os(user_agent: str | None) -> str:
    if not user_agent:
        return UNKNOWN
    ua = user_agent.lower()
    # Mobile platforms first: their UAs also mention linux / mac os
    if "android" in ua:
        return "Android"
    if "iphone" in ua or "ipad" in ua:
        return "iOS"
    if "windows" in ua:
        return "Windows"
    if "mac" in ua:
        return "macOS"
    if "linux" in ua:
        return "Linux"
    return UNKNOWN
