"""Video link helpers for tutorials (YouTube and Vimeo)."""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse


def _after(url: str, marker: str) -> str:
    return url.split(marker, 1)[1].split("?", 1)[0]


def _youtube_id(url: str) -> str:
    if "youtube.com/watch" in url:
        return parse_qs(urlparse(url).query).get("v", [""])[0]
    if "youtu.be/" in url:
        return _after(url, "youtu.be/")
    if "youtube.com" in url and "/embed/" in url:
        return _after(url, "/embed/")
    return ""


def get_embed_url(url: str) -> str:
    """Turn a watch/share link into an embeddable player URL."""
    if "youtube.com/watch" in url or "youtu.be/" in url:
        return f"https://www.youtube.com/embed/{_youtube_id(url)}"
    if "/embed/" in url or "player.vimeo.com" in url:
        return url
    if "vimeo.com/" in url:
        return f"https://player.vimeo.com/video/{_after(url, 'vimeo.com/')}"
    return url


def get_thumbnail_url(url: str, thumbnail_url: str | None = None) -> str:
    """Explicit thumbnail if set, else the YouTube preview image, else ''."""
    if thumbnail_url:
        return thumbnail_url
    video_id = _youtube_id(url)
    if video_id:
        return f"https://img.youtube.com/vi/{video_id}/mqdefault.jpg"
    return ""
