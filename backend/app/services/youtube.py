"""
YouTube metadata lookup using yt-dlp.

Only metadata is fetched; nothing is downloaded. Used by the client to reject
videos longer than the supported duration before starting a run.
"""
import asyncio
import logging
import re
from typing import Dict, List, Optional
from urllib.parse import parse_qs, urlparse

import yt_dlp

from app.core.config import settings
from app.core.errors import ValidationError, VyralizeError

logger = logging.getLogger(__name__)

INVALID_URL_MESSAGE = "Invalid or missing YouTube URL."

_WATCH_HOSTS = {"youtube.com", "www.youtube.com", "m.youtube.com", "music.youtube.com"}
_SHORT_HOSTS = {"youtu.be", "www.youtu.be"}
_PATH_ID_PATTERN = re.compile(r"^/(?:embed|v|shorts|live)/([A-Za-z0-9_-]{11})/?$")
_SHORT_PATH_PATTERN = re.compile(r"^/([A-Za-z0-9_-]{11})/?$")
_VIDEO_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{11}")


class VideoInfoError(VyralizeError):
    """yt-dlp could not read the video's metadata."""
    message = "Failed to fetch video information."


class YouTubeService:
    """Service for reading YouTube video metadata."""

    def __init__(self):
        self.max_duration = settings.max_video_duration_seconds
        self._default_headers = {
            # Modern desktop UA helps avoid 403s on some videos
            "User-Agent": (
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
                "AppleWebKit/537.36 (KHTML, like Gecko) "
                "Chrome/120.0.0.0 Safari/537.36"
            ),
            "Accept-Language": "en-US,en;q=0.9",
        }

    def _common_yt_opts(self, player_client: Optional[str] = None) -> Dict:
        """
        Shared yt-dlp options to reduce 403/availability issues.
        """
        client_profiles: List[str] = [player_client] if player_client else ["android", "web", "ios"]
        return {
            "http_headers": dict(self._default_headers),
            "extractor_args": {
                "youtube": {
                    "player_client": client_profiles,
                }
            },
            "geo_bypass": True,
        }

    def extract_video_id(self, url: str) -> str:
        """
        Extract YouTube video ID from URL.

        Args:
            url: YouTube URL (watch, youtu.be, embed, v, shorts or live form)

        Returns:
            11-character YouTube video ID

        Raises:
            ValidationError: If URL is not a YouTube video URL
        """
        if not url or not url.strip():
            raise ValidationError(INVALID_URL_MESSAGE)

        candidate = url.strip()
        if "://" not in candidate:
            candidate = f"https://{candidate}"
        parsed = urlparse(candidate)
        if parsed.scheme not in ("http", "https"):
            raise ValidationError(INVALID_URL_MESSAGE)

        # Host must be YouTube itself; a YouTube URL embedded elsewhere is rejected
        host = (parsed.hostname or "").lower()
        video_id = ""
        if host in _SHORT_HOSTS:
            match = _SHORT_PATH_PATTERN.match(parsed.path)
            video_id = match.group(1) if match else ""
        elif host in _WATCH_HOSTS:
            if parsed.path.rstrip("/") == "/watch":
                video_id = parse_qs(parsed.query).get("v", [""])[0]
            else:
                match = _PATH_ID_PATTERN.match(parsed.path)
                video_id = match.group(1) if match else ""

        if not _VIDEO_ID_PATTERN.fullmatch(video_id):
            raise ValidationError(INVALID_URL_MESSAGE)
        return video_id

    def _fetch_duration(self, video_id: str) -> int:
        ydl_opts = {
            "quiet": True,
            "no_warnings": True,
            "skip_download": True,
            **self._common_yt_opts(),
        }
        url = f"https://www.youtube.com/watch?v={video_id}"

        try:
            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                info = ydl.extract_info(url, download=False)
        except yt_dlp.utils.DownloadError as e:
            logger.error(f"yt-dlp failed for {video_id}: {e}")
            raise VideoInfoError() from e

        duration = (info or {}).get("duration")
        if duration is None:
            raise VideoInfoError()
        return int(duration)

    async def get_duration(self, url: str) -> int:
        """
        Get a video's duration in seconds.

        yt-dlp is blocking, so the lookup runs in a worker thread.

        Raises:
            ValidationError: Not a YouTube video URL
            VideoInfoError: Metadata could not be fetched
        """
        video_id = self.extract_video_id(url)
        duration = await asyncio.to_thread(self._fetch_duration, video_id)
        logger.info(f"YouTube video {video_id} duration: {duration}s")
        return duration


# Global instance
youtube_service = YouTubeService()
