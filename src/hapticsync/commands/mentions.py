import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

MEDIA_EXTENSIONS = (
    "mp4", "m4a", "mp3", "wav", "webm", "mkv", "avi", "mov", "ogg", "oga", "ogv"
)

_EXT = r"\.(?:" + "|".join(MEDIA_EXTENSIONS) + r")"
_VERB = r"(?:play|playing|loads?|show|watch)\s+(?:the\s+)?(?:video\s+)?"

# Most specific first
MENTION_PATTERNS = [
    re.compile(r"<media:PLAY:\s*([^>]+" + _EXT + r")>", re.IGNORECASE),
    re.compile(r"<video:\s*([^>]+" + _EXT + r")>", re.IGNORECASE),
    re.compile(_VERB + r"[\"']([^\"']+" + _EXT + r")[\"']", re.IGNORECASE),
    re.compile(_VERB + r"[\"']?([^\"'\s<>]+" + _EXT + r")[\"']?", re.IGNORECASE),
    re.compile(r"[\"']([^\"']+" + _EXT + r")[\"']", re.IGNORECASE),
    re.compile(r"\b([^\"'\s<>]+" + _EXT + r")\b", re.IGNORECASE),
]


def find_media_mention(text: str) -> Optional[str]:
    """Return the first media filename mentioned in ``text``, if any"""
    if not text:
        return None
    for pattern in MENTION_PATTERNS:
        match = pattern.search(text)
        if match:
            filename = match.group(1).strip()
            logger.debug(f"Detected media mention: {filename}")
            return filename
    return None
