"""Hashtags are derived from post content on the way out, never stored."""
import re
from typing import List

# Word characters plus Latin-1 Supplement / Latin Extended letters
HASHTAG_PATTERN = re.compile(r"#[\wÀ-ɏ]+")

EXCERPT_LENGTH = 150

def extract_hashtags(text: str) -> List[str]:
    return HASHTAG_PATTERN.findall(text or "")

def remove_hashtags(text: str) -> str:
    return HASHTAG_PATTERN.sub("", text or "").strip()

def excerpt(text: str, max_length: int = EXCERPT_LENGTH) -> str:
    body = remove_hashtags(text)
    if len(body) <= max_length:
        return body
    return body[:max_length] + "..."
