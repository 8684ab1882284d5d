"""
Reading the platform's data export.

``like.js`` is a JavaScript assignment wrapping a JSON array:

    window.YTD.like.part0 = [ {"like": {"tweetId": "...", ...}}, ... ]
"""

import json
import re
from pathlib import Path
from typing import List


_ASSIGNMENT = re.compile(r'^\s*window\.YTD\.like\.part\d+\s*=\s*(.+)', re.DOTALL)


def parse_like_js(content: str) -> List[str]:
    """
    Extract liked post ids from like.js content.

    Args:
        content: File content

    Returns:
        Post ids in export order (duplicates dropped)

    Raises:
        ValueError: Content is not in the expected format
    """
    match = _ASSIGNMENT.match(content)
    if not match:
        raise ValueError("like.js is not in the expected format (window.YTD.like.part0 = [...])")

    payload = match.group(1).strip()
    if payload.endswith(';'):
        payload = payload[:-1]

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse like.js JSON payload: {e}") from e

    ids: List[str] = []
    seen = set()
    if isinstance(data, list):
        for item in data:
            like = item.get('like') if isinstance(item, dict) else None
            tweet_id = like.get('tweetId') if isinstance(like, dict) else None
            if tweet_id and str(tweet_id) not in seen:
                seen.add(str(tweet_id))
                ids.append(str(tweet_id))
    return ids


def extract_like_ids(path: Path) -> List[str]:
    """
    Read like.js and extract liked post ids.

    Args:
        path: Path to like.js

    Returns:
        Post ids in export order
    """
    with open(path, 'r', encoding='utf-8') as f:
        return parse_like_js(f.read())
