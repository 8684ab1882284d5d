"""Metadata document schemas.

Documents written by the external downloader come in a handful of top-level
shapes. Only ``media`` (and, for reports, ``author``) is relied upon.
"""
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator


FULL_TWEET_KEYS: Tuple[str, ...] = (
    'author', 'createdAt', 'description', 'id', 'isQuoteStatus', 'languange',
    'media', 'mediaCount', 'possiblySensitive', 'possiblySensitiveEditable',
    'statistics', 'status', 'statusMetadata', 'statusUpdatedAt',
)
LIGHT_TWEET_KEYS: Tuple[str, ...] = (
    'author', 'createdAt', 'description', 'id', 'isQuoteStatus', 'languange',
    'media', 'mediaCount', 'possiblySensitive', 'possiblySensitiveEditable',
    'statistics',
)
STATUS_ONLY_KEYS: Tuple[str, ...] = ('status', 'statusMetadata', 'statusUpdatedAt')


class MediaVariant(BaseModel):
    """One encoded rendition of a media entry."""
    model_config = ConfigDict(extra="ignore")

    url: str
    bitrate: Optional[int] = None


class MediaItem(BaseModel):
    """Media entry as stored in the metadata document."""
    model_config = ConfigDict(extra="allow")

    type: str = ""
    image: Optional[str] = None
    videos: Optional[List[MediaVariant]] = None
    cover: Optional[str] = None

    @property
    def kind(self) -> str:
        return self.type

    @property
    def variants(self) -> List[MediaVariant]:
        """Photo: the single image URL. Video: every listed rendition."""
        if self.type == 'photo':
            return [MediaVariant(url=self.image)] if self.image else []
        return list(self.videos or [])

    @property
    def cover_url(self) -> Optional[str]:
        return self.cover or None


class Author(BaseModel):
    """Post author; only used by reports."""
    model_config = ConfigDict(extra="allow")

    username: Optional[str] = None
    name: Optional[str] = None


class _TweetDocument(BaseModel):
    model_config = ConfigDict(extra="allow")

    author: Optional[Author] = None
    media: Optional[Any] = None

    @field_validator("author", mode="wrap")
    @classmethod
    def _lenient_author(cls, value, handler):
        # A malformed author must never block the media list
        try:
            return handler(value)
        except ValidationError:
            return None

    @property
    def has_media_list(self) -> bool:
        return isinstance(self.media, list)

    def media_entries(self) -> List[Optional[MediaItem]]:
        """
        Validate media entries one by one.

        Returns:
            One MediaItem per raw entry, None where the entry is malformed
        """
        if not self.has_media_list:
            return []
        entries: List[Optional[MediaItem]] = []
        for raw in self.media:
            try:
                entries.append(MediaItem.model_validate(raw))
            except ValidationError:
                entries.append(None)
        return entries


class FullTweet(_TweetDocument):
    """Complete post with media and status fields."""
    shape: Literal["full_tweet"] = "full_tweet"


class LightTweet(_TweetDocument):
    """Post without status fields."""
    shape: Literal["light_tweet"] = "light_tweet"


class StatusOnlyTweet(_TweetDocument):
    """Placeholder written for deleted or protected posts."""
    shape: Literal["status_only"] = "status_only"
    status: Optional[Any] = None


class UnrecognizedTweet(_TweetDocument):
    """Any other key set; the raw keys are kept for reporting."""
    shape: Literal["unrecognized"] = "unrecognized"
    raw_keys: List[str] = []


TweetDocument = Union[FullTweet, LightTweet, StatusOnlyTweet, UnrecognizedTweet]

_SHAPES: Dict[Tuple[str, ...], type] = {
    FULL_TWEET_KEYS: FullTweet,
    LIGHT_TWEET_KEYS: LightTweet,
    STATUS_ONLY_KEYS: StatusOnlyTweet,
}


def parse_tweet_document(data: Any) -> TweetDocument:
    """
    Classify and validate a metadata document.

    Args:
        data: Decoded JSON document

    Returns:
        Shape-specific model

    Raises:
        ValueError: The document is not an object or fails validation
    """
    if not isinstance(data, dict):
        raise ValueError(f"metadata document must be an object, got {type(data).__name__}")

    keys = tuple(sorted(data))
    model = _SHAPES.get(keys)
    try:
        if model is None:
            return UnrecognizedTweet.model_validate({**data, 'raw_keys': list(keys)})
        return model.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"metadata document failed validation: {e}") from e
