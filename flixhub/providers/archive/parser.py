"""
Archive Parser - Mapping of archive.org API documents onto FlixHub models.

The advanced search API returns loosely typed documents and the metadata
API returns an item's metadata plus its file list. Fields may be strings,
lists or missing entirely; this module normalizes them.
"""

import logging
import math
import re
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

from flixhub.core.exceptions import ParseError
from flixhub.core.models import (
    Episode,
    FilmKind,
    MediaLink,
    Movie,
    SearchItem,
    SearchResponseData,
    Season,
    Stream,
    Subtitle,
    SubtitleFormat,
    TvShow,
)
from flixhub.providers.common import QualityExtractor, TextCleaner


logger = logging.getLogger(__name__)


VIDEO_EXTENSIONS = {".mp4", ".m4v", ".webm", ".ogv", ".mkv", ".avi", ".mpeg", ".mpg"}
SUBTITLE_EXTENSIONS = {".srt", ".vtt", ".ass", ".ssa"}

# Collections whose items are episodic
TV_COLLECTIONS = {"classic_tv", "television", "tvarchive"}

_LANGUAGE_SUFFIX = re.compile(r'\.([a-z]{2,3}(?:[-_][A-Za-z]{2})?)$', re.IGNORECASE)
_IMDB_URN = re.compile(r'urn:imdb:(tt\d+)')


def as_list(value: Any) -> List[Any]:
    """Archive fields hold either a single value or a list."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def first(value: Any) -> Optional[Any]:
    values = as_list(value)
    return values[0] if values else None


def split_subjects(value: Any) -> List[str]:
    subjects = []
    for entry in as_list(value):
        subjects.extend(part.strip() for part in str(entry).split(';') if part.strip())
    return subjects


def extract_imdb_id(metadata: Dict[str, Any]) -> Optional[str]:
    for entry in as_list(metadata.get("external-identifier")):
        match = _IMDB_URN.search(str(entry))
        if match:
            return match.group(1)
    return None


def film_kind(collections: Any) -> FilmKind:
    if TV_COLLECTIONS & {str(entry) for entry in as_list(collections)}:
        return FilmKind.TV_SHOW
    return FilmKind.MOVIE


class ArchiveParser:
    """Converts archive.org documents into pipeline models."""

    def __init__(self, base_url: str, provider_id: str, subtitle_language: str = "en"):
        """
        Initialize the parser.

        Args:
            base_url: Archive base URL, for download and image links
            provider_id: Id stamped on produced items
            subtitle_language: Language assumed for untagged subtitle files
        """
        self.base_url = base_url.rstrip('/')
        self.provider_id = provider_id
        self.subtitle_language = subtitle_language

    def image_url(self, identifier: str) -> str:
        return f"{self.base_url}/services/img/{quote(identifier)}"

    def details_url(self, identifier: str) -> str:
        return f"{self.base_url}/details/{quote(identifier)}"

    def download_url(self, identifier: str, name: str) -> str:
        return f"{self.base_url}/download/{quote(identifier)}/{quote(name)}"

    def parse_search(self, payload: Any, page: int, rows: int) -> SearchResponseData:
        """
        Parse an advanced search response into a result page.

        Raises:
            ParseError: If the payload does not look like a search response
        """
        try:
            response = payload["response"]
            docs = response["docs"]
            found = int(response.get("numFound", len(docs)))
        except (KeyError, TypeError, ValueError) as e:
            raise ParseError(f"Unexpected search response: {e}", source="advancedsearch")

        results = []
        for doc in docs:
            try:
                results.append(self.parse_search_doc(doc))
            except (KeyError, ValueError) as e:
                logger.debug(f"Skipping unparsable search document: {e}")

        total_pages = math.ceil(found / rows) if rows else 1
        return SearchResponseData(
            results=results,
            page=page,
            has_next_page=page < total_pages,
            total_pages=total_pages,
        )

    def parse_search_doc(self, doc: Dict[str, Any]) -> SearchItem:
        identifier = doc["identifier"]
        return SearchItem(
            id=identifier,
            provider_id=self.provider_id,
            title=TextCleaner.clean_title(str(first(doc.get("title")) or identifier)),
            kind=film_kind(doc.get("collection")),
            year=TextCleaner.extract_year(first(doc.get("year")) or first(doc.get("date"))),
            poster=self.image_url(identifier),
            imdb_id=extract_imdb_id(doc),
            home_page=self.details_url(identifier),
        )

    def parse_item(self, payload: Any) -> Optional[SearchItem]:
        """Reduce a metadata document to a search item (None if the item does not exist)."""
        metadata = self._metadata(payload)
        if metadata is None:
            return None
        return self.parse_search_doc(metadata)

    def _metadata(self, payload: Any) -> Optional[Dict[str, Any]]:
        if not payload:
            return None
        if not isinstance(payload, dict):
            raise ParseError("Unexpected metadata response", source="metadata")
        metadata = payload.get("metadata")
        if not metadata:
            return None
        if "identifier" not in metadata:
            raise ParseError("Metadata without identifier", source="metadata")
        return metadata

    @staticmethod
    def video_files(payload: Dict[str, Any], originals_only: bool = False) -> List[Dict[str, Any]]:
        files = []
        for entry in payload.get("files", []):
            if PurePosixPath(entry.get("name", "")).suffix.lower() not in VIDEO_EXTENSIONS:
                continue
            if originals_only and entry.get("source") != "original":
                continue
            files.append(entry)
        return sorted(files, key=lambda entry: entry["name"])

    @staticmethod
    def subtitle_files(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [
            entry for entry in payload.get("files", [])
            if PurePosixPath(entry.get("name", "")).suffix.lower() in SUBTITLE_EXTENSIONS
        ]

    def episode_file(self, payload: Dict[str, Any], episode: Episode) -> Optional[str]:
        """Name of the original video file behind an episode, numbered as in parse_details."""
        if episode.id:
            return episode.id
        originals = self.video_files(payload, originals_only=True)
        if episode.season != 1 or not 1 <= episode.number <= len(originals):
            return None
        return originals[episode.number - 1]["name"]

    def parse_details(self, payload: Any) -> Optional[Union[Movie, TvShow]]:
        """
        Parse a metadata document into Movie or TvShow details.

        Episodic items become a TvShow with one season whose episodes are
        the item's original video files.
        """
        metadata = self._metadata(payload)
        if metadata is None:
            return None

        identifier = metadata["identifier"]
        description = " ".join(str(part) for part in as_list(metadata.get("description")))
        common = dict(
            id=identifier,
            provider_id=self.provider_id,
            title=TextCleaner.clean_title(str(first(metadata.get("title")) or identifier)),
            poster=self.image_url(identifier),
            overview=TextCleaner.clean_description(description) or None,
            year=TextCleaner.extract_year(first(metadata.get("year")) or first(metadata.get("date"))),
            genres=split_subjects(metadata.get("subject"))[:5],
            imdb_id=extract_imdb_id(metadata),
            home_page=self.details_url(identifier),
        )

        originals = self.video_files(payload, originals_only=True)

        if film_kind(metadata.get("collection")) == FilmKind.TV_SHOW:
            episodes = [
                Episode(
                    season=1,
                    number=number,
                    title=TextCleaner.clean_title(str(entry.get("title") or PurePosixPath(entry["name"]).stem)),
                    id=entry["name"],
                )
                for number, entry in enumerate(originals, start=1)
            ]
            return TvShow(seasons=[Season(number=1, episodes=episodes)], **common)

        runtime = TextCleaner.parse_runtime(first(metadata.get("runtime")))
        if runtime is None and originals:
            runtime = max(TextCleaner.parse_runtime(entry.get("length")) or 0 for entry in originals) or None
        return Movie(runtime=runtime, **common)

    def _stream(self, identifier: str, entry: Dict[str, Any]) -> Stream:
        url = self.download_url(identifier, entry["name"])
        quality = QualityExtractor.from_height(entry.get("height")) or QualityExtractor.extract_from_url(url)
        label = entry.get("format") or PurePosixPath(entry["name"]).suffix.lstrip('.').upper()
        if entry.get("source") == "derivative":
            label = f"{label} (transcode)"
        return Stream(url=url, name=label, quality=quality, headers={"Referer": self.details_url(identifier)})

    def _subtitle(self, identifier: str, entry: Dict[str, Any]) -> Subtitle:
        stem = PurePosixPath(entry["name"]).stem
        match = _LANGUAGE_SUFFIX.search(stem)
        language = match.group(1).lower().replace('_', '-') if match else self.subtitle_language
        url = self.download_url(identifier, entry["name"])
        return Subtitle(url=url, language=language, format=SubtitleFormat.from_url(url), label=entry.get("format"))

    def parse_links(
        self,
        payload: Any,
        episode: Optional[Episode] = None,
        include_derivatives: bool = True,
    ) -> List[MediaLink]:
        """
        Build stream and subtitle links from an item's file list.

        Args:
            payload: Metadata document
            episode: Restricts links to one episode file of an episodic item
            include_derivatives: Whether archive transcodes are offered

        Returns:
            Streams (best quality first) followed by subtitles
        """
        metadata = self._metadata(payload)
        if metadata is None:
            return []
        identifier = metadata["identifier"]

        videos = self.video_files(payload, originals_only=not include_derivatives)
        subtitles = self.subtitle_files(payload)

        if episode is not None:
            episode_file = self.episode_file(payload, episode)
            if episode_file is None:
                return []
            episode_stem = PurePosixPath(episode_file).stem
            videos = [
                entry for entry in videos
                if entry["name"] == episode_file or entry.get("original") == episode_file
            ]
            subtitles = [entry for entry in subtitles if entry["name"].startswith(episode_stem)]

        streams = [self._stream(identifier, entry) for entry in videos]
        streams.sort(key=lambda stream: stream.quality.height if stream.quality else 0, reverse=True)
        return streams + [self._subtitle(identifier, entry) for entry in subtitles]


__all__ = ["ArchiveParser", "VIDEO_EXTENSIONS", "SUBTITLE_EXTENSIONS", "TV_COLLECTIONS"]
