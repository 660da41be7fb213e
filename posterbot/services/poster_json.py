"""Project stored poster metadata onto the external poster JSON schema.

The result is attached to the Zenodo deposition as ``poster.json`` and
served by the download endpoint.  Pure functions, no I/O.
"""

from typing import Any, Optional

from posterbot.models.poster import CONFERENCE_FIELDS, PosterMetadata

POSTER_JSON_FILENAME = "poster.json"


def split_doi(doi: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """Split ``10.1234/abc/def`` on the first slash into prefix and suffix.

    Returns:
        ``(prefix, suffix)``, or ``(None, None)`` when there is no slash
    """
    if not doi or "/" not in doi:
        return None, None
    prefix, suffix = doi.split("/", 1)
    return prefix, suffix


def build_conference(conference: dict[str, Optional[str]]) -> Optional[dict[str, str]]:
    """Nest the flat conference columns, or None if every one is empty."""
    nested = {name: conference[name] for name in CONFERENCE_FIELDS if conference.get(name)}
    return nested or None


def strip_empty_strings(value: Any) -> Any:
    """Recursively drop keys whose value is exactly ``""``.

    The poster schema puts ``minLength: 1`` on optional strings, so an
    empty string is invalid rather than "unset" and must be omitted.
    """
    if isinstance(value, list):
        return [strip_empty_strings(item) for item in value]
    if isinstance(value, dict):
        return {k: strip_empty_strings(v) for k, v in value.items() if v != ""}
    return value


def build_poster_json(meta: PosterMetadata) -> dict[str, Any]:
    """Transform stored metadata into the external poster JSON document."""
    prefix, suffix = split_doi(meta.doi)

    content = meta.poster_content
    if isinstance(content, list):
        content = {"sections": content} if content else None

    candidates: list[tuple[str, Any]] = [
        ("doi", meta.doi),
        ("prefix", prefix),
        ("suffix", suffix),
        ("identifiers", meta.identifiers),
        ("alternateIdentifiers", meta.alternate_identifiers),
        ("creators", meta.creators),
        ("titles", meta.titles),
        ("publisher", meta.current_publisher),
        ("publicationYear", meta.publication_year),
        ("subjects", meta.subjects),
        ("dates", meta.dates),
        ("language", meta.language),
        ("types", meta.current_types),
        ("relatedIdentifiers", meta.related_identifiers),
        ("sizes", meta.sizes),
        ("formats", meta.formats),
        ("version", meta.version),
        ("rightsList", meta.rights_list),
        ("descriptions", meta.descriptions),
        ("fundingReferences", meta.funding_references),
        ("ethicsApprovals", meta.ethics_approval),
        ("conference", build_conference(meta.conference)),
        ("content", content),
        ("tableCaptions", meta.table_caption),
        ("imageCaptions", meta.image_caption),
        ("researchField", meta.domain),
    ]
    poster_json = {key: value for key, value in candidates if not _is_empty(value)}
    return strip_empty_strings(poster_json)


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}
