"""Map incoming metadata (extraction output, edit form) to the stored shape.

Storage conventions shared by both directions:

* ``publisher`` and ``types`` are single-element lists, empty when unset.
* The conference object is flattened into ten columns.
* Ethics approvals are stored under the singular ``ethics_approval``.
* A missing title or description falls back to a fixed placeholder.
"""

from dataclasses import dataclass
from typing import Any, Optional, Union

from posterbot.models.extraction import Affiliation, Creator, ExtractionResult
from posterbot.models.forms import FormCreator, PosterForm
from posterbot.models.poster import (
    DEFAULT_DOMAIN,
    PLACEHOLDER_DESCRIPTION,
    PLACEHOLDER_TITLE,
    PosterMetadata,
    conference_columns,
)

UNKNOWN_CREATOR = "Unknown Creator"


@dataclass
class MappedPoster:
    """Poster fields plus metadata, ready to persist."""

    title: str
    description: str
    metadata: PosterMetadata


def _dump(model: Any) -> dict[str, Any]:
    return model.model_dump(by_alias=True, exclude_none=True)


def _first_text(entries: list[dict[str, Any]], key: str) -> Optional[str]:
    if entries:
        value = entries[0].get(key)
        if isinstance(value, str) and value:
            return value
    return None


# ---------------------------------------------------------------------------
# Extraction service output → storage
# ---------------------------------------------------------------------------

def _map_affiliation(affiliation: Union[Affiliation, str]) -> dict[str, Any]:
    if isinstance(affiliation, str):
        return {"name": affiliation}
    return {
        "name": affiliation.name,
        "affiliationIdentifier": affiliation.affiliation_identifier or None,
        "affiliationIdentifierScheme": affiliation.affiliation_identifier_scheme or None,
    }


def _map_extracted_creator(creator: Creator) -> dict[str, Any]:
    mapped: dict[str, Any] = {"name": creator.name or UNKNOWN_CREATOR}
    if creator.given_name:
        mapped["givenName"] = creator.given_name
    if creator.family_name:
        mapped["familyName"] = creator.family_name
    if creator.name_type:
        mapped["nameType"] = creator.name_type
    if creator.name_identifiers is not None:
        mapped["nameIdentifiers"] = [
            {
                "nameIdentifier": ni.name_identifier,
                "nameIdentifierType": ni.name_identifier_scheme or None,
                "nameIdentifierScheme": ni.name_identifier_scheme or None,
            }
            for ni in creator.name_identifiers
        ]
    if creator.affiliation is not None:
        mapped["affiliation"] = [_map_affiliation(aff) for aff in creator.affiliation]
    return mapped


def map_to_db_fields(extracted: ExtractionResult) -> MappedPoster:
    """Map a validated extraction response to poster + metadata fields.

    Deterministic: the same input always yields an equal output.
    """
    titles = [_dump(t) for t in extracted.titles or []]
    descriptions = [_dump(d) for d in extracted.descriptions or []]

    metadata = PosterMetadata(
        creators=[_map_extracted_creator(c) for c in extracted.creators or []],
        titles=titles,
        descriptions=descriptions,
        image_caption=[_dump(c) for c in extracted.merged_image_captions],
        poster_content=list(extracted.merged_content_sections),
        table_caption=[_dump(c) for c in extracted.merged_table_captions],
        conference=conference_columns(_dump(extracted.conference) if extracted.conference else None),
        domain=extracted.merged_domain or DEFAULT_DOMAIN,
        doi=extracted.doi or None,
        identifiers=list(extracted.identifiers or []),
        alternate_identifiers=list(extracted.alternate_identifiers or []),
        publisher=[_dump(extracted.publisher)] if extracted.publisher else [],
        publication_year=extracted.publication_year,
        subjects=list(extracted.subjects or []),
        dates=list(extracted.dates or []),
        language=extracted.language,
        types=[_dump(extracted.types)] if extracted.types else [],
        related_identifiers=list(extracted.related_identifiers or []),
        sizes=list(extracted.sizes or []),
        formats=list(extracted.formats or []),
        version=extracted.version,
        rights_list=list(extracted.rights_list or []),
        funding_references=list(extracted.funding_references or []),
        ethics_approval=list(extracted.ethics_approvals or []),
    )
    return MappedPoster(
        title=_first_text(titles, "title") or PLACEHOLDER_TITLE,
        description=_first_text(descriptions, "description") or PLACEHOLDER_DESCRIPTION,
        metadata=metadata,
    )


# ---------------------------------------------------------------------------
# Edit form → storage
# ---------------------------------------------------------------------------

def _map_form_creator(creator: FormCreator) -> dict[str, Any]:
    name = " ".join(part for part in (creator.given_name, creator.family_name) if part)
    mapped: dict[str, Any] = {"name": name or UNKNOWN_CREATOR, "nameType": creator.name_type}
    if creator.given_name:
        mapped["givenName"] = creator.given_name
    if creator.family_name:
        mapped["familyName"] = creator.family_name
    if creator.name_identifiers:
        mapped["nameIdentifiers"] = [{"nameIdentifier": ni.name_identifier} for ni in creator.name_identifiers]
    if creator.affiliation:
        mapped["affiliation"] = [_dump(aff) for aff in creator.affiliation]
    return mapped


def form_to_db_fields(form: PosterForm) -> MappedPoster:
    """Map a validated edit payload to poster + metadata fields."""
    dates = [
        {
            "date": d.start,
            "dateType": d.date_type,
            "dateInformation": d.date_information,
        }
        for d in form.dates
        if d.start
    ]

    metadata = PosterMetadata(
        creators=[_map_form_creator(c) for c in form.creators],
        titles=list(form.titles),
        descriptions=list(form.descriptions),
        image_caption=list(form.image_caption),
        table_caption=list(form.table_caption),
        conference=conference_columns(_dump(form.conference) if form.conference else None),
        domain=form.domain or DEFAULT_DOMAIN,
        identifiers=list(form.identifiers),
        alternate_identifiers=list(form.alternate_identifiers),
        publisher=[_dump(form.publisher)] if form.publisher and form.publisher.name else [],
        publication_year=form.publication_year,
        subjects=list(form.subjects),
        dates=dates,
        language=form.language or None,
        types=[_dump(form.types)] if form.types and form.types.resource_type else [],
        related_identifiers=list(form.related_identifiers),
        sizes=list(form.sizes),
        formats=list(form.formats),
        version=form.version or None,
        rights_list=list(form.rights_list),
        funding_references=list(form.funding_references),
        ethics_approval=list(form.ethics_approvals),
    )
    return MappedPoster(
        title=form.title or _first_text(metadata.titles, "title") or PLACEHOLDER_TITLE,
        description=(
            form.description
            or _first_text(metadata.descriptions, "description")
            or PLACEHOLDER_DESCRIPTION
        ),
        metadata=metadata,
    )
