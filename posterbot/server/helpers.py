"""Shared helpers for routers: caller identity and serializers."""

from dataclasses import asdict
from typing import Any, Optional

from fastapi import Header, HTTPException

from posterbot.models.poster import Poster, PosterMetadata


def current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Caller identity from the ``X-User-Id`` header set by the session layer."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id


def metadata_to_dict(metadata: PosterMetadata) -> dict[str, Any]:
    """Stored metadata with camelCase keys, as the editing UI reads it."""
    data = asdict(metadata)
    conference = data.pop("conference")
    return {
        "id": data.pop("id"),
        "posterId": data.pop("poster_id"),
        "creators": data["creators"],
        "titles": data["titles"],
        "descriptions": data["descriptions"],
        "imageCaption": data["image_caption"],
        "posterContent": data["poster_content"],
        "tableCaption": data["table_caption"],
        **conference,
        "domain": data["domain"],
        "doi": data["doi"],
        "identifiers": data["identifiers"],
        "alternateIdentifiers": data["alternate_identifiers"],
        "publisher": data["publisher"],
        "publicationYear": data["publication_year"],
        "subjects": data["subjects"],
        "dates": data["dates"],
        "language": data["language"],
        "types": data["types"],
        "relatedIdentifiers": data["related_identifiers"],
        "sizes": data["sizes"],
        "formats": data["formats"],
        "version": data["version"],
        "rightsList": data["rights_list"],
        "fundingReferences": data["funding_references"],
        "ethicsApproval": data["ethics_approval"],
    }


def poster_to_dict(poster: Poster, include_metadata: bool = False) -> dict[str, Any]:
    view = {
        "id": poster.id,
        "userId": poster.user_id,
        "title": poster.title,
        "description": poster.description,
        "status": poster.status,
        "imageUrl": poster.image_url,
        "created": poster.created_at,
        "publishedAt": poster.published_at,
    }
    if include_metadata:
        view["posterMetadata"] = metadata_to_dict(poster.metadata) if poster.metadata else None
    return view
