"""PosterBot - poster upload, metadata extraction and Zenodo archival.

A service for turning uploaded posters into structured bibliographic
records and publishing them as archival deposits on Zenodo.
"""

__version__ = "1.0.0"

from posterbot.config import Settings
from posterbot.models.poster import Poster, PosterMetadata

__all__ = ["Poster", "PosterMetadata", "Settings", "__version__"]
