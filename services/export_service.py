"""
Export Utility — packs generated images into a single zip download.
"""
import io
import logging
import zipfile
from typing import NamedTuple

from recipe_models import GeneratedImage
from utils.errors import ExportError
from utils.image_helpers import from_data_uri, slugify_name

logger = logging.getLogger(__name__)

DEFAULT_ARCHIVE_STEM = "recipe"


class ExportArchive(NamedTuple):
    filename: str
    content: bytes


def image_filename(image: GeneratedImage) -> str:
    return f"{slugify_name(image.title)}.jpg"


def archive_filename(keyword: str) -> str:
    """'Tomato Soup' -> 'tomato_soup_images.zip'; empty keyword -> 'recipe_images.zip'"""
    return f"{slugify_name(keyword) or DEFAULT_ARCHIVE_STEM}_images.zip"


def build_archive(images: list[GeneratedImage]) -> bytes:
    """
    One JPEG entry per image, named after its slugged title.
    Titles that slug to the same name are not deduplicated: the last image wins.
    """
    entries = {}
    for image in images:
        entries[image_filename(image)] = from_data_uri(image.image_url)

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w', compression=zipfile.ZIP_DEFLATED) as archive:
        for name, payload in entries.items():
            archive.writestr(name, payload)
    return buffer.getvalue()


def export_all(images: list[GeneratedImage], keyword: str) -> ExportArchive:
    """
    Builds the archive for download.
    Raises ExportError if any image cannot be decoded or the zip cannot be written.
    """
    try:
        content = build_archive(images)
    except (ValueError, zipfile.BadZipFile, OSError) as e:
        logger.error("Failed to create zip file: %s", e)
        raise ExportError(f"Could not assemble archive: {e}") from e

    filename = archive_filename(keyword)
    logger.info("Exported %d images to %s (%d bytes)", len(images), filename, len(content))
    return ExportArchive(filename=filename, content=content)
