"""
Generation Client — turns one GenerationTask into one GeneratedImage.

Each task makes two provider calls at the same time:
  • Imagen: the photograph, wrapped in the fixed photorealism style prompt
  • Gemini: alt / title / caption / description as schema-constrained JSON

Both must succeed. There is no retry; any failure surfaces as GenerationError.
"""
import asyncio
import json
import logging

from google.genai import types

from ai_engine import IMAGE_MODEL, TEXT_MODEL, ImageMetadata, build_client
from recipe_models import METADATA_FIELDS, GeneratedImage, GenerationTask
from utils.errors import GenerationError
from utils.image_helpers import ensure_jpeg, to_data_uri
from utils.prompt_manager import load_prompt

logger = logging.getLogger(__name__)


def build_image_prompt(subject: str) -> str:
    return load_prompt('recipe_image/photoreal_style.jinja2', subject=subject)


def build_metadata_prompt(subject: str) -> str:
    return load_prompt('recipe_image/image_metadata.jinja2', subject=subject)


def extract_image_bytes(response) -> bytes:
    """
    Pulls the first image out of a generate_images response, normalised to JPEG.
    Raises GenerationError if the provider returned nothing usable.
    """
    generated = getattr(response, 'generated_images', None) or []
    image = generated[0].image if generated else None
    image_bytes = getattr(image, 'image_bytes', None) if image else None

    if not image_bytes:
        raise GenerationError("Image generation failed, no image bytes returned.")

    try:
        return ensure_jpeg(image_bytes, getattr(image, 'mime_type', None))
    except ValueError as e:
        raise GenerationError(f"Image generation returned unreadable bytes: {e}") from e


def parse_metadata(response) -> dict:
    """
    Validates the Gemini metadata response. Fails closed: every field in
    METADATA_FIELDS must be present as a non-blank string.
    """
    parsed = getattr(response, 'parsed', None)
    if isinstance(parsed, dict):
        data = parsed
    else:
        try:
            data = json.loads(response.text)
        except (TypeError, ValueError) as e:
            raise GenerationError(f"Metadata response is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise GenerationError("Metadata response is not a JSON object.")

    missing = [
        field for field in METADATA_FIELDS
        if not isinstance(data.get(field), str) or not data[field].strip()
    ]
    if missing:
        raise GenerationError(f"Metadata response is missing field(s): {', '.join(missing)}")

    return {field: data[field].strip() for field in METADATA_FIELDS}


class GenerationClient:
    """Wraps the async surface (client.aio) of the GenAI SDK."""

    def __init__(self, client=None, image_model: str = IMAGE_MODEL, text_model: str = TEXT_MODEL):
        self.client = client or build_client()
        self.image_model = image_model
        self.text_model = text_model

    async def _request_image(self, task: GenerationTask):
        return await self.client.aio.models.generate_images(
            model=self.image_model,
            prompt=build_image_prompt(task.prompt),
            config=types.GenerateImagesConfig(
                number_of_images=1,
                aspect_ratio=task.aspect_ratio.value,
                output_mime_type="image/jpeg",
            ),
        )

    async def _request_metadata(self, task: GenerationTask):
        return await self.client.aio.models.generate_content(
            model=self.text_model,
            contents=build_metadata_prompt(task.prompt),
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=ImageMetadata,
            ),
        )

    async def generate(self, task: GenerationTask) -> GeneratedImage:
        logger.debug("Generating %s (%s) | Prompt: %s...", task.id, task.aspect_ratio.value, task.prompt[:60])

        try:
            image_response, metadata_response = await asyncio.gather(
                self._request_image(task),
                self._request_metadata(task),
            )
            image_bytes = extract_image_bytes(image_response)
            metadata = parse_metadata(metadata_response)
        except GenerationError as e:
            logger.error("Generation failed for %s: %s", task.id, e)
            raise
        except Exception as e:
            logger.error("Provider call failed for %s: %s", task.id, e)
            raise GenerationError(f"Provider call failed for '{task.id}': {e}") from e

        return GeneratedImage(
            id=task.id,
            image_url=to_data_uri(image_bytes),
            aspect_ratio=task.aspect_ratio,
            prompt=task.prompt,
            **metadata,
        )
