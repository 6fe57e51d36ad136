"""
Application State Controller — owns the form inputs, the generated image list
and the busy flags.

All methods run on one event loop and check/set their busy flag before the
first await, so overlapping requests are rejected without locks. Callers on
other threads read state through snapshot(), taken on that loop.

Busy policy:
  • generate, regenerate and export are mutually exclusive
  • at most one regeneration at a time, system-wide (not per image)
  • a rejected request is a no-op: state is untouched and nothing is called
"""
import asyncio
import enum
import logging
from dataclasses import dataclass, field, replace

from recipe_models import GeneratedImage, RecipeInput
from services import export_service
from services.export_service import ExportArchive
from utils.errors import ExportError, ValidationError

logger = logging.getLogger(__name__)

VALIDATION_MESSAGE = "Please fill in all fields: recipe keyword, ingredients, and at least one preparation step."
GENERATION_MESSAGE = "An error occurred while generating images. Please check your API key and try again."
REGENERATION_MESSAGE = "Failed to regenerate image. Please try again."
EXPORT_MESSAGE = "Could not create the zip file. Please try again."


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    GENERATION = "generation"
    REGENERATION = "regeneration"
    EXPORT = "export"


ERROR_MESSAGES = {
    ErrorKind.VALIDATION: VALIDATION_MESSAGE,
    ErrorKind.GENERATION: GENERATION_MESSAGE,
    ErrorKind.REGENERATION: REGENERATION_MESSAGE,
    ErrorKind.EXPORT: EXPORT_MESSAGE,
}


@dataclass
class StudioState:
    recipe: RecipeInput = field(default_factory=RecipeInput)
    images: list[GeneratedImage] = field(default_factory=list)
    is_generating: bool = False
    regenerating_id: str | None = None
    is_exporting: bool = False
    last_error: str | None = None
    error_kind: ErrorKind | None = None

    @property
    def is_busy(self) -> bool:
        return self.is_generating or self.regenerating_id is not None or self.is_exporting

    def is_regenerating(self, image_id: str) -> bool:
        return self.regenerating_id == image_id

    def find_image(self, image_id: str) -> GeneratedImage | None:
        return next((img for img in self.images if img.id == image_id), None)

    def set_error(self, kind: ErrorKind) -> None:
        self.error_kind = kind
        self.last_error = ERROR_MESSAGES[kind]

    def clear_error(self) -> None:
        self.error_kind = None
        self.last_error = None

    def snapshot(self) -> "StudioState":
        """Copy that later mutations of this state cannot reach. Images are frozen, so a new list is enough."""
        return replace(self, recipe=replace(self.recipe), images=list(self.images))

    def to_dict(self) -> dict:
        return {
            "recipe": self.recipe.to_dict(),
            "images": [image.to_dict() for image in self.images],
            "isGenerating": self.is_generating,
            "regeneratingId": self.regenerating_id,
            "isExporting": self.is_exporting,
            "error": self.last_error,
            "errorKind": self.error_kind.value if self.error_kind else None,
        }


class StudioController:
    def __init__(self, planner, generation_client):
        self.planner = planner
        self.generation_client = generation_client
        self.state = StudioState()

    # ------------------------------------------------------------------
    # Form
    # ------------------------------------------------------------------

    def update_recipe(self, keyword=None, ingredients_text=None, steps_text=None) -> RecipeInput:
        recipe = self.state.recipe
        if keyword is not None:
            recipe.keyword = keyword
        if ingredients_text is not None:
            recipe.ingredients_text = ingredients_text
        if steps_text is not None:
            recipe.steps_text = steps_text
        return recipe

    def get_image(self, image_id: str) -> GeneratedImage | None:
        return self.state.find_image(image_id)

    # ------------------------------------------------------------------
    # Generate
    # ------------------------------------------------------------------

    async def run_generation(self) -> bool:
        """
        Replaces the whole image list with a fresh run.
        Returns False if rejected because another operation is in flight.
        """
        state = self.state
        if state.is_busy:
            logger.warning("Generation rejected: another operation is in flight")
            return False

        state.is_generating = True
        state.clear_error()
        state.images = []

        recipe = state.recipe
        try:
            state.images = await self.planner.plan(recipe.keyword, recipe.ingredients_text, recipe.step_lines())
        except ValidationError as e:
            logger.info("Generation not started: %s", e)
            state.set_error(ErrorKind.VALIDATION)
        except Exception:
            logger.exception("Generation failed for '%s'", recipe.keyword)
            state.images = []
            state.set_error(ErrorKind.GENERATION)
        finally:
            state.is_generating = False
        return True

    # ------------------------------------------------------------------
    # Regenerate
    # ------------------------------------------------------------------

    async def regenerate(self, image_id: str) -> bool:
        """
        Re-runs one task and swaps only that record.
        Returns False if rejected (busy or unknown id).
        """
        state = self.state
        current = self.get_image(image_id)
        if current is None or state.is_busy:
            logger.warning("Regeneration of %s rejected (busy=%s, known=%s)", image_id, state.is_busy, current is not None)
            return False

        state.regenerating_id = image_id
        state.clear_error()
        try:
            new_image = await self.generation_client.generate(current.to_task())
        except Exception:
            logger.exception("Regeneration failed for %s", image_id)
            state.set_error(ErrorKind.REGENERATION)
        else:
            state.images = [new_image if img.id == image_id else img for img in state.images]
        finally:
            state.regenerating_id = None
        return True

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    async def export_all(self) -> ExportArchive | None:
        """
        Zips the current images. Returns None if there is nothing to export,
        another operation is in flight, or the archive could not be built.
        """
        state = self.state
        if not state.images or state.is_busy:
            return None

        state.is_exporting = True
        state.clear_error()
        try:
            # Zipping runs off the loop on a snapshot of the list
            return await asyncio.to_thread(export_service.export_all, list(state.images), state.recipe.keyword)
        except ExportError:
            state.set_error(ErrorKind.EXPORT)
            return None
        finally:
            state.is_exporting = False
