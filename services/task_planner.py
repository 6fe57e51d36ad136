"""
Task Planner — turns a recipe description into the fixed list of generation
tasks and runs them through the Generation Client concurrently.

Task order is fixed:
    main-image (16:9)  →  ingredients-image (3:4)  →  step-1 … step-N (3:4)

Results come back in that order regardless of which provider call finishes
first. One failed task fails the whole plan; no partial list is returned.
"""
import asyncio
import logging

from recipe_models import AspectRatio, GeneratedImage, GenerationTask
from utils.errors import ValidationError
from utils.prompt_manager import load_prompt

logger = logging.getLogger(__name__)

MAIN_IMAGE_ID = "main-image"
INGREDIENTS_IMAGE_ID = "ingredients-image"


def step_task_id(index: int) -> str:
    """1-based: step_task_id(1) -> 'step-1'"""
    return f"step-{index}"


def validate_recipe(keyword: str, ingredients_text: str, step_lines: list[str]) -> list[str]:
    """
    Returns the non-blank steps.
    Raises ValidationError naming every missing field.
    """
    steps = [s.strip() for s in step_lines or [] if s and s.strip()]

    missing = []
    if not (keyword or "").strip():
        missing.append("keyword")
    if not (ingredients_text or "").strip():
        missing.append("ingredients")
    if not steps:
        missing.append("steps")

    if missing:
        raise ValidationError(missing)
    return steps


def build_tasks(keyword: str, ingredients_text: str, step_lines: list[str]) -> list[GenerationTask]:
    steps = validate_recipe(keyword, ingredients_text, step_lines)
    keyword = keyword.strip()

    tasks = [
        GenerationTask(
            id=MAIN_IMAGE_ID,
            prompt=load_prompt('recipe_image/hero_shot.jinja2', keyword=keyword),
            aspect_ratio=AspectRatio.WIDESCREEN,
        ),
        GenerationTask(
            id=INGREDIENTS_IMAGE_ID,
            # Ingredient text goes in verbatim, line breaks included
            prompt=load_prompt('recipe_image/ingredients_flat_lay.jinja2', keyword=keyword, ingredients=ingredients_text),
            aspect_ratio=AspectRatio.PORTRAIT,
        ),
    ]
    for index, step in enumerate(steps, 1):
        tasks.append(GenerationTask(
            id=step_task_id(index),
            prompt=load_prompt('recipe_image/step_action.jinja2', keyword=keyword, step=step),
            aspect_ratio=AspectRatio.PORTRAIT,
        ))
    return tasks


class TaskPlanner:
    def __init__(self, generation_client):
        self.generation_client = generation_client

    async def run_tasks(self, tasks: list[GenerationTask]) -> list[GeneratedImage]:
        """
        Fan-out / fan-in. gather() keeps argument order, so the result list is
        index-stable. On the first failure the remaining tasks are cancelled
        and the error propagates.
        """
        pending = [asyncio.ensure_future(self.generation_client.generate(task)) for task in tasks]
        try:
            return list(await asyncio.gather(*pending))
        except Exception:
            for future in pending:
                future.cancel()
            # Drain so cancelled/failed siblings don't log "exception never retrieved"
            await asyncio.gather(*pending, return_exceptions=True)
            raise

    async def plan(self, keyword: str, ingredients_text: str, step_lines: list[str]) -> list[GeneratedImage]:
        tasks = build_tasks(keyword, ingredients_text, step_lines)
        logger.info("Generating %d images for '%s'", len(tasks), keyword.strip())

        results = await self.run_tasks(tasks)

        logger.info("Generated %d images for '%s'", len(results), keyword.strip())
        return results
