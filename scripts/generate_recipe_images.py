import os
import sys
import asyncio
import logging
import argparse
from dotenv import load_dotenv

# Add root directory to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from services.generation_service import GenerationClient
from services.studio_state import StudioController
from services.task_planner import TaskPlanner
from utils.errors import ConfigurationError

# Setup logging
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


def _read_text(value, path):
    if path:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    return value or ""


async def generate_recipe_images(controller: StudioController, out_dir: str) -> str | None:
    """
    Runs a full generation and writes the zip into out_dir.
    Returns the archive path, or None if generation or export failed.
    """
    await controller.run_generation()
    if controller.state.last_error:
        logger.error(controller.state.last_error)
        return None

    for image in controller.state.images:
        logger.info("  %-18s %-5s %s", image.id, image.aspect_ratio.value, image.title)

    archive = await controller.export_all()
    if archive is None:
        logger.error(controller.state.last_error or "Nothing to export.")
        return None

    os.makedirs(out_dir, exist_ok=True)
    archive_path = os.path.join(out_dir, archive.filename)
    with open(archive_path, 'wb') as f:
        f.write(archive.content)
    return archive_path


def main(argv=None):
    load_dotenv()
    ap = argparse.ArgumentParser(description="Generate photorealistic recipe images with titles, captions and alt text, saved as a zip.")
    ap.add_argument("--keyword", required=True, help="Name of the recipe, e.g. 'Tomato Soup'")
    ap.add_argument("--ingredients", default="", help="Ingredients text (newlines allowed)")
    ap.add_argument("--ingredients-file", help="Read ingredients from a file instead")
    ap.add_argument("--steps", default="", help="Preparation steps, one per line")
    ap.add_argument("--steps-file", help="Read steps (one per line) from a file instead")
    ap.add_argument("--out-dir", default="./out", help="Directory for the zip archive")
    args = ap.parse_args(argv)

    try:
        generation_client = GenerationClient()
    except ConfigurationError as e:
        raise SystemExit(str(e))

    controller = StudioController(TaskPlanner(generation_client), generation_client)
    controller.update_recipe(
        keyword=args.keyword,
        ingredients_text=_read_text(args.ingredients, args.ingredients_file),
        steps_text=_read_text(args.steps, args.steps_file),
    )

    archive_path = asyncio.run(generate_recipe_images(controller, args.out_dir))
    if not archive_path:
        return 1

    logger.info("Saved %d images to %s", len(controller.state.images), archive_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
