"""
Data model for recipe image generation.

GenerationTask and GeneratedImage are frozen: a regeneration replaces the
record wholesale instead of mutating it.
"""
import enum
from dataclasses import dataclass


class AspectRatio(str, enum.Enum):
    WIDESCREEN = "16:9"
    PORTRAIT = "3:4"
    SQUARE = "1:1"
    LANDSCAPE = "4:3"
    STORY = "9:16"


METADATA_FIELDS = ("alt", "title", "caption", "description")


@dataclass
class RecipeInput:
    keyword: str = ""
    ingredients_text: str = ""
    steps_text: str = ""

    def step_lines(self) -> list[str]:
        """Non-blank preparation steps, one per line."""
        return split_steps(self.steps_text)

    def to_dict(self) -> dict:
        return {
            "keyword": self.keyword,
            "ingredients": self.ingredients_text,
            "steps": self.steps_text,
        }


def split_steps(steps_text: str) -> list[str]:
    return [line.strip() for line in (steps_text or "").splitlines() if line.strip()]


@dataclass(frozen=True)
class GenerationTask:
    id: str
    prompt: str
    aspect_ratio: AspectRatio


@dataclass(frozen=True)
class GeneratedImage:
    id: str
    image_url: str
    alt: str
    title: str
    caption: str
    description: str
    aspect_ratio: AspectRatio
    prompt: str

    def to_task(self) -> GenerationTask:
        """Rebuilds the task that produced this record (used by regeneration)."""
        return GenerationTask(id=self.id, prompt=self.prompt, aspect_ratio=self.aspect_ratio)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "imageUrl": self.image_url,
            "alt": self.alt,
            "title": self.title,
            "caption": self.caption,
            "description": self.description,
            "aspectRatio": self.aspect_ratio.value,
            "prompt": self.prompt,
        }
