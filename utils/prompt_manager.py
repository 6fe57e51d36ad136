import os
import logging
from jinja2 import Environment, FileSystemLoader, StrictUndefined

logger = logging.getLogger(__name__)

# data/prompts relative to project root (this file lives in utils/)
PROMPTS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'data', 'prompts')


class PromptManager:
    def __init__(self, prompts_dir=None):
        self.prompts_dir = prompts_dir or PROMPTS_DIR
        # StrictUndefined: a missing variable must fail loudly, never render as ""
        self.env = Environment(
            loader=FileSystemLoader(self.prompts_dir),
            undefined=StrictUndefined,
        )

    def load_prompt(self, filename, **kwargs):
        """
        Loads a Jinja2 template by filename and renders it with the provided kwargs.
        """
        try:
            template = self.env.get_template(filename)
            return template.render(**kwargs).strip()
        except Exception:
            logger.exception("Error rendering prompt %s", filename)
            raise


prompt_manager = PromptManager()


def load_prompt(filename, **kwargs):
    """
    Convenience wrapper for the singleton instance.
    """
    return prompt_manager.load_prompt(filename, **kwargs)
