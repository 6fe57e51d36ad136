import asyncio
import re
import unittest

from fakes import FakeGenerationClient, jpeg_stub

from app import create_app
from services.studio_state import StudioController
from services.task_planner import TaskPlanner

RECIPE = {
    "keyword": "Tomato Soup",
    "ingredients": "tomatoes\nbasil",
    "steps": "Simmer tomatoes\n\nBlend soup",
}


class InlineRunner:
    """Runs each controller coroutine to completion on a fresh loop in the calling thread."""

    def run(self, coro):
        return asyncio.run(coro)


class InterleavingRunner(InlineRunner):
    """Counts submitted coroutines; optionally empties the gallery right after each one, as a concurrent new run would."""

    def __init__(self, controller):
        self.controller = controller
        self.calls = 0
        self.clear_after_run = False

    def run(self, coro):
        self.calls += 1
        result = super().run(coro)
        if self.clear_after_run:
            self.controller.state.images = []
        return result


class TestStudioRoutes(unittest.TestCase):
    def setUp(self):
        self.generation_client = FakeGenerationClient()
        self.controller = StudioController(TaskPlanner(self.generation_client), self.generation_client)
        self.app = create_app(controller=self.controller, runner=InlineRunner())
        self.app.config['TESTING'] = True
        self.client = self.app.test_client()

    def _generate(self, payload=RECIPE):
        return self.client.post('/api/generate', json=payload)

    def test_index_renders_form(self):
        response = self.client.get('/')
        self.assertEqual(response.status_code, 200)
        self.assertIn(b"Recipe Image Generator", response.data)

    def test_index_renders_gallery_after_generation(self):
        self._generate()
        response = self.client.get('/')
        self.assertIn(b"Title main-image v1", response.data)
        self.assertIn(b"aspect-ratio: 16 / 9", response.data)

    def test_generate_returns_images_in_order(self):
        response = self._generate()

        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertTrue(data['success'])
        self.assertEqual(
            [img['id'] for img in data['images']],
            ["main-image", "ingredients-image", "step-1", "step-2"],
        )
        self.assertEqual(data['images'][0]['aspectRatio'], "16:9")

    def test_generate_with_missing_fields_is_400(self):
        response = self._generate({"keyword": "Tomato Soup", "ingredients": "", "steps": ""})

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.get_json()['success'])
        self.assertEqual(self.generation_client.calls, [])

    def test_generate_with_null_field_is_400_without_calls(self):
        response = self._generate({"keyword": None, "ingredients": "tomatoes", "steps": "Simmer"})

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.get_json()['success'])
        self.assertEqual(self.generation_client.calls, [])
        self.assertEqual(self.controller.state.recipe.keyword, "")

    def test_generate_with_non_string_field_is_400_without_calls(self):
        for bad in ({"keyword": 42, "ingredients": "tomatoes", "steps": "Simmer"},
                    {"keyword": "Soup", "ingredients": ["tomatoes"], "steps": "Simmer"},
                    ["Soup", "tomatoes", "Simmer"]):
            response = self._generate(bad)

            self.assertEqual(response.status_code, 400)
            self.assertFalse(response.get_json()['success'])
        self.assertEqual(self.generation_client.calls, [])

    def test_generate_provider_failure_is_502(self):
        self.generation_client.fail_on_call = 3
        response = self._generate()

        self.assertEqual(response.status_code, 502)
        self.assertEqual(self.controller.state.images, [])

    def test_generate_while_busy_is_409(self):
        self.controller.state.is_generating = True
        response = self._generate()
        self.assertEqual(response.status_code, 409)

    def test_state_reflects_form(self):
        self._generate()
        state = self.client.get('/api/state').get_json()['state']
        self.assertEqual(state['recipe']['keyword'], "Tomato Soup")
        self.assertEqual(len(state['images']), 4)

    def test_regenerate_swaps_one_image(self):
        self._generate()
        response = self.client.post('/api/regenerate/step-2')

        self.assertEqual(response.status_code, 200)
        image = response.get_json()['image']
        self.assertEqual(image['id'], "step-2")
        self.assertEqual(image['title'], "Title step-2 v2")

    def test_regenerate_unknown_is_404(self):
        self._generate()
        self.assertEqual(self.client.post('/api/regenerate/step-9').status_code, 404)

    def test_regenerate_while_regenerating_is_409(self):
        self._generate()
        self.controller.state.regenerating_id = "step-1"
        self.assertEqual(self.client.post('/api/regenerate/step-2').status_code, 409)

    def test_export_streams_zip(self):
        self._generate()
        response = self.client.get('/api/export')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.mimetype, "application/zip")
        self.assertIn("tomato_soup_images.zip", response.headers['Content-Disposition'])

    def test_export_without_images_is_404(self):
        self.assertEqual(self.client.get('/api/export').status_code, 404)

    def test_single_image_download(self):
        self._generate()
        response = self.client.get('/api/images/step-1/download')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.mimetype, "image/jpeg")
        self.assertEqual(response.data, jpeg_stub("step-1-v1"))
        self.assertIn("title_step_1_v1.jpg", response.headers['Content-Disposition'])

    def test_single_image_download_unknown_is_404(self):
        self.assertEqual(self.client.get('/api/images/nope/download').status_code, 404)

    def test_gallery_offers_copy_for_every_metadata_field(self):
        self._generate()
        page = self.client.get('/').get_data(as_text=True)

        for text in ("Title step-1 v1", "Alt for step-1", "Caption for step-1", "Description for step-1"):
            self.assertIn(f'data-copy="{text}"', page)
        self.assertIn("navigator.clipboard.writeText", page)

    def test_download_links_do_not_wrap_buttons(self):
        self._generate()
        page = self.client.get('/').get_data(as_text=True)

        self.assertIsNone(re.search(r"<a\b[^>]*>\s*<button", page))
        self.assertIn('class="button"', page)


class TestStudioRoutesReadOnTheLoop(unittest.TestCase):
    def setUp(self):
        self.generation_client = FakeGenerationClient()
        self.controller = StudioController(TaskPlanner(self.generation_client), self.generation_client)
        self.runner = InterleavingRunner(self.controller)
        self.app = create_app(controller=self.controller, runner=self.runner)
        self.app.config['TESTING'] = True
        self.client = self.app.test_client()
        self.client.post('/api/generate', json=RECIPE)

    def test_read_only_routes_go_through_the_runner(self):
        before = self.runner.calls
        self.client.get('/')
        self.client.get('/api/state')
        self.client.get('/api/images/step-1/download')

        self.assertEqual(self.runner.calls, before + 3)

    def test_regenerate_answers_from_its_own_result(self):
        self.runner.clear_after_run = True
        response = self.client.post('/api/regenerate/step-1')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['image']['title'], "Title step-1 v2")

    def test_export_answers_from_its_own_result(self):
        self.runner.clear_after_run = True
        response = self.client.get('/api/export')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.mimetype, "application/zip")


if __name__ == '__main__':
    unittest.main()
