import os
import unittest
from unittest.mock import patch

import fakes  # noqa: F401  (puts the project root on sys.path)

import ai_engine
from services.generation_service import GenerationClient
from utils.errors import ConfigurationError


class TestConfiguration(unittest.TestCase):
    @patch.dict(os.environ, {"GOOGLE_API_KEY": ""})
    def test_missing_key_is_fatal(self):
        with self.assertRaises(ConfigurationError):
            ai_engine.get_api_key()

    @patch.dict(os.environ, {"GOOGLE_API_KEY": "   "})
    def test_blank_key_is_fatal_for_generation_client(self):
        with self.assertRaises(ConfigurationError):
            GenerationClient()

    @patch.dict(os.environ, {"GOOGLE_API_KEY": "test-key"})
    @patch('ai_engine.genai.Client')
    def test_client_uses_key_from_environment(self, mock_client):
        ai_engine.build_client()
        mock_client.assert_called_once_with(api_key="test-key")

    @patch.dict(os.environ, {"GOOGLE_API_KEY": ""})
    def test_create_app_refuses_to_start_without_key(self):
        from app import create_app

        with self.assertRaises(ConfigurationError):
            create_app()


if __name__ == '__main__':
    unittest.main()
