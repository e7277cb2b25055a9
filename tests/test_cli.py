"""Tests for console command handling."""

import io
import unittest
from contextlib import redirect_stdout
from unittest.mock import MagicMock

from cli.console import ConsoleUI


class TestConsoleCommands(unittest.TestCase):

    def setUp(self):
        self.client = MagicMock()
        self.ui = ConsoleUI(self.client)

    def run_command(self, text):
        out = io.StringIO()
        with redirect_stdout(out):
            result = self.ui.handle_command(text)
        return result, out.getvalue()

    def test_languages(self):
        self.client.get_languages.return_value = ['de', 'en']
        result, output = self.run_command('languages')
        self.assertIsNone(result)
        self.assertIn('Languages: de, en', output)
        self.client.get_languages.assert_called_once_with()

    def test_language_switch_returns_question(self):
        self.client.start_session.return_value = {'question': {'term': 'Hund'}}
        result, _ = self.run_command('language de')
        self.assertEqual(result, {'term': 'Hund'})
        self.client.start_session.assert_called_once_with(language='de')

    def test_unknown_command_prints_help(self):
        result, output = self.run_command('help')
        self.assertIsNone(result)
        self.assertIn('"languages"', output)


if __name__ == '__main__':
    unittest.main()
