"""Console UI for vocadrill."""

import time

import requests

from core.config import LEVELS, MODES, MODE_FLASHCARD, FEEDBACK_OK, FEEDBACK_FIRST_WRONG, FEEDBACK_SECOND_WRONG
from cli.api_client import VocadrillAPIClient

COMMANDS_HELP = ('Commands: "status", "hard", "languages", '
                 '"mode <m>", "level <l>", "category <c>", "language <code>", "exit"')


class ConsoleUI:
    """Console user interface for vocadrill."""

    def __init__(self, client: VocadrillAPIClient):
        self.client = client

    def print_question(self, question: dict):
        print('\n' + '=' * 40)
        print(f"{question['language']} | {question['level']} | {question['category']} | "
              f"{question['mode']} | {question['remaining']} left | streak {question['streak']}")
        print('=' * 40)
        print(f"\n>>> {question['term']}")
        if question['definition']:
            print(f"    ({question['definition']})")
        for i, option in enumerate(question['options'], start=1):
            print(f"  {i}. {option}")

    def print_feedback(self, result: dict):
        question = result['question']
        feedback = question['feedback']
        if question['mode'] == MODE_FLASHCARD:
            if result['correct']:
                print('Correct!')
            elif result['correct'] is False:
                correct = question['options'][question['correct_index']]
                print(f"Wrong. The answer was: {correct}")
        elif feedback == FEEDBACK_OK:
            print(f"Correct! ({question['translation']})")
        elif feedback == FEEDBACK_FIRST_WRONG:
            print('Not quite. Try again.')
            if question['definition']:
                print(f"Hint: {question['definition']}")
        elif feedback == FEEDBACK_SECOND_WRONG:
            print(f"Wrong again. The answer was: {question['translation']}")
        if question['motivation']:
            print(f"\n  {question['motivation']}\n")

    def print_status(self, status: dict):
        """Print detailed status."""
        print('\n' + '=' * 50)
        print('STATUS SUMMARY')
        print('=' * 50)
        print(f"\nLanguage: {status['language']} | Level: {status['level']} | "
              f"Category: {status['category']} | Mode: {status['mode']}")
        print(f"Answered: {status['answered_count']} | Wrong: {status['wrong_count']} | "
              f"Streak: {status['streak']}")
        print(f"Mastered at {status['level']}: {status['mastered_count']}/{status['total_level_words']} "
              f"({status['level_progress']:.0f}%)")
        print('\nLevels:')
        for row in status['level_stats']:
            print(f"  {row['level']}: {row['mastered']}/{row['total']} ({row['pct']}%)")
        print(f"\nWords to practice: {status['hard_words_count']}")
        if status['mode'] == MODE_FLASHCARD:
            flash = status['flashcard']
            print(f"Flashcards: {flash['correct']} correct, {flash['wrong']} wrong, "
                  f"{flash['accuracy']:.0f}% accuracy")
        print('\n' + '=' * 50 + '\n')

    def print_hard_words(self, data: dict):
        if not data['words']:
            print('No hard words yet.')
            return
        print(f"\nHard words ({data['total']}):")
        for word in data['words']:
            print(f"  {word['term']}: missed {word['count']}x, box {word['box']}")

    def handle_command(self, user_input: str) -> dict | None:
        """Run a console command. Returns a new question payload when the session changed."""
        parts = user_input.split(maxsplit=1)
        command = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else None

        if command == 'status':
            self.print_status(self.client.get_status())
        elif command == 'hard':
            self.print_hard_words(self.client.get_hard_words())
        elif command == 'languages':
            print('Languages: ' + ', '.join(self.client.get_languages()))
        elif command == 'mode' and arg in MODES:
            return self.client.start_session(mode=arg)['question']
        elif command == 'level' and arg and arg.upper() in LEVELS:
            return self.client.start_session(level=arg.upper())['question']
        elif command == 'category' and arg:
            return self.client.start_session(category=arg)['question']
        elif command == 'language' and arg:
            return self.client.start_session(language=arg)['question']
        else:
            print(COMMANDS_HELP)
        return None

    def wait_and_advance(self, result: dict) -> dict:
        """Sleep for the scheduled delay then ask the server to move on."""
        if result.get('advance_token') is None:
            return result['question']
        time.sleep(result['advance_after_ms'] / 1000)
        return self.client.advance(result['advance_token'])['question']

    def finish_session(self, question: dict) -> dict | None:
        """Offer a new round once the pool is empty. Returns None to quit."""
        print(f"\nAll words done for {question['session_key']} ({question['mode']}).")
        if question['mode'] == MODE_FLASHCARD:
            status = self.client.get_status()
            flash = status['flashcard']
            print(f"Correct: {flash['correct']} | Wrong: {flash['wrong']} | "
                  f"Accuracy: {flash['accuracy']:.0f}%")
            choice = input('Repeat [f]ailed, [a]ll, or command: ').strip()
            if choice.lower() == 'f':
                return self.client.repeat_flashcards(failed_only=True)['question']
            if choice.lower() == 'a':
                return self.client.repeat_flashcards()['question']
        else:
            choice = input('[r]estart, or command: ').strip()
            if choice.lower() == 'r':
                return self.client.reset_write_session()['question']
        if choice.lower() == 'exit':
            return None
        new_question = self.handle_command(choice) if choice else None
        return new_question if new_question is not None else question

    def read_answer(self) -> tuple[str, dict | None]:
        """Read input until an answer is given. Commands may replace the question."""
        while True:
            user_input = input('==> ').strip()
            if not user_input:
                continue
            if user_input.lower() == 'exit':
                return 'exit', None
            first = user_input.split()[0].lower()
            if first in ('status', 'hard', 'languages', 'mode', 'level', 'category', 'language', 'help'):
                new_question = self.handle_command(user_input)
                if new_question is not None:
                    return '', new_question
                continue
            return user_input, None

    def run(self):
        """Run the main application loop."""
        # Check server connection
        try:
            health = self.client.health_check()
            print(f"Connected to vocadrill server ({health['service']})")
        except requests.RequestException:
            print(f"Error: Cannot connect to server at {self.client.base_url}")
            print("Make sure the server is running: python run_server.py")
            return

        status = self.client.get_status()
        print(f"Restored: {status['answered_count']} answered, {status['mastered_count']}/"
              f"{status['total_level_words']} mastered at {status['level']}")
        print(COMMANDS_HELP + '\n')

        question = self.client.get_question()
        while question is not None:
            if question['complete']:
                question = self.finish_session(question)
                continue

            self.print_question(question)
            answer, new_question = self.read_answer()
            if answer == 'exit':
                print('Goodbye!')
                return
            if new_question is not None:
                question = new_question
                continue

            try:
                question = self.submit(question, answer)
            except requests.HTTPError as e:
                print(f"Error: {e.response.text}")
        print('Goodbye!')

    def submit(self, question: dict, answer: str) -> dict:
        if question['mode'] == MODE_FLASHCARD:
            if not answer.isdigit():
                print(f"Pick an option between 1 and {len(question['options'])}")
                return question
            result = self.client.choose(int(answer) - 1)
        else:
            result = self.client.check_answer(answer)

        self.print_feedback(result)
        if result['question']['feedback'] == FEEDBACK_SECOND_WRONG:
            input('Press Enter to continue...')
            return self.client.reveal()['question']
        return self.wait_and_advance(result)
