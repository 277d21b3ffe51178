import json
import os
import tempfile
import unittest

from app import play
from app.puzzles import PUZZLES


class ScriptedInput:
    def __init__(self, answers) -> None:
        self.answers = list(answers)
        self.prompts = []

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)


class TestTerminalGame(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.output = []

    def run_game(self, answers, *extra_args) -> int:
        args = play.parse_args(["--state-dir", self.temp_dir.name, "--api", "", *extra_args])
        return play.run(args, input_fn=ScriptedInput(answers), output=self.output.append)

    def test_full_offline_game_queues_the_lead(self) -> None:
        answers = [
            "Jane Agent", "not-an-email", "Apex",  "", "",
            "Jane Agent", "jane@example.com", "Apex", "CIO", "",
            "wrong", "print servers are the weakest link",
            "hint",
        ]
        answers += [puzzle.answer for puzzle in PUZZLES]

        self.assertEqual(self.run_game(answers, "--source", "tradeshow", "--event", "ExpoWest"), 0)

        self.assertTrue(any("Invalid email" in line for line in self.output))
        self.assertTrue(any(line.startswith("  HINT:") for line in self.output))
        self.assertTrue(any("Debrief queued locally" in line for line in self.output))

        with open(os.path.join(self.temp_dir.name, "failed_submissions.json"), encoding="utf-8") as f:
            queued = json.load(f)
        self.assertEqual(len(queued), 1)
        self.assertEqual(queued[0]["source"], "tradeshow")
        self.assertEqual(queued[0]["event"], "ExpoWest")
        self.assertEqual(queued[0]["levelsCompleted"], 11)
        self.assertEqual(queued[0]["hintsUsed"], 1)

    def test_relaunching_a_finished_game_files_the_lead_once(self) -> None:
        answers = [
            "Jane Agent", "jane@example.com", "Apex", "", "",
            "print servers are the weakest link",
        ]
        answers += [puzzle.answer for puzzle in PUZZLES]
        self.assertEqual(self.run_game(answers), 0)

        self.output.clear()
        self.assertEqual(self.run_game([]), 0)
        self.assertTrue(any("Debrief already filed" in line for line in self.output))

        with open(os.path.join(self.temp_dir.name, "failed_submissions.json"), encoding="utf-8") as f:
            queued = json.load(f)
        self.assertEqual(len(queued), 1)

    def test_reset_files_a_new_lead(self) -> None:
        answers = [
            "Jane Agent", "jane@example.com", "Apex", "", "",
            "print servers are the weakest link",
        ]
        answers += [puzzle.answer for puzzle in PUZZLES]
        self.assertEqual(self.run_game(answers), 0)

        self.assertEqual(self.run_game(answers, "--reset"), 0)

        with open(os.path.join(self.temp_dir.name, "failed_submissions.json"), encoding="utf-8") as f:
            queued = json.load(f)
        self.assertEqual(len(queued), 2)

    def test_export_with_empty_queue(self) -> None:
        target = os.path.join(self.temp_dir.name, "out.csv")
        self.assertEqual(self.run_game([], "--export-failed", target), 0)
        self.assertEqual(self.output, ["No queued leads to export"])
        self.assertFalse(os.path.exists(target))


if __name__ == "__main__":
    unittest.main()
