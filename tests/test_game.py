import os
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from unittest import mock

from app.game import DEBRIEF_LEVEL, GameSession
from app.puzzles import PUZZLES
from support import ApiTestCase


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


class GameTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.api = mock.Mock()
        self.clock = FakeClock()
        self.session = GameSession(state_dir=self.temp_dir.name, api=self.api, clock=self.clock)

    def register(self) -> None:
        self.session.register_player("Jane Agent", "jane@example.com", "Apex Industries", role="CIO")


class TestRegistration(GameTestCase):
    def test_requires_identity(self) -> None:
        with self.assertRaises(ValueError):
            self.session.register_player("", "jane@example.com", "Apex")

    def test_rejects_bad_email(self) -> None:
        with self.assertRaises(ValueError):
            self.session.register_player("Jane", "not-an-email", "Apex")
        self.assertFalse(self.session.is_registered)

    def test_registered(self) -> None:
        self.register()
        self.assertTrue(self.session.is_registered)


class TestPlay(GameTestCase):
    def test_correct_answer_completes_level(self) -> None:
        self.register()
        self.session.start_game()

        self.assertTrue(self.session.submit_answer(1, " document_sort "))
        self.assertEqual(self.session.current_level, 2)
        self.assertEqual(self.session.score, 11)
        self.assertEqual(self.session.total_attempts, 1)

    def test_wrong_answer_costs_fixed_penalty(self) -> None:
        self.register()
        self.session.start_game()
        self.session.submit_answer(1, "DOCUMENT_SORT")
        self.session.submit_answer(2, "CLOUD")
        self.assertEqual(self.session.score, 22)

        self.assertFalse(self.session.submit_answer(3, "CLOUDS"))
        self.assertEqual(self.session.score, 17)
        self.assertEqual(self.session.current_level, 3)
        self.assertEqual(self.session.level_attempts[3], 1)

    def test_hint_charged_once(self) -> None:
        self.session.start_game()
        self.session.submit_answer(1, "DOCUMENT_SORT")

        hint = self.session.use_hint(2)
        self.session.use_hint(2)
        self.assertEqual(hint, PUZZLES[1].hint)
        self.assertEqual(self.session.scoring.hints_used, {2})
        self.assertEqual(self.session.score, 6)

    def test_full_run_completes_the_mission(self) -> None:
        self.register()
        self.session.start_game()
        for puzzle in PUZZLES:
            self.clock.advance(30)
            self.assertTrue(self.session.submit_answer(puzzle.id, puzzle.answer))

        self.assertTrue(self.session.is_complete)
        self.assertEqual(self.session.current_level, DEBRIEF_LEVEL)
        self.assertEqual(self.session.completion_percentage, 100)
        self.assertEqual(self.session.score, 11 * 10 + 11)
        self.assertEqual(self.session.elapsed_seconds(), 330)
        self.assertEqual(self.session.formatted_time, "05:30")

        # Time stops once the mission is complete
        self.clock.advance(600)
        self.assertEqual(self.session.elapsed_seconds(), 330)

    def test_bonus_channels(self) -> None:
        self.session.start_game()
        self.assertTrue(self.session.find_hidden_bonus())
        self.assertFalse(self.session.find_hidden_bonus())
        self.session.record_bonus_answer(3)

        breakdown = self.session.scoring.breakdown()
        self.assertEqual(breakdown.bonus_points, 10)
        self.assertEqual(breakdown.level12_bonus, 3)
        self.assertEqual(breakdown.answer_points, 0)

    def test_unknown_level(self) -> None:
        with self.assertRaises(ValueError):
            self.session.submit_answer(42, "anything")


class TestSync(GameTestCase):
    def test_no_sync_before_registration(self) -> None:
        self.session.start_game()
        self.api.sync_score.assert_not_called()

    def test_every_mutation_sends_a_full_snapshot(self) -> None:
        self.register()
        self.session.start_game()
        self.session.submit_answer(1, "DOCUMENT_SORT")

        snapshots = [c.args[0] for c in self.api.sync_score.call_args_list]
        self.assertEqual(len(snapshots), 3)
        self.assertEqual([s["syncVersion"] for s in snapshots], [1, 2, 3])

        latest = snapshots[-1]
        self.assertEqual(latest["email"], "jane@example.com")
        self.assertEqual(latest["playerName"], "Jane Agent")
        self.assertEqual(latest["score"], 11)
        self.assertEqual(latest["levelsCompleted"], 1)
        self.assertEqual(latest["currentLevel"], 2)
        self.assertEqual(latest["scoreBreakdown"]["levelPoints"], 10)
        self.assertFalse(latest["isComplete"])

    def test_lead_payload(self) -> None:
        self.register()
        self.session.start_game()
        self.session.use_hint(1)
        self.session.submit_lead(source="tradeshow", event="ExpoWest")

        lead = self.api.submit_lead.call_args.args[0]
        self.assertEqual(lead["company"], "Apex Industries")
        self.assertEqual(lead["hintsUsed"], 1)
        self.assertEqual(lead["source"], "tradeshow")
        self.assertEqual(lead["event"], "ExpoWest")
        self.assertNotIn("phone", lead)

    def test_reset_starts_a_new_play_through(self) -> None:
        self.register()
        self.session.start_game()
        self.session.submit_answer(1, "DOCUMENT_SORT")
        before = self.api.sync_score.call_args.args[0]

        self.session.reset_game()
        self.session.start_game()
        after = self.api.sync_score.call_args.args[0]

        self.assertNotEqual(after["gameId"], before["gameId"])
        self.assertEqual(after["syncVersion"], 1)
        self.assertLess(after["syncVersion"], before["syncVersion"])

    def test_lead_filed_once_per_play_through(self) -> None:
        self.register()
        self.session.start_game()
        self.session.submit_lead()
        second = self.session.submit_lead()

        self.assertFalse(second["success"])
        self.assertEqual(self.api.submit_lead.call_count, 1)

        restored = GameSession(state_dir=self.temp_dir.name, api=self.api, clock=self.clock)
        restored.load()
        self.assertTrue(restored.lead_submitted)

        restored.reset_game()
        restored.submit_lead()
        self.assertEqual(self.api.submit_lead.call_count, 2)


class TestPersistence(GameTestCase):
    def test_state_survives_reload(self) -> None:
        self.register()
        self.session.start_game()
        self.session.submit_answer(1, "DOCUMENT_SORT")
        self.session.use_hint(2)
        self.session.submit_answer(2, "wrong")

        restored = GameSession(state_dir=self.temp_dir.name, clock=self.clock)
        self.assertTrue(restored.load())
        self.assertEqual(restored.email, "jane@example.com")
        self.assertEqual(restored.current_level, 2)
        self.assertEqual(restored.scoring, self.session.scoring)
        self.assertEqual(restored.score, self.session.score)
        self.assertEqual(restored.total_attempts, 2)
        self.assertEqual(restored.sync_version, self.session.sync_version)
        self.assertEqual(restored.game_id, self.session.game_id)
        self.assertEqual(restored.start_time, self.session.start_time)

    def test_corrupt_state_is_ignored(self) -> None:
        with open(self.session.state_path, "w", encoding="utf-8") as f:
            f.write("{not json")
        self.assertFalse(self.session.load())
        self.assertEqual(self.session.current_level, 0)

    def test_reset_clears_progress_and_file(self) -> None:
        self.register()
        self.session.start_game()
        self.session.submit_answer(1, "DOCUMENT_SORT")
        self.session.reset_game()

        self.assertFalse(os.path.exists(self.session.state_path))
        self.assertEqual(self.session.current_level, 0)
        self.assertEqual(self.session.score, 0)
        self.assertTrue(self.session.is_registered)


class ServerBackedApi:
    """Posts score snapshots straight to the app under test."""

    def __init__(self, client) -> None:
        self.client = client

    def sync_score(self, snapshot: dict) -> None:
        response = self.client.post("/api/scores", json=snapshot)
        assert response.status_code == 200, response.text


class TestResetAgainstServer(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.clock = FakeClock()
        self.session = GameSession(
            state_dir=self.temp_dir.name, api=ServerBackedApi(self.client), clock=self.clock,
        )

    def stored(self) -> dict:
        return self.client.get("/api/scores/player/jane@example.com").json()["data"]

    def test_replay_after_reset_is_stored(self) -> None:
        self.session.register_player("Jane Agent", "jane@example.com", "Apex Industries")
        self.session.start_game()
        for puzzle in PUZZLES:
            self.session.submit_answer(puzzle.id, puzzle.answer)
        self.assertEqual(self.stored()["score"], 121)
        self.assertTrue(self.stored()["isComplete"])

        self.session.reset_game()
        self.session.start_game()
        self.session.submit_answer(1, "DOCUMENT_SORT")

        self.assertEqual(self.stored()["score"], 11)
        self.assertEqual(self.stored()["currentLevel"], 2)
        self.assertFalse(self.stored()["isComplete"])


if __name__ == "__main__":
    unittest.main()
