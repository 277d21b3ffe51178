import json
import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from . import config
from .api_client import ApiClient
from .puzzles import TOTAL_LEVELS, get_puzzle, is_valid_email, validate_answer
from .scoring import BONUS_LEVEL, ScoreState

logger = logging.getLogger("escape_room.client")

STATE_FILE = "game_state.json"

INTRO_LEVEL = 0
DEBRIEF_LEVEL = TOTAL_LEVELS + 1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_time(value) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class GameSession:
    def __init__(
        self,
        state_dir: Optional[str] = None,
        api: Optional[ApiClient] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.state_dir = state_dir or config.CLIENT_STATE_DIR
        self.state_path = os.path.join(self.state_dir, STATE_FILE)
        self.api = api
        self.clock = clock

        # Player
        self.name = ""
        self.email = ""
        self.company = ""
        self.role = ""
        self.phone: Optional[str] = None
        self.submitted_at: Optional[datetime] = None

        # Progress
        self.current_level = INTRO_LEVEL
        self.start_time: Optional[datetime] = None
        self.end_time: Optional[datetime] = None
        self.is_complete = False
        self.total_attempts = 0
        self.level_attempts: Dict[int, int] = {}
        self.scoring = ScoreState()
        self.game_id = uuid.uuid4().hex
        self.sync_version = 0
        self.lead_submitted = False

    # --- Derived state ---

    @property
    def is_registered(self) -> bool:
        return bool(self.name and self.email and self.company)

    @property
    def score(self) -> int:
        return self.scoring.score

    @property
    def completion_percentage(self) -> int:
        return round(len(self.scoring.levels_completed) / TOTAL_LEVELS * 100)

    def elapsed_seconds(self) -> int:
        if self.start_time is None:
            return 0
        end = self.end_time or self.clock()
        return max(0, int((end - self.start_time).total_seconds()))

    @property
    def formatted_time(self) -> str:
        minutes, seconds = divmod(self.elapsed_seconds(), 60)
        return f"{minutes:02d}:{seconds:02d}"

    # --- Actions ---

    def register_player(self, name: str, email: str, company: str, role: str = "", phone: Optional[str] = None) -> None:
        if not name or not email or not company:
            raise ValueError("name, email, and company are required")
        if not is_valid_email(email):
            raise ValueError(f"Invalid email: {email}")

        self.name = name.strip()
        self.email = email.strip()
        self.company = company.strip()
        self.role = role or ""
        self.phone = phone or None
        self.submitted_at = self.clock()
        self._commit()

    def start_game(self) -> None:
        self.current_level = 1
        self.start_time = self.clock()
        self.end_time = None
        self.is_complete = False
        self.total_attempts = 0
        self.level_attempts = {}
        self.scoring.reset()
        self._commit()

    def submit_answer(self, level_id: int, answer: str) -> bool:
        """Check an answer for a level. Wrong answers cost the fixed penalty."""
        if get_puzzle(level_id) is None:
            raise ValueError(f"Unknown level: {level_id}")
        if level_id in self.scoring.levels_completed:
            return True

        self.total_attempts += 1
        self.level_attempts[level_id] = self.level_attempts.get(level_id, 0) + 1

        if validate_answer(level_id, answer):
            self.scoring.record_correct_answer(level_id)
            self.complete_level(level_id)
            return True

        self.scoring.deduct_points(5)
        self._commit()
        return False

    def complete_level(self, level_id: int) -> None:
        self.scoring.complete_level(level_id)

        if level_id < TOTAL_LEVELS:
            self.current_level = level_id + 1
        else:
            # All levels complete
            self.current_level = DEBRIEF_LEVEL
            self.end_time = self.clock()
            self.is_complete = True
            logger.info(f"Mission complete in {self.formatted_time} with {self.score} points")
        self._commit()

    def use_hint(self, level_id: int) -> str:
        puzzle = get_puzzle(level_id)
        if puzzle is None:
            raise ValueError(f"Unknown level: {level_id}")
        if self.scoring.use_hint(level_id):
            self._commit()
        return puzzle.hint

    def find_hidden_bonus(self) -> bool:
        found = self.scoring.find_hidden_bonus()
        if found:
            self._commit()
        return found

    def record_bonus_answer(self, count: int = 1) -> None:
        self.scoring.record_correct_answer(BONUS_LEVEL, count)
        self._commit()

    def go_to_level(self, level_id: int) -> None:
        self.current_level = level_id
        self._commit()

    def reset_game(self) -> None:
        self.current_level = INTRO_LEVEL
        self.start_time = None
        self.end_time = None
        self.is_complete = False
        self.total_attempts = 0
        self.level_attempts = {}
        self.scoring.reset()
        # A new play-through restarts the sync counter
        self.game_id = uuid.uuid4().hex
        self.sync_version = 0
        self.lead_submitted = False
        if os.path.exists(self.state_path):
            os.remove(self.state_path)

    # --- Payloads ---

    def score_snapshot(self) -> dict:
        breakdown = self.scoring.breakdown()
        return {
            "playerName": self.name,
            "email": self.email,
            "score": breakdown.score,
            "levelsCompleted": len(self.scoring.levels_completed),
            "currentLevel": self.current_level,
            "hintsUsed": len(self.scoring.hints_used),
            "totalAttempts": self.total_attempts,
            "completionTime": self.elapsed_seconds(),
            "isComplete": self.is_complete,
            "scoreBreakdown": breakdown.to_payload(),
            "gameId": self.game_id,
            "syncVersion": self.sync_version,
        }

    def lead_payload(self, source: str = "web", event: Optional[str] = None) -> dict:
        payload = {
            "name": self.name,
            "email": self.email,
            "company": self.company,
            "role": self.role,
            "completedAt": (self.end_time or self.clock()).isoformat(),
            "completionTime": self.elapsed_seconds(),
            "levelsCompleted": len(self.scoring.levels_completed),
            "hintsUsed": len(self.scoring.hints_used),
            "totalAttempts": self.total_attempts,
            "source": source,
        }
        if self.phone:
            payload["phone"] = self.phone
        if event:
            payload["event"] = event
        return payload

    def submit_lead(self, source: str = "web", event: Optional[str] = None) -> dict:
        """Post the lead once per play-through. The client queues it when the post fails."""
        if self.api is None:
            raise RuntimeError("No API client configured")
        if self.lead_submitted:
            return {"success": False, "error": "Lead already submitted"}

        result = self.api.submit_lead(self.lead_payload(source, event))
        self.lead_submitted = True
        self.save()
        return result

    # --- Persistence ---

    def _commit(self) -> None:
        self.sync_version += 1
        self.save()
        self.sync()

    def sync(self) -> None:
        if self.api is None or not self.email:
            return
        self.api.sync_score(self.score_snapshot())

    def to_dict(self) -> dict:
        return {
            "player": {
                "name": self.name,
                "email": self.email,
                "company": self.company,
                "role": self.role,
                "phone": self.phone,
                "submittedAt": self.submitted_at.isoformat() if self.submitted_at else None,
            },
            "game": {
                "currentLevel": self.current_level,
                "startTime": self.start_time.isoformat() if self.start_time else None,
                "endTime": self.end_time.isoformat() if self.end_time else None,
                "isComplete": self.is_complete,
                "totalAttempts": self.total_attempts,
                "levelAttempts": {str(k): v for k, v in self.level_attempts.items()},
                "gameId": self.game_id,
                "syncVersion": self.sync_version,
                "leadSubmitted": self.lead_submitted,
            },
            "score": self.scoring.to_dict(),
        }

    def save(self) -> None:
        os.makedirs(self.state_dir, exist_ok=True)
        with open(self.state_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

    def load(self) -> bool:
        """Restore state from disk. Returns False when nothing usable is stored."""
        if not os.path.exists(self.state_path):
            return False
        try:
            with open(self.state_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Failed to parse game data from storage: {e}")
            return False

        player = data.get("player") or {}
        self.name = player.get("name") or ""
        self.email = player.get("email") or ""
        self.company = player.get("company") or ""
        self.role = player.get("role") or ""
        self.phone = player.get("phone") or None
        self.submitted_at = _parse_time(player.get("submittedAt"))

        game = data.get("game") or {}
        self.current_level = game.get("currentLevel") or INTRO_LEVEL
        self.start_time = _parse_time(game.get("startTime"))
        self.end_time = _parse_time(game.get("endTime"))
        self.is_complete = bool(game.get("isComplete", False))
        self.total_attempts = game.get("totalAttempts") or 0
        self.level_attempts = {int(k): v for k, v in (game.get("levelAttempts") or {}).items()}
        self.game_id = game.get("gameId") or self.game_id
        self.sync_version = game.get("syncVersion") or 0
        self.lead_submitted = bool(game.get("leadSubmitted", False))

        self.scoring = ScoreState.from_dict(data.get("score") or {})
        return True
