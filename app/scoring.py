from dataclasses import dataclass, field
from typing import Dict, Set

POINTS_PER_LEVEL = 10
POINTS_PER_ANSWER = 1
HINT_PENALTY = -5
HIDDEN_BONUS_POINTS = 10
WRONG_ANSWER_PENALTY = -5

# Level 12 is the debrief bonus channel, kept out of answer points
BONUS_LEVEL = 12


@dataclass(frozen=True)
class ScoreBreakdown:
    level_points: int = 0
    answer_points: int = 0
    hint_penalty: int = 0
    bonus_points: int = 0
    level12_bonus: int = 0
    wrong_answer_penalty: int = 0

    @property
    def raw_total(self) -> int:
        return (
            self.level_points
            + self.answer_points
            + self.hint_penalty
            + self.bonus_points
            + self.level12_bonus
            + self.wrong_answer_penalty
        )

    @property
    def score(self) -> int:
        return max(0, self.raw_total)

    def to_payload(self) -> Dict[str, int]:
        return {
            "levelPoints": self.level_points,
            "answerPoints": self.answer_points,
            "hintPenalty": self.hint_penalty,
            "bonusPoints": self.bonus_points,
            "level12Bonus": self.level12_bonus,
        }


@dataclass
class ScoreState:
    levels_completed: Set[int] = field(default_factory=set)
    correct_answers: Dict[int, int] = field(default_factory=dict)
    hints_used: Set[int] = field(default_factory=set)
    hidden_bonus_found: bool = False
    wrong_answer_penalties: int = 0

    def complete_level(self, level_id: int) -> None:
        self.levels_completed.add(level_id)

    def use_hint(self, level_id: int) -> bool:
        """Charge a hint for a level. Returns False if it was already charged."""
        if level_id in self.hints_used:
            return False
        self.hints_used.add(level_id)
        return True

    def record_correct_answer(self, level_id: int, count: int = 1) -> None:
        self.correct_answers[level_id] = self.correct_answers.get(level_id, 0) + count

    def find_hidden_bonus(self) -> bool:
        if self.hidden_bonus_found:
            return False
        self.hidden_bonus_found = True
        return True

    def deduct_points(self, points: int = 5) -> None:
        # The penalty amount is fixed by policy; points is accepted but ignored.
        self.wrong_answer_penalties += 1

    def breakdown(self) -> ScoreBreakdown:
        answer_points = sum(
            count * POINTS_PER_ANSWER
            for level_id, count in self.correct_answers.items()
            if level_id != BONUS_LEVEL
        )
        return ScoreBreakdown(
            level_points=len(self.levels_completed) * POINTS_PER_LEVEL,
            answer_points=answer_points,
            hint_penalty=len(self.hints_used) * HINT_PENALTY,
            bonus_points=HIDDEN_BONUS_POINTS if self.hidden_bonus_found else 0,
            level12_bonus=self.correct_answers.get(BONUS_LEVEL, 0),
            wrong_answer_penalty=self.wrong_answer_penalties * WRONG_ANSWER_PENALTY,
        )

    @property
    def score(self) -> int:
        return self.breakdown().score

    def reset(self) -> None:
        self.levels_completed.clear()
        self.correct_answers.clear()
        self.hints_used.clear()
        self.hidden_bonus_found = False
        self.wrong_answer_penalties = 0

    def to_dict(self) -> dict:
        return {
            "levelsCompleted": sorted(self.levels_completed),
            "correctAnswers": {str(k): v for k, v in sorted(self.correct_answers.items())},
            "hintsUsed": sorted(self.hints_used),
            "hiddenBonusFound": self.hidden_bonus_found,
            "wrongAnswerPenalties": self.wrong_answer_penalties,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ScoreState":
        return cls(
            levels_completed={int(level) for level in data.get("levelsCompleted") or []},
            correct_answers={int(k): int(v) for k, v in (data.get("correctAnswers") or {}).items()},
            hints_used={int(level) for level in data.get("hintsUsed") or []},
            hidden_bonus_found=bool(data.get("hiddenBonusFound", False)),
            wrong_answer_penalties=int(data.get("wrongAnswerPenalties", 0)),
        )
