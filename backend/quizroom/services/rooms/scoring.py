import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .entities import AnswerRecord, Player, Question, RoundScore, SCORE_SPEED


@dataclass(frozen=True)
class ScoringRules:
    max_points: int = 1000
    streak_bonus: int = 20
    prepare_seconds: int = 5
    answer_seconds: int = 30

    @classmethod
    def from_config(cls, config) -> 'ScoringRules':
        return cls(
            max_points=int(config.get('MAX_POINTS', 1000)),
            streak_bonus=int(config.get('STREAK_BONUS', 20)),
            prepare_seconds=int(config.get('PREPARE_SECONDS', 5)),
            answer_seconds=int(config.get('ANSWER_SECONDS', 30)),
        )

    @property
    def window(self) -> int:
        return self.answer_seconds + self.prepare_seconds


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def speed_points(elapsed: float, rules: ScoringRules) -> int:
    ratio = max(0.0, 1 - (elapsed / rules.window))
    return _round_half_up(rules.max_points * ratio)


def is_correct(record: Optional[AnswerRecord], question: Question) -> bool:
    return record is not None and record.answer_index == question.correct_answer_index


def score_player(
    player: Player,
    record: Optional[AnswerRecord],
    question: Question,
    question_start_time: float,
    score_type: str,
    rules: ScoringRules,
) -> RoundScore:
    """Apply one round's scoring to a player and return what they earned.

    Wrong or missing answers reset the streak and add nothing. Correct
    answers earn a base (time-scaled in speed mode, flat otherwise) plus
    a bonus of ``streak_bonus`` for every consecutive correct answer
    before this one.
    """
    if not is_correct(record, question):
        player.wrong_answers += 1
        player.streak = 0
        return RoundScore(player=player, points=0, correct=False)

    player.correct_answers += 1
    if score_type == SCORE_SPEED:
        base = speed_points(record.submission_time - question_start_time, rules)
    else:
        base = rules.max_points

    player.streak += 1
    player.best_streak = max(player.best_streak, player.streak)
    bonus = (player.streak - 1) * rules.streak_bonus
    points = base + bonus
    player.score += points
    return RoundScore(player=player, points=points, correct=True)


def score_round(
    players: Iterable[Player],
    answers: Dict[str, AnswerRecord],
    question: Question,
    question_start_time: float,
    score_type: str,
    rules: ScoringRules,
) -> List[RoundScore]:
    return [
        score_player(p, answers.get(p.id), question, question_start_time, score_type, rules)
        for p in players
    ]


def rank(scores: Iterable[RoundScore]) -> List[RoundScore]:
    # sorted() is stable: equal totals keep roster order
    return sorted(scores, key=lambda s: s.player.score, reverse=True)


def rank_players(players: Iterable[Player]) -> List[Player]:
    return sorted(players, key=lambda p: p.score, reverse=True)
