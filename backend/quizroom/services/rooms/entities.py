from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .errors import MalformedCommandError

# Phases, in the only order a room may move through them
LOBBY = 'lobby'
SHOWING_QUESTION = 'showingQuestion'
ACCEPTING_ANSWERS = 'acceptingAnswers'
SHOWING_RESULTS = 'showingResults'
END_GAME = 'endGame'

SCORE_SPEED = 'speed'
SCORE_FIXED = 'fixed'


@dataclass
class Player:
    id: str
    nickname: str
    user_id: Optional[str] = None
    score: int = 0
    streak: int = 0
    best_streak: int = 0
    correct_answers: int = 0
    wrong_answers: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'nickname': self.nickname,
            'score': self.score,
            'streak': self.streak,
            'bestStreak': self.best_streak,
            'correctAnswers': self.correct_answers,
            'wrongAnswers': self.wrong_answers,
        }


@dataclass(frozen=True)
class Question:
    text: str
    options: List[str]
    correct_answer_index: int
    explanation: Optional[Any] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Question':
        """Build a question from a client payload.

        Content is taken as authored; only the shape needed to run a round
        is checked.
        """
        if not isinstance(data, dict):
            raise MalformedCommandError('question must be an object')
        text = data.get('text')
        options = data.get('options')
        correct = data.get('correctAnswerIndex')
        if not isinstance(text, str) or not isinstance(options, list) or not options:
            raise MalformedCommandError('question needs text and options')
        if not isinstance(correct, int) or isinstance(correct, bool):
            raise MalformedCommandError('correctAnswerIndex must be an integer')
        return cls(
            text=text,
            options=[str(o) for o in options],
            correct_answer_index=correct,
            explanation=data.get('explanation'),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            'text': self.text,
            'options': list(self.options),
            'correctAnswerIndex': self.correct_answer_index,
        }
        if self.explanation is not None:
            payload['explanation'] = self.explanation
        return payload


@dataclass(frozen=True)
class AnswerRecord:
    answer_index: int
    submission_time: float


@dataclass(frozen=True)
class GameOptions:
    score_type: str = SCORE_SPEED
    show_ranking: bool = True
    show_explanation: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'GameOptions':
        data = data if isinstance(data, dict) else {}
        score_type = data.get('scoreType') or SCORE_SPEED
        if score_type not in (SCORE_SPEED, SCORE_FIXED):
            # Older clients send 'correct' for fixed points
            score_type = SCORE_FIXED if score_type == 'correct' else SCORE_SPEED
        return cls(
            score_type=score_type,
            show_ranking=data.get('showRanking') is not False,
            show_explanation=data.get('showExplanation') is True,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'scoreType': self.score_type,
            'showRanking': self.show_ranking,
            'showExplanation': self.show_explanation,
        }


@dataclass
class RoundScore:
    player: Player
    points: int = 0
    correct: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.player.id,
            'nickname': self.player.nickname,
            'pointsThisRound': self.points,
            'totalScore': self.player.score,
            'streak': self.player.streak,
            'bestStreak': self.player.best_streak,
            'correctAnswers': self.player.correct_answers,
            'wrongAnswers': self.player.wrong_answers,
        }


DEFAULT_QUESTIONS = (
    Question(
        text="Which of these planets is known as the 'Red Planet'?",
        options=['Venus', 'Mars', 'Jupiter', 'Saturn'],
        correct_answer_index=1,
    ),
    Question(
        text='What is the largest ocean on Earth?',
        options=['Atlantic', 'Indian', 'Arctic', 'Pacific'],
        correct_answer_index=3,
    ),
    Question(
        text='What is the capital of Australia?',
        options=['Sydney', 'Melbourne', 'Canberra', 'Perth'],
        correct_answer_index=2,
    ),
)


def parse_questions(data: Any) -> List[Question]:
    """Questions from a createRoom payload, falling back to the sample set."""
    if not data:
        return list(DEFAULT_QUESTIONS)
    if not isinstance(data, list):
        raise MalformedCommandError('questions must be a list')
    return [Question.from_dict(q) for q in data]
