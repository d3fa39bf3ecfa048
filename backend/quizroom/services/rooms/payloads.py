"""Outbound messages produced by a room.

``gameStateUpdate`` carries a different shape in every phase, so each
phase gets its own payload class; ``to_dict`` adds the ``gameState`` tag
clients switch on.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .entities import ACCEPTING_ANSWERS, END_GAME, SHOWING_QUESTION, SHOWING_RESULTS

GAME_STATE_UPDATE = 'gameStateUpdate'
UPDATE_PLAYER_LIST = 'updatePlayerList'


@dataclass(frozen=True)
class Outbound:
    """One event for the transport: ``to`` is a room code or a connection id."""
    event: str
    payload: Any
    to: str
    skip_sid: Optional[str] = None


@dataclass(frozen=True)
class QuestionPreview:
    question_text: str
    question_index: int
    total_questions: int
    timer: int

    game_state = SHOWING_QUESTION

    def to_dict(self) -> Dict[str, Any]:
        return {
            'gameState': self.game_state,
            'questionText': self.question_text,
            'questionIndex': self.question_index,
            'totalQuestions': self.total_questions,
            'timer': self.timer,
        }


@dataclass(frozen=True)
class AnsweringPhase:
    question_text: str
    options: List[str]
    question_index: int
    total_questions: int
    timer: int
    answered_count: int
    total_players: int

    game_state = ACCEPTING_ANSWERS

    def to_dict(self) -> Dict[str, Any]:
        return {
            'gameState': self.game_state,
            'questionText': self.question_text,
            'options': list(self.options),
            'questionIndex': self.question_index,
            'totalQuestions': self.total_questions,
            'timer': self.timer,
            'answeredCount': self.answered_count,
            'totalPlayers': self.total_players,
        }


@dataclass(frozen=True)
class AnswerProgress:
    """Host-only counter refresh while answers come in."""
    question_text: str
    options: List[str]
    question_index: int
    total_questions: int
    answered_count: int
    total_players: int

    game_state = ACCEPTING_ANSWERS

    def to_dict(self) -> Dict[str, Any]:
        return {
            'gameState': self.game_state,
            'questionText': self.question_text,
            'options': list(self.options),
            'questionIndex': self.question_index,
            'totalQuestions': self.total_questions,
            'answeredCount': self.answered_count,
            'totalPlayers': self.total_players,
        }


@dataclass(frozen=True)
class RoundResults:
    correct_answer_index: int
    correct_count: int
    incorrect_count: int
    options: List[str]
    ranking: List[Dict[str, Any]]
    player_result: Optional[str] = None
    explanation: Optional[Any] = None
    round_summary: Optional[List[Dict[str, Any]]] = None

    game_state = SHOWING_RESULTS

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            'gameState': self.game_state,
            'results': {
                'correctAnswerIndex': self.correct_answer_index,
                'correctCount': self.correct_count,
                'incorrectCount': self.incorrect_count,
            },
            'options': list(self.options),
            'ranking': list(self.ranking),
        }
        if self.player_result is not None:
            payload['playerResult'] = self.player_result
        if self.explanation is not None:
            payload['explanation'] = self.explanation
        if self.round_summary is not None:
            payload['roundSummary'] = list(self.round_summary)
        return payload


@dataclass(frozen=True)
class FinalResults:
    final_ranking: List[Dict[str, Any]]
    questions: List[Dict[str, Any]] = field(default_factory=list)

    game_state = END_GAME

    def to_dict(self) -> Dict[str, Any]:
        return {
            'gameState': self.game_state,
            'finalRanking': list(self.final_ranking),
            'questions': list(self.questions),
        }
