import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from .entities import (
    ACCEPTING_ANSWERS,
    END_GAME,
    LOBBY,
    SHOWING_QUESTION,
    SHOWING_RESULTS,
    AnswerRecord,
    GameOptions,
    Player,
    Question,
)
from .errors import (
    AuthorizationError,
    DuplicateSubmissionError,
    MalformedCommandError,
    NotFoundError,
    PhaseConflictError,
)
from .payloads import (
    GAME_STATE_UPDATE,
    UPDATE_PLAYER_LIST,
    AnswerProgress,
    AnsweringPhase,
    FinalResults,
    Outbound,
    QuestionPreview,
    RoundResults,
)
from .scheduler import Scheduler, TimerHandle
from .scoring import ScoringRules, is_correct, rank, rank_players, score_round

logger = logging.getLogger(__name__)


class Room:
    """State machine for one game.

    lobby -> showingQuestion -> acceptingAnswers -> showingResults ->
    (showingQuestion | endGame)

    Callers must hold ``lock`` around every method that mutates the room;
    the dispatcher does this for commands and timer callbacks alike. Each
    mutating method returns the ``Outbound`` messages it produced, in the
    order they must be delivered.
    """

    def __init__(
        self,
        code: str,
        host_id: str,
        host_nickname: str,
        questions: Sequence[Question],
        options: GameOptions,
        scheduler: Scheduler,
        rules: ScoringRules,
        host_user_id: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.code = code
        self.host_id = host_id
        self.players: List[Player] = [Player(id=host_id, nickname=host_nickname, user_id=host_user_id)]
        self.game_state = LOBBY
        self.questions = tuple(questions)
        self.current_question_index = -1
        self.answers: Dict[str, AnswerRecord] = {}
        self.question_start_time: Optional[float] = None
        self.game_options = options
        self.pending_timer: Optional[TimerHandle] = None
        self.lock = threading.RLock()
        self.closed = False
        self._scheduler = scheduler
        self._rules = rules
        self._clock = clock
        self.created_at = clock()

    # ---- queries ----

    @property
    def current_question(self) -> Optional[Question]:
        if 0 <= self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None

    def guests(self) -> List[Player]:
        return [p for p in self.players if p.id != self.host_id]

    def find_player(self, player_id: str) -> Optional[Player]:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def is_member(self, player_id: str) -> bool:
        return self.find_player(player_id) is not None

    def roster(self) -> List[Dict[str, Any]]:
        return [p.to_dict() for p in self.players]

    def answered_count(self) -> int:
        return sum(1 for p in self.guests() if p.id in self.answers)

    def summary(self) -> Dict[str, Any]:
        return {
            'roomCode': self.code,
            'hostId': self.host_id,
            'gameState': self.game_state,
            'playerCount': len(self.guests()),
            'questionIndex': self.current_question_index,
            'totalQuestions': len(self.questions),
            'gameOptions': self.game_options.to_dict(),
            'createdAt': self.created_at,
        }

    # ---- guards ----

    def _require_open(self) -> None:
        if self.closed:
            raise NotFoundError('room is closed')

    def _require_host(self, caller_id: str) -> None:
        if caller_id != self.host_id:
            raise AuthorizationError('only the host may do that')

    def _require_phase(self, phase: str) -> None:
        if self.game_state != phase:
            raise PhaseConflictError(f"expected {phase}, room is {self.game_state}")

    # ---- timers ----

    def _cancel_timer(self) -> None:
        if self.pending_timer is not None:
            self.pending_timer.cancel()
            self.pending_timer = None

    def _arm(self, phase: str, delay: int) -> None:
        self._cancel_timer()
        self.pending_timer = self._scheduler.schedule(self.code, phase, self.current_question_index, delay)

    def on_timer(self, handle: TimerHandle) -> List[Outbound]:
        """Run the transition a fired timer was armed for, if still due."""
        if self.closed or handle is not self.pending_timer or handle.cancelled:
            logger.info(f"[timer-abort] room={self.code} phase={handle.phase} round={handle.round_index} stale handle")
            return []
        self.pending_timer = None
        if handle.phase != self.game_state or handle.round_index != self.current_question_index:
            logger.info(
                f"[timer-abort] room={self.code} expected_phase={handle.phase} actual_phase={self.game_state} "
                f"expected_round={handle.round_index} actual_round={self.current_question_index}"
            )
            return []
        if handle.phase == SHOWING_QUESTION:
            return self._begin_answering()
        if handle.phase == ACCEPTING_ANSWERS:
            return self._show_results('timeout')
        return []

    # ---- roster ----

    def add_player(self, player_id: str, nickname: str, user_id: Optional[str] = None) -> List[Outbound]:
        self._require_open()
        if self.game_state != LOBBY:
            raise PhaseConflictError('This game has already started. You cannot join now.')
        if self.is_member(player_id):
            raise AuthorizationError('You are already in this room.')
        self.players.append(Player(id=player_id, nickname=nickname, user_id=user_id))
        logger.info(f"[join] room={self.code} player={player_id} nickname={nickname!r} players={len(self.players)}")
        return [
            Outbound('joinSuccess', {
                'roomCode': self.code,
                'players': self.roster(),
                'hostId': self.host_id,
            }, to=player_id),
            Outbound(UPDATE_PLAYER_LIST, self.roster(), to=self.code, skip_sid=player_id),
        ]

    def kick(self, caller_id: str, target_id: str) -> List[Outbound]:
        """Remove a guest on the host's request.

        Any answer the guest already gave this round stays in the ledger.
        """
        self._require_open()
        self._require_host(caller_id)
        if target_id == self.host_id:
            raise AuthorizationError('the host cannot kick themselves')
        target = self.find_player(target_id)
        if target is None:
            raise NotFoundError('no such player')
        self.players.remove(target)
        logger.info(f"[kick] room={self.code} player={target_id}")
        return [
            Outbound('kicked', {
                'roomCode': self.code,
                'message': 'You were removed from the room by the host.',
            }, to=target_id),
            Outbound(UPDATE_PLAYER_LIST, self.roster(), to=self.code, skip_sid=target_id),
        ]

    def remove_player(self, player_id: str) -> List[Outbound]:
        """A guest left or dropped; their submitted answer still counts."""
        self._require_open()
        player = self.find_player(player_id)
        if player is None:
            raise NotFoundError('no such player')
        if player_id == self.host_id:
            raise AuthorizationError('the host closes the room instead of leaving it')
        self.players.remove(player)
        logger.info(f"[leave] room={self.code} player={player_id} players={len(self.players)}")
        return [Outbound(UPDATE_PLAYER_LIST, self.roster(), to=self.code, skip_sid=player_id)]

    def close(self) -> List[Outbound]:
        """Host departure: stop the clock and tell everyone the room is gone."""
        self._cancel_timer()
        if self.closed:
            return []
        self.closed = True
        logger.info(f"[close] room={self.code} phase={self.game_state}")
        return [Outbound('roomClosed', {
            'roomCode': self.code,
            'message': 'The host closed the room.',
        }, to=self.code)]

    # ---- gameplay ----

    def start(self, caller_id: str) -> List[Outbound]:
        self._require_open()
        self._require_host(caller_id)
        self._require_phase(LOBBY)
        if not self.questions:
            raise PhaseConflictError('room has no questions')
        logger.info(f"[start] room={self.code} guests={len(self.guests())} questions={len(self.questions)}")
        return self._show_question(0)

    def advance(self, caller_id: str) -> List[Outbound]:
        self._require_open()
        self._require_host(caller_id)
        self._require_phase(SHOWING_RESULTS)
        next_index = self.current_question_index + 1
        if next_index < len(self.questions):
            return self._show_question(next_index)
        self.current_question_index = next_index
        return self._end_game()

    def skip(self, caller_id: str) -> List[Outbound]:
        self._require_open()
        self._require_host(caller_id)
        self._require_phase(ACCEPTING_ANSWERS)
        logger.info(f"[skip] room={self.code} round={self.current_question_index}")
        return self._show_results('host-skip')

    def submit_answer(self, caller_id: str, answer_index: Any) -> List[Outbound]:
        self._require_open()
        self._require_phase(ACCEPTING_ANSWERS)
        if caller_id == self.host_id:
            raise AuthorizationError('the host does not answer')
        if not self.is_member(caller_id):
            raise AuthorizationError('not a player in this room')
        if caller_id in self.answers:
            raise DuplicateSubmissionError()
        if not isinstance(answer_index, int) or isinstance(answer_index, bool):
            raise MalformedCommandError('answerIndex must be an integer')

        self.answers[caller_id] = AnswerRecord(answer_index=answer_index, submission_time=self._clock())
        answered = self.answered_count()
        total = len(self.guests())
        logger.info(f"[answer] room={self.code} round={self.current_question_index} answered={answered}/{total}")

        if answered >= total:
            return self._show_results('all-answered')

        question = self.current_question
        return [Outbound(GAME_STATE_UPDATE, AnswerProgress(
            question_text=question.text,
            options=question.options,
            question_index=self.current_question_index,
            total_questions=len(self.questions),
            answered_count=answered,
            total_players=total,
        ).to_dict(), to=self.host_id)]

    # ---- transitions ----

    def _show_question(self, index: int) -> List[Outbound]:
        self.current_question_index = index
        self.game_state = SHOWING_QUESTION
        self.answers = {}
        self.question_start_time = None
        question = self.current_question
        self._arm(SHOWING_QUESTION, self._rules.prepare_seconds)
        logger.info(f"[question] room={self.code} showing {index + 1}/{len(self.questions)}")
        return [Outbound(GAME_STATE_UPDATE, QuestionPreview(
            question_text=question.text,
            question_index=index,
            total_questions=len(self.questions),
            timer=self._rules.prepare_seconds,
        ).to_dict(), to=self.code)]

    def _begin_answering(self) -> List[Outbound]:
        self.game_state = ACCEPTING_ANSWERS
        self.question_start_time = self._clock()
        question = self.current_question
        self._arm(ACCEPTING_ANSWERS, self._rules.answer_seconds)
        return [Outbound(GAME_STATE_UPDATE, AnsweringPhase(
            question_text=question.text,
            options=question.options,
            question_index=self.current_question_index,
            total_questions=len(self.questions),
            timer=self._rules.answer_seconds,
            answered_count=0,
            total_players=len(self.guests()),
        ).to_dict(), to=self.code)]

    def _show_results(self, trigger: str) -> List[Outbound]:
        # Whichever trigger gets here first wins; the rest are no-ops
        if self.game_state != ACCEPTING_ANSWERS:
            logger.info(f"[results-skip] room={self.code} trigger={trigger} phase={self.game_state}")
            return []
        self._cancel_timer()
        self.game_state = SHOWING_RESULTS

        question = self.current_question
        guests = self.guests()
        scores = score_round(
            guests,
            self.answers,
            question,
            self.question_start_time,
            self.game_options.score_type,
            self._rules,
        )
        correct_count = sum(1 for s in scores if s.correct)
        incorrect_count = len(scores) - correct_count
        # Answers from guests who left after submitting are still tallied
        present = {p.id for p in guests}
        for player_id, record in self.answers.items():
            if player_id in present:
                continue
            if is_correct(record, question):
                correct_count += 1
            else:
                incorrect_count += 1

        full_ranking = [s.to_dict() for s in rank(scores)]
        ranking = full_ranking if self.game_options.show_ranking else []
        explanation = question.explanation if self.game_options.show_explanation else None

        logger.info(
            f"[results] room={self.code} round={self.current_question_index} trigger={trigger} "
            f"correct={correct_count} incorrect={incorrect_count}"
        )

        by_id = {s.player.id: s for s in scores}
        messages = []
        for player in self.players:
            if player.id == self.host_id:
                payload = RoundResults(
                    correct_answer_index=question.correct_answer_index,
                    correct_count=correct_count,
                    incorrect_count=incorrect_count,
                    options=question.options,
                    ranking=ranking,
                    explanation=explanation,
                    round_summary=full_ranking,
                )
            else:
                payload = RoundResults(
                    correct_answer_index=question.correct_answer_index,
                    correct_count=correct_count,
                    incorrect_count=incorrect_count,
                    options=question.options,
                    ranking=ranking,
                    player_result='correct' if by_id[player.id].correct else 'incorrect',
                    explanation=explanation,
                )
            messages.append(Outbound(GAME_STATE_UPDATE, payload.to_dict(), to=player.id))
        return messages

    def _end_game(self) -> List[Outbound]:
        self._cancel_timer()
        self.game_state = END_GAME
        final_ranking = [p.to_dict() for p in rank_players(self.guests())]
        logger.info(f"[finish] room={self.code} players={len(final_ranking)}")
        return [Outbound(GAME_STATE_UPDATE, FinalResults(
            final_ranking=final_ranking,
            questions=[q.to_dict() for q in self.questions],
        ).to_dict(), to=self.code)]
