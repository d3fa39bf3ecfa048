from quizroom.services.rooms.entities import AnswerRecord, Player, Question, SCORE_FIXED, SCORE_SPEED
from quizroom.services.rooms.scoring import ScoringRules, rank, score_player, score_round, speed_points

RULES = ScoringRules(max_points=1000, streak_bonus=20, prepare_seconds=5, answer_seconds=30)
QUESTION = Question(text='?', options=['a', 'b', 'c'], correct_answer_index=2)
START = 500.0


def test_third_consecutive_correct_answer_after_seven_seconds_scores_840():
    player = Player(id='p1', nickname='P', streak=2, best_streak=2)
    result = score_player(player, AnswerRecord(2, START + 7), QUESTION, START, SCORE_SPEED, RULES)
    assert result.correct
    assert result.points == 840
    assert player.score == 840
    assert player.streak == 3
    assert player.best_streak == 3
    assert player.correct_answers == 1


def test_wrong_answer_resets_streak_and_keeps_score():
    player = Player(id='p1', nickname='P', score=1500, streak=4, best_streak=4)
    result = score_player(player, AnswerRecord(0, START + 1), QUESTION, START, SCORE_SPEED, RULES)
    assert not result.correct
    assert result.points == 0
    assert player.score == 1500
    assert player.streak == 0
    assert player.best_streak == 4
    assert player.wrong_answers == 1


def test_missing_answer_counts_as_wrong():
    player = Player(id='p1', nickname='P', streak=1)
    result = score_player(player, None, QUESTION, START, SCORE_SPEED, RULES)
    assert result.points == 0
    assert player.streak == 0
    assert player.wrong_answers == 1
    assert player.correct_answers == 0


def test_fixed_scoring_ignores_time():
    player = Player(id='p1', nickname='P')
    result = score_player(player, AnswerRecord(2, START + 29), QUESTION, START, SCORE_FIXED, RULES)
    assert result.points == 1000


def test_speed_points_floor_at_zero_and_round_half_up():
    assert speed_points(0, RULES) == 1000
    assert speed_points(35, RULES) == 0
    assert speed_points(100, RULES) == 0
    # ratio 0.5 of one point rounds up, not to even
    assert speed_points(1, ScoringRules(max_points=1, prepare_seconds=1, answer_seconds=1)) == 1


def test_best_streak_only_grows():
    player = Player(id='p1', nickname='P', streak=0, best_streak=5)
    score_player(player, AnswerRecord(2, START), QUESTION, START, SCORE_FIXED, RULES)
    assert player.streak == 1
    assert player.best_streak == 5


def test_rank_orders_by_total_and_keeps_roster_order_for_ties():
    a = Player(id='a', nickname='A', score=100)
    b = Player(id='b', nickname='B', score=300)
    c = Player(id='c', nickname='C', score=100)
    scores = score_round([a, b, c], {}, QUESTION, START, SCORE_SPEED, RULES)
    assert [s.player.id for s in rank(scores)] == ['b', 'a', 'c']
