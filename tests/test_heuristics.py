"""Tests for the static evaluation functions."""

from uttt.heuristics import (FREE_CHOICE_BONUS, can_force_global_win,
                             can_opponent_force_win, can_win_sector,
                             count_open_lines, creates_double_threat,
                             creates_fork, evaluate_all_sectors_after_move,
                             evaluate_next_sector_choice,
                             evaluate_opponent_threat_after_move,
                             global_position_score, gives_sector_win,
                             has_critical_global_threat, sector_importance,
                             sector_position_score)
from uttt.logic import DRAW, empty_board, initial_statuses, sector_statuses, sector_winner
from conftest import sector

NONE9 = [None] * 9


def test_two_in_a_row_is_one_open_line():
    s = sector("XX.......")
    assert sector_winner(s) is None
    assert count_open_lines(s, "X") == 1
    assert count_open_lines(s, "O") == 0


def test_open_line_needs_empty_third_cell():
    assert count_open_lines(sector("XXO......"), "X") == 0


def test_creates_fork():
    assert creates_fork(sector("X.......X"), 2, "X")
    assert not creates_fork(sector("........."), 4, "X")


def test_can_win_and_gives_sector_win():
    assert can_win_sector(sector("OO......."), "O")
    assert not can_win_sector(sector("OOX......"), "O")
    assert gives_sector_win(sector("OO......."), 5, "X")
    assert not gives_sector_win(sector("OO......."), 2, "X")


def test_sector_position_score_tiers():
    assert sector_position_score(sector("XX......."), 2, "X") == 1000
    assert sector_position_score(sector("OO......."), 2, "X") == 900
    assert sector_position_score(sector("X.......X"), 2, "X") == 400
    assert sector_position_score(sector("O.......O"), 2, "X") == 350


def test_sector_position_score_positional():
    empty = sector(".........")
    assert sector_position_score(empty, 4, "X") == 30
    assert sector_position_score(empty, 0, "X") == 15
    assert sector_position_score(empty, 1, "X") == 0


def test_sector_importance():
    assert sector_importance(4) == 3
    assert [sector_importance(i) for i in (0, 2, 6, 8)] == [2, 2, 2, 2]
    assert [sector_importance(i) for i in (1, 3, 5, 7)] == [1, 1, 1, 1]


def test_global_position_score_empty_board():
    # every line: +10 for own potential, -5 for the opponent's
    assert global_position_score(NONE9, "X") == 40


def test_global_position_score_two_in_a_row():
    statuses = ["X", "X"] + [None] * 7
    assert global_position_score(statuses, "X") == 1000 + 3 * 100 + 4 * 5
    assert global_position_score(statuses, "O") < -1000


def test_global_position_score_decided_line():
    statuses = ["O", None, None, None, "O", None, None, None, "O"]
    assert global_position_score(statuses, "O") == 10000
    assert global_position_score(statuses, "X") == -10000


def test_critical_global_threat():
    statuses = ["O", "O"] + [None] * 7
    assert has_critical_global_threat(statuses, "X")
    assert not has_critical_global_threat(statuses, "O")
    statuses[2] = DRAW
    assert not has_critical_global_threat(statuses, "X")


def test_can_force_global_win(make_board):
    board = make_board({0: "XXX......", 1: "XXX......", 3: "XXX......",
                        2: "XX.......", 6: "XX......."})
    statuses = sector_statuses(board)
    assert can_force_global_win(statuses, "X", board)

    board = make_board({0: "XXX......", 1: "XXX......", 3: "XXX......",
                        2: "XX......."})
    assert not can_force_global_win(sector_statuses(board), "X", board)


def test_creates_double_threat(make_board):
    board = make_board({0: "XXX......", 8: "XXX......", 2: "XX......."})
    statuses = sector_statuses(board)
    assert creates_double_threat(board, 2, 2, "X", statuses)
    assert not creates_double_threat(board, 2, 5, "X", statuses)


def test_can_opponent_force_win():
    assert not can_opponent_force_win(empty_board(), initial_statuses(), None, "X")
    statuses = ["O", "O"] + [None] * 7
    assert can_opponent_force_win(empty_board(), statuses, None, "X")


def test_evaluate_next_sector_choice(make_board):
    statuses = ["O", "X", DRAW] + [None] * 6
    assert evaluate_next_sector_choice(None, statuses, "X") == FREE_CHOICE_BONUS == 80
    assert evaluate_next_sector_choice(0, statuses, "X") == -200
    assert evaluate_next_sector_choice(1, statuses, "X") == 30
    assert evaluate_next_sector_choice(2, statuses, "X") == -80
    assert evaluate_next_sector_choice(4, statuses, "X", empty_board()) == 75

    board = make_board({6: "OO..X...."})
    # corner 50, one cell behind -30, one opponent line -50, opponent can win -100
    assert evaluate_next_sector_choice(6, statuses, "X", board) == 50 - 30 - 50 - 100


def test_evaluate_opponent_threat_after_move():
    assert evaluate_opponent_threat_after_move(sector("OO......."), 5, "X") == -500
    assert evaluate_opponent_threat_after_move(sector("........."), 4, "X") == 0
    # O at 6 opens 0-3-6 and 2-4-6 at once
    assert evaluate_opponent_threat_after_move(sector("O.O......"), 1, "X") <= -40


def test_evaluate_all_sectors_after_move(make_board):
    assert evaluate_all_sectors_after_move(empty_board(), initial_statuses(), "X") == 0
    board = make_board({4: "OO......."})
    assert evaluate_all_sectors_after_move(board, sector_statuses(board), "X") == -300
