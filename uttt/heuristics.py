"""Static evaluation for Ultimate Tic Tac Toe.

Two levels are scored separately and combined by the move selector:

* sector level - tactics inside one 3x3 sector (wins, blocks, forks, open lines)
* meta level   - the 3x3 board of sector outcomes (owned lines, forced wins)

Every function reads the snapshot it is given and returns a number or a bool.
Hypothetical moves are played on fresh snapshots via `logic.advance`.
"""
from .logic import (WIN_LINES, DRAW, advance, apply_move, empty_cells,
                    global_winner, legal_moves, opponent, place, sector_winner,
                    update_statuses)


# ── Meta-board geometry ───────────────────────────────────────────────────────
_CENTER_SECTOR  = 4
_CORNER_SECTORS = frozenset({0, 2, 6, 8})

# global_position_score weights
_META_WIN         = 10000
_OWN_TWO          = 1000
_OWN_ONE          = 100
_OPEN_LINE        = 10
_OPP_TWO_CRITICAL = 1500
_OPP_TWO          = 500
_OPP_ONE          = 80
_OPP_OPEN_LINE    = 5

# Sending the opponent to "any sector" is scored as a fixed bonus.
FREE_CHOICE_BONUS = 80


def sector_importance(index):
    if index == _CENTER_SECTOR: return 3
    if index in _CORNER_SECTORS: return 2
    return 1


def _line_counts(values, line, player):
    """(own, opponent, empty) counts of `player` on one line."""
    opp = opponent(player)
    own = theirs = empty = 0
    for i in line:
        v = values[i]
        if v == player: own += 1
        elif v == opp: theirs += 1
        elif v is None: empty += 1
    return own, theirs, empty


# ── Sector level ──────────────────────────────────────────────────────────────
def count_open_lines(sector, player):
    """Lines where `player` holds two cells and the third is empty."""
    count = 0
    for line in WIN_LINES:
        own, _, empty = _line_counts(sector, line, player)
        if own == 2 and empty == 1:
            count += 1
    return count

def creates_fork(sector, cell, player):
    return count_open_lines(place(sector, cell, player), player) >= 2

def can_win_sector(sector, player):
    """True if `player` wins `sector` with a single move."""
    return any(sector_winner(place(sector, c, player)) == player for c in empty_cells(sector))

def gives_sector_win(sector, cell, player):
    """True if, after `player` takes `cell`, the opponent can win the sector at once."""
    return can_win_sector(place(sector, cell, player), opponent(player))

def sector_position_score(sector, cell, player):
    opp = opponent(player)
    after = place(sector, cell, player)

    if sector_winner(after) == player: return 1000
    if sector_winner(place(sector, cell, opp)) == opp: return 900
    if creates_fork(sector, cell, player): return 400
    if creates_fork(sector, cell, opp): return 350

    score = count_open_lines(after, player) * 50
    if can_win_sector(after, opp):
        score -= 200
    if cell == 4:
        score += 30
    if cell in (0, 2, 6, 8):
        score += 15
    score += count_open_lines(after, opp) * 30
    return score

def evaluate_opponent_threat_after_move(sector, cell, player):
    """Worst reply the opponent has inside this sector after our move (<= 0)."""
    opp = opponent(player)
    after = place(sector, cell, player)
    worst = 0
    for oc in empty_cells(after):
        reply = place(after, oc, opp)
        if sector_winner(reply) == opp:
            return -500
        if creates_fork(after, oc, opp):
            worst = min(worst, -200)
        worst = min(worst, -count_open_lines(reply, opp) * 40)
    return worst

def evaluate_all_sectors_after_move(board, statuses, player):
    """Opponent threats across every undecided sector, weighted by importance."""
    opp = opponent(player)
    total = 0
    for index, sector in enumerate(board):
        if statuses[index] is not None:
            continue
        threat = 0
        for cell in empty_cells(sector):
            reply = place(sector, cell, opp)
            if sector_winner(reply) == opp:
                threat = min(threat, -100)
            elif creates_fork(sector, cell, opp):
                threat = min(threat, -40)
            else:
                threat = min(threat, -count_open_lines(reply, opp) * 10)
        total += threat * sector_importance(index)
    return total


# ── Meta level ────────────────────────────────────────────────────────────────
def has_critical_global_threat(statuses, player):
    """The opponent owns two sectors of a meta-line whose third is undecided."""
    for line in WIN_LINES:
        _, theirs, empty = _line_counts(statuses, line, player)
        if theirs == 2 and empty == 1:
            return True
    return False

def global_position_score(statuses, player):
    opp = opponent(player)
    score = 0
    for line in WIN_LINES:
        a, b, c = (statuses[i] for i in line)
        if a == b == c == player: return _META_WIN
        if a == b == c == opp: return -_META_WIN

        own, theirs, empty = _line_counts(statuses, line, player)
        if own == 2 and empty == 1:
            score += _OWN_TWO
        elif own == 1 and empty == 2:
            score += _OWN_ONE
        elif own == 0 and empty == 3:
            score += _OPEN_LINE

        if theirs == 2 and empty == 1:
            critical = has_critical_global_threat(statuses, player)
            score -= _OPP_TWO_CRITICAL if critical else _OPP_TWO
        elif theirs == 1 and empty == 2:
            score -= _OPP_ONE
        elif theirs == 0 and empty == 3:
            score -= _OPP_OPEN_LINE
    return score

def can_force_global_win(statuses, player, board):
    """Two meta-lines each need one more sector, and `player` can win both sectors now."""
    paths = 0
    for line in WIN_LINES:
        own, _, empty = _line_counts(statuses, line, player)
        if own == 2 and empty == 1:
            target = next(i for i in line if statuses[i] is None)
            if can_win_sector(board[target], player):
                paths += 1
    return paths >= 2

def creates_double_threat(board, sector, cell, player, statuses):
    new_board = apply_move(board, sector, cell, player)
    new_statuses = update_statuses(new_board, statuses, sector)
    threats = 0
    for line in WIN_LINES:
        own, _, empty = _line_counts(new_statuses, line, player)
        if own == 2 and empty == 1:
            threats += 1
    return threats >= 2

def can_opponent_force_win(board, statuses, active_sector, player, depth=2):
    """Bounded look-ahead: can the opponent (to move) force a global win?

    True when the opponent already threatens a meta-line, or has a reply that
    wins outright, sets up a forced win or a double threat. A reply that only
    creates a critical threat is followed up: if no answer of ours defuses it
    (checked recursively with one less depth), the position is lost.
    """
    opp = opponent(player)
    if has_critical_global_threat(statuses, player):
        return True
    if depth <= 0:
        return False

    for move in legal_moves(board, active_sector, statuses):
        opp_board, opp_statuses, opp_next = advance(board, statuses, move.sector, move.cell, opp)
        if global_winner(opp_statuses) == opp:
            return True
        if can_force_global_win(opp_statuses, opp, opp_board):
            return True
        if creates_double_threat(board, move.sector, move.cell, opp, statuses):
            return True

        if has_critical_global_threat(opp_statuses, player):
            can_block = False
            for reply in legal_moves(opp_board, opp_next, opp_statuses):
                our_board, our_statuses, our_next = advance(
                    opp_board, opp_statuses, reply.sector, reply.cell, player)
                if not can_opponent_force_win(our_board, our_statuses, our_next, player, depth - 1):
                    can_block = True
                    break
            if not can_block:
                return True
    return False

def evaluate_next_sector_choice(next_sector, statuses, player, board=None):
    """How good the sector we send the opponent to is for us."""
    if next_sector is None:
        return FREE_CHOICE_BONUS

    opp = opponent(player)
    status = statuses[next_sector]
    if status == opp: return -200
    if status == player: return 30
    if status == DRAW: return -80

    score = sector_importance(next_sector) * 25
    if board is None:
        return score

    sector = board[next_sector]
    mine, theirs = sector.count(player), sector.count(opp)
    if mine > theirs:
        score += (mine - theirs) * 20
    elif theirs > mine:
        score -= (theirs - mine) * 30

    score += count_open_lines(sector, player) * 40
    score -= count_open_lines(sector, opp) * 50
    if can_win_sector(sector, opp):
        score -= 100
    return score
