"""AI move selection for Ultimate Tic Tac Toe.

DECISION CASCADE
────────────────
The selector walks an ordered list of strategies; the first one that returns a
move wins. The order matters: moving a tier changes play on non-trivial boards.

1. Win the game now, or set up a forced / double meta-line win.
2. Win a sector, unless that lets the opponent win the game on the reply.
3. Block a sector win that would hand the opponent a meta-line.
4. Escape a position where the opponent can force a win.
5. Block an opponent fork.
6. Block a plain sector win (accepted only above a threshold).
7. Create our own sector threats (accepted only above a threshold).
8. Fixed-depth minimax with alpha-beta over heuristically ordered moves.
9. Random safe move from the injected RNG.

Every tier works on immutable snapshots, so strategies can be called on their
own (tests do) and nothing is shared between calls.
"""
import logging
import math
import random

from .logic import (WIN_LINES, Position, advance, global_winner, legal_moves,
                    opponent, place, sector_winner)
from .heuristics import (can_force_global_win, can_opponent_force_win,
                         count_open_lines, creates_double_threat, creates_fork,
                         evaluate_all_sectors_after_move,
                         evaluate_next_sector_choice,
                         evaluate_opponent_threat_after_move,
                         global_position_score, gives_sector_win,
                         has_critical_global_threat, sector_importance,
                         sector_position_score)

logger = logging.getLogger(__name__)

MAX_DEPTH = 8
WIN_SCORE = 10000

_BLOCK_THRESHOLD  = -100
_THREAT_THRESHOLD = 100


# ── Search context ────────────────────────────────────────────────────────────
class Context:
    """The position the AI has to answer, plus per-call caches."""
    __slots__ = ('board', 'active', 'statuses', 'player', 'opp', 'rng', 'moves',
                 '_after', '_safe', '_dangerous')

    def __init__(self, board, active, statuses, player, rng=None):
        self.board    = board
        self.active   = active
        self.statuses = tuple(statuses)
        self.player   = player
        self.opp      = opponent(player)
        self.rng      = rng if rng is not None else random.Random()
        self.moves    = legal_moves(board, active, self.statuses)
        self._after   = {}
        self._safe    = None
        self._dangerous = None

    def after(self, move):
        """(board, statuses, next active) once we play `move`."""
        if move not in self._after:
            self._after[move] = advance(self.board, self.statuses, move.sector, move.cell, self.player)
        return self._after[move]

    def _split(self):
        self._safe, self._dangerous = [], []
        for m in self.moves:
            if gives_sector_win(self.board[m.sector], m.cell, self.player):
                self._dangerous.append(m)
            else:
                self._safe.append(m)

    @property
    def safe(self):
        """Moves that leave the opponent no immediate win in the same sector."""
        if self._safe is None: self._split()
        return self._safe

    @property
    def dangerous(self):
        if self._dangerous is None: self._split()
        return self._dangerous

    @property
    def candidates(self):
        return self.safe or self.dangerous

    def blocks(self):
        """Moves on cells where the opponent would win the sector."""
        return [m for m in self.moves
                if sector_winner(place(self.board[m.sector], m.cell, self.opp)) == self.opp]

    def hands_global_win(self, move):
        """Can the opponent win the whole game straight after `move`?"""
        board, statuses, nxt = self.after(move)
        for reply in legal_moves(board, nxt, statuses):
            _, st, _ = advance(board, statuses, reply.sector, reply.cell, self.opp)
            if global_winner(st) == self.opp:
                return True
        return False

    def position_scores(self, move):
        """(global position score, next-sector score) after `move`."""
        board, statuses, nxt = self.after(move)
        return (global_position_score(statuses, self.player),
                evaluate_next_sector_choice(nxt, statuses, self.player, board))


def _best(moves, key):
    """Highest-scoring move with its score; earliest move wins ties."""
    best_move, best_score = None, -math.inf
    for m in moves:
        s = key(m)
        if s > best_score:
            best_move, best_score = m, s
    return best_move, best_score


# ── Strategies ────────────────────────────────────────────────────────────────
def forced_global_win(ctx):
    for m in ctx.moves:
        board, statuses, _ = ctx.after(m)
        if global_winner(statuses) == ctx.player:
            return m
        if can_force_global_win(statuses, ctx.player, board):
            return m
        if creates_double_threat(ctx.board, m.sector, m.cell, ctx.player, ctx.statuses):
            return m
    return None

def globally_safe_sector_win(ctx):
    wins = [m for m in ctx.moves
            if sector_winner(place(ctx.board[m.sector], m.cell, ctx.player)) == ctx.player]
    wins = [m for m in wins if not ctx.hands_global_win(m)]

    def score(m):
        glob, nxt = ctx.position_scores(m)
        return glob + nxt * 0.2
    return _best(wins, score)[0]

def _loses_meta_line(ctx, sector):
    """Would the opponent winning `sector` leave them a dangerous meta-line?"""
    statuses = list(ctx.statuses)
    statuses[sector] = ctx.opp
    for line in WIN_LINES:
        if sector not in line:
            continue
        values = [statuses[i] for i in line]
        theirs, ours, empty = values.count(ctx.opp), values.count(ctx.player), values.count(None)
        if theirs == 2 and empty == 1:
            return True
        if theirs == 1 and ours == 0 and empty == 2:
            return True
    return False

def critical_sector_block(ctx):
    critical = [m for m in ctx.blocks() if _loses_meta_line(ctx, m.sector)]

    def score(m):
        glob, nxt = ctx.position_scores(m)
        return glob + nxt * 0.25
    move, _ = _best(critical, score)
    if move is None and critical:
        return critical[0]
    return move

def forced_loss_block(ctx):
    if not can_opponent_force_win(ctx.board, ctx.statuses, ctx.active, ctx.player, 2):
        return None
    escapes = []
    for m in ctx.moves:
        board, statuses, nxt = ctx.after(m)
        if not can_opponent_force_win(board, statuses, nxt, ctx.player, 2):
            escapes.append(m)

    def score(m):
        glob, nxt = ctx.position_scores(m)
        penalty = -500 if gives_sector_win(ctx.board[m.sector], m.cell, ctx.player) else 0
        return glob + nxt * 0.25 + 2000 + penalty
    return _best(escapes, score)[0]

def fork_block(ctx):
    forks = [m for m in ctx.moves if creates_fork(ctx.board[m.sector], m.cell, ctx.opp)]

    def score(m):
        glob, nxt = ctx.position_scores(m)
        return glob + nxt * 0.25 + 400
    return _best(forks, score)[0]

def sector_block(ctx):
    blocks = ctx.blocks()
    if not blocks:
        return None

    if has_critical_global_threat(ctx.statuses, ctx.player):
        for m in blocks:
            for line in WIN_LINES:
                if m.sector not in line:
                    continue
                theirs = sum(1 for i in line if ctx.statuses[i] == ctx.opp)
                others_open = sum(1 for i in line if ctx.statuses[i] is None and i != m.sector)
                if theirs == 2 and others_open == 0:
                    return m

    def score(m):
        glob, nxt = ctx.position_scores(m)
        return nxt + glob * 0.15 + 500
    move, best = _best(blocks, score)
    return move if best > _BLOCK_THRESHOLD else None

def threat_creation(ctx):
    if has_critical_global_threat(ctx.statuses, ctx.player):
        return None

    def lines(m):
        return count_open_lines(place(ctx.board[m.sector], m.cell, ctx.player), ctx.player)

    def score(m):
        glob, nxt = ctx.position_scores(m)
        return glob * 0.1 + nxt * 0.2 + lines(m) * 150 * sector_importance(m.sector)
    move, best = _best([m for m in ctx.candidates if lines(m) > 0], score)
    return move if best > _THREAT_THRESHOLD else None

def _ordering_score(ctx, m, dangerous):
    sector = ctx.board[m.sector]
    board, statuses, nxt = ctx.after(m)
    return (sector_position_score(sector, m.cell, ctx.player) * sector_importance(m.sector)
            + evaluate_opponent_threat_after_move(sector, m.cell, ctx.player) * 1.5
            + evaluate_next_sector_choice(nxt, statuses, ctx.player, board)
            + evaluate_all_sectors_after_move(board, statuses, ctx.player) * 0.3
            - (1000 if m in dangerous else 0))

def minimax_search(ctx):
    dangerous = set(ctx.dangerous)
    ordered = sorted(ctx.candidates, key=lambda m: _ordering_score(ctx, m, dangerous), reverse=True)

    best_move, best_score = None, -math.inf
    for m in ordered:
        if ctx.hands_global_win(m):
            continue
        if m in dangerous and ctx.safe:
            continue
        board, statuses, nxt = ctx.after(m)
        score = minimax(board, nxt, statuses, MAX_DEPTH - 1, best_score, math.inf, False, ctx.player)
        if score > best_score:
            best_move, best_score = m, score
    if best_move is not None:
        logger.debug("minimax picked %s (score %s) from %d candidates", best_move, best_score, len(ordered))
    return best_move

def random_fallback(ctx):
    pool = ctx.safe or ctx.moves
    return ctx.rng.choice(pool) if pool else None


STRATEGIES = (
    forced_global_win,
    globally_safe_sector_win,
    critical_sector_block,
    forced_loss_block,
    fork_block,
    sector_block,
    threat_creation,
    minimax_search,
    random_fallback,
)


# ── Alpha-Beta ────────────────────────────────────────────────────────────────
def minimax(board, active, statuses, depth, alpha, beta, maximizing, ai):
    """Alpha-beta value of a position for `ai`.

    Terminal wins score WIN_SCORE plus the remaining depth, so earlier wins
    (and later losses) are preferred.
    """
    opp = opponent(ai)
    winner = global_winner(statuses)
    if winner == ai:  return WIN_SCORE + depth
    if winner == opp: return -WIN_SCORE - depth
    if depth == 0:
        return global_position_score(statuses, ai)
    moves = legal_moves(board, active, statuses)
    if not moves:
        return global_position_score(statuses, ai)

    if maximizing:
        best = -math.inf
        for m in moves:
            child, child_st, nxt = advance(board, statuses, m.sector, m.cell, ai)
            best = max(best, minimax(child, nxt, child_st, depth-1, alpha, beta, False, ai))
            alpha = max(alpha, best)
            if beta <= alpha: break
        return best
    else:
        best = math.inf
        for m in moves:
            child, child_st, nxt = advance(board, statuses, m.sector, m.cell, opp)
            best = min(best, minimax(child, nxt, child_st, depth-1, alpha, beta, True, ai))
            beta = min(beta, best)
            if beta <= alpha: break
        return best


# ── Public API ────────────────────────────────────────────────────────────────
def select_move(board, active_sector, statuses, player, rng=None):
    """Best move for `player`, or None when there is no legal move.

    `statuses` must match the board; it is not re-derived here.
    """
    assert len(board) == 9 and all(len(s) == 9 for s in board), 'board must be 9x9'
    assert len(statuses) == 9, 'expected 9 sector statuses'
    assert player in ('X', 'O'), f'unknown player {player!r}'
    assert active_sector is None or 0 <= active_sector <= 8, f'bad active sector {active_sector!r}'

    board = tuple(tuple(s) for s in board)
    ctx = Context(board, active_sector, statuses, player, rng)
    if not ctx.moves:
        return None
    for strategy in STRATEGIES:
        move = strategy(ctx)
        if move is not None:
            logger.debug("%s: %s chose %s", player, strategy.__name__, move)
            return Position(*move)
    return None

def get_ai_move(game, rng=None):
    """Move for the side to play in an `UltimateTicTacToe` session."""
    if not game.get_valid_moves(): return None
    return select_move(game.board, game.active_sector, game.statuses, game.current_player, rng)
