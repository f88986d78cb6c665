"""Rules engine for Ultimate Tic Tac Toe.

Boards are immutable snapshots: a board is a tuple of 9 sectors, a sector is a
tuple of 9 cells ('X', 'O' or None), both indexed row-major. Sector statuses
are 'X', 'O', 'D' (draw) or None (undecided) and are always derived from cells.
"""
from collections import namedtuple

WIN_LINES = [
    (0,1,2),(3,4,5),(6,7,8),
    (0,3,6),(1,4,7),(2,5,8),
    (0,4,8),(2,4,6)
]

X, O, DRAW = 'X', 'O', 'D'
PLAYING, WON, DRAWN = 'playing', 'won', 'draw'

Position = namedtuple('Position', 'sector cell')


def opponent(player):
    return O if player == X else X


# ── Snapshots ─────────────────────────────────────────────────────────────────
def empty_board():
    return ((None,) * 9,) * 9

def initial_statuses():
    return (None,) * 9

def to_board(rows):
    """Freeze a nested list (e.g. decoded JSON) into a board snapshot."""
    return tuple(tuple(sector) for sector in rows)

def empty_cells(sector):
    return [i for i, v in enumerate(sector) if v is None]

def place(sector, cell, player):
    return sector[:cell] + (player,) + sector[cell+1:]

def apply_move(board, sector, cell, player):
    """Return a new board with exactly one cell set; `board` is left untouched."""
    assert board[sector][cell] is None, f'cell {sector}/{cell} is occupied'
    return board[:sector] + (place(board[sector], cell, player),) + board[sector+1:]


# ── Sector and meta-board status ──────────────────────────────────────────────
def sector_winner(sector):
    for a, b, c in WIN_LINES:
        if sector[a] and sector[a] == sector[b] == sector[c]:
            return sector[a]
    return None

def sector_status(sector):
    winner = sector_winner(sector)
    if winner: return winner
    return DRAW if all(sector) else None

def sector_statuses(board):
    return tuple(sector_status(s) for s in board)

def update_statuses(board, statuses, sector):
    """Recompute the status of the one sector that just changed."""
    if statuses[sector] is not None:
        return tuple(statuses)
    return tuple(statuses[:sector]) + (sector_status(board[sector]),) + tuple(statuses[sector+1:])

def global_winner(statuses):
    for a, b, c in WIN_LINES:
        if statuses[a] and statuses[a] != DRAW and statuses[a] == statuses[b] == statuses[c]:
            return statuses[a]
    return None

def global_completion(board, statuses=None):
    """(game status, winner) of the whole game.

    Sector statuses act as meta-cells; draws block lines for both players. The
    game is drawn once every sector is decided without a winning meta-line.
    """
    if statuses is None:
        statuses = sector_statuses(board)
    winner = global_winner(statuses)
    if winner:
        return WON, winner
    if all(statuses):
        return DRAWN, None
    return PLAYING, None


# ── Move generation ───────────────────────────────────────────────────────────
def available_sectors(active_sector, statuses):
    if active_sector is not None and statuses[active_sector] is None:
        return [active_sector]
    return [i for i, s in enumerate(statuses) if s is None]

def is_legal_move(sector, cell, board, active_sector, statuses):
    if not (0 <= sector <= 8 and 0 <= cell <= 8): return False
    if board[sector][cell] is not None: return False
    if statuses[sector] is not None: return False
    return sector in available_sectors(active_sector, statuses)

def next_active_sector(cell, statuses):
    return cell if statuses[cell] is None else None

def legal_moves(board, active_sector, statuses):
    return [Position(s, c) for s in available_sectors(active_sector, statuses)
            for c in empty_cells(board[s])]

def advance(board, statuses, sector, cell, player):
    """Play a hypothetical move: (board, statuses, next active sector)."""
    new_board = apply_move(board, sector, cell, player)
    new_statuses = update_statuses(new_board, statuses, sector)
    return new_board, new_statuses, next_active_sector(cell, new_statuses)


# ── Game session ──────────────────────────────────────────────────────────────
class UltimateTicTacToe:
    def __init__(self):
        self.board = empty_board()
        self.statuses = initial_statuses()
        self.current_player = X
        self.active_sector = None
        self.status = PLAYING
        self.winner = None
        self.last_move = None
        self.move_history = []             # [{sector, cell, player}, ...]

    @classmethod
    def from_moves(cls, moves):
        """Replay (sector, cell) pairs from the opening; raises ValueError on an illegal one."""
        game = cls()
        for i, (sector, cell) in enumerate(moves):
            if not game.make_move(sector, cell):
                raise ValueError(f'move #{i + 1} ({sector}, {cell}) is illegal')
        return game

    def make_move(self, sector, cell):
        if self.status != PLAYING: return False
        if not is_legal_move(sector, cell, self.board, self.active_sector, self.statuses):
            return False
        player = self.current_player
        self.board, self.statuses, self.active_sector = advance(
            self.board, self.statuses, sector, cell, player)
        self.last_move = Position(sector, cell)
        self.move_history.append({"sector": sector, "cell": cell, "player": player})
        self.status, self.winner = global_completion(self.board, self.statuses)
        if self.status == PLAYING:
            self.current_player = opponent(player)
        return True

    def get_valid_moves(self):
        if self.status != PLAYING: return []
        return legal_moves(self.board, self.active_sector, self.statuses)

    def resign(self, loser):
        self.status, self.winner = WON, opponent(loser)

    def state(self):
        return {
            "board": [list(s) for s in self.board],
            "sectorStatuses": list(self.statuses),
            "player": self.current_player,
            "activeSector": self.active_sector,
            "status": self.status,
            "winner": self.winner,
            "lastMove": list(self.last_move) if self.last_move else None,
            "moveHistory": list(self.move_history),
        }
