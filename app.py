from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException, NotFound, Conflict
from uttt.logic import (UltimateTicTacToe, PLAYING, X, O, DRAW, to_board,
                        sector_statuses)
from uttt.ai import get_ai_move, select_move
import logging, os, random, uuid


def parse_seed(value):
    """AI_SEED from the environment: unset/empty -> None, else an integer."""
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError:
        raise ValueError(f'AI_SEED must be an integer, got {value!r}') from None


app = Flask(__name__)
# ── AI settings ───────────────────────────────────────────────────────────────
# AI_SEED   - integer seed for the random tie-break, makes replies reproducible
# LOG_LEVEL - level for the app and engine loggers (DEBUG shows the chosen tier)
app.config['AI_SEED']   = parse_seed(os.environ.get('AI_SEED'))
app.config['LOG_LEVEL'] = os.environ.get('LOG_LEVEL', 'INFO').upper()
app.logger.setLevel(app.config['LOG_LEVEL'])
logging.getLogger('uttt').setLevel(app.config['LOG_LEVEL'])

games = {}   # game id -> {"game": UltimateTicTacToe, "ai_player": "X" | "O"}

_CELL_VALUES   = {X: X, O: O, None: None}
_STATUS_VALUES = {X: X, O: O, DRAW: DRAW, 'draw': DRAW, None: None}


class InvalidPayload(ValueError):
    """Request body that cannot describe a position or a move."""


@app.errorhandler(InvalidPayload)
def invalid_payload(e):
    return jsonify(error=str(e)), 400

@app.errorhandler(HTTPException)
def http_error(e):
    return jsonify(error=e.description), e.code


# ── Payload parsing ───────────────────────────────────────────────────────────
def _json_body():
    data = request.get_json(silent=True)
    if data is None: return {}
    if not isinstance(data, dict): raise InvalidPayload('expected a JSON object')
    return data

def _parse_index(value, name, allow_none=False):
    if value is None and allow_none: return None
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 8:
        raise InvalidPayload(f'{name} must be an integer in 0..8')
    return value

def _parse_player(value, name='player'):
    if value not in (X, O): raise InvalidPayload(f'{name} must be "X" or "O"')
    return value

def _parse_board(raw):
    if not isinstance(raw, list) or len(raw) != 9 or \
            any(not isinstance(s, list) or len(s) != 9 for s in raw):
        raise InvalidPayload('board must be 9 sectors of 9 cells')
    if any(cell not in _CELL_VALUES for s in raw for cell in s):
        raise InvalidPayload('cells must be "X", "O" or null')
    return to_board(raw)

def _parse_statuses(raw, board):
    derived = sector_statuses(board)
    if raw is None: return derived
    if not isinstance(raw, list) or len(raw) != 9 or any(s not in _STATUS_VALUES for s in raw):
        raise InvalidPayload('sectorStatuses must be 9 of "X", "O", "D" or null')
    statuses = tuple(_STATUS_VALUES[s] for s in raw)
    if statuses != derived:
        raise InvalidPayload('sectorStatuses do not match the board')
    return statuses

def _rng():
    seed = app.config.get('AI_SEED')
    return random.Random(seed) if seed is not None else random.Random()


# ── Game helpers ──────────────────────────────────────────────────────────────
def _get_game(game_id):
    game_data = games.get(game_id)
    if not game_data:
        raise NotFound(f'unknown game {game_id}')
    return game_data

def _ai_turn(game_data):
    """Let the AI reply while it is its move and the game is still on."""
    g = game_data["game"]
    if g.status != PLAYING or g.current_player != game_data["ai_player"]:
        return
    move = get_ai_move(g, rng=_rng())
    if move is None:
        return
    g.make_move(move.sector, move.cell)
    app.logger.info("AI (%s) played %s in game %s", game_data["ai_player"],
                    list(move), game_data["id"])

def full_state(game_data):
    return {"id": game_data["id"], "aiPlayer": game_data["ai_player"], **game_data["game"].state()}


# ── Routes ───────────────────────────────────────────────────────────────────
@app.route('/api/health')
def health(): return jsonify(status='ok')

@app.route('/api/ai/move', methods=['POST'])
def ai_move():
    data     = _json_body()
    board    = _parse_board(data.get('board'))
    statuses = _parse_statuses(data.get('sectorStatuses'), board)
    active   = _parse_index(data.get('activeSector'), 'activeSector', allow_none=True)
    player   = _parse_player(data.get('player'))
    move = select_move(board, active, statuses, player, rng=_rng())
    return jsonify(move=move._asdict() if move else None)

@app.route('/api/games', methods=['POST'])
def create_game():
    data      = _json_body()
    ai_player = _parse_player(data.get('aiPlayer', O), 'aiPlayer')
    moves     = data.get('moves', [])
    if not isinstance(moves, list) or any(not isinstance(m, list) or len(m) != 2 for m in moves):
        raise InvalidPayload('moves must be a list of [sector, cell] pairs')
    try:
        g = UltimateTicTacToe.from_moves(
            (_parse_index(s, 'sector'), _parse_index(c, 'cell')) for s, c in moves)
    except ValueError as e:
        raise InvalidPayload(str(e))
    game_id = uuid.uuid4().hex[:10]
    game_data = games[game_id] = {"id": game_id, "game": g, "ai_player": ai_player}
    app.logger.info("Created game %s (AI plays %s)", game_id, ai_player)
    _ai_turn(game_data)
    return jsonify(full_state(game_data)), 201

@app.route('/api/games/<game_id>')
def get_game(game_id):
    return jsonify(full_state(_get_game(game_id)))

@app.route('/api/games/<game_id>/move', methods=['POST'])
def play_move(game_id):
    game_data = _get_game(game_id)
    g    = game_data["game"]
    data = _json_body()
    if g.status != PLAYING:
        raise Conflict('game is over')
    if g.current_player == game_data["ai_player"]:
        raise Conflict('not your turn')
    sector = _parse_index(data.get('sector'), 'sector')
    cell   = _parse_index(data.get('cell'), 'cell')
    if not g.make_move(sector, cell):
        raise InvalidPayload(f'illegal move ({sector}, {cell})')
    _ai_turn(game_data)
    return jsonify(full_state(game_data))

@app.route('/api/games/<game_id>', methods=['DELETE'])
def delete_game(game_id):
    _get_game(game_id)
    del games[game_id]
    return '', 204


if __name__ == '__main__':
    app.run(debug=os.environ.get('FLASK_DEBUG') == '1',
            port=int(os.environ.get('PORT', 5000)))
