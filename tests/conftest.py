import pytest

from uttt.logic import to_board


def sector(text):
    """'XX.O.....' -> ('X', 'X', None, 'O', None, ...)"""
    assert len(text) == 9
    return tuple(None if ch == '.' else ch for ch in text)


@pytest.fixture
def make_board():
    def build(sectors=None):
        rows = [(None,) * 9 for _ in range(9)]
        for index, text in (sectors or {}).items():
            rows[index] = sector(text)
        return to_board(rows)
    return build
