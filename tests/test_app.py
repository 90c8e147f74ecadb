import random

import pytest

from app import app


def count_tiles(board):
    return sum(1 for row in board for v in row if v)


@pytest.fixture
def client():
    app.config.update(TESTING=True, SECRET_KEY="test", BOARD_SIZE=4)
    random.seed(0)
    with app.test_client() as client:
        yield client


def set_state(client, board, score=0, max_score=0, game_over=False):
    with client.session_transaction() as sess:
        sess["board"] = board
        sess["score"] = score
        sess["max_score"] = max_score
        sess["game_over"] = game_over


def get_state(client):
    with client.session_transaction() as sess:
        return dict(sess)


def test_index_starts_new_game(client):
    resp = client.get("/")
    assert resp.status_code == 200
    state = get_state(client)
    assert count_tiles(state["board"]) == 2
    assert state["score"] == 0
    assert not state["game_over"]


def test_move_merges_and_spawns(client):
    board = [[2, 2, 0, 0], [0] * 4, [0] * 4, [0] * 4]
    set_state(client, board)
    resp = client.post("/move", data={"direction": "left"})
    assert resp.status_code == 302
    state = get_state(client)
    assert state["score"] == 4
    assert state["board"][0][0] == 4
    assert count_tiles(state["board"]) == 2


def test_move_without_change_does_not_spawn(client):
    board = [[2, 0, 0, 0], [0] * 4, [0] * 4, [0] * 4]
    set_state(client, board)
    client.post("/move", data={"direction": "left"})
    assert get_state(client)["board"] == board


def test_unknown_direction_is_ignored(client):
    board = [[0, 0, 0, 2], [0] * 4, [0] * 4, [0] * 4]
    set_state(client, board)
    resp = client.post("/move", data={"direction": "sideways"})
    assert resp.status_code == 302
    assert get_state(client)["board"] == board


def test_move_after_game_over_is_ignored(client):
    board = [[2048, 0, 0, 0], [0] * 4, [0] * 4, [0] * 4]
    set_state(client, board, score=3000, game_over=True)
    client.post("/move", data={"direction": "right"})
    assert get_state(client)["board"] == board


def test_reset_keeps_max_score(client):
    board = [[2, 4, 2, 4], [4, 2, 4, 2], [2, 4, 2, 4], [4, 2, 4, 2]]
    set_state(client, board, score=100, max_score=50)
    client.post("/reset")
    state = get_state(client)
    assert state["score"] == 0
    assert state["max_score"] == 100
    assert count_tiles(state["board"]) == 2
    assert not state["game_over"]


def test_debug_renders_text(client):
    board = [[0, 0, 0, 0], [0] * 4, [0] * 4, [0, 0, 0, 8]]
    set_state(client, board, score=12)
    resp = client.get("/debug")
    assert resp.mimetype == "text/plain"
    text = resp.get_data(as_text=True)
    assert "|   8|" in text
    assert "] 12 (max: 0) (game is not over)" in text
