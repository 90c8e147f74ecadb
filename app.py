import random
from functools import partial
from typing import List, Optional, Tuple

from flask import Flask, Response, redirect, render_template, request, session, url_for

from game2048 import SIZE, Model, Side, Tile

app = Flask(__name__)
app.config["SECRET_KEY"] = "change_this_to_a_random_secret_key"
app.config["BOARD_SIZE"] = SIZE
# 环境变量覆盖，例如 GAME2048_SECRET_KEY、GAME2048_BOARD_SIZE
app.config.from_prefixed_env("GAME2048")

# 游戏配置常量
FOUR_CHANCE = 0.10  # 新生成数字为 4 的概率
START_TILES = 2     # 新游戏开局的数字个数

# 移动方向映射
MOVE_DIRECTIONS = {
    "up": Side.NORTH,
    "down": Side.SOUTH,
    "left": Side.WEST,
    "right": Side.EAST,
}


def empty_cells(model: Model) -> List[Tuple[int, int]]:
    """所有空格的坐标 (col, row)。"""
    size = model.size()
    return [
        (c, r)
        for c in range(size)
        for r in range(size)
        if model.tile(c, r) is None
    ]


def add_random_tile(model: Model) -> Optional[Tuple[int, int]]:
    """
    在空格随机生成一个 2 或 4
    返回生成的位置 (col, row)，如果棋盘已满返回 None
    """
    cells = empty_cells(model)
    if not cells:
        return None

    c, r = random.choice(cells)
    value = 4 if random.random() < FOUR_CHANCE else 2
    model.add_tile(Tile.create(value, c, r))
    return c, r


def save_model(model: Model) -> None:
    """保存游戏状态到 session。"""
    session.update({
        "board": model.values(),
        "score": model.score(),
        "max_score": model.max_score(),
        "game_over": model.game_over(),
    })


def start_new_game(model: Model) -> None:
    """初始化一局新游戏（保留最高分）。"""
    model.clear()
    for _ in range(START_TILES):
        add_random_tile(model)
    app.logger.info("new game, max score %d", model.max_score())


def load_model() -> Model:
    """从 session 取出当前游戏，没有则新开一局。"""
    board = session.get("board")
    fresh = board is None
    if fresh:
        size = app.config["BOARD_SIZE"]
        board = [[0] * size for _ in range(size)]

    model = Model.from_values(
        board,
        score=session.get("score", 0),
        max_score=session.get("max_score", 0),
        game_over=session.get("game_over", False),
    )
    model.on_change = partial(save_model, model)
    if fresh:
        start_new_game(model)
    return model


@app.route("/")
def index():
    """游戏主页面。"""
    model = load_model()
    return render_template(
        "index.html",
        board=model.values(),
        score=model.score(),
        max_score=model.max_score(),
        max_tile=model.max_tile(),
        game_over=model.game_over(),
    )


@app.route("/move", methods=["POST"])
def move():
    """处理移动操作。"""
    direction = request.form.get("direction")
    side = MOVE_DIRECTIONS.get(direction)
    if side is None:
        app.logger.warning("unknown direction %r", direction)
        return redirect(url_for("index"))

    model = load_model()
    if model.game_over():
        return redirect(url_for("index"))

    # 确实发生移动时才生成新数字
    if model.tilt(side):
        add_random_tile(model)

    return redirect(url_for("index"))


@app.route("/reset", methods=["POST"])
def reset():
    """重新开始一局游戏（保留最高分）。"""
    model = load_model()
    start_new_game(model)
    return redirect(url_for("index"))


@app.route("/debug")
def debug():
    """文本形式的棋盘，仅用于调试。"""
    model = load_model()
    return Response(str(model), mimetype="text/plain")


if __name__ == "__main__":
    app.run(debug=True)
