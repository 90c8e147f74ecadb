import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Iterator, List, Optional, Tuple

SIZE = 4  # 默认棋盘大小：4x4
MAX_PIECE = 2048  # 出现该数字即游戏结束
Values = List[List[int]]

logger = logging.getLogger(__name__)


class Side(Enum):
    """
    棋盘的四个方向，同时也是视角变换。
    以某个方向为视角时，逻辑上的"上"就是该方向。
    """

    # (col0, row0, dcol, drow)
    NORTH = (0, 0, 0, 1)
    EAST = (0, 1, 1, 0)
    SOUTH = (1, 1, 0, -1)
    WEST = (1, 0, -1, 0)

    def __init__(self, col0: int, row0: int, dcol: int, drow: int) -> None:
        self.col0 = col0
        self.row0 = row0
        self.dcol = dcol
        self.drow = drow

    def col(self, c: int, r: int, size: int) -> int:
        """视角坐标 (c, r) 对应的实际列号。"""
        return self.col0 * (size - 1) + c * self.drow + r * self.dcol

    def row(self, c: int, r: int, size: int) -> int:
        """视角坐标 (c, r) 对应的实际行号。"""
        return self.row0 * (size - 1) - c * self.dcol + r * self.drow


@dataclass(frozen=True)
class Tile:
    """
    一个数字方块。坐标为实际坐标，(0, 0) 是左下角。
    merged 表示它是本次倾斜中合并出来的，不能再合并。
    """

    value: int
    col: int
    row: int
    merged: bool = False

    @classmethod
    def create(cls, value: int, col: int, row: int) -> "Tile":
        return cls(value, col, row)

    def doubled(self) -> "Tile":
        """合并后的新方块。"""
        return replace(self, value=self.value * 2, merged=True)


class Board:
    """N x N 的格子，读写都经过当前视角的坐标变换。"""

    def __init__(self, size: int = SIZE) -> None:
        self._size = size
        self._cells: List[List[Optional[Tile]]] = [[None] * size for _ in range(size)]
        self._perspective = Side.NORTH

    def size(self) -> int:
        return self._size

    def _check(self, col: int, row: int) -> None:
        if not (0 <= col < self._size and 0 <= row < self._size):
            raise IndexError(f"({col}, {row}) 超出棋盘范围 0..{self._size - 1}")

    def _physical(self, col: int, row: int) -> Tuple[int, int]:
        self._check(col, row)
        side = self._perspective
        return side.col(col, row, self._size), side.row(col, row, self._size)

    def tile(self, col: int, row: int) -> Optional[Tile]:
        """返回当前视角下 (col, row) 的方块，空格返回 None。"""
        pc, pr = self._physical(col, row)
        return self._cells[pc][pr]

    def add_tile(self, tile: Tile) -> None:
        """把方块放到它自己记录的位置，该位置必须为空。"""
        self._check(tile.col, tile.row)
        if self._cells[tile.col][tile.row] is not None:
            raise ValueError(f"({tile.col}, {tile.row}) 已有方块")
        # 新放入的方块总是可以合并
        self._cells[tile.col][tile.row] = replace(tile, merged=False)

    def move(self, col: int, row: int, tile: Tile) -> None:
        """
        把方块移到当前视角下的 (col, row)，覆盖原有方块，并清空它原来的格子。
        覆盖前目标格的方块必须已被调用方合并掉。
        """
        pc, pr = self._physical(col, row)
        assert self._cells[tile.col][tile.row] is not None, "被移动的方块不在棋盘上"
        self._cells[tile.col][tile.row] = None
        self._cells[pc][pr] = replace(tile, col=pc, row=pr)

    def set_viewing_perspective(self, side: Side) -> None:
        self._perspective = side

    @contextmanager
    def viewed_from(self, side: Side) -> Iterator["Board"]:
        """临时切换视角，退出时恢复为 NORTH。"""
        self.set_viewing_perspective(side)
        try:
            yield self
        finally:
            self.set_viewing_perspective(Side.NORTH)

    def settle(self) -> None:
        """倾斜结束后清除所有方块的合并标记。"""
        for column in self._cells:
            for r, t in enumerate(column):
                if t is not None and t.merged:
                    column[r] = replace(t, merged=False)

    def clear(self) -> None:
        for column in self._cells:
            for r in range(self._size):
                column[r] = None

    def copy(self) -> "Board":
        other = Board(self._size)
        other._cells = [column[:] for column in self._cells]
        other._perspective = self._perspective
        return other

    def tiles(self) -> Iterator[Tile]:
        """按实际坐标遍历所有方块。"""
        for column in self._cells:
            for t in column:
                if t is not None:
                    yield t


def empty_space_exists(b: Board) -> bool:
    """是否存在空格。"""
    return any(
        b.tile(c, r) is None
        for c in range(b.size())
        for r in range(b.size())
    )


def max_tile_exists(b: Board) -> bool:
    """是否已有方块达到 MAX_PIECE。"""
    return any(t.value >= MAX_PIECE for t in b.tiles())


def adjacent_equal_pair_exists(b: Board) -> bool:
    """同一行或同一列中是否有相邻且相等的两个方块。"""
    size = b.size()
    for i in range(size):
        for j in range(1, size):
            pairs = (
                (b.tile(j - 1, i), b.tile(j, i)),
                (b.tile(i, j - 1), b.tile(i, j)),
            )
            for a, c in pairs:
                if a is not None and c is not None and a.value == c.value:
                    return True
    return False


def at_least_one_move_exists(b: Board) -> bool:
    """有空格，或者有可合并的相邻方块。"""
    return empty_space_exists(b) or adjacent_equal_pair_exists(b)


def check_game_over(b: Board) -> bool:
    return max_tile_exists(b) or not at_least_one_move_exists(b)


class Model:
    """
    一局 2048 的状态：棋盘、分数、最高分、是否结束。

    on_change 由外部（例如界面）传入，在改变棋盘或分数的操作完成后同步调用，
    不带参数，调用方自行重新读取状态。
    """

    def __init__(self, size: int = SIZE, on_change: Optional[Callable[[], None]] = None) -> None:
        self.board = Board(size)
        self._score = 0
        self._max_score = 0
        self._game_over = False
        self.on_change = on_change

    @classmethod
    def from_values(
        cls,
        values: Values,
        score: int = 0,
        max_score: int = 0,
        game_over: bool = False,
        on_change: Optional[Callable[[], None]] = None,
    ) -> "Model":
        """
        从二维数字列表建立棋盘，0 表示空格。
        values[0] 是显示时最上面的一行，即 values[r][c] 位于第 c 列、第 size-1-r 行。
        """
        size = len(values)
        if size == 0 or any(len(line) != size for line in values):
            raise ValueError("棋盘必须是非空的正方形")
        model = cls(size, on_change=on_change)
        for r, line in enumerate(values):
            for c, value in enumerate(line):
                if value:
                    model.board.add_tile(Tile.create(value, c, size - 1 - r))
        model._score = score
        model._max_score = max_score
        model._game_over = game_over
        return model

    def values(self) -> Values:
        """导出为二维数字列表，格式同 from_values。"""
        size = self.size()
        return [
            [t.value if t is not None else 0 for t in (self.tile(c, row) for c in range(size))]
            for row in reversed(range(size))
        ]

    def tile(self, col: int, row: int) -> Optional[Tile]:
        return self.board.tile(col, row)

    def size(self) -> int:
        return self.board.size()

    def score(self) -> int:
        return self._score

    def max_score(self) -> int:
        """最高分，只在游戏结束时更新。"""
        return self._max_score

    def max_tile(self) -> int:
        return max((t.value for t in self.board.tiles()), default=0)

    def game_over(self) -> bool:
        """游戏是否结束（无法移动，或已出现 MAX_PIECE）。"""
        self._check_game_over()
        return self._game_over

    def clear(self) -> None:
        """清空棋盘和分数，保留最高分。"""
        # 刚结束的一局要先计入最高分
        self._check_game_over()
        self._score = 0
        self._game_over = False
        self.board.clear()
        self._notify()

    def add_tile(self, tile: Tile) -> None:
        """放入一个新方块，该位置必须为空。"""
        self.board.add_tile(tile)
        self._check_game_over()
        self._notify()

    def tilt(self, side: Side) -> bool:
        """
        向 side 方向倾斜棋盘，返回棋盘是否发生变化。

        1. 运动方向上相邻且相等的两个方块合并为一个两倍的方块，新值计入分数。
        2. 合并出来的方块在本次倾斜中不会再次合并。
        3. 三个相等方块相邻时，靠前的两个合并，最后一个不合并。
        """
        if not isinstance(side, Side):
            raise TypeError(f"side 必须是 Side，得到 {side!r}")

        # 在副本上操作，完成后再替换，中途出错不会留下半成品
        board = self.board.copy()
        changed = False
        gain = 0
        size = board.size()

        with board.viewed_from(side):
            for col in range(size):
                # 下一个可以放置（或合并）的行，从最上面开始
                target = size - 1
                for row in range(size - 1, -1, -1):
                    cur = board.tile(col, row)
                    if cur is None or row == target:
                        continue
                    anchor = board.tile(col, target)
                    if anchor is None:
                        board.move(col, target, cur)
                        changed = True
                    elif anchor.value == cur.value and not anchor.merged:
                        merged = cur.doubled()
                        board.move(col, target, merged)
                        gain += merged.value
                        target -= 1
                        changed = True
                    else:
                        target -= 1
                        if target != row:
                            board.move(col, target, cur)
                            changed = True

        board.settle()
        self.board = board
        self._score += gain
        self._check_game_over()
        logger.debug("tilt %s: changed=%s gain=%d score=%d", side.name, changed, gain, self._score)
        if changed:
            self._notify()
        return changed

    def _check_game_over(self) -> None:
        if not self._game_over and check_game_over(self.board):
            self._game_over = True
            logger.debug("game over: score=%d max_tile=%d", self._score, self.max_tile())
        if self._game_over:
            self._max_score = max(self._score, self._max_score)

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change()

    def __str__(self) -> str:
        """调试用的文本形式。"""
        size = self.size()
        lines = ["", "["]
        for row in range(size - 1, -1, -1):
            cells = []
            for col in range(size):
                t = self.tile(col, row)
                cells.append("|    " if t is None else f"|{t.value:4d}")
            lines.append("".join(cells) + "|")
        over = "over" if self.game_over() else "not over"
        lines.append(f"] {self.score()} (max: {self.max_score()}) (game is {over}) ")
        return "\n".join(lines) + "\n"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Model):
            return NotImplemented
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(str(self))
