"""
Drag-and-drop reordering as a pure function of the current board.

``apply_move`` never mutates its input. It returns the new task tuple plus the
patches a client has to send to make the server agree.

Only the destination column is renumbered by default. On a cross-column move
the source column keeps its old numbers and so may be left with a gap; pass
``renumber_source=True`` to close it as part of the same move.
"""
from collections.abc import Iterable
from dataclasses import dataclass

from taskboard.client.models import BoardTask
from taskboard.core.categories import Category


class InvalidMoveError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class Move:
    source_category: Category
    source_index: int
    dest_category: Category
    dest_index: int

    def __post_init__(self):
        # Drag sources hand over plain column ids such as "To-Do".
        for name in ("source_category", "dest_category"):
            value = getattr(self, name)
            try:
                object.__setattr__(self, name, Category(value))
            except ValueError as e:
                raise InvalidMoveError(f"Unknown category: {value!r}") from e

    @property
    def crosses_columns(self) -> bool:
        return self.source_category != self.dest_category


@dataclass(frozen=True, slots=True)
class OrderPatch:
    task_id: str
    order: int
    category: Category | None = None  # set only when the task changed column

    def as_update(self) -> dict:
        fields: dict = {"order": self.order}
        if self.category is not None:
            fields["category"] = self.category.value
        return fields


@dataclass(frozen=True, slots=True)
class MoveResult:
    tasks: tuple[BoardTask, ...]
    patches: tuple[OrderPatch, ...]
    moved: BoardTask


def column(tasks: Iterable[BoardTask], category: Category) -> list[BoardTask]:
    """Tasks of one category in display order (stable on equal orders)."""
    return sorted((t for t in tasks if t.category == category), key=lambda t: t.order)


def _renumber(
    view: list[BoardTask], moved_id: str, moved_category: Category | None
) -> tuple[list[BoardTask], list[OrderPatch]]:
    renumbered: list[BoardTask] = []
    patches: list[OrderPatch] = []
    for index, task in enumerate(view):
        category = moved_category if task.id == moved_id else None
        if task.order != index or category is not None:
            task = task.model_copy(update={"order": index})
            patches.append(OrderPatch(task.id, index, category))
        renumbered.append(task)
    return renumbered, patches


def apply_move(
    tasks: Iterable[BoardTask], move: Move, *, renumber_source: bool = False
) -> MoveResult:
    tasks = tuple(tasks)

    source_view = column(tasks, move.source_category)
    if not 0 <= move.source_index < len(source_view):
        raise InvalidMoveError(
            f"No task at index {move.source_index} in {move.source_category.value!r}"
        )
    moved = source_view.pop(move.source_index)

    if move.crosses_columns:
        moved = moved.model_copy(update={"category": move.dest_category})
        dest_view = column(tasks, move.dest_category)
    else:
        dest_view = source_view

    dest_index = max(0, min(move.dest_index, len(dest_view)))
    dest_view.insert(dest_index, moved)

    changed_category = move.dest_category if move.crosses_columns else None
    dest_view, patches = _renumber(dest_view, moved.id, changed_category)

    replaced = {t.id: t for t in dest_view}
    if renumber_source and move.crosses_columns:
        source_view, source_patches = _renumber(source_view, moved.id, None)
        replaced.update((t.id, t) for t in source_view)
        patches.extend(source_patches)

    return MoveResult(
        tasks=tuple(replaced.get(t.id, t) for t in tasks),
        patches=tuple(patches),
        moved=replaced[moved.id],
    )
