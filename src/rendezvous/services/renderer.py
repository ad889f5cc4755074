# rendezvous/services/renderer.py
from collections.abc import Sequence
from dataclasses import dataclass, field

from rendezvous.app.protocols import Renderer
from rendezvous.domain.entities.geography import Coordinate
from rendezvous.domain.state import JoinedStyle


@dataclass(frozen=True)
class DrawCall:
    op: str  # "clear" | "path" | "joined" | "camera"
    points: tuple[Coordinate, ...] = ()
    color: str | None = None
    style: JoinedStyle | None = None


@dataclass
class RecordingRenderer(Renderer):
    """Keeps every renderer call in order; used headless and in tests."""

    calls: list[DrawCall] = field(default_factory=list)

    def clear(self) -> None:
        self.calls.append(DrawCall("clear"))

    def draw_path(self, points: Sequence[Coordinate], color: str) -> None:
        self.calls.append(DrawCall("path", tuple(points), color=color))

    def draw_joined_path(self, points: Sequence[Coordinate], style: JoinedStyle) -> None:
        self.calls.append(DrawCall("joined", tuple(points), style=style))

    def fit_camera(self, points: Sequence[Coordinate]) -> None:
        self.calls.append(DrawCall("camera", tuple(points)))

    def ops(self) -> list[str]:
        return [c.op for c in self.calls]

    def paths(self, color: str | None = None) -> list[DrawCall]:
        return [c for c in self.calls if c.op == "path" and (color is None or c.color == color)]
