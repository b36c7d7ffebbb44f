"""Drawing of a production line onto an abstract 2D context.

The renderer only supplies quantities to draw (positions, radii, text and
colors). Any surface implementing ``DrawingContext`` can display a line;
``SvgCanvas`` renders to an SVG document for snapshots.
"""

from typing import List, Optional, Protocol, Sequence, Tuple
from xml.sax.saxutils import escape

from line_twin.buffer import Buffer
from line_twin.line import Line
from line_twin.models import StationState
from line_twin.station import Station

Color = Tuple[int, int, int]

STATE_COLORS = {
    StationState.WAITING: (0, 0, 200),
    StationState.BUSY: (0, 200, 0),
    StationState.REPAIR: (200, 0, 0),
}

BACKGROUND = (51, 51, 51)
CONNECTION_COLOR = (192, 192, 192)
LINK_COLOR = (51, 51, 51)
BUFFER_FILL = (0, 91, 127)
BUFFER_OUTLINE = (102, 102, 102)
FULL_OUTLINE = (255, 0, 0)
TEXT_COLOR = (255, 255, 255)
HISTORY_COLOR = (172, 211, 115)
MESSAGE_COLOR = (236, 0, 140)

CHAR_WIDTH = 7.0
TEXT_SIZE = 14.0


class DrawingContext(Protocol):
    """Primitives a drawing surface must provide."""

    width: float
    height: float

    def line(self, x1: float, y1: float, x2: float, y2: float, stroke: Color) -> None:
        ...

    def circle(
        self, x: float, y: float, r: float, fill: Optional[Color], stroke: Optional[Color]
    ) -> None:
        ...

    def rect(
        self,
        x: float,
        y: float,
        w: float,
        h: float,
        fill: Optional[Color],
        stroke: Optional[Color],
    ) -> None:
        ...

    def text(self, s: str, x: float, y: float, fill: Color, anchor: str = "middle") -> None:
        ...

    def polyline(self, points: Sequence[Tuple[float, float]], stroke: Color) -> None:
        ...


class LineRenderer:
    """Draws a line: frame, history, connections, stations, buffers, status."""

    def __init__(self, margin: float = 40.0, history_scale: float = 0.05):
        self.margin = margin
        self.history_scale = history_scale

    def draw(self, line: Line, ctx: DrawingContext, messages: Sequence[str] = ()) -> None:
        ctx.rect(0, 0, ctx.width, ctx.height, fill=BACKGROUND, stroke=None)

        # Frame and title
        xmin, xmax = line.in_buf.x, line.out_buf.x
        ctx.rect(xmin, self.margin, xmax - xmin, ctx.height - 2 * self.margin, (0, 0, 0), TEXT_COLOR)
        ctx.text(line.name, ctx.width / 2, self.margin, (200, 200, 50))

        self._draw_history(line, ctx)

        # Connections first so they appear behind stations and buffers
        stations = line.render_order()
        for station in stations:
            self._draw_connections(station, ctx)

        drawn: List[Buffer] = []
        for station in stations:
            self.draw_station(station, ctx)
            for buf in (station.in_buf, station.out_buf):
                if buf not in drawn:
                    self.draw_buffer(buf, ctx)
                    drawn.append(buf)

        self._draw_legend(ctx)
        self._draw_status(line, ctx)

        y = ctx.height - 24
        for message in messages:
            ctx.text(message, ctx.width / 2, y, MESSAGE_COLOR)
            y += TEXT_SIZE

    def _draw_history(self, line: Line, ctx: DrawingContext) -> None:
        if len(line.history) < 2:
            return
        base = ctx.height - 50
        points = [
            (self.margin + i, base - self.history_scale * q)
            for i, q in enumerate(line.history)
        ]
        ctx.polyline(points, HISTORY_COLOR)

    def _draw_connections(self, station: Station, ctx: DrawingContext) -> None:
        ctx.line(station.cfg.x, station.cfg.y, station.in_buf.x, station.in_buf.y, CONNECTION_COLOR)
        ctx.line(station.cfg.x, station.cfg.y, station.out_buf.x, station.out_buf.y, CONNECTION_COLOR)
        for nxt in station.next_stations:
            ctx.line(station.cfg.x, station.cfg.y, nxt.cfg.x, nxt.cfg.y, LINK_COLOR)

    def draw_station(self, station: Station, ctx: DrawingContext) -> None:
        """Labelled box with a state indicator in its upper-right corner."""
        w = 1.5 * CHAR_WIDTH * len(station.name)
        h = 2.0 * TEXT_SIZE
        x, y = station.cfg.x, station.cfg.y
        ctx.rect(x - w / 2, y - h / 2, w, h, fill=(102, 102, 102), stroke=TEXT_COLOR)
        ctx.text(station.name, x, y, TEXT_COLOR)
        ctx.circle(x + w / 2 - 6, y - h / 2 + 6, 3, fill=STATE_COLORS[station.state], stroke=None)

    def draw_buffer(self, buf: Buffer, ctx: DrawingContext) -> None:
        """Capacity circle with an occupancy circle drawn on top."""
        ctx.circle(buf.x, buf.y, buf.capacity_radius(), fill=(0, 0, 0), stroke=BUFFER_OUTLINE)
        outline = FULL_OUTLINE if buf.is_full() else TEXT_COLOR
        ctx.circle(buf.x, buf.y, buf.display_radius(), fill=BUFFER_FILL, stroke=outline)
        ctx.text(buf.name, buf.x, buf.y, TEXT_COLOR)

    def _draw_legend(self, ctx: DrawingContext) -> None:
        x, y = 40.0, 55.0
        ctx.rect(30, 45, 80, 60, fill=(204, 204, 204), stroke=BUFFER_OUTLINE)
        for state, color in STATE_COLORS.items():
            ctx.circle(x, y, 3, fill=color, stroke=TEXT_COLOR)
            ctx.text(state.value.title(), x + 10, y, (0, 0, 0), anchor="start")
            y += 20

    def _draw_status(self, line: Line, ctx: DrawingContext) -> None:
        ctx.rect(0, 0, ctx.width, 25, fill=BACKGROUND, stroke=None)
        status = [
            (f"Time step: {line.time_step:05d}", 6),
            (f"Input: {len(line.in_buf):03d}", 110),
            (f"Output: {len(line.out_buf):03d}", 175),
            (f"Productivity: {int(line.productivity)} units/min", 250),
        ]
        for s, x in status:
            ctx.text(s, x, 16, TEXT_COLOR, anchor="start")


def _rgb(color: Optional[Color]) -> str:
    if color is None:
        return "none"
    return "rgb({},{},{})".format(*color)


class SvgCanvas:
    """DrawingContext that accumulates SVG elements."""

    def __init__(self, width: float = 575, height: float = 350):
        self.width = width
        self.height = height
        self.elements: List[str] = []

    def line(self, x1, y1, x2, y2, stroke):
        self.elements.append(
            f'<line x1="{x1:.1f}" y1="{y1:.1f}" x2="{x2:.1f}" y2="{y2:.1f}" '
            f'stroke="{_rgb(stroke)}" />'
        )

    def circle(self, x, y, r, fill, stroke):
        self.elements.append(
            f'<circle cx="{x:.1f}" cy="{y:.1f}" r="{r:.2f}" '
            f'fill="{_rgb(fill)}" stroke="{_rgb(stroke)}" />'
        )

    def rect(self, x, y, w, h, fill, stroke):
        self.elements.append(
            f'<rect x="{x:.1f}" y="{y:.1f}" width="{w:.1f}" height="{h:.1f}" '
            f'fill="{_rgb(fill)}" stroke="{_rgb(stroke)}" />'
        )

    def text(self, s, x, y, fill, anchor="middle"):
        self.elements.append(
            f'<text x="{x:.1f}" y="{y:.1f}" fill="{_rgb(fill)}" '
            f'text-anchor="{anchor}" dominant-baseline="middle" '
            f'font-size="{TEXT_SIZE:g}">{escape(s)}</text>'
        )

    def polyline(self, points, stroke):
        coords = " ".join(f"{x:.1f},{y:.1f}" for x, y in points)
        self.elements.append(
            f'<polyline points="{coords}" fill="none" stroke="{_rgb(stroke)}" />'
        )

    def to_svg(self) -> str:
        body = "\n  ".join(self.elements)
        return (
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{self.width:g}" '
            f'height="{self.height:g}" font-family="Calibri, sans-serif">\n  {body}\n</svg>\n'
        )
