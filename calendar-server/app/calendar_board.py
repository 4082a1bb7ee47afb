"""
Two-month calendar page for a 3-color e-paper display.
Draws the current and next month, a large date caption and an optional
day counter onto an 800x480 RGB page.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import MAXYEAR, date, datetime
from typing import Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from calendar_config import RenderConfig
from calendar_model import (
    SUNDAY,
    AnniversaryRule,
    AnniversarySet,
    DayOffRule,
    HolidayCalendar,
    MonthView,
    build_month_view,
    elapsed_days,
    next_month,
)

logger = logging.getLogger(__name__)

SMALL_FONT_SIZE = 22
LARGE_FONT_SIZE = 72

ROW_SPACE = 2

Color = Tuple[int, int, int]

DEFAULT_WEEK_LABELS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
# Indexed by datetime.weekday()
JAPANESE_WEEKDAY_GLYPHS = ("月", "火", "水", "木", "金", "土", "日")


@dataclass(frozen=True)
class CalendarTheme:
    week_labels: Sequence[str] = DEFAULT_WEEK_LABELS
    weekday_glyphs: Sequence[str] = JAPANESE_WEEKDAY_GLYPHS
    first_weekday: int = SUNDAY
    background: Color = (255, 255, 255)
    text: Color = (0, 0, 0)
    accent: Color = (255, 0, 0)


DEFAULT_THEME = CalendarTheme()


def _load_font(path: Optional[str], size: int) -> ImageFont.FreeTypeFont:
    return ImageFont.truetype(path, size)


def load_faces(path: Optional[str], sizes=(SMALL_FONT_SIZE, LARGE_FONT_SIZE)):
    """One face per size; any failure falls back to Pillow's built-in font for all of them."""
    try:
        if not path:
            raise OSError("no font configured")
        return tuple(_load_font(path, size) for size in sizes)
    except (OSError, ValueError) as exc:
        logger.warning("Font %r unavailable (%s), using built-in font", path, exc)
        fallback = ImageFont.load_default()
        return tuple(fallback for _ in sizes)


def _draw_string(draw: ImageDraw.ImageDraw, xy, text: str, font, fill):
    # xy is the left end of the baseline
    x, y = xy
    if isinstance(font, ImageFont.FreeTypeFont):
        draw.text((x, y), text, fill=fill, font=font, anchor="ls")
    else:
        draw.text((x, y - font.getbbox(text)[3]), text, fill=fill, font=font)


def _text_width(draw: ImageDraw.ImageDraw, text: str, font) -> float:
    return draw.textlength(text, font=font)


class CalendarBoard:
    def __init__(self, config: RenderConfig, holidays: Optional[DayOffRule] = None,
                 theme: CalendarTheme = DEFAULT_THEME, faces=None):
        self.config = config
        self.width = int(config.width)
        self.height = int(config.height)
        self.theme = theme
        self.day_off: DayOffRule = holidays if holidays is not None else HolidayCalendar()
        self.anniversaries: Optional[AnniversaryRule] = AnniversarySet(config.anniversary)
        if faces is None:
            faces = load_faces(config.font)
        self.small_font, self.large_font = faces

    # -------- Drawing --------
    def draw_month(self, draw: ImageDraw.ImageDraw, view: MonthView, box: Tuple[int, int, int, int],
                   anniversary: Optional[AnniversaryRule] = None, label: bool = True):
        x, y, w, h = box
        theme = self.theme
        colsize = w // len(theme.week_labels)
        rowsize = (h - ROW_SPACE) // 7

        if label:
            for i, text in enumerate(theme.week_labels):
                color = theme.accent if i == 0 else theme.text
                _draw_string(draw, (x + i * colsize, y + rowsize - 4), text, self.small_font, color)
            y += rowsize + ROW_SPACE

        for index, cell in enumerate(view.cells):
            cx = x + cell.column * colsize
            cy = y + cell.row * rowsize
            color = theme.accent if self.day_off.is_day_off(cell.day) else theme.text
            if index == view.selected_index:
                draw.rectangle((cx + 3, cy + 1, cx + colsize - 2, cy + rowsize - 2), fill=theme.text)
                color = theme.background
            _draw_string(draw, (cx, cy + rowsize - 5), f" {cell.day.day:2d}", self.small_font, color)
            if anniversary is not None and anniversary.is_anniversary(cell.day):
                line_y = cy + rowsize - 4
                draw.line((cx + 8, line_y, cx + colsize - 4, line_y), fill=theme.text, width=1)

    def _draw_title(self, draw: ImageDraw.ImageDraw, xy, year: int, month: int):
        _draw_string(draw, xy, f"{year:4d}-{month:02d}", self.small_font, self.theme.text)

    def _draw_caption(self, draw: ImageDraw.ImageDraw, xy, selected: date):
        theme = self.theme
        px, py = xy
        text = f"{selected.month:2d}月{selected.day:2d}日("
        _draw_string(draw, (px, py), text, self.large_font, theme.text)
        px += _text_width(draw, text, self.large_font)

        weekday = selected.weekday()
        glyph = theme.weekday_glyphs[weekday]
        _draw_string(draw, (px, py), glyph, self.large_font, theme.accent if weekday == SUNDAY else theme.text)
        px += _text_width(draw, glyph, self.large_font)

        _draw_string(draw, (px, py), ")", self.large_font, theme.text)

    def _draw_day_count(self, draw: ImageDraw.ImageDraw, selected: datetime):
        since = self.config.day_count_since
        since_date = since.to_date() if since is not None else None
        if since_date is None:
            return
        days = elapsed_days(selected, since_date)
        _draw_string(draw, (40, 400), f"{days:5d}日", self.large_font, self.theme.text)
        _draw_string(draw, (160, 425), f"since {since_date:%Y-%m-%d}", self.small_font, self.theme.text)

    def month_views(self, selected: date) -> Tuple[MonthView, Optional[MonthView]]:
        first_weekday = self.theme.first_weekday
        current = build_month_view(selected.year, selected.month, selected, first_weekday)
        ny, nm = next_month(selected.year, selected.month)
        if ny > MAXYEAR:
            return current, None
        return current, build_month_view(ny, nm, selected, first_weekday)

    def generate_image(self, selected: datetime) -> Image.Image:
        base = Image.new("RGB", (self.width, self.height), self.theme.background)
        draw = ImageDraw.Draw(base)

        current, following = self.month_views(selected)

        self._draw_title(draw, (600, 40), current.first_day.year, current.first_day.month)
        self.draw_month(draw, current, (500, 40, 280, 200), self.anniversaries, label=True)

        if following is not None:
            self._draw_title(draw, (600, 270), following.first_day.year, following.first_day.month)
            self.draw_month(draw, following, (500, 270, 280, 200), self.anniversaries, label=False)

        self._draw_caption(draw, (40, 260), selected)
        self._draw_day_count(draw, selected)
        return base
