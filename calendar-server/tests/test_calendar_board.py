"""
Tests for the calendar page renderer.

Pixel checks use the layout constants of the page: the current month grid
sits at (500, 40, 280, 200) with a header row, so columns are 40 px wide,
rows 28 px high and the first week row starts at y=70.

Run with:
    pytest calendar-server/tests/test_calendar_board.py -q
"""

from datetime import date, datetime, timedelta, timezone

import pytest
from PIL import Image, ImageDraw

from calendar_board import CalendarBoard, CalendarTheme, load_faces
from calendar_config import RenderConfig
from calendar_model import (
    MONDAY,
    AnniversarySet,
    ExactDate,
    HolidayCalendar,
    LabeledDate,
    MonthlyDate,
    build_month_view,
)

JST = timezone(timedelta(hours=9))
WHITE = (255, 255, 255)
BLACK = (0, 0, 0)


def _cell_origin(column, row):
    return 500 + column * 40, 70 + row * 28


def _reddish(image, box):
    region = image.crop(box)
    return [px for px in region.getdata() if px[0] - px[1] > 60 and px[0] - px[2] > 60]


def _non_white(image, box):
    return [px for px in image.crop(box).getdata() if px != WHITE]


@pytest.fixture
def board_for(faces):
    def _board(config=None, holidays=None, theme=None):
        kwargs = {"faces": faces}
        if theme is not None:
            kwargs["theme"] = theme
        return CalendarBoard(config or RenderConfig(), holidays, **kwargs)

    return _board


def test_load_faces_falls_back_to_builtin_font(tmp_path):
    small, large = load_faces(str(tmp_path / "missing.ttf"))
    assert small is large
    small, large = load_faces(None)
    assert small is large


def test_leap_day_scenario_month_views(board_for):
    current, following = board_for().month_views(date(2024, 2, 29))
    assert (current.first_day, current.day_count, current.selected_index) == (date(2024, 2, 1), 29, 28)
    assert (following.first_day, following.day_count, following.selected_index) == (date(2024, 3, 1), 31, None)


def test_december_advances_to_january(board_for):
    current, following = board_for().month_views(date(2024, 12, 31))
    assert current.first_day == date(2024, 12, 1)
    assert following.first_day == date(2025, 1, 1)


def test_last_supported_month_has_no_following_month(board_for):
    board = board_for()
    current, following = board.month_views(date(9999, 12, 31))
    assert current.first_day == date(9999, 12, 1)
    assert current.selected_index == 30
    assert following is None

    image = board.generate_image(datetime(9999, 12, 31, tzinfo=JST))
    assert image.size == (800, 480)
    assert _non_white(image, (500, 40, 780, 240))
    assert not _non_white(image, (500, 250, 780, 480))


def test_caption_weekday_glyph_is_red_only_on_sunday(board_for):
    theme = CalendarTheme(weekday_glyphs=("M", "T", "W", "R", "F", "S", "U"))
    caption = (40, 150, 480, 280)

    # 2025-01-05 is a Sunday
    sunday = board_for(theme=theme).generate_image(datetime(2025, 1, 5, tzinfo=JST))
    assert _non_white(sunday, caption)
    assert _reddish(sunday, caption)

    monday = board_for(theme=theme).generate_image(datetime(2025, 1, 6, tzinfo=JST))
    assert _non_white(monday, caption)
    assert not _reddish(monday, caption)


def test_any_object_with_is_day_off_drives_accent(board_for):
    class FirstOfMonthOff:
        def is_day_off(self, day):
            return day.day == 1

    image = board_for(holidays=FirstOfMonthOff()).generate_image(datetime(2025, 1, 15, tzinfo=JST))
    # 2025-01-01 (Wednesday) is red, the Saturday 2025-01-04 is not
    x, y = _cell_origin(3, 0)
    assert _reddish(image, (x, y, x + 40, y + 28))
    x, y = _cell_origin(6, 0)
    assert not _reddish(image, (x, y, x + 40, y + 28))


def test_page_size_and_background(board_for):
    image = board_for().generate_image(datetime(2024, 2, 29, tzinfo=JST))
    assert image.mode == "RGB"
    assert image.size == (800, 480)
    assert image.getpixel((5, 5)) == WHITE
    assert image.getpixel((795, 475)) == WHITE


def test_configured_page_size(board_for):
    image = board_for(RenderConfig(width=1000, height=600)).generate_image(datetime(2024, 2, 29, tzinfo=JST))
    assert image.size == (1000, 600)


def test_holiday_renders_in_accent_color(board_for):
    selected = datetime(2025, 1, 15, tzinfo=JST)
    # 2025-01-01 is a Wednesday: column 3, first row
    x, y = _cell_origin(3, 0)
    box = (x, y, x + 40, y + 28)

    plain = board_for().generate_image(selected)
    assert _non_white(plain, box)
    assert not _reddish(plain, box)

    holidays = HolidayCalendar({ExactDate(2025, 1, 1): "元日"})
    marked = board_for(holidays=holidays).generate_image(selected)
    assert _reddish(marked, box)


def test_weekend_renders_in_accent_color(board_for):
    selected = datetime(2025, 1, 15, tzinfo=JST)
    # 2025-01-04 is a Saturday: column 6, first row
    x, y = _cell_origin(6, 0)
    image = board_for().generate_image(selected)
    assert _reddish(image, (x, y, x + 40, y + 28))


def test_selected_day_is_inverted(board_for):
    # 2025-01-15 is a Wednesday in the third row
    image = board_for().generate_image(datetime(2025, 1, 15, tzinfo=JST))
    x, y = _cell_origin(3, 2)
    assert image.getpixel((x + 4, y + 2)) == BLACK
    assert image.getpixel((x + 37, y + 25)) == BLACK
    # Neighbouring unselected cell keeps the background
    x, y = _cell_origin(2, 2)
    assert image.getpixel((x + 4, y + 2)) == WHITE


def test_selected_holiday_box_uses_text_color(board_for):
    holidays = HolidayCalendar({ExactDate(2025, 1, 1): "元日"})
    image = board_for(holidays=holidays).generate_image(datetime(2025, 1, 1, tzinfo=JST))
    x, y = _cell_origin(3, 0)
    assert image.getpixel((x + 4, y + 2)) == BLACK


def test_anniversary_underline(board_for):
    selected = datetime(2025, 1, 15, tzinfo=JST)
    x, y = _cell_origin(3, 0)
    underline = (x + 30, y + 28 - 4)

    plain = board_for().generate_image(selected)
    assert plain.getpixel(underline) == WHITE

    config = RenderConfig(anniversary=(LabeledDate(MonthlyDate(1), "first"),))
    marked = board_for(config).generate_image(selected)
    assert marked.getpixel(underline) == BLACK
    # The next month's first day is underlined too
    following = build_month_view(2025, 2)
    fx = 500 + following.cells[0].column * 40 + 30
    fy = 270 + 28 - 4
    assert marked.getpixel((fx, fy)) == BLACK


def test_day_count_block_only_when_configured(board_for):
    selected = datetime(2025, 1, 15, tzinfo=JST)
    box = (40, 380, 400, 440)

    plain = board_for().generate_image(selected)
    assert not _non_white(plain, box)

    config = RenderConfig(day_count_since=LabeledDate(ExactDate(2020, 1, 1), "since"))
    counted = board_for(config).generate_image(selected)
    assert _non_white(counted, box)


def test_draw_month_header_first_label_in_accent(board_for, faces):
    theme = CalendarTheme(week_labels=("MM", "TT", "WW", "TH", "FF", "SS", "SU"), first_weekday=MONDAY)
    board = board_for(theme=theme)
    image = Image.new("RGB", (280, 200), WHITE)
    draw = ImageDraw.Draw(image)
    view = build_month_view(2025, 3, first_weekday=MONDAY)
    board.draw_month(draw, view, (0, 0, 280, 200), AnniversarySet(), label=True)

    assert _reddish(image, (0, 0, 40, 28))
    assert not _reddish(image, (40, 0, 80, 28))
    # Monday-first: March 1 2025 (Saturday) sits in column 5 and is red
    assert _reddish(image, (200, 30, 240, 58))


def test_draw_month_without_header_starts_at_top(board_for):
    image = Image.new("RGB", (280, 200), WHITE)
    draw = ImageDraw.Draw(image)
    # February 2015 starts on Sunday: day 1 in the top-left cell, in red
    board_for().draw_month(draw, build_month_view(2015, 2), (0, 0, 280, 200), None, label=False)
    assert _reddish(image, (0, 0, 40, 28))
    assert _non_white(image, (40, 0, 80, 28))
    # Only four rows are used; the rest of the reserved grid stays empty
    assert not _non_white(image, (0, 4 * 28, 280, 200))


def test_render_is_deterministic(board_for):
    config = RenderConfig(
        anniversary=(LabeledDate(MonthlyDate(1), "first"),),
        day_count_since=LabeledDate(ExactDate(2020, 1, 1), ""),
    )
    selected = datetime(2024, 2, 29, tzinfo=JST)
    first = board_for(config).generate_image(selected)
    second = board_for(config).generate_image(selected)
    assert first.tobytes() == second.tobytes()
