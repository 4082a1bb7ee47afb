# -*- coding:utf8 -*-
import argparse
import logging
import os
import sys

import arrow
from flask import Flask, Response, abort, request

from calendar_board import CalendarBoard
from calendar_config import (
    load_holidays,
    load_render_config,
    local_tz,
    now,
    parse_path,
    seconds_until_midnight,
)
from epd_image import encode_image, mimetype_for

logger = logging.getLogger(__name__)

app = Flask(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080


# ------------------------------------------------------------------
# RENDERING
# ------------------------------------------------------------------
def render_calendar(kind, selected, ext, config_path=None) -> bytes:
    """Render one (kind, date) page and return the encoded image bytes."""
    config = load_render_config(kind, config_path)
    holidays = load_holidays(config.holiday)
    board = CalendarBoard(config, holidays)
    image = board.generate_image(arrow.get(selected).datetime)
    return encode_image(image, ext)


def _offset_seconds(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


# ------------------------------------------------------------------
# ROUTES
# ------------------------------------------------------------------
@app.route("/", defaults={"path": ""})
@app.route("/<path:path>")
def calendar_image(path):
    tzinfo = local_tz()
    kind, selected, ext = parse_path(request.path, tzinfo)
    offset = _offset_seconds(request.args.get("offset"))
    if offset:
        selected = selected.shift(seconds=offset)

    try:
        data = render_calendar(kind, selected, ext, app.config.get("CALENDAR_CONFIG"))
    except Exception:
        logger.exception("Rendering %s failed", request.path)
        abort(500)

    response = Response(data, mimetype=mimetype_for(ext))
    response.headers["Content-Length"] = str(len(data))
    response.headers["X-Expire-Sec"] = str(seconds_until_midnight(now(tzinfo)))
    return response


# ------------------------------------------------------------------
# MAIN
# ------------------------------------------------------------------
def write_calendar(output) -> int:
    kind, selected, ext = parse_path(output, local_tz())
    try:
        data = render_calendar(kind, selected, ext)
        with open(output, "wb") as f:
            f.write(data)
    except Exception:
        logger.exception("Writing %s failed", output)
        return 1
    logger.info("Wrote %s (%s, %s)", output, kind, selected.format("YYYY-MM-DD"))
    return 0


def main(argv=None):
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    parser = argparse.ArgumentParser(description="Render the e-paper calendar page.")
    parser.add_argument("output", nargs="?", help="write one image to this path instead of serving HTTP")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    args = parser.parse_args(argv)

    if args.output:
        return write_calendar(args.output)
    app.run(host=args.host, port=args.port, use_reloader=False, threaded=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
