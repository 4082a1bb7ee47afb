"""
Configuration, holiday file and request path handling for the calendar server.
Everything here is read fresh per render; nothing is cached.
"""
from __future__ import annotations

import logging
import os
import posixpath
import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

import arrow
import yaml
from tzlocal import get_localzone

from calendar_model import HolidayCalendar, LabeledDate, parse_date_entry

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"
DEFAULT_KIND = "default"

DEFAULT_WIDTH = 800
DEFAULT_HEIGHT = 480

_POSIX_OFFSET_RE = re.compile(r"([+-])(\d{1,2})(?::(\d{1,2}))?(?::(\d{1,2}))?$")


@dataclass(frozen=True)
class RenderConfig:
    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    font: Optional[str] = None
    holiday: Optional[str] = None
    anniversary: Tuple[LabeledDate, ...] = field(default_factory=tuple)
    day_count_since: Optional[LabeledDate] = None


def _parse_entry(value) -> Optional[LabeledDate]:
    if isinstance(value, dict):
        text = str(value.get("date", ""))
        label = value.get("label")
        if label:
            text = f"{text},{label}"
        return parse_date_entry(text)
    if value is None:
        return None
    return parse_date_entry(str(value))


def _entry_overrides(raw: Dict) -> Dict:
    """Fields explicitly set in one config entry, converted to RenderConfig types."""
    overrides: Dict = {}
    for key in ("width", "height"):
        if raw.get(key):
            try:
                overrides[key] = int(raw[key])
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid %s=%r", key, raw[key])
    for key in ("font", "holiday"):
        if raw.get(key):
            overrides[key] = str(raw[key])

    if raw.get("anniversary") is not None:
        items = raw.get("anniversary") or []
        if not isinstance(items, (list, tuple)):
            items = [items]
        entries: List[LabeledDate] = []
        for item in items:
            entry = _parse_entry(item)
            if entry is None:
                logger.warning("Skipping invalid anniversary entry %r", item)
                continue
            entries.append(entry)
        overrides["anniversary"] = tuple(entries)

    if raw.get("day_count_since"):
        since = _parse_entry(raw["day_count_since"])
        if since is None or since.to_date() is None:
            logger.warning("Skipping invalid day_count_since %r", raw["day_count_since"])
        else:
            overrides["day_count_since"] = since
    return overrides


def load_config_map(path: Optional[str] = None) -> Dict[str, Dict]:
    path = path or os.getenv("CALENDAR_CONFIG", DEFAULT_CONFIG_PATH)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        logger.warning("Config file %s not found, using built-in defaults", path)
        return {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Could not read config %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        if data is not None:
            logger.warning("Config %s is not a mapping of kinds, ignoring it", path)
        return {}
    return {str(k): v for k, v in data.items() if isinstance(v, dict)}


def resolve_config(conf_map: Dict[str, Dict], kind: str = DEFAULT_KIND) -> RenderConfig:
    """Built-in defaults, then the default kind, then ``kind``; field by field."""
    conf = RenderConfig()
    conf = replace(conf, **_entry_overrides(conf_map.get(DEFAULT_KIND) or {}))
    if kind != DEFAULT_KIND:
        if kind not in conf_map:
            logger.info("No config for kind %r, using %r", kind, DEFAULT_KIND)
        conf = replace(conf, **_entry_overrides(conf_map.get(kind) or {}))
    return conf


def load_render_config(kind: str = DEFAULT_KIND, path: Optional[str] = None) -> RenderConfig:
    return resolve_config(load_config_map(path), kind)


def load_holidays(path: Optional[str]) -> HolidayCalendar:
    """Read ``date,label`` lines; lines that do not parse are skipped."""
    if not path:
        return HolidayCalendar()
    entries: List[LabeledDate] = []
    try:
        with open(path, encoding="utf-8") as f:
            for line in f:
                entry = parse_date_entry(line.strip())
                if entry is not None:
                    entries.append(entry)
    except OSError as exc:
        logger.warning("Could not read holiday file %s: %s", path, exc)
        return HolidayCalendar()
    return HolidayCalendar.from_entries(entries)


# -------- Time zone --------
def posix_tz_offset(value: Optional[str]) -> Optional[timezone]:
    """Fixed zone from a POSIX TZ offset suffix such as ``JST-9`` or ``UTC+5:30``."""
    if not value:
        return None
    m = _POSIX_OFFSET_RE.search(value)
    if not m:
        return None
    sign = 1 if m.group(1) == "-" else -1
    hours, minutes, seconds = (int(g) if g else 0 for g in m.group(2, 3, 4))
    if minutes >= 60 or seconds >= 60 or hours >= 24:
        return None
    offset = timedelta(hours=hours, minutes=minutes, seconds=seconds)
    return timezone(sign * offset, value)


def _get_system_tz():
    try:
        return get_localzone()
    except Exception:
        return None


def local_tz():
    fixed = posix_tz_offset(os.getenv("TZ"))
    if fixed is not None:
        return fixed
    return _get_system_tz()


def now(tzinfo=None) -> arrow.Arrow:
    tzinfo = tzinfo if tzinfo is not None else local_tz()
    if tzinfo is None:
        return arrow.now()
    return arrow.now(tzinfo)


def seconds_until_midnight(at: datetime) -> int:
    return 86400 - (at.hour * 3600 + at.minute * 60 + at.second)


# -------- Request path --------
def parse_path(path: str, tzinfo=None) -> Tuple[str, arrow.Arrow, str]:
    """Split ``<kind>/<YYYY-MM-DD>.<ext>`` into (kind, selected, ext)."""
    path = (path or "").replace("\\", "/")
    name = posixpath.basename(path)
    stem, ext = posixpath.splitext(name)
    current = now(tzinfo)
    try:
        selected = arrow.get(stem, "YYYY-MM-DD", tzinfo=current.tzinfo)
    except (arrow.parser.ParserError, ValueError, TypeError):
        selected = current
    kind = posixpath.basename(posixpath.dirname(path))
    if kind in ("", ".", "/"):
        kind = DEFAULT_KIND
    return kind, selected, ext.lower()
