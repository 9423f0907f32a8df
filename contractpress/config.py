from __future__ import annotations

from pathlib import Path
import json


BASE_DIR = Path(__file__).resolve().parents[1]
OUT_DIR = BASE_DIR / "out"
DB_PATH = OUT_DIR / "contracts.db"
STYLE_DEFAULTS_PATH = BASE_DIR / "assets" / "styles" / "typography.json"

# A4 at 96 DPI
PAGE_WIDTH_PX = 794
PAGE_HEIGHT_PX = 1123
PAGE_MARGIN_PX = 60
PX_PER_INCH = 96.0

OVERSAMPLING = 2.0
PREVIEW_ZOOM = 1.0

CURRENCY_SYMBOL = "Rs."
DEFAULT_TITLE = "SERVICE AGREEMENT"
DEFAULT_SUBTITLE = "PROFESSIONAL SERVICE CONTRACT"
SCHEDULE_TOLERANCE = 0.01

REPAGINATE_DEBOUNCE_SECONDS = 0.3

SECTION_IDS = [
    "header",
    "introduction",
    "parties",
    "scope",
    "payment",
    "timeline",
    "sla",
    "ip",
    "nda",
    "termination",
    "signatures",
]


def load_style_defaults() -> dict:
    with STYLE_DEFAULTS_PATH.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def set_out_dir(path: Path) -> None:
    global OUT_DIR, DB_PATH
    OUT_DIR = path
    DB_PATH = OUT_DIR / "contracts.db"
