"""Pure helpers for presenting live levels to an observer."""

from typing import Optional

# Display range of the text meter, in dB SPL-like units
DISPLAY_FLOOR_DB = 30.0
DISPLAY_CEILING_DB = 120.0


def threshold_status(rms_db: Optional[float], target_db: Optional[float]) -> Optional[str]:
    """Return "PASS" when the level reaches the target, "FAIL" below it, None without both."""
    if rms_db is None or target_db is None:
        return None
    return "PASS" if rms_db >= target_db else "FAIL"


def format_db_label(db: Optional[float]) -> str:
    """Format decibel text for a readout."""
    if db is None:
        return "--.- dB"
    return f"{db:.1f} dB"


def normalize_db(db: float, floor: float = DISPLAY_FLOOR_DB, ceiling: float = DISPLAY_CEILING_DB) -> float:
    """Map a dB value onto [0.0, 1.0] within the display range."""
    if ceiling <= floor:
        raise ValueError("ceiling must be greater than floor")
    return max(0.0, min(1.0, (db - floor) / (ceiling - floor)))


def level_bar(
    db: Optional[float],
    width: int = 40,
    floor: float = DISPLAY_FLOOR_DB,
    ceiling: float = DISPLAY_CEILING_DB,
    target_db: Optional[float] = None,
) -> str:
    """Render a text level bar, marking the target position with '|'."""
    filled = 0 if db is None else int(round(normalize_db(db, floor, ceiling) * width))
    cells = ["█"] * filled + ["░"] * (width - filled)
    if target_db is not None and width > 0:
        mark = min(width - 1, int(normalize_db(target_db, floor, ceiling) * width))
        cells[mark] = "|"
    return "".join(cells)
