from __future__ import annotations

import re
from datetime import date, timedelta

ISO_DATE = re.compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b")
DAY_MONTH_DATE = re.compile(r"\b(\d{1,2})[./](\d{1,2})(?:[./](\d{2,4}))?\b")
HOUR_INPUT = re.compile(r"^(\d{1,2})(?:[:.](\d{2}))?$")


def parse_date_input(text: str, reference_date: date) -> date | None:
    """
    Parse a customer's date reply. Accepts "today", "tomorrow", YYYY-MM-DD and
    day-first DD.MM[.YYYY] / DD/MM[/YYYY]. Returns None when nothing matches.
    """
    normalized = text.lower().strip()

    if "today" in normalized:
        return reference_date

    if "tomorrow" in normalized:
        return reference_date + timedelta(days=1)

    match = ISO_DATE.search(normalized)
    if match:
        try:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        except ValueError:
            return None

    match = DAY_MONTH_DATE.search(normalized)
    if match:
        day = int(match.group(1))
        month = int(match.group(2))
        if match.group(3):
            year = int(match.group(3))
            if year < 100:
                year += 2000
        else:
            year = reference_date.year
            if month < reference_date.month or (month == reference_date.month and day < reference_date.day):
                year += 1
        try:
            return date(year, month, day)
        except ValueError:
            return None

    return None


def parse_hour_input(text: str) -> str | None:
    """
    Normalize an HH:MM-shaped reply to an "HH:00" slot label.
    "14", "14.00", "9:00" are accepted; anything off the hour is rejected.
    """
    match = HOUR_INPUT.match(text.strip())
    if not match:
        return None
    hour = int(match.group(1))
    minutes = match.group(2) or "00"
    if minutes != "00" or not 0 <= hour <= 23:
        return None
    return f"{hour:02d}:00"
