from __future__ import annotations

import re

CANCEL_PHRASES = (
    "cancel",
    "stop",
    "never mind",
    "nevermind",
    "start over",
    "quit",
)

BOOKING_PHRASES = (
    "book",
    "booking",
    "appointment",
    "reserve",
    "reservation",
    "schedule",
)

COMPLAINT_PHRASES = (
    "complaint",
    "complain",
    "suggestion",
)

APPOINTMENT_WORDS = (
    "appointment",
    "appointments",
    "booking",
    "bookings",
    "reservation",
)

QUERY_PHRASES = (
    "my appointment",
    "my appointments",
    "my booking",
    "my bookings",
    "when is my",
    "when am i",
)

AFFIRMATIVE_WORDS = {
    "yes",
    "y",
    "yep",
    "yeah",
    "sure",
    "ok",
    "okay",
    "confirm",
    "confirmed",
    "book it",
    "yes please",
}

RATING_PATTERN = re.compile(r"(?<!\d)([1-5])(?!\d)")


def normalize_text(text: str) -> str:
    normalized = text.lower()
    normalized = re.sub(r"[^a-z0-9\s]", " ", normalized)
    normalized = re.sub(r"\s+", " ", normalized).strip()
    return normalized


def _contains_phrase(normalized: str, phrases: tuple[str, ...]) -> bool:
    padded = f" {normalized} "
    return any(f" {phrase} " in padded for phrase in phrases)


def is_cancel_request(text: str) -> bool:
    """
    Global override keywords, checked before any state handler.

    The whole message must be a cancel phrase, or start with "cancel", so a name
    like "Stop Smith" or a comment that mentions stopping does not end the dialog.
    """
    words = [word for word in normalize_text(text).split() if word != "please"]
    if not words:
        return False
    return words[0] == "cancel" or " ".join(words) in CANCEL_PHRASES


def is_appointment_cancel_request(text: str) -> bool:
    """A cancel word plus an appointment word, e.g. "cancel my appointment"."""
    normalized = normalize_text(text)
    return _contains_phrase(normalized, ("cancel",)) and _contains_phrase(normalized, APPOINTMENT_WORDS)


def is_complaint_request(text: str) -> bool:
    return _contains_phrase(normalize_text(text), COMPLAINT_PHRASES)


def is_appointment_query(text: str) -> bool:
    return _contains_phrase(normalize_text(text), QUERY_PHRASES)


def is_booking_request(text: str) -> bool:
    normalized = normalize_text(text)
    if is_appointment_query(text):
        return False
    return _contains_phrase(normalized, BOOKING_PHRASES)


def is_affirmative(text: str) -> bool:
    normalized = normalize_text(text)
    return normalized in AFFIRMATIVE_WORDS or normalized.startswith("yes ")


def extract_rating(text: str) -> tuple[int, str] | None:
    """Pull a 1-5 rating out of a feedback reply. The remaining text is the comment."""
    match = RATING_PATTERN.search(text)
    if not match:
        return None
    rating = int(match.group(1))
    comment = (text[: match.start()] + text[match.end() :]).strip(" -:,.\n\t")
    return rating, comment
