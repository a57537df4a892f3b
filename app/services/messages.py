"""User-facing player messages.

The player session is the only component that turns error types and denial
reasons into text. Unknown locales fall back to English.
"""

from enum import Enum
from typing import Dict

from app.models.access import DenialReason

DEFAULT_LOCALE = "en"


class PlayerErrorType(str, Enum):
    """Error classes a player session can end up in."""

    NOT_FOUND = "NOT_FOUND"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    PLAYBACK_ERROR = "PLAYBACK_ERROR"
    INVALID_URL = "INVALID_URL"
    UNKNOWN = "UNKNOWN"


ERROR_MESSAGES: Dict[str, Dict[PlayerErrorType, str]] = {
    "en": {
        PlayerErrorType.NOT_FOUND: "The video was not found or you do not have access to it.",
        PlayerErrorType.NETWORK_ERROR: "A connection error occurred. Please try again.",
        PlayerErrorType.TIMEOUT: "The video could not be loaded. Check your internet connection.",
        PlayerErrorType.PLAYBACK_ERROR: "The video could not be played. Please try again.",
        PlayerErrorType.INVALID_URL: "Invalid video address.",
        PlayerErrorType.UNKNOWN: "An unexpected error occurred. Please try again later.",
    },
    "pl": {
        PlayerErrorType.NOT_FOUND: (
            "Nagranie nie zostało znalezione lub nie masz do niego dostępu."
        ),
        PlayerErrorType.NETWORK_ERROR: "Wystąpił błąd połączenia. Spróbuj ponownie.",
        PlayerErrorType.TIMEOUT: (
            "Nie udało się załadować nagrania. Sprawdź połączenie internetowe."
        ),
        PlayerErrorType.PLAYBACK_ERROR: "Nie udało się odtworzyć wideo. Spróbuj ponownie.",
        PlayerErrorType.INVALID_URL: "Nieprawidłowy adres nagrania.",
        PlayerErrorType.UNKNOWN: "Wystąpił nieoczekiwany błąd. Spróbuj ponownie później.",
    },
}

DENIAL_MESSAGES: Dict[str, Dict[DenialReason, str]] = {
    "en": {
        DenialReason.PREMIUM_REQUIRED: "This content is available to premium users only.",
        DenialReason.ARCHIVED: "This video has been archived and is no longer available.",
        DenialReason.NOT_PUBLISHED: "This video has not been published yet.",
    },
    "pl": {
        DenialReason.PREMIUM_REQUIRED: "Ta treść jest dostępna tylko dla użytkowników premium.",
        DenialReason.ARCHIVED: "To nagranie zostało zarchiwizowane i nie jest już dostępne.",
        DenialReason.NOT_PUBLISHED: "To nagranie nie jest jeszcze opublikowane.",
    },
}


def _table(tables: Dict[str, Dict], locale: str) -> Dict:
    return tables.get(locale) or tables[DEFAULT_LOCALE]


def error_message(error_type: PlayerErrorType, locale: str = DEFAULT_LOCALE) -> str:
    return _table(ERROR_MESSAGES, locale)[error_type]


def denial_message(reason: DenialReason, locale: str = DEFAULT_LOCALE) -> str:
    return _table(DENIAL_MESSAGES, locale)[reason]
