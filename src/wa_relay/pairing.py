"""
Pairing identifier handling.

Pairing links a new session to an existing WhatsApp account by phone
number. The number is normalized to international digits-only form and
must start with a known country calling code before a pairing code is
requested.
"""

import re
from typing import Iterable, Optional

from wa_relay.errors import InvalidIdentifierError

DEFAULT_COUNTRY_PREFIX = "62"

# ITU-T E.164 country calling codes.
COUNTRY_CALLING_CODES: frozenset[str] = frozenset({
    "1", "7", "20", "27", "30", "31", "32", "33", "34", "36", "39", "40", "41",
    "43", "44", "45", "46", "47", "48", "49", "51", "52", "53", "54", "55", "56",
    "57", "58", "60", "61", "62", "63", "64", "65", "66", "81", "82", "84", "86",
    "90", "91", "92", "93", "94", "95", "98",
    "211", "212", "213", "216", "218", "220", "221", "222", "223", "224", "225",
    "226", "227", "228", "229", "230", "231", "232", "233", "234", "235", "236",
    "237", "238", "239", "240", "241", "242", "243", "244", "245", "246", "248",
    "249", "250", "251", "252", "253", "254", "255", "256", "257", "258", "260",
    "261", "262", "263", "264", "265", "266", "267", "268", "269", "290", "291",
    "297", "298", "299",
    "350", "351", "352", "353", "354", "355", "356", "357", "358", "359", "370",
    "371", "372", "373", "374", "375", "376", "377", "378", "379", "380", "381",
    "382", "383", "385", "386", "387", "389",
    "420", "421", "423",
    "500", "501", "502", "503", "504", "505", "506", "507", "508", "509", "590",
    "591", "592", "593", "594", "595", "596", "597", "598", "599",
    "670", "672", "673", "674", "675", "676", "677", "678", "679", "680", "681",
    "682", "683", "685", "686", "687", "688", "689", "690", "691", "692",
    "850", "852", "853", "855", "856", "880", "886",
    "960", "961", "962", "963", "964", "965", "966", "967", "968", "970", "971",
    "972", "973", "974", "975", "976", "977", "992", "993", "994", "995", "996",
    "998",
})

_NON_DIGITS = re.compile(r"[^0-9]")


def normalize_identifier(raw: str, country_prefix: str = DEFAULT_COUNTRY_PREFIX) -> str:
    """Turn a local or formatted phone number into international digits.

    A leading ``0`` (trunk prefix) is replaced with ``country_prefix`` before
    non-digit characters are stripped, so ``"0812-3456"`` becomes
    ``"628123456"`` with the default prefix.
    """
    number = raw.strip()
    if number.startswith("0"):
        number = country_prefix + number[1:]
    return _NON_DIGITS.sub("", number)


def validate_identifier(number: str, allowed_prefixes: Iterable[str] = COUNTRY_CALLING_CODES) -> str:
    if not number or not any(number.startswith(prefix) for prefix in allowed_prefixes):
        raise InvalidIdentifierError(f"Invalid phone number: {number or '(empty)'}", details={"number": number})
    return number


def prepare_identifier(
    raw: Optional[str],
    country_prefix: str = DEFAULT_COUNTRY_PREFIX,
    allowed_prefixes: Iterable[str] = COUNTRY_CALLING_CODES,
) -> str:
    """Normalize and validate a pairing identifier supplied by the operator."""
    if raw is None or not raw.strip():
        raise InvalidIdentifierError(
            "A phone number is required for pairing (e.g. --number 628xxxxxxx)",
            code="missing_identifier",
        )
    return validate_identifier(normalize_identifier(raw, country_prefix), allowed_prefixes)


def format_pairing_code(code: str) -> str:
    """``"ABCD1234"`` -> ``"ABCD-1234"``"""
    return "-".join(code[i:i + 4] for i in range(0, len(code), 4))
