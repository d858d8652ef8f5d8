"""Registration card numbers."""

import re

CARD_NUMBER_PATTERN = re.compile(r"^REG-[^-]{1,4}-[^-]{1,4}-\d{4}$")


def generate_card_number(user_id: str, semester_id: str, epoch_ms: int) -> str:
    """Build a card number ``REG-<user4>-<semester4>-<ms4>``.

    Args:
        user_id: The student's ID; its first 4 characters are used.
        semester_id: The semester's ID; its first 4 characters are used.
        epoch_ms: Milliseconds since the epoch; its last 4 digits are used.

    Returns:
        The card number, e.g. "REG-1a2b-9f8e-0421".
    """
    suffix = str(epoch_ms % 10_000).zfill(4)
    return f"REG-{user_id[:4]}-{semester_id[:4]}-{suffix}"
