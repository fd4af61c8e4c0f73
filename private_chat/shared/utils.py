"""Shared utility functions."""
import re

PASSWORD_BLACKLIST = {
    "123456",
    "123456789",
    "password",
    "qwerty",
    "111111",
    "12345678",
}

USERNAME_PATTERN = re.compile(r"[A-Za-z0-9_.-]{3,32}")


def is_password_strong(password: str, min_length: int = 8) -> bool:
    """Return True if password meets simple strength requirements."""
    if len(password) < min_length:
        return False
    if password.lower() in PASSWORD_BLACKLIST:
        return False
    if re.fullmatch(r"\d+", password):
        return False
    return True


def is_valid_username(username: str) -> bool:
    """Usernames are 3-32 letters, digits, dots, dashes or underscores."""
    return USERNAME_PATTERN.fullmatch(username) is not None
