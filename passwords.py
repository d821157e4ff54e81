"""Application password policy: generate one, or ask for a valid one."""
import re
import secrets
from getpass import getpass

from ui import ask_until

# No "I", "l", "O", "0" or "1": nothing an operator could misread.
PASSWORD_CHARS = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz23456789"
PASSWORD_LENGTH = 40


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    return "".join(secrets.choice(PASSWORD_CHARS) for _ in range(length))


def _parse_password(allow_blank: bool):
    def _parse(raw: str) -> str:
        answer = raw.strip()
        if not answer:
            if allow_blank:
                return ""
            raise ValueError("The password cannot be blank.")
        if not re.match(r"^\w+$", answer, re.ASCII):
            raise ValueError("Please enter an alphanumeric password.")
        return answer
    return _parse


def get_password(prompt: str, autogenerate: bool = False,
                 allow_blank: bool = False) -> str:
    """Return a generated password, or one the operator types (unechoed)."""
    if autogenerate:
        return generate_password()
    return ask_until(prompt, _parse_password(allow_blank),
                     reader=lambda q: getpass(q))
