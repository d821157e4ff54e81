#!/usr/bin/env python3
"""
Tower Setup Kit — Terminal Output & Prompts
============================================
Width-limited text output for prompts, warnings and the review summary, plus
the one ask-until-valid loop every wizard question goes through.

Usage:
  from ui import say, ask_until, ask_yes_no
  say("PRIMARY TOWER MACHINE")
  port = ask_until("Enter the PostgreSQL port: ", parse_port)
"""
import sys
import textwrap
from typing import Callable, TypeVar

T = TypeVar("T")

# ── ANSI colours ──────────────────────────────────────────────
BOLD="\033[1m"; CYAN="\033[36m"
GREEN="\033[32m"; YELLOW="\033[33m"; RED="\033[31m"; RESET="\033[0m"

def green(s):  return f"{GREEN}{s}{RESET}"
def yellow(s): return f"{YELLOW}{s}{RESET}"
def red(s):    return f"{RED}{s}{RESET}"

YES = ("y", "yes")
NO = ("n", "no")


# ── Output ────────────────────────────────────────────────────
def say(text: str, file=None, width: int = 79, nl: int = 1) -> None:
    """Write `text` filled to `width` columns, followed by `nl` newlines.

    Multi-line text is dedented first and each line is filled on its own,
    so callers can pass indented triple-quoted blocks.
    """
    if file is None:
        file = sys.stdout
    text = text.strip("\n")
    if "\n" in text:
        text = textwrap.dedent(text)
    lines = text.split("\n")
    for i, line in enumerate(lines):
        file.write(textwrap.fill(line, width=width))
        if i < len(lines) - 1:
            file.write("\n")
    file.write("\n" * nl)


def newline(number: int = 1, file=None) -> None:
    say("", file=file, nl=number)


def hdr(title: str) -> None:
    print(f"\n{CYAN}{'='*62}{RESET}")
    print(f"{CYAN}  {BOLD}{title}{RESET}")
    print(f"{CYAN}{'='*62}{RESET}")


def sec(title: str) -> None:
    print(f"{BOLD}{CYAN}{title}{RESET}")


def warn(text: str) -> None:
    say(yellow(textwrap.dedent(text.strip("\n"))), file=sys.stderr)


def error(text: str) -> None:
    say(red(textwrap.dedent(text.strip("\n"))), file=sys.stderr)


# ── Input ─────────────────────────────────────────────────────
def ask(question: str) -> str:
    return input(question)


def ask_until(question: str, parse: Callable[[str], T],
              reader: Callable[[str], str] = ask) -> T:
    """Ask `question` until `parse` accepts the answer.

    `parse` returns the accepted value or raises ValueError; the error
    message is shown and the same question is asked again.
    """
    while True:
        answer = reader(question)
        try:
            return parse(answer)
        except ValueError as e:
            say(str(e))


def parse_yes_no(default: bool | None = None) -> Callable[[str], bool]:
    def _parse(raw: str) -> bool:
        raw = raw.strip().lower()
        if not raw and default is not None:
            return default
        if raw in YES:
            return True
        if raw in NO:
            return False
        raise ValueError("Please enter (y)es or (n)o.")
    return _parse


def ask_yes_no(question: str, default: bool | None = None) -> bool:
    return ask_until(question, parse_yes_no(default))
