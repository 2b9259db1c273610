"""
Parser for the archive detail pages that list an event's choices.

The first <table> on the page is expected to look like:

    | Choice       | Effect                     |
    | <b>Choice 1</b> (Success) | Speed +10<br>Power +5 |
    | <b>Choice 1</b> (Fail)    | Mood -1               |
    | <b>Choice 2</b>           | Stamina +10           |

A choice can span several rows (success/fail variants); rows are merged by
choice number. Malformed rows are dropped without failing the whole page.
"""
import html
import re
from html.parser import HTMLParser
from typing import Dict, List, Optional, Tuple

from umatrack.core.errors import TableParseError
from umatrack.core.models import Choice
from umatrack.logger import logger

_BOLD = re.compile(r"<b\b[^>]*>(.*?)</b\s*>", re.IGNORECASE | re.DOTALL)
_CHOICE_LABEL = re.compile(r"Choice\s*(\d+)", re.IGNORECASE)
_HR = re.compile(r"<hr\b[^>]*>", re.IGNORECASE)
_BR = re.compile(r"<br\b[^>]*>", re.IGNORECASE)
_TAG = re.compile(r"<[^>]+>")
_WHITESPACE = re.compile(r"\s+")
_PAREN = re.compile(r"\(([^)]+)\)")

BULLETS = "・•·"

Cell = Tuple[str, str]  # (tag, inner markup)


class _FirstTableCollector(HTMLParser):
    """Collects the raw inner markup of every cell in the first top-level table."""

    def __init__(self):
        super().__init__(convert_charrefs=False)
        self.rows: List[List[Cell]] = []
        self.found = False
        self.done = False
        self._depth = 0
        self._row: Optional[List[Cell]] = None
        self._cell: Optional[List[str]] = None
        self._cell_tag = ""

    # --- markup reconstruction -------------------------------------------

    def _emit(self, markup: str):
        if self._cell is not None:
            self._cell.append(markup)

    def _close_cell(self):
        if self._cell is not None and self._row is not None:
            self._row.append((self._cell_tag, "".join(self._cell)))
        self._cell = None

    def _close_row(self):
        self._close_cell()
        if self._row is not None:
            self.rows.append(self._row)
        self._row = None

    # --- HTMLParser hooks --------------------------------------------------

    def handle_starttag(self, tag, attrs):
        if self.done:
            return
        if tag == "table":
            if not self.found:
                self.found = True
                self._depth = 1
                return
            self._depth += 1
        if not self.found:
            return

        if self._depth == 1:
            if tag == "tr":
                self._close_row()
                self._row = []
                return
            if tag in ("td", "th"):
                self._close_cell()
                if self._row is None:
                    self._row = []
                self._cell = []
                self._cell_tag = tag
                return
        self._emit(self.get_starttag_text() or f"<{tag}>")

    def handle_startendtag(self, tag, attrs):
        if self.found and not self.done:
            self._emit(self.get_starttag_text() or f"<{tag}/>")

    def handle_endtag(self, tag):
        if not self.found or self.done:
            return
        if tag == "table":
            if self._depth == 1:
                self._close_row()
                self.done = True
                return
            self._depth -= 1
        elif self._depth == 1:
            if tag == "tr":
                self._close_row()
                return
            if tag in ("td", "th"):
                self._close_cell()
                return
        self._emit(f"</{tag}>")

    def handle_data(self, data):
        if self.found and not self.done:
            self._emit(data)

    def handle_entityref(self, name):
        if self.found and not self.done:
            self._emit(f"&{name};")

    def handle_charref(self, name):
        if self.found and not self.done:
            self._emit(f"&#{name};")

    def close(self):
        super().close()
        if self.found and not self.done:
            # Unterminated table
            self._close_row()
            self.done = True


def _plain_text(markup: str) -> str:
    return html.unescape(_TAG.sub("", markup)).strip()


def _parse_outcomes(markup: str) -> List[str]:
    outcomes = []
    for line in _BR.split(markup):
        text = _plain_text(line).lstrip(BULLETS).strip()
        if text:
            outcomes.append(text)
    return outcomes


def _parse_row(cells: List[str]) -> Optional[Tuple[int, Optional[str], List[str]]]:
    """Returns (choice number, parenthesised tag, outcomes) or None for a skipped row."""
    if not cells:
        return None
    first, last = cells[0], cells[-1]

    bold = _BOLD.search(first)
    if not bold:
        return None
    label = _CHOICE_LABEL.search(_plain_text(bold.group(1)))
    if not label:
        return None
    number = int(label.group(1))

    qualifier = _HR.sub("", first[bold.end():])
    qualifier = _WHITESPACE.sub(" ", qualifier).strip()
    paren = _PAREN.search(qualifier)
    tag = _plain_text(paren.group(1)) if paren else None

    return number, tag or None, _parse_outcomes(last)


def parse_choices_table(markup: str) -> List[Choice]:
    collector = _FirstTableCollector()
    collector.feed(markup)
    collector.close()

    if not collector.found:
        raise TableParseError("No table found in archive page")

    choices: Dict[int, Choice] = {}
    for position, row in enumerate(collector.rows):
        if position == 0:
            continue  # header

        cells = [inner for tag, inner in row if tag == "td"]
        try:
            parsed = _parse_row(cells)
        except (ValueError, IndexError) as e:
            logger.debug(f"TableParser: Skipping row {position}: {e}")
            continue
        if parsed is None:
            continue

        number, tag, outcomes = parsed
        choice = choices.setdefault(number, Choice(number=number))
        kind = tag.lower() if tag else ""

        if kind == "success":
            choice.success_outcomes.extend(outcomes)
        elif kind == "fail":
            choice.failure_outcomes.extend(outcomes)
        elif tag:
            choice.label = tag
            choice.success_outcomes.extend(outcomes)
        else:
            choice.success_outcomes.extend(outcomes)

    return [choices[n] for n in sorted(choices)]
