"""
Module 3a — Tokenizer / Line Classifier
Splits raw configuration text into LogicalLines carrying nesting depth
and block context, using the dialect conventions of a vendor grammar.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List, Tuple

from core.errors import InputError  # pyre-ignore
from core.models import LogicalLine  # pyre-ignore


logger = logging.getLogger("netlens.tokenizer")

UNCLASSIFIED = "unclassified"


@dataclass
class _Frame:
    context: str
    header: str
    indent: int
    line_no: int


def tokenize(text, grammar) -> List[LogicalLine]:
    """
    Tokenize configuration text for one vendor dialect.

    Blank and comment lines are skipped, continuations are joined into a
    single statement, block exit markers close the current scope. Lines
    that cannot be placed get the 'unclassified' context; tokenizing never
    fails on malformed text.

    Args:
        text: Raw configuration text.
        grammar: VendorGrammar describing the dialect.

    Returns:
        Ordered list of LogicalLine.

    Raises:
        InputError: If text is empty or not text at all.
    """
    _check_text(text)

    lines: List[LogicalLine] = []
    stack: List[_Frame] = []
    indent_scoped = grammar.INDENT_SCOPED

    for line_no, raw in _statements(text, grammar):
        stripped = raw.strip()
        indent = len(raw) - len(raw.lstrip())

        if indent_scoped:
            while stack and indent <= stack[-1].indent:
                stack.pop()

        if grammar.match_block_end(stripped):
            if indent_scoped:
                continue
            if stack:
                stack.pop()
                continue
            # Closing marker with nothing open
            lines.append(LogicalLine(
                text=stripped, raw=raw, line_no=line_no,
                context=UNCLASSIFIED, block_line=line_no,
            ))
            continue

        statement = grammar.clean(stripped)
        if not statement:
            continue

        parents = tuple(frame.header for frame in stack)
        opened = grammar.match_block_start(stripped, parents)

        if stack:
            inherited = stack[-1].context
        elif indent_scoped and indent > 0:
            inherited = UNCLASSIFIED
        else:
            inherited = grammar.classify(statement)

        lines.append(LogicalLine(
            text=statement,
            raw=raw,
            line_no=line_no,
            depth=len(stack),
            context=opened or inherited,
            parents=parents,
            block_line=stack[0].line_no if stack else line_no,
            opens_block=opened is not None,
        ))

        if opened is not None:
            stack.append(_Frame(opened, statement, indent, line_no))
        elif indent_scoped:
            # Any line scopes the more-indented lines that follow it
            if stack:
                scope = stack[-1].context
            else:
                scope = "other" if indent == 0 else UNCLASSIFIED
            stack.append(_Frame(scope, statement, indent, line_no))

    logger.debug(f"Tokenized {len(lines)} logical lines ({grammar.name})")
    return lines


def _check_text(text):
    if isinstance(text, bytes):
        raise InputError("configuration must be decoded text, got bytes")
    if not isinstance(text, str):
        raise InputError(f"configuration must be text, got {type(text).__name__}")
    if "\x00" in text:
        raise InputError("configuration appears to be binary")
    if not text.strip():
        raise InputError("configuration text is empty")


def _statements(text: str, grammar) -> Iterator[Tuple[int, str]]:
    """Yield (first line number, statement) with comments dropped and continuations joined."""
    buffer = None
    start = 0

    for line_no, physical in enumerate(text.splitlines(), start=1):
        physical = physical.rstrip()

        if buffer is not None:
            buffer = grammar.join_continuation(buffer, physical)
            if not grammar.is_continued(buffer):
                yield start, buffer
                buffer = None
            continue

        stripped = physical.strip()
        if not stripped or grammar.is_comment(stripped):
            continue

        if grammar.is_continued(physical):
            buffer = physical
            start = line_no
            continue

        yield line_no, physical

    if buffer is not None:
        logger.debug(f"Unterminated continuation starting at line {start}")
        yield start, buffer
