# -*- coding: utf-8 -*-
"""
Marker Preprocessor Module
Rewrites the `#p` marker into a reserved identifier prefix before parsing.
`#p` on its own is a comment to the Python tokenizer; gluing it to the next
token turns it into an ordinary (if oddly named) identifier the parser keeps.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

from config import DEFAULT_CONFIG, HashpConfig


class MarkerSyntaxError(SyntaxError):
    """A marker that leaves the source unparseable or attaches to nothing."""

    def __init__(self, msg: str, lineno: Optional[int] = None, offset: Optional[int] = None,
                 text: Optional[str] = None, filename: str = '<hashp>'):
        super().__init__(msg, (filename, lineno, offset, text))

    def __str__(self) -> str:
        where = f"line {self.lineno}" if self.lineno else "unknown line"
        if self.offset:
            where += f", column {self.offset}"
        return f"{self.msg} ({where})"


@dataclass(frozen=True)
class MarkerSite:
    """Location of one marker in the original text (1-based line, 0-based column)."""
    line: int
    column: int
    new_line: int
    newlines_consumed: int


@dataclass
class PreprocessedSource:
    text: str
    original: str
    sites: List[MarkerSite] = field(default_factory=list)

    def original_line(self, lineno: int) -> int:
        """Map a line of the rewritten text back to the user's line."""
        shift = sum(site.newlines_consumed for site in self.sites if site.new_line < lineno)
        return lineno + shift

    def site_on_line(self, line: int) -> Optional[MarkerSite]:
        candidates = [site for site in self.sites if site.line == line]
        return candidates[-1] if candidates else None

    def original_text(self, line: int) -> Optional[str]:
        lines = self.original.split('\n')
        if 1 <= line <= len(lines):
            return lines[line - 1]
        return None


class MarkerPreprocessor:
    """
    Lexical pass replacing every `<marker><whitespace>` with the reserved prefix.

    Occurrences inside strings and comments are rewritten as well, except the
    `'#p <label> => '` messages this tool emits, so instrumented output passes
    through unchanged. A marker before a plain string literal becomes the
    string "__debug_", which the parser concatenates with the literal.
    """

    def __init__(self, config: HashpConfig = DEFAULT_CONFIG):
        self.config = config
        self.pattern = re.compile(re.escape(config.marker) + r'\s+(?=([\'"])?)')
        self.message_tails = {
            quote: re.compile(r'[^\n]*? => ' + quote) for quote in ('"', "'")
        }

    def _is_message(self, code: str, match) -> bool:
        start = match.start()
        if start == 0 or code[start - 1] not in self.message_tails:
            return False
        return self.message_tails[code[start - 1]].match(code, match.end()) is not None

    def _replacement(self, match) -> str:
        if match.group(1):
            return f'"{self.config.debug_prefix}" '
        return self.config.debug_prefix

    def process(self, code: str) -> PreprocessedSource:
        """
        Rewrite markers and remember where each one was.

        Args:
            code: Raw source containing zero or more markers

        Returns:
            PreprocessedSource with the parseable text and marker locations
        """
        sites: List[MarkerSite] = []
        pieces: List[str] = []
        consumed = 0
        last = 0

        for match in self.pattern.finditer(code):
            if self._is_message(code, match):
                continue
            line = code.count('\n', 0, match.start()) + 1
            column = match.start() - (code.rfind('\n', 0, match.start()) + 1)
            newlines = match.group().count('\n')
            sites.append(MarkerSite(line=line, column=column,
                                    new_line=line - consumed, newlines_consumed=newlines))
            consumed += newlines

            pieces.append(code[last:match.start()])
            pieces.append(self._replacement(match))
            last = match.end()

        pieces.append(code[last:])
        return PreprocessedSource(text=''.join(pieces), original=code, sites=sites)

    def to_syntax_error(self, source: PreprocessedSource, error: SyntaxError) -> MarkerSyntaxError:
        """Re-anchor a parser error on the user's original line."""
        lineno = source.original_line(error.lineno) if error.lineno else None
        offset = error.offset
        if lineno is not None:
            site = source.site_on_line(lineno)
            if site is not None:
                offset = site.column + 1
        text = source.original_text(lineno) if lineno else None
        return MarkerSyntaxError(f"cannot parse marked source: {error.msg}", lineno, offset, text)


def preprocess_markers(code: str, config: HashpConfig = DEFAULT_CONFIG) -> str:
    """
    Convenience function returning only the rewritten text.

    Example:
        >>> preprocess_markers("total = #p count")
        'total = __debug_count'
    """
    return MarkerPreprocessor(config).process(code).text
