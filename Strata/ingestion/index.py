"""In-memory inverted text index over dataset file contents."""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional, Pattern, Set, Union

from ..config.settings import DEFAULT_SKIP_EXTENSIONS

logger = logging.getLogger(__name__)

DEFAULT_BREAKER = "\n"
DEFAULT_TOKENIZER = r"[^a-zA-Z0-9_]+"


def should_index(name: str, skip_extensions: Optional[Iterable[str]] = None) -> bool:
    """False for binary-ish names (images, bytecode, compressed blobs)."""
    skip = DEFAULT_SKIP_EXTENSIONS if skip_extensions is None else skip_extensions
    return not any(name.endswith(ext) for ext in skip)


def _compile(pattern: Union[str, Pattern[str]]) -> Pattern[str]:
    return pattern if isinstance(pattern, re.Pattern) else re.compile(pattern)


class TextIndex:
    """Maps lowercase tokens to the sources and line numbers they occur on."""

    def __init__(self):
        self._postings: Dict[str, Dict[str, Set[int]]] = {}
        self._sources: Dict[str, Set[str]] = {}

    def add(
        self,
        source: str,
        text: str,
        breaker: Union[str, Pattern[str]] = DEFAULT_BREAKER,
        tokenizer: Union[str, Pattern[str]] = DEFAULT_TOKENIZER,
    ) -> int:
        """Index ``text`` under ``source``; returns the number of lines seen.

        Args:
            source: Identifier of the indexed document (a file item id)
            text: Decoded text content
            breaker: Regex separating lines/records
            tokenizer: Regex separating tokens inside a line
        """
        if source in self._sources:
            self.remove_by_source(source)

        split_lines = _compile(breaker)
        split_tokens = _compile(tokenizer)
        tokens_for_source: Set[str] = set()

        lines = split_lines.split(text) if text else []
        for line_no, line in enumerate(lines):
            for token in split_tokens.split(line):
                if not token:
                    continue
                token = token.lower()
                self._postings.setdefault(token, {}).setdefault(source, set()).add(line_no)
                tokens_for_source.add(token)

        self._sources[source] = tokens_for_source
        logger.debug(f"Indexed {source}: {len(lines)} lines, {len(tokens_for_source)} tokens")
        return len(lines)

    def remove_by_source(self, source: str) -> None:
        for token in self._sources.pop(source, set()):
            postings = self._postings.get(token)
            if postings is None:
                continue
            postings.pop(source, None)
            if not postings:
                del self._postings[token]

    def search(self, query: str, tokenizer: Union[str, Pattern[str]] = DEFAULT_TOKENIZER) -> Dict[str, List[int]]:
        """Sources containing every query token, with the matching line numbers."""
        terms = [t.lower() for t in _compile(tokenizer).split(query) if t]
        if not terms:
            return {}

        matches: Optional[Set[str]] = None
        for term in terms:
            sources = set(self._postings.get(term, {}))
            matches = sources if matches is None else matches & sources
            if not matches:
                return {}

        results: Dict[str, List[int]] = {}
        for source in sorted(matches or ()):
            lines: Set[int] = set()
            for term in terms:
                lines |= self._postings[term][source]
            results[source] = sorted(lines)
        return results

    def sources(self) -> List[str]:
        return sorted(self._sources)

    def __contains__(self, source: str) -> bool:
        return source in self._sources

    def __len__(self) -> int:
        return len(self._sources)

    def copy(self) -> TextIndex:
        dup = TextIndex()
        dup._postings = {
            token: {src: set(lines) for src, lines in postings.items()}
            for token, postings in self._postings.items()
        }
        dup._sources = {src: set(tokens) for src, tokens in self._sources.items()}
        return dup

    def get_stats(self) -> Dict[str, int]:
        return {"sources": len(self._sources), "tokens": len(self._postings)}


__all__ = ["TextIndex", "should_index", "DEFAULT_BREAKER", "DEFAULT_TOKENIZER"]
