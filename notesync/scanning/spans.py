from __future__ import annotations

from typing import Iterator, List, Tuple

Span = Tuple[int, int]


class SpanRegistry:
    """Character ranges of a document already consumed by a scan.

    A span counts as claimed when it lies inside a registered span, with
    one character of leeway at either end.
    """

    def __init__(self):
        self._spans: List[Span] = []

    def __len__(self) -> int:
        return len(self._spans)

    def __iter__(self) -> Iterator[Span]:
        return iter(self._spans)

    def claim(self, span: Span) -> None:
        self._spans.append((span[0], span[1]))

    def claim_matches(self, pattern, text: str) -> None:
        for match in pattern.finditer(text):
            self.claim(match.span())

    def contains(self, span: Span) -> bool:
        start, end = span
        return any(start >= s - 1 and end <= e + 1 for s, e in self._spans)

    def release_last(self) -> Span:
        return self._spans.pop()

    def finditer(self, pattern, text: str):
        """Yield matches of pattern that fall outside every claimed span.

        Spans claimed while iterating are honoured for later matches.
        """
        for match in pattern.finditer(text):
            if not self.contains(match.span()):
                yield match
