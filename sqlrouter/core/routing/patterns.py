"""
Match patterns over dot-separated grouping keys.

Supported forms:
- literal text matches the key exactly
- ``prefix.**`` matches ``prefix`` and every key below it
- glob syntax: ``*`` matches one part, ``**`` zero or more parts,
  ``{a,b}`` alternation, ``\\`` escapes the next character
- several patterns separated by whitespace match if any of them does
"""

import re
from abc import ABC, abstractmethod

GLOB_CHARS = frozenset("*{},\\")


class MatchPattern(ABC):
    """Base class for all grouping-key matchers."""

    def __init__(self, source: str):
        self.source = source

    @abstractmethod
    def match(self, key: str) -> bool:
        """Return True when the full key matches this pattern."""

    @staticmethod
    def create(source: str) -> "MatchPattern":
        """
        Compile a pattern string into the narrowest matcher variant.

        Args:
            source: Pattern text from the table configuration

        Returns:
            MatchPattern instance

        Raises:
            ValueError: If the pattern is empty or malformed
        """
        parts = source.split()
        if not parts:
            raise ValueError("Match pattern must not be empty")
        if len(parts) > 1:
            return OrMatchPattern(source, [MatchPattern.create(p) for p in parts])

        text = parts[0]
        if not GLOB_CHARS.intersection(text):
            return ExactMatchPattern(text)
        if text.endswith(".**") and not GLOB_CHARS.intersection(text[:-3]):
            return PrefixMatchPattern(text)
        return GlobMatchPattern(text)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.source!r})"


class ExactMatchPattern(MatchPattern):
    def match(self, key: str) -> bool:
        return key == self.source


class PrefixMatchPattern(MatchPattern):
    """Matches ``prefix`` itself and any ``prefix.<anything>`` key."""

    def __init__(self, source: str):
        super().__init__(source)
        self.prefix = source[:-3]

    def match(self, key: str) -> bool:
        return key == self.prefix or key.startswith(self.prefix + ".")


class GlobMatchPattern(MatchPattern):
    def __init__(self, source: str):
        super().__init__(source)
        self.regex = re.compile(self._translate(source))

    def match(self, key: str) -> bool:
        return self.regex.fullmatch(key) is not None

    @staticmethod
    def _translate(pat: str) -> str:
        # Each stack level holds the alternatives of one {...} group.
        stack: list[list[str]] = [[""]]
        i = 0
        n = len(pat)
        while i < n:
            c = pat[i]
            if c == "\\":
                if i + 1 >= n:
                    raise ValueError(f"Dangling escape in pattern: {pat!r}")
                stack[-1][-1] += re.escape(pat[i + 1])
                i += 2
                continue
            if pat.startswith("**", i):
                at_start = i == 0 or pat[i - 1] == "."
                if at_start and pat.startswith("**.", i):
                    # "**." may also match nothing
                    stack[-1][-1] += r"(?:.*\.)?"
                    i += 3
                elif i > 0 and pat[i - 1] == "." and i + 2 == n:
                    # trailing ".**" may also match nothing, dot included
                    stack[-1][-1] = stack[-1][-1][: -len(re.escape("."))] + r"(?:\..*)?"
                    i += 2
                else:
                    stack[-1][-1] += ".*"
                    i += 2
                continue
            if c == "*":
                stack[-1][-1] += r"[^.]*"
            elif c == "{":
                stack.append([""])
            elif c == "," and len(stack) > 1:
                stack[-1].append("")
            elif c == "}" and len(stack) > 1:
                group = stack.pop()
                stack[-1][-1] += "(?:" + "|".join(group) + ")"
            else:
                stack[-1][-1] += re.escape(c)
            i += 1

        if len(stack) != 1:
            raise ValueError(f"Unbalanced braces in pattern: {pat!r}")
        return stack[0][0]


class OrMatchPattern(MatchPattern):
    def __init__(self, source: str, patterns: list[MatchPattern]):
        super().__init__(source)
        self.patterns = patterns

    def match(self, key: str) -> bool:
        return any(p.match(key) for p in self.patterns)
