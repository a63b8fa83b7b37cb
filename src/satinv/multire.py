"""Match a string against a list of regular expressions."""

from __future__ import annotations

import re
from typing import Iterable, Optional

from satinv.exceptions import ConfigError


class MultiRE:
    """A list of compiled patterns that matches if any of them does.

    Args:
        patterns: Regular expressions to compile.

    Raises:
        ConfigError: If a pattern does not compile.
    """

    def __init__(self, patterns: Optional[Iterable[str]] = None) -> None:
        self._res: list[re.Pattern[str]] = []
        for pattern in patterns or ():
            self.extend(pattern)

    def __len__(self) -> int:
        return len(self._res)

    def extend(self, pattern: str) -> None:
        """Compile *pattern* and add it to the list."""
        try:
            self._res.append(re.compile(pattern))
        except re.error as exc:
            raise ConfigError(f"Unable to compile regex {pattern!r}: {exc}") from exc

    def match(self, text: str) -> bool:
        """Return ``True`` if any pattern matches anywhere in *text*."""
        return any(r.search(text) for r in self._res)
