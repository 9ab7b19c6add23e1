"""Heuristic bot-challenge detection: text pattern matching on fetched HTML.

Retail sites answer suspected automation with an interstitial rather than an
error status. The HTML extractor uses these signatures to treat such a page
as "no data" so the controller can escalate to a rendered browser session.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class ObstructionType(str, Enum):
    BOT_CHALLENGE = "BOT_CHALLENGE"
    NONE = "NONE"


@dataclass
class ObstructionResult:
    """Result of obstruction detection."""

    obstruction_type: ObstructionType
    signature: str | None = None

    @property
    def blocked(self) -> bool:
        return self.obstruction_type is ObstructionType.BOT_CHALLENGE


# Phrases seen on captcha and "are you human" interstitials
BOT_CHALLENGE_SIGNATURES = [
    re.compile(r"captcha", re.IGNORECASE),
    re.compile(r"unusual\s+traffic", re.IGNORECASE),
    re.compile(r"automated\s+access", re.IGNORECASE),
    re.compile(r"not\s+a\s+robot", re.IGNORECASE),
]


def detect_obstruction(html: str) -> ObstructionResult:
    """Return the first bot-challenge signature found in html, if any."""
    for pattern in BOT_CHALLENGE_SIGNATURES:
        match = pattern.search(html)
        if match:
            return ObstructionResult(
                obstruction_type=ObstructionType.BOT_CHALLENGE,
                signature=match.group(0),
            )
    return ObstructionResult(obstruction_type=ObstructionType.NONE)
