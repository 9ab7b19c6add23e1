"""Extraction controller phase definitions: the state machine states and transitions."""

from __future__ import annotations

from enum import Enum


class Phase(str, Enum):
    """All valid controller phases. Each extraction request walks from START
    to exactly one terminal phase."""

    START = "START"
    GUARD = "GUARD"
    SANDBOX = "SANDBOX"
    HTML = "HTML"
    BROWSER = "BROWSER"
    DONE = "DONE"
    FAILED = "FAILED"


# Valid phase transitions. Each key maps to a set of phases it can transition to.
VALID_TRANSITIONS: dict[Phase, set[Phase]] = {
    Phase.START: {Phase.GUARD, Phase.FAILED},
    Phase.GUARD: {Phase.SANDBOX, Phase.HTML, Phase.BROWSER, Phase.FAILED},
    Phase.SANDBOX: {Phase.DONE, Phase.FAILED},
    Phase.HTML: {Phase.BROWSER, Phase.DONE, Phase.FAILED},  # HTML -> BROWSER is auto escalation
    Phase.BROWSER: {Phase.DONE, Phase.FAILED},
    Phase.DONE: set(),  # terminal
    Phase.FAILED: set(),  # terminal
}

TERMINAL_PHASES = {Phase.DONE, Phase.FAILED}
