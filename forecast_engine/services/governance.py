"""
Creator Check Governance Service.

Validates generated forecast explanations against a closed set of ethical and
compliance rules before they may be shown to people:

    PII                 no e-mail addresses, phone numbers or SSNs
    Urgency             no pile-up of all-caps alarm words
    Fear                no pile-up of all-caps fear words
    Scarcity            no false scarcity claims
    Unprofessional      no hype superlatives
    Opt-out             an opt-out or preferences disclosure is present
    Benefit             the customer benefit is stated
    Long-term           the text frames a long-term relationship

All rules must pass. A failed check is a normal result, returned as a
CreatorCheck with passed=False and one note per failing rule. Unexpected
errors while checking close the gate: the result fails with a technical
error note instead of propagating.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Sequence, Tuple

from forecast_engine.models.enums import CreatorCheckStatus
from forecast_engine.models.schemas import CreatorCheck, CreatorCheckSummary


logger = logging.getLogger(__name__)


TECHNICAL_ERROR_NOTE = "Creator Check failed due to technical error"


# =============================================================================
# Patterns
# =============================================================================

EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
PHONE_PATTERN = re.compile(r"(?<!\d)(?:\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}(?!\d)")
SSN_PATTERN = re.compile(r"(?<!\d)\d{3}-\d{2}-\d{4}(?!\d)")

# Case-sensitive: only shouted forms count
URGENCY_PATTERN = re.compile(r"\b(?:URGENT|IMMEDIATE(?:LY)?|CRITICAL|EMERGENCY|ASAP)\b")
FEAR_PATTERN = re.compile(r"\b(?:RISK|DANGER|THREAT|LOSS)\b")
SCARCITY_WORD_PATTERN = re.compile(r"\b(?:LIMITED|RARE|EXCLUSIVE)\b")

SCARCITY_PHRASE_PATTERN = re.compile(
    r"\b(?:limited time|exclusive offer|rare opportunity|once-in-a-lifetime"
    r"|while supplies last|act now|only a few left)\b",
    re.IGNORECASE,
)
SUPERLATIVE_PATTERN = re.compile(
    r"\b(?:awesome|amazing|incredible|fantastic|unbelievable)\b", re.IGNORECASE
)
OPT_OUT_PATTERN = re.compile(r"\b(?:opt[- ]?out|unsubscribe|preferences)\b", re.IGNORECASE)
BENEFIT_PATTERN = re.compile(
    r"\b(?:benefit\w*|value|help\w*|improve\w*|enhance\w*|optimi[sz]e\w*|support\w*|sav(?:e|es|ing|ings))\b",
    re.IGNORECASE,
)
LONG_TERM_PATTERN = re.compile(
    r"\b(?:sustainab\w*|sustained|long[- ]term|ongoing|future|partnership|relationship|over time)\b",
    re.IGNORECASE,
)

# Occurrences at which a tone rule fails
TONE_HIT_LIMIT: int = 2


# =============================================================================
# Detectors (return True when the text violates the rule)
# =============================================================================


def contains_pii(text: str) -> bool:
    return any(p.search(text) for p in (EMAIL_PATTERN, SSN_PATTERN, PHONE_PATTERN))


def has_excessive_urgency(text: str) -> bool:
    return len(URGENCY_PATTERN.findall(text)) >= TONE_HIT_LIMIT


def has_fear_messaging(text: str) -> bool:
    return len(FEAR_PATTERN.findall(text)) >= TONE_HIT_LIMIT


def has_false_scarcity(text: str) -> bool:
    hits = len(SCARCITY_WORD_PATTERN.findall(text)) + len(SCARCITY_PHRASE_PATTERN.findall(text))
    return hits >= TONE_HIT_LIMIT


def is_unprofessional(text: str) -> bool:
    superlatives = SUPERLATIVE_PATTERN.findall(text)
    if len(superlatives) >= TONE_HIT_LIMIT:
        return True
    if any(word.isupper() for word in superlatives):
        return True
    return "!!" in text


def lacks_opt_out(text: str) -> bool:
    return OPT_OUT_PATTERN.search(text) is None


def lacks_benefit(text: str) -> bool:
    return BENEFIT_PATTERN.search(text) is None


def lacks_long_term(text: str) -> bool:
    return LONG_TERM_PATTERN.search(text) is None


# =============================================================================
# Rule Registry
# =============================================================================


@dataclass(frozen=True)
class CreatorCheckRule:
    """
    One governance rule.

    `blocking` rules flag harmful content; non-blocking rules flag missing
    disclosures, which the summary reports as a warning.
    """
    name: str
    detect: Callable[[str], bool]
    failure_note: str
    pass_note: str
    blocking: bool = True


CREATOR_CHECK_RULES: Tuple[CreatorCheckRule, ...] = (
    CreatorCheckRule("pii", contains_pii, "PII detected in forecast explanations", "No PII detected"),
    CreatorCheckRule(
        "urgency", has_excessive_urgency,
        "Excessive urgency language detected", "Measured, non-urgent tone",
    ),
    CreatorCheckRule("fear", has_fear_messaging, "Fear-based messaging detected", "No fear-based messaging"),
    CreatorCheckRule(
        "scarcity", has_false_scarcity,
        "False scarcity language detected", "No false scarcity claims",
    ),
    CreatorCheckRule(
        "unprofessional", is_unprofessional,
        "Unprofessional language detected", "Professional language maintained",
    ),
    CreatorCheckRule(
        "opt_out", lacks_opt_out,
        "No opt-out information provided", "Opt-out information provided", blocking=False,
    ),
    CreatorCheckRule(
        "benefit", lacks_benefit,
        "No customer benefit language detected", "Customer benefit clearly stated", blocking=False,
    ),
    CreatorCheckRule(
        "long_term", lacks_long_term,
        "No long-term thinking language detected", "Long-term relationship focus present", blocking=False,
    ),
)

BLOCKING_NOTES = frozenset(rule.failure_note for rule in CREATOR_CHECK_RULES if rule.blocking)


# =============================================================================
# Public API
# =============================================================================


def _explanations_of(forecast: Any) -> List[str]:
    if forecast is None:
        raise TypeError("No forecast supplied")
    if isinstance(forecast, Mapping):
        explanations = forecast["explanations"]
    else:
        explanations = forecast.explanations
    if isinstance(explanations, str) or not isinstance(explanations, Sequence):
        raise TypeError(f"explanations must be a sequence of strings, got {type(explanations).__name__}")
    for item in explanations:
        if not isinstance(item, str):
            raise TypeError(f"explanation entries must be strings, got {type(item).__name__}")
    return list(explanations)


def check_explanations(
    explanations: Sequence[str],
    rules: Sequence[CreatorCheckRule] = CREATOR_CHECK_RULES,
) -> CreatorCheck:
    """Apply every rule to the joined explanation text."""
    text = "\n".join(explanations)
    failures = [rule.failure_note for rule in rules if rule.detect(text)]
    if failures:
        return CreatorCheck(passed=False, notes=failures)
    return CreatorCheck(passed=True, notes=[rule.pass_note for rule in rules])


def run_creator_check(forecast: Any) -> CreatorCheck:
    """
    Run the Creator Check over a forecast's explanations.

    Accepts a ForecastOutput, any object with an `explanations` attribute, or
    a mapping with an "explanations" key. Never raises.
    """
    try:
        return check_explanations(_explanations_of(forecast))
    except Exception as exc:
        logger.exception("Creator Check could not evaluate forecast")
        return CreatorCheck(passed=False, notes=[TECHNICAL_ERROR_NOTE, f"Error: {exc}"])


def get_creator_check_summary(check: CreatorCheck) -> CreatorCheckSummary:
    """
    Condense a Creator Check result.

    passed: every rule passed
    warning: only disclosure rules failed
    failed: harmful content was found, or the check itself errored
    """
    if check.passed:
        return CreatorCheckSummary(
            status=CreatorCheckStatus.PASSED,
            message="All governance checks passed",
            issueCount=0,
        )

    if check.notes and check.notes[0] == TECHNICAL_ERROR_NOTE:
        return CreatorCheckSummary(
            status=CreatorCheckStatus.FAILED,
            message="Governance check could not run; manual review required",
            issueCount=1,
        )

    issues = len(check.notes)
    if any(note in BLOCKING_NOTES for note in check.notes):
        return CreatorCheckSummary(
            status=CreatorCheckStatus.FAILED,
            message=f"{issues} governance issue(s) found; do not display without review",
            issueCount=issues,
        )
    return CreatorCheckSummary(
        status=CreatorCheckStatus.WARNING,
        message=f"{issues} disclosure issue(s) found; review before display",
        issueCount=issues,
    )
