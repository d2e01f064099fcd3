"""
Tests for the Creator Check governance gate.
"""

from types import SimpleNamespace

import pytest

from forecast_engine.models.enums import CreatorCheckStatus
from forecast_engine.models.schemas import CreatorCheck
from forecast_engine.services.governance import (
    CREATOR_CHECK_RULES,
    TECHNICAL_ERROR_NOTE,
    check_explanations,
    contains_pii,
    get_creator_check_summary,
    has_excessive_urgency,
    has_false_scarcity,
    has_fear_messaging,
    is_unprofessional,
    run_creator_check,
)
from forecast_engine.services.pipeline import (
    BENEFIT_STATEMENT,
    LONG_TERM_STATEMENT,
    OPT_OUT_STATEMENT,
)


DISCLOSURES = [BENEFIT_STATEMENT, LONG_TERM_STATEMENT, OPT_OUT_STATEMENT]


def with_disclosures(*sentences):
    return {"explanations": list(sentences) + DISCLOSURES}


# =============================================================================
# Detectors
# =============================================================================


class TestDetectors:

    @pytest.mark.parametrize("text", [
        "Contact jane.doe@example.com for details",
        "Call 555-123-4567 to reorder",
        "Call (555) 123-4567 to reorder",
        "Record 123-45-6789 on file",
    ])
    def test_pii_detected(self, text):
        assert contains_pii(text) is True

    @pytest.mark.parametrize("text", [
        "Revenue is projected to rise from about $1,250 to $1,480 per day",
        "The next reorder window is expected between Apr 3 and Apr 9",
    ])
    def test_forecast_figures_are_not_pii(self, text):
        assert contains_pii(text) is False

    def test_urgency_needs_repeated_shouting(self):
        assert has_excessive_urgency("URGENT: act IMMEDIATELY") is True
        assert has_excessive_urgency("URGENT reorder reminder") is False
        assert has_excessive_urgency("urgent and immediate follow-up") is False

    def test_fear_words(self):
        assert has_fear_messaging("RISK of LOSS ahead") is True
        assert has_fear_messaging("Churn risk is low; no loss expected") is False

    @pytest.mark.parametrize("text", ["DANGER", "Watch the THREAT to margins", "RISK disclosure: results vary"])
    def test_single_shouted_fear_word_passes(self, text):
        assert has_fear_messaging(text) is False

    def test_repeated_fear_word_fails(self):
        assert has_fear_messaging("DANGER, DANGER") is True

    def test_false_scarcity(self):
        assert has_false_scarcity("Limited time: only a few left") is True
        assert has_false_scarcity("LIMITED and EXCLUSIVE stock") is True
        assert has_false_scarcity("Stock levels are normal") is False

    @pytest.mark.parametrize("text,expected", [
        ("An amazing and incredible quarter", True),
        ("An AMAZING quarter", True),
        ("Revenue is up!!", True),
        ("An amazing quarter", False),
        ("Revenue is up.", False),
    ])
    def test_unprofessional(self, text, expected):
        assert is_unprofessional(text) is expected


# =============================================================================
# run_creator_check
# =============================================================================


class TestRunCreatorCheck:

    def test_clean_text_passes_with_every_pass_note(self):
        check = run_creator_check(with_disclosures("Revenue is projected to hold steady."))

        assert check.passed is True
        assert check.notes == [rule.pass_note for rule in CREATOR_CHECK_RULES]
        assert "No PII detected" in check.notes

    def test_pii_fails(self):
        check = run_creator_check(with_disclosures("Email ops@example.com about reorders."))

        assert check.passed is False
        assert check.notes == ["PII detected in forecast explanations"]

    def test_urgency_fails(self):
        check = run_creator_check(with_disclosures("URGENT: reorder IMMEDIATELY, this is an EMERGENCY."))

        assert check.passed is False
        assert "Excessive urgency language detected" in check.notes

    def test_missing_disclosures_listed_together(self):
        check = run_creator_check({"explanations": ["Revenue is projected to rise."]})

        assert check.passed is False
        assert check.notes == [
            "No opt-out information provided",
            "No customer benefit language detected",
            "No long-term thinking language detected",
        ]

    def test_empty_explanations_fail_disclosures(self):
        check = run_creator_check({"explanations": []})

        assert check.passed is False
        assert "No opt-out information provided" in check.notes

    def test_accepts_objects_with_explanations(self):
        forecast = SimpleNamespace(explanations=["Revenue is steady."] + DISCLOSURES)

        assert run_creator_check(forecast).passed is True

    @pytest.mark.parametrize("forecast", [
        None,
        {},
        {"explanations": "not a list"},
        {"explanations": ["fine", 42]},
    ])
    def test_malformed_input_fails_closed(self, forecast):
        check = run_creator_check(forecast)

        assert check.passed is False
        assert check.notes[0] == TECHNICAL_ERROR_NOTE
        assert check.notes[1].startswith("Error: ")

    def test_pipeline_explanations_pass(self, linear_pipeline):
        output = linear_pipeline.generate_forecast("contractor", ["14d"])

        assert output.creatorCheck.passed is True
        assert check_explanations(output.explanations).passed is True


# =============================================================================
# get_creator_check_summary
# =============================================================================


class TestCreatorCheckSummary:

    def test_passed(self):
        summary = get_creator_check_summary(CreatorCheck(passed=True, notes=["No PII detected"]))

        assert summary.status == CreatorCheckStatus.PASSED
        assert summary.issueCount == 0

    def test_disclosure_only_failures_warn(self):
        check = CreatorCheck(passed=False, notes=["No opt-out information provided"])

        summary = get_creator_check_summary(check)

        assert summary.status == CreatorCheckStatus.WARNING
        assert summary.issueCount == 1

    def test_harmful_content_fails(self):
        check = CreatorCheck(
            passed=False,
            notes=["Fear-based messaging detected", "No opt-out information provided"],
        )

        summary = get_creator_check_summary(check)

        assert summary.status == CreatorCheckStatus.FAILED
        assert summary.issueCount == 2

    def test_technical_error_fails(self):
        check = run_creator_check(None)

        assert get_creator_check_summary(check).status == CreatorCheckStatus.FAILED
