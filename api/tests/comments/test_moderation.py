"""Tests for the content moderation filter."""

from datetime import UTC, datetime

import pytest

from chapterhub.comments.models import BannedTerm, Severity
from chapterhub.comments.moderation import (
    EMPTY,
    PROMOTIONAL_WARNING,
    SEVERE_CONTENT,
    SPAM,
    TOO_LONG,
    classify_severity,
    clean_content,
    detect_spam,
    find_spam_keywords,
    moderate,
    normalize,
    quality_badge,
    score_quality,
    validate_structure,
)


def _term(term: str, severity: Severity, replacement: str | None = None) -> BannedTerm:
    return BannedTerm(
        term=term,
        severity=severity,
        replacement=replacement,
        created_by=None,
        created_at=datetime.now(UTC),
    )


class TestValidateStructure:
    """Tests for structural validation."""

    @pytest.mark.parametrize("content", ["", "   ", "\n\t  "])
    def test_empty_content_is_an_error(self, content: str) -> None:
        """Empty or whitespace-only content should be rejected."""
        check = validate_structure(content)

        assert not check.is_valid
        assert check.errors == [EMPTY]

    def test_too_long_content_is_an_error(self) -> None:
        """Content over the limit should be rejected."""
        check = validate_structure("a b " * 600, max_length=2000)

        assert check.errors == [TOO_LONG]

    def test_content_at_limit_is_valid(self) -> None:
        """Exactly max_length characters is allowed."""
        check = validate_structure("ab " * 10, max_length=30)

        assert check.is_valid

    def test_all_caps_warns(self) -> None:
        """Shouting should warn but not block."""
        check = validate_structure("THIS CHAPTER WAS AMAZING")

        assert check.is_valid
        assert "Avoid writing in all caps" in check.warnings

    def test_short_caps_does_not_warn(self) -> None:
        """Short acronyms are not shouting."""
        check = validate_structure("OMG LOL")

        assert check.warnings == []

    def test_repeated_character_warns(self) -> None:
        """A character repeated six or more times should warn."""
        check = validate_structure("Nooooooo way")

        assert "Avoid repeating the same character" in check.warnings

    def test_link_warns(self) -> None:
        """Links should warn."""
        check = validate_structure("Raw scans at https://example.com")

        assert "Links in comments may be removed by moderators" in check.warnings


class TestClassifySeverity:
    """Tests for severity classification."""

    def test_clean_text_is_none(self) -> None:
        result = classify_severity("The art in this chapter is beautiful.")

        assert result.severity == Severity.NONE
        assert result.matched_terms == []

    def test_moderate_term(self) -> None:
        result = classify_severity("The villain is an idiot")

        assert result.severity == Severity.MODERATE
        assert result.matched_terms == ["idiot"]

    def test_severe_term_wins_over_moderate(self) -> None:
        """The worst matched term decides."""
        result = classify_severity("Shut up and kys")

        assert result.severity == Severity.SEVERE
        assert "kys" in result.matched_terms
        assert "shut up" in result.matched_terms

    def test_match_is_case_insensitive(self) -> None:
        assert classify_severity("IDIOT").severity == Severity.MODERATE

    def test_terms_match_whole_words_only(self) -> None:
        """A term inside a longer word does not match."""
        assert classify_severity("skys the limit").severity == Severity.NONE

    def test_admin_terms_are_merged(self) -> None:
        """Admin-managed terms extend the built-in list."""
        terms = [_term("leaker", Severity.SEVERE)]

        result = classify_severity("what a leaker", terms)

        assert result.severity == Severity.SEVERE


class TestDetectSpam:
    """Tests for spam detection."""

    def test_exact_duplicate_of_history(self) -> None:
        """Resubmitting a recent comment is spam, ignoring case and punctuation."""
        result = detect_spam("Great chapter!", history=[normalize("great chapter")])

        assert result.is_spam
        assert result.reason == "duplicate"

    def test_near_duplicate_of_history(self) -> None:
        result = detect_spam(
            "The art in this chapter is amazing",
            history=["the art in this chapter is amazin"],
        )

        assert result.reason == "duplicate"

    def test_different_text_is_not_duplicate(self) -> None:
        result = detect_spam(
            "Can't wait for the next one.",
            history=["The art in this chapter is amazing"],
        )

        assert not result.is_spam

    def test_repeated_words(self) -> None:
        result = detect_spam("spam spam spam spam spam")

        assert result.reason == "repetition"

    def test_repeated_pattern(self) -> None:
        result = detect_spam("abcabcabcabcabc")

        assert result.reason == "repetition"

    def test_link_flood(self) -> None:
        content = (
            "https://one.example https://two.example "
            "https://three.example https://four.example"
        )

        assert detect_spam(content).reason == "links"

    def test_spam_keywords_do_not_block(self) -> None:
        result = detect_spam("Click here for free coins")

        assert not result.is_spam
        assert result.keywords == ["click here", "free coins"]

    @pytest.mark.parametrize(
        "content",
        [
            "I can't react now, this chapter broke me!",
            "The fanfact nowhere near matches the raw.",
        ],
    )
    def test_keywords_match_whole_words_only(self, content: str) -> None:
        assert find_spam_keywords(content) == []

    def test_normal_comment(self) -> None:
        assert not detect_spam("That plot twist caught me off guard.").is_spam


class TestQualityScore:
    """Tests for the quality heuristic."""

    def test_short_enthusiastic_comment(self) -> None:
        """Two distinct words, capitalized, closing punctuation."""
        assert score_quality("Great chapter!") == 80

    def test_empty_content_scores_zero(self) -> None:
        assert score_quality("   ") == 0

    def test_longer_comment_scores_higher(self) -> None:
        short = score_quality("nice")
        long = score_quality(
            "The pacing in this chapter finally lets the side characters breathe."
        )

        assert long > short

    def test_score_is_bounded(self) -> None:
        for text in ["!!!", "a", "A" * 50, "Word. " * 40]:
            assert 0 <= score_quality(text) <= 100

    @pytest.mark.parametrize(
        "score,badge",
        [
            (100, "high_quality"),
            (80, "high_quality"),
            (70, None),
            (59, "needs_improvement"),
        ],
    )
    def test_quality_badge(self, score: int, badge: str | None) -> None:
        assert quality_badge(score) == badge


class TestModerate:
    """Tests for the combined verdict."""

    def test_good_comment_is_allowed(self) -> None:
        result = moderate("Great chapter!")

        assert result.allowed
        assert result.blocking_reason is None
        assert result.warnings == []
        assert result.quality_score == 80
        assert result.quality_badge == "high_quality"

    def test_empty_blocks(self) -> None:
        result = moderate("  ")

        assert not result.allowed
        assert result.blocking_reason == EMPTY
        assert result.message == "Comment cannot be empty"

    def test_too_long_blocks_before_severity(self) -> None:
        """Blocking order: empty, too long, severe, spam."""
        result = moderate("kys " * 10, max_length=20)

        assert result.blocking_reason == TOO_LONG

    def test_severe_blocks_before_spam(self) -> None:
        result = moderate("kys kys kys kys kys")

        assert result.blocking_reason == SEVERE_CONTENT
        assert result.severity == Severity.SEVERE

    def test_spam_blocks(self) -> None:
        result = moderate("Great chapter!", history=["great chapter"])

        assert result.blocking_reason == SPAM

    def test_moderate_language_only_warns(self) -> None:
        """Moderate severity posts with a warning."""
        result = moderate("Honestly the villain is an idiot, and I love it.")

        assert result.allowed
        assert result.severity == Severity.MODERATE
        assert "Please keep the discussion respectful" in result.warnings

    def test_prose_with_keyword_substring_is_allowed(self) -> None:
        result = moderate("I can't react now, this chapter broke me!")

        assert result.allowed
        assert PROMOTIONAL_WARNING not in result.warnings

    def test_promotional_phrase_only_warns(self) -> None:
        result = moderate("They only had limited time before the gate closed.")

        assert result.allowed
        assert result.blocking_reason is None
        assert PROMOTIONAL_WARNING in result.warnings

    def test_low_quality_adds_advisory(self) -> None:
        result = moderate("ok")

        assert result.allowed
        assert "Consider adding more detail to your comment" in result.warnings


class TestCleanContent:
    """Tests for storage-time cleaning."""

    def test_masks_moderate_terms(self) -> None:
        assert clean_content("what an idiot") == "what an *****"

    def test_uses_admin_replacement(self) -> None:
        terms = [_term("heck", Severity.MODERATE, replacement="h*ck")]

        assert clean_content("what the heck", terms) == "what the h*ck"

    def test_escapes_html_but_keeps_basic_tags(self) -> None:
        cleaned = clean_content("<script>alert(1)</script> <b>bold</b>")

        assert cleaned == "&lt;script&gt;alert(1)&lt;/script&gt; <b>bold</b>"

    def test_strips_surrounding_whitespace(self) -> None:
        assert clean_content("  Great chapter!  ") == "Great chapter!"
