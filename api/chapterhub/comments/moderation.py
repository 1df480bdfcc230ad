"""Content moderation filter for comments.

Pure, synchronous checks with no I/O:
- Structural validation (empty, length, caps, repeated characters, links)
- Severity classification against a classified term list
- Spam detection against the author's recent submissions
- A 0-100 quality heuristic used for badges only

``moderate()`` combines them into a single verdict. Blocking order is
empty, too long, severe, spam; everything else is a warning.
"""

import html
import re
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from difflib import SequenceMatcher

from .models import BannedTerm, Severity


DEFAULT_MAX_LENGTH = 2000

# Blocking reasons
EMPTY = "empty"
TOO_LONG = "too_long"
SEVERE_CONTENT = "severe_content"
SPAM = "spam"

BLOCKING_MESSAGES = {
    EMPTY: "Comment cannot be empty",
    TOO_LONG: "Comment is too long",
    SEVERE_CONTENT: "Comment contains language that is not allowed",
    SPAM: "Comment looks like spam",
}

# Structural thresholds
CAPS_RATIO = 0.7
CAPS_MIN_LETTERS = 10
REPEATED_CHAR_PATTERN = re.compile(r"(.)\1{5,}", re.DOTALL)
URL_PATTERN = re.compile(r"(?:https?://|www\.)[^\s]+", re.IGNORECASE)

# Spam thresholds
NEAR_DUPLICATE_RATIO = 0.9
NEAR_DUPLICATE_MIN_LENGTH = 10
MIN_REPETITIONS = 4
MAX_URLS = 3
REPEATED_PATTERN = re.compile(r"(.{3,20}?)\1{3,}", re.DOTALL)

PROMOTIONAL_WARNING = "Comment looks promotional"

SPAM_KEYWORDS = {
    "viagra",
    "casino",
    "lottery",
    "click here",
    "free money",
    "act now",
    "limited time",
    "buy now",
    "free coins",
    "read it first on",
}

# Built-in classified terms; admin-managed banned terms are merged on top
DEFAULT_TERMS: dict[str, Severity] = {
    "kill yourself": Severity.SEVERE,
    "kys": Severity.SEVERE,
    "go die": Severity.SEVERE,
    "i will kill you": Severity.SEVERE,
    "idiot": Severity.MODERATE,
    "stupid": Severity.MODERATE,
    "moron": Severity.MODERATE,
    "dumb": Severity.MODERATE,
    "trash": Severity.MODERATE,
    "shut up": Severity.MODERATE,
    "damn": Severity.MODERATE,
    "crap": Severity.MODERATE,
}

HIGH_QUALITY_SCORE = 80
LOW_QUALITY_SCORE = 60

# Basic formatting tags kept after escaping
ALLOWED_TAGS = {"b", "i", "em", "strong", "code"}


@dataclass(frozen=True)
class StructureCheck:
    """Structural validation outcome. Errors block, warnings do not."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class SeverityCheck:
    severity: Severity = Severity.NONE
    matched_terms: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SpamCheck:
    """Blocking spam verdict. Promotional keywords only warn."""

    is_spam: bool = False
    reason: str | None = None
    keywords: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ModerationResult:
    """Combined verdict for a piece of content."""

    allowed: bool
    blocking_reason: str | None
    warnings: list[str]
    quality_score: int
    severity: Severity = Severity.NONE

    @property
    def message(self) -> str | None:
        if self.blocking_reason is None:
            return None
        return BLOCKING_MESSAGES[self.blocking_reason]

    @property
    def quality_badge(self) -> str | None:
        return quality_badge(self.quality_score)


# ==============================================================================
# Structural validation
# ==============================================================================


def validate_structure(
    content: str, max_length: int = DEFAULT_MAX_LENGTH
) -> StructureCheck:
    """Check emptiness and length, and warn on shouting, floods and links."""
    if not content or not content.strip():
        return StructureCheck(errors=[EMPTY])
    if len(content) > max_length:
        return StructureCheck(errors=[TOO_LONG])

    warnings = []

    letters = [c for c in content if c.isalpha()]
    if len(letters) >= CAPS_MIN_LETTERS:
        upper = sum(1 for c in letters if c.isupper())
        if upper / len(letters) >= CAPS_RATIO:
            warnings.append("Avoid writing in all caps")

    if REPEATED_CHAR_PATTERN.search(content):
        warnings.append("Avoid repeating the same character")

    if URL_PATTERN.search(content):
        warnings.append("Links in comments may be removed by moderators")

    return StructureCheck(warnings=warnings)


# ==============================================================================
# Severity classification
# ==============================================================================


def _term_table(
    terms: Iterable[BannedTerm] | None,
) -> dict[str, tuple[Severity, str | None]]:
    table: dict[str, tuple[Severity, str | None]] = {
        term: (severity, None) for term, severity in DEFAULT_TERMS.items()
    }
    for banned in terms or ():
        table[banned.term.lower()] = (banned.severity, banned.replacement)
    return table


def _term_pattern(term: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!\w){re.escape(term)}(?!\w)", re.IGNORECASE)


def classify_severity(
    content: str, terms: Iterable[BannedTerm] | None = None
) -> SeverityCheck:
    """Classify content as none, moderate or severe.

    The overall severity is the worst matched term.
    """
    matched: list[str] = []
    severity = Severity.NONE

    for term, (term_severity, _) in _term_table(terms).items():
        if term_severity == Severity.NONE:
            continue
        if _term_pattern(term).search(content):
            matched.append(term)
            if term_severity == Severity.SEVERE:
                severity = Severity.SEVERE
            elif severity == Severity.NONE:
                severity = Severity.MODERATE

    return SeverityCheck(severity=severity, matched_terms=sorted(matched))


# ==============================================================================
# Spam detection
# ==============================================================================


def normalize(content: str) -> str:
    """Lowercase, drop punctuation and collapse whitespace."""
    text = re.sub(r"[^\w\s]", "", content.lower())
    return re.sub(r"\s+", " ", text).strip()


def _is_near_duplicate(candidate: str, previous: str) -> bool:
    if candidate == previous:
        return True
    if min(len(candidate), len(previous)) < NEAR_DUPLICATE_MIN_LENGTH:
        return False
    return SequenceMatcher(None, candidate, previous).ratio() >= NEAR_DUPLICATE_RATIO


def _has_repetition(content: str) -> bool:
    words = normalize(content).split()
    if len(words) >= MIN_REPETITIONS:
        _, count = Counter(words).most_common(1)[0]
        if count >= MIN_REPETITIONS and count / len(words) > 0.5:
            return True

    compact = re.sub(r"\s+", "", content.lower())
    for match in REPEATED_PATTERN.finditer(compact):
        if len(match.group(0)) > len(compact) / 2:
            return True
    return False


def find_spam_keywords(content: str) -> list[str]:
    """Promotional phrases present as whole words."""
    return sorted(
        keyword for keyword in SPAM_KEYWORDS if _term_pattern(keyword).search(content)
    )


def detect_spam(content: str, history: Sequence[str] = ()) -> SpamCheck:
    """Flag duplicates of recent submissions and self-repeating text.

    Args:
        content: Candidate text
        history: The author's recent submissions, newest first
    """
    candidate = normalize(content)

    for previous in history:
        if candidate and _is_near_duplicate(candidate, normalize(previous)):
            return SpamCheck(is_spam=True, reason="duplicate")

    if _has_repetition(content):
        return SpamCheck(is_spam=True, reason="repetition")

    if len(URL_PATTERN.findall(content)) > MAX_URLS:
        return SpamCheck(is_spam=True, reason="links")

    return SpamCheck(keywords=find_spam_keywords(content))


# ==============================================================================
# Quality score
# ==============================================================================


def score_quality(content: str) -> int:
    """Heuristic 0-100 score from length, vocabulary, punctuation and casing."""
    text = content.strip()
    words = normalize(text).split()
    if not words:
        return 0

    # Length (max 35)
    if len(words) >= 8:
        score = 35
    elif len(words) >= 4:
        score = 25
    elif len(words) >= 2:
        score = 15
    else:
        score = 5

    # Vocabulary variety (max 30)
    score += round(30 * len(set(words)) / len(words))

    # Punctuation (max 15)
    if re.search(r"[!?.]{3,}", text):
        score += 5
    elif re.search(r"[.,!?;:]", text):
        score += 10
        if text[-1] in ".!?":
            score += 5

    # Casing (max 20)
    first_letter = next((c for c in text if c.isalpha()), "")
    if first_letter.isupper():
        score += 10
    letters = [c for c in text if c.isalpha()]
    if letters and sum(1 for c in letters if c.isupper()) / len(letters) < CAPS_RATIO:
        score += 10

    return max(0, min(100, score))


def quality_badge(score: int) -> str | None:
    if score >= HIGH_QUALITY_SCORE:
        return "high_quality"
    if score < LOW_QUALITY_SCORE:
        return "needs_improvement"
    return None


# ==============================================================================
# Combined verdict
# ==============================================================================


def moderate(
    content: str,
    history: Sequence[str] = (),
    terms: Iterable[BannedTerm] | None = None,
    max_length: int = DEFAULT_MAX_LENGTH,
) -> ModerationResult:
    """Run every check and decide whether the content may be posted."""
    terms = list(terms or ())

    structure = validate_structure(content, max_length)
    if not structure.is_valid:
        return ModerationResult(
            allowed=False,
            blocking_reason=structure.errors[0],
            warnings=[],
            quality_score=0,
        )

    quality = score_quality(content)
    severity = classify_severity(content, terms)
    if severity.severity == Severity.SEVERE:
        return ModerationResult(
            allowed=False,
            blocking_reason=SEVERE_CONTENT,
            warnings=structure.warnings,
            quality_score=quality,
            severity=Severity.SEVERE,
        )

    spam = detect_spam(content, history)
    if spam.is_spam:
        return ModerationResult(
            allowed=False,
            blocking_reason=SPAM,
            warnings=structure.warnings,
            quality_score=quality,
            severity=severity.severity,
        )

    warnings = list(structure.warnings)
    if severity.severity == Severity.MODERATE:
        warnings.append("Please keep the discussion respectful")
    if spam.keywords:
        warnings.append(PROMOTIONAL_WARNING)
    if quality < LOW_QUALITY_SCORE:
        warnings.append("Consider adding more detail to your comment")

    return ModerationResult(
        allowed=True,
        blocking_reason=None,
        warnings=warnings,
        quality_score=quality,
        severity=severity.severity,
    )


def clean_content(content: str, terms: Iterable[BannedTerm] | None = None) -> str:
    """Mask moderate terms and escape HTML before storage.

    Terms with an admin-provided replacement use it; others are starred out.
    Basic formatting tags survive escaping.
    """
    cleaned = content.strip()
    for term, (severity, replacement) in _term_table(terms).items():
        if severity != Severity.MODERATE:
            continue
        mask = replacement or "*" * len(term)
        cleaned = _term_pattern(term).sub(lambda _m, mask=mask: mask, cleaned)

    escaped = html.escape(cleaned, quote=False)
    for tag in ALLOWED_TAGS:
        escaped = escaped.replace(f"&lt;{tag}&gt;", f"<{tag}>")
        escaped = escaped.replace(f"&lt;/{tag}&gt;", f"</{tag}>")
    return escaped
