"""Tests for QuickBooks name normalization and fuzzy matching."""

import pytest

from qbrecon.utils.similarity import (
    NORMALIZED_MATCH_SCORE,
    are_names_equivalent,
    calculate_similarity,
    find_similar,
    group_similar,
    normalize_qb_name,
)


class TestNormalizeQbName:
    """Tests for normalize_qb_name."""

    def test_ampersand_and_parenthetical(self):
        """Ampersands become 'and' and parenthetical notes are dropped."""
        assert normalize_qb_name("Auto & Travel Exp. (2024)") == "auto and travel expenses"

    def test_abbreviations_expanded(self):
        """Common bookkeeping abbreviations are spelled out."""
        assert normalize_qb_name("Office Svc") == "office service"
        assert normalize_qb_name("Meals & Ent.") == "meals and entertainment"
        assert normalize_qb_name("Property Mgmt") == "property management"

    def test_abbreviation_needs_word_boundary(self):
        """Abbreviations inside longer words are left alone."""
        assert normalize_qb_name("Expenses") == "expenses"
        assert normalize_qb_name("Rent") == "rent"

    def test_whitespace_collapsed(self):
        """Runs of whitespace collapse to one space."""
        assert normalize_qb_name("  Home   Office  ") == "home office"

    def test_empty(self):
        """Empty names normalize to an empty string."""
        assert normalize_qb_name("") == ""


class TestCalculateSimilarity:
    """Tests for calculate_similarity."""

    def test_identical_after_normalization(self):
        """Names with the same normalized form score 1.0."""
        assert calculate_similarity("Auto Exp", "auto expenses") == 1.0

    def test_edit_distance(self):
        """Scores are one minus the distance over the longer length."""
        # "office supplies" vs "office supplys": two edits over fifteen characters
        assert calculate_similarity("Office Supplies", "Office Supplys") == pytest.approx(1 - 2 / 15)

    def test_empty_scores_zero(self):
        """An empty side scores zero."""
        assert calculate_similarity("abc", "") == 0.0


class TestFindSimilar:
    """Tests for find_similar."""

    def test_excludes_same_name(self):
        """Candidates equal to the target ignoring case are skipped."""
        matches = find_similar("Office Supplies", ["office supplies ", "Office Supplys", "Rent"])
        assert [m.name for m in matches] == ["Office Supplys"]

    def test_normalized_match_scores_high(self):
        """A candidate matching only after normalization scores 0.99."""
        matches = find_similar("Auto Exp", ["Auto Expenses"])
        assert matches[0].similarity == NORMALIZED_MATCH_SCORE

    def test_sorted_by_score(self):
        """Best matches come first."""
        matches = find_similar("Office Supplies", ["Office Supply", "Office Supplies (old)"])
        assert matches[0].name == "Office Supplies (old)"
        assert matches[0].similarity >= matches[-1].similarity

    def test_threshold(self):
        """Candidates below the threshold are dropped."""
        assert find_similar("Office Supplies", ["Office Supplys"], threshold=0.95) == []

    def test_empty_target(self):
        """An empty target matches nothing."""
        assert find_similar("", ["Rent"]) == []


def test_group_similar():
    """Each unused name seeds a group of its look-alikes."""
    groups = group_similar(["Office Supplies", "Rent", "Office Supplys"])
    assert groups == [["Office Supplies", "Office Supplys"], ["Rent"]]


def test_are_names_equivalent():
    """Equivalence compares normalized forms."""
    assert are_names_equivalent("Meals & Ent.", "meals and entertainment")
    assert not are_names_equivalent("Rent", "Utilities")
    assert not are_names_equivalent("", "")
