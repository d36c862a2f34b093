"""Tests for fuzzy duplicate detection.

These tests verify:
- All three gates (amount, date, description) are required
- Scores rank matches but never flag on their own
- Candidates are annotated without being mutated or reordered
"""

from datetime import date

import pytest
from fixtures import make_candidate, make_existing

from ledger_import.config import DuplicateDetectionConfig
from ledger_import.matching.duplicates import DuplicateDetector


@pytest.fixture
def detector() -> DuplicateDetector:
    return DuplicateDetector()


class TestCompare:
    """Test single candidate/existing comparison."""

    def test_scenario_reordered_description_next_day(self, detector) -> None:
        """Same amount, one day apart, same words in another order is a duplicate."""
        check = detector.compare(make_candidate(), make_existing())

        assert check.amount_match is True
        assert check.date_close is True
        assert check.similar_description is True
        assert check.jaccard == 1.0
        assert check.is_duplicate is True
        assert check.score == pytest.approx(1.0)

    def test_amount_gate_is_required(self, detector) -> None:
        """A different amount is never a duplicate, however similar the rest."""
        check = detector.compare(
            make_candidate(amount="100.00"),
            make_existing(amount="100.02"),
        )

        assert check.amount_match is False
        assert check.is_duplicate is False
        assert check.score == pytest.approx(0.5)

    def test_amount_within_tolerance(self, detector) -> None:
        """Test amounts one cent apart still match."""
        check = detector.compare(
            make_candidate(amount="100.00"),
            make_existing(amount="100.01"),
        )
        assert check.amount_match is True

    def test_date_gate(self, detector) -> None:
        """Three days apart exceeds the default two-day tolerance."""
        check = detector.compare(
            make_candidate(tx_date=date(2025, 7, 5)),
            make_existing(tx_date=date(2025, 7, 8)),
        )

        assert check.date_close is False
        assert check.is_duplicate is False
        assert check.score == pytest.approx(0.8)

    def test_date_gate_is_symmetric(self, detector) -> None:
        """Test the date gate works in both directions."""
        check = detector.compare(
            make_candidate(tx_date=date(2025, 7, 7)),
            make_existing(tx_date=date(2025, 7, 5)),
        )
        assert check.date_close is True

    def test_substring_description_counts_as_similar(self, detector) -> None:
        """Low token overlap still matches when one text contains the other."""
        check = detector.compare(
            make_candidate(description="SHELL"),
            make_existing(description="Shell Garage Main Road card purchase"),
        )

        assert check.jaccard < 0.55
        assert check.similar_description is True
        assert check.is_duplicate is True

    def test_dissimilar_description(self, detector) -> None:
        """Test unrelated descriptions do not match."""
        check = detector.compare(
            make_candidate(description="office rent july"),
            make_existing(description="groceries till slip"),
        )

        assert check.similar_description is False
        assert check.is_duplicate is False
        assert check.score == pytest.approx(0.7)

    def test_thresholds_from_config(self) -> None:
        """Test tolerances are taken from config."""
        detector = DuplicateDetector.from_config(
            DuplicateDetectionConfig(date_tolerance_days=5, amount_tolerance=1.0)
        )
        check = detector.compare(
            make_candidate(amount="100.00", tx_date=date(2025, 7, 1)),
            make_existing(amount="100.90", tx_date=date(2025, 7, 5)),
        )

        assert check.is_duplicate is True


class TestDetect:
    """Test annotation of candidate lists."""

    def test_flags_duplicate_with_ranked_matches(self, detector) -> None:
        """Test every duplicate is listed, highest score first."""
        existing = [
            make_existing("1", description="till slip groceries extra items bought"),
            make_existing("2"),
        ]

        [annotated] = detector.detect([make_candidate()], existing)

        assert annotated.duplicate_flag is True
        assert [m.existing_id for m in annotated.duplicate_matches] == ["1", "2"]
        assert all(m.score == pytest.approx(1.0) for m in annotated.duplicate_matches)

    def test_only_duplicates_listed(self, detector) -> None:
        """Comparisons failing a gate are not listed as matches."""
        existing = [
            make_existing("far", tx_date=date(2025, 8, 1)),
            make_existing("near"),
        ]

        [annotated] = detector.detect([make_candidate()], existing)

        assert [m.existing_id for m in annotated.duplicate_matches] == ["near"]

    def test_empty_history_flags_nothing(self, detector) -> None:
        """Test nothing is flagged without ledger history."""
        annotated = detector.detect([make_candidate(), make_candidate("5.00")], [])

        assert [c.duplicate_flag for c in annotated] == [False, False]
        assert all(c.duplicate_matches == [] for c in annotated)
        assert all(c.include_in_import is True for c in annotated)

    def test_order_and_length_preserved(self, detector) -> None:
        """Test output candidates follow input order."""
        candidates = [make_candidate(str(n)) for n in (3, 1, 2)]

        annotated = detector.detect(candidates, [make_existing(amount="1")])

        assert [c.amount for c in annotated] == [c.amount for c in candidates]
        assert [c.duplicate_flag for c in annotated] == [False, True, False]

    def test_inputs_not_mutated(self, detector) -> None:
        """Test detection returns new candidates."""
        candidate = make_candidate()

        [annotated] = detector.detect([candidate], [make_existing()])

        assert annotated is not candidate
        assert candidate.duplicate_flag is False
        assert candidate.include_in_import is None

    def test_explicit_include_choice_preserved(self, detector) -> None:
        """A flagged candidate the user already excluded stays excluded."""
        excluded = make_candidate(include_in_import=False)

        [annotated] = detector.detect([excluded], [make_existing()])

        assert annotated.duplicate_flag is True
        assert annotated.include_in_import is False

    def test_flagged_candidate_still_selected_by_default(self, detector) -> None:
        """Fuzzy flags are advisory; only the user deselects."""
        [annotated] = detector.detect([make_candidate()], [make_existing()])

        assert annotated.duplicate_flag is True
        assert annotated.is_selected is True

    def test_candidates_not_compared_with_each_other(self, detector) -> None:
        """Test candidates are only compared with ledger history."""
        annotated = detector.detect([make_candidate(), make_candidate()], [])

        assert not any(c.duplicate_flag for c in annotated)
