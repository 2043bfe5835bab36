from __future__ import annotations

from datetime import UTC, datetime

import pytest

from principia.learning.mastery import MasteryRecord, mastery_score, new_mastery_record, outcome_from_quality, record_outcome, summarize, weakest_first

NOW = datetime(2026, 3, 1, tzinfo=UTC)


def _record(principle_id: str, score: int, *, reviewed: int = 1, last: datetime | None = NOW) -> MasteryRecord:
  return MasteryRecord(id=f"m-{principle_id}", learner_id="learner-1", principle_id=principle_id, topic_id="t-1", mastery_score=score, times_reviewed=reviewed, last_reviewed_at=last)


@pytest.mark.parametrize(("correct", "reviewed", "expected"), [(0, 0, 0), (1, 1, 100), (1, 2, 50), (2, 3, 67), (1, 3, 33), (1, 8, 13), (0, 4, 0)])
def test_mastery_score_rounds_half_up(correct: int, reviewed: int, expected: int) -> None:
  assert mastery_score(correct, reviewed) == expected


@pytest.mark.parametrize(("correct", "reviewed"), [(3, 2), (-1, 2), (0, -1)])
def test_mastery_score_rejects_impossible_counts(correct: int, reviewed: int) -> None:
  with pytest.raises(ValueError):
    mastery_score(correct, reviewed)


def test_record_outcome_accumulates() -> None:
  record = new_mastery_record(record_id="m-1", learner_id="learner-1", principle_id="p-1", topic_id="t-1")
  record = record_outcome(record, was_correct=True, now=NOW)
  record = record_outcome(record, was_correct=False, now=NOW)
  record = record_outcome(record, was_correct=True, now=NOW)
  assert (record.times_reviewed, record.times_correct, record.mastery_score) == (3, 2, 67)
  assert record.last_reviewed_at == NOW


@pytest.mark.parametrize(("quality", "expected"), [(0, False), (2, False), (3, True), (5, True)])
def test_outcome_from_quality(quality: int, expected: bool) -> None:
  assert outcome_from_quality(quality) is expected


def test_weakest_first_orders_by_score_then_recency() -> None:
  older = datetime(2026, 1, 1, tzinfo=UTC)
  records = [
    _record("strong", 90),
    _record("recent", 40, last=NOW),
    _record("old", 40, last=older),
    _record("never", 40, reviewed=0, last=None),
    _record("weakest", 10),
  ]
  ordered = [record.principle_id for record in weakest_first(records)]
  assert ordered == ["weakest", "never", "old", "recent"]


def test_summarize_counts_and_averages() -> None:
  overview = summarize([_record("a", 100), _record("b", 80), _record("c", 55), _record("d", 0)])
  assert overview.tracked == 4
  assert overview.principles_mastered == 2
  assert overview.weak_principles_count == 2
  # 235 / 4 = 58.75
  assert overview.average_mastery == 59


def test_summarize_empty() -> None:
  overview = summarize([])
  assert overview.tracked == 0
  assert overview.average_mastery == 0
