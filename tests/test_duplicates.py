# tests/test_duplicates.py
from catalog_crawler.duplicates import DuplicateDetector


def test_first_occurrence_is_not_duplicate():
    sut = DuplicateDetector()

    assert sut.is_duplicate("https://example.com/a") is False
    assert sut.unique_count == 1
    assert sut.rejected_count == 0


def test_repeats_count_as_rejected_without_growing_unique():
    """
    Every call after the first with the same string returns True and only
    bumps the rejected counter.
    """
    sut = DuplicateDetector()
    sut.is_duplicate("https://example.com/a")

    assert sut.is_duplicate("https://example.com/a") is True
    assert sut.is_duplicate("https://example.com/a") is True
    assert sut.unique_count == 1
    assert sut.rejected_count == 2


def test_matching_is_byte_exact():
    sut = DuplicateDetector()
    sut.is_duplicate("https://example.com/a")

    assert sut.is_duplicate("https://example.com/A") is False
    assert sut.is_duplicate("https://example.com/a/") is False
    assert sut.unique_count == 3
