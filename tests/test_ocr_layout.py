"""레이아웃 분석(단어 → 줄) 테스트."""

from clipocr.ocr.base import WordRegion
from clipocr.ocr.layout import group_words_into_lines


def word(x1, y1, x2, y2):
    return WordRegion.from_bbox([x1, y1, x2, y2])


class TestGroupWordsIntoLines:
    def test_empty(self):
        assert group_words_into_lines([]) == []

    def test_single_word(self):
        lines = group_words_into_lines([word(0, 0, 30, 10)])
        assert len(lines) == 1
        assert lines[0].bbox == [0, 0, 30, 10]

    def test_two_rows_from_shuffled_input(self):
        """탐지 순서와 무관하게 위→아래, 왼쪽→오른쪽."""
        second_row = word(10, 50, 40, 70)
        right = word(60, 12, 100, 30)
        left = word(10, 10, 50, 30)

        lines = group_words_into_lines([second_row, right, left])

        assert len(lines) == 2
        assert lines[0].words == [left, right]
        assert lines[1].words == [second_row]

    def test_slightly_misaligned_words_same_line(self):
        lines = group_words_into_lines([word(0, 0, 20, 20), word(25, 4, 45, 24)])
        assert len(lines) == 1

    def test_large_gap_splits_line(self):
        """같은 높이라도 간격이 넓으면 별도 줄 (예: 2단 구성)."""
        left = word(0, 0, 20, 10)
        right = word(200, 0, 220, 10)

        lines = group_words_into_lines([right, left])

        assert len(lines) == 2
        assert lines[0].words == [left]
        assert lines[1].words == [right]

    def test_gap_factor(self):
        words = [word(0, 0, 20, 10), word(50, 0, 70, 10)]
        assert len(group_words_into_lines(words, gap_factor=2.0)) == 2
        assert len(group_words_into_lines(words, gap_factor=5.0)) == 1

    def test_every_word_kept(self):
        words = [word(i * 30, (i % 3) * 40, i * 30 + 20, (i % 3) * 40 + 15) for i in range(9)]
        lines = group_words_into_lines(words)
        assert sum(len(ln.words) for ln in lines) == 9
