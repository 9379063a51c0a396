"""
tests/test_program_table.py — Block ordering, column layout and row assembly.
"""

from datetime import date

import pytest

from models import Block, YearlyApplication
from program_table import block_sort_key, build_columns, build_program_table, build_row, sorted_blocks


def test_sorted_blocks_numeric_before_alphabetic():
    assert sorted_blocks(['10', '2', 'A', '1']) == ['1', '2', '10', 'A']


def test_sorted_blocks_records():
    blocks = [Block(1, 1, 'B'), Block(2, 1, '10'), Block(3, 1, 'A'), Block(4, 1, '9')]
    assert [b.label for b in sorted_blocks(blocks)] == ['9', '10', 'A', 'B']


def test_block_sort_key_mixed_labels():
    assert block_sort_key('2') < block_sort_key('10') < block_sort_key('A') < block_sort_key('B')
    # Mixed alphanumeric labels sort with the alphabetic group
    assert block_sort_key('100') < block_sort_key('1A')


class TestBuildColumns:
    def test_layout_per_year(self):
        columns = build_columns(date(2024, 1, 1), 2)
        assert len(columns) == 28
        assert [c['type'] for c in columns[:14]] == ['month'] * 13 + ['summary']
        assert columns[0]['period_key'] == '2024-01-01'
        assert columns[12]['period_key'] == '2025-01-01'
        assert columns[14]['period_key'] == '2025-01-01'
        assert columns[14]['year_number'] == 2

    def test_default_twelve_years(self):
        columns = build_columns(date(2024, 1, 1))
        assert len(columns) == 12 * 14
        summaries = [c for c in columns if c['type'] == 'summary']
        assert [c['year_number'] for c in summaries] == list(range(1, 13))

    def test_summary_windows_chain(self):
        columns = build_columns(date(2024, 2, 1), 3)
        summaries = [c for c in columns if c['type'] == 'summary']
        assert summaries[0]['window_start'] == date(2024, 2, 1)
        assert summaries[0]['window_end'] == date(2025, 2, 1)
        for current, following in zip(summaries, summaries[1:]):
            assert following['window_start'] == current['window_end']

    def test_month_labels(self):
        columns = build_columns(date(2024, 2, 1), 1)
        assert columns[0]['label'] == 'Feb'
        assert columns[12]['label'] == 'Feb'
        assert columns[0]['date'] != columns[12]['date']


class TestBuildRow:
    @pytest.fixture
    def records(self):
        return [
            YearlyApplication(1, 1, 1, date(2024, 1, 1), 'Urea', 0.5),
            YearlyApplication(2, 1, 1, date(2024, 1, 1), 'NPK', 0.3),
            YearlyApplication(3, 1, 1, date(2025, 1, 1), 'Urea', 1.0),
            YearlyApplication(4, 1, 2, date(2024, 6, 1), 'MOP', 2.0),
        ]

    def test_cells_align_with_columns(self, records):
        columns = build_columns(date(2024, 1, 1), 2)
        row = build_row(Block(1, 1, '1'), columns, records)
        assert len(row['cells']) == len(columns)
        assert row['cells'][0]['entries'] == [
            {'fertilizer_name': 'Urea', 'amount_per_palm': 0.5},
            {'fertilizer_name': 'NPK', 'amount_per_palm': 0.3},
        ]

    def test_shared_month_shows_under_both_years(self, records):
        columns = build_columns(date(2024, 1, 1), 2)
        row = build_row(Block(1, 1, '1'), columns, records)
        assert row['cells'][12]['entries'] == [{'fertilizer_name': 'Urea', 'amount_per_palm': 1.0}]
        assert row['cells'][14]['entries'] == row['cells'][12]['entries']

    def test_summary_cells(self, records):
        columns = build_columns(date(2024, 1, 1), 2)
        row = build_row(Block(1, 1, '1'), columns, records)
        year_one = row['cells'][13]
        assert year_one['type'] == 'summary'
        assert year_one['totals'] == {'Urea': 1.5, 'NPK': 0.3}
        assert year_one['grand_total'] == pytest.approx(1.8)
        year_two = row['cells'][27]
        assert year_two['totals'] == {'Urea': 1.0}

    def test_trailing_total_counts_shared_month_once(self, records):
        columns = build_columns(date(2024, 1, 1), 2)
        row = build_row(Block(1, 1, '1'), columns, records)
        assert row['totals']['by_fertilizer'] == {'Urea': 1.5, 'NPK': 0.3}
        assert row['totals']['grand_total'] == pytest.approx(1.8)

    def test_records_outside_program_are_not_totalled(self):
        records = [YearlyApplication(1, 1, 1, date(2023, 12, 1), 'Urea', 5.0)]
        row = build_row(Block(1, 1, '1'), build_columns(date(2024, 1, 1), 1), records)
        assert row['totals'] == {'by_fertilizer': {}, 'grand_total': 0.0}


def test_program_table_keeps_empty_blocks():
    blocks = [Block(1, 1, 'A'), Block(2, 1, '2'), Block(3, 1, '1')]
    records = [YearlyApplication(1, 1, 2, date(2024, 1, 1), 'Urea', 0.5)]
    table = build_program_table(blocks, records, date(2024, 1, 1), year_count=1)
    assert [row['block'].label for row in table['rows']] == ['1', '2', 'A']
    empty = table['rows'][0]
    assert len(empty['cells']) == 14
    assert all(c['entries'] == [] for c in empty['cells'] if c['type'] == 'month')
    assert empty['totals']['grand_total'] == 0.0
    assert table['rows'][1]['totals']['grand_total'] == 0.5


def test_program_table_without_blocks():
    table = build_program_table([], [], date(2024, 1, 1), year_count=1)
    assert table['rows'] == []
    assert len(table['columns']) == 14
