"""
Unit tests for report date parsing.
"""

from datetime import datetime

import pytest

from retail.exceptions import InvalidRequestError
from retail.utils.date_format import parse_as_of


class TestParseAsOf:

    def test_date_only_means_end_of_day(self):
        assert parse_as_of('2024-05-01') == datetime(2024, 5, 1, 23, 59, 59, 999999)

    def test_datetime_kept_as_given(self):
        assert parse_as_of('2024-05-01T10:30:00') == datetime(2024, 5, 1, 10, 30)

    def test_surrounding_whitespace_ignored(self):
        assert parse_as_of(' 2024-05-01 ').day == 1

    @pytest.mark.parametrize('raw', [None, '', '   '])
    def test_missing(self, raw):
        with pytest.raises(InvalidRequestError) as exc:
            parse_as_of(raw)
        assert exc.value.message == 'date is required'

    @pytest.mark.parametrize('raw', ['yesterday', '2024-13-01', '01/05/2024'])
    def test_not_iso(self, raw):
        with pytest.raises(InvalidRequestError) as exc:
            parse_as_of(raw)
        assert exc.value.message == 'date must be an ISO 8601 date or datetime'
