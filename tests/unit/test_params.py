"""Unit tests for parameter sets and canonical query strings."""

from decimal import Decimal

import pytest

from yunbi_client.api.params import (
    ABSENT,
    ParameterSet,
    canonicalize,
    clean_up_params,
    format_value,
    is_present,
)


class TestCanonicalize:
    """Test cases for canonicalize()."""

    def test_sorted_by_key(self):
        assert canonicalize({'b': 2, 'a': 1}) == 'a=1&b=2'

    def test_insertion_order_does_not_matter(self):
        assert canonicalize({'a': 1, 'b': 2}) == canonicalize({'b': 2, 'a': 1})

    def test_absent_values_are_dropped(self):
        assert canonicalize({'a': 1, 'b': None}) == canonicalize({'a': 1})
        assert canonicalize({'a': 1, 'b': ABSENT}) == 'a=1'

    def test_falsy_values_are_kept(self):
        assert canonicalize({'page': 0, 'note': ''}) == 'note=&page=0'

    def test_empty_params(self):
        assert canonicalize({}) == ''
        assert canonicalize(None) == ''
        assert canonicalize({'a': None}) == ''

    def test_reserved_characters_are_encoded(self):
        query = canonicalize({'market': 'eth cny', 'note': 'a&b=c/d'})
        assert query == 'market=eth%20cny&note=a%26b%3Dc%2Fd'

    def test_unreserved_characters_are_kept(self):
        assert canonicalize({'v': "a-_.!~*'()"}) == "v=a-_.!~*'()"

    def test_non_ascii_is_utf8_encoded(self):
        assert canonicalize({'name': 'é'}) == 'name=%C3%A9'

    def test_sorted_by_encoded_key_not_full_pair(self):
        # 'a' sorts before 'a-' even though '-' < '=' byte-wise
        assert canonicalize({'a-': 2, 'a': 1}) == 'a=1&a-=2'

    def test_uppercase_keys_sort_first(self):
        assert canonicalize({'a': 1, 'B': 2}) == 'B=2&a=1'

    def test_accepts_parameter_set(self):
        params = ParameterSet(market='ethcny', limit=None)
        assert canonicalize(params) == 'market=ethcny'

    def test_does_not_mutate_input(self):
        params = {'b': 2, 'a': None}
        canonicalize(params)
        assert params == {'b': 2, 'a': None}


class TestFormatValue:
    """Test cases for scalar rendering."""

    @pytest.mark.parametrize('value, expected', [
        ('ethcny', 'ethcny'),
        (100, '100'),
        (1.0, '1'),
        (0.5, '0.5'),
        (True, 'true'),
        (False, 'false'),
        (Decimal('1.50'), '1.50'),
    ])
    def test_format_value(self, value, expected):
        assert format_value(value) == expected


class TestParameterSet:
    """Test cases for ParameterSet."""

    def test_present_excludes_absent_entries(self):
        params = ParameterSet({'market': 'ethcny', 'limit': ABSENT}, period=None)
        assert params.present() == {'market': 'ethcny'}

    def test_mapping_interface_keeps_absent_entries(self):
        params = ParameterSet(market='ethcny', limit=ABSENT)
        assert len(params) == 2
        assert set(params) == {'market', 'limit'}
        assert params['limit'] is ABSENT

    def test_with_values_returns_copy(self):
        params = ParameterSet(market='ethcny')
        extended = params.with_values(tonce=1000)

        assert dict(params) == {'market': 'ethcny'}
        assert dict(extended) == {'market': 'ethcny', 'tonce': 1000}

    def test_source_mapping_is_copied(self):
        source = {'market': 'ethcny'}
        params = ParameterSet(source)
        source['market'] = 'btccny'
        assert params['market'] == 'ethcny'

    def test_absent_is_falsy_singleton(self):
        assert not ABSENT
        assert type(ABSENT)() is ABSENT
        assert repr(ABSENT) == 'ABSENT'


def test_is_present():
    assert is_present(0)
    assert is_present('')
    assert not is_present(None)
    assert not is_present(ABSENT)


def test_clean_up_params():
    assert clean_up_params({'a': 1, 'b': None, 'c': ABSENT}) == {'a': 1}
    assert clean_up_params(None) == {}
