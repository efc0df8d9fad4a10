import pytest

from mockpact import EachLike, Equals, Includes, Like, Term
from mockpact.mock.matching import matches, nice_type
from mockpact.mock.result import (ABSENT, LENGTH_MISMATCH, MISSING_KEY, REGEX_MISMATCH, TOO_FEW_ELEMENTS,
                                  TYPE_MISMATCH, VALUE_MISMATCH, format_path)


def reasons(result):
    return [(format_path(d.path), d.reason) for d in result.diagnostics]


@pytest.mark.parametrize('value, name', [
    (ABSENT, 'absent'),
    (None, 'null'),
    (True, 'boolean'),
    (1, 'number'),
    (1.5, 'number'),
    ('s', 'string'),
    ([], 'array'),
    ({}, 'object'),
])
def test_nice_type(value, name):
    assert nice_type(value) == name


def test_literal_values_must_be_equal():
    assert matches({'name': 'billy'}, {'name': 'billy'})
    assert reasons(matches({'name': 'billy'}, {'name': 'sam'})) == [('$.name', VALUE_MISMATCH)]


def test_extra_keys_are_ignored():
    assert matches({'a': 1}, {'a': 1, 'b': 2}).matched


def test_booleans_are_not_numbers():
    assert reasons(matches(1, True)) == [('$', VALUE_MISMATCH)]
    assert reasons(matches(Like(1), True)) == [('$', TYPE_MISMATCH)]
    assert reasons(matches(Like(True), 0)) == [('$', TYPE_MISMATCH)]


def test_like_matches_by_type():
    assert matches(Like('billy'), 'sam').matched
    assert matches(Like(1), 2.5).matched
    assert reasons(matches(Like('billy'), 1)) == [('$', TYPE_MISMATCH)]


def test_like_cascades_into_containers():
    pattern = Like({'name': 'billy', 'age': 3, 'address': {'city': 'Melbourne'}})
    assert matches(pattern, {'name': 'sam', 'age': 40, 'address': {'city': 'Sydney'}}).matched
    result = matches(pattern, {'name': 'sam', 'age': '40', 'address': {'city': 7}})
    assert reasons(result) == [('$.age', TYPE_MISMATCH), ('$.address.city', TYPE_MISMATCH)]


def test_equals_switches_back_to_values():
    pattern = Like({'name': 'billy', 'kind': Equals('user')})
    assert matches(pattern, {'name': 'sam', 'kind': 'user'}).matched
    assert reasons(matches(pattern, {'name': 'sam', 'kind': 'admin'})) == [('$.kind', VALUE_MISMATCH)]


def test_term():
    pattern = Term('admin|user|guest', 'admin')
    assert matches(pattern, 'guest').matched
    assert reasons(matches(pattern, 'root')) == [('$', REGEX_MISMATCH)]
    assert reasons(matches(pattern, 5)) == [('$', TYPE_MISMATCH)]


def test_term_is_not_anchored():
    assert matches(Term(r'application\/json', 'application/json'), 'application/json; charset=utf-8').matched
    assert not matches(Term(r'^[0-9]+$', '1'), 'a1').matched


def test_includes():
    pattern = Includes('spam', 'spam')
    assert matches(pattern, 'lovely spam').matched
    assert reasons(matches(pattern, 'eggs')) == [('$', VALUE_MISMATCH)]


def test_each_like():
    pattern = EachLike({'id': 1, 'name': 'billy'})
    assert matches(pattern, [{'id': 2, 'name': 'sam'}, {'id': 3, 'name': 'bob'}]).matched


def test_each_like_reports_the_element_index():
    pattern = EachLike({'id': 1})
    assert reasons(matches(pattern, [{'id': 2}, {'id': 'x'}, {}])) == [
        ('$[1].id', TYPE_MISMATCH),
        ('$[2].id', MISSING_KEY),
    ]


def test_each_like_minimum():
    result = matches(EachLike(1, minimum=2), [1])
    assert reasons(result) == [('$', TOO_FEW_ELEMENTS)]
    assert result.diagnostics[0].expected == 2
    assert result.diagnostics[0].actual == 1


def test_each_like_empty_list_is_too_few():
    assert reasons(matches(EachLike(1), [])) == [('$', TOO_FEW_ELEMENTS)]


def test_missing_keys_are_all_reported():
    result = matches({'a': 1, 'b': 2, 'c': {'d': Like(3)}}, {'b': 2})
    assert reasons(result) == [('$.a', MISSING_KEY), ('$.c', MISSING_KEY)]
    assert result.diagnostics[0].actual is ABSENT
    assert result.diagnostics[1].expected == {'d': 3}


def test_kind_mismatch_stops_descent():
    result = matches({'a': {'b': 1, 'c': 2}}, {'a': [1, 2]})
    assert reasons(result) == [('$.a', TYPE_MISMATCH)]
    assert result.diagnostics[0].expected == 'object'


def test_each_like_against_object():
    assert reasons(matches(EachLike({'b': 1}), {'b': 1})) == [('$', TYPE_MISMATCH)]


def test_lists_are_positional():
    assert matches([1, Like('x')], [1, 'y']).matched
    assert reasons(matches([1, Like('x')], [2, 'y'])) == [('$[0]', VALUE_MISMATCH)]


def test_list_length_mismatch_stops_descent():
    result = matches([1, 2], [3, 4, 5])
    assert reasons(result) == [('$', LENGTH_MISMATCH)]


def test_null():
    assert matches(None, None).matched
    assert matches({'manager': Like(None)}, {'manager': None}).matched
    assert reasons(matches(Like(None), 0)) == [('$', TYPE_MISMATCH)]


def test_absent_body():
    assert reasons(matches({'a': 1}, ABSENT, ('body',))) == [('body', TYPE_MISMATCH)]


def test_diagnostic_text():
    result = matches(Term('[0-9]+', '1'), 'abc')
    assert str(result.diagnostics[0]) == "$: regex mismatch (expected '[0-9]+', got 'abc')"


def test_login_request_body():
    pattern = {'username': Like('billy'), 'password': Like('issilly')}
    assert matches(pattern, {'username': 'x', 'password': 'y'}).matched
    assert reasons(matches(pattern, {'user': 'x'})) == [('$.username', MISSING_KEY), ('$.password', MISSING_KEY)]
