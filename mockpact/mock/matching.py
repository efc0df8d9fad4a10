"""Match actual request data against pattern trees built from matchers.

Patterns are plain JSON-like values (literal scalars, dicts and lists)
with Matcher instances anywhere in the tree:

* literal scalars must be equal (and of the same JSON type)
* `Like` switches to type matching for the value and everything below it
* `Equals` switches back to value matching
* `Term` searches the actual string for the regular expression
* `EachLike` requires a list of at least `minimum` elements, each matched
  by type against the example element
* dicts require each of their keys to be present and to match, extra keys
  in the actual data are ignored
* lists are matched position by position and must have the same length

A mismatch in the kind of a value (an object where an array was expected)
stops matching below that point, but every other mismatch is collected so
that the caller gets a full report.
"""
import logging
from collections.abc import Mapping
from urllib.parse import parse_qs

from .headers import header_values_equal
from .matchers import EachLike, Equals, Includes, Like, Term, get_generated_values
from .result import (ABSENT, LENGTH_MISMATCH, MISSING_KEY, REGEX_MISMATCH, TOO_FEW_ELEMENTS, TYPE_MISMATCH,
                     VALUE_MISMATCH, MatchResult, format_path)

log = logging.getLogger(__name__)


def nice_type(obj):
    """Turn our Python type name into a JSON type name.
    """
    if obj is ABSENT:
        return 'absent'
    if obj is None:
        return 'null'
    if isinstance(obj, bool):
        return 'boolean'
    if isinstance(obj, (int, float)):
        return 'number'
    if isinstance(obj, str):
        return 'string'
    if isinstance(obj, (list, tuple)):
        return 'array'
    if isinstance(obj, Mapping):
        return 'object'
    return type(obj).__name__


class StructuralMatcher:
    def __init__(self, result):
        self.result = result

    def compare(self, pattern, actual, path, by_type=False):
        log.debug(f'compare pattern={pattern!r} actual={actual!r} path={format_path(path)} by_type={by_type}')
        if isinstance(pattern, Like):
            return self.compare(pattern.matcher, actual, path, by_type=True)
        if isinstance(pattern, Equals):
            return self.compare(pattern.matcher, actual, path, by_type=False)
        if isinstance(pattern, EachLike):
            return self.compare_each_like(pattern, actual, path)
        if isinstance(pattern, Term):
            return self.compare_term(pattern, actual, path)
        if isinstance(pattern, Includes):
            return self.compare_includes(pattern, actual, path)
        if isinstance(pattern, dict):
            return self.compare_dict(pattern, actual, path, by_type)
        if isinstance(pattern, (list, tuple)):
            return self.compare_list(pattern, actual, path, by_type)
        if by_type:
            return self.compare_type(pattern, actual, path)
        return self.compare_value(pattern, actual, path)

    def compare_value(self, pattern, actual, path):
        if nice_type(pattern) != nice_type(actual) or pattern != actual:
            return self.result.fail(path, pattern, actual, VALUE_MISMATCH)
        return True

    def compare_type(self, pattern, actual, path):
        if nice_type(pattern) != nice_type(actual):
            return self.result.fail(path, nice_type(pattern), actual, TYPE_MISMATCH)
        return True

    def compare_term(self, pattern, actual, path):
        if not isinstance(actual, str):
            return self.result.fail(path, 'string', actual, TYPE_MISMATCH)
        if pattern.regex.search(actual) is None:
            return self.result.fail(path, pattern.matcher, actual, REGEX_MISMATCH)
        return True

    def compare_includes(self, pattern, actual, path):
        if not isinstance(actual, str):
            return self.result.fail(path, 'string', actual, TYPE_MISMATCH)
        if pattern.matcher not in actual:
            return self.result.fail(path, pattern.matcher, actual, VALUE_MISMATCH)
        return True

    def compare_dict(self, pattern, actual, path, by_type):
        if not isinstance(actual, Mapping):
            return self.result.fail(path, 'object', actual, TYPE_MISMATCH)
        results = []
        for key, sub_pattern in pattern.items():
            if key not in actual:
                results.append(self.result.fail(path + [key], get_generated_values(sub_pattern), ABSENT, MISSING_KEY))
            else:
                results.append(self.compare(sub_pattern, actual[key], path + [key], by_type))
        return all(results)

    def compare_list(self, pattern, actual, path, by_type):
        if not isinstance(actual, (list, tuple)):
            return self.result.fail(path, 'array', actual, TYPE_MISMATCH)
        if len(pattern) != len(actual):
            return self.result.fail(path, len(pattern), len(actual), LENGTH_MISMATCH)
        results = [self.compare(sub_pattern, elem, path + [index], by_type)
                   for index, (sub_pattern, elem) in enumerate(zip(pattern, actual))]
        return all(results)

    def compare_each_like(self, pattern, actual, path):
        if not isinstance(actual, (list, tuple)):
            return self.result.fail(path, 'array', actual, TYPE_MISMATCH)
        results = []
        if len(actual) < pattern.minimum:
            results.append(self.result.fail(path, pattern.minimum, len(actual), TOO_FEW_ELEMENTS))
        for index, elem in enumerate(actual):
            results.append(self.compare(pattern.matcher, elem, path + [index], by_type=True))
        return all(results)


def matches(pattern, actual, path=('$',)):
    """Match an actual value against a pattern.

    :param pattern: literal value, dict, list or Matcher (nested freely)
    :param actual: the actual JSON-like value, or ABSENT
    :param path: the path prefix used in diagnostics
    :rtype: MatchResult
    """
    result = MatchResult()
    StructuralMatcher(result).compare(pattern, actual, list(path))
    log.debug(f'matches {format_path(path)} -> {result!r}')
    return result


def match_headers(pattern, actual, path=('headers',)):
    """Match expected headers against the actual headers of a message.

    Header names are case-insensitive. Literal header values are compared
    after parsing so that whitespace and value order don't matter.
    """
    result = MatchResult()
    if not pattern:
        return result
    engine = StructuralMatcher(result)
    actual_headers = {name.lower(): value for name, value in actual.items()}
    for name, expected in pattern.items():
        header_path = list(path) + [name]
        value = actual_headers.get(name.lower(), ABSENT)
        if value is ABSENT:
            result.fail(header_path, get_generated_values(expected), ABSENT, MISSING_KEY)
        elif isinstance(expected, str):
            if not header_values_equal(name, expected, value):
                result.fail(header_path, expected, value, VALUE_MISMATCH)
        else:
            engine.compare(expected, value, header_path)
    return result


def normalise_query(query):
    """Make every query pattern value a list, as parsed query strings are."""
    if isinstance(query, str):
        return parse_qs(query, keep_blank_values=True)
    if not isinstance(query, dict):
        return query
    normalised = {}
    for name, value in query.items():
        if isinstance(value, list):
            normalised[name] = [query_literal(item) for item in value]
        elif isinstance(get_generated_values(value), list):
            normalised[name] = value
        else:
            normalised[name] = [query_literal(value)]
    return normalised


def query_literal(value):
    # parsed query values are always strings
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (int, float)):
        return str(value)
    return value


def match_query(pattern, actual, path=('query',)):
    """Match a query pattern against an actual (raw) query string."""
    result = MatchResult()
    if pattern is None:
        return result
    if isinstance(get_generated_values(pattern), str) and not isinstance(pattern, str):
        # a matcher for the whole query string
        StructuralMatcher(result).compare(pattern, actual, list(path))
        return result
    parsed = parse_qs(actual, keep_blank_values=True) if isinstance(actual, str) else actual
    StructuralMatcher(result).compare(normalise_query(pattern), parsed, list(path))
    return result
