"""Classes for defining request and response data that is variable."""
import dataclasses
import re

from ..errors import PatternConstructionError


class Matcher(object):
    """Base class for defining complex contract expectations."""

    def generate_matching_rule_v3(self):  # pragma: no cover
        raise NotImplementedError


class EachLike(Matcher):
    """
    Expect the data to be a list of similar objects.

    Example:

    >>> from mockpact import Consumer, Provider
    >>> pact = Consumer('consumer').has_pact_with(Provider('provider'))
    >>> (pact.given('there are three comments')
    ...  .upon_receiving('a request for the most recent 2 comments')
    ...  .with_request('get', '/comment', query={'limit': '2'})
    ...  .will_respond_with(200, body={
    ...    'comments': EachLike(
    ...        {'name': Like('bob'), 'text': Like('Hello!')},
    ...        minimum=2)
    ...  }))

    Would expect the response to be a JSON object, with a comments list. In
    that list should be at least 2 items, and each item should be a `dict`
    with the keys `name` and `text`. Each item is matched by type against
    the example.
    """

    def __init__(self, matcher, minimum=1):
        """
        Create a new EachLike.

        :param matcher: The expected value that each item in a list should
            look like, this can be other matchers.
        :type matcher: None, list, dict, int, float, str, Matcher
        :param minimum: The minimum number of items expected.
            Must be greater than or equal to 1.
        :type minimum: int
        """
        if minimum < 1:
            raise PatternConstructionError("Minimum must be greater than or equal to 1")
        self.matcher = matcher
        self.minimum = minimum

    def __repr__(self):
        return f'EachLike({self.matcher!r}, minimum={self.minimum})'

    def generate_matching_rule_v3(self):
        return {"matchers": [{"match": "type", "min": self.minimum}]}


class Like(Matcher):
    """
    Expect the type of the value to be the same as matcher.

    Example:

    >>> from mockpact import Consumer, Provider
    >>> pact = Consumer('consumer').has_pact_with(Provider('provider'))
    >>> (pact
    ...  .given('there is a random number generator')
    ...  .upon_receiving('a request for a random number')
    ...  .with_request('get', '/generate-number')
    ...  .will_respond_with(200, body={
    ...    'number': Like(1111222233334444)
    ...  }))

    Would expect the response body to be a JSON object, containing the key
    `number`, which would contain an integer. When the consumer runs this
    contract, the value `1111222233334444` will be returned by the mock
    service, instead of a randomly generated value.

    When the example is a dict or list the type match cascades: the keys
    of the example must be present in the actual value and have the same
    types, but their values are not compared.
    """

    VALID_TYPES = (type(None), bool, list, dict, int, float, str, Matcher)

    def __init__(self, matcher):
        """
        Create a new Like.

        :param matcher: The object that should be expected. The mock
            will return this value. When matched, the type of this value
            will be asserted, while the value will be ignored.
        :type matcher: None, list, dict, int, float, str, Matcher
        """
        if not isinstance(matcher, self.VALID_TYPES):
            raise PatternConstructionError(f"matcher must be one of '{self.VALID_TYPES}', got '{type(matcher)}'")
        self.matcher = matcher

    def __repr__(self):
        return f'Like({self.matcher!r})'

    def generate_matching_rule_v3(self):
        return {"matchers": [{"match": "type"}]}


SomethingLike = Like


class Term(Matcher):
    """
    Expect the response to match a specified regular expression.

    Example:

    >>> from mockpact import Consumer, Provider
    >>> pact = Consumer('consumer').has_pact_with(Provider('provider'))
    >>> (pact.given('the current user is logged in as `tester`')
    ...  .upon_receiving('a request for the user profile')
    ...  .with_request('get', '/profile')
    ...  .will_respond_with(200, body={
    ...    'name': 'tester',
    ...    'theme': Term('light|dark|legacy', 'dark')
    ...  }))

    Would expect the response body to be a JSON object, containing the key
    `name`, which will contain the value `tester`, and `theme` which must be
    one of the values: light, dark, or legacy. When the consumer runs this
    contract, the value `dark` will be returned by the mock.

    The regular expression is searched for anywhere in the actual value;
    anchor it with `^` and `$` to require a full match.
    """

    def __init__(self, matcher, generate):
        """
        Create a new Term.

        :param matcher: A regular expression to find.
        :type matcher: str
        :param generate: A value to be returned by the mock when
            generating the response to the consumer. It must itself match
            the regular expression.
        :type generate: str
        """
        try:
            self.regex = re.compile(matcher)
        except (re.error, TypeError) as e:
            raise PatternConstructionError(f'invalid Term regex {matcher!r}: {e}') from None
        if not isinstance(generate, str):
            raise PatternConstructionError(f'Term example must be a string, got {type(generate)}')
        if self.regex.search(generate) is None:
            raise PatternConstructionError(f'Term example {generate!r} does not match regex {matcher!r}')
        self.matcher = matcher
        self.generate = generate

    def __repr__(self):
        return f'Term({self.matcher!r}, {self.generate!r})'

    def generate_matching_rule_v3(self):
        return {"matchers": [{"match": "regex", "regex": self.matcher}]}


class Equals(Matcher):
    """
    Expect the value to be the same as matcher.

    Example:

    >>> from mockpact import Consumer, Provider
    >>> pact = Consumer('consumer').has_pact_with(Provider('provider'), version='3.0.0')
    >>> (pact
    ...  .given('there is a random number generator')
    ...  .upon_receiving('a request for a random number')
    ...  .with_request('get', '/generate-number')
    ...  .will_respond_with(200, body={
    ...    'number': Equals(1111222233334444)
    ...  }))

    Would expect the response body to be a JSON object, containing the key
    `number`, which would contain the value `1111222233334444`. Inside a
    `Like` this switches back from type matching to value matching.
    """

    class NotAllowed(PatternConstructionError):
        pass

    VALID_TYPES = (type(None), bool, list, dict, int, float, str)

    def __init__(self, matcher):
        """
        Create a new Equals.

        :param matcher: The object that should be expected. The mock
            will return this value. When matched, the value will be asserted.
        :type matcher: None, list, dict, int, float, str
        """
        if not isinstance(matcher, self.VALID_TYPES):
            raise PatternConstructionError(f"matcher must be one of '{self.VALID_TYPES}', got '{type(matcher)}'")
        self.matcher = matcher

    def __repr__(self):
        return f'Equals({self.matcher!r})'

    def generate_matching_rule_v3(self):
        return {"matchers": [{"match": "equality"}]}


class Includes(Matcher):
    """
    Expect the string value to contain the matcher.

    Example:

    >>> from mockpact import Consumer, Provider
    >>> pact = Consumer('consumer').has_pact_with(Provider('provider'), version='3.0.0')
    >>> (pact
    ...  .given('there is some spam')
    ...  .upon_receiving('a request for spam')
    ...  .with_request('get', '/spam')
    ...  .will_respond_with(200, body={
    ...    'content': Includes('spam', 'Some example spamming content')
    ...  }))

    Would expect the response body to be a JSON object, containing the key
    `content`, which be a string containing `'spam'`.
    """

    class NotAllowed(PatternConstructionError):
        pass

    def __init__(self, matcher, generate):
        """
        Create a new Includes.

        :param matcher: The substring that should be expected.
        :type matcher: string
        :param generate: The mock will return this value.
        :type generate: string
        """
        if not isinstance(matcher, str):
            raise PatternConstructionError(f"matcher must be a string, got '{type(matcher)}'")
        if not isinstance(generate, str) or matcher not in generate:
            raise PatternConstructionError(f'Includes example {generate!r} does not contain {matcher!r}')
        self.matcher = matcher
        self.generate = generate

    def __repr__(self):
        return f'Includes({self.matcher!r}, {self.generate!r})'

    def generate_matching_rule_v3(self):
        return {"matchers": [{"match": "include", "value": self.matcher}]}


SCALAR_TYPES = (str, int, float, bool)


def validate_pattern(pattern, _active=None):
    """Check that a pattern tree only holds supported types and has no cycles.

    :raises PatternConstructionError: on the first problem found
    """
    active = set() if _active is None else _active
    if pattern is None or isinstance(pattern, SCALAR_TYPES):
        return
    if isinstance(pattern, (Term, Includes)):
        return
    if not isinstance(pattern, (dict, list, tuple, Like, EachLike, Equals)):
        raise PatternConstructionError(f'Unknown type: {type(pattern)}')
    if id(pattern) in active:
        raise PatternConstructionError(f'cyclic pattern detected at {type(pattern).__name__}')
    active.add(id(pattern))
    try:
        if isinstance(pattern, dict):
            for key, value in pattern.items():
                if not isinstance(key, str):
                    raise PatternConstructionError(f'object keys must be strings, got {key!r}')
                validate_pattern(value, active)
        elif isinstance(pattern, (list, tuple)):
            for value in pattern:
                validate_pattern(value, active)
        else:
            validate_pattern(pattern.matcher, active)
    finally:
        active.discard(id(pattern))


def from_example(example, _active=None):
    """
    Derive an all-`Like` pattern with the same shape as an example value.

    Dicts (and dataclass instances) keep their keys, non-empty lists become
    `EachLike` of their first element, and scalars become `Like`. Matchers
    already present in the example are kept as they are. Examples must be
    acyclic.

    >>> from_example({'username': 'billy', 'roles': ['admin']})
    {'username': Like('billy'), 'roles': EachLike(Like('admin'), minimum=1)}

    :raises PatternConstructionError: for cycles, unsupported types or
        non-string keys
    """
    active = set() if _active is None else _active
    if isinstance(example, Matcher):
        return example
    if example is None or isinstance(example, SCALAR_TYPES):
        return Like(example)
    if dataclasses.is_dataclass(example) and not isinstance(example, type):
        marker = id(example)
        example = {f.name: getattr(example, f.name) for f in dataclasses.fields(example)}
    elif isinstance(example, (dict, list, tuple)):
        marker = id(example)
    else:
        raise PatternConstructionError(f'cannot derive a pattern from {type(example)}')

    if marker in active:
        raise PatternConstructionError(f'cyclic example detected at {type(example).__name__}')
    active.add(marker)
    try:
        if isinstance(example, dict):
            pattern = {}
            for key, value in example.items():
                if not isinstance(key, str):
                    raise PatternConstructionError(f'object keys must be strings, got {key!r}')
                pattern[key] = from_example(value, active)
            return pattern
        if not example:
            return Like([])
        return EachLike(from_example(example[0], active))
    finally:
        active.discard(marker)


def get_generated_values(input):
    """
    Resolve (nested) Matchers to their generated values for assertion.

    :param input: The input to be resolved to its generated values.
    :type input: None, list, dict, int, float, bool, str, Matcher
    :return: The input resolved to its generated value(s)
    :rtype: None, list, dict, int, float, bool, str
    """
    if input is None:
        return input
    if isinstance(input, SCALAR_TYPES):
        return input
    if isinstance(input, dict):
        return {k: get_generated_values(v) for k, v in input.items()}
    if isinstance(input, (list, tuple)):
        return [get_generated_values(t) for t in input]
    elif isinstance(input, (Like, Equals)):
        return get_generated_values(input.matcher)
    elif isinstance(input, EachLike):
        return [get_generated_values(input.matcher)] * input.minimum
    elif isinstance(input, (Term, Includes)):
        return input.generate
    else:
        raise PatternConstructionError("Unknown type: %s" % type(input))


def get_matching_rules_v2(input, path):
    """Turn a matcher into the matchingRules structure for pact JSON.

    This is done recursively, adding new paths as new matching rules
    are encountered.
    """
    if input is None or isinstance(input, SCALAR_TYPES):
        return {}
    if isinstance(input, dict):
        rules = {}
        for k, v in input.items():
            rules.update(get_matching_rules_v2(v, path + "." + k))
        return rules
    if isinstance(input, (list, tuple)):
        rules = {}
        for v in input:
            rules.update(get_matching_rules_v2(v, path + "[*]"))
        return rules
    if isinstance(input, Like):
        rules = {path: {"match": "type"}}
        rules.update(get_matching_rules_v2(input.matcher, path))
        return rules
    if isinstance(input, EachLike):
        rules = {path: {"match": "type", "min": input.minimum}}
        rules.update(get_matching_rules_v2(input.matcher, path + "[*]"))
        return rules
    if isinstance(input, Term):
        return {path: {"regex": input.matcher}}
    if isinstance(input, Equals):
        raise Equals.NotAllowed("Equals() cannot be used in pact version 2")
    if isinstance(input, Includes):
        raise Includes.NotAllowed("Includes() cannot be used in pact version 2")

    raise PatternConstructionError("Unknown type: %s" % type(input))


class MatchingRuleV3(dict):
    def generate(self, input, path):
        if input is None or isinstance(input, SCALAR_TYPES):
            return
        if isinstance(input, dict):
            for k, v in input.items():
                self.generate(v, path + "." + k)
            return
        if isinstance(input, (list, tuple)):
            for v in input:
                self.generate(v, path + "[*]")
            return
        if not isinstance(input, Matcher):
            raise PatternConstructionError("Unknown type: %s" % type(input))
        self[path] = input.generate_matching_rule_v3()
        if isinstance(input, EachLike):
            self.generate(input.matcher, path + "[*]")
        elif isinstance(input, (Like, Equals)):
            self.generate(input.matcher, path)


def get_matching_rules_v3(input, path):
    """Turn a matcher into the matchingRules structure for pact JSON.

    This is done recursively, adding new paths as new matching rules
    are encountered.
    """
    rules = MatchingRuleV3()
    rules.generate(input, path)
    return rules
