import logging

from .matchers import get_generated_values, get_matching_rules_v2, get_matching_rules_v3, validate_pattern
from .matching import match_headers, match_query, matches, normalise_query
from .result import ABSENT, VALUE_MISMATCH, MatchResult

log = logging.getLogger(__name__)


class Request:
    """Represents an HTTP request and supports Matchers on its properties."""

    def __init__(self, method, path, body=None, headers=None, query=None):
        """
        Create a new instance of Request.

        :param method: The HTTP method that is expected.
        :type method: str
        :param path: The URI path that is expected on this request.
        :type path: str, Matcher
        :param body: The contents of the body of the expected request.
        :type body: str, dict, list, Matcher
        :param headers: The headers of the expected request.
        :type headers: dict
        :param query: The URI query of the expected request.
        :type query: str or dict
        :raises PatternConstructionError: if any part is not a valid pattern
        """
        for part in (path, body, headers, query):
            validate_pattern(part)
        self.method = method
        self.path = path
        self.body = body
        self.headers = headers
        self.query = query or None
        self.query_pattern = normalise_query(query) if query else None

    def __repr__(self):
        return f'<Request {self.method.upper()} {get_generated_values(self.path)}>'

    def json(self, spec_version):
        """Convert the Request to a JSON Pact."""
        request = {
            'method': self.method,
            'path': get_generated_values(self.path)
        }

        if self.headers:
            request['headers'] = get_generated_values(self.headers)

        if self.body is not None:
            request['body'] = get_generated_values(self.body)

        if self.query:
            if spec_version == '2.0.0' and isinstance(self.query, str):
                request['query'] = self.query
            else:
                request['query'] = get_generated_values(self.query_pattern)

        if spec_version == '2.0.0':
            matchingRules = self.generate_v2_matchingRules()
        elif spec_version == '3.0.0':
            matchingRules = self.generate_v3_matchingRules()
        else:
            raise ValueError(f'Invalid Pact specification version={spec_version}')

        if matchingRules:
            request['matchingRules'] = matchingRules
        return request

    def generate_v2_matchingRules(self):
        matchingRules = get_matching_rules_v2(self.path, '$.path')
        matchingRules.update(get_matching_rules_v2(self.headers, '$.headers'))
        matchingRules.update(get_matching_rules_v2(self.body, '$.body'))
        matchingRules.update(get_matching_rules_v2(self.query_pattern, '$.query'))
        return matchingRules

    def generate_v3_matchingRules(self):
        matchingRules = get_matching_rules_v3(self.path, 'path')
        matchingRules.update(split_header_paths(get_matching_rules_v3(self.headers, 'headers')))

        # body and query rules look different
        body_rules = get_matching_rules_v3(self.body, '$')
        if body_rules:
            matchingRules['body'] = body_rules
        query_rules = get_matching_rules_v3(self.query_pattern, 'query')
        if query_rules:
            expand_query_rules(query_rules)
            matchingRules['query'] = query_rules
        return matchingRules

    def match_route(self, request):
        """Match only the method and path of a received request."""
        result = MatchResult()
        if request.method.upper() != self.method.upper():
            result.fail(['method'], self.method.upper(), request.method.upper(), VALUE_MISMATCH)
        result.extend(matches(self.path, request.path, ('path',)))
        return result

    def match(self, request):
        """Match every part of a received request against this pattern.

        :type request: ReceivedRequest
        :rtype: MatchResult
        """
        result = self.match_route(request)
        result.extend(match_query(self.query_pattern, request.query))
        result.extend(match_headers(self.headers, request.headers))
        if self.body is not None:
            result.extend(matches(self.body, request.body, ('body',)))
        return result


class ReceivedRequest:
    """A request as it arrived at the mock server, with its body decoded."""

    def __init__(self, method, path, query='', headers=None, body=ABSENT):
        self.method = method
        self.path = path
        self.query = query
        self.headers = headers or {}
        self.body = body

    def __repr__(self):
        return f'<ReceivedRequest {self}>'

    def __str__(self):
        if self.query:
            return f'{self.method} {self.path}?{self.query}'
        return f'{self.method} {self.path}'

    def json(self):
        body = None if self.body is ABSENT else self.body
        return dict(method=self.method, path=self.path, query=self.query, headers=dict(self.headers), body=body)


def expand_query_rules(rules):
    # Query rules in the pact JSON are declared without the array notation (even though they always
    # match arrays).
    # The matchers will be coded to JSON paths by get_matching_rules_v3, and we need to extract
    # them out to a dictionary where the original rule path will look like 'query.param'
    # and we need to extract "param".
    # If there's no param (it's just "query") then make it a wildcard
    for rule_path in list(rules):
        matchers = rules.pop(rule_path)
        rule_param = rule_path[6:]
        # trim off any array wildcard, it's implied here
        if rule_param.endswith('[*]'):
            rule_param = rule_param[:-3]
        if not rule_param:
            rule_param = '*'
        rules[rule_param] = matchers


def split_header_paths(rules):
    # Header rules in v3 pacts are stored differently to other types - in a single object called "header"
    # with a sub key per header.
    if not rules:
        return {}
    result = dict(header={})
    for k in rules:
        header = k.split('.', 1)[1]
        result['header'][header] = rules[k]
    return result
