import json

from .headers import parse_header
from .matchers import get_generated_values, get_matching_rules_v2, get_matching_rules_v3, validate_pattern


class Response:
    """Represents an HTTP response and supports Matchers on its properties."""

    def __init__(self, status, headers=None, body=None):
        """
        Create a new Response.

        :param status: The expected HTTP status of the response.
        :type status: int
        :param headers: The expected headers of the response.
        :type headers: dict
        :param body: The expected body of the response.
        :type body: str, dict, list or Matcher
        :raises PatternConstructionError: if headers or body are not valid patterns
        """
        validate_pattern(headers)
        validate_pattern(body)
        self.status = status
        self.body = body
        self.headers = headers

    def json(self, spec_version):
        """Convert the Response to a JSON Pact."""
        response = {'status': self.status}
        if self.body is not None:
            response['body'] = get_generated_values(self.body)

        if self.headers:
            response['headers'] = get_generated_values(self.headers)

        if spec_version == '2.0.0':
            matchingRules = self.generate_v2_matchingRules()
        elif spec_version == '3.0.0':
            matchingRules = self.generate_v3_matchingRules()
        else:
            raise ValueError(f'Invalid Pact specification version={spec_version}')

        if matchingRules:
            response['matchingRules'] = matchingRules

        return response

    def generate_v2_matchingRules(self):
        matchingRules = get_matching_rules_v2(self.headers, '$.headers')
        matchingRules.update(get_matching_rules_v2(self.body, '$.body'))
        return matchingRules

    def generate_v3_matchingRules(self):
        matchingRules = {}
        header_rules = get_matching_rules_v3(self.headers, 'headers')
        if header_rules:
            matchingRules['header'] = {path.split('.', 1)[1]: rule for path, rule in header_rules.items()}
        body_rules = get_matching_rules_v3(self.body, '$')
        if body_rules:
            matchingRules['body'] = body_rules
        return matchingRules

    def render(self):
        """Produce the concrete status, headers and encoded body the mock sends.

        Bodies are JSON encoded (and the Content-Type defaulted to JSON if
        absent) unless the Content-Type is not JSON and the body is a
        string, in which case the string is sent as-is. Either way the
        charset comes from the Content-Type, UTF-8 if none is given.
        """
        headers = dict(get_generated_values(self.headers or {}))
        if self.body is None:
            return self.status, headers, b''
        body = get_generated_values(self.body)
        content_type = [headers[h] for h in headers if h.lower() == 'content-type']
        if content_type:
            content_type = content_type[0]
            charset = get_charset(content_type)
            if 'json' not in content_type and isinstance(body, str):
                return self.status, headers, body.encode(charset)
        else:
            headers['Content-Type'] = 'application/json; charset=UTF-8'
            charset = 'UTF-8'
        return self.status, headers, json.dumps(body).encode(charset)


def get_charset(content_type, default='UTF-8'):
    for part in parse_header(content_type):
        for name, value in part.params:
            if name == 'charset':
                return value
    return default
