"""Header value parsing so that equivalent header values compare equal.

`Accept: text/html,text/plain` and `Accept: text/html, text/plain` are the
same header; so are parameters given in a different order.
"""
from collections import namedtuple


class HeaderPart(namedtuple('HeaderPart', 'values params')):
    __slots__ = ()

    def has_param(self, name):
        return any(k == name for k, _ in self.params)

    def without_param(self, name):
        return HeaderPart(self.values, tuple(p for p in self.params if p[0] != name))


def _split_quoted(s, marker):
    # split on marker, but not inside double-quoted strings
    while s[:1] == marker:
        s = s[1:]
        end = s.find(marker)
        while end > 0 and (s.count('"', 0, end) - s.count('\\"', 0, end)) % 2:
            end = s.find(marker, end + 1)
        if end < 0:
            end = len(s)
        yield s[:end].strip()
        s = s[end:]


def _unquote(value):
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1].replace('\\\\', '\\').replace('\\"', '"')
    return value


def parse_header(line):
    """Parse a header value into a sorted list of HeaderPart.

    Each `;` separated section becomes a part holding its comma separated
    values and its `name=value` parameters (names lower-cased).
    """
    parts = []
    for section in _split_quoted(';' + line, ';'):
        values = []
        params = []
        for option in _split_quoted(',' + section, ','):
            name, sep, value = option.partition('=')
            if sep:
                params.append((name.strip().lower(), _unquote(value.strip())))
            elif option:
                values.append(option)
        parts.append(HeaderPart(tuple(values), tuple(params)))
    return sorted(parts)


def header_values_equal(name, expected, actual):
    """Compare two literal header values.

    A Content-Type that differs only in whether a charset parameter is
    present is still considered equal.
    """
    parsed_expected = parse_header(expected)
    parsed_actual = parse_header(actual)
    if parsed_expected == parsed_actual:
        return True
    if name.lower() != 'content-type':
        return False
    expected_has_charset = any(part.has_param('charset') for part in parsed_expected)
    actual_has_charset = any(part.has_param('charset') for part in parsed_actual)
    if expected_has_charset == actual_has_charset:
        return False
    return _without_charset(parsed_expected) == _without_charset(parsed_actual)


def _without_charset(parts):
    stripped = (part.without_param('charset') for part in parts)
    return sorted(part for part in stripped if part.values or part.params)
