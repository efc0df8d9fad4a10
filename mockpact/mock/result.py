import logging
from collections import namedtuple

log = logging.getLogger(__name__)


VALUE_MISMATCH = 'value mismatch'
TYPE_MISMATCH = 'type mismatch'
REGEX_MISMATCH = 'regex mismatch'
MISSING_KEY = 'missing key'
LENGTH_MISMATCH = 'length mismatch'
TOO_FEW_ELEMENTS = 'too few elements'


class _Absent:
    def __repr__(self):
        return '<absent>'

    def __bool__(self):
        return False


# marks a value that was not present in the actual data at all
ABSENT = _Absent()


def format_path(path):
    if not path:
        return '$'
    s = str(path[0])
    for elem in path[1:]:
        if isinstance(elem, int):
            s += f'[{elem}]'
        else:
            s += '.' + elem
    return s


class Mismatch(namedtuple('Mismatch', 'path expected actual reason')):
    __slots__ = ()

    def __str__(self):
        return f'{format_path(self.path)}: {self.reason} (expected {self.expected!r}, got {self.actual!r})'

    def json(self):
        return {
            'path': format_path(self.path),
            'reason': self.reason,
            'expected': repr(self.expected),
            'actual': repr(self.actual),
        }


class MatchResult:
    """The outcome of matching one pattern against one actual value.

    The matching engine calls `fail()` for every problem it finds; the
    result is handed back to the caller once matching has finished.
    """
    PASS = True
    FAIL = False

    def __init__(self, diagnostics=()):
        self.diagnostics = list(diagnostics)

    def __repr__(self):
        return f'<MatchResult matched={self.matched} diagnostics={len(self.diagnostics)}>'

    def __bool__(self):
        return self.matched

    @property
    def matched(self):
        return not self.diagnostics

    def fail(self, path, expected, actual, reason):
        mismatch = Mismatch(tuple(path), expected, actual, reason)
        log.debug(f'... mismatch {mismatch}')
        self.diagnostics.append(mismatch)
        return self.FAIL

    def extend(self, other):
        self.diagnostics.extend(other.diagnostics)
        return self.matched

    def __str__(self):
        if self.matched:
            return 'matched'
        return '\n'.join(str(d) for d in self.diagnostics)
