from concurrent.futures import ThreadPoolExecutor

import pytest

from mockpact import InteractionMismatch, Like, Term, UnmetInteraction
from mockpact.mock.interaction import Interaction, InteractionRegistry
from mockpact.mock.request import ReceivedRequest, Request
from mockpact.mock.response import Response
from mockpact.mock.result import MISSING_KEY, VALUE_MISMATCH


def make_interaction(description, method='POST', path='/users', body=None, times=None):
    return Interaction(None, description, Request(method, path, body=body),
                       Response(200, body={'description': description}), times=times)


@pytest.fixture
def registry():
    return InteractionRegistry()


def test_same_route_is_told_apart_by_body(registry):
    by_name = make_interaction('create by name', body={'name': Like('billy')})
    by_id = make_interaction('create by id', body={'id': Like(1)})
    registry.add(by_name)
    registry.add(by_id)

    interaction, fault = registry.find(ReceivedRequest('POST', '/users', body={'id': 5}))
    assert interaction is by_id
    assert fault is None
    interaction, fault = registry.find(ReceivedRequest('POST', '/users', body={'name': 'sam'}))
    assert interaction is by_name
    registry.find(ReceivedRequest('POST', '/users', body={'id': 6}))

    assert registry.observed(by_name) == 1
    assert registry.observed(by_id) == 2


def test_first_full_match_wins(registry):
    first = make_interaction('first', body={'name': Like('billy')})
    second = make_interaction('second', body={'name': Like('billy'), 'extra': Like(1)})
    registry.add(first)
    registry.add(second)
    interaction, _ = registry.find(ReceivedRequest('POST', '/users', body={'name': 'x', 'extra': 2}))
    assert interaction is first


def test_method_is_case_insensitive(registry):
    get = make_interaction('get', method='get', path=Term('/users/[0-9]+', '/users/1'))
    registry.add(get)
    interaction, _ = registry.find(ReceivedRequest('GET', '/users/42'))
    assert interaction is get


def test_no_match_reports_the_closest_candidate(registry):
    other_route = make_interaction('other route', method='GET', path='/other')
    same_route = make_interaction('same route', body={'name': 'billy', 'type': 'admin'})
    registry.add(other_route)
    registry.add(same_route)

    interaction, fault = registry.find(ReceivedRequest('POST', '/users', body={'name': 'sam', 'type': 'admin'}))
    assert interaction is None
    assert fault.interaction is same_route
    assert [d.reason for d in fault.diagnostics] == [VALUE_MISMATCH]
    assert fault.json()['closest'] == "'same route'"
    assert fault.json()['mismatches'][0]['path'] == 'body.name'
    assert registry.faults == [fault]


def test_no_interactions_registered(registry):
    interaction, fault = registry.find(ReceivedRequest('GET', '/users'))
    assert interaction is None
    assert 'no interaction registered' in fault.message
    with pytest.raises(InteractionMismatch):
        registry.verify()


def test_verify_returns_counts(registry):
    a = make_interaction('a', body={'name': Like('billy')})
    registry.add(a)
    registry.find(ReceivedRequest('POST', '/users', body={'name': 'x'}))
    assert registry.verify() == [(a, 1)]


def test_unmet_interaction(registry):
    a = make_interaction('a', body={'name': Like('billy')})
    b = make_interaction('b', body={'id': Like(1)})
    registry.add(a)
    registry.add(b)
    registry.find(ReceivedRequest('POST', '/users', body={'name': 'x'}))
    with pytest.raises(UnmetInteraction) as e:
        registry.verify()
    assert e.value.interactions == [b]
    assert "'b'" in str(e.value)


def test_mismatch_takes_precedence_over_unmet(registry):
    a = make_interaction('a', body={'name': Like('billy')})
    registry.add(a)
    registry.find(ReceivedRequest('POST', '/users', body={'user': 'x'}))
    with pytest.raises(InteractionMismatch) as e:
        registry.verify()
    failures = e.value.failures
    assert len(failures) == 2
    assert [d.reason for d in failures[0].diagnostics] == [MISSING_KEY]
    assert 'never requested' in failures[1].message


def test_times(registry):
    once = make_interaction('once', body={'name': Like('billy')}, times=1)
    registry.add(once)
    registry.find(ReceivedRequest('POST', '/users', body={'name': 'x'}))
    registry.find(ReceivedRequest('POST', '/users', body={'name': 'y'}))
    with pytest.raises(InteractionMismatch) as e:
        registry.verify()
    assert 'requested 2 times, expected 1' in str(e.value)


def test_identical_requests_are_ambiguous(registry):
    first = make_interaction('first', body={'name': Like('billy')})
    second = make_interaction('second', body={'name': Like('billy')})
    registry.add(first)
    registry.add(second)
    registry.find(ReceivedRequest('POST', '/users', body={'name': 'x'}))
    assert registry.observed(first) == 1
    with pytest.raises(InteractionMismatch) as e:
        registry.verify()
    assert 'can never be matched' in str(e.value)


def test_observed_requires_registration(registry):
    with pytest.raises(KeyError):
        registry.observed(make_interaction('a'))


def test_reset(registry):
    a = make_interaction('a')
    registry.add(a)
    registry.find(ReceivedRequest('GET', '/nothing'))
    registry.reset()
    assert len(registry) == 0
    assert registry.faults == []
    assert registry.observations() == []


def test_concurrent_requests_are_all_counted(registry):
    a = make_interaction('a', body={'name': Like('billy')})
    registry.add(a)

    def hit(n):
        return registry.find(ReceivedRequest('POST', '/users', body={'name': f'user{n}'}))[0]

    with ThreadPoolExecutor(max_workers=8) as executor:
        found = list(executor.map(hit, range(200)))
    assert found == [a] * 200
    assert registry.observed(a) == 200
