import os

import pytest
import requests

from mockpact import (Consumer, ExerciseFailure, InteractionMismatch, Like, Pact, Provider, Term,
                      UnmetInteraction, from_example)
from mockpact.mock.mock_server import State
from mockpact.mock.result import MISSING_KEY

COMMON_HEADERS = {'Content-Type': Term(r'application\/json', 'application/json; charset=utf-8')}


@pytest.fixture
def pact(tmpdir):
    pact = Consumer('billy').has_pact_with(Provider('bobby'), pact_dir=str(tmpdir))
    pact.start_mocking()
    yield pact
    pact.stop_mocking()


def declare_login(pact):
    (pact
     .given('User billy exists')
     .upon_receiving('A request to login with user billy')
     .with_request('POST', Term('/users/login/[0-9]+', '/users/login/10'),
                   query={'foo': Term('[a-zA-Z]+', 'anything')},
                   body=from_example({'username': 'billy', 'password': 'issilly'}),
                   headers=COMMON_HEADERS)
     .will_respond_with(200,
                        headers={'X-Api-Correlation-Id': Like('100'), **COMMON_HEADERS},
                        body=Like({'user': {'name': 'billy', 'type': Term('admin|user|guest', 'admin')}})))


def login(pact, body=None):
    return requests.post(pact.uri + '/users/login/1', params={'foo': 'bar'},
                         json=body or {'username': 'x', 'password': 'y'})


def test_init_defaults():
    target = Pact(Consumer('TestConsumer'), Provider('TestProvider'))
    assert target.consumer.name == 'TestConsumer'
    assert target.provider.name == 'TestProvider'
    assert target.host_name == 'localhost'
    assert target.port == 0
    assert target.log_dir is None
    assert target.pact_dir == os.environ.get('PACT_DIR', os.getcwd())
    assert target.version == '2.0.0'
    assert target.file_write_mode == 'overwrite'
    assert target.state is State.STOPPED


def test_init_from_names(tmpdir):
    target = Pact('billy', 'bobby', pact_dir=str(tmpdir))
    assert target.consumer.name == 'billy'
    assert target.provider.name == 'bobby'
    assert target.pact_json_filename == os.path.join(str(tmpdir), 'billy-bobby.json')


def test_pact_dir_from_environment(monkeypatch, tmpdir):
    monkeypatch.setenv('PACT_DIR', str(tmpdir))
    assert Pact('billy', 'bobby').pact_dir == str(tmpdir)


@pytest.mark.parametrize('kwargs', [dict(version='1.0.0'), dict(version='4.0.0'), dict(file_write_mode='append')])
def test_init_rejects_bad_options(kwargs):
    with pytest.raises(ValueError):
        Pact('billy', 'bobby', **kwargs)


def test_has_pact_with_requires_provider():
    with pytest.raises(ValueError):
        Consumer('billy').has_pact_with('bobby')


def test_uri_uses_the_bound_port(pact):
    assert pact.port != 0
    assert pact.uri == f'http://localhost:{pact.port}'
    assert pact.state is State.LISTENING


def test_login(pact):
    declare_login(pact)

    def exercise():
        response = login(pact)
        assert response.status_code == 200
        assert response.json()['user']['type'] in ('admin', 'user', 'guest')
        assert response.headers['X-Api-Correlation-Id'] == '100'

    pact.verify(exercise)
    assert pact.observed('A request to login with user billy') == 1
    assert pact.was_observed('A request to login with user billy', 'User billy exists')
    assert len(pact.document.interactions) == 1


def test_user_does_not_exist(pact):
    (pact
     .given('User billy does not exist')
     .upon_receiving('A request to login with user billy')
     .with_request('POST', '/users/login/10', body={'username': 'billy', 'password': 'issilly'})
     .will_respond_with(404, body='User billy does not exist', headers={'Content-Type': 'text/plain'}))

    def exercise():
        response = requests.post(pact.uri + '/users/login/10', json={'username': 'billy', 'password': 'issilly'})
        return response.status_code == 404 and response.text == 'User billy does not exist'

    assert pact.verify(exercise) is True


def test_same_route_different_bodies(pact):
    (pact
     .given(None)
     .upon_receiving('a search by name')
     .with_request('POST', '/search', body={'name': Like('billy')})
     .will_respond_with(200, body={'by': 'name'})
     .upon_receiving('a search by id')
     .with_request('POST', '/search', body={'id': Like(1)})
     .will_respond_with(200, body={'by': 'id'}))

    def exercise():
        assert requests.post(pact.uri + '/search', json={'id': 3}).json() == {'by': 'id'}
        assert requests.post(pact.uri + '/search', json={'name': 'sam'}).json() == {'by': 'name'}
        assert requests.post(pact.uri + '/search', json={'id': 4}).json() == {'by': 'id'}

    pact.verify(exercise)
    assert pact.observed('a search by name') == 1
    assert pact.observed('a search by id') == 2


def test_unexercised_interaction(pact):
    declare_login(pact)
    with pytest.raises(UnmetInteraction) as e:
        pact.verify()
    assert 'A request to login with user billy' in str(e.value)
    assert pact.document.interactions == []


def test_exercise_exception_propagates(pact):
    declare_login(pact)

    def exercise():
        raise KeyError('boom')

    with pytest.raises(KeyError):
        pact.verify(exercise)
    assert len(pact._server.registry) == 0


def test_exercise_reporting_failure(pact):
    declare_login(pact)

    def exercise():
        login(pact)
        return False

    with pytest.raises(ExerciseFailure):
        pact.verify(exercise)
    assert pact.document.interactions == []


def test_mismatched_body(pact):
    declare_login(pact)

    def exercise():
        assert login(pact, body={'user': 'x'}).status_code == 500

    with pytest.raises(InteractionMismatch) as e:
        pact.verify(exercise)
    diagnostics = e.value.failures[0].diagnostics
    assert [(str(d).split(':')[0], d.reason) for d in diagnostics] == [
        ('body.username', MISSING_KEY),
        ('body.password', MISSING_KEY),
    ]


def test_server_is_reused_after_failure(pact):
    declare_login(pact)
    with pytest.raises(UnmetInteraction):
        pact.verify()
    declare_login(pact)
    pact.verify(lambda: login(pact))
    assert pact.observed('A request to login with user billy') == 1


def test_times(pact):
    (pact
     .upon_receiving('a ping', times=2)
     .with_request('GET', '/ping')
     .will_respond_with(204))
    with pytest.raises(InteractionMismatch) as e:
        pact.verify(lambda: requests.get(pact.uri + '/ping'))
    assert 'requested 1 times, expected 2' in str(e.value)


def test_times_must_be_positive(pact):
    with pytest.raises(ValueError):
        pact.upon_receiving('a ping', times=0)


def test_context_manager(pact):
    declare_login(pact)
    with pact:
        assert pact.observed('A request to login with user billy') == 0
        login(pact)
        assert pact.observed('A request to login with user billy') == 1
    assert len(pact.document.interactions) == 1


def test_context_manager_exception_skips_verification(pact):
    declare_login(pact)
    with pytest.raises(RuntimeError):
        with pact:
            raise RuntimeError('boom')
    assert pact.document.interactions == []
    assert len(pact._server.registry) == 0


def test_verify_starts_the_mock(tmpdir):
    target = Pact('billy', 'bobby', pact_dir=str(tmpdir))
    target.upon_receiving('a ping').with_request('GET', '/ping').will_respond_with(204)
    try:
        target.verify(lambda: requests.get(target.uri + '/ping'))
    finally:
        target.stop_mocking()
    assert target.state is State.STOPPED


def test_incomplete_interaction(pact):
    pact.upon_receiving('a ping').with_request('GET', '/ping')
    with pytest.raises(ValueError) as e:
        pact.verify()
    assert 'response' in str(e.value)


def test_builder_order_is_enforced():
    target = Pact('billy', 'bobby')
    with pytest.raises(ValueError):
        target.with_request('GET', '/ping')


def test_v2_provider_state_must_be_a_string():
    target = Pact('billy', 'bobby')
    with pytest.raises(ValueError):
        target.given([{'name': 'a state', 'params': {}}])
    with pytest.raises(ValueError):
        target.given('a state').and_given('another state')


def test_v3_provider_states():
    target = Pact('billy', 'bobby', version='3.0.0')
    target.given('User exists', name='billy').and_given('User is an admin')
    assert target._interactions[0].provider_state == [
        {'name': 'User exists', 'params': {'name': 'billy'}},
        {'name': 'User is an admin', 'params': {}},
    ]


def test_user_does_not_exist_without_exercise(pact):
    (pact
     .given('User billy does not exist')
     .upon_receiving('A request to login with user billy')
     .with_request('POST', '/users/login/10', body={'username': 'billy', 'password': 'issilly'})
     .will_respond_with(404))
    with pytest.raises(UnmetInteraction):
        pact.verify()


def test_observed_after_failed_verification(pact):
    declare_login(pact)
    with pytest.raises(UnmetInteraction):
        pact.verify()
    assert pact.observed('A request to login with user billy') == 0

    (pact
     .upon_receiving('a ping', times=2)
     .with_request('GET', '/ping')
     .will_respond_with(204))
    with pytest.raises(InteractionMismatch):
        pact.verify(lambda: requests.get(pact.uri + '/ping'))
    assert pact.observed('a ping') == 1
    with pytest.raises(KeyError):
        pact.observed('A request to login with user billy')


def test_scalar_query_values(pact):
    (pact
     .upon_receiving('a page of users')
     .with_request('GET', '/users', query={'limit': 2})
     .will_respond_with(200))
    pact.verify(lambda: requests.get(pact.uri + '/users', params={'limit': 2}))
    assert pact.observed('a page of users') == 1
