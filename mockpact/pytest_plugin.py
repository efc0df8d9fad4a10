"""pytest plugin providing a session of mock providers for consumer tests.

    def test_get_user(pact_session):
        pact = pact_session.pact('billy', 'bobby')
        pact.given('user billy exists').upon_receiving(...)...
        pact.verify(lambda: client.get_user(pact.uri, 'billy'))

Every pact is written when the test session finishes, and published to a
pact broker if --pact-publish is given.
"""
import logging
import os

import pytest
from colorama import Fore, Style

from .errors import MockPactError
from .mock.consumer import Consumer
from .mock.provider import Provider
from .publish import PactBrokerConfig, Publisher

log = logging.getLogger(__name__)

session_key = pytest.StashKey()


def pytest_addoption(parser):
    group = parser.getgroup('pact consumer options (mockpact)')
    group.addoption("--pact-dir", default=None,
                    help="directory to write pact files to (default: $PACT_DIR or the current directory)")
    group.addoption("--pact-log-dir", default=None,
                    help="directory to write mock provider logs to")
    group.addoption("--pact-publish", action="store_true", default=False,
                    help="publish the pact files to the pact broker at the end of the session")
    group.addoption("--pact-broker-url", default=None,
                    help="pact broker URL (default: $PACT_BROKER_URL)")
    group.addoption("--pact-broker-token", default=None,
                    help="pact broker bearer token (default: $PACT_BROKER_TOKEN)")
    group.addoption("--pact-consumer-version", default=None,
                    help="consumer version to publish the pact files as")
    group.addoption("--pact-consumer-version-tag", action="append", default=[],
                    help="tag for the published consumer version (may be repeated)")


def pytest_configure(config):
    if config.getoption('pact_publish') and not config.getoption('pact_consumer_version'):
        raise pytest.UsageError('--pact-publish requires the --pact-consumer-version option')
    if config.getoption('verbose') > 0:
        logging.getLogger('mockpact').setLevel(logging.DEBUG)


class PactSession:
    """The pacts created during a test session, one per consumer and provider pair."""
    def __init__(self, pact_dir=None, log_dir=None, publisher=None, consumer_version=None, tags=()):
        self.pact_dir = pact_dir
        self.log_dir = log_dir
        self.publisher = publisher
        self.consumer_version = consumer_version
        self.tags = list(tags)
        self.pacts = {}
        self.written = []
        self.published = []
        self.problems = []

    def __repr__(self):
        return f'<PactSession pacts={len(self.pacts)}>'

    def pact(self, consumer, provider, **kwargs):
        """Return the started Pact for the consumer and provider.

        The Pact is created and started on first use; keyword arguments are
        passed to `Consumer.has_pact_with` and only apply then.
        """
        key = (consumer, provider)
        if key not in self.pacts:
            kwargs.setdefault('pact_dir', self.pact_dir)
            kwargs.setdefault('log_dir', self.log_dir)
            pact = Consumer(consumer).has_pact_with(Provider(provider), **kwargs)
            pact.start_mocking()
            self.pacts[key] = pact
        return self.pacts[key]

    def warn(self, message):
        log.warning(message)
        self.problems.append(message)

    def finish(self):
        """Tear down every pact, writing and then publishing its file."""
        pacts, self.pacts = list(self.pacts.values()), {}
        try:
            for pact in pacts:
                self.finish_pact(pact)
        finally:
            for pact in pacts:
                pact.stop_mocking()

    def finish_pact(self, pact):
        try:
            filename = pact.teardown()
        except MockPactError as e:
            self.warn(f'{pact!r} was not written: {e}')
            return
        if filename is None:
            return
        self.written.append(filename)
        if self.publisher is None:
            return
        try:
            self.publisher.publish(filename, self.consumer_version, self.tags)
        except MockPactError as e:
            self.warn(str(e))
        else:
            self.published.append(filename)


def create_session(config):
    publisher = None
    if config.getoption('pact_publish'):
        broker = PactBrokerConfig(config.getoption('pact_broker_url'), config.getoption('pact_broker_token'))
        publisher = Publisher(broker)
    return PactSession(
        pact_dir=config.getoption('pact_dir'),
        log_dir=config.getoption('pact_log_dir'),
        publisher=publisher,
        consumer_version=config.getoption('pact_consumer_version'),
        tags=config.getoption('pact_consumer_version_tag'),
    )


@pytest.fixture(scope='session')
def pact_session(pytestconfig):
    session = create_session(pytestconfig)
    pytestconfig.stash[session_key] = session
    try:
        yield session
    finally:
        session.finish()


def pytest_terminal_summary(terminalreporter, config):
    session = config.stash.get(session_key, None)
    if session is None or not (session.written or session.problems):
        return
    terminalreporter.section('pact files')
    for filename in session.written:
        status = 'published' if filename in session.published else 'written'
        terminalreporter.write_line(f'{Fore.GREEN}{status}{Fore.RESET} {os.path.relpath(filename)}')
    for problem in session.problems:
        terminalreporter.write_line(f'{Style.BRIGHT}{Fore.RED}{problem}{Style.RESET_ALL}')
