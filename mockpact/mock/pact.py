"""API for creating a contract and running the mock provider."""
import logging
import os

import semver

from ..errors import ExerciseFailure, PactWriteError
from .document import PactDocument
from .interaction import Interaction
from .mock_server import Server, State
from .provider import Provider
from .request import Request
from .response import Response

log = logging.getLogger(__name__)

FILE_WRITE_MODES = ('overwrite', 'merge', 'never')


def ensure_pact_dir(pact_dir):
    if not os.path.exists(pact_dir):
        parent_dir = os.path.dirname(os.path.abspath(pact_dir))
        if not os.path.exists(parent_dir):
            raise PactWriteError(f'Pact destination directory {pact_dir} does not exist')
        try:
            os.mkdir(pact_dir)
        except OSError as e:
            raise PactWriteError(f'Unable to create pact directory {pact_dir}: {e}') from e


class Pact(object):
    """
    Represents a contract between a consumer and provider.

    Runs a mock provider on a local port and provides Python context
    handlers to check a consumer's requests against the interactions
    declared for a test. For example:

    >>> from mockpact import Consumer, Provider
    >>> pact = Consumer('consumer').has_pact_with(Provider('provider'))
    >>> (pact.given('the echo service is available')
    ...  .upon_receiving('a request is made to the echo service')
    ...  .with_request('get', '/echo', query={'text': 'Hello!'})
    ...  .will_respond_with(200, body='Hello!'))
    >>> with pact:
    ...   requests.get(pact.uri + '/echo?text=Hello!')

    The GET request is made to the mock service, which will check that it
    was a GET to /echo with a query string with a key named `text` and its
    value is `Hello!`. If it matches, the mock responds with `Hello!` and
    the interaction is added to the pact once the `with` block exits. If it
    does not match, the mock responds with a 500 and a description of the
    mismatch, and an error is raised when the `with` block exits.

    Verified interactions accumulate in `document`; call `teardown()` once
    all tests have run to stop the mock and write the pact file.
    """

    def __init__(self, consumer, provider, host_name='localhost', port=0,
                 log_dir=None, pact_dir=None, version='2.0.0',
                 file_write_mode='overwrite'):
        """
        Constructor for Pact.

        :param consumer: The consumer for this contract.
        :type consumer: mockpact.Consumer or str
        :param provider: The provider for this contract.
        :type provider: mockpact.Provider or str
        :param host_name: The host name the mock service binds to and is
            reached on.
        :type host_name: str
        :param port: The port number the mock service listens on. Defaults
            to 0, which picks a free port when the mock is started.
        :type port: int
        :param log_dir: The directory where the mock service access log
            should be written. Defaults to no log file.
        :type log_dir: str
        :param pact_dir: Directory where the resulting pact files will be
            written. Defaults to the PACT_DIR environment variable, or the
            current directory.
        :type pact_dir: str
        :param version: The Pact Specification version to use, either
            '2.0.0' (the default) or '3.0.0'.
        :type version: str
        :param file_write_mode: `overwrite`, `merge` or `never`. Use `merge`
            to add to interactions already in an existing pact file, and
            `never` to not write a pact file at all.
        :type file_write_mode: str
        """
        from .consumer import Consumer
        self.consumer = Consumer(consumer) if isinstance(consumer, str) else consumer
        self.provider = Provider(provider) if isinstance(provider, str) else provider
        self.host_name = host_name
        self.log_dir = log_dir
        self.pact_dir = pact_dir or os.environ.get('PACT_DIR') or os.getcwd()
        self.version = version
        self.semver = semver.VersionInfo.parse(self.version)
        if self.semver.major not in (2, 3):
            raise ValueError(f'Invalid Pact specification version={version}')
        if file_write_mode not in FILE_WRITE_MODES:
            raise ValueError(f'file_write_mode must be one of {FILE_WRITE_MODES}, not {file_write_mode!r}')
        self.file_write_mode = file_write_mode
        self.document = PactDocument(self.consumer.name, self.provider.name, self.version)
        self.observations = []
        self._port = port
        self._interactions = []
        self._registered = []
        self._server = None
        self._document_loaded = False
        self._enter_count = 0

    def __repr__(self):
        return f'<Pact {self.consumer.name}-{self.provider.name}>'

    @property
    def port(self):
        if self._server is not None and self._server.state in (State.LISTENING, State.VERIFYING):
            return self._server.port
        return self._port

    @property
    def uri(self):
        return f'http://{self.host_name}:{self.port}'

    @property
    def pact_json_filename(self):
        return os.path.join(self.pact_dir, f'{self.consumer.name}-{self.provider.name}.json')

    @property
    def state(self):
        if self._server is None:
            return State.STOPPED
        return self._server.state

    def given(self, provider_state, **params):
        """
        Define the provider state for a new interaction.

        When the provider verifies this contract, they will use this field to
        setup pre-defined data that will satisfy the response expectations.

        In pact v2 the provider state is a short sentence that is unique to describe
        the provider state for this contract. For example:

            "an alligator with the given name Mary exists and the spam nozzle is operating"

        In pact v3 the provider state is a list of state specifications with a name and
        associated params to define specific values for the state. This may be provided
        as a list of {"name": "...", "params": {...}} dicts, or for convenience as a
        string with params taken from keyword arguments like so:

            .given("an alligator with the given name exists", name="Mary")

        Additional v3 provider states may be added with `.and_given()`.

        An explicit `None` declares an interaction without a provider state.

        :param provider_state: The state as described above.
        :type provider_state: string or list as above
        :rtype: Pact
        """
        if provider_state is not None:
            if self.semver.major < 3:
                if not isinstance(provider_state, str):
                    raise ValueError('pact v2 provider states must be strings')
            elif isinstance(provider_state, str):
                provider_state = [{'name': provider_state, 'params': params}]
            elif not isinstance(provider_state, list):
                raise ValueError('pact v3+ provider states must be lists of {name: "", params: {}} specs')
        self._interactions.append(Interaction(provider_state))
        return self

    def and_given(self, provider_state, **params):
        """
        Define an additional provider state for a pact v3 interaction.

        :param provider_state: The name of the state.
        :type provider_state: str
        :rtype: Pact
        """
        if self.semver.major < 3:
            raise ValueError('pact v2 only allows a single provider state')
        interaction = self._current_interaction('and_given')
        if not interaction.provider_state:
            raise ValueError('only invoke and_given() after given()')
        interaction.provider_state.append({'name': provider_state, 'params': params})
        return self

    def upon_receiving(self, scenario, times=None):
        """
        Define the name of this contract.

        :param scenario: A unique name for this contract.
        :type scenario: str
        :param times: The exact number of matching requests expected. By
            default any number of requests (but at least one) is accepted.
        :type times: int or None
        :rtype: Pact
        """
        if times is not None and times < 1:
            raise ValueError('times must be at least 1')
        if not self._interactions or self._interactions[-1].response is not None:
            self._interactions.append(Interaction())
        interaction = self._interactions[-1]
        interaction.description = scenario
        interaction.times = times
        return self

    def with_request(self, method, path, body=None, headers=None, query=None):
        """
        Define the request that the client is expected to perform.

        :param method: The HTTP method.
        :type method: str
        :param path: The path portion of the URI the client will access.
        :type path: str, Matcher
        :param body: The request body, can be a string or an object that will
            serialize to JSON, like list or dict, defaults to None.
        :type body: list, dict, str, Matcher or None
        :param headers: The headers the client is expected to include on with
            this request. Defaults to None.
        :type headers: dict or None
        :param query: The query options the client is expected to send. Can be
            a dict of keys and values, or a URL encoded string.
            Defaults to None.
        :type query: dict, str, or None
        :rtype: Pact
        :raises PatternConstructionError: if any part is not a valid pattern
        """
        request = Request(method, path, body=body, headers=headers, query=query)
        if self.semver.major < 3:
            request.generate_v2_matchingRules()
        self._current_interaction('with_request').request = request
        return self

    def will_respond_with(self, status, headers=None, body=None):
        """
        Define the response the server is expected to create.

        :param status: The HTTP status code.
        :type status: int
        :param headers: All required headers. Defaults to None.
        :type headers: dict or None
        :param body: The response body, or a collection of Matcher objects to
            allow for pattern matching. Defaults to None.
        :type body: Matcher, dict, list, str, or None
        :rtype: Pact
        :raises PatternConstructionError: if headers or body are not valid patterns
        """
        response = Response(status, headers=headers, body=body)
        if self.semver.major < 3:
            # v3-only matchers can't be written to a v2 pact
            response.generate_v2_matchingRules()
        self._current_interaction('will_respond_with').response = response
        return self

    def _current_interaction(self, method):
        if not self._interactions:
            raise ValueError(f'only invoke {method}() after given() or upon_receiving()')
        return self._interactions[-1]

    def start_mocking(self):
        if self._server is None:
            self._server = Server(self)
        self._load_document()
        self._server.start()

    def stop_mocking(self):
        if self._server is not None:
            self._server.terminate()
            self._server = None

    def setup(self):
        """Register the interactions defined since the last setup with the mock."""
        for interaction in self._interactions:
            missing = [name for name in ('description', 'request', 'response')
                       if getattr(interaction, name) is None]
            if missing:
                raise ValueError(f'Interaction {interaction} is incomplete, it has no {", ".join(missing)}')
        self._server.setup(self._interactions)
        self._registered.extend(self._interactions)
        self._interactions = []

    def verify(self, exercise=None):
        """
        Check that all registered interactions occurred and matched.

        If `exercise` is given it is called first; it is expected to make the
        consumer's requests to the mock. Any exception it raises propagates
        unchanged, and if it returns False an ExerciseFailure is raised.
        Only then are the interactions verified. Either way the registered
        interactions are cleared, so the mock may be used for the next test.

        On success the interactions are added to the pact document. The
        request counts seen by `observed()` are kept whatever the outcome.

        :raises ExerciseFailure: when `exercise` returns False
        :raises InteractionMismatch: when a request did not match, or
            interactions could not be told apart
        :raises UnmetInteraction: when an interaction was never requested
        :return: whatever `exercise` returned
        """
        if self._server is None or self._server.state is State.STOPPED:
            self.start_mocking()
        if self._interactions:
            self.setup()
        registered = self._registered
        try:
            outcome = exercise() if exercise is not None else None
            if outcome is False:
                raise ExerciseFailure(f'{exercise!r} reported failure')
            self._server.verify()
        finally:
            self.observations = self._server.observations()
            self._registered = []
            self._server.reset()
        for interaction in registered:
            self.document.add(interaction.json(self.version))
        return outcome

    def observed(self, description, provider_state=None):
        """Return how many requests matched the interaction(s) with a description.

        While a test runs this reflects requests received so far, after
        verification the counts from that verification.
        """
        if self._server is not None and self._registered:
            observations = self._server.observations()
        else:
            observations = self.observations
        counts = [count for interaction, count in observations
                  if interaction.description == description
                  and (provider_state is None or interaction.provider_state == provider_state)]
        if not counts:
            raise KeyError(f'no interaction {description!r} registered')
        return sum(counts)

    def was_observed(self, description, provider_state=None):
        return self.observed(description, provider_state) > 0

    def construct_pact(self, interaction):
        """Return the pact JSON holding just the one interaction."""
        document = PactDocument(self.consumer.name, self.provider.name, self.version)
        document.add(interaction.json(self.version))
        return document.json()

    def _load_document(self):
        if self._document_loaded:
            return
        self._document_loaded = True
        if self.file_write_mode == 'merge' and os.path.exists(self.pact_json_filename):
            log.info(f'Merging existing pact file {self.pact_json_filename}')
            self.document.merge_file(self.pact_json_filename)

    def write_pact(self):
        """Write the pact document to `pact_json_filename`.

        :raises PactWriteError: if the file can't be written
        :return: the filename written, or None when file_write_mode is `never`
        """
        if self.file_write_mode == 'never':
            return None
        self._load_document()
        ensure_pact_dir(self.pact_dir)
        self.document.write(self.pact_json_filename)
        return self.pact_json_filename

    def teardown(self):
        """Stop the mock and write the pact file."""
        try:
            self.stop_mocking()
        finally:
            filename = self.write_pact()
        return filename

    def __enter__(self):
        """
        Handler for entering a Python context.

        Starts the mock if needed and registers the interactions defined
        since the last verification.
        """
        if self._server is None or self._server.state is State.STOPPED:
            self.start_mocking()
        self.setup()
        self._enter_count += 1
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """
        Handler for exiting a Python context.

        Verifies that all interactions occurred as expected and adds them to
        the pact document.
        """
        self._enter_count -= 1

        # don't verify until all contexts for this pact are exited
        if self._enter_count:
            return

        if exc_type is not None:
            # let the exception go through to the keeper
            self._registered = []
            self._server.reset()
            return

        self.verify()
