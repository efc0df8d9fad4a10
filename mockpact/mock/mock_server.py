import enum
import json
import logging
import os
import threading
import traceback
import urllib.parse
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from ..errors import BindError
from .interaction import Fault, InteractionRegistry
from .request import ReceivedRequest
from .response import get_charset
from .result import ABSENT

log = logging.getLogger(__name__)


class State(enum.Enum):
    STOPPED = 'stopped'
    STARTING = 'starting'
    LISTENING = 'listening'
    VERIFYING = 'verifying'


class Server:
    """The mock provider for one pact, serving from a background thread.

    The server moves STOPPED -> STARTING -> LISTENING on start(), through
    VERIFYING and back to LISTENING on each verify(), and to STOPPED on
    terminate().
    """
    def __init__(self, pact):
        self.pact = pact
        self.registry = InteractionRegistry()
        self.state = State.STOPPED
        self.httpd = None
        self.thread = None

    def __repr__(self):
        return f'<Server {self.pact.provider.name} {self.state.value}>'

    @property
    def port(self):
        return self.httpd.server_address[1]

    def start(self):
        if self.state is not State.STOPPED:
            raise RuntimeError(f'mock server for {self.pact.provider.name} is already {self.state.value}')
        self.state = State.STARTING
        try:
            self.httpd = MockServer(self.pact, self.registry)
        except Exception:
            self.state = State.STOPPED
            raise
        self.thread = threading.Thread(target=self.httpd.serve_forever, daemon=True,
                                       name=f'mockpact-{self.pact.provider.name}')
        self.thread.start()
        self.state = State.LISTENING
        log.info(f'Mock server for {self.pact.provider.name} listening on port {self.port}')

    def setup(self, interactions):
        for interaction in interactions:
            self.registry.add(interaction)

    def observations(self):
        return self.registry.observations()

    def verify(self):
        """Verify the interactions registered since the last reset.

        :return: (interaction, count) pairs in registration order
        """
        self.state = State.VERIFYING
        try:
            return self.registry.verify()
        finally:
            self.state = State.LISTENING

    def reset(self):
        self.registry.reset()

    def terminate(self):
        if self.httpd is not None:
            try:
                self.httpd.shutdown()
                self.thread.join()
            finally:
                self.httpd.server_close()
                self.httpd = None
                self.thread = None
                self.registry.reset()
        self.state = State.STOPPED
        log.info(f'Mock server for {self.pact.provider.name} stopped')


class MockServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, pact, registry):
        self.pact = pact
        self.registry = registry
        self.log = logging.getLogger(__name__ + '.' + pact.provider.name)
        self.log_handler = None
        if pact.log_dir:
            # opened before binding so a bad log_dir can't leave a socket behind
            self.log_handler = logging.FileHandler(os.path.join(pact.log_dir, f'{pact.provider.name}.log'))
            self.log.addHandler(self.log_handler)
            self.log.setLevel(logging.DEBUG)
        try:
            super().__init__((pact.host_name, pact.port), MockHTTPRequestHandler)
        except OSError as e:
            # the base class has already called server_close()
            raise BindError(f'Unable to start mock server for {pact.provider.name} on '
                            f'{pact.host_name}:{pact.port}: {e}') from e

    def server_close(self):
        super().server_close()
        if self.log_handler is not None:
            self.log.removeHandler(self.log_handler)
            self.log_handler.close()
            self.log_handler = None


def decode_body(raw, content_type):
    """Decode a request body according to its content type.

    JSON (or, with no content type, anything that parses as JSON) is
    decoded; form data becomes a dict of lists; anything else is text.
    """
    if not raw:
        return ABSENT
    if content_type is None:
        try:
            return json.loads(raw)
        except ValueError:
            return raw.decode('utf-8', errors='replace')
    text = raw.decode(get_charset(content_type))
    if 'json' in content_type:
        return json.loads(text)
    if 'application/x-www-form-urlencoded' in content_type:
        return urllib.parse.parse_qs(text, keep_blank_values=True)
    return text


class MockHTTPRequestHandler(BaseHTTPRequestHandler):
    FAULT_HEADERS = {'Content-Type': 'application/json; charset=UTF-8', 'X-Pact-Mock-Service': 'true'}

    def received_request(self, method):
        url_parts = urllib.parse.urlparse(self.path)
        length = int(self.headers.get('Content-Length') or 0)
        raw = self.rfile.read(length) if length else b''
        body = decode_body(raw, self.headers.get('Content-Type'))
        return ReceivedRequest(method, url_parts.path, url_parts.query, dict(self.headers.items()), body)

    def run_request(self, method):
        registry = self.server.registry
        try:
            request = self.received_request(method)
            interaction, fault = registry.find(request)
            if interaction is not None:
                status, headers, body = interaction.response.render()
            else:
                status, headers, body = 500, dict(self.FAULT_HEADERS), json.dumps(fault.json()).encode('utf8')
        except Exception as e:
            registry.record_fault(Fault(f'Internal error handling {method} {self.path}: {e}'))
            status, headers = 500, {'Content-Type': 'text/plain; charset=utf-8', 'X-Pact-Mock-Service': 'true'}
            body = traceback.format_exc().encode('utf8')
        self.send_response(status)
        for header, value in headers.items():
            self.send_header(header, value)
        self.send_header('Content-Length', str(len(body)))
        self.end_headers()
        if body and method != 'HEAD':
            self.wfile.write(body)

    def do_DELETE(self):
        self.run_request('DELETE')

    def do_GET(self):
        self.run_request('GET')

    def do_HEAD(self):
        self.run_request('HEAD')

    def do_OPTIONS(self):
        self.run_request('OPTIONS')

    def do_PATCH(self):
        self.run_request('PATCH')

    def do_POST(self):
        self.run_request('POST')

    def do_PUT(self):
        self.run_request('PUT')

    def log_message(self, format, *args):
        self.server.log.info("MockServer %s" % format % args)
