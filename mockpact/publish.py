"""Publish pact files to a pact broker."""
import json
import logging
import os
import urllib.parse

from restnavigator import Navigator

from .errors import PublishError

log = logging.getLogger(__name__)


class PactBrokerConfig:
    def __init__(self, url=None, token=None):
        url = url or os.environ.get('PACT_BROKER_URL')
        if not url:
            raise ValueError('pact broker URL must be specified')

        # pull the hostname and optionally any basic auth from the broker URL
        url_parts = urllib.parse.urlparse(url)
        host = netloc = url_parts.netloc
        self.auth = None
        if '@' in netloc:
            url_auth, host = netloc.rsplit('@', 1)
            self.auth = tuple(url_auth.split(':', 1))
        self.url = f'{url_parts.scheme}://{host}/'

        if not self.auth:
            auth = os.environ.get('PACT_BROKER_AUTH')
            if auth:
                self.auth = tuple(auth.split(':', 1))

        token = token or os.environ.get('PACT_BROKER_TOKEN')
        self.headers = None
        if token:
            self.headers = {'Authorization': f'Bearer {token}'}

    def __repr__(self):
        return f'<PactBrokerConfig {self.url}>'

    def get_broker_navigator(self):
        return Navigator.hal(self.url, default_curie='pb', auth=self.auth, headers=self.headers)


class Publisher:
    def __init__(self, broker=None):
        self.broker = broker or PactBrokerConfig()
        self._nav = None

    @property
    def nav(self):
        if self._nav is None:
            self._nav = self.broker.get_broker_navigator()
        return self._nav

    def publish(self, filename, version, tags=()):
        """Publish a pact file as the given consumer version.

        The consumer version is tagged first so the broker never holds an
        untagged pact for a tagged build.

        :param filename: the pact JSON file to publish
        :param version: the consumer application version
        :param tags: tags to apply to the consumer version
        :raises PublishError: if the file can't be read or the broker refuses it
        """
        try:
            with open(filename) as f:
                pact = json.load(f)
        except (OSError, ValueError) as e:
            raise PublishError(f'Unable to read pact file {filename}: {e}') from e
        self.publish_pact(pact, version, tags)

    def publish_pact(self, pact, version, tags=()):
        consumer = pact['consumer']['name']
        provider = pact['provider']['name']
        try:
            for tag in tags:
                log.info(f'Tagging {consumer} version {version} with {tag!r}')
                self.nav['pacticipant-version-tag'](pacticipant=consumer, version=version, tag=tag).upsert({})
            log.info(f'Publishing pact {consumer}-{provider} version {version} to {self.broker.url}')
            self.nav['publish-pact'](provider=provider, consumer=consumer,
                                     consumerApplicationVersion=version).upsert(pact)
        except Exception as e:
            raise PublishError(f'Unable to publish pact {consumer}-{provider} to {self.broker.url}: {e}') from e
