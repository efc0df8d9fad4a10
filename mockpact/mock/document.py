import copy
import json
import logging

from ..errors import PactInteractionConflict, PactVersionConflict, PactWriteError

log = logging.getLogger(__name__)


def provider_state_of(interaction):
    if 'providerStates' in interaction:
        return interaction['providerStates']
    return interaction.get('providerState')


class PactDocument:
    """The pact between a consumer and provider, built up over a test session.

    Interactions are added once they have been verified. An interaction is
    identified by its description and provider state; adding it again is
    a no-op, unless the request or response differ, which is an error.
    """
    def __init__(self, consumer, provider, version='2.0.0'):
        self.consumer = consumer
        self.provider = provider
        self.version = version
        self.interactions = []

    def __repr__(self):
        return f'<PactDocument {self.consumer}-{self.provider} interactions={len(self.interactions)}>'

    def find(self, description, provider_state):
        for existing in self.interactions:
            if existing['description'] == description and provider_state_of(existing) == provider_state:
                return existing
        return None

    def add(self, interaction):
        """Add an interaction (in its pact JSON form).

        :returns: True if it was new
        :raises PactInteractionConflict: if an interaction with the same
            description and provider state has a different request/response
        """
        existing = self.find(interaction['description'], provider_state_of(interaction))
        if existing is not None:
            if existing != interaction:
                raise PactInteractionConflict(
                    f'Existing "{existing["description"]}" pact given {provider_state_of(existing)!r} '
                    'exists with different request/response')
            return False
        self.interactions.append(copy.deepcopy(interaction))
        return True

    def merge_file(self, filename):
        """Add the interactions from an existing pact file."""
        try:
            with open(filename) as f:
                pact = json.load(f)
            existing_version = pact['metadata']['pactSpecification']['version']
        except (OSError, ValueError, KeyError) as e:
            raise PactWriteError(f'Unable to merge existing pact file {filename}: {e!r}') from e
        if existing_version != self.version:
            raise PactVersionConflict(f'Existing pact {filename} specifies version {existing_version} but '
                                      f'this pact specifies version {self.version}')
        for interaction in pact['interactions']:
            self.add(interaction)

    def json(self):
        return dict(
            consumer={"name": self.consumer},
            provider={"name": self.provider},
            interactions=copy.deepcopy(self.interactions),
            metadata=dict(pactSpecification=dict(version=self.version)),
        )

    def dumps(self):
        return json.dumps(self.json(), indent=2) + '\n'

    def write(self, filename):
        log.info(f'Writing {len(self.interactions)} interactions to {filename}')
        try:
            with open(filename, 'w') as f:
                f.write(self.dumps())
        except OSError as e:
            raise PactWriteError(f'Unable to write pact file {filename}: {e}') from e
