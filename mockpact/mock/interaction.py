import logging
import threading

from ..errors import InteractionMismatch, UnmetInteraction

log = logging.getLogger(__name__)


class Interaction:
    """One expected request and the response the mock gives for it.

    `times` is the exact number of requests expected; None accepts any
    number of requests greater than zero.
    """
    def __init__(self, provider_state=None, description=None, request=None, response=None, times=None):
        self.provider_state = provider_state
        self.description = description
        self.request = request
        self.response = response
        self.times = times

    def __repr__(self):
        return f'<Interaction {self.description!r}>'

    def __str__(self):
        if self.provider_state is None:
            return repr(self.description)
        return f'{self.description!r} given {self.provider_state!r}'

    @property
    def signature(self):
        request = self.request
        return (request.method.upper(), repr(request.path), repr(request.query_pattern), repr(request.headers),
                repr(request.body))

    def json(self, spec_version):
        interaction = {'description': self.description}
        if isinstance(self.provider_state, list):
            interaction['providerStates'] = self.provider_state
        elif self.provider_state is not None:
            interaction['providerState'] = self.provider_state
        interaction['request'] = self.request.json(spec_version)
        interaction['response'] = self.response.json(spec_version)
        return interaction


class Fault:
    """Something that went wrong while the mock was serving requests."""
    def __init__(self, message, diagnostics=(), request=None, interaction=None):
        self.message = message
        self.diagnostics = list(diagnostics)
        self.request = request
        self.interaction = interaction

    def __repr__(self):
        return f'<Fault {self.message!r}>'

    def __str__(self):
        lines = [self.message]
        if self.interaction is not None:
            lines.append(f'    closest interaction: {self.interaction}')
        lines.extend(f'    {diagnostic}' for diagnostic in self.diagnostics)
        return '\n'.join(lines)

    def json(self):
        return dict(
            message=self.message,
            request=self.request.json() if self.request is not None else None,
            closest=str(self.interaction) if self.interaction is not None else None,
            mismatches=[diagnostic.json() for diagnostic in self.diagnostics],
        )


class InteractionRegistry:
    """The interactions registered for the test being run, in order.

    Requests are matched against the interactions in registration order and
    the first one to match fully wins. Hit counts and faults may be updated
    from many server threads at once.
    """
    def __init__(self):
        self._lock = threading.Lock()
        self.interactions = []
        self.counts = []
        self.faults = []

    def __len__(self):
        return len(self.interactions)

    def add(self, interaction):
        log.debug(f'registering interaction {interaction}')
        with self._lock:
            self.interactions.append(interaction)
            self.counts.append(0)

    def reset(self):
        with self._lock:
            self.interactions = []
            self.counts = []
            self.faults = []

    def observed(self, interaction):
        """Return how many requests matched the interaction."""
        with self._lock:
            for index, candidate in enumerate(self.interactions):
                if candidate is interaction:
                    return self.counts[index]
        raise KeyError(f'interaction {interaction} is not registered')

    def was_observed(self, interaction):
        return self.observed(interaction) > 0

    def observations(self):
        """Return (interaction, count) pairs in registration order."""
        with self._lock:
            return list(zip(self.interactions, self.counts))

    def find(self, request):
        """Find the interaction for a received request.

        Returns (interaction, None) on a match, otherwise (None, fault) where
        the fault holds the diagnostics of the closest candidate. Candidates
        whose method and path match are preferred, then those with the
        fewest mismatches.
        """
        with self._lock:
            interactions = list(enumerate(self.interactions))
        closest = None
        for index, interaction in interactions:
            result = interaction.request.match_route(request)
            route_matched = result.matched
            if route_matched:
                result = interaction.request.match(request)
                if result.matched:
                    log.info(f'{request} matched interaction {interaction}')
                    with self._lock:
                        # the registry may have been reset since the snapshot
                        if index < len(self.interactions) and self.interactions[index] is interaction:
                            self.counts[index] += 1
                    return interaction, None
            rank = (not route_matched, len(result.diagnostics), index)
            if closest is None or rank < closest[0]:
                closest = (rank, interaction, result)

        if closest is None:
            fault = Fault(f'Request {request} received but no interaction registered', request=request)
        else:
            _, interaction, result = closest
            fault = Fault(f'Request {request} did not match any interaction', result.diagnostics,
                          request=request, interaction=interaction)
        self.record_fault(fault)
        return None, fault

    def record_fault(self, fault):
        log.warning(str(fault))
        with self._lock:
            self.faults.append(fault)

    def ambiguities(self):
        faults = []
        seen = {}
        for interaction in self.interactions:
            earlier = seen.setdefault(interaction.signature, interaction)
            if earlier is not interaction:
                faults.append(Fault(f'Interaction {interaction} can never be matched: its request is '
                                    f'identical to {earlier} ({interaction.request!r})'))
        return faults

    def verify(self):
        """Check that every registered interaction was requested as expected.

        Must only be called when no requests are being served.

        :raises InteractionMismatch: if any request failed to match, an
            interaction could not be told apart from an earlier one, or an
            interaction was requested a different number of times than it
            declared
        :raises UnmetInteraction: if all requests matched but some
            interactions were never requested
        :return: (interaction, count) pairs in registration order
        """
        with self._lock:
            failures = list(self.faults)
            counts = list(zip(self.interactions, self.counts))
        failures.extend(self.ambiguities())
        for interaction, count in counts:
            if interaction.times is not None and count and count != interaction.times:
                failures.append(Fault(f'Interaction {interaction} was requested {count} times, '
                                      f'expected {interaction.times}'))
        unmet = [interaction for interaction, count in counts if not count]
        if failures:
            failures.extend(Fault(f'Interaction {interaction} was never requested') for interaction in unmet)
            raise InteractionMismatch(failures)
        if unmet:
            raise UnmetInteraction(unmet)
        log.debug(f'verified {len(counts)} interactions')
        return counts

