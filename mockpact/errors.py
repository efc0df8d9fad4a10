"""Exceptions raised by the pact mocking engine."""


class MockPactError(Exception):
    pass


class BindError(MockPactError, OSError):
    """The mock server could not bind to its port."""


class PatternConstructionError(MockPactError, ValueError):
    """A matcher or example could not be turned into a pattern."""


class ExerciseFailure(MockPactError, AssertionError):
    """The code exercising the mock reported a failure."""


class InteractionMismatch(MockPactError, AssertionError):
    """One or more requests did not match the registered interactions.

    `failures` holds one entry per problem found during verification, each
    with the full list of diagnostics that explain it.
    """
    def __init__(self, failures):
        self.failures = list(failures)
        super().__init__(format_failures('Pact verification failed', self.failures))


class UnmetInteraction(MockPactError, AssertionError):
    """Registered interactions were never exercised."""
    def __init__(self, interactions):
        self.interactions = list(interactions)
        lines = [f'  {interaction}' for interaction in self.interactions]
        super().__init__('\n'.join(['Interactions were registered but never requested:'] + lines))


class PactInteractionConflict(MockPactError, AssertionError):
    pass


class PactVersionConflict(MockPactError, AssertionError):
    pass


class PactWriteError(MockPactError, OSError):
    pass


class PublishError(MockPactError):
    pass


def format_failures(heading, failures):
    lines = [heading + ':']
    for failure in failures:
        lines.append(f'  {failure}')
    return '\n'.join(lines)
