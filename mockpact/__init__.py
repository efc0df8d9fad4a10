"""Python methods for describing and mocking Pact contracts."""
from .errors import (BindError, ExerciseFailure, InteractionMismatch, MockPactError, PactInteractionConflict,
                     PactVersionConflict, PactWriteError, PatternConstructionError, PublishError,
                     UnmetInteraction)
from .mock.consumer import Consumer
from .mock.matchers import EachLike, Equals, Includes, Like, SomethingLike, Term, from_example
from .mock.pact import Pact
from .mock.provider import Provider

__all__ = (
    "BindError",
    "Consumer",
    "EachLike",
    "Equals",
    "ExerciseFailure",
    "Includes",
    "InteractionMismatch",
    "Like",
    "MockPactError",
    "Pact",
    "PactInteractionConflict",
    "PactVersionConflict",
    "PactWriteError",
    "PatternConstructionError",
    "Provider",
    "PublishError",
    "SomethingLike",
    "Term",
    "UnmetInteraction",
    "from_example",
)
