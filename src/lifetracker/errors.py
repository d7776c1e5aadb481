"""Error types raised by lifetracker managers."""

from typing import Union


class LifetrackerError(Exception):
    """Base exception for lifetracker errors."""

    pass


class NotFoundError(LifetrackerError):
    """Referenced entity, step or milestone does not exist."""

    def __init__(self, kind: str, identifier: Union[str, int]):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class InvalidInputError(LifetrackerError):
    """Input rejected before it reaches the engine."""

    pass
