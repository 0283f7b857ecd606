"""
Errors raised while assembling and planning the stack graph.

All of them are configuration failures: they abort planning and carry enough
structure for the caller to report what is wrong.
"""

from typing import Sequence


class ProvisioningError(Exception):
    """Base class for every stack registry and planning failure"""


class DuplicateNameError(ProvisioningError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Stack '{name}' is already registered")


class RegistryFrozenError(ProvisioningError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"Cannot register stack '{name}': a provisioning plan has already been derived"
        )


class ResolutionError(ProvisioningError):
    """Base class for dependency resolution failures"""


class UnsatisfiedInputError(ResolutionError):
    def __init__(self, consumer: str, input_name: str) -> None:
        self.consumer = consumer
        self.input_name = input_name
        super().__init__(
            f"Input '{input_name}' of stack '{consumer}' has no producer "
            "and is not supplied externally"
        )


class AmbiguousProducerError(ResolutionError):
    def __init__(self, consumer: str, output_name: str, producers: Sequence[str]) -> None:
        self.consumer = consumer
        self.output_name = output_name
        self.producers = tuple(producers)
        super().__init__(
            f"Input '{output_name}' of stack '{consumer}' is produced by more than one "
            f"stack: {', '.join(self.producers)}"
        )


class CycleError(ResolutionError):
    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = tuple(cycle)
        super().__init__(f"Dependency cycle detected: {' -> '.join(self.cycle)}")
