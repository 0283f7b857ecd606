"""
Stack registry: owns the descriptors of one provisioning run and the plan
derived from them.

Lifecycle: OPEN accepts registrations; the first successful plan() moves the
registry to PLANNED, after which the topology is frozen.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from provisioning.config import ProvisioningConfig
from provisioning.descriptor import ProvisioningPlan, StackDescriptor
from provisioning.errors import DuplicateNameError, RegistryFrozenError, ResolutionError
from provisioning.resolver import DependencyResolver, input_names

logger = logging.getLogger(__name__)

ExternalInputs = Union[Iterable[str], Mapping[str, Any]]


class RegistryState(Enum):
    OPEN = "open"
    PLANNED = "planned"


@dataclass(frozen=True)
class DescribedStack:
    name: str
    inputs: Dict[str, Any]
    outputs: Dict[str, str]
    parameters: Dict[str, Any]


class PlanDescription:
    """Iterable view over the cached plan; every iteration starts afresh"""

    def __init__(self, plan: ProvisioningPlan, external_values: Mapping[str, Any]) -> None:
        self._plan = plan
        self._external_values = external_values

    def __iter__(self) -> Iterator[DescribedStack]:
        for stack in self._plan:
            yield DescribedStack(
                name=stack.name,
                inputs=self._plan.input_sources(stack.name, self._external_values),
                outputs=dict(stack.produced_outputs),
                parameters=dict(stack.parameters),
            )


class StackRegistry:
    def __init__(
        self,
        config: Optional[ProvisioningConfig] = None,
        resolver: Optional[DependencyResolver] = None,
    ) -> None:
        self.config = config or ProvisioningConfig()
        self._resolver = resolver or DependencyResolver()
        self._descriptors: List[StackDescriptor] = []
        self._state = RegistryState.OPEN
        self._plans: Dict[Tuple[Tuple[int, ...], frozenset], ProvisioningPlan] = {}
        self._last_plan: Optional[ProvisioningPlan] = None
        self._external_values: Dict[str, Any] = {}

    @property
    def state(self) -> RegistryState:
        return self._state

    @property
    def descriptors(self) -> Tuple[StackDescriptor, ...]:
        return tuple(self._descriptors)

    def __contains__(self, name: str) -> bool:
        return any(d.name == name for d in self._descriptors)

    def __len__(self) -> int:
        return len(self._descriptors)

    def register(self, descriptor: StackDescriptor) -> StackDescriptor:
        if self._state is RegistryState.PLANNED:
            raise RegistryFrozenError(descriptor.name)
        if descriptor.name in self:
            raise DuplicateNameError(descriptor.name)
        self._descriptors.append(descriptor)
        logger.debug(
            f"Registered stack {descriptor.name} "
            f"(requires={sorted(descriptor.required_inputs)}, "
            f"produces={list(descriptor.produced_outputs)})"
        )
        return descriptor

    def plan(self, external_inputs: ExternalInputs = ()) -> ProvisioningPlan:
        """Resolve the registered descriptors into a provisioning plan.

        ``external_inputs`` is either a set of input names (a bare string is
        one name) or a mapping of name to value; values are only used to annotate describe() output.
        """
        if isinstance(external_inputs, Mapping):
            external_values = dict(external_inputs)
        else:
            external_values = {name: None for name in input_names(external_inputs)}
        external_names = frozenset(external_values)

        key = (tuple(id(d) for d in self._descriptors), external_names)
        plan = self._plans.get(key)
        if plan is None:
            try:
                plan = self._resolver.resolve(self._descriptors, external_names)
            except ResolutionError as exc:
                logger.error(f"Planning failed for {self.config.prefix}: {exc}")
                raise
            self._plans[key] = plan
            logger.info(
                f"Provisioning plan for {self.config.prefix}: {' -> '.join(plan.names)}"
            )

        self._state = RegistryState.PLANNED
        self._last_plan = plan
        self._external_values = external_values
        return plan

    def describe(self, external_inputs: Optional[ExternalInputs] = None) -> PlanDescription:
        """Plan-ordered descriptors annotated with the source of every input.

        Uses the most recent plan unless external inputs are given; plans
        with no external inputs if nothing has been planned yet.
        """
        if external_inputs is not None or self._last_plan is None:
            self.plan(external_inputs or ())
        return PlanDescription(self._last_plan, self._external_values)

    def validate(self, external_inputs: Iterable[str] = ()) -> List[ResolutionError]:
        if isinstance(external_inputs, Mapping):
            external_inputs = list(external_inputs)
        else:
            external_inputs = input_names(external_inputs)
        return self._resolver.diagnose(self._descriptors, external_inputs)

    def export_plan(self) -> List[Dict[str, Any]]:
        return [
            {"name": entry.name, "inputs": entry.inputs, "outputs": entry.outputs}
            for entry in self.describe()
        ]
