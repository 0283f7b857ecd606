"""
Stack descriptors, bindings and provisioning plans.

A descriptor declares what a stack needs and what it hands on. Descriptors
never reference each other; the relationships live in Binding records owned
by the plan.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

EXTERNAL_PLACEHOLDER = "<external>"


@dataclass(frozen=True)
class StackDescriptor:
    name: str
    required_inputs: frozenset = frozenset()
    produced_outputs: Mapping[str, str] = field(default_factory=dict, hash=False)
    parameters: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("Stack descriptor name must be a non-empty string")
        # Freeze the collections so a registered descriptor cannot drift
        object.__setattr__(self, "required_inputs", frozenset(self.required_inputs))
        object.__setattr__(
            self, "produced_outputs", MappingProxyType(dict(self.produced_outputs))
        )
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))

    def produces(self, output_name: str) -> bool:
        return output_name in self.produced_outputs


@dataclass(frozen=True)
class Binding:
    """Records which producer satisfies one required input of a consumer.

    ``producer`` is None when the input is supplied from outside the graph.
    """

    consumer: str
    input_name: str
    producer: Optional[str] = None

    @property
    def external(self) -> bool:
        return self.producer is None


@dataclass(frozen=True)
class ProvisioningPlan:
    stacks: Tuple[StackDescriptor, ...]
    bindings: Tuple[Binding, ...] = ()
    external_inputs: frozenset = frozenset()

    def __iter__(self) -> Iterator[StackDescriptor]:
        return iter(self.stacks)

    def __len__(self) -> int:
        return len(self.stacks)

    @property
    def names(self) -> List[str]:
        return [stack.name for stack in self.stacks]

    def position(self, name: str) -> int:
        return self.names.index(name)

    def get(self, name: str) -> StackDescriptor:
        for stack in self.stacks:
            if stack.name == name:
                return stack
        raise KeyError(name)

    def bindings_for(self, consumer: str) -> List[Binding]:
        return [binding for binding in self.bindings if binding.consumer == consumer]

    def producers_of(self, consumer: str) -> List[str]:
        """Distinct producers the consumer depends on, in plan order"""
        producers = {b.producer for b in self.bindings_for(consumer) if not b.external}
        return [name for name in self.names if name in producers]

    def input_sources(
        self, consumer: str, external_values: Optional[Mapping[str, Any]] = None
    ) -> Dict[str, Any]:
        """Annotate each required input of a stack with where its value comes from"""
        external_values = external_values or {}
        sources: Dict[str, Any] = {}
        for binding in self.bindings_for(consumer):
            if binding.external:
                value = external_values.get(binding.input_name)
                sources[binding.input_name] = (
                    EXTERNAL_PLACEHOLDER if value is None else value
                )
            else:
                producer = self.get(binding.producer)
                placeholder = producer.produced_outputs[binding.input_name]
                sources[binding.input_name] = f"{producer.name}.{placeholder}"
        return sources

    def to_records(
        self, external_values: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Serialize the plan as ordered {name, inputs, outputs} records"""
        return [
            {
                "name": stack.name,
                "inputs": self.input_sources(stack.name, external_values),
                "outputs": dict(stack.produced_outputs),
            }
            for stack in self.stacks
        ]
