"""
Dependency resolution for stack descriptors.

Builds producer -> consumer edges from the declared inputs and outputs and
orders the descriptors with Kahn's algorithm. Ties are broken by
registration order so the same descriptor set always yields the same plan.
"""

import logging
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from provisioning.descriptor import Binding, ProvisioningPlan, StackDescriptor
from provisioning.errors import (
    AmbiguousProducerError,
    CycleError,
    DuplicateNameError,
    ResolutionError,
    UnsatisfiedInputError,
)

logger = logging.getLogger(__name__)


def input_names(external_inputs: Iterable[str]) -> frozenset:
    """Normalize external input names; a bare string is a single name"""
    if isinstance(external_inputs, str):
        return frozenset({external_inputs})
    return frozenset(external_inputs)


class DependencyResolver:
    def resolve(
        self,
        descriptors: Iterable[StackDescriptor],
        external_inputs: Iterable[str] = (),
    ) -> ProvisioningPlan:
        """Order descriptors so every producer precedes its consumers.

        Raises DuplicateNameError for a repeated stack name, otherwise the
        first ResolutionError found; no partial plan is returned.
        """
        descriptors = self._unique(descriptors)
        external = input_names(external_inputs)

        bindings, errors = self._bind(descriptors, external)
        if errors:
            raise errors[0]

        order = self._toposort(descriptors, bindings)
        logger.debug(f"Resolved provisioning order: {[d.name for d in order]}")
        return ProvisioningPlan(
            stacks=tuple(order), bindings=tuple(bindings), external_inputs=external
        )

    def diagnose(
        self,
        descriptors: Iterable[StackDescriptor],
        external_inputs: Iterable[str] = (),
    ) -> List[ResolutionError]:
        """Collect every resolution problem instead of stopping at the first"""
        descriptors = self._unique(descriptors)
        bindings, errors = self._bind(descriptors, input_names(external_inputs))
        if errors:
            return errors
        try:
            self._toposort(descriptors, bindings)
        except CycleError as exc:
            return [exc]
        return []

    @staticmethod
    def _unique(descriptors: Iterable[StackDescriptor]) -> Tuple[StackDescriptor, ...]:
        descriptors = tuple(descriptors)
        seen: Set[str] = set()
        for descriptor in descriptors:
            if descriptor.name in seen:
                raise DuplicateNameError(descriptor.name)
            seen.add(descriptor.name)
        return descriptors

    def _bind(
        self, descriptors: Sequence[StackDescriptor], external: frozenset
    ) -> Tuple[List[Binding], List[ResolutionError]]:
        producers: Dict[str, List[str]] = {}
        for descriptor in descriptors:
            for output_name in descriptor.produced_outputs:
                producers.setdefault(output_name, []).append(descriptor.name)

        bindings: List[Binding] = []
        errors: List[ResolutionError] = []
        for consumer in descriptors:
            for input_name in sorted(consumer.required_inputs):
                # Externally supplied values win over any producer in the graph
                if input_name in external:
                    bindings.append(Binding(consumer.name, input_name))
                    continue

                candidates = producers.get(input_name, [])
                if not candidates:
                    errors.append(UnsatisfiedInputError(consumer.name, input_name))
                elif len(candidates) > 1:
                    errors.append(
                        AmbiguousProducerError(consumer.name, input_name, candidates)
                    )
                else:
                    bindings.append(Binding(consumer.name, input_name, candidates[0]))
                    logger.debug(f"Bound {consumer.name}.{input_name} <- {candidates[0]}")
        return bindings, errors

    def _toposort(
        self, descriptors: Sequence[StackDescriptor], bindings: Sequence[Binding]
    ) -> List[StackDescriptor]:
        preferred = {d.name: i for i, d in enumerate(descriptors)}
        by_name = {d.name: d for d in descriptors}

        # consumer -> producers it waits on, producer -> consumers it unblocks
        depends_on: Dict[str, Set[str]] = {name: set() for name in preferred}
        dependents: Dict[str, Set[str]] = {name: set() for name in preferred}
        for binding in bindings:
            if binding.external:
                continue
            depends_on[binding.consumer].add(binding.producer)
            dependents[binding.producer].add(binding.consumer)

        indeg = {name: len(producers) for name, producers in depends_on.items()}
        ready = [name for name, degree in indeg.items() if degree == 0]
        order: List[str] = []
        while ready:
            ready.sort(key=preferred.__getitem__)
            name = ready.pop(0)
            order.append(name)
            for consumer in dependents[name]:
                indeg[consumer] -= 1
                if indeg[consumer] == 0:
                    ready.append(consumer)

        if len(order) != len(preferred):
            remaining = {name for name, degree in indeg.items() if degree > 0}
            raise CycleError(self._find_cycle(remaining, depends_on, preferred))
        return [by_name[name] for name in order]

    @staticmethod
    def _find_cycle(
        remaining: Set[str], depends_on: Dict[str, Set[str]], preferred: Dict[str, int]
    ) -> List[str]:
        # Every node left over by Kahn's algorithm still waits on another
        # leftover node, so walking those edges must revisit a node.
        node = min(remaining, key=preferred.__getitem__)
        path: List[str] = []
        seen: Dict[str, int] = {}
        while node not in seen:
            seen[node] = len(path)
            path.append(node)
            node = min(
                (p for p in depends_on[node] if p in remaining),
                key=preferred.__getitem__,
            )
        return path[seen[node]:] + [node]
