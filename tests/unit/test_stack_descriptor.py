"""
Unit tests for StackDescriptor, Binding and ProvisioningPlan
"""

import dataclasses

import pytest

from provisioning.descriptor import (
    EXTERNAL_PLACEHOLDER,
    Binding,
    ProvisioningPlan,
    StackDescriptor,
)


class TestStackDescriptor:
    """Test class for StackDescriptor"""

    def test_defaults(self):
        """A descriptor only needs a name"""
        descriptor = StackDescriptor(name="Hosting")
        assert descriptor.required_inputs == frozenset()
        assert dict(descriptor.produced_outputs) == {}
        assert dict(descriptor.parameters) == {}

    @pytest.mark.parametrize("name", ["", "   "])
    def test_rejects_empty_name(self, name):
        """Empty or blank names are rejected at construction"""
        with pytest.raises(ValueError):
            StackDescriptor(name=name)

    def test_inputs_are_frozen(self):
        """Required inputs are normalized to a frozenset"""
        descriptor = StackDescriptor(name="Compute", required_inputs=["vpc", "vpc"])
        assert descriptor.required_inputs == frozenset({"vpc"})

    def test_is_immutable(self):
        """Neither fields nor mappings can be changed after construction"""
        outputs = {"vpc": "vpc"}
        descriptor = StackDescriptor(name="Network", produced_outputs=outputs)

        with pytest.raises(dataclasses.FrozenInstanceError):
            descriptor.name = "Other"
        with pytest.raises(TypeError):
            descriptor.produced_outputs["subnets"] = "subnets"

        # Mutating the caller's dict does not leak into the descriptor
        outputs["subnets"] = "subnets"
        assert "subnets" not in descriptor.produced_outputs

    def test_produces(self):
        """produces() reports declared outputs"""
        descriptor = StackDescriptor(name="Network", produced_outputs={"vpc": "vpc"})
        assert descriptor.produces("vpc")
        assert not descriptor.produces("cluster")

    def test_hashable(self):
        """Descriptors can be used in sets"""
        descriptor = StackDescriptor(name="Network", produced_outputs={"vpc": "vpc"})
        assert descriptor in {descriptor}


class TestProvisioningPlan:
    """Test class for ProvisioningPlan"""

    @pytest.fixture
    def plan(self):
        """Network feeds compute; compute also takes an external image uri"""
        network = StackDescriptor(name="Network", produced_outputs={"vpcId": "vpc_id"})
        compute = StackDescriptor(
            name="Compute",
            required_inputs={"vpcId", "imageUri"},
            produced_outputs={"clusterArn": "cluster_arn"},
        )
        return ProvisioningPlan(
            stacks=(network, compute),
            bindings=(
                Binding("Compute", "imageUri"),
                Binding("Compute", "vpcId", "Network"),
            ),
            external_inputs=frozenset({"imageUri"}),
        )

    def test_iteration_and_names(self, plan):
        """The plan iterates in order"""
        assert len(plan) == 2
        assert [stack.name for stack in plan] == ["Network", "Compute"]
        assert plan.names == ["Network", "Compute"]
        assert plan.position("Compute") == 1

    def test_get_unknown_stack(self, plan):
        """Looking up an unknown stack raises KeyError"""
        with pytest.raises(KeyError):
            plan.get("Database")

    def test_binding_lookup(self, plan):
        """Bindings and producers are reported per consumer"""
        assert len(plan.bindings_for("Compute")) == 2
        assert plan.bindings_for("Network") == []
        assert plan.producers_of("Compute") == ["Network"]
        assert Binding("Compute", "imageUri").external

    def test_input_sources(self, plan):
        """Inputs are annotated with their producer or external value"""
        assert plan.input_sources("Compute") == {
            "vpcId": "Network.vpc_id",
            "imageUri": EXTERNAL_PLACEHOLDER,
        }
        assert plan.input_sources("Compute", {"imageUri": "repo/app"})["imageUri"] == "repo/app"

    def test_to_records(self, plan):
        """The plan serializes as ordered {name, inputs, outputs} records"""
        records = plan.to_records({"imageUri": "repo/app"})
        assert records == [
            {"name": "Network", "inputs": {}, "outputs": {"vpcId": "vpc_id"}},
            {
                "name": "Compute",
                "inputs": {"vpcId": "Network.vpc_id", "imageUri": "repo/app"},
                "outputs": {"clusterArn": "cluster_arn"},
            },
        ]
