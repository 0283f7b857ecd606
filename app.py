#!/usr/bin/env python3
import json
import logging
import os
from typing import Any, Dict, Mapping, Optional

import aws_cdk as cdk
from aws_cdk import Stack

from provisioning.config import ProvisioningConfig, external_inputs_from_env, redact
from provisioning.descriptor import StackDescriptor
from provisioning.errors import ProvisioningError
from provisioning.registry import StackRegistry
from stacks.compute_stack import ComputeStack
from stacks.database_stack import DatabaseStack
from stacks.hosting_stack import HostingStack
from stacks.network_stack import NetworkStack

logger = logging.getLogger()

PLAN_FILE = "provisioning-plan.json"

STACK_TYPES = {
    "VpcStack": NetworkStack,
    "EcsStack": ComputeStack,
    "RdsStack": DatabaseStack,
    "AmplifyStack": HostingStack,
}


def build_registry(config: ProvisioningConfig) -> StackRegistry:
    """Register the network, compute, database and hosting stacks"""
    registry = StackRegistry(config)

    # Network - VPC shared by compute and database
    registry.register(StackDescriptor(name="VpcStack", produced_outputs={"vpc": "vpc"}))

    # Compute - ECS Fargate service running the existing ECR image
    registry.register(
        StackDescriptor(
            name="EcsStack",
            required_inputs={"vpc", "ecr_repository_uri"},
            produced_outputs={
                "cluster": "cluster",
                "load_balancer_dns": "load_balancer_dns",
            },
            parameters={"container_port": 8000, "cpu": 256, "memory_limit_mib": 512},
        )
    )

    # Database - PostgreSQL in the isolated subnets
    registry.register(
        StackDescriptor(
            name="RdsStack",
            required_inputs={"vpc", "db_username", "db_password"},
            produced_outputs={"db_endpoint": "db_endpoint"},
            parameters={"database_name": "flexxydrive"},
        )
    )

    # Hosting - Amplify frontend, independent of the other stacks
    registry.register(
        StackDescriptor(
            name="AmplifyStack",
            produced_outputs={"app_id": "app_id"},
            parameters={
                "owner": "Tochi-Nwachukwu",
                "repository": "fxd-fe",
                "github_oauth_token_name": "ghub-token",
            },
        )
    )
    return registry


def build_stacks(
    app: cdk.App,
    registry: StackRegistry,
    external_values: Mapping[str, Any],
    env: Optional[cdk.Environment] = None,
) -> Dict[str, Stack]:
    """Materialize every stack once, in plan order, wiring outputs to inputs"""
    plan = registry.plan(redact(dict(external_values)))

    values = dict(external_values)
    stacks: Dict[str, Stack] = {}
    for descriptor in plan:
        inputs = {name: values[name] for name in descriptor.required_inputs}
        stack = STACK_TYPES[descriptor.name](
            app,
            descriptor.name,
            config=registry.config,
            env=env,
            **inputs,
            **descriptor.parameters,
        )
        for producer in plan.producers_of(descriptor.name):
            stack.add_dependency(stacks[producer])
        for output_name, attribute in descriptor.produced_outputs.items():
            values[output_name] = getattr(stack, attribute)
        stacks[descriptor.name] = stack
        logger.info(f"Materialized {descriptor.name}")
    return stacks


def write_plan(registry: StackRegistry, outdir: str) -> str:
    """Persist the plan next to the cloud assembly for audit"""
    os.makedirs(outdir, exist_ok=True)
    path = os.path.join(outdir, PLAN_FILE)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(registry.export_plan(), f, indent=2, default=str)
    return path


def main() -> None:
    app = cdk.App()
    config = ProvisioningConfig.from_context(app)
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    logger.setLevel(config.log_level)

    # Environment configuration
    env = cdk.Environment(account=config.account, region=config.region)

    registry = build_registry(config)
    try:
        build_stacks(app, registry, external_inputs_from_env(), env=env)
    except ProvisioningError as e:
        logger.error(f"Invalid stack configuration: {e}")
        raise

    path = write_plan(registry, app.outdir)
    logger.info(f"Provisioning plan written to {path}")
    app.synth()


if __name__ == "__main__":
    main()
