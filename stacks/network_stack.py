#!/usr/bin/env python3
import aws_cdk as cdk
from aws_cdk import (
    Stack,
    aws_ec2 as ec2,
    CfnOutput,
)
from constructs import Construct

from provisioning.config import ProvisioningConfig


class NetworkStack(Stack):
    def __init__(
        self, scope: Construct, construct_id: str, config: ProvisioningConfig, **kwargs
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # VPC with public and isolated subnets across two AZs, no NAT gateways
        self.vpc = ec2.Vpc(
            self,
            config.resource_name("vpc"),
            ip_addresses=ec2.IpAddresses.cidr("10.0.0.0/16"),
            max_azs=2,
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    cidr_mask=24,
                    name=f"{config.org}-public-subnet-{config.environment}",
                    subnet_type=ec2.SubnetType.PUBLIC,
                ),
                ec2.SubnetConfiguration(
                    cidr_mask=24,
                    name=f"{config.org}-private-subnet-{config.environment}",
                    subnet_type=ec2.SubnetType.PRIVATE_ISOLATED,
                ),
            ],
            nat_gateways=0,
        )

        for key, value in config.tags.items():
            cdk.Tags.of(self).add(key, value)

        # Outputs
        CfnOutput(
            self,
            "VpcId",
            value=self.vpc.vpc_id,
            description="VPC shared by the compute and database stacks",
        )
