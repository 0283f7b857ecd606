#!/usr/bin/env python3
import aws_cdk as cdk
from aws_cdk import (
    Stack,
    aws_ec2 as ec2,
    aws_rds as rds,
    RemovalPolicy,
    SecretValue,
    CfnOutput,
)
from constructs import Construct

from provisioning.config import ProvisioningConfig


class DatabaseStack(Stack):
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: ProvisioningConfig,
        vpc: ec2.IVpc,
        db_username: str,
        db_password: str,
        database_name: str = "flexxydrive",
        allocated_storage: int = 20,
        max_allocated_storage: int = 100,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # Security group for the PostgreSQL instance
        self.db_security_group = ec2.SecurityGroup(
            self,
            f"{config.org}-db-sg-{config.environment}",
            vpc=vpc,
            security_group_name=f"{config.org}-db-sg-{config.environment}",
            description="Security group for PostgreSQL RDS in private subnet",
            allow_all_outbound=True,
        )
        # Restrict this in production
        self.db_security_group.add_ingress_rule(
            ec2.Peer.any_ipv4(),
            ec2.Port.tcp(5432),
            "Allow PostgreSQL access from ECS",
        )

        # PostgreSQL instance in the isolated subnets
        self.db_instance = rds.DatabaseInstance(
            self,
            f"{config.org}-postgres-{config.environment}",
            engine=rds.DatabaseInstanceEngine.postgres(
                version=rds.PostgresEngineVersion.VER_14
            ),
            instance_type=ec2.InstanceType.of(
                ec2.InstanceClass.BURSTABLE3, ec2.InstanceSize.MEDIUM
            ),
            vpc=vpc,
            vpc_subnets=ec2.SubnetSelection(
                subnet_type=ec2.SubnetType.PRIVATE_ISOLATED
            ),
            allocated_storage=allocated_storage,
            max_allocated_storage=max_allocated_storage,
            security_groups=[self.db_security_group],
            delete_automated_backups=True,
            removal_policy=RemovalPolicy.RETAIN,
            database_name=database_name,
            credentials=rds.Credentials.from_password(
                db_username, SecretValue.unsafe_plain_text(db_password)
            ),
        )
        self.db_endpoint = self.db_instance.db_instance_endpoint_address

        for key, value in config.tags.items():
            cdk.Tags.of(self).add(key, value)

        # Outputs (password excluded)
        CfnOutput(
            self,
            "DatabaseEndpoint",
            value=self.db_endpoint,
            description="PostgreSQL endpoint address",
        )
