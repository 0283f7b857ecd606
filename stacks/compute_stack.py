#!/usr/bin/env python3
import aws_cdk as cdk
from aws_cdk import (
    Stack,
    aws_ec2 as ec2,
    aws_ecs as ecs,
    aws_ecs_patterns as ecs_patterns,
    aws_iam as iam,
    aws_s3 as s3,
    RemovalPolicy,
    CfnOutput,
)
from constructs import Construct

from provisioning.config import ProvisioningConfig

WEB_PORTS = {80: "HTTP", 443: "HTTPS"}


class ComputeStack(Stack):
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: ProvisioningConfig,
        vpc: ec2.IVpc,
        ecr_repository_uri: str,
        container_port: int = 8000,
        cpu: int = 256,
        memory_limit_mib: int = 512,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # Bucket holding the container's environment files
        self.env_bucket = s3.Bucket(
            self,
            config.resource_name("env-bucket"),
            bucket_name=config.resource_name("env-bucket"),
            removal_policy=RemovalPolicy.DESTROY,  # Change this in production
            auto_delete_objects=True,
        )

        # Task execution role
        self.execution_role = iam.Role(
            self,
            config.resource_name("ecs-execution-role"),
            assumed_by=iam.ServicePrincipal("ecs-tasks.amazonaws.com"),
            description="ECS Task Execution Role to allow access to ECR and other AWS services",
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name(
                    "service-role/AmazonECSTaskExecutionRolePolicy"
                )
            ],
        )
        self.execution_role.add_to_policy(
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=["s3:GetObject"],
                resources=[f"{self.env_bucket.bucket_arn}/*"],
            )
        )

        # ECS cluster
        self.cluster = ecs.Cluster(
            self,
            config.resource_name("cluster"),
            vpc=vpc,
            cluster_name=config.resource_name("ecs-cluster"),
        )

        # Security groups for the tasks and the load balancer
        self.service_security_group = self._web_security_group(
            config.resource_name("ecs-sg"),
            vpc,
            "Allow HTTP/HTTPS traffic to ECS service",
            container_port,
        )
        self.lb_security_group = self._web_security_group(
            config.resource_name("alb-sg"),
            vpc,
            "Allow HTTP/HTTPS traffic to Load Balancer",
            container_port,
        )

        # Task definition running the existing ECR image
        self.task_definition = ecs.FargateTaskDefinition(
            self,
            config.resource_name("task"),
            memory_limit_mib=memory_limit_mib,
            cpu=cpu,
            execution_role=self.execution_role,
        )
        container = self.task_definition.add_container(
            f"{config.org}-app-container",
            image=ecs.ContainerImage.from_registry(f"{ecr_repository_uri}:latest"),
            logging=ecs.LogDriver.aws_logs(stream_prefix=f"{config.org}-logs"),
            environment={
                "ENV_S3_BUCKET": self.env_bucket.bucket_name,
            },
        )
        container.add_port_mappings(ecs.PortMapping(container_port=container_port))

        # Fargate service behind a public ALB
        self.service = ecs_patterns.ApplicationLoadBalancedFargateService(
            self,
            config.resource_name("ecs-service"),
            cluster=self.cluster,
            task_definition=self.task_definition,
            security_groups=[self.service_security_group],
            public_load_balancer=True,
            assign_public_ip=True,
        )
        self.service.load_balancer.add_security_group(self.lb_security_group)
        self.service.target_group.configure_health_check(
            path="/",
            port=str(container_port),
        )
        self.load_balancer_dns = self.service.load_balancer.load_balancer_dns_name

        self.env_bucket.grant_read(self.task_definition.task_role)

        for key, value in config.tags.items():
            cdk.Tags.of(self).add(key, value)

        # Outputs
        CfnOutput(
            self,
            "ClusterName",
            value=self.cluster.cluster_name,
            description="ECS cluster running the application service",
        )

        CfnOutput(
            self,
            "LoadBalancerDns",
            value=self.load_balancer_dns,
            description="Public DNS name of the application load balancer",
        )

    def _web_security_group(
        self, construct_id: str, vpc: ec2.IVpc, description: str, container_port: int
    ) -> ec2.SecurityGroup:
        group = ec2.SecurityGroup(
            self,
            construct_id,
            vpc=vpc,
            description=description,
            allow_all_outbound=True,
        )
        for port, label in WEB_PORTS.items():
            group.add_ingress_rule(
                ec2.Peer.any_ipv4(), ec2.Port.tcp(port), f"Allow {label} traffic"
            )
        group.add_ingress_rule(
            ec2.Peer.any_ipv4(),
            ec2.Port.tcp(container_port),
            f"Allow application traffic on port {container_port}",
        )
        return group
