"""
Unit tests for the Compute Stack
Tests the ECS cluster, Fargate service, IAM role and env bucket
"""

import aws_cdk as core
import aws_cdk.assertions as assertions
import pytest

from provisioning.config import ProvisioningConfig
from stacks.compute_stack import ComputeStack
from stacks.network_stack import NetworkStack


class TestComputeStack:
    """Test class for Compute Stack"""

    @pytest.fixture
    def app(self):
        """Create CDK app for testing"""
        return core.App()

    @pytest.fixture
    def config(self):
        return ProvisioningConfig()

    @pytest.fixture
    def network_stack(self, app, config):
        """Create network stack providing the VPC"""
        return NetworkStack(app, "test-network-stack", config=config)

    @pytest.fixture
    def stack(self, app, config, network_stack):
        """Create Compute stack for testing"""
        return ComputeStack(
            app,
            "test-compute-stack",
            config=config,
            vpc=network_stack.vpc,
            ecr_repository_uri="123456789012.dkr.ecr.us-east-1.amazonaws.com/app",
        )

    @pytest.fixture
    def template(self, stack):
        """Create CDK template for assertions"""
        return assertions.Template.from_stack(stack)

    def test_stack_has_required_resources(self, stack):
        """Test that the stack has the expected resources"""
        assert hasattr(stack, "cluster")
        assert hasattr(stack, "service")
        assert hasattr(stack, "env_bucket")
        assert hasattr(stack, "execution_role")
        assert hasattr(stack, "load_balancer_dns")

    def test_cluster(self, template):
        """Test the ECS cluster name"""
        template.has_resource_properties(
            "AWS::ECS::Cluster", {"ClusterName": "fxd-dev-ecs-cluster"}
        )

    def test_task_definition(self, template):
        """Test task size, image and container port"""
        template.has_resource_properties(
            "AWS::ECS::TaskDefinition",
            {
                "Cpu": "256",
                "Memory": "512",
                "ContainerDefinitions": [
                    assertions.Match.object_like(
                        {
                            "Image": "123456789012.dkr.ecr.us-east-1.amazonaws.com/app:latest",
                            "PortMappings": [
                                assertions.Match.object_like({"ContainerPort": 8000})
                            ],
                        }
                    )
                ],
            },
        )

    def test_env_bucket(self, template):
        """Test the environment file bucket"""
        template.has_resource_properties(
            "AWS::S3::Bucket", {"BucketName": "fxd-dev-env-bucket"}
        )

    def test_execution_role(self, template):
        """Test that ECS tasks can assume the execution role"""
        template.has_resource_properties(
            "AWS::IAM::Role",
            {
                "AssumeRolePolicyDocument": assertions.Match.object_like(
                    {
                        "Statement": assertions.Match.array_with(
                            [
                                assertions.Match.object_like(
                                    {"Principal": {"Service": "ecs-tasks.amazonaws.com"}}
                                )
                            ]
                        )
                    }
                ),
                "Description": "ECS Task Execution Role to allow access to ECR and other AWS services",
            },
        )

    def test_load_balanced_service(self, template):
        """Test the public ALB and Fargate service"""
        template.resource_count_is("AWS::ECS::Service", 1)
        template.has_resource_properties(
            "AWS::ElasticLoadBalancingV2::LoadBalancer",
            {"Scheme": "internet-facing"},
        )
        template.has_resource_properties(
            "AWS::ElasticLoadBalancingV2::TargetGroup",
            {"HealthCheckPath": "/", "HealthCheckPort": "8000"},
        )

    def test_stack_outputs(self, template):
        """Test that cluster name and ALB DNS are exported"""
        template.has_output("ClusterName", {})
        template.has_output("LoadBalancerDns", {})
