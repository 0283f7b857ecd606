#!/usr/bin/env python3
from typing import Dict, Optional

import aws_cdk as cdk
from aws_cdk import (
    Stack,
    aws_amplify as amplify,
    aws_codebuild as codebuild,
    SecretValue,
    CfnOutput,
)
from constructs import Construct

from provisioning.config import ProvisioningConfig

# Next.js build on Amplify's SSR (WEB_COMPUTE) platform
NEXTJS_BUILD_SPEC = {
    "version": 1,
    "frontend": {
        "phases": {
            "preBuild": {"commands": ["npm ci"]},
            "build": {"commands": ["npm run build"]},
        },
        "artifacts": {"baseDirectory": ".next", "files": ["**/*"]},
        "cache": {"paths": ["node_modules/**/*"]},
    },
}


class HostingStack(Stack):
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: ProvisioningConfig,
        owner: str,
        repository: str,
        github_oauth_token_name: str,
        environment_variables: Optional[Dict[str, str]] = None,
        branch_name: str = "main",
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        app_name = f"{config.org}-frontend-{config.environment}"

        # Amplify app connected to the GitHub repository
        self.amplify_app = amplify.CfnApp(
            self,
            app_name,
            name=app_name,
            repository=f"https://github.com/{owner}/{repository}",
            oauth_token=SecretValue.secrets_manager(github_oauth_token_name).unsafe_unwrap(),
            platform="WEB_COMPUTE",
            enable_branch_auto_deletion=True,
            custom_rules=[
                amplify.CfnApp.CustomRuleProperty(
                    source="/<*>",
                    target="/index.html",
                    status="404-200",
                )
            ],
            environment_variables=[
                amplify.CfnApp.EnvironmentVariableProperty(name=name, value=value)
                for name, value in (environment_variables or {}).items()
            ]
            or None,
            build_spec=codebuild.BuildSpec.from_object_to_yaml(
                NEXTJS_BUILD_SPEC
            ).to_build_spec(),
        )

        # Production branch
        self.branch = amplify.CfnBranch(
            self,
            f"{app_name}-{branch_name}",
            app_id=self.amplify_app.attr_app_id,
            branch_name=branch_name,
            stage="PRODUCTION",
        )
        self.app_id = self.amplify_app.attr_app_id

        for key, value in config.tags.items():
            cdk.Tags.of(self).add(key, value)

        # Outputs
        CfnOutput(
            self,
            "appId",
            value=self.app_id,
            description="Amplify app id",
        )
