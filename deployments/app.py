#!/usr/bin/env python3
"""
CDK Application Entry Point.

Usage:
    # Synthesize CloudFormation templates
    cdk synth

    # Deploy to development environment
    cdk deploy recipes-dev-stack

    # Deploy all stacks
    cdk deploy --all

Environment Configuration:
    Stacks can be configured with AWS account and region via environment variables:
    - CDK_DEFAULT_ACCOUNT: AWS account ID
    - CDK_DEFAULT_REGION: AWS region
"""

import os
from aws_cdk import App, Environment

from recipes.recipes_stack import RecipeManagementStack


app = App()

account = os.environ.get('CDK_DEFAULT_ACCOUNT')
region = os.environ.get('CDK_DEFAULT_REGION')

env = None
if account and region:
    env = Environment(account=account, region=region)

dev_stack = RecipeManagementStack(
    app,
    'recipes-dev-stack',
    env_name='dev',
    env=env,
    description='Recipe Management Service - Development Environment',
)

# Uncomment when ready to deploy to production
# prod_stack = RecipeManagementStack(
#     app,
#     'recipes-prod-stack',
#     env_name='prod',
#     env=env,
#     description='Recipe Management Service - Production Environment',
# )

app.synth()
