"""
Lambda function constructs for the Recipe Management Service.

Each Lambda follows the lambda-per-operation pattern with:
- Explicit environment variable configuration
- Least privilege IAM permissions
- Python 3.11 runtime with the python-ulid dependency layer

Lambda Functions:
1. recipes-shopping-list-generate: Shopping-list generation from a meal plan
"""

from aws_cdk import (
    aws_lambda as lambda_,
    aws_iam as iam,
    aws_dynamodb as dynamodb,
    Duration,
)
from constructs import Construct
from typing import Dict


class RecipesLambdasConstruct(Construct):
    """
    Construct that creates the Lambda functions for the Recipe Management Service.

    Attributes:
        shopping_list_lambda: Shopping-list generation Lambda function
        dependencies_layer: Lambda Layer with python-ulid dependency
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        recipes_table: dynamodb.Table,
        env_name: str = 'dev',
        **kwargs
    ) -> None:
        """
        Initialize Lambda functions construct.

        Args:
            scope: CDK construct scope
            construct_id: Unique construct identifier
            recipes_table: DynamoDB recipes table
            env_name: Environment name used in function names
        """
        super().__init__(scope, construct_id, **kwargs)

        # boto3 is already available in the Lambda runtime
        self.dependencies_layer = lambda_.LayerVersion(
            self,
            'DependenciesLayer',
            code=lambda_.Code.from_asset('../lambda_layer'),
            compatible_runtimes=[lambda_.Runtime.PYTHON_3_11],
            description='Python dependencies: python-ulid'
        )

        common_config = {
            'runtime': lambda_.Runtime.PYTHON_3_11,
            'memory_size': 256,  # MB
            'timeout': Duration.seconds(30),
            'tracing': lambda_.Tracing.ACTIVE,
            'layers': [self.dependencies_layer],
        }

        # Requires: DynamoDB read only (meal plan query, recipe batch get)
        self.shopping_list_lambda = self._create_shopping_list_lambda(
            common_config,
            recipes_table,
            env_name
        )

    def _create_shopping_list_lambda(
        self,
        common_config: Dict,
        recipes_table: dynamodb.Table,
        env_name: str
    ) -> lambda_.Function:
        """
        Create shopping-list generation Lambda function.

        Operations: Query meal plan by date range, batch get recipes, aggregate
        Permissions: DynamoDB read only, CloudWatch PutMetricData
        """
        fn = lambda_.Function(
            self,
            'ShoppingListGenerateLambda',
            function_name=f'recipes-{env_name}-shopping-list-generate',
            description='Shopping-list generation - aggregates scaled ingredients for a date range',
            code=lambda_.Code.from_asset('../lambda/shopping_list_generate'),
            handler='handler.handler',
            environment={
                'RECIPES_TABLE_NAME': recipes_table.table_name,
                'METRICS_NAMESPACE': 'RecipeManagement',
            },
            **common_config
        )

        recipes_table.grant_read_data(fn)

        # PutMetricData does not support resource-level permissions
        fn.add_to_role_policy(iam.PolicyStatement(
            actions=['cloudwatch:PutMetricData'],
            resources=['*'],
            conditions={
                'StringEquals': {'cloudwatch:namespace': 'RecipeManagement'}
            }
        ))

        return fn
