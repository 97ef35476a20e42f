"""
Recipe Management Service CDK Stack.

Integrates the single recipes table and the Lambda functions into one
deployable stack.

Stack naming convention: <service>-<env>-stack (e.g., recipes-prod-stack)

Usage Example:
    from aws_cdk import App
    from recipes.recipes_stack import RecipeManagementStack

    app = App()
    RecipeManagementStack(app, 'recipes-dev-stack', env_name='dev')
    app.synth()
"""

from aws_cdk import (
    Stack,
    CfnOutput,
    Tags,
)
from constructs import Construct

from .table_construct import RecipesTableConstruct
from .lambda_constructs import RecipesLambdasConstruct


class RecipeManagementStack(Stack):
    """
    Main CDK stack for the Recipe Management Service.

    Attributes:
        tables: DynamoDB table construct
        lambdas: Lambda functions construct
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        env_name: str = 'dev',
        **kwargs
    ) -> None:
        """
        Initialize Recipe Management Stack.

        Args:
            scope: CDK app scope
            construct_id: Stack identifier (<service>-<env>-stack)
            env_name: Environment name (dev, staging, prod, etc.)
            **kwargs: Additional stack properties (env, description, etc.)
        """
        super().__init__(scope, construct_id, **kwargs)

        self.env_name = env_name

        Tags.of(self).add('Service', 'recipe-management')
        Tags.of(self).add('Environment', env_name)
        Tags.of(self).add('ManagedBy', 'CDK')
        Tags.of(self).add('Domain', 'recipes')

        # Tables first; the Lambda functions depend on them
        self.tables = RecipesTableConstruct(
            self,
            'Tables',
        )

        self.lambdas = RecipesLambdasConstruct(
            self,
            'Lambdas',
            recipes_table=self.tables.recipes_table,
            env_name=env_name,
        )

        CfnOutput(
            self,
            'RecipesTableName',
            value=self.tables.recipes_table.table_name,
            description='Recipes DynamoDB table name',
            export_name=f'{construct_id}-recipes-table',
        )

        CfnOutput(
            self,
            'ShoppingListFunctionName',
            value=self.lambdas.shopping_list_lambda.function_name,
            description='Shopping-list generation Lambda function name',
            export_name=f'{construct_id}-shopping-list-function',
        )
