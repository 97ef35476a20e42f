"""
DynamoDB table construct for the Recipe Management Service.

One table holds every entity type (recipes, users, meal-plan entries,
collections). The natural id is embedded in the partition key with a type
prefix, and three generic GSIs re-project records under their secondary
access patterns.

Access Patterns:
1. Get any record by id: PK=<TYPE>#{id}, SK=METADATA#{id}
2. Recipes by author (GSI1): AUTHOR#{authorId} / CREATEDAT#{createdAt}
3. Public recipes (GSI2): PUBLIC#TRUE / CREATEDAT#{createdAt}
4. Recipes by category (GSI3): CATEGORY#{category} / CREATEDAT#{createdAt}
5. User by email / username (GSI1 / GSI2)
6. Meal plan by user and date (GSI1): MEALPLAN_USER#{userId} / DATE#{date}#{id}
7. Collections by owner / public collections (GSI1 / GSI2)
"""

from aws_cdk import (
    aws_dynamodb as dynamodb,
    RemovalPolicy,
)
from constructs import Construct


# (partition attribute, sort attribute, index name); must match recipes_shared.schema
GLOBAL_SECONDARY_INDEXES = (
    ('GSI1PK', 'GSI1SK', 'GSI1PK-GSI1SK-index'),
    ('GSI2PK', 'GSI2SK', 'GSI2PK-GSI2SK-index'),
    ('GSI3PK', 'GSI3SK', 'GSI3PK-GSI3SK-index'),
)


class RecipesTableConstruct(Construct):
    """
    Construct that creates the single recipes table.

    Attributes:
        recipes_table: The recipes DynamoDB table
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        **kwargs
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.recipes_table = dynamodb.Table(
            self,
            "RecipesTable",
            # Primary key configuration
            partition_key=dynamodb.Attribute(
                name="PK",
                type=dynamodb.AttributeType.STRING
            ),
            sort_key=dynamodb.Attribute(
                name="SK",
                type=dynamodb.AttributeType.STRING
            ),
            # Billing configuration
            billing_mode=dynamodb.BillingMode.PAY_PER_REQUEST,
            # Data protection
            point_in_time_recovery=True,
            # Deletion policy - retain for production safety
            removal_policy=RemovalPolicy.RETAIN,
        )

        # Sparse indexes: records without the attributes are simply not projected
        for partition_attr, sort_attr, index_name in GLOBAL_SECONDARY_INDEXES:
            self.recipes_table.add_global_secondary_index(
                index_name=index_name,
                partition_key=dynamodb.Attribute(
                    name=partition_attr,
                    type=dynamodb.AttributeType.STRING
                ),
                sort_key=dynamodb.Attribute(
                    name=sort_attr,
                    type=dynamodb.AttributeType.STRING
                ),
                projection_type=dynamodb.ProjectionType.ALL,
            )
