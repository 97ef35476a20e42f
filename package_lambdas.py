#!/usr/bin/env python3
"""
Package Lambda functions with the shared data-access core.
This script copies recipes_shared into each Lambda function directory.
Note: External dependencies (python-ulid) are provided via Lambda Layer.
"""
import shutil
import os

# Lambda function directories
lambda_functions = [
    'lambda/shopping_list_generate',
]

shared_dir = 'lambda/recipes_shared'

print("Packaging Lambda functions with recipes_shared...\n")

for func_dir in lambda_functions:
    target_shared = os.path.join(func_dir, 'recipes_shared')

    # Remove a stale copy from a previous packaging run
    if os.path.exists(target_shared):
        shutil.rmtree(target_shared)
        print(f"✓ Removed old recipes_shared from {func_dir}")

    shutil.copytree(
        shared_dir,
        target_shared,
        ignore=shutil.ignore_patterns('__pycache__', '*.pyc', 'test_*.py', '.pytest_cache')
    )
    print(f"✓ Copied recipes_shared to {func_dir}")

print("\n✅ All Lambda functions packaged successfully!")
print("\nNote: python-ulid is provided via Lambda Layer; boto3 comes with the runtime")
print("Now deploy with: cd deployments && cdk deploy recipes-dev-stack")
