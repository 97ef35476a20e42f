#!/usr/bin/env python3
"""
Create the Lambda Layer with python-ulid and its dependencies.
Note: boto3 is already available in Lambda runtime, so the layer only needs python-ulid.
"""
import subprocess
import os
import shutil
import sys
from pathlib import Path

layer_dir = 'lambda_layer/python'
os.makedirs(layer_dir, exist_ok=True)

print("Creating Lambda Layer...")
print(f"Layer directory: {layer_dir}\n")

print("Installing python-ulid with dependencies...")
result = subprocess.run(
    [
        sys.executable, '-m', 'pip', 'install',
        'python-ulid>=2.2.0',
        '-t', layer_dir,
        '--upgrade',
        '--no-cache-dir'
    ],
    capture_output=True,
    text=True
)

if result.returncode == 0:
    print("✓ Installed python-ulid and dependencies")
else:
    print("✗ Failed to install dependencies")
    print(f"Error: {result.stderr}")
    sys.exit(1)

print("\nInstalled packages:")
for item in sorted(os.listdir(layer_dir)):
    if os.path.isdir(os.path.join(layer_dir, item)) and not item.startswith('__'):
        print(f"  - {item}")

# Keep dist-info for dependency tracking
print("\nCleaning up unnecessary files...")
for pattern in ('__pycache__', '*.pyc', 'bin'):
    for item in Path(layer_dir).rglob(pattern):
        if not item.exists():
            continue
        if item.is_dir():
            shutil.rmtree(item)
        else:
            item.unlink()
        print(f"  ✓ Removed {item.relative_to(layer_dir)}")

print("\n✅ Lambda Layer created successfully!")
print(f"\nLayer location: {layer_dir}")
print("\nNext steps:")
print("1. python package_lambdas.py")
print("2. cd deployments && cdk deploy recipes-dev-stack")
