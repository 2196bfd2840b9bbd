#!/usr/bin/env python3
"""
CDK app for the SQS redrive service.

Usage:
    cdk deploy

Optional environment variables:
    NOTIFICATION_EMAIL=you@example.com REDRIVE_SCHEDULE_HOURS=6 cdk deploy
"""
import os

import aws_cdk as cdk

from sqs_redrive.sqs_redrive_stack import SqsRedriveStack

app = cdk.App()

# Get region from environment or use default
region = os.environ.get("AWS_REGION", os.environ.get("CDK_DEFAULT_REGION"))

SqsRedriveStack(
    app,
    "SqsRedrive",
    description="DLQ redrive API and scheduled redrive for an SQS queue pair",
    env=cdk.Environment(
        account=os.getenv("CDK_DEFAULT_ACCOUNT"),
        region=region,
    ),
)

app.synth()
