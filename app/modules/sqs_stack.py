# SQS Stack module
from aws_cdk import (
    aws_sqs as sqs,
    Stack,
    Duration
)
from constructs import Construct

class SqsStack(Stack):
    def __init__(self, scope: Construct, id: str, **kwargs):
        super().__init__(scope, id, **kwargs)

        # Lifecycle events the remediation function gave up on after its retries
        self.remediation_dlq = sqs.Queue(
            self, "RemediationDLQ",
            retention_period=Duration.days(14)
        )
