# Lambda Stack module
import os

from aws_cdk import (
    aws_iam as iam,
    aws_lambda as _lambda,
    aws_lambda_event_sources as event_sources,
    aws_logs as logs,
    Aws,
    CfnOutput,
    Duration,
    RemovalPolicy,
    Stack
)
from constructs import Construct

from app.openvpn import admin_url, dns_name

LAMBDA_DIR = os.path.join(os.path.dirname(__file__), "..", "..", "lambda")

REMEDIATION_ACTIONS = [
    "ec2:DescribeInstances",
    "ec2:ModifyInstanceAttribute",
    "route53:ChangeResourceRecordSets",
]

class LambdaStack(Stack):
    def __init__(self, scope: Construct, id: str, topic, config, dead_letter_queue=None, **kwargs):
        super().__init__(scope, id, **kwargs)

        hosted_zone = config.hosted_zone.resolve(self)
        zone_name = config.zone_name.resolve(self)

        log_group = logs.LogGroup(
            self, "ProcessEventLogs",
            retention=logs.RetentionDays.ONE_MONTH,
            removal_policy=RemovalPolicy.DESTROY
        )

        # Re-points DNS at the appliance on every autoscaling launch
        self.process_event_fn = _lambda.Function(
            self, "ProcessEventFunction",
            code=_lambda.Code.from_asset(LAMBDA_DIR, exclude=["__pycache__", "*.pyc"]),
            handler="process_event.lambda_handler",
            runtime=_lambda.Runtime.PYTHON_3_12,
            timeout=Duration.seconds(30),
            environment={
                "HOSTED_ZONE": hosted_zone,
                "DNS_NAME": dns_name(self.region, zone_name),
            },
            log_group=log_group,
            # Explicit async retry policy; the handler is safe to re-run
            retry_attempts=config.retry_attempts,
            max_event_age=Duration.hours(1),
            reserved_concurrent_executions=config.reserved_concurrency,
            dead_letter_queue=dead_letter_queue
        )

        if config.restrict_permissions:
            # DescribeInstances has no resource-level permissions
            self.process_event_fn.add_to_role_policy(iam.PolicyStatement(
                actions=["ec2:DescribeInstances"],
                resources=["*"]
            ))
            self.process_event_fn.add_to_role_policy(iam.PolicyStatement(
                actions=["ec2:ModifyInstanceAttribute"],
                resources=[f"arn:{Aws.PARTITION}:ec2:{self.region}:{self.account}:instance/*"]
            ))
            self.process_event_fn.add_to_role_policy(iam.PolicyStatement(
                actions=["route53:ChangeResourceRecordSets"],
                resources=[f"arn:{Aws.PARTITION}:route53:::hostedzone/{hosted_zone}"]
            ))
        else:
            self.process_event_fn.add_to_role_policy(iam.PolicyStatement(
                actions=REMEDIATION_ACTIONS,
                resources=["*"]
            ))

        self.process_event_fn.add_event_source(event_sources.SnsEventSource(topic))

        CfnOutput(
            self, "OpenVPNUrl",
            value=admin_url(self.region, zone_name),
            description="OpenVPN Access Server admin URL"
        )
