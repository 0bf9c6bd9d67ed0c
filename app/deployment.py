from typing import NamedTuple, Optional

import aws_cdk as cdk

from app.config import VpnConfig
from app.openvpn import resolve_image
from app.modules.vpc_stack import VpcStack
from app.modules.sg_stack import SgStack
from app.modules.sns_stack import SnsStack
from app.modules.sqs_stack import SqsStack
from app.modules.lambda_stack import LambdaStack
from app.modules.asg_stack import AsgStack


class Deployment(NamedTuple):
    vpc_stack: VpcStack
    sg_stack: SgStack
    sns_stack: SnsStack
    sqs_stack: Optional[SqsStack]
    lambda_stack: LambdaStack
    asg_stack: AsgStack


def compose(app: cdk.App, config: VpnConfig, account: Optional[str] = None) -> Deployment:
    """Define every stack of the OpenVPN deployment in ``app``."""
    # Fail before any stack is defined
    resolve_image(config.region)
    env = cdk.Environment(account=account, region=config.region)

    vpc_stack = VpcStack(app, "VpcStack", config=config, env=env)
    sg_stack = SgStack(app, "SgStack", vpc=vpc_stack.vpc, config=config, env=env)
    sns_stack = SnsStack(app, "SnsStack", env=env)

    sqs_stack = None
    dead_letter_queue = None
    if config.dead_letter_queue:
        sqs_stack = SqsStack(app, "SqsStack", env=env)
        dead_letter_queue = sqs_stack.remediation_dlq

    lambda_stack = LambdaStack(
        app, "LambdaStack",
        topic=sns_stack.topic,
        config=config,
        dead_letter_queue=dead_letter_queue,
        env=env
    )

    asg_stack = AsgStack(
        app, "AsgStack",
        vpc=vpc_stack.vpc,
        openvpn_sg=sg_stack.openvpn_sg,
        topic=sns_stack.topic,
        config=config,
        env=env
    )
    # The first launch notification needs a subscriber
    asg_stack.add_dependency(lambda_stack)

    return Deployment(vpc_stack, sg_stack, sns_stack, sqs_stack, lambda_stack, asg_stack)
