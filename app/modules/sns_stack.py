from aws_cdk import (
    aws_sns as sns,
    Stack
)
from constructs import Construct

class SnsStack(Stack):
    def __init__(self, scope: Construct, id: str, **kwargs):
        super().__init__(scope, id, **kwargs)

        # Autoscaling lifecycle notifications (launch / terminate)
        self.topic = sns.Topic(
            self, "AsgTopic",
            display_name="Topic for Autoscaling notifications"
        )
